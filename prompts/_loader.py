"""
Prompt Loader - Load and format prompts from markdown files.

Prompts live next to this module as .md files with {variable_name}
placeholders. Literal braces in a template are written doubled ({{ }}).
"""

from pathlib import Path
from typing import Optional, Dict, Any

from loguru import logger


class PromptLoader:
    """
    Load and format prompts from markdown files.

    Example:
        loader = PromptLoader()
        system = loader.get("batch_scoring_system")
        user = loader.format("batch_scoring", investor_summary="...", count=3, ...)
    """

    # Singleton instance
    _instance: Optional["PromptLoader"] = None

    def __new__(cls) -> "PromptLoader":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._prompts_dir = Path(__file__).parent
        self._cache: Dict[str, str] = {}
        self._initialized = True

        logger.debug(f"PromptLoader initialized with prompts dir: {self._prompts_dir}")

    @property
    def prompts_dir(self) -> Path:
        return self._prompts_dir

    def get(self, prompt_name: str) -> str:
        """
        Get a prompt template by name, without trailing whitespace.

        Raises:
            FileNotFoundError: If prompt file doesn't exist
        """
        if prompt_name in self._cache:
            return self._cache[prompt_name]

        prompt_path = self._prompts_dir / f"{prompt_name}.md"
        if not prompt_path.exists():
            raise FileNotFoundError(
                f"Prompt file not found: {prompt_path}\n"
                f"Available prompts: {self.list_prompts()}"
            )

        content = prompt_path.read_text(encoding="utf-8").rstrip()
        self._cache[prompt_name] = content

        logger.debug(f"Loaded prompt: {prompt_name} ({len(content)} chars)")
        return content

    def format(self, prompt_name: str, **kwargs: Any) -> str:
        """
        Get a prompt and substitute its variables.

        Raises:
            ValueError: If a placeholder has no matching keyword
        """
        template = self.get(prompt_name)

        try:
            return template.format(**kwargs)
        except KeyError as e:
            logger.error(f"Missing variable in prompt '{prompt_name}': {e}")
            raise ValueError(
                f"Missing required variable {e} for prompt '{prompt_name}'"
            ) from e

    def list_prompts(self) -> list[str]:
        return [f.stem for f in self._prompts_dir.glob("*.md")]
