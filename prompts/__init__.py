"""
Prompts Module - Prompt templates for the scoring pipeline.

Usage:
    from prompts import PromptLoader

    loader = PromptLoader()
    system = loader.get("batch_scoring_system")
    user = loader.format("batch_scoring", investor_summary="...", ...)

Prompt Files:
- batch_scoring_system.md: system prompt for batch opportunity scoring
- batch_scoring.md: user prompt listing the investor and the properties to score
"""

from ._loader import PromptLoader

__all__ = [
    "PromptLoader",
]
