"""
OpenAI Client - Chat Completions with JSON mode.
"""
from typing import Optional

import httpx
from openai import AsyncOpenAI
from loguru import logger

from .base import LLMClient, LLMRequest, LLMResponse


class OpenAIClient(LLMClient):
    """
    OpenAI client using the async SDK.

    Also works against any OpenAI-compatible endpoint via `base_url`.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        timeout: float = 30.0,
        base_url: Optional[str] = None,
        verify_ssl: bool = True,
        enable_logging: bool = True,
    ):
        """
        Initialize OpenAI client.

        Args:
            api_key: OpenAI API key
            model: Model name (gpt-4o-mini, gpt-4o, ...)
            timeout: Request timeout in seconds
            base_url: Override the API base URL
            verify_ssl: Whether to verify SSL certificates
        """
        super().__init__(api_key, model, enable_logging=enable_logging)
        self.timeout = timeout

        http_client = None
        if not verify_ssl:
            http_client = httpx.AsyncClient(verify=False)
            logger.warning("SSL verification disabled for OpenAI client")

        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            http_client=http_client,
        )

    async def _complete(self, request: LLMRequest) -> LLMResponse:
        api_messages = [
            {"role": "system", "content": request.system_prompt},
            {"role": "user", "content": request.user_prompt},
        ]

        kwargs = {}
        if request.response_format == "json_object":
            kwargs["response_format"] = {"type": "json_object"}

        logger.debug(f"OpenAI request: model={self.model}, max_tokens={request.max_output_tokens}")

        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=api_messages,
                max_tokens=request.max_output_tokens,
                temperature=request.temperature,
                **kwargs,
            )
        except Exception as e:
            logger.error(f"OpenAI request failed: {e}")
            raise

        choice = response.choices[0]
        usage = response.usage
        return LLMResponse(
            content=choice.message.content or "",
            model=response.model,
            usage={
                "input_tokens": usage.prompt_tokens,
                "output_tokens": usage.completion_tokens,
            } if usage else {},
            stop_reason=choice.finish_reason,
        )
