"""
Anthropic Client - Messages API.

There is no JSON response mode; the scoring prompts already ask for JSON.
"""
from anthropic import AsyncAnthropic
from loguru import logger

from .base import LLMClient, LLMRequest, LLMResponse


class AnthropicClient(LLMClient):

    def __init__(
        self,
        api_key: str,
        model: str = "claude-3-5-haiku-latest",
        timeout: float = 30.0,
        enable_logging: bool = True,
        **_ignored,
    ):
        super().__init__(api_key, model, enable_logging=enable_logging)
        self.timeout = timeout
        self._client = AsyncAnthropic(api_key=api_key, timeout=timeout)

    async def _complete(self, request: LLMRequest) -> LLMResponse:
        logger.debug(f"Anthropic request: model={self.model}, max_tokens={request.max_output_tokens}")

        try:
            response = await self._client.messages.create(
                model=self.model,
                system=request.system_prompt,
                messages=[{"role": "user", "content": request.user_prompt}],
                max_tokens=request.max_output_tokens,
                temperature=request.temperature,
            )
        except Exception as e:
            logger.error(f"Anthropic request failed: {e}")
            raise

        content = "".join(block.text for block in response.content if block.type == "text")
        return LLMResponse(
            content=content,
            model=response.model,
            usage={
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
            },
            stop_reason=response.stop_reason,
        )
