"""
LLM Module - Unified interface for LLM providers.

Usage:
    from llm import get_client, LLMRequest

    client = get_client()  # Uses config settings
    response = await client.complete(LLMRequest(system_prompt="...", user_prompt="..."))
    print(response.content)

Supported providers:
- openai: OpenAI Chat Completions (JSON mode)
- anthropic: Anthropic Messages API
"""
from typing import Optional

from config import settings as app_settings, Settings
from .base import LLMClient, LLMRequest, LLMResponse, set_llm_context, get_llm_context
from .openai_client import OpenAIClient
from .anthropic_client import AnthropicClient


# Provider mapping
_PROVIDERS = {
    "openai": OpenAIClient,
    "anthropic": AnthropicClient,
}

# Default models per provider
_DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "anthropic": "claude-3-5-haiku-latest",
}


def get_client(
    provider: Optional[str] = None,
    api_key: Optional[str] = None,
    model: Optional[str] = None,
    config: Optional[Settings] = None,
) -> LLMClient:
    """
    Get an LLM client instance.

    Args:
        provider: Provider name. Defaults to settings.LLM_PROVIDER
        api_key: API key. Defaults to the provider's key in settings
        model: Model name. Defaults to settings.LLM_MODEL or provider default
        config: Settings to read defaults from (the process settings if omitted)

    Returns:
        Configured LLMClient instance

    Raises:
        ValueError: Unknown provider or missing API key
    """
    settings = config or app_settings
    provider = (provider or settings.LLM_PROVIDER).lower()

    if provider not in _PROVIDERS:
        raise ValueError(f"Unknown LLM provider: {provider}. Available: {list(_PROVIDERS.keys())}")

    if api_key is None:
        api_key = settings.OPENAI_API_KEY if provider == "openai" else settings.ANTHROPIC_API_KEY

    if not api_key:
        raise ValueError(f"API key required for provider: {provider}")

    model = model or settings.LLM_MODEL or _DEFAULT_MODELS[provider]

    client_class = _PROVIDERS[provider]
    return client_class(
        api_key=api_key,
        model=model,
        timeout=settings.LLM_TIMEOUT_SECONDS,
        enable_logging=settings.LLM_LOG_CALLS,
    )


__all__ = [
    "get_client",
    "set_llm_context",
    "get_llm_context",
    "LLMClient",
    "LLMRequest",
    "LLMResponse",
    "OpenAIClient",
    "AnthropicClient",
]
