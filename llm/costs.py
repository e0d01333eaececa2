"""
Token and cost estimation for metered LLM calls.
"""
import math


# USD per 1K tokens
COST_PER_1K_TOKENS = {
    "gpt-4o-mini": {
        "input": 0.00015,   # $0.15 per 1M input tokens
        "output": 0.0006,   # $0.60 per 1M output tokens
    },
    "gpt-4o": {
        "input": 0.005,
        "output": 0.015,
    },
    "claude-3-5-haiku-latest": {
        "input": 0.0008,
        "output": 0.004,
    },
}

DEFAULT_COST_MODEL = "gpt-4o-mini"

CHARS_PER_TOKEN = 4


def estimate_cost(input_tokens: int, output_tokens: int, model: str = DEFAULT_COST_MODEL) -> float:
    """
    Estimate USD cost of a call.

    Unknown models are priced as the default model.
    """
    rates = COST_PER_1K_TOKENS.get(model, COST_PER_1K_TOKENS[DEFAULT_COST_MODEL])
    return (input_tokens / 1000) * rates["input"] + (output_tokens / 1000) * rates["output"]


def estimate_tokens(text: str) -> int:
    """Rough token count: ~4 characters per token for English text."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)
