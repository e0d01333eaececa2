from types import SimpleNamespace

import pytest

from llm import AnthropicClient, LLMRequest, OpenAIClient, get_client, set_llm_context
from tests.fakes import FakeLLMClient


def test_get_client_unknown_provider():
    with pytest.raises(ValueError, match="Unknown LLM provider"):
        get_client(provider="nope", api_key="k")


def test_get_client_requires_key():
    with pytest.raises(ValueError, match="API key required"):
        get_client(provider="openai", api_key="")


def test_get_client_provider_defaults():
    client = get_client(provider="anthropic", api_key="k")
    assert isinstance(client, AnthropicClient)

    client = get_client(provider="OpenAI", api_key="k", model="gpt-4o")
    assert isinstance(client, OpenAIClient)
    assert client.model == "gpt-4o"


@pytest.mark.asyncio
async def test_openai_client_maps_usage():
    client = OpenAIClient(api_key="k", enable_logging=False)
    captured = {}

    async def create(**kwargs):
        captured.update(kwargs)
        return SimpleNamespace(
            model="gpt-4o-mini-2024-07-18",
            choices=[SimpleNamespace(message=SimpleNamespace(content='{"scores": []}'), finish_reason="stop")],
            usage=SimpleNamespace(prompt_tokens=120, completion_tokens=30),
        )

    client._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    response = await client.complete(LLMRequest(system_prompt="sys", user_prompt="user", max_output_tokens=400))

    assert captured["response_format"] == {"type": "json_object"}
    assert captured["max_tokens"] == 400
    assert captured["messages"][0] == {"role": "system", "content": "sys"}
    assert response.input_tokens == 120
    assert response.output_tokens == 30
    assert response.stop_reason == "stop"
    assert response.latency_ms is not None


class RecordingClient(FakeLLMClient):
    def __init__(self, responses):
        super().__init__(responses)
        self.enable_logging = True
        self.saved = []

    def _save_record_to_db(self, record):
        self.saved.append(record)


@pytest.mark.asyncio
async def test_call_record_carries_request_context():
    client = RecordingClient([{"scores": []}])
    set_llm_context(org_id="org-9", request_id="req-1", endpoint="/api/opportunities/score")

    await client.complete(LLMRequest(system_prompt="s", user_prompt="u"))

    record = client.saved[0]
    assert record.success
    assert (record.input_tokens, record.output_tokens) == (300, 200)
    assert record.org_id == "org-9"
    assert record.endpoint == "/api/opportunities/score"
    assert record.cost_usd > 0


@pytest.mark.asyncio
async def test_failed_call_is_logged_and_reraised():
    client = RecordingClient([TimeoutError("slow upstream")])

    with pytest.raises(TimeoutError):
        await client.complete(LLMRequest(system_prompt="s", user_prompt="u"))

    record = client.saved[0]
    assert not record.success
    assert record.error_message == "slow upstream"
    assert record.input_tokens == 0
