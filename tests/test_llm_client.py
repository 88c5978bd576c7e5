from __future__ import annotations

import pytest

from app.config.settings import settings
from app.services.llm_client import BedrockLlmClient, LlmInvocationError


class FakeBedrock:
    def __init__(self, blocks: list[dict]) -> None:
        self.blocks = blocks
        self.calls: list[dict] = []

    def converse(self, **kwargs) -> dict:
        self.calls.append(kwargs)
        return {"output": {"message": {"content": self.blocks}}}


def _client(blocks: list[dict]) -> tuple[BedrockLlmClient, FakeBedrock]:
    client = BedrockLlmClient(model_id="test-model")
    fake = FakeBedrock(blocks)
    client._client = fake
    return client, fake


@pytest.mark.asyncio
async def test_generate_sends_configured_inference_settings() -> None:
    client, fake = _client([{"text": "Paris."}, {"text": "Capital of France."}])

    reply = await client.generate("Be brief.", "Capital of France?")

    assert reply == "Paris.\nCapital of France."
    call = fake.calls[0]
    assert call["modelId"] == "test-model"
    assert call["system"] == [{"text": "Be brief."}]
    assert call["messages"][0]["content"] == [{"text": "Capital of France?"}]
    assert call["inferenceConfig"] == {
        "maxTokens": settings.bedrock.max_tokens,
        "temperature": settings.bedrock.temperature,
        "topP": settings.bedrock.top_p,
    }


@pytest.mark.asyncio
async def test_empty_reply_is_an_error() -> None:
    client, _ = _client([])

    with pytest.raises(LlmInvocationError):
        await client.generate("Be brief.", "Anything?")
