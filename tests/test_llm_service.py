import asyncio
from types import SimpleNamespace

import pytest

from cost_assistant.core.config import settings
from cost_assistant.core.exceptions import LLMServiceError
from cost_assistant.services.llm_service import LLMService

TURNS = [{"role": "user", "content": "How do I cut my EC2 spend?"}]


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _service_with(create):
    """A non-mock service whose OpenAI client is replaced by `create`."""
    service = LLMService()
    service._use_mock = False
    service._client = SimpleNamespace(
        chat=SimpleNamespace(completions=SimpleNamespace(create=create))
    )
    return service


async def test_mock_mode_without_api_key():
    service = LLMService()

    reply = await service.complete(TURNS)

    assert service.is_mock
    assert reply.startswith("[MOCK LLM RESPONSE]")


async def test_returns_completion_text_with_requested_sampling():
    seen = {}

    async def create(**kwargs):
        seen.update(kwargs)
        return _completion("Use spot instances for batch jobs.")

    reply = await _service_with(create).complete(TURNS, max_tokens=77, temperature=0.2)

    assert reply == "Use spot instances for batch jobs."
    assert seen["max_tokens"] == 77
    assert seen["temperature"] == 0.2
    assert seen["messages"] == TURNS


async def test_slow_completion_times_out(monkeypatch):
    monkeypatch.setattr(settings, "LLM_TIMEOUT_SECONDS", 0.05)

    async def create(**kwargs):
        await asyncio.sleep(5)
        return _completion("too late")

    with pytest.raises(LLMServiceError, match="timed out"):
        await _service_with(create).complete(TURNS)


@pytest.mark.parametrize("content", [None, "", "   "])
async def test_empty_completion_is_an_error(content):
    async def create(**kwargs):
        return _completion(content)

    with pytest.raises(LLMServiceError, match="empty response"):
        await _service_with(create).complete(TURNS)


async def test_api_error_is_wrapped():
    async def create(**kwargs):
        raise RuntimeError("429 quota exceeded")

    with pytest.raises(LLMServiceError, match="quota exceeded"):
        await _service_with(create).complete(TURNS)
