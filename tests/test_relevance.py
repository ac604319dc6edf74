import pytest

from conftest import StubLLM
from cost_assistant.core.config import settings
from cost_assistant.core.exceptions import LLMServiceError
from cost_assistant.services.relevance import check_relevance, is_off_topic


@pytest.mark.parametrize(
    "text",
    [
        "What's the weather like in Paris?",
        "Who won the NBA finals?",
        "Who should I vote for in the election?",
        "Any good movies on Netflix?",
        "how are you today?",
        "tell me a joke",
    ],
)
def test_off_topic_patterns_match(text):
    assert is_off_topic(text)


@pytest.mark.parametrize(
    "text",
    [
        "How do I cut my AWS bill?",
        "Is reserved capacity cheaper than on-demand for EC2?",
        "Does the weather API we host on Lambda cost too much?",
        "",
        None,
    ],
)
def test_on_topic_or_empty_text_is_not_off_topic(text):
    assert not is_off_topic(text)


async def test_heuristic_only_by_default():
    llm = StubLLM(reply="no")

    relevant = await check_relevance(llm, {"message": "Why is S3 egress so pricey?"})

    assert relevant is True
    assert llm.calls == []


async def test_no_fields_is_not_relevant():
    assert await check_relevance(StubLLM(), {"message": "", "plan": None}) is False


async def test_llm_check_runs_once_per_present_field(monkeypatch):
    monkeypatch.setattr(settings, "RELEVANCE_LLM_CHECK", True)

    def verdict(messages):
        return "yes" if "vCPU" in messages[-1]["content"] else "no"

    llm = StubLLM(reply=verdict)
    relevant = await check_relevance(
        llm,
        {"message": "thoughts?", "plan": "4 vCPU, 16 GiB", "metrics": ""},
    )

    assert relevant is True
    assert len(llm.calls_of("relevance")) == 2


async def test_llm_failure_falls_back_to_heuristic(monkeypatch):
    monkeypatch.setattr(settings, "RELEVANCE_LLM_CHECK", True)
    llm = StubLLM(error=LLMServiceError("quota exceeded"))

    assert await check_relevance(llm, {"message": "tell me a joke"}) is False
    assert await check_relevance(llm, {"message": "lower my GCP costs"}) is True
