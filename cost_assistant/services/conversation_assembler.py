"""
services/conversation_assembler.py
----------------------------------
Builds the ordered turn lists handed to the LLM.

A request is either a file analysis (plan and/or metrics text present) or a
general conversation turn. The two modes never mix: file analysis ignores
the thread history and uses its own prompt and sampling settings.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence

from cost_assistant.core.config import settings
from cost_assistant.models.message import Message

Turn = Dict[str, str]

CHAT_SYSTEM_PROMPT = (
    "You are a cloud cost optimisation assistant. Help the user understand "
    "and reduce their cloud spending across providers. Be concrete: name "
    "services, pricing models and the expected savings where you can."
)

ANALYSIS_SYSTEM_PROMPT = "You are a cloud cost optimization expert."

SUMMARY_SYSTEM_PROMPT = (
    "Summarise the following conversation between a user and a cloud cost "
    "assistant. List the key findings, recommendations and open questions."
)


class RequestMode(str, Enum):
    FILE_ANALYSIS = "file_analysis"
    CONVERSATION = "conversation"


@dataclass(frozen=True)
class LLMRequest:
    """A turn list plus the sampling settings it should be sent with."""

    messages: List[Turn]
    max_tokens: int
    temperature: float
    kind: str


def has_text(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def select_mode(plan: Optional[str], metrics: Optional[str]) -> RequestMode:
    """Either field being present is enough for file analysis."""
    if has_text(plan) or has_text(metrics):
        return RequestMode.FILE_ANALYSIS
    return RequestMode.CONVERSATION


def build_analysis_prompt(plan: str, metrics: str, comment: str) -> str:
    return f"""
PLAN / BILLING DATA:
{plan or "(not provided)"}

USAGE METRICS:
{metrics or "(not provided)"}

COMMENT:
{comment or "(none)"}

TASKS:
1. Identify inefficiencies and expensive resources.
2. Suggest optimizations in the current provider.
3. Propose platform-specific alternatives (e.g. Cloudflare Workers, R2, KV, D1).
4. Return (A) a plain-English summary and (B) a JSON array of recommendations in triple backticks.
""".strip()


def build_analysis_request(plan: str, metrics: str, comment: str) -> LLMRequest:
    return LLMRequest(
        messages=[
            {"role": "system", "content": ANALYSIS_SYSTEM_PROMPT},
            {"role": "user", "content": build_analysis_prompt(plan, metrics, comment)},
        ],
        max_tokens=settings.ANALYSIS_MAX_TOKENS,
        temperature=settings.ANALYSIS_TEMPERATURE,
        kind="analysis",
    )


def format_history(history: Sequence[Message]) -> str:
    return "\n".join(f"{m.role}: {m.content}" for m in history)


def build_conversation_request(
    history: Sequence[Message],
    message: str,
    window: Optional[int] = None,
) -> LLMRequest:
    """
    System turn with the trailing window of prior turns as role: content
    lines, followed by the new user turn.
    """
    window = settings.CHAT_HISTORY_WINDOW if window is None else window
    recent = list(history)[-window:] if window > 0 else []

    system = CHAT_SYSTEM_PROMPT
    if recent:
        system += "\n\nConversation so far:\n" + format_history(recent)

    return LLMRequest(
        messages=[
            {"role": "system", "content": system},
            {"role": "user", "content": message},
        ],
        max_tokens=settings.LLM_MAX_TOKENS,
        temperature=settings.LLM_TEMPERATURE,
        kind="chat",
    )


def build_summary_request(thread_text: str) -> LLMRequest:
    return LLMRequest(
        messages=[
            {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
            {"role": "user", "content": thread_text},
        ],
        max_tokens=settings.LLM_MAX_TOKENS,
        temperature=settings.ANALYSIS_TEMPERATURE,
        kind="summary",
    )
