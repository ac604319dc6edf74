"""
schemas/chat.py
---------------
Pydantic request/response models for the chat API.

The browser client speaks camelCase (threadId, msgCount, ...). Fields are
snake_case in Python and aliased on the wire.

Naming convention:
  *Request   → inbound request body
  *Response  → outbound response body
"""

from datetime import datetime, timezone
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back CURRENT_TIMESTAMP as a naive UTC value
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ── Requests ──────────────────────────────────────────────────────────────────

class ChatRequest(_WireModel):
    message: Optional[str] = Field(
        default=None,
        max_length=8000,
        examples=["Why is my EC2 bill so high this month?"],
    )
    plan: Optional[str] = Field(default=None, max_length=200_000)
    metrics: Optional[str] = Field(default=None, max_length=200_000)
    thread_id: Optional[str] = Field(default=None, alias="threadId")
    session_id: Optional[str] = Field(default=None, alias="sessionId")
    file_ids: List[str] = Field(default_factory=list, alias="fileIds")


class NewChatRequest(_WireModel):
    session_id: Optional[str] = Field(default=None, alias="sessionId")


class SummarizeRequest(_WireModel):
    thread_id: str = Field(..., min_length=1, alias="threadId")


class AnalyzeCostsRequest(_WireModel):
    plan: str = Field(default="", max_length=200_000)
    metrics: str = Field(default="", max_length=200_000)
    comment: Optional[str] = Field(default=None, max_length=8000)


# ── Responses ─────────────────────────────────────────────────────────────────

class ChatResponse(_WireModel):
    reply: Optional[str]
    thread_id: Optional[str] = Field(alias="threadId")


class HistoryMessage(_WireModel):
    role: str
    text: str
    timestamp: UtcDatetime


class HistoryResponse(_WireModel):
    messages: List[HistoryMessage]
    thread_id: Optional[str] = Field(default=None, alias="threadId")


class ThreadMessagesResponse(HistoryResponse):
    session_id: str = Field(alias="sessionId")


class NewChatResponse(_WireModel):
    thread_id: str = Field(alias="threadId")
    session_id: str = Field(alias="sessionId")


class ThreadSummary(_WireModel):
    thread_id: str = Field(alias="threadId")
    title: str
    created_at: UtcDatetime = Field(alias="createdAt")
    msg_count: int = Field(alias="msgCount")


class ThreadListResponse(_WireModel):
    threads: List[ThreadSummary]


class SummaryResponse(_WireModel):
    summary: str


class AnalyzeCostsResponse(_WireModel):
    suggestion: str
