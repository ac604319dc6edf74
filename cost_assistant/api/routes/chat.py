"""
api/routes/chat.py
------------------
Chat endpoints consumed by the browser UI.

GET  /api/chat/history                     — Messages of a thread (latest by default)
POST /api/chat                             — Send a turn, get the assistant reply
POST /api/chat/new                         — Start a new thread
GET  /api/chat/list                        — All threads, newest first
GET  /api/chat/threads/{thread_id}/messages — Select a thread and load its history
POST /api/chat/summarize                   — Summarise a thread
POST /api/tools/analyzeCosts               — One-off plan + metrics analysis

Errors are returned as {"error": "..."} by the handlers in main.py.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from cost_assistant.core.exceptions import (
    LLMServiceError,
    ThreadNotFoundError,
    UploadError,
    UploadNotFoundError,
)
from cost_assistant.core.logging import get_logger
from cost_assistant.db.session import get_db
from cost_assistant.dependencies import get_chat_service, get_current_user_id
from cost_assistant.schemas.chat import (
    AnalyzeCostsRequest,
    AnalyzeCostsResponse,
    ChatRequest,
    ChatResponse,
    HistoryResponse,
    NewChatRequest,
    NewChatResponse,
    SummarizeRequest,
    SummaryResponse,
    ThreadListResponse,
    ThreadMessagesResponse,
    ThreadSummary,
)
from cost_assistant.services.chat_service import ChatService, ChatTurn, history_rows
from cost_assistant.services.conversation_store import ConversationStore
from cost_assistant.services.thread_manager import ChatContext, ThreadManager

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["Chat"])


def _ai_service_error(exc: LLMServiceError) -> HTTPException:
    logger.error("AI service error", error=str(exc))
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=LLMServiceError.public_message,
    )


def _not_found(exc: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


@router.get(
    "/chat/history",
    response_model=HistoryResponse,
    summary="Messages of a thread, oldest first",
)
async def chat_history(
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user_id)],
    thread_id: Optional[str] = Query(default=None, alias="threadId"),
) -> HistoryResponse:
    """Without threadId the caller's latest thread is returned."""
    if thread_id is None:
        thread_id = await ConversationStore.get_latest_thread(db, user_id)
        if thread_id is None:
            return HistoryResponse(messages=[], thread_id=None)
    elif await ConversationStore.get_thread(db, user_id, thread_id) is None:
        raise _not_found(ThreadNotFoundError(thread_id))

    messages = await ConversationStore.get_thread_messages(db, user_id, thread_id)
    return HistoryResponse(messages=history_rows(messages), thread_id=thread_id)


@router.post(
    "/chat",
    response_model=ChatResponse,
    summary="Send a chat turn and receive the assistant reply",
)
async def send_chat(
    body: ChatRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user_id)],
    chat: Annotated[ChatService, Depends(get_chat_service)],
) -> ChatResponse:
    """
    Plan and/or metrics text (inline or via fileIds) switches the turn to
    file-analysis mode. An empty turn is a no-op and returns reply=null.
    """
    ctx = ChatContext(
        user_id=user_id,
        thread_id=body.thread_id,
        session_id=body.session_id,
    )

    turn = ChatTurn(
        message=body.message,
        plan=body.plan,
        metrics=body.metrics,
        file_ids=tuple(body.file_ids),
    )
    try:
        result = await chat.handle_turn(db, ctx, turn)
    except (ThreadNotFoundError, UploadNotFoundError) as exc:
        raise _not_found(exc)
    except UploadError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except LLMServiceError as exc:
        raise _ai_service_error(exc)

    return ChatResponse(reply=result.reply, thread_id=result.thread_id)


@router.post(
    "/chat/new",
    response_model=NewChatResponse,
    summary="Start a new conversation thread",
)
async def new_chat(
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user_id)],
    body: Optional[NewChatRequest] = None,
) -> NewChatResponse:
    """Always creates a thread; pending uploads of the previous session are dropped."""
    previous = body.session_id if body else None
    started = await ThreadManager.start_new(db, user_id, previous_session_id=previous)
    return NewChatResponse(thread_id=started.thread_id, session_id=started.session_id)


@router.get(
    "/chat/list",
    response_model=ThreadListResponse,
    summary="List the caller's threads, newest first",
)
async def list_chats(
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user_id)],
) -> ThreadListResponse:
    threads = await ConversationStore.list_threads(db, user_id)
    return ThreadListResponse(
        threads=[
            ThreadSummary(
                thread_id=t.thread_id,
                title=t.title,
                created_at=t.created_at,
                msg_count=t.msg_count,
            )
            for t in threads
        ]
    )


@router.get(
    "/chat/threads/{thread_id}/messages",
    response_model=ThreadMessagesResponse,
    summary="Switch to a thread and load its full history",
)
async def select_thread(
    thread_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user_id)],
    session_id: Optional[str] = Query(default=None, alias="sessionId"),
) -> ThreadMessagesResponse:
    try:
        selected = await ThreadManager.select(
            db, user_id, thread_id, previous_session_id=session_id
        )
    except ThreadNotFoundError as exc:
        raise _not_found(exc)

    return ThreadMessagesResponse(
        messages=history_rows(selected.messages),
        thread_id=selected.thread_id,
        session_id=selected.session_id,
    )


@router.post(
    "/chat/summarize",
    response_model=SummaryResponse,
    summary="Summarise a thread",
)
async def summarize_chat(
    body: SummarizeRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user_id)],
    chat: Annotated[ChatService, Depends(get_chat_service)],
) -> SummaryResponse:
    try:
        summary = await chat.summarize(db, user_id, body.thread_id)
    except ThreadNotFoundError as exc:
        raise _not_found(exc)
    except LLMServiceError as exc:
        raise _ai_service_error(exc)
    return SummaryResponse(summary=summary)


@router.post(
    "/tools/analyzeCosts",
    response_model=AnalyzeCostsResponse,
    summary="Analyse a plan and usage metrics outside any thread",
)
async def analyze_costs(
    body: AnalyzeCostsRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user_id)],
    chat: Annotated[ChatService, Depends(get_chat_service)],
) -> AnalyzeCostsResponse:
    if not body.plan.strip() or not body.metrics.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required fields: plan and metrics are required",
        )
    try:
        suggestion = await chat.analyze_costs(
            db, user_id, body.plan, body.metrics, body.comment
        )
    except LLMServiceError as exc:
        raise _ai_service_error(exc)
    return AnalyzeCostsResponse(suggestion=suggestion)
