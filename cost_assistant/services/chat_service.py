"""
services/chat_service.py
------------------------
One chat turn, end to end:

    resolve thread → store user turn → (redirect | assemble → LLM)
    → store assistant turn (+ analysis in file mode) → reply

Failure policy for the LLM call: error turns are never persisted. If the
LLM fails, the user turn stays (it was committed before the call), no
assistant message or analysis is written, and LLMServiceError propagates
to the route.
"""

from dataclasses import dataclass, replace
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from cost_assistant.core.config import settings
from cost_assistant.core.exceptions import ThreadNotFoundError
from cost_assistant.core.logging import get_logger
from cost_assistant.models.message import ROLE_ASSISTANT, ROLE_USER
from cost_assistant.models.uploaded_file import FILE_TYPE_METRICS, FILE_TYPE_PLAN
from cost_assistant.services import conversation_assembler as assembler
from cost_assistant.services.conversation_assembler import RequestMode
from cost_assistant.services.conversation_store import EMPTY_THREAD_TEXT, ConversationStore
from cost_assistant.services.file_service import FileService, bound_thread, texts_by_type
from cost_assistant.services.llm_service import LLMService
from cost_assistant.services.relevance import OFF_TOPIC_REDIRECT, check_relevance, is_off_topic
from cost_assistant.services.thread_manager import ChatContext, ThreadManager

logger = get_logger(__name__)

UPLOAD_ONLY_PLACEHOLDER = "[Uploaded Files]"


@dataclass(frozen=True)
class ChatTurn:
    """Inbound turn as the route received it."""

    message: Optional[str] = None
    plan: Optional[str] = None
    metrics: Optional[str] = None
    file_ids: tuple = ()


@dataclass(frozen=True)
class ChatReply:
    reply: Optional[str]
    thread_id: Optional[str]


def _join(*parts: Optional[str]) -> str:
    return "\n\n".join(p for p in parts if assembler.has_text(p))


class ChatService:

    def __init__(self, llm: LLMService) -> None:
        self._llm = llm

    async def handle_turn(
        self,
        db: AsyncSession,
        ctx: ChatContext,
        turn: ChatTurn,
    ) -> ChatReply:
        message = (turn.message or "").strip()
        has_attachments = (
            assembler.has_text(turn.plan)
            or assembler.has_text(turn.metrics)
            or bool(turn.file_ids)
        )
        if not message and not has_attachments:
            logger.info("Empty turn ignored", user_id=ctx.user_id)
            return ChatReply(reply=None, thread_id=ctx.thread_id)

        uploaded = await FileService.load_uploads(
            db,
            ctx.user_id,
            list(turn.file_ids),
            session_id=ctx.session_id,
            thread_id=ctx.thread_id,
        )
        if ctx.thread_id is None:
            attached = bound_thread(uploaded)
            if attached is not None:
                ctx = ctx.with_thread(attached)
        ctx = await ThreadManager.resolve(db, ctx)
        await FileService.mark_consumed(db, uploaded)

        uploads = texts_by_type(uploaded)
        plan = _join(turn.plan, uploads.get(FILE_TYPE_PLAN))
        metrics = _join(turn.metrics, uploads.get(FILE_TYPE_METRICS))

        ctx = replace(ctx, mode=assembler.select_mode(plan, metrics))
        off_topic = ctx.mode is RequestMode.CONVERSATION and is_off_topic(message)
        if off_topic:
            relevant = False
        else:
            relevant = await check_relevance(
                self._llm,
                {"message": message, "plan": plan, "metrics": metrics},
                user_id=ctx.user_id,
            )

        user_msg = await ConversationStore.save_message(
            db,
            ctx.user_id,
            ctx.thread_id,
            ROLE_USER,
            message or UPLOAD_ONLY_PLACEHOLDER,
            relevant,
        )

        if off_topic:
            logger.info("Off-topic turn redirected", thread_id=ctx.thread_id)
            await ConversationStore.save_message(
                db, ctx.user_id, ctx.thread_id, ROLE_ASSISTANT, OFF_TOPIC_REDIRECT, False
            )
            return ChatReply(reply=OFF_TOPIC_REDIRECT, thread_id=ctx.thread_id)

        if ctx.mode is RequestMode.FILE_ANALYSIS:
            request = assembler.build_analysis_request(plan, metrics, message)
        else:
            history = await ConversationStore.get_thread_messages(
                db,
                ctx.user_id,
                ctx.thread_id,
                limit=settings.CHAT_HISTORY_WINDOW + 1,
            )
            history = [m for m in history if m.id != user_msg.id]
            request = assembler.build_conversation_request(history, message)

        logger.info(
            "Calling LLM",
            thread_id=ctx.thread_id,
            mode=ctx.mode.value,
            turns=len(request.messages),
        )
        # LLMServiceError propagates; nothing below runs on failure
        reply = await self._llm.complete(
            request.messages,
            max_tokens=request.max_tokens,
            temperature=request.temperature,
            kind=request.kind,
            user_id=ctx.user_id,
        )

        await ConversationStore.save_message(
            db, ctx.user_id, ctx.thread_id, ROLE_ASSISTANT, reply, relevant
        )
        if ctx.mode is RequestMode.FILE_ANALYSIS:
            await ConversationStore.save_analysis(
                db,
                ctx.user_id,
                ctx.thread_id,
                plan=plan,
                metrics=metrics,
                comment=message or None,
                result=reply,
            )

        return ChatReply(reply=reply, thread_id=ctx.thread_id)

    async def summarize(self, db: AsyncSession, user_id: str, thread_id: str) -> str:
        """Summarise a whole thread. An empty thread is summarised without the LLM."""
        if await ConversationStore.get_thread(db, user_id, thread_id) is None:
            raise ThreadNotFoundError(thread_id)

        text = await ConversationStore.get_full_thread_text(db, user_id, thread_id)
        if text == EMPTY_THREAD_TEXT:
            return EMPTY_THREAD_TEXT

        request = assembler.build_summary_request(text)
        return await self._llm.complete(
            request.messages,
            max_tokens=request.max_tokens,
            temperature=request.temperature,
            kind=request.kind,
            user_id=user_id,
        )

    async def analyze_costs(
        self,
        db: AsyncSession,
        user_id: str,
        plan: str,
        metrics: str,
        comment: Optional[str] = None,
    ) -> str:
        """Stand-alone analysis outside any thread; stored with no thread id."""
        request = assembler.build_analysis_request(plan, metrics, comment or "")
        result = await self._llm.complete(
            request.messages,
            max_tokens=request.max_tokens,
            temperature=request.temperature,
            kind=request.kind,
            user_id=user_id,
        )
        await ConversationStore.save_analysis(
            db, user_id, None, plan=plan, metrics=metrics, comment=comment, result=result
        )
        return result


def history_rows(messages: List) -> List[dict]:
    """Shape stored messages the way the chat UI renders them."""
    return [
        {"role": m.role, "text": m.content, "timestamp": m.created_at}
        for m in messages
    ]
