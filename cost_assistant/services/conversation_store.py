"""
services/conversation_store.py
------------------------------
Persistence for conversation threads, their messages and saved analyses.

Invariants:
  - Every query is scoped by user_id; a thread id alone never grants access.
  - Messages are append-only and read back in (created_at, id) order, so the
    insertion sequence breaks timestamp ties.
  - Each insert commits on its own. A user turn stored before an LLM call
    survives even if that call later fails.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cost_assistant.core.logging import get_logger
from cost_assistant.models.analysis import Analysis
from cost_assistant.models.conversation import DEFAULT_THREAD_TITLE, Conversation
from cost_assistant.models.message import Message

logger = get_logger(__name__)

EMPTY_THREAD_TEXT = "No messages."


@dataclass(frozen=True)
class ThreadSummary:
    thread_id: str
    title: str
    created_at: datetime
    msg_count: int


class ConversationStore:

    # ── Threads ───────────────────────────────────────────────────────────────

    @staticmethod
    async def create_thread(
        db: AsyncSession,
        user_id: str,
        title: str = DEFAULT_THREAD_TITLE,
    ) -> str:
        """Insert a new thread and return its freshly generated id."""
        thread = Conversation(user_id=user_id, title=title)
        db.add(thread)
        await db.commit()
        logger.info("Thread created", thread_id=thread.thread_id, user_id=user_id)
        return thread.thread_id

    @staticmethod
    async def get_latest_thread(db: AsyncSession, user_id: str) -> Optional[str]:
        result = await db.execute(
            select(Conversation.thread_id)
            .where(Conversation.user_id == user_id)
            .order_by(Conversation.created_at.desc(), Conversation.seq.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_thread(
        db: AsyncSession, user_id: str, thread_id: str
    ) -> Optional[Conversation]:
        result = await db.execute(
            select(Conversation).where(
                Conversation.thread_id == thread_id,
                Conversation.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def list_threads(db: AsyncSession, user_id: str) -> List[ThreadSummary]:
        """All of a user's threads, newest first, with their message counts."""
        msg_count = (
            select(func.count(Message.id))
            .where(Message.thread_id == Conversation.thread_id)
            .correlate(Conversation)
            .scalar_subquery()
        )
        result = await db.execute(
            select(
                Conversation.thread_id,
                Conversation.title,
                Conversation.created_at,
                msg_count.label("msg_count"),
            )
            .where(Conversation.user_id == user_id)
            .order_by(Conversation.created_at.desc(), Conversation.seq.desc())
        )
        return [
            ThreadSummary(
                thread_id=row.thread_id,
                title=row.title,
                created_at=row.created_at,
                msg_count=row.msg_count,
            )
            for row in result.all()
        ]

    # ── Messages ──────────────────────────────────────────────────────────────

    @staticmethod
    async def save_message(
        db: AsyncSession,
        user_id: str,
        thread_id: str,
        role: str,
        content: str,
        relevant: bool = False,
    ) -> Message:
        """
        Append one message. Not idempotent: each call is one real turn,
        so calling twice stores two rows.
        """
        message = Message(
            user_id=user_id,
            thread_id=thread_id,
            role=role,
            content=content,
            relevant=relevant,
        )
        db.add(message)
        await db.commit()
        await db.refresh(message)
        logger.info(
            "Message stored",
            message_id=message.id,
            thread_id=thread_id,
            role=role,
            relevant=relevant,
        )
        return message

    @staticmethod
    async def get_thread_messages(
        db: AsyncSession,
        user_id: str,
        thread_id: str,
        limit: Optional[int] = None,
    ) -> List[Message]:
        """
        Messages of a thread, oldest first.

        With a limit, returns only the trailing window of that many
        messages, still oldest first.
        """
        base_filter = (Message.user_id == user_id, Message.thread_id == thread_id)

        if limit is None:
            result = await db.execute(
                select(Message)
                .where(*base_filter)
                .order_by(Message.created_at.asc(), Message.id.asc())
            )
            return list(result.scalars().all())

        result = await db.execute(
            select(Message)
            .where(*base_filter)
            .order_by(Message.created_at.desc(), Message.id.desc())
            .limit(limit)
        )
        return list(reversed(result.scalars().all()))

    @staticmethod
    async def get_full_thread_text(
        db: AsyncSession, user_id: str, thread_id: str
    ) -> str:
        messages = await ConversationStore.get_thread_messages(db, user_id, thread_id)
        if not messages:
            return EMPTY_THREAD_TEXT
        return "\n".join(f"{m.role}: {m.content}" for m in messages)

    # ── Analyses ──────────────────────────────────────────────────────────────

    @staticmethod
    async def save_analysis(
        db: AsyncSession,
        user_id: str,
        thread_id: Optional[str],
        plan: str,
        metrics: str,
        comment: Optional[str],
        result: str,
    ) -> Analysis:
        analysis = Analysis(
            user_id=user_id,
            thread_id=thread_id,
            plan=plan,
            metrics=metrics,
            comment=comment,
            result=result,
        )
        db.add(analysis)
        await db.commit()
        await db.refresh(analysis)
        logger.info("Analysis stored", analysis_id=analysis.id, thread_id=thread_id)
        return analysis
