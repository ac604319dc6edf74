"""
services/thread_manager.py
--------------------------
Thread lifecycle: which thread does a request belong to?

Per-session state (active thread, upload session id, request mode) lives in
an explicit ChatContext that the route builds and the pipeline passes along.
Nothing here keeps state between requests.
"""

import uuid
from dataclasses import dataclass, replace
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from cost_assistant.core.exceptions import ThreadNotFoundError
from cost_assistant.core.logging import get_logger
from cost_assistant.models.message import Message
from cost_assistant.services.conversation_assembler import RequestMode
from cost_assistant.services.conversation_store import ConversationStore
from cost_assistant.services.file_service import FileService

logger = get_logger(__name__)


def new_session_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class ChatContext:
    """Everything one chat turn needs to know about who is talking, and where."""

    user_id: str
    thread_id: Optional[str] = None
    session_id: Optional[str] = None
    mode: RequestMode = RequestMode.CONVERSATION

    def with_thread(self, thread_id: str) -> "ChatContext":
        return replace(self, thread_id=thread_id)


@dataclass(frozen=True)
class NewChat:
    thread_id: str
    session_id: str


@dataclass(frozen=True)
class SelectedThread:
    thread_id: str
    session_id: str
    messages: List[Message]


class ThreadManager:

    @staticmethod
    async def resolve(db: AsyncSession, ctx: ChatContext) -> ChatContext:
        """
        Pick the thread for a chat turn:
          1. the thread the caller named (must belong to the caller),
          2. else the caller's latest thread,
          3. else a brand new thread.

        The returned context carries the thread id; the input context is
        left untouched, so a storage failure while creating a thread leaves
        the caller with no dangling id.
        """
        if ctx.thread_id:
            thread = await ConversationStore.get_thread(db, ctx.user_id, ctx.thread_id)
            if thread is None:
                raise ThreadNotFoundError(ctx.thread_id)
            return ctx

        latest = await ConversationStore.get_latest_thread(db, ctx.user_id)
        if latest is not None:
            return ctx.with_thread(latest)

        created = await ConversationStore.create_thread(db, ctx.user_id)
        return ctx.with_thread(created)

    @staticmethod
    async def start_new(
        db: AsyncSession,
        user_id: str,
        previous_session_id: Optional[str] = None,
    ) -> NewChat:
        """Explicit "new chat": always a fresh thread and upload session."""
        thread_id = await ConversationStore.create_thread(db, user_id)
        if previous_session_id:
            await FileService.discard_pending(db, user_id, previous_session_id)
        session_id = new_session_id()
        logger.info("New chat started", thread_id=thread_id, session_id=session_id)
        return NewChat(thread_id=thread_id, session_id=session_id)

    @staticmethod
    async def select(
        db: AsyncSession,
        user_id: str,
        thread_id: str,
        previous_session_id: Optional[str] = None,
    ) -> SelectedThread:
        """Switch to an existing thread and load its full history."""
        thread = await ConversationStore.get_thread(db, user_id, thread_id)
        if thread is None:
            raise ThreadNotFoundError(thread_id)

        messages = await ConversationStore.get_thread_messages(db, user_id, thread_id)
        if previous_session_id:
            await FileService.discard_pending(db, user_id, previous_session_id)
        return SelectedThread(
            thread_id=thread_id,
            session_id=new_session_id(),
            messages=messages,
        )
