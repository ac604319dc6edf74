"""
models/conversation.py
----------------------
Conversation thread ORM model.

thread_id is the public identifier handed to clients. seq is a
database-assigned monotonic integer; it breaks ties between threads created
within the same timestamp so "latest thread" is deterministic.
"""

from sqlalchemy import Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from cost_assistant.db.base import Base, CreatedAtMixin, generate_uuid

DEFAULT_THREAD_TITLE = "New Conversation"


class Conversation(Base, CreatedAtMixin):
    __tablename__ = "conversations"
    __table_args__ = (
        Index("idx_conversations_user_created", "user_id", "created_at"),
    )

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    thread_id: Mapped[str] = mapped_column(
        String(36), unique=True, nullable=False, default=generate_uuid
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(
        String(255), nullable=False, default=DEFAULT_THREAD_TITLE
    )

    def __repr__(self) -> str:
        return f"<Conversation thread_id={self.thread_id} user_id={self.user_id}>"
