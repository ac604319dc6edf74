"""
models/message.py
-----------------
One turn of a conversation.

Rows are append-only: nothing updates or deletes a message after insert.
The autoincrement id doubles as the insertion sequence number, so ordering
by (created_at, id) is stable even when timestamps collide.
"""

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from cost_assistant.db.base import Base, CreatedAtMixin

ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"


class Message(Base, CreatedAtMixin):
    __tablename__ = "messages"
    __table_args__ = (
        Index("idx_messages_thread_created", "thread_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    thread_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("conversations.thread_id"),
        nullable=False,
    )
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    relevant: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<Message id={self.id} thread_id={self.thread_id} role={self.role}>"
