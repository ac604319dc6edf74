"""
models/analysis.py
------------------
Snapshot of a file-driven cost analysis and its LLM result.

Linked to the message log only through thread_id, which is nullable for
analyses requested outside a conversation (POST /api/tools/analyzeCosts).
"""

from typing import Optional

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from cost_assistant.db.base import Base, CreatedAtMixin


class Analysis(Base, CreatedAtMixin):
    __tablename__ = "analyses"
    __table_args__ = (
        Index("idx_analyses_user_created", "user_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    thread_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("conversations.thread_id"),
        nullable=True,
    )
    plan: Mapped[str] = mapped_column(Text, nullable=False)
    metrics: Mapped[str] = mapped_column(Text, nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    result: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<Analysis id={self.id} user_id={self.user_id}>"
