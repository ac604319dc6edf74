"""
models/uploaded_file.py
-----------------------
A plan or metrics file waiting to be used by a chat turn.

Files are grouped by the client's upload session id. A chat turn that
references a file marks it consumed; starting a new chat or switching
threads discards the session's unconsumed files.
"""

from typing import Optional

from sqlalchemy import Boolean, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from cost_assistant.db.base import Base, CreatedAtMixin, generate_uuid

FILE_TYPE_PLAN = "plan"
FILE_TYPE_METRICS = "metrics"
FILE_TYPES = (FILE_TYPE_PLAN, FILE_TYPE_METRICS)


class UploadedFile(Base, CreatedAtMixin):
    __tablename__ = "uploaded_files"
    __table_args__ = (
        Index("idx_uploaded_files_user_session", "user_id", "session_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    session_id: Mapped[str] = mapped_column(String(64), nullable=False)
    thread_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    file_type: Mapped[str] = mapped_column(String(16), nullable=False)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    content_type: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    size_bytes: Mapped[int] = mapped_column(Integer, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    consumed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<UploadedFile id={self.id} type={self.file_type} session={self.session_id}>"
