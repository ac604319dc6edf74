"""
db/base.py
----------
Declarative base and shared mixins.

CreatedAtMixin: Adds a server-side created_at column. Threads, messages and
                analyses are never updated after insert, so there is no
                updated_at. Values are UTC; SQLite returns them naive and
                the response schemas attach the offset.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


class CreatedAtMixin:
    """Adds a server-side created_at timestamp."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )


def generate_uuid() -> str:
    return str(uuid.uuid4())
