"""
Declarative base and shared columns for the survey tables.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, inspect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all survey pipeline models."""

    def __repr__(self) -> str:
        identity = inspect(self).identity
        key = identity[0] if identity and len(identity) == 1 else identity
        return f"<{self.__class__.__name__}({key})>"


class TimestampMixin:
    """
    Row bookkeeping columns.

    Timestamps are naive local time, the same clock the repositories use
    for queue visibility and processed_at.
    """
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime, default=datetime.now, nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, default=datetime.now, onupdate=datetime.now, nullable=True
    )
