"""
Survey Models

Question catalog and submitted response sets.
"""
from datetime import datetime
from typing import Optional, Dict, Any

from sqlalchemy import String, Integer, Float, Boolean, DateTime, Text, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class Question(Base):
    """
    Survey question catalog row.

    Read-only to the worker. `forward` is True when the rating scale
    increases with agreement; reversed questions are reflected before
    averaging.
    """
    __tablename__ = "questions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    question_text: Mapped[str] = mapped_column(Text, nullable=False)

    forward: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    weight: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)


class Submission(Base, TimestampMixin):
    """
    A respondent's answer set and its processing result.

    Lifecycle: pending -> processing -> processed | failed.
    `scores` holds the flattened scorecard:
    {category: band, protectionist: n, progressive: n, category_score: float}
    """
    __tablename__ = "submissions"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")

    submitted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # {question_id: {"rating": int, "explanation": str}}
    responses: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)

    # Result
    summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    scores: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index('idx_submissions_status', 'status'),
    )
