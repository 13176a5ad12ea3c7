"""
SQLAlchemy-based Repositories

This package provides async repository pattern using SQLAlchemy ORM.

Usage:
    from repositories import SubmissionRepository
    from database import get_session

    async with get_session() as session:
        repo = SubmissionRepository(session)
        submission = await repo.get(submission_id)
"""

from .base import BaseRepository
from .questions import QuestionRepository
from .submissions import SubmissionRepository
from .queue import QueueRepository

__all__ = [
    "BaseRepository",
    "QuestionRepository",
    "SubmissionRepository",
    "QueueRepository",
]
