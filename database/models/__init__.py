"""
SQLAlchemy ORM Models

Models are organized by domain:
- Survey: question catalog and submissions
- Queue: pending work items with visibility timeouts
"""

from .base import Base, TimestampMixin
from .survey import Question, Submission
from .queue import QueueMessage

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # Survey
    "Question",
    "Submission",
    # Queue
    "QueueMessage",
]
