"""
Database Module - Survey Mindset Pipeline

Structure:
    database/
    ├── __init__.py      # This file - public API
    ├── session.py       # SQLAlchemy async session management
    ├── init.py          # Table creation and catalog seeding
    └── models/          # SQLAlchemy ORM models
        ├── __init__.py
        ├── base.py
        ├── survey.py
        └── queue.py

Usage:
    from database import get_session
    from database.models import Submission

    async with get_session() as session:
        submission = await session.get(Submission, submission_id)
"""

# SQLAlchemy Models
from .models import (
    Base,
    TimestampMixin,
    Question,
    Submission,
    QueueMessage,
)

# Session Management
from .session import (
    init_engine,
    close_engine,
    create_tables,
    drop_tables,
    get_session,
)

# Initialization utilities
from .init import (
    init_database_async,
    seed_questions_from_file,
    get_table_counts_async,
)

__all__ = [
    # SQLAlchemy Models
    "Base",
    "TimestampMixin",
    "Question",
    "Submission",
    "QueueMessage",
    # Session Management
    "init_engine",
    "close_engine",
    "create_tables",
    "drop_tables",
    "get_session",
    # Init utilities
    "init_database_async",
    "seed_questions_from_file",
    "get_table_counts_async",
]
