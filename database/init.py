"""
Database Initialization and Utilities

Functions for creating tables and seeding the question catalog.
"""
import json
from pathlib import Path
from typing import Optional

from loguru import logger


async def init_database_async(seed_file: Optional[Path] = None) -> None:
    """
    Create all tables and optionally seed the question catalog.

    Args:
        seed_file: JSON file with a list of question objects
                   ({id, category, question_text, forward, weight})
    """
    from .session import create_tables

    await create_tables()
    logger.info("Database initialized with SQLAlchemy")

    if seed_file:
        count = await seed_questions_from_file(seed_file)
        logger.info(f"Seeded {count} questions from {seed_file}")


async def seed_questions_from_file(seed_file: Path) -> int:
    """
    Upsert catalog questions from a JSON file.

    Returns:
        Number of questions written
    """
    from repositories import QuestionRepository
    from .session import get_session

    with open(seed_file, 'r', encoding='utf-8') as f:
        rows = json.load(f)

    if not isinstance(rows, list):
        raise ValueError(f"Question catalog must be a JSON list: {seed_file}")

    async with get_session() as session:
        repo = QuestionRepository(session)
        questions = await repo.upsert_many(rows)
    return len(questions)


async def get_table_counts_async() -> dict:
    """
    Get row counts for all tables.

    Returns:
        Dict with table names and row counts
    """
    from sqlalchemy import select, func
    from .models import Base
    from .session import get_session

    counts = {}
    async with get_session() as session:
        for name, table in Base.metadata.tables.items():
            result = await session.execute(select(func.count()).select_from(table))
            counts[name] = result.scalar_one()

    return counts


def main():
    """Create tables, optionally reset and seed, then print row counts."""
    import argparse
    import asyncio

    from utils import init_logging

    parser = argparse.ArgumentParser(description="Initialize the survey database")
    parser.add_argument("--seed", type=Path, help="JSON question catalog to load")
    parser.add_argument("--reset", action="store_true", help="Drop all tables first (deletes all data)")

    args = parser.parse_args()

    init_logging(app_name="init_db")

    async def _run() -> dict:
        from .session import drop_tables, close_engine

        try:
            if args.reset:
                await drop_tables()
            await init_database_async(seed_file=args.seed)
            return await get_table_counts_async()
        finally:
            await close_engine()

    counts = asyncio.run(_run())
    for table, count in counts.items():
        print(f"{table}: {count}")


if __name__ == "__main__":
    main()
