"""
Question Repository

Read access to the survey question catalog, plus seeding.
"""
from typing import List, Dict, Any

from sqlalchemy import select

from database.models import Question
from .base import BaseRepository


class QuestionRepository(BaseRepository[Question]):
    """Repository for the question catalog."""

    model = Question

    async def get_catalog(self) -> List[Question]:
        """Get every question ordered by id ascending."""
        stmt = select(Question).order_by(Question.id.asc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def upsert_many(self, rows: List[Dict[str, Any]]) -> List[Question]:
        """
        Insert or update catalog rows.

        Args:
            rows: Dicts with id, category, question_text and optional forward/weight

        Returns:
            The written Question entities
        """
        questions = []
        for row in rows:
            question = await self.get(int(row["id"]))
            if question is None:
                question = Question(id=int(row["id"]))
                self.session.add(question)

            question.category = row["category"]
            question.question_text = row["question_text"]
            question.forward = bool(row.get("forward", True))
            question.weight = float(row.get("weight") or 1.0)
            questions.append(question)

        await self.session.flush()
        return questions
