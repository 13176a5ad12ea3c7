"""
Base Repository

Shared async helpers for the survey repositories. Repositories never
commit; the caller's session scope decides when work is persisted.
"""
from datetime import datetime
from typing import TypeVar, Generic, Optional, Type, Any
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from database.models.base import Base


ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """
    Repository bound to one model class and one session.

    Example:
        class SubmissionRepository(BaseRepository[Submission]):
            model = Submission
    """

    model: Type[ModelT]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, entity_id: Any) -> Optional[ModelT]:
        """Row by primary key, or None."""
        return await self.session.get(self.model, entity_id)

    async def add(self, entity: ModelT) -> ModelT:
        """Stage a new row and flush so generated keys are populated."""
        self.session.add(entity)
        await self.session.flush()
        return entity

    @staticmethod
    def generate_id(prefix: str = "") -> str:
        """
        Sortable unique id: <prefix>_<YYYYmmddHHMMSS>_<12 hex chars>.
        """
        stamp = datetime.now().strftime('%Y%m%d%H%M%S')
        base_id = f"{stamp}_{uuid.uuid4().hex[:12]}"
        return f"{prefix}_{base_id}" if prefix else base_id

    @staticmethod
    def now() -> datetime:
        """Clock shared by status timestamps and queue visibility."""
        return datetime.now()
