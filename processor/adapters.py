"""
Store and queue adapters for the worker.

Each call runs in its own short session so every status transition and
queue operation is committed as soon as it returns. Database errors are
translated into the worker's error kinds.
"""
from typing import Optional, List, Dict, Any, Callable

from loguru import logger

from config import settings
from database.session import get_session
from repositories import QuestionRepository, SubmissionRepository, QueueRepository
from processor.scoring import CatalogQuestion
from .models import QueueItem


class StoreError(Exception):
    """Raised when the submission store cannot be read."""
    pass


class StoreWriteError(StoreError):
    """Raised when a submission status or result cannot be written."""
    pass


class QueueClaimError(Exception):
    """Raised when the queue cannot be read."""
    pass


class QueueDeleteError(Exception):
    """Raised when a claimed message cannot be deleted."""
    pass


class SubmissionStore:
    """Submission and question catalog access."""

    def __init__(self, session_factory: Optional[Callable] = None):
        self._session_factory = session_factory or get_session

    async def get_questions(self) -> List[CatalogQuestion]:
        """Question catalog ordered by id. Errors propagate unchanged."""
        async with self._session_factory() as session:
            rows = await QuestionRepository(session).get_catalog()
            return [CatalogQuestion.from_row(row) for row in rows]

    async def get_status(self, submission_id: str) -> Optional[str]:
        """Current status, or None if the submission does not exist."""
        try:
            async with self._session_factory() as session:
                submission = await SubmissionRepository(session).get(submission_id)
                return submission.status if submission else None
        except Exception as e:
            raise StoreError(f"Failed to read submission {submission_id}: {e}") from e

    async def create_submission(self, responses: Dict[str, Any]) -> Dict[str, Any]:
        """Create a pending submission and return its id and submitted_at."""
        try:
            async with self._session_factory() as session:
                submission = await SubmissionRepository(session).create(responses)
                return {"id": submission.id, "submitted_at": submission.submitted_at}
        except Exception as e:
            raise StoreWriteError(f"Failed to save submission: {e}") from e

    async def mark_processing(self, submission_id: str) -> bool:
        """
        Move a submission to `processing`.

        Returns:
            False if it is already `processed` (nothing left to do)

        Raises:
            StoreWriteError: The write failed or the submission does not exist
        """
        try:
            async with self._session_factory() as session:
                repo = SubmissionRepository(session)
                if await repo.mark_processing(submission_id):
                    return True
                submission = await repo.get(submission_id)
        except Exception as e:
            raise StoreWriteError(f"Failed to update status: {e}") from e

        if submission is None:
            raise StoreWriteError(f"Failed to update status: submission {submission_id} not found")
        return False

    async def mark_processed(self, submission_id: str, summary: str, scores: Dict[str, Any]) -> bool:
        """
        Persist the final result.

        Returns:
            False if the submission was already processed (result kept as is)
        """
        try:
            async with self._session_factory() as session:
                return await SubmissionRepository(session).mark_processed(submission_id, summary, scores)
        except Exception as e:
            raise StoreWriteError(f"Failed to update submission {submission_id}: {e}") from e

    async def mark_failed(self, submission_id: str, error_message: str) -> bool:
        try:
            async with self._session_factory() as session:
                return await SubmissionRepository(session).mark_failed(submission_id, error_message)
        except Exception as e:
            raise StoreWriteError(f"Failed to mark submission {submission_id} failed: {e}") from e


class SubmissionQueue:
    """The named queue of pending submissions."""

    def __init__(self, queue_name: Optional[str] = None, session_factory: Optional[Callable] = None):
        self.queue_name = queue_name or settings.QUEUE_NAME
        self._session_factory = session_factory or get_session

    async def send(self, message: Dict[str, Any]) -> int:
        async with self._session_factory() as session:
            return await QueueRepository(session).send(self.queue_name, message)

    async def claim(self, n: int = 1, visibility_timeout: int = 30) -> List[QueueItem]:
        """Claim up to n visible items. An empty list is not an error."""
        try:
            async with self._session_factory() as session:
                messages = await QueueRepository(session).read(self.queue_name, n, visibility_timeout)
                return [QueueItem.from_message(m) for m in messages]
        except Exception as e:
            raise QueueClaimError(f"Queue read error: {e}") from e

    async def extend(self, msg_id: int, visibility_timeout: int) -> bool:
        """Push a claimed item's visibility further out."""
        try:
            async with self._session_factory() as session:
                return await QueueRepository(session).set_vt(self.queue_name, msg_id, visibility_timeout)
        except Exception as e:
            raise QueueClaimError(f"Failed to extend message {msg_id}: {e}") from e

    async def delete(self, msg_id: int) -> bool:
        """
        Delete an item.

        Returns:
            False if it was already gone (not an error)
        """
        try:
            async with self._session_factory() as session:
                deleted = await QueueRepository(session).delete_message(self.queue_name, msg_id)
        except Exception as e:
            raise QueueDeleteError(f"Failed to delete message {msg_id} from queue: {e}") from e

        if not deleted:
            logger.debug(f"Message {msg_id} already deleted from '{self.queue_name}'")
        return deleted

    async def length(self) -> int:
        async with self._session_factory() as session:
            return await QueueRepository(session).length(self.queue_name)
