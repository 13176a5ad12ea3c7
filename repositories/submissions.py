"""
Submission Repository

Handles creation of submissions and their status transitions.
"""
from datetime import datetime
from typing import Optional, Dict, Any

from sqlalchemy import update

from constants import SubmissionStatus
from database.models import Submission
from .base import BaseRepository


class SubmissionRepository(BaseRepository[Submission]):
    """Repository for submission records."""

    model = Submission

    # Columns a status update may also write
    UPDATABLE_FIELDS = ("processed_at", "summary", "scores", "error_message")

    async def create(
        self,
        responses: Dict[str, Any],
        submitted_at: Optional[datetime] = None,
    ) -> Submission:
        """Create a new submission in `pending` status."""
        submission = Submission(
            id=self.generate_id("sub"),
            status=SubmissionStatus.PENDING.value,
            submitted_at=submitted_at or self.now(),
            responses=responses,
        )
        return await self.add(submission)

    async def update_status(
        self,
        submission_id: str,
        status: str,
        unless_status: Optional[str] = None,
        **fields: Any,
    ) -> bool:
        """
        Set a submission's status and any of the result fields.

        Args:
            submission_id: Submission to update
            status: New status value
            unless_status: Skip the write when the row already has this status
            **fields: processed_at, summary, scores, error_message

        Returns:
            True if a row was updated
        """
        unknown = set(fields) - set(self.UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update submission fields: {sorted(unknown)}")

        stmt = (
            update(Submission)
            .where(Submission.id == submission_id)
            .values(status=status, updated_at=self.now(), **fields)
        )
        if unless_status is not None:
            stmt = stmt.where(Submission.status != unless_status)

        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def mark_processing(self, submission_id: str) -> bool:
        """
        Move a submission to `processing`.

        Returns:
            False if it does not exist or is already `processed`
        """
        return await self.update_status(
            submission_id,
            SubmissionStatus.PROCESSING.value,
            unless_status=SubmissionStatus.PROCESSED.value,
        )

    async def mark_processed(
        self,
        submission_id: str,
        summary: str,
        scores: Dict[str, Any],
    ) -> bool:
        """
        Store the final result.

        A submission that is already `processed` is left untouched, so a
        redelivered item cannot overwrite an earlier result.
        """
        return await self.update_status(
            submission_id,
            SubmissionStatus.PROCESSED.value,
            unless_status=SubmissionStatus.PROCESSED.value,
            processed_at=self.now(),
            summary=summary,
            scores=scores,
            error_message=None,
        )

    async def mark_failed(self, submission_id: str, error_message: str) -> bool:
        """Move a submission to `failed` with the error that caused it."""
        return await self.update_status(
            submission_id,
            SubmissionStatus.FAILED.value,
            unless_status=SubmissionStatus.PROCESSED.value,
            processed_at=self.now(),
            error_message=error_message,
        )
