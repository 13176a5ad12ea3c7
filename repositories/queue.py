"""
Queue Repository

Message queue operations over the queue_messages table:
send, claim with visibility timeout, extend a claim, delete.
"""
from datetime import timedelta
from typing import List, Dict, Any, Optional

from sqlalchemy import select, update, delete, func

from database.models import QueueMessage
from .base import BaseRepository


class QueueRepository(BaseRepository[QueueMessage]):
    """Repository for queue messages. All operations are scoped to a queue name."""

    model = QueueMessage

    async def send(
        self,
        queue_name: str,
        message: Dict[str, Any],
        delay_seconds: int = 0,
    ) -> int:
        """
        Enqueue a message.

        Args:
            queue_name: Target queue
            message: JSON-serializable payload
            delay_seconds: Keep the message hidden for this long

        Returns:
            The new message id
        """
        now = self.now()
        entity = QueueMessage(
            queue_name=queue_name,
            read_ct=0,
            enqueued_at=now,
            vt=now + timedelta(seconds=delay_seconds),
            message=message,
        )
        await self.add(entity)
        return entity.msg_id

    async def read(
        self,
        queue_name: str,
        n: int = 1,
        visibility_timeout: int = 30,
    ) -> List[QueueMessage]:
        """
        Claim up to `n` visible messages, oldest first.

        Each claimed message is hidden for `visibility_timeout` seconds.
        The claim is a conditional update on `vt`, so a message another
        claimant took in the meantime is skipped rather than shared.

        Returns:
            Claimed messages (empty list when nothing is visible)
        """
        now = self.now()
        hidden_until = now + timedelta(seconds=visibility_timeout)

        stmt = (
            select(QueueMessage.msg_id)
            .where(QueueMessage.queue_name == queue_name, QueueMessage.vt <= now)
            .order_by(QueueMessage.msg_id.asc())
            .limit(n)
        )
        candidates = (await self.session.execute(stmt)).scalars().all()

        claimed_ids = []
        for msg_id in candidates:
            claim = (
                update(QueueMessage)
                .where(QueueMessage.msg_id == msg_id, QueueMessage.vt <= now)
                .values(vt=hidden_until, read_ct=QueueMessage.read_ct + 1)
                .execution_options(synchronize_session=False)
            )
            result = await self.session.execute(claim)
            if result.rowcount == 1:
                claimed_ids.append(msg_id)

        if not claimed_ids:
            return []

        stmt = (
            select(QueueMessage)
            .where(QueueMessage.msg_id.in_(claimed_ids))
            .order_by(QueueMessage.msg_id.asc())
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def set_vt(self, queue_name: str, msg_id: int, visibility_timeout: int) -> bool:
        """
        Hide a message for `visibility_timeout` seconds from now.

        Returns:
            True if the message still exists
        """
        stmt = (
            update(QueueMessage)
            .where(QueueMessage.queue_name == queue_name, QueueMessage.msg_id == msg_id)
            .values(vt=self.now() + timedelta(seconds=visibility_timeout))
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def delete_message(self, queue_name: str, msg_id: int) -> bool:
        """
        Delete a message.

        Returns:
            True if deleted, False if it was already gone
        """
        stmt = (
            delete(QueueMessage)
            .where(QueueMessage.queue_name == queue_name, QueueMessage.msg_id == msg_id)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def length(self, queue_name: str, visible_only: bool = False) -> int:
        """Count messages on a queue."""
        stmt = select(func.count()).select_from(QueueMessage).where(QueueMessage.queue_name == queue_name)
        if visible_only:
            stmt = stmt.where(QueueMessage.vt <= self.now())
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def get_message(self, queue_name: str, msg_id: int) -> Optional[QueueMessage]:
        """Get a message by id regardless of visibility."""
        stmt = select(QueueMessage).where(
            QueueMessage.queue_name == queue_name,
            QueueMessage.msg_id == msg_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
