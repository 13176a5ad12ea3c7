"""
Queue Model

Table-backed message queue with visibility timeouts.

A message is claimable while `vt <= now`. Claiming pushes `vt` into the
future and bumps `read_ct`; deleting removes the row. Delivery is
at-least-once: a claim that is never deleted becomes visible again.
"""
from datetime import datetime
from typing import Dict, Any

from sqlalchemy import String, Integer, DateTime, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class QueueMessage(Base):
    """A pending work item on a named queue."""
    __tablename__ = "queue_messages"

    msg_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    queue_name: Mapped[str] = mapped_column(String(50), nullable=False)

    read_ct: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    enqueued_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    # Visible-at: hidden from claimants until this time
    vt: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    message: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)

    __table_args__ = (
        Index('idx_queue_messages_claim', 'queue_name', 'vt'),
    )

    def __repr__(self) -> str:
        return f"<QueueMessage(msg_id={self.msg_id}, queue={self.queue_name}, read_ct={self.read_ct})>"
