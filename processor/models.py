"""
Data models for the submission worker.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Any

from constants import OutcomeStatus


@dataclass
class QueueItem:
    """A claimed queue message."""
    msg_id: int
    payload: Dict[str, Any]
    read_ct: int = 0
    enqueued_at: Optional[datetime] = None

    @classmethod
    def from_message(cls, message) -> "QueueItem":
        return cls(
            msg_id=message.msg_id,
            payload=message.message,
            read_ct=message.read_ct,
            enqueued_at=message.enqueued_at,
        )


@dataclass
class FailureCleanup:
    """
    What the failure handler managed to do.

    Both steps are attempted independently; each reports its own error.
    """
    status_marked: bool = False
    status_error: Optional[str] = None
    item_deleted: bool = False
    delete_error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "status_marked": self.status_marked,
            "status_error": self.status_error,
            "item_deleted": self.item_deleted,
            "delete_error": self.delete_error,
        }


@dataclass
class ItemOutcome:
    """Result of driving one queue item through processing."""
    submission_id: str
    status: str
    error: Optional[str] = None
    msg_id: Optional[int] = None
    cleanup: Optional[FailureCleanup] = None

    @property
    def succeeded(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS.value

    def to_dict(self) -> dict:
        data = {
            "submission_id": self.submission_id,
            "status": self.status,
        }
        if self.error is not None:
            data["error"] = self.error
        if self.cleanup is not None:
            data["cleanup"] = self.cleanup.to_dict()
        return data


@dataclass
class BatchResult:
    """Result of one worker invocation."""
    results: List[ItemOutcome] = field(default_factory=list)
    discarded: int = 0

    @property
    def processed(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.succeeded)

    @property
    def failed(self) -> int:
        return self.processed - self.succeeded

    def to_dict(self) -> dict:
        return {
            "processed": self.processed,
            "results": [r.to_dict() for r in self.results],
            "discarded": self.discarded,
        }
