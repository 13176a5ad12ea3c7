"""
Processor package for the survey pipeline.

- scoring: deterministic category scores from ratings
- profile: prompt rendering and reply parsing
- worker: queue-backed batch processing of submissions

Main entry point: SubmissionWorker
"""

from .models import QueueItem, FailureCleanup, ItemOutcome, BatchResult
from .adapters import (
    SubmissionStore,
    SubmissionQueue,
    StoreError,
    StoreWriteError,
    QueueClaimError,
    QueueDeleteError,
)
from .worker import SubmissionWorker, MalformedItemError, validate_payload

__all__ = [
    # Worker
    "SubmissionWorker",
    "MalformedItemError",
    "validate_payload",
    # Adapters
    "SubmissionStore",
    "SubmissionQueue",
    "StoreError",
    "StoreWriteError",
    "QueueClaimError",
    "QueueDeleteError",
    # Models
    "QueueItem",
    "FailureCleanup",
    "ItemOutcome",
    "BatchResult",
]
