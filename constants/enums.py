"""
Shared Enums

Application-wide enums used across the store, worker and API.
"""
from enum import Enum


class SubmissionStatus(str, Enum):
    """Submission lifecycle states."""
    PENDING = "pending"
    PROCESSING = "processing"
    PROCESSED = "processed"
    FAILED = "failed"


class Band(str, Enum):
    """Qualitative scorecard band for a category."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class PolarityAxis(str, Enum):
    """The two fixed assessments rated -1/0/1, independent of categories."""
    PROTECTIONIST = "protectionist"
    PROGRESSIVE = "progressive"


class OutcomeStatus(str, Enum):
    """Per-item outcome of a worker invocation."""
    SUCCESS = "success"
    FAILED = "failed"


# Tuple versions for membership checks
BANDS = tuple(b.value for b in Band)
POLARITY_KEYS = tuple(p.value for p in PolarityAxis)
POLARITY_VALUES = (-1, 0, 1)
