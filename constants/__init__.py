"""
Constants package for the survey pipeline.

Contains shared enums used by the store, the worker and the API.
"""

from .enums import (
    SubmissionStatus,
    Band,
    PolarityAxis,
    OutcomeStatus,
    BANDS,
    POLARITY_KEYS,
    POLARITY_VALUES,
)

__all__ = [
    # Enums
    "SubmissionStatus",
    "Band",
    "PolarityAxis",
    "OutcomeStatus",
    # Lookups
    "BANDS",
    "POLARITY_KEYS",
    "POLARITY_VALUES",
]
