"""
Scoring Module - deterministic category scores from survey ratings.

Components:
- compute_scores: weighted, direction-adjusted average per category
- derive_categories: ordered category keys from the catalog
- CatalogQuestion / RawResponse: input models
"""

from .models import CatalogQuestion, RawResponse, normalize_category, parse_responses
from .engine import compute_scores, derive_categories, adjust_rating


__all__ = [
    "CatalogQuestion",
    "RawResponse",
    "normalize_category",
    "parse_responses",
    "compute_scores",
    "derive_categories",
    "adjust_rating",
]
