"""
Scoring Engine - deterministic rubric computation.

Turns raw ratings into one weighted average per category. Pure functions,
safe to call repeatedly.
"""
from typing import Dict, Iterable, List, Mapping

from .models import CatalogQuestion, RawResponse


def derive_categories(questions: Iterable[CatalogQuestion]) -> List[str]:
    """Unique normalized category keys in catalog order."""
    categories = []
    for question in questions:
        key = question.category_key
        if key and key not in categories:
            categories.append(key)
    return categories


def adjust_rating(rating: float, forward: bool, scale_min: int = 1, scale_max: int = 5) -> float:
    """Reflect a reversed question's rating about the scale midpoint."""
    if forward:
        return rating
    return scale_min + scale_max - rating


def compute_scores(
    questions: Iterable[CatalogQuestion],
    responses: Mapping[str, RawResponse],
    scale_min: int = 1,
    scale_max: int = 5,
) -> Dict[str, float]:
    """
    Weighted average of direction-adjusted ratings per category.

    Args:
        questions: Catalog questions
        responses: Answers keyed by question id (string)
        scale_min: Lowest rating on the survey scale
        scale_max: Highest rating on the survey scale

    Returns:
        {category_key: score}, only for categories with at least one
        answered question. Ratings missing or outside the scale are ignored.

    A missing or zero weight counts as 1.0, so a category's total weight
    can only be zero (score 0.0) when negative weights cancel out.
    """
    totals: Dict[str, List[float]] = {}  # category -> [weighted_sum, weight_total]

    for question in questions:
        response = responses.get(question.response_key)
        if response is None or response.rating is None:
            continue
        if not scale_min <= response.rating <= scale_max:
            continue

        weight = question.weight or 1.0
        adjusted = adjust_rating(response.rating, question.forward, scale_min, scale_max)

        bucket = totals.setdefault(question.category_key, [0.0, 0.0])
        bucket[0] += adjusted * weight
        bucket[1] += weight

    return {
        category: (weighted_sum / weight_total if weight_total > 0 else 0.0)
        for category, (weighted_sum, weight_total) in totals.items()
    }
