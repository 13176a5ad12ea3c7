"""
Data models for the scoring engine.
"""
import re
from dataclasses import dataclass
from typing import Optional, Dict, Any, Mapping


def normalize_category(label: str) -> str:
    """
    Canonical category key: case-folded, whitespace runs collapsed to '_'.

    "Data  Privacy" -> "data_privacy"
    """
    return re.sub(r"\s+", "_", (label or "").strip().casefold())


@dataclass(frozen=True)
class CatalogQuestion:
    """Immutable view of a question catalog row."""
    id: int
    category: str
    question_text: str
    forward: bool = True
    weight: float = 1.0

    @property
    def category_key(self) -> str:
        return normalize_category(self.category)

    @property
    def response_key(self) -> str:
        """Key of this question's answer in a submission's response set."""
        return str(self.id)

    @classmethod
    def from_row(cls, row: Any) -> "CatalogQuestion":
        """Build from an ORM row or any object with the catalog attributes."""
        return cls(
            id=row.id,
            category=row.category,
            question_text=row.question_text,
            forward=bool(row.forward),
            weight=float(row.weight or 1.0),
        )


@dataclass(frozen=True)
class RawResponse:
    """One answer: a rating on the survey scale and an optional explanation."""
    rating: Optional[float]
    explanation: Optional[str] = None

    @classmethod
    def from_payload(cls, value: Any) -> "RawResponse":
        """Parse a stored answer ({"rating": 4, "explanation": "..."})."""
        if isinstance(value, Mapping):
            rating = value.get("rating")
            explanation = value.get("explanation") or None
        else:
            rating, explanation = value, None

        if isinstance(rating, bool) or not isinstance(rating, (int, float)):
            rating = None
        return cls(rating=rating, explanation=explanation)


def parse_responses(payload: Mapping[str, Any]) -> Dict[str, RawResponse]:
    """Parse a submission's response set, keyed by question id as string."""
    return {str(key): RawResponse.from_payload(value) for key, value in payload.items()}
