"""
Data models for the profile builder.
"""
from dataclasses import dataclass, field
from typing import Dict, Any, Mapping

from constants import PolarityAxis


SCORE_SUFFIX = "_score"


@dataclass
class Scorecard:
    """
    Combined qualitative and quantitative result for one submission.

    `bands` comes from the model, in catalog category order.
    `scores` is written only by the scoring engine via merge_scores.
    """
    bands: Dict[str, str]
    protectionist: int
    progressive: int
    scores: Dict[str, float] = field(default_factory=dict)

    def merge_scores(self, numeric_scores: Mapping[str, float]) -> "Scorecard":
        """Replace the numeric scores with the engine's authoritative values."""
        self.scores = {category: float(score) for category, score in numeric_scores.items()}
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Flattened form stored on the submission."""
        data: Dict[str, Any] = dict(self.bands)
        data[PolarityAxis.PROTECTIONIST.value] = self.protectionist
        data[PolarityAxis.PROGRESSIVE.value] = self.progressive
        for category, score in self.scores.items():
            data[f"{category}{SCORE_SUFFIX}"] = score
        return data


@dataclass
class ProfileResult:
    """Parsed model reply plus the merged scorecard."""
    summary: str
    scorecard: Scorecard
    model: str = ""
