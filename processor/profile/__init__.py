"""
Profile Module - prompt rendering and reply parsing for the LLM step.

Components:
- render_prompt / format_answers: build the instruction text
- parse_reply: split the reply into summary and Scorecard
- Scorecard: qualitative bands, polarity axes, merged numeric scores
"""

from .models import Scorecard, ProfileResult, SCORE_SUFFIX
from .builder import (
    MalformedModelOutput,
    OPENING_SENTENCE,
    display_category,
    format_answers,
    render_prompt,
    extract_json_block,
    parse_reply,
)


__all__ = [
    "Scorecard",
    "ProfileResult",
    "SCORE_SUFFIX",
    "MalformedModelOutput",
    "OPENING_SENTENCE",
    "display_category",
    "format_answers",
    "render_prompt",
    "extract_json_block",
    "parse_reply",
]
