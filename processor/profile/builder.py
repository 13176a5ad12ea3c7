"""
Profile Builder - prompt rendering and reply parsing for the mindset summary.

The model supplies the narrative and qualitative bands; numeric scores in
its reply are advisory and are replaced by the scoring engine's values.
"""
import json
import re
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple

from loguru import logger

from constants import BANDS, POLARITY_KEYS, POLARITY_VALUES
from prompts import PromptLoader
from processor.scoring import CatalogQuestion, RawResponse
from .models import Scorecard, SCORE_SUFFIX


PROMPT_NAME = "profile_summary"
OPENING_SENTENCE = "Thank you for taking the time to provide your insights on technology regulation."

# First fenced json block; non-greedy so trailing blocks are left alone
JSON_BLOCK_PATTERN = re.compile(r"```json\s*(.*?)\s*```", re.DOTALL)


class MalformedModelOutput(ValueError):
    """Raised when a model reply lacks a valid scorecard block."""
    pass


def display_category(category: str) -> str:
    """Human label for a category key: data_privacy -> Data-Privacy."""
    return "-".join(word[:1].upper() + word[1:] for word in category.split("_"))


def format_answers(
    questions: Iterable[CatalogQuestion],
    responses: Mapping[str, RawResponse],
    scale_max: int = 5,
) -> str:
    """Question/answer text for the prompt, in catalog order, answered questions only."""
    lines = []
    for question in questions:
        response = responses.get(question.response_key)
        if response is None:
            continue

        rating = response.rating
        if isinstance(rating, float) and rating.is_integer():
            rating = int(rating)

        lines.append(f"Q: {question.question_text}")
        lines.append(f"Category: {question.category}")
        lines.append(f"Rating: {rating}/{scale_max}")
        if response.explanation:
            lines.append(f"Explanation: {response.explanation}")
        lines.append("")

    return "\n".join(lines) + ("\n" if lines else "")


def render_prompt(
    qa_text: str,
    categories: Sequence[str],
    scores: Mapping[str, float],
    loader: Optional[PromptLoader] = None,
) -> str:
    """
    Render the instruction text sent to the model.

    Args:
        qa_text: Output of format_answers
        categories: Category keys derived from the catalog
        scores: Engine scores; only categories present here get a _score line
    """
    loader = loader or PromptLoader()

    categories_list = "\n".join(display_category(category) for category in categories)
    category_keys = ",\n".join(f'"{category}": "{"|".join(BANDS)}"' for category in categories)
    polarity_keys = ",\n".join(
        f'"{key}": {"|".join(str(v) for v in POLARITY_VALUES)}' for key in POLARITY_KEYS
    )
    score_keys = ",\n".join(
        f'"{category}{SCORE_SUFFIX}": {scores[category]:.2f}'
        for category in categories
        if category in scores
    )

    return loader.format(
        PROMPT_NAME,
        categories_list=categories_list,
        opening_sentence=OPENING_SENTENCE,
        category_keys=category_keys,
        polarity_keys=polarity_keys,
        score_keys=score_keys,
        qa_text=qa_text,
    )


def _parse_band(category: str, value) -> str:
    band = value.strip().lower() if isinstance(value, str) else None
    if band not in BANDS:
        raise MalformedModelOutput(f"Invalid band for '{category}': {value!r}")
    return band


def _parse_polarity(key: str, value) -> int:
    if isinstance(value, bool):
        raise MalformedModelOutput(f"Invalid value for '{key}': {value!r}")

    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise MalformedModelOutput(f"Invalid value for '{key}': {value!r}") from None
    elif isinstance(value, float) and value.is_integer():
        value = int(value)

    if value not in POLARITY_VALUES or not isinstance(value, int):
        raise MalformedModelOutput(f"Invalid value for '{key}': {value!r}")
    return value


def extract_json_block(reply: str) -> Tuple[str, str]:
    """
    Split a reply into (json_text, remaining_text).

    Raises:
        MalformedModelOutput: If there is no fenced json block
    """
    match = JSON_BLOCK_PATTERN.search(reply or "")
    if not match:
        raise MalformedModelOutput("No JSON found in LLM response")

    remaining = reply[:match.start()] + reply[match.end():]
    return match.group(1), remaining.strip()


def parse_reply(reply: str, categories: Sequence[str]) -> Tuple[str, Scorecard]:
    """
    Parse a model reply into the narrative summary and a scorecard.

    Args:
        reply: Raw model text ending with a fenced json block
        categories: Category keys that must each carry a band

    Returns:
        (summary, scorecard) with an empty scores map

    Raises:
        MalformedModelOutput: Missing block, bad JSON, missing or out-of-range keys
    """
    json_text, summary = extract_json_block(reply)

    try:
        data = json.loads(json_text)
    except json.JSONDecodeError as e:
        logger.debug(f"Unparseable scorecard block: {json_text[:200]}")
        raise MalformedModelOutput(f"JSON parse error: {e}") from e

    if not isinstance(data, dict):
        raise MalformedModelOutput(f"Scorecard must be a JSON object, got {type(data).__name__}")

    missing = [key for key in list(categories) + list(POLARITY_KEYS) if key not in data]
    if missing:
        raise MalformedModelOutput(f"Scorecard missing keys: {', '.join(missing)}")

    bands: Dict[str, str] = {category: _parse_band(category, data[category]) for category in categories}
    polarity: Dict[str, int] = {key: _parse_polarity(key, data[key]) for key in POLARITY_KEYS}

    ignored = [key for key in data if key.endswith(SCORE_SUFFIX)]
    if ignored:
        logger.debug(f"Discarding {len(ignored)} model-reported scores")

    scorecard = Scorecard(
        bands=bands,
        protectionist=polarity["protectionist"],
        progressive=polarity["progressive"],
    )
    return summary, scorecard
