"""Normalization of raw AI replies into recipe records."""

import json
import logging
import re
from typing import Any

from recipescan.errors import UnparseableResponseError
from recipescan.models import RecipeDraft, split_lines

logger = logging.getLogger(__name__)

# A ```json fenced block; the first one wins
JSON_FENCE = re.compile(r"```json[ \t]*\r?\n(.*?)\r?\n[ \t]*```", re.DOTALL | re.IGNORECASE)


def extract_json_text(raw_text: str) -> str:
    """Return the interior of a ```json block, or the trimmed text if there is none."""
    match = JSON_FENCE.search(raw_text)
    if match:
        return match.group(1)
    return raw_text.strip()


def normalize_response(raw_text: str) -> dict[str, Any]:
    """
    Parse a provider reply into a recipe-shaped dict.

    Handles:
        - Bare JSON objects
        - JSON wrapped in a ```json fenced block (with or without prose around it)
        - "ingredients" sent as one newline-delimited string instead of an array

    Missing keys are left absent; use to_draft() to fill defaults.

    Raises:
        UnparseableResponseError: If no JSON object can be parsed
    """
    json_text = extract_json_text(raw_text or "")

    try:
        parsed = json.loads(json_text)
    except json.JSONDecodeError as e:
        logger.info(f"Unparseable AI response: {e}")
        raise UnparseableResponseError(raw_text=raw_text) from e

    if not isinstance(parsed, dict):
        raise UnparseableResponseError(
            "AI returned JSON that is not a recipe object. The recipe card may be unclear.",
            raw_text=raw_text,
        )

    if isinstance(parsed.get("ingredients"), str):
        parsed["ingredients"] = split_lines(parsed["ingredients"])

    return parsed


def to_draft(record: dict[str, Any]) -> RecipeDraft:
    """Fill in defaults so a normalized record can be shown and edited."""
    ingredients = record.get("ingredients") or []
    if isinstance(ingredients, str):
        ingredients = split_lines(ingredients)
    elif isinstance(ingredients, list):
        ingredients = [str(item) for item in ingredients if item is not None]
    else:
        ingredients = []

    return RecipeDraft.model_validate(
        {
            "title": _as_text(record.get("title")),
            "ingredients": ingredients,
            "instructions": _as_text(record.get("instructions")),
        }
    )


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)
