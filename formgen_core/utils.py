import json
import logging
import re
import time
from typing import Any

from formgen_core.exceptions import StructuralError

logger = logging.getLogger(__name__)


# =============================================================================
# DEFENSIVE JSON EXTRACTION
# =============================================================================
#
# Providers without structured output return free text: JSON wrapped in markdown
# fences, JSON with a chatty preamble, or occasionally nothing usable. Parse order:
#
#   1. Direct json.loads
#   2. Body of a ```json ... ``` fence
#   3. Substring from the first opening bracket to the last closing one
#   4. Give up with StructuralError
# =============================================================================

_FENCE_RE = re.compile(r"```(?:json)?\s*([\[{][\s\S]*[\]}])\s*```", re.IGNORECASE)


def parse_json_response(text: str | None, context: str) -> Any:
    """
    Parse a model response that should contain JSON.

    Args:
        text: Raw model output
        context: Caller name for log messages (e.g., "content-analysis")

    Returns:
        Parsed JSON value (dict or list)

    Raises:
        StructuralError: If no strategy yields valid JSON
    """
    if not text or not text.strip():
        raise StructuralError(f"Empty response received in {context}")

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    match = _FENCE_RE.search(text)
    if match:
        try:
            return json.loads(match.group(1))
        except json.JSONDecodeError:
            pass

    for opener, closer in (("{", "}"), ("[", "]")):
        first = text.find(opener)
        last = text.rfind(closer)
        if first != -1 and last > first:
            try:
                return json.loads(text[first:last + 1])
            except json.JSONDecodeError:
                continue

    logger.error(f"JSON parse failed in {context}: length={len(text)} preview={text[:200]!r}")
    raise StructuralError(f"Failed to parse JSON in {context}")


def parse_json_object(text: str | None, context: str) -> dict[str, Any]:
    """Like parse_json_response but requires a top-level object."""
    parsed = parse_json_response(text, context)
    if not isinstance(parsed, dict):
        raise StructuralError(f"Expected a JSON object in {context}, got {type(parsed).__name__}")
    return parsed


# =============================================================================
# LABEL AND FIELD TYPE NORMALIZATION
# =============================================================================

_PUNCTUATION_RE = re.compile(r"[^\w\s]")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_label(label: str | None) -> str:
    """Lowercase, strip punctuation, collapse whitespace."""
    if not label:
        return ""
    stripped = _PUNCTUATION_RE.sub("", label.lower())
    return _WHITESPACE_RE.sub(" ", stripped).strip()


# Legacy HTML-ish names and synonyms -> canonical palette names
FIELD_TYPE_ALIASES: dict[str, str] = {
    "text": "short-answer",
    "string": "short-answer",
    "short_answer": "short-answer",
    "textarea": "long-answer",
    "long_answer": "long-answer",
    "paragraph-text": "long-answer",
    "radio": "multiple-choice",
    "multiple_choice": "multiple-choice",
    "choice": "multiple-choice",
    "select": "dropdown",
    "checkbox": "checkboxes",
    "multi-select": "multiselect",
    "tel": "phone",
    "telephone": "phone",
    "date": "date-picker",
    "time": "time-picker",
    "datetime": "datetime-picker",
    "file": "file-uploader",
    "upload": "file-uploader",
    "range": "slider",
    "rating": "star-rating",
    "scale": "opinion-scale",
    "likert": "opinion-scale",
    "boolean": "switch",
    "yes-no": "switch",
    "money": "currency",
}


def normalize_field_type(field_type: str | None, palette: set[str] | frozenset[str]) -> str:
    """
    Map a model-supplied type onto the field palette.

    Args:
        field_type: Raw type string from a model or rule table
        palette: Known canonical type names

    Returns:
        Canonical type name, "short-answer" when unknown
    """
    if not field_type:
        return "short-answer"
    key = field_type.strip().lower()
    if key in palette:
        return key
    key = FIELD_TYPE_ALIASES.get(key, key.replace("_", "-"))
    return key if key in palette else "short-answer"


def slugify(text: str, max_length: int = 40) -> str:
    slug = _WHITESPACE_RE.sub("_", normalize_label(text))
    return slug[:max_length].strip("_") or "field"


def elapsed_ms(start: float) -> int:
    """Milliseconds since a time.perf_counter() reading."""
    return int((time.perf_counter() - start) * 1000)


def clean_text(value: Any) -> str | None:
    """Stripped string, or None for blanks and non-strings."""
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def clean_options(value: Any) -> list[str] | None:
    """Option list as non-empty strings, or None when nothing usable remains."""
    if not isinstance(value, list):
        return None
    options = [str(v).strip() for v in value if v is not None and str(v).strip()]
    return options or None
