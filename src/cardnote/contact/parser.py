"""Recover a JSON object from free-form model output.

Models asked for "strict JSON" still wrap it in code fences or surround it
with prose. Recovery runs a fixed chain of stages; the first stage that
yields a non-empty candidate wins:

1. a fenced block (optionally tagged ``json``)
2. the slice from the first ``{`` to the last ``}``
3. the trimmed text itself

The candidate is then cleaned of invisible characters and parsed.
"""

import json
import logging
import re
from typing import Callable, Optional

from ..errors import JsonParseFailure, NoJsonFound
from .schema import ContactRecord

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)
_ZERO_WIDTH = re.compile("[\u200b\u200c\u200d\u2060\ufeff]")


def strip_bom(text: str) -> str:
    if text.startswith("\ufeff"):
        text = text[1:]
    return text.strip()


def from_fence(text: str) -> Optional[str]:
    match = _FENCE.search(text)
    if match and match.group(1).strip():
        return match.group(1).strip()
    return None


def from_braces(text: str) -> Optional[str]:
    first = text.find("{")
    last = text.rfind("}")
    if first != -1 and last > first:
        return text[first:last + 1].strip()
    return None


def from_raw(text: str) -> Optional[str]:
    return text.strip() or None


RECOVERY_STAGES: tuple[Callable[[str], Optional[str]], ...] = (from_fence, from_braces, from_raw)


def extract_json_candidate(text: Optional[str]) -> Optional[str]:
    """Run the recovery stages in order and return the first candidate."""
    if not text or not isinstance(text, str):
        return None
    text = strip_bom(text)
    for stage in RECOVERY_STAGES:
        candidate = stage(text)
        if candidate:
            return candidate
    return None


def clean_candidate(candidate: str) -> str:
    """Remove zero-width characters and normalize non-breaking spaces."""
    return _ZERO_WIDTH.sub("", candidate).replace("\u00a0", " ").strip()


def parse_json_object(text: Optional[str]) -> dict:
    """Extract and parse the JSON object embedded in ``text``.

    Raises:
        NoJsonFound: If there is nothing to parse
        JsonParseFailure: If the candidate is not valid JSON or not an object
    """
    candidate = extract_json_candidate(text)
    if not candidate:
        raise NoJsonFound(text or "")

    cleaned = clean_candidate(candidate)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.debug(f"[LLM] JSON candidate rejected: {cleaned[:200]!r}")
        raise JsonParseFailure(f"JSON parse failed: {e}", candidate=cleaned, original=text) from e

    if not isinstance(data, dict):
        raise JsonParseFailure(
            f"Expected a JSON object, got {type(data).__name__}",
            candidate=cleaned,
            original=text,
        )
    return data


def parse_contact(text: Optional[str]) -> ContactRecord:
    """Parse model output into a ContactRecord."""
    return ContactRecord.model_validate(parse_json_object(text))
