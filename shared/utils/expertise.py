# shared/utils/expertise.py
"""
Lenient decoding of the expertise field.

Rows written by older imports store expertise as a native list, a JSON
encoded list, a comma separated string, or nothing at all. Everything is
normalised here so services only ever see a clean list of tags.
"""
import json
import logging
from typing import Any, Iterable, List

from shared.constants.model_fields import STANDBY_TAG

logger = logging.getLogger(__name__)


def _clean(tags: Iterable[Any]) -> List[str]:
    seen = set()
    result = []
    for tag in tags:
        if not isinstance(tag, str):
            continue
        tag = tag.strip()
        if tag and tag.lower() not in seen:
            seen.add(tag.lower())
            result.append(tag)
    return result


def decode_expertise(raw: Any) -> List[str]:
    """
    Decode a stored expertise value into an ordered, de-duplicated list.

    Malformed or missing data degrades to an empty list instead of raising.
    """
    if raw is None:
        return []
    if isinstance(raw, (list, tuple, set)):
        return _clean(raw)
    if not isinstance(raw, str):
        return []

    text = raw.strip()
    if not text:
        return []

    if text[0] in '["':
        try:
            decoded = json.loads(text)
        except (TypeError, ValueError):
            logger.debug(f"Malformed expertise value ignored: {text[:50]!r}")
            return []
        if isinstance(decoded, str):
            return _clean([decoded])
        if isinstance(decoded, list):
            return _clean(decoded)
        return []

    return _clean(text.split(','))


def is_standby(tags: Iterable[str], standby_tag: str = STANDBY_TAG) -> bool:
    """Case-insensitive exact match against the standby marker."""
    marker = standby_tag.lower()
    return any(isinstance(tag, str) and tag.lower() == marker for tag in tags)


def matches_any(tags: Iterable[str], required: Iterable[str]) -> bool:
    """True when the two tag lists share at least one tag (case-insensitive)."""
    wanted = {tag.lower() for tag in required if isinstance(tag, str)}
    return any(isinstance(tag, str) and tag.lower() in wanted for tag in tags)
