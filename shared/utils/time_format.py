# shared/utils/time_format.py
"""
Schedule time conversion between storage and display formats.

Storage keeps 24-hour ``HH:MM[:SS]``; screens and API payloads use
``HH.MM``. Conversion is idempotent: display values pass through unchanged.
"""
import re
from datetime import time as time_type
from typing import Optional, Union

_DISPLAY_RE = re.compile(r'^(\d{1,2})\.(\d{2})$')
_DOTTED_SECONDS_RE = re.compile(r'^(\d{1,2})\.(\d{2})\.\d{2}$')
_STORAGE_RE = re.compile(r'^(\d{1,2}):(\d{2})(?::\d{2})?$')


def format_display_time(value: Union[str, time_type, None]) -> Optional[str]:
    """
    Convert a stored time to ``HH.MM``.

    Accepts ``HH:MM:SS``, ``HH:MM``, ``HH.MM`` (returned as is), ``HH.MM.SS``
    and ``datetime.time``. Unrecognised strings are returned untouched so a
    bad row never breaks a whole response.
    """
    if value is None or value == '':
        return value
    if isinstance(value, time_type):
        return f"{value.hour:02d}.{value.minute:02d}"

    text = str(value).strip()
    for pattern in (_DISPLAY_RE, _DOTTED_SECONDS_RE, _STORAGE_RE):
        match = pattern.match(text)
        if match:
            hours, minutes = match.group(1), match.group(2)
            return f"{int(hours):02d}.{minutes}"
    return text


def to_storage_time(value: Union[str, time_type, None]) -> Optional[str]:
    """Convert ``HH.MM`` (or any accepted input) to ``HH:MM:SS``."""
    display = format_display_time(value)
    if not display or not _DISPLAY_RE.match(display):
        return display
    hours, minutes = display.split('.')
    return f"{hours}:{minutes}:00"


def is_display_time(value) -> bool:
    return bool(value) and bool(_DISPLAY_RE.match(str(value)))
