"""Duration and layover formatting.

Provider durations are ISO-8601 restricted to hours and minutes
("PT2H30M", "PT45M", "PT11H"). They are rendered for display as
"2h 30m" / "45m" / "11h". Nothing in this module raises on bad input:
unparseable values degrade to a safe literal.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Optional

logger = logging.getLogger(__name__)

_ISO_DURATION_RE = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?")
_LABEL_RE = re.compile(r"\s*(?:(\d+)h)?\s*(?:(\d+)m)?\s*")


def _split_iso_duration(value: Optional[str]) -> Optional[tuple[int, int]]:
    """Return (hours, minutes) from an ISO-8601 duration, or None."""
    if not value or not isinstance(value, str):
        return None
    match = _ISO_DURATION_RE.search(value)
    if not match or (match.group(1) is None and match.group(2) is None):
        return None
    return int(match.group(1) or 0), int(match.group(2) or 0)


def iso_duration_minutes(value: Optional[str]) -> Optional[int]:
    """Total minutes of an ISO-8601 duration like 'PT6H30M', or None."""
    parts = _split_iso_duration(value)
    if parts is None:
        return None
    hours, minutes = parts
    return hours * 60 + minutes


def render_duration(value: str) -> str:
    """Render an ISO-8601 duration for display.

    "PT2H30M" -> "2h 30m", "PT2H" -> "2h", "PT45M" -> "45m". Anything else,
    including a zero duration, is returned unchanged.
    """
    parts = _split_iso_duration(value)
    if parts is None:
        return value
    hours, minutes = parts
    if hours and minutes:
        return f"{hours}h {minutes}m"
    if hours:
        return f"{hours}h"
    if minutes:
        return f"{minutes}m"
    return value


def parse_duration_label(label: str) -> int:
    """Convert a rendered label ("2h 30m", "2h", "45m") back to minutes.

    Unparseable labels count as 0 minutes.
    """
    if not label or not isinstance(label, str):
        return 0
    match = _LABEL_RE.fullmatch(label)
    if not match:
        return 0
    hours, minutes = match.group(1), match.group(2)
    return int(hours or 0) * 60 + int(minutes or 0)


def gap_minutes(arrival: datetime, next_departure: datetime) -> int:
    """Whole minutes between an arrival and the next departure.

    Negative gaps (bad schedule data) and timestamps that cannot be
    compared (naive vs. aware) yield 0.
    """
    try:
        delta = next_departure - arrival
    except TypeError:
        logger.warning("Cannot compare %s with %s, treating gap as 0", arrival, next_departure)
        return 0
    minutes = int(delta.total_seconds() // 60)
    if minutes < 0:
        logger.warning("Negative layover of %d minutes clamped to 0", minutes)
        return 0
    return minutes


def layover_label(airport: str, minutes: int) -> str:
    """Render a layover as 'AIRPORT (Xh Ym)'."""
    minutes = max(0, minutes)
    return f"{airport} ({minutes // 60}h {minutes % 60}m)"
