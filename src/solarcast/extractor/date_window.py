"""
Recover a ``DD.MM.YYYY`` date from the text around a year anchor.
"""

from __future__ import annotations

from datetime import date, timedelta

import structlog

from .models import ErrorKind, ExtractionError

logger = structlog.get_logger(__name__)

DEFAULT_YEAR_TEMPLATE = ".{year}</td>"
WINDOW_BEFORE = 5
WINDOW_AFTER = 5


def year_anchor(reference_date: date, template: str = DEFAULT_YEAR_TEMPLATE) -> str:
    """Build the year-anchored marker for ``reference_date``."""
    return template.format(year=reference_date.year)


def normalize_date(day: int, month: int, year: int) -> date:
    """Build a date, rolling out-of-range day and month values over.

    Day 32 of January becomes 1 February, month 13 becomes January of the
    following year and day 0 is the last day of the previous month.
    """
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1
    return date(year, month, 1) + timedelta(days=day - 1)


def format_date(value: date) -> str:
    return f"{value.day:02d}.{value.month:02d}.{value.year:04d}"


def resolve_date(document: str, anchor: str) -> str:
    """Find ``anchor`` and parse the fixed-width window around it.

    Raises:
        ExtractionError: ``DateMarkerNotFound`` if the anchor is absent,
            ``DateWindowMalformed`` if the window is not ``day.month.year``.
    """
    anchor_index = document.find(anchor)
    if anchor_index == -1:
        raise ExtractionError(ErrorKind.DATE_MARKER_NOT_FOUND, f"year anchor {anchor!r} not found")

    window = document[max(anchor_index - WINDOW_BEFORE, 0) : anchor_index + WINDOW_AFTER]
    parts = window.split(".")
    logger.debug("Cut date window", window=window, parts=parts)

    if len(parts) != 3 or not all(parts):
        raise ExtractionError(ErrorKind.DATE_WINDOW_MALFORMED, f"window {window!r} is not day.month.year")
    try:
        day, month, year = (int(part) for part in parts)
        resolved = normalize_date(day, month, year)
    except (ValueError, OverflowError) as error:
        raise ExtractionError(ErrorKind.DATE_WINDOW_MALFORMED, f"window {window!r}: {error}") from error

    return format_date(resolved)
