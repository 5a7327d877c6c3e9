"""
Locate the text between two literal anchor strings.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import structlog

from .models import ErrorKind, ExtractionError

logger = structlog.get_logger(__name__)


class SpanPolicy(str, Enum):
    """Which occurrence of the end anchor closes the span."""

    FIRST_FIRST = "first_first"
    FIRST_LAST = "first_last"


@dataclass(slots=True, frozen=True)
class MarkerPair:
    """Start and end anchors plus the policy used to position the end anchor."""

    start: str
    end: str
    policy: SpanPolicy = SpanPolicy.FIRST_FIRST

    def __post_init__(self) -> None:
        if not self.start or not self.end:
            raise ValueError("Marker anchors must be non-empty strings")


@dataclass(slots=True, frozen=True)
class Span:
    start_index: int
    end_index: int


def find_span(document: str, pair: MarkerPair) -> Span:
    """Resolve ``pair`` against ``document``.

    The start index points just past the first occurrence of the start
    anchor. The end index is the first (FIRST_FIRST) or last (FIRST_LAST)
    occurrence of the end anchor in the whole document, not the next one
    after the start anchor.

    Raises:
        ExtractionError: ``MarkerNotFound`` if an anchor is absent,
            ``MarkerOrderInvalid`` if the end does not follow the start.
    """
    start_anchor = document.find(pair.start)
    if pair.policy is SpanPolicy.FIRST_LAST:
        end_index = document.rfind(pair.end)
    else:
        end_index = document.find(pair.end)

    if start_anchor == -1:
        raise ExtractionError(ErrorKind.MARKER_NOT_FOUND, f"start anchor {pair.start!r} not found")
    if end_index == -1:
        raise ExtractionError(ErrorKind.MARKER_NOT_FOUND, f"end anchor {pair.end!r} not found")

    start_index = start_anchor + len(pair.start)
    logger.debug("Resolved anchors", start_index=start_index, end_index=end_index, policy=pair.policy.value)

    if start_index >= end_index:
        raise ExtractionError(
            ErrorKind.MARKER_ORDER_INVALID,
            f"start index {start_index} is not before end index {end_index}",
        )
    return Span(start_index=start_index, end_index=end_index)


def slice_span(document: str, span: Span) -> str:
    """Return the raw fragment between the two resolved positions."""
    return document[span.start_index : span.end_index]


def extract_fragment(document: str, pair: MarkerPair) -> str:
    fragment = slice_span(document, find_span(document, pair))
    logger.debug("Cut fragment", fragment=fragment)
    return fragment
