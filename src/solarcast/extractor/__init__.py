"""
SolarCast marker-based extraction.

The forecast page is not parsed as HTML. Values are cut out of the raw text
between fixed anchor strings:

- ``markers``: find the span between a start and an end anchor
- ``decimal_parser``: rebuild a ``d,dd`` decimal-comma number from a fragment
- ``date_window``: recover ``DD.MM.YYYY`` around a year anchor
- ``fields``: named recipes combining the above
"""

from .date_window import resolve_date, year_anchor
from .decimal_parser import parse_decimal
from .fields import (
    CLEAR_SKY,
    FORECAST_DATE,
    REAL_SKY_MAX,
    REAL_SKY_MIN,
    FieldExtractor,
    FieldKind,
    FieldRecipe,
    MarkerTable,
    default_marker_table,
)
from .markers import MarkerPair, Span, SpanPolicy, find_span, slice_span
from .models import ErrorKind, ExtractionError, ExtractionResult, PipelineOutput

__all__ = [
    "CLEAR_SKY",
    "REAL_SKY_MIN",
    "REAL_SKY_MAX",
    "FORECAST_DATE",
    "ErrorKind",
    "ExtractionError",
    "ExtractionResult",
    "PipelineOutput",
    "FieldExtractor",
    "FieldKind",
    "FieldRecipe",
    "MarkerTable",
    "default_marker_table",
    "MarkerPair",
    "Span",
    "SpanPolicy",
    "find_span",
    "slice_span",
    "parse_decimal",
    "resolve_date",
    "year_anchor",
]
