"""
Named field recipes and the extractor that applies them.

Anchor strings are plain data collected in a ``MarkerTable`` so that a change
in the page layout only needs new anchors, not new code.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Iterator, Sequence

import structlog

from .date_window import DEFAULT_YEAR_TEMPLATE, resolve_date, year_anchor
from .decimal_parser import parse_decimal
from .markers import MarkerPair, SpanPolicy, extract_fragment
from .models import ExtractionError, ExtractionResult

logger = structlog.get_logger(__name__)

CLEAR_SKY = "clearSky"
REAL_SKY_MIN = "realSky_min"
REAL_SKY_MAX = "realSky_max"
FORECAST_DATE = "forecastDate"

CLEAR_SKY_LABEL = "<td height=17 class=xl1525883 style='height:12.75pt'>clear sky:</td>"
REAL_SKY_LABEL = "real sky:</td>"
PLACEHOLDER_CELL = "<td class=xl2725883>-</td>"
UNITS_CELL = "<td class=xl2425883>kWh/kWp</td>"


class FieldKind(str, Enum):
    DECIMAL = "decimal"
    DATE = "date"


@dataclass(slots=True, frozen=True)
class FieldRecipe:
    """How to extract one named field.

    Decimal fields need a ``marker``; date fields need a ``year_template``
    with a ``{year}`` placeholder.
    """

    name: str
    kind: FieldKind
    marker: MarkerPair | None = None
    year_template: str | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Field recipes need a name")
        if self.kind is FieldKind.DECIMAL and self.marker is None:
            raise ValueError(f"Decimal field {self.name!r} needs a marker pair")
        if self.kind is FieldKind.DATE and (not self.year_template or "{year}" not in self.year_template):
            raise ValueError(f"Date field {self.name!r} needs a year template containing '{{year}}'")


class MarkerTable:
    """Ordered, name-unique collection of field recipes."""

    def __init__(self, recipes: Sequence[FieldRecipe]) -> None:
        names = [recipe.name for recipe in recipes]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate field names in marker table: {duplicates}")
        self._recipes = tuple(recipes)

    def __iter__(self) -> Iterator[FieldRecipe]:
        return iter(self._recipes)

    def __len__(self) -> int:
        return len(self._recipes)

    def __getitem__(self, name: str) -> FieldRecipe:
        for recipe in self._recipes:
            if recipe.name == name:
                return recipe
        raise KeyError(name)

    @property
    def names(self) -> list[str]:
        return [recipe.name for recipe in self._recipes]

    def replace(self, overrides: Sequence[FieldRecipe]) -> MarkerTable:
        """Return a table where recipes with matching names are swapped out.

        Overrides with a new name are appended in the given order.
        """
        by_name = {recipe.name: recipe for recipe in overrides}
        merged = [by_name.pop(recipe.name, recipe) for recipe in self._recipes]
        merged.extend(recipe for recipe in overrides if recipe.name in by_name)
        return MarkerTable(merged)


DEFAULT_RECIPES: tuple[FieldRecipe, ...] = (
    FieldRecipe(
        name=CLEAR_SKY,
        kind=FieldKind.DECIMAL,
        marker=MarkerPair(CLEAR_SKY_LABEL, UNITS_CELL, SpanPolicy.FIRST_FIRST),
    ),
    FieldRecipe(
        name=REAL_SKY_MIN,
        kind=FieldKind.DECIMAL,
        marker=MarkerPair(REAL_SKY_LABEL, PLACEHOLDER_CELL, SpanPolicy.FIRST_FIRST),
    ),
    # min and max share anchors; max is the last units cell on the page
    FieldRecipe(
        name=REAL_SKY_MAX,
        kind=FieldKind.DECIMAL,
        marker=MarkerPair(PLACEHOLDER_CELL, UNITS_CELL, SpanPolicy.FIRST_LAST),
    ),
    FieldRecipe(
        name=FORECAST_DATE,
        kind=FieldKind.DATE,
        year_template=DEFAULT_YEAR_TEMPLATE,
    ),
)


def default_marker_table() -> MarkerTable:
    return MarkerTable(DEFAULT_RECIPES)


class FieldExtractor:
    """Applies one recipe to a document and reports the outcome."""

    def __init__(self, recipe: FieldRecipe) -> None:
        self.recipe = recipe
        self.logger = logger.bind(field=recipe.name)

    @property
    def name(self) -> str:
        return self.recipe.name

    def extract(self, document: str, reference_date: date) -> ExtractionResult:
        try:
            value = self._extract_value(document, reference_date)
        except ExtractionError as error:
            self.logger.warning("Field extraction failed", error_kind=error.kind.value, detail=error.detail)
            return ExtractionResult.failure(self.recipe.name, error)

        self.logger.debug("Field extracted", value=value)
        return ExtractionResult.success(self.recipe.name, value)

    def _extract_value(self, document: str, reference_date: date) -> float | str:
        if self.recipe.kind is FieldKind.DATE:
            assert self.recipe.year_template is not None
            return resolve_date(document, year_anchor(reference_date, self.recipe.year_template))

        assert self.recipe.marker is not None
        return parse_decimal(extract_fragment(document, self.recipe.marker))
