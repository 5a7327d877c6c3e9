"""
Unit tests for the named field recipes.
"""

import pytest

from solarcast.extractor.fields import (
    CLEAR_SKY,
    DEFAULT_RECIPES,
    FORECAST_DATE,
    REAL_SKY_MAX,
    REAL_SKY_MIN,
    FieldExtractor,
    FieldKind,
    FieldRecipe,
    MarkerTable,
    default_marker_table,
)
from solarcast.extractor.markers import MarkerPair, SpanPolicy
from solarcast.extractor.models import ErrorKind


@pytest.mark.unit
class TestDefaultRecipes:
    """Test the built-in recipes against a page shaped like the real one."""

    @pytest.mark.parametrize(
        "name, expected",
        [
            (CLEAR_SKY, 2.46),
            (REAL_SKY_MIN, 1.23),
            (REAL_SKY_MAX, 1.87),
            (FORECAST_DATE, "15.03.2024"),
        ],
    )
    def test_extracts_each_field(self, forecast_page, reference_date, name, expected):
        result = FieldExtractor(default_marker_table()[name]).extract(forecast_page, reference_date)

        assert result.ok
        assert result.field_name == name
        assert result.value == expected
        assert result.error_kind is None

    def test_min_and_max_share_anchors(self):
        table = default_marker_table()
        min_marker = table[REAL_SKY_MIN].marker
        max_marker = table[REAL_SKY_MAX].marker

        assert min_marker.end == max_marker.start
        assert max_marker.policy is SpanPolicy.FIRST_LAST
        assert table[CLEAR_SKY].marker.end == max_marker.end

    def test_missing_real_sky_label(self, page_factory, reference_date):
        page = page_factory(include_real_sky=False)
        result = FieldExtractor(default_marker_table()[REAL_SKY_MIN]).extract(page, reference_date)

        assert not result.ok
        assert result.value is None
        assert result.error_kind is ErrorKind.MARKER_NOT_FOUND

    def test_date_anchor_follows_reference_year(self, forecast_page):
        from datetime import date

        result = FieldExtractor(default_marker_table()[FORECAST_DATE]).extract(forecast_page, date(2025, 1, 2))

        assert not result.ok
        assert result.error_kind is ErrorKind.DATE_MARKER_NOT_FOUND

    def test_malformed_value(self, page_factory, reference_date):
        page = page_factory(clear_sky="n/a")
        result = FieldExtractor(default_marker_table()[CLEAR_SKY]).extract(page, reference_date)

        assert result.error_kind is ErrorKind.DECIMAL_PARSE_MALFORMED


@pytest.mark.unit
class TestMarkerTable:
    def test_default_order(self):
        assert default_marker_table().names == [CLEAR_SKY, REAL_SKY_MIN, REAL_SKY_MAX, FORECAST_DATE]
        assert len(default_marker_table()) == len(DEFAULT_RECIPES)

    def test_unknown_name(self):
        with pytest.raises(KeyError):
            default_marker_table()["sunshineHours"]

    def test_duplicate_names_rejected(self):
        recipe = DEFAULT_RECIPES[0]
        with pytest.raises(ValueError, match="Duplicate"):
            MarkerTable([recipe, recipe])

    def test_replace_keeps_position_and_appends_new(self):
        override = FieldRecipe(REAL_SKY_MIN, FieldKind.DECIMAL, MarkerPair("min:</td>", "<td>-</td>"))
        extra = FieldRecipe("tomorrow", FieldKind.DATE, year_template="/{year}<")

        table = default_marker_table().replace([extra, override])

        assert table.names == [CLEAR_SKY, REAL_SKY_MIN, REAL_SKY_MAX, FORECAST_DATE, "tomorrow"]
        assert table[REAL_SKY_MIN].marker.start == "min:</td>"


@pytest.mark.unit
class TestFieldRecipe:
    def test_decimal_needs_marker(self):
        with pytest.raises(ValueError):
            FieldRecipe("x", FieldKind.DECIMAL)

    def test_date_needs_year_placeholder(self):
        with pytest.raises(ValueError):
            FieldRecipe("x", FieldKind.DATE, year_template=".2024</td>")

    def test_name_required(self):
        with pytest.raises(ValueError):
            FieldRecipe("", FieldKind.DATE, year_template=".{year}</td>")
