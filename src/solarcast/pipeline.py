"""
Extraction pipeline: one document in, one ``PipelineOutput`` out.
"""

from __future__ import annotations

import time
from datetime import date

import structlog

from solarcast.extractor.fields import FieldExtractor, FieldKind, MarkerTable, default_marker_table
from solarcast.extractor.models import ExtractionResult, PipelineOutput
from solarcast.observability.metrics import METRICS

logger = structlog.get_logger(__name__)


def scale_home_value(result: ExtractionResult, power_kw: float) -> float | None:
    """Scale a per-kWp value to the installed power.

    Failed extractions stay ``None``.
    """
    if not result.ok or not isinstance(result.value, float):
        return None
    return result.value * power_kw


class ExtractionPipeline:
    """Runs every field recipe against a document, in table order.

    A failure in one field never stops the others; each field is reported
    in the output whatever its outcome.
    """

    def __init__(self, table: MarkerTable | None = None) -> None:
        self.table = table or default_marker_table()
        self._extractors: list[FieldExtractor] = [FieldExtractor(recipe) for recipe in self.table]
        self.logger = logger.bind(component="ExtractionPipeline")

    def run(self, document: str, power_kw: float, reference_date: date) -> PipelineOutput:
        if power_kw < 0:
            raise ValueError("power_kw must not be negative")

        start = time.perf_counter()
        results: dict[str, ExtractionResult] = {}
        home: dict[str, float | None] = {}

        for extractor in self._extractors:
            result = extractor.extract(document, reference_date)
            results[extractor.name] = result
            if extractor.recipe.kind is FieldKind.DECIMAL:
                home[extractor.name] = scale_home_value(result, power_kw)

            if "fields_total" in METRICS:
                METRICS["fields_total"].labels(field=extractor.name, outcome="ok" if result.ok else "failed").inc()

        output = PipelineOutput(results=results, home=home, power_kw=power_kw, reference_date=reference_date)

        if "extraction_duration_seconds" in METRICS:
            METRICS["extraction_duration_seconds"].observe(time.perf_counter() - start)

        self.logger.info(
            "Extraction finished",
            fields=len(results),
            failed=[result.field_name for result in output.failures],
            reference_date=reference_date.isoformat(),
        )
        return output
