"""
Data models for marker-based field extraction.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

FieldValue = float | str | None


class ErrorKind(str, Enum):
    """Reasons a single field extraction can fail."""

    MARKER_NOT_FOUND = "MarkerNotFound"
    MARKER_ORDER_INVALID = "MarkerOrderInvalid"
    DECIMAL_PARSE_MALFORMED = "DecimalParseMalformed"
    DATE_MARKER_NOT_FOUND = "DateMarkerNotFound"
    DATE_WINDOW_MALFORMED = "DateWindowMalformed"


class ExtractionError(Exception):
    """Raised by the extraction primitives; caught at the field boundary."""

    def __init__(self, kind: ErrorKind, detail: str = "") -> None:
        self.kind = kind
        self.detail = detail
        super().__init__(f"{kind.value}: {detail}" if detail else kind.value)


@dataclass(slots=True, frozen=True)
class ExtractionResult:
    """Outcome of one field extraction."""

    field_name: str
    value: FieldValue
    ok: bool
    error_kind: ErrorKind | None = None
    detail: str | None = None

    def __post_init__(self) -> None:
        if self.ok and self.error_kind is not None:
            raise ValueError("A successful result cannot carry an error kind")
        if not self.ok and (self.error_kind is None or self.value is not None):
            raise ValueError("A failed result needs an error kind and no value")

    @classmethod
    def success(cls, field_name: str, value: FieldValue) -> ExtractionResult:
        return cls(field_name=field_name, value=value, ok=True)

    @classmethod
    def failure(cls, field_name: str, error: ExtractionError) -> ExtractionResult:
        return cls(
            field_name=field_name,
            value=None,
            ok=False,
            error_kind=error.kind,
            detail=error.detail or None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field_name,
            "value": self.value,
            "ok": self.ok,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "detail": self.detail,
        }


@dataclass(slots=True, frozen=True)
class PipelineOutput:
    """All field results of one run plus the power-scaled home values.

    ``results`` and ``home`` keep insertion order: the order the fields
    were extracted in.
    """

    results: Mapping[str, ExtractionResult]
    home: Mapping[str, float | None]
    power_kw: float
    reference_date: date

    def __post_init__(self) -> None:
        object.__setattr__(self, "results", MappingProxyType(dict(self.results)))
        object.__setattr__(self, "home", MappingProxyType(dict(self.home)))

    @property
    def ok(self) -> bool:
        return all(result.ok for result in self.results.values())

    @property
    def failures(self) -> list[ExtractionResult]:
        return [result for result in self.results.values() if not result.ok]

    def value(self, field_name: str) -> FieldValue:
        return self.results[field_name].value

    def to_states(self, prefix: str = "forecast") -> dict[str, FieldValue]:
        """Flatten into state ids as written by the persistence layer.

        Failed fields map to ``None`` so that stale values get overwritten.
        """
        states: dict[str, FieldValue] = {}
        for name, result in self.results.items():
            states[f"{prefix}.{name}"] = result.value
        for name, value in self.home.items():
            states[f"{prefix}.home.{name}"] = value
        return states

    def to_dict(self) -> dict[str, Any]:
        return {
            "reference_date": self.reference_date.isoformat(),
            "power_kw": self.power_kw,
            "ok": self.ok,
            "fields": {name: result.to_dict() for name, result in self.results.items()},
            "home": dict(self.home),
        }
