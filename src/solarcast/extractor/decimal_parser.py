"""
Reconstruct a decimal-comma number from a fragment of table markup.

The forecast page renders values such as ``1,23`` wrapped in cell markup, so
a fragment looks like ``'...xl>1,23<td...'``. Only the single integer digit
right before the first comma and the two digits right after it are
significant; everything else is noise.
"""

from __future__ import annotations

from enum import Enum

from .models import ErrorKind, ExtractionError

DECIMAL_SEPARATOR = ","
FRACTION_DIGITS = 2
_DIGITS = frozenset("0123456789")


class _State(Enum):
    INTEGER = "integer"
    SEPARATOR = "separator"
    FRACTION = "fraction"
    DONE = "done"


def parse_decimal(fragment: str) -> float:
    """Parse ``fragment`` into a value with two fractional digits.

    Raises:
        ExtractionError: ``DecimalParseMalformed`` if there is no comma, no
            digit before it, or fewer than two digits after it.
    """
    split_at = fragment.find(DECIMAL_SEPARATOR)
    if split_at == -1:
        raise ExtractionError(ErrorKind.DECIMAL_PARSE_MALFORMED, "no decimal comma in fragment")

    state = _State.INTEGER
    position = split_at - 1
    integer_digit = ""
    fraction = ""

    while state is not _State.DONE:
        if state is _State.INTEGER:
            if position < 0 or fragment[position] not in _DIGITS:
                raise ExtractionError(ErrorKind.DECIMAL_PARSE_MALFORMED, "no integer digit before the comma")
            integer_digit = fragment[position]
            position += 1
            state = _State.SEPARATOR
        elif state is _State.SEPARATOR:
            # position always lands on the comma found above
            position += 1
            state = _State.FRACTION
        else:
            if position >= len(fragment) or fragment[position] not in _DIGITS:
                raise ExtractionError(
                    ErrorKind.DECIMAL_PARSE_MALFORMED,
                    f"expected {FRACTION_DIGITS} fraction digits, got {fraction!r}",
                )
            fraction += fragment[position]
            position += 1
            if len(fraction) == FRACTION_DIGITS:
                state = _State.DONE

    return float(f"{integer_digit}.{fraction}")
