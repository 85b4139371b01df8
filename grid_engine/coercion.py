"""
Value coercion - converts raw cell input to typed values and back.

decode() and encode() are pure functions of (value, column). Input that cannot
be parsed for the column's type is returned unchanged so form validation can
flag it; nothing here substitutes a default for bad input.
"""

import json
import math
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any, List, Optional

from grid_engine.data_types import (
    CURRENT_TIMESTAMP,
    FLOAT_PATTERN,
    INTEGER_PATTERN,
    NULL_LITERALS,
    NUMERIC_FAMILIES,
    TypeFamily,
)
from grid_engine.models import ColumnMetadata

FALSE_LITERALS = frozenset({"0", "false", "FALSE"})


def _scale_quantum(scale: int) -> Decimal:
    return Decimal(1).scaleb(-scale)


def _decode_integer(text: str) -> Any:
    candidate = text.strip()
    if not INTEGER_PATTERN.fullmatch(candidate):
        return text
    return int(candidate)


def _decode_float(text: str) -> Any:
    candidate = text.strip()
    if not FLOAT_PATTERN.fullmatch(candidate):
        return text
    number = float(candidate)
    if not math.isfinite(number):
        return text
    return number


def _decode_decimal(text: str, column: ColumnMetadata) -> Any:
    if column.numeric_precision is None or column.numeric_scale is None:
        return _decode_float(text)

    candidate = text.strip()
    if not FLOAT_PATTERN.fullmatch(candidate):
        return text
    # Room for every digit the column can hold plus the rounding digit
    with localcontext() as context:
        context.prec = max(context.prec, column.numeric_precision + 1)
        try:
            return Decimal(candidate).quantize(
                _scale_quantum(column.numeric_scale), rounding=ROUND_HALF_UP
            )
        except InvalidOperation:
            return text


def _decode_temporal(text: str, family: TypeFamily) -> Any:
    candidate = text.strip()
    try:
        if family is TypeFamily.DATE:
            return date.fromisoformat(candidate).isoformat()
        if family is TypeFamily.TIME:
            return time.fromisoformat(candidate).isoformat()
        if candidate.upper() == CURRENT_TIMESTAMP:
            return CURRENT_TIMESTAMP
        return datetime.fromisoformat(candidate).isoformat(sep=" ")
    except ValueError:
        return text


def decode(raw: Any, column: ColumnMetadata) -> Any:
    """
    Convert raw user input into the value stored for a column.

    Args:
        raw: Text as typed by the user (non-string values are already typed
             and returned unchanged)
        column: Column the value belongs to

    Returns:
        Typed value, None for empty input on nullable columns, or the raw
        string when it cannot be parsed for the column's type
    """
    if raw is None or raw == "":
        return None if column.is_nullable else ""
    if not isinstance(raw, str):
        return raw

    family = column.family

    if family is TypeFamily.INTEGER:
        return _decode_integer(raw)
    if family is TypeFamily.DECIMAL:
        return _decode_decimal(raw, column)
    if family is TypeFamily.FLOAT:
        return _decode_float(raw)
    if family is TypeFamily.BOOLEAN:
        return raw not in FALSE_LITERALS
    if family in (TypeFamily.DATE, TypeFamily.TIME, TypeFamily.TIMESTAMP):
        return _decode_temporal(raw, family)

    return raw


def encode(value: Any, column: ColumnMetadata, now: Optional[datetime] = None) -> str:
    """
    Format a stored value for display in an editable cell.

    A CURRENT_TIMESTAMP sentinel on a timestamp column is shown as the current
    time; the sentinel itself is left untouched in the record.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, (date, time)):
        return value.isoformat()
    if isinstance(value, (dict, list)):
        return json.dumps(value)

    text = str(value)
    if column.family is TypeFamily.TIMESTAMP and text.upper() == CURRENT_TIMESTAMP:
        moment = now or datetime.now()
        return moment.replace(microsecond=0).isoformat(sep=" ")
    return text


def decode_list(raw: Optional[str], column: ColumnMetadata) -> List[Any]:
    """
    Decode comma-separated input for IN / NOT IN filters.

    Empty pieces are dropped. Pieces that fail numeric parsing on a numeric
    column are kept as trimmed strings so the caller can flag them.
    """
    if not raw:
        return []

    values = []
    for piece in raw.split(","):
        trimmed = piece.strip()
        if trimmed == "":
            continue
        values.append(decode(trimmed, column))
    return values


def is_invalid_value(value: Any, column: ColumnMetadata) -> bool:
    """True for a numeric column value that is still an unparsed string."""
    return column.family in NUMERIC_FAMILIES and isinstance(value, str)


def render_cell(value: Any) -> str:
    """Read-only display text for a cell."""
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def zero_value(column: ColumnMetadata, now: Optional[datetime] = None) -> Any:
    """Type-appropriate empty value for a non-nullable column."""
    moment = (now or datetime.now()).replace(microsecond=0)
    family = column.family

    if family is TypeFamily.INTEGER:
        return 0
    if family is TypeFamily.DECIMAL:
        if column.numeric_scale is not None and column.numeric_precision is not None:
            return Decimal(0).quantize(_scale_quantum(column.numeric_scale))
        return 0.0
    if family is TypeFamily.FLOAT:
        return 0.0
    if family is TypeFamily.BOOLEAN:
        return False
    if family is TypeFamily.DATE:
        return moment.date().isoformat()
    if family is TypeFamily.TIME:
        return moment.time().isoformat()
    if family is TypeFamily.TIMESTAMP:
        return moment.isoformat(sep=" ")
    return ""


def _strip_default_literal(default: str) -> str:
    # Server-side defaults may be quoted SQL literals, e.g. 'active'
    text = default.strip()
    if len(text) >= 2 and text[0] == text[-1] == "'":
        return text[1:-1].replace("''", "'")
    return text


def initial_value(column: ColumnMetadata, now: Optional[datetime] = None) -> Any:
    """
    Starting value for a cell of a freshly added row.

    Auto-increment columns are left for the server to fill. Otherwise the
    column default wins, then a zero value for non-nullable columns, then None.
    """
    if column.auto_increment:
        return None

    default = column.column_default
    if default is not None and default.strip() not in NULL_LITERALS and default.strip():
        return decode(_strip_default_literal(default), column)

    if not column.is_nullable:
        return zero_value(column, now)
    return None
