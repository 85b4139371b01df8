"""
Data type catalog - maps column data types to filter operators and input rules.

Every lookup here is a pure function of the data type (and, for a few helpers,
the column's structural parameters). The UI layer asks the catalog which
operators to offer, which input control to render and how a default value must
be written, instead of branching on type strings itself.
"""

import enum
import re
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional, Tuple


class DataType(enum.Enum):
    """Column data types understood by the record store."""

    VARCHAR = "VARCHAR"
    CHAR = "CHAR"
    TEXT = "TEXT"
    INT = "INT"
    INTEGER = "INTEGER"
    SMALLINT = "SMALLINT"
    BIGINT = "BIGINT"
    DECIMAL = "DECIMAL"
    NUMERIC = "NUMERIC"
    FLOAT = "FLOAT"
    REAL = "REAL"
    DOUBLE = "DOUBLE"
    BOOLEAN = "BOOLEAN"
    DATE = "DATE"
    TIME = "TIME"
    TIMESTAMP = "TIMESTAMP"


class TypeFamily(enum.Enum):
    """Groups of data types that share coercion and filtering rules."""

    CHARACTER = "character"
    TEXT = "text"
    INTEGER = "integer"
    DECIMAL = "decimal"
    FLOAT = "float"
    BOOLEAN = "boolean"
    DATE = "date"
    TIME = "time"
    TIMESTAMP = "timestamp"
    UNKNOWN = "unknown"


class FilterOperator(enum.Enum):
    """Filter operators accepted by the advanced search endpoint."""

    EQUALS = "EQUALS"
    NOT_EQUALS = "NOT_EQUALS"

    IS_NULL = "IS_NULL"
    IS_NOT_NULL = "IS_NOT_NULL"

    GREATER_THAN = "GREATER_THAN"
    GREATER_THAN_OR_EQUAL = "GREATER_THAN_OR_EQUAL"
    LESS_THAN = "LESS_THAN"
    LESS_THAN_OR_EQUAL = "LESS_THAN_OR_EQUAL"
    BETWEEN = "BETWEEN"

    LIKE = "LIKE"
    NOT_LIKE = "NOT_LIKE"
    STARTS_WITH = "STARTS_WITH"
    ENDS_WITH = "ENDS_WITH"
    CONTAINS = "CONTAINS"

    IN = "IN"
    NOT_IN = "NOT_IN"


class ValueShape(enum.Enum):
    """Shape of the value payload an operator needs."""

    NONE = "none"
    SINGLE = "single"
    RANGE = "range"
    LIST = "list"


class InputKind(enum.Enum):
    """Input control used to edit a value of a given type."""

    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    TIME = "time"
    TIMESTAMP = "timestamp"


# Type strings reported by some databases that mean one of ours
DATA_TYPE_ALIASES = {
    "CHARACTER VARYING": DataType.VARCHAR,
    "CHARACTER": DataType.CHAR,
    "INT4": DataType.INTEGER,
    "INT2": DataType.SMALLINT,
    "INT8": DataType.BIGINT,
    "DOUBLE PRECISION": DataType.DOUBLE,
    "FLOAT8": DataType.DOUBLE,
    "FLOAT4": DataType.REAL,
    "BOOL": DataType.BOOLEAN,
    "TINYINT": DataType.BOOLEAN,
    "DATETIME": DataType.TIMESTAMP,
}

TYPE_FAMILIES = {
    DataType.VARCHAR: TypeFamily.CHARACTER,
    DataType.CHAR: TypeFamily.CHARACTER,
    DataType.TEXT: TypeFamily.TEXT,
    DataType.INT: TypeFamily.INTEGER,
    DataType.INTEGER: TypeFamily.INTEGER,
    DataType.SMALLINT: TypeFamily.INTEGER,
    DataType.BIGINT: TypeFamily.INTEGER,
    DataType.DECIMAL: TypeFamily.DECIMAL,
    DataType.NUMERIC: TypeFamily.DECIMAL,
    DataType.FLOAT: TypeFamily.FLOAT,
    DataType.REAL: TypeFamily.FLOAT,
    DataType.DOUBLE: TypeFamily.FLOAT,
    DataType.BOOLEAN: TypeFamily.BOOLEAN,
    DataType.DATE: TypeFamily.DATE,
    DataType.TIME: TypeFamily.TIME,
    DataType.TIMESTAMP: TypeFamily.TIMESTAMP,
}

NUMERIC_FAMILIES = frozenset(
    {TypeFamily.INTEGER, TypeFamily.DECIMAL, TypeFamily.FLOAT}
)
TEMPORAL_FAMILIES = frozenset({TypeFamily.DATE, TypeFamily.TIME, TypeFamily.TIMESTAMP})
STRING_FAMILIES = frozenset({TypeFamily.CHARACTER, TypeFamily.TEXT})

_BASE_OPERATORS = (
    FilterOperator.EQUALS,
    FilterOperator.NOT_EQUALS,
    FilterOperator.IS_NULL,
    FilterOperator.IS_NOT_NULL,
)
_MEMBERSHIP_OPERATORS = (FilterOperator.IN, FilterOperator.NOT_IN)

STRING_OPERATORS = _BASE_OPERATORS + (
    FilterOperator.LIKE,
    FilterOperator.NOT_LIKE,
    FilterOperator.STARTS_WITH,
    FilterOperator.ENDS_WITH,
    FilterOperator.CONTAINS,
) + _MEMBERSHIP_OPERATORS

ORDERED_OPERATORS = _BASE_OPERATORS + (
    FilterOperator.GREATER_THAN,
    FilterOperator.GREATER_THAN_OR_EQUAL,
    FilterOperator.LESS_THAN,
    FilterOperator.LESS_THAN_OR_EQUAL,
    FilterOperator.BETWEEN,
) + _MEMBERSHIP_OPERATORS

BOOLEAN_OPERATORS = _BASE_OPERATORS

FALLBACK_OPERATORS = _BASE_OPERATORS + _MEMBERSHIP_OPERATORS

CASE_SENSITIVE_OPERATORS = frozenset(
    {
        FilterOperator.EQUALS,
        FilterOperator.NOT_EQUALS,
        FilterOperator.LIKE,
        FilterOperator.NOT_LIKE,
        FilterOperator.STARTS_WITH,
        FilterOperator.ENDS_WITH,
        FilterOperator.CONTAINS,
    }
)

VALUE_SHAPES = {
    FilterOperator.IS_NULL: ValueShape.NONE,
    FilterOperator.IS_NOT_NULL: ValueShape.NONE,
    FilterOperator.BETWEEN: ValueShape.RANGE,
    FilterOperator.IN: ValueShape.LIST,
    FilterOperator.NOT_IN: ValueShape.LIST,
}

DEFAULT_VALUE_PATTERNS = {
    TypeFamily.CHARACTER: "Any string value",
    TypeFamily.INTEGER: "Integer number (e.g., 123, -456)",
    TypeFamily.DECIMAL: "Decimal number (e.g., 123.45)",
    TypeFamily.FLOAT: "Floating point number (e.g., 123.45, 1.23e-4)",
    TypeFamily.BOOLEAN: "0, 1, true, false",
    TypeFamily.DATE: "YYYY-MM-DD (e.g., 2023-12-25)",
    TypeFamily.TIME: "HH:mm:ss (e.g., 14:30:00)",
    TypeFamily.TIMESTAMP: "YYYY-MM-DD HH:mm:ss or CURRENT_TIMESTAMP",
    TypeFamily.TEXT: "Cannot have default value",
}

INPUT_KINDS = {
    TypeFamily.INTEGER: InputKind.NUMBER,
    TypeFamily.DECIMAL: InputKind.NUMBER,
    TypeFamily.FLOAT: InputKind.NUMBER,
    TypeFamily.BOOLEAN: InputKind.BOOLEAN,
    TypeFamily.DATE: InputKind.DATE,
    TypeFamily.TIME: InputKind.TIME,
    TypeFamily.TIMESTAMP: InputKind.TIMESTAMP,
}

CURRENT_TIMESTAMP = "CURRENT_TIMESTAMP"
NULL_LITERALS = ("NULL", "null")
BOOLEAN_LITERALS = ("0", "1", "true", "false", "TRUE", "FALSE")

INTEGER_PATTERN = re.compile(r"^-?\d+$", re.ASCII)
_DECIMAL_PATTERN = re.compile(r"^-?\d+(\.\d+)?$", re.ASCII)
FLOAT_PATTERN = re.compile(r"^-?(\d+(\.\d*)?|\.\d+)([eE][-+]?\d+)?$", re.ASCII)


def normalize_data_type(data_type: Any) -> Optional[DataType]:
    """Return the DataType for a type string, or None if unrecognized."""
    if isinstance(data_type, DataType):
        return data_type
    if data_type is None:
        return None

    name = str(data_type).strip().upper()
    # Drop structural suffixes like VARCHAR(255) or DECIMAL(10,2)
    name = re.sub(r"\s*\(.*\)\s*$", "", name)

    try:
        return DataType(name)
    except ValueError:
        return DATA_TYPE_ALIASES.get(name)


def family_of(data_type: Any) -> TypeFamily:
    """Return the type family for a data type string."""
    kind = normalize_data_type(data_type)
    if kind is None:
        return TypeFamily.UNKNOWN
    return TYPE_FAMILIES[kind]


def operators_for(data_type: Any) -> Tuple[FilterOperator, ...]:
    """
    Get the filter operators valid for a data type.

    Args:
        data_type: Column data type (enum member or type string)

    Returns:
        Tuple of operators in display order
    """
    family = family_of(data_type)

    if family in STRING_FAMILIES:
        return STRING_OPERATORS
    if family in NUMERIC_FAMILIES or family in TEMPORAL_FAMILIES:
        return ORDERED_OPERATORS
    if family is TypeFamily.BOOLEAN:
        return BOOLEAN_OPERATORS
    return FALLBACK_OPERATORS


def is_operator_valid(data_type: Any, operator: FilterOperator) -> bool:
    return operator in operators_for(data_type)


def value_shape(operator: FilterOperator) -> ValueShape:
    """Get the payload shape an operator requires."""
    return VALUE_SHAPES.get(operator, ValueShape.SINGLE)


def requires_value(operator: FilterOperator) -> bool:
    """IS_NULL and IS_NOT_NULL are the only operators without a payload."""
    return value_shape(operator) is not ValueShape.NONE


def supports_case_sensitivity(data_type: Any, operator: FilterOperator) -> bool:
    """Case sensitivity applies to equality and pattern operators on string columns."""
    return (
        family_of(data_type) in STRING_FAMILIES
        and operator in CASE_SENSITIVE_OPERATORS
    )


def default_value_pattern(data_type: Any) -> str:
    """Human-readable description of the accepted default value syntax."""
    return DEFAULT_VALUE_PATTERNS.get(family_of(data_type), "Any compatible value")


def input_kind(data_type: Any) -> InputKind:
    return INPUT_KINDS.get(family_of(data_type), InputKind.TEXT)


def structural_parameters(data_type: Any) -> Dict[str, bool]:
    """
    Describe which structural parameters a data type takes.

    VARCHAR/CHAR require a character length; DECIMAL/NUMERIC require precision
    and scale. Every other type forbids all three.
    """
    family = family_of(data_type)
    kind = normalize_data_type(data_type)
    takes_length = family is TypeFamily.CHARACTER
    takes_precision = family is TypeFamily.DECIMAL

    return {
        "requires_length": takes_length,
        "requires_precision": takes_precision,
        "requires_scale": takes_precision,
        # Unrecognized types are passed through without structural checks
        "forbids_length": kind is not None and not takes_length,
        "forbids_precision": kind is not None and not takes_precision,
    }


def format_column_type(column: Any) -> str:
    """Format a column's type for display, e.g. VARCHAR(255) or DECIMAL(10, 2)."""
    label = str(column.data_type).upper()
    if column.character_max_length:
        label += f"({column.character_max_length})"
    elif column.numeric_precision:
        scale = f", {column.numeric_scale}" if column.numeric_scale else ""
        label += f"({column.numeric_precision}{scale})"
    return label


def _parses(parser, value: str) -> bool:
    try:
        parser(value)
    except ValueError:
        return False
    return True


def validate_default_value(
    data_type: Any,
    default_value: Optional[str],
    character_max_length: Optional[int] = None,
    numeric_precision: Optional[int] = None,
    numeric_scale: Optional[int] = None,
    is_unique: bool = False,
) -> List[str]:
    """
    Check a proposed column default against the rules for its data type.

    Args:
        data_type: Column data type
        default_value: Default value as typed by the user
        character_max_length: Declared VARCHAR/CHAR length
        numeric_precision: Declared DECIMAL/NUMERIC precision
        numeric_scale: Declared DECIMAL/NUMERIC scale
        is_unique: Whether the column has a unique constraint

    Returns:
        List of error messages (empty if the default is acceptable)
    """
    if default_value is None or default_value.strip() == "":
        return []
    if default_value in NULL_LITERALS:
        return []

    errors: List[str] = []
    family = family_of(data_type)

    if is_unique:
        errors.append("Unique columns should have NULL default value or no default value")

    if family is TypeFamily.TEXT:
        errors.append("TEXT columns cannot have default values")
    elif family is TypeFamily.CHARACTER:
        if character_max_length and len(default_value) > character_max_length:
            errors.append(
                f"String value exceeds maximum length of {character_max_length} characters"
            )
    elif family is TypeFamily.INTEGER:
        if not INTEGER_PATTERN.fullmatch(default_value):
            errors.append("Default value must be a valid integer (e.g., 123, -456)")
    elif family is TypeFamily.DECIMAL:
        if not _DECIMAL_PATTERN.fullmatch(default_value):
            errors.append(
                "Default value must be a valid decimal number (e.g., 123.45, -67.89)"
            )
        elif numeric_precision and numeric_scale is not None:
            int_part, _, dec_part = default_value.partition(".")
            int_digits = len(int_part.lstrip("-"))
            if int_digits > numeric_precision - numeric_scale or len(dec_part) > numeric_scale:
                errors.append(
                    f"Decimal value exceeds precision ({numeric_precision}) "
                    f"or scale ({numeric_scale})"
                )
    elif family is TypeFamily.FLOAT:
        if not FLOAT_PATTERN.fullmatch(default_value):
            errors.append(
                "Default value must be a valid floating point number (e.g., 123.45, 1.23e-4)"
            )
    elif family is TypeFamily.BOOLEAN:
        if default_value not in BOOLEAN_LITERALS:
            errors.append("Default value must be 0, 1, true or false")
    elif family is TypeFamily.DATE:
        if not _parses(date.fromisoformat, default_value):
            errors.append("Default value must be a date in YYYY-MM-DD format")
    elif family is TypeFamily.TIME:
        if not _parses(time.fromisoformat, default_value):
            errors.append("Default value must be a time in HH:mm:ss format")
    elif family is TypeFamily.TIMESTAMP:
        if default_value.upper() != CURRENT_TIMESTAMP and not _parses(
            datetime.fromisoformat, default_value
        ):
            errors.append(
                "Default value must be YYYY-MM-DD HH:mm:ss or CURRENT_TIMESTAMP"
            )

    return errors
