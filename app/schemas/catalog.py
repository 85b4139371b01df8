"""Data type catalog schemas."""

from typing import Dict, List, Optional

from grid_engine.data_types import FilterOperator, InputKind, TypeFamily, ValueShape
from grid_engine.models import WireModel


class OperatorInfo(WireModel):
    """Filter operator and the payload it takes."""

    operator: FilterOperator
    value_shape: ValueShape
    requires_value: bool
    supports_case_sensitivity: bool


class DataTypeInfo(WireModel):
    """Catalog entry for one data type."""

    data_type: str
    normalized: Optional[str] = None
    family: TypeFamily
    input_kind: InputKind
    default_value_pattern: str
    operators: List[OperatorInfo]
    structural_parameters: Dict[str, bool]


class DefaultValueCheck(WireModel):
    """Proposed default value for a column."""

    data_type: str
    default_value: Optional[str] = None
    character_max_length: Optional[int] = None
    numeric_precision: Optional[int] = None
    numeric_scale: Optional[int] = None
    is_unique: bool = False


class DefaultValueResult(WireModel):
    """Validation errors for a proposed default value."""

    valid: bool
    errors: List[str]
