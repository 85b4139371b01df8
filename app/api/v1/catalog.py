"""Data type catalog endpoints."""

from fastapi import APIRouter

from app.schemas.catalog import DataTypeInfo, DefaultValueCheck, DefaultValueResult, OperatorInfo
from grid_engine import data_types

router = APIRouter(prefix="/catalog", tags=["catalog"])


@router.get("/types/{data_type}", response_model=DataTypeInfo)
async def get_data_type(data_type: str) -> DataTypeInfo:
    """
    Describe a data type: its filter operators, input kind and structure.

    Unrecognized types are answered with the fallback operator set.
    """
    kind = data_types.normalize_data_type(data_type)
    operators = [
        OperatorInfo(
            operator=operator,
            value_shape=data_types.value_shape(operator),
            requires_value=data_types.requires_value(operator),
            supports_case_sensitivity=data_types.supports_case_sensitivity(data_type, operator),
        )
        for operator in data_types.operators_for(data_type)
    ]
    return DataTypeInfo(
        data_type=data_type,
        normalized=kind.value if kind else None,
        family=data_types.family_of(data_type),
        input_kind=data_types.input_kind(data_type),
        default_value_pattern=data_types.default_value_pattern(data_type),
        operators=operators,
        structural_parameters=data_types.structural_parameters(data_type),
    )


@router.post("/default-values/validate", response_model=DefaultValueResult)
async def validate_default_value(check: DefaultValueCheck) -> DefaultValueResult:
    """Check a proposed column default against its data type."""
    errors = data_types.validate_default_value(
        check.data_type,
        check.default_value,
        character_max_length=check.character_max_length,
        numeric_precision=check.numeric_precision,
        numeric_scale=check.numeric_scale,
        is_unique=check.is_unique,
    )
    return DefaultValueResult(valid=not errors, errors=errors)
