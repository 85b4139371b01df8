"""Pydantic schemas for request/response validation."""

from app.schemas.catalog import DataTypeInfo, DefaultValueCheck, DefaultValueResult, OperatorInfo
from app.schemas.grid import (
    CellUpdate,
    DeleteStrategyInfo,
    EditCancel,
    EditCellUpdate,
    EditTarget,
    FilterState,
    FilterUpdate,
    GridCreate,
    GridRow,
    GridState,
    MutationResult,
    RowValues,
    QueryState,
    QueryUpdate,
    SelectionUpdate,
    SortState,
    SortUpdate,
)

__all__ = [
    "DataTypeInfo",
    "DefaultValueCheck",
    "DefaultValueResult",
    "OperatorInfo",
    "CellUpdate",
    "DeleteStrategyInfo",
    "EditCancel",
    "EditCellUpdate",
    "EditTarget",
    "FilterState",
    "FilterUpdate",
    "GridCreate",
    "GridRow",
    "GridState",
    "MutationResult",
    "RowValues",
    "QueryState",
    "QueryUpdate",
    "SelectionUpdate",
    "SortState",
    "SortUpdate",
]
