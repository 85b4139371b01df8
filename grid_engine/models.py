"""Column metadata and search request models shared across the engine."""

import enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from grid_engine.data_types import (
    DataType,
    FilterOperator,
    TypeFamily,
    family_of,
    normalize_data_type,
)

Record = Dict[str, Any]


class ColumnRole(enum.Enum):
    """Key role of a column within its table."""

    STANDARD = "STANDARD"
    PRIMARY_KEY = "PRIMARY_KEY"
    FOREIGN_KEY = "FOREIGN_KEY"
    PRIMARY_KEY_FOREIGN_KEY = "PRIMARY_KEY_FOREIGN_KEY"


class SortDirection(enum.Enum):
    """Sort direction enumeration."""

    ASC = "ASC"
    DESC = "DESC"


class ObjectKind(enum.Enum):
    """Kind of relation a grid is bound to."""

    TABLE = "table"
    VIEW = "view"


class WireModel(BaseModel):
    """Base model using the record store's camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ColumnMetadata(WireModel):
    """Metadata for one column of a table or view."""

    model_config = ConfigDict(frozen=True)

    column_name: str
    data_type: str
    ordinal_position: Optional[int] = None
    is_nullable: bool = True
    is_unique: bool = False
    auto_increment: bool = False
    character_max_length: Optional[int] = None
    numeric_precision: Optional[int] = None
    numeric_scale: Optional[int] = None
    column_default: Optional[str] = None
    column_type: ColumnRole = ColumnRole.STANDARD
    referenced_schema_name: Optional[str] = None
    referenced_table_name: Optional[str] = None
    referenced_column_name: Optional[str] = None

    @field_validator("data_type", mode="before")
    @classmethod
    def _data_type_as_string(cls, value: Any) -> Any:
        if isinstance(value, DataType):
            return value.value
        return value

    @model_validator(mode="after")
    def _check_structural_parameters(self) -> "ColumnMetadata":
        # Unrecognized type strings are accepted as-is
        if normalize_data_type(self.data_type) is None:
            return self

        family = family_of(self.data_type)
        if self.character_max_length is not None and family is not TypeFamily.CHARACTER:
            raise ValueError(
                f"characterMaxLength is only valid for VARCHAR/CHAR columns "
                f"({self.column_name} is {self.data_type})"
            )
        if family is not TypeFamily.DECIMAL and (
            self.numeric_precision is not None or self.numeric_scale is not None
        ):
            raise ValueError(
                f"numericPrecision and numericScale are only valid for DECIMAL/NUMERIC "
                f"columns ({self.column_name} is {self.data_type})"
            )
        return self

    @property
    def family(self) -> TypeFamily:
        return family_of(self.data_type)

    @property
    def is_primary_key(self) -> bool:
        return self.column_type in (
            ColumnRole.PRIMARY_KEY,
            ColumnRole.PRIMARY_KEY_FOREIGN_KEY,
        )


class FilterCriterion(WireModel):
    """One column-scoped condition in a search request."""

    column_name: str
    operator: FilterOperator
    value: Any = None
    min_value: Any = None
    max_value: Any = None
    values: Optional[List[Any]] = None
    case_sensitive: Optional[bool] = None


class SortCriterion(WireModel):
    """Sort key; the first entry in a request is the primary sort."""

    column_name: str
    direction: SortDirection = SortDirection.ASC


class SearchRequest(WireModel):
    """Advanced search request sent to the record store."""

    schema_name: str
    # The store names the relation "tableName" for views too
    object_name: str = Field(alias="tableName")
    page: int = Field(default=0, ge=0)
    size: int = Field(default=10, ge=0)
    global_search: Optional[str] = None
    filters: Optional[List[FilterCriterion]] = None
    sorts: Optional[List[SortCriterion]] = None
    distinct: bool = False

    def to_payload(self) -> Dict[str, Any]:
        """Serialize for the wire, omitting every unset optional field."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SearchPage(WireModel):
    """One page of search results."""

    records: List[Record] = Field(default_factory=list)
    total_records: int = 0
    filtered_records: Optional[int] = None
    current_page: int = 0
    page_size: int = 0
    total_pages: int = 0
    schema_name: Optional[str] = None
    table_name: Optional[str] = None
    applied_filters: Optional[List[FilterCriterion]] = None
    applied_sorts: Optional[List[SortCriterion]] = None
    applied_global_search: Optional[str] = None

    @field_validator("records", mode="before")
    @classmethod
    def _unwrap_record_data(cls, value: Any) -> Any:
        # The store wraps each row as {"data": {...}}
        if not isinstance(value, list):
            return value
        return [
            item["data"]
            if isinstance(item, dict) and set(item) == {"data"} and isinstance(item["data"], dict)
            else item
            for item in value
        ]
