"""Grid session schemas for the console API."""

from typing import Any, Dict, List, Optional

from pydantic import Field

from grid_engine.data_types import FilterOperator
from grid_engine.models import ColumnMetadata, ObjectKind, Record, SortDirection, WireModel
from grid_engine.overlay import RowState


class GridCreate(WireModel):
    """Request to open a grid on a table or view."""

    kind: ObjectKind = ObjectKind.TABLE
    schema_name: str = Field(..., min_length=1)
    object_name: str = Field(..., min_length=1)
    page_size: Optional[int] = Field(default=None, ge=0)


class FilterState(WireModel):
    """Filter as currently entered, with list values that failed parsing."""

    column_name: str
    operator: FilterOperator
    value: Any = None
    min_value: Any = None
    max_value: Any = None
    values: Optional[List[Any]] = None
    case_sensitive: bool = False
    invalid_values: List[Any] = Field(default_factory=list)


class SortState(WireModel):
    """Sort key as currently entered."""

    column_name: str
    direction: SortDirection


class FilterUpdate(WireModel):
    """
    Partial filter update.

    Typed payload fields are stored as given. The raw_* fields carry text as
    typed by the user and are decoded for the filter's column.
    """

    column_name: Optional[str] = None
    operator: Optional[FilterOperator] = None
    case_sensitive: Optional[bool] = None
    value: Any = None
    min_value: Any = None
    max_value: Any = None
    values: Optional[List[Any]] = None
    raw_value: Optional[str] = None
    raw_min_value: Optional[str] = None
    raw_max_value: Optional[str] = None
    raw_values: Optional[str] = None


class SortUpdate(WireModel):
    """Partial sort update."""

    column_name: Optional[str] = None
    direction: Optional[SortDirection] = None


class QueryUpdate(WireModel):
    """Search options and pagination."""

    global_search: Optional[str] = None
    distinct: Optional[bool] = None
    page: Optional[int] = Field(default=None, ge=0)
    page_size: Optional[int] = Field(default=None, ge=0)
    clear: bool = False


class QueryState(WireModel):
    """Editable search state of a grid."""

    global_search: str
    distinct: bool
    page: int
    page_size: int
    filters: List[FilterState]
    sorts: List[SortState]
    has_active_criteria: bool = False


class GridRow(WireModel):
    """Render-ready row of the merged grid."""

    key: str
    state: RowState
    data: Record
    display: Dict[str, str] = Field(default_factory=dict)
    selected: bool = False


class DeleteStrategyInfo(WireModel):
    """Delete strategy with its confirmation text."""

    kind: str
    key_columns: List[str]
    can_delete: bool
    description: str


class GridState(WireModel):
    """Full state of a grid session."""

    id: str
    kind: ObjectKind
    schema_name: str
    object_name: str
    columns: List[ColumnMetadata]
    column_types: Dict[str, str] = Field(default_factory=dict)
    query: QueryState
    rows: List[GridRow]
    total_records: int = 0
    filtered_records: Optional[int] = None
    current_page: int = 0
    total_pages: int = 0
    has_new_rows: bool = False
    has_pending_edits: bool = False
    delete_strategy: DeleteStrategyInfo


class RecordCount(WireModel):
    """Number of records in a table or view, ignoring search criteria."""

    count: int


class CellUpdate(WireModel):
    """Raw input for one cell of a new row."""

    column_name: str
    value: Any = None


class EditTarget(WireModel):
    """Row addressed by the key it has in the merged grid."""

    row_key: str


class EditCellUpdate(WireModel):
    """Raw input for one cell of a record being edited."""

    row_key: str
    column_name: str
    value: Any = None


class EditCancel(WireModel):
    """Cancel one edit, or every edit when row_key is omitted."""

    row_key: Optional[str] = None


class SelectionUpdate(WireModel):
    """Replace the selection with the given rows, or select every page row."""

    row_keys: List[str] = Field(default_factory=list)
    all: bool = False


class RowValues(WireModel):
    """Key and current values of a new row or a record being edited."""

    key: str
    data: Record


class MutationResult(WireModel):
    """Number of records affected and the refreshed grid."""

    affected: int
    grid: GridState
