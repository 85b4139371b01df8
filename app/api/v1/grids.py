"""Grid session endpoints: search criteria, new rows, edits, selection and delete."""

import logging
from dataclasses import asdict
from typing import Any, Dict, List

from fastapi import APIRouter, Path, Response, status

from app.api.deps import Grid, RecordStore, Registry
from app.config import get_settings
from app.core.exceptions import BadRequest
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
    QueryState,
    QueryUpdate,
    RecordCount,
    RowValues,
    SelectionUpdate,
    SortState,
    SortUpdate,
)
from app.services.grid_service import GridSession
from grid_engine.coercion import render_cell
from grid_engine.criteria import PAYLOAD_FIELDS, SearchCriteriaBuilder
from grid_engine.data_types import format_column_type
from grid_engine.delete_strategy import DeleteStrategy
from grid_engine.models import ColumnMetadata

settings = get_settings()
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/grids", tags=["grids"])

# Fields of a filter update that are ignored when sent as null
_NON_NULL_FILTER_FIELDS = ("column_name", "operator", "case_sensitive")


def _check_page_size(page_size: int) -> None:
    if page_size > settings.MAX_PAGE_SIZE:
        raise BadRequest(f"Page size cannot exceed {settings.MAX_PAGE_SIZE}")


def query_state(builder: SearchCriteriaBuilder) -> QueryState:
    """Describe the editable search state of a builder."""
    return QueryState(
        global_search=builder.global_search,
        distinct=builder.distinct,
        page=builder.page,
        page_size=builder.page_size,
        filters=[
            FilterState(**asdict(draft), invalid_values=builder.invalid_values(index))
            for index, draft in enumerate(builder.filters)
        ],
        sorts=[SortState(**asdict(draft)) for draft in builder.sorts],
        has_active_criteria=builder.has_active_criteria,
    )


def strategy_info(strategy: DeleteStrategy) -> DeleteStrategyInfo:
    return DeleteStrategyInfo(
        kind=strategy.kind.value,
        key_columns=list(strategy.key_columns),
        can_delete=strategy.can_delete,
        description=strategy.description,
    )


def display_cells(data: Dict[str, Any], columns: List[ColumnMetadata]) -> Dict[str, str]:
    return {column.column_name: render_cell(data.get(column.column_name)) for column in columns}


def grid_state(session: GridSession) -> GridState:
    """Describe a grid session with its merged rows."""
    page = session.last_page
    columns = session.columns
    return GridState(
        id=session.id,
        kind=session.kind,
        schema_name=session.schema_name,
        object_name=session.object_name,
        columns=columns,
        column_types={column.column_name: format_column_type(column) for column in columns},
        query=query_state(session.builder),
        rows=[
            GridRow(
                key=row.key,
                state=row.state,
                data=row.data,
                display=display_cells(row.data, columns),
                selected=row.selected,
            )
            for row in session.overlay.rows()
        ],
        total_records=page.total_records if page else 0,
        filtered_records=page.filtered_records if page else None,
        current_page=page.current_page if page else 0,
        total_pages=page.total_pages if page else 0,
        has_new_rows=session.overlay.has_new_rows,
        has_pending_edits=session.overlay.has_pending_edits,
        delete_strategy=strategy_info(session.strategy),
    )


# Sessions


@router.post("/", response_model=GridState, status_code=status.HTTP_201_CREATED)
async def open_grid(
    grid_data: GridCreate,
    store: RecordStore,
    registry: Registry,
) -> GridState:
    """
    Open a grid on a table or view.

    Column metadata is loaded and the first page is fetched immediately.
    """
    if grid_data.page_size is not None:
        _check_page_size(grid_data.page_size)

    session = await GridSession.open(
        store,
        grid_data.kind,
        grid_data.schema_name,
        grid_data.object_name,
        page_size=grid_data.page_size,
    )
    await session.search()
    registry.add(session)
    return grid_state(session)


@router.get("/{grid_id}", response_model=GridState)
async def get_grid(session: Grid) -> GridState:
    """Get the current state of a grid."""
    return grid_state(session)


@router.delete("/{grid_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_grid(session: Grid, registry: Registry) -> Response:
    """Close a grid and discard its unsaved changes."""
    registry.remove(session.id)
    logger.info(f"Closed grid {session.id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{grid_id}/columns/refresh", response_model=GridState)
async def refresh_columns(session: Grid) -> GridState:
    """Reload column metadata; criteria on dropped columns stop being sent."""
    await session.refresh_columns()
    return grid_state(session)


# Filters and sorts


@router.post("/{grid_id}/filters", response_model=QueryState, status_code=status.HTTP_201_CREATED)
async def add_filter(session: Grid) -> QueryState:
    """Add a filter on the first column using EQUALS."""
    if session.builder.add_filter() is None:
        raise BadRequest("Grid has no columns to filter on")
    return query_state(session.builder)


@router.patch("/{grid_id}/filters/{index}", response_model=QueryState)
async def update_filter(
    session: Grid,
    update: FilterUpdate,
    index: int = Path(..., ge=0),
) -> QueryState:
    """
    Update a filter.

    Changing the operator clears the filter's values. Raw text fields are
    decoded for the filter's column after the other changes are applied.
    """
    changes: Dict[str, Any] = update.model_dump(exclude_unset=True)
    raw_parts = {
        part: changes.pop(f"raw_{part}")
        for part in PAYLOAD_FIELDS
        if f"raw_{part}" in changes
    }
    for name in _NON_NULL_FILTER_FIELDS:
        if name in changes and changes[name] is None:
            del changes[name]

    builder = session.builder
    builder.update_filter(index, **changes)
    for part, raw in raw_parts.items():
        builder.set_filter_input(index, raw, part)
    return query_state(builder)


@router.delete("/{grid_id}/filters/{index}", response_model=QueryState)
async def remove_filter(session: Grid, index: int = Path(..., ge=0)) -> QueryState:
    session.builder.remove_filter(index)
    return query_state(session.builder)


@router.post("/{grid_id}/sorts", response_model=QueryState, status_code=status.HTTP_201_CREATED)
async def add_sort(session: Grid) -> QueryState:
    """Add an ascending sort on the first column."""
    if session.builder.add_sort() is None:
        raise BadRequest("Grid has no columns to sort on")
    return query_state(session.builder)


@router.patch("/{grid_id}/sorts/{index}", response_model=QueryState)
async def update_sort(
    session: Grid,
    update: SortUpdate,
    index: int = Path(..., ge=0),
) -> QueryState:
    changes = {
        name: value
        for name, value in update.model_dump(exclude_unset=True).items()
        if value is not None
    }
    session.builder.update_sort(index, **changes)
    return query_state(session.builder)


@router.delete("/{grid_id}/sorts/{index}", response_model=QueryState)
async def remove_sort(session: Grid, index: int = Path(..., ge=0)) -> QueryState:
    session.builder.remove_sort(index)
    return query_state(session.builder)


@router.put("/{grid_id}/query", response_model=QueryState)
async def update_query(session: Grid, update: QueryUpdate) -> QueryState:
    """
    Update search options and pagination.

    A page size change goes back to the first page; an explicit page in the
    same request is applied afterwards.
    """
    builder = session.builder
    if update.clear:
        builder.clear()
    if update.global_search is not None:
        builder.set_global_search(update.global_search)
    if update.distinct is not None:
        builder.set_distinct(update.distinct)
    if update.page_size is not None:
        _check_page_size(update.page_size)
        builder.set_page_size(update.page_size)
    if update.page is not None:
        builder.set_page(update.page)
    return query_state(builder)


@router.get("/{grid_id}/query")
async def get_query(session: Grid) -> Dict[str, Any]:
    """Get the search request the current criteria build, as sent to the store."""
    return session.builder.build().to_payload()


@router.get("/{grid_id}/count", response_model=RecordCount)
async def count_records(session: Grid) -> RecordCount:
    """Count every record of the grid's table or view."""
    return RecordCount(count=await session.count())


@router.post("/{grid_id}/search", response_model=GridState)
async def search(session: Grid) -> GridState:
    """Run the current criteria and load the result page."""
    await session.search()
    return grid_state(session)


# New rows


@router.post("/{grid_id}/new-rows", response_model=RowValues, status_code=status.HTTP_201_CREATED)
async def add_new_row(session: Grid) -> RowValues:
    """Add a new row filled with column defaults."""
    session.require_table()
    key = session.overlay.add_new_row()
    return RowValues(key=key, data=session.overlay.new_row(key))


@router.patch("/{grid_id}/new-rows/{key}", response_model=RowValues)
async def set_new_row_value(session: Grid, key: str, update: CellUpdate) -> RowValues:
    session.overlay.set_new_row_value(key, update.column_name, update.value)
    return RowValues(key=key, data=session.overlay.new_row(key))


@router.delete("/{grid_id}/new-rows/{key}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_new_row(session: Grid, key: str) -> Response:
    session.overlay.remove_new_row(key)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{grid_id}/new-rows/save", response_model=MutationResult)
async def save_new_rows(session: Grid) -> MutationResult:
    """Create every new row in the record store and reload the page."""
    affected = await session.save_new_rows()
    return MutationResult(affected=affected, grid=grid_state(session))


# Edits


@router.post("/{grid_id}/edits", response_model=RowValues)
async def begin_edit(session: Grid, target: EditTarget) -> RowValues:
    """Start editing a record of the current page."""
    session.require_table()
    record = session.overlay.page_record(target.row_key)
    return RowValues(key=target.row_key, data=session.overlay.begin_edit(record))


@router.patch("/{grid_id}/edits", response_model=RowValues)
async def set_edit_value(session: Grid, update: EditCellUpdate) -> RowValues:
    overlay = session.overlay
    record = overlay.page_record(update.row_key)
    overlay.set_edit_value(record, update.column_name, update.value)
    return RowValues(key=update.row_key, data=overlay.shadow_for(record))


@router.post("/{grid_id}/edits/cancel", response_model=GridState)
async def cancel_edits(session: Grid, cancel: EditCancel) -> GridState:
    """Cancel one edit, or all of them when no row is given."""
    overlay = session.overlay
    if cancel.row_key is None:
        overlay.clear_edits()
    else:
        overlay.cancel_edit(overlay.page_record(cancel.row_key))
    return grid_state(session)


@router.post("/{grid_id}/edits/save", response_model=MutationResult)
async def save_edits(session: Grid) -> MutationResult:
    """Send every changed record to the record store and reload the page."""
    affected = await session.save_edits()
    return MutationResult(affected=affected, grid=grid_state(session))


# Selection and delete


@router.put("/{grid_id}/selection", response_model=GridState)
async def set_selection(session: Grid, selection: SelectionUpdate) -> GridState:
    """Replace the selection of persisted rows."""
    overlay = session.overlay
    records = [overlay.page_record(key) for key in selection.row_keys]

    overlay.clear_selection()
    if selection.all:
        overlay.select_all()
    for record in records:
        overlay.select(record)
    return grid_state(session)


@router.post("/{grid_id}/selection/delete", response_model=MutationResult)
async def delete_selected(session: Grid) -> MutationResult:
    """Delete the selected records and reload the page."""
    affected = await session.delete_selected()
    return MutationResult(affected=affected, grid=grid_state(session))


@router.get("/{grid_id}/delete-strategy", response_model=DeleteStrategyInfo)
async def get_delete_strategy(session: Grid) -> DeleteStrategyInfo:
    """How records of this grid are identified, with text for confirmation dialogs."""
    return strategy_info(session.strategy)
