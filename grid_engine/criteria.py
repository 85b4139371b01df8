"""
Search criteria builder - assembles advanced search requests.

The builder holds the editable state of a search form (global term, filters,
sorts, distinct flag, pagination) and turns it into a SearchRequest. Criteria
that cannot be sent as they stand (orphaned columns, operators the column type
does not offer, payloads of the wrong shape) are left out of the built request
instead of raising, because the UI keeps editing them.
"""

import logging
from dataclasses import dataclass, fields
from typing import Any, List, Optional, Sequence

from grid_engine.coercion import decode, decode_list, is_invalid_value
from grid_engine.data_types import (
    FilterOperator,
    ValueShape,
    is_operator_valid,
    supports_case_sensitivity,
    value_shape,
)
from grid_engine.errors import UnknownColumnError, UnknownCriterionError
from grid_engine.models import (
    ColumnMetadata,
    FilterCriterion,
    SearchRequest,
    SortCriterion,
    SortDirection,
)

logger = logging.getLogger("grid_engine")

DEFAULT_PAGE_SIZE = 10

PAYLOAD_FIELDS = ("value", "min_value", "max_value", "values")


@dataclass
class FilterDraft:
    """A filter as currently entered in the search form."""

    column_name: str
    operator: FilterOperator = FilterOperator.EQUALS
    value: Any = None
    min_value: Any = None
    max_value: Any = None
    values: Optional[List[Any]] = None
    case_sensitive: bool = False

    def clear_payload(self) -> None:
        for name in PAYLOAD_FIELDS:
            setattr(self, name, None)


@dataclass
class SortDraft:
    """A sort key as currently entered in the search form."""

    column_name: str
    direction: SortDirection = SortDirection.ASC


FILTER_FIELDS = frozenset(f.name for f in fields(FilterDraft))
SORT_FIELDS = frozenset(f.name for f in fields(SortDraft))


class SearchCriteriaBuilder:
    """
    Editable search state for one table or view.

    build() resets the page index to zero whenever the effective criteria
    differ from the previous build, so a new query never lands on a stale page.
    """

    def __init__(
        self,
        schema_name: str,
        object_name: str,
        columns: Sequence[ColumnMetadata],
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        self.schema_name = schema_name
        self.object_name = object_name
        self._columns: List[ColumnMetadata] = list(columns)
        self.filters: List[FilterDraft] = []
        self.sorts: List[SortDraft] = []
        self.global_search = ""
        self.distinct = False
        self.page = 0
        self.page_size = self._check_non_negative(page_size, "page_size")
        self._last_criteria: Optional[tuple] = None

    @property
    def columns(self) -> List[ColumnMetadata]:
        return list(self._columns)

    def column(self, column_name: str) -> Optional[ColumnMetadata]:
        """Find a column by name in the current metadata."""
        for column in self._columns:
            if column.column_name == column_name:
                return column
        return None

    def refresh_columns(self, columns: Sequence[ColumnMetadata]) -> None:
        """Replace the column metadata; criteria on vanished columns become orphans."""
        self._columns = list(columns)

    # Filters

    def add_filter(self) -> Optional[FilterDraft]:
        """Append a filter on the first column using EQUALS."""
        if not self._columns:
            return None

        draft = FilterDraft(column_name=self._columns[0].column_name)
        self.filters.append(draft)
        return draft

    def update_filter(self, index: int, **changes: Any) -> FilterDraft:
        """
        Apply a partial update to a filter.

        Changing the operator clears the value payload; the previous payload
        cannot be assumed to fit the new operator's shape. Moving the filter
        to a column whose type does not offer the current operator resets the
        operator to EQUALS.

        Raises:
            UnknownCriterionError: If no filter exists at index
            ValueError: If an unknown field is given
        """
        draft = self._filter_at(index)
        unknown = set(changes) - FILTER_FIELDS
        if unknown:
            raise ValueError(f"Unknown filter fields: {', '.join(sorted(unknown))}")

        if "operator" in changes:
            changes["operator"] = FilterOperator(changes["operator"])

        new_column = changes.get("column_name", draft.column_name)
        if new_column != draft.column_name and "operator" not in changes:
            column = self.column(new_column)
            if column is not None and not is_operator_valid(column.data_type, draft.operator):
                changes["operator"] = FilterOperator.EQUALS

        if "operator" in changes and changes["operator"] != draft.operator:
            draft.clear_payload()

        for name, value in changes.items():
            setattr(draft, name, value)
        return draft

    def set_filter_input(self, index: int, raw: Optional[str], part: str = "value") -> FilterDraft:
        """
        Decode raw text into one part of a filter's payload.

        Args:
            index: Filter position
            raw: Text as typed by the user
            part: "value", "min_value", "max_value" or "values"
        """
        if part not in PAYLOAD_FIELDS:
            raise ValueError(f"Unknown filter payload part: {part}")

        draft = self._filter_at(index)
        column = self.column(draft.column_name)
        if column is None:
            raise UnknownColumnError(f"Column '{draft.column_name}' not found")

        if part == "values":
            decoded: Any = decode_list(raw, column)
        else:
            decoded = decode(raw, column)
        return self.update_filter(index, **{part: decoded})

    def remove_filter(self, index: int) -> None:
        self._filter_at(index)
        del self.filters[index]

    def invalid_values(self, index: int) -> List[Any]:
        """List values of a filter that failed numeric parsing and will not be sent."""
        draft = self._filter_at(index)
        column = self.column(draft.column_name)
        if column is None or not draft.values:
            return []
        return [value for value in draft.values if is_invalid_value(value, column)]

    # Sorts

    def add_sort(self) -> Optional[SortDraft]:
        """Append an ascending sort on the first column."""
        if not self._columns:
            return None

        draft = SortDraft(column_name=self._columns[0].column_name)
        self.sorts.append(draft)
        return draft

    def update_sort(self, index: int, **changes: Any) -> SortDraft:
        draft = self._sort_at(index)
        unknown = set(changes) - SORT_FIELDS
        if unknown:
            raise ValueError(f"Unknown sort fields: {', '.join(sorted(unknown))}")

        if "direction" in changes:
            changes["direction"] = SortDirection(changes["direction"])

        for name, value in changes.items():
            setattr(draft, name, value)
        return draft

    def remove_sort(self, index: int) -> None:
        self._sort_at(index)
        del self.sorts[index]

    def _filter_at(self, index: int) -> FilterDraft:
        if not 0 <= index < len(self.filters):
            raise UnknownCriterionError(f"No filter at position {index}")
        return self.filters[index]

    def _sort_at(self, index: int) -> SortDraft:
        if not 0 <= index < len(self.sorts):
            raise UnknownCriterionError(f"No sort at position {index}")
        return self.sorts[index]

    # Search options and pagination

    def set_global_search(self, term: Optional[str]) -> None:
        self.global_search = term or ""

    def set_distinct(self, distinct: bool) -> None:
        self.distinct = bool(distinct)

    def set_page(self, page: int) -> None:
        self.page = self._check_non_negative(page, "page")

    def set_page_size(self, size: int) -> None:
        """Change the page size and go back to the first page."""
        self.page_size = self._check_non_negative(size, "page_size")
        self.page = 0

    def clear(self) -> None:
        """Drop every criterion and search option."""
        self.filters = []
        self.sorts = []
        self.global_search = ""
        self.distinct = False

    @property
    def has_active_criteria(self) -> bool:
        return bool(
            self.global_search.strip() or self.filters or self.sorts or self.distinct
        )

    # Building

    def build(self) -> SearchRequest:
        """
        Build the search request from the current state.

        Filters and sorts are omitted entirely when none survive, and a blank
        global search term is omitted; the record store treats omission as
        "unconstrained".
        """
        filters = [
            criterion
            for criterion in (self._filter_criterion(draft) for draft in self.filters)
            if criterion is not None
        ]
        sorts = [
            criterion
            for criterion in (self._sort_criterion(draft) for draft in self.sorts)
            if criterion is not None
        ]
        term = self.global_search.strip() or None

        criteria = (
            term,
            [criterion.model_dump() for criterion in filters],
            [criterion.model_dump() for criterion in sorts],
            self.distinct,
        )
        if self._last_criteria is not None and criteria != self._last_criteria:
            logger.debug(
                f"Search criteria changed for {self.schema_name}.{self.object_name}, "
                f"resetting to first page"
            )
            self.page = 0
        self._last_criteria = criteria

        return SearchRequest(
            schema_name=self.schema_name,
            object_name=self.object_name,
            page=self.page,
            size=self.page_size,
            global_search=term,
            filters=filters or None,
            sorts=sorts or None,
            distinct=self.distinct,
        )

    def _filter_criterion(self, draft: FilterDraft) -> Optional[FilterCriterion]:
        column = self.column(draft.column_name)
        if column is None:
            logger.debug(f"Skipping filter on missing column '{draft.column_name}'")
            return None

        if not is_operator_valid(column.data_type, draft.operator):
            logger.debug(
                f"Skipping filter: {draft.operator.value} is not valid for "
                f"{column.column_name} ({column.data_type})"
            )
            return None

        case_sensitive = (
            draft.case_sensitive
            if supports_case_sensitivity(column.data_type, draft.operator)
            else None
        )
        criterion = FilterCriterion(
            column_name=column.column_name,
            operator=draft.operator,
            case_sensitive=case_sensitive,
        )

        shape = value_shape(draft.operator)
        if shape is ValueShape.SINGLE:
            if draft.value is None:
                return self._shape_mismatch(draft)
            criterion.value = draft.value
        elif shape is ValueShape.RANGE:
            if draft.min_value is None or draft.max_value is None:
                return self._shape_mismatch(draft)
            criterion.min_value = draft.min_value
            criterion.max_value = draft.max_value
        elif shape is ValueShape.LIST:
            values = [
                value for value in (draft.values or []) if not is_invalid_value(value, column)
            ]
            if not values:
                return self._shape_mismatch(draft)
            criterion.values = values

        return criterion

    def _sort_criterion(self, draft: SortDraft) -> Optional[SortCriterion]:
        if self.column(draft.column_name) is None:
            logger.debug(f"Skipping sort on missing column '{draft.column_name}'")
            return None
        return SortCriterion(column_name=draft.column_name, direction=draft.direction)

    @staticmethod
    def _shape_mismatch(draft: FilterDraft) -> None:
        logger.debug(
            f"Skipping filter on '{draft.column_name}': payload does not match "
            f"{draft.operator.value}"
        )
        return None

    @staticmethod
    def _check_non_negative(number: int, name: str) -> int:
        if isinstance(number, bool) or not isinstance(number, int) or number < 0:
            raise ValueError(f"{name} must be a non-negative integer")
        return number

