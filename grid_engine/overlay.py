"""
Record overlay - merges a server page with unsaved new rows and edits.

Persisted records carry no identity of their own. An editing shadow is linked
to its source record by structural equality of the original values, so two
identical rows on a page cannot be told apart: the first one in page order
shows the shadow. New rows get a session-local key that is never sent to the
record store.

New rows and editing shadows are mutually exclusive: edits must be saved or
cancelled before a row is added, and new rows must be saved or removed before
an edit begins.
"""

import enum
import itertools
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from grid_engine.coercion import decode, initial_value
from grid_engine.errors import (
    OverlayConflictError,
    SubmissionInProgressError,
    UnknownColumnError,
    UnknownRowError,
)
from grid_engine.models import ColumnMetadata, Record

logger = logging.getLogger("grid_engine")


class RowState(enum.Enum):
    """Display state of an overlay row."""

    PERSISTED_CLEAN = "persisted-clean"
    PERSISTED_EDITING = "persisted-editing"
    NEW = "new"


@dataclass
class OverlayRow:
    """One render-ready row of the merged grid."""

    key: str
    state: RowState
    data: Record
    original: Optional[Record] = None
    selected: bool = False


@dataclass
class _Shadow:
    original: Record
    data: Record


class RecordOverlay:
    """
    Client-side overlay over one page of records.

    The overlay never merges server responses into itself. After a successful
    save the caller clears the relevant state and re-fetches the page.
    """

    def __init__(
        self,
        columns: Sequence[ColumnMetadata],
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._columns: List[ColumnMetadata] = list(columns)
        self._clock = clock
        self._page: List[Record] = []
        self._new_rows: Dict[str, Record] = {}
        self._shadows: List[_Shadow] = []
        self._selection: List[Record] = []
        self._keys = itertools.count(1)
        self._submitting = False

    @property
    def columns(self) -> List[ColumnMetadata]:
        return list(self._columns)

    @property
    def page_records(self) -> List[Record]:
        return [dict(record) for record in self._page]

    @property
    def has_new_rows(self) -> bool:
        return bool(self._new_rows)

    @property
    def has_pending_edits(self) -> bool:
        return bool(self._shadows)

    @property
    def has_pending_changes(self) -> bool:
        return self.has_new_rows or self.has_pending_edits

    @property
    def is_submitting(self) -> bool:
        return self._submitting

    def load_page(self, records: Sequence[Record]) -> None:
        """Replace the persisted records; new rows, shadows and selection are kept."""
        self._page = [dict(record) for record in records]

    def page_record(self, key: str) -> Record:
        """Look up a persisted record by the key rows() gives it."""
        prefix, _, index = key.partition("-")
        if prefix == "row" and index.isdigit() and int(index) < len(self._page):
            return dict(self._page[int(index)])
        raise UnknownRowError(f"Row '{key}' not found")

    # New rows

    def add_new_row(self) -> str:
        """
        Add a new row filled with initial values.

        Returns:
            Session-local key of the new row

        Raises:
            OverlayConflictError: If any record is being edited
            SubmissionInProgressError: If a save or delete is in flight
        """
        self._ensure_idle()
        if self._shadows:
            raise OverlayConflictError(
                "Finish or cancel editing before adding new rows"
            )

        key = f"new-{next(self._keys)}"
        now = self._clock()
        self._new_rows[key] = {
            column.column_name: initial_value(column, now) for column in self._columns
        }
        logger.debug(f"Added new row {key}")
        return key

    def new_row(self, key: str) -> Record:
        return dict(self._require_new_row(key))

    def set_new_row_value(self, key: str, column_name: str, raw: Any) -> Any:
        """Decode raw input into a new row's cell and return the stored value."""
        self._ensure_idle()
        row = self._require_new_row(key)
        value = decode(raw, self._require_column(column_name))
        row[column_name] = value
        return value

    def remove_new_row(self, key: str) -> None:
        self._ensure_idle()
        self._require_new_row(key)
        del self._new_rows[key]
        logger.debug(f"Removed new row {key}")

    def clear_new_rows(self) -> None:
        self._ensure_idle()
        self._new_rows.clear()

    def pending_creates(self) -> List[Record]:
        """Payloads for every new row; unset auto-increment columns are left to the server."""
        auto_increment = {
            column.column_name for column in self._columns if column.auto_increment
        }
        return [
            {
                name: value
                for name, value in row.items()
                if not (value is None and name in auto_increment)
            }
            for row in self._new_rows.values()
        ]

    # Edits

    def begin_edit(self, record: Record) -> Record:
        """
        Start editing a record from the current page.

        Editing a record that already has a shadow returns that shadow.

        Raises:
            OverlayConflictError: If any new row exists
            UnknownRowError: If the record is not on the current page
        """
        self._ensure_idle()
        if self._new_rows:
            raise OverlayConflictError(
                "Save or remove new rows before editing records"
            )
        if record not in self._page:
            raise UnknownRowError("Record is not on the current page")

        shadow = self._find_shadow(record)
        if shadow is None:
            shadow = _Shadow(original=dict(record), data=dict(record))
            self._shadows.append(shadow)
            logger.debug("Started editing a record")
        return dict(shadow.data)

    def shadow_for(self, record: Record) -> Optional[Record]:
        shadow = self._find_shadow(record)
        return dict(shadow.data) if shadow else None

    def set_edit_value(self, record: Record, column_name: str, raw: Any) -> Any:
        """Decode raw input into the shadow of a record and return the stored value."""
        self._ensure_idle()
        shadow = self._require_shadow(record)
        value = decode(raw, self._require_column(column_name))
        shadow.data[column_name] = value
        return value

    def cancel_edit(self, record: Record) -> None:
        self._ensure_idle()
        shadow = self._require_shadow(record)
        self._shadows.remove(shadow)

    def clear_edits(self) -> None:
        self._ensure_idle()
        self._shadows.clear()

    def pending_updates(self) -> List[Tuple[Record, Record]]:
        """(original, updated) pairs for every shadow that differs from its record."""
        return [
            (dict(shadow.original), dict(shadow.data))
            for shadow in self._shadows
            if shadow.data != shadow.original
        ]

    # Selection

    def select(self, record: Record, selected: bool = True) -> bool:
        """
        Select or deselect a persisted record.

        Returns:
            False if the record is not on the current page (new rows are
            never selectable)
        """
        self._ensure_idle()
        if record not in self._page:
            return False

        if selected:
            if record not in self._selection:
                self._selection.append(dict(record))
        else:
            self._selection = [item for item in self._selection if item != record]
        return True

    def select_all(self, selected: bool = True) -> None:
        """Select or deselect every record on the current page."""
        self._ensure_idle()
        for record in self._page:
            self.select(record, selected)

    def clear_selection(self) -> None:
        self._ensure_idle()
        self._selection = []

    def selected_records(self) -> List[Record]:
        """Records on the current page matching the selection, in page order."""
        return [dict(record) for record in self._page if record in self._selection]

    # Rendering

    def rows(self) -> List[OverlayRow]:
        """
        Merge new rows and the current page into one display sequence.

        New rows come first in insertion order, followed by the page records.
        Each shadow is claimed by the first page record equal to its original.
        """
        merged = [
            OverlayRow(key=key, state=RowState.NEW, data=dict(data))
            for key, data in self._new_rows.items()
        ]

        unclaimed = list(self._shadows)
        for index, record in enumerate(self._page):
            shadow = next((s for s in unclaimed if s.original == record), None)
            if shadow is not None:
                unclaimed.remove(shadow)
                state = RowState.PERSISTED_EDITING
                data = dict(shadow.data)
            else:
                state = RowState.PERSISTED_CLEAN
                data = dict(record)

            merged.append(
                OverlayRow(
                    key=f"row-{index}",
                    state=state,
                    data=data,
                    original=dict(record),
                    selected=record in self._selection,
                )
            )
        return merged

    # Submission guard

    @contextmanager
    def submission(self) -> Iterator[None]:
        """
        Mark a save or delete as in flight.

        Changes to new rows, edits or selection made while it is active
        raise SubmissionInProgressError. Clear the submitted state after the
        block exits.

        Raises:
            SubmissionInProgressError: If another submission has not finished
        """
        self._ensure_idle()
        self._submitting = True
        try:
            yield
        finally:
            self._submitting = False

    # Helpers

    def _ensure_idle(self) -> None:
        if self._submitting:
            raise SubmissionInProgressError()

    def _find_shadow(self, record: Record) -> Optional[_Shadow]:
        for shadow in self._shadows:
            if shadow.original == record:
                return shadow
        return None

    def _require_shadow(self, record: Record) -> _Shadow:
        shadow = self._find_shadow(record)
        if shadow is None:
            raise UnknownRowError("Record is not being edited")
        return shadow

    def _require_new_row(self, key: str) -> Record:
        try:
            return self._new_rows[key]
        except KeyError:
            raise UnknownRowError(f"New row '{key}' not found") from None

    def _require_column(self, column_name: str) -> ColumnMetadata:
        for column in self._columns:
            if column.column_name == column_name:
                return column
        raise UnknownColumnError(f"Column '{column_name}' not found")
