"""Grid session service - binds the engine to a table or view in the record store."""

import logging
import uuid
from collections import OrderedDict
from datetime import datetime
from typing import Callable, List, Optional

from app.config import get_settings
from app.core.exceptions import ReadOnlyObjectError
from app.services.record_store import RecordStoreClient
from grid_engine.criteria import SearchCriteriaBuilder
from grid_engine.delete_strategy import DeleteStrategy, resolve
from grid_engine.errors import (
    NoDeleteStrategyError,
    OverlayConflictError,
    SubmissionInProgressError,
)
from grid_engine.models import ColumnMetadata, ObjectKind, Record, SearchPage
from grid_engine.overlay import RecordOverlay

settings = get_settings()
logger = logging.getLogger(__name__)


class GridSession:
    """
    One editable grid over a table or view.

    The session owns a criteria builder, a record overlay and the resolved
    delete strategy. Every call to the record store that changes data runs
    inside the overlay's submission guard; overlay state is only cleared once
    the store reports success and the guard is released, after which the
    current search is re-run.
    """

    def __init__(
        self,
        store: RecordStoreClient,
        kind: ObjectKind,
        schema_name: str,
        object_name: str,
        columns: List[ColumnMetadata],
        page_size: int = settings.DEFAULT_PAGE_SIZE,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.id = uuid.uuid4().hex
        self.store = store
        self.kind = kind
        self.schema_name = schema_name
        self.object_name = object_name
        self.builder = SearchCriteriaBuilder(schema_name, object_name, columns, page_size)
        self._clock = clock
        self.overlay = RecordOverlay(columns, clock=clock)
        self.strategy: DeleteStrategy = resolve(columns)
        self.last_page: Optional[SearchPage] = None

    @classmethod
    async def open(
        cls,
        store: RecordStoreClient,
        kind: ObjectKind,
        schema_name: str,
        object_name: str,
        page_size: Optional[int] = None,
    ) -> "GridSession":
        """Load column metadata and create a session for a table or view."""
        columns = await store.get_columns(kind, schema_name, object_name)
        session = cls(
            store,
            kind,
            schema_name,
            object_name,
            columns,
            page_size=settings.DEFAULT_PAGE_SIZE if page_size is None else page_size,
        )
        logger.info(
            f"Opened grid {session.id} on {kind.value} {schema_name}.{object_name} "
            f"({len(columns)} columns, {session.strategy.kind.value})"
        )
        return session

    @property
    def columns(self) -> List[ColumnMetadata]:
        return self.builder.columns

    @property
    def is_view(self) -> bool:
        return self.kind is ObjectKind.VIEW

    async def refresh_columns(self) -> List[ColumnMetadata]:
        """
        Re-fetch column metadata and replace it wholesale.

        Raises:
            SubmissionInProgressError: If a save or delete is in flight
            OverlayConflictError: If new rows or edits are still pending
        """
        self._check_refreshable()
        columns = await self.store.get_columns(self.kind, self.schema_name, self.object_name)
        # The overlay may have changed while the metadata was loading
        self._check_refreshable()
        page = self.overlay.page_records
        self.builder.refresh_columns(columns)
        self.overlay = RecordOverlay(columns, clock=self._clock)
        self.overlay.load_page(page)
        self.strategy = resolve(columns)
        logger.info(f"Refreshed columns of grid {self.id}")
        return columns

    async def search(self) -> SearchPage:
        """Run the current criteria and load the result page into the overlay."""
        request = self.builder.build()
        page = await self.store.search(self.kind, request)
        self.overlay.load_page(page.records)
        self.last_page = page
        logger.debug(
            f"Grid {self.id} loaded page {request.page} "
            f"({len(page.records)} of {page.total_records} records)"
        )
        return page

    async def count(self) -> int:
        """Count every record of the table or view, ignoring the search criteria."""
        return await self.store.count(self.kind, self.schema_name, self.object_name)

    async def save_new_rows(self) -> int:
        """
        Create every new row in one batch.

        Returns:
            Number of records sent to the store
        """
        self.require_table()
        records = self.overlay.pending_creates()
        if not records:
            return 0

        with self.overlay.submission():
            await self.store.create_records(self.schema_name, self.object_name, records)
        self.overlay.clear_new_rows()

        logger.info(f"Grid {self.id} created {len(records)} records")
        await self.search()
        return len(records)

    async def save_edits(self) -> int:
        """
        Send every changed shadow as one batch update.

        Records are addressed by primary key when the table has one and by
        identifying values otherwise.

        Returns:
            Number of records sent to the store
        """
        self.require_table()
        pending = self.overlay.pending_updates()
        if not pending:
            self.overlay.clear_edits()
            return 0

        with self.overlay.submission():
            if self.strategy.uses_primary_key:
                updates = [
                    {"primaryKeyValues": self.strategy.identify(original), "data": updated}
                    for original, updated in pending
                ]
                await self.store.update_records(self.schema_name, self.object_name, updates)
            else:
                updates = [
                    {"identifyingValues": self.strategy.identify(original), "newData": updated}
                    for original, updated in pending
                ]
                await self.store.update_records_by_values(
                    self.schema_name, self.object_name, updates
                )
        self.overlay.clear_edits()

        logger.info(f"Grid {self.id} updated {len(pending)} records")
        await self.search()
        return len(pending)

    async def delete_records(self, records: List[Record]) -> int:
        """
        Delete records using the table's delete strategy.

        Records sharing the same identifying values are sent once.

        Returns:
            Number of distinct deletions sent to the store
        """
        self.require_table()
        if not self.strategy.can_delete:
            raise NoDeleteStrategyError(self.strategy.description)

        identifying: List[Record] = []
        for record in records:
            values = self.strategy.identify(record)
            if values not in identifying:
                identifying.append(values)
        if not identifying:
            return 0

        with self.overlay.submission():
            if self.strategy.uses_primary_key:
                await self.store.delete_records(self.schema_name, self.object_name, identifying)
            else:
                await self.store.delete_records_by_values(
                    self.schema_name, self.object_name, identifying
                )
        self.overlay.clear_selection()

        logger.info(f"Grid {self.id} deleted {len(identifying)} records")
        await self.search()
        return len(identifying)

    async def delete_selected(self) -> int:
        return await self.delete_records(self.overlay.selected_records())

    def _check_refreshable(self) -> None:
        if self.overlay.is_submitting:
            raise SubmissionInProgressError()
        if self.overlay.has_pending_changes:
            raise OverlayConflictError("Save or discard pending changes before refreshing columns")

    def require_table(self) -> None:
        if self.is_view:
            raise ReadOnlyObjectError(
                f"View {self.schema_name}.{self.object_name} is read-only"
            )


class GridSessionRegistry:
    """
    In-process store of open grid sessions keyed by id.

    When full, the least recently used session is dropped.
    """

    def __init__(self, max_sessions: int = settings.MAX_GRID_SESSIONS):
        self.max_sessions = max_sessions
        self._sessions: "OrderedDict[str, GridSession]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def add(self, session: GridSession) -> GridSession:
        self._sessions[session.id] = session
        while len(self._sessions) > self.max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            logger.warning(f"Grid session limit reached, dropped grid {evicted}")
        return session

    def get(self, grid_id: str) -> Optional[GridSession]:
        session = self._sessions.get(grid_id)
        if session is not None:
            self._sessions.move_to_end(grid_id)
        return session

    def remove(self, grid_id: str) -> bool:
        return self._sessions.pop(grid_id, None) is not None

    def clear(self) -> None:
        self._sessions.clear()
