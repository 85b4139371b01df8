"""Pytest configuration and fixtures."""

import asyncio
import math
from typing import Any, AsyncGenerator, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.api.deps import get_record_store, get_registry
from app.core.exceptions import RecordStoreError
from app.main import app
from app.services.grid_service import GridSessionRegistry
from grid_engine.models import ColumnMetadata, ColumnRole, ObjectKind, Record, SearchPage, SearchRequest


def users_columns() -> List[ColumnMetadata]:
    """Columns of a users table with an auto-increment primary key."""
    return [
        ColumnMetadata(
            column_name="id",
            data_type="INT",
            ordinal_position=1,
            is_nullable=False,
            auto_increment=True,
            column_type=ColumnRole.PRIMARY_KEY,
        ),
        ColumnMetadata(
            column_name="email",
            data_type="VARCHAR",
            ordinal_position=2,
            is_nullable=False,
            is_unique=True,
            character_max_length=255,
        ),
        ColumnMetadata(
            column_name="name",
            data_type="VARCHAR",
            ordinal_position=3,
            character_max_length=100,
        ),
        ColumnMetadata(
            column_name="active",
            data_type="BOOLEAN",
            ordinal_position=4,
            is_nullable=False,
            column_default="true",
        ),
        ColumnMetadata(
            column_name="balance",
            data_type="DECIMAL",
            ordinal_position=5,
            numeric_precision=10,
            numeric_scale=2,
        ),
    ]


def users_records() -> List[Record]:
    return [
        {"id": 1, "email": "ann@example.com", "name": "Ann", "active": True, "balance": 10.5},
        {"id": 2, "email": "bob@example.com", "name": "Bob", "active": False, "balance": None},
        {"id": 3, "email": "cid@example.com", "name": None, "active": True, "balance": 0.0},
    ]


def log_columns() -> List[ColumnMetadata]:
    """Columns of a table with neither a primary key nor a unique column."""
    return [
        ColumnMetadata(column_name="level", data_type="VARCHAR", ordinal_position=1, character_max_length=10),
        ColumnMetadata(column_name="message", data_type="TEXT", ordinal_position=2),
    ]


class FakeRecordStore:
    """In-memory stand-in for RecordStoreClient that records every call."""

    def __init__(
        self,
        columns: Optional[List[ColumnMetadata]] = None,
        records: Optional[List[Record]] = None,
    ):
        self.columns = users_columns() if columns is None else columns
        self.records = users_records() if records is None else records
        self.calls: List[tuple] = []
        self.searches: List[SearchRequest] = []
        self.fail_with: Optional[RecordStoreError] = None
        self.gate: Optional[asyncio.Event] = None

    async def get_columns(self, kind: ObjectKind, schema_name: str, object_name: str) -> List[ColumnMetadata]:
        self.calls.append(("get_columns", kind, schema_name, object_name))
        return list(self.columns)

    async def search(self, kind: ObjectKind, request: SearchRequest) -> SearchPage:
        self.searches.append(request)
        size = request.size or len(self.records)
        start = request.page * size
        return SearchPage(
            records=[dict(record) for record in self.records[start:start + size]],
            total_records=len(self.records),
            filtered_records=len(self.records),
            current_page=request.page,
            page_size=request.size,
            total_pages=math.ceil(len(self.records) / size) if size else 0,
        )

    async def count(self, kind: ObjectKind, schema_name: str, object_name: str) -> int:
        self.calls.append(("count", kind, schema_name, object_name))
        return len(self.records)

    async def _mutate(self, name: str, *args: Any) -> None:
        self.calls.append((name,) + args)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with is not None:
            raise self.fail_with

    async def create_records(self, schema_name, table_name, records):
        await self._mutate("create_records", schema_name, table_name, records)

    async def update_records(self, schema_name, table_name, updates):
        await self._mutate("update_records", schema_name, table_name, updates)

    async def update_records_by_values(self, schema_name, table_name, updates):
        await self._mutate("update_records_by_values", schema_name, table_name, updates)

    async def delete_records(self, schema_name, table_name, primary_keys):
        await self._mutate("delete_records", schema_name, table_name, primary_keys)

    async def delete_records_by_values(self, schema_name, table_name, identifying_values):
        await self._mutate("delete_records_by_values", schema_name, table_name, identifying_values)

    def mutations(self) -> List[tuple]:
        return [call for call in self.calls if call[0] not in ("get_columns", "count")]


@pytest.fixture
def columns() -> List[ColumnMetadata]:
    return users_columns()


@pytest.fixture
def store() -> FakeRecordStore:
    return FakeRecordStore()


@pytest.fixture
def registry() -> GridSessionRegistry:
    return GridSessionRegistry(max_sessions=8)


@pytest_asyncio.fixture(scope="function")
async def client(store, registry) -> AsyncGenerator[AsyncClient, None]:
    """Get test HTTP client backed by the fake record store."""
    app.dependency_overrides[get_record_store] = lambda: store
    app.dependency_overrides[get_registry] = lambda: registry

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
