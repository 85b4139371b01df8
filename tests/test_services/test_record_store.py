"""Tests for the record store client."""

import json
from decimal import Decimal
from typing import List

import httpx
import pytest

from app.core.exceptions import RecordStoreError
from app.services.record_store import RecordStoreClient
from grid_engine.models import ObjectKind, SearchRequest


def envelope(data=None, success: bool = True, message: str = "ok") -> dict:
    return {"success": success, "message": message, "data": data}


def make_client(handler, requests: List[httpx.Request]) -> RecordStoreClient:
    def record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    return RecordStoreClient.from_settings(transport=httpx.MockTransport(record))


@pytest.mark.asyncio
class TestRecordStoreClient:
    """Test request shapes and envelope handling."""

    async def test_table_columns_sorted_by_position(self):
        requests: List[httpx.Request] = []
        columns = [
            {"columnName": "email", "dataType": "VARCHAR", "ordinalPosition": 2, "isNullable": False},
            {"columnName": "id", "dataType": "INT", "ordinalPosition": 1, "columnType": "PRIMARY_KEY"},
        ]
        client = make_client(lambda r: httpx.Response(200, json=envelope(columns)), requests)

        result = await client.get_table_columns("public", "users")

        assert [c.column_name for c in result] == ["id", "email"]
        assert requests[0].url.path.endswith("/columns/public/users")
        await client.close()

    async def test_view_columns(self):
        requests: List[httpx.Request] = []
        view = {"viewName": "active_users", "columns": [{"columnName": "id", "dataType": "INT"}]}
        client = make_client(lambda r: httpx.Response(200, json=envelope(view)), requests)

        result = await client.get_columns(ObjectKind.VIEW, "public", "active_users")

        assert result[0].column_name == "id"
        assert requests[0].url.path.endswith("/views/public/active_users")
        await client.close()

    async def test_search_posts_payload_and_unwraps_records(self):
        requests: List[httpx.Request] = []
        page = {
            "records": [{"data": {"id": 1}}, {"data": {"id": 2}}],
            "totalRecords": 2,
            "filteredRecords": 2,
            "currentPage": 0,
            "pageSize": 10,
            "totalPages": 1,
        }
        client = make_client(lambda r: httpx.Response(200, json=envelope(page)), requests)
        request = SearchRequest(schema_name="public", object_name="users_view", global_search="ann")

        result = await client.search(ObjectKind.VIEW, request)

        assert result.records == [{"id": 1}, {"id": 2}]
        assert requests[0].method == "POST"
        assert requests[0].url.path.endswith("/records/view/advanced-search")
        assert json.loads(requests[0].content) == {
            "schemaName": "public",
            "tableName": "users_view",
            "page": 0,
            "size": 10,
            "globalSearch": "ann",
            "distinct": False,
        }
        await client.close()

    async def test_update_by_values_disallows_multiple(self):
        requests: List[httpx.Request] = []
        client = make_client(lambda r: httpx.Response(200, json=envelope([])), requests)

        await client.update_records_by_values(
            "public",
            "logs",
            [{"identifyingValues": {"level": "info"}, "newData": {"level": "warn"}}],
        )

        body = json.loads(requests[0].content)
        assert requests[0].method == "PUT"
        assert requests[0].url.path.endswith("/records/batch/by-values")
        assert body["updates"] == [
            {
                "identifyingValues": {"level": "info"},
                "newData": {"level": "warn"},
                "allowMultiple": False,
            }
        ]
        await client.close()

    async def test_delete_by_primary_key(self):
        requests: List[httpx.Request] = []
        client = make_client(lambda r: httpx.Response(200, json=envelope(2)), requests)

        await client.delete_records("public", "users", [{"id": 1}, {"id": 2}])

        assert requests[0].method == "DELETE"
        assert json.loads(requests[0].content) == {
            "schemaName": "public",
            "tableName": "users",
            "primaryKeyValuesList": [{"id": 1}, {"id": 2}],
        }
        await client.close()

    async def test_decimals_sent_as_strings(self):
        requests: List[httpx.Request] = []
        client = make_client(lambda r: httpx.Response(200, json=envelope([])), requests)

        await client.create_records("public", "accounts", [{"balance": Decimal("10.50")}])

        assert json.loads(requests[0].content)["records"] == [{"balance": "10.50"}]
        await client.close()

    async def test_error_status_raises_with_message(self):
        client = make_client(
            lambda r: httpx.Response(409, json=envelope(success=False, message="duplicate key")),
            [],
        )

        with pytest.raises(RecordStoreError) as exc_info:
            await client.count(ObjectKind.TABLE, "public", "users")

        assert exc_info.value.status_code == 409
        assert exc_info.value.message == "duplicate key"
        await client.close()

    async def test_unsuccessful_envelope_raises(self):
        client = make_client(
            lambda r: httpx.Response(200, json=envelope(success=False, message="table is locked")),
            [],
        )

        with pytest.raises(RecordStoreError, match="table is locked"):
            await client.create_records("public", "users", [{"email": "x"}])
        await client.close()

    async def test_non_json_error_body(self):
        client = make_client(lambda r: httpx.Response(500, text="boom"), [])

        with pytest.raises(RecordStoreError, match="HTTP 500"):
            await client.count(ObjectKind.TABLE, "public", "users")
        await client.close()

    async def test_invalid_column_metadata(self):
        columns = [{"columnName": "id", "dataType": "INT", "characterMaxLength": 5}]
        client = make_client(lambda r: httpx.Response(200, json=envelope(columns)), [])

        with pytest.raises(RecordStoreError):
            await client.get_table_columns("public", "users")
        await client.close()

    async def test_count(self):
        client = make_client(lambda r: httpx.Response(200, json=envelope(42)), [])

        assert await client.count(ObjectKind.VIEW, "public", "v") == 42
        await client.close()
