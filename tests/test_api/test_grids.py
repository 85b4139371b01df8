"""Tests for grid endpoints."""

import pytest
from httpx import AsyncClient

from app.core.exceptions import RecordStoreError


async def open_grid(client: AsyncClient, kind: str = "table") -> dict:
    response = await client.post(
        "/api/v1/grids/",
        json={"kind": kind, "schemaName": "public", "objectName": "users"},
    )
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
class TestGridSessions:
    """Test opening and closing grids."""

    async def test_open_grid(self, client: AsyncClient):
        grid = await open_grid(client)

        assert grid["schemaName"] == "public"
        assert len(grid["columns"]) == 5
        assert [row["key"] for row in grid["rows"]] == ["row-0", "row-1", "row-2"]
        assert grid["rows"][0]["state"] == "persisted-clean"
        assert grid["totalRecords"] == 3
        assert grid["deleteStrategy"]["kind"] == "primary-key"

    async def test_display_labels_and_cells(self, client: AsyncClient):
        grid = await open_grid(client)

        assert grid["columnTypes"]["email"] == "VARCHAR(255)"
        assert grid["columnTypes"]["balance"] == "DECIMAL(10, 2)"
        assert grid["rows"][1]["display"]["active"] == "false"
        assert grid["rows"][1]["display"]["balance"] == "NULL"
        assert grid["query"]["hasActiveCriteria"] is False

    async def test_count_records(self, client: AsyncClient, store):
        grid = await open_grid(client)

        response = await client.get(f"/api/v1/grids/{grid['id']}/count")

        assert response.status_code == 200
        assert response.json() == {"count": 3}
        assert store.calls[-1][0] == "count"

    async def test_unknown_grid(self, client: AsyncClient):
        response = await client.get("/api/v1/grids/missing")

        assert response.status_code == 404

    async def test_close_grid(self, client: AsyncClient):
        grid = await open_grid(client)

        response = await client.delete(f"/api/v1/grids/{grid['id']}")
        assert response.status_code == 204

        response = await client.get(f"/api/v1/grids/{grid['id']}")
        assert response.status_code == 404

    async def test_page_size_limit(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/grids/",
            json={"schemaName": "public", "objectName": "users", "pageSize": 100000},
        )

        assert response.status_code == 400

    async def test_store_failure_is_bad_gateway(self, client: AsyncClient, store):
        grid = await open_grid(client)
        store.fail_with = RecordStoreError("connection refused")
        await client.post(f"/api/v1/grids/{grid['id']}/new-rows")

        response = await client.post(f"/api/v1/grids/{grid['id']}/new-rows/save")

        assert response.status_code == 502
        assert response.json()["detail"] == "connection refused"
        state = (await client.get(f"/api/v1/grids/{grid['id']}")).json()
        assert state["hasNewRows"] is True


@pytest.mark.asyncio
class TestCriteriaEndpoints:
    """Test filter, sort and query endpoints."""

    async def test_build_query(self, client: AsyncClient):
        grid = await open_grid(client)
        base = f"/api/v1/grids/{grid['id']}"

        await client.post(f"{base}/filters")
        response = await client.patch(
            f"{base}/filters/0",
            json={"columnName": "email", "operator": "LIKE", "value": "%test%"},
        )
        assert response.status_code == 200
        await client.post(f"{base}/sorts")
        await client.patch(f"{base}/sorts/0", json={"direction": "DESC"})

        query = (await client.get(f"{base}/query")).json()

        assert query["filters"] == [
            {"columnName": "email", "operator": "LIKE", "value": "%test%", "caseSensitive": False}
        ]
        assert query["sorts"] == [{"columnName": "id", "direction": "DESC"}]
        state = (await client.get(base)).json()
        assert state["query"]["hasActiveCriteria"] is True
        assert "globalSearch" not in query

    async def test_raw_filter_input_decoded(self, client: AsyncClient):
        grid = await open_grid(client)
        base = f"/api/v1/grids/{grid['id']}"
        await client.post(f"{base}/filters")

        response = await client.patch(
            f"{base}/filters/0", json={"operator": "IN", "rawValues": "1, x, 3"}
        )

        state = response.json()
        assert state["filters"][0]["values"] == [1, "x", 3]
        assert state["filters"][0]["invalidValues"] == ["x"]

    async def test_missing_filter_index(self, client: AsyncClient):
        grid = await open_grid(client)

        response = await client.patch(f"/api/v1/grids/{grid['id']}/filters/3", json={"value": 1})

        assert response.status_code == 404

    async def test_missing_sort_index(self, client: AsyncClient):
        grid = await open_grid(client)

        response = await client.delete(f"/api/v1/grids/{grid['id']}/sorts/0")

        assert response.status_code == 404
        assert response.json()["detail"] == "No sort at position 0"

    async def test_unknown_operator_rejected(self, client: AsyncClient):
        grid = await open_grid(client)
        await client.post(f"/api/v1/grids/{grid['id']}/filters")

        response = await client.patch(
            f"/api/v1/grids/{grid['id']}/filters/0", json={"operator": "SOUNDS_LIKE"}
        )

        assert response.status_code == 422

    async def test_update_query_and_search(self, client: AsyncClient, store):
        grid = await open_grid(client)
        base = f"/api/v1/grids/{grid['id']}"

        response = await client.put(
            f"{base}/query", json={"globalSearch": "ann", "pageSize": 2, "page": 1}
        )
        assert response.json()["page"] == 1
        assert response.json()["pageSize"] == 2

        await client.post(f"{base}/search")

        request = store.searches[-1]
        assert request.global_search == "ann"
        assert request.page == 0
        assert request.size == 2


@pytest.mark.asyncio
class TestRowEndpoints:
    """Test new rows, edits, selection and delete."""

    async def test_new_row_lifecycle(self, client: AsyncClient, store):
        grid = await open_grid(client)
        base = f"/api/v1/grids/{grid['id']}"

        created = (await client.post(f"{base}/new-rows")).json()
        assert created["data"]["active"] is True

        response = await client.patch(
            f"{base}/new-rows/{created['key']}",
            json={"columnName": "email", "value": "eve@example.com"},
        )
        assert response.json()["data"]["email"] == "eve@example.com"

        result = (await client.post(f"{base}/new-rows/save")).json()

        assert result["affected"] == 1
        assert result["grid"]["hasNewRows"] is False
        assert store.mutations()[0][0] == "create_records"

    async def test_out_of_range_decimal_kept_as_input(self, client: AsyncClient):
        grid = await open_grid(client)
        base = f"/api/v1/grids/{grid['id']}"
        created = (await client.post(f"{base}/new-rows")).json()

        response = await client.patch(
            f"{base}/new-rows/{created['key']}",
            json={"columnName": "balance", "value": "1e100"},
        )

        assert response.status_code == 200
        assert response.json()["data"]["balance"] == "1e100"

    async def test_edit_conflicts_with_new_rows(self, client: AsyncClient):
        grid = await open_grid(client)
        base = f"/api/v1/grids/{grid['id']}"
        await client.post(f"{base}/new-rows")

        response = await client.post(f"{base}/edits", json={"rowKey": "row-0"})

        assert response.status_code == 409

    async def test_edit_and_save(self, client: AsyncClient, store):
        grid = await open_grid(client)
        base = f"/api/v1/grids/{grid['id']}"

        await client.post(f"{base}/edits", json={"rowKey": "row-1"})
        response = await client.patch(
            f"{base}/edits", json={"rowKey": "row-1", "columnName": "active", "value": "true"}
        )
        assert response.json()["data"]["active"] is True

        state = (await client.get(base)).json()
        assert state["rows"][1]["state"] == "persisted-editing"

        result = (await client.post(f"{base}/edits/save")).json()

        assert result["affected"] == 1
        name, _, _, updates = store.mutations()[0]
        assert name == "update_records"
        assert updates[0]["primaryKeyValues"] == {"id": 2}

    async def test_cancel_all_edits(self, client: AsyncClient):
        grid = await open_grid(client)
        base = f"/api/v1/grids/{grid['id']}"
        await client.post(f"{base}/edits", json={"rowKey": "row-0"})

        state = (await client.post(f"{base}/edits/cancel", json={})).json()

        assert state["hasPendingEdits"] is False

    async def test_unknown_row_key(self, client: AsyncClient):
        grid = await open_grid(client)

        response = await client.post(
            f"/api/v1/grids/{grid['id']}/edits", json={"rowKey": "row-9"}
        )

        assert response.status_code == 404

    async def test_select_and_delete(self, client: AsyncClient, store):
        grid = await open_grid(client)
        base = f"/api/v1/grids/{grid['id']}"

        state = (await client.put(f"{base}/selection", json={"rowKeys": ["row-0", "row-2"]})).json()
        assert [row["selected"] for row in state["rows"]] == [True, False, True]

        result = (await client.post(f"{base}/selection/delete")).json()

        assert result["affected"] == 2
        assert store.mutations()[0][3] == [{"id": 1}, {"id": 3}]

    async def test_delete_without_columns_rejected(self, client: AsyncClient, store):
        store.columns = []
        grid = await open_grid(client)

        response = await client.post(f"/api/v1/grids/{grid['id']}/selection/delete")

        assert response.status_code == 400
        assert store.mutations() == []

    async def test_view_is_read_only(self, client: AsyncClient):
        grid = await open_grid(client, kind="view")

        response = await client.post(f"/api/v1/grids/{grid['id']}/new-rows")

        assert response.status_code == 400

    async def test_delete_strategy(self, client: AsyncClient):
        grid = await open_grid(client)

        response = await client.get(f"/api/v1/grids/{grid['id']}/delete-strategy")

        data = response.json()
        assert data["keyColumns"] == ["id"]
        assert data["canDelete"] is True
        assert "primary key" in data["description"]
