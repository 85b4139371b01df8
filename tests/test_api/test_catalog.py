"""Tests for data type catalog endpoints."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
class TestCatalogEndpoints:
    """Test data type lookups."""

    async def test_varchar(self, client: AsyncClient):
        response = await client.get("/api/v1/catalog/types/varchar")

        assert response.status_code == 200
        data = response.json()
        assert data["normalized"] == "VARCHAR"
        assert data["inputKind"] == "text"
        like = next(op for op in data["operators"] if op["operator"] == "LIKE")
        assert like["supportsCaseSensitivity"] is True
        assert like["valueShape"] == "single"
        assert data["structuralParameters"]["requires_length"] is True

    async def test_unrecognized_type(self, client: AsyncClient):
        response = await client.get("/api/v1/catalog/types/jsonb")

        data = response.json()
        assert data["normalized"] is None
        assert data["family"] == "unknown"
        assert [op["operator"] for op in data["operators"]] == [
            "EQUALS",
            "NOT_EQUALS",
            "IS_NULL",
            "IS_NOT_NULL",
            "IN",
            "NOT_IN",
        ]

    async def test_validate_default_value(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/catalog/default-values/validate",
            json={"dataType": "INT", "defaultValue": "abc"},
        )

        data = response.json()
        assert data["valid"] is False
        assert data["errors"]

    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.json()["status"] == "healthy"
