"""Async client for the remote record and metadata store."""

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError
from pydantic_core import to_jsonable_python

from app.config import get_settings
from app.core.exceptions import RecordStoreError
from grid_engine.models import ColumnMetadata, ObjectKind, Record, SearchPage, SearchRequest

settings = get_settings()
logger = logging.getLogger(__name__)


class RecordStoreClient:
    """
    Thin wrapper over the record store's REST API.

    Every response is an envelope of the form {success, message, data}. A
    non-2xx status or success=false raises RecordStoreError carrying the
    store's message; otherwise the data member is returned.
    """

    def __init__(self, http: httpx.AsyncClient):
        self.http = http

    @classmethod
    def from_settings(cls, transport: Optional[httpx.AsyncBaseTransport] = None) -> "RecordStoreClient":
        """Create a client configured from application settings."""
        headers = {"Content-Type": "application/json"}
        if settings.RECORD_STORE_TOKEN:
            headers["Authorization"] = f"Bearer {settings.RECORD_STORE_TOKEN}"

        http = httpx.AsyncClient(
            base_url=settings.RECORD_STORE_URL,
            headers=headers,
            timeout=settings.RECORD_STORE_TIMEOUT_SECONDS,
            transport=transport,
        )
        return cls(http)

    async def close(self) -> None:
        await self.http.aclose()

    async def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        try:
            response = await self.http.request(method, path, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"Record store request {method} {path} failed: {e}")
            raise RecordStoreError(f"Record store unavailable: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {"data": body}

        if response.is_error:
            message = body.get("message") or f"HTTP {response.status_code}"
            logger.warning(f"Record store returned {response.status_code} for {method} {path}: {message}")
            raise RecordStoreError(message, status_code=response.status_code)

        if body.get("success") is False:
            message = body.get("message") or "Record store request failed"
            logger.warning(f"Record store rejected {method} {path}: {message}")
            raise RecordStoreError(message, status_code=response.status_code)

        return body.get("data")

    # Metadata

    async def get_table_columns(self, schema_name: str, table_name: str) -> List[ColumnMetadata]:
        """Fetch column metadata for a table, in ordinal order."""
        data = await self._request("GET", f"/columns/{schema_name}/{table_name}")
        return self._parse_columns(data or [])

    async def get_view_columns(self, schema_name: str, view_name: str) -> List[ColumnMetadata]:
        """Fetch column metadata for a view."""
        data = await self._request("GET", f"/views/{schema_name}/{view_name}")
        return self._parse_columns((data or {}).get("columns") or [])

    async def get_columns(self, kind: ObjectKind, schema_name: str, object_name: str) -> List[ColumnMetadata]:
        if kind is ObjectKind.VIEW:
            return await self.get_view_columns(schema_name, object_name)
        return await self.get_table_columns(schema_name, object_name)

    @staticmethod
    def _parse_columns(items: List[Dict[str, Any]]) -> List[ColumnMetadata]:
        try:
            columns = [ColumnMetadata.model_validate(item) for item in items]
        except ValidationError as e:
            raise RecordStoreError(f"Invalid column metadata from record store: {e}") from e
        if all(column.ordinal_position is not None for column in columns):
            columns.sort(key=lambda column: column.ordinal_position)
        return columns

    # Records

    async def search(self, kind: ObjectKind, request: SearchRequest) -> SearchPage:
        """Run an advanced search against a table or view."""
        data = await self._request(
            "POST", f"/records/{kind.value}/advanced-search", request.to_payload()
        )
        try:
            return SearchPage.model_validate(data or {})
        except ValidationError as e:
            raise RecordStoreError(f"Invalid search response from record store: {e}") from e

    async def count(self, kind: ObjectKind, schema_name: str, object_name: str) -> int:
        data = await self._request("GET", f"/records/{kind.value}/{schema_name}/{object_name}/count")
        return int(data or 0)

    async def create_records(self, schema_name: str, table_name: str, records: List[Record]) -> Any:
        payload = {"schemaName": schema_name, "tableName": table_name, "records": records}
        return await self._request("POST", "/records/batch", _jsonable(payload))

    async def update_records(
        self, schema_name: str, table_name: str, updates: List[Dict[str, Record]]
    ) -> Any:
        """
        Update records addressed by primary key.

        Args:
            updates: Items of the form {"primaryKeyValues": ..., "data": ...}
        """
        payload = {"schemaName": schema_name, "tableName": table_name, "updates": updates}
        return await self._request("PUT", "/records/batch", _jsonable(payload))

    async def update_records_by_values(
        self, schema_name: str, table_name: str, updates: List[Dict[str, Any]]
    ) -> Any:
        """
        Update records addressed by identifying values.

        Args:
            updates: Items of the form {"identifyingValues": ..., "newData": ...}
        """
        payload = {
            "schemaName": schema_name,
            "tableName": table_name,
            "updates": [{**update, "allowMultiple": False} for update in updates],
        }
        return await self._request("PUT", "/records/batch/by-values", _jsonable(payload))

    async def delete_records(
        self, schema_name: str, table_name: str, primary_keys: List[Record]
    ) -> Any:
        payload = {
            "schemaName": schema_name,
            "tableName": table_name,
            "primaryKeyValuesList": primary_keys,
        }
        return await self._request("DELETE", "/records/batch", _jsonable(payload))

    async def delete_records_by_values(
        self, schema_name: str, table_name: str, identifying_values: List[Record]
    ) -> Any:
        payload = {
            "schemaName": schema_name,
            "tableName": table_name,
            "deletions": [
                {"identifyingValues": values, "allowMultiple": False}
                for values in identifying_values
            ],
        }
        return await self._request("DELETE", "/records/batch/by-values", _jsonable(payload))


def _jsonable(value: Any) -> Any:
    # Decimal values go out as strings so no precision is lost
    return to_jsonable_python(value)
