"""API dependencies for the record store client and grid sessions."""

from typing import Annotated

from fastapi import Depends, Request

from app.core.exceptions import NotFound
from app.services.grid_service import GridSession, GridSessionRegistry
from app.services.record_store import RecordStoreClient


def get_record_store(request: Request) -> RecordStoreClient:
    """Get the record store client created at startup."""
    return request.app.state.record_store


def get_registry(request: Request) -> GridSessionRegistry:
    """Get the registry of open grid sessions."""
    return request.app.state.grid_registry


RecordStore = Annotated[RecordStoreClient, Depends(get_record_store)]
Registry = Annotated[GridSessionRegistry, Depends(get_registry)]


def get_grid(grid_id: str, registry: Registry) -> GridSession:
    """Look up a grid session from the path, raising 404 if it is gone."""
    session = registry.get(grid_id)
    if session is None:
        raise NotFound(f"Grid '{grid_id}'")
    return session


Grid = Annotated[GridSession, Depends(get_grid)]
