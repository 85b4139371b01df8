"""API v1 router - aggregates all endpoint routers."""

from fastapi import APIRouter

from app.api.v1.catalog import router as catalog_router
from app.api.v1.grids import router as grids_router

api_router = APIRouter()

# Include all routers
api_router.include_router(catalog_router)
api_router.include_router(grids_router)


@api_router.get("/")
async def api_info():
    """API information endpoint."""
    return {
        "name": "Record Grid Console API",
        "version": "1.0.0",
        "endpoints": {
            "catalog": "/api/v1/catalog",
            "grids": "/api/v1/grids",
        },
    }
