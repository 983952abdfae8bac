"""v4 API surface: every versioned router is mounted under /api/v4."""

from fastapi import APIRouter

from src.backend.v4.api.operations_router import operations_router

app_v4 = APIRouter(
    prefix="/api/v4",
    responses={404: {"description": "Not found"}},
)

app_v4.include_router(operations_router)
