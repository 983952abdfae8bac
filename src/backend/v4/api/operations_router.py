"""Admin Operations API Router.

Unified, read-only list of orders, rentals and stringing applications with
link-integrity warnings. Query parameters are clamped, never rejected.
"""

import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, Request

from src.backend.common.config.app_config import config
from src.backend.common.models.operations import OperationsListResponse
from src.backend.v4.api.admin_guard import (
    AdminIdentity,
    FixedWindowRateLimiter,
    client_ip,
    require_admin,
)
from src.backend.v4.config.settings import OperationsPolicy, load_operations_policy
from src.backend.v4.integrations.data_api_store import DataApiRecordStore
from src.backend.v4.integrations.record_store import InMemoryRecordStore, RecordStore, RecordStoreError
from src.backend.v4.use_cases.ops_engine import OperationsListEngine
from src.backend.v4.use_cases.ops_pipeline import parse_operations_list_query

logger = logging.getLogger(__name__)

operations_router = APIRouter(tags=["Admin Operations"])


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_operations_policy() -> OperationsPolicy:
    return load_operations_policy(config.OPS_POLICY_PATH or None)


@lru_cache(maxsize=1)
def get_record_store() -> RecordStore:
    backend = (config.OPS_STORE_BACKEND or "data_api").strip().lower()
    if backend == "memory":
        logger.warning("Using the in-memory record store (empty unless seeded)")
        return InMemoryRecordStore()
    return DataApiRecordStore.from_env()


@lru_cache(maxsize=1)
def get_rate_limiter() -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(get_operations_policy().rate_limit)


def get_operations_engine() -> OperationsListEngine:
    return OperationsListEngine(get_record_store(), get_operations_policy())


async def enforce_rate_limit(
    request: Request,
    admin: AdminIdentity = Depends(require_admin),
    limiter: FixedWindowRateLimiter = Depends(get_rate_limiter),
) -> AdminIdentity:
    limiter.hit(admin.admin_id, client_ip(request))
    return admin


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@operations_router.get("/admin/operations", response_model=OperationsListResponse)
async def list_admin_operations(
    request: Request,
    admin: AdminIdentity = Depends(enforce_rate_limit),
    engine: OperationsListEngine = Depends(get_operations_engine),
):
    """List orders, rentals and stringing applications as one operator view.

    Query: page, pageSize, kind, q, warn, flow, integrated.
    Read-only: no record is written.
    """

    query = parse_operations_list_query(request.query_params, engine.policy)

    try:
        result = await engine.list_operations(query)
    except RecordStoreError as e:
        logger.error(f"Operations list failed for admin {admin.admin_id}: {e}")
        raise HTTPException(
            status_code=502,
            detail="Record store unavailable; the operations list could not be built",
        )

    return result
