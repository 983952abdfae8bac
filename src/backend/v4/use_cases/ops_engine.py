"""Operations list engine.

Goal
- Merge orders, rentals and stringing applications into one operator list.
- Surface link-integrity defects as warnings and normal incompleteness as
  pending, without ever writing to the store.

This module intentionally avoids FastAPI types/exceptions. Store failures
propagate as `RecordStoreError`.
"""

from __future__ import annotations

import logging

from src.backend.common.models.operations import OperationsListResponse
from src.backend.v4.config.settings import OperationsPolicy
from src.backend.v4.integrations.record_store import RecordStore
from src.backend.v4.use_cases.ops_fetchers import OperationRecordSet, collect_operation_records
from src.backend.v4.use_cases.ops_integrity import validate_links
from src.backend.v4.use_cases.ops_next_action import infer_next_action
from src.backend.v4.use_cases.ops_pipeline import OperationsListQuery, run_operations_pipeline
from src.backend.v4.use_cases.ops_projector import (
    NextActionAdvisor,
    ProjectionContext,
    project_application,
    project_order,
    project_rental,
)

logger = logging.getLogger(__name__)


def build_operations_list(
    records: OperationRecordSet,
    query: OperationsListQuery,
    *,
    advisor: NextActionAdvisor = infer_next_action,
) -> OperationsListResponse:
    """Pure part of the request: validate, project, merge/filter/page."""

    report = validate_links(
        orders=records.orders,
        rentals=records.rentals,
        applications=records.applications,
        index=records.link_index,
        drafts_by_id=records.drafts_by_id,
    )

    ctx = ProjectionContext(
        index=records.link_index,
        report=report,
        applications_by_id=records.applications_by_id,
        order_has_racket={o.id: o.has_racket for o in records.orders},
        users_by_id=records.users_by_id,
        advisor=advisor,
    )

    order_items = [project_order(o, ctx) for o in records.orders]
    app_items = [project_application(a, ctx) for a in records.applications]
    rental_items = [project_rental(r, ctx) for r in records.rentals]

    items, total = run_operations_pipeline(
        orders=order_items,
        applications=app_items,
        rentals=rental_items,
        query=query,
    )

    logger.info(
        f"Operations list: orders={len(records.orders)} rentals={len(records.rentals)} "
        f"applications={len(records.applications)} backfilled={records.backfilled_count} "
        f"drafts={len(records.drafts_by_id)} warned={len(report.warned_keys)} total={total}"
    )
    return OperationsListResponse(items=items, total=total)


class OperationsListEngine:
    """Request-scoped read of the store followed by the pure list build."""

    def __init__(
        self,
        store: RecordStore,
        policy: OperationsPolicy | None = None,
        *,
        advisor: NextActionAdvisor = infer_next_action,
    ) -> None:
        self._store = store
        self._policy = policy or OperationsPolicy()
        self._advisor = advisor

    @property
    def policy(self) -> OperationsPolicy:
        return self._policy

    async def list_operations(self, query: OperationsListQuery) -> OperationsListResponse:
        records = await collect_operation_records(self._store, max_fetch_each=self._policy.max_fetch_each)
        return build_operations_list(records, query, advisor=self._advisor)
