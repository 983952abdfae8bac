"""Bounded record fetchers and the staged collection step.

Store calls are blocking; `collect_operation_records` runs them in worker
threads as a three-stage graph:

1. orders, rentals, applications (independent)
2. linked-application backfill, rental user lookup (need stage 1 ids)
3. draft resolution for pointers that are still unresolved

Any `RecordStoreError` aborts the whole collection. Nothing is retried.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from src.backend.v4.integrations.record_store import (
    APPLICATIONS,
    ORDERS,
    RENTALS,
    USERS,
    RecordStore,
)
from src.backend.v4.use_cases.ops_backfill import merge_applications, unresolved_application_ids
from src.backend.v4.use_cases.ops_link_index import LinkIndex, build_link_index
from src.backend.v4.use_cases.ops_records import (
    DRAFT_STATUS,
    CustomerSnapshot,
    RawApplication,
    RawOrder,
    RawRental,
    decode_application,
    decode_order,
    decode_rental,
    get_id,
)

logger = logging.getLogger(__name__)

RECENT_FIRST = {"createdAt": -1}

ORDER_PROJECTION = {
    "_id": 1,
    "createdAt": 1,
    "status": 1,
    "paymentStatus": 1,
    "paymentInfo": 1,
    "isStringServiceApplied": 1,
    "stringingApplicationId": 1,
    "totalPrice": 1,
    "customer": 1,
    "userSnapshot": 1,
    "guestInfo": 1,
    "items": 1,
}

RENTAL_PROJECTION = {
    "_id": 1,
    "createdAt": 1,
    "status": 1,
    "paymentStatus": 1,
    "paymentInfo": 1,
    "paidAt": 1,
    "userId": 1,
    "guest": 1,
    "brand": 1,
    "model": 1,
    "days": 1,
    "period": 1,
    "amount": 1,
    "fee": 1,
    "deposit": 1,
    "stringing": 1,
    "shipping": 1,
    "stringingApplicationId": 1,
    "isStringServiceApplied": 1,
}

APPLICATION_PROJECTION = {
    "_id": 1,
    "createdAt": 1,
    "status": 1,
    "paymentStatus": 1,
    "paymentInfo": 1,
    "packageApplied": 1,
    "paymentSource": 1,
    "servicePaid": 1,
    "serviceFeeBefore": 1,
    "totalPrice": 1,
    "serviceAmount": 1,
    "orderId": 1,
    "rentalId": 1,
    "customer": 1,
    "userSnapshot": 1,
    "guestName": 1,
    "guestEmail": 1,
}

DRAFT_PROJECTION = {"_id": 1, "status": 1, "orderId": 1, "rentalId": 1, "createdAt": 1}

NOT_DRAFT = {"status": {"$ne": DRAFT_STATUS}}


def fetch_recent_orders(store: RecordStore, limit: int) -> list[RawOrder]:
    docs = store.find(ORDERS, filter={}, projection=ORDER_PROJECTION, sort=RECENT_FIRST, limit=limit)
    return [decode_order(d) for d in docs]


def fetch_recent_rentals(store: RecordStore, limit: int) -> list[RawRental]:
    docs = store.find(RENTALS, filter={}, projection=RENTAL_PROJECTION, sort=RECENT_FIRST, limit=limit)
    return [decode_rental(d) for d in docs]


def fetch_recent_applications(store: RecordStore, limit: int) -> list[RawApplication]:
    docs = store.find(
        APPLICATIONS,
        filter=dict(NOT_DRAFT),
        projection=APPLICATION_PROJECTION,
        sort=RECENT_FIRST,
        limit=limit,
    )
    return [decode_application(d) for d in docs]


def fetch_linked_applications(
    store: RecordStore, order_ids: list[str], rental_ids: list[str]
) -> list[RawApplication]:
    """Non-draft applications linked to any of the given orders or rentals."""

    link_or: list[dict[str, Any]] = []
    if order_ids:
        link_or.append({"orderId": {"$in": list(order_ids)}})
    if rental_ids:
        link_or.append({"rentalId": {"$in": list(rental_ids)}})
    if not link_or:
        return []

    docs = store.find(
        APPLICATIONS,
        filter={**NOT_DRAFT, "$or": link_or},
        projection=APPLICATION_PROJECTION,
    )
    return [decode_application(d) for d in docs]


def fetch_draft_applications(store: RecordStore, app_ids: list[str]) -> dict[str, RawApplication]:
    if not app_ids:
        return {}
    docs = store.find(
        APPLICATIONS,
        filter={"_id": {"$in": list(app_ids)}, "status": DRAFT_STATUS},
        projection=DRAFT_PROJECTION,
    )
    drafts = [decode_application(d) for d in docs]
    return {d.id: d for d in drafts if d.id}


def fetch_user_snapshots(store: RecordStore, user_ids: list[str]) -> dict[str, CustomerSnapshot]:
    if not user_ids:
        return {}
    docs = store.find(USERS, filter={"_id": {"$in": list(user_ids)}}, projection={"name": 1, "email": 1})
    out: dict[str, CustomerSnapshot] = {}
    for d in docs:
        uid = get_id(d.get("_id"))
        if uid:
            out[uid] = CustomerSnapshot(name=str(d.get("name") or ""), email=str(d.get("email") or ""))
    return out


def _unique(values: Iterable[str | None]) -> list[str]:
    out: list[str] = []
    for v in values:
        if v and v not in out:
            out.append(v)
    return out


@dataclass(slots=True)
class OperationRecordSet:
    """Everything one list request needs, fully materialized."""

    orders: list[RawOrder]
    rentals: list[RawRental]
    applications: list[RawApplication]
    link_index: LinkIndex
    drafts_by_id: dict[str, RawApplication] = field(default_factory=dict)
    users_by_id: dict[str, CustomerSnapshot] = field(default_factory=dict)
    backfilled_count: int = 0

    @property
    def applications_by_id(self) -> dict[str, RawApplication]:
        return {a.id: a for a in self.applications}


async def collect_operation_records(store: RecordStore, *, max_fetch_each: int) -> OperationRecordSet:
    orders, rentals, applications = await asyncio.gather(
        asyncio.to_thread(fetch_recent_orders, store, max_fetch_each),
        asyncio.to_thread(fetch_recent_rentals, store, max_fetch_each),
        asyncio.to_thread(fetch_recent_applications, store, max_fetch_each),
    )
    logger.debug(
        f"Stage 1 fetched orders={len(orders)} rentals={len(rentals)} applications={len(applications)}"
    )

    index = build_link_index(applications)

    order_ids = _unique(o.id for o in orders)
    rental_ids = _unique(r.id for r in rentals)
    user_ids = _unique(r.user_id for r in rentals)
    extra_apps, users_by_id = await asyncio.gather(
        asyncio.to_thread(fetch_linked_applications, store, order_ids, rental_ids),
        asyncio.to_thread(fetch_user_snapshots, store, user_ids),
    )
    applications, added = merge_applications(applications, extra_apps, index=index)
    logger.debug(f"Stage 2 backfilled applications={added} users={len(users_by_id)}")

    missing = unresolved_application_ids(orders, rentals, {a.id for a in applications})
    drafts_by_id = await asyncio.to_thread(fetch_draft_applications, store, missing)
    logger.debug(f"Stage 3 unresolved={len(missing)} drafts={len(drafts_by_id)}")

    return OperationRecordSet(
        orders=orders,
        rentals=rentals,
        applications=applications,
        link_index=index,
        drafts_by_id=drafts_by_id,
        users_by_id=users_by_id,
        backfilled_count=added,
    )
