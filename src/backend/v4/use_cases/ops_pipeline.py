"""Merge, filter and paginate projected operation items.

Flow and integration filters keep whole groups (an order never shows up
without its linked application, or the reverse). The warning filter regroups
items and keeps only groups that contain at least one warned item.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Mapping

from src.backend.common.models.operations import Flow, KindPriority, OperationItem, OperationKind
from src.backend.v4.config.settings import OperationsPolicy
from src.backend.v4.use_cases.ops_link_index import group_key

_TRUE = {"1", "true"}
_FALSE = {"0", "false"}


@dataclass(frozen=True, slots=True)
class OperationsListQuery:
    page: int = 1
    page_size: int = 50
    kind: OperationKind | None = None  # None means all kinds
    q: str = ""
    warn: bool = False
    flow: Flow | None = None
    integrated: bool | None = None


@dataclass(slots=True)
class OperationGroup:
    key: str
    anchor: OperationItem
    created_at: datetime | None
    items: list[OperationItem] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Query parsing (clamp, never reject)
# ---------------------------------------------------------------------------


def parse_int_param(value: str | None, *, default: int, minimum: int, maximum: int) -> int:
    try:
        n = float(value) if value is not None and value.strip() else None
    except ValueError:
        n = None
    base = int(n) if n is not None and math.isfinite(n) else default
    return min(maximum, max(minimum, base))


def parse_kind(value: str | None) -> OperationKind | None:
    try:
        return OperationKind((value or "").strip())
    except ValueError:
        return None


def parse_flow(value: str | None) -> Flow | None:
    try:
        n = float((value or "").strip())
    except ValueError:
        return None
    if not n.is_integer() or not 1 <= n <= 7:
        return None
    return Flow(int(n))


def parse_integrated(value: str | None) -> bool | None:
    v = (value or "").strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    return None


def parse_operations_list_query(
    params: Mapping[str, str | None], policy: OperationsPolicy | None = None
) -> OperationsListQuery:
    policy = policy or OperationsPolicy()
    return OperationsListQuery(
        page=parse_int_param(params.get("page"), default=1, minimum=1, maximum=policy.max_page),
        page_size=parse_int_param(
            params.get("pageSize"),
            default=policy.default_page_size,
            minimum=1,
            maximum=policy.max_page_size,
        ),
        kind=parse_kind(params.get("kind")),
        q=(params.get("q") or "").strip().casefold(),
        warn=(params.get("warn") or "").strip().lower() in _TRUE,
        flow=parse_flow(params.get("flow")),
        integrated=parse_integrated(params.get("integrated")),
    )


# ---------------------------------------------------------------------------
# Pipeline steps
# ---------------------------------------------------------------------------


def _ts(item: OperationItem) -> float:
    return item.created_at.timestamp() if item.created_at else 0.0


def merge_operation_items(*lists: Iterable[OperationItem]) -> list[OperationItem]:
    """Concatenate and sort newest first; ties keep input order (stable sort)."""

    merged = [it for lst in lists for it in lst]
    merged.sort(key=_ts, reverse=True)
    return merged


def filter_by_kind(items: list[OperationItem], kind: OperationKind | None) -> list[OperationItem]:
    if kind is None:
        return items
    return [it for it in items if it.kind == kind]


def filter_by_text(items: list[OperationItem], q: str) -> list[OperationItem]:
    needle = (q or "").strip().casefold()
    if not needle:
        return items

    def _hit(it: OperationItem) -> bool:
        return any(
            needle in (v or "").casefold()
            for v in (it.id, it.customer.name, it.customer.email, it.title)
        )

    return [it for it in items if _hit(it)]


def filter_by_flow(items: list[OperationItem], flow: Flow | None) -> list[OperationItem]:
    if flow is None:
        return items
    allowed = {group_key(it) for it in items if it.flow == flow}
    return [it for it in items if group_key(it) in allowed]


def filter_by_integration(items: list[OperationItem], integrated: bool | None) -> list[OperationItem]:
    if integrated is None:
        return items
    group_integrated: dict[str, bool] = {}
    for it in items:
        key = group_key(it)
        group_integrated[key] = group_integrated.get(key, False) or it.is_integrated
    return [it for it in items if group_integrated[group_key(it)] == integrated]


def build_groups(items: Iterable[OperationItem]) -> list[OperationGroup]:
    by_key: dict[str, list[OperationItem]] = {}
    for it in items:
        by_key.setdefault(group_key(it), []).append(it)

    groups: list[OperationGroup] = []
    for key, members in by_key.items():
        members.sort(key=lambda x: KindPriority.of(x.kind))
        # Members are kind-sorted, so the first one is the order, else the rental.
        anchor = members[0]
        latest = max(members, key=_ts)
        groups.append(
            OperationGroup(key=key, anchor=anchor, created_at=latest.created_at, items=members)
        )
    return groups


def filter_warning_groups(items: list[OperationItem]) -> list[OperationItem]:
    groups = [g for g in build_groups(items) if any(it.warn for it in g.items)]
    # Most recent warning group first.
    groups.sort(key=lambda g: g.created_at.timestamp() if g.created_at else 0.0, reverse=True)
    return [it for g in groups for it in g.items]


def paginate(items: list[OperationItem], page: int, page_size: int) -> list[OperationItem]:
    start = (page - 1) * page_size
    return items[start : start + page_size]


def run_operations_pipeline(
    *,
    orders: list[OperationItem],
    applications: list[OperationItem],
    rentals: list[OperationItem],
    query: OperationsListQuery,
) -> tuple[list[OperationItem], int]:
    """Return (page items, total after filtering)."""

    merged = merge_operation_items(orders, applications, rentals)
    merged = filter_by_kind(merged, query.kind)
    merged = filter_by_text(merged, query.q)
    merged = filter_by_flow(merged, query.flow)
    merged = filter_by_integration(merged, query.integrated)
    if query.warn:
        merged = filter_warning_groups(merged)

    total = len(merged)
    return paginate(merged, query.page, query.page_size), total
