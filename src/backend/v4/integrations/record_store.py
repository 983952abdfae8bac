"""Record store boundary used by the operations engine.

The engine only needs Mongo-style `find` semantics: a filter, a field
projection, a sort-by-recency and a limit. `InMemoryRecordStore` implements the
small filter subset the engine issues (`$ne`, `$in`, `$or`, equality) and is
used for local runs and tests.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Protocol

ORDERS = "orders"
RENTALS = "rental_orders"
APPLICATIONS = "stringing_applications"
USERS = "users"


class RecordStoreError(RuntimeError):
    """A read against the record store failed (upstream unavailable)."""


class RecordStore(Protocol):
    def find(
        self,
        collection: str,
        *,
        filter: dict[str, Any],
        projection: dict[str, int] | None = None,
        sort: dict[str, int] | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]: ...


def _comparable(value: Any) -> Any:
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, dict) and "$oid" in value:
        return str(value["$oid"])
    return str(value)


def _sort_value(value: Any) -> float:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return _sort_value(datetime.fromisoformat(value.replace("Z", "+00:00")))
        except ValueError:
            return 0.0
    return 0.0


def _matches_condition(doc_value: Any, cond: Any) -> bool:
    if isinstance(cond, dict) and any(str(k).startswith("$") for k in cond):
        for op, arg in cond.items():
            if op == "$ne":
                if _comparable(doc_value) == _comparable(arg):
                    return False
            elif op == "$in":
                wanted = {_comparable(v) for v in (arg or [])}
                if _comparable(doc_value) not in wanted:
                    return False
            else:
                raise ValueError(f"Unsupported filter operator: {op}")
        return True
    return _comparable(doc_value) == _comparable(cond)


def matches_filter(doc: dict[str, Any], flt: dict[str, Any]) -> bool:
    for key, cond in (flt or {}).items():
        if key == "$or":
            if not any(matches_filter(doc, sub) for sub in (cond or [])):
                return False
            continue
        if not _matches_condition(doc.get(key), cond):
            return False
    return True


def _project(doc: dict[str, Any], projection: dict[str, int] | None) -> dict[str, Any]:
    if not projection:
        return dict(doc)
    fields = {k for k, v in projection.items() if v}
    fields.add("_id")
    return {k: v for k, v in doc.items() if k in fields}


class InMemoryRecordStore:
    def __init__(self, collections: dict[str, list[dict[str, Any]]] | None = None) -> None:
        self._collections: dict[str, list[dict[str, Any]]] = {
            name: list(docs) for name, docs in (collections or {}).items()
        }

    def insert(self, collection: str, *docs: dict[str, Any]) -> None:
        self._collections.setdefault(collection, []).extend(docs)

    def find(
        self,
        collection: str,
        *,
        filter: dict[str, Any],
        projection: dict[str, int] | None = None,
        sort: dict[str, int] | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        docs = [d for d in self._collections.get(collection, []) if matches_filter(d, filter)]

        # Apply sort keys last-to-first so the first key dominates (stable sort).
        for field, direction in reversed(list((sort or {}).items())):
            docs.sort(key=lambda d: _sort_value(d.get(field)), reverse=direction < 0)

        if limit:
            docs = docs[:limit]
        return [_project(d, projection) for d in docs]
