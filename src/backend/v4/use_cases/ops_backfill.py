"""Completeness backfill helpers.

The top-N application window can miss applications that are linked to an
order or rental that *is* visible. The engine fetches those separately and
merges them here; it also collects anchor pointers that still do not resolve,
so they can be checked against drafts.
"""

from __future__ import annotations

from typing import Iterable

from src.backend.v4.use_cases.ops_link_index import LinkIndex
from src.backend.v4.use_cases.ops_records import RawApplication, RawOrder, RawRental


def merge_applications(
    primary: list[RawApplication],
    extra: Iterable[RawApplication],
    *,
    index: LinkIndex | None = None,
) -> tuple[list[RawApplication], int]:
    """Append applications not already present; return (merged, added_count).

    Every backfilled application, new or not, is offered to `index` so the
    link maps see links that only the supplemental fetch returned.
    """

    merged = list(primary)
    seen = {a.id for a in merged}
    added = 0
    for app in extra:
        if not app.id:
            continue
        if app.id not in seen:
            merged.append(app)
            seen.add(app.id)
            added += 1
        if index is not None:
            index.add(app)
    return merged, added


def unresolved_application_ids(
    orders: Iterable[RawOrder],
    rentals: Iterable[RawRental],
    known_ids: set[str],
) -> list[str]:
    """Application ids pointed to by orders/rentals but not in `known_ids`."""

    out: list[str] = []
    for rec in [*orders, *rentals]:
        app_id = rec.linked_application_id
        if app_id and app_id not in known_ids and app_id not in out:
            out.append(app_id)
    return out
