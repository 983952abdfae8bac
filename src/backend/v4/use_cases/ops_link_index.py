"""Order/rental <-> stringing application link maps and group keys."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from src.backend.common.models.operations import OperationItem, OperationKind
from src.backend.v4.use_cases.ops_records import RawApplication


@dataclass(slots=True)
class LinkIndex:
    """Forward maps built from the application side (`orderId` / `rentalId`).

    `*_primary` keeps the first application seen for an anchor and is never
    overwritten; it drives integration and flow classification. `*_all` keeps
    every distinct application id and is used to detect duplicate links.
    """

    order_primary: dict[str, str] = field(default_factory=dict)
    rental_primary: dict[str, str] = field(default_factory=dict)
    order_all: dict[str, list[str]] = field(default_factory=dict)
    rental_all: dict[str, list[str]] = field(default_factory=dict)

    def add(self, app: RawApplication) -> None:
        if not app.id:
            return
        if app.linked_order_id:
            self.order_primary.setdefault(app.linked_order_id, app.id)
            ids = self.order_all.setdefault(app.linked_order_id, [])
            if app.id not in ids:
                ids.append(app.id)
        if app.linked_rental_id:
            self.rental_primary.setdefault(app.linked_rental_id, app.id)
            ids = self.rental_all.setdefault(app.linked_rental_id, [])
            if app.id not in ids:
                ids.append(app.id)

    def apps_for_order(self, order_id: str) -> list[str]:
        return list(self.order_all.get(order_id, []))

    def apps_for_rental(self, rental_id: str) -> list[str]:
        return list(self.rental_all.get(rental_id, []))


def build_link_index(applications: Iterable[RawApplication]) -> LinkIndex:
    index = LinkIndex()
    for app in applications:
        index.add(app)
    return index


def entity_key(kind: OperationKind | str, entity_id: str) -> str:
    """Per-entity key used by the integrity maps, e.g. `order:123`."""
    return f"{OperationKind(kind).value}:{entity_id}"


def group_key(item: OperationItem) -> str:
    """Anchor key of the group an item belongs to.

    Orders and rentals anchor themselves. Applications anchor to the linked
    order or rental; standalone applications anchor themselves (`app:` prefix
    so they can never collide with an order or rental key).
    """

    if item.kind == OperationKind.order:
        return f"order:{item.id}"
    if item.kind == OperationKind.rental:
        return f"rental:{item.id}"

    rel = item.related
    if rel is not None and rel.kind == OperationKind.order:
        return f"order:{rel.id}"
    if rel is not None and rel.kind == OperationKind.rental:
        return f"rental:{rel.id}"
    return f"app:{item.id}"
