from __future__ import annotations

from src.backend.common.models.operations import Flow, OperationItem, OperationKind, RelatedRef, SettlementAnchor
from src.backend.v4.use_cases.ops_backfill import merge_applications, unresolved_application_ids
from src.backend.v4.use_cases.ops_link_index import build_link_index, entity_key, group_key
from src.backend.v4.use_cases.ops_records import RawApplication, RawOrder, RawRental


def _item(kind: OperationKind, item_id: str, related: RelatedRef | None = None) -> OperationItem:
    return OperationItem(
        id=item_id,
        kind=kind,
        flow=Flow.service_only,
        settlement_anchor=SettlementAnchor.application,
        related=related,
    )


def test_primary_link_is_first_seen_and_all_links_are_deduplicated() -> None:
    apps = [
        RawApplication(id="a-1", linked_order_id="o-1"),
        RawApplication(id="a-2", linked_order_id="o-1"),
        RawApplication(id="a-1", linked_order_id="o-1"),
        RawApplication(id="a-3", linked_rental_id="r-1"),
        RawApplication(id="", linked_order_id="o-9"),
    ]

    index = build_link_index(apps)

    assert index.order_primary == {"o-1": "a-1"}
    assert index.apps_for_order("o-1") == ["a-1", "a-2"]
    assert index.rental_primary == {"r-1": "a-3"}
    assert index.apps_for_rental("r-1") == ["a-3"]
    assert index.apps_for_order("o-9") == []


def test_entity_key_uses_kind_value() -> None:
    assert entity_key(OperationKind.order, "1") == "order:1"
    assert entity_key("stringing_application", "1") == "stringing_application:1"


def test_group_key_anchors_applications_to_their_counterpart() -> None:
    order = _item(OperationKind.order, "x")
    rental = _item(OperationKind.rental, "x")
    linked_app = _item(
        OperationKind.stringing_application,
        "a-1",
        RelatedRef(kind=OperationKind.order, id="x", href="/admin/orders/x"),
    )
    standalone = _item(OperationKind.stringing_application, "x")

    assert group_key(linked_app) == group_key(order) == "order:x"
    assert group_key(rental) == "rental:x"
    # Same raw id, different kinds: never the same group.
    assert len({group_key(order), group_key(rental), group_key(standalone)}) == 3


def test_merge_applications_skips_known_ids_and_feeds_the_index() -> None:
    index = build_link_index([RawApplication(id="a-1", linked_order_id="o-1")])
    primary = [RawApplication(id="a-1", linked_order_id="o-1")]
    extra = [
        RawApplication(id="a-1", linked_order_id="o-1"),
        RawApplication(id="a-2", linked_rental_id="r-1"),
    ]

    merged, added = merge_applications(primary, extra, index=index)

    assert [a.id for a in merged] == ["a-1", "a-2"]
    assert added == 1
    assert index.rental_primary == {"r-1": "a-2"}


def test_unresolved_application_ids_lists_each_missing_pointer_once() -> None:
    orders = [
        RawOrder(id="o-1", linked_application_id="a-1"),
        RawOrder(id="o-2", linked_application_id="a-9"),
        RawOrder(id="o-3"),
    ]
    rentals = [RawRental(id="r-1", linked_application_id="a-9"), RawRental(id="r-2", linked_application_id="a-8")]

    assert unresolved_application_ids(orders, rentals, {"a-1"}) == ["a-9", "a-8"]
