from __future__ import annotations

from src.backend.v4.use_cases.ops_integrity import (
    PENDING_DRAFT,
    PENDING_NOT_SUBMITTED,
    IntegrityValidator,
    validate_links,
)
from src.backend.v4.use_cases.ops_link_index import build_link_index
from src.backend.v4.use_cases.ops_records import RawApplication, RawOrder, RawRental


def _validate(orders=(), rentals=(), applications=(), drafts=None):
    applications = list(applications)
    return validate_links(
        orders=list(orders),
        rentals=list(rentals),
        applications=applications,
        index=build_link_index(applications),
        drafts_by_id=drafts,
    )


def test_consistent_bidirectional_link_produces_no_findings() -> None:
    report = _validate(
        orders=[RawOrder(id="o-1", linked_application_id="a-1", applied_service_flag=True)],
        applications=[RawApplication(id="a-1", linked_order_id="o-1")],
    )

    assert report.warned_keys == []
    assert dict(report.pending_by_key) == {}


def test_two_applications_on_one_order_warn_about_duplicate_link() -> None:
    report = _validate(
        orders=[RawOrder(id="o-1", linked_application_id="a-1")],
        applications=[
            RawApplication(id="a-1", linked_order_id="o-1"),
            RawApplication(id="a-2", linked_order_id="o-1"),
        ],
    )

    warns = report.warnings_for("order", "o-1")
    assert "2 applications reference this order (possible duplicate or split link)." in warns
    # a-2 points at o-1 but o-1 points at a-1.
    assert report.warnings_for("stringing_application", "a-2") == [
        "order.stringingApplicationId points to a different application (back-link mismatch)."
    ]
    assert report.warnings_for("stringing_application", "a-1") == []


def test_missing_back_link_on_order_is_a_warning_on_both_sides() -> None:
    report = _validate(
        orders=[RawOrder(id="o-1")],
        applications=[RawApplication(id="a-1", linked_order_id="o-1")],
    )

    assert report.warnings_for("order", "o-1") == [
        "An application links to this order but order.stringingApplicationId is empty (missing back-link)."
    ]
    assert report.warnings_for("stringing_application", "a-1") == [
        "Application links to the order but order.stringingApplicationId is empty (missing back-link)."
    ]


def test_order_pointer_to_application_with_empty_order_id_is_a_mismatch() -> None:
    report = _validate(
        orders=[RawOrder(id="o-1", linked_application_id="a-1")],
        applications=[RawApplication(id="a-1", linked_order_id=None)],
    )

    assert report.warnings_for("order", "o-1") == [
        "Order/application link mismatch (application.orderId does not point to this order)."
    ]
    assert report.warnings_for("stringing_application", "a-1") == [
        "Application/order link mismatch: application.orderId does not match "
        "the order whose stringingApplicationId points here."
    ]


def test_pointer_to_draft_is_pending_not_warning() -> None:
    draft = RawApplication(id="a-1", status="draft", linked_order_id="o-1")
    report = _validate(
        orders=[RawOrder(id="o-1", linked_application_id="a-1", applied_service_flag=True)],
        drafts={"a-1": draft},
    )

    assert report.warnings_for("order", "o-1") == []
    assert report.pending_for("order", "o-1") == [PENDING_DRAFT]


def test_rental_pointer_without_claim_or_back_link_is_pending_not_submitted() -> None:
    report = _validate(rentals=[RawRental(id="r-1", linked_application_id="a-404")])

    assert report.warnings_for("rental", "r-1") == []
    assert report.pending_for("rental", "r-1") == [PENDING_NOT_SUBMITTED]


def test_missing_application_with_service_claim_is_a_warning() -> None:
    report = _validate(
        rentals=[RawRental(id="r-1", linked_application_id="a-404", applied_service_flag=True)]
    )

    assert report.warnings_for("rental", "r-1") == [
        "The application referenced by rental.stringingApplicationId was not found."
    ]
    assert report.pending_for("rental", "r-1") == []


def test_pointer_outside_link_side_set_is_flagged_as_index_inconsistency() -> None:
    report = _validate(
        orders=[RawOrder(id="o-1", linked_application_id="a-404", applied_service_flag=True)],
        applications=[RawApplication(id="a-1", linked_order_id="o-1")],
    )

    warns = report.warnings_for("order", "o-1")
    assert "The application referenced by order.stringingApplicationId was not found." in warns
    assert (
        "order.stringingApplicationId does not match the applications whose orderId points here." in warns
    )


def test_application_pointing_to_unfetched_rental_is_dangling() -> None:
    report = _validate(applications=[RawApplication(id="a-1", linked_rental_id="r-404")])

    assert report.warnings_for("stringing_application", "a-1") == [
        "The rental referenced by application.rentalId was not found."
    ]


def test_reasons_are_deduplicated_per_entity() -> None:
    validator = IntegrityValidator()
    validator.push_warning("order", "o-1", "same")
    validator.push_warning("order", "o-1", "same")
    validator.push_pending("rental", "r-1", "wait")
    validator.push_pending("rental", "r-1", "wait")

    report = validator.report()

    assert report.warnings_for("order", "o-1") == ["same"]
    assert report.pending_for("rental", "r-1") == ["wait"]
    assert report.warned_keys == ["order:o-1"]
