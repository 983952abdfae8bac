from __future__ import annotations

import pytest

from src.backend.common.models.operations import OperationKind
from src.backend.v4.use_cases.ops_next_action import infer_next_action


@pytest.mark.parametrize(
    "status,payment,tracking,stage,action",
    [
        ("Pending", "Payment pending", False, "Rental payment check", "Confirm the rental payment"),
        ("Paid", "Paid", False, "Preparing dispatch", "Register outbound shipping information"),
        ("Paid", "Paid", True, "Preparing dispatch", "Start the rental once the customer confirms receipt"),
        ("Out on rental", "Paid", True, "Rental in progress", "Check the return schedule and linked application status"),
    ],
)
def test_rental_guidance(status, payment, tracking, stage, action) -> None:
    guide = infer_next_action(
        kind=OperationKind.rental,
        status_label=status,
        payment_label=payment,
        has_outbound_tracking=tracking,
    )
    assert (guide.stage, guide.next_action) == (stage, action)


def test_application_with_included_payment_waiting_for_review() -> None:
    guide = infer_next_action(
        kind="stringing_application",
        status_label="Received",
        payment_label="Included in order payment",
    )
    assert guide.stage == "Application payment context review"


@pytest.mark.parametrize(
    "status,stage",
    [
        ("Under review", "Application intake/review"),
        ("In progress", "Work in progress"),
        ("Restring complete", "Restring complete"),
    ],
)
def test_application_guidance_by_status(status, stage) -> None:
    guide = infer_next_action(kind=OperationKind.stringing_application, status_label=status, payment_label="Paid")
    assert guide.stage == stage


def test_integrated_order_guidance_depends_on_payment() -> None:
    unpaid = infer_next_action(
        kind=OperationKind.order,
        status_label="Pending",
        payment_label="Payment pending",
        related_kind=OperationKind.stringing_application,
    )
    paid = infer_next_action(
        kind=OperationKind.order,
        status_label="Processing",
        payment_label="Paid",
        related_kind=OperationKind.stringing_application,
    )

    assert unpaid.stage == "Order payment check"
    assert paid.stage == "Order follow-up"


@pytest.mark.parametrize(
    "status,payment,stage",
    [
        ("Cancelled", "Payment cancelled", "Order closed"),
        ("Pending", "Payment pending", "Order payment check"),
        ("Delivered", "Paid", "Delivered"),
        ("Shipped", "Paid", "In transit"),
        ("Processing", "Paid", "Preparing shipment"),
    ],
)
def test_standalone_order_guidance(status, payment, stage) -> None:
    guide = infer_next_action(kind=OperationKind.order, status_label=status, payment_label=payment)
    assert guide.stage == stage


def test_unmatched_state_falls_back_to_generic_check() -> None:
    guide = infer_next_action(kind=OperationKind.rental, status_label="Returned", payment_label="Paid")
    assert guide.stage == "Operations check"
