"""Next-action guidance for operation items.

Pure label heuristics: given a kind and its status/payment labels, suggest the
stage the record is in and what the operator should do next.
"""

from __future__ import annotations

from dataclasses import dataclass

from src.backend.common.models.operations import OperationKind


@dataclass(frozen=True, slots=True)
class NextActionGuide:
    stage: str
    next_action: str


def _s(value: str | None) -> str:
    return (value or "").strip().lower()


def _done_like(label: str | None) -> bool:
    s = _s(label)
    if s.startswith("payment "):
        return False
    return any(k in s for k in ("paid", "complete", "returned", "delivered", "purchase confirmed"))


def _has_included_payment_context(payment_label: str | None) -> bool:
    s = _s(payment_label)
    return any(k in s for k in ("package redeemed", "included in order payment", "included in rental payment"))


def _is_rental_pending(status: str | None) -> bool:
    s = _s(status)
    return s == "pending"


def _is_rental_paid(status: str | None) -> bool:
    return _s(status) == "paid"


def _is_rental_out(status: str | None) -> bool:
    s = _s(status)
    return s in {"out", "out on rental"}


def _is_app_waiting(status: str | None) -> bool:
    s = _s(status)
    return s in {"received", "under review", "reviewing"}


def _is_app_working(status: str | None) -> bool:
    return _s(status) in {"in progress", "in_progress"}


def _is_app_done(status: str | None) -> bool:
    return _s(status) in {"restring complete", "completed"}


def _is_order_shipped(status: str | None) -> bool:
    return _s(status) == "shipped"


def _is_order_delivered_like(status: str | None) -> bool:
    return _s(status) in {"delivered", "purchase confirmed", "confirmed"}


def _is_order_closed(status: str | None) -> bool:
    s = _s(status)
    return any(k in s for k in ("refund", "cancel"))


def _standalone_order_guide(status_label: str | None, payment_label: str | None) -> NextActionGuide:
    if _is_order_closed(status_label):
        return NextActionGuide("Order closed", "No follow-up needed")
    if not _done_like(payment_label):
        return NextActionGuide("Order payment check", "Confirm the order payment")
    if _is_order_delivered_like(status_label):
        return NextActionGuide("Delivered", "Monitor purchase confirmation or refund requests")
    if _is_order_shipped(status_label):
        return NextActionGuide("In transit", "Check tracking and receipt before marking delivered")
    return NextActionGuide("Preparing shipment", "Register shipping information")


def infer_next_action(
    *,
    kind: OperationKind | str,
    status_label: str | None,
    payment_label: str | None,
    has_outbound_tracking: bool = False,
    related_kind: OperationKind | str | None = None,
) -> NextActionGuide:
    kind = OperationKind(kind)

    if kind == OperationKind.rental:
        if _is_rental_pending(status_label) or not _done_like(payment_label):
            return NextActionGuide("Rental payment check", "Confirm the rental payment")
        if _is_rental_paid(status_label) and not _is_rental_out(status_label):
            if not has_outbound_tracking:
                return NextActionGuide("Preparing dispatch", "Register outbound shipping information")
            return NextActionGuide("Preparing dispatch", "Start the rental once the customer confirms receipt")
        if _is_rental_out(status_label):
            return NextActionGuide("Rental in progress", "Check the return schedule and linked application status")

    if kind == OperationKind.stringing_application:
        if _has_included_payment_context(payment_label) and _is_app_waiting(status_label):
            return NextActionGuide(
                "Application payment context review",
                "Verify the payment context (package/order/rental) then check the work status",
            )
        if _is_app_waiting(status_label):
            return NextActionGuide("Application intake/review", "Check the application work status")
        if _is_app_working(status_label):
            return NextActionGuide("Work in progress", "Mark the application as restring complete when done")
        if _is_app_done(status_label):
            return NextActionGuide("Restring complete", "Check that the linked order/rental reflects the follow-up")

    if kind == OperationKind.order:
        if related_kind is not None and OperationKind(related_kind) == OperationKind.stringing_application:
            if not _done_like(payment_label):
                return NextActionGuide(
                    "Order payment check",
                    "Confirm the order payment and whether the linked application can proceed",
                )
            return NextActionGuide(
                "Order follow-up",
                "Check shipping/receipt status and the linked application progress",
            )
        return _standalone_order_guide(status_label, payment_label)

    return NextActionGuide("Operations check", "Check the linked records to decide the next step")
