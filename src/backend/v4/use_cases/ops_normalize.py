"""Display normalization for the operations list.

Keeps status/payment labels, titles and amounts consistent across admin
screens. Display only: settlement figures are not computed here.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from src.backend.v4.use_cases.ops_records import OrderLineItem, RawRental

_ORDER_STATUS = {
    "": "Pending",
    "pending": "Pending",
    "processing": "Processing",
    "shipped": "Shipped",
    "delivered": "Delivered",
    "confirmed": "Purchase confirmed",
    # Legacy documents sometimes store the payment state in `status`.
    "paid": "Paid",
    "cancelled": "Cancelled",
    "canceled": "Cancelled",
    "refunded": "Refunded",
}

_PAYMENT_STATUS = {
    "": "Payment pending",
    "pending": "Payment pending",
    "paid": "Paid",
    "confirmed": "Paid",
    "failed": "Payment failed",
    "cancelled": "Payment cancelled",
    "canceled": "Payment cancelled",
    "refunded": "Refunded",
}

_RENTAL_STATUS = {
    "": "Pending",
    "pending": "Pending",
    "paid": "Paid",
    "out": "Out on rental",
    "returned": "Returned",
    "canceled": "Cancelled",
    "cancelled": "Cancelled",
}

_APPLICATION_STATUS = {
    "": "Received",
    "received": "Received",
    "reviewing": "Under review",
    "in_progress": "In progress",
    "completed": "Restring complete",
    "cancelled": "Cancelled",
    "canceled": "Cancelled",
}

# Rental states that imply the rental was paid for.
_RENTAL_PAID_STATES = frozenset({"paid", "out", "returned"})


def _lookup(table: dict[str, str], value: str | None) -> str:
    s = (value or "").strip()
    # Already-normalized labels pass through unchanged.
    return table.get(s, s or table[""])


def normalize_order_status(status: str | None) -> str:
    return _lookup(_ORDER_STATUS, status)


def normalize_payment_status(status: str | None) -> str:
    return _lookup(_PAYMENT_STATUS, status)


def normalize_rental_status(status: str | None) -> str:
    return _lookup(_RENTAL_STATUS, status)


def normalize_application_status(status: str | None) -> str:
    return _lookup(_APPLICATION_STATUS, status)


def summarize_order_items(items: Iterable[OrderLineItem]) -> str:
    names = [it.name for it in items if it.name]
    if not names:
        return "Order"
    if len(names) == 1:
        return names[0]
    return f"{names[0]} and {len(names) - 1} more"


def rental_title(rental: RawRental) -> str:
    title = f"{rental.brand} {rental.model}".strip()
    if rental.days:
        title += f" ({rental.days} days)"
    return title


def _d(value: Decimal | None) -> Decimal:
    return value if value is not None else Decimal("0")


def rental_string_price(rental: RawRental) -> Decimal:
    if rental.amount.string_price is not None:
        return rental.amount.string_price
    st = rental.stringing
    return _d(st.price) if st is not None and st.requested else Decimal("0")


def rental_stringing_fee(rental: RawRental) -> Decimal:
    if rental.amount.stringing_fee is not None:
        return rental.amount.stringing_fee
    st = rental.stringing
    return _d(st.mounting_fee) if st is not None and st.requested else Decimal("0")


def rental_amount_total(rental: RawRental) -> Decimal:
    """Total shown on the rental sheet: explicit total, else the sum of parts."""

    if rental.amount.total is not None:
        return rental.amount.total
    return (
        _d(rental.amount.fee)
        + _d(rental.amount.deposit)
        + rental_string_price(rental)
        + rental_stringing_fee(rental)
    )


@dataclass(frozen=True, slots=True)
class RentalPaymentMeta:
    label: str
    source: str  # "explicit" | "derived"


def rental_payment_meta(rental: RawRental) -> RentalPaymentMeta:
    """Payment label for a rental.

    Rentals often have no payment field; the label is then derived from the
    rental status and `paidAt`.
    """

    if (rental.payment_status or "").strip():
        return RentalPaymentMeta(label=normalize_payment_status(rental.payment_status), source="explicit")

    status = (rental.status or "").strip()
    if status in _RENTAL_PAID_STATES or rental.paid_at is not None:
        return RentalPaymentMeta(label="Paid", source="derived")
    if status in {"canceled", "cancelled"}:
        return RentalPaymentMeta(label="Payment cancelled", source="derived")
    return RentalPaymentMeta(label="Payment pending", source="derived")
