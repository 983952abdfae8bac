"""Typed raw records for the operations engine.

Store documents are loosely shaped (nested payment info, guest snapshots in
several places, ids as strings or ObjectIds). Everything is decoded here once,
with explicit defaults, so the rest of the engine works on plain fields.

No network calls here.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

RACKET_ITEM_KINDS = frozenset({"racket", "used_racket"})
DRAFT_STATUS = "draft"


@dataclass(frozen=True, slots=True)
class CustomerSnapshot:
    name: str = ""
    email: str = ""

    @property
    def is_empty(self) -> bool:
        return not (self.name or self.email)


@dataclass(frozen=True, slots=True)
class OrderLineItem:
    name: str
    kind: str | None = None


@dataclass(frozen=True, slots=True)
class RawOrder:
    id: str
    created_at: datetime | None = None
    status: str | None = None
    payment_status: str | None = None
    items: tuple[OrderLineItem, ...] = ()
    total_price: Decimal = Decimal("0")
    customer: CustomerSnapshot = CustomerSnapshot()
    linked_application_id: str | None = None
    applied_service_flag: bool = False

    @property
    def has_racket(self) -> bool:
        return any(it.kind in RACKET_ITEM_KINDS for it in self.items)


@dataclass(frozen=True, slots=True)
class RentalStringing:
    requested: bool = False
    name: str | None = None
    price: Decimal | None = None
    mounting_fee: Decimal | None = None


@dataclass(frozen=True, slots=True)
class RentalAmount:
    fee: Decimal | None = None
    deposit: Decimal | None = None
    string_price: Decimal | None = None
    stringing_fee: Decimal | None = None
    total: Decimal | None = None


@dataclass(frozen=True, slots=True)
class RawRental:
    id: str
    created_at: datetime | None = None
    status: str | None = None
    payment_status: str | None = None
    paid_at: datetime | None = None
    user_id: str | None = None
    customer: CustomerSnapshot = CustomerSnapshot()
    brand: str = ""
    model: str = ""
    days: int = 0
    amount: RentalAmount = RentalAmount()
    stringing: RentalStringing | None = None
    linked_application_id: str | None = None
    applied_service_flag: bool = False
    has_outbound_tracking: bool = False


@dataclass(frozen=True, slots=True)
class RawApplication:
    id: str
    created_at: datetime | None = None
    status: str | None = None
    payment_status: str | None = None
    payment_source: str = ""
    package_applied: bool = False
    service_paid: bool = False
    total_price: Decimal | None = None
    service_amount: Decimal | None = None
    service_fee_before: Decimal = Decimal("0")
    linked_order_id: str | None = None
    linked_rental_id: str | None = None
    customer: CustomerSnapshot = CustomerSnapshot()

    @property
    def is_draft(self) -> bool:
        return (self.status or "").strip() == DRAFT_STATUS

    @property
    def is_integrated(self) -> bool:
        return bool(self.linked_order_id or self.linked_rental_id)


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def as_doc(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def get_str(value: Any) -> str | None:
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return None


def get_id(value: Any) -> str | None:
    """Normalize ids (str, number, ObjectId, Extended JSON) to a non-empty string."""

    if value is None or value == "":
        return None
    if isinstance(value, dict):
        oid = value.get("$oid")
        return str(oid) if oid else None
    s = get_str(value)
    if s is None:
        s = str(value)
    s = s.strip()
    return s or None


def to_decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, dict) and "$numberDecimal" in value:
        value = value["$numberDecimal"]
    try:
        d = Decimal(str(value).replace(",", "").strip())
    except (InvalidOperation, ValueError):
        return None
    return d if d.is_finite() else None


def parse_datetime(value: Any) -> datetime | None:
    """Parse datetimes, ISO strings, epoch millis and Extended JSON dates (UTC)."""

    if value is None or value == "":
        return None
    if isinstance(value, dict) and "$date" in value:
        return parse_datetime(value["$date"])
    if isinstance(value, dict) and "$numberLong" in value:
        millis = to_decimal(value["$numberLong"])
        return parse_datetime(int(millis)) if millis is not None else None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
        return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
    return None


def _snapshot(doc: dict[str, Any], name_key: str = "name", email_key: str = "email") -> CustomerSnapshot:
    return CustomerSnapshot(
        name=str(doc.get(name_key) or ""),
        email=str(doc.get(email_key) or ""),
    )


def pick_customer(doc: dict[str, Any]) -> CustomerSnapshot:
    """Pick the first non-empty customer snapshot.

    Orders, applications and rentals each keep the customer in different
    places: `customer`, `userSnapshot`, `guestInfo`, flat `guestName` /
    `guestEmail`, or a rental `guest` object.
    """

    for key in ("customer", "userSnapshot", "guestInfo"):
        snap = _snapshot(as_doc(doc.get(key)))
        if not snap.is_empty:
            return snap

    flat = _snapshot(doc, "guestName", "guestEmail")
    if not flat.is_empty:
        return flat

    guest = _snapshot(as_doc(doc.get("guest")))
    if not guest.is_empty:
        return guest

    return CustomerSnapshot()


def _payment_status(doc: dict[str, Any]) -> str | None:
    return get_str(doc.get("paymentStatus")) or get_str(as_doc(doc.get("paymentInfo")).get("status"))


def _int(value: Any) -> int:
    d = to_decimal(value)
    return int(d) if d is not None else 0


# ---------------------------------------------------------------------------
# Decoders
# ---------------------------------------------------------------------------


def decode_order(doc: dict[str, Any]) -> RawOrder:
    raw_items = doc.get("items")
    items = tuple(
        OrderLineItem(name=str(it.get("name") or "").strip(), kind=get_str(it.get("kind")))
        for it in (raw_items if isinstance(raw_items, list) else [])
        if isinstance(it, dict)
    )
    return RawOrder(
        id=get_id(doc.get("_id")) or "",
        created_at=parse_datetime(doc.get("createdAt")),
        status=get_str(doc.get("status")),
        payment_status=_payment_status(doc),
        items=items,
        total_price=to_decimal(doc.get("totalPrice")) or Decimal("0"),
        customer=pick_customer(doc),
        linked_application_id=get_id(doc.get("stringingApplicationId")),
        applied_service_flag=bool(doc.get("isStringServiceApplied")),
    )


def decode_rental(doc: dict[str, Any]) -> RawRental:
    amount_doc = as_doc(doc.get("amount"))
    stringing_doc = doc.get("stringing")
    stringing: RentalStringing | None = None
    if isinstance(stringing_doc, dict):
        stringing = RentalStringing(
            requested=bool(stringing_doc.get("requested")),
            name=get_str(stringing_doc.get("name")),
            price=to_decimal(stringing_doc.get("price")),
            mounting_fee=to_decimal(stringing_doc.get("mountingFee")),
        )

    outbound = as_doc(as_doc(doc.get("shipping")).get("outbound"))
    days = doc.get("days")
    if days is None:
        days = doc.get("period")

    return RawRental(
        id=get_id(doc.get("_id")) or "",
        created_at=parse_datetime(doc.get("createdAt")),
        status=get_str(doc.get("status")),
        payment_status=_payment_status(doc),
        paid_at=parse_datetime(doc.get("paidAt")),
        user_id=get_id(doc.get("userId")),
        customer=pick_customer(doc),
        brand=str(doc.get("brand") or ""),
        model=str(doc.get("model") or ""),
        days=_int(days),
        amount=RentalAmount(
            fee=to_decimal(amount_doc.get("fee", doc.get("fee"))),
            deposit=to_decimal(amount_doc.get("deposit", doc.get("deposit"))),
            string_price=to_decimal(amount_doc.get("stringPrice")),
            stringing_fee=to_decimal(amount_doc.get("stringingFee")),
            total=to_decimal(amount_doc.get("total")),
        ),
        stringing=stringing,
        linked_application_id=get_id(doc.get("stringingApplicationId")),
        applied_service_flag=bool(doc.get("isStringServiceApplied")),
        has_outbound_tracking=bool(outbound.get("trackingNumber")),
    )


def decode_application(doc: dict[str, Any]) -> RawApplication:
    return RawApplication(
        id=get_id(doc.get("_id")) or "",
        created_at=parse_datetime(doc.get("createdAt")),
        status=get_str(doc.get("status")),
        payment_status=get_str(doc.get("paymentStatus")),
        payment_source=get_str(doc.get("paymentSource")) or "",
        package_applied=doc.get("packageApplied") is True,
        service_paid=doc.get("servicePaid") is True,
        total_price=to_decimal(doc.get("totalPrice")),
        service_amount=to_decimal(doc.get("serviceAmount")),
        service_fee_before=to_decimal(doc.get("serviceFeeBefore")) or Decimal("0"),
        linked_order_id=get_id(doc.get("orderId")),
        linked_rental_id=get_id(doc.get("rentalId")),
        customer=pick_customer(doc),
    )
