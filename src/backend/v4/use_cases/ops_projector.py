"""Project raw orders, rentals and applications into `OperationItem`s.

No network calls here: the projector only reads the materialized record set,
the link index and the integrity report.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Mapping

from src.backend.common.models.operations import (
    Customer,
    Flow,
    OperationItem,
    OperationKind,
    RelatedRef,
    ReviewLevel,
    SettlementAnchor,
    StringingSummary,
)
from src.backend.v4.use_cases.ops_integrity import IntegrityReport
from src.backend.v4.use_cases.ops_link_index import LinkIndex
from src.backend.v4.use_cases.ops_next_action import NextActionGuide, infer_next_action
from src.backend.v4.use_cases.ops_normalize import (
    normalize_application_status,
    normalize_order_status,
    normalize_payment_status,
    normalize_rental_status,
    rental_amount_total,
    rental_payment_meta,
    rental_string_price,
    rental_stringing_fee,
    rental_title,
    summarize_order_items,
)
from src.backend.v4.use_cases.ops_records import (
    CustomerSnapshot,
    RawApplication,
    RawOrder,
    RawRental,
)

NextActionAdvisor = Callable[..., NextActionGuide]

FLOW_LABELS: dict[Flow, str] = {
    Flow.solo_string_purchase: "String purchase only",
    Flow.string_service_bundle: "String purchase + restring service (integrated)",
    Flow.service_only: "Restring service only",
    Flow.solo_racket_purchase: "Racket purchase only",
    Flow.racket_string_service_bundle: "Racket purchase + string + restring service (integrated)",
    Flow.solo_racket_rental: "Racket rental only",
    Flow.racket_rental_string_service: "Racket rental + string + restring service (integrated)",
}

SETTLEMENT_LABELS: dict[SettlementAnchor, str] = {
    SettlementAnchor.order: "Settles with: order",
    SettlementAnchor.rental: "Settles with: rental",
    SettlementAnchor.application: "Settles with: application (standalone)",
}

APPLICATION_TITLE = "Restring service application"

LABEL_PACKAGE = "Package redeemed"
LABEL_IN_ORDER = "Included in order payment"
LABEL_IN_RENTAL = "Included in rental payment"
LABEL_SERVICE_PAID = "Paid"
LABEL_PENDING = "Payment pending"
LABEL_NEEDS_REVIEW = "Needs review"
LABEL_NO_CHARGE = "No separate charge"

REVIEW_TITLE_ACTION = "Payment status needs review"
REVIEW_TITLE_INFO = "Derived normally (no action needed)"


def order_href(order_id: str) -> str:
    return f"/admin/orders/{order_id}"


def rental_href(rental_id: str) -> str:
    return f"/admin/rentals/{rental_id}"


def application_href(app_id: str) -> str:
    return f"/admin/applications/stringing/{app_id}"


def order_flow(has_racket: bool, integrated: bool) -> Flow:
    if integrated:
        return Flow.racket_string_service_bundle if has_racket else Flow.string_service_bundle
    return Flow.solo_racket_purchase if has_racket else Flow.solo_string_purchase


def rental_flow(with_service: bool) -> Flow:
    return Flow.racket_rental_string_service if with_service else Flow.solo_racket_rental


def flow_label(flow: Flow) -> str:
    return FLOW_LABELS.get(flow, "Unclassified")


@dataclass(frozen=True, slots=True)
class PaymentDerivation:
    label: str
    derived: bool
    source: str  # explicit | package | order | rental | service_paid | pending | unknown


def derive_application_payment(app: RawApplication) -> PaymentDerivation:
    """Payment label for an application; first matching rule wins."""

    if (app.payment_status or "").strip():
        return PaymentDerivation(normalize_payment_status(app.payment_status), False, "explicit")
    if app.package_applied:
        return PaymentDerivation(LABEL_PACKAGE, True, "package")
    if app.payment_source.startswith("order:"):
        return PaymentDerivation(LABEL_IN_ORDER, True, "order")
    if app.payment_source.startswith("rental:"):
        return PaymentDerivation(LABEL_IN_RENTAL, True, "rental")
    if app.service_paid:
        return PaymentDerivation(LABEL_SERVICE_PAID, True, "service_paid")
    if (app.total_price or 0) > 0 or (app.service_amount or 0) > 0:
        return PaymentDerivation(LABEL_PENDING, True, "pending")
    return PaymentDerivation(LABEL_NEEDS_REVIEW, True, "unknown")


def _customer(snap: CustomerSnapshot) -> Customer:
    return Customer(name=snap.name, email=snap.email)


def _money(value: Decimal) -> float:
    return float(value)


@dataclass(frozen=True, slots=True)
class ProjectionContext:
    index: LinkIndex
    report: IntegrityReport
    applications_by_id: Mapping[str, RawApplication]
    order_has_racket: Mapping[str, bool]
    users_by_id: Mapping[str, CustomerSnapshot]
    advisor: NextActionAdvisor = infer_next_action

    def integrity_fields(self, kind: OperationKind, entity_id: str) -> dict:
        warns = self.report.warnings_for(kind, entity_id)
        return {
            "warn_reasons": warns,
            "pending_reasons": self.report.pending_for(kind, entity_id),
            "warn": len(warns) > 0,
        }


def _application_ref(app_id: str) -> RelatedRef:
    return RelatedRef(kind=OperationKind.stringing_application, id=app_id, href=application_href(app_id))


def project_order(order: RawOrder, ctx: ProjectionContext) -> OperationItem:
    # The order's own pointer also counts: a one-sided link is still an integration attempt.
    app_id = ctx.index.order_primary.get(order.id) or order.linked_application_id
    integrated = bool(app_id)
    flow = order_flow(ctx.order_has_racket.get(order.id, False), integrated)
    status_label = normalize_order_status(order.status)
    payment_label = normalize_payment_status(order.payment_status)
    related = _application_ref(app_id) if app_id else None
    guide = ctx.advisor(
        kind=OperationKind.order,
        status_label=status_label,
        payment_label=payment_label,
        related_kind=related.kind if related else None,
    )

    return OperationItem(
        id=order.id,
        kind=OperationKind.order,
        created_at=order.created_at,
        customer=_customer(order.customer),
        title=summarize_order_items(order.items),
        status_label=status_label,
        payment_label=payment_label,
        amount=_money(order.total_price),
        flow=flow,
        flow_label=flow_label(flow),
        settlement_anchor=SettlementAnchor.order,
        settlement_label=SETTLEMENT_LABELS[SettlementAnchor.order],
        href=order_href(order.id),
        related=related,
        is_integrated=integrated,
        stage=guide.stage,
        next_action=guide.next_action,
        **ctx.integrity_fields(OperationKind.order, order.id),
    )


def _application_review(
    app: RawApplication, payment: PaymentDerivation
) -> tuple[ReviewLevel, list[str]]:
    info: list[str] = []
    action: list[str] = []
    explicit = bool((app.payment_status or "").strip())

    if app.linked_order_id and not explicit:
        info.append("Order-based application without its own paymentStatus; a derived payment label was used.")
    if app.linked_rental_id and not explicit:
        info.append("Rental-based application without its own paymentStatus; a derived payment label was used.")
    if app.package_applied:
        info.append("Application is paid by package redemption.")
    if app.payment_source.startswith("order:"):
        info.append("Payment source points to an order (order:).")
    if app.payment_source.startswith("rental:"):
        info.append("Payment source points to a rental (rental:).")
    if payment.derived:
        info.append("Application payment label was derived by policy rules.")
    if payment.source == "unknown":
        action.append("The application payment source could not be determined; review needed.")

    if action:
        level = ReviewLevel.action
    elif info:
        level = ReviewLevel.info
    else:
        level = ReviewLevel.none
    return level, [*action, *info]


def _application_amount_note(
    app: RawApplication, amount: Decimal, payment: PaymentDerivation
) -> str | None:
    if amount != 0:
        return None
    if app.package_applied:
        return LABEL_PACKAGE
    if app.payment_source.startswith("order:") or app.linked_order_id:
        return LABEL_IN_ORDER
    if app.payment_source.startswith("rental:") or app.linked_rental_id:
        return LABEL_IN_RENTAL
    if payment.source == "unknown":
        return LABEL_NEEDS_REVIEW
    return LABEL_NO_CHARGE


def project_application(app: RawApplication, ctx: ProjectionContext) -> OperationItem:
    integrated = app.is_integrated

    # Order link wins over rental link.
    related: RelatedRef | None = None
    if app.linked_order_id:
        related = RelatedRef(kind=OperationKind.order, id=app.linked_order_id, href=order_href(app.linked_order_id))
    elif app.linked_rental_id:
        related = RelatedRef(kind=OperationKind.rental, id=app.linked_rental_id, href=rental_href(app.linked_rental_id))

    if related is None:
        flow = Flow.service_only
        anchor = SettlementAnchor.application
    elif related.kind == OperationKind.order:
        flow = order_flow(ctx.order_has_racket.get(related.id, False), True)
        anchor = SettlementAnchor.order
    else:
        flow = Flow.racket_rental_string_service
        anchor = SettlementAnchor.rental

    # A missing price is fatal for settlement screens: fall back to serviceAmount.
    amount = app.total_price if app.total_price is not None else (app.service_amount or Decimal("0"))
    payment = derive_application_payment(app)
    review_level, review_reasons = _application_review(app, payment)
    has_reference = amount == 0 and app.service_fee_before > 0
    status_label = normalize_application_status(app.status)
    guide = ctx.advisor(
        kind=OperationKind.stringing_application,
        status_label=status_label,
        payment_label=payment.label,
    )

    return OperationItem(
        id=app.id,
        kind=OperationKind.stringing_application,
        created_at=app.created_at,
        customer=_customer(app.customer),
        title=APPLICATION_TITLE,
        status_label=status_label,
        payment_label=payment.label,
        payment_derived=payment.derived,
        payment_source=payment.source,
        amount=_money(amount),
        amount_note=_application_amount_note(app, amount, payment),
        amount_reference=_money(app.service_fee_before) if has_reference else None,
        amount_reference_label="Reference amount" if has_reference else None,
        flow=flow,
        flow_label=flow_label(flow),
        settlement_anchor=anchor,
        settlement_label=SETTLEMENT_LABELS[anchor],
        href=application_href(app.id),
        related=related,
        is_integrated=integrated,
        needs_review=review_level == ReviewLevel.action,
        review_level=review_level,
        review_title=(
            REVIEW_TITLE_ACTION
            if review_level == ReviewLevel.action
            else REVIEW_TITLE_INFO if review_level == ReviewLevel.info else None
        ),
        review_reasons=review_reasons,
        stage=guide.stage,
        next_action=guide.next_action,
        **ctx.integrity_fields(OperationKind.stringing_application, app.id),
    )


def project_rental(rental: RawRental, ctx: ProjectionContext) -> OperationItem:
    user = ctx.users_by_id.get(rental.user_id) if rental.user_id else None
    customer = user if user is not None and not user.is_empty else rental.customer

    app_id = rental.linked_application_id or ctx.index.rental_primary.get(rental.id)
    integrated = bool(app_id)
    stringing = rental.stringing
    with_service = bool(stringing and stringing.requested) or rental.applied_service_flag or integrated
    flow = rental_flow(with_service)

    payment = rental_payment_meta(rental)
    status_label = normalize_rental_status(rental.status)
    string_price = rental_string_price(rental)
    mounting_fee = rental_stringing_fee(rental)
    requested = bool(stringing and stringing.requested) or string_price > 0 or mounting_fee > 0 or integrated
    linked_app = ctx.applications_by_id.get(app_id) if app_id else None
    review_level = ReviewLevel.info if payment.source == "derived" else ReviewLevel.none

    summary: StringingSummary | None = None
    if requested:
        summary = StringingSummary(
            requested=True,
            name=stringing.name if stringing else None,
            price=_money(string_price) if string_price > 0 else None,
            mounting_fee=_money(mounting_fee) if mounting_fee > 0 else None,
            application_status=linked_app.status if linked_app else None,
        )

    guide = ctx.advisor(
        kind=OperationKind.rental,
        status_label=status_label,
        payment_label=payment.label,
        has_outbound_tracking=rental.has_outbound_tracking,
    )

    return OperationItem(
        id=rental.id,
        kind=OperationKind.rental,
        created_at=rental.created_at,
        customer=_customer(customer),
        title=rental_title(rental),
        status_label=status_label,
        payment_label=payment.label,
        payment_derived=payment.source == "derived",
        amount=_money(rental_amount_total(rental)),
        flow=flow,
        flow_label=flow_label(flow),
        settlement_anchor=SettlementAnchor.rental,
        settlement_label=SETTLEMENT_LABELS[SettlementAnchor.rental],
        href=rental_href(rental.id),
        related=_application_ref(app_id) if app_id else None,
        is_integrated=integrated,
        needs_review=False,
        review_level=review_level,
        review_title=REVIEW_TITLE_INFO if review_level == ReviewLevel.info else None,
        review_reasons=(
            ["Rental payment field is empty; the payment label was derived from rental status/paidAt."]
            if review_level == ReviewLevel.info
            else []
        ),
        stringing_summary=summary,
        has_outbound_tracking=rental.has_outbound_tracking,
        stage=guide.stage,
        next_action=guide.next_action,
        **ctx.integrity_fields(OperationKind.rental, rental.id),
    )
