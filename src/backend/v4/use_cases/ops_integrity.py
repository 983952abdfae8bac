"""Bidirectional link integrity checks between orders/rentals and applications.

Findings are classified as either:
- warning: a real data defect (dangling reference, missing back-link,
  duplicate link, mismatched pointers)
- pending: normal incompleteness (application still a draft, service not
  submitted yet)

When the evidence is consistent with "not finished yet", the finding is
pending, not a warning.

A validator instance owns its reason maps for one request only.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from src.backend.common.models.operations import OperationKind
from src.backend.v4.use_cases.ops_link_index import LinkIndex, entity_key
from src.backend.v4.use_cases.ops_records import RawApplication, RawOrder, RawRental

APP = OperationKind.stringing_application

PENDING_DRAFT = "The stringing application is still a draft (awaiting completion)."
PENDING_NOT_SUBMITTED = "The stringing application has not been submitted yet (not applied / not started)."


@dataclass(frozen=True, slots=True)
class IntegrityReport:
    warnings_by_key: Mapping[str, tuple[str, ...]]
    pending_by_key: Mapping[str, tuple[str, ...]]

    def warnings_for(self, kind: OperationKind | str, entity_id: str) -> list[str]:
        return list(self.warnings_by_key.get(entity_key(kind, entity_id), ()))

    def pending_for(self, kind: OperationKind | str, entity_id: str) -> list[str]:
        return list(self.pending_by_key.get(entity_key(kind, entity_id), ()))

    @property
    def warned_keys(self) -> list[str]:
        return [k for k, v in self.warnings_by_key.items() if v]


@dataclass(frozen=True, slots=True)
class _AnchorLink:
    """One order or rental, seen from the link-integrity point of view."""

    kind: OperationKind
    id: str
    app_id_in_anchor: str | None
    claims_applied: bool
    app_ids_from_link_side: list[str]

    @property
    def noun(self) -> str:
        return self.kind.value

    @property
    def app_field(self) -> str:
        return "orderId" if self.kind == OperationKind.order else "rentalId"


class IntegrityValidator:
    def __init__(self) -> None:
        self._warnings: dict[str, list[str]] = {}
        self._pending: dict[str, list[str]] = {}

    def push_warning(self, kind: OperationKind | str, entity_id: str, reason: str) -> None:
        reasons = self._warnings.setdefault(entity_key(kind, entity_id), [])
        if reason not in reasons:
            reasons.append(reason)

    def push_pending(self, kind: OperationKind | str, entity_id: str, reason: str) -> None:
        reasons = self._pending.setdefault(entity_key(kind, entity_id), [])
        if reason not in reasons:
            reasons.append(reason)

    # -- anchor side ---------------------------------------------------------

    def _check_anchor(
        self,
        link: _AnchorLink,
        apps_by_id: Mapping[str, RawApplication],
        drafts_by_id: Mapping[str, RawApplication],
    ) -> None:
        kind, aid, noun = link.kind, link.id, link.noun
        from_apps = link.app_ids_from_link_side
        pointer = link.app_id_in_anchor

        if len(from_apps) > 1:
            self.push_warning(
                kind, aid, f"{len(from_apps)} applications reference this {noun} (possible duplicate or split link)."
            )
        if from_apps and not pointer:
            self.push_warning(
                kind,
                aid,
                f"An application links to this {noun} but {noun}.stringingApplicationId is empty (missing back-link).",
            )

        if not pointer:
            return

        app = apps_by_id.get(pointer)
        if app is None:
            if pointer in drafts_by_id:
                self.push_pending(kind, aid, PENDING_DRAFT)
            elif not link.claims_applied and not from_apps:
                # Nothing claims the service was applied and nothing points back.
                self.push_pending(kind, aid, PENDING_NOT_SUBMITTED)
            else:
                self.push_warning(
                    kind, aid, f"The application referenced by {noun}.stringingApplicationId was not found."
                )
        else:
            back = app.linked_order_id if kind == OperationKind.order else app.linked_rental_id
            if back != aid:
                self.push_warning(
                    kind,
                    aid,
                    f"{noun.capitalize()}/application link mismatch "
                    f"(application.{link.app_field} does not point to this {noun}).",
                )
                self.push_warning(
                    APP,
                    app.id,
                    f"Application/{noun} link mismatch: application.{link.app_field} does not match "
                    f"the {noun} whose stringingApplicationId points here.",
                )

        if from_apps and pointer not in from_apps:
            self.push_warning(
                kind,
                aid,
                f"{noun}.stringingApplicationId does not match the applications whose {link.app_field} points here.",
            )

    def check_orders(
        self,
        orders: list[RawOrder],
        index: LinkIndex,
        apps_by_id: Mapping[str, RawApplication],
        drafts_by_id: Mapping[str, RawApplication],
    ) -> None:
        for o in orders:
            link = _AnchorLink(
                kind=OperationKind.order,
                id=o.id,
                app_id_in_anchor=o.linked_application_id,
                claims_applied=o.applied_service_flag,
                app_ids_from_link_side=index.apps_for_order(o.id),
            )
            self._check_anchor(link, apps_by_id, drafts_by_id)

    def check_rentals(
        self,
        rentals: list[RawRental],
        index: LinkIndex,
        apps_by_id: Mapping[str, RawApplication],
        drafts_by_id: Mapping[str, RawApplication],
    ) -> None:
        for r in rentals:
            link = _AnchorLink(
                kind=OperationKind.rental,
                id=r.id,
                app_id_in_anchor=r.linked_application_id,
                claims_applied=r.applied_service_flag,
                app_ids_from_link_side=index.apps_for_rental(r.id),
            )
            self._check_anchor(link, apps_by_id, drafts_by_id)

    # -- application side ----------------------------------------------------

    def _check_back_pointer(
        self, app: RawApplication, noun: str, field: str, back: str | None, found: bool
    ) -> None:
        if not found:
            self.push_warning(APP, app.id, f"The {noun} referenced by application.{field} was not found.")
        elif not back:
            self.push_warning(
                APP,
                app.id,
                f"Application links to the {noun} but {noun}.stringingApplicationId is empty (missing back-link).",
            )
        elif back != app.id:
            self.push_warning(
                APP,
                app.id,
                f"{noun}.stringingApplicationId points to a different application (back-link mismatch).",
            )

    def check_applications(
        self,
        applications: list[RawApplication],
        orders_by_id: Mapping[str, RawOrder],
        rentals_by_id: Mapping[str, RawRental],
    ) -> None:
        for a in applications:
            if a.linked_order_id:
                o = orders_by_id.get(a.linked_order_id)
                self._check_back_pointer(
                    a, "order", "orderId", o.linked_application_id if o else None, o is not None
                )
            if a.linked_rental_id:
                r = rentals_by_id.get(a.linked_rental_id)
                self._check_back_pointer(
                    a, "rental", "rentalId", r.linked_application_id if r else None, r is not None
                )

    def report(self) -> IntegrityReport:
        return IntegrityReport(
            warnings_by_key=MappingProxyType({k: tuple(v) for k, v in self._warnings.items()}),
            pending_by_key=MappingProxyType({k: tuple(v) for k, v in self._pending.items()}),
        )


def validate_links(
    *,
    orders: list[RawOrder],
    rentals: list[RawRental],
    applications: list[RawApplication],
    index: LinkIndex,
    drafts_by_id: Mapping[str, RawApplication] | None = None,
) -> IntegrityReport:
    """Run every integrity check for one request and return the findings."""

    apps_by_id = {a.id: a for a in applications}
    drafts = drafts_by_id or {}
    validator = IntegrityValidator()
    validator.check_orders(orders, index, apps_by_id, drafts)
    validator.check_rentals(rentals, index, apps_by_id, drafts)
    validator.check_applications(
        applications,
        {o.id: o for o in orders},
        {r.id: r for r in rentals},
    )
    return validator.report()
