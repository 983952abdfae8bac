"""
Admin operations list models (request/response shapes).

Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime
from enum import Enum, IntEnum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class OperationKind(str, Enum):
    order = "order"
    rental = "rental"
    stringing_application = "stringing_application"


class KindPriority(IntEnum):
    """Ordering of kinds inside a group: order, then rental, then application."""
    order = 0
    rental = 1
    stringing_application = 2

    @classmethod
    def of(cls, kind: "OperationKind | str") -> "KindPriority":
        return cls[OperationKind(kind).value]


class SettlementAnchor(str, Enum):
    order = "order"
    rental = "rental"
    application = "application"


class ReviewLevel(str, Enum):
    none = "none"
    info = "info"
    action = "action"


class Flow(IntEnum):
    solo_string_purchase = 1
    string_service_bundle = 2
    service_only = 3
    solo_racket_purchase = 4
    racket_string_service_bundle = 5
    solo_racket_rental = 6
    racket_rental_string_service = 7


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Customer(CamelModel):
    name: str = ""
    email: str = ""


class RelatedRef(CamelModel):
    kind: OperationKind
    id: str
    href: str


class StringingSummary(CamelModel):
    requested: bool
    name: Optional[str] = None
    price: Optional[float] = None
    mounting_fee: Optional[float] = None
    application_status: Optional[str] = None


class OperationItem(CamelModel):
    """One row of the operations list: a projected order, rental or application."""
    id: str
    kind: OperationKind
    created_at: Optional[datetime] = None
    customer: Customer = Field(default_factory=Customer)
    title: str = ""
    status_label: str = ""
    payment_label: str = ""
    payment_derived: bool = False
    payment_source: Optional[str] = None
    amount: float = 0.0
    amount_note: Optional[str] = None
    amount_reference: Optional[float] = None
    amount_reference_label: Optional[str] = None
    flow: Flow
    flow_label: str = ""
    settlement_anchor: SettlementAnchor
    settlement_label: str = ""
    href: str = ""
    related: Optional[RelatedRef] = None
    is_integrated: bool = False
    warn_reasons: List[str] = Field(default_factory=list)
    pending_reasons: List[str] = Field(default_factory=list)
    warn: bool = False
    needs_review: bool = False
    review_level: ReviewLevel = ReviewLevel.none
    review_title: Optional[str] = None
    review_reasons: List[str] = Field(default_factory=list)
    stringing_summary: Optional[StringingSummary] = None
    has_outbound_tracking: Optional[bool] = None
    stage: str = ""
    next_action: str = ""


class OperationsListResponse(CamelModel):
    items: List[OperationItem] = Field(default_factory=list)
    total: int = 0
