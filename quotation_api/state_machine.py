from __future__ import annotations

from datetime import datetime
from typing import Optional

from .domain import Quotation
from .errors import InvalidStateError
from .models import QuotationStatus, utcnow


_ALLOWED_TRANSITIONS = {
    QuotationStatus.CREATED: frozenset({QuotationStatus.RESERVED}),
    QuotationStatus.RESERVED: frozenset({QuotationStatus.CANCELLED}),
    # CANCELLED — терминальный
    QuotationStatus.CANCELLED: frozenset(),
}


def can_transition(current: QuotationStatus, target: QuotationStatus) -> bool:
    return target in _ALLOWED_TRANSITIONS.get(current, frozenset())


def assign_coverage_and_price(
    quotation: Quotation,
    coverage_id: int,
    price_id: int,
    now: Optional[datetime] = None,
) -> Quotation:
    """Attach coverage and price to a CREATED quotation.

    Must be followed by ``apply_transition(..., RESERVED)`` before the result
    is persisted.
    """
    if quotation.status != QuotationStatus.CREATED:
        raise InvalidStateError(
            f"Can only assign coverage and price to a CREATED quotation (status is {quotation.status.value})"
        )
    return quotation.model_copy(
        update={"coverage_id": coverage_id, "price_id": price_id, "updated_at": now or utcnow()}
    )


def apply_transition(
    quotation: Quotation,
    target: QuotationStatus,
    now: Optional[datetime] = None,
) -> Quotation:
    if not can_transition(quotation.status, target):
        raise InvalidStateError(
            f"Invalid status transition from {quotation.status.value} to {target.value}"
        )
    return quotation.model_copy(update={"status": target, "updated_at": now or utcnow()})
