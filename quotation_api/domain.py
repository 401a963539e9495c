from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError
from .models import QuotationStatus, utcnow


def as_utc(dt: datetime) -> datetime:
    """Naive datetimes are taken as UTC; aware ones are converted to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class Quotation(BaseModel):
    """Immutable quotation value.

    State changes go through :mod:`quotation_api.state_machine`, which hands
    back a new instance each time.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: Optional[int] = None
    status: QuotationStatus = QuotationStatus.CREATED
    travel_date: datetime
    passenger_count: PositiveInt
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    user_id: int
    origin_place_id: int
    destination_place_id: int
    category_id: Optional[int] = None
    coverage_id: Optional[int] = None
    price_id: Optional[int] = None

    @field_validator("travel_date", "created_at", "updated_at")
    @classmethod
    def _normalize_tz(cls, value: datetime) -> datetime:
        return as_utc(value)

    @model_validator(mode="after")
    def _check_reservation_fields(self) -> "Quotation":
        has_coverage = self.coverage_id is not None
        has_price = self.price_id is not None
        if has_coverage != has_price:
            raise ValueError("coverage_id and price_id must be set together")
        if self.status == QuotationStatus.CREATED and has_coverage:
            raise ValueError("coverage_id and price_id are only assigned on reservation")
        if self.status == QuotationStatus.RESERVED and not has_coverage:
            raise ValueError("a reserved quotation needs coverage_id and price_id")
        return self


def _reasons(exc: PydanticValidationError) -> List[str]:
    reasons = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()))
        reasons.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return reasons


def parse_quotation(payload: Mapping[str, Any]) -> Quotation:
    """Build a Quotation from an untyped payload or raise ValidationError with every violation."""
    try:
        return Quotation.model_validate(dict(payload))
    except PydanticValidationError as exc:
        raise ValidationError("Invalid quotation data", _reasons(exc)) from exc


def parse_status(value: Any) -> QuotationStatus:
    try:
        return QuotationStatus(value)
    except ValueError as exc:
        allowed = ", ".join(s.value for s in QuotationStatus)
        raise ValidationError("Invalid status", [f"status: must be one of {allowed}"]) from exc
