from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuotationStatus(str, Enum):
    CREATED = "CREATED"
    RESERVED = "RESERVED"
    CANCELLED = "CANCELLED"


# Vehicle и Coverage ведутся внешним CRUD-слоем; здесь только то,
# что нужно для вместимости и привязки к провайдеру
class Vehicle(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    code: str
    capacity: int
    is_active: bool = True
    provider_id: int = Field(index=True)
    category_id: int


class Coverage(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    vehicle_id: int = Field(foreign_key="vehicle.id", index=True)
    provider_id: int = Field(index=True)
    is_active: bool = True


class QuotationRecord(SQLModel, table=True):
    __tablename__ = "quotation"

    id: Optional[int] = Field(default=None, primary_key=True, index=True)
    status: QuotationStatus = Field(default=QuotationStatus.CREATED, index=True)
    travel_date: datetime = Field(sa_type=DateTime(timezone=True), index=True)
    passenger_count: int
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    user_id: int = Field(index=True)
    origin_place_id: int
    destination_place_id: int
    category_id: Optional[int] = None
    # заполняются только при переходе в RESERVED
    coverage_id: Optional[int] = Field(default=None, foreign_key="coverage.id", index=True)
    price_id: Optional[int] = None
