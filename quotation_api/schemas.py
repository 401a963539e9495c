from pydantic import BaseModel, Field, conint
from datetime import datetime
from typing import Any, Optional
from .models import QuotationStatus


class QuotationCreate(BaseModel):
    # status / created_at / updated_at выставляет сервис, лишние поля игнорируются
    travel_date: datetime
    passenger_count: conint(ge=1)
    user_id: int
    origin_place_id: int
    destination_place_id: int
    category_id: Optional[int] = None
    is_active: bool = True


class QuotationStatusUpdate(BaseModel):
    status: QuotationStatus
    coverage_id: Optional[int] = None
    price_id: Optional[int] = None


class QuotationRead(BaseModel):
    id: int
    status: QuotationStatus
    travel_date: datetime
    passenger_count: int
    is_active: bool
    created_at: datetime
    updated_at: datetime
    user_id: int
    origin_place_id: int
    destination_place_id: int
    category_id: Optional[int] = None
    coverage_id: Optional[int] = None
    price_id: Optional[int] = None

    model_config = {"from_attributes": True}


class ApiResponse(BaseModel):
    ok: bool
    message: str
    data: Any = None
    error: Optional[dict] = Field(default=None)
