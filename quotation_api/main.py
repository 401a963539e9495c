from __future__ import annotations

import logging
from datetime import datetime

from fastapi import FastAPI, Depends, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlmodel import Session

from .config import settings
from .db import init_db, get_session
from .errors import QuotationError, InternalError, ValidationError
from .locks import ReservationLocks
from .repository import SqlQuotationRepository
from .schemas import ApiResponse, QuotationCreate, QuotationRead, QuotationStatusUpdate
from .service import QuotationService

logger = logging.getLogger(__name__)

app = FastAPI(title="Quotation API")

# --- CORS: пустой CORS_ORIGINS → '*' ---
origins_str = getattr(settings, "CORS_ORIGINS", "").strip()
origins = [o.strip() for o in origins_str.split(",") if o.strip()] if origins_str else ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Блокировки живут на уровне процесса, сервис создаётся на каждый запрос
reservation_locks = ReservationLocks() if settings.SERIALIZE_RESERVATIONS else None

# ---------------------------- Lifecycle ----------------------------

@app.on_event("startup")
def on_startup() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    init_db()
    if reservation_locks is None:
        logger.warning("SERIALIZE_RESERVATIONS is off: concurrent reservations may overbook")

@app.get("/")
def root():
    return {"ok": True, "service": "quotation-api"}

@app.get("/health")
def health():
    return "ok"

# ------------------------------ Ошибки ------------------------------

def error_response(exc: QuotationError) -> JSONResponse:
    body = ApiResponse(ok=False, message=exc.message, error=exc.to_dict())
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())

@app.exception_handler(QuotationError)
async def quotation_error_handler(request: Request, exc: QuotationError) -> JSONResponse:
    if isinstance(exc, InternalError):
        # наружу — только общее сообщение, детали в лог
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.tech_info)
    return error_response(exc)

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    reasons = [
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()
    ]
    return error_response(ValidationError("Invalid request data", reasons))

# --------------------------- Зависимости ----------------------------

def get_quotation_service(session: Session = Depends(get_session)) -> QuotationService:
    return QuotationService(SqlQuotationRepository(session), locks=reservation_locks)

def _one(message: str, quotation) -> ApiResponse:
    return ApiResponse(ok=True, message=message, data=QuotationRead.model_validate(quotation))

def _many(message: str, quotations) -> ApiResponse:
    return ApiResponse(ok=True, message=message, data=[QuotationRead.model_validate(q) for q in quotations])

# ---------------------------- Endpoints -----------------------------

@app.get("/quotations", response_model=ApiResponse)
async def list_quotations(service: QuotationService = Depends(get_quotation_service)):
    return _many("Quotations retrieved successfully", await service.list_quotations())

# объявлен до /quotations/{quotation_id}, иначе 'date-range' попадёт в id
@app.get("/quotations/date-range", response_model=ApiResponse)
async def list_quotations_by_date_range(
    start_date: datetime = Query(...),
    end_date: datetime = Query(...),
    service: QuotationService = Depends(get_quotation_service),
):
    quotations = await service.list_quotations_by_date_range(start_date, end_date)
    return _many("Quotations retrieved successfully by date range", quotations)

@app.get("/quotations/user/{user_id}", response_model=ApiResponse)
async def list_quotations_by_user(user_id: int, service: QuotationService = Depends(get_quotation_service)):
    return _many("Quotations retrieved successfully by user", await service.list_quotations_by_user(user_id))

@app.get("/quotations/provider/{provider_id}", response_model=ApiResponse)
async def list_quotations_by_provider(provider_id: int, service: QuotationService = Depends(get_quotation_service)):
    quotations = await service.list_quotations_by_provider(provider_id)
    return _many("Quotations retrieved successfully by provider", quotations)

@app.get("/quotations/{quotation_id}", response_model=ApiResponse)
async def get_quotation(quotation_id: int, service: QuotationService = Depends(get_quotation_service)):
    return _one("Quotation retrieved successfully", await service.get_quotation(quotation_id))

@app.post("/quotations", response_model=ApiResponse, status_code=201)
async def create_quotation(data: QuotationCreate, service: QuotationService = Depends(get_quotation_service)):
    """
    Создание котировки.
    Статус всегда CREATED, дата поездки не в прошлом, coverage/price не принимаются.
    """
    quotation = await service.create_quotation(data.model_dump())
    return _one("Quotation created successfully", quotation)

@app.patch("/quotations/{quotation_id}/status", response_model=ApiResponse)
async def update_quotation_status(
    quotation_id: int,
    data: QuotationStatusUpdate,
    service: QuotationService = Depends(get_quotation_service),
):
    """
    Смена статуса: CREATED → RESERVED (нужны coverage_id и price_id, проверяется вместимость)
    или RESERVED → CANCELLED.
    """
    quotation = await service.update_quotation_status(
        quotation_id, data.status, coverage_id=data.coverage_id, price_id=data.price_id
    )
    return _one("Quotation status updated successfully", quotation)

@app.delete("/quotations/{quotation_id}", response_model=ApiResponse)
async def delete_quotation(quotation_id: int, service: QuotationService = Depends(get_quotation_service)):
    await service.delete_quotation(quotation_id)
    return ApiResponse(ok=True, message=f"Quotation {quotation_id} deleted successfully")
