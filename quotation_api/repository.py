from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Protocol

from sqlalchemy import func, update
from sqlmodel import Session, select
from starlette.concurrency import run_in_threadpool

from .domain import Quotation, as_utc
from .models import Coverage, QuotationRecord, QuotationStatus, Vehicle


class QuotationRepository(Protocol):
    """Persistence the quotation service depends on. Every call is an await point."""

    async def find_by_id(self, quotation_id: int) -> Optional[Quotation]: ...

    async def insert(self, quotation: Quotation) -> int: ...

    async def update(self, quotation: Quotation, expected_status: Optional[QuotationStatus] = None) -> bool:
        """Replace the stored record; with ``expected_status`` only if it still has that status."""
        ...

    async def delete(self, quotation_id: int) -> bool: ...

    async def sum_reserved_passengers(self, coverage_id: int, travel_date: datetime) -> int: ...

    async def resolve_vehicle_capacity(self, coverage_id: int) -> Optional[int]: ...

    async def list_all(self) -> List[Quotation]: ...

    async def list_by_user(self, user_id: int) -> List[Quotation]: ...

    async def list_by_provider(self, provider_id: int) -> List[Quotation]: ...

    async def list_by_date_range(self, start: datetime, end: datetime) -> List[Quotation]: ...


def _to_domain(record: QuotationRecord) -> Quotation:
    return Quotation.model_validate(record)


# SqlQuotationRepository
# Сессия синхронная, поэтому каждая операция уходит в пул потоков Starlette.
class SqlQuotationRepository:
    def __init__(self, session: Session):
        self.session = session

    async def find_by_id(self, quotation_id: int) -> Optional[Quotation]:
        return await run_in_threadpool(self._find_by_id, quotation_id)

    async def insert(self, quotation: Quotation) -> int:
        return await run_in_threadpool(self._insert, quotation)

    async def update(self, quotation: Quotation, expected_status: Optional[QuotationStatus] = None) -> bool:
        return await run_in_threadpool(self._update, quotation, expected_status)

    async def delete(self, quotation_id: int) -> bool:
        return await run_in_threadpool(self._delete, quotation_id)

    async def sum_reserved_passengers(self, coverage_id: int, travel_date: datetime) -> int:
        return await run_in_threadpool(self._sum_reserved_passengers, coverage_id, travel_date)

    async def resolve_vehicle_capacity(self, coverage_id: int) -> Optional[int]:
        return await run_in_threadpool(self._resolve_vehicle_capacity, coverage_id)

    async def list_all(self) -> List[Quotation]:
        return await run_in_threadpool(self._list, select(QuotationRecord))

    async def list_by_user(self, user_id: int) -> List[Quotation]:
        stmt = select(QuotationRecord).where(QuotationRecord.user_id == user_id)
        return await run_in_threadpool(self._list, stmt)

    async def list_by_provider(self, provider_id: int) -> List[Quotation]:
        stmt = (
            select(QuotationRecord)
            .join(Coverage, Coverage.id == QuotationRecord.coverage_id)
            .where(Coverage.provider_id == provider_id)
        )
        return await run_in_threadpool(self._list, stmt)

    async def list_by_date_range(self, start: datetime, end: datetime) -> List[Quotation]:
        stmt = select(QuotationRecord).where(
            QuotationRecord.travel_date >= as_utc(start),
            QuotationRecord.travel_date <= as_utc(end),
        )
        return await run_in_threadpool(self._list, stmt)

    # --------------------------- sync part ---------------------------

    def _find_by_id(self, quotation_id: int) -> Optional[Quotation]:
        record = self.session.get(QuotationRecord, quotation_id)
        return _to_domain(record) if record else None

    def _insert(self, quotation: Quotation) -> int:
        record = QuotationRecord(**quotation.model_dump(exclude={"id"}))
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        return record.id

    def _update(self, quotation: Quotation, expected_status: Optional[QuotationStatus]) -> bool:
        # полная замена записи; условие по статусу проверяется в самом UPDATE
        stmt = update(QuotationRecord).where(QuotationRecord.id == quotation.id)
        if expected_status is not None:
            stmt = stmt.where(QuotationRecord.status == expected_status)
        result = self.session.exec(stmt.values(**quotation.model_dump(exclude={"id"})))
        self.session.commit()
        return result.rowcount == 1

    def _delete(self, quotation_id: int) -> bool:
        record = self.session.get(QuotationRecord, quotation_id)
        if record is None:
            return False
        self.session.delete(record)
        self.session.commit()
        return True

    def _sum_reserved_passengers(self, coverage_id: int, travel_date: datetime) -> int:
        stmt = select(func.coalesce(func.sum(QuotationRecord.passenger_count), 0)).where(
            QuotationRecord.coverage_id == coverage_id,
            QuotationRecord.travel_date == as_utc(travel_date),
            QuotationRecord.status == QuotationStatus.RESERVED,
        )
        return int(self.session.exec(stmt).one())

    def _resolve_vehicle_capacity(self, coverage_id: int) -> Optional[int]:
        # FOR UPDATE держит строку coverage до commit в _update: на PostgreSQL это
        # сериализует бронирования между процессами (SQLite его игнорирует)
        stmt = (
            select(Vehicle.capacity)
            .join(Coverage, Coverage.vehicle_id == Vehicle.id)
            .where(Coverage.id == coverage_id)
            .with_for_update(of=Coverage)
        )
        return self.session.exec(stmt).first()

    def _list(self, stmt) -> List[Quotation]:
        return [_to_domain(r) for r in self.session.exec(stmt.order_by(QuotationRecord.id)).all()]
