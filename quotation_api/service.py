from __future__ import annotations

import logging
from contextlib import contextmanager, nullcontext
from datetime import datetime
from typing import Any, Iterator, List, Mapping, Optional

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .capacity import CapacityOracle
from .domain import Quotation, as_utc, parse_quotation, parse_status
from .errors import InternalError, InvalidStateError, NotFoundError, QuotationError, ValidationError
from .locks import ReservationLocks
from .models import QuotationStatus, utcnow
from .repository import QuotationRepository
from .state_machine import apply_transition, assign_coverage_and_price, can_transition

logger = logging.getLogger(__name__)

_datetime_adapter = TypeAdapter(datetime)

# поля, которые при создании всегда задаёт сервис
_SERVER_FIELDS = ("id", "status", "created_at", "updated_at")


class QuotationService:
    """Quotation lifecycle: creation, status changes with capacity enforcement, deletion.

    Holds no state between calls. Reservations are serialized per
    (coverage_id, travel_date) through ``locks``; pass ``None`` to run the
    capacity check and the write without serialization.
    """

    def __init__(self, repository: QuotationRepository, locks: Optional[ReservationLocks] = None) -> None:
        self._repository = repository
        self._capacity = CapacityOracle(repository)
        self._locks = locks

    # ------------------------------ reads ------------------------------

    async def get_quotation(self, quotation_id: int) -> Quotation:
        with self._guard("get_quotation"):
            return await self._load(quotation_id)

    async def list_quotations(self) -> List[Quotation]:
        with self._guard("list_quotations"):
            return await self._repository.list_all()

    async def list_quotations_by_user(self, user_id: int) -> List[Quotation]:
        with self._guard("list_quotations_by_user"):
            return await self._repository.list_by_user(user_id)

    async def list_quotations_by_provider(self, provider_id: int) -> List[Quotation]:
        with self._guard("list_quotations_by_provider"):
            return await self._repository.list_by_provider(provider_id)

    async def list_quotations_by_date_range(self, start: datetime, end: datetime) -> List[Quotation]:
        if as_utc(start) > as_utc(end):
            raise ValidationError("Invalid date range", ["start_date must not be after end_date"])
        with self._guard("list_quotations_by_date_range"):
            return await self._repository.list_by_date_range(start, end)

    # ----------------------------- writes ------------------------------

    async def create_quotation(self, payload: Mapping[str, Any]) -> Quotation:
        with self._guard("create_quotation"):
            _reject_past_travel_date(payload.get("travel_date"))

            now = utcnow()
            data = {k: v for k, v in payload.items() if k not in _SERVER_FIELDS}
            data.update(status=QuotationStatus.CREATED, created_at=now, updated_at=now)
            quotation = parse_quotation(data)

            new_id = await self._repository.insert(quotation)
            created = quotation.model_copy(update={"id": new_id})
            logger.info("quotation %s created for user %s", new_id, created.user_id)
            return created

    async def update_quotation_status(
        self,
        quotation_id: int,
        target_status: Any,
        coverage_id: Optional[int] = None,
        price_id: Optional[int] = None,
    ) -> Quotation:
        target = parse_status(target_status)
        with self._guard("update_quotation_status"):
            quotation = await self._load(quotation_id)
            self._check_transition(quotation, target)

            if target != QuotationStatus.RESERVED:
                return await self._persist(apply_transition(quotation, target), quotation.status)

            if coverage_id is None or price_id is None:
                raise ValidationError(
                    "Coverage and price are required for reservation",
                    ["coverage_id and price_id are required to reserve"],
                )

            async with self._reservation_lock(coverage_id, quotation.travel_date):
                # перечитываем под блокировкой: статус мог смениться, пока ждали
                quotation = await self._load(quotation_id)
                self._check_transition(quotation, target)

                has_room = await self._capacity.has_capacity(
                    coverage_id, quotation.travel_date, quotation.passenger_count
                )
                if not has_room:
                    logger.info(
                        "reservation of quotation %s rejected: coverage %s is full for %s",
                        quotation_id, coverage_id, quotation.travel_date.isoformat(),
                    )
                    raise ValidationError(
                        "No capacity available for this coverage",
                        [f"coverage {coverage_id} has no room for {quotation.passenger_count} passengers"],
                    )

                reserved = apply_transition(
                    assign_coverage_and_price(quotation, coverage_id, price_id),
                    QuotationStatus.RESERVED,
                )
                return await self._persist(reserved, quotation.status)

    async def delete_quotation(self, quotation_id: int) -> None:
        with self._guard("delete_quotation"):
            quotation = await self._load(quotation_id)
            if quotation.status == QuotationStatus.RESERVED:
                raise ValidationError("Cannot delete a reserved quotation")
            if not await self._repository.delete(quotation_id):
                raise NotFoundError("Quotation not found")
            logger.info("quotation %s deleted", quotation_id)

    # ----------------------------- helpers -----------------------------

    async def _load(self, quotation_id: int) -> Quotation:
        quotation = await self._repository.find_by_id(quotation_id)
        if quotation is None:
            raise NotFoundError("Quotation not found", {"id": quotation_id})
        return quotation

    async def _persist(self, quotation: Quotation, loaded_status: QuotationStatus) -> Quotation:
        # запись проходит, только если статус в БД всё ещё тот, что мы прочитали
        if not await self._repository.update(quotation, expected_status=loaded_status):
            current = await self._repository.find_by_id(quotation.id)
            if current is None:
                raise NotFoundError("Quotation not found", {"id": quotation.id})
            raise ValidationError(
                f"Invalid status transition from {current.status.value} to {quotation.status.value}"
            )
        logger.info("quotation %s is now %s", quotation.id, quotation.status.value)
        return quotation

    @staticmethod
    def _check_transition(quotation: Quotation, target: QuotationStatus) -> None:
        if not can_transition(quotation.status, target):
            raise ValidationError(
                f"Invalid status transition from {quotation.status.value} to {target.value}"
            )

    def _reservation_lock(self, coverage_id: int, travel_date: datetime):
        if self._locks is None:
            return nullcontext()
        return self._locks.hold(coverage_id, travel_date)

    @staticmethod
    @contextmanager
    def _guard(operation: str) -> Iterator[None]:
        """Let business errors through; anything else becomes InternalError."""
        try:
            yield
        except InvalidStateError as exc:
            logger.exception("QuotationService.%s reached an illegal state", operation)
            raise InternalError(f"Failed to {operation.replace('_', ' ')}", tech_info=str(exc)) from exc
        except QuotationError:
            raise
        except Exception as exc:
            logger.exception("QuotationService.%s failed", operation)
            raise InternalError(f"Failed to {operation.replace('_', ' ')}", tech_info=str(exc)) from exc


def _reject_past_travel_date(value: Any) -> None:
    # неразбираемую дату отловит parse_quotation
    try:
        travel_date = _datetime_adapter.validate_python(value)
    except PydanticValidationError:
        return
    if as_utc(travel_date) < utcnow():
        raise ValidationError(
            "Travel date cannot be in the past", ["travel_date: must not be in the past"]
        )
