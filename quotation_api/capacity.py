from __future__ import annotations

import logging
from datetime import datetime

from .repository import QuotationRepository

logger = logging.getLogger(__name__)


class CapacityOracle:
    """Answers whether a coverage still has seats for a given travel instant.

    Both the vehicle capacity and the committed sum are read from the
    repository on every call.
    """

    def __init__(self, repository: QuotationRepository) -> None:
        self._repository = repository

    async def has_capacity(self, coverage_id: int, travel_date: datetime, passenger_count: int) -> bool:
        capacity = await self._repository.resolve_vehicle_capacity(coverage_id)
        if not capacity:
            # нет coverage / машины / вместимости — это «мест нет», а не ошибка
            logger.info("coverage %s has no resolvable vehicle capacity", coverage_id)
            return False

        # точное совпадение travel_date, без усечения до дня
        committed = await self._repository.sum_reserved_passengers(coverage_id, travel_date)
        available = committed + passenger_count <= capacity
        logger.debug(
            "capacity check coverage=%s travel_date=%s committed=%s requested=%s capacity=%s -> %s",
            coverage_id, travel_date.isoformat(), committed, passenger_count, capacity, available,
        )
        return available
