"""In-memory repository and builders shared by the service-level tests."""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Set

import anyio

from quotation_api.domain import Quotation, as_utc
from quotation_api.models import QuotationStatus


class InMemoryQuotationRepository:
    def __init__(self, capacities: Optional[Dict[int, int]] = None, providers: Optional[Dict[int, int]] = None):
        self.rows: Dict[int, Quotation] = {}
        self.capacities = dict(capacities or {})
        self.providers = dict(providers or {})  # coverage_id -> provider_id
        self.fail_on: Set[str] = set()
        self.calls: List[str] = []
        self._next_id = 1

    async def _checkpoint(self, operation: str) -> None:
        self.calls.append(operation)
        await anyio.sleep(0)
        if operation in self.fail_on:
            raise RuntimeError(f"connection lost during {operation}")

    def add(self, quotation: Quotation) -> Quotation:
        stored = quotation.model_copy(update={"id": self._next_id})
        self.rows[stored.id] = stored
        self._next_id += 1
        return stored

    async def find_by_id(self, quotation_id):
        await self._checkpoint("find_by_id")
        return self.rows.get(quotation_id)

    async def insert(self, quotation):
        await self._checkpoint("insert")
        return self.add(quotation).id

    async def update(self, quotation, expected_status=None):
        await self._checkpoint("update")
        current = self.rows.get(quotation.id)
        if current is None:
            return False
        if expected_status is not None and current.status != expected_status:
            return False
        self.rows[quotation.id] = quotation
        return True

    async def delete(self, quotation_id):
        await self._checkpoint("delete")
        return self.rows.pop(quotation_id, None) is not None

    async def sum_reserved_passengers(self, coverage_id, travel_date):
        await self._checkpoint("sum_reserved_passengers")
        return sum(
            q.passenger_count
            for q in self.rows.values()
            if q.coverage_id == coverage_id
            and q.travel_date == as_utc(travel_date)
            and q.status == QuotationStatus.RESERVED
        )

    async def resolve_vehicle_capacity(self, coverage_id):
        await self._checkpoint("resolve_vehicle_capacity")
        return self.capacities.get(coverage_id)

    async def list_all(self):
        await self._checkpoint("list_all")
        return list(self.rows.values())

    async def list_by_user(self, user_id):
        await self._checkpoint("list_by_user")
        return [q for q in self.rows.values() if q.user_id == user_id]

    async def list_by_provider(self, provider_id):
        await self._checkpoint("list_by_provider")
        return [q for q in self.rows.values() if self.providers.get(q.coverage_id) == provider_id]

    async def list_by_date_range(self, start, end):
        await self._checkpoint("list_by_date_range")
        return [q for q in self.rows.values() if as_utc(start) <= q.travel_date <= as_utc(end)]


def tomorrow_at(hour: int = 8) -> datetime:
    day = datetime.now(timezone.utc) + timedelta(days=1)
    return day.replace(hour=hour, minute=0, second=0, microsecond=0)


def make_quotation(**overrides) -> Quotation:
    data = {
        "travel_date": tomorrow_at(),
        "passenger_count": 2,
        "user_id": 1,
        "origin_place_id": 2,
        "destination_place_id": 3,
    }
    data.update(overrides)
    return Quotation(**data)

