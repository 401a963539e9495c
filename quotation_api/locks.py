from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Dict, Tuple

import anyio

ReservationKey = Tuple[int, datetime]


class ReservationLocks:
    """One lock per (coverage_id, travel_date); entries are dropped once nobody holds or waits."""

    def __init__(self) -> None:
        self._locks: Dict[ReservationKey, anyio.Lock] = {}
        self._users: Dict[ReservationKey, int] = {}

    @asynccontextmanager
    async def hold(self, coverage_id: int, travel_date: datetime) -> AsyncIterator[None]:
        key = (coverage_id, travel_date)
        lock = self._locks.setdefault(key, anyio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)
