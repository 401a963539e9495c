from __future__ import annotations

from datetime import datetime, timezone

import pytest

from quotation_api.models import QuotationStatus
from quotation_api.repository import SqlQuotationRepository

from support import make_quotation

pytestmark = pytest.mark.anyio

EIGHT = datetime(2025, 6, 1, 8, 0, tzinfo=timezone.utc)
NINE = datetime(2025, 6, 1, 9, 0, tzinfo=timezone.utc)


async def test_insert_find_update_delete(db_session, seeded_coverages) -> None:
    repo = SqlQuotationRepository(db_session)

    new_id = await repo.insert(make_quotation(travel_date=EIGHT))
    loaded = await repo.find_by_id(new_id)
    assert loaded.id == new_id
    assert loaded.travel_date == EIGHT
    assert loaded.travel_date.tzinfo is not None

    reserved = loaded.model_copy(update={"status": QuotationStatus.RESERVED, "coverage_id": 5, "price_id": 9})
    assert await repo.update(reserved) is True
    assert (await repo.find_by_id(new_id)).status == QuotationStatus.RESERVED

    assert await repo.delete(new_id) is True
    assert await repo.find_by_id(new_id) is None
    assert await repo.delete(new_id) is False
    assert await repo.update(reserved) is False


async def test_sum_reserved_passengers_matches_exact_instant(db_session, seeded_coverages) -> None:
    repo = SqlQuotationRepository(db_session)
    reserved = dict(status=QuotationStatus.RESERVED, coverage_id=5, price_id=9)
    await repo.insert(make_quotation(travel_date=EIGHT, passenger_count=2, **reserved))
    await repo.insert(make_quotation(travel_date=EIGHT, passenger_count=1, **reserved))
    await repo.insert(make_quotation(travel_date=NINE, passenger_count=3, **reserved))
    await repo.insert(make_quotation(travel_date=EIGHT, passenger_count=4,
                                     status=QuotationStatus.CANCELLED, coverage_id=5, price_id=9))
    await repo.insert(make_quotation(travel_date=EIGHT, passenger_count=4))

    assert await repo.sum_reserved_passengers(5, EIGHT) == 3
    assert await repo.sum_reserved_passengers(5, NINE) == 3
    assert await repo.sum_reserved_passengers(6, EIGHT) == 0


async def test_resolve_vehicle_capacity(db_session, seeded_coverages) -> None:
    repo = SqlQuotationRepository(db_session)
    assert await repo.resolve_vehicle_capacity(5) == 4
    assert await repo.resolve_vehicle_capacity(6) == 0
    assert await repo.resolve_vehicle_capacity(404) is None


async def test_listings(db_session, seeded_coverages) -> None:
    repo = SqlQuotationRepository(db_session)
    first = await repo.insert(make_quotation(user_id=1, travel_date=EIGHT))
    second = await repo.insert(make_quotation(user_id=2, travel_date=NINE, status=QuotationStatus.RESERVED,
                                              coverage_id=5, price_id=9))

    assert [q.id for q in await repo.list_all()] == [first, second]
    assert [q.id for q in await repo.list_by_user(2)] == [second]
    assert [q.id for q in await repo.list_by_provider(100)] == [second]
    assert await repo.list_by_provider(999) == []
    assert [q.id for q in await repo.list_by_date_range(EIGHT, EIGHT)] == [first]
    assert [q.id for q in await repo.list_by_date_range(EIGHT, NINE)] == [first, second]


async def test_update_only_applies_when_status_still_matches(db_session, seeded_coverages) -> None:
    repo = SqlQuotationRepository(db_session)
    new_id = await repo.insert(make_quotation(travel_date=EIGHT))
    created = await repo.find_by_id(new_id)

    first = created.model_copy(update={"status": QuotationStatus.RESERVED, "coverage_id": 5, "price_id": 9})
    second = created.model_copy(update={"status": QuotationStatus.RESERVED, "coverage_id": 6, "price_id": 9})

    assert await repo.update(first, expected_status=QuotationStatus.CREATED) is True
    assert await repo.update(second, expected_status=QuotationStatus.CREATED) is False
    assert (await repo.find_by_id(new_id)).coverage_id == 5
