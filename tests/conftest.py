"""Shared fixtures.

- HTTP tests go through the local ASGI app with httpx.AsyncClient + ASGITransport.
- The app runs on an in-memory SQLite database, recreated for every test.
- Service-level tests use ``InMemoryQuotationRepository`` (see support.py),
  which yields to the event loop on every call so concurrent reservations
  really interleave.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from typing import Dict

import httpx
import pytest
from httpx import ASGITransport
from sqlmodel import SQLModel, Session

from quotation_api.db import engine
from quotation_api.main import app
from quotation_api.models import Coverage, Vehicle

from support import InMemoryQuotationRepository


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def repo() -> InMemoryQuotationRepository:
    return InMemoryQuotationRepository(capacities={5: 4, 7: 10}, providers={5: 100, 7: 200})


@pytest.fixture
def db_session():
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture
def seeded_coverages(db_session: Session) -> Dict[str, int]:
    """Coverage 5 on a 4-seat vehicle (provider 100) and coverage 6 whose vehicle has no seats."""
    db_session.add(Vehicle(id=1, name="Van", code="VAN", capacity=4, provider_id=100, category_id=1))
    db_session.add(Vehicle(id=2, name="Broken", code="BRK", capacity=0, provider_id=100, category_id=1))
    db_session.commit()
    db_session.add(Coverage(id=5, name="Airport run", vehicle_id=1, provider_id=100))
    db_session.add(Coverage(id=6, name="Dead route", vehicle_id=2, provider_id=100))
    db_session.commit()
    return {"coverage_id": 5, "empty_coverage_id": 6, "capacity": 4, "provider_id": 100}


@pytest.fixture
async def client(db_session) -> httpx.AsyncClient:
    transport = ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
