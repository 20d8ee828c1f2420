"""
Pytest configuration and shared fixtures for tests
"""

from datetime import date, time
from typing import List, Optional

import pytest
from sqlmodel import Session, SQLModel, create_engine
from sqlalchemy.pool import StaticPool

from meowwalker.config import BotConfig
from meowwalker.db_models import KeyValueRecord  # noqa: F401 - registers the table
from meowwalker.geocoding.base import GeocodingProvider
from meowwalker.models import (
    Appointment,
    AppointmentStatus,
    DistanceResult,
    PlaceSuggestion,
)
from meowwalker.repositories import KeyValueStore


@pytest.fixture(name="db_engine")
def db_engine_fixture():
    """Create in-memory SQLite database engine for testing"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,  # Keep single connection for in-memory DB
    )
    SQLModel.metadata.create_all(engine)
    return engine


@pytest.fixture(name="db_session")
def db_session_fixture(db_engine):
    """Create database session for testing"""
    with Session(db_engine) as session:
        yield session
        session.rollback()  # Rollback any uncommitted changes after test


@pytest.fixture(name="kv_store")
def kv_store_fixture(db_engine):
    """Key-value store over the in-memory database"""
    return KeyValueStore(lambda: Session(db_engine))


@pytest.fixture(name="bot_config")
def bot_config_fixture():
    return BotConfig(
        telegram_bot_token="123456:test-token",
        owner_chat_id=None,
        timezone="Asia/Shanghai",
        amap_api_key="test-key",
        _env_file=None,
    )


@pytest.fixture(autouse=True)
def isolated_config(bot_config, monkeypatch):
    """Use the test config everywhere"""
    monkeypatch.setattr("meowwalker.config._config", bot_config)


class FakeProvider(GeocodingProvider):
    """In-memory provider returning a fixed route"""

    def __init__(
        self,
        distance_km: float = 1.5,
        duration_min: int = 8,
        error: Optional[Exception] = None,
        suggestions: Optional[List[PlaceSuggestion]] = None,
    ):
        self.distance_km = distance_km
        self.duration_min = duration_min
        self.error = error
        self.suggestions = suggestions or []
        self.calls = []
        self.closed = False

    async def resolve_distance(self, origin: str, destination: str) -> DistanceResult:
        self.calls.append((origin, destination))
        if self.error is not None:
            raise self.error
        return DistanceResult(self.distance_km, self.duration_min)

    async def search_addresses(self, query: str) -> List[PlaceSuggestion]:
        return list(self.suggestions)

    async def address_for_location(self, latitude: float, longitude: float) -> str:
        return f"{latitude},{longitude}"

    async def close(self) -> None:
        self.closed = True


@pytest.fixture(name="fake_provider")
def fake_provider_fixture():
    return FakeProvider()


def make_appointment(
    id: str = "apt-1",
    client_name: str = "Alice",
    address: str = "上海市徐汇区1号",
    day: date = date(2025, 1, 6),
    at: time = time(10, 0),
    status: AppointmentStatus = AppointmentStatus.PENDING,
    total_price: float = 25,
    **overrides,
) -> Appointment:
    """Build an appointment with sensible defaults"""
    fields = dict(
        id=id,
        client_name=client_name,
        address=address,
        date=day,
        time=at,
        cat_count=1,
        distance_km=1.5,
        duration_min=8,
        total_price=total_price,
        lock_code="1234",
        notes="None",
        is_holiday=False,
        status=status,
    )
    fields.update(overrides)
    return Appointment(**fields)
