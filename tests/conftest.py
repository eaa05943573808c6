"""Shared fixtures: an in-memory Redis stand-in and sample planning data."""

from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from juno.domains.itinerary.schemas import (
    Accommodation,
    Activity,
    Itinerary,
    TripDay,
)
from juno.domains.planner.schemas import DateRange, Pace, TripDraft
from juno.domains.planner.store import ConversationStore


class FakeRedis:
    """The subset of redis.asyncio.Redis used by ConversationStore."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.expiry: dict[str, int | None] = {}

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: str, ex: int | None = None, nx: bool = False):
        if nx and key in self.data:
            return None
        self.data[key] = value
        self.expiry[key] = ex
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.expiry.pop(key, None)
        return removed


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def store(fake_redis: FakeRedis) -> ConversationStore:
    return ConversationStore(fake_redis, ttl=3600, pending_ttl=60)


@pytest.fixture
def confirmed_draft() -> TripDraft:
    return TripDraft(
        destination="Lisbon",
        dates=DateRange(start=date(2025, 6, 1), end=date(2025, 6, 3)),
        budget=Decimal("1500"),
        party_size=2,
        accommodation=["hotel"],
        activities=["museums", "food"],
        pace=Pace.RELAXED,
        confirmed=True,
    )


@pytest.fixture
def sample_itinerary() -> Itinerary:
    return Itinerary(
        days=[
            TripDay(
                date=date(2025, 6, 1),
                time_slots=[
                    Activity(time="09:00", activity="Walk in Alfama", location="Alfama"),
                    Activity(time="13:00", activity="Lunch at Time Out Market", cost=Decimal("25")),
                ],
                accommodation=Accommodation(name="Hotel Avenida", cost=Decimal("180")),
                meals_budget=Decimal("60"),
            ),
            TripDay(
                date=date(2025, 6, 2),
                time_slots=[
                    Activity(time="10:00", activity="Gulbenkian Museum", location="Avenidas Novas"),
                ],
            ),
            TripDay(date=date(2025, 6, 3)),
        ],
        total_cost=Decimal("900"),
        tips=["Buy a Viva Viagem card"],
    )


@pytest.fixture
def mock_generator(sample_itinerary: Itinerary) -> MagicMock:
    generator = MagicMock()
    generator.generate_itinerary = AsyncMock(return_value=sample_itinerary)
    generator.fallback_reply = AsyncMock(return_value="Could you tell me where you'd like to go?")
    return generator


@pytest.fixture
def passthrough_weather() -> MagicMock:
    """Weather enrichment that returns the itinerary unchanged."""
    weather = MagicMock()
    weather.enrich = AsyncMock(side_effect=lambda itinerary, destination: itinerary)
    weather.forecast = AsyncMock(return_value=None)
    return weather
