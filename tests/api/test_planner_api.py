"""
API tests for the planner and trip endpoints.

Services run against the in-memory Redis stand-in and mocked model; the
database-backed services are replaced through dependency overrides.
"""

from datetime import UTC, date, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from juno.api.v1.endpoints.planner import get_planner_service, get_trip_service
from juno.api.v1.endpoints.subscriptions import get_entitlements
from juno.core.auth import token_service
from juno.domains.itinerary.services.reconciliation import ReconciliationError, reconcile
from juno.domains.planner.schemas import ConversationState, PlannerPhase
from juno.domains.planner.services import PlannerService
from juno.domains.subscription.entitlements import FREE_ENTITLEMENTS
from juno.domains.trip.models import Trip
from juno.domains.trip.services import TripLimitReachedError, TripNotFoundError
from juno.main import create_application

USER_ID = uuid4()


def _auth() -> dict[str, str]:
    return {"Authorization": f"Bearer {token_service.create_access_token(USER_ID)}"}


def _trip(sample_itinerary) -> Trip:
    now = datetime.now(UTC)
    return Trip(
        id=7,
        user_id=USER_ID,
        title="Trip to Lisbon",
        destination="Lisbon",
        start_date=date(2025, 6, 1),
        end_date=date(2025, 6, 3),
        budget=Decimal("1500"),
        party_size=2,
        preferences={},
        itinerary=sample_itinerary.model_dump(mode="json"),
        is_archived=False,
        is_active=True,
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def trips() -> MagicMock:
    return MagicMock()


@pytest.fixture
def client(store, mock_generator, passthrough_weather, trips) -> TestClient:
    app = create_application()
    planner = PlannerService(store, mock_generator, passthrough_weather)
    app.dependency_overrides[get_planner_service] = lambda: planner
    app.dependency_overrides[get_trip_service] = lambda: trips
    app.dependency_overrides[get_entitlements] = lambda: FREE_ENTITLEMENTS
    return TestClient(app)


class TestPlannerEndpoints:
    """Tests for /api/v1/planner."""

    def test_conversation_flow(self, client):
        """Anonymous users can start and answer questions."""
        response = client.post("/api/v1/planner/conversations")
        assert response.status_code == 201
        body = response.json()
        assert body["phase"] == "destination"

        response = client.post(
            f"/api/v1/planner/conversations/{body['id']}/messages",
            json={"message": "I want to go to Lisbon"},
        )
        assert response.status_code == 200
        assert response.json()["draft"]["destination"] == "Lisbon"
        assert response.json()["awaiting"] == "dates"

    def test_unknown_conversation(self, client):
        """Expired conversations are 404."""
        response = client.post(
            "/api/v1/planner/conversations/missing/messages", json={"message": "hi"}
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_message_while_generating_conflicts(self, client, store, confirmed_draft):
        """Messages during generation are rejected with 409."""
        state = ConversationState(phase=PlannerPhase.GENERATING, draft=confirmed_draft)
        await store.save(state)

        response = client.post(
            f"/api/v1/planner/conversations/{state.id}/messages", json={"message": "hello?"}
        )
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_save_requires_login(self, client, store, confirmed_draft, sample_itinerary):
        """Saving without a token is 401 and keeps the conversation."""
        state = ConversationState(
            phase=PlannerPhase.DONE, draft=confirmed_draft, itinerary=sample_itinerary
        )
        await store.save(state)

        response = client.post(f"/api/v1/planner/conversations/{state.id}/trip", json={})
        assert response.status_code == 401
        assert await store.get(state.id) is not None

    @pytest.mark.asyncio
    async def test_save_as_trip(self, client, store, trips, confirmed_draft, sample_itinerary):
        """A signed-in user saves the plan as a trip."""
        state = ConversationState(
            phase=PlannerPhase.DONE, draft=confirmed_draft, itinerary=sample_itinerary
        )
        await store.save(state)
        trips.create_from_plan = AsyncMock(return_value=_trip(sample_itinerary))

        response = client.post(
            f"/api/v1/planner/conversations/{state.id}/trip",
            json={"title": "Lisbon"},
            headers=_auth(),
        )
        assert response.status_code == 201
        assert response.json()["id"] == 7
        assert await store.get(state.id) is None

    @pytest.mark.asyncio
    async def test_trip_limit_is_forbidden(
        self, client, store, trips, confirmed_draft, sample_itinerary
    ):
        """Hitting the plan's trip limit is 403."""
        state = ConversationState(
            phase=PlannerPhase.DONE, draft=confirmed_draft, itinerary=sample_itinerary
        )
        await store.save(state)
        trips.create_from_plan = AsyncMock(side_effect=TripLimitReachedError(3))

        response = client.post(
            f"/api/v1/planner/conversations/{state.id}/trip", json={}, headers=_auth()
        )
        assert response.status_code == 403


class TestTripEndpoints:
    """Tests for /api/v1/trips."""

    def test_requires_token(self, client):
        """Trips are private."""
        assert client.get("/api/v1/trips/7").status_code == 401

    def test_get_trip(self, client, trips, sample_itinerary):
        """A stored trip is returned with its itinerary."""
        trips.get_trip = AsyncMock(return_value=_trip(sample_itinerary))
        response = client.get("/api/v1/trips/7", headers=_auth())

        assert response.status_code == 200
        day = response.json()["itinerary"]["days"][0]
        assert day["day_of_week"] == "Sunday"
        assert day["time_slots"][0]["activity"] == "Walk in Alfama"

    def test_missing_trip(self, client, trips):
        """Unknown trips are 404."""
        trips.get_trip = AsyncMock(side_effect=TripNotFoundError(99))
        assert client.get("/api/v1/trips/99", headers=_auth()).status_code == 404

    def test_invalid_edit(self, client, trips):
        """Edits that do not fit the itinerary are 422."""
        trips.apply_mutation = AsyncMock(side_effect=ReconciliationError("Day index 9 is out of range"))
        response = client.delete("/api/v1/trips/7/days/9/slots/0", headers=_auth())
        assert response.status_code == 422
        assert response.json()["detail"] == "Day index 9 is out of range"

    def test_calendar_requires_premium(self, client, trips, sample_itinerary):
        """Free plans get 403 for calendar changes."""
        async def apply(trip_id, user_id, mutation, entitlements=None):
            reconcile(sample_itinerary, mutation, entitlements)

        trips.apply_mutation = AsyncMock(side_effect=apply)
        response = client.put(
            "/api/v1/trips/7/calendar",
            json={"events": [{"title": "Fado", "start": "2025-06-01T21:00:00"}]},
            headers=_auth(),
        )
        assert response.status_code == 403
