"""
Tests for PlannerService orchestration.

The store runs on the in-memory Redis stand-in; the model and weather
are mocked.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from juno.domains.itinerary.services.generator import (
    GenerationFailure,
    ItineraryGenerationError,
)
from juno.domains.planner.schemas import ConversationState, PlannerPhase
from juno.domains.planner.services import AuthRequiredError, PlannerService
from juno.domains.planner.services.planner_service import UNEXPECTED_FAILURE_REASON
from juno.domains.planner.state import (
    ConversationBusyError,
    ConversationNotFoundError,
    InvalidTransitionError,
)
from juno.domains.subscription.entitlements import FREE_ENTITLEMENTS
from juno.domains.trip.services import PersistenceError


@pytest.fixture
def service(store, mock_generator, passthrough_weather) -> PlannerService:
    return PlannerService(store, mock_generator, passthrough_weather)


@pytest.fixture
def confirming_state(confirmed_draft) -> ConversationState:
    draft = confirmed_draft.model_copy(update={"confirmed": False})
    return ConversationState(phase=PlannerPhase.CONFIRMATION, draft=draft)


class TestSendMessage:
    """Tests for message handling and effects."""

    @pytest.mark.asyncio
    async def test_start_persists_conversation(self, service, store):
        """A started conversation can be loaded back."""
        state = await service.start()
        assert await store.get(state.id) == state

    @pytest.mark.asyncio
    async def test_unknown_conversation(self, service):
        """Messages to an unknown conversation fail."""
        with pytest.raises(ConversationNotFoundError):
            await service.send_message("missing", "Lisbon")

    @pytest.mark.asyncio
    async def test_captured_slot_advances(self, service, mock_generator):
        """A recognised answer advances without calling the model."""
        state = await service.start()
        state = await service.send_message(state.id, "Lisbon")
        assert state.phase is PlannerPhase.DATES
        mock_generator.fallback_reply.assert_not_called()

    @pytest.mark.asyncio
    async def test_miss_uses_fallback_reply(self, service, mock_generator):
        """An unrecognised answer is followed by the model's reply."""
        state = await service.start()
        state = await service.send_message(state.id, "no idea")

        mock_generator.fallback_reply.assert_awaited_once()
        assert state.phase is PlannerPhase.DESTINATION
        assert state.transcript[-1].text == "Could you tell me where you'd like to go?"

    @pytest.mark.asyncio
    async def test_fallback_outage_repeats_question(self, service, mock_generator):
        """Without the model the current question is asked again."""
        mock_generator.fallback_reply.side_effect = ItineraryGenerationError(
            "timeout", kind=GenerationFailure.TRANSPORT
        )
        state = await service.start()
        state = await service.send_message(state.id, "no idea")
        assert state.phase is PlannerPhase.DESTINATION
        assert state.draft.destination is None
        assert state.transcript[-1].text.startswith("Sorry, I didn't quite catch that.")

    @pytest.mark.asyncio
    async def test_confirmation_generates_itinerary(
        self, service, store, confirming_state, mock_generator, passthrough_weather, sample_itinerary
    ):
        """Confirming runs generation then weather enrichment."""
        await store.save(confirming_state)
        state = await service.send_message(confirming_state.id, "yes")

        assert state.phase is PlannerPhase.DONE
        assert state.itinerary == sample_itinerary
        mock_generator.generate_itinerary.assert_awaited_once()
        passthrough_weather.enrich.assert_awaited_once_with(sample_itinerary, "Lisbon")

    @pytest.mark.asyncio
    async def test_generation_failure_then_retry(
        self, service, store, confirming_state, mock_generator, sample_itinerary
    ):
        """A failed generation can be retried without re-answering anything."""
        mock_generator.generate_itinerary.side_effect = ItineraryGenerationError(
            "Model returned an invalid itinerary", kind=GenerationFailure.PARSE
        )
        await store.save(confirming_state)
        failed = await service.send_message(confirming_state.id, "yes")
        assert failed.phase is PlannerPhase.FAILED
        assert failed.last_error == "Model returned an invalid itinerary"

        mock_generator.generate_itinerary.side_effect = None
        mock_generator.generate_itinerary.return_value = sample_itinerary
        done = await service.retry(confirming_state.id)
        assert done.phase is PlannerPhase.DONE
        assert done.draft == failed.draft

    @pytest.mark.asyncio
    async def test_unexpected_enrichment_error_allows_retry(
        self, service, store, confirming_state, passthrough_weather, sample_itinerary
    ):
        """An unexpected error after the model call still ends in a retryable failure."""
        passthrough_weather.enrich.side_effect = AttributeError("boom")
        await store.save(confirming_state)
        failed = await service.send_message(confirming_state.id, "yes")
        assert failed.phase is PlannerPhase.FAILED
        assert failed.last_error == UNEXPECTED_FAILURE_REASON
        assert (await store.get(confirming_state.id)).phase is PlannerPhase.FAILED

        passthrough_weather.enrich.side_effect = None
        passthrough_weather.enrich.return_value = sample_itinerary
        done = await service.retry(confirming_state.id)
        assert done.phase is PlannerPhase.DONE
        assert done.draft.destination == "Lisbon"

    @pytest.mark.asyncio
    async def test_retry_recovers_interrupted_generation(
        self, service, store, confirmed_draft, sample_itinerary
    ):
        """A conversation left in GENERATING by a dead run can be retried."""
        stuck = ConversationState(phase=PlannerPhase.GENERATING, draft=confirmed_draft)
        await store.save(stuck)

        done = await service.retry(stuck.id)
        assert done.phase is PlannerPhase.DONE
        assert done.itinerary == sample_itinerary
        assert done.draft == confirmed_draft

    @pytest.mark.asyncio
    async def test_concurrent_message_is_rejected(self, service, store, mock_generator):
        """A second message while the first is pending fails as busy."""
        release = asyncio.Event()

        async def slow_reply(*args, **kwargs):
            await release.wait()
            return "Which city?"

        mock_generator.fallback_reply.side_effect = slow_reply
        state = await service.start()

        first = asyncio.create_task(service.send_message(state.id, "no idea"))
        await asyncio.sleep(0)
        with pytest.raises(ConversationBusyError):
            await service.send_message(state.id, "Lisbon")

        release.set()
        result = await first
        assert result.transcript[-1].text == "Which city?"

    @pytest.mark.asyncio
    async def test_stale_response_after_reset_is_discarded(self, service, store, mock_generator):
        """A reply that arrives after a reset does not touch the new conversation."""
        release = asyncio.Event()

        async def slow_reply(*args, **kwargs):
            await release.wait()
            return "You'd like to go to Lisbon."

        mock_generator.fallback_reply.side_effect = slow_reply
        state = await service.start()

        pending = asyncio.create_task(service.send_message(state.id, "no idea"))
        await asyncio.sleep(0)
        fresh = await service.reset(state.id)

        release.set()
        result = await pending
        assert result.epoch == fresh.epoch
        assert result.draft.destination is None
        assert (await store.get(state.id)) == fresh


class TestSaveAsTrip:
    """Tests for saving a finished conversation."""

    @pytest.mark.asyncio
    async def test_save_requires_login_and_keeps_conversation(
        self, service, store, confirming_state, sample_itinerary
    ):
        """Anonymous saves fail and the draft stays available."""
        state = confirming_state.model_copy(
            update={"phase": PlannerPhase.DONE, "itinerary": sample_itinerary}
        )
        await store.save(state)
        trips = MagicMock()
        trips.create_from_plan = AsyncMock()

        with pytest.raises(AuthRequiredError):
            await service.save_as_trip(state.id, None, trips, FREE_ENTITLEMENTS)

        assert await store.get(state.id) == state
        trips.create_from_plan.assert_not_called()

    @pytest.mark.asyncio
    async def test_save_creates_trip_and_discards_conversation(
        self, service, store, confirming_state, sample_itinerary
    ):
        """A successful save removes the conversation."""
        state = confirming_state.model_copy(
            update={"phase": PlannerPhase.DONE, "itinerary": sample_itinerary}
        )
        await store.save(state)
        user_id = uuid4()
        trip = MagicMock(id=7)
        trips = MagicMock()
        trips.create_from_plan = AsyncMock(return_value=trip)

        result = await service.save_as_trip(
            state.id, user_id, trips, FREE_ENTITLEMENTS, title="Lisbon"
        )

        assert result is trip
        trips.create_from_plan.assert_awaited_once_with(
            user_id, state.draft, sample_itinerary, FREE_ENTITLEMENTS, title="Lisbon"
        )
        assert await store.get(state.id) is None

    @pytest.mark.asyncio
    async def test_failed_save_keeps_conversation(
        self, service, store, confirming_state, sample_itinerary
    ):
        """A persistence failure leaves the conversation in place."""
        state = confirming_state.model_copy(
            update={"phase": PlannerPhase.DONE, "itinerary": sample_itinerary}
        )
        await store.save(state)
        trips = MagicMock()
        trips.create_from_plan = AsyncMock(side_effect=PersistenceError("db down"))

        with pytest.raises(PersistenceError):
            await service.save_as_trip(state.id, uuid4(), trips, FREE_ENTITLEMENTS)
        assert await store.get(state.id) == state

    @pytest.mark.asyncio
    async def test_save_before_generation_is_rejected(self, service, store, confirming_state):
        """There is nothing to save until an itinerary exists."""
        await store.save(confirming_state)
        with pytest.raises(InvalidTransitionError):
            await service.save_as_trip(confirming_state.id, uuid4(), MagicMock(), FREE_ENTITLEMENTS)
