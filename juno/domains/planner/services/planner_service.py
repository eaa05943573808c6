"""Planner orchestration: runs state machine effects against the outside world.

The state machine decides what should happen; this service performs the
model calls, weather lookups and persistence, and writes results back
only if the conversation has not been reset in the meantime.
"""

import logging
from collections.abc import Callable
from uuid import UUID

from juno.domains.itinerary.services.generator import (
    ItineraryGenerationError,
    ItineraryGenerator,
)
from juno.domains.itinerary.services.weather_enrichment import WeatherEnrichment
from juno.domains.planner.schemas import ConversationState, PlannerPhase
from juno.domains.planner.state import (
    ConversationError,
    ConversationNotFoundError,
    Effect,
    InvalidTransitionError,
    Transition,
    apply_fallback_reply,
    apply_generation_failure,
    apply_generation_success,
    receive_user_message,
    request_retry,
    repeat_question,
    reset_conversation,
    start_conversation,
)
from juno.domains.planner.store import ConversationStore
from juno.domains.subscription.entitlements import Entitlements
from juno.domains.trip.models import Trip
from juno.domains.trip.services.trip_service import TripService

logger = logging.getLogger(__name__)

FALLBACK_UNAVAILABLE_PREFIX = "Sorry, I didn't quite catch that."
UNEXPECTED_FAILURE_REASON = "Unexpected error while creating the itinerary"
INTERRUPTED_FAILURE_REASON = "The previous attempt was interrupted"


class AuthRequiredError(ConversationError):
    """Saving a plan needs a signed-in user."""


class PlannerService:
    """Drives planning conversations stored in Redis.

    Only one message per conversation is processed at a time; a second
    one arriving meanwhile fails with ConversationBusyError.
    """

    def __init__(
        self,
        store: ConversationStore,
        generator: ItineraryGenerator,
        weather: WeatherEnrichment,
    ) -> None:
        self.store = store
        self.generator = generator
        self.weather = weather

    async def start(self, owner_id: UUID | None = None) -> ConversationState:
        state = start_conversation(owner_id)
        await self.store.save(state)
        logger.info(f"Started conversation {state.id}")
        return state

    async def get(self, conversation_id: str) -> ConversationState:
        state = await self.store.get(conversation_id)
        if state is None:
            raise ConversationNotFoundError(f"Conversation {conversation_id} not found")
        return state

    async def send_message(self, conversation_id: str, text: str) -> ConversationState:
        """Process one user message and perform whatever it triggers.

        Raises:
            ConversationNotFoundError: If the conversation expired or never existed
            ConversationBusyError: If a message is already in flight or generating
            ConversationClosedError: If the itinerary was already produced
        """
        async with self.store.pending(conversation_id):
            state = await self.get(conversation_id)
            transition = receive_user_message(state, text)
            await self.store.save(transition.state)
            logger.info(
                f"Conversation {conversation_id}: {state.phase.value} -> "
                f"{transition.state.phase.value} ({transition.effect.value})"
            )
            return await self._perform(transition, text)

    async def retry(self, conversation_id: str) -> ConversationState:
        """Re-run generation for a conversation whose last attempt failed."""
        async with self.store.pending(conversation_id):
            state = await self.get(conversation_id)
            if state.phase is PlannerPhase.GENERATING:
                # The pending marker is ours, so the earlier run is no longer in flight.
                logger.warning(
                    f"Recovering interrupted generation for conversation {conversation_id}"
                )
                state = apply_generation_failure(state, INTERRUPTED_FAILURE_REASON)
            transition = request_retry(state)
            await self.store.save(transition.state)
            logger.info(f"Retrying generation for conversation {conversation_id}")
            return await self._perform(transition, "")

    async def reset(self, conversation_id: str) -> ConversationState:
        """Start over. Responses still in flight for the old epoch are dropped."""
        state = await self.get(conversation_id)
        fresh = reset_conversation(state)
        await self.store.clear_pending(conversation_id)
        await self.store.save(fresh)
        logger.info(f"Reset conversation {conversation_id} to epoch {fresh.epoch}")
        return fresh

    async def save_as_trip(
        self,
        conversation_id: str,
        user_id: UUID | None,
        trips: TripService,
        entitlements: Entitlements,
        title: str | None = None,
    ) -> Trip:
        """Persist the generated itinerary as a trip and close the conversation.

        The conversation is left untouched when saving fails for any reason,
        so the user can sign in or retry without losing the plan.

        Raises:
            AuthRequiredError: If no user is signed in
            InvalidTransitionError: If no itinerary has been generated yet
        """
        state = await self.get(conversation_id)
        if user_id is None:
            raise AuthRequiredError("Login required to save your trip")
        if state.owner_id is not None and state.owner_id != user_id:
            raise ConversationNotFoundError(f"Conversation {conversation_id} not found")
        if state.phase is not PlannerPhase.DONE or state.itinerary is None:
            raise InvalidTransitionError("There is no itinerary to save yet")

        trip = await trips.create_from_plan(
            user_id,
            state.draft,
            state.itinerary,
            entitlements,
            title=title,
        )
        await self.store.delete(conversation_id)
        logger.info(f"Conversation {conversation_id} saved as trip {trip.id}")
        return trip

    # ==================== Effects ====================

    async def _perform(self, transition: Transition, utterance: str) -> ConversationState:
        if transition.effect is Effect.REQUEST_FALLBACK:
            return await self._run_fallback(transition.state, utterance)
        if transition.effect is Effect.REQUEST_GENERATION:
            return await self._run_generation(transition.state)
        return transition.state

    async def _run_fallback(self, state: ConversationState, utterance: str) -> ConversationState:
        try:
            reply = await self.generator.fallback_reply(
                state.draft, state.awaiting_slot, state.transcript, utterance
            )
        except ItineraryGenerationError as e:
            logger.warning(f"Fallback unavailable for conversation {state.id}: {e.message}")
            return await self._commit_if_current(
                state, lambda s: repeat_question(s, FALLBACK_UNAVAILABLE_PREFIX)
            )
        return await self._commit_if_current(state, lambda s: apply_fallback_reply(s, reply))

    async def _run_generation(self, state: ConversationState) -> ConversationState:
        """Generate and enrich; any failure lands in FAILED so the user can retry."""
        try:
            itinerary = await self.generator.generate_itinerary(state.draft, state.transcript)
            itinerary = await self.weather.enrich(itinerary, state.draft.destination)
        except ItineraryGenerationError as e:
            logger.error(
                f"Generation failed for conversation {state.id} ({e.kind.value}): {e.message}"
            )
            reason = e.message
        except Exception:
            logger.exception(f"Unexpected error while generating for conversation {state.id}")
            reason = UNEXPECTED_FAILURE_REASON
        else:
            return await self._commit_if_current(
                state, lambda s: apply_generation_success(s, itinerary)
            )
        return await self._commit_if_current(
            state, lambda s: apply_generation_failure(s, reason)
        )

    async def _commit_if_current(
        self,
        state: ConversationState,
        apply: Callable[[ConversationState], ConversationState],
    ) -> ConversationState:
        """Apply a late result only if the conversation is still on the same epoch."""
        current = await self.get(state.id)
        if current.epoch != state.epoch:
            logger.info(
                f"Discarding stale response for conversation {state.id} "
                f"(epoch {state.epoch}, now {current.epoch})"
            )
            return current
        updated = apply(current)
        await self.store.save(updated)
        return updated
