"""Conversation state machine for slot-filling trip planning.

Every transition is a pure function of (state, input) that returns a new
state and, where the caller must do I/O, an effect to perform. Nothing in
this module touches the network, the clock (beyond transcript
timestamps) or the store.
"""

from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel

from juno.domains.itinerary.schemas import Itinerary
from juno.domains.planner.schemas import (
    ConversationState,
    PlannerPhase,
    Slot,
    TranscriptRole,
    TripDraft,
)
from juno.domains.planner.slots import (
    extract_amendments,
    extract_slot_value,
    is_captured,
)


class ConversationError(Exception):
    """Base exception for planning conversation errors."""


class ConversationNotFoundError(ConversationError):
    pass


class ConversationBusyError(ConversationError):
    """Another message for this conversation is still being processed."""


class ConversationClosedError(ConversationError):
    """The conversation already produced an itinerary."""


class InvalidTransitionError(ConversationError):
    pass


class Effect(str, Enum):
    NONE = "none"
    REQUEST_FALLBACK = "request_fallback"
    REQUEST_GENERATION = "request_generation"


class Transition(BaseModel):
    state: ConversationState
    effect: Effect = Effect.NONE


# ============ Messages ============

WELCOME_MESSAGE = "Welcome to Juno AI Travel Planner!"
GENERATION_STARTED_MESSAGE = (
    "Perfect! I'm creating your personalized itinerary now. This may take a moment..."
)
GENERATION_DONE_MESSAGE = (
    "I've created an itinerary based on your preferences! "
    "Would you like to save this trip to your account?"
)
GENERATION_FAILED_MESSAGE = (
    "Sorry, I couldn't create your itinerary this time. "
    'Reply "yes" to try again, or tell me what you would like to change.'
)


def _money(value: Decimal) -> str:
    if value == value.to_integral_value():
        return f"${value:,.0f}"
    return f"${value:,.2f}"


def _day_label(draft: TripDraft) -> str:
    dates = draft.dates
    if dates is None:
        return ""
    return f"{dates.start:%b} {dates.start.day} to {dates.end:%b} {dates.end.day}"


def slot_prompt(slot: Slot, draft: TripDraft) -> str:
    """Question asking for ``slot``, phrased with what is already known."""
    if slot is Slot.DESTINATION:
        return (
            "To start planning your perfect trip, I'll need to ask you a few "
            "questions one by one. First, where would you like to travel to?"
        )
    if slot is Slot.DATES:
        return (
            f"Great! I'll help you plan a trip to {draft.destination}. "
            "When are you planning to travel? Please give me start and end dates, "
            'for example "from June 1, 2025 to June 7, 2025".'
        )
    if slot is Slot.BUDGET:
        return (
            f"A {draft.dates.days}-day trip to {draft.destination} from {_day_label(draft)}. "
            "What's your budget per person for this trip?"
        )
    if slot is Slot.PARTY_SIZE:
        return (
            f"With a budget of {_money(draft.budget)} per person. "
            "How many people will be traveling on this trip?"
        )
    if slot is Slot.ACCOMMODATION:
        return (
            f"A {draft.party_size}-person trip with a total budget of "
            f"{_money(draft.total_budget)}. What type of accommodation would you prefer "
            "(hotel, hostel, apartment, resort, etc.)?"
        )
    if slot is Slot.ACTIVITIES:
        return (
            f"I'll look for {', '.join(draft.accommodation)} options. What kinds of "
            f"activities are you interested in for your {draft.destination} trip? "
            "(e.g., sightseeing, museums, beaches, hiking, shopping, food, nightlife, "
            "cultural, etc.)"
        )
    if slot is Slot.PACE:
        return (
            f"Great! You're interested in {', '.join(draft.activities)} activities. "
            "Last question: Do you prefer a busy schedule with lots of activities, a "
            "moderate pace, or a more relaxed approach with plenty of free time?"
        )
    return confirmation_summary(draft)


def confirmation_summary(draft: TripDraft) -> str:
    lines = [
        "Here's a summary of your trip:",
        f"- Destination: {draft.destination}",
        f"- Dates: {draft.dates.start:%b} {draft.dates.start.day}, {draft.dates.start.year} "
        f"to {draft.dates.end:%b} {draft.dates.end.day}, {draft.dates.end.year} "
        f"({draft.dates.days} days)",
        f"- Budget: {_money(draft.budget)} per person ({_money(draft.total_budget)} total)",
        f"- Travelers: {draft.party_size}",
        f"- Accommodation: {', '.join(draft.accommodation)}",
        f"- Activities: {', '.join(draft.activities)}",
        f"- Pace: {draft.pace.value}",
        'Is this information correct? Reply "yes" to create your itinerary, '
        "or tell me what you'd like to change.",
    ]
    return "\n".join(lines)


# ============ Transitions ============


def start_conversation(owner_id: UUID | None = None) -> ConversationState:
    state = ConversationState(owner_id=owner_id)
    state = state.with_message(TranscriptRole.SYSTEM, WELCOME_MESSAGE)
    return state.with_message(
        TranscriptRole.ASSISTANT, slot_prompt(Slot.DESTINATION, state.draft)
    )


def _advance(state: ConversationState) -> ConversationState:
    """Move to the first uncollected slot and ask for it."""
    next_slot = state.draft.next_missing_slot()
    state = state.model_copy(update={"phase": PlannerPhase.for_slot(next_slot)})
    return state.with_message(TranscriptRole.ASSISTANT, slot_prompt(next_slot, state.draft))


def _capture(state: ConversationState, slot: Slot, value: object) -> ConversationState:
    draft = state.draft.with_slot(slot, value)
    return _advance(state.model_copy(update={"draft": draft}))


def _begin_generation(state: ConversationState) -> Transition:
    draft = state.draft.model_copy(update={"confirmed": True})
    state = state.model_copy(
        update={"draft": draft, "phase": PlannerPhase.GENERATING, "last_error": None}
    )
    state = state.with_message(TranscriptRole.ASSISTANT, GENERATION_STARTED_MESSAGE)
    return Transition(state=state, effect=Effect.REQUEST_GENERATION)


def _apply_amendments(state: ConversationState, text: str) -> ConversationState | None:
    amendments = extract_amendments(text)
    if not amendments:
        return None
    draft = state.draft
    for slot, value in amendments.items():
        draft = draft.with_slot(slot, value)
    draft = draft.model_copy(update={"confirmed": False})
    return _advance(state.model_copy(update={"draft": draft, "last_error": None}))


def receive_user_message(state: ConversationState, text: str) -> Transition:
    """Apply one user utterance.

    Raises:
        ConversationBusyError: while an itinerary is being generated
        ConversationClosedError: once an itinerary has been produced
    """
    if state.phase is PlannerPhase.GENERATING:
        raise ConversationBusyError("Your itinerary is still being generated")
    if state.phase is PlannerPhase.DONE:
        raise ConversationClosedError("This conversation already has an itinerary")

    state = state.with_message(TranscriptRole.USER, text)

    if state.phase is PlannerPhase.FAILED:
        if is_captured(extract_slot_value(Slot.CONFIRMATION, text)):
            return _begin_generation(state)
        amended = _apply_amendments(state, text)
        if amended is not None:
            return Transition(state=amended)
        return Transition(
            state=state.with_message(TranscriptRole.ASSISTANT, GENERATION_FAILED_MESSAGE)
        )

    slot = state.awaiting_slot
    if slot is Slot.CONFIRMATION:
        if is_captured(extract_slot_value(Slot.CONFIRMATION, text)):
            return _begin_generation(state)
        amended = _apply_amendments(state, text)
        if amended is not None:
            return Transition(state=amended)
        return Transition(state=state, effect=Effect.REQUEST_FALLBACK)

    value = extract_slot_value(slot, text)
    if not is_captured(value):
        return Transition(state=state, effect=Effect.REQUEST_FALLBACK)
    return Transition(state=_capture(state, slot, value))


def apply_fallback_reply(state: ConversationState, reply: str) -> ConversationState:
    """Surface the assistant's follow-up, capturing the slot if it names one.

    Confirmation is never inferred from the assistant's own words.
    """
    state = state.with_message(TranscriptRole.ASSISTANT, reply)
    slot = state.awaiting_slot
    if slot is None or slot is Slot.CONFIRMATION:
        return state
    value = extract_slot_value(slot, reply)
    if not is_captured(value):
        return state
    return _capture(state, slot, value)


def repeat_question(state: ConversationState, notice: str) -> ConversationState:
    """Ask the current question again after ``notice``. Nothing is captured."""
    slot = state.awaiting_slot
    if slot is None:
        return state.with_message(TranscriptRole.ASSISTANT, notice)
    return state.with_message(
        TranscriptRole.ASSISTANT, f"{notice} {slot_prompt(slot, state.draft)}"
    )


def apply_generation_success(
    state: ConversationState, itinerary: Itinerary
) -> ConversationState:
    if state.phase is not PlannerPhase.GENERATING:
        raise InvalidTransitionError(f"Cannot accept an itinerary in phase {state.phase.value}")
    state = state.model_copy(
        update={"phase": PlannerPhase.DONE, "itinerary": itinerary, "last_error": None}
    )
    return state.with_message(TranscriptRole.ASSISTANT, GENERATION_DONE_MESSAGE)


def apply_generation_failure(state: ConversationState, reason: str) -> ConversationState:
    if state.phase is not PlannerPhase.GENERATING:
        raise InvalidTransitionError(f"Cannot record a failure in phase {state.phase.value}")
    state = state.model_copy(update={"phase": PlannerPhase.FAILED, "last_error": reason})
    return state.with_message(TranscriptRole.ASSISTANT, GENERATION_FAILED_MESSAGE)


def request_retry(state: ConversationState) -> Transition:
    """Re-run generation after a failure without revisiting any slot."""
    if state.phase is not PlannerPhase.FAILED:
        raise InvalidTransitionError("Only a failed generation can be retried")
    return _begin_generation(state)


def reset_conversation(state: ConversationState) -> ConversationState:
    """Start over under the same id with a bumped epoch."""
    fresh = start_conversation(owner_id=state.owner_id)
    return fresh.model_copy(update={"id": state.id, "epoch": state.epoch + 1})
