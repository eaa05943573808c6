"""Pydantic schemas for the planning conversation."""

from datetime import UTC, datetime
from datetime import date as date_type
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, model_validator

from juno.domains.itinerary.schemas import Itinerary


# ============ Enums ============


class Slot(str, Enum):
    """Trip parameters collected one at a time, in this order."""

    DESTINATION = "destination"
    DATES = "dates"
    BUDGET = "budget"
    PARTY_SIZE = "party_size"
    ACCOMMODATION = "accommodation"
    ACTIVITIES = "activities"
    PACE = "pace"
    CONFIRMATION = "confirmation"


SLOT_SEQUENCE: tuple[Slot, ...] = tuple(Slot)


class PlannerPhase(str, Enum):
    """Where a conversation currently is."""

    DESTINATION = "destination"
    DATES = "dates"
    BUDGET = "budget"
    PARTY_SIZE = "party_size"
    ACCOMMODATION = "accommodation"
    ACTIVITIES = "activities"
    PACE = "pace"
    CONFIRMATION = "confirmation"
    GENERATING = "generating"
    DONE = "done"
    FAILED = "failed"

    @classmethod
    def for_slot(cls, slot: Slot) -> "PlannerPhase":
        return cls(slot.value)

    @property
    def slot(self) -> Slot | None:
        """The slot this phase is waiting on, None for non-collecting phases."""
        try:
            return Slot(self.value)
        except ValueError:
            return None


class Pace(str, Enum):
    """How many activities to schedule per day."""

    RELAXED = "relaxed"
    MODERATE = "moderate"
    BUSY = "busy"


class TranscriptRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


# ============ Trip Draft ============


class DateRange(BaseModel):
    """Inclusive travel dates."""

    start: date_type
    end: date_type

    @model_validator(mode="after")
    def check_order(self) -> "DateRange":
        if self.end < self.start:
            raise ValueError("end date must not be before start date")
        return self

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1


class TripDraft(BaseModel):
    """Trip parameters gathered so far.

    A slot counts as collected when its field is set and non-empty.
    ``budget`` is per person.
    """

    destination: str | None = None
    dates: DateRange | None = None
    budget: Decimal | None = None
    party_size: int | None = Field(default=None, ge=1)
    accommodation: list[str] = Field(default_factory=list)
    activities: list[str] = Field(default_factory=list)
    pace: Pace | None = None
    confirmed: bool = False

    def is_collected(self, slot: Slot) -> bool:
        value = getattr(self, SLOT_FIELDS[slot])
        if isinstance(value, list):
            return len(value) > 0
        if slot is Slot.CONFIRMATION:
            return bool(value)
        return value is not None

    def with_slot(self, slot: Slot, value: Any) -> "TripDraft":
        """Return a copy with one slot written."""
        return self.model_copy(update={SLOT_FIELDS[slot]: value})

    @property
    def total_budget(self) -> Decimal | None:
        if self.budget is None or self.party_size is None:
            return None
        return self.budget * self.party_size

    def next_missing_slot(self) -> Slot:
        for slot in SLOT_SEQUENCE:
            if not self.is_collected(slot):
                return slot
        return Slot.CONFIRMATION


SLOT_FIELDS: dict[Slot, str] = {
    Slot.DESTINATION: "destination",
    Slot.DATES: "dates",
    Slot.BUDGET: "budget",
    Slot.PARTY_SIZE: "party_size",
    Slot.ACCOMMODATION: "accommodation",
    Slot.ACTIVITIES: "activities",
    Slot.PACE: "pace",
    Slot.CONFIRMATION: "confirmed",
}


# ============ Conversation ============


class TranscriptEntry(BaseModel):
    role: TranscriptRole
    text: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ConversationState(BaseModel):
    """Full state of one planning conversation.

    Stored as JSON in Redis, keyed by ``id``. ``epoch`` increments on
    reset so responses started before the reset can be recognised and
    dropped.
    """

    id: str = Field(default_factory=lambda: uuid4().hex)
    epoch: int = 0
    phase: PlannerPhase = PlannerPhase.DESTINATION
    draft: TripDraft = Field(default_factory=TripDraft)
    transcript: list[TranscriptEntry] = Field(default_factory=list)
    itinerary: Itinerary | None = None
    last_error: str | None = None
    owner_id: UUID | None = None

    @property
    def awaiting_slot(self) -> Slot | None:
        return self.phase.slot

    def with_message(self, role: TranscriptRole, text: str) -> "ConversationState":
        """Return a copy with one transcript entry appended."""
        entry = TranscriptEntry(role=role, text=text)
        return self.model_copy(update={"transcript": [*self.transcript, entry]})


# ============ API Schemas ============


class MessageRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000)


class ConversationResponse(BaseModel):
    """Conversation snapshot returned to the client."""

    id: str
    phase: PlannerPhase
    awaiting: Slot | None
    draft: TripDraft
    transcript: list[TranscriptEntry]
    itinerary: Itinerary | None = None
    last_error: str | None = None
    reply: str | None = Field(
        default=None,
        description="Last assistant message produced by this request",
    )

    @classmethod
    def from_state(cls, state: ConversationState) -> "ConversationResponse":
        reply = None
        if state.transcript and state.transcript[-1].role is TranscriptRole.ASSISTANT:
            reply = state.transcript[-1].text
        return cls(
            id=state.id,
            phase=state.phase,
            awaiting=state.awaiting_slot,
            draft=state.draft,
            transcript=state.transcript,
            itinerary=state.itinerary,
            last_error=state.last_error,
            reply=reply,
        )


class SavePlanRequest(BaseModel):
    title: str | None = Field(default=None, max_length=200)
