"""Itinerary generation and conversational fallback via the chat model.

The model's output is treated as untrusted text: it must parse as JSON and
validate against the itinerary schema, otherwise the whole call fails.
"""

import json
import logging
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_core.prompts import ChatPromptTemplate
from langchain_openai import ChatOpenAI
from pydantic import BaseModel, Field, ValidationError

from juno.core.config import settings
from juno.domains.itinerary.schemas import (
    Accommodation,
    Activity,
    Itinerary,
    TripDay,
)
from juno.domains.planner.schemas import (
    Slot,
    TranscriptEntry,
    TranscriptRole,
    TripDraft,
)

logger = logging.getLogger(__name__)


class GenerationFailure(str, Enum):
    PARSE = "parse"
    TRANSPORT = "transport"


class ItineraryGenerationError(Exception):
    """The model could not be reached or returned an unusable itinerary."""

    def __init__(self, message: str, kind: GenerationFailure):
        self.message = message
        self.kind = kind
        super().__init__(message)


# ============ LLM Configuration ============


def get_llm(temperature: float = 0.7, json_mode: bool = False) -> ChatOpenAI:
    """Get a configured ChatOpenAI instance with a bounded timeout."""
    model_kwargs: dict[str, Any] = {}
    if json_mode:
        model_kwargs["response_format"] = {"type": "json_object"}
    return ChatOpenAI(
        model=settings.OPENAI_MODEL,
        api_key=settings.OPENAI_API_KEY,
        temperature=temperature,
        timeout=settings.OPENAI_TIMEOUT_SECONDS,
        max_retries=settings.OPENAI_MAX_RETRIES,
        model_kwargs=model_kwargs,
    )


# ============ Prompts ============


SYSTEM_PROMPT = (
    "You are an expert travel planner with extensive knowledge of destinations worldwide."
)

ITINERARY_PROMPT = """Create a detailed {days}-day travel itinerary for {destination}.

Trip details:
- Dates: {start_date} to {end_date} ({days} days)
- Travelers: {party_size}
- Budget: ${budget_per_person} per person (${total_budget} total for the group)
- Accommodation preferences: {accommodation}
- Activity preferences: {activities}
- Pace: {pace} ({activities_per_day} activities per day)

Requirements:
1. Group each day's activities by neighbourhood so that places visited on the
   same day are geographically close to each other.
2. Schedule activities at sensible times of day (museums in opening hours,
   markets in the morning, nightlife in the evening) and give each a start time
   in 24-hour HH:MM format.
3. Keep the total cost of all days within the group budget.
4. Include one accommodation entry and a meals budget for every day.

Respond with a JSON object that follows this schema exactly:
{{
  "days": [
    {{
      "day": 1,
      "date": "YYYY-MM-DD",
      "activities": [
        {{"name": "string", "time": "HH:MM", "duration": "string",
          "location": "string", "cost": 0, "notes": "string"}}
      ],
      "accommodation": {{"name": "string", "cost": 0}},
      "meals": {{"budget": 0}},
      "reasoning": "string"
    }}
  ],
  "totalCost": 0,
  "suggestedAccommodations": ["string"],
  "tips": ["string"]
}}"""

FALLBACK_PROMPT = """You are helping a traveller plan a trip by collecting details one at a time.

Details collected so far:
{collected}

You are currently waiting for: {slot_description}
The traveller's last message was: "{utterance}"

Their message could not be understood as an answer. Reply with one short, friendly
message that either restates their answer in plain words (for example
"You'd like to go to Lisbon." or "That's from June 1, 2025 to June 7, 2025.") if
you can tell what they meant, or asks a single clarifying question if you cannot.
Use numerals for amounts and counts, and month names for dates."""

SLOT_DESCRIPTIONS: dict[Slot, str] = {
    Slot.DESTINATION: "the destination city or country",
    Slot.DATES: "the start and end dates of the trip",
    Slot.BUDGET: "the budget per person in US dollars",
    Slot.PARTY_SIZE: "the number of people travelling",
    Slot.ACCOMMODATION: "the preferred type of accommodation (hotel, hostel, apartment, airbnb, resort, villa, cottage)",
    Slot.ACTIVITIES: "the kinds of activities they enjoy",
    Slot.PACE: "whether they want a relaxed, moderate or busy schedule",
    Slot.CONFIRMATION: "confirmation that the trip summary is correct",
}

ACTIVITIES_PER_DAY = {"relaxed": "2-3", "moderate": "3-4", "busy": "5-6"}


# ============ Raw Output Schemas ============


class _RawActivity(BaseModel):
    name: str = Field(..., min_length=1)
    time: str
    duration: str = ""
    location: str = ""
    cost: Decimal = Decimal("0")
    notes: str = ""


class _RawDay(BaseModel):
    date: str | None = None
    activities: list[_RawActivity] = Field(default_factory=list)
    accommodation: Accommodation | None = None
    meals: dict[str, Any] | None = None
    reasoning: str = ""


class _RawItinerary(BaseModel):
    days: list[_RawDay] = Field(..., min_length=1)
    totalCost: Decimal | None = None
    suggestedAccommodations: list[str] = Field(default_factory=list)
    tips: list[str] = Field(default_factory=list)


def _strip_fences(content: str) -> str:
    content = content.strip()
    if content.startswith("```"):
        content = content.split("```")[1]
        if content.startswith("json"):
            content = content[4:]
        content = content.strip()
    return content


def parse_itinerary(content: str, draft: TripDraft) -> Itinerary:
    """Strictly parse model output into an Itinerary.

    Raises:
        ItineraryGenerationError: with kind PARSE on any malformed output
    """
    try:
        raw = _RawItinerary.model_validate(json.loads(_strip_fences(content)))
        days = [_to_trip_day(raw_day, index, draft) for index, raw_day in enumerate(raw.days)]
    except (json.JSONDecodeError, ValidationError, InvalidOperation, ValueError, TypeError) as e:
        raise ItineraryGenerationError(
            f"Model returned an invalid itinerary: {e}",
            kind=GenerationFailure.PARSE,
        ) from e

    days.sort(key=lambda day: day.date)
    return Itinerary(
        days=days,
        total_cost=raw.totalCost,
        suggested_accommodations=raw.suggestedAccommodations,
        tips=raw.tips,
    )


def _to_trip_day(raw_day: _RawDay, index: int, draft: TripDraft) -> TripDay:
    if raw_day.date:
        day_date = date.fromisoformat(raw_day.date)
    elif draft.dates is not None:
        day_date = draft.dates.start + timedelta(days=index)
    else:
        raise ValueError(f"day {index + 1} has no date")

    slots: dict[tuple[str, str], Activity] = {}
    for raw_activity in raw_day.activities:
        activity = Activity(
            time=raw_activity.time,
            activity=raw_activity.name,
            location=raw_activity.location,
            duration=raw_activity.duration,
            notes=raw_activity.notes,
            cost=raw_activity.cost,
        )
        slots[activity.key] = activity

    meals_budget = Decimal("0")
    if raw_day.meals and raw_day.meals.get("budget") is not None:
        meals_budget = Decimal(str(raw_day.meals["budget"]))

    return TripDay(
        date=day_date,
        time_slots=sorted(slots.values(), key=lambda slot: slot.time),
        accommodation=raw_day.accommodation or Accommodation(),
        meals_budget=meals_budget,
        reasoning=raw_day.reasoning,
    )


def _transcript_messages(transcript: list[TranscriptEntry]) -> list[BaseMessage]:
    messages: list[BaseMessage] = []
    for entry in transcript:
        if entry.role is TranscriptRole.USER:
            messages.append(HumanMessage(content=entry.text))
        elif entry.role is TranscriptRole.ASSISTANT:
            messages.append(AIMessage(content=entry.text))
    return messages


def _collected_summary(draft: TripDraft) -> str:
    lines = []
    if draft.destination:
        lines.append(f"- Destination: {draft.destination}")
    if draft.dates:
        lines.append(f"- Dates: {draft.dates.start.isoformat()} to {draft.dates.end.isoformat()}")
    if draft.budget is not None:
        lines.append(f"- Budget per person: ${draft.budget}")
    if draft.party_size:
        lines.append(f"- Travelers: {draft.party_size}")
    if draft.accommodation:
        lines.append(f"- Accommodation: {', '.join(draft.accommodation)}")
    if draft.activities:
        lines.append(f"- Activities: {', '.join(draft.activities)}")
    if draft.pace:
        lines.append(f"- Pace: {draft.pace.value}")
    return "\n".join(lines) or "- nothing yet"


class ItineraryGenerator:
    """Adapter around the chat model for itinerary and follow-up generation."""

    def __init__(
        self,
        llm: ChatOpenAI | None = None,
        fallback_llm: ChatOpenAI | None = None,
    ) -> None:
        self._llm = llm or get_llm(settings.GENERATION_TEMPERATURE, json_mode=True)
        self._fallback_llm = fallback_llm or get_llm(settings.FALLBACK_TEMPERATURE)

    def build_messages(
        self, draft: TripDraft, transcript: list[TranscriptEntry]
    ) -> list[BaseMessage]:
        if draft.destination is None or draft.dates is None:
            raise ValueError("destination and dates are required to generate an itinerary")
        pace = draft.pace.value if draft.pace else "moderate"
        prompt = ChatPromptTemplate.from_template(ITINERARY_PROMPT)
        request = prompt.format_messages(
            days=draft.dates.days,
            destination=draft.destination,
            start_date=draft.dates.start.isoformat(),
            end_date=draft.dates.end.isoformat(),
            party_size=draft.party_size or 1,
            budget_per_person=draft.budget or 0,
            total_budget=draft.total_budget or 0,
            accommodation=", ".join(draft.accommodation) or "any",
            activities=", ".join(draft.activities) or "a mix of popular sights",
            pace=pace,
            activities_per_day=ACTIVITIES_PER_DAY[pace],
        )
        return [SystemMessage(content=SYSTEM_PROMPT), *_transcript_messages(transcript), *request]

    async def generate_itinerary(
        self, draft: TripDraft, transcript: list[TranscriptEntry]
    ) -> Itinerary:
        """Generate a day-by-day itinerary for a confirmed draft.

        Raises:
            ItineraryGenerationError: TRANSPORT when the model call fails or
                times out, PARSE when its output is unusable
        """
        messages = self.build_messages(draft, transcript)
        logger.info(f"Generating {draft.dates.days}-day itinerary for {draft.destination}")

        try:
            response = await self._llm.ainvoke(messages)
        except Exception as e:
            logger.error(f"Itinerary generation call failed: {e}")
            raise ItineraryGenerationError(
                f"Itinerary service unavailable: {e}",
                kind=GenerationFailure.TRANSPORT,
            ) from e

        itinerary = parse_itinerary(str(response.content), draft)
        logger.info(f"Generated itinerary with {len(itinerary.days)} days")
        return itinerary

    async def fallback_reply(
        self,
        draft: TripDraft,
        slot: Slot,
        transcript: list[TranscriptEntry],
        utterance: str,
    ) -> str:
        """One follow-up message for an utterance the extractor missed.

        Raises:
            ItineraryGenerationError: TRANSPORT when the model call fails
        """
        prompt = ChatPromptTemplate.from_template(FALLBACK_PROMPT)
        request = prompt.format_messages(
            collected=_collected_summary(draft),
            slot_description=SLOT_DESCRIPTIONS[slot],
            utterance=utterance,
        )
        messages = [SystemMessage(content=SYSTEM_PROMPT), *_transcript_messages(transcript), *request]

        try:
            response = await self._fallback_llm.ainvoke(messages)
        except Exception as e:
            logger.error(f"Fallback reply failed: {e}")
            raise ItineraryGenerationError(
                f"Assistant unavailable: {e}",
                kind=GenerationFailure.TRANSPORT,
            ) from e

        reply = str(response.content).strip()
        if not reply:
            raise ItineraryGenerationError("Empty fallback reply", kind=GenerationFailure.PARSE)
        return reply
