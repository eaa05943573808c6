"""
Tests for the itinerary generator and its output parsing.
"""

import json
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from juno.domains.itinerary.services.generator import (
    GenerationFailure,
    ItineraryGenerationError,
    ItineraryGenerator,
    parse_itinerary,
)
from juno.domains.planner.schemas import Slot, TranscriptEntry, TranscriptRole


def _model_output(**overrides) -> str:
    payload = {
        "days": [
            {
                "day": 1,
                "date": "2025-06-01",
                "activities": [
                    {"name": "Lunch at Time Out Market", "time": "13:00", "cost": 25},
                    {"name": "Walk in Alfama", "time": "9:00", "location": "Alfama"},
                ],
                "accommodation": {"name": "Hotel Avenida", "cost": 180},
                "meals": {"budget": 60},
                "reasoning": "Old town first",
            }
        ],
        "totalCost": 900,
        "suggestedAccommodations": ["Hotel Avenida"],
        "tips": ["Buy a Viva Viagem card"],
    }
    payload.update(overrides)
    return json.dumps(payload)


def _generator(content: str = "", error: Exception | None = None) -> ItineraryGenerator:
    llm = MagicMock()
    if error is not None:
        llm.ainvoke = AsyncMock(side_effect=error)
    else:
        llm.ainvoke = AsyncMock(return_value=MagicMock(content=content))
    return ItineraryGenerator(llm=llm, fallback_llm=llm)


class TestParseItinerary:
    """Tests for strict parsing of model output."""

    def test_parses_and_orders_slots(self, confirmed_draft):
        """Slots are normalised to HH:MM and sorted by time."""
        itinerary = parse_itinerary(_model_output(), confirmed_draft)

        day = itinerary.days[0]
        assert day.date == date(2025, 6, 1)
        assert [slot.time for slot in day.time_slots] == ["09:00", "13:00"]
        assert day.time_slots[1].cost == Decimal("25")
        assert day.accommodation.name == "Hotel Avenida"
        assert day.meals_budget == Decimal("60")
        assert itinerary.total_cost == Decimal("900")
        assert itinerary.tips == ["Buy a Viva Viagem card"]

    def test_strips_markdown_fences(self, confirmed_draft):
        """Output wrapped in a json code fence is accepted."""
        itinerary = parse_itinerary(f"```json\n{_model_output()}\n```", confirmed_draft)
        assert len(itinerary.days) == 1

    def test_missing_fields_get_defaults(self, confirmed_draft):
        """Missing accommodation, meals and dates fall back to defaults."""
        content = _model_output(days=[{"activities": []}, {"activities": []}])
        itinerary = parse_itinerary(content, confirmed_draft)

        assert [day.date for day in itinerary.days] == [date(2025, 6, 1), date(2025, 6, 2)]
        assert itinerary.days[0].accommodation.name == "TBD"
        assert itinerary.days[0].meals_budget == Decimal("0")

    def test_invalid_json_is_parse_failure(self, confirmed_draft):
        """Non-JSON output fails as a parse error."""
        with pytest.raises(ItineraryGenerationError) as exc_info:
            parse_itinerary("Here is your trip!", confirmed_draft)
        assert exc_info.value.kind is GenerationFailure.PARSE

    def test_empty_days_is_parse_failure(self, confirmed_draft):
        """An itinerary without days is rejected."""
        with pytest.raises(ItineraryGenerationError) as exc_info:
            parse_itinerary(_model_output(days=[]), confirmed_draft)
        assert exc_info.value.kind is GenerationFailure.PARSE

    def test_bad_activity_time_is_parse_failure(self, confirmed_draft):
        """An unreadable start time rejects the whole itinerary."""
        content = _model_output(
            days=[{"date": "2025-06-01", "activities": [{"name": "Tram 28", "time": "morning"}]}]
        )
        with pytest.raises(ItineraryGenerationError):
            parse_itinerary(content, confirmed_draft)


class TestItineraryGenerator:
    """Tests for the model adapter."""

    @pytest.mark.asyncio
    async def test_generate_itinerary(self, confirmed_draft):
        """A valid response becomes an Itinerary."""
        generator = _generator(_model_output())
        itinerary = await generator.generate_itinerary(confirmed_draft, [])
        assert itinerary.days[0].time_slots[0].activity == "Walk in Alfama"

    @pytest.mark.asyncio
    async def test_transport_failure(self, confirmed_draft):
        """Errors from the model call are reported as transport failures."""
        generator = _generator(error=TimeoutError("timed out"))
        with pytest.raises(ItineraryGenerationError) as exc_info:
            await generator.generate_itinerary(confirmed_draft, [])
        assert exc_info.value.kind is GenerationFailure.TRANSPORT

    def test_prompt_includes_trip_details(self, confirmed_draft):
        """The request carries the draft and the conversation so far."""
        transcript = [TranscriptEntry(role=TranscriptRole.USER, text="Lisbon")]
        messages = _generator().build_messages(confirmed_draft, transcript)

        assert messages[1].content == "Lisbon"
        prompt = messages[-1].content
        assert "3-day travel itinerary for Lisbon" in prompt
        assert "$1500 per person ($3000 total for the group)" in prompt
        assert "2-3 activities per day" in prompt

    @pytest.mark.asyncio
    async def test_fallback_reply(self, confirmed_draft):
        """The fallback reply is returned stripped."""
        generator = _generator("  You'd like to go to Lisbon.  ")
        reply = await generator.fallback_reply(confirmed_draft, Slot.DESTINATION, [], "lisbon pls")
        assert reply == "You'd like to go to Lisbon."

    @pytest.mark.asyncio
    async def test_empty_fallback_reply_fails(self, confirmed_draft):
        """An empty reply is not shown to the user."""
        generator = _generator("   ")
        with pytest.raises(ItineraryGenerationError):
            await generator.fallback_reply(confirmed_draft, Slot.DESTINATION, [], "?")
