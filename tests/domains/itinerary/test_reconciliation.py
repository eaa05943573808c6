"""
Tests for the itinerary reconciliation engine.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from juno.domains.itinerary.schemas import (
    Activity,
    ActivityPatch,
    CalendarBatch,
    CalendarEvent,
    ManualSlotEdit,
    NewManualActivity,
    Regeneration,
    RemoveActivity,
    TripDay,
    WeatherContext,
)
from juno.domains.itinerary.services.reconciliation import (
    ReconciliationError,
    format_duration,
    normalize_day,
    reconcile,
)
from juno.domains.subscription.entitlements import (
    PLAN_ENTITLEMENTS,
    FeatureNotAvailableError,
    SubscriptionPlan,
)

PREMIUM = PLAN_ENTITLEMENTS[SubscriptionPlan.PREMIUM]

SUNNY = WeatherContext(
    description="Clear sky",
    temperature=72,
    wind_speed=5,
    precipitation_probability=0,
    is_suitable_for_outdoor=True,
)


def _titles(day: TripDay) -> list[str]:
    return [slot.activity for slot in day.time_slots]


class TestFormatDuration:
    """Tests for human-readable durations."""

    @pytest.mark.parametrize(
        "minutes,expected",
        [
            (1, "1 minute"),
            (45, "45 minutes"),
            (60, "1 hour"),
            (120, "2 hours"),
            (90, "1 hour and 30 minutes"),
            (121, "2 hours and 1 minute"),
        ],
    )
    def test_format(self, minutes, expected):
        """Hours and minutes are pluralised."""
        assert format_duration(minutes) == expected


class TestManualMutations:
    """Tests for edits, additions and removals."""

    def test_edit_marks_slot_and_keeps_other_fields(self, sample_itinerary):
        """Only the patched fields change."""
        mutation = ManualSlotEdit(
            day_index=0, slot_index=1, patch=ActivityPatch(notes="Book ahead")
        )
        result = reconcile(sample_itinerary, mutation)

        slot = result.days[0].time_slots[1]
        assert slot.notes == "Book ahead"
        assert slot.cost == Decimal("25")
        assert slot.is_edited is True

    def test_edit_reorders_by_time(self, sample_itinerary):
        """Changing the time keeps the day sorted."""
        mutation = ManualSlotEdit(day_index=0, slot_index=0, patch=ActivityPatch(time="3:00 pm"))
        result = reconcile(sample_itinerary, mutation)
        assert _titles(result.days[0]) == ["Lunch at Time Out Market", "Walk in Alfama"]
        assert result.days[0].time_slots[1].time == "15:00"

    def test_edit_onto_existing_key_replaces_it(self, sample_itinerary):
        """An edit that collides with another slot's key wins."""
        mutation = ManualSlotEdit(
            day_index=0,
            slot_index=0,
            patch=ActivityPatch(time="13:00", activity="Lunch at Time Out Market", notes="Mine"),
        )
        result = reconcile(sample_itinerary, mutation)

        assert len(result.days[0].time_slots) == 1
        assert result.days[0].time_slots[0].notes == "Mine"

    def test_add_activity(self, sample_itinerary):
        """New activities are inserted in time order and marked edited."""
        mutation = NewManualActivity(
            day_index=1, activity=Activity(time="08:30", activity="Pastel de nata")
        )
        result = reconcile(sample_itinerary, mutation)
        assert _titles(result.days[1]) == ["Pastel de nata", "Gulbenkian Museum"]
        assert result.days[1].time_slots[0].is_edited is True

    def test_remove_activity(self, sample_itinerary):
        """Removal drops exactly one slot."""
        result = reconcile(sample_itinerary, RemoveActivity(day_index=0, slot_index=0))
        assert _titles(result.days[0]) == ["Lunch at Time Out Market"]

    @pytest.mark.parametrize(
        "mutation",
        [
            RemoveActivity(day_index=5, slot_index=0),
            RemoveActivity(day_index=2, slot_index=0),
            ManualSlotEdit(day_index=0, slot_index=-1, patch=ActivityPatch(notes="x")),
        ],
    )
    def test_invalid_index(self, sample_itinerary, mutation):
        """Indexes outside the itinerary are rejected."""
        with pytest.raises(ReconciliationError):
            reconcile(sample_itinerary, mutation)

    def test_input_is_not_modified(self, sample_itinerary):
        """The original itinerary is left as it was."""
        before = sample_itinerary.model_copy(deep=True)
        reconcile(sample_itinerary, RemoveActivity(day_index=0, slot_index=0))
        assert sample_itinerary == before


class TestCalendarBatch:
    """Tests for applying calendar view changes."""

    def _batch(self, **kwargs) -> CalendarBatch:
        events = kwargs.pop(
            "events",
            [
                CalendarEvent(
                    title="Walk in Alfama",
                    start=datetime(2025, 6, 1, 9, 0),
                    end=datetime(2025, 6, 1, 10, 30),
                    location="Alfama",
                    notes="Start at the castle",
                ),
                CalendarEvent(title="Fado show", start=datetime(2025, 6, 1, 21, 0)),
            ],
        )
        return CalendarBatch(events=events, **kwargs)

    def test_requires_entitlement(self, sample_itinerary):
        """Free plans cannot apply calendar changes."""
        with pytest.raises(FeatureNotAvailableError):
            reconcile(sample_itinerary, self._batch())

    def test_rewrites_covered_day(self, sample_itinerary):
        """Matching events update, new ones are added and missing ones removed."""
        result = reconcile(sample_itinerary, self._batch(), PREMIUM)

        day = result.days[0]
        assert _titles(day) == ["Walk in Alfama", "Fado show"]
        walk, fado = day.time_slots
        assert walk.duration == "1 hour and 30 minutes"
        assert walk.notes == "Start at the castle"
        assert walk.is_edited is True
        assert fado.time == "21:00"
        assert fado.duration == "1 hour"
        assert result.days[1] == sample_itinerary.days[1]

    def test_is_idempotent(self, sample_itinerary):
        """Applying the same batch twice changes nothing more."""
        once = reconcile(sample_itinerary, self._batch(), PREMIUM)
        twice = reconcile(once, self._batch(), PREMIUM)
        assert twice == once

    def test_explicitly_covered_day_without_events_is_cleared(self, sample_itinerary):
        """A covered day with no events ends up empty."""
        batch = self._batch(covered_dates=[date(2025, 6, 1), date(2025, 6, 2)])
        result = reconcile(sample_itinerary, batch, PREMIUM)
        assert result.days[1].time_slots == []

    def test_events_outside_trip_are_ignored(self, sample_itinerary):
        """Events on dates the trip does not have change nothing."""
        batch = self._batch(events=[CalendarEvent(title="Flight", start=datetime(2025, 7, 1, 8))])
        assert reconcile(sample_itinerary, batch, PREMIUM) == sample_itinerary

    def test_event_ending_before_start(self, sample_itinerary):
        """An event with a non-positive duration is rejected."""
        batch = self._batch(
            events=[
                CalendarEvent(
                    title="Oops",
                    start=datetime(2025, 6, 1, 10),
                    end=datetime(2025, 6, 1, 9),
                )
            ]
        )
        with pytest.raises(ReconciliationError):
            reconcile(sample_itinerary, batch, PREMIUM)


class TestRegeneration:
    """Tests for merging a regenerated plan."""

    def _regenerated_day(self, **overrides) -> TripDay:
        values = {
            "date": date(2025, 6, 1),
            "time_slots": [Activity(time="10:00", activity="Belem Tower")],
            "reasoning": "Riverside day",
        }
        values.update(overrides)
        return TripDay(**values)

    def test_keeps_manual_edits(self, sample_itinerary):
        """Edited slots survive regeneration."""
        edited = reconcile(
            sample_itinerary,
            NewManualActivity(day_index=0, activity=Activity(time="20:00", activity="Dinner")),
        )
        result = reconcile(edited, Regeneration(days=[self._regenerated_day()]))
        assert _titles(result.days[0]) == ["Belem Tower", "Dinner"]

    def test_discard_edits(self, sample_itinerary):
        """discard_edits drops the user's edited slots."""
        edited = reconcile(
            sample_itinerary,
            NewManualActivity(day_index=0, activity=Activity(time="20:00", activity="Dinner")),
        )
        result = reconcile(
            edited, Regeneration(days=[self._regenerated_day()], discard_edits=True)
        )
        assert _titles(result.days[0]) == ["Belem Tower"]

    def test_keeps_weather_when_new_day_has_none(self, sample_itinerary):
        """A day without a fresh forecast keeps the stored one."""
        days = list(sample_itinerary.days)
        days[0] = days[0].model_copy(update={"weather_context": SUNNY})
        itinerary = sample_itinerary.model_copy(update={"days": days})

        result = reconcile(itinerary, Regeneration(days=[self._regenerated_day()]))
        assert result.days[0].weather_context == SUNNY
        assert result.days[0].reasoning == "Riverside day"

    def test_unchanged_slots_are_kept_as_is(self, sample_itinerary):
        """Identical slots from the bundle leave the day's slots untouched."""
        day = sample_itinerary.days[1]
        result = reconcile(
            sample_itinerary, Regeneration(days=[day.model_copy(update={"weather_context": SUNNY})])
        )
        assert result.days[1].time_slots == day.time_slots
        assert result.days[1].weather_context == SUNNY

    def test_adds_new_dates_in_order(self, sample_itinerary):
        """Days the itinerary lacks are added and the result stays sorted."""
        extra = TripDay(date=date(2025, 5, 31))
        result = reconcile(sample_itinerary, Regeneration(days=[extra]))
        assert [day.date for day in result.days][:2] == [date(2025, 5, 31), date(2025, 6, 1)]


class TestNormalizeDay:
    """Tests for the per-day invariant."""

    def test_later_duplicate_wins(self):
        """Duplicate keys collapse to the last one."""
        day = TripDay(
            date=date(2025, 6, 1),
            time_slots=[
                Activity(time="12:00", activity="Lunch", notes="first"),
                Activity(time="09:00", activity="Coffee"),
                Activity(time="12:00", activity="Lunch", notes="second"),
            ],
        )
        normalized = normalize_day(day)
        assert _titles(normalized) == ["Coffee", "Lunch"]
        assert normalized.time_slots[1].notes == "second"
