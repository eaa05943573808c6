"""Merge user edits, calendar changes and regenerated plans into an itinerary.

``reconcile`` is pure: it returns a new Itinerary and never modifies its
input. After every mutation each day holds at most one slot per
``(time, activity)`` key, with the most recent write kept, and its slots
are sorted by time.
"""

import logging
from collections import defaultdict
from datetime import date, timedelta

from juno.domains.itinerary.schemas import (
    Activity,
    CalendarBatch,
    CalendarEvent,
    Itinerary,
    ManualSlotEdit,
    Mutation,
    NewManualActivity,
    Regeneration,
    RemoveActivity,
    TripDay,
)
from juno.domains.subscription.entitlements import (
    FREE_ENTITLEMENTS,
    Entitlements,
    Feature,
)

logger = logging.getLogger(__name__)

DEFAULT_EVENT_MINUTES = 60


class ReconciliationError(Exception):
    """A mutation does not fit the itinerary it is applied to."""


def format_duration(minutes: int) -> str:
    """``45 minutes``, ``2 hours`` or ``1 hour and 30 minutes``."""
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes != 1 else ''}"
    hours, remainder = divmod(minutes, 60)
    hour_text = f"{hours} hour{'s' if hours != 1 else ''}"
    if remainder == 0:
        return hour_text
    return f"{hour_text} and {remainder} minute{'s' if remainder != 1 else ''}"


def normalize_day(day: TripDay) -> TripDay:
    """Drop duplicate keys (later slots win) and sort by time."""
    by_key: dict[tuple[str, str], Activity] = {}
    for slot in day.time_slots:
        by_key.pop(slot.key, None)
        by_key[slot.key] = slot
    slots = sorted(by_key.values(), key=lambda slot: slot.time)
    return day.model_copy(update={"time_slots": slots})


def _day_at(days: list[TripDay], index: int) -> TripDay:
    if not 0 <= index < len(days):
        raise ReconciliationError(f"Day index {index} is out of range")
    return days[index]


def _slot_at(day: TripDay, index: int) -> Activity:
    if not 0 <= index < len(day.time_slots):
        raise ReconciliationError(f"Slot index {index} is out of range for {day.date}")
    return day.time_slots[index]


# ============ Manual edits ============


def _apply_manual_edit(days: list[TripDay], mutation: ManualSlotEdit) -> list[TripDay]:
    day = _day_at(days, mutation.day_index)
    slot = _slot_at(day, mutation.slot_index)

    updates = {
        field: value
        for field, value in mutation.patch.model_dump(exclude_unset=True).items()
        if value is not None or field == "url"
    }
    edited = slot.model_copy(update={**updates, "is_edited": True})
    others = [s for i, s in enumerate(day.time_slots) if i != mutation.slot_index]

    days[mutation.day_index] = normalize_day(
        day.model_copy(update={"time_slots": [*others, edited]})
    )
    return days


def _apply_new_activity(days: list[TripDay], mutation: NewManualActivity) -> list[TripDay]:
    day = _day_at(days, mutation.day_index)
    added = mutation.activity.model_copy(update={"is_edited": True})
    days[mutation.day_index] = normalize_day(
        day.model_copy(update={"time_slots": [*day.time_slots, added]})
    )
    return days


def _apply_removal(days: list[TripDay], mutation: RemoveActivity) -> list[TripDay]:
    day = _day_at(days, mutation.day_index)
    _slot_at(day, mutation.slot_index)
    remaining = [s for i, s in enumerate(day.time_slots) if i != mutation.slot_index]
    days[mutation.day_index] = day.model_copy(update={"time_slots": remaining})
    return days


# ============ Calendar ============


def _event_fields(event: CalendarEvent) -> tuple[date, str, str]:
    end = event.end or event.start + timedelta(minutes=DEFAULT_EVENT_MINUTES)
    minutes = int((end - event.start).total_seconds() // 60)
    if minutes <= 0:
        raise ReconciliationError(f"Event '{event.title}' ends before it starts")
    return event.start.date(), f"{event.start:%H:%M}", format_duration(minutes)


def _apply_calendar_batch(days: list[TripDay], mutation: CalendarBatch) -> list[TripDay]:
    events_by_date: dict[date, list[tuple[str, str, CalendarEvent]]] = defaultdict(list)
    for event in mutation.events:
        event_date, time, duration = _event_fields(event)
        events_by_date[event_date].append((time, duration, event))

    covered = set(mutation.covered_dates) if mutation.covered_dates is not None else set(events_by_date)
    trip_dates = {day.date for day in days}
    for stray in sorted(set(events_by_date) - trip_dates):
        logger.info(f"Ignoring calendar events on {stray}, outside the trip")

    for index, day in enumerate(days):
        if day.date not in covered:
            continue

        slots: dict[tuple[str, str], Activity] = {slot.key: slot for slot in day.time_slots}
        batch_keys: set[tuple[str, str]] = set()
        for time, duration, event in events_by_date.get(day.date, []):
            key = (time, event.title)
            fields = {
                "location": event.location,
                "notes": event.notes,
                "duration": duration,
                "url": event.url,
                "is_edited": True,
            }
            existing = slots.pop(key, None)
            if existing is not None:
                slots[key] = existing.model_copy(update=fields)
            else:
                slots[key] = Activity(time=time, activity=event.title, **fields)
            batch_keys.add(key)

        kept = [slot for key, slot in slots.items() if key in batch_keys]
        days[index] = normalize_day(day.model_copy(update={"time_slots": kept}))
    return days


# ============ Regeneration ============


def _merge_regenerated_day(old: TripDay, new: TripDay, discard_edits: bool) -> TripDay:
    new = normalize_day(new)
    if [s.model_dump() for s in normalize_day(old).time_slots] == [
        s.model_dump() for s in new.time_slots
    ]:
        slots = old.time_slots
    else:
        slots = list(new.time_slots)
        if not discard_edits:
            # Manual edits survive unless the bundle carries a newer edit of the same slot
            newer_edits = {s.key for s in new.time_slots if s.is_edited}
            slots += [s for s in old.time_slots if s.is_edited and s.key not in newer_edits]

    if new.weather_context is not None:
        weather, alternatives = new.weather_context, new.alternative_activities
    else:
        weather, alternatives = old.weather_context, old.alternative_activities

    merged = new.model_copy(
        update={
            "time_slots": slots,
            "weather_context": weather,
            "alternative_activities": alternatives,
            "reasoning": new.reasoning or old.reasoning,
            "user_feedback": new.user_feedback if new.user_feedback is not None else old.user_feedback,
            "is_finalized": old.is_finalized or new.is_finalized,
        }
    )
    return normalize_day(merged)


def _apply_regeneration(days: list[TripDay], mutation: Regeneration) -> list[TripDay]:
    by_date = {day.date: day for day in days}
    for new_day in mutation.days:
        old = by_date.get(new_day.date)
        if old is None:
            by_date[new_day.date] = normalize_day(new_day)
        else:
            by_date[new_day.date] = _merge_regenerated_day(old, new_day, mutation.discard_edits)
    return [by_date[day_date] for day_date in sorted(by_date)]


# ============ Entry point ============


def reconcile(
    itinerary: Itinerary,
    mutation: Mutation,
    entitlements: Entitlements | None = None,
) -> Itinerary:
    """Apply one mutation and return the reconciled itinerary.

    Raises:
        ReconciliationError: If an index is out of range or an event is invalid
        FeatureNotAvailableError: For calendar batches without the
            adjustable-calendar entitlement
    """
    days = list(itinerary.days)

    if isinstance(mutation, ManualSlotEdit):
        days = _apply_manual_edit(days, mutation)
    elif isinstance(mutation, NewManualActivity):
        days = _apply_new_activity(days, mutation)
    elif isinstance(mutation, RemoveActivity):
        days = _apply_removal(days, mutation)
    elif isinstance(mutation, CalendarBatch):
        (entitlements or FREE_ENTITLEMENTS).require(Feature.ADJUSTABLE_CALENDAR)
        days = _apply_calendar_batch(days, mutation)
    elif isinstance(mutation, Regeneration):
        days = _apply_regeneration(days, mutation)
    else:
        raise ReconciliationError(f"Unsupported mutation: {type(mutation).__name__}")

    days = sorted((normalize_day(day) for day in days), key=lambda day: day.date)
    return itinerary.model_copy(update={"days": days})
