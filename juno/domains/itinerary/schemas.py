"""Pydantic schemas for the canonical itinerary document.

A saved trip's itinerary, a freshly generated plan and the result of
every reconciliation pass all use these types.
"""

import re
from datetime import date as date_type
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal

from pydantic import BaseModel, Field, computed_field, field_validator

_TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::\d{2})?\s*([AaPp]\.?[Mm]\.?)?\s*$")


def normalize_time(value: str) -> str:
    """Normalise a clock time to zero-padded 24h ``HH:MM``.

    Accepts ``9:00``, ``09:00``, ``09:00:00`` and ``9:00 pm``.
    """
    match = _TIME_RE.match(value)
    if not match:
        raise ValueError(f"invalid time of day: {value!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    meridiem = (match.group(3) or "").lower().replace(".", "")
    if meridiem:
        if not 1 <= hour <= 12:
            raise ValueError(f"invalid time of day: {value!r}")
        hour = hour % 12 + (12 if meridiem == "pm" else 0)
    if hour > 23 or minute > 59:
        raise ValueError(f"invalid time of day: {value!r}")
    return f"{hour:02d}:{minute:02d}"


# ============ Weather ============


class WeatherContext(BaseModel):
    """Forecast attached to a single day. Imperial units."""

    description: str
    temperature: float = Field(..., description="Temperature in °F")
    humidity: float | None = Field(default=None, description="Relative humidity in %")
    wind_speed: float = Field(..., description="Wind speed in mph")
    precipitation_probability: float = Field(default=0, description="Chance of rain in %")
    is_suitable_for_outdoor: bool
    warning: str | None = None


# ============ Itinerary ============


class Activity(BaseModel):
    """One scheduled slot in a day.

    ``(time, activity)`` identifies a slot within its day.
    """

    time: str
    activity: str = Field(..., min_length=1)
    location: str = ""
    duration: str = ""
    notes: str = ""
    cost: Decimal = Decimal("0")
    is_edited: bool = False
    url: str | None = None

    @field_validator("time")
    @classmethod
    def _normalize_time(cls, value: str) -> str:
        return normalize_time(value)

    @property
    def key(self) -> tuple[str, str]:
        return (self.time, self.activity)


class Accommodation(BaseModel):
    name: str = "TBD"
    cost: Decimal = Decimal("0")
    url: str | None = None


class TripDay(BaseModel):
    """A single calendar day of the itinerary."""

    date: date_type
    time_slots: list[Activity] = Field(default_factory=list)
    accommodation: Accommodation = Field(default_factory=Accommodation)
    meals_budget: Decimal = Decimal("0")
    weather_context: WeatherContext | None = None
    alternative_activities: list[str] = Field(default_factory=list)
    reasoning: str = ""
    user_feedback: str | None = None
    is_finalized: bool = False

    @computed_field  # type: ignore[misc]
    @property
    def day_of_week(self) -> str:
        return self.date.strftime("%A")


class Itinerary(BaseModel):
    days: list[TripDay] = Field(default_factory=list)
    total_cost: Decimal | None = None
    suggested_accommodations: list[str] = Field(default_factory=list)
    tips: list[str] = Field(default_factory=list)


# ============ Mutations ============


class ActivityPatch(BaseModel):
    """Fields a user may overwrite on an existing slot."""

    time: str | None = None
    activity: str | None = Field(default=None, min_length=1)
    location: str | None = None
    duration: str | None = None
    notes: str | None = None
    cost: Decimal | None = None
    url: str | None = None

    @field_validator("time")
    @classmethod
    def _normalize_time(cls, value: str | None) -> str | None:
        return normalize_time(value) if value is not None else None


class ManualSlotEdit(BaseModel):
    kind: Literal["manual_edit"] = "manual_edit"
    day_index: int
    slot_index: int
    patch: ActivityPatch


class NewManualActivity(BaseModel):
    kind: Literal["new_activity"] = "new_activity"
    day_index: int
    activity: Activity


class RemoveActivity(BaseModel):
    kind: Literal["remove_activity"] = "remove_activity"
    day_index: int
    slot_index: int


class CalendarEvent(BaseModel):
    """An event as laid out on the calendar view."""

    title: str = Field(..., min_length=1)
    start: datetime
    end: datetime | None = None
    location: str = ""
    notes: str = ""
    url: str | None = None


class CalendarBatch(BaseModel):
    """The full set of calendar events for the covered days.

    Days listed in ``covered_dates`` (or, when omitted, every day that has
    at least one event) are rewritten to match the batch exactly.
    """

    kind: Literal["calendar_batch"] = "calendar_batch"
    events: list[CalendarEvent]
    covered_dates: list[date_type] | None = None


class Regeneration(BaseModel):
    kind: Literal["regeneration"] = "regeneration"
    days: list[TripDay]
    discard_edits: bool = False


Mutation = Annotated[
    ManualSlotEdit | NewManualActivity | RemoveActivity | CalendarBatch | Regeneration,
    Field(discriminator="kind"),
]


class RegenerateRequest(BaseModel):
    discard_edits: bool = Field(
        default=False,
        description="Drop manually edited slots instead of keeping them",
    )
