"""Pydantic schemas for the Trip domain."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from juno.domains.itinerary.schemas import Itinerary
from juno.domains.planner.schemas import Pace


class TripPreferences(BaseModel):
    accommodation_types: list[str] = Field(default_factory=list)
    activity_types: list[str] = Field(default_factory=list)
    pace: Pace = Pace.MODERATE
    must_see_attractions: list[str] = Field(default_factory=list)
    dietary_restrictions: list[str] = Field(default_factory=list)
    transportation_preferences: list[str] = Field(default_factory=list)


# ============ Trip Schemas ============


class TripBase(BaseModel):
    """Base schema for Trip."""

    title: str = Field(..., min_length=1, max_length=255)
    destination: str = Field(..., min_length=1, max_length=255)
    start_date: date
    end_date: date
    budget: Decimal = Field(default=Decimal("0.00"), ge=0, description="Budget per person")
    party_size: int = Field(default=1, ge=1)
    preferences: TripPreferences = Field(default_factory=TripPreferences)

    @field_validator("end_date")
    @classmethod
    def validate_end_date(cls, v: date, info) -> date:
        """Validate that end_date is not before start_date."""
        start_date = info.data.get("start_date")
        if start_date and v < start_date:
            raise ValueError("end_date must be on or after start_date")
        return v


class TripCreate(TripBase):
    user_id: UUID
    itinerary: Itinerary = Field(default_factory=Itinerary)


class TripUpdate(BaseModel):
    """Trip fields a user may change directly."""

    title: str | None = Field(None, min_length=1, max_length=255)
    budget: Decimal | None = Field(None, ge=0)
    party_size: int | None = Field(None, ge=1)
    preferences: TripPreferences | None = None


class TripResponse(TripBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: UUID
    itinerary: Itinerary
    is_archived: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime


class TripListResponse(BaseModel):
    items: list[TripResponse]
    total: int


class PopularDestination(BaseModel):
    destination: str
    trip_count: int
