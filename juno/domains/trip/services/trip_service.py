"""Services for the Trip domain - business logic layer."""

import logging
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from juno.domains.itinerary.schemas import Itinerary, Mutation, Regeneration
from juno.domains.itinerary.services.generator import ItineraryGenerator
from juno.domains.itinerary.services.reconciliation import reconcile
from juno.domains.itinerary.services.weather_enrichment import WeatherEnrichment
from juno.domains.planner.schemas import DateRange, Pace, TripDraft
from juno.domains.subscription.entitlements import Entitlements
from juno.domains.trip.models import Trip
from juno.domains.trip.repository import TripRepository
from juno.domains.trip.schemas import (
    PopularDestination,
    TripCreate,
    TripPreferences,
    TripUpdate,
)

logger = logging.getLogger(__name__)


class TripError(Exception):
    """Base exception for trip operations."""


class TripNotFoundError(TripError):
    def __init__(self, trip_id: int):
        self.trip_id = trip_id
        super().__init__(f"Trip {trip_id} not found")


class TripLimitReachedError(TripError):
    """The user's plan does not allow another saved trip."""

    def __init__(self, max_trips: int):
        self.max_trips = max_trips
        super().__init__(f"Your plan allows up to {max_trips} saved trips")


class PersistenceError(TripError):
    """The database rejected a write; nothing was saved."""


def _to_columns(data: TripCreate | TripUpdate, exclude_unset: bool = False) -> dict[str, Any]:
    """Column values for a trip schema; JSON columns get JSON-safe documents."""
    values = data.model_dump(exclude_unset=exclude_unset)
    for field in ("preferences", "itinerary"):
        if field in values and getattr(data, field, None) is not None:
            values[field] = getattr(data, field).model_dump(mode="json")
    return values


def draft_from_trip(trip: Trip) -> TripDraft:
    """Rebuild a confirmed draft from a saved trip for regeneration."""
    preferences = TripPreferences.model_validate(trip.preferences or {})
    return TripDraft(
        destination=trip.destination,
        dates=DateRange(start=trip.start_date, end=trip.end_date),
        budget=trip.budget,
        party_size=trip.party_size,
        accommodation=preferences.accommodation_types,
        activities=preferences.activity_types,
        pace=preferences.pace,
        confirmed=True,
    )


class TripService:
    """Service for saved trips and their itineraries.

    Every write either commits in full or is rolled back and reported as
    a PersistenceError, so a returned Trip always reflects stored data.
    """

    def __init__(
        self,
        session: AsyncSession,
        generator: ItineraryGenerator | None = None,
        weather: WeatherEnrichment | None = None,
    ) -> None:
        self.session = session
        self.repository = TripRepository(session)
        self._generator = generator
        self.weather = weather or WeatherEnrichment()

    @property
    def generator(self) -> ItineraryGenerator:
        if self._generator is None:
            self._generator = ItineraryGenerator()
        return self._generator

    # ==================== Create ====================

    async def create_from_plan(
        self,
        user_id: UUID,
        draft: TripDraft,
        itinerary: Itinerary,
        entitlements: Entitlements,
        title: str | None = None,
    ) -> Trip:
        """Persist a finished planning conversation as a trip.

        Raises:
            TripLimitReachedError: If the plan's trip limit is already used
            PersistenceError: If the write fails
        """
        if draft.destination is None or draft.dates is None:
            raise ValueError("A trip needs a destination and dates")

        active = await self.repository.count_active(user_id)
        if active >= entitlements.max_trips:
            raise TripLimitReachedError(entitlements.max_trips)

        data = TripCreate(
            user_id=user_id,
            title=title or f"Trip to {draft.destination}",
            destination=draft.destination,
            start_date=draft.dates.start,
            end_date=draft.dates.end,
            budget=draft.budget or 0,
            party_size=draft.party_size or 1,
            preferences=TripPreferences(
                accommodation_types=draft.accommodation,
                activity_types=draft.activities,
                pace=draft.pace or Pace.MODERATE,
            ),
            itinerary=itinerary,
        )

        try:
            trip = await self.repository.create(_to_columns(data))
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Failed to save trip for user {user_id}: {e}")
            raise PersistenceError("Your trip could not be saved") from e

        logger.info(f"Saved trip {trip.id} to {trip.destination} for user {user_id}")
        return trip

    # ==================== Read ====================

    async def get_trip(self, trip_id: int, user_id: UUID) -> Trip:
        trip = await self.repository.get_for_user(trip_id, user_id)
        if trip is None:
            raise TripNotFoundError(trip_id)
        return trip

    async def list_trips(
        self, user_id: UUID, *, skip: int = 0, limit: int = 100
    ) -> tuple[Sequence[Trip], int]:
        return await self.repository.list_active(user_id, skip=skip, limit=limit)

    async def list_archived(
        self, user_id: UUID, *, skip: int = 0, limit: int = 100
    ) -> tuple[Sequence[Trip], int]:
        return await self.repository.list_archived(user_id, skip=skip, limit=limit)

    async def popular_destinations(self, limit: int = 5) -> list[PopularDestination]:
        return await self.repository.top_destinations(limit)

    # ==================== Update ====================

    async def update_trip(self, trip_id: int, user_id: UUID, data: TripUpdate) -> Trip:
        trip = await self.get_trip(trip_id, user_id)
        return await self._write(trip, _to_columns(data, exclude_unset=True))

    async def archive(self, trip_id: int, user_id: UUID) -> Trip:
        trip = await self.get_trip(trip_id, user_id)
        return await self._write(trip, {"is_archived": True})

    async def restore(self, trip_id: int, user_id: UUID) -> Trip:
        trip = await self.get_trip(trip_id, user_id)
        return await self._write(trip, {"is_archived": False})

    async def delete(self, trip_id: int, user_id: UUID) -> None:
        trip = await self.get_trip(trip_id, user_id)
        await self._write(trip, {"is_active": False})
        logger.info(f"Deleted trip {trip_id}")

    async def complete(self, trip_id: int, user_id: UUID) -> Trip:
        """Mark every day of the itinerary as finalized."""
        trip = await self.get_trip(trip_id, user_id)
        itinerary = Itinerary.model_validate(trip.itinerary)
        days = [day.model_copy(update={"is_finalized": True}) for day in itinerary.days]
        itinerary = itinerary.model_copy(update={"days": days})
        return await self._write(trip, {"itinerary": itinerary.model_dump(mode="json")})

    # ==================== Itinerary ====================

    async def apply_mutation(
        self,
        trip_id: int,
        user_id: UUID,
        mutation: Mutation,
        entitlements: Entitlements | None = None,
    ) -> Trip:
        """Reconcile one mutation against the stored itinerary and save it.

        Raises:
            TripNotFoundError: If the user has no such trip
            ReconciliationError: If the mutation does not fit the itinerary
            FeatureNotAvailableError: If the plan does not allow the mutation
            PersistenceError: If the write fails
        """
        trip = await self.get_trip(trip_id, user_id)
        current = Itinerary.model_validate(trip.itinerary)
        updated = reconcile(current, mutation, entitlements)
        logger.info(f"Applying {mutation.kind} to trip {trip_id}")
        return await self._write(trip, {"itinerary": updated.model_dump(mode="json")})

    async def regenerate(
        self,
        trip_id: int,
        user_id: UUID,
        discard_edits: bool = False,
    ) -> Trip:
        """Ask the model for a fresh plan and merge it into the stored one.

        Raises:
            ItineraryGenerationError: If the model fails; the trip is untouched
        """
        trip = await self.get_trip(trip_id, user_id)
        draft = draft_from_trip(trip)

        generated = await self.generator.generate_itinerary(draft, [])
        generated = await self.weather.enrich(generated, trip.destination)

        current = Itinerary.model_validate(trip.itinerary)
        merged = reconcile(
            current,
            Regeneration(days=generated.days, discard_edits=discard_edits),
        )
        merged = merged.model_copy(
            update={
                "total_cost": generated.total_cost,
                "suggested_accommodations": generated.suggested_accommodations,
                "tips": generated.tips,
            }
        )
        return await self._write(trip, {"itinerary": merged.model_dump(mode="json")})

    async def refresh_weather(self, trip_id: int, user_id: UUID) -> Trip:
        """Re-run weather enrichment; days whose lookup fails keep their old forecast."""
        trip = await self.get_trip(trip_id, user_id)
        current = Itinerary.model_validate(trip.itinerary)
        enriched = await self.weather.enrich(current, trip.destination)
        merged = reconcile(current, Regeneration(days=enriched.days))
        return await self._write(trip, {"itinerary": merged.model_dump(mode="json")})

    # ==================== Helpers ====================

    async def _write(self, trip: Trip, data: dict[str, Any]) -> Trip:
        trip_id = trip.id
        try:
            trip = await self.repository.update(trip, data)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Failed to update trip {trip_id}: {e}")
            raise PersistenceError("Your changes could not be saved") from e
        return trip
