"""Repository for the Trip domain - data access using the generic repository."""

from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from juno.domains.shared.repository import GenericRepository
from juno.domains.shared.specifications import Specification
from juno.domains.trip.models import Trip
from juno.domains.trip.schemas import PopularDestination, TripCreate, TripUpdate


# ==================== Specifications ====================


class TripOwnedBySpec(Specification[Trip]):
    """Trips belonging to one user."""

    def __init__(self, user_id: UUID) -> None:
        self.user_id = user_id

    def to_expression(self) -> Any:
        return Trip.user_id == self.user_id


class ActiveTripSpec(Specification[Trip]):
    """Trips that have not been deleted."""

    def to_expression(self) -> Any:
        return Trip.is_active.is_(True)


class ArchivedTripSpec(Specification[Trip]):
    def to_expression(self) -> Any:
        return Trip.is_archived.is_(True)


# ==================== Repositories ====================


class TripRepository(GenericRepository[Trip, TripCreate, TripUpdate]):
    """Repository for Trip CRUD operations.

    Deleted trips stay in the table with ``is_active`` cleared and are
    never returned by the lookups below.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(Trip, session)

    async def get_for_user(self, trip_id: int, user_id: UUID) -> Trip | None:
        """Get an active trip by id, only if ``user_id`` owns it."""
        spec = TripOwnedBySpec(user_id) & ActiveTripSpec()
        return await self.find_one(Trip.id == trip_id, spec.to_expression())

    async def list_active(
        self,
        user_id: UUID,
        *,
        skip: int = 0,
        limit: int = 100,
    ) -> tuple[Sequence[Trip], int]:
        """Active, non-archived trips with the total count."""
        spec = TripOwnedBySpec(user_id) & ActiveTripSpec() & ~ArchivedTripSpec()
        items = await self.find_many(
            spec.to_expression(),
            skip=skip,
            limit=limit,
            order_by=Trip.start_date.asc(),
        )
        total = await self.count(spec.to_expression())
        return items, total

    async def list_archived(
        self,
        user_id: UUID,
        *,
        skip: int = 0,
        limit: int = 100,
    ) -> tuple[Sequence[Trip], int]:
        spec = TripOwnedBySpec(user_id) & ActiveTripSpec() & ArchivedTripSpec()
        items = await self.find_many(spec.to_expression(), skip=skip, limit=limit)
        total = await self.count(spec.to_expression())
        return items, total

    async def count_active(self, user_id: UUID) -> int:
        """Number of trips counting against the user's plan limit."""
        spec = TripOwnedBySpec(user_id) & ActiveTripSpec()
        return await self.count(spec.to_expression())

    async def top_destinations(self, limit: int = 5) -> list[PopularDestination]:
        """Most frequent destinations across all active trips."""
        trip_count = func.count(Trip.id).label("trip_count")
        stmt = (
            select(Trip.destination, trip_count)
            .where(ActiveTripSpec().to_expression())
            .group_by(Trip.destination)
            .order_by(trip_count.desc(), Trip.destination.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [
            PopularDestination(destination=destination, trip_count=count)
            for destination, count in result.all()
        ]
