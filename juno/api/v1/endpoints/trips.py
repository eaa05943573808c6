"""Saved trip endpoints, including itinerary edits."""

from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import APIRouter, Depends, Query, status

from juno.api.v1.endpoints.planner import get_trip_service
from juno.api.v1.endpoints.subscriptions import get_entitlements
from juno.core.deps import CurrentUserId
from juno.core.exceptions import (
    FeatureNotAvailable,
    NotFoundError,
    ServiceUnavailableError,
    UnprocessableError,
)
from juno.domains.itinerary.schemas import (
    Activity,
    ActivityPatch,
    CalendarBatch,
    ManualSlotEdit,
    NewManualActivity,
    RegenerateRequest,
    RemoveActivity,
)
from juno.domains.itinerary.services.generator import ItineraryGenerationError
from juno.domains.itinerary.services.reconciliation import ReconciliationError
from juno.domains.subscription.entitlements import Entitlements, FeatureNotAvailableError
from juno.domains.trip.schemas import (
    PopularDestination,
    TripListResponse,
    TripResponse,
    TripUpdate,
)
from juno.domains.trip.services import (
    PersistenceError,
    TripNotFoundError,
    TripService,
)

router = APIRouter()


@contextmanager
def trip_errors() -> Iterator[None]:
    """Translate trip domain errors into HTTP errors."""
    try:
        yield
    except TripNotFoundError as e:
        raise NotFoundError("Trip not found") from e
    except ReconciliationError as e:
        raise UnprocessableError(str(e)) from e
    except FeatureNotAvailableError as e:
        raise FeatureNotAvailable(e.feature.value) from e
    except ItineraryGenerationError as e:
        raise ServiceUnavailableError(e.message) from e
    except PersistenceError as e:
        raise ServiceUnavailableError(str(e)) from e


# ==================== Trip Endpoints ====================


@router.get(
    "",
    response_model=TripListResponse,
    summary="List active trips",
)
async def list_trips(
    user_id: CurrentUserId,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    service: TripService = Depends(get_trip_service),
) -> TripListResponse:
    items, total = await service.list_trips(user_id, skip=skip, limit=limit)
    return TripListResponse(items=[TripResponse.model_validate(t) for t in items], total=total)


@router.get(
    "/archived",
    response_model=TripListResponse,
    summary="List archived trips",
)
async def list_archived_trips(
    user_id: CurrentUserId,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    service: TripService = Depends(get_trip_service),
) -> TripListResponse:
    items, total = await service.list_archived(user_id, skip=skip, limit=limit)
    return TripListResponse(items=[TripResponse.model_validate(t) for t in items], total=total)


@router.get(
    "/popular-destinations",
    response_model=list[PopularDestination],
    summary="Most planned destinations",
)
async def popular_destinations(
    limit: int = Query(5, ge=1, le=20),
    service: TripService = Depends(get_trip_service),
) -> list[PopularDestination]:
    return await service.popular_destinations(limit)


@router.get(
    "/{trip_id}",
    response_model=TripResponse,
    summary="Get a trip",
)
async def get_trip(
    trip_id: int,
    user_id: CurrentUserId,
    service: TripService = Depends(get_trip_service),
) -> TripResponse:
    with trip_errors():
        trip = await service.get_trip(trip_id, user_id)
    return TripResponse.model_validate(trip)


@router.patch(
    "/{trip_id}",
    response_model=TripResponse,
    summary="Update trip details",
)
async def update_trip(
    trip_id: int,
    data: TripUpdate,
    user_id: CurrentUserId,
    service: TripService = Depends(get_trip_service),
) -> TripResponse:
    with trip_errors():
        trip = await service.update_trip(trip_id, user_id, data)
    return TripResponse.model_validate(trip)


@router.delete(
    "/{trip_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a trip",
)
async def delete_trip(
    trip_id: int,
    user_id: CurrentUserId,
    service: TripService = Depends(get_trip_service),
) -> None:
    with trip_errors():
        await service.delete(trip_id, user_id)


@router.post(
    "/{trip_id}/archive",
    response_model=TripResponse,
    summary="Archive a trip",
)
async def archive_trip(
    trip_id: int,
    user_id: CurrentUserId,
    service: TripService = Depends(get_trip_service),
) -> TripResponse:
    with trip_errors():
        trip = await service.archive(trip_id, user_id)
    return TripResponse.model_validate(trip)


@router.post(
    "/{trip_id}/restore",
    response_model=TripResponse,
    summary="Restore an archived trip",
)
async def restore_trip(
    trip_id: int,
    user_id: CurrentUserId,
    service: TripService = Depends(get_trip_service),
) -> TripResponse:
    with trip_errors():
        trip = await service.restore(trip_id, user_id)
    return TripResponse.model_validate(trip)


@router.post(
    "/{trip_id}/complete",
    response_model=TripResponse,
    summary="Finalize every day of the itinerary",
)
async def complete_trip(
    trip_id: int,
    user_id: CurrentUserId,
    service: TripService = Depends(get_trip_service),
) -> TripResponse:
    with trip_errors():
        trip = await service.complete(trip_id, user_id)
    return TripResponse.model_validate(trip)


# ==================== Itinerary Edit Endpoints ====================


@router.patch(
    "/{trip_id}/days/{day_index}/slots/{slot_index}",
    response_model=TripResponse,
    summary="Edit an activity",
)
async def edit_activity(
    trip_id: int,
    day_index: int,
    slot_index: int,
    patch: ActivityPatch,
    user_id: CurrentUserId,
    service: TripService = Depends(get_trip_service),
) -> TripResponse:
    """Overwrite the given fields of one slot and mark it as edited."""
    mutation = ManualSlotEdit(day_index=day_index, slot_index=slot_index, patch=patch)
    with trip_errors():
        trip = await service.apply_mutation(trip_id, user_id, mutation)
    return TripResponse.model_validate(trip)


@router.post(
    "/{trip_id}/days/{day_index}/slots",
    response_model=TripResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add an activity",
)
async def add_activity(
    trip_id: int,
    day_index: int,
    activity: Activity,
    user_id: CurrentUserId,
    service: TripService = Depends(get_trip_service),
) -> TripResponse:
    mutation = NewManualActivity(day_index=day_index, activity=activity)
    with trip_errors():
        trip = await service.apply_mutation(trip_id, user_id, mutation)
    return TripResponse.model_validate(trip)


@router.delete(
    "/{trip_id}/days/{day_index}/slots/{slot_index}",
    response_model=TripResponse,
    summary="Remove an activity",
)
async def remove_activity(
    trip_id: int,
    day_index: int,
    slot_index: int,
    user_id: CurrentUserId,
    service: TripService = Depends(get_trip_service),
) -> TripResponse:
    mutation = RemoveActivity(day_index=day_index, slot_index=slot_index)
    with trip_errors():
        trip = await service.apply_mutation(trip_id, user_id, mutation)
    return TripResponse.model_validate(trip)


@router.put(
    "/{trip_id}/calendar",
    response_model=TripResponse,
    summary="Apply calendar changes",
    description="""
    Replace the activities of the covered days with the given calendar
    events. Events matching an existing activity by start time and title
    update it; others are added; activities missing from the batch on a
    covered day are removed.

    Requires a plan with the adjustable calendar feature.
    """,
)
async def apply_calendar(
    trip_id: int,
    batch: CalendarBatch,
    user_id: CurrentUserId,
    entitlements: Entitlements = Depends(get_entitlements),
    service: TripService = Depends(get_trip_service),
) -> TripResponse:
    with trip_errors():
        trip = await service.apply_mutation(trip_id, user_id, batch, entitlements)
    return TripResponse.model_validate(trip)


@router.post(
    "/{trip_id}/regenerate",
    response_model=TripResponse,
    summary="Regenerate the itinerary",
)
async def regenerate_itinerary(
    trip_id: int,
    request: RegenerateRequest,
    user_id: CurrentUserId,
    service: TripService = Depends(get_trip_service),
) -> TripResponse:
    """Ask the model for a fresh plan. Edited activities are kept unless discarded."""
    with trip_errors():
        trip = await service.regenerate(trip_id, user_id, discard_edits=request.discard_edits)
    return TripResponse.model_validate(trip)


@router.post(
    "/{trip_id}/weather",
    response_model=TripResponse,
    summary="Refresh weather for every day",
)
async def refresh_weather(
    trip_id: int,
    user_id: CurrentUserId,
    service: TripService = Depends(get_trip_service),
) -> TripResponse:
    with trip_errors():
        trip = await service.refresh_weather(trip_id, user_id)
    return TripResponse.model_validate(trip)
