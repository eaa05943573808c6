"""Planning conversation endpoints."""

from functools import lru_cache

from fastapi import APIRouter, Depends, status
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from juno.api.v1.endpoints.subscriptions import get_entitlements
from juno.core.deps import OptionalUserId
from juno.core.exceptions import (
    ConflictError,
    FeatureNotAvailable,
    LoginRequiredError,
    NotFoundError,
    ServiceUnavailableError,
)
from juno.domains.itinerary.services.generator import ItineraryGenerator
from juno.domains.itinerary.services.weather_enrichment import WeatherEnrichment
from juno.domains.planner.schemas import (
    ConversationResponse,
    MessageRequest,
    SavePlanRequest,
)
from juno.domains.planner.services import AuthRequiredError, PlannerService
from juno.domains.planner.state import (
    ConversationBusyError,
    ConversationClosedError,
    ConversationNotFoundError,
    InvalidTransitionError,
)
from juno.domains.planner.store import ConversationStore
from juno.domains.subscription.entitlements import Entitlements
from juno.domains.trip.schemas import TripResponse
from juno.domains.trip.services import (
    PersistenceError,
    TripLimitReachedError,
    TripService,
)
from juno.infra.database import get_db
from juno.infra.redis import get_redis

router = APIRouter()


@lru_cache
def get_generator() -> ItineraryGenerator:
    return ItineraryGenerator()


def get_planner_service(
    redis: Redis = Depends(get_redis),
    generator: ItineraryGenerator = Depends(get_generator),
) -> PlannerService:
    """Dependency for getting PlannerService."""
    return PlannerService(ConversationStore(redis), generator, WeatherEnrichment())


def get_trip_service(
    session: AsyncSession = Depends(get_db),
    generator: ItineraryGenerator = Depends(get_generator),
) -> TripService:
    return TripService(session, generator=generator)


@router.post(
    "/conversations",
    response_model=ConversationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start a planning conversation",
)
async def start_conversation(
    user_id: OptionalUserId,
    service: PlannerService = Depends(get_planner_service),
) -> ConversationResponse:
    """Start a conversation. Signing in is optional until the trip is saved."""
    state = await service.start(user_id)
    return ConversationResponse.from_state(state)


@router.get(
    "/conversations/{conversation_id}",
    response_model=ConversationResponse,
    summary="Get a planning conversation",
)
async def get_conversation(
    conversation_id: str,
    service: PlannerService = Depends(get_planner_service),
) -> ConversationResponse:
    try:
        state = await service.get(conversation_id)
    except ConversationNotFoundError as e:
        raise NotFoundError(str(e)) from e
    return ConversationResponse.from_state(state)


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=ConversationResponse,
    summary="Send a message to the planner",
    description="""
    Send one user message. The planner answers with the next question, a
    clarification, or the generated itinerary once the trip is confirmed.

    Only one message per conversation is processed at a time; a second
    message sent while the first is pending is rejected with `409`.
    """,
)
async def send_message(
    conversation_id: str,
    request: MessageRequest,
    service: PlannerService = Depends(get_planner_service),
) -> ConversationResponse:
    try:
        state = await service.send_message(conversation_id, request.message)
    except ConversationNotFoundError as e:
        raise NotFoundError(str(e)) from e
    except (ConversationBusyError, ConversationClosedError) as e:
        raise ConflictError(str(e)) from e
    return ConversationResponse.from_state(state)


@router.post(
    "/conversations/{conversation_id}/retry",
    response_model=ConversationResponse,
    summary="Retry a failed itinerary generation",
)
async def retry_generation(
    conversation_id: str,
    service: PlannerService = Depends(get_planner_service),
) -> ConversationResponse:
    try:
        state = await service.retry(conversation_id)
    except ConversationNotFoundError as e:
        raise NotFoundError(str(e)) from e
    except (ConversationBusyError, InvalidTransitionError) as e:
        raise ConflictError(str(e)) from e
    return ConversationResponse.from_state(state)


@router.post(
    "/conversations/{conversation_id}/reset",
    response_model=ConversationResponse,
    summary="Start the conversation over",
)
async def reset_conversation(
    conversation_id: str,
    service: PlannerService = Depends(get_planner_service),
) -> ConversationResponse:
    try:
        state = await service.reset(conversation_id)
    except ConversationNotFoundError as e:
        raise NotFoundError(str(e)) from e
    return ConversationResponse.from_state(state)


@router.post(
    "/conversations/{conversation_id}/trip",
    response_model=TripResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Save the generated itinerary as a trip",
)
async def save_as_trip(
    conversation_id: str,
    request: SavePlanRequest,
    user_id: OptionalUserId,
    entitlements: Entitlements = Depends(get_entitlements),
    service: PlannerService = Depends(get_planner_service),
    trips: TripService = Depends(get_trip_service),
) -> TripResponse:
    """Save the plan. Without a signed-in user the conversation is kept for later."""
    try:
        trip = await service.save_as_trip(
            conversation_id,
            user_id,
            trips,
            entitlements,
            title=request.title,
        )
    except AuthRequiredError as e:
        raise LoginRequiredError() from e
    except ConversationNotFoundError as e:
        raise NotFoundError(str(e)) from e
    except InvalidTransitionError as e:
        raise ConflictError(str(e)) from e
    except TripLimitReachedError as e:
        raise FeatureNotAvailable("unlimited-trips") from e
    except PersistenceError as e:
        raise ServiceUnavailableError(str(e)) from e
    return TripResponse.model_validate(trip)
