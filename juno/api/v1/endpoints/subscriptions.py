"""Subscription endpoints and the entitlements dependency."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from juno.core.deps import CurrentUserId, OptionalUserId
from juno.domains.subscription.entitlements import Entitlements, EntitlementsResponse
from juno.domains.subscription.repository import SubscriptionService
from juno.infra.database import get_db

router = APIRouter()


def get_subscription_service(
    session: AsyncSession = Depends(get_db),
) -> SubscriptionService:
    """Dependency for getting SubscriptionService."""
    return SubscriptionService(session)


async def get_entitlements(
    user_id: OptionalUserId,
    service: SubscriptionService = Depends(get_subscription_service),
) -> Entitlements:
    """Entitlements of the caller; anonymous callers get the free plan."""
    return await service.resolve_entitlements(user_id)


@router.get(
    "/me",
    response_model=EntitlementsResponse,
    summary="Get the current user's plan and features",
)
async def get_my_entitlements(
    user_id: CurrentUserId,
    service: SubscriptionService = Depends(get_subscription_service),
) -> EntitlementsResponse:
    entitlements = await service.resolve_entitlements(user_id)
    return EntitlementsResponse.from_entitlements(entitlements)
