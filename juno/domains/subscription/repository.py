"""Subscription lookups and entitlement resolution."""

import logging
from datetime import UTC, datetime
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from juno.domains.shared.repository import GenericRepository
from juno.domains.subscription.entitlements import (
    FREE_ENTITLEMENTS,
    Entitlements,
    entitlements_for,
)
from juno.domains.subscription.models import UserSubscription

logger = logging.getLogger(__name__)


class SubscriptionRepository(GenericRepository[UserSubscription, BaseModel, BaseModel]):
    """Repository for user subscriptions. Rows are written by the billing webhook."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(UserSubscription, session)

    async def get_for_user(self, user_id: UUID) -> UserSubscription | None:
        return await self.find_one(UserSubscription.user_id == user_id)


class SubscriptionService:
    def __init__(self, session: AsyncSession) -> None:
        self.repository = SubscriptionRepository(session)

    async def resolve_entitlements(self, user_id: UUID | None) -> Entitlements:
        """Entitlements of the user's current plan; free when none applies."""
        if user_id is None:
            return FREE_ENTITLEMENTS
        subscription = await self.repository.get_for_user(user_id)
        if subscription is None or not subscription.is_current(datetime.now(UTC)):
            return FREE_ENTITLEMENTS
        logger.debug(f"User {user_id} is on the {subscription.plan.value} plan")
        return entitlements_for(subscription.plan)
