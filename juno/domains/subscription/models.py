"""SQLAlchemy models for the Subscription domain."""

import enum
from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, Enum, String
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column

from juno.domains.subscription.entitlements import SubscriptionPlan
from juno.infra.database import Base


class SubscriptionStatus(str, enum.Enum):
    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELED = "canceled"


class UserSubscription(Base):
    """A user's current plan as last reported by the billing provider.

    Attributes:
        user_id: Owner of the subscription, one row per user
        plan: Plan tier
        status: Billing status; only active and trialing grant the plan
        current_period_end: When the paid period lapses, None for free
    """

    __tablename__ = "user_subscriptions"

    user_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        nullable=False,
        unique=True,
        index=True,
    )
    plan: Mapped[SubscriptionPlan] = mapped_column(
        Enum(
            SubscriptionPlan,
            native_enum=True,
            name="subscription_plan",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=SubscriptionPlan.FREE,
    )
    status: Mapped[SubscriptionStatus] = mapped_column(
        Enum(
            SubscriptionStatus,
            native_enum=True,
            name="subscription_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=SubscriptionStatus.ACTIVE,
    )
    current_period_end: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    billing_customer_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    def is_current(self, now: datetime) -> bool:
        if self.status not in (SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING):
            return False
        return self.current_period_end is None or self.current_period_end > now
