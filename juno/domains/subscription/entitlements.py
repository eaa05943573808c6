"""Subscription plans and the features they unlock.

Entitlements are resolved once per request and passed explicitly to the
code that needs to gate behaviour on them.
"""

import enum

from pydantic import BaseModel, ConfigDict

UNLIMITED_TRIPS = 999


class SubscriptionPlan(str, enum.Enum):
    FREE = "free"
    PREMIUM = "premium"
    BUSINESS = "business"


class Feature(str, enum.Enum):
    MAPS = "maps"
    UNLIMITED_TRIPS = "unlimited-trips"
    AI_CHATBOT = "ai-chatbot"
    ADJUSTABLE_CALENDAR = "adjustable-calendar"
    PDF_EXPORT = "pdf-export"


class FeatureNotAvailableError(Exception):
    """The current plan does not include a feature."""

    def __init__(self, feature: Feature, plan: SubscriptionPlan):
        self.feature = feature
        self.plan = plan
        super().__init__(f"Feature '{feature.value}' is not included in the {plan.value} plan")


class Entitlements(BaseModel):
    model_config = ConfigDict(frozen=True)

    plan: SubscriptionPlan
    max_trips: int
    features: frozenset[Feature] = frozenset()

    def has(self, feature: Feature) -> bool:
        return feature in self.features

    def require(self, feature: Feature) -> None:
        """Raise FeatureNotAvailableError unless the feature is included."""
        if not self.has(feature):
            raise FeatureNotAvailableError(feature, self.plan)

    @property
    def maps(self) -> bool:
        return self.has(Feature.MAPS)

    @property
    def unlimited_trips(self) -> bool:
        return self.has(Feature.UNLIMITED_TRIPS)

    @property
    def ai_chatbot(self) -> bool:
        return self.has(Feature.AI_CHATBOT)

    @property
    def adjustable_calendar(self) -> bool:
        return self.has(Feature.ADJUSTABLE_CALENDAR)

    @property
    def pdf_export(self) -> bool:
        return self.has(Feature.PDF_EXPORT)


PLAN_ENTITLEMENTS: dict[SubscriptionPlan, Entitlements] = {
    SubscriptionPlan.FREE: Entitlements(plan=SubscriptionPlan.FREE, max_trips=3),
    SubscriptionPlan.PREMIUM: Entitlements(
        plan=SubscriptionPlan.PREMIUM,
        max_trips=UNLIMITED_TRIPS,
        features=frozenset(Feature),
    ),
    SubscriptionPlan.BUSINESS: Entitlements(
        plan=SubscriptionPlan.BUSINESS,
        max_trips=UNLIMITED_TRIPS,
        features=frozenset(Feature),
    ),
}

FREE_ENTITLEMENTS = PLAN_ENTITLEMENTS[SubscriptionPlan.FREE]


def entitlements_for(plan: SubscriptionPlan) -> Entitlements:
    return PLAN_ENTITLEMENTS[plan]


class EntitlementsResponse(BaseModel):
    plan: SubscriptionPlan
    max_trips: int
    maps: bool
    unlimited_trips: bool
    ai_chatbot: bool
    adjustable_calendar: bool
    pdf_export: bool

    @classmethod
    def from_entitlements(cls, entitlements: Entitlements) -> "EntitlementsResponse":
        return cls(
            plan=entitlements.plan,
            max_trips=entitlements.max_trips,
            maps=entitlements.maps,
            unlimited_trips=entitlements.unlimited_trips,
            ai_chatbot=entitlements.ai_chatbot,
            adjustable_calendar=entitlements.adjustable_calendar,
            pdf_export=entitlements.pdf_export,
        )
