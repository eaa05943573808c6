"""SQLAlchemy models for the Trip domain."""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import JSON, CheckConstraint, Date, Index, Numeric, String
from sqlalchemy.dialects.postgresql import JSONB, UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column

from juno.infra.database import Base

JSONDocument = JSON().with_variant(JSONB(), "postgresql")


class Trip(Base):
    """A saved trip and its canonical itinerary.

    Attributes:
        id: Integer identifier - inherited from Base
        user_id: Owner of the trip
        title: Display title
        destination: Primary destination of the trip
        start_date: Trip start date
        end_date: Trip end date
        budget: Budget per person
        party_size: Number of travellers
        preferences: Accommodation, activity and other travel preferences
        itinerary: Canonical itinerary document (Itinerary schema)
        is_archived: Hidden from the main list but restorable
        is_active: False once the trip is deleted
    """

    __tablename__ = "trips"

    user_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    destination: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )
    start_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )
    end_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )
    budget: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
        default=Decimal("0.00"),
    )
    party_size: Mapped[int] = mapped_column(
        nullable=False,
        default=1,
    )
    preferences: Mapped[dict] = mapped_column(
        JSONDocument,
        nullable=False,
        default=dict,
    )
    itinerary: Mapped[dict] = mapped_column(
        JSONDocument,
        nullable=False,
        default=dict,
        comment="Canonical itinerary document (days, tips, suggested accommodations)",
    )
    is_archived: Mapped[bool] = mapped_column(
        default=False,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        default=True,
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="valid_date_range"),
        CheckConstraint("budget >= 0", name="non_negative_budget"),
        CheckConstraint("party_size >= 1", name="positive_party_size"),
        Index("ix_trips_user_active_archived", "user_id", "is_active", "is_archived"),
    )
