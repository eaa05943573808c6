"""Initial database schema

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-10-19

Creates the trips and user_subscriptions tables.
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create initial database schema."""

    # Create trips table
    op.create_table(
        "trips",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("destination", sa.String(255), nullable=False),
        sa.Column("start_date", sa.Date, nullable=False),
        sa.Column("end_date", sa.Date, nullable=False),
        sa.Column("budget", sa.Numeric(12, 2), nullable=False, server_default="0.00"),
        sa.Column("party_size", sa.Integer, nullable=False, server_default="1"),
        sa.Column("preferences", postgresql.JSONB(astext_type=sa.Text()), nullable=False,
                  server_default="{}"),
        sa.Column("itinerary", postgresql.JSONB(astext_type=sa.Text()), nullable=False,
                  server_default="{}",
                  comment="Canonical itinerary document (days, tips, suggested accommodations)"),
        sa.Column("is_archived", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        # Timestamps
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("end_date >= start_date", name="ck_trips_valid_date_range"),
        sa.CheckConstraint("budget >= 0", name="ck_trips_non_negative_budget"),
        sa.CheckConstraint("party_size >= 1", name="ck_trips_positive_party_size"),
    )

    # Create indexes for trips
    op.create_index("ix_trips_user_id", "trips", ["user_id"])
    op.create_index("ix_trips_destination", "trips", ["destination"])
    op.create_index("ix_trips_user_active_archived", "trips", ["user_id", "is_active", "is_archived"])

    # Create user_subscriptions table
    op.create_table(
        "user_subscriptions",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "plan",
            sa.Enum("free", "premium", "business", name="subscription_plan"),
            nullable=False,
            server_default="free",
        ),
        sa.Column(
            "status",
            sa.Enum("active", "trialing", "past_due", "canceled", name="subscription_status"),
            nullable=False,
            server_default="active",
        ),
        sa.Column("current_period_end", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("billing_customer_id", sa.String(255), nullable=True),
        # Timestamps
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text("now()")),
    )

    op.create_index(
        "ix_user_subscriptions_user_id", "user_subscriptions", ["user_id"], unique=True
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index("ix_user_subscriptions_user_id", table_name="user_subscriptions")
    op.drop_table("user_subscriptions")
    sa.Enum(name="subscription_status").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="subscription_plan").drop(op.get_bind(), checkfirst=True)

    op.drop_index("ix_trips_user_active_archived", table_name="trips")
    op.drop_index("ix_trips_destination", table_name="trips")
    op.drop_index("ix_trips_user_id", table_name="trips")
    op.drop_table("trips")
