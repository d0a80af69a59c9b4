"""Create users, subscriptions, events and suppression tables"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_notification_schema"
down_revision = None
branch_labels = None
depends_on = None

IMMUTABLE_EVENTS_FUNCTION = """
CREATE OR REPLACE FUNCTION events_reject_mutation() RETURNS trigger AS $$
BEGIN
    RAISE EXCEPTION 'events are append-only';
END;
$$ LANGUAGE plpgsql;
"""


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "notification_subscriptions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("device_identifier", sa.String(length=255), nullable=False),
        sa.Column("platform", sa.String(length=10), server_default=sa.text("'web'"), nullable=False),
        sa.Column("endpoint", sa.Text(), nullable=True),
        sa.Column("keys", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("destination", sa.String(length=512), nullable=True),
        sa.Column("is_permission_granted", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column(
            "notification_kinds",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text(
                """'{"security": true, "rides": false, "chats": false, "communication": false, "system": true}'::jsonb"""
            ),
            nullable=False,
        ),
        sa.Column("start_minute", sa.Integer(), nullable=True),
        sa.Column("end_minute", sa.Integer(), nullable=True),
        sa.Column("week_mask", sa.Integer(), nullable=True),
        sa.Column("timezone", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.UniqueConstraint("user_id", "device_identifier", name="uq_subscription_user_device"),
        sa.CheckConstraint("platform IN ('web', 'android', 'ios', 'email')", name="ck_notification_subscriptions_platform"),
    )
    op.create_index(
        "ix_notification_subscriptions_user_id", "notification_subscriptions", ["user_id"], unique=False
    )

    op.create_table(
        "events",
        sa.Column("id", sa.BigInteger(), sa.Identity(always=False), primary_key=True, nullable=False),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("timezone('utc', now())"), nullable=False),
        # notification
        sa.Column("subscription_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("category", sa.String(length=30), nullable=True),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("status_history", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("is_aggregated", sa.Boolean(), server_default=sa.text("false"), nullable=True),
        sa.Column("is_critical", sa.Boolean(), server_default=sa.text("false"), nullable=True),
        # ride_view
        sa.Column("ride_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("search_event_id", sa.BigInteger(), nullable=True),
        # search
        sa.Column("duration_ms", sa.Integer(), nullable=True),
        sa.Column("results_count", sa.Integer(), nullable=True),
    )
    for column in ("kind", "user_id", "subscription_id", "category", "is_aggregated", "is_critical", "ride_id"):
        op.create_index(f"ix_events_{column}", "events", [column], unique=False)

    op.execute(IMMUTABLE_EVENTS_FUNCTION)
    op.execute(
        "CREATE TRIGGER events_append_only BEFORE UPDATE OR DELETE ON events "
        "FOR EACH ROW EXECUTE FUNCTION events_reject_mutation();"
    )

    op.create_table(
        "suppressed_notifications",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("reason", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("timezone('utc', now())"), nullable=False),
    )
    op.create_index(
        "ix_suppressed_notifications_user_id", "suppressed_notifications", ["user_id"], unique=False
    )


def downgrade() -> None:
    op.drop_index("ix_suppressed_notifications_user_id", table_name="suppressed_notifications")
    op.drop_table("suppressed_notifications")

    op.execute("DROP TRIGGER IF EXISTS events_append_only ON events;")
    op.execute("DROP FUNCTION IF EXISTS events_reject_mutation();")
    for column in ("ride_id", "is_critical", "is_aggregated", "category", "subscription_id", "user_id", "kind"):
        op.drop_index(f"ix_events_{column}", table_name="events")
    op.drop_table("events")

    op.drop_index("ix_notification_subscriptions_user_id", table_name="notification_subscriptions")
    op.drop_table("notification_subscriptions")

    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
