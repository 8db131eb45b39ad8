"""create billing tables

Revision ID: 3b7d0c2e9a41
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b7d0c2e9a41"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create users, resources, Stripe settings, webhook log, payments, subscriptions and trials."""
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("role", sa.String(length=50), nullable=False, server_default="teacher"),
        sa.Column("language_code", sa.String(length=10), nullable=False, server_default="en"),
        sa.Column("is_activated", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_trial", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_subscribed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    op.create_table(
        "learning_resources",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("resource_name", sa.String(length=255), nullable=False),
        sa.Column("annual_fee", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("resource_type", sa.String(length=20), nullable=False, server_default="paid"),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "settings",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("api_key", sa.String(length=255), nullable=True),
        sa.Column("api_secret", sa.String(length=255), nullable=True),
        sa.Column("webhook_key", sa.String(length=255), nullable=True),
        sa.Column("webhook_url", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_settings_user_id"), "settings", ["user_id"], unique=False)

    op.create_table(
        "stripe_webhooks",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("stripe_event_id", sa.String(length=255), nullable=False),
        sa.Column("stripe_event_type", sa.String(length=255), nullable=True),
        sa.Column("stripe_request_id", sa.String(length=255), nullable=True),
        sa.Column("stripe_request_idempotency_key", sa.String(length=255), nullable=True),
        sa.Column("stripe_api_version", sa.String(length=50), nullable=True),
        sa.Column("stripe_mode", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("stripe_object_id", sa.String(length=255), nullable=True),
        sa.Column("stripe_customer_name", sa.String(length=255), nullable=True),
        sa.Column("stripe_customer_email", sa.String(length=255), nullable=True),
        sa.Column("stripe_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("stripe_currency", sa.String(length=10), nullable=True),
        sa.Column("stripe_capture_method", sa.String(length=50), nullable=True),
        sa.Column("stripe_status", sa.String(length=50), nullable=True),
        sa.Column("stripe_data", sa.JSON(), nullable=True),
        sa.Column("webhook_status", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_stripe_webhooks_stripe_event_id"), "stripe_webhooks", ["stripe_event_id"], unique=True)

    op.create_table(
        "user_payments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("customer_token", sa.String(length=255), nullable=True),
        sa.Column("intent_id", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_user_payments_user_id"), "user_payments", ["user_id"], unique=False)
    op.create_index(op.f("ix_user_payments_intent_id"), "user_payments", ["intent_id"], unique=False)

    op.create_table(
        "user_subscription",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("resource_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("latest_subscription", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["resource_id"], ["learning_resources.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_user_subscription_user_id"), "user_subscription", ["user_id"], unique=False)
    op.create_index(op.f("ix_user_subscription_resource_id"), "user_subscription", ["resource_id"], unique=False)

    op.create_table(
        "subscription_history",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("type_id", sa.Integer(), nullable=False),
        sa.Column("subscription_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("subscription_start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("subscription_end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("subscription_duration", sa.Integer(), nullable=True),
        sa.Column("fee_type", sa.String(length=20), nullable=False, server_default="default"),
        sa.Column("expiry_mail", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["type_id"], ["user_subscription.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_subscription_history_type_id"), "subscription_history", ["type_id"], unique=False)
    op.create_index(
        op.f("ix_subscription_history_subscription_end_date"),
        "subscription_history",
        ["subscription_end_date"],
        unique=False,
    )

    op.create_table(
        "trail_history",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("resource_id", sa.Integer(), nullable=False),
        sa.Column("trail_start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("trail_end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("trail_expired_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("expiry_mail", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["resource_id"], ["learning_resources.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_trail_history_user_id"), "trail_history", ["user_id"], unique=False)
    op.create_index(op.f("ix_trail_history_resource_id"), "trail_history", ["resource_id"], unique=False)


def downgrade() -> None:
    """Drop all billing tables."""
    op.drop_index(op.f("ix_trail_history_resource_id"), table_name="trail_history")
    op.drop_index(op.f("ix_trail_history_user_id"), table_name="trail_history")
    op.drop_table("trail_history")
    op.drop_index(op.f("ix_subscription_history_subscription_end_date"), table_name="subscription_history")
    op.drop_index(op.f("ix_subscription_history_type_id"), table_name="subscription_history")
    op.drop_table("subscription_history")
    op.drop_index(op.f("ix_user_subscription_resource_id"), table_name="user_subscription")
    op.drop_index(op.f("ix_user_subscription_user_id"), table_name="user_subscription")
    op.drop_table("user_subscription")
    op.drop_index(op.f("ix_user_payments_intent_id"), table_name="user_payments")
    op.drop_index(op.f("ix_user_payments_user_id"), table_name="user_payments")
    op.drop_table("user_payments")
    op.drop_index(op.f("ix_stripe_webhooks_stripe_event_id"), table_name="stripe_webhooks")
    op.drop_table("stripe_webhooks")
    op.drop_index(op.f("ix_settings_user_id"), table_name="settings")
    op.drop_table("settings")
    op.drop_table("learning_resources")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")
