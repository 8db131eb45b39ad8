"""WebhookEvent model: append-only log of every accepted Stripe delivery."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, Numeric, String

from edubilling.db.base import Base


class WebhookEvent(Base):
    """One row per distinct Stripe event id. Never updated after insert."""

    __tablename__ = "stripe_webhooks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    stripe_event_id = Column(String(255), unique=True, nullable=False, index=True)
    stripe_event_type = Column(String(255), nullable=True)
    stripe_request_id = Column(String(255), nullable=True)
    stripe_request_idempotency_key = Column(String(255), nullable=True)
    stripe_api_version = Column(String(50), nullable=True)
    stripe_mode = Column(Boolean, nullable=False, default=False)  # True = livemode

    # Snapshot of data.object
    stripe_object_id = Column(String(255), nullable=True)
    stripe_customer_name = Column(String(255), nullable=True)
    stripe_customer_email = Column(String(255), nullable=True)
    stripe_amount = Column(Numeric(12, 2), nullable=False, default=0)  # major units
    stripe_currency = Column(String(10), nullable=True)
    stripe_capture_method = Column(String(50), nullable=True)
    stripe_status = Column(String(50), nullable=True)

    stripe_data = Column(JSON, nullable=True)  # raw event.data
    webhook_status = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
