"""PaymentIntentRecord model: links a Stripe PaymentIntent to a local user."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from edubilling.db.base import Base


class PaymentIntentRecord(Base):
    __tablename__ = "user_payments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    customer_token = Column(String(255), nullable=True)
    intent_id = Column(String(255), nullable=True, index=True)
    status = Column(String(20), nullable=False, default="pending")  # PaymentStatus values

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
