"""SubscriptionHistoryRecord model: one billing period of a subscription."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from edubilling.db.base import Base


class SubscriptionHistoryRecord(Base):
    __tablename__ = "subscription_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    type_id = Column(Integer, ForeignKey("user_subscription.id", ondelete="CASCADE"), nullable=False, index=True)

    subscription_amount = Column(Numeric(10, 2), nullable=True)
    subscription_start_date = Column(DateTime(timezone=True), nullable=False)
    subscription_end_date = Column(DateTime(timezone=True), nullable=False, index=True)
    subscription_duration = Column(Integer, nullable=True)  # days
    fee_type = Column(String(20), nullable=False, default="default")  # FeeType values

    expiry_mail = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    subscription = relationship("UserSubscriptionRecord", back_populates="history")
