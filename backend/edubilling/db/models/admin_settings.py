"""AdminSettings model: per-tenant Stripe credentials and site settings."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from edubilling.db.base import Base


class AdminSettings(Base):
    __tablename__ = "settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    api_key = Column(String(255), nullable=True)
    api_secret = Column(String(255), nullable=True)
    webhook_key = Column(String(255), nullable=True)
    webhook_url = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
