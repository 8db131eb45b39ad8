"""TrialRecord model: a fee-free, time-boxed access window for a resource."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer
from sqlalchemy.orm import relationship

from edubilling.db.base import Base


class TrialRecord(Base):
    __tablename__ = "trail_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    resource_id = Column(Integer, ForeignKey("learning_resources.id", ondelete="CASCADE"), nullable=False, index=True)

    trail_start_date = Column(DateTime(timezone=True), nullable=False)
    trail_end_date = Column(DateTime(timezone=True), nullable=False)
    trail_expired_at = Column(DateTime(timezone=True), nullable=True)
    status = Column(Integer, nullable=False, default=0)

    expiry_mail = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    user = relationship("User")
