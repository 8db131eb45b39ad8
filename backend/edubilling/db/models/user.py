"""User model: platform accounts (superadmin, admin, teacher, parent)."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from edubilling.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=True)
    email = Column(String(255), unique=True, nullable=True, index=True)
    role = Column(String(50), nullable=False, default="teacher")  # superadmin, admin, teacher, parent
    language_code = Column(String(10), nullable=False, default="en")  # en, cy

    # Flags
    is_activated = Column(Boolean, nullable=False, default=False)
    is_trial = Column(Boolean, nullable=False, default=False)
    is_subscribed = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
