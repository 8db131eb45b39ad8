"""Webhook signing secret resolution: superadmin settings row first, then global config."""

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from edubilling.core.config import Settings, get_settings
from edubilling.db.models.admin_settings import AdminSettings
from edubilling.db.models.user import User

logger = structlog.get_logger(__name__)

SUPERADMIN_ROLE = "superadmin"


async def resolve_webhook_secret(
    session_factory: async_sessionmaker[AsyncSession],
    settings: Settings | None = None,
) -> str:
    """Return the Stripe webhook signing secret.

    Called once at startup; the result is kept on ``app.state`` rather than
    queried per request.
    """
    settings = settings or get_settings()

    async with session_factory() as session:
        result = await session.execute(
            select(AdminSettings.webhook_key)
            .join(User, AdminSettings.user_id == User.id)
            .where(User.role == SUPERADMIN_ROLE)
            .order_by(AdminSettings.id)
            .limit(1)
        )
        webhook_key = result.scalar_one_or_none()

    if webhook_key:
        logger.info("webhook_secret_resolved", source="superadmin_settings")
        return webhook_key

    if settings.stripe_webhook_secret:
        logger.info("webhook_secret_resolved", source="config")
    else:
        logger.warning("webhook_secret_unset")
    return settings.stripe_webhook_secret
