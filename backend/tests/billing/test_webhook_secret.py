"""Tests for resolving the webhook signing secret."""

from edubilling.billing.webhook_secret import resolve_webhook_secret
from edubilling.core.config import Settings
from edubilling.db.models.admin_settings import AdminSettings
from edubilling.db.models.user import User


async def test_superadmin_settings_take_precedence(session_factory):
    async with session_factory() as session:
        admin = User(email="admin@example.com", role="superadmin")
        teacher = User(email="teacher@example.com", role="teacher")
        session.add_all([admin, teacher])
        await session.flush()
        session.add(AdminSettings(user_id=teacher.id, webhook_key="whsec_teacher"))
        session.add(AdminSettings(user_id=admin.id, webhook_key="whsec_admin"))
        await session.commit()

    secret = await resolve_webhook_secret(session_factory, Settings(stripe_webhook_secret="whsec_env"))

    assert secret == "whsec_admin"


async def test_falls_back_to_config(session_factory):
    secret = await resolve_webhook_secret(session_factory, Settings(stripe_webhook_secret="whsec_env"))

    assert secret == "whsec_env"


async def test_unset_everywhere_is_empty(session_factory):
    assert await resolve_webhook_secret(session_factory, Settings(stripe_webhook_secret="")) == ""
