"""Tests for POST /webhook/callback and the health endpoints."""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select

from edubilling.api.routes.webhooks import get_webhook_processor
from edubilling.billing.processor import WebhookProcessor
from edubilling.billing.subscription_state import SubscriptionStateManager
from edubilling.core.config import Settings
from edubilling.db.models.payment_intent import PaymentIntentRecord
from edubilling.db.models.user import User
from edubilling.db.models.user_subscription import UserSubscriptionRecord
from edubilling.db.models.webhook_event import WebhookEvent
from edubilling.main import create_app
from edubilling.notifications.queue import NotificationQueue
from tests.helpers import WEBHOOK_SECRET, make_payment_intent, make_stripe_event, sign_payload


@pytest.fixture
def app(session_factory, redis_client):
    """App wired to the test database; the lifespan is not run."""
    app = create_app()
    app.state.webhook_secret = WEBHOOK_SECRET
    app.state.shutting_down = False
    app.dependency_overrides[get_webhook_processor] = lambda: WebhookProcessor(
        state_manager=SubscriptionStateManager(Settings(unmatched_payment_policy="ignore")),
        session_factory=session_factory,
    )
    return app


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


async def _post(client, payload: bytes, header: str | None):
    headers = {"Content-Type": "application/json"}
    if header is not None:
        headers["Stripe-Signature"] = header
    return await client.post("/webhook/callback", content=payload, headers=headers)


class TestWebhookCallback:
    async def test_payment_succeeded_activates_and_queues_email(self, client, session_factory, redis_client):
        async with session_factory() as session:
            session.add(User(id=42, email="teacher@example.com"))
            await session.flush()
            session.add(UserSubscriptionRecord(user_id=42, resource_id=1, latest_subscription=True))
            session.add(PaymentIntentRecord(user_id=42, customer_token="cus_1", intent_id="pi_123"))
            await session.commit()
        payload = make_stripe_event("evt_1", "payment_intent.succeeded", make_payment_intent("pi_123"))

        response = await _post(client, payload, sign_payload(payload))

        assert response.status_code == 200
        assert response.json() == {"message": "Webhook processed for payment_intent.succeeded"}
        assert "x-request-id" in response.headers
        queue = NotificationQueue(redis_client)
        notification, _ = await queue.dequeue()
        assert notification.recipient == "teacher@example.com"
        assert notification.template.value == "activate"

    async def test_duplicate_delivery_returns_200_once_recorded(self, client, session_factory, redis_client):
        payload = make_stripe_event("evt_dup", "charge.succeeded", {"id": "ch_1", "amount": 500})
        header = sign_payload(payload)

        first = await _post(client, payload, header)
        second = await _post(client, payload, header)

        assert first.status_code == second.status_code == 200
        async with session_factory() as session:
            count = (await session.execute(select(func.count()).select_from(WebhookEvent))).scalar_one()
        assert count == 1

    async def test_bad_signature_is_400(self, client):
        payload = make_stripe_event("evt_1", "charge.succeeded", {"id": "ch_1"})

        response = await _post(client, payload, sign_payload(payload, secret="whsec_nope"))

        assert response.status_code == 400
        assert "invalidSigErr" in response.json()

    async def test_missing_signature_is_400(self, client):
        payload = make_stripe_event("evt_1", "charge.succeeded", {"id": "ch_1"})

        response = await _post(client, payload, None)

        assert response.status_code == 400
        assert "invalidSigErr" in response.json()

    async def test_empty_event_is_400(self, client):
        payload = make_stripe_event("evt_1", "charge.succeeded", None)

        response = await _post(client, payload, sign_payload(payload))

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid webhook"}

    async def test_unconfigured_secret_is_503(self, app, client, monkeypatch):
        from edubilling.api.routes import webhooks

        app.state.webhook_secret = ""
        monkeypatch.setattr(webhooks, "get_settings", lambda: Settings(stripe_webhook_secret=""))
        payload = make_stripe_event("evt_1", "charge.succeeded", {"id": "ch_1"})

        response = await _post(client, payload, sign_payload(payload))

        assert response.status_code == 503
        assert "debug_id" in response.json()


class TestHealth:
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    async def test_health_503_while_draining(self, app, client):
        app.state.shutting_down = True

        response = await client.get("/health")

        assert response.status_code == 503

    async def test_ready_checks_database_and_redis(self, client):
        response = await client.get("/ready")

        assert response.status_code == 200
        assert response.json()["checks"] == {"database": True, "redis": True}


class TestStartupValidation:
    def test_stripe_logging_refused_outside_debug(self, monkeypatch):
        from edubilling import main

        monkeypatch.setattr(main, "get_settings", lambda: Settings(debug=False, stripe_log_enabled=True))

        with pytest.raises(RuntimeError):
            main.validate_settings()

    def test_stripe_logging_allowed_in_debug(self, monkeypatch):
        from edubilling import main

        monkeypatch.setattr(main, "get_settings", lambda: Settings(debug=True, stripe_log_enabled=True))

        main.validate_settings()
