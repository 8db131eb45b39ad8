"""Builders for signed Stripe deliveries used across the test suite."""

import hashlib
import hmac
import json
import time

WEBHOOK_SECRET = "whsec_test_secret"


def sign_payload(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Build a Stripe-Signature header the way Stripe does: HMAC-SHA256 over "{t}.{body}"."""
    if timestamp is None:
        timestamp = int(time.time())
    signed = f"{timestamp}.".encode() + payload
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def make_stripe_event(event_id: str, event_type: str, data: dict | None, **extra) -> bytes:
    """Serialize a minimal Stripe-style event."""
    event = {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "api_version": "2024-06-20",
        "livemode": False,
        "request": {"id": "req_test", "idempotency_key": None},
        "data": {"object": data} if data is not None else {},
    }
    event.update(extra)
    return json.dumps(event).encode()


def make_payment_intent(intent_id: str, amount: int = 2500, status: str = "succeeded") -> dict:
    return {
        "id": intent_id,
        "object": "payment_intent",
        "amount": amount,
        "currency": "gbp",
        "capture_method": "automatic",
        "status": status,
        "receipt_email": "payer@example.com",
    }
