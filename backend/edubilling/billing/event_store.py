"""Append-only store of Stripe webhook deliveries, keyed by Stripe event id."""

from datetime import datetime, timezone
from decimal import Decimal

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from edubilling.db.models.webhook_event import WebhookEvent

logger = structlog.get_logger(__name__)


def _minor_to_major(amount) -> Decimal:
    if amount is None:
        return Decimal("0")
    return (Decimal(amount) / 100).quantize(Decimal("0.01"))


def build_webhook_event(event: dict, received_at: datetime | None = None) -> WebhookEvent:
    """Normalize a verified Stripe event into a WebhookEvent row (not yet added)."""
    data = event.get("data") or {}
    obj = data.get("object") or {}
    request = event.get("request") or {}
    if not isinstance(request, dict):
        # Pre-2017 API versions send the request id as a bare string
        request = {"id": request}

    return WebhookEvent(
        stripe_event_id=event["id"],
        stripe_event_type=event.get("type"),
        stripe_request_id=request.get("id"),
        stripe_request_idempotency_key=request.get("idempotency_key"),
        stripe_api_version=event.get("api_version"),
        stripe_mode=bool(event.get("livemode", False)),
        stripe_object_id=obj.get("id"),
        stripe_customer_name=obj.get("name"),
        stripe_customer_email=obj.get("email") or obj.get("receipt_email"),
        stripe_amount=_minor_to_major(obj.get("amount")),
        stripe_currency=obj.get("currency"),
        stripe_capture_method=obj.get("capture_method"),
        stripe_status=obj.get("status"),
        stripe_data=data,
        webhook_status=True,
        created_at=received_at or datetime.now(timezone.utc),
    )


async def get_event(session: AsyncSession, stripe_event_id: str) -> WebhookEvent | None:
    result = await session.execute(select(WebhookEvent).where(WebhookEvent.stripe_event_id == stripe_event_id))
    return result.scalar_one_or_none()


async def claim_event(session: AsyncSession, record: WebhookEvent) -> bool:
    """Insert ``record`` unless its Stripe event id was already stored.

    Must run first in the caller's transaction: on a unique-key race the whole
    transaction is rolled back. Returns True if the row was inserted (new
    event), False for a duplicate delivery.
    """
    if await get_event(session, record.stripe_event_id) is not None:
        return False

    session.add(record)
    try:
        await session.flush()
    except IntegrityError:
        # A concurrent delivery of the same event committed first
        await session.rollback()
        logger.info("stripe_event_claim_race_lost", event_id=record.stripe_event_id)
        return False
    return True
