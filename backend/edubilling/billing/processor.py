"""Stripe webhook Event Processor.

verify → reject empty → claim event id → dispatch by type → commit.

The WebhookEvent row and whatever the handler mutates share one
transaction: either both land or neither does. A redelivered event finds its
id already claimed and is acknowledged without side effects.
"""

import uuid
from collections.abc import Awaitable, Callable

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from edubilling.billing.event_store import build_webhook_event, claim_event
from edubilling.billing.schemas import PAYMENT_INTENT_SUCCEEDED, Notification, WebhookResult
from edubilling.billing.signature import DEFAULT_TOLERANCE, verify_webhook
from edubilling.billing.subscription_state import SubscriptionStateManager
from edubilling.core.exceptions import EmptyEventError, WebhookVerificationError
from edubilling.db.base import get_session_factory

logger = structlog.get_logger(__name__)

EventHandler = Callable[[SubscriptionStateManager, AsyncSession, dict], Awaitable[list[Notification]]]

# event type -> handler; unregistered types are persisted only
EVENT_HANDLERS: dict[str, EventHandler] = {}


def register_handler(event_type: str) -> Callable[[EventHandler], EventHandler]:
    """Register a module-level handler for a Stripe event type."""

    def decorator(fn: EventHandler) -> EventHandler:
        EVENT_HANDLERS[event_type] = fn
        return fn

    return decorator


@register_handler(PAYMENT_INTENT_SUCCEEDED)
async def handle_payment_intent_succeeded(
    state: SubscriptionStateManager,
    session: AsyncSession,
    intent: dict,
) -> list[Notification]:
    return await state.on_payment_succeeded(session, intent)


def _event_object(event: dict) -> dict:
    """Return data.object, raising EmptyEventError if the event carries nothing."""
    data = event.get("data")
    if not data or not isinstance(data, dict):
        raise EmptyEventError("Invalid webhook")
    obj = data.get("object")
    if not obj or not isinstance(obj, dict):
        raise EmptyEventError("Invalid webhook")
    return obj


class WebhookProcessor:
    def __init__(
        self,
        state_manager: SubscriptionStateManager | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        tolerance: int = DEFAULT_TOLERANCE,
    ):
        self.state_manager = state_manager or SubscriptionStateManager()
        self._session_factory = session_factory
        self.tolerance = tolerance
        self.handlers: dict[str, EventHandler] = dict(EVENT_HANDLERS)

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory or get_session_factory()

    def register(self, event_type: str, handler: EventHandler) -> None:
        """Add or replace the handler for ``event_type`` on this processor only."""
        self.handlers[event_type] = handler

    async def handle(
        self,
        payload: bytes,
        sig_header: str | None,
        secret: str,
        logging_enabled: bool = False,
    ) -> WebhookResult:
        """Process one webhook delivery and return the response for Stripe."""
        try:
            event = verify_webhook(payload, sig_header, secret, self.tolerance)
        except WebhookVerificationError as e:
            logger.warning("stripe_webhook_rejected", reason=type(e).__name__, error=str(e))
            return WebhookResult(status_code=400, body={e.response_key: str(e)})

        event_id = event["id"]
        event_type = event["type"]
        log = logger.bind(event_id=event_id, event_type=event_type)

        try:
            obj = _event_object(event)
        except EmptyEventError:
            log.warning("stripe_webhook_empty_data")
            return WebhookResult(
                status_code=400,
                body={"error": "Invalid webhook"},
                event_id=event_id,
                event_type=event_type,
            )

        if logging_enabled:
            log.info("stripe_webhook_event_data", data=event.get("data"))

        try:
            return await self._apply(event, obj, log, logging_enabled)
        except Exception as e:
            debug_id = str(uuid.uuid4())
            log.error(
                "stripe_webhook_failed",
                debug_id=debug_id,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return WebhookResult(
                status_code=500,
                body={"error": "Webhook processing failed", "debug_id": debug_id},
                event_id=event_id,
                event_type=event_type,
            )

    async def _apply(self, event: dict, obj: dict, log, logging_enabled: bool) -> WebhookResult:
        event_type = event["type"]
        record = build_webhook_event(event)
        message = {"message": f"Webhook processed for {event_type}"}

        if logging_enabled:
            log.info(
                "stripe_webhook_input_data",
                object_id=record.stripe_object_id,
                amount=str(record.stripe_amount),
                currency=record.stripe_currency,
                status=record.stripe_status,
                livemode=record.stripe_mode,
            )

        async with self.session_factory() as session:
            if not await claim_event(session, record):
                log.info("stripe_duplicate_event_ignored")
                return WebhookResult(
                    status_code=200,
                    body=message,
                    event_id=event["id"],
                    event_type=event_type,
                    duplicate=True,
                )

            notifications: list[Notification] = []
            handler = self.handlers.get(event_type)
            try:
                if handler is not None:
                    notifications = await handler(self.state_manager, session, obj)
                await session.commit()
            except Exception:
                await session.rollback()
                raise

        log.info("stripe_webhook_processed", handled=handler is not None, notifications=len(notifications))
        return WebhookResult(
            status_code=200,
            body=message,
            event_id=event["id"],
            event_type=event_type,
            notifications=notifications,
        )
