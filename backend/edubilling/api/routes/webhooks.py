"""Stripe webhook endpoint."""

from functools import lru_cache

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from edubilling.billing.processor import WebhookProcessor
from edubilling.core.config import get_settings
from edubilling.notifications.queue import dispatch_notifications

logger = structlog.get_logger(__name__)

router = APIRouter()


@lru_cache
def get_webhook_processor() -> WebhookProcessor:
    return WebhookProcessor(tolerance=get_settings().stripe_webhook_tolerance)


@router.post("/webhook/callback")
async def stripe_webhook_callback(
    request: Request,
    background_tasks: BackgroundTasks,
    processor: WebhookProcessor = Depends(get_webhook_processor),
):
    """Verify, record, and apply a Stripe event.

    The body is read raw: the signature covers the exact bytes Stripe sent.
    Emails produced by the event are queued after the response goes out.
    """
    settings = get_settings()
    secret = getattr(request.app.state, "webhook_secret", None) or settings.stripe_webhook_secret
    if not secret:
        logger.error("stripe_webhook_secret_missing")
        raise HTTPException(status_code=503, detail="Stripe webhook endpoint is not configured")

    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")

    if settings.stripe_log_enabled:
        logger.info(
            "stripe_webhook_debug",
            method=request.method.lower(),
            endpoint_secret=secret,
            signature=sig_header,
            payload=payload.decode("utf-8", errors="replace"),
        )

    result = await processor.handle(payload, sig_header, secret, settings.stripe_log_enabled)

    if result.notifications:
        background_tasks.add_task(dispatch_notifications, result.notifications)

    return JSONResponse(status_code=result.status_code, content=result.body)
