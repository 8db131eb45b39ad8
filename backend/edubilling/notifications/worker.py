"""Notification worker: drains the Redis queue, renders, and sends via SES."""

import asyncio

import structlog

from edubilling.db.redis import get_redis
from edubilling.notifications.mailer import SesMailer
from edubilling.notifications.queue import NotificationQueue
from edubilling.notifications.templates import EmailRenderer

logger = structlog.get_logger(__name__)

_POLL_INTERVAL = 5  # seconds between polls when the queue is empty


async def process_next_notification(
    redis=None,
    mailer: SesMailer | None = None,
    renderer: EmailRenderer | None = None,
) -> bool:
    """Send the oldest queued notification.

    Returns True if an entry was consumed (sent or moved to the failed list),
    False if the queue was empty.
    """
    if redis is None:
        redis = get_redis()
    queue = NotificationQueue(redis)
    mailer = mailer or SesMailer()
    renderer = renderer or EmailRenderer()

    notification, raw = await queue.dequeue()
    if raw is None:
        return False
    if notification is None:
        return True

    log = logger.bind(template=notification.template.value, user_id=notification.user_id)
    try:
        email = renderer.render(notification)
        message_id = await mailer.send(notification.recipient, email)
    except Exception as e:
        log.error("notification_send_failed", error=str(e), error_type=type(e).__name__)
        await queue.mark_failed(raw)
        return True

    log.info("notification_sent", message_id=message_id)
    return True


async def run_notification_worker(stop_event: asyncio.Event, redis=None) -> None:
    """Process notifications until ``stop_event`` is set.

    A failed iteration (e.g. Redis unreachable) is logged and retried after
    ``_POLL_INTERVAL``; the loop only exits on ``stop_event``.
    """
    mailer = SesMailer()
    renderer = EmailRenderer()
    logger.info("notification_worker_started")

    while not stop_event.is_set():
        try:
            processed = await process_next_notification(redis=redis, mailer=mailer, renderer=renderer)
        except Exception as e:
            logger.warning("notification_worker_iteration_failed", error=str(e), error_type=type(e).__name__)
            processed = False
        if processed:
            continue
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=_POLL_INTERVAL)
        except asyncio.TimeoutError:
            pass

    logger.info("notification_worker_stopped")
