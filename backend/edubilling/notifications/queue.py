"""NotificationQueue: Redis list of pending emails (LPUSH in, RPOP out: FIFO)."""

import structlog
from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from edubilling.billing.schemas import Notification
from edubilling.core.config import get_settings
from edubilling.core.exceptions import NotificationError
from edubilling.db.redis import get_redis

logger = structlog.get_logger(__name__)


class NotificationQueue:
    def __init__(self, redis: Redis, queue_key: str | None = None, failed_key: str | None = None):
        settings = get_settings()
        self.redis = redis
        self.queue_key = queue_key or settings.notification_queue_key
        self.failed_key = failed_key or settings.notification_failed_key

    async def enqueue(self, notification: Notification) -> None:
        """Queue a notification. Raises NotificationError if Redis rejects it."""
        try:
            await self.redis.lpush(self.queue_key, notification.model_dump_json())
        except RedisError as e:
            raise NotificationError(f"Could not queue {notification.template.value} email: {e}") from e
        logger.info(
            "notification_enqueued",
            template=notification.template.value,
            user_id=notification.user_id,
        )

    async def enqueue_nowait(self, notification: Notification) -> bool:
        """Queue a notification without raising. Used after the HTTP response is sent."""
        try:
            await self.enqueue(notification)
            return True
        except NotificationError as e:
            logger.error("notification_enqueue_failed", template=notification.template.value, error=str(e))
            return False

    async def dequeue(self) -> tuple[Notification | None, str | None]:
        """Pop the oldest queued notification.

        Returns (notification, raw). ``notification`` is None when the queue is
        empty (raw is None too) or when the entry cannot be parsed; unparseable
        entries are moved to the failed list.
        """
        raw = await self.redis.rpop(self.queue_key)
        if raw is None:
            return None, None
        try:
            return Notification.model_validate_json(raw), raw
        except ValidationError as e:
            logger.error("notification_malformed", error=str(e))
            await self.mark_failed(raw)
            return None, raw

    async def mark_failed(self, raw: str) -> None:
        await self.redis.lpush(self.failed_key, raw)

    async def get_length(self) -> int:
        return await self.redis.llen(self.queue_key)


async def dispatch_notifications(notifications: list[Notification], redis: Redis | None = None) -> None:
    """Fire-and-forget enqueue of webhook side-effect emails. Never raises."""
    if redis is None:
        try:
            redis = get_redis()
        except RuntimeError as e:
            logger.error("notification_dispatch_no_redis", count=len(notifications), error=str(e))
            return
    queue = NotificationQueue(redis)
    for notification in notifications:
        await queue.enqueue_nowait(notification)
