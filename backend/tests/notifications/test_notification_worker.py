"""Tests for the notification worker, Jinja2 renderer, and SES mailer."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from botocore.exceptions import ClientError
from tenacity import wait_none

from edubilling.billing.schemas import Notification, NotificationTemplate
from edubilling.core.config import Settings
from edubilling.notifications.mailer import SesMailer
from edubilling.notifications.queue import NotificationQueue
from edubilling.notifications.templates import EmailRenderer, RenderedEmail
from edubilling.notifications.worker import process_next_notification, run_notification_worker


def _settings(**overrides) -> Settings:
    values = {
        "app_name": "EduBilling",
        "app_url": "https://app.example.com/",
        "frontend_url": "https://www.example.com",
        "user_login_path": "/login",
        "mail_from": "no-reply@example.com",
    }
    values.update(overrides)
    return Settings(**values)


class TestEmailRenderer:
    def test_activate_email_links_to_login(self):
        renderer = EmailRenderer(_settings())
        email = renderer.render(
            Notification(recipient="t@example.com", template=NotificationTemplate.ACTIVATE)
        )

        assert email.subject == "Your account has been activated"
        assert "https://www.example.com/login" in email.html
        assert "https://www.example.com/login" in email.text
        assert "t@example.com" in email.text

    def test_welsh_copy(self):
        renderer = EmailRenderer(_settings())
        email = renderer.render(
            Notification(recipient="t@example.com", template=NotificationTemplate.TRIAL_EXPIRED, language="cy")
        )

        assert email.subject == "Mae eich treial am ddim wedi dod i ben"

    def test_missing_translation_falls_back_to_english(self):
        renderer = EmailRenderer(_settings())
        email = renderer.render(
            Notification(recipient="t@example.com", template=NotificationTemplate.ACTIVATE, language="fr")
        )

        assert email.subject == "Your account has been activated"

    def test_html_escapes_recipient(self):
        renderer = EmailRenderer(_settings())
        email = renderer.render(
            Notification(recipient="<b>x</b>@example.com", template=NotificationTemplate.ACTIVATE)
        )

        assert "<b>x</b>" not in email.html
        assert "&lt;b&gt;" in email.html


class TestSesMailer:
    async def test_send_returns_message_id(self):
        client = MagicMock()
        client.send_email.return_value = {"MessageId": "msg-1"}
        mailer = SesMailer(_settings(), client=client)

        message_id = await mailer.send("t@example.com", RenderedEmail("Subj", "<p>hi</p>", "hi"))

        assert message_id == "msg-1"
        kwargs = client.send_email.call_args.kwargs
        assert kwargs["Source"] == "no-reply@example.com"
        assert kwargs["Destination"] == {"ToAddresses": ["t@example.com"]}
        assert kwargs["Message"]["Subject"]["Data"] == "Subj"

    async def test_retries_client_errors(self):
        client = MagicMock()
        throttled = ClientError({"Error": {"Code": "Throttling", "Message": "slow down"}}, "SendEmail")
        client.send_email.side_effect = [throttled, {"MessageId": "msg-2"}]
        mailer = SesMailer(_settings(), client=client)

        message_id = await SesMailer.send.retry_with(wait=wait_none())(
            mailer, "t@example.com", RenderedEmail("s", "h", "t")
        )

        assert message_id == "msg-2"
        assert client.send_email.call_count == 2


class TestWorker:
    async def test_sends_queued_notification(self, redis_client):
        queue = NotificationQueue(redis_client)
        await queue.enqueue(Notification(recipient="t@example.com", template=NotificationTemplate.ACTIVATE))
        mailer = MagicMock()
        mailer.send = AsyncMock(return_value="msg-1")

        processed = await process_next_notification(redis_client, mailer=mailer, renderer=EmailRenderer(_settings()))

        assert processed is True
        mailer.send.assert_awaited_once()
        assert mailer.send.await_args.args[0] == "t@example.com"
        assert await queue.get_length() == 0

    async def test_empty_queue(self, redis_client):
        mailer = MagicMock()
        mailer.send = AsyncMock()

        assert await process_next_notification(redis_client, mailer=mailer) is False
        mailer.send.assert_not_awaited()

    async def test_send_failure_moves_entry_to_failed_list(self, redis_client):
        queue = NotificationQueue(redis_client)
        await queue.enqueue(Notification(recipient="t@example.com", template=NotificationTemplate.ACTIVATE))
        mailer = MagicMock()
        mailer.send = AsyncMock(side_effect=RuntimeError("ses unavailable"))

        processed = await process_next_notification(redis_client, mailer=mailer, renderer=EmailRenderer(_settings()))

        assert processed is True
        assert await queue.get_length() == 0
        assert await redis_client.llen(queue.failed_key) == 1

    async def test_worker_stops_when_event_set(self, redis_client):
        stop = asyncio.Event()
        stop.set()

        await asyncio.wait_for(run_notification_worker(stop, redis=redis_client), timeout=1)

    async def test_worker_survives_redis_error(self, monkeypatch):
        from redis.exceptions import ConnectionError as RedisConnectionError

        from edubilling.notifications import worker

        stop = asyncio.Event()
        calls = []

        async def flaky(redis=None, mailer=None, renderer=None):
            calls.append(1)
            if len(calls) == 1:
                raise RedisConnectionError("connection reset")
            if len(calls) == 2:
                return True
            stop.set()
            return False

        monkeypatch.setattr(worker, "process_next_notification", flaky)
        monkeypatch.setattr(worker, "_POLL_INTERVAL", 0.01)

        await asyncio.wait_for(worker.run_notification_worker(stop), timeout=1)

        assert len(calls) == 3
