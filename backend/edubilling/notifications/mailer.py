"""SES mailer. boto3 is synchronous, so sends run on a small thread pool."""

import asyncio
from concurrent.futures import ThreadPoolExecutor

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from edubilling.core.config import Settings, get_settings
from edubilling.notifications.templates import RenderedEmail

logger = structlog.get_logger(__name__)

_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="ses-mailer")


class SesMailer:
    def __init__(self, settings: Settings | None = None, client=None):
        self.settings = settings or get_settings()
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client("ses", region_name=self.settings.aws_region)
        return self._client

    def _send_sync(self, recipient: str, email: RenderedEmail) -> str:
        response = self.client.send_email(
            Source=self.settings.mail_from,
            Destination={"ToAddresses": [recipient]},
            Message={
                "Subject": {"Data": email.subject, "Charset": "UTF-8"},
                "Body": {
                    "Html": {"Data": email.html, "Charset": "UTF-8"},
                    "Text": {"Data": email.text, "Charset": "UTF-8"},
                },
            },
        )
        return response["MessageId"]

    @retry(
        retry=retry_if_exception_type((BotoCoreError, ClientError)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
        before_sleep=lambda rs: logger.warning(
            "ses_send_retrying",
            attempt=rs.attempt_number,
            sleep_seconds=rs.next_action.sleep,
        ),
    )
    async def send(self, recipient: str, email: RenderedEmail) -> str:
        """Send one email and return the SES message id."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(_executor, self._send_sync, recipient, email)
