"""Billing schemas: status enums, handler outputs, and sweep results."""

from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel


class PaymentStatus(str, Enum):
    """PaymentIntentRecord settlement states."""

    PENDING = "pending"
    SETTLED = "settled"


class SubscriptionStatus(str, Enum):
    """UserSubscriptionRecord settlement states."""

    PENDING = "pending"
    SETTLED = "settled"


class FeeType(str, Enum):
    """Billing period of a SubscriptionHistoryRecord."""

    DEFAULT = "default"
    MONTHLY = "monthly"
    ANNUAL = "annual"


class UnmatchedPaymentPolicy(str, Enum):
    """How payment_intent.succeeded behaves when no local record matches."""

    IGNORE = "ignore"
    ERROR = "error"


class NotificationTemplate(str, Enum):
    """Email templates understood by the notification worker."""

    ACTIVATE = "activate"
    TRIAL_EXPIRED = "trail"
    SUBSCRIPTION_EXPIRED = "subscription"


class Notification(BaseModel):
    """A queued email. Serialized as JSON onto the notification queue."""

    recipient: str
    template: NotificationTemplate
    language: str = "en"
    user_id: int | None = None


PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"


@dataclass
class WebhookResult:
    """Outcome of processing one webhook delivery.

    ``body`` is returned verbatim to Stripe. ``notifications`` are enqueued by
    the HTTP layer after the response is sent.
    """

    status_code: int
    body: dict
    event_id: str | None = None
    event_type: str | None = None
    duplicate: bool = False
    notifications: list[Notification] = field(default_factory=list)


@dataclass
class SweepReport:
    """Per-run counters for an expiry sweep."""

    job: str
    selected: int = 0
    notified: int = 0
    skipped: int = 0
    failed: int = 0
    failed_ids: list[int] = field(default_factory=list)
    skip_reasons: dict[int, str] = field(default_factory=dict)  # record id -> reason
