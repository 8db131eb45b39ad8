"""Subscription State Manager.

Applies payment outcomes to local state (payment record → latest
subscription → user activation) and provides the provisioning helpers used
by signup and admin flows. Every function works inside the caller's session;
committing is the caller's job so the webhook path can keep the event log
and the mutation in one transaction.
"""

from datetime import datetime, timedelta, timezone

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from edubilling.billing.schemas import (
    FeeType,
    Notification,
    NotificationTemplate,
    PaymentStatus,
    SubscriptionStatus,
    UnmatchedPaymentPolicy,
)
from edubilling.core.config import Settings, get_settings
from edubilling.core.exceptions import ResourceNotFoundError, UnmatchedPaymentError
from edubilling.db.models.learning_resource import LearningResource
from edubilling.db.models.payment_intent import PaymentIntentRecord
from edubilling.db.models.subscription_history import SubscriptionHistoryRecord
from edubilling.db.models.trial import TrialRecord
from edubilling.db.models.user import User
from edubilling.db.models.user_subscription import UserSubscriptionRecord

logger = structlog.get_logger(__name__)


class SubscriptionStateManager:
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.unmatched_policy = UnmatchedPaymentPolicy(self.settings.unmatched_payment_policy)

    # ── Payment outcomes ──────────────────────────────────────────────

    async def on_payment_succeeded(self, session: AsyncSession, intent: dict) -> list[Notification]:
        """Settle the payment for a succeeded PaymentIntent and activate its user.

        The settle step is a conditional update (pending → settled), so a
        redelivered or concurrently delivered event activates the user and
        queues the activation email at most once.

        Returns the notifications to send once the transaction commits.
        """
        if intent.get("status") != "succeeded":
            logger.info("payment_intent_not_succeeded", intent_id=intent.get("id"), status=intent.get("status"))
            return []

        intent_id = intent.get("id")
        result = await session.execute(
            select(PaymentIntentRecord)
            .where(PaymentIntentRecord.intent_id == intent_id)
            .order_by(PaymentIntentRecord.id.desc())
        )
        records = result.scalars().all()

        if not records:
            if self.unmatched_policy is UnmatchedPaymentPolicy.ERROR:
                raise UnmatchedPaymentError(intent_id)
            logger.warning("payment_intent_unmatched", intent_id=intent_id)
            return []

        if len(records) > 1:
            logger.warning("payment_intent_multiple_records", intent_id=intent_id, count=len(records))
        payment = records[0]

        settled = await session.execute(
            update(PaymentIntentRecord)
            .where(
                PaymentIntentRecord.id == payment.id,
                PaymentIntentRecord.status == PaymentStatus.PENDING.value,
            )
            .values(status=PaymentStatus.SETTLED.value, updated_at=datetime.now(timezone.utc))
        )
        if settled.rowcount == 0:
            logger.info("payment_intent_already_settled", intent_id=intent_id, payment_id=payment.id)
            return []

        user = await session.get(User, payment.user_id)
        if user is None:
            logger.warning("payment_intent_user_missing", intent_id=intent_id, user_id=payment.user_id)
            return []

        subs = await session.execute(
            update(UserSubscriptionRecord)
            .where(
                UserSubscriptionRecord.user_id == user.id,
                UserSubscriptionRecord.latest_subscription.is_(True),
            )
            .values(status=SubscriptionStatus.SETTLED.value, updated_at=datetime.now(timezone.utc))
        )
        if subs.rowcount == 0:
            logger.warning("payment_settled_without_latest_subscription", user_id=user.id)

        user.is_activated = True
        logger.info("payment_settled_user_activated", intent_id=intent_id, user_id=user.id)

        if not user.email:
            return []
        return [
            Notification(
                recipient=user.email,
                template=NotificationTemplate.ACTIVATE,
                language=user.language_code or "en",
                user_id=user.id,
            )
        ]

    # ── Provisioning (signup / admin flows) ──────────────────────────

    async def record_trial(
        self,
        session: AsyncSession,
        user_id: int,
        resource_id: int,
        now: datetime | None = None,
    ) -> TrialRecord:
        """Open a trial window for the user and flag them as trialling."""
        start = now or datetime.now(timezone.utc)
        end = start + timedelta(days=self.settings.trial_length_days)

        trial = TrialRecord(
            user_id=user_id,
            resource_id=resource_id,
            trail_start_date=start,
            trail_end_date=end,
            trail_expired_at=end,
            expiry_mail=False,
        )
        session.add(trial)
        await session.execute(update(User).where(User.id == user_id).values(is_trial=True))
        await session.flush()
        return trial

    async def record_subscription(
        self,
        session: AsyncSession,
        subscription_type_id: int,
        resource_id: int,
        now: datetime | None = None,
    ) -> SubscriptionHistoryRecord:
        """Add a one-year billing period for a subscription, billed at the resource's annual fee."""
        resource = await session.get(LearningResource, resource_id)
        if resource is None:
            raise ResourceNotFoundError(resource_id)

        start = now or datetime.now(timezone.utc)
        end = start + timedelta(days=self.settings.subscription_length_days)

        history = SubscriptionHistoryRecord(
            type_id=subscription_type_id,
            subscription_amount=resource.annual_fee,
            subscription_start_date=start,
            subscription_end_date=end,
            subscription_duration=(end - start).days,
            fee_type=FeeType.ANNUAL.value,
            expiry_mail=False,
        )
        session.add(history)
        await session.flush()
        return history

    async def store_user_subscription(
        self,
        session: AsyncSession,
        user_id: int,
        resource_id: int,
    ) -> UserSubscriptionRecord:
        """Create the user's new latest subscription, superseding the previous one."""
        await session.execute(
            update(UserSubscriptionRecord)
            .where(
                UserSubscriptionRecord.user_id == user_id,
                UserSubscriptionRecord.latest_subscription.is_(True),
            )
            .values(latest_subscription=False)
        )
        subscription = UserSubscriptionRecord(
            user_id=user_id,
            resource_id=resource_id,
            status=SubscriptionStatus.PENDING.value,
            latest_subscription=True,
        )
        session.add(subscription)
        await session.flush()
        return subscription

    async def store_payment_intent(
        self,
        session: AsyncSession,
        user_id: int,
        customer_token: str,
        intent_id: str,
    ) -> PaymentIntentRecord:
        """Record a card payment awaiting its payment_intent.succeeded webhook."""
        payment = PaymentIntentRecord(
            user_id=user_id,
            customer_token=customer_token,
            intent_id=intent_id,
            status=PaymentStatus.PENDING.value,
        )
        session.add(payment)
        await session.flush()
        logger.info("payment_intent_stored", user_id=user_id, intent_id=intent_id)
        return payment
