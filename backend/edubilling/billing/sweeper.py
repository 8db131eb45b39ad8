"""Expiry Sweeper: daily jobs that email users whose trial or subscription has lapsed.

Per record: not-expired → expired/not-notified → expired/notified (terminal).

Each record is handled in its own session and transaction. A failure rolls
back that record only and the sweep moves on; the record stays
``expiry_mail = false`` and is picked up again on the next daily run.
"""

from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

import structlog
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from edubilling.billing.schemas import Notification, NotificationTemplate, SweepReport
from edubilling.db.base import get_session_factory
from edubilling.db.models.subscription_history import SubscriptionHistoryRecord
from edubilling.db.models.trial import TrialRecord
from edubilling.db.models.user import User
from edubilling.db.models.user_subscription import UserSubscriptionRecord

logger = structlog.get_logger(__name__)

Enqueue = Callable[[Notification], Awaitable[None]]


class ExpirySweeper:
    """Runs the trial and subscription expiry jobs.

    ``enqueue`` must raise on failure (NotificationQueue.enqueue does) so the
    record's flag is only set once its notification has been queued.
    """

    def __init__(
        self,
        enqueue: Enqueue,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ):
        self.enqueue = enqueue
        self._session_factory = session_factory

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory or get_session_factory()

    # ── Candidate selection ───────────────────────────────────────────

    async def expired_subscription_ids(self, now: datetime) -> list[int]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(SubscriptionHistoryRecord.id)
                .where(
                    SubscriptionHistoryRecord.expiry_mail.is_(False),
                    SubscriptionHistoryRecord.subscription_end_date < now,
                )
                .order_by(SubscriptionHistoryRecord.id)
            )
            return list(result.scalars().all())

    async def expired_trial_ids(self, now: datetime) -> list[int]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(TrialRecord.id)
                .where(
                    TrialRecord.expiry_mail.is_(False),
                    or_(
                        TrialRecord.trail_end_date < now,
                        TrialRecord.trail_expired_at < now,
                    ),
                )
                .order_by(TrialRecord.id)
            )
            return list(result.scalars().all())

    # ── Jobs ──────────────────────────────────────────────────────────

    async def sweep_expired_subscriptions(self, now: datetime | None = None) -> SweepReport:
        """Job A: notify users whose subscription period has ended."""
        now = now or datetime.now(timezone.utc)
        ids = await self.expired_subscription_ids(now)
        return await self._sweep("subscription_expiry", ids, self._notify_subscription)

    async def sweep_expired_trials(self, now: datetime | None = None) -> SweepReport:
        """Job B: notify users whose trial window has ended."""
        now = now or datetime.now(timezone.utc)
        ids = await self.expired_trial_ids(now)
        return await self._sweep("trial_expiry", ids, self._notify_trial)

    async def _sweep(
        self,
        job: str,
        record_ids: list[int],
        notify: Callable[[AsyncSession, int], Awaitable[str | None]],
    ) -> SweepReport:
        report = SweepReport(job=job, selected=len(record_ids))
        log = logger.bind(job=job)

        for record_id in record_ids:
            async with self.session_factory() as session:
                try:
                    skip_reason = await notify(session, record_id)
                    await session.commit()
                except Exception as e:
                    await session.rollback()
                    report.failed += 1
                    report.failed_ids.append(record_id)
                    log.error(
                        "expiry_sweep_record_failed",
                        record_id=record_id,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    continue

            if skip_reason is None:
                report.notified += 1
                log.info("expiry_sweep_record_notified", record_id=record_id)
            else:
                report.skipped += 1
                report.skip_reasons[record_id] = skip_reason
                log.info("expiry_sweep_record_skipped", record_id=record_id, reason=skip_reason)

        log.info(
            "expiry_sweep_completed",
            selected=report.selected,
            notified=report.notified,
            skipped=report.skipped,
            failed=report.failed,
        )
        return report

    # ── Per-record units ──────────────────────────────────────────────
    # Each returns None once the notification is queued, else the skip reason.

    async def _notify_subscription(self, session: AsyncSession, record_id: int) -> str | None:
        history = await session.get(SubscriptionHistoryRecord, record_id)
        if history is None or history.expiry_mail:
            return "already_handled"

        subscription = await session.get(UserSubscriptionRecord, history.type_id)
        if subscription is None:
            return "no_subscription"

        user = await session.get(User, subscription.user_id)
        reason = _user_skip_reason(user)
        if reason:
            return reason

        await self.enqueue(
            Notification(
                recipient=user.email,
                template=NotificationTemplate.SUBSCRIPTION_EXPIRED,
                language=user.language_code or "en",
                user_id=user.id,
            )
        )
        history.expiry_mail = True
        return None

    async def _notify_trial(self, session: AsyncSession, record_id: int) -> str | None:
        trial = await session.get(TrialRecord, record_id)
        if trial is None or trial.expiry_mail:
            return "already_handled"

        user = await session.get(User, trial.user_id)
        reason = _user_skip_reason(user)
        if reason:
            return reason

        await self.enqueue(
            Notification(
                recipient=user.email,
                template=NotificationTemplate.TRIAL_EXPIRED,
                language=user.language_code or "en",
                user_id=user.id,
            )
        )
        trial.expiry_mail = True
        return None


def _user_skip_reason(user: User | None) -> str | None:
    if user is None:
        return "no_user"
    if not user.email:
        return "no_user_email"
    return None
