"""Daily scheduling of the expiry sweeps.

Two entry points:
- ``run_daily_sweeps``: one pass of both jobs (cron / scripts/run_expiry_sweeps.py)
- ``DailySweepScheduler``: in-process loop that runs a pass every day at
  ``sweep_hour_utc``

Both jobs are idempotent: re-running selects only records still flagged
``expiry_mail = false``.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import structlog

from edubilling.billing.schemas import SweepReport
from edubilling.billing.sweeper import ExpirySweeper
from edubilling.core.config import get_settings
from edubilling.db.redis import get_redis
from edubilling.notifications.queue import NotificationQueue

logger = structlog.get_logger(__name__)

JOBS = ("trials", "subscriptions")


def build_sweeper(redis=None) -> ExpirySweeper:
    """ExpirySweeper that queues its emails on the shared notification queue."""
    queue = NotificationQueue(redis if redis is not None else get_redis())
    return ExpirySweeper(enqueue=queue.enqueue)


async def run_daily_sweeps(
    sweeper: ExpirySweeper | None = None,
    now: datetime | None = None,
    jobs: tuple[str, ...] = JOBS,
) -> dict[str, SweepReport | None]:
    """Run the selected sweep jobs once.

    A job that blows up (e.g. database unavailable during selection) is
    logged and reported as None; the other job still runs.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    sweeper = sweeper or build_sweeper()

    runners = {
        "trials": sweeper.sweep_expired_trials,
        "subscriptions": sweeper.sweep_expired_subscriptions,
    }

    reports: dict[str, SweepReport | None] = {}
    for job in jobs:
        try:
            reports[job] = await runners[job](now)
        except Exception as e:
            logger.error("expiry_sweep_job_failed", job=job, error=str(e), error_type=type(e).__name__, exc_info=True)
            reports[job] = None
    return reports


def seconds_until_next_run(now: datetime, hour_utc: int) -> float:
    """Seconds from ``now`` until the next ``hour_utc``:00 UTC."""
    now = now.astimezone(timezone.utc)
    target = now.replace(hour=hour_utc, minute=0, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


class DailySweepScheduler:
    """Runs both sweeps once a day until stopped.

    Usage:
        stop = asyncio.Event()
        task = asyncio.create_task(DailySweepScheduler().run(stop))
        ...
        stop.set()
    """

    def __init__(self, sweeper: ExpirySweeper | None = None, hour_utc: int | None = None):
        self._sweeper = sweeper
        self.hour_utc = get_settings().sweep_hour_utc if hour_utc is None else hour_utc

    async def run(self, stop_event: asyncio.Event) -> None:
        logger.info("sweep_scheduler_started", hour_utc=self.hour_utc)

        while not stop_event.is_set():
            delay = seconds_until_next_run(datetime.now(timezone.utc), self.hour_utc)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=delay)
                break
            except asyncio.TimeoutError:
                pass

            await run_daily_sweeps(self._sweeper)

        logger.info("sweep_scheduler_stopped")
