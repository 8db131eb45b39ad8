"""Tests for the daily sweep scheduler."""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

from edubilling.billing.schemas import SweepReport
from edubilling.jobs.scheduler import DailySweepScheduler, run_daily_sweeps, seconds_until_next_run


def _sweeper(trials=None, subscriptions=None):
    sweeper = MagicMock()
    sweeper.sweep_expired_trials = trials or AsyncMock(return_value=SweepReport(job="trial_expiry"))
    sweeper.sweep_expired_subscriptions = subscriptions or AsyncMock(
        return_value=SweepReport(job="subscription_expiry")
    )
    return sweeper


def test_next_run_later_today():
    now = datetime(2026, 5, 1, 0, 30, tzinfo=timezone.utc)

    assert seconds_until_next_run(now, 2) == 90 * 60


def test_next_run_tomorrow_when_hour_has_passed():
    now = datetime(2026, 5, 1, 2, 0, tzinfo=timezone.utc)

    assert seconds_until_next_run(now, 2) == 24 * 3600


async def test_runs_both_jobs():
    sweeper = _sweeper()
    now = datetime(2026, 5, 1, 2, 0, tzinfo=timezone.utc)

    reports = await run_daily_sweeps(sweeper, now=now)

    assert set(reports) == {"trials", "subscriptions"}
    sweeper.sweep_expired_trials.assert_awaited_once_with(now)
    sweeper.sweep_expired_subscriptions.assert_awaited_once_with(now)


async def test_failing_job_does_not_block_the_other():
    sweeper = _sweeper(trials=AsyncMock(side_effect=RuntimeError("db down")))

    reports = await run_daily_sweeps(sweeper)

    assert reports["trials"] is None
    assert reports["subscriptions"].job == "subscription_expiry"


async def test_single_job_selection():
    sweeper = _sweeper()

    reports = await run_daily_sweeps(sweeper, jobs=("subscriptions",))

    assert list(reports) == ["subscriptions"]
    sweeper.sweep_expired_trials.assert_not_awaited()


async def test_scheduler_exits_when_stopped():
    sweeper = _sweeper()
    stop = asyncio.Event()
    stop.set()

    await asyncio.wait_for(DailySweepScheduler(sweeper, hour_utc=2).run(stop), timeout=1)

    sweeper.sweep_expired_trials.assert_not_awaited()


def test_next_run_normalizes_local_offsets():
    # 01:30 at UTC+1 is 00:30 UTC
    now = datetime(2026, 5, 1, 1, 30, tzinfo=timezone(timedelta(hours=1)))

    assert seconds_until_next_run(now, 2) == 90 * 60
