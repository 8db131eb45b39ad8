"""Run the trial and/or subscription expiry sweeps once (for cron)."""

import argparse
import asyncio
import sys

from edubilling.core.logging import configure_structlog
from edubilling.db import close_db, close_redis, init_db, init_redis
from edubilling.jobs.scheduler import JOBS, run_daily_sweeps


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--job",
        choices=("trials", "subscriptions", "all"),
        default="all",
        help="which sweep to run (default: all)",
    )
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    jobs = JOBS if args.job == "all" else (args.job,)

    await init_db()
    await init_redis()
    try:
        reports = await run_daily_sweeps(jobs=jobs)
    finally:
        await close_redis()
        await close_db()

    exit_code = 0
    for job, report in reports.items():
        if report is None:
            print(f"{job}: FAILED")
            exit_code = 1
            continue
        print(
            f"{job}: selected={report.selected} notified={report.notified} "
            f"skipped={report.skipped} failed={report.failed}"
        )
        if report.failed:
            exit_code = 1
    return exit_code


if __name__ == "__main__":
    configure_structlog()
    sys.exit(asyncio.run(main()))
