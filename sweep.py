"""
sweep.py
Periodic overdue sweep.

Run: gym-sweep            (every GYM_SWEEP_INTERVAL seconds until stopped)
     gym-sweep --once     (single pass, prints how many members flipped)
"""

from __future__ import annotations

import argparse
import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

from config import configure_logging, load_settings
from service import MembershipService
from stores import make_store

logger = logging.getLogger(__name__)

JOB_ID = "overdue-sweep"


def _schedule(scheduler, service: MembershipService, interval_seconds: int):
    # One tick at a time; a late tick runs once instead of piling up
    scheduler.add_job(
        service.run_overdue_sweep,
        IntervalTrigger(seconds=interval_seconds),
        id=JOB_ID,
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    return scheduler


def start_sweeper(service: MembershipService, interval_seconds: int = 60) -> BackgroundScheduler:
    """
    Start the sweep on a background thread. Caller owns shutdown().
    """
    scheduler = _schedule(BackgroundScheduler(), service, interval_seconds)
    scheduler.start()
    logger.info("Overdue sweep scheduled every %ss", interval_seconds)
    return scheduler


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gym-sweep", description="Mark overdue members as unpaid.")
    parser.add_argument("--once", action="store_true", help="run a single sweep and exit")
    parser.add_argument("--interval", type=int, default=None, help="seconds between sweeps")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings()
    configure_logging(settings.log_level)

    service = MembershipService(make_store(settings), renewal_anchor=settings.renewal_anchor)

    if args.once:
        print(service.run_overdue_sweep())
        return 0

    interval = args.interval or settings.sweep_interval
    scheduler = _schedule(BlockingScheduler(), service, interval)
    logger.info("Running overdue sweep every %ss (Ctrl+C to stop)", interval)
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Sweep stopped")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
