"""Scheduler エントリポイント: python -m saverly.scheduler で起動"""
import signal
import sys
from datetime import datetime
from zoneinfo import ZoneInfo
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

from saverly.core.config import settings
from saverly.core.logging import setup_logging, get_logger
from saverly.scheduler.expired_redemption_sweeper import sweep_expired_redemptions

setup_logging(debug=settings.DEBUG, service="saverly-scheduler")
logger = get_logger("scheduler")

TZ = ZoneInfo(settings.SCHEDULER_TIMEZONE)
scheduler = BlockingScheduler(timezone=TZ)


def signal_handler(sig, frame):
    logger.info("Scheduler停止シグナル受信")
    scheduler.shutdown(wait=False)
    sys.exit(0)


signal.signal(signal.SIGTERM, signal_handler)
signal.signal(signal.SIGINT, signal_handler)


def main():
    logger.info("Scheduler起動")

    # SWEEP_INTERVAL_SECONDS ごと (デフォルト5分) + 起動直後に1回
    scheduler.add_job(
        sweep_expired_redemptions,
        IntervalTrigger(seconds=settings.SWEEP_INTERVAL_SECONDS, timezone=TZ),
        id="expired_redemption_sweeper",
        next_run_time=datetime.now(TZ),
        max_instances=1,
        coalesce=True,
    )

    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Scheduler終了")


if __name__ == "__main__":
    main()
