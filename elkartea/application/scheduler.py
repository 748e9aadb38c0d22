"""
Background scheduler: runs periodic jobs inside the FastAPI process.

Jobs:
  - Monthly debt calculation for the previous month (1st of the month, 02:00)
  - Catch-up check for a skipped previous month (once, right after start)
  - Development only: current month calculation one minute after start
"""
import logging
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger

from elkartea.config import get_settings
from elkartea.domain.billing_period import month_label, previous_month

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler(daemon=True)


def _run_monthly_debt_calculation():
    from elkartea.application.debt_calculation import get_debt_calculation_service

    service = get_debt_calculation_service()
    now = datetime.now(ZoneInfo(get_settings().TIMEZONE))
    year, month = previous_month(now.year, now.month)
    logger.info("Running scheduled debt calculation for previous month: %s", month_label(year, month))
    try:
        service.calculate_monthly_debts(year, month)
    except Exception:
        logger.exception("Scheduled debt calculation failed")


def _run_catchup_calculation():
    from elkartea.application.debt_calculation import get_debt_calculation_service

    get_debt_calculation_service().check_and_run_catchup_calculation()


def _run_development_calculation():
    from elkartea.application.debt_calculation import get_debt_calculation_service

    logger.info("Running test debt calculation for current month")
    get_debt_calculation_service().calculate_current_month_debts()


def start_scheduler():
    """Start the background scheduler with all periodic jobs."""
    settings = get_settings()
    tz = ZoneInfo(settings.TIMEZONE)

    # Previous month, once it is closed
    scheduler.add_job(
        _run_monthly_debt_calculation,
        CronTrigger(day=settings.DEBT_CALC_CRON_DAY, hour=settings.DEBT_CALC_CRON_HOUR, minute=0, timezone=tz),
        id="monthly_debt_calculation",
        replace_existing=True,
    )

    # Catch-up for a month the process was down for
    scheduler.add_job(
        _run_catchup_calculation,
        DateTrigger(run_date=datetime.now(tz), timezone=tz),
        id="debt_catchup",
        replace_existing=True,
    )

    if settings.DEBUG:
        scheduler.add_job(
            _run_development_calculation,
            DateTrigger(run_date=datetime.now(tz) + timedelta(minutes=1), timezone=tz),
            id="debt_development_run",
            replace_existing=True,
        )

    scheduler.start()
    logger.info(
        "Scheduler started: monthly_debt_calculation (day %d, %02d:00 %s), debt_catchup (startup)",
        settings.DEBT_CALC_CRON_DAY,
        settings.DEBT_CALC_CRON_HOUR,
        settings.TIMEZONE,
    )


def shutdown_scheduler():
    """Gracefully stop the scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
