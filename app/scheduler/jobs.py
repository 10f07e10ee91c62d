"""CAMPO — Scheduler Jobs.

APScheduler jobs: a monitoring pass every few hours and a weekly report.
"""

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlmodel import Session

from app.analyzer.report_engine import build_weekly_report
from app.config import settings
from app.database import engine
from app.monitor.pipeline import run_monitoring_pass
from app.core.logging import get_logger

logger = get_logger("scheduler")

scheduler = AsyncIOScheduler()


async def monitoring_job():
    """Run one monitoring pass over all active campaigns."""
    logger.info("Scheduled monitoring pass starting...")
    try:
        report = await run_monitoring_pass()
        logger.info(
            f"Scheduled monitoring complete. {report.campaigns_total} campaigns, "
            f"{report.campaigns_failed} failed"
        )
    except Exception as e:
        logger.error(f"Scheduled monitoring failed: {e}")


async def weekly_report_job():
    """Build the weekly performance report."""
    logger.info("Generating weekly report...")
    try:
        with Session(engine) as session:
            report = build_weekly_report(session)
        logger.info(
            f"Weekly report generated: spend {report.summary.total_spend}, "
            f"conversions {report.summary.total_conversions}"
        )
    except Exception as e:
        logger.error(f"Weekly report failed: {e}")


def start_scheduler():
    """Configure and start the scheduler."""
    if not settings.scheduler_enabled:
        logger.info("Scheduler disabled via config")
        return

    scheduler.add_job(
        monitoring_job,
        "cron",
        hour=f"*/{settings.monitor_interval_hours}",
        minute=0,
        id="campaign_monitoring",
        replace_existing=True,
        max_instances=1,
        misfire_grace_time=600,
    )
    scheduler.add_job(
        weekly_report_job,
        "cron",
        day_of_week=settings.weekly_report_weekday,
        hour=settings.weekly_report_hour,
        minute=0,
        id="weekly_report",
        replace_existing=True,
        misfire_grace_time=3600,
    )
    scheduler.start()
    logger.info(
        f"Scheduler started. Monitoring every {settings.monitor_interval_hours}h, "
        f"weekly report {settings.weekly_report_weekday} {settings.weekly_report_hour}:00 UTC"
    )


def stop_scheduler():
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
