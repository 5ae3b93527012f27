"""Background scheduler for periodic cleanup tasks."""

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from island_rewards.config import settings
from island_rewards.database import SessionLocal
from island_rewards.logging_config import get_logger
from island_rewards.services.pow_service import cleanup_expired_challenges
from island_rewards.services.reward_service import ClaimLedger

logger = get_logger(__name__)

scheduler = BackgroundScheduler()


def cleanup_job() -> None:
    """Delete expired challenges and claim attempts past retention."""
    db = SessionLocal()
    try:
        challenges = cleanup_expired_challenges(db)
        attempts = ClaimLedger(db).cleanup_stale_attempts()
        if challenges or attempts:
            logger.info("cleanup_completed", challenges=challenges, claim_attempts=attempts)
    except Exception as e:
        db.rollback()
        logger.error("cleanup_failed", error=str(e), exc_info=True)
    finally:
        db.close()


def start_scheduler() -> None:
    """Start the background scheduler."""
    scheduler.add_job(
        cleanup_job,
        trigger=IntervalTrigger(hours=settings.cleanup_interval_hours),
        id="cleanup_expired_records",
        replace_existing=True,
    )
    scheduler.start()
    logger.info("scheduler_started", interval_hours=settings.cleanup_interval_hours)


def shutdown_scheduler() -> None:
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown()
    logger.info("scheduler_stopped")
