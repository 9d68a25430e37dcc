"""Background scheduler for periodic tasks"""
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from review_responder.config import settings
import logging

logger = logging.getLogger(__name__)
scheduler = AsyncIOScheduler(timezone="UTC")


async def nightly_review_sync():
    """
    Sync reviews for every subscribed location and send digests
    Runs daily at REVIEW_SYNC_HOUR:REVIEW_SYNC_MINUTE UTC
    """
    from review_responder.database import SessionLocal
    from review_responder.services.review_sync_service import build_review_sync_service

    db = SessionLocal()
    service = None
    try:
        service = build_review_sync_service(db)
        report = await service.run_sync()
        logger.info(f"Scheduled review sync: {report.message}")
    except Exception as e:
        logger.error(f"Error during scheduled review sync: {e}")
    finally:
        if service is not None:
            await service.close()
        db.close()


def start_scheduler():
    """Register jobs and start the background scheduler"""
    if not settings.REVIEW_SYNC_SCHEDULE_ENABLED:
        logger.info("In-process review sync schedule disabled (use the cron endpoint)")
        return

    try:
        scheduler.add_job(
            nightly_review_sync,
            'cron',
            hour=settings.REVIEW_SYNC_HOUR,
            minute=settings.REVIEW_SYNC_MINUTE,
            id="nightly_review_sync",
            replace_existing=True
        )
        scheduler.start()
        logger.info("Scheduler started successfully")
    except Exception as e:
        logger.error(f"Failed to start scheduler: {e}")


def stop_scheduler():
    """Stop the background scheduler"""
    if not scheduler.running:
        return
    try:
        scheduler.shutdown()
        logger.info("Scheduler stopped successfully")
    except Exception as e:
        logger.error(f"Failed to stop scheduler: {e}")
