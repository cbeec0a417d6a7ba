"""
Background worker for processing scheduled jobs.

Usage:
    python -m legalpro.worker

The worker polls the jobs table for pending jobs (notifications, workflow
hooks, on-hold reminders, activity retention) and dispatches them through
the handler registry. Run it as a separate process next to the API.
"""

import asyncio
import logging

from sqlalchemy.exc import IntegrityError

from legalpro.core.config import settings
from legalpro.core.structured_logging import build_log_context
from legalpro.db.base import utcnow
from legalpro.db.enums import JobType
from legalpro.db.session import SessionLocal
from legalpro.jobs.registry import resolve_job_handler
from legalpro.services import job_service

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


async def process_job(db, job) -> None:
    """Process a single job based on its type."""
    logger.info(f"Processing job {job.id} (type={job.job_type}, attempt={job.attempts})")
    handler = resolve_job_handler(job.job_type)
    await handler(db, job)


async def process_pending_jobs(db, limit: int | None = None) -> int:
    """
    Run one batch of due jobs. Returns the number of jobs picked up.

    Failures are recorded on the job (and retried until max_attempts); they
    never stop the batch.
    """
    jobs = job_service.get_pending_jobs(db, limit=limit or settings.WORKER_BATCH_SIZE)
    if jobs:
        logger.info(f"Found {len(jobs)} pending jobs")

    for job in jobs:
        context = build_log_context(
            job_id=str(job.id), case_id=str(job.case_id) if job.case_id else None
        )
        try:
            job_service.mark_job_running(db, job)
            await process_job(db, job)
            job_service.mark_job_completed(db, job)
            logger.info(f"Job {job.id} completed successfully", extra=context)
        except Exception as e:
            db.rollback()
            job_service.mark_job_failed(db, job, str(e))
            logger.error("Job %s failed: %s", job.id, type(e).__name__, extra=context)
    return len(jobs)


def ensure_daily_retention_job(db) -> None:
    """Queue at most one activity retention job per UTC day."""
    today = utcnow().date().isoformat()
    try:
        job_service.schedule_job(
            db,
            JobType.ACTIVITY_RETENTION,
            payload={"days_to_keep": settings.ACTIVITY_RETENTION_DAYS},
            idempotency_key=f"activity_retention:{today}",
        )
    except IntegrityError:
        db.rollback()


async def worker_loop() -> None:
    """Main worker loop - polls for and processes pending jobs."""
    logger.info(
        f"Worker starting (poll interval: {settings.WORKER_POLL_INTERVAL}s, "
        f"batch size: {settings.WORKER_BATCH_SIZE})"
    )
    if not settings.NOTIFICATION_WEBHOOK_URL:
        logger.warning("NOTIFICATION_WEBHOOK_URL not set - notifications will be logged but not sent")

    while True:
        with SessionLocal() as db:
            try:
                ensure_daily_retention_job(db)
                await process_pending_jobs(db)
            except Exception as e:
                logger.error(f"Error in worker loop: {e}")

        await asyncio.sleep(settings.WORKER_POLL_INTERVAL)


def main() -> None:
    """Entry point for the worker."""
    try:
        asyncio.run(worker_loop())
    except KeyboardInterrupt:
        logger.info("Worker shutting down")
    except Exception:
        logger.exception(
            "Worker crashed",
            extra=build_log_context(route="worker", method="background"),
        )
        raise


if __name__ == "__main__":
    main()
