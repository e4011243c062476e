"""
Background worker using APScheduler.
Runs name match analyses off the request thread so the API can report
progress while rows are being classified.
"""
import logging
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler

from nebula.name_match import AnalysisRun

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

ANALYSIS_JOB_ID = "name_match_analysis"

# Global scheduler instance
scheduler: Optional[BackgroundScheduler] = None


def _execute_run(run: AnalysisRun):
    """Job body: drive the run to completion or cancellation."""
    try:
        state = run.run()
        logger.info(f"Analysis job finished: {state.value}")
    except Exception as e:
        logger.error(f"Analysis job failed: {e}")


def submit_run(run: AnalysisRun):
    """
    Queue a run for immediate execution on the scheduler's thread pool.

    Each run gets its own job id: a cancelled run may still be finishing
    its current call or backoff sleep when the next one is submitted.
    The caller is responsible for cancelling any previous run first.
    """
    if scheduler is None:
        start_scheduler()

    scheduler.add_job(
        _execute_run,
        args=[run],
        id=f"{ANALYSIS_JOB_ID}_{id(run)}",
        name="Name match analysis",
    )
    logger.info(f"Queued analysis job for {len(run.records)} rows")


def start_scheduler():
    """Start the background scheduler."""
    global scheduler

    if scheduler is not None:
        logger.warning("Scheduler already running")
        return

    scheduler = BackgroundScheduler()
    scheduler.start()
    logger.info("Background scheduler started")


def stop_scheduler():
    """Stop the background scheduler."""
    global scheduler

    if scheduler is not None:
        scheduler.shutdown(wait=False)
        scheduler = None
        logger.info("Background scheduler stopped")


def get_scheduler_status() -> dict:
    """Get scheduler status."""
    if scheduler is None:
        return {"running": False, "jobs": []}

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run": str(job.next_run_time) if job.next_run_time else None
        })

    return {"running": scheduler.running, "jobs": jobs}


def init_worker():
    """Initialize the worker (call from FastAPI startup)."""
    start_scheduler()
