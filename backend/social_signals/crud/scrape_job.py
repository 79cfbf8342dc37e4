"""
CRUD operations for the scrape job audit log.
"""
from typing import List, Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from social_signals.core.clock import utcnow
from social_signals.db.models.job import ScrapeJob

logger = logging.getLogger(__name__)


async def create_scrape_job(db: AsyncSession, user_id: str, job_type: str, post_ids: Optional[List[str]] = None) -> ScrapeJob:
    """
    Record the start of a batch operation.

    Args:
        db: Database session
        user_id: User who triggered the job
        job_type: reactions, comments, metadata, posts or enrichment
        post_ids: Targets of the job

    Returns:
        ScrapeJob: The running job row
    """
    job = ScrapeJob(
        user_id=user_id,
        job_type=job_type,
        status="running",
        post_ids=post_ids or [],
        started_at=utcnow(),
    )
    db.add(job)
    await db.flush()
    await db.refresh(job)
    return job


async def finish_scrape_job(
    db: AsyncSession,
    job: ScrapeJob,
    total_items: int,
    error_message: Optional[str] = None,
) -> ScrapeJob:
    """Mark a job completed, or failed when error_message is given."""
    job.status = "failed" if error_message else "completed"
    job.total_items_scraped = total_items
    job.error_message = error_message
    job.completed_at = utcnow()
    await db.flush()
    logger.info(f"[JOBS] {job.job_type} job {job.id} {job.status} ({total_items} items)")
    return job
