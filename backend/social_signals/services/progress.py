"""
Progress tracking for long-running scrape jobs.

Jobs write their progress through a ProgressTracker; clients poll it by job
id. Records live in the api_progress table so any worker process can answer
a poll. A terminal record is kept for PROGRESS_RETENTION_SECONDS after it was
first read, then purged.
"""
from datetime import timedelta
from enum import Enum
from typing import Any, Dict, Optional, Protocol
import logging
import uuid

from sqlalchemy.orm import sessionmaker

from social_signals.core.clock import utcnow
from social_signals.core.config import settings
from social_signals.crud import progress as crud_progress
from social_signals.schemas.progress import ProgressRecord

logger = logging.getLogger(__name__)


class ProgressStatus(str, Enum):
    STARTING = "starting"
    SCRAPING = "scraping"
    PROCESSING = "processing"
    SAVING = "saving"
    COMPLETED = "completed"
    ERROR = "error"


TERMINAL_STATUSES = {ProgressStatus.COMPLETED.value, ProgressStatus.ERROR.value}


def new_progress_id() -> str:
    return uuid.uuid4().hex


class ProgressStore(Protocol):
    async def save(self, progress_id: str, user_id: str, fields: Dict[str, Any]) -> None: ...

    async def read(self, progress_id: str, user_id: str) -> Optional[ProgressRecord]: ...


class SQLProgressStore:
    """
    ProgressStore backed by the api_progress table.

    Every write commits on its own session so a poll sees it immediately.
    """

    def __init__(self, session_factory: sessionmaker, retention_seconds: Optional[int] = None):
        self.session_factory = session_factory
        self.retention_seconds = settings.PROGRESS_RETENTION_SECONDS if retention_seconds is None else retention_seconds

    async def save(self, progress_id: str, user_id: str, fields: Dict[str, Any]) -> None:
        async with self.session_factory() as db:
            await crud_progress.save_progress(db, progress_id, user_id, fields)
            await db.commit()

    async def read(self, progress_id: str, user_id: str) -> Optional[ProgressRecord]:
        """
        Current record for a job, or None if unknown, expired or not owned.

        The first read of a terminal record starts its retention window.
        """
        now = utcnow()
        async with self.session_factory() as db:
            await crud_progress.delete_expired_progress(db, now)
            record = await crud_progress.get_progress(db, progress_id)
            if record is None or record.user_id != user_id:
                await db.commit()
                return None

            if record.status in TERMINAL_STATUSES and record.expires_at is None:
                record.expires_at = now + timedelta(seconds=self.retention_seconds)
                logger.debug(f"[PROGRESS] {progress_id} expires at {record.expires_at}")

            snapshot = ProgressRecord.from_orm_record(record)
            await db.commit()
            return snapshot


class ProgressTracker:
    """
    Writes progress for one job.

    Each update overwrites only the fields it names.
    """

    def __init__(self, store: ProgressStore, progress_id: str, user_id: str):
        self.store = store
        self.progress_id = progress_id
        self.user_id = user_id

    async def update(
        self,
        status: ProgressStatus,
        progress: Optional[int] = None,
        current_step: Optional[str] = None,
        total_posts: Optional[int] = None,
        processed_posts: Optional[int] = None,
    ) -> None:
        fields: Dict[str, Any] = {"status": status.value}
        if progress is not None:
            fields["progress"] = max(0, min(100, int(progress)))
        if current_step is not None:
            fields["current_step"] = current_step
        if total_posts is not None:
            fields["total_posts"] = total_posts
        if processed_posts is not None:
            fields["processed_posts"] = processed_posts
        await self.store.save(self.progress_id, self.user_id, fields)

    async def start(self, current_step: str, total_posts: Optional[int] = None) -> None:
        await self.update(ProgressStatus.STARTING, 0, current_step, total_posts=total_posts, processed_posts=0)

    async def complete(self, result: Dict[str, Any], current_step: str = "Completed") -> None:
        await self.store.save(self.progress_id, self.user_id, {
            "status": ProgressStatus.COMPLETED.value,
            "progress": 100,
            "current_step": current_step,
            "result": result,
        })

    async def fail(self, error: str, result: Optional[Dict[str, Any]] = None) -> None:
        fields: Dict[str, Any] = {
            "status": ProgressStatus.ERROR.value,
            "current_step": "Failed",
            "error_message": error,
        }
        if result is not None:
            fields["result"] = result
        logger.error(f"[PROGRESS] Job {self.progress_id} failed: {error}")
        await self.store.save(self.progress_id, self.user_id, fields)

