"""
CRUD operations for progress records.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import delete, select

from social_signals.db.models.job import ApiProgress


async def get_progress(db: AsyncSession, progress_id: str) -> Optional[ApiProgress]:
    result = await db.execute(select(ApiProgress).where(ApiProgress.id == progress_id))
    return result.scalar_one_or_none()


async def save_progress(db: AsyncSession, progress_id: str, user_id: str, fields: Dict[str, Any]) -> ApiProgress:
    """
    Create the record or overwrite only the given fields.
    """
    record = await get_progress(db, progress_id)
    if record is None:
        record = ApiProgress(id=progress_id, user_id=user_id)
        db.add(record)
    for key, value in fields.items():
        setattr(record, key, value)
    await db.flush()
    return record


async def delete_expired_progress(db: AsyncSession, now: datetime) -> int:
    result = await db.execute(
        delete(ApiProgress)
        .where(ApiProgress.expires_at.is_not(None), ApiProgress.expires_at <= now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount
