"""
CRUD operations for user settings.
"""
from datetime import datetime
from typing import Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from social_signals.db.models.settings import UserSettings

logger = logging.getLogger(__name__)


async def get_user_settings(db: AsyncSession, user_id: str) -> Optional[UserSettings]:
    result = await db.execute(select(UserSettings).where(UserSettings.user_id == user_id))
    return result.scalar_one_or_none()


async def get_apify_api_key(db: AsyncSession, user_id: str) -> Optional[str]:
    """
    Get the user's Apify API token.

    Returns:
        Optional[str]: The token, or None when not configured
    """
    user_settings = await get_user_settings(db, user_id)
    if not user_settings or not user_settings.apify_api_key:
        return None
    return user_settings.apify_api_key


async def touch_last_sync_time(db: AsyncSession, user_id: str, when: datetime) -> None:
    """Record when the user's data was last synced, creating the settings row if needed."""
    user_settings = await get_user_settings(db, user_id)
    if user_settings is None:
        user_settings = UserSettings(user_id=user_id)
        db.add(user_settings)
    user_settings.last_sync_time = when
    await db.flush()
