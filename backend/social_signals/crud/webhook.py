"""
CRUD operations for webhooks.
"""
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from social_signals.db.models.settings import Webhook


async def get_active_webhook(db: AsyncSession, user_id: str, webhook_id: UUID) -> Optional[Webhook]:
    """
    Get an active webhook owned by the user.

    Returns:
        Optional[Webhook]: The webhook, or None if missing, inactive or not owned
    """
    result = await db.execute(
        select(Webhook).where(
            Webhook.id == webhook_id,
            Webhook.user_id == user_id,
            Webhook.is_active.is_(True),
        )
    )
    return result.scalar_one_or_none()
