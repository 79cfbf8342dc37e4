"""
API endpoints for webhook delivery.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from social_signals.api.dependencies import get_current_user_id
from social_signals.crud import profile as crud_profile
from social_signals.crud import webhook as crud_webhook
from social_signals.db.session import get_db
from social_signals.schemas.webhook import WebhookPushRequest, WebhookPushResponse
from social_signals.services.webhooks import push_profiles_to_webhook

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/webhooks",
    tags=["webhooks"],
)


@router.post("/push", response_model=WebhookPushResponse)
async def push_to_webhook(
    request_data: WebhookPushRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Push profiles to one of the user's active webhooks.

    Each profile is delivered in its own request; failed deliveries are
    counted and listed, never retried.

    Raises:
        HTTPException 404: If the webhook is unknown or inactive, or no profile exists
    """
    webhook = await crud_webhook.get_active_webhook(db, user_id, request_data.webhook_id)
    if webhook is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Webhook not found or inactive",
        )

    profiles = await crud_profile.get_profiles(db, request_data.profile_ids)
    if not profiles:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No profiles found",
        )

    try:
        result = await push_profiles_to_webhook(db, webhook, profiles)
    except Exception as e:
        logger.exception(f"[WEBHOOK] Push to {webhook.name} failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to push profiles: {str(e)}",
        )
    return WebhookPushResponse(**result)
