"""
API endpoints for tracked posts.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from social_signals.api.dependencies import get_current_user_id
from social_signals.crud import post as crud_post
from social_signals.db.session import get_db
from social_signals.linkedin.utils.parsers import validate_linkedin_posts
from social_signals.schemas.post import (
    ClearEngagementFlagsRequest,
    ClearEngagementFlagsResponse,
    InvalidPostEntry,
    PostInDB,
    RegisterPostsRequest,
    RegisterPostsResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/posts",
    tags=["posts"],
)


@router.post("", response_model=RegisterPostsResponse)
async def register_posts(
    request_data: RegisterPostsRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Register posts to track from a block of URLs or post ids.

    Entries that do not parse are returned under `invalid`; the rest are
    upserted on (user_id, post_id), so registering a post twice is harmless.

    Raises:
        HTTPException 400: If no entry is a valid post
    """
    parsed = validate_linkedin_posts(request_data.urls)
    invalid = [InvalidPostEntry(input=p.post_url, error=p.error) for p in parsed if not p.is_valid]

    rows = {}
    for entry in parsed:
        if entry.is_valid and entry.post_id not in rows:
            rows[entry.post_id] = {"post_id": entry.post_id, "post_url": entry.post_url}

    if not rows:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": "No valid LinkedIn posts found", "invalid": [i.model_dump() for i in invalid]},
        )

    try:
        await crud_post.upsert_posts(db, user_id, list(rows.values()))
        stored = await crud_post.get_posts_by_linkedin_ids(db, user_id, rows.keys())
        await db.commit()
    except Exception as e:
        logger.exception(f"[POSTS] Registering posts for user {user_id} failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to register posts: {str(e)}",
        )

    logger.info(f"[POSTS] Registered {len(stored)} posts for user {user_id} ({len(invalid)} invalid)")
    return RegisterPostsResponse(
        posts=[PostInDB.model_validate(stored[post_id]) for post_id in rows if post_id in stored],
        invalid=invalid,
    )


@router.post("/clear-engagement-flags", response_model=ClearEngagementFlagsResponse)
async def clear_engagement_flags(
    request_data: ClearEngagementFlagsRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Mark the given posts as no longer needing an engagement re-scrape."""
    try:
        updated = await crud_post.clear_engagement_flags(db, user_id, request_data.post_ids)
        await db.commit()
    except Exception as e:
        logger.exception(f"[POSTS] Clearing engagement flags for user {user_id} failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to clear engagement flags: {str(e)}",
        )
    return ClearEngagementFlagsResponse(updated=updated)
