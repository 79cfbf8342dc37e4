"""
CRUD operations for posts.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import func, select, update

from social_signals.db.models.post import Post
from social_signals.db.upsert import dialect_insert

logger = logging.getLogger(__name__)

# Columns an upsert must never overwrite on conflict
_IMMUTABLE_COLUMNS = {"id", "user_id", "post_id", "created_at"}


async def get_user_posts(
    db: AsyncSession,
    user_id: str,
    post_ids: Optional[Iterable[UUID]] = None,
) -> List[Post]:
    """
    Get a user's posts, optionally restricted to the given IDs.

    Args:
        db: Database session
        user_id: Owner of the posts
        post_ids: Optional database IDs to restrict to

    Returns:
        List[Post]: Matching posts ordered by creation time
    """
    query = select(Post).where(Post.user_id == user_id)
    if post_ids is not None:
        query = query.where(Post.id.in_(list(post_ids)))
    result = await db.execute(query.order_by(Post.created_at, Post.id))
    return list(result.scalars().all())


async def get_posts_by_linkedin_ids(db: AsyncSession, user_id: str, linkedin_post_ids: Iterable[str]) -> Dict[str, Post]:
    """Map LinkedIn post id -> Post for the given user."""
    ids = list(set(linkedin_post_ids))
    if not ids:
        return {}
    result = await db.execute(select(Post).where(Post.user_id == user_id, Post.post_id.in_(ids)))
    return {post.post_id: post for post in result.scalars().all()}


async def upsert_post(db: AsyncSession, user_id: str, values: Dict[str, Any]) -> None:
    """
    Insert a post or update the existing row with the same (user_id, post_id).

    Only the columns present in values are written on conflict; anything
    else keeps its stored value.

    Args:
        db: Database session
        user_id: Owner of the post
        values: Column values; must include post_id and post_url
    """
    if not values.get("post_id"):
        raise ValueError("post_id is required to upsert a post")

    row = {**values, "user_id": user_id}
    insert_stmt = dialect_insert(db, Post).values(**row)
    updates = {
        key: insert_stmt.excluded[key]
        for key in row
        if key not in _IMMUTABLE_COLUMNS
    }
    updates["updated_at"] = func.now()

    stmt = insert_stmt.on_conflict_do_update(
        index_elements=[Post.user_id, Post.post_id],
        set_=updates,
    )
    await db.execute(stmt)


async def upsert_posts(db: AsyncSession, user_id: str, rows: List[Dict[str, Any]]) -> int:
    """
    Upsert many posts keyed on (user_id, post_id).

    Returns:
        int: Number of rows written
    """
    for row in rows:
        await upsert_post(db, user_id, row)
    await db.flush()
    return len(rows)


async def clear_engagement_flags(db: AsyncSession, user_id: str, post_ids: Iterable[UUID]) -> int:
    """
    Reset the engagement-change flag on the given posts.

    Sets engagement_needs_scraping to False and engagement_last_updated_at to
    NULL regardless of their current values.

    Returns:
        int: Number of posts updated
    """
    ids = list(post_ids)
    if not ids:
        return 0
    result = await db.execute(
        update(Post)
        .where(Post.user_id == user_id, Post.id.in_(ids))
        .values(engagement_needs_scraping=False, engagement_last_updated_at=None)
        .execution_options(synchronize_session="fetch")
    )
    logger.info(f"[POSTS] Cleared engagement flags on {result.rowcount} posts for user {user_id}")
    return result.rowcount


async def mark_scraped(db: AsyncSession, post_ids: Iterable[UUID], column: str, when: datetime) -> None:
    """Stamp last_reactions_scrape or last_comments_scrape on the given posts."""
    if column not in ("last_reactions_scrape", "last_comments_scrape"):
        raise ValueError(f"Unknown scrape timestamp column: {column}")
    ids = list(post_ids)
    if not ids:
        return
    await db.execute(
        update(Post)
        .where(Post.id.in_(ids))
        .values({column: when})
        .execution_options(synchronize_session="fetch")
    )
