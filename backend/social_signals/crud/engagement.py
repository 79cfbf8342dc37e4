"""
CRUD operations for reactions and comments.
"""
from typing import Any, Dict, Iterable, List, Tuple
from uuid import UUID
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import delete, select, update

from social_signals.db.models.engagement import Comment, Reaction
from social_signals.db.upsert import dialect_insert

logger = logging.getLogger(__name__)

INSERT_CHUNK_SIZE = 500


def _chunks(rows: List[Dict[str, Any]], size: int = INSERT_CHUNK_SIZE):
    for start in range(0, len(rows), size):
        yield rows[start:start + size]


async def replace_post_reactions(db: AsyncSession, user_id: str, post_id: UUID, rows: List[Dict[str, Any]]) -> int:
    """
    Replace all stored reactions of a post with rows.

    Rows repeating a (reactor_profile_id, reaction_type) pair are collapsed to
    the first occurrence.

    Args:
        db: Database session
        user_id: Owner of the post
        post_id: Post database ID
        rows: Dicts with reactor_profile_id, reaction_type, page_number, scraped_at

    Returns:
        int: Number of reactions stored
    """
    seen = set()
    unique_rows = []
    for row in rows:
        key = (row["reactor_profile_id"], row["reaction_type"])
        if key in seen:
            continue
        seen.add(key)
        unique_rows.append({**row, "user_id": user_id, "post_id": post_id})

    await db.execute(delete(Reaction).where(Reaction.post_id == post_id))

    for chunk in _chunks(unique_rows):
        stmt = dialect_insert(db, Reaction).values(chunk).on_conflict_do_nothing(
            index_elements=[Reaction.post_id, Reaction.reactor_profile_id, Reaction.reaction_type]
        )
        await db.execute(stmt)

    return len(unique_rows)


async def replace_post_comments(db: AsyncSession, user_id: str, post_id: UUID, rows: List[Dict[str, Any]]) -> int:
    """
    Replace all stored comments of a post with rows, keyed on comment_id.

    Returns:
        int: Number of comments stored
    """
    by_comment_id: Dict[str, Dict[str, Any]] = {}
    for row in rows:
        by_comment_id.setdefault(row["comment_id"], {**row, "user_id": user_id, "post_id": post_id})
    unique_rows = list(by_comment_id.values())

    await db.execute(delete(Comment).where(Comment.post_id == post_id))

    for chunk in _chunks(unique_rows):
        insert_stmt = dialect_insert(db, Comment).values(chunk)
        stmt = insert_stmt.on_conflict_do_update(
            index_elements=[Comment.post_id, Comment.comment_id],
            set_={
                "commenter_profile_id": insert_stmt.excluded.commenter_profile_id,
                "comment_text": insert_stmt.excluded.comment_text,
                "total_reactions": insert_stmt.excluded.total_reactions,
                "reactions_breakdown": insert_stmt.excluded.reactions_breakdown,
                "replies_count": insert_stmt.excluded.replies_count,
                "scraped_at": insert_stmt.excluded.scraped_at,
            },
        )
        await db.execute(stmt)

    return len(unique_rows)


async def repoint_reactions(db: AsyncSession, keeper_id: UUID, loser_ids: Iterable[UUID]) -> int:
    """
    Move reactions from loser profiles to the keeper.

    A loser reaction whose (post, reaction type) the keeper already holds
    would violate uniqueness and is deleted instead.

    Returns:
        int: Number of reactions moved
    """
    losers = list(loser_ids)
    if not losers:
        return 0

    result = await db.execute(
        select(Reaction).where(Reaction.reactor_profile_id.in_([keeper_id, *losers]))
    )
    held: set = set()
    to_move: List[UUID] = []
    to_drop: List[UUID] = []
    # Keeper rows first so they win every collision
    for reaction in sorted(result.scalars().all(), key=lambda r: r.reactor_profile_id != keeper_id):
        key: Tuple[UUID, str] = (reaction.post_id, reaction.reaction_type)
        if key in held:
            to_drop.append(reaction.id)
            continue
        held.add(key)
        if reaction.reactor_profile_id != keeper_id:
            to_move.append(reaction.id)

    if to_drop:
        await db.execute(
            delete(Reaction).where(Reaction.id.in_(to_drop)).execution_options(synchronize_session="fetch")
        )
    if to_move:
        await db.execute(
            update(Reaction)
            .where(Reaction.id.in_(to_move))
            .values(reactor_profile_id=keeper_id)
            .execution_options(synchronize_session="fetch")
        )
    return len(to_move)


async def repoint_comments(db: AsyncSession, keeper_id: UUID, loser_ids: Iterable[UUID]) -> int:
    """Move comments from loser profiles to the keeper."""
    losers = list(loser_ids)
    if not losers:
        return 0
    result = await db.execute(
        update(Comment)
        .where(Comment.commenter_profile_id.in_(losers))
        .values(commenter_profile_id=keeper_id)
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount
