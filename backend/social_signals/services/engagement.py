"""
Engagement delta detection.

A post only needs its reactions and comments re-scraped when one of its
counters moved since the last metadata refresh.
"""
from datetime import datetime
from typing import Mapping, Optional
import logging

from social_signals.core.clock import utcnow
from social_signals.db.models.post import Post

logger = logging.getLogger(__name__)

ENGAGEMENT_FIELDS = ("likes", "comments", "shares")


def _count(counts: Optional[Mapping[str, Optional[int]]], field: str) -> int:
    if not counts:
        return 0
    return counts.get(field) or 0


def detect_engagement_change(
    stored: Optional[Mapping[str, Optional[int]]],
    fresh: Optional[Mapping[str, Optional[int]]],
) -> bool:
    """
    True if likes, comments or shares differ between stored and fresh.

    Missing or None counts are treated as 0.

    Examples:
        >>> detect_engagement_change({"likes": 5}, {"likes": 5, "comments": 0})
        False
        >>> detect_engagement_change({"likes": 5}, {"likes": 6})
        True
    """
    return any(_count(stored, field) != _count(fresh, field) for field in ENGAGEMENT_FIELDS)


def stored_engagement(post: Post) -> dict:
    return {"likes": post.num_likes, "comments": post.num_comments, "shares": post.num_shares}


def engagement_columns(
    stored: Optional[Mapping[str, Optional[int]]],
    fresh: Mapping[str, Optional[int]],
    now: Optional[datetime] = None,
) -> dict:
    """
    Column values for writing fresh counters over stored ones.

    The flag columns are only included when a change was detected, so an
    upsert leaves them as previously stored otherwise.
    """
    columns = {
        "num_likes": _count(fresh, "likes"),
        "num_comments": _count(fresh, "comments"),
        "num_shares": _count(fresh, "shares"),
    }
    if detect_engagement_change(stored, fresh):
        columns["engagement_needs_scraping"] = True
        columns["engagement_last_updated_at"] = now or utcnow()
    return columns


def apply_engagement_delta(post: Post, fresh: Mapping[str, Optional[int]], now: Optional[datetime] = None) -> bool:
    """
    Write fresh counters onto a post, raising the re-scrape flag on change.

    Returns:
        bool: True if any counter changed
    """
    now = now or utcnow()
    columns = engagement_columns(stored_engagement(post), fresh, now)
    changed = "engagement_needs_scraping" in columns
    for key, value in columns.items():
        setattr(post, key, value)
    post.metadata_last_updated_at = now
    if changed:
        logger.info(f"[ENGAGEMENT] Post {post.post_id} changed: {stored_engagement(post)}")
    return changed
