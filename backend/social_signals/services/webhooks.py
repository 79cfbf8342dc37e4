"""
Webhook delivery of curated profile records.

Each profile is POSTed individually as {"profile": {...}, "metadata": {...}}
with a single attempt per profile.
"""
import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID
import logging

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from social_signals.core.clock import ensure_utc, utcnow
from social_signals.core.config import settings
from social_signals.db.models.engagement import Comment, Reaction
from social_signals.db.models.post import Post
from social_signals.db.models.profile import Profile
from social_signals.db.models.settings import Webhook

logger = logging.getLogger(__name__)

WEBHOOK_SOURCE = "SocialSignals"
WEBHOOK_USER_AGENT = "SocialSignals-Webhook/1.0"


def format_webhook_date(value: Optional[datetime]) -> str:
    """
    Format a datetime as "YYYY-MM-DD HH:MM:SS+00" in UTC; empty for None.

    Examples:
        >>> from datetime import timezone
        >>> format_webhook_date(datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc))
        '2024-05-01 09:30:00+00'
    """
    value = ensure_utc(value)
    if value is None:
        return ""
    return value.strftime("%Y-%m-%d %H:%M:%S") + "+00"


@dataclass
class EngagedPost:
    post_url: str
    posted_at: Optional[datetime]
    kinds: set = field(default_factory=set)


@dataclass
class EngagementStats:
    total_reactions: int = 0
    total_comments: int = 0
    posts_engaged_with: int = 0
    latest_post_date: Optional[datetime] = None
    latest_post_url: Optional[str] = None
    reaction_type: str = ""


def summarize_engagement(posts: Iterable[EngagedPost]) -> EngagementStats:
    """
    Per-profile counts over the distinct posts a profile engaged with.

    The reaction type reflects the most recent dated post: "Comment" if the
    profile commented on it, otherwise "Like". Posts without a publish date
    never count as the latest, so a profile whose posts are all undated gets
    no latest post and an empty reaction type.
    """
    posts = list(posts)
    stats = EngagementStats(
        total_reactions=sum(1 for p in posts if "reaction" in p.kinds),
        total_comments=sum(1 for p in posts if "comment" in p.kinds),
        posts_engaged_with=len(posts),
    )

    dated = [p for p in posts if p.posted_at is not None]
    if dated:
        latest = max(dated, key=lambda p: ensure_utc(p.posted_at))
        stats.latest_post_date = latest.posted_at
        stats.latest_post_url = latest.post_url
        stats.reaction_type = "Comment" if "comment" in latest.kinds else "Like"
    return stats


async def collect_engagement_stats(db: AsyncSession, user_id: str, profile_ids: List[UUID]) -> Dict[UUID, EngagementStats]:
    """Engagement stats per profile across the user's posts."""
    engaged: Dict[UUID, Dict[UUID, EngagedPost]] = {pid: {} for pid in profile_ids}

    reaction_rows = await db.execute(
        select(Reaction.reactor_profile_id, Post.id, Post.post_url, Post.posted_at_iso)
        .join(Post, Reaction.post_id == Post.id)
        .where(Post.user_id == user_id, Reaction.reactor_profile_id.in_(profile_ids))
    )
    comment_rows = await db.execute(
        select(Comment.commenter_profile_id, Post.id, Post.post_url, Post.posted_at_iso)
        .join(Post, Comment.post_id == Post.id)
        .where(Post.user_id == user_id, Comment.commenter_profile_id.in_(profile_ids))
    )

    for kind, rows in (("reaction", reaction_rows.all()), ("comment", comment_rows.all())):
        for profile_id, post_id, post_url, posted_at in rows:
            post = engaged[profile_id].setdefault(post_id, EngagedPost(post_url=post_url, posted_at=posted_at))
            post.kinds.add(kind)

    return {pid: summarize_engagement(posts.values()) for pid, posts in engaged.items()}


def build_profile_payload(profile: Profile, stats: EngagementStats) -> Dict[str, Any]:
    """The fixed 21-field profile record sent to webhooks."""
    if profile.first_name and profile.last_name:
        name = f"{profile.first_name} {profile.last_name}"
    else:
        name = profile.name or ""

    return {
        "Name": name,
        "First Name": profile.first_name or "",
        "Last Name": profile.last_name or "",
        "URN": profile.urn or "",
        "Profile URL": profile.profile_url or "",
        "Profile Picture URL": profile.profile_picture_url or "",
        "Country": profile.country or "",
        "City": profile.city or "",
        "Headline": profile.headline or "",
        "Current Title": profile.current_title or "",
        "Current Company": profile.current_company or "",
        "Company LinkedIn URL": profile.company_linkedin_url or "",
        "Last Engaged Post Date": format_webhook_date(stats.latest_post_date),
        "Last Engaged Post URL": stats.latest_post_url or "",
        "Reaction Type": stats.reaction_type,
        "Total Reactions": stats.total_reactions,
        "Total Comments": stats.total_comments,
        "Posts Engaged With": stats.posts_engaged_with,
        "First Seen": format_webhook_date(profile.first_seen),
        "Last Updated": format_webhook_date(profile.last_updated),
        "Last Enriched": format_webhook_date(profile.last_enriched_at),
    }


async def push_profiles_to_webhook(
    db: AsyncSession,
    webhook: Webhook,
    profiles: List[Profile],
    transport: Optional[httpx.AsyncBaseTransport] = None,
    delay: Optional[float] = None,
) -> Dict[str, Any]:
    """
    Deliver each profile to the webhook, one request per profile.

    Args:
        db: Database session
        webhook: Active webhook owned by the user
        profiles: Profiles to deliver
        transport: Optional httpx transport, used by tests
        delay: Pause between deliveries when more than one profile is sent

    Returns:
        Dict with success, webhook_name, total_profiles, pushed_successfully,
        failed_pushes and errors
    """
    delay = settings.WEBHOOK_DELIVERY_DELAY_SECONDS if delay is None else delay
    stats = await collect_engagement_stats(db, webhook.user_id, [p.id for p in profiles])
    headers = {
        "Content-Type": "application/json",
        "User-Agent": WEBHOOK_USER_AGENT,
        "X-Webhook-Source": WEBHOOK_SOURCE,
        "X-Profile-Count": str(len(profiles)),
    }

    pushed = 0
    errors: List[str] = []
    async with httpx.AsyncClient(timeout=settings.WEBHOOK_TIMEOUT_SECONDS, transport=transport) as client:
        for index, profile in enumerate(profiles):
            if index and delay:
                await asyncio.sleep(delay)

            body = {
                "profile": build_profile_payload(profile, stats[profile.id]),
                "metadata": {
                    "webhook_name": webhook.name,
                    "pushed_at": utcnow().isoformat(),
                    "source": WEBHOOK_SOURCE,
                },
            }
            try:
                response = await client.post(webhook.url, json=body, headers=headers)
                if response.is_success:
                    pushed += 1
                    logger.info(f"[WEBHOOK] Pushed profile {profile.id} to {webhook.name}")
                else:
                    errors.append(f"{profile.name}: HTTP {response.status_code}: {response.text[:200]}")
                    logger.error(f"[WEBHOOK] {webhook.name} rejected profile {profile.id}: HTTP {response.status_code}")
            except httpx.HTTPError as e:
                errors.append(f"{profile.name}: {str(e) or e.__class__.__name__}")
                logger.error(f"[WEBHOOK] Error pushing profile {profile.id} to {webhook.name}: {str(e)}")

    logger.info(f"[WEBHOOK] {webhook.name}: {pushed} pushed, {len(errors)} failed")
    return {
        "success": True,
        "webhook_name": webhook.name,
        "total_profiles": len(profiles),
        "pushed_successfully": pushed,
        "failed_pushes": len(errors),
        "errors": errors,
    }
