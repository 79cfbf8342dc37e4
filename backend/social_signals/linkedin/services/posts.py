"""
Post detail and profile posts actor services.
"""
from typing import List, Optional
import logging

from social_signals.core.config import settings
from social_signals.core.errors import ProviderError
from social_signals.schemas.apify import PostDetailItem, ProfilePostItem
from .base import ApifyActorClient

logger = logging.getLogger(__name__)


class ApifyPostDetailService(ApifyActorClient):
    """Service for a single post's text, author and engagement counters."""

    ACTOR_ID = settings.APIFY_POST_DETAIL_ACTOR

    async def get_post_detail(self, post_url: str) -> PostDetailItem:
        """
        Fetch the current detail of a post.

        Raises:
            ProviderError: If the run fails or returns no usable item
        """
        raw = await self.run_actor({"post_url": post_url})
        details = self._parse_items(PostDetailItem, raw)
        if not details:
            raise ProviderError(f"No post detail returned for {post_url}")
        return details[0]


class ApifyProfilePostsService(ApifyActorClient):
    """Service for the posts authored by one profile."""

    ACTOR_ID = settings.APIFY_PROFILE_POSTS_ACTOR

    async def get_profile_posts(
        self,
        profile_url: str,
        limit: int = 100,
        scrape_until: Optional[str] = None,
    ) -> List[ProfilePostItem]:
        """
        Fetch recent posts of a profile.

        Args:
            profile_url: Profile URL or vanity slug
            limit: Maximum number of posts
            scrape_until: Optional ISO date; older posts are not returned
        """
        run_input = {"username": profile_url, "limit": limit}
        if scrape_until:
            run_input["scrape_until"] = scrape_until

        logger.info(f"[PROFILE POSTS] Fetching up to {limit} posts for {profile_url}")
        raw = await self.run_actor(run_input)
        posts = self._parse_items(ProfilePostItem, raw)
        logger.info(f"[PROFILE POSTS] Got {len(posts)} posts for {profile_url}")
        return posts
