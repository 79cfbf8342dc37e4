"""
Comments actor service.
"""
from typing import List
import logging

from social_signals.core.config import settings
from social_signals.schemas.apify import CommentItem
from .base import ApifyActorClient

logger = logging.getLogger(__name__)


class ApifyCommentsService(ApifyActorClient):
    """Service for bulk comment retrieval across many posts per run."""

    ACTOR_ID = settings.APIFY_COMMENTS_ACTOR

    async def get_comments(
        self,
        post_urls: List[str],
        page_number: int = 1,
        limit: int = 100,
    ) -> List[CommentItem]:
        """
        Fetch one page of comments for each of the given posts.

        Args:
            post_urls: Up to COMMENTS_BULK_BATCH_SIZE post URLs
            page_number: 1-based page number applied to every post
            limit: Comments per post per page

        Returns:
            Parsed comments; post_input echoes the requested post URL and
            totalComments carries the post's total
        """
        logger.info(f"[COMMENTS] Fetching page {page_number} for {len(post_urls)} posts")
        raw = await self.run_actor({
            "postIds": post_urls,
            "page_number": page_number,
            "limit": limit,
        })
        return self._parse_items(CommentItem, raw)
