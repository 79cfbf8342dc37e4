"""
Reactions actor service.
"""
from typing import List
import logging

from social_signals.core.config import settings
from social_signals.schemas.apify import ReactionItem
from .base import ApifyActorClient

logger = logging.getLogger(__name__)


class ApifyReactionsService(ApifyActorClient):
    """Service for fetching one page of a post's reactions."""

    ACTOR_ID = settings.APIFY_REACTIONS_ACTOR

    async def get_reactions_page(
        self,
        post_url: str,
        page_number: int = 1,
        limit: int = 100,
        reaction_type: str = "ALL",
    ) -> List[ReactionItem]:
        """
        Fetch a single page of reactions for a post.

        Args:
            post_url: The full URL of the LinkedIn post
            page_number: 1-based page number
            limit: Page size
            reaction_type: Reaction filter, ALL for every type

        Returns:
            Parsed reactions; each carries total_reactions in its metadata

        Raises:
            ProviderError: If the actor run fails
        """
        logger.info(f"[REACTIONS] Fetching page {page_number} for {post_url}")
        raw = await self.run_actor({
            "post_url": post_url,
            "page_number": page_number,
            "reaction_type": reaction_type,
            "limit": limit,
        })
        reactions = self._parse_items(ReactionItem, raw)
        logger.info(f"[REACTIONS] Page {page_number} for {post_url}: {len(reactions)} reactions")
        return reactions
