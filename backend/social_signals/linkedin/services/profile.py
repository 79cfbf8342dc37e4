"""
Profile enrichment actor service.
"""
from typing import List
import logging

from social_signals.core.config import settings
from social_signals.schemas.apify import EnrichedProfileItem
from .base import ApifyActorClient

logger = logging.getLogger(__name__)


class ApifyProfileService(ApifyActorClient):
    """Service for batch profile enrichment."""

    ACTOR_ID = settings.APIFY_PROFILE_ENRICHMENT_ACTOR

    async def enrich_profiles(self, identifiers: List[str]) -> List[EnrichedProfileItem]:
        """
        Fetch full profiles for a batch of identifiers.

        Rows the actor reports as "No profile found" are dropped.

        Args:
            identifiers: Vanity slugs, opaque ids or profile URLs
        """
        raw = await self.run_actor({"usernames": identifiers, "includeEmail": False})
        profiles = [item for item in self._parse_items(EnrichedProfileItem, raw) if not item.is_not_found()]
        logger.info(f"[ENRICH] {len(profiles)} of {len(identifiers)} profiles found")
        return profiles
