"""
Profile identity resolution.

Maps raw reactor/commenter records onto stored profiles, creating profiles
for people not seen before and folding newly seen identifiers into existing
ones.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set, Tuple
from uuid import UUID
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from social_signals.core.clock import utcnow
from social_signals.core.errors import IdentityResolutionError, PersistenceError
from social_signals.crud import profile as crud_profile
from social_signals.linkedin.utils.identifiers import (
    OPAQUE_ID_PREFIX,
    extract_profile_identifiers,
    normalize_urn,
)
from social_signals.schemas.apify import CommentItem, ReactionItem

logger = logging.getLogger(__name__)


@dataclass
class RawIdentity:
    """A person as seen on one reaction or comment."""
    profile_url: str
    urn: Optional[str] = None
    name: Optional[str] = None
    headline: Optional[str] = None
    picture_url: Optional[str] = None
    pictures: Optional[dict] = None

    @classmethod
    def from_reaction(cls, item: ReactionItem) -> "RawIdentity":
        reactor = item.reactor
        pictures = reactor.profile_pictures
        return cls(
            profile_url=reactor.profile_url,
            urn=reactor.urn,
            name=reactor.name,
            headline=reactor.headline,
            picture_url=pictures.largest() if pictures else None,
            pictures=pictures.model_dump(exclude_none=True) if pictures else None,
        )

    @classmethod
    def from_comment(cls, item: CommentItem) -> "RawIdentity":
        author = item.author
        return cls(
            profile_url=author.profile_url,
            name=author.name,
            headline=author.headline,
            picture_url=author.profile_picture,
        )

    def derived(self) -> Tuple[str, Optional[str], Optional[str], Optional[str]]:
        """
        (urn, primary, secondary, public) for this record.

        The urn is the provider's URN when present, else the opaque id, else
        the vanity slug, else the raw profile URL.
        """
        identifiers = extract_profile_identifiers(self.profile_url)
        urn = normalize_urn(self.urn) if self.urn else None
        primary = identifiers.primary
        if urn and urn.startswith(OPAQUE_ID_PREFIX) and not primary:
            primary = urn
        urn = urn or primary or identifiers.secondary or normalize_urn(self.profile_url)
        return urn, primary, identifiers.secondary, identifiers.public


class IdentifierIndex:
    """Identifier -> profile id lookup built after resolution."""

    def __init__(self, mapping: Optional[Dict[str, UUID]] = None):
        self.mapping: Dict[str, UUID] = dict(mapping or {})

    def add(self, key: Optional[str], profile_id: UUID) -> None:
        if key:
            self.mapping.setdefault(key, profile_id)

    def lookup(self, raw: RawIdentity) -> UUID:
        """
        Profile id for a raw record.

        Tries the profile URL, then the primary, secondary and public
        identifiers, then the normalized URN.

        Raises:
            IdentityResolutionError: If nothing matches
        """
        urn, primary, secondary, public = raw.derived()
        for key in (raw.profile_url, primary, secondary, public, urn):
            if key and key in self.mapping:
                return self.mapping[key]
        raise IdentityResolutionError(f"No profile found for {raw.profile_url}")


@dataclass
class ResolutionResult:
    new_profile_ids: Set[UUID] = field(default_factory=set)
    processed_profile_ids: Set[UUID] = field(default_factory=set)
    index: IdentifierIndex = field(default_factory=IdentifierIndex)
    errors: List[str] = field(default_factory=list)


class ProfileIdentityResolver:
    """
    Resolves raw identities against the profiles table.

    Each record is stored inside its own savepoint so one failing insert
    leaves the rest of the batch intact.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _resolve_one(self, raw: RawIdentity, now: datetime) -> Tuple[UUID, bool]:
        urn, primary, secondary, public = raw.derived()

        existing = await crud_profile.find_existing_profile_by_identifiers(
            self.db,
            urn=urn,
            primary=primary,
            secondary=secondary,
            public=public,
            profile_url=raw.profile_url,
        )

        if existing is None:
            created = await crud_profile.create_profile(
                self.db,
                urn=urn,
                primary_identifier=primary,
                secondary_identifier=secondary,
                public_identifier=public,
                name=raw.name,
                headline=raw.headline,
                profile_url=raw.profile_url,
                profile_picture_url=raw.picture_url,
                profile_pictures=raw.pictures,
                now=now,
            )
            return created.id, True

        existing.name = raw.name or existing.name
        existing.headline = raw.headline or existing.headline
        existing.profile_picture_url = raw.picture_url or existing.profile_picture_url
        if raw.pictures:
            existing.profile_pictures = raw.pictures
        if not existing.profile_url:
            existing.profile_url = raw.profile_url
        crud_profile.backfill_identifiers(existing, primary, secondary, public)
        crud_profile.add_alternative_urn(existing, urn, now)
        existing.last_updated = now
        await self.db.flush()
        return existing.id, False

    async def resolve(self, identities: Iterable[RawIdentity]) -> ResolutionResult:
        """
        Match or create a profile for every distinct profile URL.

        Args:
            identities: Raw records, possibly repeating the same person

        Returns:
            ResolutionResult with new and processed ids and a lookup index
        """
        unique: Dict[str, RawIdentity] = {}
        for raw in identities:
            if raw.profile_url and raw.profile_url not in unique:
                unique[raw.profile_url] = raw

        result = ResolutionResult()
        now = utcnow()
        resolved: Dict[str, UUID] = {}

        for profile_url, raw in unique.items():
            try:
                async with self.db.begin_nested():
                    profile_id, created = await self._resolve_one(raw, now)
            except SQLAlchemyError as e:
                error = PersistenceError(f"Could not store profile {profile_url}: {str(e)}")
                logger.error(f"[IDENTITY] {error}")
                result.errors.append(str(error))
                continue

            resolved[profile_url] = profile_id
            result.processed_profile_ids.add(profile_id)
            if created:
                result.new_profile_ids.add(profile_id)

        index_map = await crud_profile.get_identifier_index(self.db, result.processed_profile_ids)
        result.index = IdentifierIndex(resolved)
        for key, profile_id in index_map.items():
            result.index.add(key, profile_id)

        logger.info(
            f"[IDENTITY] Resolved {len(result.processed_profile_ids)} profiles "
            f"({len(result.new_profile_ids)} new, {len(result.errors)} failed)"
        )
        return result
