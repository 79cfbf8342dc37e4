"""
CRUD operations for profiles.
"""
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set
from uuid import UUID
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import String, cast, delete, or_, select

from social_signals.core.clock import ensure_utc, utcnow
from social_signals.db.models.profile import Profile
from social_signals.linkedin.utils.identifiers import normalize_urn
from social_signals.schemas.apify import EnrichedProfileItem

logger = logging.getLogger(__name__)

# Which stored field a match was found on, strongest first
MATCH_PRECEDENCE = (
    "urn",
    "primary_identifier",
    "alternative_urns",
    "secondary_identifier",
    "public_identifier",
    "profile_url",
)


def _like_escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _match_rank(profile: Profile, values: Set[str], profile_url: Optional[str]) -> Optional[int]:
    """Index into MATCH_PRECEDENCE of the strongest field profile matched on."""
    if profile.urn in values:
        return 0
    if profile.primary_identifier and profile.primary_identifier in values:
        return 1
    if values.intersection(profile.alternative_urns or []):
        return 2
    if profile.secondary_identifier and profile.secondary_identifier in values:
        return 3
    if profile.public_identifier and profile.public_identifier in values:
        return 4
    if profile_url and profile.profile_url == profile_url:
        return 5
    return None


async def get_profile(db: AsyncSession, profile_id: UUID) -> Optional[Profile]:
    result = await db.execute(select(Profile).where(Profile.id == profile_id))
    return result.scalar_one_or_none()


async def get_profiles(db: AsyncSession, profile_ids: Iterable[UUID]) -> List[Profile]:
    ids = list(profile_ids)
    if not ids:
        return []
    result = await db.execute(select(Profile).where(Profile.id.in_(ids)))
    return list(result.scalars().all())


async def find_existing_profile_by_identifiers(
    db: AsyncSession,
    urn: Optional[str] = None,
    primary: Optional[str] = None,
    secondary: Optional[str] = None,
    public: Optional[str] = None,
    profile_url: Optional[str] = None,
) -> Optional[Profile]:
    """
    Find the stored profile that best matches any of the given identifiers.

    Identifiers are compared across fields: a vanity slug stored as urn on one
    row matches the same slug passed as public on a lookup. When several rows
    match, the strongest field in MATCH_PRECEDENCE wins, then the earliest
    first_seen, then the lowest id.

    Args:
        db: Database session
        urn: Normalized URN
        primary: Opaque member id
        secondary: Vanity slug
        public: Public identifier
        profile_url: Profile URL, compared only against stored profile_url

    Returns:
        Optional[Profile]: Best match, or None
    """
    values = {v for v in (normalize_urn(urn), primary, secondary, public) if v}
    if not values and not profile_url:
        return None

    conditions = []
    if values:
        value_list = sorted(values)
        conditions.extend([
            Profile.urn.in_(value_list),
            Profile.primary_identifier.in_(value_list),
            Profile.secondary_identifier.in_(value_list),
            Profile.public_identifier.in_(value_list),
        ])
        # Prefilter on the serialized JSON list; exact membership is checked in _match_rank
        alt_text = cast(Profile.alternative_urns, String)
        conditions.extend(
            alt_text.like(f'%"{_like_escape(value)}"%', escape="\\") for value in value_list
        )
    if profile_url:
        conditions.append(Profile.profile_url == profile_url)

    result = await db.execute(select(Profile).where(or_(*conditions)))
    ranked = []
    for profile in result.scalars().all():
        rank = _match_rank(profile, values, profile_url)
        if rank is not None:
            ranked.append((rank, ensure_utc(profile.first_seen), str(profile.id), profile))

    if not ranked:
        return None

    ranked.sort(key=lambda entry: entry[:3])
    best = ranked[0]
    logger.debug(f"[PROFILES] Matched {best[3].urn} on {MATCH_PRECEDENCE[best[0]]}")
    return best[3]


def add_alternative_urn(profile: Profile, value: Optional[str], now: Optional[datetime] = None) -> bool:
    """
    Append value to the profile's alternative URNs.

    Nothing happens for an empty value, the profile's own urn, or a value
    already present.

    Returns:
        bool: True if the list changed
    """
    value = normalize_urn(value)
    if not value or value == profile.urn:
        return False
    current = list(profile.alternative_urns or [])
    if value in current:
        return False
    # Reassign so the JSON column is flagged dirty
    profile.alternative_urns = current + [value]
    profile.last_updated = now or utcnow()
    return True


def backfill_identifiers(profile: Profile, primary: Optional[str], secondary: Optional[str], public: Optional[str]) -> None:
    """Fill identifier fields that are still empty; never overwrite."""
    if primary and not profile.primary_identifier:
        profile.primary_identifier = primary
    if secondary and not profile.secondary_identifier:
        profile.secondary_identifier = secondary
    if public and not profile.public_identifier:
        profile.public_identifier = public


async def create_profile(db: AsyncSession, **values) -> Profile:
    """
    Create a new profile.

    Returns:
        Profile: Created profile with its generated id
    """
    now = values.pop("now", None) or utcnow()
    values.setdefault("alternative_urns", [])
    db_profile = Profile(first_seen=now, last_updated=now, **values)
    db.add(db_profile)
    await db.flush()
    await db.refresh(db_profile)
    return db_profile


def apply_enrichment(profile: Profile, item: EnrichedProfileItem, now: Optional[datetime] = None) -> None:
    """Copy enrichment fields onto a stored profile and stamp the enrichment times."""
    now = now or utcnow()
    info = item.basic_info
    if info:
        profile.first_name = info.first_name or profile.first_name
        profile.last_name = info.last_name or profile.last_name
        profile.headline = info.headline or profile.headline
        profile.profile_picture_url = info.profile_picture_url or profile.profile_picture_url
        if info.location:
            profile.country = info.location.country or profile.country
            profile.city = info.location.city or profile.city
        if info.public_identifier:
            profile.public_identifier = info.public_identifier
            if not profile.secondary_identifier:
                profile.secondary_identifier = info.public_identifier
        if info.urn:
            urn = normalize_urn(info.urn)
            if urn.startswith("ACoA") and not profile.primary_identifier:
                profile.primary_identifier = urn
            add_alternative_urn(profile, urn, now)
        if not profile.name and info.fullname:
            profile.name = info.fullname

    experience = item.current_experience()
    if experience:
        profile.current_title = experience.title
        profile.current_company = experience.company
        profile.is_current_position = experience.is_current
        profile.company_linkedin_url = experience.company_linkedin_url

    if not profile.enriched_at:
        profile.enriched_at = now
    profile.last_enriched_at = now
    profile.last_updated = now


async def find_profiles_matching(db: AsyncSession, pattern: str) -> List[Profile]:
    """Profiles whose name or any identifier contains pattern (case-insensitive)."""
    like = f"%{_like_escape(pattern)}%"
    result = await db.execute(
        select(Profile).where(or_(
            Profile.name.ilike(like, escape="\\"),
            Profile.urn.ilike(like, escape="\\"),
            Profile.primary_identifier.ilike(like, escape="\\"),
            Profile.secondary_identifier.ilike(like, escape="\\"),
            Profile.public_identifier.ilike(like, escape="\\"),
            cast(Profile.alternative_urns, String).ilike(like, escape="\\"),
        ))
        .order_by(Profile.first_seen, Profile.id)
    )
    return list(result.scalars().all())


async def delete_profiles(db: AsyncSession, profile_ids: Iterable[UUID]) -> int:
    ids = list(profile_ids)
    if not ids:
        return 0
    result = await db.execute(
        delete(Profile).where(Profile.id.in_(ids)).execution_options(synchronize_session="fetch")
    )
    return result.rowcount


async def get_identifier_index(db: AsyncSession, profile_ids: Iterable[UUID]) -> Dict[str, UUID]:
    """
    Map every identifier of the given profiles to the profile id.

    Includes urn, primary, secondary and public identifiers, alternative URNs
    and the profile URL.
    """
    index: Dict[str, UUID] = {}
    for profile in await get_profiles(db, profile_ids):
        keys = [
            profile.profile_url,
            profile.urn,
            profile.primary_identifier,
            profile.secondary_identifier,
            profile.public_identifier,
            *(profile.alternative_urns or []),
        ]
        for key in keys:
            if key:
                index.setdefault(key, profile.id)
    return index
