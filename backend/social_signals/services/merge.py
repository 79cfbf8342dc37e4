"""
Duplicate profile detection and merging.

Profiles that share any identifier (urn, primary, secondary or public
identifier, or an alternative URN) describe the same person. Sharing is
transitive: A~C and C~B put A, B and C in one group. Each group is collapsed
onto a single keeper.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional
from uuid import UUID
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from social_signals.core.clock import ensure_utc, utcnow
from social_signals.core.errors import ValidationError
from social_signals.crud import engagement as crud_engagement
from social_signals.crud import profile as crud_profile
from social_signals.db.models.profile import Profile

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class DisjointSet:
    """Union-find over hashable keys with path compression."""

    def __init__(self):
        self.parent: Dict = {}

    def find(self, key):
        self.parent.setdefault(key, key)
        root = key
        while self.parent[root] != root:
            root = self.parent[root]
        while self.parent[key] != root:
            self.parent[key], key = root, self.parent[key]
        return root

    def union(self, a, b) -> None:
        root_a, root_b = self.find(a), self.find(b)
        if root_a != root_b:
            self.parent[root_b] = root_a


def profile_identifiers(profile: Profile) -> List[str]:
    values = [
        profile.urn,
        profile.primary_identifier,
        profile.secondary_identifier,
        profile.public_identifier,
        *(profile.alternative_urns or []),
    ]
    return [v for v in values if v]


def group_duplicate_profiles(profiles: Iterable[Profile]) -> List[List[Profile]]:
    """
    Connected components of profiles linked by shared identifiers.

    Only groups with two or more profiles are returned.
    """
    profiles = list(profiles)
    by_id = {p.id: p for p in profiles}
    owners: Dict[str, UUID] = {}
    groups = DisjointSet()

    for profile in profiles:
        groups.find(profile.id)
        for identifier in profile_identifiers(profile):
            if identifier in owners:
                groups.union(owners[identifier], profile.id)
            else:
                owners[identifier] = profile.id

    members: Dict[UUID, List[Profile]] = {}
    for profile_id, profile in by_id.items():
        members.setdefault(groups.find(profile_id), []).append(profile)

    return [group for group in members.values() if len(group) > 1]


def choose_keeper(group: List[Profile]) -> Profile:
    """Enriched profiles (with a public identifier) first, then the earliest seen."""
    return sorted(
        group,
        key=lambda p: (
            p.public_identifier is None,
            ensure_utc(p.first_seen) or _EPOCH,
            str(p.id),
        ),
    )[0]


@dataclass
class MergeOutcome:
    key: str
    status: str
    keeper_id: Optional[UUID] = None
    duplicate_ids: List[UUID] = field(default_factory=list)
    merged_count: int = 0
    error: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "key": self.key,
            "status": self.status,
            "keeperId": str(self.keeper_id) if self.keeper_id else None,
            "duplicateIds": [str(i) for i in self.duplicate_ids],
        }
        if self.error:
            data["error"] = self.error
        else:
            data["mergedCount"] = self.merged_count
        return data


async def merge_profile_group(db: AsyncSession, group: List[Profile], now: Optional[datetime] = None) -> MergeOutcome:
    """
    Collapse one group onto its keeper inside a savepoint.

    Loser URNs, their alternatives and any identifiers the keeper cannot
    take over are appended to the keeper's alternative_urns, empty keeper
    identifiers are backfilled, reactions and comments are re-pointed, then
    the losers are deleted. Any failure rolls back this group only.
    """
    now = now or utcnow()
    keeper = choose_keeper(group)
    losers = [p for p in group if p.id != keeper.id]
    loser_ids = [p.id for p in losers]
    outcome = MergeOutcome(
        key=keeper.public_identifier or keeper.urn,
        status="pending",
        keeper_id=keeper.id,
        duplicate_ids=loser_ids,
    )

    try:
        async with db.begin_nested():
            for loser in losers:
                crud_profile.add_alternative_urn(keeper, loser.urn, now)
                for alternative in loser.alternative_urns or []:
                    crud_profile.add_alternative_urn(keeper, alternative, now)
                crud_profile.backfill_identifiers(
                    keeper,
                    loser.primary_identifier,
                    loser.secondary_identifier,
                    loser.public_identifier,
                )
                own = {keeper.primary_identifier, keeper.secondary_identifier, keeper.public_identifier}
                for identifier in (loser.primary_identifier, loser.secondary_identifier, loser.public_identifier):
                    if identifier not in own:
                        crud_profile.add_alternative_urn(keeper, identifier, now)
            keeper.last_updated = now
            await db.flush()

            moved_reactions = await crud_engagement.repoint_reactions(db, keeper.id, loser_ids)
            moved_comments = await crud_engagement.repoint_comments(db, keeper.id, loser_ids)
            for loser in losers:
                db.expunge(loser)
            await crud_profile.delete_profiles(db, loser_ids)
    except Exception as e:
        logger.error(f"[MERGE] Group {outcome.key} failed: {str(e)}")
        outcome.status = "error"
        outcome.error = str(e)
        return outcome

    outcome.status = "merged"
    outcome.merged_count = len(loser_ids)
    logger.info(
        f"[MERGE] {outcome.key}: kept {keeper.id}, merged {len(loser_ids)} profiles "
        f"({moved_reactions} reactions, {moved_comments} comments moved)"
    )
    return outcome


async def merge_duplicate_profiles(db: AsyncSession, pattern: str) -> List[MergeOutcome]:
    """
    Find and merge duplicate profiles whose name or identifiers contain pattern.

    Profiles linked only through a profile outside the pattern are not
    grouped; the scan covers the pattern's candidates only.

    Raises:
        ValidationError: If pattern is empty
    """
    pattern = (pattern or "").strip()
    if not pattern:
        raise ValidationError("A non-empty search pattern is required")

    candidates = await crud_profile.find_profiles_matching(db, pattern)
    groups = group_duplicate_profiles(candidates)
    logger.info(f"[MERGE] Pattern '{pattern}': {len(candidates)} candidates, {len(groups)} duplicate groups")

    outcomes = []
    for group in groups:
        outcomes.append(await merge_profile_group(db, group))
    return outcomes
