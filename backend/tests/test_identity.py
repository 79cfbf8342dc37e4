from datetime import datetime, timezone

import pytest

from fakes import comment, reaction
from social_signals.core.errors import IdentityResolutionError
from social_signals.crud import profile as crud_profile
from social_signals.db.models.profile import Profile
from social_signals.services.identity import IdentifierIndex, ProfileIdentityResolver, RawIdentity


def test_derived_identifiers():
    opaque = RawIdentity(profile_url="https://www.linkedin.com/in/ACoAAB1", urn="urn:li:person:ACoAAB1")
    assert opaque.derived() == ("ACoAAB1", "ACoAAB1", None, None)

    vanity = RawIdentity(profile_url="https://www.linkedin.com/in/jdoe/")
    assert vanity.derived() == ("jdoe", None, "jdoe", "jdoe")

    both = RawIdentity(profile_url="https://www.linkedin.com/in/jdoe", urn="ACoAAB9")
    assert both.derived() == ("ACoAAB9", "ACoAAB9", "jdoe", "jdoe")

    odd = RawIdentity(profile_url="https://example.com/someone")
    assert odd.derived() == ("https://example.com/someone", None, None, None)


async def test_resolve_creates_once_and_reuses(db):
    identities = [
        RawIdentity.from_reaction(reaction("https://www.linkedin.com/in/ACoAAB1", urn="ACoAAB1", name="Ann")),
        RawIdentity.from_reaction(reaction("https://www.linkedin.com/in/ACoAAB1", urn="ACoAAB1", name="Ann", reaction_type="PRAISE")),
        RawIdentity.from_comment(comment("c1", "p", "https://www.linkedin.com/in/bob")),
    ]

    first = await ProfileIdentityResolver(db).resolve(identities)
    await db.commit()
    assert len(first.new_profile_ids) == 2
    assert len(first.processed_profile_ids) == 2

    second = await ProfileIdentityResolver(db).resolve(identities)
    assert second.new_profile_ids == set()
    assert second.processed_profile_ids == first.processed_profile_ids

    ann = await crud_profile.get_profile(db, second.index.lookup(identities[0]))
    assert ann.urn == "ACoAAB1"
    assert ann.primary_identifier == "ACoAAB1"
    assert ann.profile_picture_url == "https://img/l.jpg"


async def test_resolve_folds_new_urn_into_existing_profile(db):
    existing = Profile(
        urn="jdoe",
        secondary_identifier="jdoe",
        public_identifier="jdoe",
        alternative_urns=[],
        first_seen=datetime(2024, 1, 1, tzinfo=timezone.utc),
        last_updated=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
    db.add(existing)
    await db.commit()

    raw = RawIdentity(profile_url="https://www.linkedin.com/in/jdoe", urn="ACoAAB9", name="Jane")
    result = await ProfileIdentityResolver(db).resolve([raw])

    assert result.new_profile_ids == set()
    assert result.index.lookup(raw) == existing.id
    assert existing.alternative_urns == ["ACoAAB9"]
    assert existing.primary_identifier == "ACoAAB9"
    assert existing.name == "Jane"


async def test_match_prefers_urn_over_public_identifier(db):
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    by_public = Profile(urn="ACoAAB7", public_identifier="jdoe", alternative_urns=[], first_seen=now, last_updated=now)
    by_urn = Profile(urn="jdoe", alternative_urns=[], first_seen=now.replace(year=2025), last_updated=now)
    db.add_all([by_public, by_urn])
    await db.flush()

    match = await crud_profile.find_existing_profile_by_identifiers(db, urn="jdoe", secondary="jdoe", public="jdoe")
    assert match.id == by_urn.id


async def test_match_on_alternative_urn(db):
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    profile = Profile(urn="jdoe", alternative_urns=["ACoAAB5"], first_seen=now, last_updated=now)
    db.add(profile)
    await db.flush()

    match = await crud_profile.find_existing_profile_by_identifiers(db, urn="urn:li:person:ACoAAB5")
    assert match.id == profile.id
    assert await crud_profile.find_existing_profile_by_identifiers(db, urn="ACoAAB") is None


def test_lookup_of_unresolved_identity_raises():
    with pytest.raises(IdentityResolutionError):
        IdentifierIndex().lookup(RawIdentity(profile_url="https://www.linkedin.com/in/ghost"))
