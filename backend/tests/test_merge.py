from datetime import datetime, timezone

import pytest
from sqlalchemy import select

from fakes import make_post, make_profile
from social_signals.core.errors import ValidationError
from social_signals.crud import engagement as crud_engagement
from social_signals.crud import profile as crud_profile
from social_signals.db.models.engagement import Comment, Reaction
from social_signals.db.models.profile import Profile
from social_signals.services.merge import choose_keeper, group_duplicate_profiles, merge_duplicate_profiles

USER = "user-1"
EARLY = datetime(2024, 1, 1, tzinfo=timezone.utc)
LATE = datetime(2024, 3, 1, tzinfo=timezone.utc)


def test_grouping_is_transitive():
    a = make_profile("ACoAX", secondary_identifier="jane-doe")
    b = make_profile("jane-doe", public_identifier="jane-doe")
    c = make_profile("ACoAC", alternative_urns=["ACoAX"])
    loner = make_profile("someone-else")
    for p in (a, b, c, loner):
        p.id = p.urn

    groups = group_duplicate_profiles([a, b, c, loner])

    assert len(groups) == 1
    assert {p.urn for p in groups[0]} == {"ACoAX", "jane-doe", "ACoAC"}


def test_keeper_prefers_enriched_then_earliest():
    a = make_profile("a", first_seen=EARLY)
    b = make_profile("b", first_seen=LATE, public_identifier="b")
    c = make_profile("c", first_seen=EARLY.replace(day=2), public_identifier="c")
    for p in (a, b, c):
        p.id = p.urn
    assert choose_keeper([a, b, c]).urn == "c"
    assert choose_keeper([a, make_profile("d", first_seen=LATE)]).urn == "a"


async def test_merge_collapses_group_onto_keeper(db):
    a = make_profile("ACoAX", first_seen=EARLY, name="Jane Doe", secondary_identifier="jane-doe", primary_identifier="ACoAX")
    b = make_profile("jane-doe", first_seen=LATE, name="Jane Doe", public_identifier="jane-doe")
    c = make_profile("ACoAC", first_seen=EARLY, name="Jane D.", alternative_urns=["ACoAX"])
    other = make_profile("john", name="John")
    post = make_post(USER, "7302346926123798521")
    db.add_all([a, b, c, other, post])
    await db.flush()

    db.add_all([
        Reaction(user_id=USER, post_id=post.id, reactor_profile_id=a.id, reaction_type="LIKE"),
        Reaction(user_id=USER, post_id=post.id, reactor_profile_id=b.id, reaction_type="LIKE"),
        Reaction(user_id=USER, post_id=post.id, reactor_profile_id=c.id, reaction_type="PRAISE"),
        Comment(user_id=USER, post_id=post.id, commenter_profile_id=a.id, comment_id="c1", comment_text="hi"),
    ])
    await db.commit()
    keeper_id, loser_ids = b.id, {a.id, c.id}

    outcomes = await merge_duplicate_profiles(db, "jane")
    await db.commit()

    assert len(outcomes) == 1
    outcome = outcomes[0]
    assert outcome.status == "merged"
    assert outcome.keeper_id == keeper_id
    assert set(outcome.duplicate_ids) == loser_ids
    assert outcome.to_dict()["mergedCount"] == 2

    remaining = {p.id for p in (await db.execute(select(Profile))).scalars().all()}
    assert remaining == {keeper_id, other.id}

    keeper = await db.get(Profile, keeper_id)
    assert set(keeper.alternative_urns) == {"ACoAX", "ACoAC"}
    assert keeper.primary_identifier == "ACoAX"

    reactions = (await db.execute(select(Reaction.reactor_profile_id, Reaction.reaction_type))).all()
    assert sorted(r.reaction_type for r in reactions) == ["LIKE", "PRAISE"]
    assert {r.reactor_profile_id for r in reactions} == {keeper_id}

    comments = (await db.execute(select(Comment.commenter_profile_id))).scalars().all()
    assert comments == [keeper_id]


async def test_merge_without_duplicates_is_a_no_op(db):
    db.add(make_profile("solo", name="Solo Person"))
    await db.commit()
    assert await merge_duplicate_profiles(db, "solo") == []


async def test_merge_requires_pattern(db):
    with pytest.raises(ValidationError):
        await merge_duplicate_profiles(db, "  ")


async def test_failed_group_does_not_block_the_others(session_factory, monkeypatch):
    async with session_factory() as db:
        db.add_all([
            make_profile("zed-one", first_seen=EARLY, public_identifier="zed-one"),
            make_profile("ACoA1", first_seen=EARLY.replace(day=2), secondary_identifier="zed-one"),
            make_profile("zed-two", first_seen=LATE, public_identifier="zed-two"),
            make_profile("ACoA2", first_seen=LATE.replace(day=2), secondary_identifier="zed-two"),
        ])
        await db.commit()

    original = crud_engagement.repoint_comments
    calls = []

    async def fail_first_group(db, keeper_id, loser_ids):
        calls.append(keeper_id)
        if len(calls) == 1:
            raise RuntimeError("comment table locked")
        return await original(db, keeper_id, loser_ids)

    monkeypatch.setattr(crud_engagement, "repoint_comments", fail_first_group)

    async with session_factory() as db:
        outcomes = await merge_duplicate_profiles(db, "zed")
        await db.commit()

    assert [(o.key, o.status) for o in outcomes] == [("zed-one", "error"), ("zed-two", "merged")]
    assert outcomes[0].error == "comment table locked"

    async with session_factory() as db:
        remaining = {p.urn: p for p in (await db.execute(select(Profile))).scalars().all()}
    assert set(remaining) == {"zed-one", "ACoA1", "zed-two"}
    assert remaining["zed-one"].alternative_urns == []
    assert remaining["zed-two"].alternative_urns == ["ACoA2"]


async def test_loser_identifiers_stay_findable_after_merge(db):
    keeper = make_profile("jane-doe", public_identifier="jane-doe", secondary_identifier="jane-doe",
                          alternative_urns=["ACoAX"])
    loser = make_profile("ACoAX", first_seen=LATE, primary_identifier="ACoAX", secondary_identifier="jane-old",
                         name="Jane Doe")
    db.add_all([keeper, loser])
    await db.commit()

    (outcome,) = await merge_duplicate_profiles(db, "jane")
    await db.commit()

    assert outcome.keeper_id == keeper.id
    found = await crud_profile.find_existing_profile_by_identifiers(db, urn="jane-old", secondary="jane-old")
    assert found is not None and found.id == keeper.id
    assert "jane-old" in found.alternative_urns
