from datetime import datetime, timezone
from uuid import uuid4

import pytest
from sqlalchemy import select

from fakes import (
    FakeComments,
    FakePostDetail,
    FakeProfilePosts,
    FakeProfiles,
    FakeReactions,
    comment,
    enriched,
    fake_services,
    make_post,
    make_profile,
    post_detail,
    profile_post,
    reaction,
)
from social_signals.crud import user_settings as crud_user_settings
from social_signals.db.models.engagement import Comment, Reaction
from social_signals.db.models.job import ScrapeJob
from social_signals.db.models.post import Post
from social_signals.db.models.profile import Profile
from social_signals.db.models.settings import UserSettings
from social_signals.services.collector import CollectorLimits
from social_signals.services.progress import SQLProgressStore, new_progress_id
from social_signals.services.scrape_jobs import NO_PROFILE_POSTS_MESSAGE, ScrapeWorkflows

USER = "user-1"
TOKEN = "apify-token"
EARLY = datetime(2024, 1, 1, tzinfo=timezone.utc)


def workflows_for(session_factory, services):
    limits = CollectorLimits(metadata_batch_delay=0.0)
    return ScrapeWorkflows(session_factory, SQLProgressStore(session_factory), lambda token: services, limits)


async def seed_posts(session_factory, *post_ids, **values):
    async with session_factory() as db:
        posts = [make_post(USER, post_id, **values) for post_id in post_ids]
        db.add_all(posts)
        await db.commit()
    return posts


async def rows(session_factory, model):
    async with session_factory() as db:
        return list((await db.execute(select(model))).scalars().all())


async def run(workflows, method, *args, **kwargs):
    progress_id = new_progress_id()
    await getattr(workflows, method)(progress_id, USER, *args, **kwargs)
    return await workflows.progress_store.read(progress_id, USER)


async def test_reactions_one_failing_post_still_completes(session_factory):
    p1, p2, p3 = await seed_posts(session_factory, "7302346926123798521", "7302346926123798522", "7302346926123798523",
                                  engagement_needs_scraping=True, engagement_last_updated_at=EARLY)
    fake = FakeReactions(
        {
            p1.post_url: {1: [reaction("https://www.linkedin.com/in/ann", urn="ACoAAnn", total=2),
                              reaction("https://www.linkedin.com/in/bob", reaction_type="PRAISE", total=2)]},
            p3.post_url: {1: [reaction("https://www.linkedin.com/in/ann", urn="ACoAAnn", total=1)]},
        },
        failing={p2.post_url},
    )
    workflows = workflows_for(session_factory, fake_services(reactions=fake))

    record = await run(workflows, "run_reactions", [p1.id, p2.id, p3.id], TOKEN)

    assert record.status == "completed"
    assert record.progress == 100
    assert record.result["totalSaved"] == 3
    assert record.result["newProfiles"] == 2
    assert {e["postId"] for e in record.result["results"]} == {str(p1.id), str(p3.id)}
    assert [e["postId"] for e in record.result["errors"]] == [str(p2.id)]

    assert len(await rows(session_factory, Profile)) == 2
    assert len(await rows(session_factory, Reaction)) == 3

    posts = {p.id: p for p in await rows(session_factory, Post)}
    assert posts[p1.id].engagement_needs_scraping is False
    assert posts[p1.id].last_reactions_scrape is not None
    assert posts[p2.id].engagement_needs_scraping is True
    assert posts[p2.id].last_reactions_scrape is None

    (job,) = await rows(session_factory, ScrapeJob)
    assert (job.job_type, job.status, job.total_items_scraped) == ("reactions", "completed", 3)
    (user_settings,) = await rows(session_factory, UserSettings)
    assert user_settings.last_sync_time is not None


async def test_rescrape_replaces_reactions(session_factory):
    (p1,) = await seed_posts(session_factory, "7302346926123798521")
    fake = FakeReactions({p1.post_url: {1: [reaction("https://www.linkedin.com/in/ann", total=1)]}})
    workflows = workflows_for(session_factory, fake_services(reactions=fake))
    await run(workflows, "run_reactions", [p1.id], TOKEN)

    fake.pages[p1.post_url] = {1: [reaction("https://www.linkedin.com/in/bob", total=1)]}
    record = await run(workflows, "run_reactions", [p1.id], TOKEN)

    assert record.result["newProfiles"] == 1
    (stored,) = await rows(session_factory, Reaction)
    bob = [p for p in await rows(session_factory, Profile) if p.urn == "bob"][0]
    assert stored.reactor_profile_id == bob.id


async def test_all_posts_failing_ends_in_error(session_factory):
    p1, p2 = await seed_posts(session_factory, "7302346926123798521", "7302346926123798522")
    fake = FakeReactions(failing={p1.post_url, p2.post_url})
    workflows = workflows_for(session_factory, fake_services(reactions=fake))

    record = await run(workflows, "run_reactions", [p1.id, p2.id], TOKEN)

    assert record.status == "error"
    assert "All 2 posts failed" in record.error
    assert len(record.result["errors"]) == 2
    (job,) = await rows(session_factory, ScrapeJob)
    assert job.status == "failed"


async def test_save_failure_marks_job_failed(session_factory, monkeypatch):
    (p1,) = await seed_posts(session_factory, "7302346926123798521")
    fake = FakeReactions({p1.post_url: {1: [reaction("https://www.linkedin.com/in/ann", total=1)]}})
    workflows = workflows_for(session_factory, fake_services(reactions=fake))

    async def settings_down(db, user_id, when):
        raise RuntimeError("settings store down")

    monkeypatch.setattr(crud_user_settings, "touch_last_sync_time", settings_down)

    record = await run(workflows, "run_reactions", [p1.id], TOKEN)

    assert record.status == "error"
    assert record.error == "settings store down"
    (job,) = await rows(session_factory, ScrapeJob)
    assert job.status == "failed"
    assert job.error_message == "settings store down"
    assert job.completed_at is not None
    # The save transaction was rolled back
    assert await rows(session_factory, Reaction) == []


async def test_unknown_posts_end_in_error(session_factory):
    workflows = workflows_for(session_factory, fake_services())
    record = await run(workflows, "run_reactions", [uuid4()], TOKEN)
    assert record.status == "error"
    assert record.error == "None of the requested posts were found"


async def test_comments_are_stored_with_commenters(session_factory):
    p1, p2 = await seed_posts(session_factory, "7302346926123798521", "7302346926123798522")
    fake = FakeComments({
        p1.post_url: {1: [comment("c1", p1.post_url, "https://www.linkedin.com/in/ann", total=2),
                          comment("c2", p1.post_url, "https://www.linkedin.com/in/bob", total=2)]},
        p2.post_url: {1: [comment("c3", p2.post_url, "https://www.linkedin.com/in/ann", total=1)]},
    })
    workflows = workflows_for(session_factory, fake_services(comments=fake))

    record = await run(workflows, "run_comments", [p1.id, p2.id], TOKEN)

    assert record.status == "completed"
    assert record.result["totalSaved"] == 3
    stored = {c.comment_id: c for c in await rows(session_factory, Comment)}
    assert set(stored) == {"c1", "c2", "c3"}
    assert stored["c1"].commenter_profile_id == stored["c3"].commenter_profile_id
    assert stored["c1"].posted_at_timestamp == 1714550400000
    assert stored["c1"].reactions_breakdown == {"LIKE": 2}
    posts = {p.id: p for p in await rows(session_factory, Post)}
    assert posts[p1.id].last_comments_scrape is not None


async def test_post_metadata_flags_changed_posts(session_factory):
    p1, p2, p3 = await seed_posts(session_factory, "7302346926123798521", "7302346926123798522", "7302346926123798523",
                                  num_likes=5, num_comments=1, num_shares=0)
    fake = FakePostDetail({
        p1.post_url: post_detail(5, 1, 0),
        p2.post_url: post_detail(9, 1, 0, text="updated"),
    })
    workflows = workflows_for(session_factory, fake_services(post_detail=fake))

    record = await run(workflows, "run_post_metadata", [p1.id, p2.id, p3.id], TOKEN)

    assert record.status == "completed"
    assert record.result["updated"] == 2
    assert record.result["changed"] == 1
    assert len(record.result["errors"]) == 1

    posts = {p.id: p for p in await rows(session_factory, Post)}
    assert posts[p1.id].engagement_needs_scraping is False
    assert posts[p2.id].engagement_needs_scraping is True
    assert posts[p2.id].num_likes == 9
    assert posts[p2.id].post_text == "updated"
    assert posts[p3.id].metadata_last_updated_at is None


async def test_profile_posts_with_no_results(session_factory):
    workflows = workflows_for(session_factory, fake_services(profile_posts=FakeProfilePosts([])))

    record = await run(workflows, "run_profile_posts", "https://www.linkedin.com/in/jdoe", TOKEN)

    assert record.status == "completed"
    assert record.result["totalProcessed"] == 0
    assert record.result["message"] == NO_PROFILE_POSTS_MESSAGE
    assert await rows(session_factory, Post) == []


async def test_profile_posts_upsert_with_delta(session_factory):
    await seed_posts(session_factory, "7302346926123798521", num_likes=3, num_comments=0, num_shares=0)
    fake = FakeProfilePosts([
        profile_post("7302346926123798521", likes=4),
        profile_post("7302346926123798522", likes=1),
        profile_post("7302346926123798522", likes=1),
    ])
    workflows = workflows_for(session_factory, fake_services(profile_posts=fake))

    record = await run(workflows, "run_profile_posts", "jdoe", TOKEN, max_posts=10)

    assert record.result["totalProcessed"] == 2
    assert record.result["newPosts"] == 1
    assert record.result["updatedPosts"] == 1
    assert record.result["postsWithEngagementUpdates"] == 1
    assert fake.calls == [("jdoe", 10, None)]

    posts = {p.post_id: p for p in await rows(session_factory, Post)}
    assert len(posts) == 2
    existing = posts["7302346926123798521"]
    assert existing.num_likes == 4
    assert existing.engagement_needs_scraping is True
    assert posts["7302346926123798522"].engagement_needs_scraping is False
    assert posts["7302346926123798522"].posted_at_timestamp == 1714550400000


async def test_profile_posts_provider_failure(session_factory):
    workflows = workflows_for(session_factory, fake_services(profile_posts=FakeProfilePosts(error="actor crashed")))

    record = await run(workflows, "run_profile_posts", "jdoe", TOKEN)

    assert record.status == "error"
    assert record.error == "actor crashed"
    (job,) = await rows(session_factory, ScrapeJob)
    assert job.status == "failed"


@pytest.mark.parametrize("merge", [False, True])
async def test_enrichment_with_optional_merge(session_factory, merge):
    async with session_factory() as db:
        vanity = make_profile("jane-doe", first_seen=EARLY, secondary_identifier="jane-doe", public_identifier="jane-doe")
        opaque = make_profile("ACoAJane", first_seen=EARLY.replace(month=2), primary_identifier="ACoAJane",
                              public_identifier="jane-doe")
        db.add_all([vanity, opaque])
        await db.commit()

    fake = FakeProfiles({"jane-doe": enriched("jane-doe", urn="ACoAJane")})
    workflows = workflows_for(session_factory, fake_services(profiles=fake))

    record = await run(workflows, "run_profile_enrichment", [vanity.id, opaque.id], TOKEN, merge_duplicates=merge)

    assert record.status == "completed"
    assert record.result["enriched"] == 1
    assert fake.calls == [["jane-doe"]]

    profiles = {p.id: p for p in await rows(session_factory, Profile)}
    if merge:
        assert len(record.result["merged"]) == 1
        assert list(profiles) == [vanity.id]
        assert "ACoAJane" in profiles[vanity.id].alternative_urns
    else:
        assert record.result["merged"] == []
        assert len(profiles) == 2
    enriched_profile = profiles[vanity.id] if merge else next(p for p in profiles.values() if p.last_enriched_at)
    assert enriched_profile.current_title == "CTO"
    assert enriched_profile.country == "Romania"
