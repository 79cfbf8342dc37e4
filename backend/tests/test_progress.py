from datetime import timedelta

from social_signals.core.clock import ensure_utc, utcnow
from social_signals.crud import progress as crud_progress
from social_signals.services.progress import ProgressStatus, ProgressTracker, SQLProgressStore, new_progress_id

USER = "user-1"


async def test_tracker_updates_are_merged(session_factory):
    store = SQLProgressStore(session_factory)
    tracker = ProgressTracker(store, new_progress_id(), USER)

    await tracker.start("Loading posts", total_posts=3)
    await tracker.update(ProgressStatus.SCRAPING, 40, processed_posts=1)

    record = await store.read(tracker.progress_id, USER)
    assert record.status == "scraping"
    assert record.progress == 40
    assert record.currentStep == "Loading posts"
    assert record.totalPosts == 3
    assert record.processedPosts == 1


async def test_progress_is_clamped(session_factory):
    store = SQLProgressStore(session_factory)
    tracker = ProgressTracker(store, new_progress_id(), USER)
    await tracker.update(ProgressStatus.SCRAPING, 250)
    assert (await store.read(tracker.progress_id, USER)).progress == 100


async def test_read_is_scoped_to_owner(session_factory):
    store = SQLProgressStore(session_factory)
    tracker = ProgressTracker(store, new_progress_id(), USER)
    await tracker.start("Queued")

    assert await store.read(tracker.progress_id, "someone-else") is None
    assert await store.read("missing", USER) is None


async def test_terminal_record_expires_after_first_read(session_factory):
    store = SQLProgressStore(session_factory, retention_seconds=30)
    tracker = ProgressTracker(store, new_progress_id(), USER)
    await tracker.complete({"totalSaved": 4}, "Done")

    record = await store.read(tracker.progress_id, USER)
    assert record.status == "completed"
    assert record.progress == 100
    assert record.result == {"totalSaved": 4}

    async with session_factory() as db:
        stored = await crud_progress.get_progress(db, tracker.progress_id)
        expires_at = ensure_utc(stored.expires_at)
    assert utcnow() < expires_at <= utcnow() + timedelta(seconds=30)

    # Still readable inside the retention window
    assert await store.read(tracker.progress_id, USER) is not None

    async with session_factory() as db:
        stored = await crud_progress.get_progress(db, tracker.progress_id)
        stored.expires_at = utcnow() - timedelta(seconds=1)
        await db.commit()
    assert await store.read(tracker.progress_id, USER) is None


async def test_fail_keeps_partial_result(session_factory):
    store = SQLProgressStore(session_factory)
    tracker = ProgressTracker(store, new_progress_id(), USER)
    await tracker.fail("All 2 posts failed to scrape", {"errors": [1, 2]})

    record = await store.read(tracker.progress_id, USER)
    assert record.status == "error"
    assert record.error == "All 2 posts failed to scrape"
    assert record.result == {"errors": [1, 2]}
