"""
Background scrape workflows.

Each workflow is started by an API handler, reports through a
ProgressTracker and records a scrape_jobs audit row. Database work is done in
short sessions between remote calls so no transaction is held open while a
scrape is running.
"""
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional
from uuid import UUID
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from social_signals.core.clock import from_epoch_millis, utcnow
from social_signals.core.config import settings
from social_signals.core.errors import IdentityResolutionError, ValidationError
from social_signals.crud import engagement as crud_engagement
from social_signals.crud import post as crud_post
from social_signals.crud import profile as crud_profile
from social_signals.crud import scrape_job as crud_scrape_job
from social_signals.crud import user_settings as crud_user_settings
from social_signals.db.models.job import ScrapeJob
from social_signals.linkedin.services import ApifyServices, build_apify_services
from social_signals.schemas.apify import CommentItem, ReactionItem
from social_signals.services.collector import CollectorLimits, EngagementCollector, TargetResult
from social_signals.services.engagement import apply_engagement_delta, engagement_columns, stored_engagement
from social_signals.services.identity import ProfileIdentityResolver, RawIdentity
from social_signals.services.merge import merge_duplicate_profiles
from social_signals.services.progress import ProgressStatus, ProgressStore, ProgressTracker

logger = logging.getLogger(__name__)

ServiceFactory = Callable[[str], ApifyServices]

NO_PROFILE_POSTS_MESSAGE = "No posts found for this profile"


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Unparseable date: {value}")
        return None


def _reaction_row(item: ReactionItem, profile_id: UUID, now: datetime) -> Dict[str, Any]:
    return {
        "reactor_profile_id": profile_id,
        "reaction_type": item.reaction_type,
        "page_number": item.metadata.page_number if item.metadata else None,
        "scraped_at": now,
    }


def _comment_row(item: CommentItem, profile_id: UUID, now: datetime) -> Dict[str, Any]:
    posted_at = item.posted_at
    timestamp = posted_at.timestamp if posted_at else None
    return {
        "commenter_profile_id": profile_id,
        "comment_id": item.comment_id,
        "comment_text": item.text,
        "comment_url": item.comment_url,
        "posted_at_timestamp": timestamp,
        "posted_at_date": from_epoch_millis(timestamp) if timestamp else parse_iso_datetime(posted_at.date if posted_at else None),
        "is_edited": item.is_edited,
        "is_pinned": item.is_pinned,
        "total_reactions": item.stats.total_reactions,
        "reactions_breakdown": item.stats.reactions,
        "replies_count": item.stats.comments,
        "page_number": item.metadata.page_number if item.metadata else None,
        "scraped_at": now,
    }


class ScrapeWorkflows:
    """
    Runs scrape jobs end to end.

    Args:
        session_factory: Async session factory for the application database
        progress_store: Where progress is written
        service_factory: Builds Apify services from a user's API token
        limits: Collector page and batch limits
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        progress_store: ProgressStore,
        service_factory: ServiceFactory = build_apify_services,
        limits: Optional[CollectorLimits] = None,
    ):
        self.session_factory = session_factory
        self.progress_store = progress_store
        self.service_factory = service_factory
        self.limits = limits
        # progress_id -> audit row of a job still running
        self._open_jobs: Dict[str, UUID] = {}

    def tracker(self, progress_id: str, user_id: str) -> ProgressTracker:
        return ProgressTracker(self.progress_store, progress_id, user_id)

    def collector(self, api_token: str) -> EngagementCollector:
        return EngagementCollector(self.service_factory(api_token), self.limits)

    async def _guarded(self, tracker: ProgressTracker, name: str, run: Callable[[], Awaitable[None]]) -> None:
        """Run a workflow; anything it raises ends the job in the error state."""
        try:
            await run()
        except Exception as e:
            logger.exception(f"[JOBS] {name} job {tracker.progress_id} failed")
            await tracker.fail(str(e))
            job_id = self._open_jobs.get(tracker.progress_id)
            if job_id is not None:
                await self._fail_job(job_id, str(e))
        finally:
            self._open_jobs.pop(tracker.progress_id, None)

    async def _start_job(self, tracker: ProgressTracker, user_id: str, job_type: str, targets: List[str]) -> UUID:
        async with self.session_factory() as db:
            job = await crud_scrape_job.create_scrape_job(db, user_id, job_type, targets)
            await db.commit()
        self._open_jobs[tracker.progress_id] = job.id
        return job.id

    async def _fail_job(self, job_id: UUID, error: str) -> None:
        async with self.session_factory() as db:
            job = await db.get(ScrapeJob, job_id)
            if job is not None and job.status == "running":
                await crud_scrape_job.finish_scrape_job(db, job, 0, error_message=error)
                await db.commit()

    def _progress_callback(self, tracker: ProgressTracker, start: int, span: int):
        async def report(done: int, total: int, message: str) -> None:
            share = done / total if total else 1
            await tracker.update(ProgressStatus.SCRAPING, start + int(span * share), message, processed_posts=done)
        return report

    # --- Reactions & comments ------------------------------------------------

    async def run_reactions(self, progress_id: str, user_id: str, post_ids: List[UUID], api_token: str) -> None:
        tracker = self.tracker(progress_id, user_id)
        await self._guarded(
            tracker, "reactions",
            lambda: self._run_engagement(tracker, user_id, post_ids, api_token, kind="reactions"),
        )

    async def run_comments(self, progress_id: str, user_id: str, post_ids: List[UUID], api_token: str) -> None:
        tracker = self.tracker(progress_id, user_id)
        await self._guarded(
            tracker, "comments",
            lambda: self._run_engagement(tracker, user_id, post_ids, api_token, kind="comments"),
        )

    async def _run_engagement(self, tracker: ProgressTracker, user_id: str, post_ids: List[UUID], api_token: str, kind: str) -> None:
        """
        Scrape reactions or comments for the given posts and replace the stored ones.

        Posts whose scrape failed keep their stored rows and are listed under
        errors. The job fails only when every post failed.
        """
        await tracker.start(f"Loading posts for {kind} scrape", total_posts=len(post_ids))

        async with self.session_factory() as db:
            posts = await crud_post.get_user_posts(db, user_id, post_ids)
        if not posts:
            raise ValidationError("None of the requested posts were found")

        job_id = await self._start_job(tracker, user_id, kind, [p.post_id for p in posts])
        post_urls = [p.post_url for p in posts]
        collector = self.collector(api_token)

        await tracker.update(ProgressStatus.SCRAPING, 10, f"Scraping {kind} for {len(posts)} posts", total_posts=len(posts))
        progress_callback = self._progress_callback(tracker, 10, 50)
        if kind == "reactions":
            results = await collector.collect_reactions(post_urls, progress_callback)
            to_identity = RawIdentity.from_reaction
            to_row = _reaction_row
            replace = crud_engagement.replace_post_reactions
            scrape_column = "last_reactions_scrape"
        else:
            results = await collector.collect_comments(post_urls, progress_callback)
            to_identity = RawIdentity.from_comment
            to_row = _comment_row
            replace = crud_engagement.replace_post_comments
            scrape_column = "last_comments_scrape"
        by_url: Dict[str, TargetResult] = {r.target: r for r in results}

        await tracker.update(ProgressStatus.PROCESSING, 65, "Resolving profiles", processed_posts=len(posts))

        entries: List[Dict[str, Any]] = []
        errors: List[Dict[str, Any]] = []
        saved_ids: List[UUID] = []
        stored_total = 0
        dropped_total = 0
        now = utcnow()

        async with self.session_factory() as db:
            identities = [to_identity(item) for r in results if r.ok for item in r.items]
            resolution = await ProfileIdentityResolver(db).resolve(identities)

            for post in posts:
                result = by_url.get(post.post_url)
                if result is None or not result.ok:
                    errors.append({"postId": str(post.id), "postUrl": post.post_url, "error": result.error if result else "not scraped"})
                    continue

                rows = []
                dropped = 0
                for item in result.items:
                    try:
                        profile_id = resolution.index.lookup(to_identity(item))
                    except IdentityResolutionError as e:
                        logger.warning(f"[JOBS] Dropping {kind[:-1]} on {post.post_id}: {e}")
                        dropped += 1
                        continue
                    rows.append(to_row(item, profile_id, now))

                try:
                    async with db.begin_nested():
                        stored = await replace(db, user_id, post.id, rows)
                except SQLAlchemyError as e:
                    logger.error(f"[JOBS] Saving {kind} for post {post.post_id} failed: {str(e)}")
                    errors.append({"postId": str(post.id), "postUrl": post.post_url, "error": str(e)})
                    continue

                saved_ids.append(post.id)
                stored_total += stored
                dropped_total += dropped
                entries.append({"postId": str(post.id), "postUrl": post.post_url, "count": stored, "skipped": dropped})

            await crud_post.mark_scraped(db, saved_ids, scrape_column, now)
            await crud_post.clear_engagement_flags(db, user_id, saved_ids)
            await crud_user_settings.touch_last_sync_time(db, user_id, now)
            job = await db.get(ScrapeJob, job_id)
            await crud_scrape_job.finish_scrape_job(
                db, job, stored_total,
                error_message=None if saved_ids else f"All {len(posts)} posts failed",
            )
            await db.commit()

        result = {
            "results": entries,
            "errors": errors,
            "totalSaved": stored_total,
            "skipped": dropped_total,
            "profilesProcessed": len(resolution.processed_profile_ids),
            "newProfiles": len(resolution.new_profile_ids),
            "profileErrors": resolution.errors,
        }
        if saved_ids:
            await tracker.complete(result, f"Saved {stored_total} {kind} for {len(saved_ids)} posts")
        else:
            await tracker.fail(f"All {len(posts)} posts failed to scrape", result)

    # --- Post metadata -------------------------------------------------------

    async def run_post_metadata(self, progress_id: str, user_id: str, post_ids: List[UUID], api_token: str) -> None:
        tracker = self.tracker(progress_id, user_id)
        await self._guarded(tracker, "metadata", lambda: self._run_post_metadata(tracker, user_id, post_ids, api_token))

    async def _run_post_metadata(self, tracker: ProgressTracker, user_id: str, post_ids: List[UUID], api_token: str) -> None:
        """Refresh counters and text of the given posts, flagging those whose engagement moved."""
        await tracker.start("Loading posts for metadata refresh", total_posts=len(post_ids))

        async with self.session_factory() as db:
            posts = await crud_post.get_user_posts(db, user_id, post_ids)
        if not posts:
            raise ValidationError("None of the requested posts were found")

        job_id = await self._start_job(tracker, user_id, "metadata", [p.post_id for p in posts])
        await tracker.update(ProgressStatus.SCRAPING, 10, f"Fetching metadata for {len(posts)} posts", total_posts=len(posts))
        results = await self.collector(api_token).collect_post_details(
            [p.post_url for p in posts],
            self._progress_callback(tracker, 10, 70),
        )
        by_url = {r.target: r for r in results}

        await tracker.update(ProgressStatus.SAVING, 85, "Saving post metadata")
        entries: List[Dict[str, Any]] = []
        errors: List[Dict[str, Any]] = []
        now = utcnow()

        async with self.session_factory() as db:
            for post in await crud_post.get_user_posts(db, user_id, [p.id for p in posts]):
                result = by_url.get(post.post_url)
                if result is None or not result.ok:
                    errors.append({"postId": str(post.id), "postUrl": post.post_url, "error": result.error if result else "not scraped"})
                    continue

                detail = result.items[0]
                changed = apply_engagement_delta(post, detail.engagement(), now)
                post.post_text = detail.post.text or post.post_text
                post.post_type = detail.post.type or post.post_type
                post.post_urn = detail.post.urn or post.post_urn
                if detail.author:
                    post.author_name = detail.author.name or post.author_name
                    post.author_headline = detail.author.headline or post.author_headline
                    post.author_profile_url = detail.author.profile_url or post.author_profile_url
                created_at = detail.post.created_at
                if created_at and created_at.timestamp and not post.posted_at_timestamp:
                    post.posted_at_timestamp = created_at.timestamp
                    post.posted_at_iso = from_epoch_millis(created_at.timestamp)
                entries.append({"postId": str(post.id), "postUrl": post.post_url, "changed": changed, **detail.engagement()})

            job = await db.get(ScrapeJob, job_id)
            await crud_scrape_job.finish_scrape_job(
                db, job, len(entries),
                error_message=None if entries else f"All {len(posts)} posts failed",
            )
            await crud_user_settings.touch_last_sync_time(db, user_id, now)
            await db.commit()

        result = {
            "results": entries,
            "errors": errors,
            "updated": len(entries),
            "changed": sum(1 for e in entries if e["changed"]),
        }
        if entries:
            await tracker.complete(result, f"Updated metadata for {len(entries)} posts")
        else:
            await tracker.fail(f"All {len(posts)} posts failed to refresh", result)

    # --- Profile posts -------------------------------------------------------

    async def run_profile_posts(
        self,
        progress_id: str,
        user_id: str,
        profile_url: str,
        api_token: str,
        max_posts: Optional[int] = None,
        scrape_until: Optional[str] = None,
    ) -> None:
        tracker = self.tracker(progress_id, user_id)
        await self._guarded(
            tracker, "profile posts",
            lambda: self._run_profile_posts(tracker, user_id, profile_url, api_token, max_posts, scrape_until),
        )

    async def _run_profile_posts(
        self,
        tracker: ProgressTracker,
        user_id: str,
        profile_url: str,
        api_token: str,
        max_posts: Optional[int],
        scrape_until: Optional[str],
    ) -> None:
        """Upsert the posts authored by a profile, keyed on (user_id, post_id)."""
        await tracker.start(f"Fetching posts for {profile_url}")
        job_id = await self._start_job(tracker, user_id, "posts", [profile_url])

        services = self.service_factory(api_token)
        await tracker.update(ProgressStatus.SCRAPING, 10, "Scraping profile posts")
        items = await services.profile_posts.get_profile_posts(
            profile_url,
            limit=max_posts or settings.PROFILE_POSTS_DEFAULT_LIMIT,
            scrape_until=scrape_until,
        )

        if not items:
            async with self.session_factory() as db:
                job = await db.get(ScrapeJob, job_id)
                await crud_scrape_job.finish_scrape_job(db, job, 0)
                await db.commit()
            await tracker.complete({
                "totalProcessed": 0,
                "newPosts": 0,
                "updatedPosts": 0,
                "postsWithEngagementUpdates": 0,
                "message": NO_PROFILE_POSTS_MESSAGE,
            }, NO_PROFILE_POSTS_MESSAGE)
            return

        await tracker.update(ProgressStatus.SAVING, 70, f"Saving {len(items)} posts", total_posts=len(items))
        now = utcnow()
        new_posts = updated_posts = engagement_updates = skipped = 0

        async with self.session_factory() as db:
            ids = [item.post_id() for item in items]
            existing = await crud_post.get_posts_by_linkedin_ids(db, user_id, [i for i in ids if i])
            written = set()

            for item, post_id in zip(items, ids):
                if not post_id or post_id in written:
                    skipped += 1
                    continue
                written.add(post_id)

                stored = existing.get(post_id)
                if stored is not None:
                    columns = engagement_columns(stored_engagement(stored), item.engagement(), now)
                    updated_posts += 1
                    if "engagement_needs_scraping" in columns:
                        engagement_updates += 1
                else:
                    columns = {"num_likes": item.num_likes, "num_comments": item.num_comments, "num_shares": item.num_shares}
                    new_posts += 1

                await crud_post.upsert_post(db, user_id, {
                    "post_id": post_id,
                    "post_url": item.url,
                    "post_urn": item.urn,
                    "author_name": item.author_name,
                    "author_profile_url": item.author_profile_url,
                    "author_profile_id": item.author_profile_id,
                    "post_text": item.text,
                    "post_type": item.type,
                    "posted_at_timestamp": item.posted_at_timestamp,
                    "posted_at_iso": parse_iso_datetime(item.posted_at_iso) or from_epoch_millis(item.posted_at_timestamp),
                    "scraped_at": now,
                    "metadata_last_updated_at": now,
                    **columns,
                })

            job = await db.get(ScrapeJob, job_id)
            await crud_scrape_job.finish_scrape_job(db, job, len(written))
            await crud_user_settings.touch_last_sync_time(db, user_id, now)
            await db.commit()

        await tracker.complete({
            "totalProcessed": len(written),
            "newPosts": new_posts,
            "updatedPosts": updated_posts,
            "postsWithEngagementUpdates": engagement_updates,
            "skipped": skipped,
        }, f"Saved {len(written)} posts")

    # --- Profile enrichment --------------------------------------------------

    async def run_profile_enrichment(
        self,
        progress_id: str,
        user_id: str,
        profile_ids: List[UUID],
        api_token: str,
        merge_duplicates: bool = False,
    ) -> None:
        tracker = self.tracker(progress_id, user_id)
        await self._guarded(
            tracker, "enrichment",
            lambda: self._run_profile_enrichment(tracker, user_id, profile_ids, api_token, merge_duplicates),
        )

    async def _run_profile_enrichment(
        self,
        tracker: ProgressTracker,
        user_id: str,
        profile_ids: List[UUID],
        api_token: str,
        merge_duplicates: bool,
    ) -> None:
        """
        Enrich profiles and copy the results onto the matching stored rows.

        With merge_duplicates, every enriched public identifier then gets a
        scoped merge pass.
        """
        await tracker.start("Loading profiles", total_posts=len(profile_ids))

        async with self.session_factory() as db:
            profiles = await crud_profile.get_profiles(db, profile_ids)
        if not profiles:
            raise ValidationError("None of the requested profiles were found")

        identifiers = []
        for profile in profiles:
            identifier = profile.public_identifier or profile.secondary_identifier or profile.primary_identifier or profile.profile_url
            if identifier:
                identifiers.append(identifier)

        job_id = await self._start_job(tracker, user_id, "enrichment", [str(p.id) for p in profiles])
        await tracker.update(ProgressStatus.SCRAPING, 10, f"Enriching {len(identifiers)} profiles")
        items = await self.collector(api_token).enrich_profiles(identifiers, self._progress_callback(tracker, 10, 60))

        await tracker.update(ProgressStatus.SAVING, 75, f"Saving {len(items)} enriched profiles")
        now = utcnow()
        enriched: Dict[UUID, Optional[str]] = {}
        unmatched = 0
        merge_results: List[Dict[str, Any]] = []

        async with self.session_factory() as db:
            for item in items:
                info = item.basic_info
                public = info.public_identifier if info else None
                match = await crud_profile.find_existing_profile_by_identifiers(
                    db,
                    urn=info.urn if info else None,
                    primary=info.urn if info else None,
                    secondary=public,
                    public=public,
                    profile_url=item.profile_url,
                )
                if match is None:
                    unmatched += 1
                    logger.warning(f"[ENRICH] No stored profile for {public or item.profile_url}")
                    continue
                crud_profile.apply_enrichment(match, item, now)
                enriched[match.id] = match.public_identifier
            await db.flush()

            if merge_duplicates:
                for public in sorted({p for p in enriched.values() if p}):
                    outcomes = await merge_duplicate_profiles(db, public)
                    merge_results.extend(o.to_dict() for o in outcomes)

            job = await db.get(ScrapeJob, job_id)
            await crud_scrape_job.finish_scrape_job(db, job, len(enriched))
            await db.commit()

        await tracker.complete({
            "requested": len(profiles),
            "enriched": len(enriched),
            "unmatched": unmatched,
            "merged": merge_results,
        }, f"Enriched {len(enriched)} of {len(profiles)} profiles")
