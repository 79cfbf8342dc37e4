"""
Paginated, bounded-concurrency collection of engagement data.

The collector drives the Apify actor services across many targets (posts or
profile identifiers). A failure on one target is captured on that target's
result and never aborts its siblings.
"""
import asyncio
import math
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Set
import logging

from social_signals.core.config import settings
from social_signals.core.rate_limit import apply_batch_delay
from social_signals.linkedin.services import ApifyServices
from social_signals.schemas.apify import CommentItem, EnrichedProfileItem, PostDetailItem, ReactionItem

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str], Awaitable[None]]


@dataclass
class TargetResult:
    """Items collected for one target, or the error that stopped it."""
    target: str
    items: List[Any] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class CollectorLimits:
    """Page sizes, caps and batch sizes; defaults come from settings."""
    reactions_page_size: int = settings.REACTIONS_PAGE_SIZE
    reactions_max_pages: int = settings.REACTIONS_MAX_PAGES
    reactions_batch_size: int = settings.REACTIONS_POST_BATCH_SIZE
    comments_bulk_size: int = settings.COMMENTS_BULK_BATCH_SIZE
    comments_max_concurrent: int = settings.COMMENTS_MAX_CONCURRENT_BATCHES
    comments_page_size: int = settings.COMMENTS_PAGE_SIZE
    comments_safety_margin: int = settings.COMMENTS_PAGE_SAFETY_MARGIN
    comments_max_pages: int = settings.COMMENTS_MAX_PAGES
    enrichment_batch_size: int = settings.ENRICHMENT_BATCH_SIZE
    enrichment_max_concurrent: int = settings.ENRICHMENT_MAX_CONCURRENT_JOBS
    metadata_batch_size: int = settings.METADATA_BATCH_SIZE
    metadata_batch_delay: float = settings.METADATA_BATCH_DELAY_SECONDS


def unique_targets(targets: Iterable[str]) -> List[str]:
    """Drop empty and repeated targets, keeping first-seen order."""
    seen: Set[str] = set()
    ordered = []
    for target in targets:
        if target and target not in seen:
            seen.add(target)
            ordered.append(target)
    return ordered


def reaction_page_count(total: Optional[int], page_size: int, max_pages: int) -> int:
    """
    Number of reaction pages to fetch for a post.

    Examples:
        >>> reaction_page_count(80, 100, 10)
        1
        >>> reaction_page_count(250, 100, 10)
        3
        >>> reaction_page_count(5000, 100, 10)
        10
    """
    if not total or total <= page_size:
        return 1
    return min(math.ceil(total / page_size), max_pages)


def known_comment_total(items: List[CommentItem]) -> Optional[int]:
    totals = [item.total_comments for item in items if item.total_comments is not None]
    return max(totals) if totals else None


class EngagementCollector:
    """
    Collects reactions, comments, post details and enriched profiles.
    """

    def __init__(self, services: ApifyServices, limits: Optional[CollectorLimits] = None):
        self.services = services
        self.limits = limits or CollectorLimits()

    async def _isolate(self, target: str, fetch: Callable[[str], Awaitable[List[Any]]]) -> TargetResult:
        try:
            return TargetResult(target=target, items=await fetch(target))
        except Exception as e:
            logger.error(f"[COLLECT] Target {target} failed: {str(e)}")
            return TargetResult(target=target, error=str(e))

    async def _in_batches(
        self,
        targets: List[str],
        batch_size: int,
        fetch: Callable[[str], Awaitable[List[Any]]],
        progress_callback: Optional[ProgressCallback] = None,
        delay: float = 0.0,
        label: str = "COLLECT",
    ) -> List[TargetResult]:
        results: List[TargetResult] = []
        for start in range(0, len(targets), batch_size):
            if start and delay:
                await apply_batch_delay(delay, operation_name=label)
            batch = targets[start:start + batch_size]
            results.extend(await asyncio.gather(*(self._isolate(t, fetch) for t in batch)))
            if progress_callback:
                await progress_callback(len(results), len(targets), f"Processed {len(results)}/{len(targets)}")
        return results

    # --- Reactions -----------------------------------------------------------

    async def collect_post_reactions(self, post_url: str) -> List[ReactionItem]:
        """
        All reactions of one post.

        Page 1 is fetched first; its total_reactions decides how many more
        pages are fetched concurrently. Any failing page fails the post.
        """
        page_size = self.limits.reactions_page_size
        first_page = await self.services.reactions.get_reactions_page(post_url, 1, page_size)
        if not first_page:
            return []

        metadata = first_page[0].metadata
        total = metadata.total_reactions if metadata else None
        page_count = reaction_page_count(total, page_size, self.limits.reactions_max_pages)
        if page_count <= 1:
            return first_page

        logger.info(f"[REACTIONS] {post_url}: {total} reactions, fetching {page_count} pages")
        other_pages = await asyncio.gather(*(
            self.services.reactions.get_reactions_page(post_url, page, page_size)
            for page in range(2, page_count + 1)
        ))
        reactions = list(first_page)
        for page in other_pages:
            reactions.extend(page)
        return reactions

    async def collect_reactions(
        self,
        post_urls: Iterable[str],
        progress_callback: Optional[ProgressCallback] = None,
    ) -> List[TargetResult]:
        targets = unique_targets(post_urls)
        return await self._in_batches(
            targets,
            self.limits.reactions_batch_size,
            self.collect_post_reactions,
            progress_callback,
            label="REACTIONS",
        )

    # --- Comments ------------------------------------------------------------

    def _needs_more_comments(self, items: List[CommentItem]) -> bool:
        total = known_comment_total(items)
        return bool(total and total > self.limits.comments_page_size and len(items) < total)

    async def _paginate_comments(self, target: str, first_page: List[CommentItem]) -> List[CommentItem]:
        """
        Fetch pages 2.. for a single post.

        Stops on the first page with no unseen comment ids, once the running
        count reaches the known total, or past the expected page count plus
        the safety margin (never past comments_max_pages).
        """
        total = known_comment_total(first_page) or 0
        page_size = self.limits.comments_page_size
        expected_pages = math.ceil(total / page_size)
        last_page = min(expected_pages + self.limits.comments_safety_margin, self.limits.comments_max_pages)

        collected = list(first_page)
        seen = {item.comment_id for item in collected}
        page = 2
        while page <= last_page:
            items = await self.services.comments.get_comments([target], page, page_size)
            fresh = [item for item in items if item.comment_id not in seen]
            if not fresh:
                logger.info(f"[COMMENTS] {target}: page {page} had no new comments, stopping")
                break
            for item in fresh:
                seen.add(item.comment_id)
                collected.append(item)
            if len(seen) >= total:
                break
            page += 1
        else:
            logger.warning(f"[COMMENTS] {target}: stopped at page cap {last_page} with {len(seen)}/{total} comments")

        return collected

    async def collect_comments(
        self,
        post_urls: Iterable[str],
        progress_callback: Optional[ProgressCallback] = None,
    ) -> List[TargetResult]:
        """
        Comments for many posts.

        Posts are requested in bulk (comments_bulk_size per run, at most
        comments_max_concurrent runs at once). Posts whose totalComments exceed
        one page are then paginated individually, each at most once.
        """
        targets = unique_targets(post_urls)
        by_target: Dict[str, TargetResult] = {t: TargetResult(target=t) for t in targets}
        bulk_size = self.limits.comments_bulk_size
        chunks = [targets[i:i + bulk_size] for i in range(0, len(targets), bulk_size)]

        async def run_chunk(chunk: List[str]) -> None:
            try:
                items = await self.services.comments.get_comments(chunk, 1, self.limits.comments_page_size)
            except Exception as e:
                logger.error(f"[COMMENTS] Bulk run for {len(chunk)} posts failed: {str(e)}")
                for target in chunk:
                    by_target[target].error = str(e)
                return
            for item in items:
                if item.post_input in by_target:
                    by_target[item.post_input].items.append(item)
                else:
                    logger.warning(f"[COMMENTS] Dropping comment for unrequested post {item.post_input}")

        max_concurrent = self.limits.comments_max_concurrent
        for start in range(0, len(chunks), max_concurrent):
            await asyncio.gather(*(run_chunk(chunk) for chunk in chunks[start:start + max_concurrent]))
        if progress_callback:
            await progress_callback(len(targets), len(targets), "Fetched first page of comments")

        paginated: Set[str] = set()

        async def follow_up(target: str) -> None:
            if target in paginated:
                return
            paginated.add(target)
            result = by_target[target]
            try:
                result.items = await self._paginate_comments(target, result.items)
            except Exception as e:
                logger.error(f"[COMMENTS] Pagination for {target} failed: {str(e)}")
                result.error = str(e)

        pending = [t for t in targets if by_target[t].ok and self._needs_more_comments(by_target[t].items)]
        if pending:
            logger.info(f"[COMMENTS] {len(pending)} posts need more than one page")
        for start in range(0, len(pending), max_concurrent):
            await asyncio.gather(*(follow_up(t) for t in pending[start:start + max_concurrent]))

        return [by_target[t] for t in targets]

    # --- Post details --------------------------------------------------------

    async def collect_post_details(
        self,
        post_urls: Iterable[str],
        progress_callback: Optional[ProgressCallback] = None,
    ) -> List[TargetResult]:
        """Current detail for each post; a TargetResult holds at most one PostDetailItem."""
        async def fetch(post_url: str) -> List[PostDetailItem]:
            return [await self.services.post_detail.get_post_detail(post_url)]

        return await self._in_batches(
            unique_targets(post_urls),
            self.limits.metadata_batch_size,
            fetch,
            progress_callback,
            delay=self.limits.metadata_batch_delay,
            label="POST METADATA",
        )

    # --- Enrichment ----------------------------------------------------------

    async def _enrich_chunk(self, identifiers: List[str]) -> List[EnrichedProfileItem]:
        try:
            return await self.services.profiles.enrich_profiles(identifiers)
        except Exception as e:
            logger.error(f"[ENRICH] Batch of {len(identifiers)} profiles failed: {str(e)}")
            return []

    async def enrich_profiles(
        self,
        identifiers: Iterable[str],
        progress_callback: Optional[ProgressCallback] = None,
    ) -> List[EnrichedProfileItem]:
        """
        Enriched profiles for the given identifiers.

        A failed batch contributes nothing; the other batches still count.
        """
        unique = unique_targets(identifiers)
        size = self.limits.enrichment_batch_size
        chunks = [unique[i:i + size] for i in range(0, len(unique), size)]
        max_concurrent = self.limits.enrichment_max_concurrent

        profiles: List[EnrichedProfileItem] = []
        done = 0
        for start in range(0, len(chunks), max_concurrent):
            wave = chunks[start:start + max_concurrent]
            for batch in await asyncio.gather(*(self._enrich_chunk(chunk) for chunk in wave)):
                profiles.extend(batch)
            done += len(wave)
            if progress_callback:
                await progress_callback(done, len(chunks), f"Enriched {done}/{len(chunks)} batches")
        return profiles
