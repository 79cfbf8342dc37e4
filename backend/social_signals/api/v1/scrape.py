"""
API endpoints for starting scrape jobs and polling their progress.

Every start endpoint validates its input, registers a progress record and
hands the job to a background task. The returned progressId is polled at
/scrape/progress/{progress_id}.
"""
import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from social_signals.api.dependencies import get_apify_token, get_current_user_id, get_progress_store, get_workflows
from social_signals.crud import post as crud_post
from social_signals.crud import profile as crud_profile
from social_signals.db.session import get_db
from social_signals.schemas.progress import JobStartedResponse, ProgressRecord
from social_signals.schemas.scrape import EnrichProfilesRequest, PostsScrapeRequest, ProfilePostsScrapeRequest
from social_signals.services.progress import ProgressStatus, ProgressStore, new_progress_id
from social_signals.services.scrape_jobs import ScrapeWorkflows

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/scrape",
    tags=["scrape"],
)


async def _require_posts(db: AsyncSession, user_id: str, post_ids: List[UUID]) -> None:
    posts = await crud_post.get_user_posts(db, user_id, post_ids)
    missing = set(post_ids) - {p.id for p in posts}
    if missing:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Posts not found: {', '.join(sorted(str(m) for m in missing))}",
        )


async def _register(workflows: ScrapeWorkflows, user_id: str, step: str) -> str:
    progress_id = new_progress_id()
    await workflows.tracker(progress_id, user_id).update(ProgressStatus.STARTING, 0, step)
    return progress_id


async def _start_posts_job(
    kind: str,
    request_data: PostsScrapeRequest,
    background_tasks: BackgroundTasks,
    user_id: str,
    api_token: str,
    db: AsyncSession,
    workflows: ScrapeWorkflows,
) -> JobStartedResponse:
    await _require_posts(db, user_id, request_data.post_ids)
    runners = {
        "reactions": workflows.run_reactions,
        "comments": workflows.run_comments,
        "metadata": workflows.run_post_metadata,
    }
    progress_id = await _register(workflows, user_id, f"Queued {kind} scrape for {len(request_data.post_ids)} posts")
    background_tasks.add_task(runners[kind], progress_id, user_id, list(request_data.post_ids), api_token)
    logger.info(f"[SCRAPE] Started {kind} job {progress_id} for user {user_id}")
    return JobStartedResponse(progressId=progress_id)


@router.post("/reactions", response_model=JobStartedResponse, status_code=status.HTTP_202_ACCEPTED)
async def start_reactions_scrape(
    request_data: PostsScrapeRequest,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(get_current_user_id),
    api_token: str = Depends(get_apify_token),
    db: AsyncSession = Depends(get_db),
    workflows: ScrapeWorkflows = Depends(get_workflows),
):
    """
    Scrape all reactions of the given posts.

    Raises:
        HTTPException 400: If no Apify key is configured
        HTTPException 404: If any post is unknown
    """
    return await _start_posts_job("reactions", request_data, background_tasks, user_id, api_token, db, workflows)


@router.post("/comments", response_model=JobStartedResponse, status_code=status.HTTP_202_ACCEPTED)
async def start_comments_scrape(
    request_data: PostsScrapeRequest,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(get_current_user_id),
    api_token: str = Depends(get_apify_token),
    db: AsyncSession = Depends(get_db),
    workflows: ScrapeWorkflows = Depends(get_workflows),
):
    """Scrape all comments of the given posts."""
    return await _start_posts_job("comments", request_data, background_tasks, user_id, api_token, db, workflows)


@router.post("/post-metadata", response_model=JobStartedResponse, status_code=status.HTTP_202_ACCEPTED)
async def start_post_metadata_scrape(
    request_data: PostsScrapeRequest,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(get_current_user_id),
    api_token: str = Depends(get_apify_token),
    db: AsyncSession = Depends(get_db),
    workflows: ScrapeWorkflows = Depends(get_workflows),
):
    """Refresh counters and text of the given posts, flagging changed engagement."""
    return await _start_posts_job("metadata", request_data, background_tasks, user_id, api_token, db, workflows)


@router.post("/profile-posts", response_model=JobStartedResponse, status_code=status.HTTP_202_ACCEPTED)
async def start_profile_posts_scrape(
    request_data: ProfilePostsScrapeRequest,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(get_current_user_id),
    api_token: str = Depends(get_apify_token),
    workflows: ScrapeWorkflows = Depends(get_workflows),
):
    """Fetch the posts a profile authored and track them."""
    progress_id = await _register(workflows, user_id, f"Queued posts scrape for {request_data.profile_url}")
    background_tasks.add_task(
        workflows.run_profile_posts,
        progress_id,
        user_id,
        request_data.profile_url,
        api_token,
        request_data.max_posts,
        request_data.scrape_until,
    )
    logger.info(f"[SCRAPE] Started profile posts job {progress_id} for user {user_id}")
    return JobStartedResponse(progressId=progress_id)


@router.post("/enrich-profiles", response_model=JobStartedResponse, status_code=status.HTTP_202_ACCEPTED)
async def start_profile_enrichment(
    request_data: EnrichProfilesRequest,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(get_current_user_id),
    api_token: str = Depends(get_apify_token),
    db: AsyncSession = Depends(get_db),
    workflows: ScrapeWorkflows = Depends(get_workflows),
):
    """
    Enrich the given profiles with full profile data.

    With merge_duplicates set, duplicates sharing an enriched public
    identifier are merged once enrichment finishes.
    """
    profiles = await crud_profile.get_profiles(db, request_data.profile_ids)
    if not profiles:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="None of the requested profiles were found",
        )

    progress_id = await _register(workflows, user_id, f"Queued enrichment of {len(profiles)} profiles")
    background_tasks.add_task(
        workflows.run_profile_enrichment,
        progress_id,
        user_id,
        [p.id for p in profiles],
        api_token,
        request_data.merge_duplicates,
    )
    logger.info(f"[SCRAPE] Started enrichment job {progress_id} for user {user_id}")
    return JobStartedResponse(progressId=progress_id)


@router.get("/progress/{progress_id}", response_model=ProgressRecord, response_model_exclude_none=True)
async def get_scrape_progress(
    progress_id: str,
    user_id: str = Depends(get_current_user_id),
    store: ProgressStore = Depends(get_progress_store),
):
    """
    Poll a job.

    Raises:
        HTTPException 404: If the job is unknown, expired or belongs to another user
    """
    record = await store.read(progress_id, user_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Progress not found",
        )
    return record
