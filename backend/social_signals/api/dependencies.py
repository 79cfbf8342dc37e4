"""
Shared dependencies for API endpoints.
"""
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from social_signals.crud import user_settings as crud_user_settings
from social_signals.db.session import get_db
from social_signals.services.progress import ProgressStore
from social_signals.services.scrape_jobs import ScrapeWorkflows


async def get_current_user_id(x_user_id: Optional[str] = Header(None, alias="X-User-Id")) -> str:
    """
    The caller's user id, as set by the fronting gateway.

    Raises:
        HTTPException 401: If the header is missing or blank
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    return x_user_id.strip()


async def get_apify_token(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> str:
    """
    The user's Apify API token.

    Raises:
        HTTPException 400: If the user has not configured one
    """
    token = await crud_user_settings.get_apify_api_key(db, user_id)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Apify API key not configured. Add it in your settings first.",
        )
    return token


def get_workflows(request: Request) -> ScrapeWorkflows:
    """The workflow runner created at startup (see main.py)."""
    return request.app.state.workflows


def get_progress_store(request: Request) -> ProgressStore:
    return request.app.state.workflows.progress_store
