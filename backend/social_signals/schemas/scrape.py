"""
Pydantic schemas for scrape job requests.
"""
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, Field, field_validator


class PostsScrapeRequest(BaseModel):
    """Request model for reactions, comments and metadata scrapes."""
    post_ids: List[UUID] = Field(..., min_length=1, description="Database IDs of the posts to scrape")


class ProfilePostsScrapeRequest(BaseModel):
    """Request model for scraping the posts authored by a profile."""
    profile_url: str = Field(..., description="LinkedIn profile URL or vanity name")
    max_posts: Optional[int] = Field(None, ge=1, le=1000, description="Maximum number of posts to fetch")
    scrape_until: Optional[str] = Field(None, description="ISO date; older posts are not fetched")

    @field_validator("profile_url")
    def profile_url_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("profile_url cannot be empty")
        return v.strip()


class EnrichProfilesRequest(BaseModel):
    """Request model for profile enrichment."""
    profile_ids: List[UUID] = Field(..., min_length=1, description="Database IDs of the profiles to enrich")
    merge_duplicates: bool = Field(False, description="Merge duplicate profiles for each enriched public identifier afterwards")
