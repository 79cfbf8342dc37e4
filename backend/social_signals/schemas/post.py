"""
Pydantic schemas for posts.
"""
from typing import List, Optional
from pydantic import BaseModel, Field
from datetime import datetime
from uuid import UUID


class RegisterPostsRequest(BaseModel):
    """Request model for registering posts to track."""
    urls: str = Field(..., description="Post URLs or 19-digit post ids separated by newlines, commas or spaces")


class InvalidPostEntry(BaseModel):
    input: str = Field(..., description="The rejected entry")
    error: str = Field(..., description="Why the entry was rejected")


class PostInDB(BaseModel):
    """Schema for post data as stored in the database."""
    id: UUID = Field(..., description="Database ID of the post")
    post_id: str = Field(..., description="LinkedIn post id")
    post_url: str = Field(..., description="URL of the post")
    num_likes: int = Field(0, description="Number of reactions")
    num_comments: int = Field(0, description="Number of comments")
    num_shares: int = Field(0, description="Number of shares")
    engagement_needs_scraping: bool = Field(False, description="Engagement changed since the last reactions/comments scrape")
    engagement_last_updated_at: Optional[datetime] = Field(None, description="When the change was detected")

    class Config:
        from_attributes = True


class RegisterPostsResponse(BaseModel):
    posts: List[PostInDB] = Field(..., description="Registered posts")
    invalid: List[InvalidPostEntry] = Field(default_factory=list, description="Entries that could not be parsed")


class ClearEngagementFlagsRequest(BaseModel):
    post_ids: List[UUID] = Field(..., min_length=1, description="Database IDs of the posts to clear")


class ClearEngagementFlagsResponse(BaseModel):
    updated: int = Field(..., description="Number of posts updated")
