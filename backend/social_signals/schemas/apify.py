"""
Pydantic schemas for Apify actor dataset items.

Each actor gets its own item model; raw dataset rows are validated into these
at the client boundary so the rest of the pipeline never touches untyped dicts.
"""
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, Field, field_validator

from social_signals.linkedin.utils.parsers import post_id_from_url


def _coerce_str(value: Any) -> Any:
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


class ActorItem(BaseModel):
    """Common config for dataset items."""

    class Config:
        populate_by_name = True
        extra = "ignore"


# --- Reactions ---------------------------------------------------------------

class ProfilePictures(ActorItem):
    small: Optional[str] = None
    medium: Optional[str] = None
    large: Optional[str] = None
    original: Optional[str] = None

    def largest(self) -> Optional[str]:
        return self.original or self.large or self.medium or self.small


class Reactor(ActorItem):
    urn: Optional[str] = Field(None, description="Member URN or opaque id of the reactor")
    name: Optional[str] = None
    headline: Optional[str] = None
    profile_url: str = Field(..., description="Profile URL of the reactor")
    profile_pictures: Optional[ProfilePictures] = None


class ReactionMetadata(ActorItem):
    post_url: Optional[str] = None
    page_number: Optional[int] = None
    reaction_type: Optional[str] = None
    total_reactions: Optional[int] = Field(None, description="Total reactions on the post across all pages")


class ReactionItem(ActorItem):
    """One reaction row from the post-reactions actor."""
    reaction_type: str = Field(..., description="LIKE, PRAISE, EMPATHY, ...")
    reactor: Reactor
    metadata: Optional[ReactionMetadata] = Field(None, alias="_metadata")

    @field_validator("reaction_type")
    def reaction_type_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("reaction_type is empty")
        return v

    @field_validator("reactor")
    def reactor_has_profile_url(cls, v: Reactor) -> Reactor:
        if not v.profile_url or not v.profile_url.strip():
            raise ValueError("reactor.profile_url is empty")
        return v


# --- Comments ----------------------------------------------------------------

class CommentAuthor(ActorItem):
    name: Optional[str] = None
    headline: Optional[str] = None
    profile_url: str
    profile_picture: Optional[str] = None


class CommentPostedAt(ActorItem):
    timestamp: Optional[int] = None
    date: Optional[str] = None


class CommentStats(ActorItem):
    total_reactions: int = 0
    reactions: Dict[str, int] = Field(default_factory=dict)
    comments: int = 0


class CommentMetadata(ActorItem):
    page_number: Optional[int] = None


class CommentItem(ActorItem):
    """One comment row from the bulk post-comments actor."""
    comment_id: str
    text: Optional[str] = None
    comment_url: Optional[str] = None
    posted_at: Optional[CommentPostedAt] = None
    is_edited: bool = False
    is_pinned: bool = False
    stats: CommentStats = Field(default_factory=CommentStats)
    author: CommentAuthor
    post_input: str = Field(..., description="The post URL or id this comment was requested for")
    total_comments: Optional[int] = Field(None, alias="totalComments", description="Total comments on the post")
    metadata: Optional[CommentMetadata] = Field(None, alias="_metadata")

    @field_validator("comment_id", "post_input", mode="before")
    def ids_as_str(cls, v: Any) -> Any:
        return _coerce_str(v)


# --- Post detail -------------------------------------------------------------

class PostCreatedAt(ActorItem):
    timestamp: Optional[int] = None
    date: Optional[str] = None


class PostInfo(ActorItem):
    id: Optional[str] = None
    url: Optional[str] = None
    urn: Optional[str] = None
    text: Optional[str] = None
    type: Optional[str] = None
    created_at: Optional[PostCreatedAt] = None

    @field_validator("id", mode="before")
    def id_as_str(cls, v: Any) -> Any:
        return _coerce_str(v)


class PostAuthor(ActorItem):
    name: Optional[str] = None
    headline: Optional[str] = None
    profile_url: Optional[str] = None
    profile_picture: Optional[str] = None


class PostStats(ActorItem):
    total_reactions: int = 0
    reactions: Dict[str, int] = Field(default_factory=dict)
    comments: int = 0
    shares: int = 0


class PostDetailItem(ActorItem):
    """Post detail from the post-detail actor."""
    post: PostInfo
    author: Optional[PostAuthor] = None
    stats: PostStats = Field(default_factory=PostStats)

    def engagement(self) -> Dict[str, int]:
        return {
            "likes": self.stats.total_reactions,
            "comments": self.stats.comments,
            "shares": self.stats.shares,
        }


# --- Profile posts -----------------------------------------------------------

class ProfilePostItem(ActorItem):
    """A post authored by a profile, from the profile-posts actor."""
    url: str
    urn: Optional[str] = None
    author_name: Optional[str] = Field(None, alias="authorName")
    author_profile_url: Optional[str] = Field(None, alias="authorProfileUrl")
    author_profile_id: Optional[str] = Field(None, alias="authorProfileId")
    text: Optional[str] = None
    type: Optional[str] = None
    num_likes: int = Field(0, alias="numLikes")
    num_comments: int = Field(0, alias="numComments")
    num_shares: int = Field(0, alias="numShares")
    posted_at_timestamp: Optional[int] = Field(None, alias="postedAtTimestamp")
    posted_at_iso: Optional[str] = Field(None, alias="postedAtISO")

    @field_validator("num_likes", "num_comments", "num_shares", mode="before")
    def none_is_zero(cls, v: Any) -> Any:
        return 0 if v is None else v

    def post_id(self) -> Optional[str]:
        return post_id_from_url(self.url) or post_id_from_url(self.urn)

    def engagement(self) -> Dict[str, int]:
        return {"likes": self.num_likes, "comments": self.num_comments, "shares": self.num_shares}


# --- Profile enrichment ------------------------------------------------------

class EnrichmentLocation(ActorItem):
    country: Optional[str] = None
    city: Optional[str] = None


class BasicInfo(ActorItem):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    fullname: Optional[str] = None
    headline: Optional[str] = None
    public_identifier: Optional[str] = None
    profile_picture_url: Optional[str] = None
    location: Optional[EnrichmentLocation] = None
    urn: Optional[str] = None


class ExperienceEntry(ActorItem):
    title: Optional[str] = None
    company: Optional[str] = None
    is_current: bool = False
    company_linkedin_url: Optional[str] = None


class EnrichedProfileItem(ActorItem):
    """A full profile from the profile-enrichment actor."""
    basic_info: Optional[BasicInfo] = None
    experience: List[ExperienceEntry] = Field(default_factory=list)
    profile_url: Optional[str] = Field(None, alias="profileUrl")
    message: Optional[str] = None

    @field_validator("experience", mode="before")
    def none_is_empty(cls, v: Union[list, None]) -> list:
        return v or []

    def is_not_found(self) -> bool:
        return bool(self.message and "No profile found" in self.message)

    def current_experience(self) -> Optional[ExperienceEntry]:
        for entry in self.experience:
            if entry.is_current:
                return entry
        return self.experience[0] if self.experience else None
