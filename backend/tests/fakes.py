"""
In-memory stand-ins for the Apify actor services and item builders.
"""
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from social_signals.core.errors import ProviderError
from social_signals.db.models.post import Post
from social_signals.db.models.profile import Profile
from social_signals.linkedin.services import ApifyServices
from social_signals.schemas.apify import (
    CommentItem,
    EnrichedProfileItem,
    PostDetailItem,
    ProfilePostItem,
    ReactionItem,
)


def post_url(post_id: str) -> str:
    return f"https://www.linkedin.com/posts/activity-{post_id}"


def reaction(profile_url: str, urn: Optional[str] = None, name: str = "Jane Doe",
             reaction_type: str = "LIKE", total: Optional[int] = None, page: int = 1) -> ReactionItem:
    return ReactionItem.model_validate({
        "reaction_type": reaction_type,
        "reactor": {
            "urn": urn,
            "name": name,
            "headline": "Engineer",
            "profile_url": profile_url,
            "profile_pictures": {"small": "https://img/s.jpg", "large": "https://img/l.jpg"},
        },
        "_metadata": {"page_number": page, "total_reactions": total},
    })


def comment(comment_id: str, post_input: str, profile_url: str, total: Optional[int] = None,
            page: int = 1, name: str = "Sam Roe") -> CommentItem:
    return CommentItem.model_validate({
        "comment_id": comment_id,
        "text": f"comment {comment_id}",
        "comment_url": f"{post_input}?commentUrn={comment_id}",
        "posted_at": {"timestamp": 1714550400000, "date": "2024-05-01 08:00:00"},
        "stats": {"total_reactions": 2, "reactions": {"LIKE": 2}, "comments": 0},
        "author": {"name": name, "headline": "PM", "profile_url": profile_url},
        "post_input": post_input,
        "totalComments": total,
        "_metadata": {"page_number": page},
    })


def post_detail(likes: int, comments: int, shares: int, text: str = "Hello") -> PostDetailItem:
    return PostDetailItem.model_validate({
        "post": {"id": "1", "text": text, "type": "regular", "created_at": {"timestamp": 1714550400000}},
        "author": {"name": "Author", "profile_url": "https://www.linkedin.com/in/author"},
        "stats": {"total_reactions": likes, "comments": comments, "shares": shares},
    })


def profile_post(post_id: str, likes: int = 0, comments: int = 0, shares: int = 0) -> ProfilePostItem:
    return ProfilePostItem.model_validate({
        "url": post_url(post_id),
        "urn": f"urn:li:activity:{post_id}",
        "authorName": "Author",
        "text": f"post {post_id}",
        "numLikes": likes,
        "numComments": comments,
        "numShares": shares,
        "postedAtTimestamp": 1714550400000,
        "postedAtISO": "2024-05-01T08:00:00.000Z",
    })


def enriched(public_identifier: str, urn: Optional[str] = None, first: str = "Jane", last: str = "Doe") -> EnrichedProfileItem:
    return EnrichedProfileItem.model_validate({
        "basic_info": {
            "first_name": first,
            "last_name": last,
            "fullname": f"{first} {last}",
            "public_identifier": public_identifier,
            "urn": urn,
            "location": {"country": "Romania", "city": "Cluj"},
        },
        "experience": [{"title": "CTO", "company": "Acme", "is_current": True}],
        "profileUrl": f"https://www.linkedin.com/in/{public_identifier}",
    })


class FakeReactions:
    def __init__(self, pages: Optional[Dict[str, Dict[int, List[ReactionItem]]]] = None, failing: Iterable = ()):
        self.pages = pages or {}
        self.failing = set(failing)
        self.calls = []

    async def get_reactions_page(self, post_url, page_number=1, limit=100, reaction_type="ALL"):
        self.calls.append((post_url, page_number))
        if post_url in self.failing or (post_url, page_number) in self.failing:
            raise ProviderError(f"run failed for {post_url}")
        return list(self.pages.get(post_url, {}).get(page_number, []))


class FakeComments:
    def __init__(self, pages: Optional[Dict[str, Dict[int, List[CommentItem]]]] = None, failing: Iterable = ()):
        self.pages = pages or {}
        self.failing = set(failing)
        self.calls = []

    async def get_comments(self, post_urls, page_number=1, limit=100):
        self.calls.append((tuple(post_urls), page_number))
        items = []
        for url in post_urls:
            if url in self.failing or (url, page_number) in self.failing:
                raise ProviderError(f"run failed for {url}")
            items.extend(self.pages.get(url, {}).get(page_number, []))
        return items


class FakePostDetail:
    def __init__(self, details: Optional[Dict[str, PostDetailItem]] = None):
        self.details = details or {}

    async def get_post_detail(self, post_url):
        if post_url not in self.details:
            raise ProviderError(f"No post detail returned for {post_url}")
        return self.details[post_url]


class FakeProfilePosts:
    def __init__(self, items: Optional[List[ProfilePostItem]] = None, error: Optional[str] = None):
        self.items = items or []
        self.error = error
        self.calls = []

    async def get_profile_posts(self, profile_url, limit=100, scrape_until=None):
        self.calls.append((profile_url, limit, scrape_until))
        if self.error:
            raise ProviderError(self.error)
        return list(self.items)


class FakeProfiles:
    def __init__(self, profiles: Optional[Dict[str, EnrichedProfileItem]] = None, failing: Iterable = ()):
        self.profiles = profiles or {}
        self.failing = set(failing)
        self.calls = []

    async def enrich_profiles(self, identifiers):
        self.calls.append(list(identifiers))
        if self.failing.intersection(identifiers):
            raise ProviderError("enrichment run failed")
        return [self.profiles[i] for i in identifiers if i in self.profiles]


def fake_services(reactions=None, comments=None, post_detail=None, profile_posts=None, profiles=None) -> ApifyServices:
    return ApifyServices(
        reactions=reactions or FakeReactions(),
        comments=comments or FakeComments(),
        post_detail=post_detail or FakePostDetail(),
        profile_posts=profile_posts or FakeProfilePosts(),
        profiles=profiles or FakeProfiles(),
    )


def make_post(user_id: str, post_id: str, **values) -> Post:
    return Post(user_id=user_id, post_id=post_id, post_url=post_url(post_id), **values)


def make_profile(urn: str, first_seen: Optional[datetime] = None, **values) -> Profile:
    first_seen = first_seen or datetime(2024, 1, 1, tzinfo=timezone.utc)
    values.setdefault("alternative_urns", [])
    return Profile(urn=urn, first_seen=first_seen, last_updated=first_seen, **values)
