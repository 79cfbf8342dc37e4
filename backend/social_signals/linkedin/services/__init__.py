"""
Apify actor services.

Each service module wraps one scraping actor:
- reactions: one page of a post's reactions
- comments: bulk comments for up to 100 posts per run
- posts: post detail and a profile's own posts
- profile: batch profile enrichment
"""
from dataclasses import dataclass
from typing import Optional

import httpx

from .base import ApifyActorClient
from .reactions import ApifyReactionsService
from .comments import ApifyCommentsService
from .posts import ApifyPostDetailService, ApifyProfilePostsService
from .profile import ApifyProfileService


@dataclass
class ApifyServices:
    """All actor services bound to one user's API token."""
    reactions: ApifyReactionsService
    comments: ApifyCommentsService
    post_detail: ApifyPostDetailService
    profile_posts: ApifyProfilePostsService
    profiles: ApifyProfileService


def build_apify_services(api_token: str, transport: Optional[httpx.AsyncBaseTransport] = None, **kwargs) -> ApifyServices:
    return ApifyServices(
        reactions=ApifyReactionsService(api_token, transport=transport, **kwargs),
        comments=ApifyCommentsService(api_token, transport=transport, **kwargs),
        post_detail=ApifyPostDetailService(api_token, transport=transport, **kwargs),
        profile_posts=ApifyProfilePostsService(api_token, transport=transport, **kwargs),
        profiles=ApifyProfileService(api_token, transport=transport, **kwargs),
    )


__all__ = [
    'ApifyActorClient',
    'ApifyReactionsService',
    'ApifyCommentsService',
    'ApifyPostDetailService',
    'ApifyProfilePostsService',
    'ApifyProfileService',
    'ApifyServices',
    'build_apify_services',
]
