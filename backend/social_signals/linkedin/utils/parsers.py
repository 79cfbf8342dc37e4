"""
URL parsing utilities for LinkedIn posts.
"""
import re
from dataclasses import dataclass
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)

POST_ID_RE = re.compile(r"^\d{19}$")

POST_URL_PATTERNS = [
    # /posts/username_activity-POSTID (optional suffix)
    re.compile(r"linkedin\.com/posts/[^/]+_activity-(\d{19})(?:-[a-zA-Z0-9]+)?"),
    # /posts/activity-POSTID (optional suffix)
    re.compile(r"linkedin\.com/posts/activity-(\d{19})(?:-[a-zA-Z0-9]+)?"),
    # /posts/username_title-activity-POSTID (optional suffix)
    re.compile(r"linkedin\.com/posts/[^/]+-activity-(\d{19})(?:-[a-zA-Z0-9]+)?"),
    # /feed/update/urn:li:activity:POSTID
    re.compile(r"linkedin\.com/feed/update/urn:li:activity:(\d{19})"),
    # /in/username/detail/recent-activity/urn:li:activity:POSTID
    re.compile(r"linkedin\.com/in/[^/]+/detail/recent-activity/urn:li:activity:(\d{19})"),
]

INVALID_POST_URL_ERROR = (
    "Invalid LinkedIn post URL format. Please provide a valid LinkedIn post URL or post ID."
)
NOT_LINKEDIN_URL_ERROR = "Not a LinkedIn URL. Please provide a LinkedIn post URL or post ID."


@dataclass
class LinkedInPostData:
    post_url: str
    post_id: Optional[str]
    is_valid: bool
    error: Optional[str] = None


def canonical_post_url(post_id: str) -> str:
    return f"https://www.linkedin.com/posts/activity-{post_id}"


def is_linkedin_url(value: str) -> bool:
    """True for anything on linkedin.com, or a bare 19-digit post id."""
    if not value:
        return False
    return "linkedin.com" in value.lower() or bool(POST_ID_RE.match(value.strip()))


def extract_linkedin_post_id(value: str) -> LinkedInPostData:
    """
    Extract the numeric post id from a post URL or a bare 19-digit id.

    Examples:
        >>> extract_linkedin_post_id("7302346926123798528").post_url
        'https://www.linkedin.com/posts/activity-7302346926123798528'
        >>> extract_linkedin_post_id("https://www.linkedin.com/posts/jdoe_activity-7302346926123798528-abcd").post_id
        '7302346926123798528'
    """
    trimmed = (value or "").strip()

    if not trimmed:
        return LinkedInPostData(post_url="", post_id=None, is_valid=False, error="URL cannot be empty")

    if not is_linkedin_url(trimmed):
        return LinkedInPostData(post_url=trimmed, post_id=None, is_valid=False, error=NOT_LINKEDIN_URL_ERROR)

    if POST_ID_RE.match(trimmed):
        return LinkedInPostData(post_url=canonical_post_url(trimmed), post_id=trimmed, is_valid=True)

    for pattern in POST_URL_PATTERNS:
        match = pattern.search(trimmed)
        if match:
            return LinkedInPostData(post_url=trimmed, post_id=match.group(1), is_valid=True)

    return LinkedInPostData(post_url=trimmed, post_id=None, is_valid=False, error=INVALID_POST_URL_ERROR)


def validate_linkedin_posts(text: str) -> List[LinkedInPostData]:
    """Validate a newline/comma/space separated list of post URLs or ids."""
    if not text or not text.strip():
        return []
    entries = [entry.strip() for entry in re.split(r"[\n,\s]+", text)]
    return [extract_linkedin_post_id(entry) for entry in entries if entry]


def parse_linkedin_post_url(post_url: str) -> Optional[str]:
    """
    Parse a LinkedIn post URL to extract the URN (activity or ugcPost).

    Supports multiple URL formats:
    - URLs with direct URN notation: containing "urn:li:activity:1234567890"
    - URLs with simple ID notation: containing "activity:1234567890" or "ugcPost:1234567890"
    - URLs with hyphen notation: containing "activity-1234567890" or "ugcPost-1234567890"

    Args:
        post_url: The full LinkedIn post URL

    Returns:
        The extracted URN (e.g., "urn:li:activity:1234567890") or None if not found

    Examples:
        >>> parse_linkedin_post_url("https://www.linkedin.com/feed/update/urn:li:activity:123")
        'urn:li:activity:123'

        >>> parse_linkedin_post_url("https://www.linkedin.com/posts/activity-123456789")
        'urn:li:activity:123456789'
    """
    if not post_url or not isinstance(post_url, str):
        logger.warning(f"Invalid post_url provided: {post_url}")
        return None

    # URN directly in the path or query parameters
    urn_match = re.search(r'(urn:li:(?:activity|ugcPost):\d+)', post_url)
    if urn_match:
        return urn_match.group(1)

    # Colon patterns without the urn:li: prefix
    activity_match = re.search(r'(?:activity:|ugcPost:)(\d+)', post_url)
    if activity_match:
        post_type = 'ugcPost' if 'ugcPost:' in post_url else 'activity'
        return f"urn:li:{post_type}:{activity_match.group(1)}"

    # Hyphen patterns (e.g., "activity-1234567890-")
    hyphen_activity = re.search(r'activity-(\d+)', post_url)
    if hyphen_activity:
        return f"urn:li:activity:{hyphen_activity.group(1)}"

    hyphen_ugc = re.search(r'ugcPost-(\d+)', post_url)
    if hyphen_ugc:
        return f"urn:li:ugcPost:{hyphen_ugc.group(1)}"

    logger.warning(f"Could not extract URN from URL: {post_url}")
    return None


def post_id_from_url(post_url: Optional[str]) -> Optional[str]:
    """Numeric post id from any URL or URN form parse_linkedin_post_url accepts."""
    if not post_url:
        return None
    if POST_ID_RE.match(post_url.strip()):
        return post_url.strip()
    urn = parse_linkedin_post_url(post_url)
    if not urn:
        return None
    return urn.rsplit(":", 1)[-1]
