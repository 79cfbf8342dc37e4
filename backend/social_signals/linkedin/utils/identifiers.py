"""
Profile identifier normalization.

LinkedIn exposes the same person as an opaque member id ("ACoA..."), a vanity
slug taken from the /in/ URL, or a URN ("urn:li:person:<id>"). These helpers
reduce all of them to a common set of identifiers used for matching.
"""
import re
from dataclasses import dataclass
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)

PERSON_URN_PREFIX = "urn:li:person:"
OPAQUE_ID_PREFIX = "ACoA"

_IN_SEGMENT_RE = re.compile(r"/in/([^/?#]+)")


@dataclass(frozen=True)
class ProfileIdentifiers:
    """
    Identifiers derived from a profile URL or id.

    primary is the opaque member id; secondary and public both hold the
    vanity slug.
    """
    primary: Optional[str] = None
    secondary: Optional[str] = None
    public: Optional[str] = None

    def values(self) -> List[str]:
        """Non-null identifiers without duplicates, in primary/secondary/public order."""
        seen: List[str] = []
        for value in (self.primary, self.secondary, self.public):
            if value and value not in seen:
                seen.append(value)
        return seen

    def is_empty(self) -> bool:
        return not (self.primary or self.secondary or self.public)


def normalize_urn(urn: Optional[str]) -> Optional[str]:
    """
    Strip the "urn:li:person:" prefix if present.

    Examples:
        >>> normalize_urn("urn:li:person:ACoAAA123")
        'ACoAAA123'
        >>> normalize_urn("jdoe")
        'jdoe'
    """
    if urn is None:
        return None
    urn = urn.strip()
    if urn.startswith(PERSON_URN_PREFIX):
        return urn[len(PERSON_URN_PREFIX):]
    return urn


def extract_profile_identifiers(value: Optional[str]) -> ProfileIdentifiers:
    """
    Derive the identifier triple from a profile URL, URN or bare member id.

    Never raises: empty or unparseable input yields an all-None triple.

    Args:
        value: e.g. "https://www.linkedin.com/in/jdoe/", "ACoAAA123" or
            "urn:li:person:ACoAAA123"

    Returns:
        ProfileIdentifiers with primary set for opaque ids, or secondary and
        public set to the vanity slug
    """
    if not value or not isinstance(value, str):
        return ProfileIdentifiers()

    candidate = normalize_urn(value)
    if not candidate:
        return ProfileIdentifiers()

    if candidate.startswith(OPAQUE_ID_PREFIX):
        return ProfileIdentifiers(primary=candidate)

    match = _IN_SEGMENT_RE.search(candidate)
    if not match:
        logger.debug(f"No profile identifier found in: {value}")
        return ProfileIdentifiers()

    segment = match.group(1)
    if segment.startswith(OPAQUE_ID_PREFIX):
        return ProfileIdentifiers(primary=segment)

    return ProfileIdentifiers(secondary=segment, public=segment)
