"""
LinkedIn Profile model.
"""
from sqlalchemy import Column, String, Text, Boolean, DateTime, func
from sqlalchemy.orm import relationship

from ..base import Base, JSONType, TimestampMixin, UUIDMixin


class Profile(Base, UUIDMixin, TimestampMixin):
    """
    A person who engaged with a tracked post.

    The same person can surface under an opaque member id (ACoA...), a vanity
    slug or a URN. `urn` is the normalized identifier the row was created
    with; identifiers later seen for the same person are appended to
    `alternative_urns` and never replace it.
    """
    __tablename__ = "profiles"

    urn = Column(String(255), unique=True, nullable=False, index=True)
    primary_identifier = Column(String(255), index=True)
    secondary_identifier = Column(String(255), index=True)
    public_identifier = Column(String(255), index=True)
    alternative_urns = Column(JSONType, default=list, nullable=False)

    name = Column(String(255))
    headline = Column(Text)
    profile_url = Column(Text)
    profile_picture_url = Column(Text)
    profile_pictures = Column(JSONType)

    # Enrichment
    first_name = Column(String(255))
    last_name = Column(String(255))
    country = Column(String(255))
    city = Column(String(255))
    current_title = Column(Text)
    current_company = Column(Text)
    is_current_position = Column(Boolean)
    company_linkedin_url = Column(Text)
    enriched_at = Column(DateTime(timezone=True))
    last_enriched_at = Column(DateTime(timezone=True))

    first_seen = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    last_updated = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    reactions = relationship("Reaction", back_populates="reactor")
    comments = relationship("Comment", back_populates="commenter")

    def __repr__(self):
        return f"<Profile(id={self.id}, urn='{self.urn}', name='{self.name}')>"
