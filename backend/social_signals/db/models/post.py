"""
Post model for tracked LinkedIn posts.
"""
from sqlalchemy import Column, String, Integer, BigInteger, Text, Boolean, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship

from ..base import Base, TimestampMixin, UUIDMixin


class Post(Base, UUIDMixin, TimestampMixin):
    """
    A LinkedIn post tracked by a user.

    Engagement counters are refreshed by the metadata scrape; the
    engagement_needs_scraping flag is only raised when a refresh observed a
    change in likes, comments or shares.
    """
    __tablename__ = "posts"
    __table_args__ = (
        UniqueConstraint("user_id", "post_id", name="uq_posts_user_id_post_id"),
    )

    user_id = Column(String(255), nullable=False, index=True)
    post_url = Column(Text, nullable=False)
    post_id = Column(String(64), nullable=False, index=True)
    post_urn = Column(String(255))

    author_name = Column(String(255))
    author_headline = Column(Text)
    author_profile_url = Column(Text)
    author_profile_id = Column(String(255))

    post_text = Column(Text)
    post_type = Column(String(50))

    num_likes = Column(Integer, default=0, nullable=False)
    num_comments = Column(Integer, default=0, nullable=False)
    num_shares = Column(Integer, default=0, nullable=False)

    posted_at_timestamp = Column(BigInteger)
    posted_at_iso = Column(DateTime(timezone=True))
    scraped_at = Column(DateTime(timezone=True))

    last_reactions_scrape = Column(DateTime(timezone=True))
    last_comments_scrape = Column(DateTime(timezone=True))
    metadata_last_updated_at = Column(DateTime(timezone=True))

    engagement_needs_scraping = Column(Boolean, default=False, nullable=False)
    engagement_last_updated_at = Column(DateTime(timezone=True))

    # Relationships
    reactions = relationship("Reaction", back_populates="post", cascade="all, delete-orphan")
    comments = relationship("Comment", back_populates="post", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Post(id={self.id}, user_id='{self.user_id}', post_id='{self.post_id}')>"
