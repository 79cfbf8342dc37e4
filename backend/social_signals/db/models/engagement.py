"""
Reaction and comment models.
"""
from sqlalchemy import Column, String, Integer, BigInteger, Text, Boolean, DateTime, ForeignKey, Uuid, UniqueConstraint, func
from sqlalchemy.orm import relationship

from ..base import Base, JSONType, TimestampMixin, UUIDMixin


class Reaction(Base, UUIDMixin, TimestampMixin):
    """
    One profile's reaction of one type on one post.
    """
    __tablename__ = "reactions"
    __table_args__ = (
        UniqueConstraint("post_id", "reactor_profile_id", "reaction_type", name="uq_reactions_post_reactor_type"),
    )

    user_id = Column(String(255), nullable=False, index=True)
    post_id = Column(Uuid(as_uuid=True), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    reactor_profile_id = Column(Uuid(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    reaction_type = Column(String(50), nullable=False)
    page_number = Column(Integer)
    scraped_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    post = relationship("Post", back_populates="reactions")
    reactor = relationship("Profile", back_populates="reactions")


class Comment(Base, UUIDMixin, TimestampMixin):
    """
    A comment left on a tracked post.
    """
    __tablename__ = "comments"
    __table_args__ = (
        UniqueConstraint("post_id", "comment_id", name="uq_comments_post_comment"),
    )

    user_id = Column(String(255), nullable=False, index=True)
    post_id = Column(Uuid(as_uuid=True), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    commenter_profile_id = Column(Uuid(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    comment_id = Column(String(255), nullable=False)
    comment_text = Column(Text)
    comment_url = Column(Text)
    posted_at_timestamp = Column(BigInteger)
    posted_at_date = Column(DateTime(timezone=True))
    is_edited = Column(Boolean, default=False)
    is_pinned = Column(Boolean, default=False)
    total_reactions = Column(Integer, default=0)
    reactions_breakdown = Column(JSONType)
    replies_count = Column(Integer, default=0)
    page_number = Column(Integer)
    scraped_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    post = relationship("Post", back_populates="comments")
    commenter = relationship("Profile", back_populates="comments")
