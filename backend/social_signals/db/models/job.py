"""
Scrape job audit rows and polled progress records.
"""
from sqlalchemy import Column, String, Integer, Text, DateTime, func

from ..base import Base, JSONType, TimestampMixin, UUIDMixin


class ScrapeJob(Base, UUIDMixin, TimestampMixin):
    """
    Append-only audit row, one per triggered batch operation.
    """
    __tablename__ = "scrape_jobs"

    user_id = Column(String(255), nullable=False, index=True)
    job_type = Column(String(50), nullable=False)  # reactions, comments, metadata, posts, enrichment
    status = Column(String(50), nullable=False, default="pending")  # pending, running, completed, failed
    post_ids = Column(JSONType, default=list)
    total_items_scraped = Column(Integer, default=0)
    error_message = Column(Text)
    started_at = Column(DateTime(timezone=True))
    completed_at = Column(DateTime(timezone=True))


class ApiProgress(Base):
    """
    Progress of a long-running job, polled by the client.
    """
    __tablename__ = "api_progress"

    id = Column(String(64), primary_key=True)
    user_id = Column(String(255), nullable=False, index=True)
    status = Column(String(50), nullable=False)
    progress = Column(Integer, nullable=False, default=0)
    current_step = Column(Text)
    total_posts = Column(Integer)
    processed_posts = Column(Integer)
    error_message = Column(Text)
    result = Column(JSONType)
    expires_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
