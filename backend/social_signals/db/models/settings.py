"""
Per-user settings and webhook destinations.
"""
from sqlalchemy import Column, String, Text, Boolean, DateTime, UniqueConstraint

from ..base import Base, TimestampMixin, UUIDMixin


class UserSettings(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "user_settings"

    user_id = Column(String(255), unique=True, nullable=False, index=True)
    apify_api_key = Column(Text)
    last_sync_time = Column(DateTime(timezone=True))


class Webhook(Base, UUIDMixin, TimestampMixin):
    """
    A user-configured endpoint that receives profile payloads.
    """
    __tablename__ = "webhooks"
    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_webhooks_user_id_name"),
    )

    user_id = Column(String(255), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    url = Column(Text, nullable=False)
    description = Column(Text)
    is_active = Column(Boolean, default=True, nullable=False)
