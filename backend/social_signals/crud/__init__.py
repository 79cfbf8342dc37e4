"""
CRUD operations for the application.
"""
from social_signals.crud import engagement
from social_signals.crud import post
from social_signals.crud import profile
from social_signals.crud import progress
from social_signals.crud import scrape_job
from social_signals.crud import user_settings
from social_signals.crud import webhook

__all__ = ["engagement", "post", "profile", "progress", "scrape_job", "user_settings", "webhook"]
