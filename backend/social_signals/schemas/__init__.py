"""
Pydantic schemas for the application.
"""
from social_signals.schemas import apify
from social_signals.schemas import post
from social_signals.schemas import profile
from social_signals.schemas import progress
from social_signals.schemas import scrape
from social_signals.schemas import webhook

__all__ = ["apify", "post", "profile", "progress", "scrape", "webhook"]
