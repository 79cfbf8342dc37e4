"""
Error types shared across the engagement pipeline.
"""
from typing import Optional


class SocialSignalsError(Exception):
    """Base class for all application errors."""


class ProviderError(SocialSignalsError):
    """
    A scraping-provider run failed.

    Raised when a run submission is rejected, the run ends in a non-success
    state, polling exceeds the maximum wait, or results cannot be fetched.
    """

    def __init__(self, message: str, run_id: Optional[str] = None, status: Optional[str] = None):
        super().__init__(message)
        self.run_id = run_id
        self.status = status


class PersistenceError(SocialSignalsError):
    """A store write failed for a single item."""


class ValidationError(SocialSignalsError, ValueError):
    """Request input is missing or malformed."""


class IdentityResolutionError(SocialSignalsError):
    """A raw engagement record could not be mapped to a stored profile."""
