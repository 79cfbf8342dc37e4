"""
Social Signals: LinkedIn engagement analytics backend.
"""
from social_signals.__version__ import __version__

__all__ = ["__version__"]
