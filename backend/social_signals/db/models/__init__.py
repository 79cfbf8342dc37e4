"""
Import all models to ensure they are registered with SQLAlchemy.
"""
from ..base import Base
from .post import Post
from .profile import Profile
from .engagement import Reaction, Comment
from .settings import UserSettings, Webhook
from .job import ScrapeJob, ApiProgress
