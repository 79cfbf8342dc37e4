"""
Version management for the Social Signals API
"""
from social_signals.__version__ import __version__

# API Version
API_VERSION = __version__

# Feature flags
FEATURES = {
    "reactions_scrape": True,
    "comments_scrape": True,
    "post_metadata_refresh": True,
    "profile_posts_scrape": True,
    "profile_enrichment": True,
    "profile_merge": True,
    "webhook_push": True,
}

def get_version_info():
    """Get version and feature information"""
    return {
        "version": API_VERSION,
        "features": FEATURES,
    }
