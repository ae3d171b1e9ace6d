"""
Configuration settings for wryte.

Override these in your Django settings.py:

    WRYTE = {
        'POSTS_PER_PAGE': 20,
        'WEBHOOK_SECRET': 'whsec_...',
        'SITE_URL': 'https://example.com',
        ...
    }
"""
import os

from django.conf import settings

DEFAULTS = {
    # Posts
    "POSTS_PER_PAGE": 10,
    "TITLE_MAX_LENGTH": 255,
    "SLUG_MAX_LENGTH": 200,
    "EXCERPT_LENGTH": 700,
    "DESCRIPTION_LENGTH": 160,
    "NEW_POST_SECONDS": 30,

    # Comments and replies
    "COMMENT_MAX_LENGTH": 5000,

    # Reactions
    "REACTION_TYPES": [
        ("upvote", "Upvote", "▲"),
        ("downvote", "Downvote", "▼"),
    ],
    "TARGET_TYPES": [
        ("post", "Post"),
        ("comment", "Comment"),
        ("reply", "Reply"),
    ],

    # Template fragment cache, in seconds
    "CACHE_TIMEOUT": 300,

    # Identity provider webhook (Svix-signed)
    "WEBHOOK_SECRET": os.environ.get("CLERK_WEBHOOK_SECRET", ""),

    # Structured data
    "SITE_NAME": "Wryte",
    "SITE_URL": "http://localhost:3000",
    "PUBLISHER_LOGO_URL": "",
}


class WryteSettings:
    """
    Lazy settings object that reads from Django settings.

    Access via: from wryte.conf import wryte_settings
    """

    def __getattr__(self, name):
        if name not in DEFAULTS:
            raise AttributeError(f"Invalid wryte setting: {name}")

        user_settings = getattr(settings, "WRYTE", {})
        return user_settings.get(name, DEFAULTS[name])


wryte_settings = WryteSettings()
