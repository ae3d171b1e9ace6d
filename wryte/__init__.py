"""
django-wryte - A server-rendered Django blogging app.

Features:
- Rich-text posts with permanent, collision-free slugs
- Ordered post images, replaced wholesale on edit
- Comments with single-level replies
- Upvote/downvote reactions on posts, comments and replies
- Transactional cascade deletes
- Identity sync webhook for an external auth provider
"""

__version__ = "0.1.0"
