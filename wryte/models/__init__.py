"""
Models for wryte.

All models are importable from wryte.models:

    from wryte.models import Post, PostImage, Comment, Reply, Reaction
"""
from .users import Identity
from .posts import Post, PostImage
from .comments import Comment, Reply
from .reactions import (
    Reaction,
    UPVOTE,
    DOWNVOTE,
    TARGET_POST,
    TARGET_COMMENT,
    TARGET_REPLY,
)

__all__ = [
    # Users
    "Identity",
    # Posts
    "Post",
    "PostImage",
    # Discussion
    "Comment",
    "Reply",
    # Reactions
    "Reaction",
    "UPVOTE",
    "DOWNVOTE",
    "TARGET_POST",
    "TARGET_COMMENT",
    "TARGET_REPLY",
]
