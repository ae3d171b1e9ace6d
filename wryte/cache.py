"""
Template fragment cache keys and invalidation.

Templates cache user-independent fragments with:

    {% cache cache_timeout wryte_post_body post.pk %}

Services call invalidate_post() after a post is edited or deleted.
"""
from django.core.cache import cache
from django.core.cache.utils import make_template_fragment_key

POST_FRAGMENTS = ("wryte_post_body", "wryte_post_card")


def post_fragment_keys(post_id):
    return [make_template_fragment_key(name, [post_id]) for name in POST_FRAGMENTS]


def invalidate_post(post_id):
    """Drop every cached fragment rendered for a post."""
    cache.delete_many(post_fragment_keys(post_id))
