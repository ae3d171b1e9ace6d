"""
Template helpers for wryte pages.

    {% load wryte_tags %}
    {{ post.author|author_name }}
    {{ post.content|plain_excerpt:200 }}
    {{ counts|get_item:comment.pk }}
"""
from django import template

from .. import utils

register = template.Library()


@register.filter
def author_name(user):
    return utils.author_name(user)


@register.filter
def plain_excerpt(content, length=None):
    if length is not None:
        length = int(length)
    return utils.truncate_content(content, length)


@register.filter
def get_item(mapping, key):
    """Dictionary lookup with a variable key."""
    if not mapping:
        return None
    return mapping.get(key)


@register.filter
def pluralize_count(count, noun):
    """'1 blog' / '3 blogs'."""
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"
