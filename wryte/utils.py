"""
Text helpers shared by models, services and templates.
"""
import re

from django.utils.text import slugify

from .conf import wryte_settings

TAG_RE = re.compile(r"<[^>]*>")
IMG_SRC_RE = re.compile(r"<img[^>]+src=\"([^\"]+)\"", re.IGNORECASE)


def make_slug(title, token):
    """
    Build a post slug from a title and a uniqueness token.

    >>> make_slug("Hello World", 1700000000000)
    'hello-world-1700000000000'
    """
    base = slugify(title)[:wryte_settings.SLUG_MAX_LENGTH].strip("-") or "post"
    return f"{base}-{token}"


def extract_plain_text(html):
    """Strip tags and non-breaking spaces from HTML, returning plain text."""
    if not html:
        return ""
    return TAG_RE.sub("", html).replace("&nbsp;", " ").strip()


def truncate_content(content, max_length=None):
    """Return plain text of HTML content, cut to max_length with an ellipsis."""
    if max_length is None:
        max_length = wryte_settings.EXCERPT_LENGTH
    text = extract_plain_text(content)
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def extract_all_images(html):
    """Return the src of every <img> in the HTML, in document order."""
    if not html:
        return []
    return [src for src in IMG_SRC_RE.findall(html) if src]


def author_name(user):
    """Display name for a user: full name, else email, else a placeholder."""
    if user is None:
        return "Anonymous"
    full_name = " ".join(
        part for part in (user.first_name, user.last_name) if part
    ).strip()
    if full_name:
        return full_name
    return user.email or "Anonymous"


def build_structured_data(post, counts, comment_count):
    """
    Return a schema.org BlogPosting dict for a post.

    Args:
        post: Post instance (author and images may be prefetched)
        counts: {"upvotes": int, "downvotes": int}
        comment_count: number of comments on the post
    """
    base_url = wryte_settings.SITE_URL.rstrip("/")
    post_url = f"{base_url}{post.get_absolute_url()}"

    data = {
        "@context": "https://schema.org",
        "@type": "BlogPosting",
        "headline": post.title,
        "description": truncate_content(
            post.content, wryte_settings.DESCRIPTION_LENGTH
        ),
        "author": {
            "@type": "Person",
            "name": author_name(post.author),
        },
        "url": post_url,
        "mainEntityOfPage": {
            "@type": "WebPage",
            "@id": post_url,
        },
        "publisher": {
            "@type": "Organization",
            "name": wryte_settings.SITE_NAME,
        },
        "commentCount": comment_count,
        "interactionStatistic": [
            {
                "@type": "InteractionCounter",
                "interactionType": "https://schema.org/LikeAction",
                "userInteractionCount": counts["upvotes"],
            },
            {
                "@type": "InteractionCounter",
                "interactionType": "https://schema.org/DislikeAction",
                "userInteractionCount": counts["downvotes"],
            },
        ],
    }

    if post.created_at:
        data["datePublished"] = post.created_at.isoformat()
    if post.updated_at and post.created_at and post.updated_at != post.created_at:
        data["dateModified"] = post.updated_at.isoformat()

    if wryte_settings.PUBLISHER_LOGO_URL:
        data["publisher"]["logo"] = {
            "@type": "ImageObject",
            "url": wryte_settings.PUBLISHER_LOGO_URL,
        }

    first_image = post.first_image
    if first_image:
        data["image"] = {
            "@type": "ImageObject",
            "url": first_image.image_url,
            "width": 1200,
            "height": 630,
        }

    return data
