"""
Content service: create, read, update and delete posts.
"""
import logging

from django.db import IntegrityError, transaction

from ..cache import invalidate_post
from ..conf import wryte_settings
from ..exceptions import ConstraintViolation, NotFound, Unauthorized, ValidationError
from ..models import (
    Comment,
    Post,
    PostImage,
    Reaction,
    Reply,
    TARGET_COMMENT,
    TARGET_POST,
    TARGET_REPLY,
)
from ..utils import extract_all_images

logger = logging.getLogger(__name__)


def clean_title(title):
    if title is not None and not isinstance(title, str):
        raise ValidationError("Title must be text.")
    title = (title or "").strip()
    if not title:
        raise ValidationError("Title is required.")
    if len(title) > wryte_settings.TITLE_MAX_LENGTH:
        raise ValidationError(
            f"Title must be at most {wryte_settings.TITLE_MAX_LENGTH} characters."
        )
    return title


def clean_content(content):
    if content is not None and not isinstance(content, str):
        raise ValidationError("Content must be text.")
    if not (content or "").strip():
        raise ValidationError("Content is required.")
    return content


def clean_image_urls(content, image_urls):
    if image_urls is None:
        image_urls = extract_all_images(content)
    elif not isinstance(image_urls, (list, tuple)):
        raise ValidationError("Image URLs must be a list.")
    if not all(url is None or isinstance(url, str) for url in image_urls):
        raise ValidationError("Image URLs must be text.")
    return [url.strip() for url in image_urls if url and url.strip()]


def _replace_images(post, image_urls):
    post.images.all().delete()
    PostImage.objects.bulk_create(
        PostImage(post=post, image_url=url, order=index)
        for index, url in enumerate(image_urls)
    )


def create_post(author, title, content, image_urls=None):
    """
    Create a post and its images in one transaction.

    When image_urls is None the images are taken from the <img> tags in
    the content.
    """
    title = clean_title(title)
    content = clean_content(content)
    image_urls = clean_image_urls(content, image_urls)

    try:
        with transaction.atomic():
            post = Post.objects.create(title=title, content=content, author=author)
            _replace_images(post, image_urls)
    except IntegrityError as exc:
        logger.warning("Post insert rejected for %s: %s", author, exc)
        raise ConstraintViolation(
            "A post with this title already exists. Please choose a different title."
        ) from exc

    logger.info(
        "Created post %s (%s) with %d images", post.pk, post.slug, len(image_urls)
    )
    return post


def get_post(post_id):
    try:
        return Post.objects.select_related("author").get(pk=post_id)
    except Post.DoesNotExist:
        raise NotFound("Post not found.")


def get_post_by_slug(slug):
    """Return the post for a slug, or None when there is none."""
    return (
        Post.objects.select_related("author")
        .prefetch_related("images")
        .filter(slug=slug)
        .first()
    )


def list_posts(author=None):
    """Posts newest first, optionally restricted to one author."""
    qs = Post.objects.select_related("author").prefetch_related("images")
    if author is not None:
        qs = qs.filter(author=author)
    return qs.order_by("-created_at", "-id")


def _get_owned_post(user, post_id, lock=False):
    qs = Post.objects.select_for_update() if lock else Post.objects
    try:
        post = qs.get(pk=post_id)
    except Post.DoesNotExist:
        raise NotFound("Post not found.")
    if not post.is_owned_by(user):
        raise Unauthorized("Only the author can change this post.")
    return post


def update_post(user, post_id, title, content, image_urls=None):
    """
    Update a post's title, content and images.

    The slug is left untouched so existing links keep working.
    """
    try:
        with transaction.atomic():
            post = _get_owned_post(user, post_id, lock=True)
            title = clean_title(title)
            content = clean_content(content)
            image_urls = clean_image_urls(content, image_urls)
            post.title = title
            post.content = content
            post.save(update_fields=["title", "content", "updated_at"])
            _replace_images(post, image_urls)
            transaction.on_commit(lambda: invalidate_post(post.pk))
    except IntegrityError as exc:
        raise ConstraintViolation() from exc

    logger.info("Updated post %s (%s)", post.pk, post.slug)
    return post


def delete_post(user, post_id):
    """
    Delete a post and everything hanging off it.

    Order: reactions on the post, reactions on its comments and their
    replies, the replies, the comments, the images, the post. Runs in one
    transaction; returns a dict of deleted row counts.
    """
    try:
        with transaction.atomic():
            post = _get_owned_post(user, post_id, lock=True)
            summary = cascade_delete_post(post)
            transaction.on_commit(lambda: invalidate_post(post_id))
    except IntegrityError as exc:
        raise ConstraintViolation() from exc

    logger.info("Deleted post %s: %s", post_id, summary)
    return summary


def cascade_delete_post(post):
    """
    Remove a post with its comments, replies, reactions and images.

    Must be called inside a transaction; performs no ownership checks.
    """
    summary = {}
    reactions = Reaction.objects

    summary["post_reactions"], _ = reactions.for_target(TARGET_POST, post.pk).delete()

    comment_ids = list(
        Comment.objects.filter(post=post).values_list("pk", flat=True)
    )
    reply_ids = list(
        Reply.objects.filter(comment_id__in=comment_ids).values_list("pk", flat=True)
    )

    summary["comment_reactions"], _ = reactions.for_targets(
        TARGET_COMMENT, comment_ids
    ).delete()
    summary["reply_reactions"], _ = reactions.for_targets(
        TARGET_REPLY, reply_ids
    ).delete()
    summary["replies"], _ = Reply.objects.filter(pk__in=reply_ids).delete()
    summary["comments"], _ = Comment.objects.filter(pk__in=comment_ids).delete()
    summary["images"], _ = PostImage.objects.filter(post=post).delete()
    post.delete()
    summary["posts"] = 1
    return summary
