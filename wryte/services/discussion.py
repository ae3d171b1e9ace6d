"""
Discussion service: comments on posts and single-level replies on comments.
"""
import logging

from django.db import IntegrityError, transaction
from django.db.models import Prefetch

from ..conf import wryte_settings
from ..exceptions import ConstraintViolation, NotFound, Unauthorized, ValidationError
from ..models import Comment, Post, Reaction, Reply, TARGET_COMMENT, TARGET_REPLY

logger = logging.getLogger(__name__)


def clean_comment_content(content):
    content = (content or "").strip()
    if not content:
        raise ValidationError("Comment cannot be empty.")
    if len(content) > wryte_settings.COMMENT_MAX_LENGTH:
        raise ValidationError(
            f"Comments are limited to {wryte_settings.COMMENT_MAX_LENGTH} characters."
        )
    return content


def _get(model, pk, label):
    try:
        return model.objects.select_related("author").get(pk=pk)
    except model.DoesNotExist:
        raise NotFound(f"{label} not found.")


def _check_owner(obj, user, label):
    if not obj.is_owned_by(user):
        raise Unauthorized(f"Only the author can change this {label.lower()}.")


def get_comments(post_id):
    """Comments on a post, newest first, with authors and replies loaded."""
    replies = Reply.objects.select_related("author").order_by("-created_at", "-id")
    return (
        Comment.objects.filter(post_id=post_id)
        .select_related("author")
        .prefetch_related(Prefetch("replies", queryset=replies))
        .order_by("-created_at", "-id")
    )


def get_replies(comment_id):
    """Replies to a comment, newest first."""
    return (
        Reply.objects.filter(comment_id=comment_id)
        .select_related("author")
        .order_by("-created_at", "-id")
    )


def get_comment(comment_id):
    return _get(Comment, comment_id, "Comment")


def get_reply(reply_id):
    return _get(Reply, reply_id, "Reply")


def create_comment(user, post_id, content):
    if not Post.objects.filter(pk=post_id).exists():
        raise NotFound("Post not found.")
    content = clean_comment_content(content)

    try:
        comment = Comment.objects.create(post_id=post_id, author=user, content=content)
    except IntegrityError as exc:
        raise ConstraintViolation() from exc

    logger.info("Created comment %s on post %s", comment.pk, post_id)
    return comment


def update_comment(user, comment_id, content):
    comment = get_comment(comment_id)
    _check_owner(comment, user, "Comment")
    comment.content = clean_comment_content(content)
    comment.save(update_fields=["content", "updated_at"])
    logger.info("Updated comment %s", comment.pk)
    return comment


def delete_comment(user, comment_id):
    """
    Delete a comment with its replies and all their reactions.

    Order: reactions on the replies, reactions on the comment, the
    replies, the comment. Returns a dict of deleted row counts.
    """
    try:
        with transaction.atomic():
            comment = get_comment(comment_id)
            _check_owner(comment, user, "Comment")
            summary = cascade_delete_comment(comment)
    except IntegrityError as exc:
        raise ConstraintViolation() from exc

    logger.info("Deleted comment %s: %s", comment_id, summary)
    return summary


def cascade_delete_comment(comment):
    """Remove a comment, its replies and their reactions. No ownership checks."""
    summary = {}
    reply_ids = list(comment.replies.values_list("pk", flat=True))

    summary["reply_reactions"], _ = Reaction.objects.for_targets(
        TARGET_REPLY, reply_ids
    ).delete()
    summary["comment_reactions"], _ = Reaction.objects.for_target(
        TARGET_COMMENT, comment.pk
    ).delete()
    summary["replies"], _ = Reply.objects.filter(pk__in=reply_ids).delete()
    comment.delete()
    summary["comments"] = 1
    return summary


def create_reply(user, comment_id, content):
    if not Comment.objects.filter(pk=comment_id).exists():
        raise NotFound("Comment not found.")
    content = clean_comment_content(content)

    try:
        reply = Reply.objects.create(comment_id=comment_id, author=user, content=content)
    except IntegrityError as exc:
        raise ConstraintViolation() from exc

    logger.info("Created reply %s on comment %s", reply.pk, comment_id)
    return reply


def update_reply(user, reply_id, content):
    reply = get_reply(reply_id)
    _check_owner(reply, user, "Reply")
    reply.content = clean_comment_content(content)
    reply.save(update_fields=["content", "updated_at"])
    logger.info("Updated reply %s", reply.pk)
    return reply


def delete_reply(user, reply_id):
    """Delete a reply and the reactions on it."""
    try:
        with transaction.atomic():
            reply = get_reply(reply_id)
            _check_owner(reply, user, "Reply")
            summary = cascade_delete_reply(reply)
    except IntegrityError as exc:
        raise ConstraintViolation() from exc

    logger.info("Deleted reply %s: %s", reply_id, summary)
    return summary


def cascade_delete_reply(reply):
    summary = {}
    summary["reply_reactions"], _ = Reaction.objects.for_target(
        TARGET_REPLY, reply.pk
    ).delete()
    reply.delete()
    summary["replies"] = 1
    return summary
