"""
Identity sync: mirror the auth provider's user lifecycle into local users.
"""
import logging
from collections import Counter

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction

from ..cache import invalidate_post
from ..exceptions import ConstraintViolation, ValidationError
from ..models import Comment, Identity, Post, Reaction, Reply
from .discussion import cascade_delete_comment, cascade_delete_reply
from .posts import cascade_delete_post

logger = logging.getLogger(__name__)


def primary_email(data):
    """Return the first email address from a provider user payload."""
    addresses = data.get("email_addresses") or []
    if addresses:
        return addresses[0].get("email_address") or ""
    return ""


def _check_email_free(email, exclude_user=None):
    if not email:
        return
    User = get_user_model()
    qs = User.objects.filter(email__iexact=email)
    if exclude_user is not None:
        qs = qs.exclude(pk=exclude_user.pk)
    if qs.exists():
        raise ConstraintViolation(f"Email {email} is already in use.")


def _apply_profile(user, data):
    user.first_name = data.get("first_name") or ""
    user.last_name = data.get("last_name") or ""
    user.email = primary_email(data)


def create_user(data):
    """
    Create a local user and identity from a provider payload.

    Args:
        data: provider user object with "id", "first_name", "last_name"
            and "email_addresses"

    Returns:
        The created user
    """
    provider_id = data.get("id")
    if not provider_id:
        raise ValidationError("User payload has no id.")

    User = get_user_model()
    try:
        with transaction.atomic():
            _check_email_free(primary_email(data))
            user = User(username=provider_id)
            _apply_profile(user, data)
            user.set_unusable_password()
            user.save()
            Identity.objects.create(user=user, provider_id=provider_id)
    except IntegrityError as exc:
        raise ConstraintViolation(f"User {provider_id} already exists.") from exc

    logger.info("Created user %s for identity %s", user.pk, provider_id)
    return user


def update_user(data):
    """Update names and email for an identity, creating it if unknown."""
    provider_id = data.get("id")
    identity = (
        Identity.objects.select_related("user").filter(provider_id=provider_id).first()
    )
    if identity is None:
        logger.info("Identity %s unknown on update, creating it", provider_id)
        return create_user(data)

    user = identity.user
    try:
        with transaction.atomic():
            _check_email_free(primary_email(data), exclude_user=user)
            _apply_profile(user, data)
            user.save(update_fields=["first_name", "last_name", "email"])
            identity.save(update_fields=["updated_at"])
    except IntegrityError as exc:
        raise ConstraintViolation() from exc

    logger.info("Updated user %s for identity %s", user.pk, provider_id)
    return user


def delete_user(data):
    """
    Delete the local user for an identity with everything they wrote.

    Their posts, comments and replies go through the same cascades as
    user-initiated deletes so no reactions are left pointing at removed
    targets. Returns a summary of deleted rows, or None for unknown ids.
    """
    provider_id = data.get("id")
    identity = (
        Identity.objects.select_related("user").filter(provider_id=provider_id).first()
    )
    if identity is None:
        logger.info("Identity %s unknown on delete, nothing to do", provider_id)
        return None

    user = identity.user
    summary = Counter()
    with transaction.atomic():
        post_ids = []
        for post in Post.objects.filter(author=user):
            post_ids.append(post.pk)
            summary.update(cascade_delete_post(post))
        for comment in Comment.objects.filter(author=user):
            summary.update(cascade_delete_comment(comment))
        for reply in Reply.objects.filter(author=user):
            summary.update(cascade_delete_reply(reply))
        summary["own_reactions"], _ = Reaction.objects.filter(user=user).delete()
        user.delete()
        summary["users"] = 1
        for pk in post_ids:
            transaction.on_commit(lambda pk=pk: invalidate_post(pk))

    logger.info("Deleted user for identity %s: %s", provider_id, dict(summary))
    return dict(summary)


EVENT_HANDLERS = {
    "user.created": create_user,
    "user.updated": update_user,
    "user.deleted": delete_user,
}


def handle_event(event):
    """
    Dispatch a verified provider event.

    Returns True when the event type was handled, False when ignored.
    """
    event_type = event.get("type")
    handler = EVENT_HANDLERS.get(event_type)
    if handler is None:
        logger.info("Unhandled identity event type: %s", event_type)
        return False
    handler(event.get("data") or {})
    return True
