"""
Reaction service: toggle a user's single reaction on a target and read
aggregate counts.
"""
import logging

from django.db import IntegrityError
from django.db.models import Count

from ..exceptions import ConstraintViolation, NotFound, ValidationError
from ..models import (
    Comment,
    Post,
    Reaction,
    Reply,
    TARGET_COMMENT,
    TARGET_POST,
    TARGET_REPLY,
)

logger = logging.getLogger(__name__)

TARGET_MODELS = {
    TARGET_POST: Post,
    TARGET_COMMENT: Comment,
    TARGET_REPLY: Reply,
}


def get_target(target_type, target_id):
    """Return the post, comment or reply a reaction points at."""
    if not Reaction.is_valid_target_type(target_type):
        raise ValidationError(f"Unknown reaction target: {target_type}")
    model = TARGET_MODELS[target_type]
    try:
        return model.objects.get(pk=target_id)
    except model.DoesNotExist:
        raise NotFound(f"{target_type.capitalize()} not found.")


def get_target_post(target_type, target_id):
    """Return the post a target belongs to."""
    target = get_target(target_type, target_id)
    if target_type == TARGET_POST:
        return target
    if target_type == TARGET_COMMENT:
        return target.post
    return target.comment.post


def toggle_reaction(user, target_type, target_id, reaction_type):
    """
    Toggle user's reaction on a target.

    Returns (reaction_or_none, action, counts) where counts are the fresh
    upvote/downvote totals for the target.
    """
    if not Reaction.is_valid_type(reaction_type):
        raise ValidationError(f"Unknown reaction type: {reaction_type}")
    get_target(target_type, target_id)

    try:
        reaction, action = Reaction.toggle(user, target_type, target_id, reaction_type)
    except IntegrityError as exc:
        logger.warning(
            "Concurrent reaction for user %s on %s %s", user.pk, target_type, target_id
        )
        raise ConstraintViolation() from exc

    logger.info(
        "Reaction %s: user %s %s on %s %s",
        action, user.pk, reaction_type, target_type, target_id,
    )
    return reaction, action, get_reaction_counts(target_type, target_id)


def get_reaction_counts(target_type, target_id):
    return Reaction.objects.for_target(target_type, target_id).counts()


def get_reaction_counts_for(target_type, target_ids):
    """Counts for many targets of one type; missing targets get zeros."""
    target_ids = list(target_ids)
    counts = Reaction.objects.for_targets(target_type, target_ids).counts_by_target()
    return {
        target_id: counts.get(target_id, {"upvotes": 0, "downvotes": 0})
        for target_id in target_ids
    }


def get_user_reaction(user, target_type, target_id):
    """Return the user's reaction on a target, or None."""
    if user is None or not user.is_authenticated:
        return None
    return Reaction.objects.filter(
        user=user, target_type=target_type, target_id=target_id
    ).first()


def get_user_reactions_for(user, target_type, target_ids):
    """Return {target_id: reaction_type} for the user's reactions."""
    if user is None or not user.is_authenticated:
        return {}
    return dict(
        Reaction.objects.for_targets(target_type, target_ids)
        .filter(user=user)
        .values_list("target_id", "reaction_type")
    )


def get_post_stats(post_id):
    """Return upvotes, downvotes and comment count for a post."""
    stats = get_reaction_counts(TARGET_POST, post_id)
    stats["comments"] = Comment.objects.filter(post_id=post_id).count()
    return stats


def get_post_stats_for(post_ids):
    """Batched get_post_stats: {post_id: {"upvotes", "downvotes", "comments"}}."""
    post_ids = list(post_ids)
    stats = get_reaction_counts_for(TARGET_POST, post_ids)
    comment_counts = dict(
        Comment.objects.filter(post_id__in=post_ids)
        .order_by()
        .values("post_id")
        .annotate(total=Count("pk"))
        .values_list("post_id", "total")
    )
    return {
        post_id: {**stats[post_id], "comments": comment_counts.get(post_id, 0)}
        for post_id in post_ids
    }
