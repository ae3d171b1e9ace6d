"""
Reaction model for wryte.

A reaction targets a post, comment or reply through a (target_type,
target_id) pair. At most one reaction exists per user and target, which
the database enforces with a composite unique constraint.
"""
from django.conf import settings
from django.db import models, transaction
from django.db.models import Count, Q

from ..conf import wryte_settings

UPVOTE = "upvote"
DOWNVOTE = "downvote"

TARGET_POST = "post"
TARGET_COMMENT = "comment"
TARGET_REPLY = "reply"


class ReactionQuerySet(models.QuerySet):
    def for_target(self, target_type, target_id):
        return self.filter(target_type=target_type, target_id=target_id)

    def for_targets(self, target_type, target_ids):
        return self.filter(target_type=target_type, target_id__in=list(target_ids))

    def counts(self):
        """Return {"upvotes": n, "downvotes": m} over this queryset."""
        result = self.order_by().aggregate(
            upvotes=Count("pk", filter=Q(reaction_type=UPVOTE)),
            downvotes=Count("pk", filter=Q(reaction_type=DOWNVOTE)),
        )
        return {
            "upvotes": result["upvotes"] or 0,
            "downvotes": result["downvotes"] or 0,
        }

    def counts_by_target(self):
        """Return {target_id: {"upvotes": n, "downvotes": m}} in one query."""
        rows = (
            self.order_by()
            .values("target_id")
            .annotate(
                upvotes=Count("pk", filter=Q(reaction_type=UPVOTE)),
                downvotes=Count("pk", filter=Q(reaction_type=DOWNVOTE)),
            )
        )
        return {
            row["target_id"]: {
                "upvotes": row["upvotes"],
                "downvotes": row["downvotes"],
            }
            for row in rows
        }


class Reaction(models.Model):
    """Upvote or downvote by a user on a post, comment or reply."""

    REACTION_TYPES = wryte_settings.REACTION_TYPES
    REACTION_CHOICES = [(r[0], r[1]) for r in REACTION_TYPES]
    TARGET_CHOICES = wryte_settings.TARGET_TYPES

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="wryte_reactions",
    )
    target_type = models.CharField(max_length=10, choices=TARGET_CHOICES)
    target_id = models.PositiveBigIntegerField()
    reaction_type = models.CharField(
        max_length=10,
        choices=REACTION_CHOICES,
        default=UPVOTE,
    )
    created_at = models.DateTimeField(auto_now_add=True)

    objects = ReactionQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "target_type", "target_id"],
                name="wryte_reaction_unique_user_target",
            ),
        ]
        indexes = [
            models.Index(fields=["target_type", "target_id"]),
            models.Index(fields=["target_type", "target_id", "reaction_type"]),
        ]

    def __str__(self):
        return f"{self.user} {self.reaction_type}d {self.target_type} {self.target_id}"

    @property
    def symbol(self):
        """Return the display symbol for this reaction type."""
        for rtype, label, symbol in self.REACTION_TYPES:
            if rtype == self.reaction_type:
                return symbol
        return ""

    @classmethod
    def is_valid_type(cls, reaction_type):
        return reaction_type in {r[0] for r in cls.REACTION_TYPES}

    @classmethod
    def is_valid_target_type(cls, target_type):
        return target_type in {t[0] for t in cls.TARGET_CHOICES}

    @classmethod
    def toggle(cls, user, target_type, target_id, reaction_type=UPVOTE):
        """
        Toggle a reaction on a target.

        If user has same reaction, removes it.
        If user has different reaction, changes it.
        If user has no reaction, adds it.

        Returns (reaction_or_none, action) where action is one of
        "created", "changed" or "removed".
        """
        with transaction.atomic():
            existing = (
                cls.objects.select_for_update()
                .filter(user=user, target_type=target_type, target_id=target_id)
                .first()
            )

            if existing:
                if existing.reaction_type == reaction_type:
                    # Same reaction - remove it
                    existing.delete()
                    return None, "removed"
                # Different reaction - switch it in place
                existing.reaction_type = reaction_type
                existing.save(update_fields=["reaction_type"])
                return existing, "changed"

            reaction = cls.objects.create(
                user=user,
                target_type=target_type,
                target_id=target_id,
                reaction_type=reaction_type,
            )
            return reaction, "created"
