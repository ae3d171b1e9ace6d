"""
Comment and Reply models for wryte.
"""
from django.conf import settings
from django.db import models

from ..conf import wryte_settings


class Comment(models.Model):
    """Comment on a post. Replies hang off comments, one level deep."""

    post = models.ForeignKey(
        "wryte.Post",
        on_delete=models.CASCADE,
        related_name="comments",
    )
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="wryte_comments",
    )
    content = models.TextField(max_length=wryte_settings.COMMENT_MAX_LENGTH)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["post", "-created_at"]),
            models.Index(fields=["author", "post"]),
        ]

    def __str__(self):
        return f"Comment by {self.author} on {self.post}"

    @property
    def preview(self):
        """Return truncated content for admin display."""
        if len(self.content) > 100:
            return self.content[:100] + "..."
        return self.content

    def is_owned_by(self, user):
        return user is not None and user.is_authenticated and user.pk == self.author_id


class Reply(models.Model):
    """Reply to a comment. Replies cannot be replied to."""

    comment = models.ForeignKey(
        Comment,
        on_delete=models.CASCADE,
        related_name="replies",
    )
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="wryte_replies",
    )
    content = models.TextField(max_length=wryte_settings.COMMENT_MAX_LENGTH)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        verbose_name_plural = "Replies"
        indexes = [
            models.Index(fields=["comment", "-created_at"]),
            models.Index(fields=["author", "comment"]),
        ]

    def __str__(self):
        return f"Reply by {self.author} on comment {self.comment_id}"

    @property
    def preview(self):
        if len(self.content) > 100:
            return self.content[:100] + "..."
        return self.content

    def is_owned_by(self, user):
        return user is not None and user.is_authenticated and user.pk == self.author_id
