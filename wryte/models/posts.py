"""
Post and PostImage models for wryte.
"""
from django.conf import settings
from django.db import models
from django.urls import reverse
from django.utils import timezone

from ..conf import wryte_settings
from ..utils import make_slug, truncate_content


class Post(models.Model):
    """
    Blog post with HTML content.

    The slug is derived from the title plus the creation timestamp in
    milliseconds. It is assigned once and never regenerated, so links to
    a post survive title edits.
    """

    title = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True, blank=True)
    content = models.TextField()

    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="wryte_posts",
    )

    created_at = models.DateTimeField(db_index=True)
    updated_at = models.DateTimeField()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["author", "-created_at"]),
        ]

    def __str__(self):
        return self.title

    def save(self, *args, **kwargs):
        if self._state.adding:
            if not self.created_at:
                self.created_at = timezone.now()
            self.updated_at = self.created_at
        else:
            self.updated_at = timezone.now()

        if not self.slug:
            token = int(self.created_at.timestamp() * 1000)
            slug = make_slug(self.title, token)
            while Post.objects.filter(slug=slug).exclude(pk=self.pk).exists():
                token += 1
                slug = make_slug(self.title, token)
            self.slug = slug

        super().save(*args, **kwargs)

    def get_absolute_url(self):
        return reverse("wryte:post_detail", kwargs={"slug": self.slug})

    @property
    def excerpt(self):
        """Plain-text excerpt of the content for listings."""
        return truncate_content(self.content, wryte_settings.EXCERPT_LENGTH)

    @property
    def first_image(self):
        """Return the first image, using the prefetch cache when present."""
        images = list(self.images.all())
        return images[0] if images else None

    @property
    def is_new(self):
        """True for posts created within the last NEW_POST_SECONDS."""
        age = timezone.now() - self.created_at
        return age.total_seconds() < wryte_settings.NEW_POST_SECONDS

    @property
    def was_edited(self):
        return bool(self.updated_at and self.updated_at != self.created_at)

    def is_owned_by(self, user):
        return user is not None and user.is_authenticated and user.pk == self.author_id


class PostImage(models.Model):
    """
    Hosted image URL attached to a post.

    A post's images are replaced wholesale on every edit.
    """

    post = models.ForeignKey(
        Post,
        on_delete=models.CASCADE,
        related_name="images",
    )
    image_url = models.URLField(max_length=512)
    order = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["order", "id"]
        verbose_name = "Post Image"
        verbose_name_plural = "Post Images"

    def __str__(self):
        return f"{self.post} - image #{self.order}"
