"""
Identity model linking local users to the external auth provider.
"""
from django.conf import settings
from django.db import models


class Identity(models.Model):
    """
    External auth provider identity for a local user.

    Rows are created, updated and removed by the identity webhook as the
    provider reports user lifecycle events.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="wryte_identity",
    )
    provider_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="User id assigned by the auth provider",
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "Identities"

    def __str__(self):
        return f"{self.provider_id} -> {self.user}"
