"""Django app configuration for wryte."""
from django.apps import AppConfig


class WryteConfig(AppConfig):
    """Configuration for the wryte app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "wryte"
    verbose_name = "Wryte"
