"""
Assets app configuration.
"""

from django.apps import AppConfig


class AssetsConfig(AppConfig):
    """Configuration for the assets app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.assets"
    verbose_name = "Owned Assets"
