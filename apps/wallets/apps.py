"""
Wallets app configuration.
"""

from django.apps import AppConfig


class WalletsConfig(AppConfig):
    """Configuration for the wallets app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.wallets"
    verbose_name = "Wallets"
