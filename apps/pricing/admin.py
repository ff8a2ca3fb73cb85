"""
Admin configuration for live prices.
"""

from django.contrib import admin

from .models import LivePrice


@admin.register(LivePrice)
class LivePriceAdmin(admin.ModelAdmin):
    """
    Admin interface for live metal prices.

    Prices are normally written by the refresh task; edits here take effect
    immediately for quotes and purchases.
    """

    list_display = ["metal_type", "price_lyd_per_gram", "change_percent", "updated_at"]
    readonly_fields = ["id", "updated_at"]
    ordering = ["metal_type"]
