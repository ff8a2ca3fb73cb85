"""
Django admin configuration for wallets and the wallet ledger.
"""

from django.contrib import admin

from .models import DigitalBalance, Transaction, Wallet


@admin.register(Wallet)
class WalletAdmin(admin.ModelAdmin):
    """Admin interface for Wallet model."""

    list_display = [
        "user",
        "currency",
        "balance",
        "available_balance",
        "held_balance",
        "updated_at",
    ]
    list_filter = ["currency"]
    search_fields = ["user__email", "user__phone", "user__username"]
    raw_id_fields = ["user"]
    # Balances only move through the wallet services
    readonly_fields = [
        "id",
        "balance",
        "available_balance",
        "held_balance",
        "created_at",
        "updated_at",
    ]


@admin.register(DigitalBalance)
class DigitalBalanceAdmin(admin.ModelAdmin):
    list_display = ["user", "metal_type", "grams", "updated_at"]
    list_filter = ["metal_type"]
    search_fields = ["user__email", "user__phone"]
    raw_id_fields = ["user"]
    readonly_fields = ["id", "grams", "updated_at"]


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    """Read-only view of the wallet ledger."""

    list_display = ["reference_id", "user", "type", "amount", "currency", "created_at"]
    list_filter = ["type", "currency", "created_at"]
    search_fields = ["reference_id", "description", "user__email"]
    readonly_fields = [
        "id",
        "user",
        "type",
        "amount",
        "currency",
        "description",
        "reference_id",
        "created_at",
    ]
    date_hierarchy = "created_at"

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
