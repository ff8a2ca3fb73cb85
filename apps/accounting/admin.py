"""
Django admin configuration for store accounts, bank accounts and fund
transfers.
"""

from django.contrib import admin

from .models import (
    StoreBankAccount,
    StoreFinancialAccount,
    StoreFinancialTransaction,
    StoreFundTransferRequest,
)


@admin.register(StoreFinancialAccount)
class StoreFinancialAccountAdmin(admin.ModelAdmin):
    list_display = ["store", "currency", "balance", "available_balance", "held_balance"]
    list_filter = ["currency", "store"]
    # Balances only move through the ledger
    readonly_fields = [
        "id",
        "balance",
        "available_balance",
        "held_balance",
        "created_at",
        "updated_at",
    ]


@admin.register(StoreFinancialTransaction)
class StoreFinancialTransactionAdmin(admin.ModelAdmin):
    """Read-only view of the store ledger."""

    list_display = [
        "store",
        "account",
        "transaction_type",
        "amount",
        "balance_after",
        "reference_type",
        "created_at",
    ]
    list_filter = ["transaction_type", "store", "created_at"]
    search_fields = ["description", "reference_id"]
    date_hierarchy = "created_at"

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request):
        return False


@admin.register(StoreBankAccount)
class StoreBankAccountAdmin(admin.ModelAdmin):
    """Admin interface for store bank accounts."""

    list_display = [
        "bank_name",
        "masked_account_number",
        "store",
        "account_holder_name",
        "is_active",
        "is_verified",
    ]
    list_filter = ["is_active", "is_verified", "bank_name"]
    search_fields = ["bank_name", "account_number", "iban", "account_holder_name"]
    readonly_fields = ["id", "created_by", "created_at", "updated_at"]
    fieldsets = [
        (
            "Account",
            {
                "fields": [
                    "id",
                    "store",
                    "bank_name",
                    "branch",
                    "account_holder_name",
                    "account_number",
                    "iban",
                    "swift_code",
                ]
            },
        ),
        (
            "Status",
            {"fields": ["is_active", "is_verified"]},
        ),
        (
            "Audit",
            {"fields": ["created_by", "created_at", "updated_at"], "classes": ["collapse"]},
        ),
    ]


@admin.register(StoreFundTransferRequest)
class StoreFundTransferRequestAdmin(admin.ModelAdmin):
    list_display = ["from_store", "to_store", "currency", "amount", "status", "created_at"]
    list_filter = ["status", "currency"]
    search_fields = ["reason", "notes", "from_store__name", "to_store__name"]
    readonly_fields = [
        "id",
        "status",
        "requested_by",
        "approved_by",
        "approved_at",
        "completed_at",
        "created_at",
        "updated_at",
    ]
