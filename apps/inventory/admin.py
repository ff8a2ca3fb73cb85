"""
Django admin configuration for products, stock, bars and stock transfers.
"""

from django.contrib import admin

from .models import (
    InventoryBar,
    Product,
    StoreInventory,
    StoreInventoryTransfer,
    StoreInventoryTransferItem,
)


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    """Admin interface for the product catalog."""

    list_display = ["name", "type", "carat", "weight_grams", "base_price_lyd", "is_active"]
    list_filter = ["type", "is_active"]
    search_fields = ["name", "description"]
    readonly_fields = ["id", "created_at", "updated_at"]


@admin.register(StoreInventory)
class StoreInventoryAdmin(admin.ModelAdmin):
    list_display = ["store", "product", "quantity", "updated_at"]
    list_filter = ["store", "product__type"]
    search_fields = ["product__name", "store__name"]
    readonly_fields = ["id", "created_at", "updated_at"]

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("store", "product")


@admin.register(InventoryBar)
class InventoryBarAdmin(admin.ModelAdmin):
    """Admin interface for serialized bars."""

    list_display = [
        "serial_number",
        "product",
        "store",
        "weight_grams",
        "purity",
        "status",
        "sale_date",
    ]
    list_filter = ["status", "store", "product__type"]
    search_fields = ["serial_number", "bar_number", "certification_number", "manufacturer"]
    raw_id_fields = ["inventory", "sale", "buyer"]
    readonly_fields = ["id", "sale", "buyer", "sale_date", "created_at", "updated_at"]
    fieldsets = [
        (
            "Basic Information",
            {"fields": ["id", "store", "inventory", "product", "serial_number", "bar_number"]},
        ),
        (
            "Assay",
            {
                "fields": [
                    "weight_grams",
                    "purity",
                    "xrf_gold_percentage",
                    "xrf_silver_percentage",
                    "xrf_copper_percentage",
                    "xrf_other_metals",
                ]
            },
        ),
        (
            "Origin",
            {"fields": ["manufacturer", "manufacture_date", "certification_number"]},
        ),
        (
            "Status",
            {"fields": ["status", "sale", "buyer", "sale_date", "notes"]},
        ),
        (
            "Timestamps",
            {"fields": ["created_at", "updated_at"], "classes": ["collapse"]},
        ),
    ]


class StoreInventoryTransferItemInline(admin.TabularInline):
    """Inline admin for transfer lines."""

    model = StoreInventoryTransferItem
    extra = 0
    fields = ["product", "bar", "serial_number", "quantity", "status", "notes"]
    readonly_fields = ["product", "bar", "serial_number", "quantity", "status"]


@admin.register(StoreInventoryTransfer)
class StoreInventoryTransferAdmin(admin.ModelAdmin):
    """
    Admin interface for stock transfers.

    Status is read-only here; transfers move through the store console.
    """

    list_display = [
        "transfer_number",
        "from_store",
        "to_store",
        "status",
        "total_items",
        "requested_by",
        "created_at",
    ]
    list_filter = ["status", "from_store", "to_store", "created_at"]
    search_fields = ["transfer_number", "shipping_reference"]
    readonly_fields = [
        "id",
        "transfer_number",
        "status",
        "total_items",
        "requested_by",
        "approved_by",
        "approved_at",
        "shipped_by",
        "shipped_at",
        "received_by",
        "received_at",
        "created_at",
        "updated_at",
    ]
    inlines = [StoreInventoryTransferItemInline]
