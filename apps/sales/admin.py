"""
Django admin configuration for POS sales, the marketplace and the cash drawer.
"""

from django.contrib import admin

from .models import CashMovement, MarketplaceItem, MarketplaceOrder, PosSale, PosSaleItem


class PosSaleItemInline(admin.TabularInline):
    """Inline admin for PosSaleItem model."""

    model = PosSaleItem
    extra = 0
    fields = ["product", "inventory", "quantity", "unit_price_lyd", "line_total_lyd"]
    readonly_fields = fields


@admin.register(PosSale)
class PosSaleAdmin(admin.ModelAdmin):
    """Admin interface for PosSale model."""

    list_display = [
        "sale_number",
        "store",
        "clerk",
        "customer",
        "total_lyd",
        "payment_method",
        "created_at",
    ]
    list_filter = ["payment_method", "store", "created_at"]
    search_fields = ["sale_number", "customer__email", "customer__phone", "clerk__email"]
    readonly_fields = [
        "id",
        "sale_number",
        "subtotal_lyd",
        "discount_lyd",
        "total_lyd",
        "created_at",
    ]
    raw_id_fields = ["clerk", "customer"]
    inlines = [PosSaleItemInline]
    date_hierarchy = "created_at"


@admin.register(MarketplaceItem)
class MarketplaceItemAdmin(admin.ModelAdmin):
    """
    Admin interface for marketplace listings.

    Listings are created and priced here.
    """

    list_display = [
        "item_name",
        "store",
        "item_type",
        "metal_type",
        "price_lyd",
        "quantity_available",
        "is_available",
        "featured",
    ]
    list_filter = ["is_available", "featured", "item_type", "metal_type", "store"]
    search_fields = ["item_name", "description"]
    readonly_fields = ["id", "created_at", "updated_at"]
    list_editable = ["is_available", "featured"]


@admin.register(MarketplaceOrder)
class MarketplaceOrderAdmin(admin.ModelAdmin):
    list_display = [
        "item",
        "buyer",
        "store",
        "quantity",
        "total_price_lyd",
        "order_status",
        "created_at",
    ]
    list_filter = ["order_status", "payment_method", "delivery_method", "store"]
    search_fields = ["item__item_name", "buyer__email"]
    raw_id_fields = ["buyer", "sale"]
    readonly_fields = ["id", "total_price_lyd", "total_price_usd", "created_at", "updated_at"]


@admin.register(CashMovement)
class CashMovementAdmin(admin.ModelAdmin):
    list_display = ["store", "movement_type", "amount_lyd", "clerk", "created_at"]
    list_filter = ["movement_type", "store", "created_at"]
    search_fields = ["notes"]
    readonly_fields = ["id", "created_at"]
