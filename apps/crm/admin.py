"""
Django admin configuration for coupons and customer notes.
"""

from django.contrib import admin

from .models import Coupon, CouponUsage, CustomerNote


class CouponUsageInline(admin.TabularInline):
    model = CouponUsage
    extra = 0
    fields = ["user", "transaction_id", "discount_amount", "final_amount", "currency", "used_at"]
    readonly_fields = fields
    can_delete = False


@admin.register(Coupon)
class CouponAdmin(admin.ModelAdmin):
    """
    Admin interface for coupons.

    Platform-wide coupons (no store) are only created here.
    """

    list_display = [
        "code",
        "store",
        "discount_type",
        "discount_value",
        "currency",
        "usage_count",
        "usage_limit",
        "valid_until",
        "is_active",
    ]
    list_filter = ["is_active", "discount_type", "currency", "store"]
    search_fields = ["code", "description"]
    readonly_fields = ["id", "usage_count", "created_by", "created_at", "updated_at"]
    inlines = [CouponUsageInline]
    fieldsets = [
        (
            "Coupon",
            {"fields": ["id", "code", "store", "description", "is_active"]},
        ),
        (
            "Discount",
            {
                "fields": [
                    "discount_type",
                    "discount_value",
                    "max_discount_amount",
                    "min_purchase_amount",
                    "currency",
                    "allowed_payment_methods",
                ]
            },
        ),
        (
            "Validity",
            {"fields": ["valid_from", "valid_until", "usage_limit", "usage_count"]},
        ),
        (
            "Audit",
            {"fields": ["created_by", "created_at", "updated_at"], "classes": ["collapse"]},
        ),
    ]

    def save_model(self, request, obj, form, change):
        if not change:
            obj.created_by = request.user
        super().save_model(request, obj, form, change)


@admin.register(CustomerNote)
class CustomerNoteAdmin(admin.ModelAdmin):
    list_display = ["customer", "store", "author", "is_internal", "created_at"]
    list_filter = ["is_internal", "store"]
    search_fields = ["body", "customer__email", "customer__phone"]
    raw_id_fields = ["customer", "author"]
    readonly_fields = ["id", "created_at"]
