"""
Django admin configuration for owned assets, invoices, transfers,
appointments and location changes.
"""

from django.contrib import admin

from .models import (
    AssetTransfer,
    LocationChangeRequest,
    OwnedAsset,
    PickupAppointment,
    PickupLog,
    PurchaseInvoice,
)


@admin.register(OwnedAsset)
class OwnedAssetAdmin(admin.ModelAdmin):
    """Admin interface for OwnedAsset model."""

    list_display = [
        "serial_number",
        "user",
        "product",
        "metal_type",
        "weight_grams",
        "status",
        "pickup_store",
        "pickup_deadline",
        "is_digital",
    ]
    list_filter = ["status", "metal_type", "is_digital", "pickup_store"]
    search_fields = ["serial_number", "user__email", "user__phone", "product__name"]
    raw_id_fields = ["user"]
    readonly_fields = ["id", "status", "created_at", "updated_at"]
    fieldsets = [
        (
            "Basic Information",
            {"fields": ["id", "user", "product", "serial_number", "status", "is_digital"]},
        ),
        (
            "Metal",
            {"fields": ["metal_type", "weight_grams", "xrf_analysis", "physical_properties"]},
        ),
        (
            "Pickup",
            {"fields": ["pickup_store", "pickup_deadline"]},
        ),
        (
            "Timestamps",
            {"fields": ["created_at", "updated_at"], "classes": ["collapse"]},
        ),
    ]


@admin.register(PurchaseInvoice)
class PurchaseInvoiceAdmin(admin.ModelAdmin):
    list_display = [
        "invoice_number",
        "user",
        "product",
        "amount_lyd",
        "commission_lyd",
        "payment_method",
        "is_digital",
        "created_at",
    ]
    list_filter = ["is_digital", "payment_method", "created_at"]
    search_fields = ["invoice_number", "user__email", "shared_bar_serial"]
    raw_id_fields = ["user", "asset"]
    readonly_fields = ["id", "invoice_number", "created_at"]
    date_hierarchy = "created_at"


@admin.register(AssetTransfer)
class AssetTransferAdmin(admin.ModelAdmin):
    list_display = ["asset", "from_user", "to_user", "status", "risk_score", "created_at"]
    list_filter = ["status"]
    search_fields = ["transaction_hash", "asset__serial_number", "from_user__email"]
    raw_id_fields = ["asset", "from_user", "to_user"]
    readonly_fields = ["id", "transaction_hash", "created_at", "completed_at"]


@admin.register(PickupLog)
class PickupLogAdmin(admin.ModelAdmin):
    list_display = ["appointment", "store", "customer", "processed_by", "created_at"]
    list_filter = ["store", "created_at"]
    search_fields = ["appointment__appointment_number", "asset__serial_number", "customer__email"]
    raw_id_fields = ["appointment", "asset", "customer", "processed_by"]
    readonly_fields = ["id", "created_at"]


@admin.register(PickupAppointment)
class PickupAppointmentAdmin(admin.ModelAdmin):
    """Admin interface for PickupAppointment model."""

    list_display = [
        "appointment_number",
        "user",
        "store",
        "appointment_date",
        "appointment_time",
        "status",
        "storage_fee_lyd",
    ]
    list_filter = ["status", "store", "appointment_date"]
    search_fields = ["appointment_number", "user__email", "user__phone", "asset__serial_number"]
    raw_id_fields = ["user", "asset", "processed_by"]
    readonly_fields = [
        "id",
        "appointment_number",
        "status",
        "qr_code_data",
        "verification_pin",
        "created_at",
        "updated_at",
        "confirmed_at",
        "completed_at",
        "cancelled_at",
    ]
    fieldsets = [
        (
            "Appointment",
            {
                "fields": [
                    "id",
                    "appointment_number",
                    "user",
                    "asset",
                    "store",
                    "appointment_date",
                    "appointment_time",
                    "status",
                    "notes",
                ]
            },
        ),
        (
            "Verification",
            {"fields": ["qr_code_data", "verification_pin"], "classes": ["collapse"]},
        ),
        (
            "Handover",
            {
                "fields": [
                    "processed_by",
                    "storage_fee_lyd",
                    "storage_fee_payment_method",
                    "handover_notes",
                    "cancellation_reason",
                ]
            },
        ),
        (
            "Timestamps",
            {
                "fields": [
                    "created_at",
                    "updated_at",
                    "confirmed_at",
                    "completed_at",
                    "cancelled_at",
                ],
                "classes": ["collapse"],
            },
        ),
    ]


@admin.register(LocationChangeRequest)
class LocationChangeRequestAdmin(admin.ModelAdmin):
    list_display = ["asset", "from_store", "to_store", "requested_by", "status", "created_at"]
    list_filter = ["status", "from_store", "to_store"]
    search_fields = ["asset__serial_number", "requested_by__email"]
    raw_id_fields = ["asset", "requested_by", "approved_by"]
    readonly_fields = ["id", "status", "created_at", "updated_at", "moved_at"]
