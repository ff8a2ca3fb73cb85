"""
Serializers for owned assets, invoices, appointments and location changes.
"""

from decimal import Decimal

from rest_framework import serializers

from apps.core.formatting_utils import calculate_storage_fee, days_until_deadline
from apps.pricing.models import LivePrice

from .models import (
    AssetTransfer,
    LocationChangeRequest,
    OwnedAsset,
    PickupAppointment,
    PickupLog,
    PurchaseInvoice,
)


class OwnedAssetSerializer(serializers.ModelSerializer):
    """
    Serializer for owned assets, with pickup deadline status.
    """

    display_name = serializers.CharField(read_only=True)
    metal = serializers.CharField(source="asset_metal", read_only=True)
    weight = serializers.DecimalField(
        source="asset_weight", max_digits=10, decimal_places=3, read_only=True
    )
    pickup_store_name = serializers.CharField(
        source="pickup_store.name", read_only=True, default=None
    )
    days_left = serializers.SerializerMethodField()
    storage_fee = serializers.SerializerMethodField()

    class Meta:
        model = OwnedAsset
        fields = [
            "id",
            "display_name",
            "product",
            "serial_number",
            "status",
            "metal",
            "weight",
            "pickup_store",
            "pickup_store_name",
            "pickup_deadline",
            "days_left",
            "storage_fee",
            "xrf_analysis",
            "physical_properties",
            "is_digital",
            "created_at",
        ]
        read_only_fields = fields

    def get_days_left(self, obj):
        if obj.status != OwnedAsset.NOT_RECEIVED or obj.pickup_deadline is None:
            return None
        return days_until_deadline(obj.pickup_deadline)

    def get_storage_fee(self, obj):
        if obj.status != OwnedAsset.NOT_RECEIVED or obj.pickup_deadline is None:
            return None
        fee = calculate_storage_fee(obj.pickup_deadline)
        return {"overdue": fee.overdue, "days": fee.days, "fee": str(fee.fee)}


class PurchaseInvoiceSerializer(serializers.ModelSerializer):
    total_lyd = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    product_name = serializers.CharField(source="product.name", read_only=True, default=None)
    store_name = serializers.CharField(source="store.name", read_only=True, default=None)
    serial_number = serializers.CharField(
        source="asset.serial_number", read_only=True, default=None
    )

    class Meta:
        model = PurchaseInvoice
        fields = [
            "id",
            "invoice_number",
            "product",
            "product_name",
            "store",
            "store_name",
            "asset",
            "serial_number",
            "amount_lyd",
            "commission_lyd",
            "total_lyd",
            "payment_method",
            "is_digital",
            "digital_metal_type",
            "digital_grams",
            "shared_bar_serial",
            "created_at",
        ]
        read_only_fields = fields


class AssetTransferSerializer(serializers.ModelSerializer):
    serial_number = serializers.CharField(source="asset.serial_number", read_only=True)
    from_user_name = serializers.CharField(source="from_user.display_name", read_only=True)
    to_user_name = serializers.CharField(source="to_user.display_name", read_only=True)

    class Meta:
        model = AssetTransfer
        fields = [
            "id",
            "asset",
            "serial_number",
            "from_user",
            "from_user_name",
            "to_user",
            "to_user_name",
            "status",
            "risk_score",
            "transaction_hash",
            "created_at",
            "completed_at",
        ]
        read_only_fields = fields


class PurchaseSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    payment_method = serializers.ChoiceField(choices=PurchaseInvoice.PAYMENT_METHOD_CHOICES)
    store_id = serializers.UUIDField(required=False)
    is_digital = serializers.BooleanField(default=False)
    grams = serializers.DecimalField(
        max_digits=10, decimal_places=3, required=False, min_value=Decimal("0.001")
    )
    coupon_code = serializers.CharField(required=False, allow_blank=True, max_length=50)

    def validate(self, data):
        if data["is_digital"] and data.get("grams") is None:
            raise serializers.ValidationError({"grams": "Required for digital purchases."})
        if not data["is_digital"] and not data.get("store_id"):
            raise serializers.ValidationError({"store_id": "Choose a pickup store."})
        if data["payment_method"] == PurchaseInvoice.COUPON and not data.get("coupon_code"):
            raise serializers.ValidationError({"coupon_code": "Enter a coupon code."})
        return data


class ConvertSerializer(serializers.Serializer):
    metal_type = serializers.ChoiceField(choices=LivePrice.METAL_CHOICES)
    grams = serializers.DecimalField(max_digits=10, decimal_places=3, min_value=Decimal("0.001"))
    store_id = serializers.UUIDField()


class PickupAppointmentSerializer(serializers.ModelSerializer):
    """Customer view of an appointment; the PIN is shown to its owner only."""

    asset_name = serializers.CharField(source="asset.display_name", read_only=True)
    serial_number = serializers.CharField(source="asset.serial_number", read_only=True)
    store_name = serializers.CharField(source="store.name", read_only=True)

    class Meta:
        model = PickupAppointment
        fields = [
            "id",
            "appointment_number",
            "asset",
            "asset_name",
            "serial_number",
            "store",
            "store_name",
            "appointment_date",
            "appointment_time",
            "status",
            "qr_code_data",
            "verification_pin",
            "storage_fee_lyd",
            "notes",
            "cancellation_reason",
            "created_at",
            "confirmed_at",
            "completed_at",
            "cancelled_at",
        ]
        read_only_fields = fields


class StoreAppointmentSerializer(PickupAppointmentSerializer):
    """Counter view of an appointment; the PIN is never exposed to staff."""

    customer_name = serializers.CharField(source="user.display_name", read_only=True)
    customer_phone = serializers.CharField(source="user.phone", read_only=True)

    class Meta(PickupAppointmentSerializer.Meta):
        fields = [
            name
            for name in PickupAppointmentSerializer.Meta.fields
            if name not in ("qr_code_data", "verification_pin")
        ] + ["customer_name", "customer_phone", "storage_fee_payment_method", "handover_notes"]
        read_only_fields = fields


class AppointmentCreateSerializer(serializers.Serializer):
    asset_id = serializers.UUIDField()
    store_id = serializers.UUIDField(
        required=False, help_text="Defaults to the asset's pickup store"
    )
    appointment_date = serializers.DateField()
    appointment_time = serializers.TimeField()
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class AppointmentStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=PickupAppointment.STATUS_CHOICES)
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class HandoverSerializer(serializers.Serializer):
    pin = serializers.CharField(max_length=6)
    storage_fee = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, min_value=Decimal("0.00")
    )
    payment_method = serializers.ChoiceField(
        choices=[PurchaseInvoice.CASH, PurchaseInvoice.WALLET_DINAR], default=PurchaseInvoice.CASH
    )
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    id_photo = serializers.ImageField(required=False)
    customer_photo = serializers.ImageField(required=False)


class PickupLogSerializer(serializers.ModelSerializer):
    appointment_number = serializers.CharField(
        source="appointment.appointment_number", read_only=True
    )
    serial_number = serializers.CharField(source="asset.serial_number", read_only=True)
    customer_name = serializers.CharField(source="customer.display_name", read_only=True)
    processed_by_name = serializers.CharField(
        source="processed_by.display_name", read_only=True, default=None
    )

    class Meta:
        model = PickupLog
        fields = [
            "id",
            "appointment",
            "appointment_number",
            "serial_number",
            "customer_name",
            "processed_by_name",
            "id_photo",
            "customer_photo",
            "storage_fee_lyd",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class LocationChangeCreateSerializer(serializers.Serializer):
    to_store_id = serializers.UUIDField()
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class LocationChangeRequestSerializer(serializers.ModelSerializer):
    serial_number = serializers.CharField(source="asset.serial_number", read_only=True)
    asset_name = serializers.CharField(source="asset.display_name", read_only=True)
    from_store_name = serializers.CharField(source="from_store.name", read_only=True)
    to_store_name = serializers.CharField(source="to_store.name", read_only=True)
    requested_by_name = serializers.CharField(source="requested_by.display_name", read_only=True)

    class Meta:
        model = LocationChangeRequest
        fields = [
            "id",
            "asset",
            "asset_name",
            "serial_number",
            "from_store",
            "from_store_name",
            "to_store",
            "to_store_name",
            "requested_by",
            "requested_by_name",
            "reason",
            "status",
            "resolution_note",
            "created_at",
            "moved_at",
        ]
        read_only_fields = fields


class ResolutionSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, default="")
