"""
Serializers for the catalogue, store stock, bars and inventory transfers.
"""

from rest_framework import serializers

from apps.core.models import Store

from .models import (
    InventoryBar,
    Product,
    StoreInventory,
    StoreInventoryTransfer,
    StoreInventoryTransferItem,
)


class ProductSerializer(serializers.ModelSerializer):
    class Meta:
        model = Product
        fields = [
            "id",
            "name",
            "type",
            "carat",
            "weight_grams",
            "base_price_lyd",
            "description",
            "is_active",
        ]
        read_only_fields = fields


class PublicStoreSerializer(serializers.ModelSerializer):
    """Store details shown to customers choosing a pickup location."""

    class Meta:
        model = Store
        fields = ["id", "name", "city", "address", "phone", "map_url", "working_hours"]
        read_only_fields = fields


class StoreInventorySerializer(serializers.ModelSerializer):
    product = ProductSerializer(read_only=True)

    class Meta:
        model = StoreInventory
        fields = ["id", "product", "quantity", "updated_at"]
        read_only_fields = fields


class AddStockSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class InventoryBarSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="product.name", read_only=True)
    store_name = serializers.CharField(source="store.name", read_only=True)

    class Meta:
        model = InventoryBar
        fields = [
            "id",
            "serial_number",
            "bar_number",
            "product",
            "product_name",
            "store",
            "store_name",
            "weight_grams",
            "purity",
            "xrf_gold_percentage",
            "xrf_silver_percentage",
            "xrf_copper_percentage",
            "xrf_other_metals",
            "manufacturer",
            "manufacture_date",
            "certification_number",
            "status",
            "sale_date",
            "notes",
            "created_at",
        ]
        read_only_fields = ["id", "store", "status", "sale_date", "created_at"]


class BarStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=InventoryBar.STATUS_CHOICES)


# Inventory Transfer Serializers


class TransferItemInputSerializer(serializers.Serializer):
    """One line of a transfer request."""

    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1, default=1)
    serial_number = serializers.CharField(max_length=100, required=False, allow_blank=True)


class TransferItemDetailSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="product.name", read_only=True)

    class Meta:
        model = StoreInventoryTransferItem
        fields = [
            "id",
            "product",
            "product_name",
            "bar",
            "serial_number",
            "quantity",
            "status",
            "notes",
        ]
        read_only_fields = fields


class TransferListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for transfer lists."""

    from_store_name = serializers.CharField(source="from_store.name", read_only=True)
    to_store_name = serializers.CharField(source="to_store.name", read_only=True)
    requested_by_name = serializers.CharField(source="requested_by.username", read_only=True)
    status_display = serializers.CharField(source="get_status_display", read_only=True)

    class Meta:
        model = StoreInventoryTransfer
        fields = [
            "id",
            "transfer_number",
            "from_store",
            "from_store_name",
            "to_store",
            "to_store_name",
            "status",
            "status_display",
            "total_items",
            "reason",
            "requested_by",
            "requested_by_name",
            "created_at",
            "approved_at",
            "shipped_at",
            "received_at",
        ]
        read_only_fields = fields


class TransferDetailSerializer(TransferListSerializer):
    """Detailed serializer for transfer detail view."""

    items = TransferItemDetailSerializer(many=True, read_only=True)

    class Meta(TransferListSerializer.Meta):
        fields = TransferListSerializer.Meta.fields + [
            "notes",
            "approved_by",
            "approval_notes",
            "shipped_by",
            "shipping_reference",
            "received_by",
            "receipt_notes",
            "items",
        ]
        read_only_fields = fields


class TransferCreateSerializer(serializers.Serializer):
    """Serializer for creating inventory transfers."""

    from_store_id = serializers.UUIDField()
    to_store_id = serializers.UUIDField()
    items = TransferItemInputSerializer(many=True)
    reason = serializers.CharField(max_length=1000)
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True, default="")

    def validate(self, data):
        if data["from_store_id"] == data["to_store_id"]:
            raise serializers.ValidationError(
                {"to_store_id": "Source and destination stores must differ."}
            )
        if not data["items"]:
            raise serializers.ValidationError({"items": "At least one item is required."})
        return data


class TransferActionSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    shipping_reference = serializers.CharField(
        max_length=100, required=False, allow_blank=True, default=""
    )
