"""
Serializers for POS sales, the marketplace, the cash drawer and receipts.
"""

from decimal import Decimal

from rest_framework import serializers

from .models import CashMovement, MarketplaceItem, MarketplaceOrder, PosSale, PosSaleItem


class PosSaleItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="product.name", read_only=True)

    class Meta:
        model = PosSaleItem
        fields = ["id", "product", "product_name", "quantity", "unit_price_lyd", "line_total_lyd"]
        read_only_fields = fields


class PosSaleSerializer(serializers.ModelSerializer):
    """Serializer for completed POS sales."""

    clerk_name = serializers.CharField(source="clerk.display_name", read_only=True)
    customer_name = serializers.CharField(
        source="customer.display_name", read_only=True, default=None
    )
    items = PosSaleItemSerializer(many=True, read_only=True)

    class Meta:
        model = PosSale
        fields = [
            "id",
            "sale_number",
            "store",
            "clerk",
            "clerk_name",
            "customer",
            "customer_name",
            "subtotal_lyd",
            "discount_lyd",
            "total_lyd",
            "payment_method",
            "notes",
            "items",
            "created_at",
        ]
        read_only_fields = fields


class SaleLineSerializer(serializers.Serializer):
    inventory_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1, default=1)
    unit_price_lyd = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, min_value=Decimal("0.00")
    )


class SaleCreateSerializer(serializers.Serializer):
    """
    Request body of a POS sale.

    {
        "customer_id": "uuid" (optional),
        "items": [{"inventory_id": "uuid", "quantity": 1, "unit_price_lyd": "100.00"}],
        "payment_method": "cash|card|wallet|bank_transfer",
        "discount": "0.00",
        "notes": ""
    }
    """

    customer_id = serializers.UUIDField(required=False, allow_null=True)
    items = SaleLineSerializer(many=True)
    payment_method = serializers.ChoiceField(
        choices=PosSale.PAYMENT_METHOD_CHOICES, default=PosSale.CASH
    )
    discount = serializers.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00"), min_value=Decimal("0.00")
    )
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("At least one item is required.")
        return value


class MarketplaceItemSerializer(serializers.ModelSerializer):
    store_name = serializers.CharField(source="store.name", read_only=True)

    class Meta:
        model = MarketplaceItem
        fields = [
            "id",
            "store",
            "store_name",
            "item_name",
            "item_type",
            "metal_type",
            "weight",
            "purity",
            "price_lyd",
            "price_usd",
            "quantity_available",
            "description",
            "image_url",
            "is_available",
            "featured",
            "created_at",
        ]
        read_only_fields = fields


class MarketplaceOrderSerializer(serializers.ModelSerializer):
    item_name = serializers.CharField(source="item.item_name", read_only=True)
    store_name = serializers.CharField(source="store.name", read_only=True)
    sale_number = serializers.CharField(source="sale.sale_number", read_only=True, default=None)

    class Meta:
        model = MarketplaceOrder
        fields = [
            "id",
            "item",
            "item_name",
            "buyer",
            "store",
            "store_name",
            "sale",
            "sale_number",
            "quantity",
            "total_price_lyd",
            "total_price_usd",
            "order_status",
            "payment_method",
            "delivery_method",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class OrderCreateSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1, default=1)
    payment_method = serializers.ChoiceField(choices=MarketplaceOrder.PAYMENT_METHOD_CHOICES)
    delivery_method = serializers.ChoiceField(
        choices=MarketplaceOrder.DELIVERY_METHOD_CHOICES, default=MarketplaceOrder.PICKUP
    )
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class OrderStatusSerializer(serializers.Serializer):
    order_status = serializers.ChoiceField(choices=MarketplaceOrder.STATUS_CHOICES)


class CashMovementSerializer(serializers.ModelSerializer):
    clerk_name = serializers.CharField(source="clerk.display_name", read_only=True)

    class Meta:
        model = CashMovement
        fields = ["id", "movement_type", "amount_lyd", "notes", "clerk", "clerk_name", "created_at"]
        read_only_fields = fields


class CashMovementCreateSerializer(serializers.Serializer):
    movement_type = serializers.ChoiceField(
        choices=[CashMovement.CASH_IN, CashMovement.CASH_OUT]
    )
    amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal("0.01"))
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class DrawerAmountSerializer(serializers.Serializer):
    """Opening float or counted cash."""

    amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal("0.00"))
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class DrawerSummarySerializer(serializers.Serializer):
    date = serializers.DateField()
    opening = serializers.DecimalField(max_digits=14, decimal_places=2)
    cash_in = serializers.DecimalField(max_digits=14, decimal_places=2)
    cash_out = serializers.DecimalField(max_digits=14, decimal_places=2)
    cash_sales = serializers.DecimalField(max_digits=14, decimal_places=2)
    expected = serializers.DecimalField(max_digits=14, decimal_places=2)
    counted = serializers.DecimalField(max_digits=14, decimal_places=2, allow_null=True)
    variance = serializers.DecimalField(max_digits=14, decimal_places=2, allow_null=True)
    is_open = serializers.BooleanField()
    message = serializers.CharField(required=False)
