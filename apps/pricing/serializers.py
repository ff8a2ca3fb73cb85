"""
Serializers for live prices and purchase quotes.
"""

from decimal import Decimal

from rest_framework import serializers

from .models import LivePrice


class LivePriceSerializer(serializers.ModelSerializer):
    metal_display = serializers.CharField(source="get_metal_type_display", read_only=True)

    class Meta:
        model = LivePrice
        fields = [
            "metal_type",
            "metal_display",
            "price_lyd_per_gram",
            "change_percent",
            "updated_at",
        ]
        read_only_fields = fields


class QuoteRequestSerializer(serializers.Serializer):
    """Input of the quote endpoint."""

    product_id = serializers.UUIDField()
    is_digital = serializers.BooleanField(default=False)
    grams = serializers.DecimalField(
        max_digits=10,
        decimal_places=3,
        required=False,
        min_value=Decimal("0.001"),
    )

    def validate(self, data):
        if data["is_digital"] and data.get("grams") is None:
            raise serializers.ValidationError({"grams": "Required for digital purchases."})
        return data


class PurchaseQuoteSerializer(serializers.Serializer):
    price_per_gram = serializers.DecimalField(max_digits=12, decimal_places=2)
    grams = serializers.DecimalField(max_digits=10, decimal_places=3)
    subtotal = serializers.DecimalField(max_digits=14, decimal_places=2)
    commission = serializers.DecimalField(max_digits=14, decimal_places=2)
    total = serializers.DecimalField(max_digits=14, decimal_places=2)
