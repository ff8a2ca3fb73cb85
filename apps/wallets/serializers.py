"""
Serializers for wallets, digital balances, statements and transfers.
"""

from decimal import Decimal

from rest_framework import serializers

from apps.pricing.models import LivePrice

from .models import CURRENCY_CHOICES, DigitalBalance, Transaction, Wallet

METHOD_CHOICES = [
    ("bank_transfer", "Bank Transfer"),
    ("cash", "Cash"),
    ("card", "Card"),
]


class WalletSerializer(serializers.ModelSerializer):
    class Meta:
        model = Wallet
        fields = ["id", "currency", "balance", "available_balance", "held_balance", "updated_at"]
        read_only_fields = fields


class DigitalBalanceSerializer(serializers.ModelSerializer):
    value_lyd = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = DigitalBalance
        fields = ["id", "metal_type", "grams", "value_lyd", "updated_at"]
        read_only_fields = fields


class TransactionSerializer(serializers.ModelSerializer):
    type_display = serializers.CharField(source="get_type_display", read_only=True)

    class Meta:
        model = Transaction
        fields = [
            "id",
            "type",
            "type_display",
            "amount",
            "currency",
            "description",
            "reference_id",
            "created_at",
        ]
        read_only_fields = fields


class WalletMovementSerializer(serializers.Serializer):
    """Deposit or withdrawal request."""

    currency = serializers.ChoiceField(choices=CURRENCY_CHOICES)
    amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal("0.01"))
    method = serializers.ChoiceField(choices=METHOD_CHOICES, default="bank_transfer")


class DigitalTransferSerializer(serializers.Serializer):
    recipient = serializers.CharField(help_text="Recipient email or phone")
    metal_type = serializers.ChoiceField(choices=LivePrice.METAL_CHOICES)
    grams = serializers.DecimalField(max_digits=14, decimal_places=3, min_value=Decimal("0.001"))


class BalanceTransferSerializer(serializers.Serializer):
    recipient = serializers.CharField(help_text="Recipient email or phone")
    currency = serializers.ChoiceField(choices=CURRENCY_CHOICES)
    amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal("0.01"))


class OwnershipTransferSerializer(serializers.Serializer):
    recipient = serializers.CharField(help_text="Recipient email or phone")
    asset_id = serializers.UUIDField()
