"""
Serializers for store accounts, ledger lines, bank accounts and fund
transfers.
"""

from decimal import Decimal

from rest_framework import serializers

from apps.wallets.models import CURRENCY_CHOICES, LYD

from .models import (
    StoreBankAccount,
    StoreFinancialAccount,
    StoreFinancialTransaction,
    StoreFundTransferRequest,
)


class FinancialAccountSerializer(serializers.ModelSerializer):
    class Meta:
        model = StoreFinancialAccount
        fields = ["id", "currency", "balance", "available_balance", "held_balance", "updated_at"]
        read_only_fields = fields


class FinancialTransactionSerializer(serializers.ModelSerializer):
    currency = serializers.CharField(source="account.currency", read_only=True)
    type_display = serializers.CharField(source="get_transaction_type_display", read_only=True)
    processed_by_name = serializers.CharField(
        source="processed_by.display_name", read_only=True, default=None
    )

    class Meta:
        model = StoreFinancialTransaction
        fields = [
            "id",
            "currency",
            "transaction_type",
            "type_display",
            "amount",
            "balance_before",
            "balance_after",
            "reference_type",
            "reference_id",
            "description",
            "metadata",
            "processed_by",
            "processed_by_name",
            "created_at",
        ]
        read_only_fields = fields


class FundsMovementSerializer(serializers.Serializer):
    currency = serializers.ChoiceField(choices=CURRENCY_CHOICES, default=LYD)
    amount = serializers.DecimalField(max_digits=16, decimal_places=2, min_value=Decimal("0.01"))
    description = serializers.CharField(required=False, allow_blank=True, default="")


class BankAccountSerializer(serializers.ModelSerializer):
    masked_account_number = serializers.CharField(read_only=True)

    class Meta:
        model = StoreBankAccount
        fields = [
            "id",
            "bank_name",
            "account_number",
            "masked_account_number",
            "iban",
            "swift_code",
            "account_holder_name",
            "branch",
            "is_active",
            "is_verified",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "is_verified", "created_at", "updated_at"]


class BankTransactionSerializer(serializers.Serializer):
    transaction_type = serializers.ChoiceField(
        choices=[StoreFinancialTransaction.BANK_DEPOSIT, StoreFinancialTransaction.BANK_WITHDRAWAL]
    )
    amount = serializers.DecimalField(max_digits=16, decimal_places=2, min_value=Decimal("0.01"))
    description = serializers.CharField(required=False, allow_blank=True, default="")


class FundTransferSerializer(serializers.ModelSerializer):
    from_store_name = serializers.CharField(source="from_store.name", read_only=True)
    to_store_name = serializers.CharField(source="to_store.name", read_only=True)
    requested_by_name = serializers.CharField(source="requested_by.display_name", read_only=True)
    status_display = serializers.CharField(source="get_status_display", read_only=True)

    class Meta:
        model = StoreFundTransferRequest
        fields = [
            "id",
            "from_store",
            "from_store_name",
            "to_store",
            "to_store_name",
            "currency",
            "amount",
            "status",
            "status_display",
            "reason",
            "notes",
            "requested_by",
            "requested_by_name",
            "approved_by",
            "approval_notes",
            "approved_at",
            "completed_at",
            "created_at",
        ]
        read_only_fields = fields


class FundTransferCreateSerializer(serializers.Serializer):
    to_store_id = serializers.UUIDField()
    currency = serializers.ChoiceField(choices=CURRENCY_CHOICES, default=LYD)
    amount = serializers.DecimalField(max_digits=16, decimal_places=2, min_value=Decimal("0.01"))
    reason = serializers.CharField()
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class FundTransferActionSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, default="")
