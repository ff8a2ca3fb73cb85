"""
Serializers for coupons and the store customer desk.
"""

from decimal import Decimal

from rest_framework import serializers

from apps.wallets.models import CURRENCY_CHOICES, LYD

from .models import Coupon, CouponUsage, CustomerNote

PAYMENT_METHODS = ["wallet_dinar", "wallet_dollar", "cash", "card", "bank_transfer"]


class CouponSerializer(serializers.ModelSerializer):
    """Store-managed coupon."""

    allowed_payment_methods = serializers.ListField(
        child=serializers.ChoiceField(choices=PAYMENT_METHODS), required=False
    )

    class Meta:
        model = Coupon
        fields = [
            "id",
            "store",
            "code",
            "description",
            "discount_type",
            "discount_value",
            "max_discount_amount",
            "min_purchase_amount",
            "currency",
            "usage_limit",
            "usage_count",
            "valid_from",
            "valid_until",
            "is_active",
            "allowed_payment_methods",
            "created_at",
        ]
        read_only_fields = ["id", "store", "usage_count", "created_at"]

    def validate_code(self, value):
        code = value.strip().upper()
        queryset = Coupon.objects.filter(code=code)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError("A coupon with this code already exists.")
        return code

    def validate(self, data):
        discount_type = data.get("discount_type", getattr(self.instance, "discount_type", None))
        value = data.get("discount_value", getattr(self.instance, "discount_value", None))
        if discount_type == Coupon.PERCENTAGE and value is not None and value > 100:
            raise serializers.ValidationError(
                {"discount_value": "A percentage discount cannot exceed 100."}
            )
        valid_from = data.get("valid_from", getattr(self.instance, "valid_from", None))
        valid_until = data.get("valid_until", getattr(self.instance, "valid_until", None))
        if valid_from and valid_until and valid_until < valid_from:
            raise serializers.ValidationError({"valid_until": "Expiry must be after the start."})
        return data


class AvailableCouponSerializer(serializers.ModelSerializer):
    """What customers see of a coupon."""

    store_name = serializers.CharField(source="store.name", read_only=True, default=None)

    class Meta:
        model = Coupon
        fields = [
            "code",
            "description",
            "discount_type",
            "discount_value",
            "max_discount_amount",
            "min_purchase_amount",
            "currency",
            "valid_until",
            "store_name",
        ]
        read_only_fields = fields


class CouponUsageSerializer(serializers.ModelSerializer):
    code = serializers.CharField(source="coupon.code", read_only=True)

    class Meta:
        model = CouponUsage
        fields = [
            "id",
            "code",
            "transaction_id",
            "original_amount",
            "discount_amount",
            "final_amount",
            "currency",
            "used_at",
        ]
        read_only_fields = fields


class CouponValidateSerializer(serializers.Serializer):
    code = serializers.CharField()
    amount = serializers.DecimalField(max_digits=16, decimal_places=2, min_value=Decimal("0.00"))
    currency = serializers.ChoiceField(choices=CURRENCY_CHOICES, default=LYD)
    store_id = serializers.UUIDField(required=False, allow_null=True)
    payment_method = serializers.ChoiceField(choices=PAYMENT_METHODS, required=False)


class CustomerSearchResultSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    display_name = serializers.CharField()
    email = serializers.EmailField()
    phone = serializers.CharField()
    national_id = serializers.CharField()
    store_sales_count = serializers.IntegerField()


class CustomerNoteSerializer(serializers.ModelSerializer):
    author_name = serializers.CharField(source="author.display_name", read_only=True, default=None)

    class Meta:
        model = CustomerNote
        fields = ["id", "customer", "author", "author_name", "body", "is_internal", "created_at"]
        read_only_fields = ["id", "customer", "author", "created_at"]
