"""
CRM models for the storefront.

- Coupon: discount codes, platform-wide or issued by a store
- CouponUsage: one redemption of a coupon by a customer
- CustomerNote: notes store staff keep about a customer
"""

import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from apps.core.models import Store, User
from apps.wallets.models import CURRENCY_CHOICES, LYD


class Coupon(models.Model):
    """
    Discount code applied at checkout.

    Codes are stored upper case and matched case-insensitively. A coupon
    without a store is valid platform-wide.
    """

    FIXED = "fixed"
    PERCENTAGE = "percentage"

    DISCOUNT_TYPE_CHOICES = [
        (FIXED, "Fixed Amount"),
        (PERCENTAGE, "Percentage"),
    ]

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the coupon",
    )

    store = models.ForeignKey(
        Store,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="coupons",
        help_text="Issuing store; empty for platform-wide coupons",
    )

    code = models.CharField(max_length=50, unique=True, help_text="Coupon code (upper case)")

    description = models.TextField(blank=True)

    discount_type = models.CharField(max_length=20, choices=DISCOUNT_TYPE_CHOICES)

    discount_value = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="Amount off for fixed coupons, percent off for percentage coupons",
    )

    max_discount_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Cap on the discount of percentage coupons",
    )

    min_purchase_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )

    currency = models.CharField(max_length=3, choices=CURRENCY_CHOICES, default=LYD)

    usage_limit = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Maximum number of redemptions; empty for unlimited",
    )

    usage_count = models.PositiveIntegerField(default=0)

    valid_from = models.DateTimeField(default=timezone.now)
    valid_until = models.DateTimeField(null=True, blank=True)

    is_active = models.BooleanField(default=True)

    allowed_payment_methods = models.JSONField(
        default=list,
        blank=True,
        help_text="Payment methods the coupon may be used with; empty for any",
    )

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="coupons_created",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "crm_coupons"
        ordering = ["-created_at"]
        verbose_name = "Coupon"
        verbose_name_plural = "Coupons"
        indexes = [
            models.Index(fields=["is_active", "valid_until"], name="coupon_active_until_idx"),
        ]

    def __str__(self):
        return self.code

    def save(self, *args, **kwargs):
        self.code = (self.code or "").strip().upper()
        super().save(*args, **kwargs)


class CouponUsage(models.Model):
    """
    Redemption of a coupon.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    coupon = models.ForeignKey(Coupon, on_delete=models.PROTECT, related_name="usages")

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="coupon_usages")

    transaction_id = models.CharField(
        max_length=100,
        help_text="Reference of the purchase the coupon was applied to",
    )

    discount_amount = models.DecimalField(max_digits=12, decimal_places=2)
    original_amount = models.DecimalField(max_digits=12, decimal_places=2)
    final_amount = models.DecimalField(max_digits=12, decimal_places=2)

    currency = models.CharField(max_length=3, choices=CURRENCY_CHOICES, default=LYD)

    used_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "crm_coupon_usage"
        ordering = ["-used_at"]
        verbose_name = "Coupon Usage"
        verbose_name_plural = "Coupon Usage"

    def __str__(self):
        return f"{self.coupon.code} by {self.user} ({self.discount_amount} {self.currency})"


class CustomerNote(models.Model):
    """
    Note kept by store staff about a customer.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    store = models.ForeignKey(Store, on_delete=models.CASCADE, related_name="customer_notes")

    customer = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="store_notes",
        help_text="Customer the note is about",
    )

    author = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        related_name="authored_customer_notes",
    )

    body = models.TextField()

    is_internal = models.BooleanField(
        default=True,
        help_text="Internal notes are only visible to store staff",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "crm_customer_notes"
        ordering = ["-created_at"]
        verbose_name = "Customer Note"
        verbose_name_plural = "Customer Notes"
        indexes = [
            models.Index(fields=["store", "customer"], name="note_store_customer_idx"),
        ]

    def __str__(self):
        return f"Note on {self.customer} by {self.author}"
