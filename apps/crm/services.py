"""
CRM services: coupons and the store customer desk.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from apps.core.exceptions import NotFoundError
from apps.core.formatting_utils import format_plain
from apps.core.services import search_store_customers
from apps.pricing.services import money
from apps.wallets.models import LYD

from .models import Coupon, CouponUsage, CustomerNote

logger = logging.getLogger(__name__)


@dataclass
class CouponValidation:
    valid: bool
    error: Optional[str] = None
    discount_amount: Optional[Decimal] = None
    final_amount: Optional[Decimal] = None


def _find_coupon(code, active_only=True):
    queryset = Coupon.objects.filter(code=(code or "").strip().upper())
    if active_only:
        queryset = queryset.filter(is_active=True)
    return queryset.first()


def calculate_discount(coupon, amount):
    """Discount a coupon gives on an amount, before the floor at zero."""
    if coupon.discount_type == Coupon.FIXED:
        return money(coupon.discount_value)
    discount = money(amount * coupon.discount_value / 100)
    if coupon.max_discount_amount:
        discount = min(discount, coupon.max_discount_amount)
    return discount


def validate_coupon(code, amount, currency=LYD, store=None, payment_method=None, now=None):
    """
    Check whether a coupon applies to a purchase and compute the discount.

    Checks run in this order and the first failure is reported: unknown or
    inactive code, currency, start date, expiry, usage limit, minimum
    purchase, payment method.
    """
    amount = money(amount)
    now = now or timezone.now()

    coupon = _find_coupon(code)
    if coupon is None or (store is not None and coupon.store_id not in (None, store.pk)):
        return CouponValidation(valid=False, error="Invalid coupon code")

    if coupon.currency != currency:
        return CouponValidation(valid=False, error=f"Coupon only valid for {coupon.currency}")

    if now < coupon.valid_from:
        return CouponValidation(valid=False, error="Coupon not yet active")

    if coupon.valid_until and now > coupon.valid_until:
        return CouponValidation(valid=False, error="Coupon has expired")

    if coupon.usage_limit and coupon.usage_count >= coupon.usage_limit:
        return CouponValidation(valid=False, error="Coupon usage limit reached")

    if amount < coupon.min_purchase_amount:
        return CouponValidation(
            valid=False,
            error=(
                f"Minimum purchase amount is "
                f"{format_plain(coupon.min_purchase_amount)} {currency}"
            ),
        )

    if (
        payment_method
        and coupon.allowed_payment_methods
        and payment_method not in coupon.allowed_payment_methods
    ):
        return CouponValidation(valid=False, error="Coupon not valid for this payment method")

    discount = calculate_discount(coupon, amount)
    final = max(Decimal("0.00"), amount - discount)
    return CouponValidation(valid=True, discount_amount=discount, final_amount=money(final))


@transaction.atomic
def apply_coupon(
    user,
    code,
    transaction_id,
    original_amount,
    discount_amount,
    final_amount,
    currency=LYD,
):
    """Record a coupon redemption and bump its usage count."""
    coupon = _find_coupon(code, active_only=False)
    if coupon is None:
        raise NotFoundError("Coupon not found")

    usage = CouponUsage.objects.create(
        coupon=coupon,
        user=user,
        transaction_id=transaction_id,
        discount_amount=money(discount_amount),
        original_amount=money(original_amount),
        final_amount=money(final_amount),
        currency=currency,
    )
    Coupon.objects.filter(pk=coupon.pk).update(usage_count=F("usage_count") + 1)

    logger.info(
        f"Coupon {coupon.code} applied by {user.pk} on {transaction_id}: "
        f"-{discount_amount} {currency}"
    )
    return usage


def get_available_coupons(now=None):
    now = now or timezone.now()
    return (
        Coupon.objects.filter(is_active=True, valid_from__lte=now)
        .filter(Q(valid_until__isnull=True) | Q(valid_until__gte=now))
        .order_by("-discount_value")
    )


def get_user_coupon_usage(user):
    return CouponUsage.objects.filter(user=user).select_related("coupon").order_by("-used_at")


def create_coupon(store, user, **data):
    coupon = Coupon.objects.create(store=store, created_by=user, **data)
    logger.info(f"Coupon {coupon.code} created for store {store.pk if store else 'platform'}")
    return coupon


def get_coupons(store):
    return Coupon.objects.filter(store=store).order_by("-created_at")


def get_coupon(store, coupon_id):
    coupon = Coupon.objects.filter(store=store, pk=coupon_id).first()
    if coupon is None:
        raise NotFoundError("Coupon not found")
    return coupon


def update_coupon(coupon, **data):
    for name, value in data.items():
        setattr(coupon, name, value)
    coupon.save()
    return coupon


# Customer desk


def search_customer(store, query):
    """
    Find customers for the store desk by name, email, phone or national id.

    Each match carries the number of POS sales the customer has at the store.
    """
    from apps.sales.models import PosSale

    customers = list(search_store_customers(query))
    for customer in customers:
        customer.store_sales_count = PosSale.objects.filter(store=store, customer=customer).count()
    return customers


def add_customer_note(store, customer, author, body, is_internal=True):
    note = CustomerNote.objects.create(
        store=store,
        customer=customer,
        author=author,
        body=body,
        is_internal=is_internal,
    )
    logger.info(f"Note added on customer {customer.pk} at store {store.pk}")
    return note


def get_customer_notes(store, customer):
    return (
        CustomerNote.objects.filter(store=store, customer=customer)
        .select_related("author")
        .order_by("-created_at")
    )
