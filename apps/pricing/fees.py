"""
Business constants of the storefront.

Values come from the ``STOREFRONT`` settings dict so that deployments and
tests can override them.
"""

from decimal import Decimal

from django.conf import settings

DEFAULTS = {
    "PLATFORM_NAME": "Gold Trading Platform",
    "TRANSFER_FEE_LYD": Decimal("10.00"),
    "FABRICATION_FEE_LYD": Decimal("75.00"),
    "LOCATION_CHANGE_FEE_LYD": Decimal("50.00"),
    "STORAGE_FEE_PER_DAY_LYD": Decimal("30.00"),
    "PICKUP_WINDOW_DAYS": 3,
    "PHYSICAL_COMMISSION_RATE": Decimal("0.015"),
    "MANUAL_REVIEW_RISK_THRESHOLD": 0.8,
}


def get_setting(name):
    overrides = getattr(settings, "STOREFRONT", {})
    return overrides.get(name, DEFAULTS[name])


def platform_name():
    return get_setting("PLATFORM_NAME")


def transfer_fee():
    return Decimal(get_setting("TRANSFER_FEE_LYD"))


def fabrication_fee():
    return Decimal(get_setting("FABRICATION_FEE_LYD"))


def location_change_fee():
    return Decimal(get_setting("LOCATION_CHANGE_FEE_LYD"))


def storage_fee_per_day():
    return Decimal(get_setting("STORAGE_FEE_PER_DAY_LYD"))


def pickup_window_days():
    return int(get_setting("PICKUP_WINDOW_DAYS"))


def physical_commission_rate():
    return Decimal(get_setting("PHYSICAL_COMMISSION_RATE"))


def manual_review_threshold():
    return float(get_setting("MANUAL_REVIEW_RISK_THRESHOLD"))
