"""
Tests for number, currency, date and storage fee formatting.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal

from django.test import override_settings
from django.utils import timezone

import pytest

from apps.core.formatting_utils import (
    calculate_storage_fee,
    days_until_deadline,
    format_currency,
    format_date,
    format_datetime,
    format_grams,
    format_number,
    format_plain,
)


class TestNumberFormatting:
    def test_format_number_groups_thousands(self):
        assert format_number(1234567.891) == "1,234,567.89"

    def test_format_number_pads_decimals(self):
        assert format_number(2.5, 3) == "2.500"

    def test_format_number_rounds_half_up(self):
        assert format_number(Decimal("0.125")) == "0.13"

    def test_negative_zero_is_rendered_as_zero(self):
        assert format_number(Decimal("-0.001")) == "0.00"

    def test_format_currency_lyd(self):
        assert format_currency(1234.5) == "LYD 1,234.50"

    def test_format_currency_usd(self):
        assert format_currency(1234.5, "USD") == "$1,234.50"

    def test_format_currency_negative_usd(self):
        assert format_currency(-10, "USD") == "-$10.00"

    def test_format_grams(self):
        assert format_grams(Decimal("12.5")) == "12.500g"

    def test_format_plain_drops_trailing_zeros(self):
        assert format_plain(Decimal("10.00")) == "10"
        assert format_plain(Decimal("2.500")) == "2.5"


class TestDateFormatting:
    def test_format_date_from_date(self):
        assert format_date(date(2026, 10, 19)) == "October 19, 2026"

    def test_format_date_from_iso_string(self):
        assert format_date("2026-01-05") == "January 5, 2026"

    def test_format_datetime_uses_local_time(self):
        # Tripoli is UTC+2
        assert format_datetime("2026-10-19T12:30:00+00:00") == "Oct 19, 2026, 02:30 PM"

    def test_invalid_date_string_raises(self):
        with pytest.raises(ValueError):
            format_date("not a date")


class TestStorageFee:
    def test_not_overdue_before_deadline(self):
        now = timezone.now()
        fee = calculate_storage_fee(now + timedelta(days=1), now=now)
        assert fee.overdue is False
        assert fee.days == 0
        assert fee.fee == Decimal("0.00")

    def test_partial_day_is_free(self):
        now = timezone.now()
        fee = calculate_storage_fee(now - timedelta(hours=23), now=now)
        assert fee.overdue is False
        assert fee.fee == Decimal("0.00")

    def test_whole_days_are_charged(self):
        now = timezone.now()
        fee = calculate_storage_fee(now - timedelta(days=2, hours=12), now=now)
        assert fee.overdue is True
        assert fee.days == 2
        assert fee.fee == Decimal("60.00")

    def test_accepts_iso_deadline(self):
        now = timezone.make_aware(datetime(2026, 10, 19, 12, 0))
        fee = calculate_storage_fee("2026-10-14T12:00:00+02:00", now=now)
        assert fee.days == 5
        assert fee.fee == Decimal("150.00")

    @override_settings(STOREFRONT={"STORAGE_FEE_PER_DAY_LYD": Decimal("12.50")})
    def test_daily_rate_comes_from_settings(self):
        now = timezone.now()
        fee = calculate_storage_fee(now - timedelta(days=3), now=now)
        assert fee.fee == Decimal("37.50")

    def test_days_until_deadline_rounds_up(self):
        now = timezone.now()
        assert days_until_deadline(now + timedelta(days=2, hours=1), now=now) == 3
        assert days_until_deadline(now - timedelta(days=1, hours=1), now=now) == -1
