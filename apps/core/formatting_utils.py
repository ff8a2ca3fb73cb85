"""
Number, currency and date formatting utilities.

This module provides utilities for:
- Grouped fixed-point numbers, currency amounts (LYD, USD) and gram weights
- English long/short date rendering
- Storage fee and pickup deadline arithmetic
"""

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from apps.pricing.fees import storage_fee_per_day

Number = Union[int, float, Decimal]

CURRENCY_SYMBOLS = {
    "USD": "$",
}

ONE_DAY = timedelta(days=1)


def format_number(value: Number, decimals: int = 2) -> str:
    """
    Format a number with thousand separators and a fixed number of decimals.

    Args:
        value: Number to format
        decimals: Number of decimal places (rounded half up)

    Returns:
        Formatted number string

    Examples:
        >>> format_number(1234567.891)
        '1,234,567.89'
        >>> format_number(2.5, 3)
        '2.500'
    """
    quantum = Decimal(1).scaleb(-decimals)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    if rounded == 0:
        rounded = abs(rounded)
    return f"{rounded:,.{decimals}f}"


def format_currency(amount: Number, currency: str = "LYD") -> str:
    """
    Format a currency amount with two decimals.

    Args:
        amount: Amount to format
        currency: Currency code ('LYD' or 'USD')

    Returns:
        Formatted currency string

    Examples:
        >>> format_currency(1234.5)
        'LYD 1,234.50'
        >>> format_currency(1234.5, 'USD')
        '$1,234.50'
        >>> format_currency(-10, 'USD')
        '-$10.00'
    """
    formatted = format_number(amount, 2)
    sign = ""
    if formatted.startswith("-"):
        sign, formatted = "-", formatted[1:]

    symbol = CURRENCY_SYMBOLS.get(currency)
    if symbol:
        return f"{sign}{symbol}{formatted}"
    return f"{sign}{currency} {formatted}"


def format_grams(grams: Number) -> str:
    """
    Format a metal weight in grams.

    Examples:
        >>> format_grams(12.5)
        '12.500g'
    """
    return f"{format_number(grams, 3)}g"


def format_plain(value: Number) -> str:
    """
    Number without grouping or trailing zeros, as typed by a user.

    Examples:
        >>> format_plain(Decimal("10.00"))
        '10'
        >>> format_plain(Decimal("2.500"))
        '2.5'
    """
    text = f"{Decimal(str(value)):f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _to_datetime(value: Union[str, date, datetime]) -> datetime:
    if isinstance(value, str):
        parsed = parse_datetime(value)
        if parsed is None:
            parsed_date = parse_date(value)
            if parsed_date is None:
                raise ValueError(f"Invalid date value: {value!r}")
            parsed = datetime.combine(parsed_date, datetime.min.time())
        value = parsed
    elif not isinstance(value, datetime):
        value = datetime.combine(value, datetime.min.time())

    if timezone.is_naive(value):
        value = timezone.make_aware(value)
    return value


def _local(value: Union[str, date, datetime]) -> datetime:
    return timezone.localtime(_to_datetime(value))


def format_date(value: Union[str, date, datetime]) -> str:
    """
    Format a date in long English form.

    Examples:
        >>> format_date(date(2026, 10, 19))
        'October 19, 2026'
    """
    if isinstance(value, date) and not isinstance(value, datetime):
        d = value
    else:
        d = _local(value).date()
    return f"{d.strftime('%B')} {d.day}, {d.year}"


def format_datetime(value: Union[str, datetime]) -> str:
    """
    Format a timestamp with abbreviated month and 12-hour clock.

    The value is rendered in the configured TIME_ZONE.

    Examples:
        >>> format_datetime("2026-10-19T14:30:00+02:00")
        'Oct 19, 2026, 02:30 PM'
    """
    dt = _local(value)
    return f"{dt.strftime('%b')} {dt.day}, {dt.year}, {dt.strftime('%I:%M %p')}"


@dataclass(frozen=True)
class StorageFee:
    """Storage fee owed for an asset collected after its pickup deadline."""

    overdue: bool
    days: int
    fee: Decimal


def calculate_storage_fee(
    pickup_deadline: Union[str, datetime], now: Optional[datetime] = None
) -> StorageFee:
    """
    Calculate the storage fee for an overdue pickup.

    Only whole elapsed days count; an asset collected within a day of the
    deadline owes nothing.

    Args:
        pickup_deadline: Deadline of the pickup window
        now: Reference time (defaults to the current time)

    Returns:
        StorageFee with the overdue flag, number of days and the fee in LYD
    """
    deadline = _to_datetime(pickup_deadline)
    now = now or timezone.now()
    days = math.floor((now - deadline) / ONE_DAY)

    if days <= 0:
        return StorageFee(overdue=False, days=0, fee=Decimal("0.00"))

    return StorageFee(overdue=True, days=days, fee=storage_fee_per_day() * days)


def days_until_deadline(
    deadline: Union[str, datetime], now: Optional[datetime] = None
) -> int:
    """Whole days left until the deadline, rounded up (negative when past)."""
    now = now or timezone.now()
    return math.ceil((_to_datetime(deadline) - now) / ONE_DAY)
