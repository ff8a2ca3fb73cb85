"""
Pricing services: live prices, commission and purchase quotes.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from apps.core.exceptions import InvalidAmountError
from apps.pricing import fees
from apps.pricing.models import LivePrice

CENT = Decimal("0.01")
MILLIGRAM = Decimal("0.001")


def money(value) -> Decimal:
    """Quantize a value to two decimal places."""
    return Decimal(value).quantize(CENT)


def grams(value) -> Decimal:
    """Quantize a weight to three decimal places."""
    return Decimal(value).quantize(MILLIGRAM)


def get_live_prices():
    return LivePrice.objects.all().order_by("metal_type")


def get_live_price(metal_type) -> Optional[LivePrice]:
    return LivePrice.objects.filter(metal_type=metal_type).first()


def calculate_physical_commission(base_price) -> Decimal:
    """Commission charged on physical purchases (1.5% by default)."""
    return money(Decimal(base_price) * fees.physical_commission_rate())


def value_in_lyd(metal_type, amount_grams) -> Decimal:
    """Market value of a gram amount at the live price (0 without a price)."""
    price = LivePrice.get_price(metal_type)
    if price is None:
        return Decimal("0.00")
    return money(Decimal(amount_grams) * price)


@dataclass(frozen=True)
class PurchaseQuote:
    price_per_gram: Decimal
    grams: Decimal
    subtotal: Decimal
    commission: Decimal
    total: Decimal


def quote_purchase(product, is_digital, amount_grams=None) -> PurchaseQuote:
    """
    Price a purchase of a product.

    Digital purchases are charged per gram at the product's base price with
    no commission. Physical purchases are charged the product price plus the
    physical commission.

    Args:
        product: Product being bought
        is_digital: Whether the buyer wants digital grams instead of the item
        amount_grams: Grams to buy (digital purchases only)

    Returns:
        PurchaseQuote with all amounts quantized to 0.01
    """
    base_price = Decimal(product.base_price_lyd)

    if is_digital:
        if amount_grams is None or Decimal(amount_grams) <= 0:
            raise InvalidAmountError("Grams must be greater than zero")
        amount_grams = grams(amount_grams)
        subtotal = money(base_price * amount_grams)
        return PurchaseQuote(
            price_per_gram=money(base_price),
            grams=amount_grams,
            subtotal=subtotal,
            commission=Decimal("0.00"),
            total=subtotal,
        )

    weight = grams(product.weight_grams)
    subtotal = money(base_price)
    commission = calculate_physical_commission(subtotal)
    price_per_gram = money(subtotal / weight) if weight else subtotal
    return PurchaseQuote(
        price_per_gram=price_per_gram,
        grams=weight,
        subtotal=subtotal,
        commission=commission,
        total=subtotal + commission,
    )


def update_live_price(metal_type, price_lyd_per_gram, change_percent=None) -> LivePrice:
    """Create or update the live price of a metal."""
    defaults = {"price_lyd_per_gram": money(price_lyd_per_gram)}
    if change_percent is not None:
        defaults["change_percent"] = money(change_percent)
    price, _ = LivePrice.objects.update_or_create(metal_type=metal_type, defaults=defaults)
    return price
