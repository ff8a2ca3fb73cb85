"""
Pricing models for live metal prices.
"""

import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models


class LivePrice(models.Model):
    """
    Current market price of one gram of a metal in LYD.

    There is exactly one row per metal; the feed updates it in place.
    """

    GOLD = "gold"
    SILVER = "silver"

    METAL_CHOICES = [
        (GOLD, "Gold"),
        (SILVER, "Silver"),
    ]

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the price record",
    )

    metal_type = models.CharField(
        max_length=10,
        choices=METAL_CHOICES,
        unique=True,
        help_text="Metal this price applies to",
    )

    price_lyd_per_gram = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="Price of one gram in Libyan dinars",
    )

    change_percent = models.DecimalField(
        max_digits=6,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Change since the previous close, in percent",
    )

    updated_at = models.DateTimeField(auto_now=True, help_text="When the price was last updated")

    class Meta:
        db_table = "live_prices"
        ordering = ["metal_type"]
        verbose_name = "Live Price"
        verbose_name_plural = "Live Prices"

    def __str__(self):
        return f"{self.get_metal_type_display()}: {self.price_lyd_per_gram} LYD/g"

    @classmethod
    def get_price(cls, metal_type):
        """Return the price per gram for a metal, or None when there is no feed yet."""
        price = cls.objects.filter(metal_type=metal_type).first()
        return price.price_lyd_per_gram if price else None
