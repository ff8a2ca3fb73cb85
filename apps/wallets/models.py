"""
Wallet models.

Customers hold two kinds of value:
- Fiat wallets in LYD and USD, with balance, available and held amounts
- Digital metal balances measured in grams of gold or silver

Every movement of value is recorded as a Transaction row.
"""

import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models

from apps.core.models import User
from apps.pricing.models import LivePrice

LYD = "LYD"
USD = "USD"

CURRENCY_CHOICES = [
    (LYD, "Libyan Dinar"),
    (USD, "US Dollar"),
]


class Wallet(models.Model):
    """
    Fiat wallet of a user in one currency.

    ``available_balance`` is what the user can spend; ``held_balance`` is
    reserved by pending operations.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the wallet",
    )

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="wallets",
        help_text="Owner of the wallet",
    )

    currency = models.CharField(
        max_length=3,
        choices=CURRENCY_CHOICES,
        help_text="Currency of the wallet",
    )

    balance = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Total balance",
    )

    available_balance = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Balance that can be spent",
    )

    held_balance = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Balance reserved by pending operations",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "wallets"
        ordering = ["currency"]
        verbose_name = "Wallet"
        verbose_name_plural = "Wallets"
        unique_together = [["user", "currency"]]

    def __str__(self):
        return f"{self.user} {self.currency} {self.balance}"


class DigitalBalance(models.Model):
    """
    Grams of a metal a user owns without holding a physical bar.
    """

    GOLD = LivePrice.GOLD
    SILVER = LivePrice.SILVER

    METAL_CHOICES = LivePrice.METAL_CHOICES

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the balance",
    )

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="digital_balances",
        help_text="Owner of the metal",
    )

    metal_type = models.CharField(
        max_length=10,
        choices=METAL_CHOICES,
        help_text="Metal held",
    )

    grams = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        default=Decimal("0.000"),
        validators=[MinValueValidator(Decimal("0.000"))],
        help_text="Grams held",
    )

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "digital_balances"
        ordering = ["metal_type"]
        verbose_name = "Digital Balance"
        verbose_name_plural = "Digital Balances"
        unique_together = [["user", "metal_type"]]

    def __str__(self):
        return f"{self.user} {self.grams}g {self.metal_type}"

    @property
    def value_lyd(self):
        """Market value of the balance at the live price."""
        from apps.pricing.services import value_in_lyd

        return value_in_lyd(self.metal_type, self.grams)


class Transaction(models.Model):
    """
    Statement line of a user's account.
    """

    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    PURCHASE = "purchase"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"

    TYPE_CHOICES = [
        (DEPOSIT, "Deposit"),
        (WITHDRAWAL, "Withdrawal"),
        (PURCHASE, "Purchase"),
        (TRANSFER_IN, "Transfer In"),
        (TRANSFER_OUT, "Transfer Out"),
    ]

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the transaction",
    )

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="transactions",
        help_text="User whose statement this line belongs to",
    )

    type = models.CharField(max_length=20, choices=TYPE_CHOICES, help_text="Kind of movement")

    amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        help_text="Amount moved (fee amount for metal transfers)",
    )

    currency = models.CharField(max_length=3, choices=CURRENCY_CHOICES, default=LYD)

    description = models.TextField(blank=True, help_text="Human readable description")

    reference_id = models.CharField(
        max_length=100,
        blank=True,
        db_index=True,
        help_text="Reference shared by the rows of one operation (e.g., TXN-...)",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "transactions"
        ordering = ["-created_at"]
        verbose_name = "Transaction"
        verbose_name_plural = "Transactions"
        indexes = [
            models.Index(fields=["user", "-created_at"], name="txn_user_created_idx"),
        ]

    def __str__(self):
        return f"{self.get_type_display()} {self.amount} {self.currency} ({self.reference_id})"
