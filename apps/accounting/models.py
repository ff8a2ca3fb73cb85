"""
Store accounting models.

Each store keeps a financial account per currency. Every change to an
account balance is recorded as a StoreFinancialTransaction with the balance
before and after. Stores may hold bank accounts and move funds between
each other through approved transfer requests.
"""

import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from apps.core.models import Store, User
from apps.wallets.models import CURRENCY_CHOICES, LYD


class StoreFinancialAccount(models.Model):
    """
    Balance of a store in one currency.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the account",
    )

    store = models.ForeignKey(
        Store,
        on_delete=models.CASCADE,
        related_name="financial_accounts",
    )

    currency = models.CharField(max_length=3, choices=CURRENCY_CHOICES)

    balance = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal("0.00"))

    available_balance = models.DecimalField(
        max_digits=16,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Balance that can be withdrawn or transferred",
    )

    held_balance = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal("0.00"))

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "store_financial_accounts"
        ordering = ["currency"]
        verbose_name = "Store Financial Account"
        verbose_name_plural = "Store Financial Accounts"
        unique_together = [["store", "currency"]]

    def __str__(self):
        return f"{self.store.name} {self.currency} {self.balance}"


class StoreFinancialTransaction(models.Model):
    """
    Ledger line of a store financial account.
    """

    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    BANK_DEPOSIT = "bank_deposit"
    BANK_WITHDRAWAL = "bank_withdrawal"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    SALE = "sale"

    TYPE_CHOICES = [
        (DEPOSIT, "Deposit"),
        (WITHDRAWAL, "Withdrawal"),
        (BANK_DEPOSIT, "Bank Deposit"),
        (BANK_WITHDRAWAL, "Bank Withdrawal"),
        (TRANSFER_IN, "Transfer In"),
        (TRANSFER_OUT, "Transfer Out"),
        (SALE, "Sale"),
    ]

    CREDIT_TYPES = (DEPOSIT, BANK_DEPOSIT, TRANSFER_IN, SALE)

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )

    store = models.ForeignKey(
        Store,
        on_delete=models.CASCADE,
        related_name="financial_transactions",
    )

    account = models.ForeignKey(
        StoreFinancialAccount,
        on_delete=models.CASCADE,
        related_name="transactions",
    )

    transaction_type = models.CharField(max_length=20, choices=TYPE_CHOICES)

    amount = models.DecimalField(max_digits=16, decimal_places=2)

    balance_before = models.DecimalField(max_digits=16, decimal_places=2)
    balance_after = models.DecimalField(max_digits=16, decimal_places=2)

    reference_type = models.CharField(
        max_length=50,
        blank=True,
        help_text="Kind of record that caused the movement (e.g., pos_sale)",
    )
    reference_id = models.CharField(max_length=100, blank=True)

    description = models.TextField(blank=True)

    metadata = models.JSONField(default=dict, blank=True)

    processed_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="store_financial_transactions",
    )

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = "store_financial_transactions"
        ordering = ["-created_at"]
        verbose_name = "Store Financial Transaction"
        verbose_name_plural = "Store Financial Transactions"
        indexes = [
            models.Index(fields=["store", "-created_at"], name="sft_store_created_idx"),
            models.Index(fields=["store", "transaction_type"], name="sft_store_type_idx"),
        ]

    def __str__(self):
        return f"{self.get_transaction_type_display()} {self.amount} ({self.account.currency})"


class StoreBankAccount(models.Model):
    """
    Bank account registered by a store.

    New accounts start active and unverified; a manager verifies them.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the bank account",
    )

    store = models.ForeignKey(
        Store,
        on_delete=models.CASCADE,
        related_name="bank_accounts",
    )

    bank_name = models.CharField(max_length=255)

    account_number = models.CharField(max_length=50)

    iban = models.CharField(
        max_length=50, blank=True, help_text="International Bank Account Number"
    )

    swift_code = models.CharField(max_length=20, blank=True)

    account_holder_name = models.CharField(max_length=255)

    branch = models.CharField(max_length=255, blank=True)

    is_active = models.BooleanField(default=True)

    is_verified = models.BooleanField(default=False)

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="store_bank_accounts_created",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "store_bank_accounts"
        ordering = ["-created_at"]
        verbose_name = "Store Bank Account"
        verbose_name_plural = "Store Bank Accounts"

    def __str__(self):
        return f"{self.bank_name} {self.masked_account_number}"

    @property
    def masked_account_number(self):
        """Return masked account number for display."""
        if len(self.account_number) <= 4:
            return self.account_number
        return f"****{self.account_number[-4:]}"


class StoreFundTransferRequest(models.Model):
    """
    Request to move money from one store's account to another's.

    State transitions:
    pending → completed (approval moves the funds)
    pending → rejected (terminal state)
    pending → cancelled (terminal state)
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (PENDING, "Pending"),
        (APPROVED, "Approved"),
        (REJECTED, "Rejected"),
        (COMPLETED, "Completed"),
        (CANCELLED, "Cancelled"),
    ]

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the request",
    )

    from_store = models.ForeignKey(
        Store,
        on_delete=models.PROTECT,
        related_name="fund_transfers_out",
    )

    to_store = models.ForeignKey(
        Store,
        on_delete=models.PROTECT,
        related_name="fund_transfers_in",
    )

    currency = models.CharField(max_length=3, choices=CURRENCY_CHOICES, default=LYD)

    amount = models.DecimalField(
        max_digits=16,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )

    status = FSMField(
        default=PENDING,
        choices=STATUS_CHOICES,
        protected=True,
    )

    reason = models.TextField()
    notes = models.TextField(blank=True)

    requested_by = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        related_name="fund_transfers_requested",
    )

    approved_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="fund_transfers_approved",
        help_text="Manager who approved or rejected the request",
    )
    approval_notes = models.TextField(blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "store_fund_transfer_requests"
        ordering = ["-created_at"]
        verbose_name = "Store Fund Transfer Request"
        verbose_name_plural = "Store Fund Transfer Requests"
        indexes = [
            models.Index(fields=["from_store", "status"], name="fund_from_status_idx"),
            models.Index(fields=["to_store", "status"], name="fund_to_status_idx"),
        ]

    def __str__(self):
        return f"{self.amount} {self.currency}: {self.from_store.name} → {self.to_store.name}"

    @transition(field=status, source=PENDING, target=COMPLETED)
    def approve(self, user, notes=""):
        """
        Approve and complete the transfer.

        The caller moves the funds between the two accounts.
        """
        now = timezone.now()
        self.approved_by = user
        self.approval_notes = notes or ""
        self.approved_at = now
        self.completed_at = now

    @transition(field=status, source=PENDING, target=REJECTED)
    def reject(self, user, notes=""):
        self.approved_by = user
        self.approval_notes = notes or ""
        self.approved_at = timezone.now()

    @transition(field=status, source=PENDING, target=CANCELLED)
    def cancel(self, user, reason=""):
        self.notes = f"{self.notes}\n\nCancelled by {user.username}: {reason}".strip()
