"""
Owned asset models.

- OwnedAsset: a physical bar or item bought by a customer and held at a store
- PurchaseInvoice: the invoice of every purchase, physical or digital
- AssetTransfer: ownership transfers between customers, with risk review
- PickupAppointment: a booked visit to collect an asset
- LocationChangeRequest: moving an uncollected asset to another store
"""

import uuid
from decimal import Decimal

from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from apps.core.formatting_utils import format_plain
from apps.core.models import Store, User
from apps.inventory.models import Product
from apps.pricing.models import LivePrice


class OwnedAsset(models.Model):
    """
    A physical asset owned by a customer.

    New assets wait at their pickup store as ``not_received`` until they are
    handed over; a pickup deadline applies, after which storage fees accrue.
    """

    NOT_RECEIVED = "not_received"
    RECEIVED = "received"
    TRANSFERRED = "transferred"

    STATUS_CHOICES = [
        (NOT_RECEIVED, "Not Received"),
        (RECEIVED, "Received"),
        (TRANSFERRED, "Transferred"),
    ]

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the asset",
    )

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="owned_assets",
        help_text="Current owner of the asset",
    )

    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="owned_assets",
        help_text="Catalogue product (empty for bars fabricated from digital grams)",
    )

    serial_number = models.CharField(
        max_length=100,
        unique=True,
        help_text="Serial number of the asset (e.g., SN-..., GB-000123)",
    )

    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=NOT_RECEIVED,
        help_text="Collection status of the asset",
    )

    pickup_store = models.ForeignKey(
        Store,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="assets_for_pickup",
        help_text="Store where the asset is collected",
    )

    pickup_deadline = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Collect before this time to avoid storage fees",
    )

    metal_type = models.CharField(
        max_length=10,
        choices=LivePrice.METAL_CHOICES,
        blank=True,
    )

    weight_grams = models.DecimalField(
        max_digits=10,
        decimal_places=3,
        null=True,
        blank=True,
    )

    xrf_analysis = models.JSONField(default=dict, blank=True)

    physical_properties = models.JSONField(default=dict, blank=True)

    is_digital = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "owned_assets"
        ordering = ["-created_at"]
        verbose_name = "Owned Asset"
        verbose_name_plural = "Owned Assets"
        indexes = [
            models.Index(fields=["user", "status"], name="asset_user_status_idx"),
            models.Index(fields=["status", "pickup_deadline"], name="asset_status_deadline_idx"),
        ]

    def __str__(self):
        return f"{self.display_name} ({self.serial_number})"

    @property
    def display_name(self):
        if self.product_id:
            return self.product.name
        if self.weight_grams is not None and self.metal_type:
            return f"{format_plain(self.weight_grams)}g {self.metal_type.upper()} Bar"
        return "Gold Bar"

    @property
    def asset_metal(self):
        return self.product.type if self.product_id else self.metal_type

    @property
    def asset_weight(self):
        if self.product_id:
            return self.product.weight_grams
        return self.weight_grams or Decimal("0")

    def is_overdue(self, now=None):
        now = now or timezone.now()
        return (
            self.status == self.NOT_RECEIVED
            and self.pickup_deadline is not None
            and now > self.pickup_deadline
        )


class PurchaseInvoice(models.Model):
    """
    Invoice issued for a purchase.
    """

    WALLET_DINAR = "wallet_dinar"
    WALLET_DOLLAR = "wallet_dollar"
    CASH = "cash"
    COUPON = "coupon"

    PAYMENT_METHOD_CHOICES = [
        (WALLET_DINAR, "Dinar Wallet"),
        (WALLET_DOLLAR, "Dollar Wallet"),
        (CASH, "Cash"),
        (COUPON, "Coupon"),
    ]

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the invoice",
    )

    invoice_number = models.CharField(
        max_length=50,
        unique=True,
        help_text="Invoice number (e.g., INV-1760884200000-K3J9X0QZ2)",
    )

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="purchase_invoices",
    )

    asset = models.ForeignKey(
        OwnedAsset,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="invoices",
    )

    product = models.ForeignKey(
        Product,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="invoices",
    )

    store = models.ForeignKey(
        Store,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="invoices",
    )

    amount_lyd = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        help_text="Amount charged, excluding commission",
    )

    commission_lyd = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
    )

    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES)

    is_digital = models.BooleanField(default=False)

    digital_metal_type = models.CharField(
        max_length=10,
        choices=LivePrice.METAL_CHOICES,
        blank=True,
    )

    digital_grams = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        null=True,
        blank=True,
    )

    shared_bar_serial = models.CharField(
        max_length=100,
        blank=True,
        help_text="Serial of the shared bar backing a digital purchase",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "purchase_invoices"
        ordering = ["-created_at"]
        verbose_name = "Purchase Invoice"
        verbose_name_plural = "Purchase Invoices"
        indexes = [
            models.Index(fields=["user", "-created_at"], name="invoice_user_created_idx"),
        ]

    def __str__(self):
        return self.invoice_number

    @property
    def total_lyd(self):
        return self.amount_lyd + self.commission_lyd


class AssetTransfer(models.Model):
    """
    Record of an ownership transfer between two customers.
    """

    PENDING = "pending"
    COMPLETED = "completed"
    MANUAL_REVIEW = "manual_review"
    REJECTED = "rejected"

    STATUS_CHOICES = [
        (PENDING, "Pending"),
        (COMPLETED, "Completed"),
        (MANUAL_REVIEW, "Manual Review"),
        (REJECTED, "Rejected"),
    ]

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the transfer",
    )

    asset = models.ForeignKey(
        OwnedAsset,
        on_delete=models.CASCADE,
        related_name="transfers",
    )

    from_user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="asset_transfers_out",
    )

    to_user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="asset_transfers_in",
    )

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING)

    risk_score = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        null=True,
        blank=True,
        help_text="Score drawn by the fraud check (0 to 1)",
    )

    transaction_hash = models.CharField(max_length=100, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "asset_transfers"
        ordering = ["-created_at"]
        verbose_name = "Asset Transfer"
        verbose_name_plural = "Asset Transfers"

    def __str__(self):
        return f"{self.asset.serial_number}: {self.from_user} → {self.to_user} ({self.status})"


class PickupAppointment(models.Model):
    """
    A customer's booked visit to collect an asset at a store.
    """

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"

    STATUS_CHOICES = [
        (PENDING, "Pending"),
        (CONFIRMED, "Confirmed"),
        (COMPLETED, "Completed"),
        (CANCELLED, "Cancelled"),
        (NO_SHOW, "No Show"),
    ]

    OPEN_STATUSES = [PENDING, CONFIRMED]

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the appointment",
    )

    appointment_number = models.CharField(
        max_length=50,
        unique=True,
        help_text="Appointment number (e.g., APT-1760884200000-K3J9X0)",
    )

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="pickup_appointments",
    )

    asset = models.ForeignKey(
        OwnedAsset,
        on_delete=models.CASCADE,
        related_name="appointments",
    )

    store = models.ForeignKey(
        Store,
        on_delete=models.PROTECT,
        related_name="appointments",
    )

    appointment_date = models.DateField()
    appointment_time = models.TimeField()

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING)

    qr_code_data = models.TextField(
        help_text="JSON payload encoded in the appointment QR code",
    )

    verification_pin = models.CharField(
        max_length=6,
        help_text="6-digit PIN the customer presents at handover",
    )

    storage_fee_lyd = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Storage fee collected at handover",
    )

    storage_fee_payment_method = models.CharField(max_length=20, blank=True)

    processed_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="processed_pickups",
        help_text="Staff member who handed the asset over",
    )

    handover_notes = models.TextField(blank=True)

    notes = models.TextField(blank=True)

    cancellation_reason = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "pickup_appointments"
        ordering = ["appointment_date", "appointment_time"]
        verbose_name = "Pickup Appointment"
        verbose_name_plural = "Pickup Appointments"
        indexes = [
            models.Index(fields=["store", "appointment_date"], name="apt_store_date_idx"),
            models.Index(fields=["user", "status"], name="apt_user_status_idx"),
        ]

    def __str__(self):
        return f"{self.appointment_number} ({self.get_status_display()})"

    @property
    def is_open(self):
        return self.status in self.OPEN_STATUSES


class PickupLog(models.Model):
    """
    Counter record of a completed handover.

    Keeps the photos of the customer's ID and of the customer taken at the
    counter, with the staff member who processed the pickup.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    appointment = models.OneToOneField(
        PickupAppointment,
        on_delete=models.CASCADE,
        related_name="pickup_log",
    )
    asset = models.ForeignKey(OwnedAsset, on_delete=models.CASCADE, related_name="pickup_logs")
    store = models.ForeignKey(Store, on_delete=models.PROTECT, related_name="pickup_logs")
    customer = models.ForeignKey(User, on_delete=models.CASCADE, related_name="pickup_logs")
    processed_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        related_name="processed_pickup_logs",
        help_text="Staff member who handed the asset over",
    )

    id_photo = models.ImageField(
        upload_to="pickup_logs/id/%Y/%m/%d/",
        blank=True,
        help_text="Photo of the customer's identity document",
    )
    customer_photo = models.ImageField(
        upload_to="pickup_logs/customer/%Y/%m/%d/",
        blank=True,
        help_text="Photo of the customer at the counter",
    )

    storage_fee_lyd = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "pickup_logs"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["store", "created_at"], name="pickup_log_store_idx"),
        ]

    def __str__(self):
        return f"Pickup of {self.asset.serial_number} at {self.store.name}"


class LocationChangeRequest(models.Model):
    """
    Request to collect an asset at a different store.

    State transitions:
    pending → approved → moved
    pending → rejected (terminal state)
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    MOVED = "moved"

    STATUS_CHOICES = [
        (PENDING, "Pending"),
        (APPROVED, "Approved"),
        (REJECTED, "Rejected"),
        (MOVED, "Moved"),
    ]

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the request",
    )

    asset = models.ForeignKey(
        OwnedAsset,
        on_delete=models.CASCADE,
        related_name="location_requests",
    )

    from_store = models.ForeignKey(
        Store,
        on_delete=models.PROTECT,
        related_name="location_requests_out",
    )

    to_store = models.ForeignKey(
        Store,
        on_delete=models.PROTECT,
        related_name="location_requests_in",
    )

    requested_by = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="location_requests",
    )

    reason = models.TextField(blank=True)

    status = FSMField(
        default=PENDING,
        choices=STATUS_CHOICES,
        protected=True,
    )

    approved_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="location_requests_resolved",
        help_text="Staff member who approved or rejected the request",
    )

    resolution_note = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    moved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "location_change_requests"
        ordering = ["-created_at"]
        verbose_name = "Location Change Request"
        verbose_name_plural = "Location Change Requests"

    def __str__(self):
        return f"{self.asset.serial_number}: {self.from_store.name} → {self.to_store.name}"

    @transition(field=status, source=PENDING, target=APPROVED)
    def approve(self, user, notes=""):
        self.approved_by = user
        self.resolution_note = notes or ""

    @transition(field=status, source=PENDING, target=REJECTED)
    def reject(self, user, notes):
        self.approved_by = user
        self.resolution_note = notes

    @transition(field=status, source=APPROVED, target=MOVED)
    def mark_moved(self):
        self.moved_at = timezone.now()
