"""
Inventory models for the storefront.

- Products sold by the platform (bars, coins, jewelry) with their base price
- Per-store stock levels
- Serialized bars with XRF analysis and buyer tracking
- Store-to-store inventory transfers with an FSM workflow
"""

import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from apps.core.models import Store, User
from apps.pricing.models import LivePrice


class Product(models.Model):
    """
    Catalogue entry for a metal product.

    Physical purchases are charged ``base_price_lyd`` for the whole item;
    digital purchases use it as the price per gram.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the product",
    )

    name = models.CharField(
        max_length=255,
        help_text="Product name (e.g., 10g Gold Bar)",
    )

    type = models.CharField(
        max_length=10,
        choices=LivePrice.METAL_CHOICES,
        help_text="Metal of the product",
    )

    carat = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        help_text="Carat of the metal (e.g., 24)",
    )

    weight_grams = models.DecimalField(
        max_digits=10,
        decimal_places=3,
        validators=[MinValueValidator(Decimal("0.001"))],
        help_text="Weight of one unit in grams",
    )

    base_price_lyd = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="Price in LYD (per item, or per gram for digital purchases)",
    )

    description = models.TextField(blank=True)

    is_active = models.BooleanField(
        default=True,
        help_text="Whether the product is offered",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "products"
        ordering = ["name"]
        verbose_name = "Product"
        verbose_name_plural = "Products"
        indexes = [
            models.Index(fields=["type", "is_active"], name="product_type_active_idx"),
        ]

    def __str__(self):
        return self.name


class StoreInventory(models.Model):
    """
    Units of a product held at one store.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the inventory row",
    )

    store = models.ForeignKey(
        Store,
        on_delete=models.CASCADE,
        related_name="inventory",
        help_text="Store holding the stock",
    )

    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="inventory",
        help_text="Product in stock",
    )

    quantity = models.PositiveIntegerField(
        default=0,
        help_text="Units available at the store",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "inventory"
        ordering = ["-updated_at"]
        verbose_name = "Store Inventory"
        verbose_name_plural = "Store Inventory"
        unique_together = [["store", "product"]]

    def __str__(self):
        return f"{self.product.name} x{self.quantity} @ {self.store.name}"


class InventoryBar(models.Model):
    """
    A serialized bar held by a store, with its XRF analysis and sale record.
    """

    IN_STOCK = "in_stock"
    RESERVED = "reserved"
    SOLD = "sold"

    STATUS_CHOICES = [
        (IN_STOCK, "In Stock"),
        (RESERVED, "Reserved"),
        (SOLD, "Sold"),
    ]

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the bar",
    )

    store = models.ForeignKey(
        Store,
        on_delete=models.PROTECT,
        related_name="bars",
        help_text="Store currently holding the bar",
    )

    inventory = models.ForeignKey(
        StoreInventory,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="bars",
        help_text="Inventory row the bar is counted in",
    )

    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="bars",
    )

    serial_number = models.CharField(
        max_length=100,
        unique=True,
        help_text="Serial number stamped on the bar",
    )

    bar_number = models.CharField(max_length=100, blank=True)

    weight_grams = models.DecimalField(max_digits=10, decimal_places=3)

    purity = models.CharField(
        max_length=20,
        help_text="Declared purity (e.g., 999.9)",
    )

    xrf_gold_percentage = models.DecimalField(
        max_digits=6, decimal_places=3, null=True, blank=True
    )
    xrf_silver_percentage = models.DecimalField(
        max_digits=6, decimal_places=3, null=True, blank=True
    )
    xrf_copper_percentage = models.DecimalField(
        max_digits=6, decimal_places=3, null=True, blank=True
    )
    xrf_other_metals = models.JSONField(default=dict, blank=True)

    manufacturer = models.CharField(max_length=255, blank=True)
    manufacture_date = models.DateField(null=True, blank=True)
    certification_number = models.CharField(max_length=100, blank=True)

    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=IN_STOCK,
        help_text="Stock status of the bar",
    )

    sale = models.ForeignKey(
        "sales.PosSale",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="bars",
        help_text="Sale the bar was sold in",
    )

    buyer = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="purchased_bars",
        help_text="Customer who bought the bar",
    )

    sale_date = models.DateTimeField(null=True, blank=True)

    notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "inventory_bars"
        ordering = ["-created_at"]
        verbose_name = "Inventory Bar"
        verbose_name_plural = "Inventory Bars"
        indexes = [
            models.Index(fields=["store", "status"], name="bar_store_status_idx"),
            models.Index(fields=["buyer", "-sale_date"], name="bar_buyer_sale_idx"),
        ]

    def __str__(self):
        return f"{self.serial_number} ({self.get_status_display()})"


class StoreInventoryTransfer(models.Model):
    """
    Store-to-store inventory transfer with FSM workflow.

    State transitions:
    requested → approved → in_transit → received
    requested → rejected (terminal state)
    requested | approved → cancelled (terminal state)
    """

    REQUESTED = "requested"
    APPROVED = "approved"
    REJECTED = "rejected"
    IN_TRANSIT = "in_transit"
    RECEIVED = "received"
    CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (REQUESTED, "Requested"),
        (APPROVED, "Approved"),
        (REJECTED, "Rejected"),
        (IN_TRANSIT, "In Transit"),
        (RECEIVED, "Received"),
        (CANCELLED, "Cancelled"),
    ]

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the transfer",
    )

    transfer_number = models.CharField(
        max_length=50,
        unique=True,
        help_text="Unique transfer number (e.g., ITR-20261019-0001)",
    )

    from_store = models.ForeignKey(
        Store,
        on_delete=models.PROTECT,
        related_name="inventory_transfers_out",
        help_text="Store sending the inventory",
    )

    to_store = models.ForeignKey(
        Store,
        on_delete=models.PROTECT,
        related_name="inventory_transfers_in",
        help_text="Store receiving the inventory",
    )

    status = FSMField(
        default=REQUESTED,
        choices=STATUS_CHOICES,
        protected=True,
        help_text="Current status of the transfer",
    )

    total_items = models.PositiveIntegerField(default=0)

    reason = models.TextField(help_text="Why the stock is being moved")
    notes = models.TextField(blank=True)

    requested_by = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        related_name="inventory_transfers_requested",
    )

    approved_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="inventory_transfers_approved",
        help_text="User who approved or rejected the transfer",
    )
    approval_notes = models.TextField(blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)

    shipped_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="inventory_transfers_shipped",
    )
    shipping_reference = models.CharField(max_length=100, blank=True)
    shipped_at = models.DateTimeField(null=True, blank=True)

    received_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="inventory_transfers_received",
    )
    receipt_notes = models.TextField(blank=True)
    received_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "store_inventory_transfer_requests"
        ordering = ["-created_at"]
        verbose_name = "Store Inventory Transfer"
        verbose_name_plural = "Store Inventory Transfers"
        indexes = [
            models.Index(fields=["from_store", "status"], name="itr_from_status_idx"),
            models.Index(fields=["to_store", "status"], name="itr_to_status_idx"),
        ]

    def __str__(self):
        return f"{self.transfer_number} ({self.from_store.name} → {self.to_store.name})"

    def save(self, *args, **kwargs):
        """Generate transfer number if not provided."""
        if not self.transfer_number:
            date_str = timezone.now().strftime("%Y%m%d")
            today_count = (
                StoreInventoryTransfer.objects.filter(
                    transfer_number__startswith=f"ITR-{date_str}"
                ).count()
                + 1
            )
            self.transfer_number = f"ITR-{date_str}-{today_count:04d}"

        super().save(*args, **kwargs)

    def _set_item_status(self, status):
        self.items.exclude(status=StoreInventoryTransferItem.CANCELLED).update(status=status)

    @transition(field=status, source=REQUESTED, target=APPROVED)
    def approve(self, user, notes=""):
        self.approved_by = user
        self.approved_at = timezone.now()
        self.approval_notes = notes or ""
        self._set_item_status(StoreInventoryTransferItem.APPROVED)

    @transition(field=status, source=REQUESTED, target=REJECTED)
    def reject(self, user, notes=""):
        self.approved_by = user
        self.approved_at = timezone.now()
        self.approval_notes = notes or ""
        self._set_item_status(StoreInventoryTransferItem.CANCELLED)

    @transition(field=status, source=APPROVED, target=IN_TRANSIT)
    def mark_shipped(self, user, shipping_reference="", notes=""):
        """
        Mark the transfer as shipped.

        Stock is deducted from the source store by the caller.
        """
        self.shipped_by = user
        self.shipped_at = timezone.now()
        self.shipping_reference = shipping_reference or ""
        if notes:
            self.notes = f"{self.notes}\n\n{notes}".strip()
        self._set_item_status(StoreInventoryTransferItem.IN_TRANSIT)

    @transition(field=status, source=IN_TRANSIT, target=RECEIVED)
    def mark_received(self, user, notes=""):
        self.received_by = user
        self.received_at = timezone.now()
        self.receipt_notes = notes or ""
        self._set_item_status(StoreInventoryTransferItem.RECEIVED)

    @transition(field=status, source=[REQUESTED, APPROVED], target=CANCELLED)
    def cancel(self, user, reason=""):
        self.notes = f"{self.notes}\n\nCancelled by {user.username}: {reason}".strip()
        self._set_item_status(StoreInventoryTransferItem.CANCELLED)


class StoreInventoryTransferItem(models.Model):
    """
    One product (optionally one serialized bar) moved by a transfer.
    """

    PENDING = "pending"
    APPROVED = "approved"
    IN_TRANSIT = "in_transit"
    RECEIVED = "received"
    CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (PENDING, "Pending"),
        (APPROVED, "Approved"),
        (IN_TRANSIT, "In Transit"),
        (RECEIVED, "Received"),
        (CANCELLED, "Cancelled"),
    ]

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the transfer item",
    )

    transfer = models.ForeignKey(
        StoreInventoryTransfer,
        on_delete=models.CASCADE,
        related_name="items",
        help_text="Transfer this item belongs to",
    )

    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="transfer_items",
    )

    bar = models.ForeignKey(
        InventoryBar,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="transfer_items",
        help_text="Serialized bar being moved, when tracked",
    )

    serial_number = models.CharField(max_length=100, blank=True)

    quantity = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
        help_text="Units to transfer",
    )

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING)

    notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "store_inventory_transfer_items"
        ordering = ["created_at"]
        verbose_name = "Store Inventory Transfer Item"
        verbose_name_plural = "Store Inventory Transfer Items"

    def __str__(self):
        return f"{self.product.name} x{self.quantity} ({self.transfer.transfer_number})"
