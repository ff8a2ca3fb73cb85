"""
Sales models for the store console.

- PosSale / PosSaleItem: counter sales taken from store inventory
- MarketplaceItem / MarketplaceOrder: items listed online and their orders
- CashMovement: cash drawer opening, closing and manual cash in/out
"""

import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Max

from apps.core.models import Store, User
from apps.inventory.models import Product, StoreInventory


class PosSale(models.Model):
    """
    Point-of-sale transaction at a store.

    Sale numbers are sequential across the platform: SALE-00000001,
    SALE-00000002, ...
    """

    CASH = "cash"
    CARD = "card"
    WALLET = "wallet"
    BANK_TRANSFER = "bank_transfer"

    PAYMENT_METHOD_CHOICES = [
        (CASH, "Cash"),
        (CARD, "Card"),
        (WALLET, "Wallet"),
        (BANK_TRANSFER, "Bank Transfer"),
    ]

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the sale",
    )

    sale_number = models.CharField(
        max_length=50,
        unique=True,
        help_text="Sequential sale number (e.g., 'SALE-00000001')",
    )

    store = models.ForeignKey(
        Store,
        on_delete=models.PROTECT,
        related_name="sales",
        help_text="Store where the sale was made",
    )

    clerk = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        related_name="sales_processed",
        help_text="Staff member who processed the sale",
    )

    customer = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="store_purchases",
        help_text="Registered customer (optional for walk-in sales)",
    )

    subtotal_lyd = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="Subtotal before discount",
    )

    discount_lyd = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )

    total_lyd = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="Total amount (subtotal - discount)",
    )

    payment_method = models.CharField(
        max_length=20,
        choices=PAYMENT_METHOD_CHOICES,
        default=CASH,
    )

    notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = "pos_sales"
        ordering = ["-created_at"]
        verbose_name = "POS Sale"
        verbose_name_plural = "POS Sales"
        indexes = [
            models.Index(fields=["store", "-created_at"], name="sale_store_date_idx"),
            models.Index(fields=["clerk", "-created_at"], name="sale_clerk_date_idx"),
            models.Index(fields=["customer", "-created_at"], name="sale_cust_date_idx"),
        ]

    def __str__(self):
        return f"{self.sale_number} - {self.total_lyd}"

    def save(self, *args, **kwargs):
        """Assign the next sale number if not provided."""
        if not self.sale_number:
            self.sale_number = self.next_sale_number()
        super().save(*args, **kwargs)

    @classmethod
    def next_sale_number(cls):
        last = cls.objects.aggregate(last=Max("sale_number"))["last"]
        sequence = int(last.split("-")[1]) + 1 if last else 1
        return f"SALE-{sequence:08d}"


class PosSaleItem(models.Model):
    """
    Line of a POS sale.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )

    sale = models.ForeignKey(
        PosSale,
        on_delete=models.CASCADE,
        related_name="items",
    )

    inventory = models.ForeignKey(
        StoreInventory,
        on_delete=models.PROTECT,
        related_name="sale_items",
    )

    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="sale_items",
    )

    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])

    unit_price_lyd = models.DecimalField(max_digits=12, decimal_places=2)

    line_total_lyd = models.DecimalField(max_digits=14, decimal_places=2)

    class Meta:
        db_table = "pos_sale_items"
        verbose_name = "POS Sale Item"
        verbose_name_plural = "POS Sale Items"

    def __str__(self):
        return f"{self.product.name} x{self.quantity}"


class MarketplaceItem(models.Model):
    """
    Item a store lists on the online marketplace.
    """

    BAR = "bar"
    COIN = "coin"
    JEWELRY = "jewelry"
    INGOT = "ingot"
    BULLION = "bullion"

    ITEM_TYPE_CHOICES = [
        (BAR, "Bar"),
        (COIN, "Coin"),
        (JEWELRY, "Jewelry"),
        (INGOT, "Ingot"),
        (BULLION, "Bullion"),
    ]

    METAL_CHOICES = [
        ("gold", "Gold"),
        ("silver", "Silver"),
        ("platinum", "Platinum"),
    ]

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the listing",
    )

    store = models.ForeignKey(
        Store,
        on_delete=models.CASCADE,
        related_name="marketplace_items",
    )

    inventory = models.ForeignKey(
        StoreInventory,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="marketplace_items",
        help_text="Inventory row orders are fulfilled from",
    )

    item_name = models.CharField(max_length=255)
    item_type = models.CharField(max_length=20, choices=ITEM_TYPE_CHOICES)
    metal_type = models.CharField(max_length=10, choices=METAL_CHOICES)

    weight = models.DecimalField(max_digits=10, decimal_places=3)
    purity = models.CharField(max_length=20, blank=True)

    price_lyd = models.DecimalField(max_digits=12, decimal_places=2)
    price_usd = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    quantity_available = models.PositiveIntegerField(default=0)

    description = models.TextField(blank=True)
    image_url = models.URLField(blank=True)

    is_available = models.BooleanField(default=True)
    featured = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "store_marketplace_items"
        ordering = ["-featured", "-created_at"]
        verbose_name = "Marketplace Item"
        verbose_name_plural = "Marketplace Items"
        indexes = [
            models.Index(fields=["is_available", "-featured"], name="mkt_available_featured_idx"),
        ]

    def __str__(self):
        return self.item_name


class MarketplaceOrder(models.Model):
    """
    Customer order of a marketplace item.
    """

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (PENDING, "Pending"),
        (CONFIRMED, "Confirmed"),
        (COMPLETED, "Completed"),
        (CANCELLED, "Cancelled"),
    ]

    WALLET = "wallet"

    PAYMENT_METHOD_CHOICES = [
        (WALLET, "Wallet"),
        ("cash", "Cash"),
        ("bank_transfer", "Bank Transfer"),
    ]

    PICKUP = "pickup"
    DELIVERY = "delivery"

    DELIVERY_METHOD_CHOICES = [
        (PICKUP, "Store Pickup"),
        (DELIVERY, "Delivery"),
    ]

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the order",
    )

    item = models.ForeignKey(
        MarketplaceItem,
        on_delete=models.PROTECT,
        related_name="orders",
    )

    buyer = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="marketplace_orders",
    )

    store = models.ForeignKey(
        Store,
        on_delete=models.PROTECT,
        related_name="marketplace_orders",
    )

    sale = models.ForeignKey(
        PosSale,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="marketplace_orders",
        help_text="Inventory sale recorded for the order",
    )

    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])

    total_price_lyd = models.DecimalField(max_digits=14, decimal_places=2)
    total_price_usd = models.DecimalField(max_digits=14, decimal_places=2)

    order_status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING)
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES)
    delivery_method = models.CharField(max_length=20, choices=DELIVERY_METHOD_CHOICES)

    notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "store_marketplace_orders"
        ordering = ["-created_at"]
        verbose_name = "Marketplace Order"
        verbose_name_plural = "Marketplace Orders"

    def __str__(self):
        return f"{self.item.item_name} x{self.quantity} ({self.order_status})"


class CashMovement(models.Model):
    """
    Cash drawer event at a store.

    A day's drawer starts with an ``open`` movement carrying the float and
    ends with a ``close`` movement carrying the counted cash.
    """

    OPEN = "open"
    CLOSE = "close"
    CASH_IN = "cash_in"
    CASH_OUT = "cash_out"

    MOVEMENT_TYPE_CHOICES = [
        (OPEN, "Open Drawer"),
        (CLOSE, "Close Drawer"),
        (CASH_IN, "Cash In"),
        (CASH_OUT, "Cash Out"),
    ]

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )

    store = models.ForeignKey(
        Store,
        on_delete=models.CASCADE,
        related_name="cash_movements",
    )

    clerk = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        related_name="cash_movements",
    )

    movement_type = models.CharField(max_length=20, choices=MOVEMENT_TYPE_CHOICES)

    amount_lyd = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )

    notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = "cash_movements"
        ordering = ["created_at"]
        verbose_name = "Cash Movement"
        verbose_name_plural = "Cash Movements"
        indexes = [
            models.Index(fields=["store", "created_at"], name="cash_store_created_idx"),
        ]

    def __str__(self):
        return f"{self.get_movement_type_display()} {self.amount_lyd} LYD"
