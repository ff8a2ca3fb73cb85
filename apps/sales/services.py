"""
Sales services for the store console: POS sales, marketplace orders and the
cash drawer.
"""

import logging
from datetime import datetime, time
from decimal import Decimal

from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from apps.accounting.models import StoreFinancialTransaction
from apps.accounting.services import StoreFinanceService
from apps.core.exceptions import (
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidStateError,
    NotFoundError,
)
from apps.core.formatting_utils import format_plain
from apps.inventory.models import StoreInventory
from apps.pricing.services import money
from apps.wallets import services as wallet_services
from apps.wallets.models import LYD, Transaction

from .models import CashMovement, MarketplaceItem, MarketplaceOrder, PosSale, PosSaleItem

logger = logging.getLogger(__name__)


def _day_bounds(day):
    tz = timezone.get_current_timezone()
    start = timezone.make_aware(datetime.combine(day, time.min), tz)
    end = timezone.make_aware(datetime.combine(day, time.max), tz)
    return start, end


# POS sales


@transaction.atomic
def process_inventory_sale(
    store,
    clerk,
    customer,
    items,
    notes="",
    payment_method=PosSale.CASH,
    discount=Decimal("0.00"),
):
    """
    Sell items from a store's inventory.

    Each item is a dict with ``inventory`` (StoreInventory or its id),
    ``quantity`` and an optional ``unit_price_lyd`` that defaults to the
    product's base price. Inventory rows are locked and decremented, the sale
    is recorded and the store's LYD account is credited with the total.

    Raises:
        InvalidStateError: no items, or an item from another store
        InsufficientBalanceError: not enough stock for an item
    """
    if not items:
        raise InvalidStateError("A sale needs at least one item")

    lines = []
    subtotal = Decimal("0.00")
    for item in items:
        inventory_id = getattr(item["inventory"], "pk", item["inventory"])
        try:
            inventory = (
                StoreInventory.objects.select_for_update()
                .select_related("product")
                .get(pk=inventory_id)
            )
        except StoreInventory.DoesNotExist:
            raise NotFoundError("Inventory not found")
        if inventory.store_id != store.pk:
            raise InvalidStateError("Inventory belongs to another store")

        quantity = int(item.get("quantity", 1))
        if quantity <= 0:
            raise InvalidAmountError("Quantity must be greater than zero")
        if inventory.quantity < quantity:
            raise InsufficientBalanceError(f"Insufficient stock for {inventory.product.name}")

        unit_price = money(item.get("unit_price_lyd") or inventory.product.base_price_lyd)
        line_total = money(unit_price * quantity)
        subtotal += line_total
        lines.append((inventory, quantity, unit_price, line_total))

    discount = money(discount or 0)
    if discount < 0 or discount > subtotal:
        raise InvalidAmountError("Discount must be between zero and the subtotal")

    sale = PosSale.objects.create(
        store=store,
        clerk=clerk,
        customer=customer,
        subtotal_lyd=subtotal,
        discount_lyd=discount,
        total_lyd=subtotal - discount,
        payment_method=payment_method,
        notes=notes or "",
    )

    for inventory, quantity, unit_price, line_total in lines:
        inventory.quantity -= quantity
        inventory.save(update_fields=["quantity", "updated_at"])
        PosSaleItem.objects.create(
            sale=sale,
            inventory=inventory,
            product=inventory.product,
            quantity=quantity,
            unit_price_lyd=unit_price,
            line_total_lyd=line_total,
        )

    if sale.total_lyd > 0:
        StoreFinanceService.post_transaction(
            store,
            LYD,
            StoreFinancialTransaction.SALE,
            sale.total_lyd,
            description=f"Sale {sale.sale_number}",
            user=clerk,
            reference_type="pos_sale",
            reference_id=sale.pk,
            metadata={"payment_method": payment_method},
        )

    logger.info(
        f"Sale {sale.sale_number} at store {store.pk}: {len(lines)} lines, "
        f"total {sale.total_lyd} LYD, clerk {clerk.pk}"
    )
    return sale


def get_sales(store, date=None):
    queryset = (
        PosSale.objects.filter(store=store)
        .select_related("clerk", "customer")
        .prefetch_related("items__product")
        .order_by("-created_at")
    )
    if date:
        start, end = _day_bounds(date)
        queryset = queryset.filter(created_at__range=(start, end))
    return queryset


def get_sale_by_id(sale_id):
    sale = PosSale.objects.filter(pk=sale_id).first()
    if sale is None:
        raise NotFoundError("Sale not found")
    return sale


# Marketplace


def get_marketplace_items(store=None, featured=False):
    queryset = MarketplaceItem.objects.filter(is_available=True).select_related("store")
    if store is not None:
        queryset = queryset.filter(store=store)
    if featured:
        queryset = queryset.filter(featured=True)
    return queryset.order_by("-featured", "-created_at")


def get_item_by_id(item_id):
    item = MarketplaceItem.objects.filter(pk=item_id).select_related("store").first()
    if item is None:
        raise NotFoundError("Item not found")
    return item


@transaction.atomic
def create_order(buyer, item, quantity, payment_method, delivery_method, notes=""):
    """
    Place a marketplace order.

    The order is fulfilled at once from the item's linked inventory through a
    POS sale rung up by the store owner, and recorded as completed.
    """
    item = MarketplaceItem.objects.select_for_update().select_related("store").get(pk=item.pk)
    quantity = int(quantity)
    if quantity <= 0:
        raise InvalidAmountError("Quantity must be greater than zero")
    if not item.is_available or item.quantity_available < quantity:
        raise InsufficientBalanceError("Insufficient quantity available")
    if item.inventory_id is None:
        raise InvalidStateError("Inventory not linked to this item")

    total = money(item.price_lyd * quantity)
    if payment_method == MarketplaceOrder.WALLET:
        wallet_services.adjust_wallet_balance(buyer, LYD, -total)

    owner = item.store.get_owner_staff()
    if owner is None:
        raise NotFoundError("Store not found")

    method_label = "Store Pickup" if delivery_method == MarketplaceOrder.PICKUP else "Delivery"
    sale_notes = f"{method_label} - {payment_method} payment"
    if notes:
        sale_notes = f"{sale_notes} - {notes}"

    sale = process_inventory_sale(
        store=item.store,
        clerk=owner.user,
        customer=buyer,
        items=[
            {
                "inventory": item.inventory_id,
                "quantity": quantity,
                "unit_price_lyd": item.price_lyd,
            }
        ],
        notes=sale_notes,
        payment_method=payment_method,
    )

    order = MarketplaceOrder.objects.create(
        item=item,
        buyer=buyer,
        store=item.store,
        sale=sale,
        quantity=quantity,
        total_price_lyd=total,
        total_price_usd=money(item.price_usd * quantity),
        order_status=MarketplaceOrder.COMPLETED,
        payment_method=payment_method,
        delivery_method=delivery_method,
        notes=notes or "",
    )

    item.quantity_available -= quantity
    item.save(update_fields=["quantity_available", "updated_at"])

    if payment_method == MarketplaceOrder.WALLET:
        wallet_services.add_transaction(
            buyer,
            Transaction.PURCHASE,
            total,
            LYD,
            description=f"Marketplace order: {quantity} x {item.item_name}",
            reference_id=sale.sale_number,
        )

    logger.info(f"Marketplace order {order.pk}: {quantity} x {item.pk} for {buyer.pk}")
    return order


def get_user_orders(user):
    return (
        MarketplaceOrder.objects.filter(buyer=user)
        .select_related("item", "store")
        .order_by("-created_at")
    )


def get_store_orders(store):
    return (
        MarketplaceOrder.objects.filter(store=store)
        .select_related("item", "buyer")
        .order_by("-created_at")
    )


def update_order_status(order, status):
    if status not in dict(MarketplaceOrder.STATUS_CHOICES):
        raise InvalidStateError(f"Unknown order status: {status}")
    order.order_status = status
    order.save(update_fields=["order_status", "updated_at"])
    return order


# Cash drawer


def get_cash_movements(store, date=None):
    queryset = CashMovement.objects.filter(store=store).select_related("clerk")
    if date:
        start, end = _day_bounds(date)
        queryset = queryset.filter(created_at__range=(start, end))
    return queryset.order_by("created_at")


def record_cash_movement(store, clerk, movement_type, amount, notes=""):
    """Record cash put into or taken out of the drawer."""
    if movement_type not in (CashMovement.CASH_IN, CashMovement.CASH_OUT):
        raise InvalidStateError(f"Unsupported cash movement: {movement_type}")
    amount = money(amount)
    if amount <= 0:
        raise InvalidAmountError()

    movement = CashMovement.objects.create(
        store=store,
        clerk=clerk,
        movement_type=movement_type,
        amount_lyd=amount,
        notes=notes or "",
    )
    logger.info(f"Cash {movement_type} of {amount} LYD at store {store.pk} by {clerk.pk}")
    return movement


def open_drawer(store, clerk, opening_amount, notes=""):
    opening_amount = money(opening_amount)
    if opening_amount < 0:
        raise InvalidAmountError("Opening amount cannot be negative")

    today = timezone.localdate()
    if get_cash_movements(store, today).filter(movement_type=CashMovement.OPEN).exists():
        raise InvalidStateError("Drawer is already open today")

    movement = CashMovement.objects.create(
        store=store,
        clerk=clerk,
        movement_type=CashMovement.OPEN,
        amount_lyd=opening_amount,
        notes=notes or "",
    )
    logger.info(f"Drawer opened at store {store.pk} with {opening_amount} LYD")
    return movement


def get_drawer_summary(store, date=None):
    """
    Reconcile a day's cash drawer.

    Expected cash is the opening float plus cash in and cash sales, minus
    cash out. Variance is counted minus expected once the drawer is closed.
    """
    date = date or timezone.localdate()
    movements = get_cash_movements(store, date)

    def total(movement_type):
        value = movements.filter(movement_type=movement_type).aggregate(s=Sum("amount_lyd"))["s"]
        return value or Decimal("0.00")

    opening = total(CashMovement.OPEN)
    cash_in = total(CashMovement.CASH_IN)
    cash_out = total(CashMovement.CASH_OUT)
    cash_sales = (
        get_sales(store, date)
        .filter(payment_method=PosSale.CASH)
        .aggregate(s=Sum("total_lyd"))["s"]
        or Decimal("0.00")
    )
    expected = opening + cash_in + cash_sales - cash_out

    close = movements.filter(movement_type=CashMovement.CLOSE).last()
    counted = close.amount_lyd if close else None
    variance = counted - expected if close else None

    return {
        "date": date,
        "opening": opening,
        "cash_in": cash_in,
        "cash_out": cash_out,
        "cash_sales": cash_sales,
        "expected": expected,
        "counted": counted,
        "variance": variance,
        "is_open": movements.filter(movement_type=CashMovement.OPEN).exists() and close is None,
    }


def variance_message(variance):
    if variance == 0:
        return "Drawer balanced perfectly!"
    if variance > 0:
        return f"Over by {format_plain(money(variance))} LYD"
    return f"Short by {format_plain(money(-variance))} LYD"


def close_drawer(store, clerk, counted_amount, notes=""):
    """
    Close today's drawer with the counted cash.

    Returns:
        Tuple of (movement, summary) where summary carries the variance and
        its message
    """
    counted_amount = money(counted_amount)
    if counted_amount < 0:
        raise InvalidAmountError("Counted amount cannot be negative")

    summary = get_drawer_summary(store)
    if not summary["is_open"]:
        raise InvalidStateError("Drawer is not open")

    movement = CashMovement.objects.create(
        store=store,
        clerk=clerk,
        movement_type=CashMovement.CLOSE,
        amount_lyd=counted_amount,
        notes=notes or "",
    )
    summary = get_drawer_summary(store)
    summary["message"] = variance_message(summary["variance"])

    logger.info(
        f"Drawer closed at store {store.pk}: counted {counted_amount}, "
        f"expected {summary['expected']}, variance {summary['variance']}"
    )
    return movement, summary
