"""
Inventory services: catalogue lookups, bar tracking and store-to-store
inventory transfers.
"""

import logging

from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from django_fsm import TransitionNotAllowed

from apps.core.exceptions import InsufficientBalanceError, InvalidStateError, NotFoundError
from apps.core.models import Store

from .models import (
    InventoryBar,
    Product,
    StoreInventory,
    StoreInventoryTransfer,
    StoreInventoryTransferItem,
)

logger = logging.getLogger(__name__)


# Catalogue


def get_products(is_active=True):
    return Product.objects.filter(is_active=is_active).order_by("type", "weight_grams")


def get_product_by_id(product_id):
    return Product.objects.filter(pk=product_id).first()


def get_stores(is_active=True):
    return Store.objects.filter(is_active=is_active).order_by("city")


def get_store_by_id(store_id):
    return Store.objects.filter(pk=store_id).first()


def get_inventory(store=None, product=None):
    queryset = StoreInventory.objects.select_related("store", "product")
    if store is not None:
        queryset = queryset.filter(store=store)
    if product is not None:
        queryset = queryset.filter(product=product)
    return queryset


def get_product_availability(product):
    """Map of store id to units in stock, for stores that hold the product."""
    return {
        row.store_id: row.quantity
        for row in get_inventory(product=product)
        if row.quantity > 0
    }


def get_store_inventory(store):
    return (
        StoreInventory.objects.select_related("product")
        .filter(store=store, quantity__gt=0)
        .order_by("-updated_at")
    )


def add_stock(store, product, quantity):
    """Add units of a product to a store, creating the inventory row if needed."""
    row, _ = StoreInventory.objects.get_or_create(store=store, product=product)
    StoreInventory.objects.filter(pk=row.pk).update(quantity=F("quantity") + quantity)
    row.refresh_from_db()
    logger.info(f"Added {quantity} x {product.name} to store {store.pk}, now {row.quantity}")
    return row


# Bar tracking


def get_store_bars(store):
    """
    Flattened detail rows for every bar held or sold by a store.

    Each row carries the bar, its XRF analysis and, once sold, the buyer
    and sale it went out with.
    """
    bars = (
        InventoryBar.objects.filter(store=store)
        .select_related("product", "buyer", "sale")
        .order_by("-created_at")
    )
    rows = []
    for bar in bars:
        rows.append(
            {
                "bar_id": bar.pk,
                "serial_number": bar.serial_number,
                "bar_number": bar.bar_number,
                "product_name": bar.product.name,
                "weight_grams": bar.weight_grams,
                "purity": bar.purity,
                "xrf_gold_percentage": bar.xrf_gold_percentage,
                "xrf_silver_percentage": bar.xrf_silver_percentage,
                "xrf_copper_percentage": bar.xrf_copper_percentage,
                "xrf_other_metals": bar.xrf_other_metals,
                "manufacturer": bar.manufacturer,
                "manufacture_date": bar.manufacture_date,
                "certification_number": bar.certification_number,
                "status": bar.status,
                "sale_date": bar.sale_date,
                "buyer_name": bar.buyer.get_full_name() if bar.buyer else None,
                "buyer_email": bar.buyer.email if bar.buyer else None,
                "buyer_phone": bar.buyer.phone if bar.buyer else None,
                "sale_number": bar.sale.sale_number if bar.sale else None,
                "sale_total": bar.sale.total_lyd if bar.sale else None,
            }
        )
    return rows


def get_user_bars(user):
    return (
        InventoryBar.objects.filter(buyer=user)
        .select_related("product", "store")
        .order_by("-sale_date")
    )


def get_bar_by_serial_number(serial_number):
    return (
        InventoryBar.objects.select_related("product", "buyer", "sale")
        .filter(serial_number=serial_number)
        .first()
    )


def create_bar(store, product, serial_number, weight_grams, purity, inventory=None, **fields):
    if inventory is None:
        inventory = StoreInventory.objects.filter(store=store, product=product).first()
    bar = InventoryBar.objects.create(
        store=store,
        product=product,
        inventory=inventory,
        serial_number=serial_number,
        weight_grams=weight_grams,
        purity=purity,
        **fields,
    )
    logger.info(f"Registered bar {serial_number} at store {store.pk}")
    return bar


def update_bar_status(bar, status):
    if status not in dict(InventoryBar.STATUS_CHOICES):
        raise InvalidStateError(f"Unknown bar status: {status}")
    bar.status = status
    bar.save(update_fields=["status", "updated_at"])
    return bar


def mark_bar_as_sold(bar, sale, buyer):
    if bar.status == InventoryBar.SOLD:
        raise InvalidStateError(f"Bar {bar.serial_number} is already sold")
    bar.status = InventoryBar.SOLD
    bar.sale = sale
    bar.buyer = buyer
    bar.sale_date = timezone.now()
    bar.save(update_fields=["status", "sale", "buyer", "sale_date", "updated_at"])
    logger.info(f"Bar {bar.serial_number} sold in {sale.sale_number}")
    return bar


# Store-to-store transfers


def get_transfer_requests(store, status=None):
    queryset = (
        StoreInventoryTransfer.objects.filter(Q(from_store=store) | Q(to_store=store))
        .select_related("from_store", "to_store", "requested_by")
        .order_by("-created_at")
    )
    if status:
        queryset = queryset.filter(status=status)
    return queryset


def get_transfer_items(transfer):
    return transfer.items.select_related("product", "bar").order_by("created_at")


def get_transfer(transfer_id):
    transfer = StoreInventoryTransfer.objects.filter(pk=transfer_id).first()
    if transfer is None:
        raise NotFoundError("Transfer request not found")
    return transfer


def _check_bar_transferable(bar, store, product):
    if bar.store_id != store.pk or bar.product_id != product.pk:
        raise InvalidStateError(f"Bar {bar.serial_number} does not match the transferred product")
    if bar.status != InventoryBar.IN_STOCK:
        raise InvalidStateError(f"Bar {bar.serial_number} is {bar.status}, not in stock")


def _locked_transfer(transfer):
    return StoreInventoryTransfer.objects.select_for_update().get(pk=transfer.pk)


def _run_transition(transfer, method, *args, **kwargs):
    try:
        getattr(transfer, method)(*args, **kwargs)
    except TransitionNotAllowed:
        raise InvalidStateError(
            f"Transfer {transfer.transfer_number} cannot be {method.replace('mark_', '')} "
            f"while {transfer.status}"
        )
    transfer.save()
    return transfer


@transaction.atomic
def request_transfer(from_store, to_store, items, reason, user, notes=""):
    """
    Request moving stock from one store to another.

    Args:
        from_store: Store sending the stock
        to_store: Store receiving the stock
        items: List of dicts with product, optional serial_number, bar and quantity
        reason: Why the stock is moved
        user: Requesting staff member
        notes: Optional notes

    Returns:
        StoreInventoryTransfer: the transfer in 'requested' state
    """
    if from_store.pk == to_store.pk:
        raise InvalidStateError("Source and destination stores must differ")
    if not items:
        raise InvalidStateError("A transfer needs at least one item")

    requested = {}
    for item in items:
        product = item["product"]
        requested[product.pk] = requested.get(product.pk, 0) + int(item.get("quantity") or 1)
        bar = item.get("bar")
        if bar is not None:
            _check_bar_transferable(bar, from_store, product)

    for product_id, quantity in requested.items():
        row = StoreInventory.objects.filter(store=from_store, product_id=product_id).first()
        if row is None or row.quantity < quantity:
            raise InsufficientBalanceError("Insufficient stock at the source store")

    transfer = StoreInventoryTransfer.objects.create(
        from_store=from_store,
        to_store=to_store,
        reason=reason,
        notes=notes or "",
        requested_by=user,
        total_items=sum(requested.values()),
    )
    for item in items:
        bar = item.get("bar")
        StoreInventoryTransferItem.objects.create(
            transfer=transfer,
            product=item["product"],
            bar=bar,
            serial_number=item.get("serial_number") or (bar.serial_number if bar else ""),
            quantity=int(item.get("quantity") or 1),
        )

    logger.info(
        f"Inventory transfer {transfer.transfer_number} requested: "
        f"{from_store.pk} -> {to_store.pk}, {transfer.total_items} units"
    )
    return transfer


@transaction.atomic
def approve_transfer(transfer, user, notes=""):
    transfer = _locked_transfer(transfer)
    _run_transition(transfer, "approve", user, notes)
    logger.info(f"Inventory transfer {transfer.transfer_number} approved by {user.pk}")
    return transfer


@transaction.atomic
def reject_transfer(transfer, user, notes=""):
    transfer = _locked_transfer(transfer)
    _run_transition(transfer, "reject", user, notes)
    logger.info(f"Inventory transfer {transfer.transfer_number} rejected by {user.pk}")
    return transfer


@transaction.atomic
def ship_transfer(transfer, user, shipping_reference="", notes=""):
    """
    Ship an approved transfer: deduct source stock and reserve the bars.
    """
    transfer = _locked_transfer(transfer)
    _run_transition(transfer, "mark_shipped", user, shipping_reference, notes)

    for item in get_transfer_items(transfer):
        row = (
            StoreInventory.objects.select_for_update()
            .filter(store=transfer.from_store, product=item.product)
            .first()
        )
        if row is None or row.quantity < item.quantity:
            raise InsufficientBalanceError(
                f"Insufficient stock of {item.product.name} at the source store"
            )
        row.quantity -= item.quantity
        row.save(update_fields=["quantity", "updated_at"])
        if item.bar_id:
            bar = InventoryBar.objects.select_for_update().get(pk=item.bar_id)
            _check_bar_transferable(bar, transfer.from_store, item.product)
            bar.status = InventoryBar.RESERVED
            bar.save(update_fields=["status", "updated_at"])

    logger.info(f"Inventory transfer {transfer.transfer_number} shipped by {user.pk}")
    return transfer


@transaction.atomic
def receive_transfer(transfer, user, notes=""):
    """
    Receive a shipped transfer: add destination stock and move the bars.
    """
    transfer = _locked_transfer(transfer)
    _run_transition(transfer, "mark_received", user, notes)

    for item in get_transfer_items(transfer):
        row = add_stock(transfer.to_store, item.product, item.quantity)
        if item.bar_id:
            InventoryBar.objects.filter(pk=item.bar_id).update(
                store=transfer.to_store,
                inventory=row,
                status=InventoryBar.IN_STOCK,
            )

    logger.info(f"Inventory transfer {transfer.transfer_number} received by {user.pk}")
    return transfer


@transaction.atomic
def cancel_transfer(transfer, user, reason=""):
    transfer = _locked_transfer(transfer)
    _run_transition(transfer, "cancel", user, reason)
    logger.info(f"Inventory transfer {transfer.transfer_number} cancelled by {user.pk}")
    return transfer
