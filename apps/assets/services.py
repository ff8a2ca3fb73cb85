"""
Asset services: purchases, owned assets, pickup appointments, handover and
location changes.
"""

import json
import logging
import random
import string
from datetime import timedelta
from decimal import Decimal

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from django_fsm import TransitionNotAllowed

from apps.core.exceptions import (
    InvalidAmountError,
    InvalidCouponError,
    InvalidPinError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    SelfTransferError,
)
from apps.core.formatting_utils import calculate_storage_fee, format_plain
from apps.crm import services as crm_services
from apps.pricing import fees
from apps.pricing.services import grams as quantize_grams
from apps.pricing.services import money, quote_purchase
from apps.sales import receipts
from apps.wallets import services as wallet_services
from apps.wallets.models import LYD, USD, Transaction

from .models import (
    AssetTransfer,
    LocationChangeRequest,
    OwnedAsset,
    PickupAppointment,
    PickupLog,
    PurchaseInvoice,
)

logger = logging.getLogger(__name__)

DEFAULT_XRF_ANALYSIS = {"gold": "99.9%", "silver": "0.1%"}
DEFAULT_PHYSICAL_PROPERTIES = {"dimensions": "Standard", "shape": "Bar"}

WALLET_CURRENCIES = {
    PurchaseInvoice.WALLET_DINAR: LYD,
    PurchaseInvoice.WALLET_DOLLAR: USD,
}


def _millis():
    return int(timezone.now().timestamp() * 1000)


def stamped_code(prefix, length=9):
    """Identifier such as INV-1760884200000-K3J9X0QZ2."""
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=length))
    return f"{prefix}-{_millis()}-{suffix}"


def new_pickup_deadline(now=None):
    return (now or timezone.now()) + timedelta(days=fees.pickup_window_days())


# Owned assets


def get_owned_assets(user, status=None):
    queryset = (
        OwnedAsset.objects.filter(user=user)
        .select_related("product", "pickup_store")
        .order_by("-created_at")
    )
    if status:
        queryset = queryset.filter(status=status)
    return queryset


def get_asset_by_id(asset_id):
    return OwnedAsset.objects.select_related("product", "pickup_store").filter(pk=asset_id).first()


def create_asset(user, serial_number, product=None, pickup_store=None, **fields):
    fields.setdefault("xrf_analysis", dict(DEFAULT_XRF_ANALYSIS))
    fields.setdefault("physical_properties", dict(DEFAULT_PHYSICAL_PROPERTIES))
    asset = OwnedAsset.objects.create(
        user=user,
        product=product,
        serial_number=serial_number,
        pickup_store=pickup_store,
        **fields,
    )
    logger.info(f"Created asset {asset.serial_number} for user {user.pk}")
    return asset


def update_asset(asset, **fields):
    for name, value in fields.items():
        setattr(asset, name, value)
    asset.save()
    return asset


@transaction.atomic
def transfer_asset_ownership(asset, new_owner):
    """
    Hand an asset to a new owner.

    The asset goes back to ``not_received`` so the new owner can book its
    pickup.
    """
    asset = OwnedAsset.objects.select_for_update().get(pk=asset.pk)
    if asset.user_id == new_owner.pk:
        raise SelfTransferError()
    if asset.status == OwnedAsset.TRANSFERRED:
        raise InvalidStateError("Asset has already been transferred")

    previous_owner_id = asset.user_id
    asset.user = new_owner
    asset.status = OwnedAsset.NOT_RECEIVED
    asset.save(update_fields=["user", "status", "updated_at"])

    logger.info(f"Asset {asset.serial_number} moved from {previous_owner_id} to {new_owner.pk}")
    return asset


# Purchases


@transaction.atomic
def create_purchase(
    user,
    payment_method,
    amount_lyd,
    commission_lyd,
    is_digital,
    product=None,
    store=None,
    digital_metal_type="",
    digital_grams=None,
):
    """
    Create the invoice of a purchase, plus the asset for physical purchases.

    Returns:
        tuple: (PurchaseInvoice, OwnedAsset or None)
    """
    asset = None
    if not is_digital and product is not None and store is not None:
        asset = create_asset(
            user,
            serial_number=stamped_code("SN"),
            product=product,
            pickup_store=store,
            status=OwnedAsset.NOT_RECEIVED,
            pickup_deadline=new_pickup_deadline(),
            metal_type=product.type,
            weight_grams=product.weight_grams,
            is_digital=False,
        )

    invoice = PurchaseInvoice.objects.create(
        invoice_number=stamped_code("INV"),
        user=user,
        asset=asset,
        product=product,
        store=store,
        amount_lyd=money(amount_lyd),
        commission_lyd=money(commission_lyd),
        payment_method=payment_method,
        is_digital=is_digital,
        digital_metal_type=digital_metal_type or "",
        digital_grams=digital_grams,
        shared_bar_serial=f"SB-{_millis()}" if is_digital else "",
    )
    logger.info(f"Invoice {invoice.invoice_number} created for user {user.pk}")
    return invoice, asset


def _redeem(code, amount, currency, store, payment_method):
    validation = crm_services.validate_coupon(
        code, amount, currency=currency, store=store, payment_method=payment_method
    )
    if not validation.valid:
        raise InvalidCouponError(validation.error)
    return validation


@transaction.atomic
def purchase_product(
    user,
    product,
    payment_method,
    store=None,
    is_digital=False,
    grams=None,
    coupon_code=None,
):
    """
    Buy a product, either as digital grams or as a physical item.

    Wallet payment methods debit the matching wallet and cash is settled
    at the counter. A coupon code discounts any method; the ``coupon``
    method requires one and takes what the coupon leaves from the LYD
    wallet.

    Args:
        user: Buyer
        product: Product being bought
        payment_method: One of PurchaseInvoice.PAYMENT_METHOD_CHOICES
        store: Pickup store (physical purchases)
        is_digital: Buy grams instead of the physical item
        grams: Grams to buy (digital purchases)
        coupon_code: Coupon to redeem against the total

    Returns:
        tuple: (PurchaseInvoice, TransactionReceiptData)
    """
    if payment_method not in dict(PurchaseInvoice.PAYMENT_METHOD_CHOICES):
        raise InvalidStateError(f"Unsupported payment method: {payment_method}")
    if not is_digital and store is None:
        raise InvalidStateError("A pickup store is required for physical purchases")
    if payment_method == PurchaseInvoice.COUPON and not coupon_code:
        raise InvalidCouponError("A coupon code is required for coupon payments")

    quote = quote_purchase(product, is_digital, grams)
    currency = WALLET_CURRENCIES.get(payment_method, LYD)

    coupon = None
    total = quote.total
    if coupon_code:
        coupon = _redeem(coupon_code, quote.total, currency, store, payment_method)
        total = coupon.final_amount

    before = after = None
    if payment_method != PurchaseInvoice.CASH:
        wallet = wallet_services.get_wallet_by_currency(user, currency)
        before = wallet.balance if wallet else Decimal("0.00")
        after = wallet_services.adjust_wallet_balance(user, currency, -total).balance

    if is_digital:
        wallet_services.credit_digital_balance(user, product.type, quote.grams)
        description = f"Purchased {format_plain(quote.grams)}g digital {product.type}"
    else:
        description = f"Purchased {product.name}"

    invoice, asset = create_purchase(
        user,
        payment_method,
        amount_lyd=quote.subtotal,
        commission_lyd=quote.commission,
        is_digital=is_digital,
        product=product,
        store=store,
        digital_metal_type=product.type if is_digital else "",
        digital_grams=quote.grams if is_digital else None,
    )

    wallet_services.add_transaction(
        user,
        Transaction.PURCHASE,
        total,
        currency,
        description=description,
        reference_id=invoice.invoice_number,
    )

    discount = None
    if coupon is not None:
        discount = coupon.discount_amount
        crm_services.apply_coupon(
            user,
            coupon_code,
            invoice.invoice_number,
            quote.total,
            discount,
            total,
            currency,
        )

    receipt_method = None if payment_method in WALLET_CURRENCIES else payment_method
    if is_digital:
        receipt = receipts.generate_digital_purchase_receipt(
            transaction_id=invoice.invoice_number,
            user_name=user.display_name,
            user_email=user.email,
            metal_type=product.type,
            grams=quote.grams,
            price_per_gram=quote.price_per_gram,
            total_amount=total,
            currency=currency,
            wallet_balance_before=before,
            wallet_balance_after=after,
            payment_method=receipt_method,
            discount=discount,
        )
    else:
        receipt = receipts.generate_physical_purchase_receipt(
            transaction_id=invoice.invoice_number,
            user_name=user.display_name,
            user_email=user.email,
            product=receipts.ReceiptProduct(
                name=product.name,
                type=product.type,
                weight=product.weight_grams,
                carat=product.carat,
                serial_number=asset.serial_number,
            ),
            base_price=quote.subtotal,
            commission=quote.commission,
            total_amount=total,
            currency=currency,
            wallet_balance_before=before,
            wallet_balance_after=after,
            payment_method=receipt_method,
            discount=discount,
            pickup_store=store.name,
            pickup_address=store.address or None,
            pickup_deadline=asset.pickup_deadline.isoformat(),
        )

    logger.info(
        f"User {user.pk} bought {product.name} ({'digital' if is_digital else 'physical'}) "
        f"for {total} {currency}, invoice {invoice.invoice_number}"
    )
    return invoice, receipt


@transaction.atomic
def convert_digital_to_physical(user, metal_type, grams, store):
    """
    Fabricate a physical bar from a user's digital grams.

    The fabrication fee is charged to the LYD wallet and the grams are taken
    from the digital balance. The new bar waits at the chosen store.

    Returns:
        tuple: (OwnedAsset, TransactionReceiptData)
    """
    grams = quantize_grams(grams)
    if grams <= 0:
        raise InvalidAmountError("Grams must be greater than zero")

    fee = money(fees.fabrication_fee())
    wallet_services.require_available(
        user,
        LYD,
        fee,
        message=f"Insufficient wallet balance. Fabrication fee is {format_plain(fee)} LYD.",
    )

    before = wallet_services.get_wallet_by_currency(user, LYD).balance
    wallet = wallet_services.adjust_wallet_balance(user, LYD, -fee)
    wallet_services.update_digital_balance(user, metal_type, -grams)

    asset = create_asset(
        user,
        serial_number=stamped_code("SN"),
        pickup_store=store,
        status=OwnedAsset.NOT_RECEIVED,
        pickup_deadline=new_pickup_deadline(),
        metal_type=metal_type,
        weight_grams=grams,
        is_digital=False,
    )

    reference = stamped_code("RCV")
    wallet_services.add_transaction(
        user,
        Transaction.PURCHASE,
        fee,
        LYD,
        description=(
            f"Converted {format_plain(grams)}g {metal_type} to a physical bar - "
            f"Fabrication fee: {format_plain(fee)} LYD"
        ),
        reference_id=reference,
    )

    receipt = receipts.generate_receive_physical_receipt(
        transaction_id=reference,
        user_name=user.display_name,
        user_email=user.email,
        metal_type=metal_type,
        grams=grams,
        fabrication_fee=fee,
        currency=LYD,
        wallet_balance_before=before,
        wallet_balance_after=wallet.balance,
        pickup_store=store.name,
        pickup_address=store.address or None,
        pickup_deadline=asset.pickup_deadline.isoformat(),
        serial_number=asset.serial_number,
    )
    logger.info(f"User {user.pk} converted {grams}g {metal_type} into bar {asset.serial_number}")
    return asset, receipt


def get_invoice_by_id(invoice_id):
    return (
        PurchaseInvoice.objects.select_related("asset", "store", "product")
        .filter(pk=invoice_id)
        .first()
    )


def get_user_invoices(user):
    return (
        PurchaseInvoice.objects.filter(user=user)
        .select_related("asset", "store", "product")
        .order_by("-created_at")
    )


def get_asset_transfers(user):
    return (
        AssetTransfer.objects.filter(Q(from_user=user) | Q(to_user=user))
        .select_related("asset", "from_user", "to_user")
        .order_by("-created_at")
    )


# Appointments


def generate_pin():
    return str(random.randint(100000, 999999))


@transaction.atomic
def create_appointment(user, asset, store, appointment_date, appointment_time, notes=""):
    """
    Book a visit to collect an asset.

    The QR code payload carries the appointment number, ids, date, time and
    PIN so the store can look the booking up at the counter.
    """
    if asset.user_id != user.pk:
        raise PermissionDeniedError("You do not own this asset")
    if asset.status != OwnedAsset.NOT_RECEIVED:
        raise InvalidStateError("This asset is not awaiting pickup")

    number = stamped_code("APT", length=6)
    pin = generate_pin()
    qr_payload = {
        "appointment_number": number,
        "asset_id": str(asset.pk),
        "user_id": str(user.pk),
        "store_id": str(store.pk),
        "date": str(appointment_date),
        "time": str(appointment_time),
        "pin": pin,
        "timestamp": timezone.now().isoformat(),
    }

    appointment = PickupAppointment.objects.create(
        appointment_number=number,
        user=user,
        asset=asset,
        store=store,
        appointment_date=appointment_date,
        appointment_time=appointment_time,
        qr_code_data=json.dumps(qr_payload),
        verification_pin=pin,
        notes=notes or "",
    )
    logger.info(f"Appointment {number} booked for asset {asset.serial_number} at {store.pk}")
    return appointment


def get_appointments(user):
    return (
        PickupAppointment.objects.filter(user=user)
        .select_related("asset", "store")
        .order_by("appointment_date", "appointment_time")
    )


def get_appointment_by_id(appointment_id):
    return (
        PickupAppointment.objects.select_related("asset", "store", "user")
        .filter(pk=appointment_id)
        .first()
    )


def get_appointment_by_asset(asset):
    """The open (pending or confirmed) appointment of an asset, if any."""
    return (
        PickupAppointment.objects.filter(asset=asset, status__in=PickupAppointment.OPEN_STATUSES)
        .order_by("appointment_date", "appointment_time")
        .first()
    )


def update_appointment_status(appointment, status, cancellation_reason=""):
    if status not in dict(PickupAppointment.STATUS_CHOICES):
        raise InvalidStateError(f"Unknown appointment status: {status}")

    now = timezone.now()
    appointment.status = status
    if status == PickupAppointment.CONFIRMED:
        appointment.confirmed_at = now
    elif status == PickupAppointment.COMPLETED:
        appointment.completed_at = now
    elif status == PickupAppointment.CANCELLED:
        appointment.cancelled_at = now
        appointment.cancellation_reason = cancellation_reason or ""
    appointment.save()

    logger.info(f"Appointment {appointment.appointment_number} is now {status}")
    return appointment


def cancel_appointment(appointment, reason=""):
    if not appointment.is_open:
        raise InvalidStateError("Only pending or confirmed appointments can be cancelled")
    return update_appointment_status(appointment, PickupAppointment.CANCELLED, reason)


def get_store_appointments(store, date=None):
    queryset = (
        PickupAppointment.objects.filter(store=store)
        .select_related("asset", "asset__product", "user")
        .order_by("appointment_date", "appointment_time")
    )
    if date is not None:
        queryset = queryset.filter(appointment_date=date)
    return queryset


def find_appointment_by_qr(store, qr_data):
    """
    Find the store's appointment behind a scanned QR code.

    Accepts the full JSON payload or a bare appointment number typed in at
    the counter.
    """
    qr_data = (qr_data or "").strip()
    if not qr_data:
        raise NotFoundError("Appointment not found")

    number = qr_data
    try:
        payload = json.loads(qr_data)
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        number = str(payload.get("appointment_number", ""))

    appointment = (
        PickupAppointment.objects.select_related("asset", "asset__product", "user")
        .filter(store=store)
        .filter(Q(appointment_number=number) | Q(qr_code_data=qr_data))
        .first()
    )
    if appointment is None:
        raise NotFoundError("Appointment not found")
    return appointment


def get_pickup_logs(store):
    return (
        PickupLog.objects.filter(store=store)
        .select_related("appointment", "asset", "customer", "processed_by")
        .order_by("-created_at")
    )


@transaction.atomic
def handover_asset(
    store,
    appointment,
    pin,
    staff,
    storage_fee=None,
    payment_method="cash",
    notes="",
    id_photo=None,
    customer_photo=None,
):
    """
    Hand an asset over to its owner at the counter.

    Args:
        store: Store processing the pickup
        appointment: The customer's appointment
        pin: PIN presented by the customer
        staff: Staff member processing the pickup
        storage_fee: Fee collected; computed from the pickup deadline when omitted
        payment_method: How the storage fee was paid ('cash' or 'wallet_dinar')
        notes: Verification notes
        id_photo: Uploaded photo of the customer's ID, kept on the pickup log
        customer_photo: Uploaded photo of the customer

    Returns:
        PickupAppointment: the completed appointment
    """
    appointment = PickupAppointment.objects.select_for_update().get(pk=appointment.pk)
    if appointment.store_id != store.pk:
        raise PermissionDeniedError("This appointment belongs to another store")
    if not appointment.is_open:
        raise InvalidStateError("Appointment is not pending or confirmed")
    if str(pin).strip() != appointment.verification_pin:
        raise InvalidPinError()

    asset = OwnedAsset.objects.select_for_update().get(pk=appointment.asset_id)
    if asset.status != OwnedAsset.NOT_RECEIVED:
        raise InvalidStateError("Asset has already been handed over")

    if storage_fee is None:
        storage_fee = (
            calculate_storage_fee(asset.pickup_deadline).fee
            if asset.pickup_deadline
            else Decimal("0.00")
        )
    storage_fee = money(storage_fee)

    if storage_fee > 0 and payment_method == PurchaseInvoice.WALLET_DINAR:
        wallet_services.adjust_wallet_balance(appointment.user, LYD, -storage_fee)
        wallet_services.add_transaction(
            appointment.user,
            Transaction.PURCHASE,
            storage_fee,
            LYD,
            description=f"Storage fee for {asset.display_name} (SN: {asset.serial_number})",
            reference_id=appointment.appointment_number,
        )

    asset.status = OwnedAsset.RECEIVED
    asset.save(update_fields=["status", "updated_at"])

    appointment.status = PickupAppointment.COMPLETED
    appointment.completed_at = timezone.now()
    appointment.processed_by = staff
    appointment.storage_fee_lyd = storage_fee
    appointment.storage_fee_payment_method = payment_method or ""
    appointment.handover_notes = notes or ""
    appointment.save()

    photos = {}
    if id_photo is not None:
        photos["id_photo"] = id_photo
    if customer_photo is not None:
        photos["customer_photo"] = customer_photo
    PickupLog.objects.create(
        appointment=appointment,
        asset=asset,
        store=store,
        customer=appointment.user,
        processed_by=staff,
        storage_fee_lyd=storage_fee,
        notes=notes or "",
        **photos,
    )

    logger.info(
        f"Asset {asset.serial_number} handed over at store {store.pk} by {staff.pk}, "
        f"storage fee {storage_fee} LYD"
    )
    return appointment


@transaction.atomic
def flag_overdue_pickups(now=None):
    """
    Mark past appointments that never completed as no-shows and report
    assets whose pickup deadline has passed.

    Returns:
        dict: counts of no-shows marked and overdue assets
    """
    now = now or timezone.now()
    today = timezone.localdate(now)

    no_shows = PickupAppointment.objects.filter(
        status__in=PickupAppointment.OPEN_STATUSES, appointment_date__lt=today
    ).update(status=PickupAppointment.NO_SHOW, updated_at=now)

    overdue = OwnedAsset.objects.filter(
        status=OwnedAsset.NOT_RECEIVED, pickup_deadline__lt=now
    ).select_related("pickup_store")
    for asset in overdue:
        fee = calculate_storage_fee(asset.pickup_deadline, now=now)
        logger.warning(
            f"Asset {asset.serial_number} is {fee.days} day(s) past its pickup deadline, "
            f"storage fee {fee.fee} LYD"
        )

    return {"no_shows": no_shows, "overdue_assets": overdue.count()}


# Location changes


@transaction.atomic
def request_location_change(user, asset, to_store, reason=""):
    if asset.user_id != user.pk:
        raise PermissionDeniedError("You do not own this asset")
    if asset.status != OwnedAsset.NOT_RECEIVED:
        raise InvalidStateError("Only assets awaiting pickup can change location")
    if asset.pickup_store_id is None or asset.pickup_store_id == to_store.pk:
        raise InvalidStateError("Choose a different pickup store")
    if LocationChangeRequest.objects.filter(
        asset=asset,
        status__in=[LocationChangeRequest.PENDING, LocationChangeRequest.APPROVED],
    ).exists():
        raise InvalidStateError("A location change is already in progress for this asset")

    request = LocationChangeRequest.objects.create(
        asset=asset,
        from_store=asset.pickup_store,
        to_store=to_store,
        requested_by=user,
        reason=reason or "",
    )
    logger.info(f"Location change requested for {asset.serial_number} to store {to_store.pk}")
    return request


def get_location_requests(store, status=None):
    queryset = (
        LocationChangeRequest.objects.filter(Q(from_store=store) | Q(to_store=store))
        .select_related("asset", "asset__product", "from_store", "to_store", "requested_by")
        .order_by("-created_at")
    )
    if status:
        queryset = queryset.filter(status=status)
    return queryset


def get_location_request(request_id):
    request = LocationChangeRequest.objects.filter(pk=request_id).first()
    if request is None:
        raise NotFoundError("Location change request not found")
    return request


def _transition(request, method, *args):
    try:
        getattr(request, method)(*args)
    except TransitionNotAllowed:
        raise InvalidStateError(f"Location change request is {request.status}")
    request.save()
    return request


@transaction.atomic
def approve_location_change(request, user, notes=""):
    request = LocationChangeRequest.objects.select_for_update().get(pk=request.pk)
    _transition(request, "approve", user, notes)
    logger.info(f"Location change {request.pk} approved by {user.pk}")
    return request


@transaction.atomic
def reject_location_change(request, user, notes):
    if not notes or not notes.strip():
        raise InvalidStateError("A note is required to reject a request")
    request = LocationChangeRequest.objects.select_for_update().get(pk=request.pk)
    _transition(request, "reject", user, notes)
    logger.info(f"Location change {request.pk} rejected by {user.pk}")
    return request


def generate_gold_bar_serial():
    """New serial such as GB-004217, unique among owned assets."""
    while True:
        serial = f"GB-{random.randint(0, 999999):06d}"
        if not OwnedAsset.objects.filter(serial_number=serial).exists():
            return serial


@transaction.atomic
def complete_move(request):
    """
    Move an asset to its new pickup store once the request is approved.

    The owner pays the location change fee from the LYD wallet, the asset
    gets a new serial number and a fresh pickup window.

    Returns:
        tuple: (LocationChangeRequest, TransactionReceiptData)
    """
    request = LocationChangeRequest.objects.select_for_update().get(pk=request.pk)
    _transition(request, "mark_moved")

    asset = OwnedAsset.objects.select_for_update().get(pk=request.asset_id)
    owner = asset.user
    fee = money(fees.location_change_fee())

    wallet = wallet_services.get_wallet_by_currency(owner, LYD)
    before = wallet.balance if wallet else Decimal("0.00")
    after = wallet_services.adjust_wallet_balance(owner, LYD, -fee).balance

    old_serial = asset.serial_number
    asset.serial_number = generate_gold_bar_serial()
    asset.pickup_store = request.to_store
    asset.pickup_deadline = new_pickup_deadline()
    asset.save(update_fields=["serial_number", "pickup_store", "pickup_deadline", "updated_at"])

    reference = stamped_code("LOC")
    wallet_services.add_transaction(
        owner,
        Transaction.PURCHASE,
        fee,
        LYD,
        description=(
            f"Location change of {asset.display_name} from {request.from_store.name} "
            f"to {request.to_store.name} - Fee: {format_plain(fee)} LYD"
        ),
        reference_id=reference,
    )

    receipt = receipts.generate_location_change_receipt(
        transaction_id=reference,
        user_name=owner.display_name,
        user_email=owner.email,
        product_name=asset.display_name,
        product_type=asset.asset_metal or "gold",
        weight=asset.asset_weight,
        old_serial_number=old_serial,
        new_serial_number=asset.serial_number,
        from_store=request.from_store.name,
        to_store=request.to_store.name,
        location_change_fee=fee,
        currency=LYD,
        wallet_balance_before=before,
        wallet_balance_after=after,
    )
    logger.info(
        f"Asset {old_serial} moved to store {request.to_store.pk} as {asset.serial_number}"
    )
    return request, receipt
