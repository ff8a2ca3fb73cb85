"""
Transaction receipt data and builders.

A receipt is a summary of one customer transaction. It is rendered to JSON
(camelCase keys), to PDF by ``ReceiptGenerator`` and to plain text for
sharing; it is never persisted.
"""

import random
import string
from dataclasses import dataclass, field, fields
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from django.utils import timezone
from django.utils.dateparse import parse_datetime

from apps.core.formatting_utils import format_plain
from apps.pricing import fees

DIGITAL_PURCHASE = "digital_purchase"
PHYSICAL_PURCHASE = "physical_purchase"
OWNERSHIP_TRANSFER = "ownership_transfer"
LOCATION_CHANGE = "location_change"
DIGITAL_TRANSFER = "digital_transfer"
RECEIVE_PHYSICAL = "receive_physical"
WALLET_DEPOSIT = "wallet_deposit"
WALLET_WITHDRAWAL = "wallet_withdrawal"
WALLET_TRANSFER = "wallet_transfer"

RECEIPT_TYPES = (
    DIGITAL_PURCHASE,
    PHYSICAL_PURCHASE,
    OWNERSHIP_TRANSFER,
    LOCATION_CHANGE,
    DIGITAL_TRANSFER,
    RECEIVE_PHYSICAL,
    WALLET_DEPOSIT,
    WALLET_WITHDRAWAL,
    WALLET_TRANSFER,
)

SUCCESS = "success"
PENDING = "pending"
FAILED = "failed"

RECEIPT_STATUSES = (SUCCESS, PENDING, FAILED)

WALLET_LYD = "wallet_lyd"
WALLET_USD = "wallet_usd"


def _camel(name):
    head, *rest = name.rstrip("_").split("_")
    return head + "".join(part.title() for part in rest)


def _to_decimal(value):
    if value is None or isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class _Part:
    """Serialization helpers shared by the receipt sections."""

    DECIMAL_FIELDS = ()

    def to_dict(self) -> Dict[str, Any]:
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None:
                data[_camel(f.name)] = value
        return data

    @classmethod
    def from_dict(cls, data):
        if data is None:
            return None
        kwargs = {}
        for f in fields(cls):
            key = _camel(f.name)
            if key in data:
                value = data[key]
                kwargs[f.name] = _to_decimal(value) if f.name in cls.DECIMAL_FIELDS else value
        return cls(**kwargs)


@dataclass
class ReceiptParty(_Part):
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None


@dataclass
class ReceiptProduct(_Part):
    DECIMAL_FIELDS = ("weight",)

    name: str
    type: str
    weight: Decimal
    carat: Optional[int] = None
    serial_number: Optional[str] = None


@dataclass
class ReceiptLocation(_Part):
    from_: Optional[str] = None
    to: Optional[str] = None


@dataclass
class ReceiptAmounts(_Part):
    DECIMAL_FIELDS = (
        "subtotal",
        "commission",
        "fees",
        "fabrication_fee",
        "storage_fee",
        "discount",
        "total",
    )

    total: Decimal
    currency: str = "LYD"
    subtotal: Optional[Decimal] = None
    commission: Optional[Decimal] = None
    fees: Optional[Decimal] = None
    fabrication_fee: Optional[Decimal] = None
    storage_fee: Optional[Decimal] = None
    discount: Optional[Decimal] = None


@dataclass
class ReceiptDigitalGrams(_Part):
    DECIMAL_FIELDS = ("grams", "price_per_gram")

    metal: str
    grams: Decimal
    price_per_gram: Decimal = Decimal("0")


@dataclass
class ReceiptPayment(_Part):
    DECIMAL_FIELDS = ("wallet_balance_before", "wallet_balance_after")

    method: str
    wallet_balance_before: Optional[Decimal] = None
    wallet_balance_after: Optional[Decimal] = None


@dataclass
class ReceiptPickup(_Part):
    store: str
    deadline: str
    address: Optional[str] = None


SECTIONS = {
    "user": ReceiptParty,
    "recipient": ReceiptParty,
    "product": ReceiptProduct,
    "location": ReceiptLocation,
    "digital_grams": ReceiptDigitalGrams,
    "payment": ReceiptPayment,
    "pickup": ReceiptPickup,
}


@dataclass
class TransactionReceiptData:
    """
    Tagged union of the receipt kinds; ``type`` selects the layout.
    """

    transaction_id: str
    type: str
    amounts: ReceiptAmounts
    status: str = SUCCESS
    timestamp: datetime = field(default_factory=timezone.now)
    user: Optional[ReceiptParty] = None
    recipient: Optional[ReceiptParty] = None
    product: Optional[ReceiptProduct] = None
    location: Optional[ReceiptLocation] = None
    digital_grams: Optional[ReceiptDigitalGrams] = None
    payment: Optional[ReceiptPayment] = None
    pickup: Optional[ReceiptPickup] = None
    notes: Optional[str] = None
    tx_hash: Optional[str] = None

    def __post_init__(self):
        if self.type not in RECEIPT_TYPES:
            raise ValueError(f"Unknown receipt type: {self.type}")
        if self.status not in RECEIPT_STATUSES:
            raise ValueError(f"Unknown receipt status: {self.status}")

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "transactionId": self.transaction_id,
            "type": self.type,
            "timestamp": self.timestamp.isoformat(),
            "status": self.status,
            "amounts": self.amounts.to_dict(),
        }
        for name in SECTIONS:
            part = getattr(self, name)
            if part is not None:
                data[_camel(name)] = part.to_dict()
        if self.notes is not None:
            data["notes"] = self.notes
        if self.tx_hash is not None:
            data["txHash"] = self.tx_hash
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TransactionReceiptData":
        """Build receipt data from its camelCase JSON form."""
        try:
            timestamp = data.get("timestamp")
            if isinstance(timestamp, str):
                timestamp = parse_datetime(timestamp)
            kwargs = {
                "transaction_id": data["transactionId"],
                "type": data["type"],
                "status": data.get("status", SUCCESS),
                "amounts": ReceiptAmounts.from_dict(data["amounts"]),
                "notes": data.get("notes"),
                "tx_hash": data.get("txHash"),
            }
            if timestamp:
                kwargs["timestamp"] = timestamp
            for name, part_class in SECTIONS.items():
                kwargs[name] = part_class.from_dict(data.get(_camel(name)))
        except (KeyError, TypeError, ArithmeticError) as exc:
            raise ValueError(f"Invalid receipt data: {exc}") from exc
        return cls(**kwargs)


def generate_tx_hash() -> str:
    """Display hash of a receipt, e.g. TXH-1760884200000-K3J9X0QZ2."""
    millis = int(timezone.now().timestamp() * 1000)
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=9))
    return f"TXH-{millis}-{suffix}"


def wallet_method(currency) -> str:
    return WALLET_LYD if currency == "LYD" else WALLET_USD


def commission_percent() -> str:
    """Physical commission rate as a percent string, e.g. "1.5"."""
    return format_plain(fees.physical_commission_rate() * 100)


def _party(name, email=None, phone=None):
    if name is None:
        return None
    return ReceiptParty(name=name, email=email or None, phone=phone or None)


def generate_digital_purchase_receipt(
    *,
    transaction_id,
    user_name,
    metal_type,
    grams,
    price_per_gram,
    total_amount,
    currency,
    wallet_balance_before,
    wallet_balance_after,
    user_email=None,
    payment_method=None,
    discount=None,
):
    return TransactionReceiptData(
        transaction_id=transaction_id,
        type=DIGITAL_PURCHASE,
        user=_party(user_name, user_email),
        digital_grams=ReceiptDigitalGrams(
            metal=metal_type, grams=grams, price_per_gram=price_per_gram
        ),
        amounts=ReceiptAmounts(
            subtotal=total_amount,
            commission=Decimal("0.00"),
            total=total_amount,
            currency=currency,
            discount=discount,
        ),
        payment=ReceiptPayment(
            method=payment_method or wallet_method(currency),
            wallet_balance_before=wallet_balance_before,
            wallet_balance_after=wallet_balance_after,
        ),
        notes=(
            f"No commission charged on digital {metal_type} purchases. "
            "Your digital balance has been updated instantly."
        ),
        tx_hash=generate_tx_hash(),
    )


def generate_physical_purchase_receipt(
    *,
    transaction_id,
    user_name,
    product,
    base_price,
    commission,
    total_amount,
    currency,
    wallet_balance_before,
    wallet_balance_after,
    pickup_store,
    pickup_deadline,
    pickup_address=None,
    user_email=None,
    payment_method=None,
    discount=None,
):
    """
    Receipt for a physical purchase.

    ``product`` is a ReceiptProduct; the pickup deadline is an ISO string.
    """
    window = fees.pickup_window_days()
    return TransactionReceiptData(
        transaction_id=transaction_id,
        type=PHYSICAL_PURCHASE,
        user=_party(user_name, user_email),
        product=product,
        amounts=ReceiptAmounts(
            subtotal=base_price,
            commission=commission,
            total=total_amount,
            currency=currency,
            discount=discount,
        ),
        payment=ReceiptPayment(
            method=payment_method or wallet_method(currency),
            wallet_balance_before=wallet_balance_before,
            wallet_balance_after=wallet_balance_after,
        ),
        pickup=ReceiptPickup(store=pickup_store, address=pickup_address, deadline=pickup_deadline),
        notes=(
            f"Commission of {commission_percent()}% applied to physical "
            f"purchases. Please collect your {product.type} within {window} days to avoid "
            "storage fees."
        ),
        tx_hash=generate_tx_hash(),
    )


def generate_ownership_transfer_receipt(
    *,
    transaction_id,
    user_name,
    recipient_name,
    product,
    risk_score=None,
    transfer_fee=None,
    wallet_balance_before=None,
    wallet_balance_after=None,
    user_email=None,
    recipient_email=None,
    recipient_phone=None,
):
    """
    Receipt for an ownership transfer.

    Transfers scoring above the manual review threshold are reported as
    pending.
    """
    flagged = risk_score is not None and risk_score > fees.manual_review_threshold()
    status = PENDING if flagged else SUCCESS

    if flagged:
        notes = (
            "This transfer has been flagged for manual review due to security checks. "
            "Our team will verify within 24 hours."
        )
    else:
        notes = (
            f"Ownership successfully transferred to {recipient_name}. "
            "The recipient can now manage this asset."
        )

    payment = None
    fee = Decimal("0.00")
    if transfer_fee and not flagged:
        fee = transfer_fee
        payment = ReceiptPayment(
            method=WALLET_LYD,
            wallet_balance_before=wallet_balance_before,
            wallet_balance_after=wallet_balance_after,
        )

    return TransactionReceiptData(
        transaction_id=transaction_id,
        type=OWNERSHIP_TRANSFER,
        status=status,
        user=_party(user_name, user_email),
        recipient=_party(recipient_name, recipient_email, recipient_phone),
        product=product,
        amounts=ReceiptAmounts(fees=fee or None, total=fee, currency="LYD"),
        payment=payment,
        notes=notes,
        tx_hash=generate_tx_hash(),
    )


def generate_location_change_receipt(
    *,
    transaction_id,
    user_name,
    product_name,
    product_type,
    weight,
    old_serial_number,
    new_serial_number,
    from_store,
    to_store,
    location_change_fee,
    currency,
    wallet_balance_before,
    wallet_balance_after,
    user_email=None,
):
    window = fees.pickup_window_days()
    return TransactionReceiptData(
        transaction_id=transaction_id,
        type=LOCATION_CHANGE,
        user=_party(user_name, user_email),
        product=ReceiptProduct(
            name=product_name,
            type=product_type,
            weight=weight,
            serial_number=new_serial_number,
        ),
        location=ReceiptLocation(from_=from_store, to=to_store),
        amounts=ReceiptAmounts(
            fees=location_change_fee, total=location_change_fee, currency=currency
        ),
        payment=ReceiptPayment(
            method=wallet_method(currency),
            wallet_balance_before=wallet_balance_before,
            wallet_balance_after=wallet_balance_after,
        ),
        notes=(
            "Your pickup location has been changed. "
            f"A new serial number ({new_serial_number}) has been assigned. "
            f"Old serial: {old_serial_number}. New {window}-day pickup deadline starts now."
        ),
        tx_hash=generate_tx_hash(),
    )


def generate_digital_transfer_receipt(
    *,
    transaction_id,
    user_name,
    recipient_name,
    metal_type,
    grams,
    transfer_fee=None,
    wallet_balance_before=None,
    wallet_balance_after=None,
    shared_bar_serial=None,
    user_email=None,
    recipient_email=None,
    recipient_phone=None,
):
    if shared_bar_serial:
        notes = (
            f"Digital {metal_type} transferred successfully. "
            f"Both parties share ownership of bar: {shared_bar_serial}"
        )
    else:
        notes = (
            f"{format_plain(grams)}g of digital {metal_type} transferred to {recipient_name}. "
            "Transaction completed instantly with no fees."
        )

    payment = None
    fee = transfer_fee or Decimal("0.00")
    if transfer_fee:
        payment = ReceiptPayment(
            method=WALLET_LYD,
            wallet_balance_before=wallet_balance_before,
            wallet_balance_after=wallet_balance_after,
        )

    return TransactionReceiptData(
        transaction_id=transaction_id,
        type=DIGITAL_TRANSFER,
        user=_party(user_name, user_email),
        recipient=_party(recipient_name, recipient_email, recipient_phone),
        digital_grams=ReceiptDigitalGrams(metal=metal_type, grams=grams),
        amounts=ReceiptAmounts(
            subtotal=Decimal("0.00"),
            fees=fee,
            total=fee,
            currency="LYD",
        ),
        payment=payment,
        notes=notes,
        tx_hash=generate_tx_hash(),
    )


def generate_receive_physical_receipt(
    *,
    transaction_id,
    user_name,
    metal_type,
    grams,
    fabrication_fee,
    currency,
    wallet_balance_before,
    wallet_balance_after,
    pickup_store,
    pickup_deadline,
    serial_number,
    pickup_address=None,
    user_email=None,
):
    window = fees.pickup_window_days()
    return TransactionReceiptData(
        transaction_id=transaction_id,
        type=RECEIVE_PHYSICAL,
        user=_party(user_name, user_email),
        product=ReceiptProduct(
            name=f"{format_plain(grams)}g {metal_type.upper()} Bar",
            type=metal_type,
            weight=grams,
            serial_number=serial_number,
        ),
        digital_grams=ReceiptDigitalGrams(metal=metal_type, grams=grams),
        amounts=ReceiptAmounts(
            fabrication_fee=fabrication_fee, total=fabrication_fee, currency=currency
        ),
        payment=ReceiptPayment(
            method=wallet_method(currency),
            wallet_balance_before=wallet_balance_before,
            wallet_balance_after=wallet_balance_after,
        ),
        pickup=ReceiptPickup(store=pickup_store, address=pickup_address, deadline=pickup_deadline),
        notes=(
            f"Your digital {metal_type} has been converted to a physical bar. "
            "Fabrication and cutting fee applied. "
            f"Digital balance deducted: {format_plain(grams)}g. Collect within {window} days."
        ),
        tx_hash=generate_tx_hash(),
    )


def generate_wallet_deposit_receipt(
    *,
    transaction_id,
    user_name,
    amount,
    currency,
    wallet_balance_before,
    wallet_balance_after,
    deposit_method,
    user_email=None,
):
    return TransactionReceiptData(
        transaction_id=transaction_id,
        type=WALLET_DEPOSIT,
        user=_party(user_name, user_email),
        amounts=ReceiptAmounts(total=amount, currency=currency),
        payment=ReceiptPayment(
            method=deposit_method,
            wallet_balance_before=wallet_balance_before,
            wallet_balance_after=wallet_balance_after,
        ),
        notes=f"Funds deposited successfully to your {currency} wallet. Available balance updated.",
        tx_hash=generate_tx_hash(),
    )


def generate_wallet_withdrawal_receipt(
    *,
    transaction_id,
    user_name,
    amount,
    currency,
    wallet_balance_before,
    wallet_balance_after,
    withdrawal_method,
    user_email=None,
):
    return TransactionReceiptData(
        transaction_id=transaction_id,
        type=WALLET_WITHDRAWAL,
        user=_party(user_name, user_email),
        amounts=ReceiptAmounts(total=amount, currency=currency),
        payment=ReceiptPayment(
            method=withdrawal_method,
            wallet_balance_before=wallet_balance_before,
            wallet_balance_after=wallet_balance_after,
        ),
        notes=(
            f"Funds withdrawn successfully from your {currency} wallet. "
            "Available balance updated."
        ),
        tx_hash=generate_tx_hash(),
    )


def generate_wallet_transfer_receipt(
    *,
    transaction_id,
    user_name,
    recipient_name,
    amount,
    currency,
    transfer_fee,
    wallet_balance_before,
    wallet_balance_after,
    user_email=None,
    recipient_email=None,
    recipient_phone=None,
):
    """
    Receipt for a wallet-to-wallet balance transfer.

    The fee is always paid in LYD; for LYD transfers it is part of the total.
    """
    total = amount + transfer_fee if currency == "LYD" else amount
    notes = "Wallet-to-wallet transfer completed successfully."
    if currency != "LYD":
        notes += f" Transfer fee of {transfer_fee} LYD was deducted from your Dinar wallet."
    return TransactionReceiptData(
        transaction_id=transaction_id,
        type=WALLET_TRANSFER,
        user=_party(user_name, user_email),
        recipient=_party(recipient_name, recipient_email, recipient_phone),
        amounts=ReceiptAmounts(
            subtotal=amount,
            fees=transfer_fee,
            total=total,
            currency=currency,
        ),
        payment=ReceiptPayment(
            method=wallet_method(currency),
            wallet_balance_before=wallet_balance_before,
            wallet_balance_after=wallet_balance_after,
        ),
        notes=notes,
        tx_hash=generate_tx_hash(),
    )
