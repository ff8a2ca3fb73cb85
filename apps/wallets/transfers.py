"""
Customer-to-customer transfers.

Three flows are offered: digital grams, wallet balance and ownership of a
physical asset. Each one verifies the recipient, checks balances, charges
the transfer fee, moves the value, writes a statement line for both parties
under one shared reference and builds the receipt. Every flow runs in a
single database transaction, so a failure at any step leaves no trace.
"""

import logging
import random
import string
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Optional

from django.db import transaction
from django.utils import timezone

from apps.assets import services as asset_services
from apps.assets.models import AssetTransfer, OwnedAsset
from apps.core.exceptions import (
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidStateError,
    PermissionDeniedError,
    RecipientNotFoundError,
    SelfTransferError,
)
from apps.core.formatting_utils import format_currency, format_plain
from apps.core.services import find_user_by_email_or_phone
from apps.pricing import fees
from apps.pricing.services import grams as quantize_grams
from apps.pricing.services import money
from apps.sales import receipts
from apps.sales.receipts import TransactionReceiptData

from . import services
from .models import CURRENCY_CHOICES, LYD, Transaction

logger = logging.getLogger(__name__)

BASE36 = string.ascii_lowercase + string.digits


@dataclass
class TransferResult:
    reference: str
    recipient: object
    receipt: TransactionReceiptData
    asset_transfer: Optional[AssetTransfer] = None
    shared_bar_serial: Optional[str] = None


def resolve_recipient(sender, identifier):
    """
    Find the recipient of a transfer by email or phone.

    Raises:
        RecipientNotFoundError: no user matches the identifier
        SelfTransferError: the identifier belongs to the sender
    """
    recipient = find_user_by_email_or_phone(identifier)
    if recipient is None:
        raise RecipientNotFoundError()
    if recipient.pk == sender.pk:
        raise SelfTransferError()
    return recipient


def _millis():
    return int(timezone.now().timestamp() * 1000)


def shared_bar_serial(metal_type):
    """Serial of the bar shared by sender and recipient, e.g. SB-GOLD-1760884200000-4K2M9QXA."""
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=8))
    return f"SB-{metal_type.upper()}-{_millis()}-{suffix}"


def ownership_hash():
    """Hash identifying a completed ownership transfer, e.g. 0x3k9x0qz2m4b1c7d8e5f6a2b3c4."""
    return "0x" + "".join(random.choices(BASE36, k=26))


def _lyd_balance(user):
    wallet = services.get_wallet_by_currency(user, LYD)
    return wallet.balance if wallet else Decimal("0.00")


@transaction.atomic
def transfer_digital_grams(sender, recipient_identifier, metal_type, grams):
    """
    Send digital grams of a metal to another customer.

    The sender pays the transfer fee from the LYD wallet; the recipient pays
    nothing.

    Args:
        sender: User sending the grams
        recipient_identifier: Recipient email or phone
        metal_type: 'gold' or 'silver'
        grams: Grams to send

    Returns:
        TransferResult with the TXN reference and the digital_transfer receipt
    """
    recipient = resolve_recipient(sender, recipient_identifier)
    grams = quantize_grams(grams)
    if grams <= 0:
        raise InvalidAmountError("Grams must be greater than zero")

    fee = money(fees.transfer_fee())
    services.require_available(
        sender,
        LYD,
        fee,
        message=f"Insufficient wallet balance. Transfer fee is {format_plain(fee)} LYD.",
    )
    balance = services.get_digital_balance(sender, metal_type)
    if balance is None or balance.grams < grams:
        raise InsufficientBalanceError("Insufficient digital balance")

    before = _lyd_balance(sender)
    after = services.adjust_wallet_balance(sender, LYD, -fee).balance
    services.transfer_digital_balance(sender, recipient, metal_type, grams)

    reference = services.generate_reference("TXN")
    services.add_transaction(
        sender,
        Transaction.TRANSFER_OUT,
        fee,
        LYD,
        description=(
            f"Transferred {format_plain(grams)}g {metal_type} to {recipient.display_name} "
            f"- Fee: {format_plain(fee)} LYD"
        ),
        reference_id=reference,
    )
    services.add_transaction(
        recipient,
        Transaction.TRANSFER_IN,
        Decimal("0.00"),
        LYD,
        description=f"Received {format_plain(grams)}g {metal_type} from {sender.display_name}",
        reference_id=reference,
    )

    serial = shared_bar_serial(metal_type)
    receipt = receipts.generate_digital_transfer_receipt(
        transaction_id=reference,
        user_name=sender.display_name,
        user_email=sender.email,
        recipient_name=recipient.display_name,
        recipient_email=recipient.email,
        recipient_phone=recipient.phone,
        metal_type=metal_type,
        grams=grams,
        transfer_fee=fee,
        wallet_balance_before=before,
        wallet_balance_after=after,
        shared_bar_serial=serial,
    )

    logger.info(
        f"Digital transfer {reference}: {grams}g {metal_type} from {sender.pk} "
        f"to {recipient.pk}, fee {fee} LYD"
    )
    return TransferResult(
        reference=reference, recipient=recipient, receipt=receipt, shared_bar_serial=serial
    )


@transaction.atomic
def transfer_wallet_balance(sender, recipient_identifier, currency, amount):
    """
    Send money from one customer's wallet to another's in the same currency.

    The transfer fee is always charged in LYD: on top of the amount for LYD
    transfers, from the Dinar wallet for USD transfers.

    Returns:
        TransferResult with the WTX reference and the wallet_transfer receipt
    """
    recipient = resolve_recipient(sender, recipient_identifier)
    if currency not in dict(CURRENCY_CHOICES):
        raise InvalidStateError(f"Unsupported currency: {currency}")
    amount = money(amount)
    if amount <= 0:
        raise InvalidAmountError()

    fee = money(fees.transfer_fee())
    total_required = amount + fee if currency == LYD else amount
    services.require_available(
        sender,
        currency,
        total_required,
        message=(
            f"Insufficient balance. You need {format_currency(total_required, currency)} "
            f"(including {format_plain(fee)} LYD fee)."
        ),
    )
    if currency != LYD:
        services.require_available(
            sender,
            LYD,
            fee,
            message=f"Insufficient LYD balance for transfer fee. You need {format_plain(fee)} LYD.",
        )

    before = services.get_wallet_by_currency(sender, currency).balance
    services.adjust_wallet_balance(sender, currency, -amount)
    services.adjust_wallet_balance(sender, LYD, -fee)
    after = services.get_wallet_by_currency(sender, currency).balance
    services.adjust_wallet_balance(recipient, currency, amount)

    reference = services.generate_reference("WTX")
    shown = format_currency(amount, currency)
    services.add_transaction(
        sender,
        Transaction.TRANSFER_OUT,
        amount,
        currency,
        description=(
            f"Transferred {shown} to {recipient.display_name} - "
            f"Fee: {format_plain(fee)} LYD"
        ),
        reference_id=reference,
    )
    services.add_transaction(
        recipient,
        Transaction.TRANSFER_IN,
        amount,
        currency,
        description=f"Received {shown} from {sender.display_name}",
        reference_id=reference,
    )

    receipt = receipts.generate_wallet_transfer_receipt(
        transaction_id=reference,
        user_name=sender.display_name,
        user_email=sender.email,
        recipient_name=recipient.display_name,
        recipient_email=recipient.email,
        recipient_phone=recipient.phone,
        amount=amount,
        currency=currency,
        transfer_fee=fee,
        wallet_balance_before=before,
        wallet_balance_after=after,
    )

    logger.info(
        f"Wallet transfer {reference}: {amount} {currency} from {sender.pk} "
        f"to {recipient.pk}, fee {fee} LYD"
    )
    return TransferResult(reference=reference, recipient=recipient, receipt=receipt)


@transaction.atomic
def transfer_asset_ownership(
    sender,
    recipient_identifier,
    asset,
    risk_scorer: Optional[Callable[[], float]] = None,
):
    """
    Give a physical asset to another customer.

    A risk score is drawn first. Transfers scoring above the manual review
    threshold are recorded for review and nothing else happens: no fee, no
    change of owner, and the receipt is pending. Otherwise the fee is
    charged and ownership moves at once.

    Args:
        sender: Current owner
        recipient_identifier: Recipient email or phone
        asset: OwnedAsset to hand over
        risk_scorer: Callable returning a score in [0, 1); uniform random by default

    Returns:
        TransferResult with the AssetTransfer record and the receipt
    """
    recipient = resolve_recipient(sender, recipient_identifier)
    asset = OwnedAsset.objects.select_for_update().select_related("product").get(pk=asset.pk)
    if asset.user_id != sender.pk:
        raise PermissionDeniedError("You do not own this asset")
    if asset.status == OwnedAsset.TRANSFERRED:
        raise InvalidStateError("Asset has already been transferred")

    risk_score = (risk_scorer or random.random)()
    product = receipts.ReceiptProduct(
        name=asset.display_name,
        type=asset.asset_metal or "gold",
        weight=asset.asset_weight,
        carat=asset.product.carat if asset.product_id else None,
        serial_number=asset.serial_number,
    )
    record = AssetTransfer(
        asset=asset,
        from_user=sender,
        to_user=recipient,
        risk_score=Decimal(str(round(risk_score, 4))),
    )

    if risk_score > fees.manual_review_threshold():
        record.status = AssetTransfer.MANUAL_REVIEW
        record.save()
        reference = asset_services.stamped_code("OTR")
        receipt = receipts.generate_ownership_transfer_receipt(
            transaction_id=reference,
            user_name=sender.display_name,
            user_email=sender.email,
            recipient_name=recipient.display_name,
            recipient_email=recipient.email,
            recipient_phone=recipient.phone,
            product=product,
            risk_score=risk_score,
        )
        logger.warning(
            f"Ownership transfer of {asset.serial_number} from {sender.pk} to {recipient.pk} "
            f"held for manual review (risk {risk_score:.3f})"
        )
        return TransferResult(
            reference=reference, recipient=recipient, receipt=receipt, asset_transfer=record
        )

    fee = money(fees.transfer_fee())
    services.require_available(
        sender,
        LYD,
        fee,
        message=f"Insufficient balance. Transfer fee is {format_plain(fee)} LYD.",
    )
    before = _lyd_balance(sender)
    after = services.adjust_wallet_balance(sender, LYD, -fee).balance
    asset_services.transfer_asset_ownership(asset, recipient)

    tx_hash = ownership_hash()
    record.status = AssetTransfer.COMPLETED
    record.transaction_hash = tx_hash
    record.completed_at = timezone.now()
    record.save()

    label = f"{asset.display_name} (SN: {asset.serial_number})"
    services.add_transaction(
        sender,
        Transaction.TRANSFER_OUT,
        fee,
        LYD,
        description=(
            f"Transferred {label} to {recipient.display_name} - "
            f"Fee: {format_plain(fee)} LYD"
        ),
        reference_id=tx_hash,
    )
    services.add_transaction(
        recipient,
        Transaction.TRANSFER_IN,
        Decimal("0.00"),
        LYD,
        description=f"Received {label} from {sender.display_name}",
        reference_id=tx_hash,
    )

    receipt = receipts.generate_ownership_transfer_receipt(
        transaction_id=tx_hash,
        user_name=sender.display_name,
        user_email=sender.email,
        recipient_name=recipient.display_name,
        recipient_email=recipient.email,
        recipient_phone=recipient.phone,
        product=product,
        risk_score=risk_score,
        transfer_fee=fee,
        wallet_balance_before=before,
        wallet_balance_after=after,
    )

    logger.info(
        f"Ownership of {asset.serial_number} transferred from {sender.pk} to {recipient.pk} "
        f"({tx_hash})"
    )
    return TransferResult(
        reference=tx_hash, recipient=recipient, receipt=receipt, asset_transfer=record
    )
