"""
Wallet services.

Balance-changing functions lock the affected rows with select_for_update()
and run inside transaction.atomic(), so callers can compose them into
larger all-or-nothing operations.
"""

import logging
import random
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from apps.core.exceptions import (
    InsufficientBalanceError,
    InvalidAmountError,
    NotFoundError,
    SelfTransferError,
)
from apps.pricing.services import grams as quantize_grams
from apps.pricing.services import money
from apps.sales import receipts

from .models import LYD, DigitalBalance, Transaction, Wallet

logger = logging.getLogger(__name__)


def generate_reference(prefix):
    """Operation reference such as TXN-1760884200000-4821."""
    millis = int(timezone.now().timestamp() * 1000)
    return f"{prefix}-{millis}-{random.randint(0, 9999)}"


def get_wallets(user):
    return Wallet.objects.filter(user=user).order_by("currency")


def get_wallet_by_currency(user, currency):
    return Wallet.objects.filter(user=user, currency=currency).first()


def get_digital_balances(user):
    return DigitalBalance.objects.filter(user=user).order_by("metal_type")


def get_digital_balance(user, metal_type):
    return DigitalBalance.objects.filter(user=user, metal_type=metal_type).first()


def get_transactions(user, limit=50):
    return Transaction.objects.filter(user=user).order_by("-created_at")[:limit]


def add_transaction(user, transaction_type, amount, currency=LYD, description="", reference_id=""):
    return Transaction.objects.create(
        user=user,
        type=transaction_type,
        amount=money(amount),
        currency=currency,
        description=description,
        reference_id=reference_id,
    )


def _locked_wallet(user, currency):
    wallet, _ = Wallet.objects.get_or_create(user=user, currency=currency)
    return Wallet.objects.select_for_update().get(pk=wallet.pk)


@transaction.atomic
def adjust_wallet_balance(user, currency, delta):
    """
    Move a wallet's balance by delta.

    The wallet is created when missing. A debit larger than the available
    balance raises InsufficientBalanceError and changes nothing.

    Args:
        user: Wallet owner
        currency: 'LYD' or 'USD'
        delta: Signed amount; negative values debit the wallet

    Returns:
        Wallet: the updated wallet
    """
    delta = money(delta)
    wallet = _locked_wallet(user, currency)

    if delta < 0 and -delta > wallet.available_balance:
        raise InsufficientBalanceError(f"Insufficient {currency} balance")

    wallet.balance += delta
    wallet.available_balance += delta
    wallet.save(update_fields=["balance", "available_balance", "updated_at"])

    logger.info(f"Wallet {wallet.pk} ({currency}) adjusted by {delta}, balance {wallet.balance}")
    return wallet


def require_available(user, currency, amount, message=None):
    """Raise InsufficientBalanceError unless the wallet can cover amount."""
    wallet = get_wallet_by_currency(user, currency)
    if wallet is None or wallet.available_balance < amount:
        raise InsufficientBalanceError(message or f"Insufficient {currency} balance")
    return wallet


@transaction.atomic
def update_digital_balance(user, metal_type, grams_delta):
    """
    Add (or with a negative delta, remove) grams from an existing balance.
    """
    grams_delta = quantize_grams(grams_delta)
    balance = (
        DigitalBalance.objects.select_for_update()
        .filter(user=user, metal_type=metal_type)
        .first()
    )
    if balance is None:
        raise NotFoundError("Digital balance not found")

    new_grams = balance.grams + grams_delta
    if new_grams < 0:
        raise InsufficientBalanceError("Insufficient digital balance")

    balance.grams = new_grams
    balance.save(update_fields=["grams", "updated_at"])
    logger.info(f"Digital balance {balance.pk} ({metal_type}) adjusted by {grams_delta}g")
    return balance


@transaction.atomic
def credit_digital_balance(user, metal_type, amount_grams):
    """Credit grams to a user, creating the balance row when missing."""
    DigitalBalance.objects.get_or_create(user=user, metal_type=metal_type)
    return update_digital_balance(user, metal_type, amount_grams)


@transaction.atomic
def transfer_digital_balance(sender, recipient, metal_type, amount_grams):
    """
    Move grams of a metal from one user to another.

    Both balance rows are locked in primary key order.
    """
    amount_grams = quantize_grams(amount_grams)
    if amount_grams <= 0:
        raise InvalidAmountError("Grams must be greater than zero")
    if sender.pk == recipient.pk:
        raise SelfTransferError()

    DigitalBalance.objects.get_or_create(user=recipient, metal_type=metal_type)
    locked = {
        balance.user_id: balance
        for balance in DigitalBalance.objects.select_for_update()
        .filter(user__in=[sender, recipient], metal_type=metal_type)
        .order_by("pk")
    }

    source = locked.get(sender.pk)
    if source is None or source.grams < amount_grams:
        raise InsufficientBalanceError("Insufficient digital balance")
    target = locked[recipient.pk]

    source.grams -= amount_grams
    target.grams += amount_grams
    source.save(update_fields=["grams", "updated_at"])
    target.save(update_fields=["grams", "updated_at"])

    logger.info(
        f"Transferred {amount_grams}g {metal_type} from {sender.pk} to {recipient.pk}"
    )
    return source, target


@transaction.atomic
def deposit_to_wallet(user, currency, amount, method):
    """
    Fund a wallet and return the deposit receipt.

    Args:
        user: Wallet owner
        currency: 'LYD' or 'USD'
        amount: Positive amount to credit
        method: Funding channel (e.g. 'bank_transfer', 'cash')
    """
    amount = money(amount)
    if amount <= 0:
        raise InvalidAmountError()

    before = _locked_wallet(user, currency).balance
    wallet = adjust_wallet_balance(user, currency, amount)
    reference = generate_reference("DEP")
    add_transaction(
        user,
        Transaction.DEPOSIT,
        amount,
        currency,
        description=f"Wallet deposit via {method.replace('_', ' ')}",
        reference_id=reference,
    )

    return receipts.generate_wallet_deposit_receipt(
        transaction_id=reference,
        user_name=user.display_name,
        user_email=user.email,
        amount=amount,
        currency=currency,
        wallet_balance_before=before,
        wallet_balance_after=wallet.balance,
        deposit_method=method,
    )


@transaction.atomic
def withdraw_from_wallet(user, currency, amount, method):
    """Debit a wallet for a withdrawal and return the withdrawal receipt."""
    amount = money(amount)
    if amount <= 0:
        raise InvalidAmountError()

    before = _locked_wallet(user, currency).balance
    wallet = adjust_wallet_balance(user, currency, -amount)
    reference = generate_reference("WDR")
    add_transaction(
        user,
        Transaction.WITHDRAWAL,
        amount,
        currency,
        description=f"Wallet withdrawal via {method.replace('_', ' ')}",
        reference_id=reference,
    )

    return receipts.generate_wallet_withdrawal_receipt(
        transaction_id=reference,
        user_name=user.display_name,
        user_email=user.email,
        amount=amount,
        currency=currency,
        wallet_balance_before=before,
        wallet_balance_after=wallet.balance,
        withdrawal_method=method,
    )


def total_balance_lyd(user) -> Decimal:
    """Sum of the user's LYD wallet and the LYD value of their digital metal."""
    wallet = get_wallet_by_currency(user, LYD)
    total = wallet.balance if wallet else Decimal("0.00")
    for balance in get_digital_balances(user):
        total += balance.value_lyd
    return total
