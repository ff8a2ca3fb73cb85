"""
Store finance services.

Provides the store console's money operations: account balances and their
ledger, deposits and withdrawals, bank accounts and fund transfers between
stores. Balance changes lock the account row and write a ledger line with
the balance before and after.
"""

import logging
from decimal import Decimal
from typing import Optional

from django.db import transaction
from django.db.models import Q

from django_fsm import TransitionNotAllowed

from apps.core.exceptions import (
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidStateError,
    NotFoundError,
)
from apps.core.models import Store, User
from apps.pricing.services import money
from apps.wallets.models import CURRENCY_CHOICES, LYD

from .models import (
    StoreBankAccount,
    StoreFinancialAccount,
    StoreFinancialTransaction,
    StoreFundTransferRequest,
)

logger = logging.getLogger(__name__)


class StoreFinanceService:
    """
    Service class for store accounts, bank accounts and fund transfers.
    """

    # Accounts and ledger

    @staticmethod
    def get_financial_accounts(store: Store):
        return StoreFinancialAccount.objects.filter(store=store).order_by("currency")

    @staticmethod
    def get_financial_transactions(
        store: Store,
        account: Optional[StoreFinancialAccount] = None,
        transaction_type: Optional[str] = None,
        start=None,
        end=None,
        limit: Optional[int] = None,
    ):
        queryset = StoreFinancialTransaction.objects.filter(store=store).order_by("-created_at")
        if account is not None:
            queryset = queryset.filter(account=account)
        if transaction_type:
            queryset = queryset.filter(transaction_type=transaction_type)
        if start:
            queryset = queryset.filter(created_at__gte=start)
        if end:
            queryset = queryset.filter(created_at__lte=end)
        if limit:
            queryset = queryset[:limit]
        return queryset

    @staticmethod
    def _locked_account(store: Store, currency: str) -> StoreFinancialAccount:
        if currency not in dict(CURRENCY_CHOICES):
            raise InvalidStateError(f"Unsupported currency: {currency}")
        account, _ = StoreFinancialAccount.objects.get_or_create(store=store, currency=currency)
        return StoreFinancialAccount.objects.select_for_update().get(pk=account.pk)

    @staticmethod
    @transaction.atomic
    def post_transaction(
        store: Store,
        currency: str,
        transaction_type: str,
        amount,
        description: str = "",
        user: Optional[User] = None,
        reference_type: str = "",
        reference_id: str = "",
        metadata: Optional[dict] = None,
    ) -> StoreFinancialTransaction:
        """
        Apply a movement to a store account and record it in the ledger.

        Credit types (deposit, bank_deposit, transfer_in, sale) increase the
        balance; the others decrease it and require enough available funds.
        The account is created when missing.
        """
        amount = money(amount)
        if amount <= 0:
            raise InvalidAmountError()

        account = StoreFinanceService._locked_account(store, currency)
        before = account.balance
        if transaction_type in StoreFinancialTransaction.CREDIT_TYPES:
            delta = amount
        else:
            if amount > account.available_balance:
                raise InsufficientBalanceError(f"Insufficient {currency} balance")
            delta = -amount

        account.balance += delta
        account.available_balance += delta
        account.save(update_fields=["balance", "available_balance", "updated_at"])

        entry = StoreFinancialTransaction.objects.create(
            store=store,
            account=account,
            transaction_type=transaction_type,
            amount=amount,
            balance_before=before,
            balance_after=account.balance,
            reference_type=reference_type,
            reference_id=str(reference_id or ""),
            description=description or "",
            metadata=metadata or {},
            processed_by=user,
        )
        logger.info(
            f"Store {store.pk} {currency} {transaction_type} {amount}: "
            f"{before} -> {account.balance}"
        )
        return entry

    @staticmethod
    def deposit_funds(store: Store, currency: str, amount, description: str = "", user=None):
        return StoreFinanceService.post_transaction(
            store,
            currency,
            StoreFinancialTransaction.DEPOSIT,
            amount,
            description=description or f"{currency} deposit",
            user=user,
        )

    @staticmethod
    def withdraw_funds(store: Store, currency: str, amount, description: str = "", user=None):
        return StoreFinanceService.post_transaction(
            store,
            currency,
            StoreFinancialTransaction.WITHDRAWAL,
            amount,
            description=description or f"{currency} withdrawal",
            user=user,
        )

    # Bank accounts

    @staticmethod
    def get_bank_accounts(store: Store):
        return StoreBankAccount.objects.filter(store=store).order_by("-created_at")

    @staticmethod
    def get_bank_account(store: Store, account_id) -> StoreBankAccount:
        account = StoreBankAccount.objects.filter(store=store, pk=account_id).first()
        if account is None:
            raise NotFoundError("Bank account not found")
        return account

    @staticmethod
    def add_bank_account(store: Store, user: User, **data) -> StoreBankAccount:
        account = StoreBankAccount.objects.create(
            store=store,
            created_by=user,
            is_active=True,
            is_verified=False,
            **data,
        )
        logger.info(f"Bank account {account.masked_account_number} added to store {store.pk}")
        return account

    @staticmethod
    def update_bank_account(account: StoreBankAccount, **data) -> StoreBankAccount:
        for name, value in data.items():
            setattr(account, name, value)
        account.save()
        return account

    @staticmethod
    def toggle_active(account: StoreBankAccount, is_active: bool) -> StoreBankAccount:
        account.is_active = is_active
        account.save(update_fields=["is_active", "updated_at"])
        return account

    @staticmethod
    def verify_account(account: StoreBankAccount) -> StoreBankAccount:
        account.is_verified = True
        account.save(update_fields=["is_verified", "updated_at"])
        logger.info(f"Bank account {account.pk} verified")
        return account

    @staticmethod
    def delete_account(account: StoreBankAccount) -> None:
        logger.info(f"Bank account {account.pk} deleted from store {account.store_id}")
        account.delete()

    @staticmethod
    def record_bank_transaction(
        store: Store,
        bank_account: StoreBankAccount,
        transaction_type: str,
        amount,
        description: str = "",
        user=None,
    ) -> StoreFinancialTransaction:
        """
        Record cash moved between the store's LYD account and a bank account.

        ``bank_deposit`` moves money into the store account and
        ``bank_withdrawal`` moves it out.
        """
        if transaction_type not in (
            StoreFinancialTransaction.BANK_DEPOSIT,
            StoreFinancialTransaction.BANK_WITHDRAWAL,
        ):
            raise InvalidStateError(f"Unsupported bank transaction type: {transaction_type}")
        if bank_account.store_id != store.pk:
            raise NotFoundError("Bank account not found")
        if not bank_account.is_active:
            raise InvalidStateError("Bank account is inactive")

        return StoreFinanceService.post_transaction(
            store,
            LYD,
            transaction_type,
            amount,
            description=description,
            user=user,
            reference_type="bank_account",
            reference_id=bank_account.pk,
            metadata={
                "bank_name": bank_account.bank_name,
                "account_number": bank_account.masked_account_number,
            },
        )

    # Fund transfers between stores

    @staticmethod
    def get_fund_transfer_requests(store: Store, status: Optional[str] = None):
        queryset = (
            StoreFundTransferRequest.objects.filter(Q(from_store=store) | Q(to_store=store))
            .select_related("from_store", "to_store", "requested_by")
            .order_by("-created_at")
        )
        if status:
            queryset = queryset.filter(status=status)
        return queryset

    @staticmethod
    def get_fund_transfer(request_id) -> StoreFundTransferRequest:
        request = StoreFundTransferRequest.objects.filter(pk=request_id).first()
        if request is None:
            raise NotFoundError("Fund transfer request not found")
        return request

    @staticmethod
    @transaction.atomic
    def request_fund_transfer(
        from_store: Store,
        to_store: Store,
        currency: str,
        amount,
        reason: str,
        user: User,
        notes: str = "",
    ) -> StoreFundTransferRequest:
        if from_store.pk == to_store.pk:
            raise InvalidStateError("Source and destination stores must differ")
        amount = money(amount)
        if amount <= 0:
            raise InvalidAmountError()

        account = StoreFinancialAccount.objects.filter(store=from_store, currency=currency).first()
        if account is None or account.available_balance < amount:
            raise InsufficientBalanceError(f"Insufficient {currency} balance")

        request = StoreFundTransferRequest.objects.create(
            from_store=from_store,
            to_store=to_store,
            currency=currency,
            amount=amount,
            reason=reason,
            notes=notes or "",
            requested_by=user,
        )
        logger.info(
            f"Fund transfer {request.pk} requested: {amount} {currency} "
            f"{from_store.pk} -> {to_store.pk}"
        )
        return request

    @staticmethod
    def _transition(request, method, *args):
        try:
            getattr(request, method)(*args)
        except TransitionNotAllowed:
            raise InvalidStateError(f"Fund transfer request is {request.status}")
        request.save()
        return request

    @staticmethod
    @transaction.atomic
    def approve_fund_transfer(request: StoreFundTransferRequest, user: User, notes: str = ""):
        """
        Approve a pending request and move the funds.

        The source account gets a ``transfer_out`` line and the destination a
        ``transfer_in`` line; the request ends ``completed``.
        """
        request = StoreFundTransferRequest.objects.select_for_update().get(pk=request.pk)
        StoreFinanceService._transition(request, "approve", user, notes)

        # lock both accounts in a stable order
        for store in sorted([request.from_store, request.to_store], key=lambda s: str(s.pk)):
            StoreFinanceService._locked_account(store, request.currency)

        description = (
            f"Transfer of {request.amount} {request.currency} "
            f"from {request.from_store.name} to {request.to_store.name}"
        )
        StoreFinanceService.post_transaction(
            request.from_store,
            request.currency,
            StoreFinancialTransaction.TRANSFER_OUT,
            request.amount,
            description=description,
            user=user,
            reference_type="fund_transfer",
            reference_id=request.pk,
        )
        StoreFinanceService.post_transaction(
            request.to_store,
            request.currency,
            StoreFinancialTransaction.TRANSFER_IN,
            request.amount,
            description=description,
            user=user,
            reference_type="fund_transfer",
            reference_id=request.pk,
        )

        logger.info(f"Fund transfer {request.pk} approved by {user.pk}")
        return request

    @staticmethod
    @transaction.atomic
    def reject_fund_transfer(request: StoreFundTransferRequest, user: User, notes: str = ""):
        request = StoreFundTransferRequest.objects.select_for_update().get(pk=request.pk)
        StoreFinanceService._transition(request, "reject", user, notes)
        logger.info(f"Fund transfer {request.pk} rejected by {user.pk}")
        return request

    @staticmethod
    @transaction.atomic
    def cancel_fund_transfer(request: StoreFundTransferRequest, user: User, reason: str = ""):
        request = StoreFundTransferRequest.objects.select_for_update().get(pk=request.pk)
        StoreFinanceService._transition(request, "cancel", user, reason)
        logger.info(f"Fund transfer {request.pk} cancelled by {user.pk}")
        return request

    @staticmethod
    def get_balance(store: Store, currency: str) -> Decimal:
        account = StoreFinancialAccount.objects.filter(store=store, currency=currency).first()
        return account.balance if account else Decimal("0.00")
