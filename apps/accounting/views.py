"""
Store finance API: accounts and ledger, bank accounts and fund transfers
between stores.

All endpoints are store scoped; reading needs an active membership and
moving money needs an owner or manager.
"""

from rest_framework import generics, permissions, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from apps.core.exceptions import NotFoundError
from apps.core.mixins import StoreContextMixin
from apps.core.permissions import IsStoreManager, IsStoreStaff
from apps.core.services import get_store
from apps.core.views import day_end, day_start, query_date

from .serializers import (
    BankAccountSerializer,
    BankTransactionSerializer,
    FinancialAccountSerializer,
    FinancialTransactionSerializer,
    FundsMovementSerializer,
    FundTransferActionSerializer,
    FundTransferCreateSerializer,
    FundTransferSerializer,
)
from .services import StoreFinanceService


class FinancialAccountListView(StoreContextMixin, generics.ListAPIView):
    serializer_class = FinancialAccountSerializer
    permission_classes = [permissions.IsAuthenticated, IsStoreStaff]
    pagination_class = None

    def get_queryset(self):
        return StoreFinanceService.get_financial_accounts(self.store)


class FinancialTransactionListView(StoreContextMixin, generics.ListAPIView):
    """
    Ledger lines of the store, newest first.

    Query parameters:
    - currency: LYD or USD
    - type: transaction type
    - from, to: YYYY-MM-DD
    """

    serializer_class = FinancialTransactionSerializer
    permission_classes = [permissions.IsAuthenticated, IsStoreStaff]

    def get_queryset(self):
        params = self.request.query_params
        account = None
        if params.get("currency"):
            account = (
                StoreFinanceService.get_financial_accounts(self.store)
                .filter(currency=params["currency"])
                .first()
            )
            if account is None:
                return StoreFinanceService.get_financial_transactions(self.store).none()

        date_from = query_date(self.request, "from")
        date_to = query_date(self.request, "to")
        return StoreFinanceService.get_financial_transactions(
            self.store,
            account=account,
            transaction_type=params.get("type"),
            start=day_start(date_from) if date_from else None,
            end=day_end(date_to) if date_to else None,
        ).select_related("account", "processed_by")


def _funds_movement(request, operation):
    serializer = FundsMovementSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    entry = operation(
        request.store_membership.store,
        data["currency"],
        data["amount"],
        description=data["description"],
        user=request.user,
    )
    return Response(FinancialTransactionSerializer(entry).data, status=status.HTTP_201_CREATED)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated, IsStoreManager])
def deposit_funds(request, store_id):
    return _funds_movement(request, StoreFinanceService.deposit_funds)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated, IsStoreManager])
def withdraw_funds(request, store_id):
    return _funds_movement(request, StoreFinanceService.withdraw_funds)


# Bank accounts


class BankAccountListCreateView(StoreContextMixin, generics.ListCreateAPIView):
    serializer_class = BankAccountSerializer
    pagination_class = None

    def get_permissions(self):
        if self.request.method == "POST":
            return [permissions.IsAuthenticated(), IsStoreManager()]
        return [permissions.IsAuthenticated(), IsStoreStaff()]

    def get_queryset(self):
        return StoreFinanceService.get_bank_accounts(self.store)

    def perform_create(self, serializer):
        data = dict(serializer.validated_data)
        data.pop("is_active", None)
        serializer.instance = StoreFinanceService.add_bank_account(
            self.store, self.request.user, **data
        )


class BankAccountDetailView(StoreContextMixin, generics.GenericAPIView):
    """PATCH: edit details or toggle ``is_active``. DELETE: remove the account."""

    serializer_class = BankAccountSerializer
    permission_classes = [permissions.IsAuthenticated, IsStoreManager]

    def get_object(self):
        return StoreFinanceService.get_bank_account(self.store, self.kwargs["account_id"])

    def patch(self, request, *args, **kwargs):
        account = self.get_object()
        serializer = BankAccountSerializer(account, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)

        if "is_active" in data:
            StoreFinanceService.toggle_active(account, data.pop("is_active"))
        if data:
            StoreFinanceService.update_bank_account(account, **data)
        return Response(BankAccountSerializer(account).data)

    def delete(self, request, *args, **kwargs):
        StoreFinanceService.delete_account(self.get_object())
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated, IsStoreManager])
def verify_bank_account(request, store_id, account_id):
    account = StoreFinanceService.get_bank_account(request.store_membership.store, account_id)
    return Response(BankAccountSerializer(StoreFinanceService.verify_account(account)).data)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated, IsStoreManager])
def bank_transaction(request, store_id, account_id):
    """Record a deposit from or withdrawal to a bank account."""
    store = request.store_membership.store
    account = StoreFinanceService.get_bank_account(store, account_id)
    serializer = BankTransactionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    entry = StoreFinanceService.record_bank_transaction(
        store,
        account,
        data["transaction_type"],
        data["amount"],
        description=data["description"],
        user=request.user,
    )
    return Response(FinancialTransactionSerializer(entry).data, status=status.HTTP_201_CREATED)


# Fund transfers


class FundTransferListCreateView(StoreContextMixin, generics.ListCreateAPIView):
    """
    GET: fund transfers sent or received by the store (query parameter ``status``).
    POST: ask to send money from this store to another (owners and managers).
    """

    serializer_class = FundTransferSerializer

    def get_permissions(self):
        if self.request.method == "POST":
            return [permissions.IsAuthenticated(), IsStoreManager()]
        return [permissions.IsAuthenticated(), IsStoreStaff()]

    def get_queryset(self):
        return StoreFinanceService.get_fund_transfer_requests(
            self.store, status=self.request.query_params.get("status")
        )

    def create(self, request, *args, **kwargs):
        serializer = FundTransferCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        transfer = StoreFinanceService.request_fund_transfer(
            self.store,
            get_store(data["to_store_id"]),
            data["currency"],
            data["amount"],
            data["reason"],
            request.user,
            notes=data["notes"],
        )
        return Response(FundTransferSerializer(transfer).data, status=status.HTTP_201_CREATED)


def _store_fund_transfer(store, transfer_id, side):
    """
    A fund transfer seen from one end: the receiving store ("to") reviews
    it, the requesting store ("from") may withdraw it.
    """
    transfer = StoreFinanceService.get_fund_transfer(transfer_id)
    if store.pk != {"from": transfer.from_store_id, "to": transfer.to_store_id}[side]:
        raise NotFoundError("Fund transfer request not found")
    return transfer


def _notes(request):
    serializer = FundTransferActionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data["notes"]


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated, IsStoreManager])
def approve_fund_transfer(request, store_id, transfer_id):
    """Approve a pending transfer; the money moves at once."""
    transfer = _store_fund_transfer(request.store_membership.store, transfer_id, "to")
    transfer = StoreFinanceService.approve_fund_transfer(transfer, request.user, _notes(request))
    return Response(FundTransferSerializer(transfer).data)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated, IsStoreManager])
def reject_fund_transfer(request, store_id, transfer_id):
    transfer = _store_fund_transfer(request.store_membership.store, transfer_id, "to")
    transfer = StoreFinanceService.reject_fund_transfer(transfer, request.user, _notes(request))
    return Response(FundTransferSerializer(transfer).data)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated, IsStoreManager])
def cancel_fund_transfer(request, store_id, transfer_id):
    transfer = _store_fund_transfer(request.store_membership.store, transfer_id, "from")
    transfer = StoreFinanceService.cancel_fund_transfer(transfer, request.user, _notes(request))
    return Response(FundTransferSerializer(transfer).data)
