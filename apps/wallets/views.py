"""
Customer wallet API: balances, statement, funding and transfers.
"""

from rest_framework import generics, permissions, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from apps.assets.services import get_asset_by_id
from apps.core.exceptions import NotFoundError
from apps.core.serializers import UserSummarySerializer

from . import services, transfers
from .serializers import (
    BalanceTransferSerializer,
    DigitalBalanceSerializer,
    DigitalTransferSerializer,
    OwnershipTransferSerializer,
    TransactionSerializer,
    WalletMovementSerializer,
    WalletSerializer,
)


class WalletListView(generics.ListAPIView):
    serializer_class = WalletSerializer
    permission_classes = [permissions.IsAuthenticated]
    pagination_class = None

    def get_queryset(self):
        return services.get_wallets(self.request.user)


class DigitalBalanceListView(generics.ListAPIView):
    """Digital metal holdings valued at the live price."""

    serializer_class = DigitalBalanceSerializer
    permission_classes = [permissions.IsAuthenticated]
    pagination_class = None

    def get_queryset(self):
        return services.get_digital_balances(self.request.user)


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated])
def transaction_list(request):
    """
    The user's statement, newest first.

    Query parameters:
    - limit: number of rows (default 50, max 200)
    """
    try:
        limit = min(max(int(request.query_params.get("limit", 50)), 1), 200)
    except ValueError:
        limit = 50
    rows = services.get_transactions(request.user, limit=limit)
    return Response(TransactionSerializer(rows, many=True).data)


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated])
def wallet_summary(request):
    """Total holdings in LYD: Dinar wallet plus digital metal at live prices."""
    return Response({"total_balance_lyd": str(services.total_balance_lyd(request.user))})


def _movement(request, operation):
    serializer = WalletMovementSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    receipt = operation(request.user, data["currency"], data["amount"], data["method"])
    return Response({"receipt": receipt.to_dict()}, status=status.HTTP_201_CREATED)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated])
def deposit(request):
    return _movement(request, services.deposit_to_wallet)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated])
def withdraw(request):
    return _movement(request, services.withdraw_from_wallet)


def _transfer_response(result):
    data = {
        "reference": result.reference,
        "recipient": UserSummarySerializer(result.recipient).data,
        "receipt": result.receipt.to_dict(),
    }
    if result.shared_bar_serial:
        data["shared_bar_serial"] = result.shared_bar_serial
    if result.asset_transfer is not None:
        data["asset_transfer"] = {
            "id": str(result.asset_transfer.pk),
            "status": result.asset_transfer.status,
            "transaction_hash": result.asset_transfer.transaction_hash,
        }
    return Response(data, status=status.HTTP_201_CREATED)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated])
def transfer_digital(request):
    """Send digital grams to another customer by email or phone."""
    serializer = DigitalTransferSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    result = transfers.transfer_digital_grams(
        request.user, data["recipient"], data["metal_type"], data["grams"]
    )
    return _transfer_response(result)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated])
def transfer_balance(request):
    """Send LYD or USD to another customer's wallet."""
    serializer = BalanceTransferSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    result = transfers.transfer_wallet_balance(
        request.user, data["recipient"], data["currency"], data["amount"]
    )
    return _transfer_response(result)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated])
def transfer_ownership(request):
    """Give an owned asset to another customer."""
    serializer = OwnershipTransferSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    asset = get_asset_by_id(data["asset_id"])
    if asset is None or asset.user_id != request.user.pk:
        raise NotFoundError("Asset not found")

    result = transfers.transfer_asset_ownership(request.user, data["recipient"], asset)
    return _transfer_response(result)
