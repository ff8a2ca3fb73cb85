"""
Sales API: POS, marketplace, cash drawer and receipt rendering.
"""

import logging

from django.contrib.auth import get_user_model
from django.http import HttpResponse
from django.utils import timezone

from rest_framework import generics, permissions, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from apps.core.exceptions import NotFoundError
from apps.core.mixins import StoreContextMixin
from apps.core.permissions import IsStoreManager, IsStoreStaff
from apps.core.services import get_store
from apps.core.views import query_date

from . import services
from .models import MarketplaceOrder, PosSale
from .receipt_service import ReceiptGenerator, generate_share_text, receipt_filename
from .receipts import TransactionReceiptData
from .serializers import (
    CashMovementCreateSerializer,
    CashMovementSerializer,
    DrawerAmountSerializer,
    DrawerSummarySerializer,
    MarketplaceItemSerializer,
    MarketplaceOrderSerializer,
    OrderCreateSerializer,
    OrderStatusSerializer,
    PosSaleSerializer,
    SaleCreateSerializer,
)

logger = logging.getLogger(__name__)

User = get_user_model()


# POS


class SaleListCreateView(StoreContextMixin, generics.ListCreateAPIView):
    """
    GET: the store's sales (query parameter ``date``, YYYY-MM-DD).
    POST: ring up a sale from store inventory.
    """

    serializer_class = PosSaleSerializer
    permission_classes = [permissions.IsAuthenticated, IsStoreStaff]

    def get_queryset(self):
        return services.get_sales(self.store, query_date(self.request, "date"))

    def create(self, request, *args, **kwargs):
        serializer = SaleCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        customer = None
        if data.get("customer_id"):
            customer = User.objects.filter(pk=data["customer_id"]).first()
            if customer is None:
                raise NotFoundError("Customer not found")

        items = [
            {
                "inventory": line["inventory_id"],
                "quantity": line["quantity"],
                "unit_price_lyd": line.get("unit_price_lyd"),
            }
            for line in data["items"]
        ]
        sale = services.process_inventory_sale(
            self.store,
            request.user,
            customer,
            items,
            notes=data["notes"],
            payment_method=data["payment_method"],
            discount=data["discount"],
        )
        return Response(PosSaleSerializer(sale).data, status=status.HTTP_201_CREATED)


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated, IsStoreStaff])
def sale_detail(request, store_id, sale_id):
    sale = PosSale.objects.filter(store_id=store_id, pk=sale_id).first()
    if sale is None:
        raise NotFoundError("Sale not found")
    return Response(PosSaleSerializer(sale).data)


# Marketplace


class MarketplaceItemListView(generics.ListAPIView):
    """
    Items offered on the marketplace, featured first.

    Query parameters:
    - store: store id
    - featured: true to list featured items only
    """

    serializer_class = MarketplaceItemSerializer
    permission_classes = [permissions.AllowAny]

    def get_queryset(self):
        store_id = self.request.query_params.get("store")
        featured = self.request.query_params.get("featured", "").lower() in ("true", "1", "yes")
        store = get_store(store_id) if store_id else None
        return services.get_marketplace_items(store=store, featured=featured)


@api_view(["GET"])
@permission_classes([permissions.AllowAny])
def marketplace_item_detail(request, item_id):
    return Response(MarketplaceItemSerializer(services.get_item_by_id(item_id)).data)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated])
def place_order(request, item_id):
    """Order a marketplace item; the order is fulfilled at once."""
    item = services.get_item_by_id(item_id)
    serializer = OrderCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    order = services.create_order(
        request.user,
        item,
        data["quantity"],
        data["payment_method"],
        data["delivery_method"],
        notes=data["notes"],
    )
    return Response(MarketplaceOrderSerializer(order).data, status=status.HTTP_201_CREATED)


class MyOrderListView(generics.ListAPIView):
    serializer_class = MarketplaceOrderSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        return services.get_user_orders(self.request.user)


class StoreOrderListView(StoreContextMixin, generics.ListAPIView):
    serializer_class = MarketplaceOrderSerializer
    permission_classes = [permissions.IsAuthenticated, IsStoreStaff]

    def get_queryset(self):
        return services.get_store_orders(self.store)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated, IsStoreManager])
def update_order_status(request, store_id, order_id):
    order = MarketplaceOrder.objects.filter(store_id=store_id, pk=order_id).first()
    if order is None:
        raise NotFoundError("Order not found")
    serializer = OrderStatusSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    order = services.update_order_status(order, serializer.validated_data["order_status"])
    return Response(MarketplaceOrderSerializer(order).data)


# Cash drawer


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated, IsStoreStaff])
def drawer_summary(request, store_id):
    """
    Reconciliation of a day's drawer.

    Query parameters:
    - date: YYYY-MM-DD (default: today)
    """
    store = request.store_membership.store
    summary = services.get_drawer_summary(store, query_date(request, "date"))
    if summary["variance"] is not None:
        summary["message"] = services.variance_message(summary["variance"])
    return Response(DrawerSummarySerializer(summary).data)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated, IsStoreStaff])
def open_drawer(request, store_id):
    serializer = DrawerAmountSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    movement = services.open_drawer(
        request.store_membership.store,
        request.user,
        serializer.validated_data["amount"],
        notes=serializer.validated_data["notes"],
    )
    return Response(CashMovementSerializer(movement).data, status=status.HTTP_201_CREATED)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated, IsStoreStaff])
def close_drawer(request, store_id):
    """Close today's drawer with the counted cash and report the variance."""
    serializer = DrawerAmountSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    movement, summary = services.close_drawer(
        request.store_membership.store,
        request.user,
        serializer.validated_data["amount"],
        notes=serializer.validated_data["notes"],
    )
    return Response(
        {
            "movement": CashMovementSerializer(movement).data,
            "summary": DrawerSummarySerializer(summary).data,
        }
    )


class CashMovementListCreateView(StoreContextMixin, generics.ListCreateAPIView):
    """
    GET: drawer movements of a day (query parameter ``date``, default today).
    POST: record cash in or out.
    """

    serializer_class = CashMovementSerializer
    permission_classes = [permissions.IsAuthenticated, IsStoreStaff]
    pagination_class = None

    def get_queryset(self):
        return services.get_cash_movements(
            self.store, query_date(self.request, "date", timezone.localdate())
        )

    def create(self, request, *args, **kwargs):
        serializer = CashMovementCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        movement = services.record_cash_movement(
            self.store, request.user, data["movement_type"], data["amount"], data["notes"]
        )
        return Response(CashMovementSerializer(movement).data, status=status.HTTP_201_CREATED)


# Receipts


def _receipt_from_request(request):
    try:
        return TransactionReceiptData.from_dict(request.data)
    except ValueError as e:
        raise ValidationError({"receipt": str(e)})


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated])
def receipt_pdf(request):
    """
    Render a receipt (camelCase JSON as returned by the transaction
    endpoints) to a PDF download.
    """
    receipt = _receipt_from_request(request)
    pdf_bytes = ReceiptGenerator(receipt).generate_pdf_receipt()

    response = HttpResponse(pdf_bytes, content_type="application/pdf")
    response["Content-Disposition"] = f'attachment; filename="{receipt_filename(receipt)}"'
    logger.info(f"Receipt PDF rendered for {receipt.transaction_id}")
    return response


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated])
def receipt_share_text(request):
    receipt = _receipt_from_request(request)
    return Response({"text": generate_share_text(receipt)})
