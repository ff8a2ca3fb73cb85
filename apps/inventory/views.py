"""
Inventory API: catalogue, store stock, bar tracking and store-to-store
transfers.
"""

from rest_framework import generics, permissions, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from apps.core.exceptions import NotFoundError, PermissionDeniedError
from apps.core.mixins import StoreContextMixin
from apps.core.permissions import IsStoreManager, IsStoreStaff

from . import services
from .models import InventoryBar
from .serializers import (
    AddStockSerializer,
    BarStatusSerializer,
    InventoryBarSerializer,
    ProductSerializer,
    PublicStoreSerializer,
    StoreInventorySerializer,
    TransferActionSerializer,
    TransferCreateSerializer,
    TransferDetailSerializer,
    TransferListSerializer,
)


def _product(product_id):
    product = services.get_product_by_id(product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return product


def _store(store_id):
    store = services.get_store_by_id(store_id)
    if store is None:
        raise NotFoundError("Store not found")
    return store


# Catalogue


class ProductListView(generics.ListAPIView):
    """
    Active products.

    Query parameters:
    - type: gold or silver
    """

    serializer_class = ProductSerializer
    permission_classes = [permissions.AllowAny]
    pagination_class = None

    def get_queryset(self):
        queryset = services.get_products()
        metal = self.request.query_params.get("type")
        if metal:
            queryset = queryset.filter(type=metal)
        return queryset


@api_view(["GET"])
@permission_classes([permissions.AllowAny])
def product_detail(request, product_id):
    """A product with the units in stock at each store."""
    product = _product(product_id)
    data = ProductSerializer(product).data
    data["availability"] = {
        str(store_id): quantity
        for store_id, quantity in services.get_product_availability(product).items()
    }
    return Response(data)


class StoreListView(generics.ListAPIView):
    serializer_class = PublicStoreSerializer
    permission_classes = [permissions.AllowAny]
    pagination_class = None

    def get_queryset(self):
        return services.get_stores()


# Store stock


class StoreInventoryView(StoreContextMixin, generics.ListAPIView):
    """
    GET: products in stock at the store (staff).
    POST: add units of a product (owners and managers).
    """

    serializer_class = StoreInventorySerializer
    pagination_class = None

    def get_permissions(self):
        if self.request.method == "POST":
            return [permissions.IsAuthenticated(), IsStoreManager()]
        return [permissions.IsAuthenticated(), IsStoreStaff()]

    def get_queryset(self):
        return services.get_store_inventory(self.store)

    def post(self, request, *args, **kwargs):
        serializer = AddStockSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        product = _product(serializer.validated_data["product_id"])
        row = services.add_stock(self.store, product, serializer.validated_data["quantity"])
        return Response(StoreInventorySerializer(row).data, status=status.HTTP_201_CREATED)


# Bars


class StoreBarListView(StoreContextMixin, generics.GenericAPIView):
    """
    GET: every bar held or sold by the store, with buyer and sale details.
    POST: register a new bar (owners and managers).
    """

    serializer_class = InventoryBarSerializer

    def get_permissions(self):
        if self.request.method == "POST":
            return [permissions.IsAuthenticated(), IsStoreManager()]
        return [permissions.IsAuthenticated(), IsStoreStaff()]

    def get(self, request, *args, **kwargs):
        return Response(services.get_store_bars(self.store))

    def post(self, request, *args, **kwargs):
        serializer = InventoryBarSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        bar = services.create_bar(
            self.store,
            data.pop("product"),
            data.pop("serial_number"),
            data.pop("weight_grams"),
            data.pop("purity"),
            **data,
        )
        return Response(InventoryBarSerializer(bar).data, status=status.HTTP_201_CREATED)


@api_view(["GET", "PATCH"])
@permission_classes([permissions.IsAuthenticated, IsStoreStaff])
def bar_detail(request, store_id, serial_number):
    """Look a bar up by serial number; PATCH changes its stock status."""
    bar = services.get_bar_by_serial_number(serial_number)
    if bar is None or str(bar.store_id) != str(store_id):
        raise NotFoundError("Bar not found")

    if request.method == "PATCH":
        serializer = BarStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        if serializer.validated_data["status"] == InventoryBar.SOLD:
            raise PermissionDeniedError("Bars are marked sold by a sale")
        bar = services.update_bar_status(bar, serializer.validated_data["status"])

    return Response(InventoryBarSerializer(bar).data)


class MyBarsView(generics.ListAPIView):
    """Bars the current user bought over the counter."""

    serializer_class = InventoryBarSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        return services.get_user_bars(self.request.user)


# Inventory transfers


class TransferListCreateView(StoreContextMixin, generics.ListCreateAPIView):
    """
    Transfers leaving or arriving at the store.

    Query parameters:
    - status: requested, approved, rejected, in_transit, received or cancelled
    """

    serializer_class = TransferListSerializer
    permission_classes = [permissions.IsAuthenticated, IsStoreStaff]

    def get_queryset(self):
        return services.get_transfer_requests(
            self.store, status=self.request.query_params.get("status")
        )

    def create(self, request, *args, **kwargs):
        serializer = TransferCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if str(self.store.pk) not in (str(data["from_store_id"]), str(data["to_store_id"])):
            raise PermissionDeniedError("Transfers must involve your store")

        from_store = _store(data["from_store_id"])
        to_store = _store(data["to_store_id"])
        items = []
        for item in data["items"]:
            serial = item.get("serial_number") or ""
            bar = services.get_bar_by_serial_number(serial) if serial else None
            if serial and (bar is None or bar.store_id != from_store.pk):
                raise NotFoundError(f"Bar {serial} not found at the source store")
            items.append(
                {
                    "product": _product(item["product_id"]),
                    "quantity": item["quantity"],
                    "serial_number": serial,
                    "bar": bar,
                }
            )

        transfer = services.request_transfer(
            from_store, to_store, items, data["reason"], request.user, notes=data["notes"]
        )
        return Response(TransferDetailSerializer(transfer).data, status=status.HTTP_201_CREATED)


def _store_transfer(store, transfer_id, side=None):
    """
    A transfer involving the store.

    ``side`` restricts the store to the sending ("from") or receiving
    ("to") end.
    """
    transfer = services.get_transfer(transfer_id)
    sides = {"from": transfer.from_store_id, "to": transfer.to_store_id}
    allowed = [sides[side]] if side else list(sides.values())
    if store.pk not in allowed:
        raise NotFoundError("Transfer request not found")
    return transfer


def _action_data(request):
    serializer = TransferActionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated, IsStoreStaff])
def transfer_detail(request, store_id, transfer_id):
    transfer = _store_transfer(request.store_membership.store, transfer_id)
    return Response(TransferDetailSerializer(transfer).data)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated, IsStoreManager])
def approve_transfer(request, store_id, transfer_id):
    """Approve a requested transfer (sending store managers)."""
    transfer = _store_transfer(request.store_membership.store, transfer_id, side="from")
    transfer = services.approve_transfer(transfer, request.user, _action_data(request)["notes"])
    return Response(TransferDetailSerializer(transfer).data)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated, IsStoreManager])
def reject_transfer(request, store_id, transfer_id):
    transfer = _store_transfer(request.store_membership.store, transfer_id, side="from")
    transfer = services.reject_transfer(transfer, request.user, _action_data(request)["notes"])
    return Response(TransferDetailSerializer(transfer).data)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated, IsStoreStaff])
def ship_transfer(request, store_id, transfer_id):
    """Ship an approved transfer; stock leaves the sending store."""
    transfer = _store_transfer(request.store_membership.store, transfer_id, side="from")
    data = _action_data(request)
    transfer = services.ship_transfer(
        transfer, request.user, data["shipping_reference"], data["notes"]
    )
    return Response(TransferDetailSerializer(transfer).data)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated, IsStoreStaff])
def receive_transfer(request, store_id, transfer_id):
    """Receive a shipped transfer; stock arrives at the receiving store."""
    transfer = _store_transfer(request.store_membership.store, transfer_id, side="to")
    transfer = services.receive_transfer(transfer, request.user, _action_data(request)["notes"])
    return Response(TransferDetailSerializer(transfer).data)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated, IsStoreStaff])
def cancel_transfer(request, store_id, transfer_id):
    transfer = _store_transfer(request.store_membership.store, transfer_id)
    transfer = services.cancel_transfer(transfer, request.user, _action_data(request)["notes"])
    return Response(TransferDetailSerializer(transfer).data)
