"""
Asset API.

Customer endpoints cover purchases, owned assets, invoices, pickup
appointments and location changes. Store endpoints (``stores/<store_id>/``)
cover the pickup counter and location change approvals.
"""

from rest_framework import generics, permissions, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from apps.core.exceptions import InvalidStateError, NotFoundError
from apps.core.mixins import StoreContextMixin
from apps.core.permissions import IsStoreManager, IsStoreStaff
from apps.core.services import get_store
from apps.core.views import query_date
from apps.inventory.services import get_product_by_id

from . import services
from .models import PickupAppointment
from .serializers import (
    AppointmentCreateSerializer,
    AppointmentStatusSerializer,
    AssetTransferSerializer,
    ConvertSerializer,
    HandoverSerializer,
    LocationChangeCreateSerializer,
    LocationChangeRequestSerializer,
    OwnedAssetSerializer,
    PickupAppointmentSerializer,
    PickupLogSerializer,
    PurchaseInvoiceSerializer,
    PurchaseSerializer,
    ResolutionSerializer,
    StoreAppointmentSerializer,
)


def _owned_asset(request, asset_id):
    asset = services.get_asset_by_id(asset_id)
    if asset is None or asset.user_id != request.user.pk:
        raise NotFoundError("Asset not found")
    return asset


def _own_appointment(request, appointment_id):
    appointment = services.get_appointment_by_id(appointment_id)
    if appointment is None or appointment.user_id != request.user.pk:
        raise NotFoundError("Appointment not found")
    return appointment


# Owned assets


class OwnedAssetListView(generics.ListAPIView):
    """
    The user's physical assets.

    Query parameters:
    - status: not_received, received or transferred
    """

    serializer_class = OwnedAssetSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        return services.get_owned_assets(
            self.request.user, status=self.request.query_params.get("status")
        )


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated])
def asset_detail(request, asset_id):
    asset = _owned_asset(request, asset_id)
    data = OwnedAssetSerializer(asset).data
    appointment = services.get_appointment_by_asset(asset)
    data["appointment"] = PickupAppointmentSerializer(appointment).data if appointment else None
    return Response(data)


class AssetTransferListView(generics.ListAPIView):
    """Ownership transfers the user sent or received."""

    serializer_class = AssetTransferSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        return services.get_asset_transfers(self.request.user)


# Purchases


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated])
def purchase(request):
    """
    Buy a product as a physical item or as digital grams.

    Body:
    - product_id, payment_method
    - store_id: pickup store (physical)
    - is_digital, grams (digital)
    - coupon_code: required for coupon payments, optional otherwise
    """
    serializer = PurchaseSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    product = get_product_by_id(data["product_id"])
    if product is None or not product.is_active:
        raise NotFoundError("Product not found")
    store = get_store(data["store_id"]) if data.get("store_id") else None

    invoice, receipt = services.purchase_product(
        request.user,
        product,
        data["payment_method"],
        store=store,
        is_digital=data["is_digital"],
        grams=data.get("grams"),
        coupon_code=data.get("coupon_code") or None,
    )
    return Response(
        {"invoice": PurchaseInvoiceSerializer(invoice).data, "receipt": receipt.to_dict()},
        status=status.HTTP_201_CREATED,
    )


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated])
def convert_to_physical(request):
    """Fabricate a bar from digital grams, collected at the chosen store."""
    serializer = ConvertSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    store = get_store(data["store_id"])
    asset, receipt = services.convert_digital_to_physical(
        request.user, data["metal_type"], data["grams"], store
    )
    return Response(
        {"asset": OwnedAssetSerializer(asset).data, "receipt": receipt.to_dict()},
        status=status.HTTP_201_CREATED,
    )


class InvoiceListView(generics.ListAPIView):
    serializer_class = PurchaseInvoiceSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        return services.get_user_invoices(self.request.user)


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated])
def invoice_detail(request, invoice_id):
    invoice = services.get_invoice_by_id(invoice_id)
    if invoice is None or invoice.user_id != request.user.pk:
        raise NotFoundError("Invoice not found")
    return Response(PurchaseInvoiceSerializer(invoice).data)


# Appointments


class AppointmentListCreateView(generics.ListCreateAPIView):
    serializer_class = PickupAppointmentSerializer
    permission_classes = [permissions.IsAuthenticated]
    pagination_class = None

    def get_queryset(self):
        return services.get_appointments(self.request.user)

    def create(self, request, *args, **kwargs):
        serializer = AppointmentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        asset = _owned_asset(request, data["asset_id"])
        if data.get("store_id"):
            store = get_store(data["store_id"])
        elif asset.pickup_store_id:
            store = asset.pickup_store
        else:
            raise NotFoundError("Store not found")

        appointment = services.create_appointment(
            request.user,
            asset,
            store,
            data["appointment_date"],
            data["appointment_time"],
            notes=data["notes"],
        )
        return Response(
            PickupAppointmentSerializer(appointment).data, status=status.HTTP_201_CREATED
        )


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated])
def appointment_detail(request, appointment_id):
    return Response(PickupAppointmentSerializer(_own_appointment(request, appointment_id)).data)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated])
def cancel_appointment(request, appointment_id):
    appointment = _own_appointment(request, appointment_id)
    services.cancel_appointment(appointment, request.data.get("reason", ""))
    return Response(PickupAppointmentSerializer(appointment).data)


# Location changes


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated])
def request_location_change(request, asset_id):
    """Ask to collect an asset at another store."""
    asset = _owned_asset(request, asset_id)
    serializer = LocationChangeCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    to_store = get_store(serializer.validated_data["to_store_id"])
    location_request = services.request_location_change(
        request.user, asset, to_store, serializer.validated_data["reason"]
    )
    return Response(
        LocationChangeRequestSerializer(location_request).data, status=status.HTTP_201_CREATED
    )


# Store counter


class StoreAppointmentListView(StoreContextMixin, generics.ListAPIView):
    """
    A store's pickup appointments.

    Query parameters:
    - date: YYYY-MM-DD (all dates when omitted)
    """

    serializer_class = StoreAppointmentSerializer
    permission_classes = [permissions.IsAuthenticated, IsStoreStaff]

    def get_queryset(self):
        return services.get_store_appointments(self.store, query_date(self.request, "date"))


def _store_appointment(store, appointment_id):
    appointment = PickupAppointment.objects.filter(store=store, pk=appointment_id).first()
    if appointment is None:
        raise NotFoundError("Appointment not found")
    return appointment


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated, IsStoreStaff])
def lookup_appointment(request, store_id):
    """
    Find an appointment from its scanned QR code.

    Query parameters:
    - qr: the scanned payload, or the appointment number
    """
    qr_data = request.query_params.get("qr", "")
    if not qr_data.strip():
        raise ValidationError({"qr": "Scan a QR code or enter an appointment number."})
    appointment = services.find_appointment_by_qr(request.store_membership.store, qr_data)
    return Response(StoreAppointmentSerializer(appointment).data)


class PickupLogListView(StoreContextMixin, generics.ListAPIView):
    """Handover records of a store, newest first."""

    serializer_class = PickupLogSerializer
    permission_classes = [permissions.IsAuthenticated, IsStoreManager]

    def get_queryset(self):
        return services.get_pickup_logs(self.store)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated, IsStoreStaff])
def update_appointment_status(request, store_id, appointment_id):
    """Confirm, cancel or mark an appointment as a no-show."""
    appointment = _store_appointment(request.store_membership.store, appointment_id)
    serializer = AppointmentStatusSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    if data["status"] == PickupAppointment.COMPLETED:
        raise InvalidStateError("Use the handover endpoint to complete a pickup")
    services.update_appointment_status(appointment, data["status"], data["reason"])
    return Response(StoreAppointmentSerializer(appointment).data)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated, IsStoreStaff])
def handover(request, store_id, appointment_id):
    """
    Hand an asset over after checking the customer's PIN.

    Body:
    - pin: 6-digit PIN from the appointment
    - storage_fee: fee collected (computed from the deadline when omitted)
    - payment_method: cash or wallet_dinar
    - notes: verification notes
    - id_photo, customer_photo: images taken at the counter (multipart)
    """
    store = request.store_membership.store
    appointment = _store_appointment(store, appointment_id)
    serializer = HandoverSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    appointment = services.handover_asset(
        store,
        appointment,
        data["pin"],
        request.user,
        storage_fee=data.get("storage_fee"),
        payment_method=data["payment_method"],
        notes=data["notes"],
        id_photo=data.get("id_photo"),
        customer_photo=data.get("customer_photo"),
    )
    return Response(StoreAppointmentSerializer(appointment).data)


class LocationRequestListView(StoreContextMixin, generics.ListAPIView):
    """
    Location change requests leaving or arriving at the store.

    Query parameters:
    - status: pending, approved, rejected or moved
    """

    serializer_class = LocationChangeRequestSerializer
    permission_classes = [permissions.IsAuthenticated, IsStoreStaff]

    def get_queryset(self):
        return services.get_location_requests(
            self.store, status=self.request.query_params.get("status")
        )


def _store_location_request(store, request_id, side=None):
    location_request = services.get_location_request(request_id)
    sides = {"from": location_request.from_store_id, "to": location_request.to_store_id}
    allowed = [sides[side]] if side else list(sides.values())
    if store.pk not in allowed:
        raise NotFoundError("Location change request not found")
    return location_request


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated, IsStoreManager])
def approve_location_change(request, store_id, request_id):
    location_request = _store_location_request(request.store_membership.store, request_id)
    serializer = ResolutionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    location_request = services.approve_location_change(
        location_request, request.user, serializer.validated_data["notes"]
    )
    return Response(LocationChangeRequestSerializer(location_request).data)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated, IsStoreManager])
def reject_location_change(request, store_id, request_id):
    location_request = _store_location_request(request.store_membership.store, request_id)
    serializer = ResolutionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    location_request = services.reject_location_change(
        location_request, request.user, serializer.validated_data["notes"]
    )
    return Response(LocationChangeRequestSerializer(location_request).data)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated, IsStoreManager])
def complete_location_change(request, store_id, request_id):
    """Move an approved asset to its new store and charge the owner."""
    location_request = _store_location_request(request.store_membership.store, request_id, "to")
    location_request, receipt = services.complete_move(location_request)
    return Response(
        {
            "request": LocationChangeRequestSerializer(location_request).data,
            "receipt": receipt.to_dict(),
        }
    )
