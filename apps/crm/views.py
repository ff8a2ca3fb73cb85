"""
CRM API: coupon validation for customers, coupon management for stores and
the store customer desk.
"""

from django.contrib.auth import get_user_model

from rest_framework import generics, permissions, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from apps.core.exceptions import NotFoundError
from apps.core.mixins import StoreContextMixin
from apps.core.permissions import IsStoreManager, IsStoreStaff
from apps.core.services import get_store

from . import services
from .serializers import (
    AvailableCouponSerializer,
    CouponSerializer,
    CouponUsageSerializer,
    CouponValidateSerializer,
    CustomerNoteSerializer,
    CustomerSearchResultSerializer,
)

User = get_user_model()


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated])
def validate_coupon(request):
    """
    Check a coupon against a purchase.

    Always answers 200; ``valid`` says whether the coupon applies and
    ``error`` says why not.
    """
    serializer = CouponValidateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    store = get_store(data["store_id"]) if data.get("store_id") else None
    result = services.validate_coupon(
        data["code"],
        data["amount"],
        currency=data["currency"],
        store=store,
        payment_method=data.get("payment_method"),
    )
    return Response(
        {
            "valid": result.valid,
            "error": result.error,
            "discount_amount": str(result.discount_amount) if result.valid else None,
            "final_amount": str(result.final_amount) if result.valid else None,
        }
    )


class AvailableCouponListView(generics.ListAPIView):
    serializer_class = AvailableCouponSerializer
    permission_classes = [permissions.IsAuthenticated]
    pagination_class = None

    def get_queryset(self):
        return services.get_available_coupons().select_related("store")


class MyCouponUsageView(generics.ListAPIView):
    serializer_class = CouponUsageSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        return services.get_user_coupon_usage(self.request.user)


# Store coupons


class StoreCouponListCreateView(StoreContextMixin, generics.ListCreateAPIView):
    serializer_class = CouponSerializer
    permission_classes = [permissions.IsAuthenticated, IsStoreManager]

    def get_queryset(self):
        return services.get_coupons(self.store)

    def perform_create(self, serializer):
        serializer.instance = services.create_coupon(
            self.store, self.request.user, **serializer.validated_data
        )


class StoreCouponDetailView(StoreContextMixin, generics.RetrieveUpdateAPIView):
    """Read or edit a store coupon; coupons are retired by clearing ``is_active``."""

    serializer_class = CouponSerializer
    permission_classes = [permissions.IsAuthenticated, IsStoreManager]
    http_method_names = ["get", "patch"]

    def get_object(self):
        return services.get_coupon(self.store, self.kwargs["coupon_id"])

    def perform_update(self, serializer):
        serializer.instance = services.update_coupon(
            serializer.instance, **serializer.validated_data
        )


# Customer desk


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated, IsStoreStaff])
def search_customers(request, store_id):
    """
    Query parameters:
    - q: name, email, phone or national id
    """
    customers = services.search_customer(
        request.store_membership.store, request.query_params.get("q", "")
    )
    return Response(CustomerSearchResultSerializer(customers, many=True).data)


class CustomerNoteListCreateView(StoreContextMixin, generics.ListCreateAPIView):
    serializer_class = CustomerNoteSerializer
    permission_classes = [permissions.IsAuthenticated, IsStoreStaff]
    pagination_class = None

    def get_customer(self):
        customer = User.objects.filter(pk=self.kwargs["customer_id"]).first()
        if customer is None:
            raise NotFoundError("Customer not found")
        return customer

    def get_queryset(self):
        return services.get_customer_notes(self.store, self.get_customer())

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        note = services.add_customer_note(
            self.store,
            self.get_customer(),
            request.user,
            serializer.validated_data["body"],
            is_internal=serializer.validated_data.get("is_internal", True),
        )
        return Response(CustomerNoteSerializer(note).data, status=status.HTTP_201_CREATED)
