"""
API views for accounts, profiles, store staff and announcements.
"""

from datetime import datetime, time, timedelta

from django.utils import timezone
from django.utils.dateparse import parse_date

from rest_framework import generics, permissions, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework_simplejwt.views import TokenObtainPairView

from apps.core import services
from apps.core.exceptions import NotFoundError, RecipientNotFoundError
from apps.core.mixins import StoreContextMixin
from apps.core.permissions import IsStoreManager, IsStoreStaff

from .models import Announcement, StoreStaff
from .serializers import (
    AnnouncementSerializer,
    CustomTokenObtainPairSerializer,
    StaffCreateSerializer,
    StaffUpdateSerializer,
    StoreStaffSerializer,
    UserRegistrationSerializer,
    UserSerializer,
    UserSummarySerializer,
)


def query_date(request, name, default=None):
    """Parse a YYYY-MM-DD query parameter."""
    value = request.query_params.get(name)
    if not value:
        return default
    parsed = parse_date(value)
    if parsed is None:
        raise ValidationError({name: "Use the YYYY-MM-DD format."})
    return parsed


def day_start(day):
    return timezone.make_aware(datetime.combine(day, time.min))


def day_end(day):
    return timezone.make_aware(datetime.combine(day, time.max))


class CustomTokenObtainPairView(TokenObtainPairView):
    """Login endpoint returning JWT tokens and the user's profile."""

    serializer_class = CustomTokenObtainPairSerializer


class RegisterView(generics.CreateAPIView):
    serializer_class = UserRegistrationSerializer
    permission_classes = [permissions.AllowAny]


class ProfileView(generics.RetrieveUpdateAPIView):
    """Current user's profile."""

    serializer_class = UserSerializer
    permission_classes = [permissions.IsAuthenticated]
    http_method_names = ["get", "patch"]

    def get_object(self):
        return self.request.user


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated])
def search_profiles(request):
    """
    Exact profile lookup by email or phone, used to confirm transfer recipients.

    Query parameters:
    - q: email or phone
    """
    matches = services.search_profiles_exact(request.query_params.get("q", ""))
    if not matches:
        raise RecipientNotFoundError()
    return Response(UserSummarySerializer(matches, many=True).data)


class MyStoresView(generics.ListAPIView):
    """Stores the current user works at."""

    serializer_class = StoreStaffSerializer
    permission_classes = [permissions.IsAuthenticated]
    pagination_class = None

    def get_queryset(self):
        return services.get_user_stores(self.request.user)


# Staff


class StaffListCreateView(StoreContextMixin, generics.ListCreateAPIView):
    """
    List a store's staff (any member) or add a member (owners and managers).
    """

    serializer_class = StoreStaffSerializer
    pagination_class = None

    def get_permissions(self):
        if self.request.method == "POST":
            return [permissions.IsAuthenticated(), IsStoreManager()]
        return [permissions.IsAuthenticated(), IsStoreStaff()]

    def get_queryset(self):
        return services.get_staff_members(self.store)

    def create(self, request, *args, **kwargs):
        serializer = StaffCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = services.find_user_by_email_or_phone(serializer.validated_data["identifier"])
        if user is None:
            raise NotFoundError("User not found")

        staff = services.add_staff_member(
            self.store,
            user,
            role=serializer.validated_data["role"],
            permissions=serializer.validated_data.get("permissions"),
        )
        return Response(StoreStaffSerializer(staff).data, status=status.HTTP_201_CREATED)


class StaffDetailView(StoreContextMixin, generics.GenericAPIView):
    """Change a member's role or status, or remove them (owners and managers)."""

    permission_classes = [permissions.IsAuthenticated, IsStoreManager]

    def get_object(self):
        staff = StoreStaff.objects.filter(store=self.store, pk=self.kwargs["staff_id"]).first()
        if staff is None:
            raise NotFoundError("Staff member not found")
        return staff

    def patch(self, request, *args, **kwargs):
        staff = self.get_object()
        serializer = StaffUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if "role" in data or "permissions" in data:
            services.update_staff_role(staff, data.get("role", staff.role), data.get("permissions"))
        if "is_active" in data:
            services.toggle_staff_active(staff, data["is_active"])
        return Response(StoreStaffSerializer(staff).data)

    def delete(self, request, *args, **kwargs):
        services.remove_staff_member(self.get_object())
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated, IsStoreStaff])
def staff_activity(request, store_id, staff_id):
    """
    POS sales rung up by a staff member.

    Query parameters:
    - from, to: YYYY-MM-DD (default: last 30 days)
    """
    staff = (
        StoreStaff.objects.filter(store_id=store_id, pk=staff_id).select_related("user").first()
    )
    if staff is None:
        raise NotFoundError("Staff member not found")

    today = timezone.localdate()
    date_from = query_date(request, "from", today - timedelta(days=30))
    date_to = query_date(request, "to", today)
    sales = services.get_staff_activity(
        staff.user, staff.store, day_start(date_from), day_end(date_to)
    )

    return Response(
        [
            {
                "id": str(sale.id),
                "sale_number": sale.sale_number,
                "total_lyd": str(sale.total_lyd),
                "payment_method": sale.payment_method,
                "items": sum(item.quantity for item in sale.items.all()),
                "created_at": sale.created_at.isoformat(),
            }
            for sale in sales
        ]
    )


# Announcements


class AnnouncementListCreateView(StoreContextMixin, generics.ListCreateAPIView):
    serializer_class = AnnouncementSerializer

    def get_permissions(self):
        if self.request.method == "POST":
            return [permissions.IsAuthenticated(), IsStoreManager()]
        return [permissions.IsAuthenticated(), IsStoreStaff()]

    def get_queryset(self):
        return services.get_announcements(self.store)

    def perform_create(self, serializer):
        data = serializer.validated_data
        serializer.instance = services.create_announcement(
            self.store,
            self.request.user,
            data["title"],
            data["body"],
            visible_from=data.get("visible_from"),
            visible_to=data.get("visible_to"),
        )


class AnnouncementDetailView(StoreContextMixin, generics.RetrieveUpdateDestroyAPIView):
    serializer_class = AnnouncementSerializer
    permission_classes = [permissions.IsAuthenticated, IsStoreManager]
    lookup_url_kwarg = "announcement_id"
    http_method_names = ["get", "patch", "delete"]

    def get_queryset(self):
        return Announcement.objects.filter(store=self.store)

    def perform_update(self, serializer):
        services.update_announcement(serializer.instance, **serializer.validated_data)

    def perform_destroy(self, instance):
        services.delete_announcement(instance)


class ActiveAnnouncementsView(generics.ListAPIView):
    """Announcements a store currently shows to customers."""

    serializer_class = AnnouncementSerializer
    permission_classes = [permissions.IsAuthenticated]
    pagination_class = None

    def get_queryset(self):
        store = services.get_store(self.kwargs["store_id"])
        return services.get_active_announcements(store)
