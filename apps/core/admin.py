"""
Django admin configuration for users, stores and staff.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import Announcement, Store, StoreStaff, User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Admin interface for User model."""

    list_display = [
        "username",
        "email",
        "first_name",
        "last_name",
        "phone",
        "account_type",
        "is_active",
    ]

    list_filter = ["account_type", "is_active", "is_staff", "is_superuser"]

    search_fields = ["username", "email", "first_name", "last_name", "phone", "national_id"]

    readonly_fields = ["date_joined", "last_login"]

    fieldsets = (
        (None, {"fields": ("username", "password")}),
        (
            "Personal Information",
            {
                "fields": (
                    "first_name",
                    "last_name",
                    "email",
                    "phone",
                    "national_id",
                    "address",
                    "date_of_birth",
                )
            },
        ),
        ("Account", {"fields": ("account_type",)}),
        (
            "Permissions",
            {
                "fields": (
                    "is_active",
                    "is_staff",
                    "is_superuser",
                    "groups",
                    "user_permissions",
                ),
                "classes": ("collapse",),
            },
        ),
        (
            "Important Dates",
            {"fields": ("last_login", "date_joined"), "classes": ("collapse",)},
        ),
    )

    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": (
                    "username",
                    "password1",
                    "password2",
                    "email",
                    "first_name",
                    "last_name",
                    "phone",
                    "account_type",
                ),
            },
        ),
    )

    ordering = ["username"]


class StoreStaffInline(admin.TabularInline):
    """Inline admin for store memberships."""

    model = StoreStaff
    extra = 0
    fields = ["user", "role", "is_active", "created_at"]
    readonly_fields = ["created_at"]
    raw_id_fields = ["user"]


@admin.register(Store)
class StoreAdmin(admin.ModelAdmin):
    """Admin interface for Store model."""

    list_display = ["name", "city", "branch_code", "phone", "is_active", "created_at"]
    list_filter = ["is_active", "city"]
    search_fields = ["name", "city", "branch_code", "address"]
    readonly_fields = ["id", "created_at", "updated_at"]
    inlines = [StoreStaffInline]
    fieldsets = [
        (
            "Basic Information",
            {"fields": ["id", "name", "branch_code", "is_active"]},
        ),
        (
            "Location",
            {"fields": ["city", "address", "map_url", "phone", "working_hours"]},
        ),
        (
            "Timestamps",
            {"fields": ["created_at", "updated_at"], "classes": ["collapse"]},
        ),
    ]


@admin.register(StoreStaff)
class StoreStaffAdmin(admin.ModelAdmin):
    list_display = ["user", "store", "role", "is_active", "created_at"]
    list_filter = ["role", "is_active", "store"]
    search_fields = ["user__email", "user__phone", "user__first_name", "store__name"]
    raw_id_fields = ["user"]
    readonly_fields = ["id", "created_at", "updated_at"]

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("user", "store")


@admin.register(Announcement)
class AnnouncementAdmin(admin.ModelAdmin):
    list_display = ["title", "store", "visible_from", "visible_to", "is_active", "created_at"]
    list_filter = ["is_active", "store"]
    search_fields = ["title", "body"]
    readonly_fields = ["id", "created_by", "created_at", "updated_at"]
