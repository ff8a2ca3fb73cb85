"""
Core models for the gold trading storefront.
"""

import uuid

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models import Q
from django.utils import timezone


class User(AbstractUser):
    """
    Extended user model carrying the customer profile.

    Every person on the platform is a User; store employees are linked to
    their stores through StoreStaff memberships.
    """

    INDIVIDUAL = "individual"
    STORE = "store"

    ACCOUNT_TYPE_CHOICES = [
        (INDIVIDUAL, "Individual"),
        (STORE, "Store"),
    ]

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the user",
    )

    phone = models.CharField(
        max_length=20,
        blank=True,
        help_text="User's phone number",
    )

    national_id = models.CharField(
        max_length=50,
        blank=True,
        help_text="National identity number",
    )

    address = models.TextField(blank=True, help_text="Postal address")

    date_of_birth = models.DateField(null=True, blank=True, help_text="Date of birth")

    account_type = models.CharField(
        max_length=20,
        choices=ACCOUNT_TYPE_CHOICES,
        default=INDIVIDUAL,
        help_text="Whether this account belongs to an individual or a store",
    )

    class Meta:
        db_table = "users"
        ordering = ["username"]
        verbose_name = "User"
        verbose_name_plural = "Users"
        indexes = [
            models.Index(fields=["email"], name="user_email_idx"),
            models.Index(fields=["phone"], name="user_phone_idx"),
        ]

    def __str__(self):
        return self.get_full_name() or self.username

    @property
    def display_name(self):
        """Full name, falling back to the email or username."""
        return self.get_full_name() or self.email or self.username

    def is_store_account(self):
        return self.account_type == self.STORE


class Store(models.Model):
    """
    A physical store branch where customers pick up and buy metal.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the store",
    )

    name = models.CharField(max_length=255, help_text="Store name")

    city = models.CharField(max_length=100, blank=True, help_text="City the store is located in")

    address = models.TextField(blank=True, help_text="Store address")

    phone = models.CharField(max_length=20, blank=True, help_text="Store phone number")

    map_url = models.URLField(blank=True, help_text="Link to the store location on a map")

    branch_code = models.CharField(
        max_length=20,
        blank=True,
        help_text="Short branch code used on documents",
    )

    working_hours = models.JSONField(
        default=dict,
        blank=True,
        help_text="Opening hours (e.g., {'saturday': '9:00-18:00', ...})",
    )

    is_active = models.BooleanField(default=True, help_text="Whether the store is active")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "stores"
        ordering = ["name"]
        verbose_name = "Store"
        verbose_name_plural = "Stores"
        indexes = [
            models.Index(fields=["is_active"], name="store_active_idx"),
        ]

    def __str__(self):
        if self.city:
            return f"{self.name} ({self.city})"
        return self.name

    def get_owner_staff(self):
        """Return the active owner membership of this store, if any."""
        return (
            self.staff_members.filter(role=StoreStaff.OWNER, is_active=True)
            .select_related("user")
            .first()
        )


class StoreStaff(models.Model):
    """
    Membership of a user in a store with a role.

    Owners and managers may approve transfers, manage staff and verify
    bank accounts; clerks run the counter.
    """

    OWNER = "owner"
    MANAGER = "manager"
    CLERK = "clerk"

    ROLE_CHOICES = [
        (OWNER, "Owner"),
        (MANAGER, "Manager"),
        (CLERK, "Clerk"),
    ]

    MANAGER_ROLES = (OWNER, MANAGER)

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the membership",
    )

    store = models.ForeignKey(
        Store,
        on_delete=models.CASCADE,
        related_name="staff_members",
        help_text="Store the user works at",
    )

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="store_memberships",
        help_text="Staff user",
    )

    role = models.CharField(
        max_length=20,
        choices=ROLE_CHOICES,
        default=CLERK,
        help_text="Role of the user in the store",
    )

    permissions = models.JSONField(
        default=dict,
        blank=True,
        help_text="Fine-grained permission flags (e.g., {'can_refund': true})",
    )

    is_active = models.BooleanField(default=True, help_text="Whether the membership is active")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "store_staff"
        ordering = ["store", "role", "created_at"]
        verbose_name = "Store Staff"
        verbose_name_plural = "Store Staff"
        unique_together = [["store", "user"]]
        indexes = [
            models.Index(fields=["user", "is_active"], name="staff_user_active_idx"),
        ]

    def __str__(self):
        return f"{self.user} - {self.get_role_display()} @ {self.store.name}"

    def can_manage(self):
        """Check if this member can approve and administer store operations."""
        return self.is_active and self.role in self.MANAGER_ROLES


class AnnouncementQuerySet(models.QuerySet):
    def active(self, now=None):
        """Announcements that are switched on and inside their visibility window."""
        now = now or timezone.now()
        return self.filter(is_active=True).filter(
            Q(visible_from__isnull=True) | Q(visible_from__lte=now),
            Q(visible_to__isnull=True) | Q(visible_to__gte=now),
        )


class Announcement(models.Model):
    """
    A notice a store publishes to its customers.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    store = models.ForeignKey(
        Store,
        on_delete=models.CASCADE,
        related_name="announcements",
        help_text="Store publishing the announcement",
    )

    title = models.CharField(max_length=255, help_text="Announcement title")

    body = models.TextField(help_text="Announcement text")

    visible_from = models.DateTimeField(null=True, blank=True, help_text="Start of visibility")

    visible_to = models.DateTimeField(null=True, blank=True, help_text="End of visibility")

    is_active = models.BooleanField(default=True, help_text="Whether the announcement is shown")

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="announcements_created",
        help_text="Staff user who wrote the announcement",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = AnnouncementQuerySet.as_manager()

    class Meta:
        db_table = "store_announcements"
        ordering = ["-created_at"]
        verbose_name = "Announcement"
        verbose_name_plural = "Announcements"
        indexes = [
            models.Index(fields=["store", "is_active"], name="announcement_store_active_idx"),
        ]

    def __str__(self):
        return self.title
