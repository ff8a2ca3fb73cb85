"""
Services for profiles, store staff and store announcements.
"""

import logging
import re

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Q, Value
from django.db.models.functions import Lower, Replace

from apps.core.exceptions import InvalidStateError, NotFoundError, PermissionDeniedError
from apps.core.models import Announcement, Store, StoreStaff, User

logger = logging.getLogger(__name__)

PHONE_SEPARATORS = re.compile(r"[\s\-]")


def normalize_phone(value):
    """Strip spaces and dashes from a phone number."""
    return PHONE_SEPARATORS.sub("", value or "")


def search_profiles_exact(query):
    """
    Find users whose email or phone exactly equals the query.

    Emails compare case-insensitively; phones compare with spaces and
    dashes removed on both sides. A query containing "@" is only matched
    against emails.
    """
    query = (query or "").strip()
    if not query:
        return []

    by_email = User.objects.annotate(email_lower=Lower("email")).filter(
        email_lower=query.lower()
    )
    matches = list(by_email)

    phone = "" if "@" in query else normalize_phone(query)
    if phone:
        by_phone = (
            User.objects.annotate(
                phone_digits=Replace(
                    Replace("phone", Value(" "), Value("")), Value("-"), Value("")
                )
            )
            .filter(phone_digits=phone)
            .exclude(pk__in=[user.pk for user in matches])
        )
        matches.extend(by_phone)

    return matches


def find_user_by_email_or_phone(identifier):
    """Return the first user matching the identifier, or None."""
    matches = search_profiles_exact(identifier)
    return matches[0] if matches else None


def get_user_stores(user):
    """Active store memberships of a user, with their stores."""
    return (
        StoreStaff.objects.filter(user=user, is_active=True, store__is_active=True)
        .select_related("store")
        .order_by("store__name")
    )


def get_membership(user, store):
    """Return the active membership of user at store or raise PermissionDeniedError."""
    membership = StoreStaff.objects.filter(user=user, store=store, is_active=True).first()
    if membership is None:
        raise PermissionDeniedError("You are not a member of this store")
    return membership


def get_store(store_id):
    try:
        return Store.objects.get(pk=store_id)
    except (Store.DoesNotExist, ValidationError, ValueError):
        raise NotFoundError("Store not found")


# Staff


def get_staff_members(store):
    return (
        StoreStaff.objects.filter(store=store).select_related("user").order_by("-created_at")
    )


def add_staff_member(store, user, role=StoreStaff.CLERK, permissions=None):
    """Add a user to a store's staff."""
    try:
        with transaction.atomic():
            staff = StoreStaff.objects.create(
                store=store,
                user=user,
                role=role,
                permissions=permissions or {},
                is_active=True,
            )
    except IntegrityError:
        raise InvalidStateError("User is already a staff member of this store")

    logger.info(f"Added {user.pk} to store {store.pk} as {role}")
    return staff


def update_staff_role(staff, role, permissions=None):
    staff.role = role
    if permissions is not None:
        staff.permissions = permissions
    staff.save(update_fields=["role", "permissions", "updated_at"])
    logger.info(f"Staff {staff.pk} role changed to {role}")
    return staff


def toggle_staff_active(staff, is_active):
    staff.is_active = is_active
    staff.save(update_fields=["is_active", "updated_at"])
    return staff


def remove_staff_member(staff):
    logger.info(f"Removing staff {staff.pk} from store {staff.store_id}")
    staff.delete()


def get_staff_activity(user, store, date_from, date_to):
    """POS sales rung up by a clerk in a store between two timestamps."""
    from apps.sales.models import PosSale

    return (
        PosSale.objects.filter(
            store=store,
            clerk=user,
            created_at__gte=date_from,
            created_at__lte=date_to,
        )
        .prefetch_related("items")
        .order_by("-created_at")
    )


# Announcements


def create_announcement(store, user, title, body, visible_from=None, visible_to=None):
    return Announcement.objects.create(
        store=store,
        created_by=user,
        title=title,
        body=body,
        visible_from=visible_from,
        visible_to=visible_to,
        is_active=True,
    )


def get_announcements(store, active_only=False):
    queryset = Announcement.objects.filter(store=store).select_related("created_by")
    if active_only:
        queryset = queryset.active()
    return queryset.order_by("-created_at")


def get_active_announcements(store):
    return get_announcements(store, active_only=True)


ANNOUNCEMENT_FIELDS = ("title", "body", "visible_from", "visible_to", "is_active")


def update_announcement(announcement, **data):
    for field, value in data.items():
        if field in ANNOUNCEMENT_FIELDS:
            setattr(announcement, field, value)
    announcement.save()
    return announcement


def toggle_announcement(announcement, is_active):
    announcement.is_active = is_active
    announcement.save(update_fields=["is_active", "updated_at"])
    return announcement


def delete_announcement(announcement):
    announcement.delete()


def search_store_customers(query):
    """Loose search used by the store customer desk (name, email or phone)."""
    query = (query or "").strip()
    if not query:
        return User.objects.none()
    phone = normalize_phone(query)
    condition = (
        Q(email__iexact=query)
        | Q(first_name__icontains=query)
        | Q(last_name__icontains=query)
        | Q(national_id=query)
    )
    if phone:
        condition |= Q(phone__contains=phone)
    return User.objects.filter(condition).order_by("first_name", "last_name")[:20]
