"""
Permission classes for store-scoped API endpoints.

Store-scoped views take a ``store_id`` URL kwarg; the membership found for
the requesting user is cached on the request as ``store_membership``.
"""

from rest_framework import permissions

from apps.core.models import StoreStaff


def _resolve_membership(request, view):
    if hasattr(request, "store_membership"):
        return request.store_membership

    store_id = view.kwargs.get("store_id")
    membership = None
    if store_id and request.user and request.user.is_authenticated:
        membership = (
            StoreStaff.objects.filter(
                store_id=store_id,
                user=request.user,
                is_active=True,
                store__is_active=True,
            )
            .select_related("store")
            .first()
        )
    request.store_membership = membership
    return membership


class IsStoreStaff(permissions.BasePermission):
    """
    Permission class requiring an active membership in the store from the URL.
    """

    message = "You are not an active staff member of this store."

    def has_permission(self, request, view):
        return _resolve_membership(request, view) is not None

    def has_object_permission(self, request, view, obj):
        store_id = getattr(obj, "store_id", None)
        if store_id is None:
            return True
        return str(store_id) == str(view.kwargs.get("store_id"))


class IsStoreManager(IsStoreStaff):
    """
    Permission class limited to store owners and managers.
    """

    message = "Only store owners and managers can perform this action."

    def has_permission(self, request, view):
        membership = _resolve_membership(request, view)
        return membership is not None and membership.can_manage()
