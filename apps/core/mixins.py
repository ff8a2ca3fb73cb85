"""
Mixins for store-scoped API views.
"""

from apps.core.models import Store


class StoreContextMixin:
    """
    Mixin exposing the store from the ``store_id`` URL kwarg.

    Used together with IsStoreStaff / IsStoreManager, which cache the
    requesting user's membership on the request.

    Usage:
        class MyView(StoreContextMixin, generics.ListAPIView):
            permission_classes = [permissions.IsAuthenticated, IsStoreStaff]
    """

    @property
    def store(self) -> Store:
        membership = getattr(self.request, "store_membership", None)
        if membership is not None:
            return membership.store
        return Store.objects.get(pk=self.kwargs["store_id"])

    @property
    def membership(self):
        return getattr(self.request, "store_membership", None)
