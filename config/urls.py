"""
URL configuration for the gold trading storefront.
"""

from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import include, path

from rest_framework_simplejwt.views import TokenRefreshView

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/auth/token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("api/", include("apps.core.urls")),
    path("api/", include("apps.pricing.urls")),
    path("api/", include("apps.wallets.urls")),
    path("api/", include("apps.assets.urls")),
    path("api/", include("apps.inventory.urls")),
    path("api/", include("apps.sales.urls")),
    path("api/", include("apps.accounting.urls")),
    path("api/", include("apps.crm.urls")),
    path("api/", include("apps.reporting.urls")),
]

# Serve uploaded photos in development
if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
