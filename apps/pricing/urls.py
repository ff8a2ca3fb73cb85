"""
URL patterns for pricing app.
"""

from django.urls import path

from apps.pricing import views

app_name = "pricing"

urlpatterns = [
    path("prices/", views.LivePriceListView.as_view(), name="live_prices"),
    path("prices/<str:metal_type>/", views.live_price_detail, name="live_price_detail"),
    path("fees/", views.platform_fees, name="fees"),
    path("quote/", views.purchase_quote, name="quote"),
]
