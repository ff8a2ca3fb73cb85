"""
URL patterns for the CRM module.
"""

from django.urls import path

from . import views

app_name = "crm"

urlpatterns = [
    # Coupons
    path("coupons/validate/", views.validate_coupon, name="coupon_validate"),
    path("coupons/available/", views.AvailableCouponListView.as_view(), name="coupons_available"),
    path("coupons/my-usage/", views.MyCouponUsageView.as_view(), name="coupon_usage"),
    path(
        "stores/<uuid:store_id>/coupons/",
        views.StoreCouponListCreateView.as_view(),
        name="store_coupons",
    ),
    path(
        "stores/<uuid:store_id>/coupons/<uuid:coupon_id>/",
        views.StoreCouponDetailView.as_view(),
        name="store_coupon_detail",
    ),
    # Customer desk
    path("stores/<uuid:store_id>/customers/", views.search_customers, name="customer_search"),
    path(
        "stores/<uuid:store_id>/customers/<uuid:customer_id>/notes/",
        views.CustomerNoteListCreateView.as_view(),
        name="customer_notes",
    ),
]
