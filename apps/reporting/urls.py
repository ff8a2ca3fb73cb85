"""
URL patterns for store reports.
"""

from django.urls import path

from . import views

app_name = "reporting"

urlpatterns = [
    path("stores/<uuid:store_id>/dashboard/", views.dashboard, name="dashboard"),
    path(
        "stores/<uuid:store_id>/reports/daily-sales/",
        views.daily_sales_report,
        name="daily_sales",
    ),
    path(
        "stores/<uuid:store_id>/reports/inventory-valuation/",
        views.inventory_valuation_report,
        name="inventory_valuation",
    ),
    path(
        "stores/<uuid:store_id>/reports/inventory-valuation/export/",
        views.inventory_valuation_export,
        name="inventory_valuation_export",
    ),
    path(
        "stores/<uuid:store_id>/reports/customer-purchases/",
        views.customer_purchase_report,
        name="customer_purchases",
    ),
    path(
        "stores/<uuid:store_id>/reports/financial-summary/",
        views.financial_summary,
        name="financial_summary",
    ),
    path(
        "stores/<uuid:store_id>/reports/staff-performance/",
        views.staff_performance,
        name="staff_performance",
    ),
]
