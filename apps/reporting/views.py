"""
Reporting API for the store console.

Report endpoints take ``from`` and ``to`` (YYYY-MM-DD) query parameters and
default to the last 30 days.
"""

from datetime import timedelta

from django.http import HttpResponse
from django.utils import timezone

from rest_framework import permissions
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from apps.core.models import StoreStaff
from apps.core.permissions import IsStoreManager, IsStoreStaff
from apps.core.views import query_date

from . import services

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _period(request):
    today = timezone.localdate()
    date_from = query_date(request, "from", today - timedelta(days=30))
    date_to = query_date(request, "to", today)
    if date_to < date_from:
        raise ValidationError({"to": "End date must not be before the start date."})
    return date_from, date_to


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated, IsStoreStaff])
def dashboard(request, store_id):
    return Response(services.get_dashboard_stats(request.store_membership.store))


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated, IsStoreManager])
def daily_sales_report(request, store_id):
    date_from, date_to = _period(request)
    rows = services.get_daily_sales_report(request.store_membership.store, date_from, date_to)
    return Response({"from": date_from, "to": date_to, "rows": rows})


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated, IsStoreManager])
def inventory_valuation_report(request, store_id):
    rows = services.get_inventory_valuation_report(request.store_membership.store)
    total = sum((row["total_value_lyd"] for row in rows), services.ZERO)
    return Response({"rows": rows, "total_value_lyd": total})


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated, IsStoreManager])
def inventory_valuation_export(request, store_id):
    """Inventory valuation as an Excel workbook."""
    store = request.store_membership.store
    content = services.export_inventory_valuation_excel(store)
    response = HttpResponse(content, content_type=XLSX_CONTENT_TYPE)
    filename = f"inventory-valuation-{store.branch_code or store.pk}-{timezone.localdate()}.xlsx"
    response["Content-Disposition"] = f'attachment; filename="{filename}"'
    return response


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated, IsStoreManager])
def customer_purchase_report(request, store_id):
    date_from, date_to = _period(request)
    rows = services.get_customer_purchase_report(
        request.store_membership.store, date_from, date_to
    )
    return Response({"from": date_from, "to": date_to, "rows": rows})


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated, IsStoreManager])
def financial_summary(request, store_id):
    date_from, date_to = _period(request)
    summary = services.get_financial_summary(request.store_membership.store, date_from, date_to)
    return Response({"from": date_from, "to": date_to, "currencies": summary})


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated, IsStoreManager])
def staff_performance(request, store_id):
    """
    Sales of every active staff member.

    Query parameters:
    - days: look-back window (default 30)
    """
    try:
        days = int(request.query_params.get("days", 30))
    except ValueError:
        raise ValidationError({"days": "A whole number is required."})
    if days < 1 or days > 366:
        raise ValidationError({"days": "Use a value between 1 and 366."})

    store = request.store_membership.store
    members = StoreStaff.objects.filter(store=store, is_active=True).select_related("user")

    rows = []
    for member in members:
        row = services.get_staff_performance(member.user, store, days=days)
        row["staff_id"] = member.pk
        row["name"] = member.user.display_name
        row["role"] = member.role
        rows.append(row)
    rows.sort(key=lambda row: row["total_sales"], reverse=True)
    return Response(rows)
