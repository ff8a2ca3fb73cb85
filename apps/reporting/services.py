"""
Reporting services for the store console.

- Dashboard statistics
- Daily sales, inventory valuation, customer purchase and financial summary
  reports
- Staff performance
- Excel export of report rows
"""

import io
import logging
from datetime import datetime, time, timedelta
from decimal import Decimal
from typing import Any, Dict, List

from django.db.models import Count, DecimalField, ExpressionWrapper, F, Q, Sum
from django.db.models.functions import TruncDate
from django.utils import timezone

import openpyxl
from openpyxl.styles import Font, PatternFill

from apps.accounting.models import StoreFinancialAccount, StoreFinancialTransaction
from apps.accounting.models import StoreFundTransferRequest
from apps.assets.models import PickupAppointment
from apps.inventory.models import InventoryBar, StoreInventory, StoreInventoryTransfer
from apps.sales.models import PosSale, PosSaleItem
from apps.wallets.models import LYD, USD

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def _range(date_from, date_to):
    """Aware datetimes covering whole days from date_from to date_to."""
    tz = timezone.get_current_timezone()
    start = timezone.make_aware(datetime.combine(date_from, time.min), tz)
    end = timezone.make_aware(datetime.combine(date_to, time.max), tz)
    return start, end


def _balance(store, currency):
    account = StoreFinancialAccount.objects.filter(store=store, currency=currency).first()
    return account.balance if account else ZERO


def get_dashboard_stats(store) -> Dict[str, Any]:
    """Headline figures for the store console dashboard."""
    today = timezone.localdate()
    start, end = _range(today, today)

    sales = PosSale.objects.filter(store=store, created_at__range=(start, end)).aggregate(
        count=Count("id"), total=Sum("total_lyd")
    )
    inventory_units = (
        StoreInventory.objects.filter(store=store).aggregate(units=Sum("quantity"))["units"] or 0
    )
    pending_inventory = StoreInventoryTransfer.objects.filter(
        Q(from_store=store) | Q(to_store=store),
        status__in=[
            StoreInventoryTransfer.REQUESTED,
            StoreInventoryTransfer.APPROVED,
            StoreInventoryTransfer.IN_TRANSIT,
        ],
    ).count()
    pending_funds = StoreFundTransferRequest.objects.filter(
        Q(from_store=store) | Q(to_store=store),
        status=StoreFundTransferRequest.PENDING,
    ).count()

    return {
        "today_sales_count": sales["count"] or 0,
        "today_sales_total": sales["total"] or ZERO,
        "inventory_units": inventory_units,
        "bars_in_stock": InventoryBar.objects.filter(
            store=store, status=InventoryBar.IN_STOCK
        ).count(),
        "pending_transfers": pending_inventory + pending_funds,
        "pending_inventory_transfers": pending_inventory,
        "pending_fund_transfers": pending_funds,
        "today_appointments": PickupAppointment.objects.filter(
            store=store,
            appointment_date=today,
            status__in=PickupAppointment.OPEN_STATUSES,
        ).count(),
        "balance_lyd": _balance(store, LYD),
        "balance_usd": _balance(store, USD),
    }


def get_daily_sales_report(store, date_from, date_to) -> List[Dict[str, Any]]:
    """One row per day with sales: count, units, discounts and totals."""
    start, end = _range(date_from, date_to)
    rows = (
        PosSale.objects.filter(store=store, created_at__range=(start, end))
        .annotate(day=TruncDate("created_at"))
        .values("day")
        .annotate(
            sales_count=Count("id"),
            subtotal=Sum("subtotal_lyd"),
            discount=Sum("discount_lyd"),
            total=Sum("total_lyd"),
        )
        .order_by("day")
    )
    units = dict(
        PosSaleItem.objects.filter(sale__store=store, sale__created_at__range=(start, end))
        .annotate(day=TruncDate("sale__created_at"))
        .values("day")
        .annotate(units=Sum("quantity"))
        .values_list("day", "units")
    )
    return [
        {
            "date": row["day"],
            "sales_count": row["sales_count"],
            "units_sold": units.get(row["day"], 0),
            "subtotal": row["subtotal"] or ZERO,
            "discount": row["discount"] or ZERO,
            "total": row["total"] or ZERO,
        }
        for row in rows
    ]


def get_inventory_valuation_report(store) -> List[Dict[str, Any]]:
    """Stock on hand valued at the products' base price, highest value first."""
    rows = []
    inventory = (
        StoreInventory.objects.filter(store=store, quantity__gt=0)
        .select_related("product")
        .annotate(
            value=ExpressionWrapper(
                F("quantity") * F("product__base_price_lyd"),
                output_field=DecimalField(max_digits=16, decimal_places=2),
            )
        )
        .order_by("-value")
    )
    for row in inventory:
        product = row.product
        rows.append(
            {
                "product": product.name,
                "metal": product.type,
                "carat": product.carat,
                "weight_grams": product.weight_grams,
                "quantity": row.quantity,
                "total_weight_grams": product.weight_grams * row.quantity,
                "unit_price_lyd": product.base_price_lyd,
                "total_value_lyd": product.base_price_lyd * row.quantity,
            }
        )
    return rows


def get_customer_purchase_report(store, date_from, date_to) -> List[Dict[str, Any]]:
    """Registered customers by spend at the store, biggest spender first."""
    start, end = _range(date_from, date_to)
    rows = (
        PosSale.objects.filter(
            store=store, customer__isnull=False, created_at__range=(start, end)
        )
        .values(
            "customer_id",
            "customer__first_name",
            "customer__last_name",
            "customer__email",
            "customer__phone",
        )
        .annotate(purchases=Count("id"), total_spent=Sum("total_lyd"))
        .order_by("-total_spent")
    )
    report = []
    for row in rows:
        name = f"{row['customer__first_name']} {row['customer__last_name']}".strip()
        report.append(
            {
                "customer_id": row["customer_id"],
                "customer_name": name or row["customer__email"],
                "email": row["customer__email"],
                "phone": row["customer__phone"],
                "purchases": row["purchases"],
                "total_spent": row["total_spent"] or ZERO,
            }
        )
    return report


def get_financial_summary(store, date_from, date_to) -> Dict[str, Any]:
    """Money in and out of the store accounts by transaction type."""
    start, end = _range(date_from, date_to)
    totals = (
        StoreFinancialTransaction.objects.filter(store=store, created_at__range=(start, end))
        .values("account__currency", "transaction_type")
        .annotate(total=Sum("amount"), count=Count("id"))
    )
    summary = {}
    for row in totals:
        currency = summary.setdefault(
            row["account__currency"], {"credits": ZERO, "debits": ZERO, "by_type": {}}
        )
        currency["by_type"][row["transaction_type"]] = {
            "total": row["total"],
            "count": row["count"],
        }
        if row["transaction_type"] in StoreFinancialTransaction.CREDIT_TYPES:
            currency["credits"] += row["total"]
        else:
            currency["debits"] += row["total"]
    for currency in summary.values():
        currency["net"] = currency["credits"] - currency["debits"]
    return summary


def get_staff_performance(user, store, days=30) -> Dict[str, Any]:
    """A clerk's sales at a store over the last ``days`` days."""
    since = timezone.now() - timedelta(days=days)
    sales = PosSale.objects.filter(store=store, clerk=user, created_at__gte=since)
    totals = sales.aggregate(count=Count("id"), total=Sum("total_lyd"))
    units = (
        PosSaleItem.objects.filter(sale__in=sales).aggregate(units=Sum("quantity"))["units"] or 0
    )
    count = totals["count"] or 0
    total = totals["total"] or ZERO
    return {
        "user_id": user.pk,
        "period_days": days,
        "sales_count": count,
        "units_sold": units,
        "total_sales": total,
        "average_sale": (total / count).quantize(Decimal("0.01")) if count else ZERO,
    }


class ReportExportService:
    """
    Excel export of report rows using openpyxl.
    """

    def __init__(self, store):
        self.store = store

    def export_to_excel(self, data: List[Dict[str, Any]], report_name: str = "") -> bytes:
        """
        Render report rows to an .xlsx workbook.

        Returns:
            Workbook bytes
        """
        workbook = openpyxl.Workbook()
        worksheet = workbook.active
        worksheet.title = "Report Data"

        start_row = self._add_excel_title(worksheet, report_name)
        if data:
            headers = self._add_excel_headers(worksheet, data, start_row)
            self._add_excel_data(worksheet, data, headers, start_row)
        self._adjust_excel_columns(worksheet)

        buffer = io.BytesIO()
        workbook.save(buffer)
        logger.info(f"Exported {len(data)} rows of '{report_name}' for store {self.store.pk}")
        return buffer.getvalue()

    def _add_excel_title(self, worksheet, report_name: str) -> int:
        if not report_name:
            return 1
        worksheet["A1"] = report_name
        worksheet["A1"].font = Font(size=16, bold=True)
        worksheet["A2"] = f"Generated on: {timezone.now().strftime('%Y-%m-%d %H:%M:%S')}"
        worksheet["A3"] = f"Store: {self.store.name}"
        return 5

    def _add_excel_headers(self, worksheet, data: List[Dict], start_row: int) -> List[str]:
        headers = list(data[0].keys())
        for col, header in enumerate(headers, 1):
            cell = worksheet.cell(row=start_row, column=col, value=header)
            cell.font = Font(bold=True)
            cell.fill = PatternFill(start_color="CCCCCC", end_color="CCCCCC", fill_type="solid")
        return headers

    def _add_excel_data(self, worksheet, data: List[Dict], headers: List[str], start_row: int):
        for row_idx, row_data in enumerate(data, start_row + 1):
            for col_idx, header in enumerate(headers, 1):
                worksheet.cell(row=row_idx, column=col_idx, value=row_data.get(header, ""))

    def _adjust_excel_columns(self, worksheet):
        for column in worksheet.columns:
            max_length = max(
                len(str(cell.value)) if cell.value is not None else 0 for cell in column
            )
            worksheet.column_dimensions[column[0].column_letter].width = min(max_length + 2, 50)


def export_inventory_valuation_excel(store) -> bytes:
    rows = get_inventory_valuation_report(store)
    return ReportExportService(store).export_to_excel(rows, "Inventory Valuation")
