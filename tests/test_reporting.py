"""
Tests for the store console dashboard, reports and Excel export.
"""

import io
from datetime import timedelta
from decimal import Decimal

from django.utils import timezone

import openpyxl
import pytest

from apps.accounting.services import StoreFinanceService
from apps.reporting import services
from apps.sales.services import process_inventory_sale


@pytest.fixture
def sale(store, clerk, customer, stock):
    """Two bars sold to Amira with a 100 LYD discount."""
    return process_inventory_sale(
        store, clerk, customer, [{"inventory": stock, "quantity": 2}], discount=Decimal("100")
    )


@pytest.fixture
def today():
    return timezone.localdate()


@pytest.mark.django_db
class TestDashboard:
    def test_empty_store(self, store):
        stats = services.get_dashboard_stats(store)
        assert stats["today_sales_count"] == 0
        assert stats["today_sales_total"] == Decimal("0.00")
        assert stats["pending_transfers"] == 0
        assert stats["balance_usd"] == Decimal("0.00")

    def test_after_a_sale(self, store, other_store, owner, sale):
        StoreFinanceService.request_fund_transfer(
            store, other_store, "LYD", Decimal("500"), "Float", owner
        )
        stats = services.get_dashboard_stats(store)

        assert stats["today_sales_count"] == 1
        assert stats["today_sales_total"] == Decimal("9900.00")
        assert stats["inventory_units"] == 3
        assert stats["pending_fund_transfers"] == 1
        assert stats["pending_transfers"] == 1
        assert stats["balance_lyd"] == Decimal("9900.00")


@pytest.mark.django_db
class TestReports:
    def test_daily_sales(self, store, sale, today):
        rows = services.get_daily_sales_report(store, today - timedelta(days=1), today)
        assert len(rows) == 1
        assert rows[0]["sales_count"] == 1
        assert rows[0]["units_sold"] == 2
        assert rows[0]["discount"] == Decimal("100.00")
        assert rows[0]["total"] == Decimal("9900.00")

    def test_daily_sales_outside_period(self, store, sale, today):
        rows = services.get_daily_sales_report(
            store, today - timedelta(days=10), today - timedelta(days=5)
        )
        assert rows == []

    def test_inventory_valuation(self, store, stock):
        rows = services.get_inventory_valuation_report(store)
        assert rows == [
            {
                "product": "10g Gold Bar",
                "metal": "gold",
                "carat": 24,
                "weight_grams": Decimal("10.000"),
                "quantity": 5,
                "total_weight_grams": Decimal("50.000"),
                "unit_price_lyd": Decimal("5000.00"),
                "total_value_lyd": Decimal("25000.00"),
            }
        ]

    def test_customer_purchases(self, store, sale, customer, today):
        rows = services.get_customer_purchase_report(store, today, today)
        assert rows[0]["customer_id"] == customer.pk
        assert rows[0]["customer_name"] == "Amira Salem"
        assert rows[0]["purchases"] == 1
        assert rows[0]["total_spent"] == Decimal("9900.00")

    def test_financial_summary(self, store, owner, today):
        StoreFinanceService.deposit_funds(store, "LYD", Decimal("1000"), user=owner)
        StoreFinanceService.withdraw_funds(store, "LYD", Decimal("200"), user=owner)
        StoreFinanceService.deposit_funds(store, "USD", Decimal("50"), user=owner)

        summary = services.get_financial_summary(store, today, today)

        assert summary["LYD"]["credits"] == Decimal("1000.00")
        assert summary["LYD"]["debits"] == Decimal("200.00")
        assert summary["LYD"]["net"] == Decimal("800.00")
        assert summary["LYD"]["by_type"]["withdrawal"] == {
            "total": Decimal("200.00"),
            "count": 1,
        }
        assert summary["USD"]["net"] == Decimal("50.00")

    def test_staff_performance(self, store, clerk, manager, sale):
        performance = services.get_staff_performance(clerk, store)
        assert performance["sales_count"] == 1
        assert performance["units_sold"] == 2
        assert performance["average_sale"] == Decimal("9900.00")

        assert services.get_staff_performance(manager, store)["sales_count"] == 0


@pytest.mark.django_db
class TestExcelExport:
    def test_inventory_valuation_workbook(self, store, stock):
        content = services.export_inventory_valuation_excel(store)
        assert content[:2] == b"PK"

        sheet = openpyxl.load_workbook(io.BytesIO(content)).active
        assert sheet["A1"].value == "Inventory Valuation"
        assert sheet["A3"].value == "Store: Tripoli Gold Center"
        assert sheet["A5"].value == "product"
        assert sheet["A6"].value == "10g Gold Bar"

    def test_empty_report_has_only_the_title(self, store):
        content = services.ReportExportService(store).export_to_excel([], "Daily Sales")
        sheet = openpyxl.load_workbook(io.BytesIO(content)).active
        assert sheet["A1"].value == "Daily Sales"
        assert sheet["A5"].value is None


@pytest.mark.django_db
class TestReportingAPI:
    def test_clerk_sees_dashboard(self, client_for, clerk, store, sale):
        response = client_for(clerk).get(f"/api/stores/{store.pk}/dashboard/")
        assert response.status_code == 200
        assert response.data["today_sales_count"] == 1

    def test_reports_are_for_managers(self, client_for, clerk, store):
        response = client_for(clerk).get(f"/api/stores/{store.pk}/reports/daily-sales/")
        assert response.status_code == 403

    def test_outsider_cannot_see_dashboard(self, client_for, other_owner, store):
        response = client_for(other_owner).get(f"/api/stores/{store.pk}/dashboard/")
        assert response.status_code == 403

    def test_daily_sales(self, client_for, manager, store, sale, today):
        response = client_for(manager).get(
            f"/api/stores/{store.pk}/reports/daily-sales/", {"from": today.isoformat()}
        )
        assert response.status_code == 200
        assert response.data["rows"][0]["units_sold"] == 2

    def test_reversed_period(self, client_for, manager, store):
        response = client_for(manager).get(
            f"/api/stores/{store.pk}/reports/daily-sales/",
            {"from": "2026-03-10", "to": "2026-03-01"},
        )
        assert response.status_code == 400

    def test_bad_date(self, client_for, manager, store):
        response = client_for(manager).get(
            f"/api/stores/{store.pk}/reports/financial-summary/", {"from": "10/03/2026"}
        )
        assert response.status_code == 400

    def test_export(self, client_for, manager, store, stock):
        response = client_for(manager).get(
            f"/api/stores/{store.pk}/reports/inventory-valuation/export/"
        )
        assert response.status_code == 200
        assert response["Content-Type"] == (
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        )
        assert "inventory-valuation-TRP-" in response["Content-Disposition"]
        assert response.content[:2] == b"PK"

    def test_inventory_valuation_total(self, client_for, manager, store, stock):
        response = client_for(manager).get(f"/api/stores/{store.pk}/reports/inventory-valuation/")
        assert response.data["total_value_lyd"] == Decimal("25000.00")

    def test_staff_performance(self, client_for, owner, store, sale):
        response = client_for(owner).get(f"/api/stores/{store.pk}/reports/staff-performance/")
        assert response.status_code == 200
        assert len(response.data) == 3
        assert response.data[0]["name"] == "Counter Clerk"
        assert response.data[0]["total_sales"] == Decimal("9900.00")

    def test_staff_performance_window(self, client_for, owner, store):
        response = client_for(owner).get(
            f"/api/stores/{store.pk}/reports/staff-performance/", {"days": "0"}
        )
        assert response.status_code == 400
