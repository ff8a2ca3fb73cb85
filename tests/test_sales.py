"""
Tests for POS sales, marketplace orders and the cash drawer.
"""

from decimal import Decimal

import pytest

from apps.accounting.models import StoreFinancialTransaction
from apps.accounting.services import StoreFinanceService
from apps.core.exceptions import InsufficientBalanceError, InvalidAmountError, InvalidStateError
from apps.inventory.models import StoreInventory
from apps.sales import services
from apps.sales.models import CashMovement, MarketplaceItem, MarketplaceOrder, PosSale
from apps.wallets import services as wallet_services
from apps.wallets.models import Transaction


@pytest.fixture
def listing(store, stock):
    return MarketplaceItem.objects.create(
        store=store,
        inventory=stock,
        item_name="10g PAMP Bar",
        item_type=MarketplaceItem.BAR,
        metal_type="gold",
        weight=Decimal("10.000"),
        purity="999.9",
        price_lyd=Decimal("5100.00"),
        price_usd=Decimal("1050.00"),
        quantity_available=2,
    )


@pytest.mark.django_db
class TestPosSale:
    def test_sale_decrements_stock_and_credits_store(self, store, clerk, customer, stock):
        sale = services.process_inventory_sale(
            store,
            clerk,
            customer,
            [{"inventory": stock, "quantity": 2}],
            discount=Decimal("100"),
        )

        assert sale.sale_number == "SALE-00000001"
        assert sale.subtotal_lyd == Decimal("10000.00")
        assert sale.total_lyd == Decimal("9900.00")
        assert StoreInventory.objects.get(pk=stock.pk).quantity == 3
        assert sale.items.get().line_total_lyd == Decimal("10000.00")

        assert StoreFinanceService.get_balance(store, "LYD") == Decimal("9900.00")
        line = StoreFinancialTransaction.objects.get(store=store)
        assert line.transaction_type == StoreFinancialTransaction.SALE
        assert line.description == f"Sale {sale.sale_number}"

    def test_sale_numbers_are_sequential(self, store, clerk, stock):
        services.process_inventory_sale(store, clerk, None, [{"inventory": stock.pk}])
        second = services.process_inventory_sale(store, clerk, None, [{"inventory": stock.pk}])
        assert second.sale_number == "SALE-00000002"

    def test_price_override(self, store, clerk, stock):
        sale = services.process_inventory_sale(
            store, clerk, None, [{"inventory": stock, "unit_price_lyd": "4800"}]
        )
        assert sale.total_lyd == Decimal("4800.00")

    def test_not_enough_stock(self, store, clerk, stock):
        with pytest.raises(InsufficientBalanceError):
            services.process_inventory_sale(
                store, clerk, None, [{"inventory": stock, "quantity": 6}]
            )
        assert not PosSale.objects.exists()

    def test_other_store_inventory_is_refused(self, other_store, other_owner, stock):
        with pytest.raises(InvalidStateError):
            services.process_inventory_sale(other_store, other_owner, None, [{"inventory": stock}])

    def test_discount_cannot_exceed_subtotal(self, store, clerk, stock):
        with pytest.raises(InvalidAmountError):
            services.process_inventory_sale(
                store, clerk, None, [{"inventory": stock}], discount=Decimal("5000.01")
            )
        assert StoreInventory.objects.get(pk=stock.pk).quantity == 5


@pytest.mark.django_db
class TestMarketplace:
    def test_order_is_fulfilled_at_once(self, listing, customer, store, owner, stock):
        order = services.create_order(customer, listing, 2, "cash", MarketplaceOrder.PICKUP)

        assert order.order_status == MarketplaceOrder.COMPLETED
        assert order.total_price_lyd == Decimal("10200.00")
        assert order.total_price_usd == Decimal("2100.00")
        assert order.sale.clerk == owner
        assert order.sale.notes == "Store Pickup - cash payment"
        assert MarketplaceItem.objects.get(pk=listing.pk).quantity_available == 0
        assert StoreInventory.objects.get(pk=stock.pk).quantity == 3

    def test_order_more_than_available(self, listing, customer):
        with pytest.raises(InsufficientBalanceError):
            services.create_order(customer, listing, 3, "cash", MarketplaceOrder.PICKUP)

    def test_unlinked_listing(self, listing, customer):
        listing.inventory = None
        listing.save()
        with pytest.raises(InvalidStateError):
            services.create_order(customer, listing, 1, "cash", MarketplaceOrder.DELIVERY)

    def test_wallet_order_debits_buyer(self, listing, customer, store, fund):
        fund(customer, "6000")

        order = services.create_order(customer, listing, 1, "wallet", MarketplaceOrder.PICKUP)

        wallet = wallet_services.get_wallet_by_currency(customer, "LYD")
        assert wallet.balance == Decimal("900.00")
        assert Transaction.objects.get(user=customer).reference_id == order.sale.sale_number
        assert StoreFinanceService.get_balance(store, "LYD") == Decimal("5100.00")

    def test_wallet_order_without_funds_changes_nothing(
        self, listing, customer, store, fund, stock
    ):
        fund(customer, "100")

        with pytest.raises(InsufficientBalanceError):
            services.create_order(customer, listing, 1, "wallet", MarketplaceOrder.PICKUP)

        assert wallet_services.get_wallet_by_currency(customer, "LYD").balance == Decimal("100.00")
        assert StoreInventory.objects.get(pk=stock.pk).quantity == 5
        assert StoreFinanceService.get_balance(store, "LYD") == Decimal("0.00")
        assert not MarketplaceOrder.objects.exists()


@pytest.mark.django_db
class TestCashDrawer:
    def test_balanced_drawer(self, store, clerk, stock):
        services.open_drawer(store, clerk, Decimal("500"))
        services.record_cash_movement(store, clerk, CashMovement.CASH_IN, Decimal("100"))
        services.record_cash_movement(store, clerk, CashMovement.CASH_OUT, Decimal("50"))
        services.process_inventory_sale(store, clerk, None, [{"inventory": stock}])
        services.process_inventory_sale(
            store, clerk, None, [{"inventory": stock}], payment_method=PosSale.CARD
        )

        _movement, summary = services.close_drawer(store, clerk, Decimal("5550"))

        assert summary["expected"] == Decimal("5550.00")
        assert summary["cash_sales"] == Decimal("5000.00")
        assert summary["variance"] == Decimal("0.00")
        assert summary["message"] == "Drawer balanced perfectly!"
        assert summary["is_open"] is False

    def test_short_drawer(self, store, clerk):
        services.open_drawer(store, clerk, Decimal("200"))
        _movement, summary = services.close_drawer(store, clerk, Decimal("187.50"))
        assert summary["message"] == "Short by 12.5 LYD"

    def test_over(self):
        assert services.variance_message(Decimal("3.00")) == "Over by 3 LYD"

    def test_open_twice(self, store, clerk):
        services.open_drawer(store, clerk, Decimal("200"))
        with pytest.raises(InvalidStateError):
            services.open_drawer(store, clerk, Decimal("200"))

    def test_close_without_open(self, store, clerk):
        with pytest.raises(InvalidStateError):
            services.close_drawer(store, clerk, Decimal("0"))


@pytest.mark.django_db
class TestSalesAPI:
    def test_ring_up_sale(self, client_for, clerk, customer, store, stock):
        response = client_for(clerk).post(
            f"/api/stores/{store.pk}/sales/",
            {
                "customer_id": str(customer.pk),
                "items": [{"inventory_id": str(stock.pk), "quantity": 1}],
                "payment_method": "card",
            },
            format="json",
        )
        assert response.status_code == 201
        assert response.data["sale_number"] == "SALE-00000001"

    def test_outsider_cannot_sell(self, client_for, other_owner, store, stock):
        response = client_for(other_owner).post(
            f"/api/stores/{store.pk}/sales/",
            {"items": [{"inventory_id": str(stock.pk)}]},
            format="json",
        )
        assert response.status_code == 403

    def test_marketplace_is_public(self, api_client, listing):
        response = api_client.get("/api/marketplace/items/")
        assert response.status_code == 200
        assert response.data["results"][0]["item_name"] == "10g PAMP Bar"

    def test_place_order(self, client_for, customer, listing, fund):
        fund(customer, "5100")
        response = client_for(customer).post(
            f"/api/marketplace/items/{listing.pk}/order/",
            {"quantity": 1, "payment_method": "wallet"},
            format="json",
        )
        assert response.status_code == 201
        assert response.data["order_status"] == MarketplaceOrder.COMPLETED

    def test_close_drawer_endpoint(self, client_for, clerk, store):
        client = client_for(clerk)
        client.post(f"/api/stores/{store.pk}/cash-drawer/open/", {"amount": "100"}, format="json")
        response = client.post(
            f"/api/stores/{store.pk}/cash-drawer/close/", {"amount": "110"}, format="json"
        )
        assert response.status_code == 200
        assert response.data["summary"]["message"] == "Over by 10 LYD"
