"""
Tests for store stock, bar tracking and store-to-store inventory transfers.
"""

from decimal import Decimal

from django.utils import timezone

import pytest

from apps.core.exceptions import InsufficientBalanceError, InvalidStateError
from apps.core.models import Store
from apps.inventory import services
from apps.inventory.models import InventoryBar, StoreInventory, StoreInventoryTransfer


@pytest.fixture
def bar(store, gold_bar, stock):
    return services.create_bar(
        store,
        gold_bar,
        serial_number="BAR-TRP-0001",
        weight_grams=Decimal("10.000"),
        purity="999.9",
        xrf_gold_percentage=Decimal("99.950"),
        manufacturer="PAMP",
    )


@pytest.fixture
def transfer(store, other_store, gold_bar, stock, bar, clerk):
    return services.request_transfer(
        store,
        other_store,
        [
            {"product": gold_bar, "quantity": 1, "bar": bar},
            {"product": gold_bar, "quantity": 1},
        ],
        reason="Benghazi is short on 10g bars",
        user=clerk,
    )


def quantity(store, product):
    row = StoreInventory.objects.filter(store=store, product=product).first()
    return row.quantity if row else 0


@pytest.mark.django_db
class TestStock:
    def test_add_stock_creates_row(self, other_store, gold_bar):
        services.add_stock(other_store, gold_bar, 3)
        row = services.add_stock(other_store, gold_bar, 2)
        assert row.quantity == 5

    def test_availability_skips_empty_stores(self, store, other_store, gold_bar, stock):
        StoreInventory.objects.create(store=other_store, product=gold_bar, quantity=0)
        assert services.get_product_availability(gold_bar) == {store.pk: 5}


@pytest.mark.django_db
class TestBars:
    def test_bar_detail_rows(self, store, bar, customer):
        rows = services.get_store_bars(store)
        assert rows[0]["serial_number"] == "BAR-TRP-0001"
        assert rows[0]["buyer_name"] is None
        assert rows[0]["xrf_gold_percentage"] == Decimal("99.950")

    def test_unknown_status_is_refused(self, bar):
        with pytest.raises(InvalidStateError):
            services.update_bar_status(bar, "melted")

    def test_sold_bar_cannot_be_sold_again(self, bar, customer):
        bar.status = InventoryBar.SOLD
        bar.save()
        with pytest.raises(InvalidStateError):
            services.mark_bar_as_sold(bar, None, customer)


@pytest.mark.django_db
class TestTransferWorkflow:
    def test_request(self, transfer):
        assert transfer.status == StoreInventoryTransfer.REQUESTED
        assert transfer.total_items == 2
        date_str = timezone.now().strftime("%Y%m%d")
        assert transfer.transfer_number == f"ITR-{date_str}-0001"
        assert transfer.items.get(bar__isnull=False).serial_number == "BAR-TRP-0001"

    def test_numbers_increase_within_a_day(self, transfer, store, other_store, gold_bar, clerk):
        second = services.request_transfer(
            store, other_store, [{"product": gold_bar, "quantity": 1}], "More", clerk
        )
        assert second.transfer_number.endswith("-0002")

    def test_request_checks_stock(self, store, other_store, gold_bar, stock, clerk):
        with pytest.raises(InsufficientBalanceError):
            services.request_transfer(
                store, other_store, [{"product": gold_bar, "quantity": 6}], "Too many", clerk
            )

    def test_same_store_is_refused(self, store, gold_bar, stock, clerk):
        with pytest.raises(InvalidStateError):
            services.request_transfer(
                store, store, [{"product": gold_bar, "quantity": 1}], "Loop", clerk
            )

    def test_full_lifecycle_moves_stock_and_bar(
        self, transfer, store, other_store, gold_bar, bar, manager, clerk, other_owner
    ):
        approved = services.approve_transfer(transfer, manager, "Go ahead")
        assert approved.status == StoreInventoryTransfer.APPROVED
        assert quantity(store, gold_bar) == 5

        shipped = services.ship_transfer(approved, clerk, "DHL-123")
        assert shipped.status == StoreInventoryTransfer.IN_TRANSIT
        assert shipped.shipping_reference == "DHL-123"
        assert quantity(store, gold_bar) == 3
        assert InventoryBar.objects.get(pk=bar.pk).status == InventoryBar.RESERVED

        received = services.receive_transfer(shipped, other_owner, "All present")
        assert received.status == StoreInventoryTransfer.RECEIVED
        assert quantity(other_store, gold_bar) == 2

        moved = InventoryBar.objects.get(pk=bar.pk)
        assert moved.store == other_store
        assert moved.status == InventoryBar.IN_STOCK

    def test_cannot_ship_before_approval(self, transfer, clerk):
        with pytest.raises(InvalidStateError):
            services.ship_transfer(transfer, clerk)

    def test_rejected_transfer_is_final(self, transfer, manager):
        rejected = services.reject_transfer(transfer, manager, "Not now")
        assert rejected.status == StoreInventoryTransfer.REJECTED
        with pytest.raises(InvalidStateError):
            services.approve_transfer(rejected, manager)

    def test_cancel_after_shipping_is_refused(self, transfer, manager, clerk):
        services.approve_transfer(transfer, manager)
        services.ship_transfer(transfer, clerk)
        with pytest.raises(InvalidStateError):
            services.cancel_transfer(transfer, clerk, "Changed mind")

    def test_ship_without_stock_rolls_back(self, transfer, store, gold_bar, manager, clerk):
        services.approve_transfer(transfer, manager)
        StoreInventory.objects.filter(store=store, product=gold_bar).update(quantity=1)

        with pytest.raises(InsufficientBalanceError):
            services.ship_transfer(transfer, clerk)

        fresh = StoreInventoryTransfer.objects.get(pk=transfer.pk)
        assert fresh.status == StoreInventoryTransfer.APPROVED
        assert quantity(store, gold_bar) == 1

    def test_sold_bar_cannot_be_requested(self, store, other_store, gold_bar, bar, clerk):
        services.update_bar_status(bar, InventoryBar.SOLD)
        with pytest.raises(InvalidStateError):
            services.request_transfer(
                store, other_store, [{"product": gold_bar, "bar": bar}], "Sold bar", clerk
            )
        assert not StoreInventoryTransfer.objects.exists()

    def test_bar_must_match_item_product(
        self, store, other_store, gold_bar, digital_gold, bar, clerk
    ):
        services.add_stock(store, digital_gold, 3)
        with pytest.raises(InvalidStateError):
            services.request_transfer(
                store, other_store, [{"product": digital_gold, "bar": bar}], "Mixed up", clerk
            )

    def test_bar_sold_after_approval_blocks_shipping(
        self, transfer, store, gold_bar, bar, manager, clerk
    ):
        services.approve_transfer(transfer, manager)
        services.update_bar_status(bar, InventoryBar.SOLD)

        with pytest.raises(InvalidStateError):
            services.ship_transfer(transfer, clerk)

        fresh = StoreInventoryTransfer.objects.get(pk=transfer.pk)
        assert fresh.status == StoreInventoryTransfer.APPROVED
        assert quantity(store, gold_bar) == 5
        assert InventoryBar.objects.get(pk=bar.pk).status == InventoryBar.SOLD


@pytest.mark.django_db
class TestInventoryAPI:
    def test_catalogue_is_public(self, api_client, gold_bar, stock, store):
        response = api_client.get(f"/api/products/{gold_bar.pk}/")
        assert response.status_code == 200
        assert response.data["availability"] == {str(store.pk): 5}

    def test_clerk_cannot_add_stock(self, client_for, clerk, store, gold_bar):
        response = client_for(clerk).post(
            f"/api/stores/{store.pk}/inventory/",
            {"product_id": str(gold_bar.pk), "quantity": 2},
            format="json",
        )
        assert response.status_code == 403

    def test_manager_adds_stock(self, client_for, manager, store, gold_bar, stock):
        response = client_for(manager).post(
            f"/api/stores/{store.pk}/inventory/",
            {"product_id": str(gold_bar.pk), "quantity": 2},
            format="json",
        )
        assert response.status_code == 201
        assert response.data["quantity"] == 7

    def test_staff_cannot_mark_bar_sold(self, client_for, clerk, store, bar):
        response = client_for(clerk).patch(
            f"/api/stores/{store.pk}/bars/{bar.serial_number}/", {"status": "sold"}, format="json"
        )
        assert response.status_code == 403
        assert InventoryBar.objects.get(pk=bar.pk).status == InventoryBar.IN_STOCK

    def test_bar_of_other_store_is_hidden(self, client_for, other_owner, other_store, bar):
        response = client_for(other_owner).get(
            f"/api/stores/{other_store.pk}/bars/{bar.serial_number}/"
        )
        assert response.status_code == 404

    def test_create_transfer(self, client_for, clerk, store, other_store, gold_bar, bar):
        response = client_for(clerk).post(
            f"/api/stores/{store.pk}/inventory-transfers/",
            {
                "from_store_id": str(store.pk),
                "to_store_id": str(other_store.pk),
                "reason": "Rebalance",
                "items": [{"product_id": str(gold_bar.pk), "serial_number": bar.serial_number}],
            },
            format="json",
        )
        assert response.status_code == 201
        assert response.data["status"] == StoreInventoryTransfer.REQUESTED

    def test_transfer_must_involve_own_store(
        self, client_for, other_owner, store, other_store, gold_bar, stock
    ):
        third = Store.objects.create(name="Misrata Gold", city="Misrata", branch_code="MIS")
        response = client_for(other_owner).post(
            f"/api/stores/{other_store.pk}/inventory-transfers/",
            {
                "from_store_id": str(store.pk),
                "to_store_id": str(third.pk),
                "reason": "Not mine",
                "items": [{"product_id": str(gold_bar.pk), "quantity": 1}],
            },
            format="json",
        )
        assert response.status_code == 403

    def test_receiving_store_cannot_approve(self, client_for, other_owner, other_store, transfer):
        response = client_for(other_owner).post(
            f"/api/stores/{other_store.pk}/inventory-transfers/{transfer.pk}/approve/",
            {},
            format="json",
        )
        assert response.status_code == 404

    def test_clerk_cannot_approve(self, client_for, clerk, store, transfer):
        response = client_for(clerk).post(
            f"/api/stores/{store.pk}/inventory-transfers/{transfer.pk}/approve/", {}, format="json"
        )
        assert response.status_code == 403

    def test_ship_before_approval_is_conflict(self, client_for, clerk, store, transfer):
        response = client_for(clerk).post(
            f"/api/stores/{store.pk}/inventory-transfers/{transfer.pk}/ship/", {}, format="json"
        )
        assert response.status_code == 409
        assert response.data["code"] == "invalid_state"
