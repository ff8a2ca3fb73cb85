"""
Tests for purchases, conversions, pickup appointments, handover and
location changes.
"""

import io
import json
from datetime import time, timedelta
from decimal import Decimal

from django.core.files.uploadedfile import SimpleUploadedFile
from django.utils import timezone

import pytest
from PIL import Image

from apps.assets import services
from apps.assets.models import LocationChangeRequest, OwnedAsset, PickupAppointment, PickupLog
from apps.core.exceptions import (
    InsufficientBalanceError,
    InvalidCouponError,
    InvalidPinError,
    InvalidStateError,
    PermissionDeniedError,
)
from apps.crm.models import Coupon, CouponUsage
from apps.wallets import services as wallet_services
from apps.wallets.models import Transaction


def tomorrow():
    return timezone.localdate() + timedelta(days=1)


@pytest.fixture
def bought_bar(customer, gold_bar, store, fund):
    fund(customer, "6000")
    invoice, _receipt = services.purchase_product(customer, gold_bar, "wallet_dinar", store=store)
    return invoice.asset


@pytest.fixture
def appointment(customer, bought_bar, store):
    return services.create_appointment(customer, bought_bar, store, tomorrow(), time(10, 30))


@pytest.mark.django_db
class TestPurchases:
    def test_physical_purchase_from_dinar_wallet(self, customer, gold_bar, store, fund):
        fund(customer, "6000")

        invoice, receipt = services.purchase_product(
            customer, gold_bar, "wallet_dinar", store=store
        )

        assert wallet_services.get_wallet_by_currency(customer, "LYD").balance == Decimal("925.00")
        assert invoice.amount_lyd == Decimal("5000.00")
        assert invoice.commission_lyd == Decimal("75.00")
        assert invoice.invoice_number.startswith("INV-")

        asset = invoice.asset
        assert asset.status == OwnedAsset.NOT_RECEIVED
        assert asset.pickup_store == store
        assert asset.serial_number.startswith("SN-")
        assert asset.pickup_deadline > timezone.now() + timedelta(days=2)

        assert receipt.type == "physical_purchase"
        assert receipt.amounts.total == Decimal("5075.00")
        assert receipt.pickup.store == "Tripoli Gold Center"
        assert Transaction.objects.get(user=customer).reference_id == invoice.invoice_number

    def test_digital_purchase_credits_grams(self, customer, digital_gold, fund):
        fund(customer, "1000")

        invoice, receipt = services.purchase_product(
            customer, digital_gold, "wallet_dinar", is_digital=True, grams="1.5"
        )

        assert invoice.asset is None
        assert invoice.is_digital
        assert invoice.shared_bar_serial.startswith("SB-")
        assert wallet_services.get_digital_balance(customer, "gold").grams == Decimal("1.500")
        assert wallet_services.get_wallet_by_currency(customer, "LYD").balance == Decimal("250.00")
        assert receipt.type == "digital_purchase"
        assert receipt.digital_grams.price_per_gram == Decimal("500.00")

    def test_cash_purchase_leaves_wallets_alone(self, customer, gold_bar, store):
        invoice, receipt = services.purchase_product(customer, gold_bar, "cash", store=store)
        assert wallet_services.get_wallet_by_currency(customer, "LYD") is None
        assert receipt.payment.method == "cash"
        assert receipt.payment.wallet_balance_before is None
        assert invoice.asset is not None

    def test_dollar_wallet_is_debited(self, customer, digital_gold, fund):
        fund(customer, "600", currency="USD")
        services.purchase_product(
            customer, digital_gold, "wallet_dollar", is_digital=True, grams="1"
        )
        assert wallet_services.get_wallet_by_currency(customer, "USD").balance == Decimal("100.00")

    def test_insufficient_wallet_creates_nothing(self, customer, gold_bar, store, fund):
        fund(customer, "5000")
        with pytest.raises(InsufficientBalanceError):
            services.purchase_product(customer, gold_bar, "wallet_dinar", store=store)
        assert not OwnedAsset.objects.exists()
        assert not Transaction.objects.exists()

    def test_physical_purchase_needs_store(self, customer, gold_bar):
        with pytest.raises(InvalidStateError):
            services.purchase_product(customer, gold_bar, "cash")


@pytest.fixture
def coupon(store):
    return Coupon.objects.create(
        code="TRP500",
        store=store,
        discount_type=Coupon.FIXED,
        discount_value=Decimal("500"),
        min_purchase_amount=Decimal("1000"),
    )


@pytest.mark.django_db
class TestCouponPurchases:
    def test_coupon_payment_debits_discounted_total(self, customer, gold_bar, store, coupon, fund):
        fund(customer, "5000")

        invoice, receipt = services.purchase_product(
            customer, gold_bar, "coupon", store=store, coupon_code="trp500"
        )

        assert wallet_services.get_wallet_by_currency(customer, "LYD").balance == Decimal("425.00")
        assert receipt.amounts.discount == Decimal("500.00")
        assert receipt.amounts.total == Decimal("4575.00")
        assert receipt.payment.method == "coupon"
        assert receipt.to_dict()["amounts"]["discount"] == Decimal("500.00")

        usage = CouponUsage.objects.get(coupon=coupon)
        assert usage.transaction_id == invoice.invoice_number
        assert usage.final_amount == Decimal("4575.00")
        assert Coupon.objects.get(pk=coupon.pk).usage_count == 1

    def test_usage_limit_is_enforced(self, customer, gold_bar, store, coupon):
        coupon.usage_limit = 1
        coupon.save()
        services.purchase_product(customer, gold_bar, "cash", store=store, coupon_code="TRP500")

        with pytest.raises(InvalidCouponError, match="Coupon usage limit reached"):
            services.purchase_product(
                customer, gold_bar, "cash", store=store, coupon_code="TRP500"
            )
        assert OwnedAsset.objects.count() == 1

    def test_coupon_payment_needs_a_code(self, customer, gold_bar, store):
        with pytest.raises(InvalidCouponError):
            services.purchase_product(customer, gold_bar, "coupon", store=store)
        assert not OwnedAsset.objects.exists()

    def test_store_coupon_is_refused_elsewhere(self, customer, gold_bar, other_store, coupon):
        with pytest.raises(InvalidCouponError, match="Invalid coupon code"):
            services.purchase_product(
                customer, gold_bar, "cash", store=other_store, coupon_code="TRP500"
            )
        assert Coupon.objects.get(pk=coupon.pk).usage_count == 0

    def test_unknown_code_over_api(self, client_for, customer, gold_bar, store):
        response = client_for(customer).post(
            "/api/assets/purchase/",
            {
                "product_id": str(gold_bar.pk),
                "payment_method": "coupon",
                "store_id": str(store.pk),
                "coupon_code": "NOPE",
            },
            format="json",
        )
        assert response.status_code == 400
        assert response.data["code"] == "invalid_coupon"


@pytest.mark.django_db
class TestConversion:
    def test_convert_digital_to_bar(self, customer, store, fund):
        fund(customer, "100")
        wallet_services.credit_digital_balance(customer, "gold", Decimal("12"))

        asset, receipt = services.convert_digital_to_physical(customer, "gold", "10", store)

        assert wallet_services.get_digital_balance(customer, "gold").grams == Decimal("2.000")
        assert wallet_services.get_wallet_by_currency(customer, "LYD").balance == Decimal("25.00")
        assert asset.product is None
        assert asset.display_name == "10g GOLD Bar"
        assert asset.pickup_store == store
        assert receipt.type == "receive_physical"
        assert receipt.amounts.fabrication_fee == Decimal("75.00")

    def test_fabrication_fee_is_required(self, customer, store, fund):
        fund(customer, "74.99")
        wallet_services.credit_digital_balance(customer, "gold", Decimal("12"))
        with pytest.raises(InsufficientBalanceError, match="Fabrication fee is 75 LYD"):
            services.convert_digital_to_physical(customer, "gold", "10", store)

    def test_not_enough_grams_rolls_back_fee(self, customer, store, fund):
        fund(customer, "100")
        wallet_services.credit_digital_balance(customer, "gold", Decimal("1"))
        with pytest.raises(InsufficientBalanceError):
            services.convert_digital_to_physical(customer, "gold", "10", store)
        assert wallet_services.get_wallet_by_currency(customer, "LYD").balance == Decimal("100.00")


@pytest.mark.django_db
class TestAppointments:
    def test_booking_carries_pin_and_qr_payload(self, appointment, bought_bar, store):
        assert appointment.status == PickupAppointment.PENDING
        assert len(appointment.verification_pin) == 6
        payload = json.loads(appointment.qr_code_data)
        assert payload["pin"] == appointment.verification_pin
        assert payload["asset_id"] == str(bought_bar.pk)
        assert payload["store_id"] == str(store.pk)

    def test_only_owner_can_book(self, recipient, bought_bar, store):
        with pytest.raises(PermissionDeniedError):
            services.create_appointment(recipient, bought_bar, store, tomorrow(), time(9))

    def test_cancel(self, appointment):
        services.cancel_appointment(appointment, "Travelling")
        appointment.refresh_from_db()
        assert appointment.status == PickupAppointment.CANCELLED
        assert appointment.cancellation_reason == "Travelling"

        with pytest.raises(InvalidStateError):
            services.cancel_appointment(appointment)


@pytest.mark.django_db
class TestHandover:
    def test_wrong_pin(self, store, appointment, clerk):
        wrong = "000000" if appointment.verification_pin != "000000" else "111111"
        with pytest.raises(InvalidPinError):
            services.handover_asset(store, appointment, wrong, clerk)

    def test_handover_completes_appointment(self, store, appointment, clerk, bought_bar):
        done = services.handover_asset(store, appointment, appointment.verification_pin, clerk)

        bought_bar.refresh_from_db()
        assert bought_bar.status == OwnedAsset.RECEIVED
        assert done.status == PickupAppointment.COMPLETED
        assert done.processed_by == clerk
        assert done.storage_fee_lyd == Decimal("0.00")

    def test_storage_fee_from_wallet(self, store, appointment, clerk, customer):
        services.handover_asset(
            store,
            appointment,
            appointment.verification_pin,
            clerk,
            storage_fee=Decimal("30"),
            payment_method="wallet_dinar",
        )
        # 6000 - 5075 - 30
        assert wallet_services.get_wallet_by_currency(customer, "LYD").balance == Decimal("895.00")

    def test_overdue_fee_is_computed(self, store, appointment, clerk, bought_bar):
        bought_bar.pickup_deadline = timezone.now() - timedelta(days=2, hours=12)
        bought_bar.save()

        done = services.handover_asset(store, appointment, appointment.verification_pin, clerk)
        assert done.storage_fee_lyd == Decimal("60.00")

    def test_other_store_cannot_hand_over(self, other_store, appointment, other_owner):
        with pytest.raises(PermissionDeniedError):
            services.handover_asset(
                other_store, appointment, appointment.verification_pin, other_owner
            )

    def test_flag_overdue_pickups(self, appointment, bought_bar):
        PickupAppointment.objects.filter(pk=appointment.pk).update(
            appointment_date=timezone.localdate() - timedelta(days=1)
        )
        bought_bar.pickup_deadline = timezone.now() - timedelta(days=1)
        bought_bar.save()

        result = services.flag_overdue_pickups()

        appointment.refresh_from_db()
        assert appointment.status == PickupAppointment.NO_SHOW
        assert result == {"no_shows": 1, "overdue_assets": 1}


def counter_photo(name):
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), "white").save(buffer, format="PNG")
    return SimpleUploadedFile(name, buffer.getvalue(), content_type="image/png")


@pytest.fixture
def media_root(settings, tmp_path):
    settings.MEDIA_ROOT = tmp_path
    return tmp_path


@pytest.mark.django_db
class TestPickupCounter:
    def test_handover_writes_pickup_log(self, store, appointment, clerk, customer, media_root):
        services.handover_asset(
            store,
            appointment,
            appointment.verification_pin,
            clerk,
            notes="Passport checked",
            id_photo=counter_photo("passport.png"),
            customer_photo=counter_photo("face.png"),
        )

        log = PickupLog.objects.get(appointment=appointment)
        assert log.store == store
        assert log.customer == customer
        assert log.processed_by == clerk
        assert log.notes == "Passport checked"
        assert log.id_photo.name.startswith("pickup_logs/id/")
        assert log.customer_photo.name.startswith("pickup_logs/customer/")
        assert (media_root / log.id_photo.name).exists()

    def test_failed_handover_writes_no_log(self, store, appointment, clerk):
        wrong = "000000" if appointment.verification_pin != "000000" else "111111"
        with pytest.raises(InvalidPinError):
            services.handover_asset(store, appointment, wrong, clerk)
        assert not PickupLog.objects.exists()

    def test_lookup_by_scanned_code(self, client_for, clerk, store, appointment):
        response = client_for(clerk).get(
            f"/api/stores/{store.pk}/appointments/lookup/", {"qr": appointment.qr_code_data}
        )
        assert response.status_code == 200
        assert response.data["appointment_number"] == appointment.appointment_number
        assert response.data["customer_name"] == "Amira Salem"
        assert "verification_pin" not in response.data

    def test_lookup_by_appointment_number(self, client_for, clerk, store, appointment):
        response = client_for(clerk).get(
            f"/api/stores/{store.pk}/appointments/lookup/",
            {"qr": appointment.appointment_number},
        )
        assert response.status_code == 200
        assert response.data["id"] == str(appointment.pk)

    def test_lookup_is_store_scoped(self, client_for, other_owner, other_store, appointment):
        response = client_for(other_owner).get(
            f"/api/stores/{other_store.pk}/appointments/lookup/",
            {"qr": appointment.qr_code_data},
        )
        assert response.status_code == 404

    def test_lookup_needs_a_code(self, client_for, clerk, store):
        response = client_for(clerk).get(f"/api/stores/{store.pk}/appointments/lookup/")
        assert response.status_code == 400

    def test_handover_endpoint_takes_photos(
        self, client_for, clerk, manager, store, appointment, media_root
    ):
        response = client_for(clerk).post(
            f"/api/stores/{store.pk}/appointments/{appointment.pk}/handover/",
            {
                "pin": appointment.verification_pin,
                "notes": "ID checked",
                "id_photo": counter_photo("id.png"),
                "customer_photo": counter_photo("customer.png"),
            },
            format="multipart",
        )
        assert response.status_code == 200

        response = client_for(manager).get(f"/api/stores/{store.pk}/pickup-logs/")
        assert response.status_code == 200
        row = response.data["results"][0]
        assert row["appointment_number"] == appointment.appointment_number
        assert row["processed_by_name"] == clerk.display_name
        assert "pickup_logs/customer/" in row["customer_photo"]


@pytest.mark.django_db
class TestLocationChange:
    def test_full_move(self, customer, bought_bar, store, other_store, manager):
        request = services.request_location_change(customer, bought_bar, other_store, "Moved city")
        assert request.from_store == store

        services.approve_location_change(request, manager, "OK")
        request, receipt = services.complete_move(request)

        bought_bar.refresh_from_db()
        assert request.status == LocationChangeRequest.MOVED
        assert bought_bar.pickup_store == other_store
        assert bought_bar.serial_number.startswith("GB-")
        assert receipt.type == "location_change"
        assert receipt.amounts.total == Decimal("50.00")
        # 6000 - 5075 - 50
        assert wallet_services.get_wallet_by_currency(customer, "LYD").balance == Decimal("875.00")

    def test_one_request_at_a_time(self, customer, bought_bar, other_store):
        services.request_location_change(customer, bought_bar, other_store)
        with pytest.raises(InvalidStateError):
            services.request_location_change(customer, bought_bar, other_store)

    def test_same_store_is_refused(self, customer, bought_bar, store):
        with pytest.raises(InvalidStateError):
            services.request_location_change(customer, bought_bar, store)

    def test_reject_needs_a_note(self, customer, bought_bar, other_store, manager):
        request = services.request_location_change(customer, bought_bar, other_store)
        with pytest.raises(InvalidStateError):
            services.reject_location_change(request, manager, "  ")

        request = services.reject_location_change(request, manager, "No capacity")
        assert request.status == LocationChangeRequest.REJECTED

        with pytest.raises(InvalidStateError):
            services.approve_location_change(request, manager)

    def test_pending_request_cannot_complete(self, customer, bought_bar, other_store):
        request = services.request_location_change(customer, bought_bar, other_store)
        with pytest.raises(InvalidStateError):
            services.complete_move(request)


@pytest.mark.django_db
class TestAssetAPI:
    def test_purchase_endpoint(self, client_for, customer, gold_bar, store, fund):
        fund(customer, "6000")
        response = client_for(customer).post(
            "/api/assets/purchase/",
            {
                "product_id": str(gold_bar.pk),
                "payment_method": "wallet_dinar",
                "store_id": str(store.pk),
            },
            format="json",
        )
        assert response.status_code == 201
        assert response.data["receipt"]["type"] == "physical_purchase"
        assert response.data["invoice"]["serial_number"].startswith("SN-")

    def test_purchase_needs_store(self, client_for, customer, gold_bar):
        response = client_for(customer).post(
            "/api/assets/purchase/",
            {"product_id": str(gold_bar.pk), "payment_method": "cash"},
            format="json",
        )
        assert response.status_code == 400

    def test_asset_list_is_own_only(self, client_for, recipient, bought_bar):
        response = client_for(recipient).get("/api/assets/")
        assert response.status_code == 200
        assert response.data["count"] == 0

    def test_customer_sees_pin(self, client_for, customer, appointment):
        response = client_for(customer).get(f"/api/appointments/{appointment.pk}/")
        assert response.data["verification_pin"] == appointment.verification_pin

    def test_store_staff_never_see_pin(self, client_for, clerk, store, appointment):
        response = client_for(clerk).get(f"/api/stores/{store.pk}/appointments/")
        assert response.status_code == 200
        row = response.data["results"][0]
        assert "verification_pin" not in row
        assert "qr_code_data" not in row
        assert row["customer_name"] == "Amira Salem"

    def test_outsider_cannot_see_store_appointments(self, client_for, customer, store):
        response = client_for(customer).get(f"/api/stores/{store.pk}/appointments/")
        assert response.status_code == 403

    def test_handover_wrong_pin(self, client_for, clerk, store, appointment):
        wrong = "000000" if appointment.verification_pin != "000000" else "111111"
        response = client_for(clerk).post(
            f"/api/stores/{store.pk}/appointments/{appointment.pk}/handover/",
            {"pin": wrong},
            format="json",
        )
        assert response.status_code == 400
        assert response.data["code"] == "invalid_pin"

    def test_handover_endpoint(self, client_for, clerk, store, appointment):
        response = client_for(clerk).post(
            f"/api/stores/{store.pk}/appointments/{appointment.pk}/handover/",
            {"pin": appointment.verification_pin, "notes": "ID checked"},
            format="json",
        )
        assert response.status_code == 200
        assert response.data["status"] == PickupAppointment.COMPLETED

    def test_clerk_cannot_approve_location_change(
        self, client_for, clerk, customer, bought_bar, store, other_store
    ):
        request = services.request_location_change(customer, bought_bar, other_store)
        response = client_for(clerk).post(
            f"/api/stores/{store.pk}/location-requests/{request.pk}/approve/", {}, format="json"
        )
        assert response.status_code == 403

    def test_receiving_manager_approves(
        self, client_for, other_owner, customer, bought_bar, other_store
    ):
        request = services.request_location_change(customer, bought_bar, other_store)
        response = client_for(other_owner).post(
            f"/api/stores/{other_store.pk}/location-requests/{request.pk}/approve/",
            {"notes": "Space available"},
            format="json",
        )
        assert response.status_code == 200
        assert response.data["status"] == LocationChangeRequest.APPROVED

    def test_only_destination_store_completes_move(
        self, client_for, owner, other_owner, customer, bought_bar, store, other_store
    ):
        request = services.request_location_change(customer, bought_bar, other_store)
        services.approve_location_change(request, other_owner, "Space available")

        response = client_for(owner).post(
            f"/api/stores/{store.pk}/location-requests/{request.pk}/complete/", {}, format="json"
        )
        assert response.status_code == 404
        assert OwnedAsset.objects.get(pk=bought_bar.pk).pickup_store == store

        response = client_for(other_owner).post(
            f"/api/stores/{other_store.pk}/location-requests/{request.pk}/complete/",
            {},
            format="json",
        )
        assert response.status_code == 200
        assert response.data["request"]["status"] == LocationChangeRequest.MOVED
        assert OwnedAsset.objects.get(pk=bought_bar.pk).pickup_store == other_store

    def test_location_change_request_endpoint(
        self, client_for, customer, bought_bar, other_store
    ):
        response = client_for(customer).post(
            f"/api/assets/{bought_bar.pk}/location-change/",
            {"to_store_id": str(other_store.pk), "reason": "Closer to home"},
            format="json",
        )
        assert response.status_code == 201
        assert response.data["to_store_name"] == "Benghazi Gold"
