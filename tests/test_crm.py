"""
Tests for coupons and the store customer desk.
"""

from datetime import timedelta
from decimal import Decimal

from django.utils import timezone

import pytest

from apps.crm import services
from apps.crm.models import Coupon, CustomerNote


@pytest.fixture
def make_coupon(db):
    def _make(code="gold10", **extra):
        values = {
            "discount_type": Coupon.PERCENTAGE,
            "discount_value": Decimal("10"),
            "max_discount_amount": Decimal("50"),
            "min_purchase_amount": Decimal("100"),
        }
        values.update(extra)
        return Coupon.objects.create(code=code, **values)

    return _make


@pytest.mark.django_db
class TestCouponValidation:
    def test_code_is_stored_upper_case(self, make_coupon):
        assert make_coupon(code=" gold10 ").code == "GOLD10"

    def test_percentage_discount(self, make_coupon):
        make_coupon()
        result = services.validate_coupon("gold10", Decimal("300"))
        assert result.valid
        assert result.discount_amount == Decimal("30.00")
        assert result.final_amount == Decimal("270.00")

    def test_percentage_discount_is_capped(self, make_coupon):
        make_coupon()
        result = services.validate_coupon("GOLD10", Decimal("1000"))
        assert result.discount_amount == Decimal("50.00")
        assert result.final_amount == Decimal("950.00")

    def test_fixed_discount_never_goes_below_zero(self, make_coupon):
        make_coupon(
            code="FLAT200",
            discount_type=Coupon.FIXED,
            discount_value=Decimal("200"),
            min_purchase_amount=Decimal("0"),
        )
        result = services.validate_coupon("FLAT200", Decimal("150"))
        assert result.discount_amount == Decimal("200.00")
        assert result.final_amount == Decimal("0.00")

    def test_unknown_and_inactive_codes(self, make_coupon):
        make_coupon(is_active=False)
        assert services.validate_coupon("NOPE", 300).error == "Invalid coupon code"
        assert services.validate_coupon("GOLD10", 300).error == "Invalid coupon code"

    def test_currency(self, make_coupon):
        make_coupon()
        result = services.validate_coupon("GOLD10", 300, currency="USD")
        assert not result.valid
        assert result.error == "Coupon only valid for LYD"

    def test_dates(self, make_coupon):
        now = timezone.now()
        make_coupon(code="SOON", valid_from=now + timedelta(days=1))
        make_coupon(
            code="OLD", valid_from=now - timedelta(days=10), valid_until=now - timedelta(days=1)
        )

        assert services.validate_coupon("SOON", 300).error == "Coupon not yet active"
        assert services.validate_coupon("OLD", 300).error == "Coupon has expired"

    def test_usage_limit(self, make_coupon):
        make_coupon(usage_limit=1, usage_count=1)
        assert services.validate_coupon("GOLD10", 300).error == "Coupon usage limit reached"

    def test_minimum_purchase(self, make_coupon):
        make_coupon()
        result = services.validate_coupon("GOLD10", 50)
        assert result.error == "Minimum purchase amount is 100 LYD"

    def test_payment_method(self, make_coupon):
        make_coupon(allowed_payment_methods=["cash"])
        result = services.validate_coupon("GOLD10", 300, payment_method="wallet_dinar")
        assert result.error == "Coupon not valid for this payment method"
        assert services.validate_coupon("GOLD10", 300, payment_method="cash").valid
        assert services.validate_coupon("GOLD10", 300).valid

    def test_first_failure_is_reported(self, make_coupon):
        now = timezone.now()
        make_coupon(valid_from=now - timedelta(days=10), valid_until=now - timedelta(days=1))
        assert services.validate_coupon("GOLD10", 50).error == "Coupon has expired"

    def test_store_coupons_only_apply_at_their_store(self, make_coupon, store, other_store):
        make_coupon(store=store)
        make_coupon(code="PLATFORM")

        assert services.validate_coupon("GOLD10", 300, store=store).valid
        assert services.validate_coupon("GOLD10", 300, store=other_store).error == (
            "Invalid coupon code"
        )
        assert services.validate_coupon("PLATFORM", 300, store=other_store).valid


@pytest.mark.django_db
class TestCouponUsage:
    def test_apply_counts_the_redemption(self, make_coupon, customer):
        coupon = make_coupon()
        usage = services.apply_coupon(customer, "gold10", "TXN-1", 300, 30, 270)

        coupon = Coupon.objects.get(pk=coupon.pk)
        assert coupon.usage_count == 1
        assert usage.final_amount == Decimal("270.00")
        assert list(services.get_user_coupon_usage(customer)) == [usage]

    def test_available_coupons(self, make_coupon):
        now = timezone.now()
        make_coupon(code="LIVE")
        make_coupon(code="OFF", is_active=False)
        make_coupon(code="LATER", valid_from=now + timedelta(days=2))

        assert [c.code for c in services.get_available_coupons()] == ["LIVE"]


@pytest.mark.django_db
class TestCustomerDesk:
    def test_search_counts_store_sales(self, store, customer):
        results = services.search_customer(store, "amira")
        assert results == [customer]
        assert results[0].store_sales_count == 0

    def test_notes_are_per_store(self, store, other_store, customer, clerk):
        services.add_customer_note(store, customer, clerk, "Prefers 24k bars")
        assert services.get_customer_notes(other_store, customer).count() == 0
        assert services.get_customer_notes(store, customer).count() == 1


@pytest.mark.django_db
class TestCrmAPI:
    def test_validate_always_answers_200(self, client_for, customer, make_coupon):
        make_coupon()
        client = client_for(customer)

        response = client.post(
            "/api/coupons/validate/", {"code": "NOPE", "amount": "300"}, format="json"
        )
        assert response.status_code == 200
        assert response.data == {
            "valid": False,
            "error": "Invalid coupon code",
            "discount_amount": None,
            "final_amount": None,
        }

        response = client.post(
            "/api/coupons/validate/", {"code": "gold10", "amount": "300"}, format="json"
        )
        assert response.status_code == 200
        assert response.data["valid"] is True
        assert response.data["discount_amount"] == "30.00"
        assert response.data["final_amount"] == "270.00"

    def test_manager_creates_store_coupon(self, client_for, manager, store):
        response = client_for(manager).post(
            f"/api/stores/{store.pk}/coupons/",
            {
                "code": "eid25",
                "discount_type": Coupon.FIXED,
                "discount_value": "25.00",
                "allowed_payment_methods": ["cash"],
            },
            format="json",
        )
        assert response.status_code == 201
        assert response.data["code"] == "EID25"
        assert Coupon.objects.get(code="EID25").store == store

    def test_clerk_cannot_manage_coupons(self, client_for, clerk, store):
        response = client_for(clerk).get(f"/api/stores/{store.pk}/coupons/")
        assert response.status_code == 403

    def test_duplicate_code(self, client_for, manager, store, make_coupon):
        make_coupon()
        response = client_for(manager).post(
            f"/api/stores/{store.pk}/coupons/",
            {"code": "Gold10", "discount_type": Coupon.FIXED, "discount_value": "5"},
            format="json",
        )
        assert response.status_code == 400

    def test_percentage_above_100(self, client_for, manager, store):
        response = client_for(manager).post(
            f"/api/stores/{store.pk}/coupons/",
            {"code": "HALF", "discount_type": Coupon.PERCENTAGE, "discount_value": "150"},
            format="json",
        )
        assert response.status_code == 400

    def test_retire_coupon(self, client_for, manager, store, make_coupon):
        coupon = make_coupon(store=store)
        response = client_for(manager).patch(
            f"/api/stores/{store.pk}/coupons/{coupon.pk}/", {"is_active": False}, format="json"
        )
        assert response.status_code == 200
        assert Coupon.objects.get(pk=coupon.pk).is_active is False

    def test_other_store_coupon_is_404(
        self, client_for, other_owner, other_store, store, make_coupon
    ):
        coupon = make_coupon(store=store)
        url = f"/api/stores/{other_store.pk}/coupons/{coupon.pk}/"
        response = client_for(other_owner).get(url)
        assert response.status_code == 404

    def test_customer_search(self, client_for, clerk, store, customer):
        response = client_for(clerk).get(f"/api/stores/{store.pk}/customers/", {"q": "Salem"})
        assert response.status_code == 200
        assert response.data[0]["display_name"] == "Amira Salem"
        assert response.data[0]["store_sales_count"] == 0

    def test_customer_notes(self, client_for, clerk, store, customer):
        client = client_for(clerk)
        url = f"/api/stores/{store.pk}/customers/{customer.pk}/notes/"

        response = client.post(url, {"body": "Asked about 50g bars"}, format="json")
        assert response.status_code == 201
        assert response.data["author_name"] == "Counter Clerk"

        response = client.get(url)
        assert len(response.data) == 1
        assert CustomerNote.objects.get().store == store

    def test_notes_for_unknown_customer(self, client_for, clerk, store):
        url = f"/api/stores/{store.pk}/customers/00000000-0000-0000-0000-000000000000/notes/"
        response = client_for(clerk).get(url)
        assert response.status_code == 404
