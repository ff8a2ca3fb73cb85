"""
Tests for accounts, profile search, store staff and announcements.
"""

from datetime import timedelta

from django.utils import timezone

import pytest

from apps.core import services
from apps.core.exceptions import InvalidStateError, PermissionDeniedError
from apps.core.models import Announcement, StoreStaff
from apps.sales.services import process_inventory_sale


@pytest.mark.django_db
class TestProfileSearch:
    def test_email_is_case_insensitive(self, customer):
        assert services.search_profiles_exact("  Amira@Example.com ") == [customer]

    def test_phone_ignores_spaces_and_dashes(self, customer):
        assert services.search_profiles_exact("0912345678") == [customer]

    def test_email_query_skips_phone_matching(self, customer, django_assert_num_queries):
        with django_assert_num_queries(1):
            assert services.search_profiles_exact("amira@example.com") == [customer]

    def test_phone_lookup_stays_in_the_database(
        self, customer, recipient, django_assert_num_queries
    ):
        with django_assert_num_queries(2):
            assert services.search_profiles_exact("091 234-5678") == [customer]

    def test_partial_match_finds_nothing(self, customer):
        assert services.search_profiles_exact("amira") == []
        assert services.search_profiles_exact("091234") == []

    def test_blank_query(self, customer):
        assert services.search_profiles_exact("") == []


@pytest.mark.django_db
class TestStaff:
    def test_membership_lookup(self, store, clerk, customer):
        assert services.get_membership(clerk, store).role == StoreStaff.CLERK
        with pytest.raises(PermissionDeniedError):
            services.get_membership(customer, store)

    def test_duplicate_member(self, store, clerk):
        with pytest.raises(InvalidStateError):
            services.add_staff_member(store, clerk)

    def test_inactive_member_cannot_manage(self, store, manager):
        staff = StoreStaff.objects.get(store=store, user=manager)
        assert staff.can_manage()
        services.toggle_staff_active(staff, False)
        assert not staff.can_manage()

    def test_user_stores(self, store, other_store, owner):
        memberships = list(services.get_user_stores(owner))
        assert [m.store for m in memberships] == [store]

    def test_activity_lists_clerk_sales(self, store, clerk, manager, stock):
        process_inventory_sale(store, clerk, None, [{"inventory": stock}])
        process_inventory_sale(store, manager, None, [{"inventory": stock}])

        now = timezone.now()
        sales = services.get_staff_activity(clerk, store, now - timedelta(hours=1), now)
        assert [sale.clerk for sale in sales] == [clerk]


@pytest.mark.django_db
class TestAnnouncements:
    def test_active_window(self, store, manager):
        now = timezone.now()
        shown = services.create_announcement(store, manager, "Open Friday", "Until 9pm")
        services.create_announcement(
            store, manager, "Eid hours", "Closed", visible_from=now + timedelta(days=3)
        )
        expired = services.create_announcement(
            store, manager, "Old", "Gone", visible_to=now - timedelta(days=1)
        )
        hidden = services.create_announcement(store, manager, "Draft", "Not yet")
        services.update_announcement(hidden, is_active=False)

        assert list(services.get_active_announcements(store)) == [shown]
        assert expired in services.get_announcements(store)


@pytest.mark.django_db
class TestCoreAPI:
    def test_register_and_login(self, api_client):
        response = api_client.post(
            "/api/auth/register/",
            {
                "username": "layla",
                "email": "layla@example.com",
                "password": "Str0ng-pass-2026",
                "password2": "Str0ng-pass-2026",
                "phone": "0911111111",
            },
            format="json",
        )
        assert response.status_code == 201

        response = api_client.post(
            "/api/auth/token/",
            {"username": "layla", "password": "Str0ng-pass-2026"},
            format="json",
        )
        assert response.status_code == 200
        assert "access" in response.data
        assert response.data["user"]["email"] == "layla@example.com"
        assert response.data["user"]["stores"] == []

    def test_register_password_mismatch(self, api_client):
        response = api_client.post(
            "/api/auth/register/",
            {
                "username": "layla",
                "email": "layla@example.com",
                "password": "Str0ng-pass-2026",
                "password2": "Other-pass-2026",
            },
            format="json",
        )
        assert response.status_code == 400

    def test_profile_update(self, client_for, customer):
        response = client_for(customer).patch(
            "/api/profile/", {"address": "Hay Al Andalus, Tripoli"}, format="json"
        )
        assert response.status_code == 200
        assert response.data["address"] == "Hay Al Andalus, Tripoli"
        assert response.data["display_name"] == "Amira Salem"

    def test_profile_search_endpoint(self, client_for, customer, recipient):
        response = client_for(customer).get("/api/profiles/search/", {"q": "092 987 6543"})
        assert response.status_code == 200
        assert response.data[0]["email"] == "omar@example.com"

    def test_profile_search_not_found(self, client_for, customer):
        response = client_for(customer).get("/api/profiles/search/", {"q": "x@example.com"})
        assert response.status_code == 404
        assert response.data["code"] == "recipient_not_found"

    def test_clerk_cannot_add_staff(self, client_for, clerk, store, customer):
        response = client_for(clerk).post(
            f"/api/stores/{store.pk}/staff/", {"identifier": customer.email}, format="json"
        )
        assert response.status_code == 403

    def test_manager_adds_staff_by_phone(self, client_for, manager, store, customer):
        response = client_for(manager).post(
            f"/api/stores/{store.pk}/staff/",
            {"identifier": "091 234 5678", "role": "clerk"},
            format="json",
        )
        assert response.status_code == 201
        assert response.data["user"]["email"] == "amira@example.com"

    def test_add_unknown_user(self, client_for, manager, store):
        response = client_for(manager).post(
            f"/api/stores/{store.pk}/staff/", {"identifier": "ghost@example.com"}, format="json"
        )
        assert response.status_code == 404

    def test_staff_list(self, client_for, clerk, store):
        response = client_for(clerk).get(f"/api/stores/{store.pk}/staff/")
        assert response.status_code == 200
        assert len(response.data) == 3

    def test_deactivate_staff(self, client_for, owner, store, clerk):
        staff = StoreStaff.objects.get(store=store, user=clerk)
        response = client_for(owner).patch(
            f"/api/stores/{store.pk}/staff/{staff.pk}/", {"is_active": False}, format="json"
        )
        assert response.status_code == 200
        assert response.data["is_active"] is False

    def test_inactive_member_loses_access(self, client_for, store, clerk):
        StoreStaff.objects.filter(store=store, user=clerk).update(is_active=False)
        response = client_for(clerk).get(f"/api/stores/{store.pk}/staff/")
        assert response.status_code == 403

    def test_announcement_crud(self, client_for, manager, store):
        client = client_for(manager)
        response = client.post(
            f"/api/stores/{store.pk}/announcements/",
            {"title": "New stock", "body": "1oz coins arrived"},
            format="json",
        )
        assert response.status_code == 201
        announcement_id = response.data["id"]

        response = client.get(f"/api/stores/{store.pk}/announcements/active/")
        assert [row["title"] for row in response.data] == ["New stock"]

        response = client.delete(f"/api/stores/{store.pk}/announcements/{announcement_id}/")
        assert response.status_code == 204
        assert not Announcement.objects.exists()

    def test_announcement_window_validation(self, client_for, manager, store):
        now = timezone.now()
        response = client_for(manager).post(
            f"/api/stores/{store.pk}/announcements/",
            {
                "title": "Bad",
                "body": "Window",
                "visible_from": now.isoformat(),
                "visible_to": (now - timedelta(days=1)).isoformat(),
            },
            format="json",
        )
        assert response.status_code == 400
