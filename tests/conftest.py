"""
Pytest configuration and fixtures for the gold trading storefront.
"""

from decimal import Decimal

import pytest

from apps.core.models import Store, StoreStaff
from apps.inventory.models import Product, StoreInventory
from apps.pricing.models import LivePrice
from apps.wallets import services as wallet_services


@pytest.fixture
def api_client():
    """
    Fixture for Django REST framework API client.
    """
    from rest_framework.test import APIClient

    return APIClient()


@pytest.fixture
def client_for(api_client):
    """Return an API client authenticated as the given user."""

    def _client(user):
        api_client.force_authenticate(user=user)
        return api_client

    return _client


@pytest.fixture
def make_user(django_user_model):
    def _make(username, email=None, phone="", first_name="", last_name="", **extra):
        return django_user_model.objects.create_user(
            username=username,
            email=email or f"{username}@example.com",
            password="testpass123",
            phone=phone,
            first_name=first_name,
            last_name=last_name,
            **extra,
        )

    return _make


@pytest.fixture
def customer(make_user):
    return make_user(
        "amira",
        email="amira@example.com",
        phone="091-234 5678",
        first_name="Amira",
        last_name="Salem",
    )


@pytest.fixture
def recipient(make_user):
    return make_user(
        "omar", email="omar@example.com", phone="0929876543", first_name="Omar", last_name="Fathi"
    )


@pytest.fixture
def owner(make_user):
    return make_user("owner", first_name="Store", last_name="Owner")


@pytest.fixture
def manager(make_user):
    return make_user("manager", first_name="Store", last_name="Manager")


@pytest.fixture
def clerk(make_user):
    return make_user("clerk", first_name="Counter", last_name="Clerk")


@pytest.fixture
def store(owner, manager, clerk):
    """Tripoli store with an owner, a manager and a clerk."""
    store = Store.objects.create(
        name="Tripoli Gold Center", city="Tripoli", address="Omar Mukhtar St", branch_code="TRP"
    )
    StoreStaff.objects.create(store=store, user=owner, role=StoreStaff.OWNER)
    StoreStaff.objects.create(store=store, user=manager, role=StoreStaff.MANAGER)
    StoreStaff.objects.create(store=store, user=clerk, role=StoreStaff.CLERK)
    return store


@pytest.fixture
def other_owner(make_user):
    return make_user("benghazi_owner")


@pytest.fixture
def other_store(other_owner):
    store = Store.objects.create(name="Benghazi Gold", city="Benghazi", branch_code="BNG")
    StoreStaff.objects.create(store=store, user=other_owner, role=StoreStaff.OWNER)
    return store


@pytest.fixture
def live_prices(db):
    return {
        "gold": LivePrice.objects.create(
            metal_type=LivePrice.GOLD, price_lyd_per_gram=Decimal("500.00")
        ),
        "silver": LivePrice.objects.create(
            metal_type=LivePrice.SILVER, price_lyd_per_gram=Decimal("6.00")
        ),
    }


@pytest.fixture
def gold_bar(db):
    """10g gold bar priced at 5,000 LYD (500 LYD per gram when bought digitally)."""
    return Product.objects.create(
        name="10g Gold Bar",
        type="gold",
        carat=24,
        weight_grams=Decimal("10.000"),
        base_price_lyd=Decimal("5000.00"),
    )


@pytest.fixture
def digital_gold(db):
    return Product.objects.create(
        name="Digital Gold",
        type="gold",
        carat=24,
        weight_grams=Decimal("1.000"),
        base_price_lyd=Decimal("500.00"),
    )


@pytest.fixture
def stock(store, gold_bar):
    """Five 10g gold bars in stock at the Tripoli store."""
    return StoreInventory.objects.create(store=store, product=gold_bar, quantity=5)


@pytest.fixture
def fund():
    """Credit a wallet for a user."""

    def _fund(user, amount, currency="LYD"):
        return wallet_services.adjust_wallet_balance(user, currency, Decimal(amount))

    return _fund
