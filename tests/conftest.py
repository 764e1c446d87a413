from datetime import datetime, timedelta, timezone
from itertools import count

import pytest
from fastapi.testclient import TestClient

from cart import CartRegistry
from catalog import DEFAULT_PRODUCTS, Catalog
from memory_store import InMemoryCatalogStore, InMemoryOrderStore
from notifications import FakeEmailAdapter, OrderNotifier
from orders import OrderIntake
from review import OrderReview
from schemas import Product
from settings import Settings

ADMIN_SECRET = "s3cret-admin"
OWNER_EMAIL = "owner@example.com"


@pytest.fixture()
def clock():
    """A clock that moves one second forward on every call."""
    start = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
    ticks = count()
    return lambda: start + timedelta(seconds=next(ticks))


@pytest.fixture()
def catalog_store():
    return InMemoryCatalogStore([Product(**p) for p in DEFAULT_PRODUCTS])


@pytest.fixture()
def order_store():
    return InMemoryOrderStore()


@pytest.fixture()
def catalog(catalog_store):
    return Catalog(catalog_store)


@pytest.fixture()
def email():
    return FakeEmailAdapter()


@pytest.fixture()
def notifier(email):
    return OrderNotifier(email, OWNER_EMAIL)


@pytest.fixture()
def intake(catalog, order_store, notifier, clock):
    return OrderIntake(catalog, order_store, notifier, clock=clock)


@pytest.fixture()
def review(order_store, catalog_store, clock):
    return OrderReview(order_store, catalog_store, clock=clock)


@pytest.fixture()
def settings():
    return Settings(ADMIN_SECRET_KEY=ADMIN_SECRET, NOTIFY_EMAIL=OWNER_EMAIL, ENVIRONMENT="test")


@pytest.fixture()
def cart_registry():
    return CartRegistry()


@pytest.fixture()
def client(catalog_store, order_store, notifier, settings, cart_registry):
    import main

    main.app.dependency_overrides[main.get_catalog_store] = lambda: catalog_store
    main.app.dependency_overrides[main.get_order_store] = lambda: order_store
    main.app.dependency_overrides[main.get_notifier] = lambda: notifier
    main.app.dependency_overrides[main.get_settings] = lambda: settings
    main.app.dependency_overrides[main.get_cart_registry] = lambda: cart_registry

    yield TestClient(main.app)

    main.app.dependency_overrides.clear()


@pytest.fixture()
def admin_headers():
    return {"X-Admin-Token": ADMIN_SECRET}


@pytest.fixture()
def checkout_payload():
    def _payload(**overrides):
        payload = {
            "minecraftUsername": "Steve_123",
            "edition": "java",
            "transactionReference": "412345678901",
            "items": [{"id": "rank-knight", "quantity": 2}],
        }
        payload.update(overrides)
        return payload

    return _payload
