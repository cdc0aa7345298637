from decimal import Decimal
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from sweet_kiosk.api import create_app
from sweet_kiosk.catalog import SweetCatalog
from sweet_kiosk.config import Settings
from sweet_kiosk.models import Sweet
from sweet_kiosk.orders import OrderService
from sweet_kiosk.store import Store


@pytest.fixture
def store():
    s = Store("sqlite://")
    s.create_schema()
    yield s
    s.close()


@pytest.fixture
def catalog(store):
    return SweetCatalog(store)


@pytest.fixture
def sweets(catalog):
    return SimpleNamespace(
        cake=catalog.add("Test Chocolate Cake", "Chocolate-Based", Decimal("15.5"), Decimal("50")),
        cookies=catalog.add("Test Vanilla Cookies", "Flour-Based", Decimal("8.25"), Decimal("25")),
        low=catalog.add("Test Low Stock Item", "Fusion", Decimal("5"), Decimal("2")),
    )


@pytest.fixture
def service(store):
    return OrderService(store)


@pytest.fixture
def stock(store):
    def _stock(sweet_id: int) -> Decimal:
        with store.session() as session:
            return session.get(Sweet, sweet_id).quantity

    return _stock


@pytest.fixture
def client(store):
    app = create_app(Settings(database_url="sqlite://"), store=store)
    with TestClient(app) as c:
        yield c
