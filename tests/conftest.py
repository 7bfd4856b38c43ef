from decimal import Decimal
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from order_service.db import Database
from order_service.errors import UnknownProductsFailure
from order_service.main import create_app
from order_service.models import Product
from order_service.repository import OrderRepository
from order_service.status import StatusPolicy
from order_service.workflow import OrderCoordinator


def pytest_collection_modifyitems(config, items):
    """Mark tests based on their directory."""
    for item in items:
        test_path = str(Path(item.fspath))
        if "/unit/" in test_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)


class FakeProductService:
    """
    In-memory stand-in for the Product Service client.

    Follows the real contract: all requested ids or UnknownProductsFailure.
    Set `fail_with` to make every call raise that error.
    """

    def __init__(self, products):
        self.products = {product.id: product for product in products}
        self.calls = []
        self.fail_with = None

    def validate_products(self, product_ids):
        requested = sorted(set(product_ids))
        self.calls.append(requested)
        if self.fail_with is not None:
            raise self.fail_with
        missing = [product_id for product_id in requested if product_id not in self.products]
        if missing:
            raise UnknownProductsFailure(missing)
        return [self.products[product_id] for product_id in requested]


@pytest.fixture
def db():
    database = Database("sqlite://")
    database.init()
    yield database
    database.close()


@pytest.fixture
def repository(db):
    return OrderRepository(db)


@pytest.fixture
def products():
    return FakeProductService([
        Product(id="p1", name="Keyboard", price=Decimal("5.0")),
        Product(id="p2", name="Mouse", price=Decimal("3.0")),
        Product(id="p3", name="Monitor", price=Decimal("120.50")),
    ])


@pytest.fixture
def coordinator(repository, products):
    return OrderCoordinator(repository, products, placeholder_name="Unavailable product")


@pytest.fixture
def strict_coordinator(repository, products):
    return OrderCoordinator(repository, products, status_policy=StatusPolicy.strict())


@pytest.fixture
def client(coordinator):
    with TestClient(create_app(coordinator)) as test_client:
        yield test_client
