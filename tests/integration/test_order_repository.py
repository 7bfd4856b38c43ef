from decimal import Decimal

import pytest

from order_service.db import Base
from order_service.errors import ConflictFailure, OrderNotFound, PersistenceFailure
from order_service.models import OrderStatus


def lines(*items):
    return [{"product_id": product_id, "price": Decimal(price), "quantity": qty} for product_id, price, qty in items]


def test_create_stores_order_with_items(repository):
    order = repository.create(Decimal("13.00"), 3, lines(("p1", "5.00", 2), ("p2", "3.00", 1)))

    stored = repository.find_by_id(order.id)
    assert stored.total_amount == Decimal("13.00")
    assert stored.total_items == 3
    assert stored.status == OrderStatus.PENDING.value
    assert stored.version == 1
    assert [(item.product_id, item.price, item.quantity) for item in stored.items] == [
        ("p1", Decimal("5.00"), 2),
        ("p2", Decimal("3.00"), 1),
    ]


def test_create_is_atomic(repository):
    broken = lines(("p1", "5.00", 1)) + [{"product_id": "p2", "price": None, "quantity": 1}]

    with pytest.raises(PersistenceFailure):
        repository.create(Decimal("5.00"), 2, broken)

    assert repository.count() == 0


def test_find_by_id_of_unknown_order(repository):
    assert repository.find_by_id("nope") is None


def test_count_and_page_with_status_filter(repository):
    orders = [repository.create(Decimal("1.00"), 1, lines(("p1", "1.00", 1))) for _ in range(5)]
    repository.update_status(orders[2].id, OrderStatus.CANCELLED, expected_version=1)

    assert repository.count() == 5
    assert repository.count(OrderStatus.CANCELLED) == 1
    assert [order.id for order in repository.find_page(0, 10, OrderStatus.CANCELLED)] == [orders[2].id]
    assert len(repository.find_page(3, 10)) == 2


def test_pages_follow_creation_order(repository):
    orders = [repository.create(Decimal("1.00"), 1, lines(("p1", "1.00", 1))) for _ in range(4)]
    expected = sorted(orders, key=lambda order: (order.created_at, order.id))

    first = repository.find_page(0, 2)
    second = repository.find_page(2, 2)

    assert [order.id for order in first + second] == [order.id for order in expected]


def test_update_status_bumps_version(repository):
    order = repository.create(Decimal("1.00"), 1, lines(("p1", "1.00", 1)))

    updated = repository.update_status(order.id, OrderStatus.PAID, expected_version=1)

    assert updated.status == OrderStatus.PAID.value
    assert updated.version == 2
    assert len(updated.items) == 1


def test_stale_update_is_a_conflict(repository):
    order = repository.create(Decimal("1.00"), 1, lines(("p1", "1.00", 1)))
    repository.update_status(order.id, OrderStatus.PAID, expected_version=1)

    with pytest.raises(ConflictFailure):
        repository.update_status(order.id, OrderStatus.CANCELLED, expected_version=1)

    assert repository.find_by_id(order.id).status == OrderStatus.PAID.value


def test_update_of_missing_order(repository):
    with pytest.raises(OrderNotFound):
        repository.update_status("nope", OrderStatus.PAID, expected_version=1)


def test_database_errors_become_persistence_failures(db, repository):
    Base.metadata.drop_all(db.engine)

    with pytest.raises(PersistenceFailure):
        repository.count()
