"""
repository.py — Data access for orders

Wraps every database interaction of the order service. SQLAlchemy errors are
logged here with full detail and re-raised as PersistenceFailure, so callers
only deal with the service's own error kinds.
"""

import logging
from decimal import Decimal
from typing import List, Optional, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from .db import Database, Order, OrderItem
from .errors import ConflictFailure, OrderNotFound, PersistenceFailure
from .models import OrderStatus

log = logging.getLogger(__name__)


class OrderRepository:
    """
    Persistence access for orders and their line items.

    Args:
        db (Database): The database handle created at startup.
    """

    def __init__(self, db: Database):
        self.db = db

    def create(self, total_amount: Decimal, total_items: int, lines: Sequence[dict]) -> Order:
        """
        Stores an order together with all its items in one transaction.

        Args:
            total_amount (Decimal): Sum of price × quantity over all lines.
            total_items (int): Sum of quantities over all lines.
            lines (list[dict]): Items with 'product_id', 'price' and 'quantity'.

        Returns:
            Order: The persisted order, items loaded.

        Raises:
            PersistenceFailure: If the write fails. Nothing is stored in that case.
        """
        try:
            with self.db.session() as session:
                order = Order(
                    total_amount=total_amount,
                    total_items=total_items,
                    status=OrderStatus.PENDING.value,
                    paid=False,
                    items=[
                        OrderItem(product_id=line["product_id"], price=line["price"], quantity=line["quantity"])
                        for line in lines
                    ],
                )
                session.add(order)
                session.flush()
                return order
        except SQLAlchemyError as e:
            log.error(f"Order could not be stored: {e}", exc_info=True)
            raise PersistenceFailure("Order could not be stored") from e

    def count(self, status: Optional[OrderStatus] = None) -> int:
        query = select(func.count()).select_from(Order)
        if status is not None:
            query = query.where(Order.status == status.value)
        try:
            with self.db.session() as session:
                return session.scalar(query)
        except SQLAlchemyError as e:
            log.error(f"Counting orders failed: {e}", exc_info=True)
            raise PersistenceFailure("Counting orders failed") from e

    def find_page(self, offset: int, limit: int, status: Optional[OrderStatus] = None) -> List[Order]:
        """
        Returns one page of orders, oldest first.

        Ties on created_at are broken by id so page boundaries stay stable.
        Items are not loaded.
        """
        query = select(Order).order_by(Order.created_at.asc(), Order.id.asc()).offset(offset).limit(limit)
        if status is not None:
            query = query.where(Order.status == status.value)
        try:
            with self.db.session() as session:
                return list(session.scalars(query))
        except SQLAlchemyError as e:
            log.error(f"Listing orders failed: {e}", exc_info=True)
            raise PersistenceFailure("Listing orders failed") from e

    def find_by_id(self, order_id: str) -> Optional[Order]:
        try:
            with self.db.session() as session:
                return self._load(session, order_id)
        except SQLAlchemyError as e:
            log.error(f"[Order: {order_id}] Loading order failed: {e}", exc_info=True)
            raise PersistenceFailure("Loading order failed") from e

    def update_status(self, order_id: str, status: OrderStatus, expected_version: int) -> Order:
        """
        Sets a new status if the order still has the version the caller read.

        Raises:
            OrderNotFound: If the order no longer exists.
            ConflictFailure: If another update happened in between.
            PersistenceFailure: If the database rejects the update.
        """
        statement = (
            update(Order)
            .where(Order.id == order_id, Order.version == expected_version)
            .values(status=status.value, version=Order.version + 1)
            .execution_options(synchronize_session=False)
        )
        try:
            with self.db.session() as session:
                result = session.execute(statement)
                if result.rowcount == 0:
                    if session.get(Order, order_id) is None:
                        raise OrderNotFound(order_id)
                    raise ConflictFailure(f"Order with id:{order_id} was modified concurrently, retry")
                return self._load(session, order_id)
        except SQLAlchemyError as e:
            log.error(f"[Order: {order_id}] Status update failed: {e}", exc_info=True)
            raise PersistenceFailure("Status update failed") from e

    @staticmethod
    def _load(session, order_id: str) -> Optional[Order]:
        query = select(Order).options(selectinload(Order.items)).where(Order.id == order_id)
        return session.scalars(query).first()
