"""
workflow.py — Core Orchestration Logic for Order Management

This module contains the coordinator that owns every order operation. It
combines the Product Service (cross-service validation and pricing) with the
local order database.

Create workflow:
1. Collect the distinct product ids of the requested items
2. Validate them with one round trip to the Product Service
3. Price each line with the returned product price, sum up the totals
4. Store order and items in one transaction
5. Attach product names to the items of the result (not stored)

Status changes go through `change_status`, the only way an order is modified
after creation.
"""

import logging
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, Optional, Union

from .clients import ProductValidator
from .config import PRODUCT_PLACEHOLDER_NAME
from .db import Order
from .errors import (
    OrderNotFound,
    OrderServiceError,
    UnknownProductsFailure,
    UpstreamFailure,
    ValidationFailure,
)
from .models import (
    PRICE_QUANTUM,
    PRODUCT_ID_MAX_LENGTH,
    CreateOrderRequest,
    OrderItemResponse,
    OrderResponse,
    OrderStatus,
    PaginatedOrders,
)
from .pagination import build_meta, offset
from .repository import OrderRepository
from .status import StatusPolicy

log = logging.getLogger(__name__)


def as_utc(moment: datetime) -> datetime:
    # SQLite hands back naive datetimes; stored values are always UTC
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def to_response(order: Order, names: Optional[Dict[str, Optional[str]]] = None, with_items: bool = True) -> OrderResponse:
    """
    Converts a stored order into the caller-facing model.

    Args:
        order (Order): The persisted order.
        names (dict): Product name per product id, used for enrichment.
        with_items (bool): False for orders loaded without their items.
    """
    names = names or {}
    items = []
    if with_items:
        items = [
            OrderItemResponse(
                productId=item.product_id,
                quantity=item.quantity,
                price=item.price,
                name=names.get(item.product_id),
            )
            for item in order.items
        ]
    return OrderResponse(
        id=order.id,
        totalAmount=order.total_amount,
        totalItems=order.total_items,
        status=OrderStatus(order.status),
        paid=order.paid,
        createdAt=as_utc(order.created_at),
        version=order.version,
        items=items,
    )


class OrderCoordinator:
    """
    Creates, lists, fetches and updates orders.

    Args:
        repository (OrderRepository): Access to the order database.
        products (ProductValidator): Client for the Product Service.
        status_policy (StatusPolicy): Allowed status transitions. Defaults to the open policy.
        placeholder_name (str | None): Name shown for items whose product no longer exists.
    """

    def __init__(
            self,
            repository: OrderRepository,
            products: ProductValidator,
            status_policy: Optional[StatusPolicy] = None,
            placeholder_name: Optional[str] = PRODUCT_PLACEHOLDER_NAME,
    ):
        self.repository = repository
        self.products = products
        self.status_policy = status_policy or StatusPolicy()
        self.placeholder_name = placeholder_name

    def create(self, request: CreateOrderRequest) -> OrderResponse:
        """
        Executes the create workflow for a single order.

        Args:
            request (CreateOrderRequest): The requested items.

        Returns:
            OrderResponse: The stored order, items enriched with product names.

        Raises:
            ValidationFailure: Empty item list, non-positive quantity or oversized product id.
            UnknownProductsFailure: At least one product id does not exist.
            UpstreamFailure: Product Service unreachable, timed out or inconsistent.
            PersistenceFailure: The order could not be stored. Nothing was written.
        """
        items = request.items
        if not items:
            raise ValidationFailure("An order needs at least one item")
        for item in items:
            if item.quantity <= 0:
                raise ValidationFailure(f"Quantity of product {item.productId} must be greater than zero")
            if not item.productId or len(item.productId) > PRODUCT_ID_MAX_LENGTH:
                raise ValidationFailure(f"Product id must be 1 to {PRODUCT_ID_MAX_LENGTH} characters long")

        product_ids = {item.productId for item in items}
        log.info(f"[New order] Validating {len(product_ids)} product(s) with the Product Service...")

        try:
            products = {product.id: product for product in self.products.validate_products(product_ids)}

            total_amount = Decimal("0")
            total_items = 0
            lines = []
            for item in items:
                product = products.get(item.productId)
                if product is None:
                    log.error(f"[New order] Product {item.productId} missing from a successful validation reply.")
                    raise UpstreamFailure("Product Service reply does not match the request")
                # Snapshot at the stored scale so totals match the persisted lines
                price = product.price.quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP)
                total_amount += price * item.quantity
                total_items += item.quantity
                lines.append({"product_id": item.productId, "price": price, "quantity": item.quantity})

            order = self.repository.create(total_amount, total_items, lines)
        except OrderServiceError as e:
            log.warning(f"[New order] Creation failed ({e.kind.value}): {e.message}")
            raise

        log.info(f"[Order: {order.id}] Created with {total_items} item(s), total {total_amount}.")
        return to_response(order, {product_id: product.name for product_id, product in products.items()})

    def find_all(self, page: int = 1, limit: int = 10, status: Optional[OrderStatus] = None) -> PaginatedOrders:
        """
        Returns one page of orders, oldest first, optionally filtered by status.

        Orders in the list do not carry their items.
        """
        if page < 1 or limit < 1:
            raise ValidationFailure("page and limit must be at least 1")

        total = self.repository.count(status)
        orders = self.repository.find_page(offset(page, limit), limit, status)
        return PaginatedOrders(
            data=[to_response(order, with_items=False) for order in orders],
            meta=build_meta(total, page, limit),
        )

    def find_one(self, order_id: str) -> OrderResponse:
        """
        Fetches an order with its items and their current product names.

        Raises:
            OrderNotFound: If no order with this id exists.
            UpstreamFailure: If the Product Service cannot be reached.
        """
        order = self.repository.find_by_id(order_id)
        if order is None:
            log.info(f"[Order: {order_id}] Not found.")
            raise OrderNotFound(order_id)
        return to_response(order, self._product_names(order))

    def change_status(self, order_id: str, status: Union[OrderStatus, str]) -> OrderResponse:
        """
        Moves an order to a new status.

        Setting the current status again returns the order without writing.

        Raises:
            ValidationFailure: Unknown status value or transition not allowed.
            OrderNotFound: If no order with this id exists.
            ConflictFailure: If the order changed while this update was running.
        """
        try:
            status = OrderStatus(status)
        except ValueError:
            raise ValidationFailure(f"Invalid status: {status}") from None

        current = self.find_one(order_id)
        if current.status == status:
            log.info(f"[Order: {order_id}] Already {status.value}, nothing to do.")
            return current

        self.status_policy.check(current.status, status)
        order = self.repository.update_status(order_id, status, expected_version=current.version)
        log.info(f"[Order: {order_id}] Status changed {current.status.value} -> {status.value}.")
        return to_response(order, {item.productId: item.name for item in current.items})

    def _product_names(self, order: Order) -> Dict[str, Optional[str]]:
        """
        Looks up the current names of the products of an order.

        Products deleted since the order was placed get the placeholder name.
        This costs a second round trip for the products that still exist.
        """
        product_ids = {item.product_id for item in order.items}
        if not product_ids:
            return {}

        try:
            return self._lookup_names(product_ids)
        except UnknownProductsFailure as e:
            log.warning(f"[Order: {order.id}] Products no longer available: {e.missing}. Using placeholder name.")
            names = {product_id: self.placeholder_name for product_id in e.missing}
            remaining = product_ids - set(e.missing)

        if remaining:
            try:
                names.update(self._lookup_names(remaining))
            except UnknownProductsFailure as e:
                log.error(f"[Order: {order.id}] Product lookup still failing after retry: {e.message}")
                raise UpstreamFailure("Product names could not be resolved") from e
        return names

    def _lookup_names(self, product_ids: Iterable[str]) -> Dict[str, str]:
        return {product.id: product.name for product in self.products.validate_products(product_ids)}
