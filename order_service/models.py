"""
models.py — Data Models for Order Management

This module defines the data structures exchanged with callers of the order
service and with the Product Service. It uses Pydantic models to ensure type
safety and automatic validation of incoming data.

Models:
    - OrderStatus: Lifecycle status of an order.
    - OrderItemRequest / CreateOrderRequest: Payload for creating an order.
    - OrderPaginationRequest: Paging and filtering of the order list.
    - ChangeOrderStatusRequest: Payload for a status transition.
    - Product: A product record returned by product validation.
    - OrderItemResponse / OrderResponse: An order as returned to callers.
    - PaginationMeta / PaginatedOrders: A page of orders plus metadata.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

# Column limits of the order tables
PRODUCT_ID_MAX_LENGTH = 64
PRICE_SCALE = 4
PRICE_QUANTUM = Decimal("0.0001")


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class OrderItemRequest(BaseModel):
    """
    A single line of a new order.

    Attributes:
        productId (str): Identifier of the product in the Product Service.
        quantity (int): Ordered quantity. Must be greater than zero.
    """
    productId: str = Field(..., min_length=1, max_length=PRODUCT_ID_MAX_LENGTH)
    quantity: int = Field(..., gt=0)


class CreateOrderRequest(BaseModel):
    items: List[OrderItemRequest] = Field(..., min_length=1)


class OrderPaginationRequest(BaseModel):
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1)
    status: Optional[OrderStatus] = None


class ChangeOrderStatusRequest(BaseModel):
    status: OrderStatus


class Product(BaseModel):
    """
    A product record as returned by the Product Service.

    Attributes:
        id (str): Product identifier.
        name (str): Display name, used to enrich order items.
        price (Decimal): Current unit price. Snapshotted into new order items.
    """
    id: str
    name: str
    price: Decimal = Field(..., ge=0)


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    productId: str
    quantity: int
    price: Decimal
    name: Optional[str] = None


class OrderResponse(BaseModel):
    """
    An order as returned to callers.

    `items` is empty for orders returned by the paginated list, which does not
    load line items.
    """
    model_config = ConfigDict(from_attributes=True)

    id: str
    totalAmount: Decimal
    totalItems: int
    status: OrderStatus
    paid: bool
    createdAt: datetime
    version: int
    items: List[OrderItemResponse] = []


class PaginationMeta(BaseModel):
    total: int
    current_page: int
    last_page: int


class PaginatedOrders(BaseModel):
    data: List[OrderResponse]
    meta: PaginationMeta
