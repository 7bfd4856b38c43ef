"""
main.py — FastAPI Entry Point for the Order Service

This module provides the REST API interface of the order service. It is the
only place where internal error kinds are turned into HTTP responses.

Responsibilities:
    • Wire database, Product Service client and coordinator at startup
    • Create, list, fetch orders and change their status via HTTP
    • Map service errors to status codes without leaking internals
    • Provide system health information
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .clients import HttpProductServiceClient, ProductServiceClient
from .config import DATABASE_URL, ORDER_STATUS_POLICY, PRODUCT_CLIENT
from .db import Database
from .errors import ErrorKind, OrderServiceError, to_http
from .logging_config import get_logger, setup_logging
from .models import (
    ChangeOrderStatusRequest,
    CreateOrderRequest,
    OrderResponse,
    OrderStatus,
    PaginatedOrders,
)
from .repository import OrderRepository
from .status import StatusPolicy
from .workflow import OrderCoordinator

log = get_logger(__name__)


def build_coordinator(db: Database) -> OrderCoordinator:
    """
    Assembles the coordinator from configuration.

    PRODUCT_CLIENT selects the transport to the Product Service
    ('rabbitmq' or 'http'), ORDER_STATUS_POLICY the transition rules.
    """
    if PRODUCT_CLIENT == "http":
        products = HttpProductServiceClient()
    else:
        products = ProductServiceClient()
    return OrderCoordinator(OrderRepository(db), products, StatusPolicy.from_name(ORDER_STATUS_POLICY))


def get_coordinator(request: Request) -> OrderCoordinator:
    return request.app.state.coordinator


def create_app(coordinator: Optional[OrderCoordinator] = None) -> FastAPI:
    """
    Creates the FastAPI application.

    Args:
        coordinator (OrderCoordinator | None): Pre-built coordinator. When None,
            the database and clients are created on startup and released on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = None
        if app.state.coordinator is None:
            log.info("Order service starting...")
            db = Database(DATABASE_URL)
            db.init()
            app.state.coordinator = build_coordinator(db)
            log.info(f"Order service ready (product client: {PRODUCT_CLIENT}, status policy: {ORDER_STATUS_POLICY}).")
        yield
        if db is not None:
            db.close()
            log.info("Order service stopped.")

    app = FastAPI(title="Order Service", lifespan=lifespan)
    app.state.coordinator = coordinator

    # --- Error translation ---
    @app.exception_handler(OrderServiceError)
    async def handle_service_error(request: Request, exc: OrderServiceError) -> JSONResponse:
        status_code, body = to_http(exc)
        if exc.kind in (ErrorKind.UPSTREAM, ErrorKind.PERSISTENCE):
            log.error(f"{request.method} {request.url.path} failed: {exc.kind.value} - {exc.message}")
        else:
            log.info(f"{request.method} {request.url.path} rejected: {exc.kind.value} - {exc.message}")
        return JSONResponse(status_code=status_code, content=body)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        body = {
            "status": 400,
            "kind": ErrorKind.VALIDATION.value,
            "message": "Invalid request",
            "details": jsonable_errors(exc),
        }
        return JSONResponse(status_code=400, content=body)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        log.critical(f"Unexpected error on {request.method} {request.url.path}: {exc}", exc_info=exc)
        return JSONResponse(status_code=500, content={"status": 500, "message": "Internal server error"})

    # --- Orders ---
    @app.post("/orders", response_model=OrderResponse, status_code=201)
    def create_order(order: CreateOrderRequest, coordinator: OrderCoordinator = Depends(get_coordinator)):
        """
        Creates an order after validating its products with the Product Service.

        Returns the stored order, items enriched with product names.
        """
        return coordinator.create(order)

    @app.get("/orders", response_model=PaginatedOrders)
    def list_orders(
            page: int = Query(1, ge=1),
            limit: int = Query(10, ge=1),
            status: Optional[OrderStatus] = None,
            coordinator: OrderCoordinator = Depends(get_coordinator),
    ):
        return coordinator.find_all(page=page, limit=limit, status=status)

    @app.get("/orders/{order_id}", response_model=OrderResponse)
    def get_order(order_id: str, coordinator: OrderCoordinator = Depends(get_coordinator)):
        return coordinator.find_one(order_id)

    @app.patch("/orders/{order_id}/status", response_model=OrderResponse)
    def change_order_status(
            order_id: str,
            change: ChangeOrderStatusRequest,
            coordinator: OrderCoordinator = Depends(get_coordinator),
    ):
        return coordinator.change_status(order_id, change.status)

    # --- Health Check ---
    @app.get("/health")
    def health_check():
        return {"status": "ok"}

    return app


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may hold exception instances, which JSONResponse cannot encode
    return [{key: value for key, value in error.items() if key != "ctx"} for error in exc.errors()]


setup_logging()
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
