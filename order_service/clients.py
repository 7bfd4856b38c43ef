"""
This module provides clients for the Product Service, used to validate the
products referenced by an order and to look up their current name and price:
- ProductServiceClient: request/reply over RabbitMQ (default)
- HttpProductServiceClient: the same call over REST
Both honour one contract: asking for N distinct ids either returns exactly
those N products or raises. Unknown ids raise UnknownProductsFailure, anything
else going wrong on the way raises UpstreamFailure.
"""

import json
import logging
import time
import uuid
from typing import Iterable, List, Protocol

import httpx
import pika
from pydantic import ValidationError

from .config import (
    PRODUCT_SERVICE_TIMEOUT,
    PRODUCT_SERVICE_URL,
    PRODUCT_VALIDATION_QUEUE,
    RABBITMQ_HOST,
    RABBITMQ_PASSWORD,
    RABBITMQ_PORT,
    RABBITMQ_USER,
)
from .errors import UnknownProductsFailure, UpstreamFailure
from .models import Product

log = logging.getLogger(__name__)


class ProductValidator(Protocol):
    def validate_products(self, product_ids: Iterable[str]) -> List[Product]: ...


def parse_reply(requested: List[str], payload) -> List[Product]:
    """
    Checks a Product Service reply against the requested ids.

    The reply is either a bare list of products or an envelope
    {"ok": bool, "data": [...], "error": {"status", "message", "missing"}}.

    Args:
        requested (list): Distinct product ids that were sent.
        payload: Decoded JSON reply.

    Returns:
        list[Product]: One product per requested id.

    Raises:
        UnknownProductsFailure: If the service reports or omits requested ids.
        UpstreamFailure: If the reply is malformed or reports a server error.
    """
    if isinstance(payload, dict):
        if not payload.get("ok", False):
            error = payload.get("error") or {}
            if not isinstance(error, dict):
                log.error(f"Malformed error in Product Service reply: {error!r}")
                raise UpstreamFailure("Malformed Product Service reply")
            if error.get("status") in (400, 404):
                missing = error.get("missing") or requested
                raise UnknownProductsFailure(missing)
            log.error(f"Product Service reported an error: {error}")
            raise UpstreamFailure("Product Service reported an error")
        payload = payload.get("data")

    if not isinstance(payload, list):
        log.error(f"Unexpected Product Service reply: {payload!r}")
        raise UpstreamFailure("Malformed Product Service reply")

    try:
        products = [Product.model_validate(record) for record in payload]
    except ValidationError as e:
        log.error(f"Malformed product record from Product Service: {e}")
        raise UpstreamFailure("Malformed Product Service reply") from e

    by_id = {product.id: product for product in products}
    missing = [product_id for product_id in requested if product_id not in by_id]
    if missing:
        raise UnknownProductsFailure(missing)
    return [by_id[product_id] for product_id in requested]


# --- Product Client (RabbitMQ request/reply) ---
class ProductServiceClient:
    """
    Client for the Product Service over RabbitMQ.

    Every call opens its own connection with an exclusive reply queue, so a
    single instance may be shared between request threads.
    """
    def __init__(
            self,
            host: str = RABBITMQ_HOST,
            port: int = RABBITMQ_PORT,
            user: str = RABBITMQ_USER,
            password: str = RABBITMQ_PASSWORD,
            queue: str = PRODUCT_VALIDATION_QUEUE,
            timeout: float = PRODUCT_SERVICE_TIMEOUT,
    ):
        self.queue = queue
        self.timeout = timeout
        self.parameters = pika.ConnectionParameters(
            host=host,
            port=port,
            credentials=pika.PlainCredentials(user, password),
            heartbeat=60,
            blocked_connection_timeout=timeout,
            socket_timeout=timeout,
        )

    def validate_products(self, product_ids: Iterable[str]) -> List[Product]:
        """
        Sends the distinct product ids to the validation queue and waits for the reply.

        Args:
            product_ids (iterable): Product ids, duplicates allowed.

        Returns:
            list[Product]: One product per distinct id.

        Raises:
            UnknownProductsFailure: If any id is unknown to the Product Service.
            UpstreamFailure: If the broker is unreachable or no reply arrives in time.
        """
        requested = sorted(set(product_ids))
        correlation_id = str(uuid.uuid4())
        reply = {}
        connection = None

        try:
            connection = pika.BlockingConnection(self.parameters)
            channel = connection.channel()
            callback_queue = channel.queue_declare(queue='', exclusive=True).method.queue

            def on_response(ch, method, properties, body):
                if properties.correlation_id == correlation_id:
                    reply["body"] = body

            channel.basic_consume(queue=callback_queue, on_message_callback=on_response, auto_ack=True)
            channel.basic_publish(
                exchange='',
                routing_key=self.queue,
                body=json.dumps(requested),
                properties=pika.BasicProperties(
                    reply_to=callback_queue,
                    correlation_id=correlation_id,
                    content_type="application/json",
                    # A late request is useless, let the broker drop it
                    expiration=str(int(self.timeout * 1000)),
                ),
            )

            deadline = time.monotonic() + self.timeout
            while "body" not in reply:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    log.error(f"Product Service did not answer within {self.timeout}s (ids: {requested}).")
                    raise UpstreamFailure("Product Service timeout")
                connection.process_data_events(time_limit=remaining)

        except pika.exceptions.AMQPError as e:
            log.error(f"Product validation over RabbitMQ failed: {e!r}")
            raise UpstreamFailure("Product Service unreachable") from e
        finally:
            if connection and connection.is_open:
                connection.close()

        try:
            payload = json.loads(reply["body"])
        except json.JSONDecodeError as e:
            log.error(f"Invalid JSON from Product Service: {reply['body']!r}")
            raise UpstreamFailure("Malformed Product Service reply") from e
        return parse_reply(requested, payload)


# --- Product Client (REST) ---
class HttpProductServiceClient:
    """
    Client for the Product Service REST API.
    """
    def __init__(self, base_url: str = PRODUCT_SERVICE_URL, timeout: float = PRODUCT_SERVICE_TIMEOUT, transport=None):
        self.client = httpx.Client(base_url=base_url, timeout=httpx.Timeout(timeout), transport=transport)

    def close(self):
        self.client.close()

    def validate_products(self, product_ids: Iterable[str]) -> List[Product]:
        requested = sorted(set(product_ids))
        try:
            response = self.client.post("/products/validate", json={"ids": requested})
            # 400/404 carry the list of unknown ids in the body
            if response.status_code not in (400, 404):
                response.raise_for_status()
            return parse_reply(requested, response.json())
        except httpx.TimeoutException as e:
            log.error(f"Product Service timeout (ids: {requested}).")
            raise UpstreamFailure("Product Service timeout") from e
        except httpx.HTTPStatusError as e:
            log.error(f"HTTP error from Product Service: {e}")
            raise UpstreamFailure("Product Service reported an error") from e
        except httpx.HTTPError as e:
            log.error(f"Product Service unreachable: {e!r}")
            raise UpstreamFailure("Product Service unreachable") from e
        except ValueError as e:
            log.error(f"Invalid JSON from Product Service: {response.text!r}")
            raise UpstreamFailure("Malformed Product Service reply") from e
