"""
errors.py — Error taxonomy of the Order Service

Every failure raised by the coordinator or its adapters carries an ErrorKind.
`to_http()` is the single place where kinds are translated into what a caller
gets to see: client errors keep their message, infrastructure failures are
reduced to a generic "Check logs" while the details stay in the service log.
"""

from enum import Enum
from typing import Iterable, Tuple


GENERIC_MESSAGE = "Check logs"


class ErrorKind(str, Enum):
    VALIDATION = "VALIDATION"
    UNKNOWN_PRODUCT = "UNKNOWN_PRODUCT"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    UPSTREAM = "UPSTREAM"
    PERSISTENCE = "PERSISTENCE"


class OrderServiceError(Exception):
    kind = ErrorKind.VALIDATION

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailure(OrderServiceError):
    """Malformed input or a forbidden status transition."""
    kind = ErrorKind.VALIDATION


class UnknownProductsFailure(ValidationFailure):
    """One or more requested product ids do not exist in the Product Service."""
    kind = ErrorKind.UNKNOWN_PRODUCT

    def __init__(self, missing: Iterable[str], message: str = ""):
        self.missing = sorted(set(missing))
        super().__init__(message or f"Products not found: {', '.join(self.missing)}")


class OrderNotFound(OrderServiceError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order with id:{order_id} not found")


class ConflictFailure(OrderServiceError):
    """The order was modified concurrently since it was read."""
    kind = ErrorKind.CONFLICT


class UpstreamFailure(OrderServiceError):
    """Product Service unreachable, timed out or answered garbage."""
    kind = ErrorKind.UPSTREAM


class PersistenceFailure(OrderServiceError):
    kind = ErrorKind.PERSISTENCE


_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.UNKNOWN_PRODUCT: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.UPSTREAM: 502,
    ErrorKind.PERSISTENCE: 500,
}

_INTERNAL_KINDS = {ErrorKind.UPSTREAM, ErrorKind.PERSISTENCE}


def to_http(error: OrderServiceError) -> Tuple[int, dict]:
    """
    Translates a domain error into an HTTP status code and response body.

    Args:
        error (OrderServiceError): The failure raised by the coordinator.

    Returns:
        tuple: (status_code, body) where body holds `status`, `kind` and `message`.
    """
    status_code = _STATUS_BY_KIND.get(error.kind, 500)
    message = GENERIC_MESSAGE if error.kind in _INTERNAL_KINDS else error.message
    body = {"status": status_code, "kind": error.kind.value, "message": message}
    if isinstance(error, UnknownProductsFailure):
        body["missing"] = error.missing
    return status_code, body
