"""
status.py — Order status transition rules

Two policies are available:
    • open   — any status may follow any other (default)
    • strict — PENDING → PAID → DELIVERED, cancellation only before delivery
"""

from typing import Dict, Optional, Set

from .errors import ValidationFailure
from .models import OrderStatus

_STRICT_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PAID, OrderStatus.CANCELLED},
    OrderStatus.PAID: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}


class StatusPolicy:
    """
    Decides whether an order may move from one status to another.

    Args:
        transitions (dict | None): Allowed target statuses per current status.
            None allows every transition.
    """

    def __init__(self, transitions: Optional[Dict[OrderStatus, Set[OrderStatus]]] = None):
        self.transitions = transitions

    @classmethod
    def strict(cls) -> "StatusPolicy":
        return cls(_STRICT_TRANSITIONS)

    @classmethod
    def from_name(cls, name: str) -> "StatusPolicy":
        if name == "strict":
            return cls.strict()
        if name == "open":
            return cls()
        raise ValueError(f"Unknown status policy: {name!r}")

    def check(self, current: OrderStatus, desired: OrderStatus) -> None:
        """
        Raises ValidationFailure if `desired` may not follow `current`.
        """
        if self.transitions is None:
            return
        if desired not in self.transitions.get(current, set()):
            raise ValidationFailure(f"Status change from {current.value} to {desired.value} is not allowed")
