"""
Shared enums for the marketplace.
"""

from __future__ import annotations

from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    SHIPPING = "shipping"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

    @classmethod
    def settable(cls) -> tuple["OrderStatus", ...]:
        """Statuses a seller may move an order into."""
        return tuple(status for status in cls if status is not cls.PENDING)
