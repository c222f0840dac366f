"""
Orders services package.

- OrderService: order lifecycle (create, status transitions, settle, void)
- OrderItemService: item admission and removal against the stock ledger
- OrderEventService: the append-only order event trail
"""

from .event_service import OrderEventService
from .order_service import OrderService
from .item_service import OrderItemService

__all__ = [
    'OrderEventService',
    'OrderService',
    'OrderItemService',
]
