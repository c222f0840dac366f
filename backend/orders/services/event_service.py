import logging

from orders.models import Order, OrderEvent

logger = logging.getLogger(__name__)


class OrderEventService:
    """Appends to an order's event trail. Events are never edited."""

    @staticmethod
    def record(order: Order, kind: str, payload: dict = None, performed_by=None) -> OrderEvent:
        event = OrderEvent.objects.create(
            order=order,
            kind=kind,
            payload=payload or {},
            performed_by=performed_by,
        )
        logger.debug(f"Order {order.pk}: {kind} {event.payload}")
        return event

    @staticmethod
    def find_item_added(order_item_id, order_id=None):
        """The ``item.added`` event for an order item, or None."""
        events = OrderEvent.objects.filter(
            kind=OrderEvent.Kind.ITEM_ADDED, payload__itemId=order_item_id
        )
        if order_id is not None:
            events = events.filter(order_id=order_id)
        return events.order_by("-created_at", "-id").first()
