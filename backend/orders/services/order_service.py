from django.db import transaction
from django.db.models import Sum
from django.utils import timezone
import logging

from core_backend.exceptions import (
    InvalidChoiceError,
    InvalidQuantityError,
    InvalidTransitionError,
    surfaces_persistence_errors,
)
from core_backend.utils import resolve_instance
from orders.models import Order, OrderEvent
from orders.signals import order_paid, order_voided
from .event_service import OrderEventService
from .item_service import OrderItemService

logger = logging.getLogger(__name__)


class OrderService:
    """Core service for order lifecycle management - creating, transitioning, settling, voiding."""

    # Valid status transitions for order state machine
    VALID_STATUS_TRANSITIONS = {
        Order.OrderStatus.OPEN: [
            Order.OrderStatus.AWAITING_PAYMENT,
            Order.OrderStatus.PAID,
            Order.OrderStatus.VOID,
        ],
        Order.OrderStatus.AWAITING_PAYMENT: [
            Order.OrderStatus.OPEN,  # Reopened to add more items
            Order.OrderStatus.PAID,
            Order.OrderStatus.VOID,
        ],
        Order.OrderStatus.PAID: [],
        Order.OrderStatus.VOID: [],
    }

    @staticmethod
    def _lock(order) -> Order:
        return resolve_instance(
            Order,
            order.pk if isinstance(order, Order) else order,
            entity="Order",
            queryset=Order.objects.select_for_update(),
        )

    @staticmethod
    def _sync(order, locked: Order):
        if isinstance(order, Order) and order is not locked:
            order.refresh_from_db()

    @staticmethod
    def create_order(channel: str = Order.Channel.TABLE) -> Order:
        if channel not in Order.Channel.values:
            raise InvalidChoiceError("order channel", channel, Order.Channel.values)
        order = Order.objects.create(channel=channel)
        logger.info(f"Opened order {order.pk} ({channel})")
        return order

    @staticmethod
    def _apply_transition(locked: Order, new_status: str, performed_by=None) -> Order:
        if new_status not in Order.OrderStatus.values:
            raise InvalidTransitionError("order", locked.status, new_status,
                                         f"'{new_status}' is not a valid order status.")

        if new_status not in OrderService.VALID_STATUS_TRANSITIONS.get(locked.status, []):
            raise InvalidTransitionError("order", locked.status, new_status)
        # Awaiting payment means every seat session on the order has stopped
        if new_status == Order.OrderStatus.AWAITING_PAYMENT and OrderService.has_open_seat_sessions(locked):
            raise InvalidTransitionError(
                "order",
                locked.status,
                new_status,
                f"Order {locked.pk} still has open seat sessions",
            )

        previous = locked.status
        locked.status = new_status
        update_fields = ["status", "updated_at"]
        if new_status in (Order.OrderStatus.PAID, Order.OrderStatus.VOID):
            locked.closed_at = timezone.now()
            locked.closed_by = performed_by
            update_fields += ["closed_at", "closed_by"]
        locked.save(update_fields=update_fields)

        OrderEventService.record(
            locked,
            OrderEvent.Kind.STATUS_CHANGED,
            {"from": previous, "to": new_status},
            performed_by=performed_by,
        )
        logger.info(f"Order {locked.pk}: {previous} -> {new_status}")
        return locked

    @staticmethod
    @surfaces_persistence_errors
    @transaction.atomic
    def transition_status(order, new_status: str, performed_by=None) -> Order:
        """
        Moves an order along its lifecycle, checking the transition table.
        Paid and void orders are final, and an order with a seat session
        still running cannot await payment.
        """
        locked = OrderService._lock(order)
        OrderService._apply_transition(locked, new_status, performed_by)
        OrderService._sync(order, locked)
        return locked

    @staticmethod
    def has_open_seat_sessions(order) -> bool:
        order_id = order.pk if isinstance(order, Order) else order
        # Seat sessions live in the floor app and point back at orders
        from floor.models import SeatSession

        return SeatSession.objects.filter(order_id=order_id, ended_at__isnull=True).exists()

    @staticmethod
    @surfaces_persistence_errors
    @transaction.atomic
    def mark_awaiting_payment(order, performed_by=None) -> Order:
        locked = OrderService._lock(order)
        OrderService._apply_transition(locked, Order.OrderStatus.AWAITING_PAYMENT, performed_by)
        OrderService._sync(order, locked)
        return locked

    @staticmethod
    def order_total_minor(order) -> int:
        order_id = order.pk if isinstance(order, Order) else order
        total = Order.objects.filter(pk=order_id).aggregate(total=Sum("items__total_minor"))["total"]
        return total or 0

    @staticmethod
    @surfaces_persistence_errors
    @transaction.atomic
    def settle_payment(order, method: str, amount_minor: int = None, performed_by=None) -> Order:
        """
        Record that an order has been paid in full. Capturing the payment
        happens elsewhere; this only closes the order and releases its seats.
        """
        locked = OrderService._lock(order)
        total = OrderService.order_total_minor(locked)
        if amount_minor is None:
            amount_minor = total
        if amount_minor < total:
            raise InvalidQuantityError(
                amount_minor,
                f"Payment of {amount_minor} does not cover order total {total}",
            )

        OrderService._apply_transition(locked, Order.OrderStatus.PAID, performed_by)
        locked.payment_method = method
        locked.amount_paid_minor = amount_minor
        locked.save(update_fields=["payment_method", "amount_paid_minor", "updated_at"])

        OrderEventService.record(
            locked,
            OrderEvent.Kind.PAYMENT_COMPLETED,
            {"method": method, "amountMinor": amount_minor, "totalMinor": total},
            performed_by=performed_by,
        )
        order_paid.send(sender=Order, order=locked, method=method, amount_minor=amount_minor)

        OrderService._sync(order, locked)
        return locked

    @staticmethod
    @surfaces_persistence_errors
    @transaction.atomic
    def void_order(order, performed_by=None) -> Order:
        """
        Nullify an unpaid order. Every recipe-backed item returns its
        ingredients to stock.
        """
        locked = OrderService._lock(order)
        if Order.OrderStatus.VOID not in OrderService.VALID_STATUS_TRANSITIONS.get(locked.status, []):
            raise InvalidTransitionError("order", locked.status, Order.OrderStatus.VOID)

        returns = []
        for item in locked.items.all():
            returns.extend(
                OrderItemService.return_stock(
                    item, reason=f"Void: order {locked.pk}", performed_by=performed_by
                )
            )

        OrderService._apply_transition(locked, Order.OrderStatus.VOID, performed_by)
        OrderEventService.record(
            locked, OrderEvent.Kind.ORDER_VOIDED, {"returns": returns}, performed_by=performed_by
        )
        order_voided.send(sender=Order, order=locked)

        OrderService._sync(order, locked)
        return locked

    @staticmethod
    def orders_ready_for_checkout():
        """Orders whose seats have all ended and that are waiting to be paid."""
        return Order.objects.filter(status=Order.OrderStatus.AWAITING_PAYMENT).order_by("opened_at")
