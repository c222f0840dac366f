"""
Order Lifecycle Tests

Status transitions, settlement and voiding.
"""
from decimal import Decimal

import pytest

from core_backend.exceptions import InvalidChoiceError, InvalidQuantityError, InvalidTransitionError
from orders.models import Order, OrderEvent, OrderItem
from orders.services import OrderItemService, OrderService
from orders.signals import order_paid


@pytest.mark.django_db
class TestOrderTransitions:

    def test_create_order(self, db):
        order = OrderService.create_order(Order.Channel.KIOSK)

        assert order.status == Order.OrderStatus.OPEN
        assert order.channel == Order.Channel.KIOSK
        assert order.is_open

    def test_unknown_channel(self, db):
        with pytest.raises(InvalidChoiceError) as exc_info:
            OrderService.create_order("drive_thru")

        assert exc_info.value.code == "invalid_choice"
        assert exc_info.value.details["field"] == "order channel"
        assert Order.Channel.KIOSK in exc_info.value.details["choices"]
        assert not Order.objects.exists()

    def test_reopen_from_awaiting_payment(self, open_order, staff_user):
        OrderService.mark_awaiting_payment(open_order, performed_by=staff_user)
        assert open_order.status == Order.OrderStatus.AWAITING_PAYMENT

        OrderService.transition_status(open_order, Order.OrderStatus.OPEN)
        assert open_order.status == Order.OrderStatus.OPEN

        changes = [
            (e.payload["from"], e.payload["to"])
            for e in open_order.events.filter(kind=OrderEvent.Kind.STATUS_CHANGED)
        ]
        assert changes == [("open", "awaiting_payment"), ("awaiting_payment", "open")]

    @pytest.mark.parametrize("final_status", [Order.OrderStatus.PAID, Order.OrderStatus.VOID])
    def test_final_statuses(self, open_order, final_status):
        OrderService.transition_status(open_order, final_status)
        assert open_order.is_closed
        assert open_order.closed_at is not None

        for target in Order.OrderStatus.values:
            with pytest.raises(InvalidTransitionError):
                OrderService.transition_status(open_order, target)

    def test_same_status_is_refused(self, open_order):
        with pytest.raises(InvalidTransitionError):
            OrderService.transition_status(open_order, Order.OrderStatus.OPEN)

    def test_unknown_status(self, open_order):
        with pytest.raises(InvalidTransitionError):
            OrderService.transition_status(open_order, "lost")

    def test_ready_for_checkout(self, open_order, db):
        other = OrderService.create_order()
        OrderService.mark_awaiting_payment(other)

        assert list(OrderService.orders_ready_for_checkout()) == [other]


@pytest.mark.django_db
class TestSettlePayment:

    def _add_items(self, order):
        OrderItemService.add_item(order, OrderItem.Kind.RETAIL, "Dice", 2, 450)
        OrderItemService.add_item(order, OrderItem.Kind.REGULAR, "Latte", 1, 500, tax_minor=50)

    def test_settle_exact_total(self, open_order, staff_user):
        self._add_items(open_order)

        OrderService.settle_payment(open_order, "card", performed_by=staff_user)

        assert open_order.status == Order.OrderStatus.PAID
        assert open_order.amount_paid_minor == 1450
        assert open_order.payment_method == "card"
        assert open_order.closed_by == staff_user
        event = open_order.events.get(kind=OrderEvent.Kind.PAYMENT_COMPLETED)
        assert event.payload == {"method": "card", "amountMinor": 1450, "totalMinor": 1450}

    def test_underpayment_refused(self, open_order):
        self._add_items(open_order)

        with pytest.raises(InvalidQuantityError):
            OrderService.settle_payment(open_order, "cash", amount_minor=1000)

        open_order.refresh_from_db()
        assert open_order.status == Order.OrderStatus.OPEN

    def test_overpayment_recorded(self, open_order):
        self._add_items(open_order)
        OrderService.settle_payment(open_order, "cash", amount_minor=2000)
        assert open_order.amount_paid_minor == 2000

    def test_settle_from_awaiting_payment(self, open_order):
        OrderService.mark_awaiting_payment(open_order)
        OrderService.settle_payment(open_order, "cash")
        assert open_order.status == Order.OrderStatus.PAID

    def test_cannot_settle_twice(self, open_order):
        OrderService.settle_payment(open_order, "cash")
        with pytest.raises(InvalidTransitionError):
            OrderService.settle_payment(open_order, "cash")

    def test_paid_signal(self, open_order):
        received = []

        def listener(sender, order=None, **kwargs):
            received.append((order.pk, kwargs["method"], kwargs["amount_minor"]))

        order_paid.connect(listener)
        try:
            OrderService.settle_payment(open_order, "cash", amount_minor=0)
        finally:
            order_paid.disconnect(listener)

        assert received == [(open_order.pk, "cash", 0)]


@pytest.mark.django_db
class TestVoidOrder:

    def test_void_returns_stock(self, open_order, pancakes, flour, staff_user):
        OrderItemService.add_item(open_order, OrderItem.Kind.REGULAR, "Pancakes", 2, 800, menu_item=pancakes)
        OrderItemService.add_item(open_order, OrderItem.Kind.RETAIL, "Dice", 1, 450)

        OrderService.void_order(open_order, performed_by=staff_user)

        flour.refresh_from_db()
        assert flour.stock_quantity == Decimal("10")
        assert open_order.status == Order.OrderStatus.VOID
        event = open_order.events.get(kind=OrderEvent.Kind.ORDER_VOIDED)
        assert event.payload["returns"] == [{"ingredientId": flour.pk, "quantity": "8.000"}]

    def test_void_paid_order_refused(self, open_order, pancakes, flour):
        OrderItemService.add_item(open_order, OrderItem.Kind.REGULAR, "Pancakes", 1, 800, menu_item=pancakes)
        OrderService.settle_payment(open_order, "cash")

        with pytest.raises(InvalidTransitionError):
            OrderService.void_order(open_order)

        flour.refresh_from_db()
        assert flour.stock_quantity == Decimal("6")
