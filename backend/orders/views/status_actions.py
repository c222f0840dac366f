from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
import logging

from orders.models import Order
from orders.serializers import (
    OrderEventSerializer,
    OrderSerializer,
    SettlePaymentSerializer,
    UpdateOrderStatusSerializer,
)
from orders.services import OrderService

logger = logging.getLogger(__name__)


class StatusActionsMixin:
    """
    Mixin for order status transition actions

    This mixin provides action methods for OrderViewSet. Service errors are
    rendered by the project's exception handler.
    """

    @action(detail=True, methods=["post"], url_path="status")
    def update_status(self, request: Request, pk=None) -> Response:
        order = self.get_object()
        serializer = UpdateOrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        new_status = serializer.validated_data["status"]

        if new_status == Order.OrderStatus.AWAITING_PAYMENT:
            order = OrderService.mark_awaiting_payment(order, performed_by=request.user)
        elif new_status == Order.OrderStatus.VOID:
            order = OrderService.void_order(order, performed_by=request.user)
        else:
            order = OrderService.transition_status(order, new_status, performed_by=request.user)
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["post"], url_path="settle")
    def settle(self, request: Request, pk=None) -> Response:
        """Record settlement of an order. No payment is captured here."""
        order = self.get_object()
        serializer = SettlePaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = OrderService.settle_payment(
            order,
            serializer.validated_data["method"],
            amount_minor=serializer.validated_data.get("amount_minor"),
            performed_by=request.user,
        )
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["post"], url_path="void")
    def void(self, request: Request, pk=None) -> Response:
        order = OrderService.void_order(self.get_object(), performed_by=request.user)
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["get"], url_path="events")
    def events(self, request: Request, pk=None) -> Response:
        order = self.get_object()
        return Response(OrderEventSerializer(order.events.all(), many=True).data)

    @action(detail=False, methods=["get"], url_path="ready-for-checkout")
    def ready_for_checkout(self, request: Request) -> Response:
        orders = OrderService.orders_ready_for_checkout().prefetch_related("items")
        return Response(OrderSerializer(orders, many=True).data)
