from django.shortcuts import get_object_or_404
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.response import Response
import logging

from orders.models import Order, OrderItem
from orders.serializers import AddItemSerializer, OrderItemSerializer
from orders.services import OrderItemService

logger = logging.getLogger(__name__)


class OrderItemViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    A ViewSet for the items within an order.
    """

    queryset = OrderItem.objects.all()
    serializer_class = OrderItemSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_serializer_class(self):
        if self.action == "create":
            return AddItemSerializer
        return OrderItemSerializer

    def get_queryset(self):
        """
        Filter items based on the order_pk provided in the URL.
        """
        return super().get_queryset().filter(order__pk=self.kwargs["order_pk"])

    def create(self, request, *args, **kwargs):
        order = get_object_or_404(Order, pk=self.kwargs["order_pk"])
        serializer = AddItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        item = OrderItemService.add_item(
            order,
            kind=data["kind"],
            name=data["name"],
            quantity=data["quantity"],
            unit_price_minor=data["unit_price_minor"],
            tax_minor=data["tax_minor"],
            meta=data.get("meta"),
            menu_item=data["menu_item"],
            performed_by=request.user,
        )
        return Response(OrderItemSerializer(item).data, status=status.HTTP_201_CREATED)

    def destroy(self, request, *args, **kwargs):
        item = self.get_object()
        OrderItemService.remove_item(item, performed_by=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)
