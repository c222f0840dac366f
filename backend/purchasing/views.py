from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from .models import PurchaseOrder, Supplier
from .serializers import (
    PurchaseOrderCreateSerializer,
    PurchaseOrderSerializer,
    ReceivePurchaseOrderSerializer,
    SupplierSerializer,
)
from .services import PurchaseOrderService


class SupplierViewSet(viewsets.ModelViewSet):
    queryset = Supplier.objects.all()
    serializer_class = SupplierSerializer
    permission_classes = [permissions.IsAdminUser]


class PurchaseOrderViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    queryset = PurchaseOrder.objects.select_related("supplier").prefetch_related("items__ingredient")
    serializer_class = PurchaseOrderSerializer
    permission_classes = [permissions.IsAdminUser]

    def create(self, request, *args, **kwargs):
        serializer = PurchaseOrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        purchase_order = PurchaseOrderService.create_purchase_order(
            data["supplier"], data["items"], tax_minor=data["tax_minor"], notes=data["notes"]
        )
        return Response(PurchaseOrderSerializer(purchase_order).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="send")
    def send(self, request, pk=None):
        purchase_order = PurchaseOrderService.mark_sent(self.get_object())
        return Response(PurchaseOrderSerializer(purchase_order).data)

    @action(detail=True, methods=["post"], url_path="cancel")
    def cancel(self, request, pk=None):
        purchase_order = PurchaseOrderService.cancel(self.get_object())
        return Response(PurchaseOrderSerializer(purchase_order).data)

    @action(detail=True, methods=["post"], url_path="receive")
    def receive(self, request, pk=None):
        """Record a (possibly partial) delivery. Quantities are per delivery."""
        serializer = ReceivePurchaseOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        purchase_order = PurchaseOrderService.receive(
            self.get_object(), serializer.validated_data["items"], performed_by=request.user
        )
        return Response(PurchaseOrderSerializer(purchase_order).data)
