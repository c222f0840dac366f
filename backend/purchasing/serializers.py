from rest_framework import serializers

from .models import PurchaseOrder, PurchaseOrderItem, Supplier


class SupplierSerializer(serializers.ModelSerializer):
    class Meta:
        model = Supplier
        fields = ["id", "name", "contact_name", "email", "phone", "notes", "is_active"]


class PurchaseOrderItemSerializer(serializers.ModelSerializer):
    ingredient_name = serializers.CharField(source="ingredient.name", read_only=True)
    unit = serializers.CharField(source="ingredient.unit", read_only=True)
    remaining_quantity = serializers.DecimalField(max_digits=12, decimal_places=3, read_only=True)

    class Meta:
        model = PurchaseOrderItem
        fields = [
            "id",
            "ingredient",
            "ingredient_name",
            "unit",
            "quantity",
            "received_quantity",
            "remaining_quantity",
            "unit_cost_minor",
            "total_minor",
            "notes",
        ]
        read_only_fields = fields


class PurchaseOrderSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source="supplier.name", read_only=True)
    items = PurchaseOrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = PurchaseOrder
        fields = [
            "id",
            "order_number",
            "supplier",
            "supplier_name",
            "status",
            "order_date",
            "expected_date",
            "subtotal_minor",
            "tax_minor",
            "total_minor",
            "notes",
            "received_at",
            "received_by",
            "items",
        ]
        read_only_fields = fields


class PurchaseOrderLineInputSerializer(serializers.Serializer):
    ingredient = serializers.IntegerField()
    quantity = serializers.DecimalField(max_digits=12, decimal_places=3)
    unit_cost_minor = serializers.IntegerField(min_value=0, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)


class PurchaseOrderCreateSerializer(serializers.Serializer):
    supplier = serializers.IntegerField()
    tax_minor = serializers.IntegerField(min_value=0, default=0)
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    items = PurchaseOrderLineInputSerializer(many=True)


class ReceiveLineSerializer(serializers.Serializer):
    line_id = serializers.IntegerField()
    received_quantity = serializers.DecimalField(max_digits=12, decimal_places=3)
    notes = serializers.CharField(required=False, allow_blank=True)


class ReceivePurchaseOrderSerializer(serializers.Serializer):
    items = ReceiveLineSerializer(many=True)
