from rest_framework import serializers

from inventory.models import MenuItem
from orders.models import Order, OrderEvent, OrderItem


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = [
            "id",
            "order",
            "kind",
            "menu_item",
            "name",
            "quantity",
            "unit_price_minor",
            "tax_minor",
            "total_minor",
            "meta",
            "created_at",
        ]
        read_only_fields = fields


class OrderEventSerializer(serializers.ModelSerializer):
    performed_by = serializers.StringRelatedField()

    class Meta:
        model = OrderEvent
        fields = ["id", "kind", "payload", "performed_by", "created_at"]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    total_minor = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "status",
            "channel",
            "payment_method",
            "amount_paid_minor",
            "opened_at",
            "closed_at",
            "closed_by",
            "items",
            "total_minor",
        ]
        read_only_fields = fields

    def get_total_minor(self, obj):
        # Uses the prefetched items when present
        return sum(item.total_minor for item in obj.items.all())


class OrderCreateSerializer(serializers.Serializer):
    channel = serializers.ChoiceField(choices=Order.Channel.choices, default=Order.Channel.TABLE)


class AddItemSerializer(serializers.Serializer):
    """
    Payload for adding an item. ``name`` and ``unit_price_minor`` default to
    the menu item's when ``menu_item_id`` is given.
    """

    kind = serializers.ChoiceField(choices=OrderItem.Kind.choices, default=OrderItem.Kind.REGULAR)
    menu_item_id = serializers.IntegerField(required=False, allow_null=True)
    name = serializers.CharField(max_length=200, required=False)
    quantity = serializers.IntegerField(default=1)
    unit_price_minor = serializers.IntegerField(required=False)
    tax_minor = serializers.IntegerField(default=0)
    meta = serializers.JSONField(required=False, default=dict)

    def validate(self, data):
        menu_item_id = data.get("menu_item_id")
        if menu_item_id is not None:
            menu_item = MenuItem.objects.filter(pk=menu_item_id).first()
            if menu_item is None:
                raise serializers.ValidationError({"menu_item_id": "Menu item not found."})
            data["menu_item"] = menu_item
            data.setdefault("name", menu_item.name)
            data.setdefault("unit_price_minor", menu_item.price_minor)
        else:
            data["menu_item"] = None

        if "name" not in data:
            raise serializers.ValidationError({"name": "This field is required without a menu item."})
        if "unit_price_minor" not in data:
            raise serializers.ValidationError(
                {"unit_price_minor": "This field is required without a menu item."}
            )
        return data


class UpdateOrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.OrderStatus.choices)


class SettlePaymentSerializer(serializers.Serializer):
    method = serializers.CharField(max_length=30)
    amount_minor = serializers.IntegerField(required=False, allow_null=True, min_value=0)
