from rest_framework import serializers

from core_backend.utils import resolve_instance
from .models import Ingredient, MenuItem, RecipeIngredient, StockMovement
from .services import StockLedgerService


class IngredientSerializer(serializers.ModelSerializer):
    is_low_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = Ingredient
        fields = [
            "id",
            "name",
            "kind",
            "unit",
            "cost_per_unit_minor",
            "stock_quantity",
            "reorder_point",
            "reorder_quantity",
            "is_active",
            "is_low_stock",
            "last_restocked_at",
        ]
        read_only_fields = ["stock_quantity", "last_restocked_at"]


class StockMovementSerializer(serializers.ModelSerializer):
    ingredient_name = serializers.CharField(source="ingredient.name", read_only=True)
    performed_by = serializers.StringRelatedField()

    class Meta:
        model = StockMovement
        fields = [
            "id",
            "ingredient",
            "ingredient_name",
            "movement_type",
            "quantity",
            "unit_cost_minor",
            "total_cost_minor",
            "reason",
            "notes",
            "reference_type",
            "reference_id",
            "performed_by",
            "created_at",
        ]
        read_only_fields = fields


class RecipeIngredientSerializer(serializers.ModelSerializer):
    ingredient_name = serializers.CharField(source="ingredient.name", read_only=True)
    unit = serializers.CharField(source="ingredient.unit", read_only=True)

    class Meta:
        model = RecipeIngredient
        fields = ["id", "ingredient", "ingredient_name", "unit", "quantity", "is_optional"]


class MenuItemSerializer(serializers.ModelSerializer):
    recipe_lines = RecipeIngredientSerializer(many=True, read_only=True)

    class Meta:
        model = MenuItem
        fields = ["id", "name", "price_minor", "is_active", "recipe_lines"]


class StockAdjustmentSerializer(serializers.Serializer):
    """
    Either ``quantity`` (signed delta) or ``new_quantity`` (physical count).
    """

    ADJUSTABLE_TYPES = [
        StockMovement.MovementType.ADJUSTMENT,
        StockMovement.MovementType.PURCHASE,
        StockMovement.MovementType.INITIAL,
    ]

    ingredient_id = serializers.IntegerField()
    quantity = serializers.DecimalField(
        max_digits=12, decimal_places=3, required=False, allow_null=True
    )
    new_quantity = serializers.DecimalField(
        max_digits=12, decimal_places=3, required=False, allow_null=True
    )
    movement_type = serializers.ChoiceField(
        choices=ADJUSTABLE_TYPES, default=StockMovement.MovementType.ADJUSTMENT
    )
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True)

    def validate(self, data):
        has_delta = data.get("quantity") is not None
        has_count = data.get("new_quantity") is not None
        if has_delta == has_count:
            raise serializers.ValidationError(
                "Provide exactly one of 'quantity' or 'new_quantity'."
            )
        return data

    def save(self, performed_by=None):
        ingredient = resolve_instance(
            Ingredient, self.validated_data["ingredient_id"], entity="Ingredient"
        )
        movement = StockLedgerService.adjust_stock(
            ingredient,
            new_quantity=self.validated_data.get("new_quantity"),
            quantity=self.validated_data.get("quantity"),
            movement_type=self.validated_data["movement_type"],
            reason=self.validated_data.get("reason", ""),
            performed_by=performed_by,
        )
        return ingredient, movement
