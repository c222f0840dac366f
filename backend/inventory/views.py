from dataclasses import asdict

from rest_framework import generics, permissions, status, viewsets
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import Ingredient, MenuItem, StockMovement
from .serializers import (
    IngredientSerializer,
    MenuItemSerializer,
    StockAdjustmentSerializer,
    StockMovementSerializer,
)
from .services import RecipeAvailabilityService, StockLedgerService


class IngredientViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = Ingredient.objects.all()
    serializer_class = IngredientSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        queryset = super().get_queryset()
        if self.request.query_params.get("low_stock") in ("1", "true"):
            queryset = StockLedgerService.low_stock_ingredients()
        return queryset


class MenuItemViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = MenuItem.objects.prefetch_related("recipe_lines__ingredient")
    serializer_class = MenuItemSerializer
    permission_classes = [permissions.IsAuthenticated]


class StockMovementListView(generics.ListAPIView):
    """The ledger, newest first. Filter with ``?ingredient=<id>``."""

    serializer_class = StockMovementSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        queryset = StockMovement.objects.select_related("ingredient", "performed_by")
        ingredient_id = self.request.query_params.get("ingredient")
        if ingredient_id:
            queryset = queryset.filter(ingredient_id=ingredient_id)
        return queryset


# --- Service-driven Views ---


class AdjustStockView(APIView):
    """
    Manual stock correction.
    - quantity: signed delta.
    - new_quantity: physical count, converted to a delta.
    """

    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = StockAdjustmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ingredient, movement = serializer.save(performed_by=request.user)
        return Response(
            {
                "status": "success",
                "message": "Stock adjusted successfully." if movement else "Stock already matches count.",
                "ingredient": IngredientSerializer(ingredient).data,
                "movement": StockMovementSerializer(movement).data if movement else None,
            },
            status=status.HTTP_200_OK,
        )


class MenuItemAvailabilityView(APIView):
    """
    Availability of a menu item. With ``?quantity=N`` also reports whether N
    servings can be made and which ingredients fall short.
    """

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, menu_item_id):
        availability = RecipeAvailabilityService.menu_item_status(menu_item_id)
        data = asdict(availability)

        quantity = request.query_params.get("quantity")
        if quantity is not None:
            result = RecipeAvailabilityService.check_available(menu_item_id, quantity)
            data["requested_quantity"] = result.requested_quantity
            data["can_fulfill"] = result.available
            data["shortfalls"] = [s.to_dict() for s in result.shortfalls]

        return Response(data)


class LedgerVerificationView(APIView):
    """Compare every cached stock quantity against its movement log."""

    permission_classes = [permissions.IsAdminUser]

    def get(self, request):
        discrepancies = StockLedgerService.verify_projection()
        return Response(
            {
                "consistent": not discrepancies,
                "discrepancies": [
                    {
                        "ingredient_id": d.ingredient_id,
                        "ingredient_name": d.ingredient_name,
                        "cached_quantity": str(d.cached_quantity),
                        "ledger_quantity": str(d.ledger_quantity),
                        "difference": str(d.difference),
                    }
                    for d in discrepancies
                ],
            }
        )
