from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import (
    IngredientViewSet,
    MenuItemViewSet,
    StockMovementListView,
    AdjustStockView,
    MenuItemAvailabilityView,
    LedgerVerificationView,
)

router = DefaultRouter()
router.register(r"ingredients", IngredientViewSet)
router.register(r"menu-items", MenuItemViewSet)

app_name = "inventory"

urlpatterns = [
    path("", include(router.urls)),
    # Ledger
    path("movements/", StockMovementListView.as_view(), name="movement-list"),
    path("stock/adjust/", AdjustStockView.as_view(), name="stock-adjust"),
    path("stock/verify/", LedgerVerificationView.as_view(), name="stock-verify"),
    # Availability
    path(
        "menu-items/<int:menu_item_id>/availability/",
        MenuItemAvailabilityView.as_view(),
        name="menu-item-availability",
    ),
]
