from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import PurchaseOrderViewSet, SupplierViewSet

router = DefaultRouter()
router.register(r"suppliers", SupplierViewSet)
router.register(r"purchase-orders", PurchaseOrderViewSet)

app_name = "purchasing"

urlpatterns = [
    path("", include(router.urls)),
]
