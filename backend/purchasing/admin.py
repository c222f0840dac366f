from django.contrib import admin
from .models import PurchaseOrder, PurchaseOrderItem, Supplier


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ("name", "contact_name", "email", "phone", "is_active")
    search_fields = ("name", "contact_name")


class PurchaseOrderItemInline(admin.TabularInline):
    model = PurchaseOrderItem
    extra = 0
    autocomplete_fields = ("ingredient",)
    # Receiving goes through PurchaseOrderService.receive
    readonly_fields = ("received_quantity",)


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(admin.ModelAdmin):
    list_display = ("order_number", "supplier", "status", "order_date", "total_minor", "received_at")
    list_filter = ("status", "supplier")
    search_fields = ("order_number", "supplier__name")
    readonly_fields = ("status", "received_at", "received_by")
    inlines = [PurchaseOrderItemInline]
