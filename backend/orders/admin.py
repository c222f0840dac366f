from django.contrib import admin
from .models import Order, OrderEvent, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ("kind", "name", "quantity", "unit_price_minor", "tax_minor", "total_minor", "meta")
    readonly_fields = fields
    can_delete = False

    # Items go through OrderItemService so stock stays in step
    def has_add_permission(self, request, obj=None):
        return False


class OrderEventInline(admin.TabularInline):
    model = OrderEvent
    extra = 0
    fields = ("created_at", "kind", "payload", "performed_by")
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Admin configuration for the Order model. Read-only: status changes go
    through OrderService.
    """

    list_display = ("id", "status", "channel", "opened_at", "closed_at", "payment_method")
    list_filter = ("status", "channel")
    readonly_fields = ("status", "channel", "payment_method", "amount_paid_minor", "opened_at", "closed_at", "closed_by")
    inlines = [OrderItemInline, OrderEventInline]

    def has_add_permission(self, request):
        return False
