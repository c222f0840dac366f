from django.contrib import admin
from .models import Seat, SeatSession, Table


class SeatInline(admin.TabularInline):
    model = Seat
    extra = 0
    fields = ("number", "status")
    readonly_fields = ("status",)


@admin.register(Table)
class TableAdmin(admin.ModelAdmin):
    list_display = ("name", "capacity", "status")
    list_filter = ("status",)
    search_fields = ("name",)
    # Derived from the seats
    readonly_fields = ("status",)
    inlines = [SeatInline]


@admin.register(SeatSession)
class SeatSessionAdmin(admin.ModelAdmin):
    list_display = ("id", "seat", "order", "started_at", "ended_at", "created_at")
    list_filter = ("ended_at",)
    list_select_related = ("seat__table", "order")
    readonly_fields = ("seat", "order", "started_at", "ended_at", "created_at")
