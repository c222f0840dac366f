from django.contrib import admin
from .models import Game, GameRental, GameSession


@admin.register(Game)
class GameAdmin(admin.ModelAdmin):
    list_display = ("name", "min_players", "max_players", "is_available")
    list_filter = ("is_available",)
    search_fields = ("name",)
    readonly_fields = ("is_available",)


@admin.register(GameSession)
class GameSessionAdmin(admin.ModelAdmin):
    list_display = ("game", "table", "started_at", "ended_at")
    list_select_related = ("game", "table")
    readonly_fields = ("game", "table", "started_at", "ended_at")

    # Sessions are opened through GameSessionService.assign
    def has_add_permission(self, request):
        return False


@admin.register(GameRental)
class GameRentalAdmin(admin.ModelAdmin):
    list_display = ("game", "customer_name", "status", "checked_out_at", "expected_return_at", "returned_at")
    list_filter = ("status",)
    list_select_related = ("game",)
    search_fields = ("customer_name", "game__name")
    readonly_fields = ("game", "status", "checked_out_at", "returned_at", "checked_out_by")

    # Rentals go through GameRentalService so the game hold stays consistent
    def has_add_permission(self, request):
        return False
