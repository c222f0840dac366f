from django.contrib import admin
from .models import Ingredient, MenuItem, RecipeIngredient, StockMovement


@admin.register(Ingredient)
class IngredientAdmin(admin.ModelAdmin):
    list_display = ("name", "kind", "unit", "stock_quantity", "reorder_point", "is_active")
    list_filter = ("kind", "is_active")
    search_fields = ("name",)
    # Stock only changes through the ledger
    readonly_fields = ("stock_quantity", "last_restocked_at", "created_at", "updated_at")


class RecipeIngredientInline(admin.TabularInline):
    """
    Inline admin for recipe lines, so ingredients are edited on the menu
    item page.
    """

    model = RecipeIngredient
    autocomplete_fields = ("ingredient",)
    extra = 1


@admin.register(MenuItem)
class MenuItemAdmin(admin.ModelAdmin):
    list_display = ("name", "price_minor", "is_active")
    search_fields = ("name",)
    inlines = [RecipeIngredientInline]


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = ("created_at", "ingredient", "movement_type", "quantity", "total_cost_minor", "reference_type", "reference_id")
    list_filter = ("movement_type", "reference_type")
    search_fields = ("ingredient__name", "reference_id", "reason")
    list_select_related = ("ingredient",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
