"""
Recipe Availability Tests

Servings a menu item can make from current stock, and which ingredients
fall short for a requested quantity.
"""
from decimal import Decimal

import pytest
from django.test import override_settings

from core_backend.config import app_settings
from core_backend.exceptions import InvalidQuantityError, NotFoundError
from inventory.services import (
    MenuItemAvailability,
    RecipeAvailabilityService,
    StockLedgerService,
)


@pytest.mark.django_db
class TestAvailableServings:

    def test_flour_example(self, pancakes):
        """10 g of flour at 4 g per serving makes two servings"""
        assert RecipeAvailabilityService.available_servings(pancakes) == 2

        result = RecipeAvailabilityService.check_available(pancakes, 3)
        assert not result.available
        assert len(result.shortfalls) == 1
        shortfall = result.shortfalls[0]
        assert shortfall.ingredient_name == "Flour"
        assert shortfall.have == Decimal("10")
        assert shortfall.need == Decimal("12")

        assert RecipeAvailabilityService.check_available(pancakes, 2).available

    def test_minimum_across_ingredients(self, make_ingredient, make_menu_item, flour):
        milk = make_ingredient("Milk", stock="7.5", unit="ml")
        crepes = make_menu_item("Crepes", [(flour, "2"), (milk, "2.5")])

        # flour: 10 // 2 = 5, milk: 7.5 // 2.5 = 3
        assert RecipeAvailabilityService.available_servings(crepes) == 3

    def test_every_shortfall_is_reported(self, make_ingredient, make_menu_item, flour):
        eggs = make_ingredient("Eggs", stock=1, unit="each")
        cake = make_menu_item("Cake", [(flour, "6"), (eggs, "2")])

        result = RecipeAvailabilityService.check_available(cake, 2)

        assert {s.ingredient_name for s in result.shortfalls} == {"Flour", "Eggs"}

    def test_optional_lines_do_not_gate(self, make_ingredient, make_menu_item, flour):
        syrup = make_ingredient("Syrup", stock=0, unit="ml")
        waffles = make_menu_item("Waffles", [(flour, "5"), (syrup, "10", True)])

        assert RecipeAvailabilityService.available_servings(waffles) == 2
        assert RecipeAvailabilityService.check_available(waffles, 2).available

    def test_no_recipe_is_unconstrained(self, make_menu_item):
        tea = make_menu_item("Tea")

        assert RecipeAvailabilityService.available_servings(tea) is None
        assert RecipeAvailabilityService.check_available(tea, 500).available

    def test_negative_stock_counts_as_zero(self, pancakes, flour):
        StockLedgerService.adjust_stock(flour, new_quantity=-4)

        assert RecipeAvailabilityService.available_servings(pancakes) == 0

    def test_lines_can_be_locked(self, pancakes):
        lines = RecipeAvailabilityService.required_lines(pancakes, lock=True)
        assert [line.ingredient.name for line in lines] == ["Flour"]

    @pytest.mark.parametrize("quantity", [0, -1, "1.5", "two", None])
    def test_bad_requested_quantity(self, pancakes, quantity):
        with pytest.raises(InvalidQuantityError):
            RecipeAvailabilityService.check_available(pancakes, quantity)

    def test_unknown_menu_item(self, db):
        with pytest.raises(NotFoundError):
            RecipeAvailabilityService.available_servings(424242)


@pytest.mark.django_db
class TestMenuItemStatus:

    def test_low_stock_at_threshold(self, pancakes):
        status = RecipeAvailabilityService.menu_item_status(pancakes)

        assert status.status == MenuItemAvailability.LOW_STOCK
        assert status.max_servings == 2
        assert status.limiting_ingredient == "Flour"

    def test_available_above_threshold(self, pancakes):
        with override_settings(POS_CORE={"LOW_STOCK_SERVINGS": 1}):
            app_settings.reload()
            status = RecipeAvailabilityService.menu_item_status(pancakes)

        assert status.status == MenuItemAvailability.AVAILABLE

    def test_out_of_stock(self, pancakes, flour):
        StockLedgerService.adjust_stock(flour, new_quantity="3.999")

        status = RecipeAvailabilityService.menu_item_status(pancakes)

        assert status.status == MenuItemAvailability.OUT_OF_STOCK
        assert status.max_servings == 0

    def test_no_recipe(self, make_menu_item):
        status = RecipeAvailabilityService.menu_item_status(make_menu_item("Water"))

        assert status.status == MenuItemAvailability.AVAILABLE
        assert status.max_servings is None
        assert status.limiting_ingredient is None
