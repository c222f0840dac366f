"""
Root conftest.py for all backend tests.

This file makes fixtures available to all test files across all apps.
"""
import pytest
from decimal import Decimal

from core_backend.config import app_settings


# ============================================================================
# AUTO-USE FIXTURES (Run automatically for every test)
# ============================================================================

@pytest.fixture(autouse=True)
def reset_app_settings():
    """
    Reload POS_CORE settings after each test.

    Tests that override POS_CORE with override_settings would otherwise leave
    their values cached in the app_settings singleton.
    """
    yield
    app_settings.reload()


# ============================================================================
# USER / API CLIENT FIXTURES
# ============================================================================

@pytest.fixture
def staff_user(db, django_user_model):
    return django_user_model.objects.create_user(
        username="manager", password="test-pass-123", is_staff=True
    )


@pytest.fixture
def cashier_user(db, django_user_model):
    return django_user_model.objects.create_user(username="cashier", password="test-pass-123")


@pytest.fixture
def api_client():
    """
    Provide DRF API client for API tests.

    Usage:
        def test_my_api(api_client):
            response = api_client.get('/api/health/')
            assert response.status_code == 200
    """
    from rest_framework.test import APIClient
    return APIClient()


@pytest.fixture
def authenticated_client(api_client, staff_user):
    """API client logged in as a staff user."""
    api_client.force_authenticate(user=staff_user)
    return api_client


@pytest.fixture
def cashier_client(api_client, cashier_user):
    """API client logged in as a non-staff user."""
    api_client.force_authenticate(user=cashier_user)
    return api_client


# ============================================================================
# INVENTORY FIXTURES
# ============================================================================

@pytest.fixture
def make_ingredient(db):
    """
    Factory for ingredients with opening stock recorded through the ledger.

    Usage:
        flour = make_ingredient("Flour", stock=10, unit="g")
    """
    from inventory.models import Ingredient, StockMovement
    from inventory.services import StockLedgerService

    def _make(name, stock=0, unit="g", cost_per_unit_minor=1, reorder_point=0, **kwargs):
        ingredient = Ingredient.objects.create(
            name=name,
            unit=unit,
            cost_per_unit_minor=cost_per_unit_minor,
            reorder_point=Decimal(str(reorder_point)),
            **kwargs,
        )
        if stock:
            StockLedgerService.record_movement(
                ingredient, StockMovement.MovementType.INITIAL, stock, reason="Opening stock"
            )
        return ingredient

    return _make


@pytest.fixture
def make_menu_item(db):
    """
    Factory for menu items with recipes.

    Usage:
        pancakes = make_menu_item("Pancakes", [(flour, "4"), (syrup, "1", True)])
    """
    from inventory.models import MenuItem, RecipeIngredient

    def _make(name, recipe=(), price_minor=800):
        menu_item = MenuItem.objects.create(name=name, price_minor=price_minor)
        for line in recipe:
            ingredient, quantity = line[0], line[1]
            is_optional = line[2] if len(line) > 2 else False
            RecipeIngredient.objects.create(
                menu_item=menu_item,
                ingredient=ingredient,
                quantity=Decimal(str(quantity)),
                is_optional=is_optional,
            )
        return menu_item

    return _make


@pytest.fixture
def flour(make_ingredient):
    """Flour with 10 g in stock."""
    return make_ingredient("Flour", stock=10, unit="g", cost_per_unit_minor=2)


@pytest.fixture
def pancakes(make_menu_item, flour):
    """Pancakes need 4 g of flour per serving."""
    return make_menu_item("Pancakes", [(flour, "4")])


# ============================================================================
# ORDER / FLOOR FIXTURES
# ============================================================================

@pytest.fixture
def open_order(db):
    from orders.services import OrderService
    return OrderService.create_order()


@pytest.fixture
def table(db):
    """Table T1 with four open seats."""
    from floor.services import TableService
    return TableService.create_table("T1", 4)


@pytest.fixture
def seats(table):
    return list(table.seats.order_by("number"))


@pytest.fixture
def game(db):
    from games.models import Game
    return Game.objects.create(name="Catan", min_players=3, max_players=4)


@pytest.fixture
def supplier(db):
    from purchasing.models import Supplier
    return Supplier.objects.create(name="Mill & Co", contact_name="Jo", email="orders@mill.example")
