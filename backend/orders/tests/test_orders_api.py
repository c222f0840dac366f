"""
Orders API Integration Tests
"""
from decimal import Decimal

import pytest
from rest_framework import status

from floor.services import SeatService
from orders.models import Order, OrderItem
from orders.services import OrderItemService, OrderService


@pytest.mark.django_db
class TestOrderEndpoints:

    def test_create_order(self, authenticated_client):
        response = authenticated_client.post("/api/orders/", {"channel": "kiosk"}, format="json")

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["status"] == "open"
        assert response.data["channel"] == "kiosk"
        assert response.data["total_minor"] == 0

    def test_filter_by_status(self, authenticated_client, open_order):
        paid = OrderService.create_order()
        OrderService.settle_payment(paid, "cash")

        response = authenticated_client.get("/api/orders/?status=paid")

        assert response.status_code == status.HTTP_200_OK
        assert [row["id"] for row in response.data] == [paid.pk]

    def test_unauthenticated(self, api_client, db):
        response = api_client.post("/api/orders/", {}, format="json")
        assert response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)


@pytest.mark.django_db
class TestOrderItemEndpoints:

    def test_add_menu_item(self, authenticated_client, open_order, pancakes, flour):
        response = authenticated_client.post(
            f"/api/orders/{open_order.pk}/items/",
            {"menu_item_id": pancakes.pk, "quantity": 2},
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["name"] == "Pancakes"
        assert response.data["unit_price_minor"] == 800
        assert response.data["total_minor"] == 1600
        flour.refresh_from_db()
        assert flour.stock_quantity == Decimal("2")

    def test_insufficient_stock(self, authenticated_client, open_order, pancakes, flour):
        response = authenticated_client.post(
            f"/api/orders/{open_order.pk}/items/",
            {"menu_item_id": pancakes.pk, "quantity": 3},
            format="json",
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["code"] == "insufficient_stock"
        shortfall = response.data["details"]["shortfalls"][0]
        assert shortfall["ingredient_id"] == flour.pk
        assert shortfall["need"] == "12.000"
        assert not OrderItem.objects.exists()

    def test_custom_item_requires_name_and_price(self, authenticated_client, open_order):
        response = authenticated_client.post(
            f"/api/orders/{open_order.pk}/items/", {"kind": "retail"}, format="json"
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_unknown_menu_item(self, authenticated_client, open_order):
        response = authenticated_client.post(
            f"/api/orders/{open_order.pk}/items/", {"menu_item_id": 9999}, format="json"
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_zero_quantity(self, authenticated_client, open_order, pancakes):
        response = authenticated_client.post(
            f"/api/orders/{open_order.pk}/items/",
            {"menu_item_id": pancakes.pk, "quantity": 0},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["code"] == "invalid_quantity"

    def test_remove_item(self, authenticated_client, open_order, pancakes, flour):
        item = OrderItemService.add_item(
            open_order, OrderItem.Kind.REGULAR, "Pancakes", 2, 800, menu_item=pancakes
        )

        response = authenticated_client.delete(f"/api/orders/{open_order.pk}/items/{item.pk}/")

        assert response.status_code == status.HTTP_204_NO_CONTENT
        flour.refresh_from_db()
        assert flour.stock_quantity == Decimal("10")

    def test_list_items(self, authenticated_client, open_order):
        OrderItemService.add_item(open_order, OrderItem.Kind.RETAIL, "Dice", 1, 450)

        response = authenticated_client.get(f"/api/orders/{open_order.pk}/items/")

        assert [row["name"] for row in response.data] == ["Dice"]


@pytest.mark.django_db
class TestOrderStatusActions:

    def test_status_action(self, authenticated_client, open_order):
        response = authenticated_client.post(
            f"/api/orders/{open_order.pk}/status/", {"status": "awaiting_payment"}, format="json"
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == "awaiting_payment"

    def test_awaiting_payment_with_running_seat_conflicts(self, authenticated_client, seats, open_order):
        SeatService.start_session(seats[0], open_order, with_timer=True)

        response = authenticated_client.post(
            f"/api/orders/{open_order.pk}/status/", {"status": "awaiting_payment"}, format="json"
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["code"] == "invalid_transition"
        open_order.refresh_from_db()
        assert open_order.status == Order.OrderStatus.OPEN

    def test_invalid_transition(self, authenticated_client, open_order):
        OrderService.settle_payment(open_order, "cash")

        response = authenticated_client.post(
            f"/api/orders/{open_order.pk}/status/", {"status": "open"}, format="json"
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["code"] == "invalid_transition"
        assert response.data["details"]["current"] == "paid"

    def test_settle(self, authenticated_client, open_order):
        OrderItemService.add_item(open_order, OrderItem.Kind.RETAIL, "Dice", 1, 450)

        response = authenticated_client.post(
            f"/api/orders/{open_order.pk}/settle/", {"method": "card"}, format="json"
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == "paid"
        assert response.data["amount_paid_minor"] == 450

    def test_settle_underpaid(self, authenticated_client, open_order):
        OrderItemService.add_item(open_order, OrderItem.Kind.RETAIL, "Dice", 1, 450)

        response = authenticated_client.post(
            f"/api/orders/{open_order.pk}/settle/", {"method": "cash", "amount_minor": 100}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        open_order.refresh_from_db()
        assert open_order.status == Order.OrderStatus.OPEN

    def test_void(self, authenticated_client, open_order, pancakes, flour):
        OrderItemService.add_item(open_order, OrderItem.Kind.REGULAR, "Pancakes", 1, 800, menu_item=pancakes)

        response = authenticated_client.post(f"/api/orders/{open_order.pk}/void/")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == "void"
        flour.refresh_from_db()
        assert flour.stock_quantity == Decimal("10")

    def test_events(self, authenticated_client, open_order, staff_user):
        OrderItemService.add_item(open_order, OrderItem.Kind.RETAIL, "Dice", 1, 450, performed_by=staff_user)

        response = authenticated_client.get(f"/api/orders/{open_order.pk}/events/")

        assert response.status_code == status.HTTP_200_OK
        assert response.data[0]["kind"] == "item.added"
        assert response.data[0]["performed_by"] == "manager"

    def test_ready_for_checkout(self, authenticated_client, open_order):
        OrderService.mark_awaiting_payment(open_order)

        response = authenticated_client.get("/api/orders/ready-for-checkout/")

        assert [row["id"] for row in response.data] == [open_order.pk]
