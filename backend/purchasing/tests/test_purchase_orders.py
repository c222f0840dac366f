"""
Purchase Order Receiving Tests

Deliveries add stock through the ledger at the line's unit cost and move
the purchase order through partial to received.
"""
import logging
from decimal import Decimal

import pytest
from rest_framework import status

from core_backend.exceptions import InvalidQuantityError, InvalidTransitionError, NotFoundError
from inventory.models import StockMovement
from inventory.services import StockLedgerService
from purchasing.models import PurchaseOrder
from purchasing.services import PurchaseOrderService


@pytest.fixture
def milk(make_ingredient):
    return make_ingredient("Milk", unit="ml", cost_per_unit_minor=1)


@pytest.fixture
def sent_order(supplier, flour, milk):
    """Sent purchase order for 5 g of flour and 10 ml of milk."""
    purchase_order = PurchaseOrderService.create_purchase_order(
        supplier,
        [
            {"ingredient": flour, "quantity": 5},
            {"ingredient": milk.pk, "quantity": "10", "unit_cost_minor": 3},
        ],
        tax_minor=4,
    )
    return PurchaseOrderService.mark_sent(purchase_order)


def lines_of(purchase_order):
    return list(purchase_order.items.order_by("pk"))


@pytest.mark.django_db
class TestCreatePurchaseOrder:

    def test_totals(self, sent_order):
        flour_line, milk_line = lines_of(sent_order)

        assert flour_line.unit_cost_minor == 2
        assert flour_line.total_minor == 10
        assert milk_line.total_minor == 30
        assert sent_order.subtotal_minor == 40
        assert sent_order.total_minor == 44
        assert sent_order.order_number.startswith("PO-")
        assert sent_order.status == PurchaseOrder.Status.SENT

    def test_needs_lines(self, supplier):
        with pytest.raises(InvalidQuantityError):
            PurchaseOrderService.create_purchase_order(supplier, [])

    @pytest.mark.parametrize("quantity", [0, -5])
    def test_line_quantity_must_be_positive(self, supplier, flour, quantity):
        with pytest.raises(InvalidQuantityError):
            PurchaseOrderService.create_purchase_order(
                supplier, [{"ingredient": flour, "quantity": quantity}]
            )
        assert not PurchaseOrder.objects.exists()

    def test_unknown_supplier(self, flour):
        with pytest.raises(NotFoundError):
            PurchaseOrderService.create_purchase_order(9999, [{"ingredient": flour, "quantity": 1}])


@pytest.mark.django_db
class TestReceivePurchaseOrder:

    def test_partial_then_complete(self, sent_order, flour, milk, staff_user):
        flour_line, milk_line = lines_of(sent_order)

        PurchaseOrderService.receive(
            sent_order,
            [
                {"line_id": flour_line.pk, "received_quantity": 5},
                {"line_id": milk_line.pk, "received_quantity": 3},
            ],
            performed_by=staff_user,
        )

        assert sent_order.status == PurchaseOrder.Status.PARTIAL
        assert sent_order.received_at is None
        flour.refresh_from_db()
        milk.refresh_from_db()
        assert flour.stock_quantity == Decimal("15")
        assert milk.stock_quantity == Decimal("3")

        PurchaseOrderService.receive(sent_order, [{"line_id": str(milk_line.pk), "received_quantity": "7"}])

        assert sent_order.status == PurchaseOrder.Status.RECEIVED
        assert sent_order.received_at is not None
        assert sent_order.received_by == staff_user
        milk.refresh_from_db()
        assert milk.stock_quantity == Decimal("10")

        purchases = StockMovement.objects.filter(movement_type=StockMovement.MovementType.PURCHASE)
        assert purchases.count() == 3
        assert set(purchases.values_list("reference_type", "reference_id")) == {
            (StockMovement.ReferenceType.PURCHASE_ORDER, str(sent_order.pk))
        }
        assert sorted(m.quantity for m in purchases.filter(ingredient=milk)) == [Decimal("3"), Decimal("7")]
        assert purchases.filter(ingredient=milk).first().unit_cost_minor == 3
        assert StockLedgerService.verify_projection() == []

    def test_cumulative_received_quantity(self, sent_order):
        _, milk_line = lines_of(sent_order)

        PurchaseOrderService.receive(sent_order, [{"line_id": milk_line.pk, "received_quantity": 4}])
        PurchaseOrderService.receive(sent_order, [{"line_id": milk_line.pk, "received_quantity": 4}])

        milk_line.refresh_from_db()
        assert milk_line.received_quantity == Decimal("8")
        assert milk_line.remaining_quantity == Decimal("2")
        assert sent_order.status == PurchaseOrder.Status.PARTIAL

    def test_zero_quantity_records_nothing(self, sent_order):
        flour_line, _ = lines_of(sent_order)

        PurchaseOrderService.receive(
            sent_order, [{"line_id": flour_line.pk, "received_quantity": 0, "notes": "Back-ordered"}]
        )

        flour_line.refresh_from_db()
        assert flour_line.notes == "Back-ordered"
        assert sent_order.status == PurchaseOrder.Status.SENT
        assert not StockMovement.objects.filter(movement_type=StockMovement.MovementType.PURCHASE).exists()

    def test_over_receipt_is_logged(self, sent_order, caplog):
        caplog.set_level(logging.WARNING, logger="purchasing")
        flour_line, milk_line = lines_of(sent_order)

        PurchaseOrderService.receive(
            sent_order,
            [
                {"line_id": flour_line.pk, "received_quantity": 6},
                {"line_id": milk_line.pk, "received_quantity": 10},
            ],
        )

        assert sent_order.status == PurchaseOrder.Status.RECEIVED
        assert "Over-receipt" in caplog.text

    def test_bad_line_writes_nothing(self, sent_order, flour):
        flour_line, _ = lines_of(sent_order)

        with pytest.raises(NotFoundError):
            PurchaseOrderService.receive(
                sent_order,
                [
                    {"line_id": flour_line.pk, "received_quantity": 5},
                    {"line_id": 9999, "received_quantity": 1},
                ],
            )

        flour.refresh_from_db()
        assert flour.stock_quantity == Decimal("10")
        assert sent_order.status == PurchaseOrder.Status.SENT

    def test_negative_quantity(self, sent_order):
        flour_line, _ = lines_of(sent_order)

        with pytest.raises(InvalidQuantityError):
            PurchaseOrderService.receive(sent_order, [{"line_id": flour_line.pk, "received_quantity": -1}])

    def test_draft_cannot_be_received(self, supplier, flour):
        draft = PurchaseOrderService.create_purchase_order(supplier, [{"ingredient": flour, "quantity": 1}])
        line = draft.items.get()

        with pytest.raises(InvalidTransitionError):
            PurchaseOrderService.receive(draft, [{"line_id": line.pk, "received_quantity": 1}])

    def test_received_order_is_closed(self, sent_order):
        flour_line, milk_line = lines_of(sent_order)
        PurchaseOrderService.receive(
            sent_order,
            [
                {"line_id": flour_line.pk, "received_quantity": 5},
                {"line_id": milk_line.pk, "received_quantity": 10},
            ],
        )

        with pytest.raises(InvalidTransitionError):
            PurchaseOrderService.receive(sent_order, [{"line_id": flour_line.pk, "received_quantity": 1}])
        with pytest.raises(InvalidTransitionError):
            PurchaseOrderService.cancel(sent_order)


@pytest.mark.django_db
class TestPurchaseOrderStatus:

    def test_cancel_sent(self, sent_order):
        PurchaseOrderService.cancel(sent_order)
        assert sent_order.status == PurchaseOrder.Status.CANCELLED

        flour_line, _ = lines_of(sent_order)
        with pytest.raises(InvalidTransitionError):
            PurchaseOrderService.receive(sent_order, [{"line_id": flour_line.pk, "received_quantity": 1}])

    def test_send_twice(self, sent_order):
        with pytest.raises(InvalidTransitionError):
            PurchaseOrderService.mark_sent(sent_order)


@pytest.mark.django_db
class TestPurchaseOrderEndpoints:

    def test_staff_only(self, cashier_client):
        response = cashier_client.get("/api/purchasing/purchase-orders/")
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_create_send_receive(self, authenticated_client, supplier, flour):
        response = authenticated_client.post(
            "/api/purchasing/purchase-orders/",
            {"supplier": supplier.pk, "items": [{"ingredient": flour.pk, "quantity": "4.5"}]},
            format="json",
        )
        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["status"] == "draft"
        purchase_order_id = response.data["id"]
        line_id = response.data["items"][0]["id"]

        response = authenticated_client.post(f"/api/purchasing/purchase-orders/{purchase_order_id}/send/")
        assert response.data["status"] == "sent"

        response = authenticated_client.post(
            f"/api/purchasing/purchase-orders/{purchase_order_id}/receive/",
            {"items": [{"line_id": line_id, "received_quantity": "4.5"}]},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == "received"
        assert response.data["items"][0]["remaining_quantity"] == "0.000"
        flour.refresh_from_db()
        assert flour.stock_quantity == Decimal("14.5")

    def test_receive_draft_conflicts(self, authenticated_client, supplier, flour):
        draft = PurchaseOrderService.create_purchase_order(supplier, [{"ingredient": flour, "quantity": 1}])

        response = authenticated_client.post(
            f"/api/purchasing/purchase-orders/{draft.pk}/receive/",
            {"items": [{"line_id": draft.items.get().pk, "received_quantity": "1"}]},
            format="json",
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["code"] == "invalid_transition"
