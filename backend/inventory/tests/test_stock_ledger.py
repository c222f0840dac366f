"""
Stock Ledger Tests

The cached ingredient quantity must always equal the sum of the ingredient's
movements, and movements can never be changed once written.
"""
import logging
from decimal import Decimal
from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from core_backend.exceptions import InvalidQuantityError, NotFoundError
from inventory.models import Ingredient, StockMovement
from inventory.services import StockLedgerService


@pytest.mark.django_db
class TestRecordMovement:
    """Appending movements and keeping the cached quantity in step"""

    def test_cached_quantity_matches_ledger_after_mixed_movements(self, flour):
        """Every sequence of signed movements keeps stock == sum(movements)"""
        sequence = [
            (StockMovement.MovementType.PURCHASE, "25.5"),
            (StockMovement.MovementType.SALE_DEDUCTION, "-8"),
            (StockMovement.MovementType.ADJUSTMENT, "-0.125"),
            (StockMovement.MovementType.SALE_RETURN, "4"),
            (StockMovement.MovementType.SALE_DEDUCTION, "-40"),
        ]
        for movement_type, quantity in sequence:
            StockLedgerService.record_movement(flour, movement_type, quantity)
            flour.refresh_from_db()
            assert flour.stock_quantity == StockLedgerService.ledger_balance(flour)

        assert flour.stock_quantity == Decimal("-8.625")
        assert StockLedgerService.verify_projection() == []

    def test_movement_snapshots_cost(self, flour):
        movement = StockLedgerService.record_movement(
            flour, StockMovement.MovementType.SALE_DEDUCTION, "-3.5"
        )

        assert movement.unit_cost_minor == 2
        assert movement.total_cost_minor == 7
        assert movement.quantity == Decimal("-3.500")

    def test_caller_instance_is_synced(self, flour):
        StockLedgerService.record_movement(flour, StockMovement.MovementType.ADJUSTMENT, 5)
        assert flour.stock_quantity == Decimal("15")

    def test_purchase_stamps_last_restocked(self, flour):
        assert flour.last_restocked_at is None
        StockLedgerService.record_movement(
            flour, StockMovement.MovementType.PURCHASE, 5, unit_cost_minor=3
        )

        flour.refresh_from_db()
        assert flour.last_restocked_at is not None

    def test_reference_is_stored_as_text(self, flour):
        movement = StockLedgerService.record_movement(
            flour,
            StockMovement.MovementType.SALE_DEDUCTION,
            -1,
            reference_type=StockMovement.ReferenceType.ORDER,
            reference_id=42,
        )
        assert movement.reference_type == "order"
        assert movement.reference_id == "42"

    def test_accepts_ingredient_id(self, flour):
        StockLedgerService.record_movement(flour.pk, StockMovement.MovementType.ADJUSTMENT, 1)
        flour.refresh_from_db()
        assert flour.stock_quantity == Decimal("11")

    @pytest.mark.parametrize("quantity", [0, "0.000", "abc", None, "0.0001", True])
    def test_invalid_quantities_rejected(self, flour, quantity):
        with pytest.raises(InvalidQuantityError):
            StockLedgerService.record_movement(
                flour, StockMovement.MovementType.ADJUSTMENT, quantity
            )
        assert StockMovement.objects.filter(ingredient=flour).count() == 1

    def test_unknown_movement_type_rejected(self, flour):
        with pytest.raises(InvalidQuantityError):
            StockLedgerService.record_movement(flour, "theft", -1)

    def test_unknown_ingredient(self, db):
        with pytest.raises(NotFoundError):
            StockLedgerService.record_movement(9999, StockMovement.MovementType.ADJUSTMENT, 1)

    def test_negative_stock_is_allowed_and_logged(self, flour, caplog):
        caplog.set_level(logging.WARNING, logger="inventory")

        StockLedgerService.record_movement(flour, StockMovement.MovementType.ADJUSTMENT, -12)

        assert flour.stock_quantity == Decimal("-2")
        assert flour.is_negative
        assert "went negative" in caplog.text

    def test_signal_sent_on_commit(self, flour, django_capture_on_commit_callbacks):
        from inventory.signals import stock_movement_recorded

        received = []

        def listener(sender, movement=None, **kwargs):
            received.append(movement)

        stock_movement_recorded.connect(listener)
        try:
            with django_capture_on_commit_callbacks(execute=True):
                movement = StockLedgerService.record_movement(
                    flour, StockMovement.MovementType.ADJUSTMENT, 1
                )
        finally:
            stock_movement_recorded.disconnect(listener)

        assert received == [movement]


@pytest.mark.django_db
class TestMovementImmutability:
    """Movements are append-only"""

    def test_cannot_resave(self, flour):
        movement = flour.movements.get()
        movement.quantity = Decimal("999")
        with pytest.raises(TypeError):
            movement.save()

    def test_cannot_delete_instance(self, flour):
        with pytest.raises(TypeError):
            flour.movements.get().delete()

    def test_cannot_bulk_update_or_delete(self, flour):
        with pytest.raises(TypeError):
            StockMovement.objects.filter(ingredient=flour).update(quantity=1)
        with pytest.raises(TypeError):
            StockMovement.objects.filter(ingredient=flour).delete()

        assert StockLedgerService.ledger_balance(flour) == Decimal("10")


@pytest.mark.django_db
class TestAdjustStock:
    """Manual corrections by delta or by physical count"""

    def test_count_becomes_delta(self, flour, staff_user):
        movement = StockLedgerService.adjust_stock(
            flour, new_quantity="6.5", reason="Stocktake", performed_by=staff_user
        )

        assert movement.quantity == Decimal("-3.5")
        assert movement.movement_type == StockMovement.MovementType.ADJUSTMENT
        assert movement.performed_by == staff_user
        assert "Adjusted from" in movement.notes
        assert flour.stock_quantity == Decimal("6.5")

    def test_count_to_zero(self, flour):
        StockLedgerService.adjust_stock(flour, new_quantity=0)
        assert flour.stock_quantity == Decimal("0")
        assert StockLedgerService.ledger_balance(flour) == Decimal("0")

    def test_matching_count_records_nothing(self, flour):
        assert StockLedgerService.adjust_stock(flour, new_quantity=10) is None
        assert flour.movements.count() == 1

    def test_signed_delta(self, flour):
        StockLedgerService.adjust_stock(flour, quantity="-2.25")
        assert flour.stock_quantity == Decimal("7.75")

    def test_requires_exactly_one_quantity(self, flour):
        with pytest.raises(InvalidQuantityError):
            StockLedgerService.adjust_stock(flour)
        with pytest.raises(InvalidQuantityError):
            StockLedgerService.adjust_stock(flour, new_quantity=5, quantity=1)

    def test_zero_delta_rejected(self, flour):
        with pytest.raises(InvalidQuantityError):
            StockLedgerService.adjust_stock(flour, quantity=0)


@pytest.mark.django_db
class TestProjectionVerification:
    """Detecting and repairing a drifted cache"""

    def _corrupt(self, ingredient, value):
        Ingredient.objects.filter(pk=ingredient.pk).update(stock_quantity=Decimal(value))

    def test_detects_drift(self, flour, make_ingredient):
        milk = make_ingredient("Milk", stock=3, unit="ml")
        self._corrupt(flour, "12")

        discrepancies = StockLedgerService.verify_projection()

        assert len(discrepancies) == 1
        assert discrepancies[0].ingredient_id == flour.pk
        assert discrepancies[0].ledger_quantity == Decimal("10")
        assert discrepancies[0].difference == Decimal("2")
        assert StockLedgerService.verify_projection(milk) == []

    def test_ingredient_without_movements_is_consistent(self, make_ingredient):
        make_ingredient("Salt")
        assert StockLedgerService.verify_projection() == []

    def test_rebuild(self, flour):
        self._corrupt(flour, "1")

        balance = StockLedgerService.rebuild_projection(flour)

        assert balance == Decimal("10")
        flour.refresh_from_db()
        assert flour.stock_quantity == Decimal("10")
        assert flour.movements.count() == 1

    def test_low_stock_ingredients(self, make_ingredient):
        make_ingredient("Beans", stock=50, reorder_point=10)
        low = make_ingredient("Cups", stock=5, reorder_point=10, kind=Ingredient.Kind.SUPPLY)
        make_ingredient("Lids", stock=1, reorder_point=10, is_active=False)

        assert list(StockLedgerService.low_stock_ingredients()) == [low]


@pytest.mark.django_db
class TestVerifyStockLedgerCommand:
    """verify_stock_ledger management command"""

    def test_consistent(self, flour):
        out = StringIO()
        call_command("verify_stock_ledger", stdout=out)
        assert "consistent" in out.getvalue()

    def test_reports_drift(self, flour):
        Ingredient.objects.filter(pk=flour.pk).update(stock_quantity=Decimal("3"))

        out = StringIO()
        with pytest.raises(CommandError):
            call_command("verify_stock_ledger", stdout=out)
        assert "Flour" in out.getvalue()

    def test_fix(self, flour):
        Ingredient.objects.filter(pk=flour.pk).update(stock_quantity=Decimal("3"))

        out = StringIO()
        call_command("verify_stock_ledger", "--fix", stdout=out)

        flour.refresh_from_db()
        assert flour.stock_quantity == Decimal("10")
        assert "Rebuilt 1" in out.getvalue()

    def test_warns_on_negative(self, flour):
        StockLedgerService.adjust_stock(flour, new_quantity=-1)

        out = StringIO()
        call_command("verify_stock_ledger", "--ingredient", str(flour.pk), stdout=out)
        assert "Negative stock" in out.getvalue()
