from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from django.db import transaction
from django.db.models import DecimalField, F, Sum, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from core_backend.config import app_settings
from core_backend.exceptions import InvalidQuantityError, surfaces_persistence_errors
from core_backend.utils import (
    QUANTITY_PLACES,
    parse_item_quantity,
    parse_quantity,
    resolve_instance,
    total_cost_minor,
)
from .exceptions import Shortfall
from .models import Ingredient, MenuItem, RecipeIngredient, StockMovement
from .signals import stock_movement_recorded
import logging

logger = logging.getLogger(__name__)

ZERO = Decimal("0.000")


@dataclass(frozen=True)
class LedgerDiscrepancy:
    """A cached stock quantity that disagrees with the sum of its movements."""

    ingredient_id: int
    ingredient_name: str
    cached_quantity: Decimal
    ledger_quantity: Decimal

    @property
    def difference(self) -> Decimal:
        return self.cached_quantity - self.ledger_quantity


@dataclass
class AvailabilityResult:
    menu_item: MenuItem
    requested_quantity: int
    shortfalls: List[Shortfall] = field(default_factory=list)
    lines: List[RecipeIngredient] = field(default_factory=list, repr=False)

    @property
    def available(self) -> bool:
        return not self.shortfalls


@dataclass(frozen=True)
class MenuItemAvailability:
    menu_item_id: int
    name: str
    status: str
    max_servings: Optional[int]
    limiting_ingredient: Optional[str] = None

    AVAILABLE = "available"
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"


class StockLedgerService:
    """
    The only writer of ``Ingredient.stock_quantity``.

    Every change is an appended ``StockMovement`` plus an ``F()`` increment of
    the cached quantity, both inside one transaction with the ingredient row
    locked.
    """

    @staticmethod
    def _lock_ingredient(ingredient) -> Ingredient:
        ingredient_id = ingredient.pk if isinstance(ingredient, Ingredient) else ingredient
        return resolve_instance(
            Ingredient,
            ingredient_id,
            entity="Ingredient",
            queryset=Ingredient.objects.select_for_update(),
        )

    @staticmethod
    @surfaces_persistence_errors
    @transaction.atomic
    def record_movement(
        ingredient,
        movement_type: str,
        quantity,
        unit_cost_minor: Optional[int] = None,
        reason: str = "",
        reference_type: str = "",
        reference_id="",
        performed_by=None,
        notes: str = "",
    ) -> StockMovement:
        """
        Append a movement and apply it to the cached stock quantity.

        ``quantity`` is signed: deductions are negative. Negative resulting
        stock is allowed and logged.
        """
        if movement_type not in StockMovement.MovementType.values:
            raise InvalidQuantityError(
                quantity, f"Unknown movement type: {movement_type!r}"
            )
        quantity = parse_quantity(quantity)

        locked = StockLedgerService._lock_ingredient(ingredient)
        if unit_cost_minor is None:
            unit_cost_minor = locked.cost_per_unit_minor
        if unit_cost_minor < 0:
            raise InvalidQuantityError(unit_cost_minor, "Unit cost must not be negative")

        movement = StockMovement.objects.create(
            ingredient=locked,
            movement_type=movement_type,
            quantity=quantity,
            unit_cost_minor=unit_cost_minor,
            total_cost_minor=total_cost_minor(quantity, unit_cost_minor),
            reason=reason,
            notes=notes,
            reference_type=reference_type,
            reference_id=str(reference_id or ""),
            performed_by=performed_by,
        )

        updates = {"stock_quantity": F("stock_quantity") + quantity}
        if movement_type == StockMovement.MovementType.PURCHASE:
            updates["last_restocked_at"] = timezone.now()
        Ingredient.objects.filter(pk=locked.pk).update(**updates)
        locked.refresh_from_db(fields=["stock_quantity", "last_restocked_at"])

        # Keep a caller-held instance in step with the row
        if isinstance(ingredient, Ingredient) and ingredient is not locked:
            ingredient.stock_quantity = locked.stock_quantity
            ingredient.last_restocked_at = locked.last_restocked_at

        if locked.stock_quantity < 0:
            logger.warning(
                f"Stock for '{locked.name}' went negative ({locked.stock_quantity} {locked.unit}) "
                f"after {movement_type} of {quantity}"
            )
        logger.debug(
            f"Recorded {movement_type} of {quantity} {locked.unit} for '{locked.name}' "
            f"(ref {reference_type}:{reference_id}), stock now {locked.stock_quantity}"
        )

        transaction.on_commit(
            lambda: stock_movement_recorded.send(sender=StockMovement, movement=movement)
        )
        return movement

    @staticmethod
    @surfaces_persistence_errors
    @transaction.atomic
    def adjust_stock(
        ingredient,
        new_quantity=None,
        quantity=None,
        movement_type: str = StockMovement.MovementType.ADJUSTMENT,
        reason: str = "",
        performed_by=None,
    ) -> Optional[StockMovement]:
        """
        Manual stock correction, either as a signed delta (``quantity``) or as
        a physical count (``new_quantity``) converted to a delta.

        Returns the recorded movement, or None when a count already matches.
        """
        if (new_quantity is None) == (quantity is None):
            raise InvalidQuantityError(
                None, "Provide exactly one of new_quantity or quantity"
            )

        locked = StockLedgerService._lock_ingredient(ingredient)
        previous = locked.stock_quantity

        if new_quantity is not None:
            target = parse_quantity(new_quantity, allow_zero=True)
            delta = target - previous
            if delta == 0:
                logger.info(f"Count for '{locked.name}' matches stock ({previous}); nothing to adjust")
                return None
        else:
            delta = parse_quantity(quantity)

        movement = StockLedgerService.record_movement(
            locked,
            movement_type,
            delta,
            reason=reason,
            notes=f"Adjusted from {previous} to {previous + delta}",
            performed_by=performed_by,
        )

        if isinstance(ingredient, Ingredient):
            ingredient.stock_quantity = locked.stock_quantity
            ingredient.last_restocked_at = locked.last_restocked_at
        return movement

    @staticmethod
    def ledger_balance(ingredient) -> Decimal:
        total = StockMovement.objects.filter(
            ingredient=ingredient
        ).aggregate(total=Sum("quantity"))["total"]
        return (total or ZERO).quantize(QUANTITY_PLACES)

    @staticmethod
    def verify_projection(ingredient=None) -> List[LedgerDiscrepancy]:
        """
        Compare each cached stock quantity against the sum of its movements.
        Pass an ingredient to check only that one.
        """
        queryset = Ingredient.objects.annotate(
            ledger_total=Coalesce(
                Sum("movements__quantity"),
                Value(ZERO),
                output_field=DecimalField(max_digits=12, decimal_places=3),
            )
        ).order_by("pk")
        if ingredient is not None:
            ingredient_id = ingredient.pk if isinstance(ingredient, Ingredient) else ingredient
            queryset = queryset.filter(pk=ingredient_id)

        discrepancies = []
        for row in queryset:
            ledger = Decimal(str(row.ledger_total)).quantize(QUANTITY_PLACES)
            if row.stock_quantity != ledger:
                discrepancies.append(
                    LedgerDiscrepancy(
                        ingredient_id=row.pk,
                        ingredient_name=row.name,
                        cached_quantity=row.stock_quantity,
                        ledger_quantity=ledger,
                    )
                )

        if discrepancies:
            logger.warning(f"Stock ledger verification found {len(discrepancies)} discrepancies")
        return discrepancies

    @staticmethod
    @surfaces_persistence_errors
    @transaction.atomic
    def rebuild_projection(ingredient) -> Decimal:
        """Overwrite the cached quantity with the ledger sum. Repair path only."""
        locked = StockLedgerService._lock_ingredient(ingredient)
        balance = StockLedgerService.ledger_balance(locked)
        if locked.stock_quantity != balance:
            logger.warning(
                f"Rebuilding stock for '{locked.name}': cached {locked.stock_quantity}, ledger {balance}"
            )
            Ingredient.objects.filter(pk=locked.pk).update(stock_quantity=balance)
        if isinstance(ingredient, Ingredient):
            ingredient.stock_quantity = balance
        return balance

    @staticmethod
    def low_stock_ingredients():
        """Active ingredients at or below their reorder point, negatives included."""
        return Ingredient.objects.filter(
            is_active=True, stock_quantity__lte=F("reorder_point")
        ).order_by("stock_quantity", "name")


class RecipeAvailabilityService:
    """
    Reads recipes against cached stock. Only non-optional recipe lines gate
    availability.
    """

    @staticmethod
    def required_lines(menu_item, lock: bool = False) -> List[RecipeIngredient]:
        """
        Non-optional recipe lines with their ingredients loaded.

        With ``lock=True`` the ingredient rows are re-read under
        ``select_for_update`` in primary key order.
        """
        lines = list(
            RecipeIngredient.objects.filter(menu_item=menu_item, is_optional=False)
            .select_related("ingredient")
            .order_by("ingredient_id")
        )
        if lock and lines:
            locked = {
                ingredient.pk: ingredient
                for ingredient in Ingredient.objects.select_for_update()
                .filter(pk__in=[line.ingredient_id for line in lines])
                .order_by("pk")
            }
            for line in lines:
                line.ingredient = locked[line.ingredient_id]
        return lines

    @staticmethod
    def _servings_per_line(lines):
        servings = []
        for line in lines:
            stock = max(line.ingredient.stock_quantity, ZERO)
            servings.append((line, int(stock // line.quantity)))
        return servings

    @staticmethod
    def available_servings(menu_item) -> Optional[int]:
        """
        Maximum whole servings the current stock supports, or None when the
        item has no non-optional recipe lines.
        """
        menu_item = resolve_instance(MenuItem, menu_item, entity="Menu item")
        per_line = RecipeAvailabilityService._servings_per_line(
            RecipeAvailabilityService.required_lines(menu_item)
        )
        if not per_line:
            return None
        return min(servings for _, servings in per_line)

    @staticmethod
    def check_available(menu_item, requested_quantity, lock: bool = False) -> AvailabilityResult:
        menu_item = resolve_instance(MenuItem, menu_item, entity="Menu item")
        requested_quantity = parse_item_quantity(requested_quantity)

        lines = RecipeAvailabilityService.required_lines(menu_item, lock=lock)
        result = AvailabilityResult(
            menu_item=menu_item, requested_quantity=requested_quantity, lines=lines
        )
        for line in lines:
            need = (line.quantity * requested_quantity).quantize(QUANTITY_PLACES)
            have = line.ingredient.stock_quantity
            if have < need:
                result.shortfalls.append(
                    Shortfall(
                        ingredient_id=line.ingredient_id,
                        ingredient_name=line.ingredient.name,
                        unit=line.ingredient.unit,
                        have=have,
                        need=need,
                    )
                )
        return result

    @staticmethod
    def menu_item_status(menu_item) -> MenuItemAvailability:
        menu_item = resolve_instance(MenuItem, menu_item, entity="Menu item")
        per_line = RecipeAvailabilityService._servings_per_line(
            RecipeAvailabilityService.required_lines(menu_item)
        )

        if not per_line:
            return MenuItemAvailability(
                menu_item_id=menu_item.pk,
                name=menu_item.name,
                status=MenuItemAvailability.AVAILABLE,
                max_servings=None,
            )

        limiting_line, max_servings = min(per_line, key=lambda pair: pair[1])
        if max_servings == 0:
            status = MenuItemAvailability.OUT_OF_STOCK
        elif max_servings <= app_settings.low_stock_servings:
            status = MenuItemAvailability.LOW_STOCK
        else:
            status = MenuItemAvailability.AVAILABLE

        return MenuItemAvailability(
            menu_item_id=menu_item.pk,
            name=menu_item.name,
            status=status,
            max_servings=max_servings,
            limiting_ingredient=limiting_line.ingredient.name,
        )
