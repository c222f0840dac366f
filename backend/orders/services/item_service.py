from decimal import Decimal
from typing import List, Optional
from django.db import DatabaseError, transaction
import logging

from core_backend.exceptions import (
    InvalidChoiceError,
    InvalidTransitionError,
    surfaces_persistence_errors,
)
from core_backend.utils import QUANTITY_PLACES, parse_item_quantity, resolve_instance
from inventory.exceptions import InsufficientStockError
from inventory.models import MenuItem, StockMovement
from inventory.services import RecipeAvailabilityService, StockLedgerService
from orders.models import Order, OrderEvent, OrderItem
from orders.signals import order_item_added, order_item_removed
from .event_service import OrderEventService

logger = logging.getLogger(__name__)


class OrderItemService:
    """
    Service for admitting items onto orders and removing them.

    Recipe-backed items move stock through the ledger in the same
    transaction as the item itself.
    """

    @staticmethod
    def lock_open_order(order, action: str = "modify items") -> Order:
        locked = resolve_instance(
            Order, order.pk if isinstance(order, Order) else order,
            entity="Order", queryset=Order.objects.select_for_update(),
        )
        if locked.status != Order.OrderStatus.OPEN:
            raise InvalidTransitionError(
                "order",
                locked.status,
                action,
                f"Cannot {action} on order {locked.pk}: order is {locked.status}, not open",
            )
        return locked

    @staticmethod
    def _resolve_menu_item(menu_item, meta: dict) -> Optional[MenuItem]:
        if menu_item is None and meta.get("menuItemId") is not None:
            menu_item = meta["menuItemId"]
        if menu_item is None:
            return None
        return resolve_instance(MenuItem, menu_item, entity="Menu item")

    @staticmethod
    @surfaces_persistence_errors
    @transaction.atomic
    def add_item(
        order,
        kind: str,
        name: str,
        quantity,
        unit_price_minor: int,
        tax_minor: int = 0,
        meta: dict = None,
        menu_item=None,
        performed_by=None,
    ) -> OrderItem:
        """
        Add an item to an open order.

        A ``regular`` item backed by a menu item is admitted only if every
        non-optional recipe ingredient covers ``quantity`` servings; the
        ingredients are then deducted. Raises InsufficientStockError with
        every shortfall and writes nothing when stock is short.
        """
        if kind not in OrderItem.Kind.values:
            raise InvalidChoiceError("order item kind", kind, OrderItem.Kind.values)
        quantity = parse_item_quantity(quantity)
        locked_order = OrderItemService.lock_open_order(order, "add items")

        meta = dict(meta or {})
        menu_item = OrderItemService._resolve_menu_item(menu_item, meta)
        if menu_item is not None:
            meta.setdefault("menuItemId", menu_item.pk)

        deductible = menu_item is not None and kind in OrderItem.DEDUCTIBLE_KINDS
        availability = None
        if deductible:
            availability = RecipeAvailabilityService.check_available(
                menu_item, quantity, lock=True
            )
            if not availability.available:
                logger.info(
                    f"Refused {quantity}x '{menu_item.name}' on order {locked_order.pk}: "
                    f"{len(availability.shortfalls)} ingredient(s) short"
                )
                raise InsufficientStockError(menu_item, quantity, availability.shortfalls)

        item = OrderItem.objects.create(
            order=locked_order,
            kind=kind,
            menu_item=menu_item,
            name=name,
            quantity=quantity,
            unit_price_minor=unit_price_minor,
            tax_minor=tax_minor,
            meta=meta,
        )

        deductions = []
        if deductible:
            try:
                for line in availability.lines:
                    amount = (line.quantity * quantity).quantize(QUANTITY_PLACES)
                    StockLedgerService.record_movement(
                        line.ingredient,
                        StockMovement.MovementType.SALE_DEDUCTION,
                        -amount,
                        reason=f"Sale: {quantity} x {menu_item.name}",
                        reference_type=StockMovement.ReferenceType.ORDER,
                        reference_id=locked_order.pk,
                        performed_by=performed_by,
                    )
                    deductions.append(
                        {"ingredientId": line.ingredient_id, "quantity": str(amount)}
                    )
            except Exception:
                OrderItemService._compensate_failed_add(item, deductions)
                raise

        OrderEventService.record(
            locked_order,
            OrderEvent.Kind.ITEM_ADDED,
            {
                "itemId": item.pk,
                "kind": kind,
                "name": name,
                "quantity": quantity,
                "unitPriceMinor": unit_price_minor,
                "taxMinor": tax_minor,
                "totalMinor": item.total_minor,
                "menuItemId": menu_item.pk if menu_item else None,
                "deductions": deductions,
            },
            performed_by=performed_by,
        )

        transaction.on_commit(
            lambda: order_item_added.send(sender=OrderItem, order=locked_order, item=item)
        )
        return item

    @staticmethod
    def _compensate_failed_add(item: OrderItem, applied: list):
        """
        Delete an item whose ingredient deductions did not all succeed.

        Deleting an item that is already gone is a no-op. The enclosing
        transaction rolls back the deductions in ``applied``.
        """
        try:
            deleted, _ = OrderItem.objects.filter(pk=item.pk).delete()
        except DatabaseError as e:
            logger.error(f"Compensating delete of order item {item.pk} failed: {e}")
            deleted = 0
        logger.error(
            f"Ingredient deduction failed for order item {item.pk} on order {item.order_id}; "
            f"item deleted={bool(deleted)}, deductions applied before failure={applied}"
        )

    @staticmethod
    def deducted_quantities(item: OrderItem) -> List[tuple]:
        """
        ``(ingredient_id, quantity)`` pairs deducted when the item was added.

        Read from the item's ``item.added`` event; items without one fall back
        to the menu item's current recipe.
        """
        event = OrderEventService.find_item_added(item.pk, order_id=item.order_id)
        if event is not None and "deductions" in event.payload:
            return [
                (d["ingredientId"], Decimal(d["quantity"]))
                for d in event.payload["deductions"]
            ]

        menu_item_id = item.menu_item_ref
        if menu_item_id is None:
            return []
        return [
            (line.ingredient_id, (line.quantity * item.quantity).quantize(QUANTITY_PLACES))
            for line in RecipeAvailabilityService.required_lines(menu_item_id)
        ]

    @staticmethod
    def return_stock(item: OrderItem, reason: str, performed_by=None) -> list:
        """Record ``sale_return`` movements undoing an item's deductions."""
        if not item.is_deductible or item.menu_item_ref is None:
            return []

        returns = []
        for ingredient_id, amount in OrderItemService.deducted_quantities(item):
            if amount == 0:
                continue
            StockLedgerService.record_movement(
                ingredient_id,
                StockMovement.MovementType.SALE_RETURN,
                amount,
                reason=reason,
                reference_type=StockMovement.ReferenceType.ORDER,
                reference_id=item.order_id,
                performed_by=performed_by,
            )
            returns.append({"ingredientId": ingredient_id, "quantity": str(amount)})
        return returns

    @staticmethod
    @surfaces_persistence_errors
    @transaction.atomic
    def remove_item(order_item, performed_by=None) -> dict:
        """
        Remove an item from an open order, returning any stock it consumed.
        Returns the ``item.removed`` event payload.
        """
        item = resolve_instance(OrderItem, order_item, entity="Order item")
        locked_order = OrderItemService.lock_open_order(item.order_id, "remove items")

        returns = OrderItemService.return_stock(
            item, reason=f"Removed: {item.quantity} x {item.name}", performed_by=performed_by
        )

        item_id = item.pk
        payload = {
            "itemId": item_id,
            "kind": item.kind,
            "name": item.name,
            "quantity": item.quantity,
            "totalMinor": item.total_minor,
            "menuItemId": item.menu_item_ref,
            "returns": returns,
        }
        item.delete()
        OrderEventService.record(
            locked_order, OrderEvent.Kind.ITEM_REMOVED, payload, performed_by=performed_by
        )

        transaction.on_commit(
            lambda: order_item_removed.send(
                sender=OrderItem, order=locked_order, item_id=item_id, returns=returns
            )
        )
        return payload
