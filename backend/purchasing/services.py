from django.db import transaction
from django.utils import timezone
import logging
import uuid

from core_backend.exceptions import (
    InvalidQuantityError,
    InvalidTransitionError,
    NotFoundError,
    surfaces_persistence_errors,
)
from core_backend.utils import parse_quantity, resolve_instance, total_cost_minor
from inventory.models import Ingredient, StockMovement
from inventory.services import StockLedgerService
from .models import PurchaseOrder, PurchaseOrderItem, Supplier

logger = logging.getLogger(__name__)


class PurchaseOrderService:

    # Statuses a delivery can be received against
    RECEIVABLE_STATUSES = [PurchaseOrder.Status.SENT, PurchaseOrder.Status.PARTIAL]

    @staticmethod
    def _lock(purchase_order) -> PurchaseOrder:
        return resolve_instance(
            PurchaseOrder,
            purchase_order.pk if isinstance(purchase_order, PurchaseOrder) else purchase_order,
            entity="Purchase order",
            queryset=PurchaseOrder.objects.select_for_update(),
        )

    @staticmethod
    def _sync(purchase_order, locked: PurchaseOrder):
        if isinstance(purchase_order, PurchaseOrder) and purchase_order is not locked:
            purchase_order.refresh_from_db()

    @staticmethod
    def generate_order_number() -> str:
        return f"PO-{timezone.now():%Y%m%d}-{uuid.uuid4().hex[:6].upper()}"

    @staticmethod
    @surfaces_persistence_errors
    @transaction.atomic
    def create_purchase_order(supplier, lines, tax_minor: int = 0, order_number: str = None, notes: str = "") -> PurchaseOrder:
        """
        Create a draft purchase order.

        ``lines`` is a list of ``{"ingredient", "quantity", "unit_cost_minor"}``;
        unit cost defaults to the ingredient's current cost.
        """
        supplier = resolve_instance(Supplier, supplier, entity="Supplier")
        if not lines:
            raise InvalidQuantityError(0, "A purchase order needs at least one line")

        purchase_order = PurchaseOrder.objects.create(
            order_number=order_number or PurchaseOrderService.generate_order_number(),
            supplier=supplier,
            tax_minor=tax_minor,
            notes=notes,
        )

        subtotal = 0
        for line in lines:
            ingredient = resolve_instance(Ingredient, line["ingredient"], entity="Ingredient")
            quantity = parse_quantity(line["quantity"], allow_negative=False)
            unit_cost = line.get("unit_cost_minor")
            if unit_cost is None:
                unit_cost = ingredient.cost_per_unit_minor
            item = PurchaseOrderItem.objects.create(
                purchase_order=purchase_order,
                ingredient=ingredient,
                quantity=quantity,
                unit_cost_minor=unit_cost,
                total_minor=total_cost_minor(quantity, unit_cost),
                notes=line.get("notes", ""),
            )
            subtotal += item.total_minor

        purchase_order.subtotal_minor = subtotal
        purchase_order.total_minor = subtotal + tax_minor
        purchase_order.save(update_fields=["subtotal_minor", "total_minor", "updated_at"])
        logger.info(f"Created purchase order {purchase_order.order_number} for {supplier.name}")
        return purchase_order

    @staticmethod
    def _change_status(purchase_order, allowed_from, new_status) -> PurchaseOrder:
        locked = PurchaseOrderService._lock(purchase_order)
        if locked.status not in allowed_from:
            raise InvalidTransitionError("purchase order", locked.status, new_status)
        locked.status = new_status
        locked.save(update_fields=["status", "updated_at"])
        logger.info(f"Purchase order {locked.order_number} -> {new_status}")
        PurchaseOrderService._sync(purchase_order, locked)
        return locked

    @staticmethod
    @surfaces_persistence_errors
    @transaction.atomic
    def mark_sent(purchase_order) -> PurchaseOrder:
        return PurchaseOrderService._change_status(
            purchase_order, [PurchaseOrder.Status.DRAFT], PurchaseOrder.Status.SENT
        )

    @staticmethod
    @surfaces_persistence_errors
    @transaction.atomic
    def cancel(purchase_order) -> PurchaseOrder:
        return PurchaseOrderService._change_status(
            purchase_order,
            [PurchaseOrder.Status.DRAFT, PurchaseOrder.Status.SENT],
            PurchaseOrder.Status.CANCELLED,
        )

    @staticmethod
    @surfaces_persistence_errors
    @transaction.atomic
    def receive(purchase_order, lines, performed_by=None) -> PurchaseOrder:
        """
        Record a delivery against a sent or partially received purchase order.

        ``lines`` is a list of ``{"line_id", "received_quantity", "notes"}``
        where ``received_quantity`` is what arrived in this delivery. Each
        positive quantity adds a ``purchase`` movement at the line's unit cost
        and increases the line's cumulative received quantity. The order
        becomes ``received`` when every line is complete, otherwise
        ``partial`` once anything has arrived.
        """
        locked = PurchaseOrderService._lock(purchase_order)
        if locked.status not in PurchaseOrderService.RECEIVABLE_STATUSES:
            raise InvalidTransitionError(
                "purchase order",
                locked.status,
                PurchaseOrder.Status.RECEIVED,
                f"Cannot receive against purchase order {locked.order_number}: it is {locked.status}",
            )

        items = {item.pk: item for item in locked.items.select_related("ingredient")}

        # Validate every line before writing anything
        receipts = []
        for line in lines:
            line_id = line.get("line_id")
            item = items.get(line_id)
            if item is None:
                try:
                    item = items.get(int(line_id))
                except (TypeError, ValueError):
                    item = None
            if item is None:
                raise NotFoundError("Purchase order line", line_id)
            quantity = parse_quantity(line.get("received_quantity"), allow_zero=True, allow_negative=False)
            receipts.append((item, quantity, line.get("notes")))

        for item, quantity, notes in receipts:
            update_fields = []
            if notes is not None:
                item.notes = notes
                update_fields.append("notes")
            if quantity > 0:
                StockLedgerService.record_movement(
                    item.ingredient,
                    StockMovement.MovementType.PURCHASE,
                    quantity,
                    unit_cost_minor=item.unit_cost_minor,
                    reason=f"Purchase Order {locked.order_number}",
                    reference_type=StockMovement.ReferenceType.PURCHASE_ORDER,
                    reference_id=locked.pk,
                    performed_by=performed_by,
                )
                item.received_quantity += quantity
                update_fields.append("received_quantity")
                if item.received_quantity > item.quantity:
                    logger.warning(
                        f"Over-receipt on {locked.order_number}: {item.ingredient.name} "
                        f"received {item.received_quantity} of {item.quantity} ordered"
                    )
            if update_fields:
                item.save(update_fields=update_fields)

        all_items = list(items.values())
        if all(item.is_fully_received for item in all_items):
            locked.status = PurchaseOrder.Status.RECEIVED
            locked.received_at = timezone.now()
        elif any(item.received_quantity > 0 for item in all_items):
            locked.status = PurchaseOrder.Status.PARTIAL
        if performed_by is not None:
            locked.received_by = performed_by
        locked.save(update_fields=["status", "received_at", "received_by", "updated_at"])

        logger.info(f"Received delivery on {locked.order_number}: status {locked.status}")
        PurchaseOrderService._sync(purchase_order, locked)
        return locked
