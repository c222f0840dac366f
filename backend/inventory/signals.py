from django.dispatch import Signal, receiver
import logging

logger = logging.getLogger(__name__)

# Sent on commit after a movement is appended to the ledger.
# Provides: movement
stock_movement_recorded = Signal()


@receiver(stock_movement_recorded)
def handle_stock_movement_recorded(sender, movement=None, **kwargs):
    """Warn when a movement leaves an ingredient negative or at its reorder point."""
    if movement is None:
        return

    ingredient = movement.ingredient
    ingredient.refresh_from_db(fields=["stock_quantity"])

    if ingredient.is_negative:
        logger.warning(
            f"Ingredient '{ingredient.name}' is negative after {movement.movement_type}: "
            f"{ingredient.stock_quantity} {ingredient.unit}"
        )
    elif ingredient.is_active and ingredient.is_low_stock:
        logger.info(
            f"Ingredient '{ingredient.name}' at or below reorder point: "
            f"{ingredient.stock_quantity} <= {ingredient.reorder_point} {ingredient.unit}"
        )
