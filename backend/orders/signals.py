from django.dispatch import Signal, receiver
import logging

logger = logging.getLogger(__name__)

# Custom signals that other apps can listen to.
# Sent on commit. Provides: order, item
order_item_added = Signal()
# Sent on commit. Provides: order, item_id, returns
order_item_removed = Signal()
# Sent inside the settling transaction. Provides: order, method, amount_minor
order_paid = Signal()
# Sent inside the voiding transaction. Provides: order
order_voided = Signal()


@receiver(order_paid)
def log_order_paid(sender, order=None, **kwargs):
    logger.info(
        f"Order {order.pk} paid by {kwargs.get('method')}: {kwargs.get('amount_minor')} minor units"
    )
