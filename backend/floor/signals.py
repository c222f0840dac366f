from django.dispatch import receiver
import logging

from orders.signals import order_paid, order_voided

logger = logging.getLogger(__name__)


@receiver(order_paid)
def handle_order_paid(sender, order=None, **kwargs):
    """
    Frees the seats of a paid order.
    This receiver listens for the order_paid signal from the orders app.
    """
    if order is None:
        return
    # Import here to avoid circular imports
    from .services import SeatService

    SeatService.release_seats_for_order(order)


@receiver(order_voided)
def handle_order_voided(sender, order=None, **kwargs):
    if order is None:
        return
    from .services import SeatService

    SeatService.release_seats_for_order(order)
