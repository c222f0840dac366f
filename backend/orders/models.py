from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class Order(models.Model):
    # --- Status Fields ---
    class OrderStatus(models.TextChoices):
        OPEN = "open", _("Open")  # Accepting items
        AWAITING_PAYMENT = "awaiting_payment", _("Awaiting Payment")  # All seats ended
        PAID = "paid", _("Paid")
        VOID = "void", _("Void")  # Nullified, stock returned

    class Channel(models.TextChoices):
        TABLE = "table", _("Table")
        KIOSK = "kiosk", _("Kiosk")
        COUNTER = "counter", _("Counter")

    status = models.CharField(
        max_length=20, choices=OrderStatus.choices, default=OrderStatus.OPEN
    )
    channel = models.CharField(
        max_length=10, choices=Channel.choices, default=Channel.TABLE
    )
    payment_method = models.CharField(max_length=30, blank=True)
    amount_paid_minor = models.PositiveIntegerField(default=0)

    opened_at = models.DateTimeField(default=timezone.now, editable=False)
    closed_at = models.DateTimeField(null=True, blank=True)
    closed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="closed_orders",
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-opened_at", "-id"]
        verbose_name = _("Order")
        verbose_name_plural = _("Orders")
        indexes = [
            models.Index(fields=["status", "opened_at"], name="order_status_opened_idx"),
        ]

    def __str__(self):
        return f"Order {self.pk} ({self.get_status_display()})"

    @property
    def is_open(self):
        return self.status == self.OrderStatus.OPEN

    @property
    def is_closed(self):
        return self.status in (self.OrderStatus.PAID, self.OrderStatus.VOID)


class OrderItem(models.Model):
    class Kind(models.TextChoices):
        REGULAR = "regular", _("Regular")
        RETAIL = "retail", _("Retail")
        RENTAL = "rental", _("Rental")
        RENTAL_DEPOSIT = "rental_deposit", _("Rental Deposit")
        RENTAL_FEE = "rental_fee", _("Rental Fee")
        SEAT_TIME = "seat_time", _("Seat Time")
        MEMBERSHIP = "membership", _("Membership")

    # Only prepared items consume recipe ingredients
    DEDUCTIBLE_KINDS = (Kind.REGULAR,)

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    kind = models.CharField(max_length=20, choices=Kind.choices, default=Kind.REGULAR)
    menu_item = models.ForeignKey(
        "inventory.MenuItem",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_items",
    )
    name = models.CharField(max_length=200)
    quantity = models.PositiveIntegerField(default=1)
    unit_price_minor = models.IntegerField(default=0)
    tax_minor = models.IntegerField(default=0)
    total_minor = models.IntegerField(default=0, editable=False)
    meta = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        verbose_name = _("Order Item")
        verbose_name_plural = _("Order Items")

    def __str__(self):
        return f"{self.quantity} x {self.name} on order {self.order_id}"

    def save(self, *args, **kwargs):
        self.total_minor = self.quantity * self.unit_price_minor + self.tax_minor
        super().save(*args, **kwargs)

    @property
    def is_deductible(self):
        return self.kind in self.DEDUCTIBLE_KINDS

    @property
    def menu_item_ref(self):
        """The recipe-backed menu item id, from the FK or ``meta['menuItemId']``."""
        if self.menu_item_id:
            return self.menu_item_id
        return (self.meta or {}).get("menuItemId")


class OrderEvent(models.Model):
    """Append-only audit trail of everything that happens to an order."""

    class Kind(models.TextChoices):
        ITEM_ADDED = "item.added", _("Item Added")
        ITEM_REMOVED = "item.removed", _("Item Removed")
        STATUS_CHANGED = "order.status_changed", _("Status Changed")
        SEAT_SESSION_STARTED = "seat.session.started", _("Seat Session Started")
        SEAT_SESSION_ENDED = "seat.session.ended", _("Seat Session Ended")
        SEAT_TRANSFERRED = "seat.transferred", _("Seat Transferred")
        PAYMENT_COMPLETED = "payment.completed", _("Payment Completed")
        ORDER_VOIDED = "order.voided", _("Order Voided")
        GAME_ASSIGNED = "game.assigned", _("Game Assigned")

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="events")
    kind = models.CharField(max_length=30, choices=Kind.choices)
    payload = models.JSONField(default=dict, blank=True)
    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_events",
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["created_at", "id"]
        verbose_name = _("Order Event")
        verbose_name_plural = _("Order Events")
        indexes = [
            models.Index(fields=["order", "kind"], name="order_event_kind_idx"),
        ]

    def __str__(self):
        return f"{self.kind} on order {self.order_id}"

    def save(self, *args, **kwargs):
        if self.pk is not None and not self._state.adding:
            raise TypeError("Order events are immutable once recorded.")
        super().save(*args, **kwargs)
