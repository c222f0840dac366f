from django.db import models
from django.utils.translation import gettext_lazy as _


class Table(models.Model):
    """
    A table on the floor. ``status`` is derived from its seats and only
    written by ``TableService.recompute_table_status``.
    """

    class Status(models.TextChoices):
        AVAILABLE = "available", _("Available")
        SEATED = "seated", _("Seated")
        OFFLINE = "offline", _("Offline")

    name = models.CharField(max_length=50, unique=True)
    capacity = models.PositiveSmallIntegerField(default=4)
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.OFFLINE
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        verbose_name = _("Table")
        verbose_name_plural = _("Tables")

    def __str__(self):
        return f"Table {self.name}"


class Seat(models.Model):
    class Status(models.TextChoices):
        OPEN = "open", _("Open")
        OCCUPIED = "occupied", _("Occupied")
        CLOSED = "closed", _("Closed")

    table = models.ForeignKey(Table, on_delete=models.CASCADE, related_name="seats")
    number = models.PositiveSmallIntegerField()
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.OPEN)

    class Meta:
        ordering = ["table", "number"]
        verbose_name = _("Seat")
        verbose_name_plural = _("Seats")
        constraints = [
            models.UniqueConstraint(fields=["table", "number"], name="unique_seat_number_per_table"),
        ]

    def __str__(self):
        return f"{self.table.name}-{self.number}"


class SeatSession(models.Model):
    """
    A guest occupying a seat on behalf of an order. ``started_at`` is only
    set for timed (billed) sessions.
    """

    seat = models.ForeignKey(Seat, on_delete=models.CASCADE, related_name="sessions")
    order = models.ForeignKey(
        "orders.Order", on_delete=models.PROTECT, related_name="seat_sessions"
    )
    started_at = models.DateTimeField(null=True, blank=True)
    ended_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        verbose_name = _("Seat Session")
        verbose_name_plural = _("Seat Sessions")
        constraints = [
            models.UniqueConstraint(
                fields=["seat"],
                condition=models.Q(ended_at__isnull=True),
                name="one_open_session_per_seat",
            ),
        ]
        indexes = [
            models.Index(fields=["order", "ended_at"], name="seat_session_order_idx"),
        ]

    def __str__(self):
        state = "open" if self.is_open else "ended"
        return f"Session {self.pk} on seat {self.seat_id} ({state})"

    @property
    def is_open(self):
        return self.ended_at is None

    @property
    def has_timer(self):
        return self.started_at is not None
