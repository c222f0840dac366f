from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class Game(models.Model):
    """A board game in the library. One copy, so at most one table plays it."""

    name = models.CharField(max_length=200, unique=True)
    min_players = models.PositiveSmallIntegerField(default=1)
    max_players = models.PositiveSmallIntegerField(default=4)
    is_available = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        verbose_name = _("Game")
        verbose_name_plural = _("Games")

    def __str__(self):
        return self.name


class GameSession(models.Model):
    table = models.ForeignKey(
        "floor.Table", on_delete=models.PROTECT, related_name="game_sessions"
    )
    game = models.ForeignKey(Game, on_delete=models.PROTECT, related_name="sessions")
    started_at = models.DateTimeField(default=timezone.now)
    ended_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-started_at", "-id"]
        verbose_name = _("Game Session")
        verbose_name_plural = _("Game Sessions")
        constraints = [
            # A game can be out at only one table at a time
            models.UniqueConstraint(
                fields=["game"],
                condition=models.Q(ended_at__isnull=True),
                name="one_open_session_per_game",
            ),
        ]

    def __str__(self):
        return f"{self.game.name} at {self.table.name}"

    @property
    def is_open(self):
        return self.ended_at is None


class GameRental(models.Model):
    """
    A game taken home by a customer. While it is out the game cannot be
    assigned to a table, and vice versa.
    """

    class Status(models.TextChoices):
        OUT = "out", _("Out")
        RETURNED = "returned", _("Returned")

    game = models.ForeignKey(Game, on_delete=models.PROTECT, related_name="rentals")
    customer_name = models.CharField(max_length=200)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.OUT, db_index=True)
    deposit_minor = models.PositiveIntegerField(default=0)
    checked_out_at = models.DateTimeField(default=timezone.now)
    expected_return_at = models.DateTimeField()
    returned_at = models.DateTimeField(null=True, blank=True)
    checked_out_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    notes = models.TextField(blank=True)

    class Meta:
        ordering = ["-checked_out_at", "-id"]
        verbose_name = _("Game Rental")
        verbose_name_plural = _("Game Rentals")
        constraints = [
            models.UniqueConstraint(
                fields=["game"],
                condition=models.Q(status="out"),
                name="one_open_rental_per_game",
            ),
        ]

    def __str__(self):
        return f"{self.game.name} rented by {self.customer_name}"

    @property
    def is_out(self):
        return self.status == self.Status.OUT
