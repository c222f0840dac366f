from django.db import IntegrityError, transaction
from django.utils import timezone
import logging

from core_backend.exceptions import InvalidTransitionError, surfaces_persistence_errors
from core_backend.utils import resolve_instance
from floor.models import Table
from orders.models import Order, OrderEvent, OrderItem
from orders.services import OrderEventService, OrderItemService
from .exceptions import AlreadyEndedError, GameInUseError
from .models import Game, GameRental, GameSession

logger = logging.getLogger(__name__)


def _lock_game(game) -> Game:
    return resolve_instance(
        Game,
        game.pk if isinstance(game, Game) else game,
        entity="Game",
        queryset=Game.objects.select_for_update(),
    )


def _ensure_game_free(locked_game: Game):
    """
    Raise GameInUseError unless the game is on the shelf: no open table
    session, no rental out, and not flagged unavailable.
    """
    competing = GameSessionService._open_session(locked_game)
    if competing is not None:
        raise GameInUseError(locked_game, competing)
    rental = GameRentalService.open_rental(locked_game)
    if rental is not None:
        raise GameInUseError(locked_game, competing_rental=rental)
    if not locked_game.is_available:
        raise GameInUseError(locked_game, message=f"Game '{locked_game.name}' is not available")


class GameSessionService:
    """
    Hands games out to tables. A game has at most one open session anywhere,
    enforced by a row lock on the game and a partial unique index.
    """

    @staticmethod
    def _open_session(game):
        return (
            GameSession.objects.filter(game=game, ended_at__isnull=True)
            .select_related("table")
            .first()
        )

    @staticmethod
    def orders_seated_at(table):
        """Distinct open orders with an open seat session at the table."""
        return (
            Order.objects.filter(
                status=Order.OrderStatus.OPEN,
                seat_sessions__seat__table=table,
                seat_sessions__ended_at__isnull=True,
            )
            .distinct()
            .order_by("pk")
        )

    @staticmethod
    @surfaces_persistence_errors
    @transaction.atomic
    def assign(table, game, performed_by=None) -> GameSession:
        """
        Give a game to a table and put a zero-priced line for it on every
        open tab seated there.

        Raises GameInUseError, carrying the competing session or rental, when
        the game is already out.
        """
        table = resolve_instance(Table, table, entity="Table")
        locked_game = _lock_game(game)
        _ensure_game_free(locked_game)

        try:
            with transaction.atomic():
                session = GameSession.objects.create(table=table, game=locked_game)
        except IntegrityError:
            # Lost a race the row lock could not prevent
            competing = GameSessionService._open_session(locked_game)
            logger.warning(f"Concurrent assignment of game '{locked_game.name}' rejected by unique index")
            raise GameInUseError(locked_game, competing)

        Game.objects.filter(pk=locked_game.pk).update(is_available=False)
        locked_game.is_available = False
        if isinstance(game, Game):
            game.is_available = False

        for order in GameSessionService.orders_seated_at(table):
            item = OrderItemService.add_item(
                order,
                OrderItem.Kind.RETAIL,
                locked_game.name,
                1,
                0,
                meta={
                    "isGame": True,
                    "gameId": locked_game.pk,
                    "gameSessionId": session.pk,
                },
                performed_by=performed_by,
            )
            OrderEventService.record(
                order,
                OrderEvent.Kind.GAME_ASSIGNED,
                {
                    "gameId": locked_game.pk,
                    "gameSessionId": session.pk,
                    "tableId": table.pk,
                    "itemId": item.pk,
                },
                performed_by=performed_by,
            )

        logger.info(f"Game '{locked_game.name}' assigned to table {table.name} (session {session.pk})")
        return session

    @staticmethod
    @surfaces_persistence_errors
    @transaction.atomic
    def release(session) -> GameSession:
        """End a game session and return the game to the shelf."""
        locked = resolve_instance(
            GameSession,
            session.pk if isinstance(session, GameSession) else session,
            entity="Game session",
            queryset=GameSession.objects.select_for_update(),
        )
        if locked.ended_at is not None:
            raise AlreadyEndedError(locked)

        locked.ended_at = timezone.now()
        locked.save(update_fields=["ended_at"])
        Game.objects.filter(pk=locked.game_id).update(is_available=True)

        if isinstance(session, GameSession):
            session.ended_at = locked.ended_at
        logger.info(f"Game session {locked.pk} released")
        return locked

    @staticmethod
    def active_sessions_for_table(table):
        return (
            GameSession.objects.filter(table=table, ended_at__isnull=True)
            .select_related("game")
            .order_by("started_at")
        )

    @staticmethod
    @surfaces_persistence_errors
    @transaction.atomic
    def release_table_games(table) -> list:
        """Release every game still out at the table. Returns the ended sessions."""
        table_id = table.pk if isinstance(table, Table) else table
        released = [
            GameSessionService.release(session)
            for session in GameSession.objects.filter(table_id=table_id, ended_at__isnull=True)
        ]
        if released:
            logger.info(f"Returned {len(released)} game(s) from table {table_id} to the shelf")
        return released


class GameRentalService:
    """
    Take-home rentals. A rental holds the game exclusively, the same way an
    open table session does.
    """

    @staticmethod
    def open_rental(game):
        return GameRental.objects.filter(game=game, status=GameRental.Status.OUT).first()

    @staticmethod
    @surfaces_persistence_errors
    @transaction.atomic
    def check_out(
        game,
        customer_name: str,
        expected_return_at,
        deposit_minor: int = 0,
        order=None,
        performed_by=None,
    ) -> GameRental:
        """
        Send a game home with a customer. When an open order is given, the
        deposit is added to it as a ``rental_deposit`` line.
        """
        locked_game = _lock_game(game)
        _ensure_game_free(locked_game)

        try:
            with transaction.atomic():
                rental = GameRental.objects.create(
                    game=locked_game,
                    customer_name=customer_name,
                    deposit_minor=deposit_minor,
                    expected_return_at=expected_return_at,
                    checked_out_by=performed_by,
                )
        except IntegrityError:
            raise GameInUseError(locked_game, competing_rental=GameRentalService.open_rental(locked_game))

        Game.objects.filter(pk=locked_game.pk).update(is_available=False)
        if isinstance(game, Game):
            game.is_available = False

        if order is not None and deposit_minor:
            OrderItemService.add_item(
                order,
                OrderItem.Kind.RENTAL_DEPOSIT,
                f"Rental Deposit: {locked_game.name}",
                1,
                deposit_minor,
                meta={"isDeposit": True, "gameId": locked_game.pk, "rentalId": rental.pk},
                performed_by=performed_by,
            )

        logger.info(f"Game '{locked_game.name}' rented to {customer_name} (rental {rental.pk})")
        return rental

    @staticmethod
    @surfaces_persistence_errors
    @transaction.atomic
    def check_in(rental, notes: str = "") -> GameRental:
        locked = resolve_instance(
            GameRental,
            rental.pk if isinstance(rental, GameRental) else rental,
            entity="Game rental",
            queryset=GameRental.objects.select_for_update(),
        )
        if not locked.is_out:
            raise InvalidTransitionError(
                "rental", locked.status, GameRental.Status.RETURNED,
                f"Rental {locked.pk} has already been returned",
            )

        locked.status = GameRental.Status.RETURNED
        locked.returned_at = timezone.now()
        if notes:
            locked.notes = notes
        locked.save(update_fields=["status", "returned_at", "notes"])
        Game.objects.filter(pk=locked.game_id).update(is_available=True)

        if isinstance(rental, GameRental):
            rental.status = locked.status
            rental.returned_at = locked.returned_at
        logger.info(f"Rental {locked.pk} returned")
        return locked

    @staticmethod
    def active_rentals():
        return (
            GameRental.objects.filter(status=GameRental.Status.OUT)
            .select_related("game")
            .order_by("expected_return_at")
        )
