import math
from decimal import Decimal
from typing import Iterable

from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone
import logging

from core_backend.config import app_settings
from core_backend.exceptions import InvalidTransitionError, surfaces_persistence_errors
from core_backend.utils import resolve_instance
from orders.models import Order, OrderEvent, OrderItem
from games.services import GameSessionService
from orders.services import OrderEventService, OrderItemService, OrderService
from .models import Seat, SeatSession, Table

logger = logging.getLogger(__name__)

# Sessions on an order that is not yet paid or void still hold their seat
UNPAID_ORDER = Q(order__status__in=[Order.OrderStatus.OPEN, Order.OrderStatus.AWAITING_PAYMENT])


def derive_table_status(seat_statuses: Iterable[str]) -> str:
    """
    Table status from its seats: ``offline`` when every seat is closed (or
    there are no seats), ``seated`` when any seat is occupied, otherwise
    ``available``.
    """
    statuses = list(seat_statuses)
    if all(s == Seat.Status.CLOSED for s in statuses):
        return Table.Status.OFFLINE
    if any(s == Seat.Status.OCCUPIED for s in statuses):
        return Table.Status.SEATED
    return Table.Status.AVAILABLE


class TableService:

    @staticmethod
    @transaction.atomic
    def create_table(name: str, seat_count: int, capacity: int = None) -> Table:
        table = Table.objects.create(name=name, capacity=capacity or seat_count)
        Seat.objects.bulk_create(
            [Seat(table=table, number=n) for n in range(1, seat_count + 1)]
        )
        TableService.recompute_table_status(table)
        return table

    @staticmethod
    def recompute_table_status(table) -> str:
        """
        Re-derive and store a table's status. Writes only when it changed.
        """
        table = resolve_instance(Table, table, entity="Table")
        statuses = Seat.objects.filter(table=table).values_list("status", flat=True)
        new_status = derive_table_status(statuses)

        current = Table.objects.filter(pk=table.pk).values_list("status", flat=True).first()
        if current != new_status:
            Table.objects.filter(pk=table.pk).update(status=new_status)
            logger.info(f"Table {table.name}: {current} -> {new_status}")
        table.status = new_status
        return new_status


class SeatService:

    VALID_STATUS_TRANSITIONS = {
        Seat.Status.OPEN: [Seat.Status.OCCUPIED, Seat.Status.CLOSED],
        Seat.Status.OCCUPIED: [Seat.Status.OPEN, Seat.Status.CLOSED],
        Seat.Status.CLOSED: [Seat.Status.OPEN],
    }

    @staticmethod
    def _lock_seat(seat) -> Seat:
        return resolve_instance(
            Seat,
            seat.pk if isinstance(seat, Seat) else seat,
            entity="Seat",
            queryset=Seat.objects.select_for_update().select_related("table"),
        )

    @staticmethod
    def open_session_for_seat(seat):
        return SeatSession.objects.filter(seat=seat, ended_at__isnull=True).first()

    @staticmethod
    def _apply_transition(locked: Seat, new_status: str) -> Seat:
        if new_status not in Seat.Status.values:
            raise InvalidTransitionError(
                "seat", locked.status, new_status, f"'{new_status}' is not a valid seat status."
            )
        if locked.status == new_status:
            return locked
        if new_status not in SeatService.VALID_STATUS_TRANSITIONS[locked.status]:
            raise InvalidTransitionError("seat", locked.status, new_status)
        # A seat with a live session can only stay occupied
        if (
            new_status != Seat.Status.OCCUPIED
            and SeatService.open_session_for_seat(locked) is not None
        ):
            raise InvalidTransitionError(
                "seat",
                locked.status,
                new_status,
                f"Seat {locked} still has an open session",
            )

        previous = locked.status
        locked.status = new_status
        locked.save(update_fields=["status"])
        logger.debug(f"Seat {locked}: {previous} -> {new_status}")
        return locked

    @staticmethod
    @surfaces_persistence_errors
    @transaction.atomic
    def transition_seat(seat, new_status: str) -> Seat:
        """
        Move a seat between open, occupied and closed, then re-derive its
        table's status. Moving to the current status is a no-op.
        """
        locked = SeatService._lock_seat(seat)
        SeatService._apply_transition(locked, new_status)
        TableService.recompute_table_status(locked.table)
        if isinstance(seat, Seat):
            seat.status = locked.status
        return locked

    @staticmethod
    @surfaces_persistence_errors
    @transaction.atomic
    def start_session(seat, order, with_timer: bool = False, performed_by=None) -> SeatSession:
        locked = SeatService._lock_seat(seat)
        if locked.status == Seat.Status.CLOSED:
            raise InvalidTransitionError(
                "seat", locked.status, Seat.Status.OCCUPIED, f"Seat {locked} is closed"
            )
        if SeatService.open_session_for_seat(locked) is not None:
            raise InvalidTransitionError(
                "seat",
                locked.status,
                Seat.Status.OCCUPIED,
                f"Seat {locked} already has an active session",
            )
        locked_order = OrderItemService.lock_open_order(order, "start a seat session")

        try:
            with transaction.atomic():
                session = SeatSession.objects.create(
                    seat=locked,
                    order=locked_order,
                    started_at=timezone.now() if with_timer else None,
                )
        except IntegrityError:
            raise InvalidTransitionError(
                "seat",
                locked.status,
                Seat.Status.OCCUPIED,
                f"Seat {locked} already has an active session",
            )

        SeatService._apply_transition(locked, Seat.Status.OCCUPIED)
        TableService.recompute_table_status(locked.table)

        OrderEventService.record(
            locked_order,
            OrderEvent.Kind.SEAT_SESSION_STARTED,
            {"seatId": locked.pk, "sessionId": session.pk, "hasTimer": with_timer},
            performed_by=performed_by,
        )
        logger.info(f"Seat {locked} started session {session.pk} for order {locked_order.pk}")
        return session

    @staticmethod
    def _held_by_other_order(seat, order_id) -> bool:
        """True when another order's open or unpaid session still holds the seat."""
        return (
            SeatSession.objects.filter(seat=seat)
            .filter(Q(ended_at__isnull=True) | UNPAID_ORDER)
            .exclude(order_id=order_id)
            .exists()
        )

    @staticmethod
    @surfaces_persistence_errors
    @transaction.atomic
    def transfer_session(seat, target_seat, performed_by=None) -> SeatSession:
        """
        Move the open session on ``seat`` to ``target_seat``, which may be at
        another table. The session keeps its start time, so a running timer
        carries over. The source seat reopens unless another unpaid order
        still holds it, and both tables are re-derived.
        """
        source_id = resolve_instance(Seat, seat, entity="Seat").pk
        target_id = resolve_instance(Seat, target_seat, entity="Seat").pk
        if source_id == target_id:
            raise InvalidTransitionError(
                "seat", "occupied", "occupied", "Cannot transfer a session to the same seat"
            )

        # Lock in primary key order so opposite transfers cannot deadlock
        locked = {pk: SeatService._lock_seat(pk) for pk in sorted((source_id, target_id))}
        source, target = locked[source_id], locked[target_id]

        session = (
            SeatSession.objects.select_for_update()
            .filter(seat=source, ended_at__isnull=True)
            .first()
        )
        if session is None:
            raise InvalidTransitionError(
                "seat", source.status, Seat.Status.OPEN, f"Seat {source} has no active session"
            )
        if target.status != Seat.Status.OPEN or SeatService.open_session_for_seat(target) is not None:
            raise InvalidTransitionError(
                "seat", target.status, Seat.Status.OCCUPIED, f"Seat {target} is not available"
            )

        session.seat = target
        session.save(update_fields=["seat"])

        SeatService._apply_transition(target, Seat.Status.OCCUPIED)
        if not SeatService._held_by_other_order(source, session.order_id):
            SeatService._apply_transition(source, Seat.Status.OPEN)
        for table_id in {source.table_id, target.table_id}:
            TableService.recompute_table_status(table_id)

        OrderEventService.record(
            session.order,
            OrderEvent.Kind.SEAT_TRANSFERRED,
            {
                "sessionId": session.pk,
                "fromSeatId": source.pk,
                "fromSeatNumber": source.number,
                "fromTableName": source.table.name,
                "toSeatId": target.pk,
                "toSeatNumber": target.number,
                "toTableName": target.table.name,
            },
            performed_by=performed_by,
        )
        logger.info(f"Session {session.pk} moved from seat {source} to seat {target}")
        return session

    @staticmethod
    def seat_time_charge(minutes: int, price_per_minute_minor: int):
        """
        ``(blocks, price_per_block_minor, tax_minor)`` for a timed session.
        Time is billed in whole blocks.
        """
        block_minutes = app_settings.seat_time_block_minutes
        blocks = math.ceil(minutes / block_minutes) if minutes > 0 else 0
        price_per_block = block_minutes * price_per_minute_minor
        tax = int(Decimal(blocks * price_per_block) * app_settings.seat_time_tax_rate)
        return blocks, price_per_block, tax

    @staticmethod
    @surfaces_persistence_errors
    @transaction.atomic
    def end_session(session, price_per_minute_minor: int = None, performed_by=None) -> SeatSession:
        """
        End a seat session. Timed sessions add a ``seat_time`` item to the
        order. The seat stays occupied until the order is paid; the order
        moves to awaiting payment once none of its sessions are open.
        """
        session = resolve_instance(
            SeatSession,
            session.pk if isinstance(session, SeatSession) else session,
            entity="Seat session",
            queryset=SeatSession.objects.select_for_update(),
        )
        if session.ended_at is not None:
            raise InvalidTransitionError(
                "seat session", "ended", "ended", f"Seat session {session.pk} has already ended"
            )

        session.ended_at = timezone.now()
        session.save(update_fields=["ended_at"])

        payload = {
            "seatId": session.seat_id,
            "sessionId": session.pk,
            "endedAt": session.ended_at.isoformat(),
        }

        if session.has_timer:
            if price_per_minute_minor is None:
                price_per_minute_minor = app_settings.seat_time_price_per_minute_minor
            elapsed = (session.ended_at - session.started_at).total_seconds()
            minutes = math.ceil(elapsed / 60)
            blocks, price_per_block, tax = SeatService.seat_time_charge(minutes, price_per_minute_minor)
            payload.update({"minutes": minutes, "blocks": blocks})
            if blocks:
                item = OrderItemService.add_item(
                    session.order_id,
                    OrderItem.Kind.SEAT_TIME,
                    f"Seat time ({session.seat})",
                    blocks,
                    price_per_block,
                    tax_minor=tax,
                    meta={
                        "seatId": session.seat_id,
                        "sessionId": session.pk,
                        "minutes": minutes,
                        "blocks": blocks,
                    },
                    performed_by=performed_by,
                )
                payload["itemId"] = item.pk

        OrderEventService.record(
            session.order, OrderEvent.Kind.SEAT_SESSION_ENDED, payload, performed_by=performed_by
        )

        order = session.order
        if order.status == Order.OrderStatus.OPEN and not OrderService.has_open_seat_sessions(order):
            OrderService.mark_awaiting_payment(order, performed_by=performed_by)

        return session

    @staticmethod
    @surfaces_persistence_errors
    @transaction.atomic
    def release_seats_for_order(order) -> list:
        """
        Free the seats of a paid or voided order: end its open sessions and
        reopen each seat no unpaid order still holds. Games still out at a
        table nobody is seated at go back to the shelf. Returns the reopened
        seats.
        """
        order_id = order.pk if isinstance(order, Order) else order
        now = timezone.now()
        SeatSession.objects.filter(order_id=order_id, ended_at__isnull=True).update(ended_at=now)

        seat_ids = SeatSession.objects.filter(order_id=order_id).values_list("seat_id", flat=True).distinct()
        released = []
        tables = set()
        for seat in Seat.objects.select_for_update().filter(pk__in=list(seat_ids)).select_related("table"):
            tables.add(seat.table_id)
            if seat.status != Seat.Status.OCCUPIED:
                continue
            if SeatService._held_by_other_order(seat, order_id):
                continue
            SeatService._apply_transition(seat, Seat.Status.OPEN)
            released.append(seat)

        for table_id in tables:
            if TableService.recompute_table_status(table_id) != Table.Status.SEATED:
                # Nobody left at the table to play its games
                GameSessionService.release_table_games(table_id)

        if released:
            logger.info(f"Released {len(released)} seat(s) for order {order_id}")
        return released

    @staticmethod
    def cleanup_paid_seats() -> int:
        """
        Reopen occupied seats whose sessions all belong to paid or void
        orders, then re-derive every table. Returns the number reopened.
        """
        cleared = 0
        with transaction.atomic():
            for seat in Seat.objects.select_for_update().filter(status=Seat.Status.OCCUPIED):
                sessions = SeatSession.objects.filter(seat=seat)
                if not sessions.exists():
                    continue
                if sessions.filter(UNPAID_ORDER).exists():
                    continue
                SeatSession.objects.filter(seat=seat, ended_at__isnull=True).update(ended_at=timezone.now())
                SeatService._apply_transition(seat, Seat.Status.OPEN)
                cleared += 1

            for table in Table.objects.all():
                TableService.recompute_table_status(table)
        return cleared

