"""
Custom exceptions for the game library.
"""

from rest_framework import status

from core_backend.exceptions import PosCoreError


class GameInUseError(PosCoreError):
    """
    Raised when a game is already out, either at a table (``competing_session``)
    or on a rental (``competing_rental``).
    """

    code = "game_in_use"
    http_status = status.HTTP_409_CONFLICT

    def __init__(self, game, competing_session=None, message=None, competing_rental=None):
        self.game = game
        self.competing_session = competing_session
        self.competing_rental = competing_rental
        if message is None:
            if competing_session is not None:
                where = f" at table {competing_session.table.name}"
            elif competing_rental is not None:
                where = f" on rental to {competing_rental.customer_name}"
            else:
                where = ""
            message = f"Game '{game.name}' is already in use{where}"
        super().__init__(
            message,
            {
                "game_id": game.pk,
                "competing_session_id": competing_session.pk if competing_session else None,
                "table_id": competing_session.table_id if competing_session else None,
                "rental_id": competing_rental.pk if competing_rental else None,
            },
        )


class AlreadyEndedError(PosCoreError):
    """Raised when ending a game session that has already ended."""

    code = "already_ended"
    http_status = status.HTTP_409_CONFLICT

    def __init__(self, session, message=None):
        self.session = session
        if message is None:
            message = f"Game session {session.pk} already ended at {session.ended_at.isoformat()}"
        super().__init__(message, {"session_id": session.pk})
