"""
Error kinds shared by every POS core service, plus the DRF exception
handler that renders them.

Business errors that belong to a single app (insufficient stock, game in
use) live in that app's ``exceptions`` module and subclass ``PosCoreError``.
"""

import functools
import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class PosCoreError(Exception):
    """Base exception for POS core errors."""

    code = "pos_error"
    http_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, message=None, details=None):
        self.message = message or self.__class__.__doc__ or self.code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self):
        return {
            "status": "error",
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(PosCoreError):
    """Raised when an ingredient, order, table, game or line does not exist."""

    code = "not_found"
    http_status = status.HTTP_404_NOT_FOUND

    def __init__(self, entity, identifier, message=None):
        self.entity = entity
        self.identifier = identifier
        if message is None:
            message = f"{entity} '{identifier}' not found"
        super().__init__(message, {"entity": entity, "id": str(identifier)})


class InvalidQuantityError(PosCoreError):
    """Raised when a quantity is zero, negative where not allowed, or malformed."""

    code = "invalid_quantity"

    def __init__(self, quantity, message=None):
        self.quantity = quantity
        if message is None:
            message = f"Invalid quantity: {quantity!r}"
        super().__init__(message, {"quantity": str(quantity)})


class InvalidChoiceError(PosCoreError):
    """Raised when a kind, channel or similar enumerated value is unknown."""

    code = "invalid_choice"

    def __init__(self, field, value, choices=(), message=None):
        self.field = field
        self.value = value
        if message is None:
            message = f"Unknown {field}: {value!r}"
        super().__init__(
            message, {"field": field, "value": str(value), "choices": list(choices)}
        )


class InvalidTransitionError(PosCoreError):
    """Raised when a seat, table or order status move is not allowed."""

    code = "invalid_transition"
    http_status = status.HTTP_409_CONFLICT

    def __init__(self, entity, current, requested, message=None):
        self.entity = entity
        self.current = current
        self.requested = requested
        if message is None:
            message = f"Cannot move {entity} from '{current}' to '{requested}'"
        super().__init__(
            message, {"entity": entity, "current": current, "requested": requested}
        )


class PersistenceFailureError(PosCoreError):
    """Raised when the backing store rejects or fails an operation."""

    code = "persistence_failure"
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE


def surfaces_persistence_errors(func):
    """
    Re-raise database errors escaping a service call as
    ``PersistenceFailureError`` (chained to the database error).

    Apply outermost, above ``transaction.atomic``, so the transaction has
    already rolled back when the error is translated.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except DatabaseError as e:
            logger.error(f"Persistence failure in {func.__qualname__}: {e}")
            raise PersistenceFailureError(f"Backing store error in {func.__name__}: {e}") from e

    return wrapper


def pos_exception_handler(exc, context):
    """
    Render POS core errors as structured JSON and defer everything else to
    DRF's default handler.
    """
    if isinstance(exc, PosCoreError):
        request = context.get("request")
        log = logger.warning if exc.http_status < 500 else logger.error
        log(
            f"POS core error: {exc.__class__.__name__}: {exc.message}",
            extra={
                "status_code": exc.http_status,
                "path": getattr(request, "path", None),
                "method": getattr(request, "method", None),
            },
        )
        return Response(exc.to_dict(), status=exc.http_status)

    return exception_handler(exc, context)
