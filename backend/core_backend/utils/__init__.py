"""
Utility functions for core_backend.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from core_backend.exceptions import InvalidQuantityError, NotFoundError

# Quantities are stored with three decimal places (grams, millilitres, each)
QUANTITY_PLACES = Decimal("0.001")


def resolve_instance(model, value, entity=None, queryset=None):
    """
    Accept either a model instance or a primary key and return the instance.

    Raises NotFoundError when a primary key does not match a row, so callers
    can pass ids straight from a request.
    """
    if isinstance(value, model):
        return value

    entity = entity or model._meta.verbose_name.title()
    qs = queryset if queryset is not None else model.objects.all()
    try:
        return qs.get(pk=value)
    except (model.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(entity, value)


def parse_quantity(value, allow_zero=False, allow_negative=True):
    """
    Convert user input to a Decimal quantity.

    Floats are converted through ``str`` so 0.1 stays 0.1.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidQuantityError(value)
    try:
        quantity = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidQuantityError(value)

    if not quantity.is_finite():
        raise InvalidQuantityError(value)
    if quantity == 0 and not allow_zero:
        raise InvalidQuantityError(value, "Quantity must not be zero")
    if quantity < 0 and not allow_negative:
        raise InvalidQuantityError(value, "Quantity must not be negative")
    if quantity != quantity.quantize(QUANTITY_PLACES):
        raise InvalidQuantityError(
            value, f"Quantity {value} has more than three decimal places"
        )

    return quantity.quantize(QUANTITY_PLACES)


def parse_item_quantity(value):
    """Order item quantities are positive whole numbers."""
    if isinstance(value, bool):
        raise InvalidQuantityError(value)
    try:
        quantity = int(value)
    except (ValueError, TypeError):
        raise InvalidQuantityError(value)
    if quantity != value and str(quantity) != str(value).strip():
        raise InvalidQuantityError(value, "Item quantity must be a whole number")
    if quantity <= 0:
        raise InvalidQuantityError(value, "Item quantity must be positive")
    return quantity


def round_minor(amount) -> int:
    """Round a Decimal amount to whole minor currency units (half up)."""
    return int(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def total_cost_minor(quantity, unit_cost_minor) -> int:
    """Cost of a movement: ``round(abs(quantity) * unit_cost)``."""
    return round_minor(abs(Decimal(str(quantity))) * Decimal(unit_cost_minor))
