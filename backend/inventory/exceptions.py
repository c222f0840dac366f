"""
Custom exceptions for the inventory system.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import List

from rest_framework import status

from core_backend.exceptions import PosCoreError


@dataclass(frozen=True)
class Shortfall:
    """One non-optional ingredient that cannot cover a requested quantity."""

    ingredient_id: int
    ingredient_name: str
    unit: str
    have: Decimal
    need: Decimal

    def to_dict(self):
        return {
            "ingredient_id": self.ingredient_id,
            "ingredient_name": self.ingredient_name,
            "unit": self.unit,
            "have": str(self.have),
            "need": str(self.need),
        }

    def __str__(self):
        return f"{self.ingredient_name}: need {self.need} {self.unit}, only {self.have} available"


class InsufficientStockError(PosCoreError):
    """Raised when a recipe-backed item cannot be made from current stock."""

    code = "insufficient_stock"
    http_status = status.HTTP_409_CONFLICT

    def __init__(self, menu_item, requested_quantity, shortfalls: List[Shortfall], message=None):
        self.menu_item = menu_item
        self.requested_quantity = requested_quantity
        self.shortfalls = list(shortfalls)
        if message is None:
            message = (
                f"Insufficient stock for {requested_quantity}x '{menu_item.name}': "
                + "; ".join(str(s) for s in self.shortfalls)
            )
        super().__init__(
            message,
            {
                "menu_item_id": menu_item.pk,
                "requested_quantity": requested_quantity,
                "shortfalls": [s.to_dict() for s in self.shortfalls],
            },
        )
