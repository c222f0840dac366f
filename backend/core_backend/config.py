"""
Centralized access to the POS core's business settings.

Values come from ``settings.POS_CORE`` with defaults for anything missing,
so services never read the Django settings module directly.
"""

from decimal import Decimal
from typing import Any, Optional
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
import logging

logger = logging.getLogger(__name__)


DEFAULTS = {
    "LOW_STOCK_SERVINGS": 5,
    "SEAT_TIME_PRICE_PER_MINUTE_MINOR": 10,
    "SEAT_TIME_BLOCK_MINUTES": 30,
    "SEAT_TIME_TAX_RATE": "0.10",
}


class AppSettings:
    """
    A LAZY singleton over ``settings.POS_CORE``.

    Loading is deferred to the first attribute access so the settings module
    can be overridden in tests before anything is read. Call ``reload()``
    after changing ``POS_CORE`` at runtime.
    """

    _instance: Optional["AppSettings"] = None
    _initialized: bool = False

    def __new__(cls) -> "AppSettings":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def _setup(self):
        if not self._initialized:
            self.load_settings()
            self._initialized = True

    def __getattr__(self, name: str) -> Any:
        if not self._initialized:
            self._setup()

        try:
            return self.__dict__[name]
        except KeyError:
            raise AttributeError(f"'AppSettings' object has no attribute '{name}'")

    def load_settings(self) -> None:
        configured = getattr(settings, "POS_CORE", {}) or {}
        values = {**DEFAULTS, **configured}

        try:
            self.low_stock_servings: int = int(values["LOW_STOCK_SERVINGS"])
            self.seat_time_price_per_minute_minor: int = int(
                values["SEAT_TIME_PRICE_PER_MINUTE_MINOR"]
            )
            self.seat_time_block_minutes: int = int(values["SEAT_TIME_BLOCK_MINUTES"])
            self.seat_time_tax_rate: Decimal = Decimal(str(values["SEAT_TIME_TAX_RATE"]))
        except (TypeError, ValueError, ArithmeticError) as e:
            raise ImproperlyConfigured(f"Invalid POS_CORE setting: {e}")

        if self.seat_time_block_minutes <= 0:
            raise ImproperlyConfigured("POS_CORE['SEAT_TIME_BLOCK_MINUTES'] must be positive")

        logger.debug("Loaded POS core settings: %s", values)

    def reload(self) -> None:
        """Re-read ``settings.POS_CORE`` on next access."""
        for key in list(self.__dict__):
            del self.__dict__[key]
        self._initialized = False


app_settings = AppSettings()
