from django.apps import AppConfig
import logging

logger = logging.getLogger(__name__)


class CoreBackendConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core_backend"

    def ready(self):
        """
        Validate the POS_CORE business settings at startup so a bad value
        fails the process instead of the first request that reads it.
        """
        from core_backend.config import app_settings

        logger.debug(
            "POS core settings: low stock at %s servings, seat time %s minor/min in %s minute blocks",
            app_settings.low_stock_servings,
            app_settings.seat_time_price_per_minute_minor,
            app_settings.seat_time_block_minutes,
        )
