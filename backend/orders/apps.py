from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "orders"

    def ready(self):
        # Implicitly connect signal handlers decorated with @receiver.
        import orders.signals  # noqa
