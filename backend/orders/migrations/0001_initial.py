from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("inventory", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("status", models.CharField(choices=[("open", "Open"), ("awaiting_payment", "Awaiting Payment"), ("paid", "Paid"), ("void", "Void")], default="open", max_length=20)),
                ("channel", models.CharField(choices=[("table", "Table"), ("kiosk", "Kiosk"), ("counter", "Counter")], default="table", max_length=10)),
                ("payment_method", models.CharField(blank=True, max_length=30)),
                ("amount_paid_minor", models.PositiveIntegerField(default=0)),
                ("opened_at", models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                ("closed_at", models.DateTimeField(blank=True, null=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("closed_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="closed_orders", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name": "Order",
                "verbose_name_plural": "Orders",
                "ordering": ["-opened_at", "-id"],
                "indexes": [models.Index(fields=["status", "opened_at"], name="order_status_opened_idx")],
            },
        ),
        migrations.CreateModel(
            name="OrderItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("kind", models.CharField(choices=[("regular", "Regular"), ("retail", "Retail"), ("rental", "Rental"), ("rental_deposit", "Rental Deposit"), ("rental_fee", "Rental Fee"), ("seat_time", "Seat Time"), ("membership", "Membership")], default="regular", max_length=20)),
                ("name", models.CharField(max_length=200)),
                ("quantity", models.PositiveIntegerField(default=1)),
                ("unit_price_minor", models.IntegerField(default=0)),
                ("tax_minor", models.IntegerField(default=0)),
                ("total_minor", models.IntegerField(default=0, editable=False)),
                ("meta", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("menu_item", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="order_items", to="inventory.menuitem")),
                ("order", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="items", to="orders.order")),
            ],
            options={
                "verbose_name": "Order Item",
                "verbose_name_plural": "Order Items",
                "ordering": ["created_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="OrderEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("kind", models.CharField(choices=[("item.added", "Item Added"), ("item.removed", "Item Removed"), ("order.status_changed", "Status Changed"), ("seat.session.started", "Seat Session Started"), ("seat.session.ended", "Seat Session Ended"), ("payment.completed", "Payment Completed"), ("order.voided", "Order Voided"), ("game.assigned", "Game Assigned")], max_length=30)),
                ("payload", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("order", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="events", to="orders.order")),
                ("performed_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="order_events", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name": "Order Event",
                "verbose_name_plural": "Order Events",
                "ordering": ["created_at", "id"],
                "indexes": [models.Index(fields=["order", "kind"], name="order_event_kind_idx")],
            },
        ),
    ]
