from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("orders", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Table",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=50, unique=True)),
                ("capacity", models.PositiveSmallIntegerField(default=4)),
                ("status", models.CharField(choices=[("available", "Available"), ("seated", "Seated"), ("offline", "Offline")], default="offline", max_length=20)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name": "Table",
                "verbose_name_plural": "Tables",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Seat",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("number", models.PositiveSmallIntegerField()),
                ("status", models.CharField(choices=[("open", "Open"), ("occupied", "Occupied"), ("closed", "Closed")], default="open", max_length=20)),
                ("table", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="seats", to="floor.table")),
            ],
            options={
                "verbose_name": "Seat",
                "verbose_name_plural": "Seats",
                "ordering": ["table", "number"],
                "constraints": [models.UniqueConstraint(fields=("table", "number"), name="unique_seat_number_per_table")],
            },
        ),
        migrations.CreateModel(
            name="SeatSession",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("started_at", models.DateTimeField(blank=True, null=True)),
                ("ended_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("order", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="seat_sessions", to="orders.order")),
                ("seat", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="sessions", to="floor.seat")),
            ],
            options={
                "verbose_name": "Seat Session",
                "verbose_name_plural": "Seat Sessions",
                "ordering": ["-created_at", "-id"],
                "indexes": [models.Index(fields=["order", "ended_at"], name="seat_session_order_idx")],
                "constraints": [models.UniqueConstraint(condition=models.Q(("ended_at__isnull", True)), fields=("seat",), name="one_open_session_per_seat")],
            },
        ),
    ]
