from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    dependencies = [
        ("games", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="GameRental",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("customer_name", models.CharField(max_length=200)),
                ("status", models.CharField(choices=[("out", "Out"), ("returned", "Returned")], db_index=True, default="out", max_length=10)),
                ("deposit_minor", models.PositiveIntegerField(default=0)),
                ("checked_out_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("expected_return_at", models.DateTimeField()),
                ("returned_at", models.DateTimeField(blank=True, null=True)),
                ("notes", models.TextField(blank=True)),
                ("checked_out_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
                ("game", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="rentals", to="games.game")),
            ],
            options={
                "verbose_name": "Game Rental",
                "verbose_name_plural": "Game Rentals",
                "ordering": ["-checked_out_at", "-id"],
                "constraints": [models.UniqueConstraint(condition=models.Q(("status", "out")), fields=("game",), name="one_open_rental_per_game")],
            },
        ),
    ]
