from decimal import Decimal

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Ingredient",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200, unique=True)),
                ("kind", models.CharField(choices=[("ingredient", "Ingredient"), ("supply", "Supply")], default="ingredient", max_length=20)),
                ("unit", models.CharField(help_text="Unit of measure, e.g., 'g', 'ml', 'each'.", max_length=50)),
                ("cost_per_unit_minor", models.PositiveIntegerField(default=0, help_text="Cost per unit in minor currency units.")),
                ("stock_quantity", models.DecimalField(decimal_places=3, default=Decimal("0.000"), help_text="Current stock. May be negative after an under-correcting adjustment.", max_digits=12)),
                ("reorder_point", models.DecimalField(decimal_places=3, default=Decimal("0.000"), max_digits=12)),
                ("reorder_quantity", models.DecimalField(decimal_places=3, default=Decimal("0.000"), max_digits=12)),
                ("is_active", models.BooleanField(db_index=True, default=True)),
                ("last_restocked_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Ingredient",
                "verbose_name_plural": "Ingredients",
                "ordering": ["name"],
                "indexes": [models.Index(fields=["is_active", "stock_quantity"], name="ingredient_active_stock_idx")],
            },
        ),
        migrations.CreateModel(
            name="MenuItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200, unique=True)),
                ("price_minor", models.PositiveIntegerField(default=0)),
                ("is_active", models.BooleanField(default=True)),
            ],
            options={
                "verbose_name": "Menu Item",
                "verbose_name_plural": "Menu Items",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="RecipeIngredient",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("quantity", models.DecimalField(decimal_places=3, help_text="Quantity of the ingredient needed per serving.", max_digits=12)),
                ("is_optional", models.BooleanField(default=False)),
                ("ingredient", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="recipe_lines", to="inventory.ingredient")),
                ("menu_item", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="recipe_lines", to="inventory.menuitem")),
            ],
            options={
                "verbose_name": "Recipe Ingredient",
                "verbose_name_plural": "Recipe Ingredients",
                "constraints": [
                    models.UniqueConstraint(fields=("menu_item", "ingredient"), name="unique_recipe_line_per_ingredient"),
                    models.CheckConstraint(condition=models.Q(("quantity__gt", 0)), name="recipe_line_quantity_positive"),
                ],
            },
        ),
        migrations.AddField(
            model_name="menuitem",
            name="ingredients",
            field=models.ManyToManyField(related_name="menu_items", through="inventory.RecipeIngredient", to="inventory.ingredient"),
        ),
        migrations.CreateModel(
            name="StockMovement",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("movement_type", models.CharField(choices=[("initial", "Initial Stock"), ("purchase", "Purchase"), ("adjustment", "Adjustment"), ("sale_deduction", "Sale Deduction"), ("sale_return", "Sale Return")], max_length=20)),
                ("quantity", models.DecimalField(decimal_places=3, help_text="Signed change in quantity (negative for deductions).", max_digits=12)),
                ("unit_cost_minor", models.PositiveIntegerField(help_text="Unit cost at the time of the movement.")),
                ("total_cost_minor", models.PositiveIntegerField(help_text="round(abs(quantity) * unit cost), in minor units.")),
                ("reason", models.CharField(blank=True, max_length=255)),
                ("notes", models.TextField(blank=True)),
                ("reference_type", models.CharField(blank=True, choices=[("", "None"), ("order", "Order"), ("purchase_order", "Purchase Order")], default="", max_length=20)),
                ("reference_id", models.CharField(blank=True, default="", max_length=100)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("ingredient", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="movements", to="inventory.ingredient")),
                ("performed_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="stock_movements", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name": "Stock Movement",
                "verbose_name_plural": "Stock Movements",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["ingredient", "created_at"], name="movement_ingredient_time_idx"),
                    models.Index(fields=["reference_type", "reference_id"], name="movement_reference_idx"),
                    models.Index(fields=["movement_type"], name="movement_type_idx"),
                ],
            },
        ),
    ]
