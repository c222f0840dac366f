from decimal import Decimal
from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _


class Ingredient(models.Model):
    """
    An ingredient or supply whose stock is tracked by the ledger.

    ``stock_quantity`` is a cache of the sum of this ingredient's
    StockMovement rows. Only ``StockLedgerService`` writes to it.
    """

    class Kind(models.TextChoices):
        INGREDIENT = "ingredient", _("Ingredient")
        SUPPLY = "supply", _("Supply")

    name = models.CharField(max_length=200, unique=True)
    kind = models.CharField(
        max_length=20, choices=Kind.choices, default=Kind.INGREDIENT
    )
    unit = models.CharField(
        max_length=50,
        help_text=_("Unit of measure, e.g., 'g', 'ml', 'each'."),
    )
    cost_per_unit_minor = models.PositiveIntegerField(
        default=0,
        help_text=_("Cost per unit in minor currency units."),
    )
    stock_quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=Decimal("0.000"),
        help_text=_("Current stock. May be negative after an under-correcting adjustment."),
    )
    reorder_point = models.DecimalField(
        max_digits=12, decimal_places=3, default=Decimal("0.000")
    )
    reorder_quantity = models.DecimalField(
        max_digits=12, decimal_places=3, default=Decimal("0.000")
    )
    is_active = models.BooleanField(default=True, db_index=True)
    last_restocked_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Ingredient")
        verbose_name_plural = _("Ingredients")
        ordering = ["name"]
        indexes = [
            models.Index(fields=["is_active", "stock_quantity"], name="ingredient_active_stock_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.stock_quantity} {self.unit})"

    @property
    def is_low_stock(self):
        return self.stock_quantity <= self.reorder_point

    @property
    def is_negative(self):
        return self.stock_quantity < 0


class StockMovementQuerySet(models.QuerySet):
    def delete(self):
        raise TypeError("Stock movements are append-only and cannot be deleted.")

    def update(self, **kwargs):
        raise TypeError("Stock movements are append-only and cannot be updated.")


class StockMovement(models.Model):
    """
    One append-only entry in the stock ledger.
    """

    class MovementType(models.TextChoices):
        INITIAL = "initial", _("Initial Stock")
        PURCHASE = "purchase", _("Purchase")
        ADJUSTMENT = "adjustment", _("Adjustment")
        SALE_DEDUCTION = "sale_deduction", _("Sale Deduction")
        SALE_RETURN = "sale_return", _("Sale Return")

    class ReferenceType(models.TextChoices):
        NONE = "", _("None")
        ORDER = "order", _("Order")
        PURCHASE_ORDER = "purchase_order", _("Purchase Order")

    ingredient = models.ForeignKey(
        Ingredient, on_delete=models.PROTECT, related_name="movements"
    )
    movement_type = models.CharField(max_length=20, choices=MovementType.choices)
    quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        help_text=_("Signed change in quantity (negative for deductions)."),
    )
    unit_cost_minor = models.PositiveIntegerField(
        help_text=_("Unit cost at the time of the movement.")
    )
    total_cost_minor = models.PositiveIntegerField(
        help_text=_("round(abs(quantity) * unit cost), in minor units.")
    )
    reason = models.CharField(max_length=255, blank=True)
    notes = models.TextField(blank=True)
    reference_type = models.CharField(
        max_length=20, choices=ReferenceType.choices, blank=True, default=""
    )
    reference_id = models.CharField(max_length=100, blank=True, default="")
    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_movements",
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    objects = StockMovementQuerySet.as_manager()

    class Meta:
        verbose_name = _("Stock Movement")
        verbose_name_plural = _("Stock Movements")
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["ingredient", "created_at"], name="movement_ingredient_time_idx"),
            models.Index(fields=["reference_type", "reference_id"], name="movement_reference_idx"),
            models.Index(fields=["movement_type"], name="movement_type_idx"),
        ]

    def __str__(self):
        return f"{self.movement_type}: {self.ingredient.name} ({self.quantity:+})"

    def save(self, *args, **kwargs):
        if self.pk is not None and not self._state.adding:
            raise TypeError("Stock movements are immutable once recorded.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise TypeError("Stock movements are append-only and cannot be deleted.")


class MenuItem(models.Model):
    """A sellable item, optionally backed by a recipe."""

    name = models.CharField(max_length=200, unique=True)
    price_minor = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    ingredients = models.ManyToManyField(
        Ingredient, through="RecipeIngredient", related_name="menu_items"
    )

    class Meta:
        verbose_name = _("Menu Item")
        verbose_name_plural = _("Menu Items")
        ordering = ["name"]

    def __str__(self):
        return self.name


class RecipeIngredient(models.Model):
    """
    One recipe line: how much of an ingredient a single serving uses.
    Optional lines never gate availability and are never deducted.
    """

    menu_item = models.ForeignKey(
        MenuItem, on_delete=models.CASCADE, related_name="recipe_lines"
    )
    ingredient = models.ForeignKey(
        Ingredient, on_delete=models.PROTECT, related_name="recipe_lines"
    )
    quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        help_text=_("Quantity of the ingredient needed per serving."),
    )
    is_optional = models.BooleanField(default=False)

    class Meta:
        verbose_name = _("Recipe Ingredient")
        verbose_name_plural = _("Recipe Ingredients")
        constraints = [
            models.UniqueConstraint(
                fields=["menu_item", "ingredient"],
                name="unique_recipe_line_per_ingredient",
            ),
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name="recipe_line_quantity_positive",
            ),
        ]

    def __str__(self):
        optional = " (optional)" if self.is_optional else ""
        return f"{self.quantity} {self.ingredient.unit} of {self.ingredient.name} for {self.menu_item.name}{optional}"
