"""
Costing service for COGS.

Recipe Cost Aggregator: rolls a menu item's recipe lines into plate cost,
labor estimate, prime cost, profits and cost percentages.

    line_cost      = quantity_used * cost_per_usage_unit      (4 places)
    ingredient     = Σ line_cost                               (cents)
    plate_cost     = ingredient + q_factor
    labor_cost     = prep_minutes / 60 * effective_hourly_labor_rate
    prime_cost     = plate_cost + labor_cost

Nothing here is cached or stored; every figure is recomputed from the current
recipe and prices. A menu item without recipe lines still gets a plate cost
(its q_factor) but is marked ``cost_configured=False`` so food-cost alerts
skip it.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List, Optional

from django.db import transaction

from cogs.models import Ingredient, MenuItem, RecipeLine
from cogs.services.unit_cost import IngredientSnapshot, resolve_cost
from core_backend.config import EngineConfig, get_engine_config
from core_backend.exceptions import NotFoundError, ValidationError
from core_backend.utils.money import (
    quantize_line_cost,
    quantize_money,
    safe_percent,
    to_decimal,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MenuItemSnapshot:
    """Plain read snapshot of a MenuItem row."""
    id: Optional[int]
    name: str
    selling_price: Decimal
    q_factor: Decimal = Decimal("0")
    target_cost_percent: Decimal = Decimal("35")
    estimated_prep_time_minutes: Decimal = Decimal("0")
    revenue_category: str = "food"

    @classmethod
    def from_model(cls, menu_item: MenuItem) -> "MenuItemSnapshot":
        return cls(
            id=menu_item.id,
            name=menu_item.name,
            selling_price=menu_item.selling_price,
            q_factor=menu_item.q_factor,
            target_cost_percent=menu_item.target_cost_percent,
            estimated_prep_time_minutes=menu_item.estimated_prep_time_minutes,
            revenue_category=menu_item.revenue_category,
        )


@dataclass(frozen=True)
class RecipeLineSnapshot:
    """A recipe line carrying its ingredient's resolved unit cost."""
    ingredient_id: Optional[int]
    ingredient_name: str
    quantity_used: Decimal
    cost_per_usage_unit: Decimal
    usage_unit: str = ""


@dataclass
class IngredientCostResult:
    """Result of costing a single ingredient in a recipe."""
    ingredient_id: Optional[int]
    ingredient_name: str
    quantity_used: Decimal
    usage_unit: str
    unit_cost: Decimal
    line_cost: Decimal  # quantity_used * unit_cost, 4 places


@dataclass
class MenuItemCostBreakdown:
    """Complete cost breakdown for a menu item."""
    menu_item_id: Optional[int]
    menu_item_name: str
    selling_price: Decimal
    ingredient_cost: Decimal
    q_factor: Decimal
    plate_cost: Decimal
    labor_cost: Decimal
    prime_cost: Decimal
    gross_profit: Decimal
    net_profit: Decimal
    food_cost_percent: Optional[Decimal]
    labor_cost_percent: Optional[Decimal]
    prime_cost_percent: Optional[Decimal]
    gross_margin_percent: Optional[Decimal]
    net_margin_percent: Optional[Decimal]
    target_cost_percent: Decimal
    cost_configured: bool = True
    ingredients: List[IngredientCostResult] = field(default_factory=list)

    @property
    def is_over_target(self) -> bool:
        """True when a configured item's food cost exceeds its target."""
        if not self.cost_configured or self.food_cost_percent is None:
            return False
        return self.food_cost_percent > self.target_cost_percent


def aggregate_recipe(
    menu_item: MenuItemSnapshot,
    lines: Iterable[RecipeLineSnapshot],
    labor_rate: Decimal,
) -> MenuItemCostBreakdown:
    """
    Compute the full cost breakdown for one menu item.

    Args:
        menu_item: The menu item snapshot.
        lines: Its recipe lines with resolved ingredient unit costs.
        labor_rate: Effective hourly labor rate.

    Returns:
        MenuItemCostBreakdown. Percentages are None when selling_price is 0.
    """
    selling_price = to_decimal(menu_item.selling_price)
    q_factor = to_decimal(menu_item.q_factor)
    prep_minutes = to_decimal(menu_item.estimated_prep_time_minutes)

    if selling_price < 0:
        raise ValidationError(f"Menu item '{menu_item.name}' has a negative selling price", field="selling_price")
    if q_factor < 0:
        raise ValidationError(f"Menu item '{menu_item.name}' has a negative q_factor", field="q_factor")
    if prep_minutes < 0:
        raise ValidationError(
            f"Menu item '{menu_item.name}' has negative prep time", field="estimated_prep_time_minutes"
        )

    ingredients = []
    raw_total = Decimal("0")
    for line in lines:
        quantity = to_decimal(line.quantity_used)
        if quantity <= 0:
            raise ValidationError(
                f"Recipe line for '{line.ingredient_name}' must use a positive quantity",
                field="quantity_used",
            )
        line_cost = quantize_line_cost(quantity * to_decimal(line.cost_per_usage_unit))
        raw_total += line_cost
        ingredients.append(IngredientCostResult(
            ingredient_id=line.ingredient_id,
            ingredient_name=line.ingredient_name,
            quantity_used=quantity,
            usage_unit=line.usage_unit,
            unit_cost=to_decimal(line.cost_per_usage_unit),
            line_cost=line_cost,
        ))

    ingredient_cost = quantize_money(raw_total)
    plate_cost = quantize_money(ingredient_cost + q_factor)
    labor_cost = quantize_money(prep_minutes / Decimal("60") * to_decimal(labor_rate))
    prime_cost = plate_cost + labor_cost
    gross_profit = selling_price - plate_cost
    net_profit = selling_price - prime_cost

    return MenuItemCostBreakdown(
        menu_item_id=menu_item.id,
        menu_item_name=menu_item.name,
        selling_price=quantize_money(selling_price),
        ingredient_cost=ingredient_cost,
        q_factor=q_factor,
        plate_cost=plate_cost,
        labor_cost=labor_cost,
        prime_cost=prime_cost,
        gross_profit=quantize_money(gross_profit),
        net_profit=quantize_money(net_profit),
        food_cost_percent=safe_percent(plate_cost, selling_price),
        labor_cost_percent=safe_percent(labor_cost, selling_price),
        prime_cost_percent=safe_percent(prime_cost, selling_price),
        gross_margin_percent=safe_percent(gross_profit, selling_price),
        net_margin_percent=safe_percent(net_profit, selling_price),
        target_cost_percent=to_decimal(menu_item.target_cost_percent),
        cost_configured=bool(ingredients),
        ingredients=ingredients,
    )


class CostingService:
    """
    Service for computing menu item costs from stored recipes.

    Loads rows, resolves each ingredient's unit cost, and hands plain
    snapshots to ``aggregate_recipe``.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = get_engine_config(config)

    def recipe_line_snapshots(self, menu_item: MenuItem) -> List[RecipeLineSnapshot]:
        # .all() so a prefetch_related('recipe_lines__ingredient') cache is used
        lines = sorted(menu_item.recipe_lines.all(), key=lambda line: (line.ingredient.name, line.id))
        return [
            RecipeLineSnapshot(
                ingredient_id=line.ingredient_id,
                ingredient_name=line.ingredient.name,
                quantity_used=line.quantity_used,
                cost_per_usage_unit=resolve_cost(IngredientSnapshot.from_model(line.ingredient)),
                usage_unit=line.ingredient.usage_unit,
            )
            for line in lines
        ]

    def compute_menu_item_cost(self, menu_item: MenuItem) -> MenuItemCostBreakdown:
        """
        Compute the cost breakdown for a menu item based on its recipe.

        Raises:
            InvalidIngredientError: if any ingredient on the recipe has bad pricing data.
        """
        return aggregate_recipe(
            MenuItemSnapshot.from_model(menu_item),
            self.recipe_line_snapshots(menu_item),
            self.config.effective_hourly_labor_rate,
        )

    def compute_plate_costs(self, menu_items=None) -> dict:
        """Map menu item id → plate cost, for period COGS."""
        if menu_items is None:
            menu_items = MenuItem.all_objects.prefetch_related('recipe_lines__ingredient')
        return {
            item.id: self.compute_menu_item_cost(item).plate_cost
            for item in menu_items
        }

    def compute_menu_items_summary(self, menu_items=None) -> List[dict]:
        """
        Compute cost summaries for multiple menu items.

        Args:
            menu_items: Queryset or list of MenuItem instances (default: all active).

        Returns:
            List of summary dicts for each item.
        """
        if menu_items is None:
            menu_items = MenuItem.objects.prefetch_related('recipe_lines__ingredient')

        summaries = []
        for item in menu_items:
            breakdown = self.compute_menu_item_cost(item)
            summaries.append({
                "menu_item_id": breakdown.menu_item_id,
                "name": breakdown.menu_item_name,
                "selling_price": breakdown.selling_price,
                "plate_cost": breakdown.plate_cost,
                "prime_cost": breakdown.prime_cost,
                "gross_profit": breakdown.gross_profit,
                "net_profit": breakdown.net_profit,
                "food_cost_percent": breakdown.food_cost_percent,
                "prime_cost_percent": breakdown.prime_cost_percent,
                "target_cost_percent": breakdown.target_cost_percent,
                "cost_configured": breakdown.cost_configured,
                "is_over_target": breakdown.is_over_target,
                "ingredient_count": len(breakdown.ingredients),
            })
        return summaries

    @staticmethod
    @transaction.atomic
    def set_recipe_line(menu_item_id: int, ingredient_id: int, quantity_used) -> RecipeLine:
        """
        Add an ingredient to a recipe, or update its quantity if already present.

        Concurrent writers on the same (menu_item, ingredient) resolve
        last-writer-wins through the unique constraint.
        """
        quantity_used = to_decimal(quantity_used)
        if quantity_used <= 0:
            raise ValidationError("quantity_used must be greater than zero", field="quantity_used")

        if not MenuItem.objects.filter(pk=menu_item_id).exists():
            raise NotFoundError("MenuItem", menu_item_id)
        if not Ingredient.objects.filter(pk=ingredient_id).exists():
            raise NotFoundError("Ingredient", ingredient_id)

        line, created = RecipeLine.objects.update_or_create(
            menu_item_id=menu_item_id,
            ingredient_id=ingredient_id,
            defaults={'quantity_used': quantity_used},
        )
        logger.info(
            f"{'Added' if created else 'Updated'} recipe line: menu item {menu_item_id}, "
            f"ingredient {ingredient_id}, quantity {quantity_used}"
        )
        return line

    @staticmethod
    def remove_recipe_line(menu_item_id: int, ingredient_id: int) -> bool:
        deleted, _ = RecipeLine.objects.filter(
            menu_item_id=menu_item_id,
            ingredient_id=ingredient_id,
        ).delete()
        return deleted > 0
