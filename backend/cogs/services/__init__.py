"""
COGS Services.

- Unit cost resolution and price maintenance
- Recipe cost aggregation (plate cost, labor, prime cost, margins)
- Unit conversion suggestions
"""
from cogs.services.conversion_service import convert_quantity, suggest_conversion
from cogs.services.costing_service import (
    CostingService,
    IngredientCostResult,
    MenuItemCostBreakdown,
    MenuItemSnapshot,
    RecipeLineSnapshot,
    aggregate_recipe,
)
from cogs.services.unit_cost import (
    IngredientSnapshot,
    PriceWatchReport,
    UnitCostService,
    find_stale_ingredients,
    resolve_cost,
)

__all__ = [
    'CostingService',
    'IngredientCostResult',
    'IngredientSnapshot',
    'MenuItemCostBreakdown',
    'MenuItemSnapshot',
    'PriceWatchReport',
    'RecipeLineSnapshot',
    'UnitCostService',
    'aggregate_recipe',
    'convert_quantity',
    'find_stale_ingredients',
    'resolve_cost',
    'suggest_conversion',
]
