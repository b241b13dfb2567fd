"""
Unit Cost Resolver.

Turns an ingredient's purchase price into a cost per usage unit:

    cost_per_usage_unit = purchase_price / (unit_conversion_factor * yield_percent)

Bad inputs (non-positive conversion, yield outside (0, 1], negative price) are
rejected with InvalidIngredientError; they are never coerced to zero.

Price maintenance lives here too: ``UnitCostService.update_price`` stamps
``last_price_update`` and ``find_stale_ingredients`` lists ingredients whose
price has not been confirmed within the staleness window.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, List, Optional

from django.db import transaction
from django.utils import timezone

from cogs.exceptions import InvalidIngredientError
from cogs.models import Ingredient
from core_backend.config import EngineConfig, get_engine_config
from core_backend.exceptions import NotFoundError, ValidationError
from core_backend.utils.money import quantize_unit_cost, to_decimal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngredientSnapshot:
    """Plain read snapshot of an Ingredient row."""
    id: Optional[int]
    name: str
    purchase_price: Decimal
    unit_conversion_factor: Decimal
    yield_percent: Decimal
    purchase_unit: str = ""
    usage_unit: str = ""
    vendor_id: Optional[int] = None
    last_price_update: Optional[date] = None

    @classmethod
    def from_model(cls, ingredient: Ingredient) -> "IngredientSnapshot":
        return cls(
            id=ingredient.id,
            name=ingredient.name,
            purchase_price=ingredient.purchase_price,
            unit_conversion_factor=ingredient.unit_conversion_factor,
            yield_percent=ingredient.yield_percent,
            purchase_unit=ingredient.purchase_unit,
            usage_unit=ingredient.usage_unit,
            vendor_id=ingredient.vendor_id,
            last_price_update=ingredient.last_price_update,
        )


@dataclass(frozen=True)
class StaleIngredient:
    ingredient_id: Optional[int]
    name: str
    purchase_price: Decimal
    last_price_update: date
    days_since_update: int


@dataclass
class PriceWatchReport:
    """Ingredients whose price has not been refreshed within ``threshold_days``."""
    threshold_days: int
    as_of: date
    ingredients: List[StaleIngredient] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.ingredients)


def validate_ingredient(snapshot: IngredientSnapshot) -> None:
    """Raise InvalidIngredientError if a unit cost cannot be computed."""
    price = to_decimal(snapshot.purchase_price)
    conversion = to_decimal(snapshot.unit_conversion_factor)
    yield_percent = to_decimal(snapshot.yield_percent)

    if price < 0:
        raise InvalidIngredientError(snapshot.name, "purchase_price", price)
    if conversion <= 0:
        raise InvalidIngredientError(snapshot.name, "unit_conversion_factor", conversion)
    if yield_percent <= 0 or yield_percent > 1:
        raise InvalidIngredientError(snapshot.name, "yield_percent", yield_percent)


def resolve_cost(snapshot: IngredientSnapshot) -> Decimal:
    """
    Return the cost of one usage unit, rounded to 6 decimal places.

    Example:
        8.50 per lb, 16 oz per lb, yield 1.0 → 0.531250 per oz
    """
    validate_ingredient(snapshot)
    return quantize_unit_cost(
        to_decimal(snapshot.purchase_price)
        / (to_decimal(snapshot.unit_conversion_factor) * to_decimal(snapshot.yield_percent))
    )


def find_stale_ingredients(
    snapshots: Iterable[IngredientSnapshot],
    days: int,
    today: date,
) -> List[StaleIngredient]:
    """
    List ingredients last priced strictly more than ``days`` days before ``today``.

    Oldest first. Ingredients with no price date are not reported.
    """
    cutoff = today - timedelta(days=days)
    stale = [
        StaleIngredient(
            ingredient_id=s.id,
            name=s.name,
            purchase_price=s.purchase_price,
            last_price_update=s.last_price_update,
            days_since_update=(today - s.last_price_update).days,
        )
        for s in snapshots
        if s.last_price_update is not None and s.last_price_update < cutoff
    ]
    stale.sort(key=lambda item: (-item.days_since_update, item.name))
    return stale


class UnitCostService:
    """ORM-facing wrapper around the unit cost resolver."""

    @staticmethod
    def cost_for(ingredient: Ingredient) -> Decimal:
        return resolve_cost(IngredientSnapshot.from_model(ingredient))

    @staticmethod
    @transaction.atomic
    def update_price(ingredient_id: int, new_price, as_of: Optional[date] = None) -> Ingredient:
        """
        Set a new purchase price and restart the staleness clock.

        Raises:
            ValidationError: if the price is negative
            NotFoundError: if the ingredient does not exist or is archived
        """
        new_price = to_decimal(new_price)
        if new_price < 0:
            raise ValidationError(f"Purchase price cannot be negative: {new_price}", field="purchase_price")

        try:
            ingredient = Ingredient.objects.select_for_update().get(pk=ingredient_id)
        except Ingredient.DoesNotExist:
            raise NotFoundError("Ingredient", ingredient_id)

        old_price = ingredient.purchase_price
        ingredient.purchase_price = new_price
        ingredient.last_price_update = as_of or timezone.localdate()
        ingredient.save(update_fields=['purchase_price', 'last_price_update', 'updated_at'])

        logger.info(
            f"Updated price for ingredient {ingredient.name} (ID: {ingredient.id}): "
            f"{old_price} → {new_price}"
        )
        return ingredient

    @staticmethod
    def price_watch(
        days: Optional[int] = None,
        today: Optional[date] = None,
        config: Optional[EngineConfig] = None,
    ) -> PriceWatchReport:
        """Build the stale-price report over all active ingredients."""
        config = get_engine_config(config)
        days = config.price_staleness_days if days is None else days
        if days < 0:
            raise ValidationError("Staleness window cannot be negative", field="days")
        today = today or timezone.localdate()

        snapshots = [IngredientSnapshot.from_model(i) for i in Ingredient.objects.all()]
        return PriceWatchReport(
            threshold_days=days,
            as_of=today,
            ingredients=find_stale_ingredients(snapshots, days, today),
        )
