"""
Unit conversion suggestions for COGS.

When an ingredient is set up, the purchase and usage units usually belong to
the same family (lb → oz, gal → cup), so the conversion factor can be filled
in for the user. Factors are derived from a per-category base unit:

    factor(from → to) = base_per_unit(from) / base_per_unit(to)

Example: lb → oz = 453.59237 g / 28.349523125 g = 16
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Optional, Tuple

from cogs.exceptions import ConversionError


WEIGHT = "weight"
VOLUME = "volume"
COUNT = "count"

# code → (category, amount of the category's base unit in one of this unit)
# Weight base is the gram, volume base is the millilitre.
UNIT_TABLE: Dict[str, Tuple[str, Decimal]] = {
    "g": (WEIGHT, Decimal("1")),
    "kg": (WEIGHT, Decimal("1000")),
    "oz": (WEIGHT, Decimal("28.349523125")),
    "lb": (WEIGHT, Decimal("453.59237")),
    "ml": (VOLUME, Decimal("1")),
    "l": (VOLUME, Decimal("1000")),
    "tsp": (VOLUME, Decimal("4.92892159375")),
    "tbsp": (VOLUME, Decimal("14.78676478125")),
    "fl oz": (VOLUME, Decimal("29.5735295625")),
    "cup": (VOLUME, Decimal("236.5882365")),
    "gal": (VOLUME, Decimal("3785.411784")),
    "each": (COUNT, Decimal("1")),
    "piece": (COUNT, Decimal("1")),
    "unit": (COUNT, Decimal("1")),
}

UNIT_ALIASES = {
    "gram": "g", "grams": "g",
    "kilogram": "kg", "kilograms": "kg", "kgs": "kg",
    "ounce": "oz", "ounces": "oz",
    "pound": "lb", "pounds": "lb", "lbs": "lb",
    "milliliter": "ml", "milliliters": "ml", "millilitre": "ml",
    "liter": "l", "liters": "l", "litre": "l",
    "teaspoon": "tsp", "teaspoons": "tsp",
    "tablespoon": "tbsp", "tablespoons": "tbsp",
    "floz": "fl oz", "fl. oz": "fl oz", "fluid ounce": "fl oz", "fluid ounces": "fl oz",
    "cups": "cup",
    "gallon": "gal", "gallons": "gal",
    "ea": "each", "pc": "piece", "pcs": "piece", "pieces": "piece", "units": "unit",
}

FACTOR_PLACES = Decimal("0.000001")


def normalize_unit(unit: str) -> Optional[str]:
    """Map a free-text unit to a known code, or None."""
    if not unit:
        return None
    normalized = " ".join(unit.strip().lower().split())
    if normalized in UNIT_TABLE:
        return normalized
    return UNIT_ALIASES.get(normalized)


def suggest_conversion(purchase_unit: str, usage_unit: str) -> Optional[Decimal]:
    """
    Suggest ``unit_conversion_factor`` (usage units per purchase unit).

    Returns None when either unit is unknown or the units measure different
    things (weight vs volume), because density is ingredient-specific.
    """
    from_code = normalize_unit(purchase_unit)
    to_code = normalize_unit(usage_unit)
    if from_code is None or to_code is None:
        return None

    from_category, from_base = UNIT_TABLE[from_code]
    to_category, to_base = UNIT_TABLE[to_code]
    if from_category != to_category:
        return None

    return (from_base / to_base).quantize(FACTOR_PLACES, rounding=ROUND_HALF_UP)


def convert_quantity(quantity: Decimal, from_unit: str, to_unit: str) -> Decimal:
    """
    Convert a quantity between two units of the same family.

    Raises:
        ConversionError: if no conversion is known.
    """
    factor = suggest_conversion(from_unit, to_unit)
    if factor is None:
        raise ConversionError(from_unit, to_unit)
    return Decimal(quantity) * factor
