"""
Custom exceptions for the COGS system.
"""
from core_backend.exceptions import ValidationError


class InvalidIngredientError(ValidationError):
    """Raised when an ingredient's price, conversion or yield cannot produce a unit cost."""

    def __init__(self, ingredient_name, field, value, message=None):
        self.ingredient_name = ingredient_name
        self.value = value
        if message is None:
            message = f"Ingredient '{ingredient_name}' has invalid {field}: {value}"
        super().__init__(message, field=field)


class ConversionError(ValidationError):
    """Raised when no conversion is known between two units."""

    def __init__(self, from_unit, to_unit, message=None):
        self.from_unit = from_unit
        self.to_unit = to_unit
        if message is None:
            message = f"Cannot convert from '{from_unit}' to '{to_unit}'"
        super().__init__(message, field="unit")
