"""
Unit Conversion - retail (grams) and wholesale (pounds) quantities.

All inventory is stored in BASE UNITS:
- Weight products: grams
- Volume products: milliliters

Pricing blueprint tiers may be declared in any supported unit; these helpers
turn them into base units for tier matching and back into display strings.
"""
from typing import Literal, Optional


GRAM_CONVERSIONS = {
    'milligram': 0.001,
    'gram': 1.0,
    'ounce': 28.3495,
    'pound': 453.592,
    'kilogram': 1000.0,
}

MILLILITER_CONVERSIONS = {
    'milliliter': 1.0,
    'liter': 1000.0,
    'fluid_ounce': 29.5735,
    'gallon': 3785.41,
}

# Short labels used by blueprints → canonical unit names
UNIT_ALIASES = {
    'g': 'gram',
    'gram': 'gram',
    'grams': 'gram',
    'mg': 'milligram',
    'milligram': 'milligram',
    'oz': 'ounce',
    'ounce': 'ounce',
    'lb': 'pound',
    'lbs': 'pound',
    'pound': 'pound',
    'kg': 'kilogram',
    'kilogram': 'kilogram',
    'ml': 'milliliter',
    'milliliter': 'milliliter',
    'l': 'liter',
    'liter': 'liter',
    'fl oz': 'fluid_ounce',
    'fluid_ounce': 'fluid_ounce',
    'gal': 'gallon',
    'gallon': 'gallon',
}

RETAIL_LOW_STOCK_GRAMS = 28.0       # 1 oz
WHOLESALE_LOW_STOCK_GRAMS = 453.6   # 1 lb


def to_grams(quantity: float, unit: str) -> float:
    """Convert a weight unit to grams."""
    if unit not in GRAM_CONVERSIONS:
        raise ValueError(f"Unknown weight unit '{unit}'")
    return quantity * GRAM_CONVERSIONS[unit]


def from_grams(grams: float, unit: str) -> float:
    """Convert grams to a display weight unit."""
    if unit not in GRAM_CONVERSIONS:
        raise ValueError(f"Unknown weight unit '{unit}'")
    return grams / GRAM_CONVERSIONS[unit]


def to_milliliters(quantity: float, unit: str) -> float:
    """Convert a volume unit to milliliters."""
    if unit not in MILLILITER_CONVERSIONS:
        raise ValueError(f"Unknown volume unit '{unit}'")
    return quantity * MILLILITER_CONVERSIONS[unit]


def from_milliliters(milliliters: float, unit: str) -> float:
    """Convert milliliters to a display volume unit."""
    if unit not in MILLILITER_CONVERSIONS:
        raise ValueError(f"Unknown volume unit '{unit}'")
    return milliliters / MILLILITER_CONVERSIONS[unit]


def convert_to_base_unit(quantity: float, unit: str) -> float:
    """Convert weight or volume to its base unit. Unknown units pass through."""
    if unit in GRAM_CONVERSIONS:
        return to_grams(quantity, unit)
    if unit in MILLILITER_CONVERSIONS:
        return to_milliliters(quantity, unit)
    return quantity


def convert_from_base_unit(base_quantity: float, unit: str) -> float:
    """Convert a base-unit quantity to a display unit. Unknown units pass through."""
    if unit in GRAM_CONVERSIONS:
        return from_grams(base_quantity, unit)
    if unit in MILLILITER_CONVERSIONS:
        return from_milliliters(base_quantity, unit)
    return base_quantity


def get_unit_type(unit: str) -> Literal['weight', 'volume', 'unknown']:
    if unit in GRAM_CONVERSIONS:
        return 'weight'
    if unit in MILLILITER_CONVERSIONS:
        return 'volume'
    return 'unknown'


def format_weight(grams: float, unit: str, decimals: int = 1) -> str:
    """Format a gram quantity in the given weight unit."""
    converted = from_grams(grams, unit)
    text = f"{converted:.{decimals}f}"

    if unit == 'milligram':
        return f"{text}mg"
    if unit == 'gram':
        return f"{text}g"
    if unit == 'ounce':
        return f"{text} oz"
    if unit == 'pound':
        return f"{text} lb" + ("" if converted == 1 else "s")
    return f"{text} kg"


def format_volume(milliliters: float, unit: str, decimals: int = 1) -> str:
    """Format a milliliter quantity in the given volume unit."""
    converted = from_milliliters(milliliters, unit)
    text = f"{converted:.{decimals}f}"

    if unit == 'milliliter':
        return f"{text}ml"
    if unit == 'liter':
        return f"{text}L"
    if unit == 'fluid_ounce':
        return f"{text} fl oz"
    return f"{text} gal"


def format_quantity(base_quantity: float, unit: str, decimals: int = 1) -> str:
    """Format a base-unit quantity, detecting weight vs volume from the unit."""
    if unit in GRAM_CONVERSIONS:
        return format_weight(base_quantity, unit, decimals)
    if unit in MILLILITER_CONVERSIONS:
        return format_volume(base_quantity, unit, decimals)
    return f"{base_quantity:.{decimals}f} {unit}"


def get_cannabis_friendly_label(grams: float) -> str:
    """Display label for common retail and wholesale weights."""
    retail = {
        1: '1g',
        3.5: '3.5g (⅛ oz)',
        7: '7g (¼ oz)',
        14: '14g (½ oz)',
        28: '28g (1 oz)',
        113.4: '¼ lb (113g)',
        226.8: '½ lb (227g)',
        453.6: '1 lb (454g)',
    }
    if grams in retail:
        return retail[grams]

    # 5 lb and 10 lb wholesale bags
    if 2268 <= grams < 2300 or 4536 <= grams < 4600:
        return f"{grams / GRAM_CONVERSIONS['pound']:.0f} lbs"

    if grams < 28:
        return f"{grams:.1f}g"
    if grams < 454:
        return f"{grams / GRAM_CONVERSIONS['ounce']:.1f} oz"
    return f"{grams / GRAM_CONVERSIONS['pound']:.1f} lbs"


def parse_tier_quantity_to_base(qty: float, unit: Optional[str] = None) -> float:
    """
    Parse a pricing tier quantity to its base unit (grams or milliliters).

    Blueprint tiers use short labels ("g", "oz", "lb", "ml", ...). A missing or
    unrecognized unit is assumed to already be a base unit.
    """
    if not unit:
        return qty

    canonical = UNIT_ALIASES.get(unit.strip().lower())
    if canonical is None:
        return qty
    return convert_to_base_unit(qty, canonical)


def is_stock_available(stock_in_grams: float, requested_grams: float) -> bool:
    return stock_in_grams >= requested_grams


def get_stock_message(stock_in_grams: float, context: Literal['retail', 'wholesale']) -> str:
    """Customer-facing stock message for a gram quantity."""
    if stock_in_grams == 0:
        return 'Out of stock'
    if stock_in_grams < 0:
        return 'Stock unavailable'

    threshold = RETAIL_LOW_STOCK_GRAMS if context == 'retail' else WHOLESALE_LOW_STOCK_GRAMS
    if stock_in_grams < threshold:
        unit = 'gram' if context == 'retail' else 'ounce'
        return f"Only {format_weight(stock_in_grams, unit)} left!"

    unit = 'gram' if context == 'retail' else 'pound'
    return f"{format_weight(stock_in_grams, unit)} available"


def get_price_per_gram(total_price: float, quantity_in_grams: float) -> float:
    if quantity_in_grams == 0:
        return 0.0
    return total_price / quantity_in_grams


def calculate_tier_discount(higher_price_per_gram: float, lower_price_per_gram: float) -> float:
    """Percent saved per gram when moving from a smaller tier to a larger one."""
    if higher_price_per_gram == 0:
        return 0.0
    return (higher_price_per_gram - lower_price_per_gram) / higher_price_per_gram * 100
