"""Units subpackage - weight/volume conversion for tiered pricing."""
from .conversion import (
    GRAM_CONVERSIONS,
    MILLILITER_CONVERSIONS,
    convert_to_base_unit,
    convert_from_base_unit,
    parse_tier_quantity_to_base,
    format_quantity,
)

__all__ = [
    'GRAM_CONVERSIONS',
    'MILLILITER_CONVERSIONS',
    'convert_to_base_unit',
    'convert_from_base_unit',
    'parse_tier_quantity_to_base',
    'format_quantity',
]
