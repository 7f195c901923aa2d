"""Engine subpackage - core pricing logic and promotion resolution."""
from .models import Product, Promotion, PriceCalculation, Badge
from .promotion_matcher import (
    is_promotion_active,
    does_promotion_apply,
    calculate_discount,
    find_best_promotion,
    PromotionMatcher,
)
from .pricing_engine import PricingEngine, QuoteRequest, calculate_price, calculate_tier_prices

__all__ = [
    'Product',
    'Promotion',
    'PriceCalculation',
    'Badge',
    'is_promotion_active',
    'does_promotion_apply',
    'calculate_discount',
    'find_best_promotion',
    'PromotionMatcher',
    'PricingEngine',
    'QuoteRequest',
    'calculate_price',
    'calculate_tier_prices',
]
