"""Services subpackage - promotion management and caching."""
from .promotions_service import PromotionsService, ValidationResult
from .promotion_cache import TTLCache

__all__ = ['PromotionsService', 'ValidationResult', 'TTLCache']
