"""
Per-application state shared by the API routers.

Built once by ``create_app`` and stored on ``app.state.pricing``.
"""
import logging

from fastapi import Request

from ..config.settings import Settings
from ..engine import PricingEngine, Promotion
from ..engine.promotion_matcher import load_promotions
from ..services import PromotionsService, TTLCache

logger = logging.getLogger(__name__)

PROMOTIONS_KEY = 'promotions'


class AppState:
    """Engine, promotion store and promotion cache for one app instance."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.engine = PricingEngine(settings)
        self.promotions_service = PromotionsService(
            promotions_csv_path=settings.promotions_csv,
            compiled_promotions_path=settings.compiled_promotions,
            catalog_path=settings.products_file,
        )
        self.cache = TTLCache(
            ttl_seconds=settings.cache_ttl_seconds,
            max_entries=settings.cache_max_entries,
        )

    def active_promotions(self) -> list[Promotion]:
        """Compiled promotions, memoized for ``cache_ttl_seconds``."""
        return self.cache.get_or_load(PROMOTIONS_KEY, self._load_promotions)

    def _load_promotions(self) -> list[Promotion]:
        path = self.settings.compiled_promotions
        if not path.exists():
            return []
        promotions = load_promotions(path)
        logger.debug("Loaded %d promotions from %s", len(promotions), path)
        return promotions

    def refresh(self):
        """Drop cached promotions and reload engine data after a write."""
        self.cache.invalidate(PROMOTIONS_KEY)
        self.engine.reload_data()


def get_state(request: Request) -> AppState:
    return request.app.state.pricing
