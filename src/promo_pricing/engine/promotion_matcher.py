"""
Promotion Matcher - Decides which promotions apply to a product and picks the best one.

Used by the pricing engine to apply at most one promotion on top of the
resolved base (or tier) price. Every function here is pure: the evaluation
time is passed in, nothing is cached and nothing is mutated.
"""
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from .models import Product, Promotion

logger = logging.getLogger(__name__)


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _sunday_based_weekday(value: datetime) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return value.isoweekday() % 7


def is_promotion_active(promotion: Promotion, now: Optional[datetime] = None) -> bool:
    """
    Check the active flag and every schedule bound the promotion declares.

    Bounds are inclusive. An absent bound imposes no restriction; the
    time-of-day window only applies when both ends are set.
    """
    if not promotion.is_active:
        return False

    now = now or datetime.now().astimezone()
    instant = as_utc(now)

    if promotion.start_time and instant < as_utc(promotion.start_time):
        return False
    if promotion.end_time and instant > as_utc(promotion.end_time):
        return False

    if promotion.days_of_week:
        if _sunday_based_weekday(now) not in promotion.days_of_week:
            return False

    if promotion.time_of_day_start and promotion.time_of_day_end:
        current = now.time().replace(microsecond=0)
        start = promotion.time_of_day_start.replace(tzinfo=None)
        end = promotion.time_of_day_end.replace(tzinfo=None)
        if current < start or current > end:
            return False

    return True


def does_promotion_apply(
    promotion: Promotion,
    product: Product,
    quantity: float = 1,
    tier_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> bool:
    """Check schedule, then scope targeting. Unknown scopes never apply."""
    if not is_promotion_active(promotion, now):
        return False

    scope = promotion.promotion_type

    if scope == 'product':
        return product.id in promotion.target_product_ids

    if scope == 'category':
        return bool(product.category) and product.category in promotion.target_categories

    if scope == 'tier':
        rules = promotion.target_tier_rules
        if rules is None:
            # No declared rules: default bounds [0, unbounded)
            return quantity >= 0
        if rules.tier_ids:
            return tier_id is not None and tier_id in rules.tier_ids
        if quantity < rules.min_grams:
            return False
        if rules.max_grams is not None and quantity > rules.max_grams:
            return False
        return True

    if scope == 'global':
        return True

    return False


def calculate_discount(promotion: Promotion, original_price: float) -> float:
    """Discount amount for one unit at ``original_price``."""
    if promotion.discount_type == 'percentage':
        return original_price * (promotion.discount_value / 100.0)

    if promotion.discount_type == 'fixed_amount':
        return min(promotion.discount_value, original_price)

    return 0.0


def find_best_promotion(
    product: Product,
    promotions: Iterable[Promotion],
    quantity: float = 1,
    tier_id: Optional[str] = None,
    now: Optional[datetime] = None,
    base_price: Optional[float] = None,
) -> Optional[Promotion]:
    """
    Pick the applicable promotion with the greatest discount.

    Equal discounts go to the higher priority; a full tie keeps the earlier
    promotion in the list.
    """
    now = now or datetime.now().astimezone()
    price = product.base_price if base_price is None else base_price

    best = None
    best_key = None
    for promotion in promotions:
        if not does_promotion_apply(promotion, product, quantity, tier_id, now):
            continue

        key = (calculate_discount(promotion, price), promotion.priority)
        if best_key is None or key > best_key:
            best, best_key = promotion, key

    return best


def load_promotions(path: Path) -> list[Promotion]:
    """Read promotions from a compiled JSON file."""
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    return [Promotion.from_dict(p) for p in data.get('promotions', []) if isinstance(p, dict)]


class PromotionMatcher:
    """
    Matches compiled promotions against a product and purchase context.

    Promotions are loaded from compiled_promotions.json (see
    ``promotions.compile_promotions``).
    """

    def __init__(self, compiled_promotions_path: Optional[Path] = None):
        """Load compiled promotions."""
        self.promotions: list[Promotion] = []
        self.loaded = False

        if compiled_promotions_path and compiled_promotions_path.exists():
            self._load_promotions(compiled_promotions_path)

    def _load_promotions(self, path: Path):
        """Load promotions from JSON file."""
        try:
            self.promotions = load_promotions(path)
            self.loaded = True
        except (OSError, ValueError) as e:
            logger.warning("Could not load compiled promotions from %s: %s", path, e)
            self.promotions = []
            self.loaded = False

    def find_applicable(
        self,
        product: Product,
        quantity: float = 1,
        tier_id: Optional[str] = None,
        now: Optional[datetime] = None,
        promotions: Optional[list[Promotion]] = None,
    ) -> list[Promotion]:
        """
        Find all promotions that apply to the given context.

        Returns promotions sorted by priority (higher first).
        """
        now = now or datetime.now().astimezone()
        candidates = self.promotions if promotions is None else promotions

        matched = [
            p for p in candidates
            if does_promotion_apply(p, product, quantity, tier_id, now)
        ]
        matched.sort(key=lambda p: p.priority, reverse=True)
        return matched

    def best_for(
        self,
        product: Product,
        quantity: float = 1,
        tier_id: Optional[str] = None,
        now: Optional[datetime] = None,
        base_price: Optional[float] = None,
    ) -> Optional[Promotion]:
        return find_best_promotion(product, self.promotions, quantity, tier_id, now, base_price)
