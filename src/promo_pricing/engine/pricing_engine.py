"""
Pricing Engine - Promotion-aware price resolution with traceability.

Resolution order for a single product:
1. Base price: explicit tier price → product tier price map → regular → current → 0
2. Best promotion: greatest discount among applicable promotions (priority breaks ties)
3. Final price: base - savings, floored at zero

``calculate_price`` and ``calculate_tier_prices`` are pure functions and can be
called from any number of threads at once. ``PricingEngine`` wraps them with
the catalog and the compiled promotions loaded from disk.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from ..config.settings import get_settings, Settings
from ..data import catalog as catalog_loader
from ..units.conversion import parse_tier_quantity_to_base
from .formatting import format_price
from .models import Badge, DEFAULT_BADGE_COLOR, PriceCalculation, Product, Promotion, TraceStep
from .promotion_matcher import PromotionMatcher, calculate_discount, find_best_promotion

logger = logging.getLogger(__name__)


def calculate_price(
    product: Product,
    promotions: Iterable[Promotion],
    quantity: float = 1,
    tier_id: Optional[str] = None,
    tier_price_override: Optional[float] = None,
    now: Optional[datetime] = None,
) -> PriceCalculation:
    """
    Calculate the price a customer pays for ``product`` in this context.

    Args:
        product: Product being priced
        promotions: Candidate promotions (typically the vendor's current list)
        quantity: Purchase quantity in base units, used by gram-bounded tier promotions
        tier_id: Blueprint tier being purchased, if any
        tier_price_override: Explicit tier price; wins over every other base price
        now: Evaluation time for promotion schedules

    Returns:
        PriceCalculation with the winning promotion (if any) and a trace
    """
    now = now or datetime.now().astimezone()

    if tier_price_override is not None:
        base_price = tier_price_override
        source = "Using explicit tier price"
    elif tier_id is not None and tier_id in product.tier_prices:
        base_price = product.tier_prices[tier_id]
        source = f"Using {tier_id} tier price"
    elif product.regular_price is not None:
        base_price = product.regular_price
        source = "Using regular price"
    elif product.price is not None:
        base_price = product.price
        source = "No regular price, using current price"
    else:
        base_price = 0.0
        source = "No price recorded, defaulting to zero"

    result = PriceCalculation(
        original_price=base_price,
        final_price=base_price,
        tier_id=tier_id,
    )
    result.add_trace("Base Price", source, format_price(base_price))

    promotion = find_best_promotion(product, promotions, quantity, tier_id, now, base_price)
    if promotion is None:
        result.add_trace("Promotion", "No applicable promotion")
        return result

    savings = calculate_discount(promotion, base_price)

    result.promotion = promotion
    result.savings = savings
    # fixed_amount is already clamped; the floor also covers percentages over 100
    result.final_price = max(0.0, base_price - savings)
    result.discount_percentage = (savings / base_price * 100) if base_price > 0 else 0.0

    if promotion.badge_text:
        result.badge = Badge(
            text=promotion.badge_text,
            color=promotion.badge_color or DEFAULT_BADGE_COLOR,
        )

    result.add_trace("Promotion", f"{promotion.name} ({promotion.id})", f"-{format_price(savings)}")
    result.add_trace("Final Price", f"{format_price(base_price)} - {format_price(savings)}", format_price(result.final_price))
    return result


def calculate_tier_prices(
    product: Product,
    promotions: Iterable[Promotion],
    now: Optional[datetime] = None,
) -> dict[str, PriceCalculation]:
    """
    Price every blueprint tier that has a recorded price.

    Output follows the blueprint's tier order; tiers without a recorded price
    (or explicitly disabled) are skipped.
    """
    now = now or datetime.now().astimezone()
    promotions = list(promotions)
    prices: dict[str, PriceCalculation] = {}

    blueprint = product.pricing_blueprint
    if blueprint is None:
        return prices

    for price_break in blueprint.price_breaks:
        pricing = product.pricing_values.get(price_break.break_id)
        if pricing is None or pricing.price is None or not pricing.enabled:
            continue

        quantity = parse_tier_quantity_to_base(price_break.qty, price_break.unit)
        prices[price_break.break_id] = calculate_price(
            product,
            promotions,
            quantity=quantity,
            tier_id=price_break.break_id,
            tier_price_override=pricing.price,
            now=now,
        )

    return prices


@dataclass
class QuoteRequest:
    """A pricing request for one product."""
    product_id: str
    quantity: float = 1
    tier_id: Optional[str] = None
    tier_price: Optional[float] = None
    at: Optional[datetime] = None  # evaluation time, defaults to now


class PricingEngine:
    """
    Pricing engine bound to a product catalog and the compiled promotions.

    Promotions can be passed per call (for example a cached list from the
    API layer); otherwise the promotions loaded at construction are used.
    """

    def __init__(self, settings: Optional[Settings] = None):
        """Initialize engine with catalog and promotions."""
        self.settings = settings or get_settings()

        products_path = self.settings.products_file
        if not products_path.exists():
            raise FileNotFoundError(
                f"Product catalog not found at {products_path}. "
                "Export the vendor catalog to data/products.csv first."
            )

        self.catalog: dict[str, Product] = catalog_loader.load_catalog(self.settings)
        self.promotion_matcher = PromotionMatcher(self.settings.compiled_promotions)

        logger.info(
            "Pricing engine ready: %d products, %d promotions",
            len(self.catalog),
            len(self.promotion_matcher.promotions),
        )

    def reload_data(self):
        """Reload the catalog and promotions from disk."""
        self.__init__(self.settings)

    def get_product(self, product_id: str) -> Optional[Product]:
        return self.catalog.get(str(product_id).strip())

    def search(self, text: Optional[str] = None, limit: int = 100) -> list[Product]:
        """Products whose id, name or category contains ``text`` (case-insensitive)."""
        products = list(self.catalog.values())
        if text:
            needle = text.lower()
            products = [
                p for p in products
                if needle in p.id.lower()
                or needle in p.name.lower()
                or needle in (p.category or '').lower()
            ]
        return products[:limit]

    def quote(
        self,
        request: QuoteRequest,
        promotions: Optional[list[Promotion]] = None,
    ) -> Optional[PriceCalculation]:
        """
        Calculate the price for a single product request.

        Returns None when the product is not in the catalog.
        """
        product = self.get_product(request.product_id)
        if product is None:
            logger.debug("Quote requested for unknown product %s", request.product_id)
            return None

        candidates = self.promotion_matcher.promotions if promotions is None else promotions
        result = calculate_price(
            product,
            candidates,
            quantity=request.quantity,
            tier_id=request.tier_id,
            tier_price_override=request.tier_price,
            now=request.at,
        )
        result.trace.insert(0, TraceStep("Product Lookup", "Found product in catalog", product.id))
        return result

    def tier_prices(
        self,
        product_id: str,
        promotions: Optional[list[Promotion]] = None,
        now: Optional[datetime] = None,
    ) -> Optional[dict[str, PriceCalculation]]:
        """Tier price table for a product, or None when the product is unknown."""
        product = self.get_product(product_id)
        if product is None:
            return None
        candidates = self.promotion_matcher.promotions if promotions is None else promotions
        return calculate_tier_prices(product, candidates, now)

