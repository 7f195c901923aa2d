"""
Data models for the pricing engine.

Uses dataclasses for structured, type-safe data representation. Raw rows from
the catalog, the promotion files or the API are normalized once through the
``from_dict`` constructors; malformed values degrade to "absent" instead of
raising, so the resolver can treat every model as well-formed.
"""
import json
import math
from dataclasses import dataclass, field
from datetime import datetime, time
from typing import Any, Optional


PROMOTION_TYPES = ('product', 'category', 'tier', 'global')
DISCOUNT_TYPES = ('percentage', 'fixed_amount')

BADGE_COLORS = {
    'red': '#ef4444',
    'orange': '#f97316',
    'yellow': '#eab308',
    'green': '#22c55e',
    'blue': '#3b82f6',
    'purple': '#a855f7',
    'gray': '#6b7280',
}
DEFAULT_BADGE_COLOR = 'gray'


# ============================================================================
# Field parsing
# ============================================================================

def is_missing(value: Any) -> bool:
    """True for None, empty strings and float NaN (pandas blanks)."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and value.strip() == '':
        return True
    return False


def parse_number(value: Any) -> Optional[float]:
    """Parse a finite number; anything else is absent."""
    if is_missing(value) or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def parse_price(value: Any) -> Optional[float]:
    """Parse a price. Negative prices are treated as absent."""
    number = parse_number(value)
    if number is None or number < 0:
        return None
    return number


def parse_bool(value: Any, default: bool = False) -> bool:
    if is_missing(value):
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('true', '1', 'yes', 'on')


def parse_int(value: Any, default: int = 0) -> int:
    number = parse_number(value)
    return int(number) if number is not None else default


def parse_str(value: Any) -> Optional[str]:
    if is_missing(value):
        return None
    return str(value).strip()


def parse_list(value: Any) -> list[str]:
    """Parse a list from a list, a JSON array or a ``|``/``,`` separated string."""
    if is_missing(value):
        return []
    if isinstance(value, (list, tuple, set)):
        return [str(v).strip() for v in value if not is_missing(v)]

    text = str(value).strip()
    if text.startswith('['):
        try:
            loaded = json.loads(text)
        except ValueError:
            loaded = None
        if isinstance(loaded, list):
            return [str(v).strip() for v in loaded if not is_missing(v)]

    separator = '|' if '|' in text else ','
    return [part.strip() for part in text.split(separator) if part.strip()]


def parse_json_dict(value: Any) -> dict:
    """Parse a mapping from a dict or a JSON object string."""
    if is_missing(value):
        return {}
    if isinstance(value, dict):
        return value
    try:
        loaded = json.loads(str(value))
    except ValueError:
        return {}
    return loaded if isinstance(loaded, dict) else {}


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (a trailing ``Z`` is accepted)."""
    if is_missing(value):
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def parse_time(value: Any) -> Optional[time]:
    """Parse a time of day given as ``HH:MM`` or ``HH:MM:SS``."""
    if is_missing(value):
        return None
    if isinstance(value, time):
        return value
    try:
        return time.fromisoformat(str(value).strip())
    except ValueError:
        return None


# ============================================================================
# Pricing blueprints
# ============================================================================

@dataclass
class PriceBreak:
    """A single tier (quantity break point) of a pricing blueprint."""
    break_id: str
    label: str
    qty: float = 0.0
    unit: str = 'g'
    min_qty: Optional[float] = None
    max_qty: Optional[float] = None
    sort_order: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> 'PriceBreak':
        break_id = parse_str(data.get('break_id')) or ''
        return cls(
            break_id=break_id,
            label=parse_str(data.get('label')) or break_id,
            qty=parse_number(data.get('qty')) or parse_number(data.get('min_qty')) or 0.0,
            unit=parse_str(data.get('unit')) or 'g',
            min_qty=parse_number(data.get('min_qty')),
            max_qty=parse_number(data.get('max_qty')),
            sort_order=parse_int(data.get('sort_order')),
        )


@dataclass
class PricingBlueprint:
    """Vendor template defining the tiers offered for a product category."""
    id: str
    name: str
    slug: Optional[str] = None
    tier_type: str = 'weight'
    price_breaks: list[PriceBreak] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> 'PricingBlueprint':
        breaks = data.get('price_breaks') or []
        if isinstance(breaks, str):
            try:
                breaks = json.loads(breaks)
            except ValueError:
                breaks = []
        return cls(
            id=parse_str(data.get('id')) or '',
            name=parse_str(data.get('name')) or '',
            slug=parse_str(data.get('slug')),
            tier_type=parse_str(data.get('tier_type')) or 'weight',
            price_breaks=[PriceBreak.from_dict(b) for b in breaks if isinstance(b, dict)],
        )


@dataclass
class TierPricing:
    """The price a vendor recorded for one blueprint tier."""
    price: Optional[float] = None
    enabled: bool = True

    @classmethod
    def from_value(cls, value: Any) -> 'TierPricing':
        if isinstance(value, dict):
            return cls(
                price=parse_price(value.get('price')),
                enabled=parse_bool(value.get('enabled'), default=True),
            )
        return cls(price=parse_price(value))


# ============================================================================
# Catalog and promotions
# ============================================================================

@dataclass
class Product:
    """A sellable product as seen by the pricing resolver."""
    id: str
    name: str
    regular_price: Optional[float] = None
    price: Optional[float] = None
    category: Optional[str] = None
    tier_prices: dict[str, float] = field(default_factory=dict)
    pricing_blueprint: Optional[PricingBlueprint] = None
    pricing_values: dict[str, TierPricing] = field(default_factory=dict)

    @property
    def base_price(self) -> float:
        """Regular price, falling back to the current price, then zero."""
        if self.regular_price is not None:
            return self.regular_price
        if self.price is not None:
            return self.price
        return 0.0

    @classmethod
    def from_dict(cls, data: dict) -> 'Product':
        tier_prices = {}
        for tier_id, value in parse_json_dict(data.get('tier_prices')).items():
            tier_price = parse_price(value)
            if tier_price is not None:
                tier_prices[str(tier_id)] = tier_price

        blueprint = data.get('pricing_blueprint')
        if isinstance(blueprint, dict):
            blueprint = PricingBlueprint.from_dict(blueprint)
        elif not isinstance(blueprint, PricingBlueprint):
            blueprint = None

        return cls(
            id=parse_str(data.get('id')) or '',
            name=parse_str(data.get('name')) or '',
            regular_price=parse_price(data.get('regular_price')),
            price=parse_price(data.get('price')),
            category=parse_str(data.get('category')),
            tier_prices=tier_prices,
            pricing_blueprint=blueprint,
            pricing_values={
                str(k): TierPricing.from_value(v)
                for k, v in parse_json_dict(data.get('pricing_values')).items()
            },
        )


@dataclass
class TierRules:
    """Targeting for tier-scoped promotions."""
    tier_ids: list[str] = field(default_factory=list)
    min_grams: float = 0.0
    max_grams: Optional[float] = None

    @classmethod
    def from_dict(cls, data: dict) -> 'TierRules':
        min_grams = parse_number(data.get('min_grams'))
        return cls(
            tier_ids=parse_list(data.get('tier_ids')),
            min_grams=min_grams if min_grams is not None else 0.0,
            max_grams=parse_number(data.get('max_grams')),
        )

    def to_dict(self) -> dict:
        return {
            'tier_ids': list(self.tier_ids),
            'min_grams': self.min_grams,
            'max_grams': self.max_grams,
        }


@dataclass
class Badge:
    """Display label attached to a discounted price."""
    text: str
    color: str = DEFAULT_BADGE_COLOR

    @property
    def hex(self) -> str:
        return BADGE_COLORS.get(self.color, BADGE_COLORS[DEFAULT_BADGE_COLOR])

    def to_dict(self) -> dict:
        return {'text': self.text, 'color': self.color, 'hex': self.hex}


@dataclass
class Promotion:
    """A vendor promotion with its targeting and schedule."""
    id: str
    name: str
    promotion_type: str
    discount_type: str
    discount_value: float = 0.0
    description: Optional[str] = None
    target_product_ids: list[str] = field(default_factory=list)
    target_categories: list[str] = field(default_factory=list)
    target_tier_rules: Optional[TierRules] = None
    badge_text: Optional[str] = None
    badge_color: Optional[str] = None
    priority: int = 0
    is_active: bool = True

    # Schedule
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    days_of_week: list[int] = field(default_factory=list)  # 0 = Sunday
    time_of_day_start: Optional[time] = None
    time_of_day_end: Optional[time] = None

    @classmethod
    def from_dict(cls, data: dict) -> 'Promotion':
        """Build a promotion from a stored row, tolerating partial records."""
        rules = data.get('target_tier_rules')
        if isinstance(rules, str):
            rules = parse_json_dict(rules)
        if not isinstance(rules, (dict, TierRules)):
            rules = None
        # Flat CSV columns describe tier rules too
        if rules is None and any(not is_missing(data.get(k)) for k in ('tier_ids', 'min_grams', 'max_grams')):
            rules = {k: data.get(k) for k in ('tier_ids', 'min_grams', 'max_grams')}
        if isinstance(rules, dict):
            rules = TierRules.from_dict(rules)

        discount_value = parse_number(data.get('discount_value'))
        days = [parse_int(d, default=-1) for d in parse_list(data.get('days_of_week'))]

        active = data.get('is_active') if 'is_active' in data else data.get('active')

        return cls(
            id=parse_str(data.get('id')) or parse_str(data.get('promotion_id')) or '',
            name=parse_str(data.get('name')) or '',
            promotion_type=(parse_str(data.get('promotion_type')) or '').lower(),
            discount_type=(parse_str(data.get('discount_type')) or '').lower(),
            discount_value=max(0.0, discount_value) if discount_value is not None else 0.0,
            description=parse_str(data.get('description')),
            target_product_ids=parse_list(data.get('target_product_ids')),
            target_categories=parse_list(data.get('target_categories')),
            target_tier_rules=rules,
            badge_text=parse_str(data.get('badge_text')),
            badge_color=parse_str(data.get('badge_color')),
            priority=parse_int(data.get('priority')),
            is_active=parse_bool(active, default=False),
            start_time=parse_datetime(data.get('start_time')),
            end_time=parse_datetime(data.get('end_time')),
            days_of_week=[d for d in days if 0 <= d <= 6],
            time_of_day_start=parse_time(data.get('time_of_day_start')),
            time_of_day_end=parse_time(data.get('time_of_day_end')),
        )

    def to_dict(self) -> dict:
        """JSON-ready representation (compiled file and API output)."""
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'promotion_type': self.promotion_type,
            'discount_type': self.discount_type,
            'discount_value': self.discount_value,
            'target_product_ids': list(self.target_product_ids),
            'target_categories': list(self.target_categories),
            'target_tier_rules': self.target_tier_rules.to_dict() if self.target_tier_rules else None,
            'badge_text': self.badge_text,
            'badge_color': self.badge_color,
            'priority': self.priority,
            'is_active': self.is_active,
            'start_time': self.start_time.isoformat() if self.start_time else None,
            'end_time': self.end_time.isoformat() if self.end_time else None,
            'days_of_week': list(self.days_of_week),
            'time_of_day_start': self.time_of_day_start.isoformat() if self.time_of_day_start else None,
            'time_of_day_end': self.time_of_day_end.isoformat() if self.time_of_day_end else None,
        }


# ============================================================================
# Results
# ============================================================================

@dataclass
class TraceStep:
    """A single step in the price resolution trace."""
    step: str
    description: str
    value: Optional[str] = None


@dataclass
class PriceCalculation:
    """Result of pricing one product in one purchase context."""
    original_price: float
    final_price: float
    savings: float = 0.0
    discount_percentage: float = 0.0
    promotion: Optional[Promotion] = None
    badge: Optional[Badge] = None
    tier_id: Optional[str] = None
    trace: list[TraceStep] = field(default_factory=list)

    @property
    def has_discount(self) -> bool:
        return self.promotion is not None and self.savings > 0

    def add_trace(self, step: str, description: str, value: str = None):
        """Add a step to the trace for this calculation."""
        self.trace.append(TraceStep(step=step, description=description, value=value))

    def get_trace_text(self) -> str:
        """Get human-readable trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"→ {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"→ {t.step}: {t.description}")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            'original_price': self.original_price,
            'final_price': self.final_price,
            'savings': self.savings,
            'discount_percentage': self.discount_percentage,
            'promotion': self.promotion.to_dict() if self.promotion else None,
            'badge': self.badge.to_dict() if self.badge else None,
            'tier_id': self.tier_id,
            'trace': [
                {'step': t.step, 'description': t.description, 'value': t.value}
                for t in self.trace
            ],
        }
