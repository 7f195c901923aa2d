import csv
import json
import os
import sys
from datetime import datetime, timezone

import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from promo_pricing.config.settings import Settings
from promo_pricing.engine.models import Product, Promotion
from promo_pricing.promotions.compile_promotions import CSV_COLUMNS, compile_promotions


# Saturday afternoon (weekday 6 counting from Sunday = 0)
NOW = datetime(2026, 10, 17, 14, 30, tzinfo=timezone.utc)

RETAIL_BLUEPRINT = {
    "id": "bp-retail",
    "name": "Retail Flower",
    "slug": "retail-flower",
    "tier_type": "weight",
    "price_breaks": [
        {"break_id": "1g", "label": "1 gram", "qty": 1, "unit": "g", "sort_order": 1},
        {"break_id": "3_5g", "label": "3.5g (Eighth)", "qty": 3.5, "unit": "g", "sort_order": 2},
        {"break_id": "7g", "label": "7g (Quarter)", "qty": 7, "unit": "g", "sort_order": 3},
        {"break_id": "14g", "label": "14g (Half Oz)", "qty": 14, "unit": "g", "sort_order": 4},
        {"break_id": "28g", "label": "28g (Ounce)", "qty": 28, "unit": "g", "sort_order": 5},
    ],
}

WHOLESALE_BLUEPRINT = {
    "id": "bp-wholesale",
    "name": "Wholesale Tiered",
    "tier_type": "weight",
    "price_breaks": [
        {"break_id": "tier_1", "label": "Tier 1 (1-9 lbs)", "qty": 1, "unit": "lb", "min_qty": 1, "max_qty": 9, "sort_order": 1},
        {"break_id": "tier_2", "label": "Tier 2 (10+ lbs)", "qty": 10, "unit": "lb", "min_qty": 10, "sort_order": 2},
    ],
}

PRODUCT_ROWS = [
    {
        "id": "P-FLOWER", "name": "Blue Dream", "category": "flower", "regular_price": "15",
        "price": "", "tier_prices": "", "blueprint_id": "bp-retail",
        "pricing_values": json.dumps({
            "1g": {"price": 15},
            "3_5g": {"price": 45},
            "7g": {"price": 80, "enabled": False},
            "28g": {"price": 250},
        }),
    },
    {
        "id": "P-VAPE", "name": "Live Resin Cart", "category": "vape", "regular_price": "40",
        "price": "", "tier_prices": "", "blueprint_id": "", "pricing_values": "",
    },
    {
        "id": "P-EDIBLE", "name": "Gummies", "category": "edible", "regular_price": "",
        "price": "20", "tier_prices": "", "blueprint_id": "", "pricing_values": "",
    },
    {
        "id": "P-BULK", "name": "Bulk Trim", "category": "wholesale", "regular_price": "900",
        "price": "", "tier_prices": json.dumps({"tier_1": 900, "tier_2": 800}),
        "blueprint_id": "bp-wholesale",
        "pricing_values": json.dumps({"tier_1": {"price": 900}, "tier_2": {"price": 800}}),
    },
]

PROMOTION_ROWS = [
    {"promotion_id": "GLOBAL-10", "name": "Store Wide 10", "promotion_type": "global",
     "discount_type": "percentage", "discount_value": "10", "priority": "0", "active": "true"},
    {"promotion_id": "FLOWER-20", "name": "Flower Friday", "promotion_type": "category",
     "discount_type": "percentage", "discount_value": "20", "target_categories": "flower",
     "badge_text": "20% OFF", "badge_color": "red", "priority": "5", "active": "true"},
    {"promotion_id": "VAPE-5", "name": "Cart Deal", "promotion_type": "product",
     "discount_type": "fixed_amount", "discount_value": "5", "target_product_ids": "P-VAPE",
     "priority": "0", "active": "true"},
    {"promotion_id": "OUNCE-DEAL", "name": "Ounce Deal", "promotion_type": "tier",
     "discount_type": "fixed_amount", "discount_value": "50", "tier_ids": "28g",
     "priority": "1", "active": "true"},
    {"promotion_id": "EXPIRED", "name": "Old Sale", "promotion_type": "global",
     "discount_type": "percentage", "discount_value": "50", "priority": "9", "active": "true",
     "end_time": "2020-01-01T00:00:00+00:00"},
]


def write_csv(path, columns, rows):
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8', newline='') as f:
        writer = csv.DictWriter(f, fieldnames=columns)
        writer.writeheader()
        for row in rows:
            writer.writerow({c: row.get(c, '') for c in columns})


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_product():
    """Factory for products with sensible defaults."""
    def _make(**overrides) -> Product:
        data = {"id": "P1", "name": "Blue Dream", "regular_price": 40, "category": "flower"}
        data.update(overrides)
        return Product.from_dict(data)
    return _make


@pytest.fixture
def make_promotion():
    """Factory for promotions: an active 20% global promotion unless overridden."""
    def _make(**overrides) -> Promotion:
        data = {
            "id": "PROMO-1",
            "name": "20% Off Everything",
            "promotion_type": "global",
            "discount_type": "percentage",
            "discount_value": 20,
            "is_active": True,
        }
        data.update(overrides)
        return Promotion.from_dict(data)
    return _make


@pytest.fixture
def project_root(tmp_path):
    """A project directory with catalog, blueprints and compiled promotions."""
    data_dir = tmp_path / 'data'
    data_dir.mkdir()

    with open(data_dir / 'blueprints.json', 'w', encoding='utf-8') as f:
        json.dump([RETAIL_BLUEPRINT, WHOLESALE_BLUEPRINT], f)

    write_csv(
        data_dir / 'products.csv',
        ['id', 'name', 'category', 'regular_price', 'price', 'tier_prices', 'blueprint_id', 'pricing_values'],
        PRODUCT_ROWS,
    )
    write_csv(data_dir / 'promotions.csv', CSV_COLUMNS, PROMOTION_ROWS)

    success, _, errors = compile_promotions(
        data_dir / 'promotions.csv', data_dir / 'compiled_promotions.json', verbose=False
    )
    assert success, errors
    return tmp_path


@pytest.fixture
def settings(project_root):
    return Settings.load(project_root)
