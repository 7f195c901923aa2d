"""
Catalog Loader - Reads the vendor product export and pricing blueprints.

Products come from a CSV (or XLSX) export with one row per product:

    id, name, category, regular_price, price, tier_prices, blueprint_id, pricing_values

``tier_prices`` and ``pricing_values`` are JSON objects keyed by tier id.
Blueprints come from a JSON list of blueprint objects with their price breaks.
Rows are normalized into ``Product`` models once, here.
"""
import hashlib
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import pandas as pd

from ..config.settings import get_settings, Settings
from ..engine.models import PricingBlueprint, Product

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ('id', 'name')


def get_file_hash(path: Path) -> str:
    """Get SHA256 hash of a file."""
    if not path.exists():
        return ""
    with open(path, 'rb') as f:
        return hashlib.sha256(f.read()).hexdigest()[:12]


def load_blueprints(path: Path) -> dict[str, PricingBlueprint]:
    """Load pricing blueprints keyed by id. A missing file means no blueprints."""
    if not path.exists():
        return {}

    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = data.get('blueprints', [])

    blueprints = {}
    for row in data:
        if not isinstance(row, dict):
            continue
        blueprint = PricingBlueprint.from_dict(row)
        if blueprint.id:
            blueprints[blueprint.id] = blueprint
    return blueprints


def read_products_frame(path: Path) -> pd.DataFrame:
    """Read the product export into a frame of strings with blanks as None."""
    if path.suffix.lower() in ('.xlsx', '.xls'):
        df = pd.read_excel(path, dtype=str)
    else:
        df = pd.read_csv(path, dtype=str)

    df.columns = [str(c).strip() for c in df.columns]
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Product export {path} is missing columns: {', '.join(missing)}")

    df['id'] = df['id'].str.strip()
    df = df.dropna(subset=['id'])
    df = df[df['id'] != '']
    return df.astype(object).where(pd.notna(df), None)


def load_products(path: Path, blueprints: Optional[dict[str, PricingBlueprint]] = None) -> dict[str, Product]:
    """Load products keyed by id, linking each to its pricing blueprint."""
    blueprints = blueprints or {}
    df = read_products_frame(path)

    duplicates = int(df['id'].duplicated().sum())
    if duplicates:
        logger.warning("Dropping %d duplicate product ids from %s", duplicates, path)
        df = df.drop_duplicates('id')

    products = {}
    for row in df.to_dict(orient='records'):
        blueprint_id = row.get('blueprint_id')
        if blueprint_id:
            blueprint = blueprints.get(str(blueprint_id).strip())
            if blueprint is None:
                logger.warning("Product %s references unknown blueprint %s", row['id'], blueprint_id)
            row['pricing_blueprint'] = blueprint
        product = Product.from_dict(row)
        products[product.id] = product

    return products


def load_catalog(settings: Optional[Settings] = None) -> dict[str, Product]:
    """Load the full catalog described by settings."""
    settings = settings or get_settings()
    blueprints = load_blueprints(settings.blueprints_file)
    return load_products(settings.products_file, blueprints)


def build_catalog_report(settings: Optional[Settings] = None, verbose: bool = True) -> dict:
    """
    Load the catalog and summarize its pricing coverage.

    Args:
        settings: Optional settings override
        verbose: Print progress messages

    Returns:
        Report dictionary (also saved to settings.catalog_report)
    """
    settings = settings or get_settings()

    report = {
        "timestamp": datetime.now().isoformat(),
        "status": "pending",
        "input_files": {},
        "metrics": {},
        "warnings": [],
        "errors": []
    }

    products_file = settings.products_file
    if not products_file.exists():
        msg = f"CRITICAL ERROR: {products_file} not found."
        report["errors"].append(msg)
        report["status"] = "failed"
        if verbose:
            print(msg)
        return report

    for key, path in (("products", products_file), ("blueprints", settings.blueprints_file)):
        if path.exists():
            report["input_files"][key] = {"path": str(path), "hash": get_file_hash(path)}

    try:
        blueprints = load_blueprints(settings.blueprints_file)
        products = load_products(products_file, blueprints)
    except (OSError, ValueError) as e:
        msg = f"ERROR: Failed to load catalog. {e}"
        report["errors"].append(msg)
        report["status"] = "failed"
        if verbose:
            print(msg)
        return report

    missing_price = [p.id for p in products.values() if p.regular_price is None and p.price is None]
    tier_priced = [
        p for p in products.values()
        if p.tier_prices or any(v.price is not None for v in p.pricing_values.values())
    ]

    blueprint_usage = {}
    for product in products.values():
        if product.pricing_blueprint:
            name = product.pricing_blueprint.name or product.pricing_blueprint.id
            blueprint_usage[name] = blueprint_usage.get(name, 0) + 1

    report["metrics"] = {
        "product_count": len(products),
        "blueprint_count": len(blueprints),
        "tier_priced_products": len(tier_priced),
        "missing_price": len(missing_price),
        "blueprint_usage": blueprint_usage,
    }
    if missing_price:
        report["warnings"].append(f"{len(missing_price)} products have no regular or current price")
    report["status"] = "success"

    if verbose:
        print(f"Loaded {len(products)} products ({len(tier_priced)} with tier pricing)")

    report_path = settings.catalog_report
    report_path.parent.mkdir(parents=True, exist_ok=True)
    with open(report_path, 'w', encoding='utf-8') as f:
        json.dump(report, f, indent=2)

    if verbose:
        print(f"Catalog report saved to: {report_path}")

    return report
