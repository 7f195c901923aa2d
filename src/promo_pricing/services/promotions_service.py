"""
Promotions Service - CRUD operations for vendor promotions.
Handles reading/writing promotions.csv and recompiling the JSON the engine reads.
"""
import csv
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from ..data.catalog import load_products
from ..engine.models import Product, Promotion
from ..engine.promotion_matcher import as_utc
from ..promotions.compile_promotions import (
    CSV_COLUMNS,
    check_promotion_row,
    compile_promotions,
    promotion_to_row,
)

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Result of promotion validation."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    matching_products: int = 0


class PromotionsService:
    """Service for managing promotions."""

    def __init__(
        self,
        promotions_csv_path: Path,
        compiled_promotions_path: Path,
        catalog_path: Optional[Path] = None,
    ):
        self.promotions_csv_path = promotions_csv_path
        self.compiled_promotions_path = compiled_promotions_path
        self.catalog_path = catalog_path
        self._catalog: dict[str, Product] = {}
        self._load_catalog()

    def _load_catalog(self):
        """Load catalog products for target validation."""
        if self.catalog_path and self.catalog_path.exists():
            try:
                self._catalog = load_products(self.catalog_path)
            except (OSError, ValueError) as e:
                logger.warning("Promotion validation will skip catalog checks: %s", e)
                self._catalog = {}

    def list_promotions(self, include_inactive: bool = True) -> list[Promotion]:
        """List all promotions from CSV."""
        promotions = []
        if not self.promotions_csv_path.exists():
            return promotions

        with open(self.promotions_csv_path, 'r', encoding='utf-8', newline='') as f:
            reader = csv.DictReader(f)
            for row in reader:
                if not row.get('promotion_id'):
                    continue
                promotion = Promotion.from_dict({**row, 'id': row['promotion_id']})
                if include_inactive or promotion.is_active:
                    promotions.append(promotion)

        return promotions

    def get_promotion(self, promotion_id: str) -> Optional[Promotion]:
        """Get a single promotion by ID."""
        for promotion in self.list_promotions():
            if promotion.id == promotion_id:
                return promotion
        return None

    def create_promotion(self, promotion: Promotion, auto_compile: bool = True) -> Promotion:
        """Create a new promotion."""
        if not promotion.id:
            promotion.id = self._generate_promotion_id(promotion)

        if self.get_promotion(promotion.id):
            raise ValueError(f"Promotion with ID '{promotion.id}' already exists")

        promotions = self.list_promotions()
        promotions.append(promotion)
        self._write_promotions(promotions)
        logger.info("Created promotion %s", promotion.id)

        if auto_compile:
            self.compile_promotions()

        return promotion

    def update_promotion(self, promotion_id: str, updates: dict, auto_compile: bool = True) -> Promotion:
        """
        Update an existing promotion.

        ``updates`` holds raw field values (as received from the API); they are
        normalized the same way stored rows are.
        """
        promotions = self.list_promotions()

        for i, promotion in enumerate(promotions):
            if promotion.id == promotion_id:
                data = promotion.to_dict()
                data.update({k: v for k, v in updates.items() if k != 'id'})
                promotions[i] = Promotion.from_dict(data)
                break
        else:
            raise ValueError(f"Promotion with ID '{promotion_id}' not found")

        self._write_promotions(promotions)
        logger.info("Updated promotion %s", promotion_id)

        if auto_compile:
            self.compile_promotions()

        return promotions[i]

    def delete_promotion(self, promotion_id: str, auto_compile: bool = True) -> bool:
        """Delete a promotion."""
        promotions = self.list_promotions()
        remaining = [p for p in promotions if p.id != promotion_id]

        if len(remaining) == len(promotions):
            raise ValueError(f"Promotion with ID '{promotion_id}' not found")

        self._write_promotions(remaining)
        logger.info("Deleted promotion %s", promotion_id)

        if auto_compile:
            self.compile_promotions()

        return True

    def validate_promotion(self, promotion: Promotion, now: Optional[datetime] = None) -> ValidationResult:
        """Validate a promotion before saving."""
        result = ValidationResult(valid=True)

        row = promotion_to_row(promotion)
        if not row['promotion_id']:
            # Ids are generated on create
            row['promotion_id'] = 'NEW'
        result.errors = check_promotion_row(row)
        result.valid = not result.errors

        now = as_utc(now or datetime.now(timezone.utc))
        if promotion.end_time and as_utc(promotion.end_time) < now:
            result.warnings.append("Promotion has expired (end_time is in the past)")
        if not promotion.is_active:
            result.warnings.append("Promotion is inactive and will never apply")

        if self._catalog:
            result.matching_products = self._count_matching_products(promotion, result.warnings)

        if result.valid:
            result.warnings.extend(self._check_conflicts(promotion))

        return result

    def _count_matching_products(self, promotion: Promotion, warnings: list[str]) -> int:
        """Count catalog products a promotion targets, warning about unknown targets."""
        if promotion.promotion_type == 'product':
            unknown = [pid for pid in promotion.target_product_ids if pid not in self._catalog]
            for pid in unknown:
                warnings.append(f"Product '{pid}' not found in catalog")
            return len(promotion.target_product_ids) - len(unknown)

        if promotion.promotion_type == 'category':
            categories = {p.category for p in self._catalog.values() if p.category}
            for category in promotion.target_categories:
                if category not in categories:
                    warnings.append(f"No products in category '{category}'")
            return sum(1 for p in self._catalog.values() if p.category in promotion.target_categories)

        if promotion.promotion_type == 'tier':
            rules = promotion.target_tier_rules
            if rules and rules.tier_ids:
                return sum(
                    1 for p in self._catalog.values()
                    if any(t in p.pricing_values or t in p.tier_prices for t in rules.tier_ids)
                )
            return len(self._catalog)

        return len(self._catalog)

    def _check_conflicts(self, promotion: Promotion) -> list[str]:
        """Check for active promotions that target the same products."""
        warnings = []

        for existing in self.list_promotions(include_inactive=False):
            if existing.id == promotion.id or existing.promotion_type != promotion.promotion_type:
                continue

            if promotion.promotion_type == 'product':
                overlap = set(promotion.target_product_ids) & set(existing.target_product_ids)
            elif promotion.promotion_type == 'category':
                overlap = set(promotion.target_categories) & set(existing.target_categories)
            elif promotion.promotion_type == 'tier':
                mine = promotion.target_tier_rules.tier_ids if promotion.target_tier_rules else []
                theirs = existing.target_tier_rules.tier_ids if existing.target_tier_rules else []
                overlap = set(mine) & set(theirs) if mine and theirs else {'*'}
            else:
                overlap = {'*'}

            if overlap:
                warnings.append(
                    f"Potential conflict with promotion '{existing.id}' "
                    f"(priority {existing.priority} vs {promotion.priority}); only the larger discount applies"
                )

        return warnings

    def _generate_promotion_id(self, promotion: Promotion) -> str:
        """Generate a unique promotion ID from its scope and name."""
        slug = re.sub(r'[^A-Z0-9]+', '-', promotion.name.upper()).strip('-')[:20] or 'PROMO'
        base = f"{(promotion.promotion_type or 'promo').upper()}-{slug}"

        existing_ids = {p.id for p in self.list_promotions()}
        candidate = base
        counter = 1
        while candidate in existing_ids:
            candidate = f"{base}-{counter}"
            counter += 1

        return candidate

    def _write_promotions(self, promotions: list[Promotion]):
        """Write promotions back to CSV."""
        self.promotions_csv_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.promotions_csv_path, 'w', encoding='utf-8', newline='') as f:
            writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS)
            writer.writeheader()
            for promotion in promotions:
                writer.writerow(promotion_to_row(promotion))

    def compile_promotions(self) -> tuple[bool, list[str]]:
        """Recompile promotions.csv into the JSON file the engine loads."""
        success, _, errors = compile_promotions(
            self.promotions_csv_path,
            self.compiled_promotions_path,
            verbose=False,
        )
        if not success:
            logger.warning("Promotion compilation failed: %s", "; ".join(errors))
        return success, errors

    def get_stats(self, now: Optional[datetime] = None) -> dict:
        """Get statistics about promotions."""
        promotions = self.list_promotions()
        now = as_utc(now or datetime.now(timezone.utc))

        active = [p for p in promotions if p.is_active]
        expired = [p for p in promotions if p.end_time and as_utc(p.end_time) < now]
        scheduled = [p for p in promotions if p.start_time and as_utc(p.start_time) > now]
        by_type = {}
        for p in promotions:
            by_type[p.promotion_type] = by_type.get(p.promotion_type, 0) + 1

        return {
            'total': len(promotions),
            'active': len(active),
            'inactive': len(promotions) - len(active),
            'expired': len(expired),
            'scheduled': len(scheduled),
            'by_type': by_type,
        }
