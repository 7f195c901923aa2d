"""
Promotion Compiler - Validates and compiles promotions from CSV to JSON.

Reads promotions.csv, validates every row strictly, and writes
compiled_promotions.json for the pricing engine. List columns
(target_product_ids, target_categories, tier_ids, days_of_week) are
``|``-separated.
"""
import csv
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..engine.models import (
    BADGE_COLORS,
    DISCOUNT_TYPES,
    PROMOTION_TYPES,
    Promotion,
    is_missing,
    parse_datetime,
    parse_time,
)

logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    'promotion_id', 'name', 'description', 'promotion_type', 'discount_type',
    'discount_value', 'target_product_ids', 'target_categories', 'tier_ids',
    'min_grams', 'max_grams', 'badge_text', 'badge_color', 'priority', 'active',
    'start_time', 'end_time', 'days_of_week', 'time_of_day_start', 'time_of_day_end',
]


def parse_optional_str(value: Optional[str]) -> Optional[str]:
    """Parse optional string (empty = None)."""
    if is_missing(value):
        return None
    return str(value).strip()


def format_number(value: float) -> str:
    """Write a number without losing precision (whole numbers without ".0")."""
    if value == int(value):
        return str(int(value))
    return repr(value)


def split_list(value: Optional[str]) -> list[str]:
    text = parse_optional_str(value)
    if text is None:
        return []
    return [part.strip() for part in text.split('|') if part.strip()]


def check_promotion_row(row: dict) -> list[str]:
    """Return every problem found in a promotion row (empty when valid)."""
    errors = []

    if not parse_optional_str(row.get('promotion_id')):
        errors.append("promotion_id is required")
    if not parse_optional_str(row.get('name')):
        errors.append("name is required")

    promotion_type = (parse_optional_str(row.get('promotion_type')) or '').lower()
    if promotion_type not in PROMOTION_TYPES:
        errors.append(
            f"invalid promotion_type '{promotion_type}', must be one of: {', '.join(PROMOTION_TYPES)}"
        )

    discount_type = (parse_optional_str(row.get('discount_type')) or '').lower()
    if discount_type not in DISCOUNT_TYPES:
        errors.append(
            f"invalid discount_type '{discount_type}', must be one of: {', '.join(DISCOUNT_TYPES)}"
        )

    value_str = parse_optional_str(row.get('discount_value'))
    if value_str is None:
        errors.append("discount_value is required")
    else:
        try:
            discount_value = float(value_str)
        except ValueError:
            errors.append("discount_value must be numeric")
        else:
            if discount_value < 0:
                errors.append("discount_value must not be negative")
            elif discount_type == 'percentage' and discount_value > 100:
                errors.append("percentage discount_value must be between 0 and 100")

    priority_str = parse_optional_str(row.get('priority'))
    if priority_str is not None:
        try:
            int(priority_str)
        except ValueError:
            errors.append("priority must be an integer")

    # Scope targets
    if promotion_type == 'product' and not split_list(row.get('target_product_ids')):
        errors.append("product promotions need target_product_ids")
    if promotion_type == 'category' and not split_list(row.get('target_categories')):
        errors.append("category promotions need target_categories")

    for bound in ('min_grams', 'max_grams'):
        bound_str = parse_optional_str(row.get(bound))
        if bound_str is not None:
            try:
                if float(bound_str) < 0:
                    errors.append(f"{bound} must not be negative")
            except ValueError:
                errors.append(f"{bound} must be numeric")

    # Schedule
    times = {}
    for time_field in ('start_time', 'end_time'):
        raw = parse_optional_str(row.get(time_field))
        if raw is not None:
            times[time_field] = parse_datetime(raw)
            if times[time_field] is None:
                errors.append(f"{time_field} must be an ISO-8601 timestamp")
    start, end = times.get('start_time'), times.get('end_time')
    if start and end:
        try:
            if start > end:
                errors.append("start_time must be before end_time")
        except TypeError:
            errors.append("start_time and end_time must both carry a timezone or neither")

    for day in split_list(row.get('days_of_week')):
        if not day.isdigit() or not 0 <= int(day) <= 6:
            errors.append(f"days_of_week entries must be 0 (Sunday) to 6 (Saturday), got '{day}'")

    window = {}
    for time_field in ('time_of_day_start', 'time_of_day_end'):
        raw = parse_optional_str(row.get(time_field))
        if raw is not None:
            window[time_field] = parse_time(raw)
            if window[time_field] is None:
                errors.append(f"{time_field} must be HH:MM or HH:MM:SS")
    day_start, day_end = window.get('time_of_day_start'), window.get('time_of_day_end')
    if day_start and day_end and day_start.replace(tzinfo=None) > day_end.replace(tzinfo=None):
        # Windows do not wrap past midnight
        errors.append("time_of_day_start must not be after time_of_day_end")

    badge_color = parse_optional_str(row.get('badge_color'))
    if badge_color and badge_color not in BADGE_COLORS:
        errors.append(f"unknown badge_color '{badge_color}'")

    return errors


def validate_promotion(row: dict, line_num: int) -> tuple[Optional[Promotion], list[str]]:
    """
    Validate and parse a promotion from a CSV row.

    Returns (promotion, errors) - promotion is None if validation failed.
    """
    errors = check_promotion_row(row)
    if errors:
        return None, [f"Line {line_num}: {e}" for e in errors]

    promotion_id = parse_optional_str(row.get('promotion_id'))
    return Promotion.from_dict({**row, 'id': promotion_id}), []


def promotion_to_row(promotion: Promotion) -> dict:
    """Convert a promotion to its CSV row."""
    rules = promotion.target_tier_rules
    return {
        'promotion_id': promotion.id,
        'name': promotion.name,
        'description': promotion.description or '',
        'promotion_type': promotion.promotion_type,
        'discount_type': promotion.discount_type,
        'discount_value': format_number(promotion.discount_value),
        'target_product_ids': '|'.join(promotion.target_product_ids),
        'target_categories': '|'.join(promotion.target_categories),
        'tier_ids': '|'.join(rules.tier_ids) if rules else '',
        'min_grams': format_number(rules.min_grams) if rules and rules.min_grams else '',
        'max_grams': format_number(rules.max_grams) if rules and rules.max_grams is not None else '',
        'badge_text': promotion.badge_text or '',
        'badge_color': promotion.badge_color or '',
        'priority': str(promotion.priority),
        'active': 'true' if promotion.is_active else 'false',
        'start_time': promotion.start_time.isoformat() if promotion.start_time else '',
        'end_time': promotion.end_time.isoformat() if promotion.end_time else '',
        'days_of_week': '|'.join(str(d) for d in promotion.days_of_week),
        'time_of_day_start': promotion.time_of_day_start.isoformat() if promotion.time_of_day_start else '',
        'time_of_day_end': promotion.time_of_day_end.isoformat() if promotion.time_of_day_end else '',
    }


def compile_promotions(
    promotions_csv: Path,
    output_json: Path,
    verbose: bool = True
) -> tuple[bool, list[Promotion], list[str]]:
    """
    Compile promotions from CSV to JSON.

    Returns (success, promotions, errors).
    """
    all_errors = []
    promotions = []

    if not promotions_csv.exists():
        all_errors.append(f"Promotions file not found: {promotions_csv}")
        return False, [], all_errors

    with open(promotions_csv, 'r', newline='', encoding='utf-8') as f:
        reader = csv.DictReader(f)

        for line_num, row in enumerate(reader, start=2):  # +2 for 1-indexed header row
            promotion, errors = validate_promotion(row, line_num)

            if errors:
                all_errors.extend(errors)
            elif promotion:
                promotions.append(promotion)

    seen = set()
    for promotion in promotions:
        if promotion.id in seen:
            all_errors.append(f"Duplicate promotion_id '{promotion.id}'")
        seen.add(promotion.id)

    if all_errors:
        if verbose:
            print("Validation errors:")
            for err in all_errors:
                print(f"  ❌ {err}")
        logger.warning("Promotion compilation failed with %d errors", len(all_errors))
        return False, promotions, all_errors

    # Higher priority first
    promotions.sort(key=lambda p: p.priority, reverse=True)

    output_data = {
        "compiled_at": datetime.now().isoformat(),
        "source_file": str(promotions_csv),
        "total_promotions": len(promotions),
        "active_promotions": sum(1 for p in promotions if p.is_active),
        "promotions": [p.to_dict() for p in promotions],
    }

    output_json.parent.mkdir(parents=True, exist_ok=True)
    with open(output_json, 'w', encoding='utf-8') as f:
        json.dump(output_data, f, indent=2)

    if verbose:
        print(f"✅ Compiled {len(promotions)} promotions ({output_data['active_promotions']} active)")
        print(f"   Output: {output_json}")

    return True, promotions, []


def main():
    """CLI entry point."""
    import sys

    from ..config.settings import get_settings

    settings = get_settings()

    print("Compiling promotions...")
    success, promotions, errors = compile_promotions(settings.promotions_csv, settings.compiled_promotions)

    if not success:
        print(f"\n❌ Compilation failed with {len(errors)} errors")
        sys.exit(1)


if __name__ == "__main__":
    main()
