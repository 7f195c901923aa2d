import json

import pytest

from conftest import PROMOTION_ROWS, write_csv
from promo_pricing.promotions.compile_promotions import (
    CSV_COLUMNS,
    check_promotion_row,
    compile_promotions,
    promotion_to_row,
    validate_promotion,
)


def _row(**overrides):
    row = {
        "promotion_id": "PROMO-1",
        "name": "Store Wide",
        "promotion_type": "global",
        "discount_type": "percentage",
        "discount_value": "10",
        "priority": "0",
        "active": "true",
    }
    row.update(overrides)
    return row


def test_valid_row_has_no_errors():
    assert check_promotion_row(_row()) == []


@pytest.mark.parametrize("overrides, message", [
    ({"promotion_id": ""}, "promotion_id is required"),
    ({"name": " "}, "name is required"),
    ({"promotion_type": "bundle"}, "invalid promotion_type 'bundle'"),
    ({"discount_type": "bogo"}, "invalid discount_type 'bogo'"),
    ({"discount_value": ""}, "discount_value is required"),
    ({"discount_value": "ten"}, "discount_value must be numeric"),
    ({"discount_value": "-1"}, "discount_value must not be negative"),
    ({"discount_value": "120"}, "percentage discount_value must be between 0 and 100"),
    ({"priority": "high"}, "priority must be an integer"),
    ({"promotion_type": "product"}, "product promotions need target_product_ids"),
    ({"promotion_type": "category"}, "category promotions need target_categories"),
    ({"min_grams": "-3"}, "min_grams must not be negative"),
    ({"max_grams": "lots"}, "max_grams must be numeric"),
    ({"start_time": "soon"}, "start_time must be an ISO-8601 timestamp"),
    ({"start_time": "2026-11-01T00:00:00Z", "end_time": "2026-10-01T00:00:00Z"}, "start_time must be before end_time"),
    ({"start_time": "2026-10-01T00:00:00", "end_time": "2026-11-01T00:00:00Z"}, "must both carry a timezone"),
    ({"days_of_week": "1|7"}, "got '7'"),
    ({"time_of_day_start": "4pm"}, "time_of_day_start must be HH:MM"),
    ({"time_of_day_start": "22:00", "time_of_day_end": "02:00"}, "time_of_day_start must not be after time_of_day_end"),
    ({"badge_color": "teal"}, "unknown badge_color 'teal'"),
])
def test_invalid_rows(overrides, message):
    errors = check_promotion_row(_row(**overrides))
    assert any(message in e for e in errors), errors


def test_fixed_amount_may_exceed_hundred():
    assert check_promotion_row(_row(discount_type="fixed_amount", discount_value="150")) == []


def test_validate_promotion_prefixes_line_numbers():
    promotion, errors = validate_promotion(_row(discount_value="ten"), 7)
    assert promotion is None
    assert errors == ["Line 7: discount_value must be numeric"]

    promotion, errors = validate_promotion(_row(), 2)
    assert errors == []
    assert promotion.id == "PROMO-1"
    assert promotion.is_active


def test_promotion_to_row_round_trips_through_validation(make_promotion):
    promotion = make_promotion(
        promotion_type="tier",
        target_tier_rules={"tier_ids": ["28g"], "min_grams": 7},
        days_of_week=[5, 6],
        time_of_day_start="16:00",
        time_of_day_end="18:00",
        badge_text="HAPPY HOUR",
        badge_color="orange",
    )
    row = promotion_to_row(promotion)

    assert set(row) == set(CSV_COLUMNS)
    assert row["tier_ids"] == "28g"
    assert row["min_grams"] == "7"
    assert row["days_of_week"] == "5|6"
    assert row["active"] == "true"
    assert check_promotion_row(row) == []

    parsed, _ = validate_promotion(row, 2)
    assert parsed == promotion


def test_compile_writes_promotions_by_priority(tmp_path):
    csv_path = tmp_path / "promotions.csv"
    json_path = tmp_path / "out" / "compiled_promotions.json"
    write_csv(csv_path, CSV_COLUMNS, PROMOTION_ROWS)

    success, promotions, errors = compile_promotions(csv_path, json_path, verbose=False)

    assert success
    assert errors == []
    data = json.loads(json_path.read_text(encoding="utf-8"))
    assert data["total_promotions"] == 5
    assert data["active_promotions"] == 5
    assert [p["id"] for p in data["promotions"]] == ["EXPIRED", "FLOWER-20", "OUNCE-DEAL", "GLOBAL-10", "VAPE-5"]
    assert data["promotions"][2]["target_tier_rules"]["tier_ids"] == ["28g"]


def test_compile_rejects_duplicates(tmp_path):
    csv_path = tmp_path / "promotions.csv"
    json_path = tmp_path / "compiled_promotions.json"
    write_csv(csv_path, CSV_COLUMNS, [_row(), _row(name="Again")])

    success, _, errors = compile_promotions(csv_path, json_path, verbose=False)

    assert not success
    assert errors == ["Duplicate promotion_id 'PROMO-1'"]
    assert not json_path.exists()


def test_failed_compile_keeps_previous_output(tmp_path):
    csv_path = tmp_path / "promotions.csv"
    json_path = tmp_path / "compiled_promotions.json"
    json_path.write_text('{"promotions": []}', encoding="utf-8")
    write_csv(csv_path, CSV_COLUMNS, [_row(), _row(promotion_id="BAD", discount_type="bogo")])

    success, _, errors = compile_promotions(csv_path, json_path, verbose=False)

    assert not success
    assert errors[0].startswith("Line 3: ")
    assert json_path.read_text(encoding="utf-8") == '{"promotions": []}'


def test_compile_missing_source(tmp_path):
    success, promotions, errors = compile_promotions(
        tmp_path / "missing.csv", tmp_path / "out.json", verbose=False
    )
    assert not success
    assert promotions == []
    assert "not found" in errors[0]


def test_promotion_to_row_keeps_full_precision(make_promotion):
    promotion = make_promotion(
        promotion_type="tier",
        discount_type="fixed_amount",
        discount_value=12345.67,
        target_tier_rules={"min_grams": 4535.9237, "max_grams": 11339.809},
    )
    row = promotion_to_row(promotion)

    assert row["discount_value"] == "12345.67"
    assert row["min_grams"] == "4535.9237"
    assert row["max_grams"] == "11339.809"

    parsed, errors = validate_promotion(row, 2)
    assert errors == []
    assert parsed.discount_value == 12345.67
    assert parsed.target_tier_rules.min_grams == 4535.9237
    assert parsed.target_tier_rules.max_grams == 11339.809


def test_same_start_and_end_time_of_day_is_valid():
    assert check_promotion_row(_row(time_of_day_start="14:30", time_of_day_end="14:30")) == []
