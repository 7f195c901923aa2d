import pytest
from fastapi.testclient import TestClient

from promo_pricing.api.main import create_app

AT = "2026-10-17T14:30:00Z"


@pytest.fixture
def client(settings):
    return TestClient(create_app(settings))


def test_root(client):
    assert client.get("/").json()["status"] == "online"


def test_price_with_category_promotion(client):
    response = client.post("/price", json={"product_id": "P-FLOWER", "at": AT})
    assert response.status_code == 200

    data = response.json()
    assert data["original_price"] == 15
    assert data["final_price"] == 12
    assert data["promotion"]["id"] == "FLOWER-20"
    assert data["badge"] == {"text": "20% OFF", "color": "red", "hex": "#ef4444"}
    assert data["display"] == {
        "final_price": "$12.00",
        "original_price": "$15.00",
        "savings": "Save $3.00",
        "discount": "20% OFF",
    }
    assert data["trace"][0]["step"] == "Product Lookup"


def test_price_with_explicit_tier_price(client):
    response = client.post("/price", json={"product_id": "P-VAPE", "tier_price": 100, "at": AT})
    data = response.json()
    # 10% of 100 beats the $5 product deal
    assert data["promotion"]["id"] == "GLOBAL-10"
    assert data["final_price"] == 90


def test_price_unknown_product(client):
    response = client.post("/price", json={"product_id": "NOPE"})
    assert response.status_code == 404


def test_price_rejects_negative_quantity(client):
    response = client.post("/price", json={"product_id": "P-VAPE", "quantity": -1})
    assert response.status_code == 422


def test_tier_prices(client):
    response = client.get("/products/P-FLOWER/tiers")
    assert response.status_code == 200

    tiers = response.json()["tiers"]
    assert list(tiers) == ["1g", "3_5g", "28g"]
    assert tiers["3_5g"]["final_price"] == 36
    assert tiers["28g"]["promotion"]["id"] == "FLOWER-20"

    assert client.get("/products/NOPE/tiers").status_code == 404


def test_catalog_search(client):
    results = client.get("/catalog", params={"search": "cart"}).json()
    assert len(results) == 1
    assert results[0]["id"] == "P-VAPE"
    assert results[0]["promotion_id"] == "VAPE-5"
    assert results[0]["final_price"] == 35


def test_system_status(client):
    data = client.get("/system/status").json()
    assert data["products_count"] == 4
    assert data["promotions_loaded"]
    assert data["promotions_count"] == 5
    assert data["cache_entries"] == 1


# ----------------------------------------------------------------------------
# /api/promotions
# ----------------------------------------------------------------------------

def test_list_and_get_promotions(client):
    promotions = client.get("/api/promotions").json()
    assert len(promotions) == 5

    response = client.get("/api/promotions/OUNCE-DEAL")
    assert response.status_code == 200
    assert response.json()["target_tier_rules"]["tier_ids"] == ["28g"]

    assert client.get("/api/promotions/NOPE").status_code == 404


def test_promotion_stats(client):
    stats = client.get("/api/promotions/stats").json()
    assert stats["total"] == 5
    assert stats["expired"] == 1


def test_create_promotion_applies_immediately(client):
    response = client.post("/api/promotions", json={
        "name": "Edible Blowout",
        "promotion_type": "product",
        "discount_type": "fixed_amount",
        "discount_value": 15,
        "target_product_ids": ["P-EDIBLE"],
        "badge_text": "$15 OFF",
        "badge_color": "purple",
    })
    assert response.status_code == 200
    assert response.json()["id"] == "PRODUCT-EDIBLE-BLOWOUT"

    price = client.post("/price", json={"product_id": "P-EDIBLE", "at": AT}).json()
    assert price["promotion"]["id"] == "PRODUCT-EDIBLE-BLOWOUT"
    assert price["final_price"] == 5


def test_create_invalid_promotion(client):
    response = client.post("/api/promotions", json={
        "name": "Missing Targets",
        "promotion_type": "category",
        "discount_type": "percentage",
        "discount_value": 10,
    })
    assert response.status_code == 400
    assert "category promotions need target_categories" in response.json()["detail"]["errors"]


def test_create_duplicate_promotion(client):
    response = client.post("/api/promotions", json={
        "id": "GLOBAL-10",
        "name": "Again",
        "promotion_type": "global",
        "discount_type": "percentage",
        "discount_value": 10,
    })
    assert response.status_code == 400


def test_create_rejects_unknown_scope(client):
    response = client.post("/api/promotions", json={
        "name": "Bundle",
        "promotion_type": "bundle",
        "discount_type": "percentage",
        "discount_value": 10,
    })
    assert response.status_code == 422


def test_update_promotion(client):
    response = client.put("/api/promotions/VAPE-5", json={"discount_value": 12})
    assert response.status_code == 200
    assert response.json()["discount_value"] == 12

    price = client.post("/price", json={"product_id": "P-VAPE", "at": AT}).json()
    assert price["final_price"] == 28


def test_update_validates_merged_promotion(client):
    response = client.put("/api/promotions/GLOBAL-10", json={"discount_value": 150})
    assert response.status_code == 400
    assert client.get("/api/promotions/GLOBAL-10").json()["discount_value"] == 10


def test_update_missing_promotion(client):
    assert client.put("/api/promotions/NOPE", json={"priority": 3}).status_code == 404


def test_deactivating_promotion_removes_it(client):
    client.put("/api/promotions/FLOWER-20", json={"is_active": False})
    price = client.post("/price", json={"product_id": "P-FLOWER", "at": AT}).json()
    assert price["promotion"]["id"] == "GLOBAL-10"
    assert price["final_price"] == 13.5


def test_delete_promotion(client):
    assert client.delete("/api/promotions/VAPE-5").json()["success"]
    assert client.get("/api/promotions/VAPE-5").status_code == 404
    assert client.delete("/api/promotions/VAPE-5").status_code == 404


def test_validate_endpoint(client):
    response = client.post("/api/promotions/validate", json={
        "name": "Flower Two",
        "promotion_type": "category",
        "discount_type": "percentage",
        "discount_value": 15,
        "target_categories": ["flower"],
    })
    data = response.json()
    assert data["valid"]
    assert data["matching_products"] == 1
    assert any("FLOWER-20" in w for w in data["warnings"])


def test_compile_endpoint(client):
    assert client.post("/api/promotions/compile").json() == {"success": True, "errors": []}


def test_promotion_test_endpoint(client):
    response = client.post("/api/promotions/test", json={"product_id": "P-VAPE", "at": AT})
    data = response.json()

    assert [p["id"] for p in data["applicable"]] == ["GLOBAL-10", "VAPE-5"]
    assert [p["discount"] for p in data["applicable"]] == [4, 5]
    assert data["best_promotion_id"] == "VAPE-5"
    assert data["base_price"] == 40
    assert data["final_price"] == 35

    assert client.post("/api/promotions/test", json={"product_id": "NOPE"}).status_code == 404


def test_create_rejects_out_of_range_weekday(client):
    response = client.post("/api/promotions", json={
        "name": "Sunday Only",
        "promotion_type": "global",
        "discount_type": "percentage",
        "discount_value": 50,
        "days_of_week": [7],
    })
    assert response.status_code == 422
    assert len(client.get("/api/promotions").json()) == 5

    price = client.post("/price", json={"product_id": "P-VAPE", "at": AT}).json()
    assert price["final_price"] == 35


def test_update_rejects_out_of_range_weekday(client):
    response = client.put("/api/promotions/GLOBAL-10", json={"days_of_week": [0, 7]})
    assert response.status_code == 422
    assert client.get("/api/promotions/GLOBAL-10").json()["days_of_week"] == []


def test_create_rejects_reversed_time_window(client):
    response = client.post("/api/promotions", json={
        "name": "Late Night",
        "promotion_type": "global",
        "discount_type": "percentage",
        "discount_value": 10,
        "time_of_day_start": "22:00",
        "time_of_day_end": "02:00",
    })
    assert response.status_code == 400
    assert "time_of_day_start must not be after time_of_day_end" in response.json()["detail"]["errors"]


def test_weekday_schedule_is_stored(client):
    response = client.post("/api/promotions", json={
        "id": "SAT-ONLY",
        "name": "Saturday Special",
        "promotion_type": "product",
        "discount_type": "fixed_amount",
        "discount_value": 10,
        "target_product_ids": ["P-VAPE"],
        "days_of_week": [6],
    })
    assert response.status_code == 200
    assert response.json()["days_of_week"] == [6]

    saturday = client.post("/price", json={"product_id": "P-VAPE", "at": AT}).json()
    assert saturday["promotion"]["id"] == "SAT-ONLY"
    sunday = client.post("/price", json={"product_id": "P-VAPE", "at": "2026-10-18T14:30:00Z"}).json()
    assert sunday["promotion"]["id"] == "VAPE-5"
