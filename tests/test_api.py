from typing import Any, Dict


def _score_payload(**overrides) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "items": [
            {"id": "pancakes", "category": "breakfast", "price": 6.0, "tags": ["breakfast", "light"],
             "rating": 4.2, "rating_count": 30, "popularity": 0.4},
            {"id": "burger", "category": "main", "price": 9.5, "tags": ["dinner", "hearty"],
             "rating": 4.5, "rating_count": 120, "popularity": 0.9},
            {"id": "fries", "category": "sides", "price": 3.0, "tags": ["quick"], "popularity": 0.7},
            {"id": "cola", "category": "beverage", "price": 2.0, "tags": ["cold"], "popularity": 0.6},
        ],
        "context": {"session_id": "score-session", "current_time": "2024-01-01T09:00:00"},
        "limit": 3,
        "seed": 42,
    }
    payload.update(overrides)
    return payload


def test_health(test_client):
    res = test_client.get("/")
    assert res.status_code == 200
    assert res.json()["status"] == "running"


def test_recommendations(test_client):
    res = test_client.get("/recommendations", params={"session_id": "s1", "limit": 3})
    assert res.status_code == 200
    data = res.json()
    assert data["success"] is True
    assert [r["rank"] for r in data["recommendations"]] == [1, 2, 3]
    assert all("item" in r for r in data["recommendations"])
    assert data["metadata"]["session_id"] == "s1"
    assert data["metadata"]["business_type"] == "food-delivery"
    assert data["metadata"]["candidates"] == 8


def test_unavailable_items_are_never_recommended(test_client):
    res = test_client.get("/recommendations", params={"limit": 50})
    ids = {r["item_id"] for r in res.json()["recommendations"]}
    assert len(ids) == 8
    assert "retired" not in ids


def test_session_id_is_generated(test_client):
    res = test_client.get("/recommendations", params={"limit": 1})
    assert res.status_code == 200
    assert res.json()["metadata"]["session_id"]


def test_history_and_cart(test_client):
    res = test_client.get(
        "/recommendations",
        params={"session_id": "s2", "customer_id": "c1", "cart_items": "burger, fries", "limit": 5},
    )
    assert res.status_code == 200
    metadata = res.json()["metadata"]
    assert metadata["history_items"] == 3
    assert metadata["cart_items"] == 2


def test_category_filter(test_client):
    res = test_client.get("/recommendations", params={"category": "beverage", "limit": 10})
    ids = {r["item_id"] for r in res.json()["recommendations"]}
    assert ids == {"cola", "lassi"}


def test_impressions_are_recorded(test_client):
    test_client.get("/recommendations", params={"session_id": "s3", "limit": 3})
    stats = test_client.get("/recommendations/bandit-stats").json()
    assert stats["total_impressions"] == 3
    assert stats["total_items"] == 3


def test_invalid_labels_return_400(test_client):
    assert test_client.get("/recommendations", params={"weather": "foggy"}).status_code == 400
    assert test_client.get("/recommendations", params={"business_type": "bakery"}).status_code == 400


def test_limit_is_validated(test_client):
    assert test_client.get("/recommendations", params={"limit": 0}).status_code == 422
    assert test_client.get("/recommendations", params={"limit": 51}).status_code == 422


def test_score_is_reproducible_with_seed(test_client):
    first = test_client.post("/recommendations/score", json=_score_payload())
    second = test_client.post("/recommendations/score", json=_score_payload())
    assert first.status_code == 200
    assert first.json()["recommendations"] == second.json()["recommendations"]
    assert first.json()["count"] == 3


def test_score_with_profile_overrides(test_client):
    payload = _score_payload(business_type="grocery", profile_overrides={"diversity_factor": 0})
    data = test_client.post("/recommendations/score", json=payload).json()
    assert data["business_type"] == "grocery"
    assert data["metadata"]["profile"]["diversity_factor"] == 0
    scores = [r["score"] for r in data["recommendations"]]
    assert scores == sorted(scores, reverse=True)


def test_score_rejects_bad_input(test_client):
    bad_price = _score_payload()
    bad_price["items"][0]["price"] = -1
    assert test_client.post("/recommendations/score", json=bad_price).status_code == 422

    bad_weather = _score_payload(context={"session_id": "s", "weather": "foggy"})
    assert test_client.post("/recommendations/score", json=bad_weather).status_code == 422

    bad_override = _score_payload(profile_overrides={"colour": "red"})
    assert test_client.post("/recommendations/score", json=bad_override).status_code == 422


def test_feedback(test_client):
    res = test_client.post("/recommendations/feedback", json={"item_id": "burger", "action": "impression"})
    assert res.status_code == 200
    res = test_client.post("/recommendations/feedback", json={"item_id": "burger", "action": "conversion"})
    data = res.json()
    assert data["impressions"] == 1
    assert data["conversions"] == 1
    assert data["alpha"] == 2
    assert data["beta"] == 1


def test_feedback_errors(test_client):
    unknown_item = {"item_id": "nope", "action": "conversion"}
    assert test_client.post("/recommendations/feedback", json=unknown_item).status_code == 404
    bad_action = {"item_id": "burger", "action": "click"}
    assert test_client.post("/recommendations/feedback", json=bad_action).status_code == 400


def test_trending(test_client):
    res = test_client.get("/recommendations/trending", params={"window_hours": 24})
    assert res.status_code == 200
    data = res.json()
    assert data["window_hours"] == 24

    by_id = {t["item_id"]: t for t in data["trending"]}
    assert by_id["burger"]["current_orders"] == 2
    assert by_id["burger"]["momentum"] == "rising"
    # Cancelled orders do not count
    assert by_id["curry"]["current_orders"] == 0


def test_profiles(test_client):
    data = test_client.get("/recommendations/profiles").json()
    assert data["default"] == "food-delivery"
    assert len(data["profiles"]) == 7
    assert data["profiles"]["pharmacy"]["trending_window_hours"] == 720


def test_stats(test_client):
    test_client.get("/recommendations", params={"limit": 2})
    data = test_client.get("/recommendations/stats").json()
    assert "food-delivery" in data["engines"]
    assert "hit_rate" in data["cache"]


def test_score_rejects_mistyped_overrides(test_client):
    bad_window = _score_payload(profile_overrides={"trending_window_hours": "abc"})
    assert test_client.post("/recommendations/score", json=bad_window).status_code == 422

    bad_weights = _score_payload(profile_overrides={"weights": [0.1, 0.2]})
    assert test_client.post("/recommendations/score", json=bad_weights).status_code == 422

    out_of_range = _score_payload(profile_overrides={"weights": {"trending": 2}})
    assert test_client.post("/recommendations/score", json=out_of_range).status_code == 422

    unknown_weight = _score_payload(profile_overrides={"weights": {"novelty": 0.1}})
    assert test_client.post("/recommendations/score", json=unknown_weight).status_code == 422


def test_score_with_weight_overrides(test_client):
    payload = _score_payload(profile_overrides={"weights": {"trending": 0.3}, "affinity": 0.05})
    res = test_client.post("/recommendations/score", json=payload)
    assert res.status_code == 200
    weights = res.json()["metadata"]["profile"]["weights"]
    assert weights["trending"] == 0.3
    assert weights["affinity"] == 0.05
    assert weights["exploration"] == 0.2


def test_score_deduplicates_item_ids(test_client):
    payload = _score_payload()
    payload["items"] = [payload["items"][1], payload["items"][1], payload["items"][2]]
    data = test_client.post("/recommendations/score", json=payload).json()
    ids = [r["item_id"] for r in data["recommendations"]]
    assert sorted(ids) == ["burger", "fries"]
    assert data["count"] == 2


def test_complete_meal(test_client):
    res = test_client.get("/recommendations/complete-meal", params={"cart_items": "burger"})
    assert res.status_code == 200
    data = res.json()
    assert data["success"] is True

    suggestions = data["suggestions"]
    assert [s["item_id"] for s in suggestions] == ["fries", "cola", "lassi"]
    assert suggestions[0]["confidence"] == 0.8
    assert suggestions[0]["lift"] == 1.0
    assert suggestions[0]["item"]["name"] == "Fries"
    assert all(s["score"] > 0.5 for s in suggestions)
    assert data["metadata"]["cart_item_count"] == 1
    # Three built-in rules plus the mined burger -> cola and burger -> fries
    assert data["metadata"]["affinity_rules"] == 5


def test_complete_meal_limit_and_errors(test_client):
    res = test_client.get("/recommendations/complete-meal", params={"cart_items": "burger", "limit": 1})
    assert [s["item_id"] for s in res.json()["suggestions"]] == ["fries"]

    assert test_client.get("/recommendations/complete-meal").status_code == 400
    assert test_client.get("/recommendations/complete-meal", params={"cart_items": " , "}).status_code == 400


def test_also_bought(test_client):
    res = test_client.get("/recommendations/also-bought/burger")
    assert res.status_code == 200
    suggestions = res.json()["suggestions"]
    assert [s["item_id"] for s in suggestions] == ["cola", "fries"]
    assert suggestions[0]["confidence"] == 0.5
    assert suggestions[0]["rule"]["order_count"] == 1


def test_also_bought_ignores_cancelled_orders(test_client):
    assert test_client.get("/recommendations/also-bought/curry").json()["suggestions"] == []
    assert test_client.get("/recommendations/also-bought/nope").status_code == 404


def test_bundles(test_client, monkeypatch):
    from menu_reco.core.config import settings

    data = test_client.get("/recommendations/bundles").json()
    assert data["bundles"] == []
    assert data["orders_analyzed"] == 2

    monkeypatch.setattr(settings, "BUNDLE_MIN_ORDERS", 1)
    data = test_client.get("/recommendations/bundles").json()
    assert [b["items"] for b in data["bundles"]] == [["burger", "cola"], ["burger", "fries"]]
    assert data["bundles"][0]["support"] == 0.5


def test_bundles_validate_sizes(test_client):
    assert test_client.get("/recommendations/bundles", params={"min_size": 3, "max_size": 2}).status_code == 400
    assert test_client.get("/recommendations/bundles", params={"min_size": 1}).status_code == 422


def test_item_similarity(test_client):
    data = test_client.get("/recommendations/similarity", params={"item_id": "burger", "other_id": "fries"}).json()
    assert data["similarity"] == 1.0
    assert data["shared_customers"] == 1

    data = test_client.get("/recommendations/similarity", params={"item_id": "burger", "other_id": "curry"}).json()
    assert data["similarity"] == 0.0

    res = test_client.get("/recommendations/similarity", params={"item_id": "burger", "other_id": "nope"})
    assert res.status_code == 404
