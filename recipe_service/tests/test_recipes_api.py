from __future__ import annotations

from fastapi.testclient import TestClient

from recipe_service.app import app


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_search_meals_uses_upstream_keys(client):
    resp = client.get("/recipes/search", params={"q": "arrabiata"})
    assert resp.status_code == 200
    assert resp.json() == {
        "meals": [{
            "idMeal": "52771",
            "strMeal": "Spicy Arrabiata Penne",
            "strMealThumb": "https://img.example/52771.jpg",
            "strCategory": "Pasta",
        }],
    }


def test_search_drinks(client):
    resp = client.get("/recipes/search", params={"q": "marg", "type": "drink"})
    body = resp.json()
    assert [d["idDrink"] for d in body["drinks"]] == ["11007"]


def test_blank_search_returns_empty(client, fake_upstream):
    resp = client.get("/recipes/search", params={"q": " "})
    assert resp.json() == {"meals": []}
    assert fake_upstream.total_calls == 0


def test_browse_response_shape(client):
    resp = client.get("/recipes/browse")
    assert resp.status_code == 200
    body = resp.json()
    assert set(body) == {"results", "total", "page", "pageSize", "totalPages"}
    assert body["total"] == 34
    assert body["pageSize"] == 9
    assert body["totalPages"] == 4
    first = body["results"][0]
    assert {"estimatedCalories", "dietClass", "syntheticCreatedAt", "popularityScore"} <= set(first)


def test_browse_pagination(client):
    params = {"type": "drink", "limit": 9}
    pages = [
        client.get("/recipes/browse", params={**params, "page": p}).json()
        for p in (1, 2, 3, 4)
    ]
    assert [len(p["results"]) for p in pages] == [9, 9, 7, 0]
    assert all(p["totalPages"] == 3 for p in pages)
    ids = [r["id"] for p in pages for r in p["results"]]
    assert len(set(ids)) == 25


def test_browse_filters_by_name_and_calories(client):
    resp = client.get("/recipes/browse", params={
        "q": "chicken", "minCalories": 300, "maxCalories": 799,
    })
    body = resp.json()
    assert {r["id"] for r in body["results"]} == {"52772", "52795"}


def test_browse_ignores_malformed_filters(client):
    resp = client.get("/recipes/browse", params={
        "type": "weird",
        "diet": "carnivore",
        "minCalories": "abc",
        "maxCalories": "",
        "sort": "bogus",
        "page": "-3",
        "limit": "0",
    })
    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 34
    assert body["page"] == 1
    assert body["pageSize"] == 1


def test_browse_clamps_large_page_size(client):
    body = client.get("/recipes/browse", params={"limit": 1000}).json()
    assert body["pageSize"] == 100
    assert len(body["results"]) == 34


def test_browse_returns_503_when_upstream_down(client, fake_upstream):
    fake_upstream.fail_categories.add("Seafood")
    resp = client.get("/recipes/browse")
    assert resp.status_code == 503
    assert "detail" in resp.json()

    fake_upstream.fail_categories.clear()
    assert client.get("/recipes/browse").status_code == 200


def test_suggested_excludes_id(client):
    resp = client.get("/recipes/suggested", params={"excludeId": "52771", "limit": 20})
    assert resp.status_code == 200
    ids = [r["id"] for r in resp.json()["results"]]
    assert len(ids) == 20
    assert "52771" not in ids


def test_suggested_default_limit(client):
    assert len(client.get("/recipes/suggested").json()["results"]) == 4


def test_suggested_rejects_out_of_range_limit(client):
    assert client.get("/recipes/suggested", params={"limit": 0}).status_code == 422
    assert client.get("/recipes/suggested", params={"limit": 21}).status_code == 422


def test_meal_details(client, fake_upstream):
    resp = client.get("/recipes/52771/details")
    assert resp.status_code == 200
    recipe = resp.json()["recipe"]
    assert recipe["name"] == "Spicy Arrabiata Penne"
    assert recipe["area"] == "Italian"
    assert recipe["thumbnailUrl"] == "https://img.example/52771.jpg"
    assert len(recipe["ingredients"]) == 3
    assert fake_upstream.calls["lookup:52771"] == 1


def test_details_not_found(client):
    resp = client.get("/recipes/99999/details")
    assert resp.status_code == 404


def test_drink_details(client):
    resp = client.get("/recipes/11007/details", params={"type": "drink"})
    assert resp.status_code == 200
    assert resp.json()["recipe"]["kind"] == "drink"


def test_ingredients(client):
    resp = client.get("/recipes/11007/ingredients", params={"type": "drink"})
    assert resp.status_code == 200
    assert resp.json()["ingredients"] == [
        {"name": "Tequila", "measure": "1 1/2 oz"},
        {"name": "Triple sec", "measure": "1/2 oz"},
        {"name": "Lime juice", "measure": ""},
    ]
    assert client.get("/recipes/1/ingredients").status_code == 404


def test_nutrition_needs_no_upstream(client, fake_upstream):
    resp = client.get("/recipes/52771/nutrition", params={"type": "meal"})
    assert resp.json() == {
        "nutrition": {"calories": 572, "protein": 36, "carbs": 64, "fat": 19},
    }
    assert fake_upstream.total_calls == 0


def test_nutrition_agrees_with_browse(client):
    body = client.get("/recipes/browse", params={"type": "meal", "limit": 100}).json()
    for record in body["results"]:
        nutrition = client.get(f"/recipes/{record['id']}/nutrition").json()["nutrition"]
        assert nutrition["calories"] == record["estimatedCalories"]


def test_curated_routes(client):
    meals = client.get("/recipes/curated").json()["meals"]
    assert meals[0] == {
        "id": "52771",
        "name": "Spicy Arrabiata Penne",
        "thumbnail": "https://img.example/52771.jpg",
    }
    drinks = client.get("/recipes/drinks/curated").json()["drinks"]
    assert [d["name"] for d in drinks] == ["Mojito", "Margarita"]


def test_random_drink(client):
    drinks = client.get("/recipes/drinks/random").json()["drinks"]
    assert drinks[0]["idDrink"] == "11007"


def test_cache_stats(client):
    assert client.get("/cache/stats").json()["state"] == "not_started"
    client.get("/recipes/browse")
    stats = client.get("/cache/stats").json()
    assert stats["state"] == "ready"
    assert stats["meals"] == 9
    assert stats["drinks"] == 25


def test_startup_warm_up_shares_one_fetch(catalog, fake_upstream, monkeypatch):
    monkeypatch.setattr(app.state, "catalog", catalog)
    with TestClient(app) as c:
        assert c.get("/recipes/browse").status_code == 200
        assert c.get("/recipes/browse", params={"type": "meal"}).status_code == 200
    assert catalog.warm_attempts == 1
    assert fake_upstream.category_calls("Beef") == 1


def test_shutdown_cancels_slow_startup_warm_up(catalog, fake_upstream, monkeypatch):
    monkeypatch.setattr(app.state, "catalog", catalog)
    fake_upstream.delay = 0.5
    with TestClient(app):
        pass
    assert catalog.state.value == "not_started"
    assert catalog.stats()["meals"] == 0
