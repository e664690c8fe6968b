"""
Integration Tests: Set Meal Endpoints
"""

import pytest_asyncio
from httpx import AsyncClient

from conftest import dish_payload
from takeaway.services.cache import MockCacheService


@pytest_asyncio.fixture
async def setmeal(client: AsyncClient, dish: dict, setmeal_category: dict) -> dict:
    response = await client.post("/setmeal", json={
        "name": "Tofu Combo",
        "category_id": setmeal_category["id"],
        "price": 35,
        "setmeal_dishes": [{"dish_id": dish["id"], "copies": 2}],
    })
    assert response.status_code == 201
    return response.json()


class TestSetmealWrites:

    async def test_save_defaults_member_name_and_price(self, setmeal: dict, dish: dict):
        member = setmeal["setmeal_dishes"][0]

        assert setmeal["category_name"] == "Lunch Combos"
        assert member["dish_id"] == dish["id"]
        assert member["name"] == dish["name"]
        assert member["price"] == dish["price"]
        assert member["copies"] == 2

    async def test_save_requires_a_dish(self, client: AsyncClient, setmeal_category: dict):
        response = await client.post("/setmeal", json={
            "name": "Empty Combo",
            "category_id": setmeal_category["id"],
            "price": 10,
            "setmeal_dishes": [],
        })

        assert response.status_code == 422

    async def test_save_with_unknown_dish(self, client: AsyncClient, setmeal_category: dict):
        response = await client.post("/setmeal", json={
            "name": "Ghost Combo",
            "category_id": setmeal_category["id"],
            "price": 10,
            "setmeal_dishes": [{"dish_id": 404}],
        })

        assert response.status_code == 400
        assert response.json()["error"] == "Dishes not found: [404]"

        page = await client.get("/setmeal/page")
        assert page.json()["total"] == 0

    async def test_update_replaces_members(
        self, client: AsyncClient, setmeal: dict, dish: dict
    ):
        rice = (await client.post(
            "/dish", json=dish_payload(dish["category_id"], name="Rice", price=2, flavors=[])
        )).json()

        response = await client.put("/setmeal", json={
            "id": setmeal["id"],
            "name": "Tofu Combo",
            "category_id": setmeal["category_id"],
            "price": 30,
            "setmeal_dishes": [{"dish_id": rice["id"], "name": "Steamed Rice", "price": 1.5}],
        })

        assert response.status_code == 200
        members = response.json()["setmeal_dishes"]
        assert [(m["dish_id"], m["name"], m["price"]) for m in members] == [
            (rice["id"], "Steamed Rice", 1.5)
        ]

    async def test_remove_while_on_sale_is_refused(self, client: AsyncClient, setmeal: dict):
        response = await client.delete("/setmeal", params={"ids": str(setmeal["id"])})

        assert response.status_code == 400
        assert response.json()["error"] == "Set meal is on sale and cannot be deleted"
        assert (await client.get(f"/setmeal/{setmeal['id']}")).status_code == 200

    async def test_remove_after_stopping_sale(self, client: AsyncClient, setmeal: dict):
        await client.post("/setmeal/status/0", params={"ids": str(setmeal["id"])})

        response = await client.delete("/setmeal", params={"ids": str(setmeal["id"])})

        assert response.status_code == 200
        assert response.json()["message"] == "1 set meal(s) deleted"
        assert (await client.get(f"/setmeal/{setmeal['id']}")).status_code == 404


class TestSetmealReads:

    async def test_get_unknown_setmeal(self, client: AsyncClient):
        response = await client.get("/setmeal/31")

        assert response.status_code == 404
        assert response.json()["error"] == "Set meal #31 not found"

    async def test_page(self, client: AsyncClient, setmeal: dict):
        response = await client.get("/setmeal/page", params={"name": "Tofu"})

        data = response.json()
        assert data["total"] == 1
        assert data["records"][0]["setmeal_dishes"][0]["copies"] == 2

    async def test_list_is_cached_and_invalidated(
        self, client: AsyncClient, cache: MockCacheService, setmeal: dict
    ):
        params = {"category_id": setmeal["category_id"]}
        first = await client.get("/setmeal/list", params=params)
        assert [s["id"] for s in first.json()] == [setmeal["id"]]
        assert cache.keys() == [f"setmeal_{setmeal['category_id']}_1"]

        await client.post("/setmeal/status/0", params={"ids": str(setmeal["id"])})

        assert cache.keys() == []
        assert (await client.get("/setmeal/list", params=params)).json() == []

    async def test_dish_keys_survive_setmeal_writes(
        self, client: AsyncClient, cache: MockCacheService, setmeal: dict
    ):
        await client.get("/dish/list")

        await client.post("/setmeal/status/0", params={"ids": str(setmeal["id"])})

        assert cache.keys() == ["dish_all_1"]

    async def test_failed_update_leaves_cache_and_members_alone(
        self, client: AsyncClient, cache: MockCacheService, setmeal: dict
    ):
        await client.get("/setmeal/list", params={"category_id": setmeal["category_id"]})
        cached_key = f"setmeal_{setmeal['category_id']}_1"

        response = await client.put("/setmeal", json={
            "id": setmeal["id"],
            "name": "Renamed Combo",
            "category_id": setmeal["category_id"],
            "price": 20,
            "setmeal_dishes": [{"dish_id": 404}],
        })

        assert response.status_code == 400
        assert cache.keys() == [cached_key]

        fetched = (await client.get(f"/setmeal/{setmeal['id']}")).json()
        assert fetched["name"] == "Tofu Combo"
        assert fetched["setmeal_dishes"] == setmeal["setmeal_dishes"]
