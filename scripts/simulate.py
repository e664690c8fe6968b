"""
Menu Load Simulation Script

Seeds categories and dishes over HTTP, then hammers the cached dish list
to compare cold (database) and warm (cache) response times, and checks
that a dish update invalidates the cached lists.
Run from project root: python scripts/simulate.py
"""

import asyncio
import sys
import os
import random
import time
import argparse
from typing import Any

import httpx
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:8080"
TOTAL_REQUESTS = 200

# Sample data for the seeded menu
CATEGORIES = ["Sichuan", "Cantonese", "Noodles", "Drinks"]
DISH_NAMES = [
    "Kung Pao Chicken", "Mapo Tofu", "Twice-Cooked Pork", "Char Siu",
    "Wonton Soup", "Dan Dan Noodles", "Beef Chow Fun", "Iced Lemon Tea",
    "Soy Milk", "Steamed Fish", "Fried Rice", "Hot and Sour Soup",
]
FLAVORS = [
    {"name": "Spiciness", "value": '["none","mild","medium","hot"]'},
    {"name": "Temperature", "value": '["hot","warm","iced"]'},
    {"name": "Sweetness", "value": '["no sugar","half","full"]'},
]


def generate_dish_payload(name: str, category_id: int) -> dict[str, Any]:
    """Generate payload for POST /dish."""
    return {
        "name": name,
        "category_id": category_id,
        "price": round(random.uniform(8, 68), 2),
        "description": f"House special: {name}",
        "sort": random.randint(0, 10),
        "flavors": random.sample(FLAVORS, k=random.randint(0, 2)),
    }


async def seed_menu(client: httpx.AsyncClient) -> list[int]:
    """Create categories and dishes. Returns the category ids."""
    suffix = random.randint(1000, 9999)
    category_ids = []

    for sort, name in enumerate(CATEGORIES):
        response = await client.post(
            f"{API_BASE_URL}/category",
            json={"type": 1, "name": f"{name} {suffix}", "sort": sort},
        )
        response.raise_for_status()
        category_ids.append(response.json()["id"])

    for name in DISH_NAMES:
        response = await client.post(
            f"{API_BASE_URL}/dish",
            json=generate_dish_payload(f"{name} {suffix}", random.choice(category_ids)),
        )
        response.raise_for_status()

    print(f"   Seeded {len(category_ids)} categories and {len(DISH_NAMES)} dishes")
    return category_ids


async def timed_list(client: httpx.AsyncClient, category_id: int) -> dict[str, Any]:
    """Fetch one cached dish list and time it."""
    start_time = time.time()
    try:
        response = await client.get(
            f"{API_BASE_URL}/dish/list",
            params={"category_id": category_id, "status": 1},
            timeout=30.0,
        )
        elapsed = round(time.time() - start_time, 4)
        return {
            "success": response.status_code == 200,
            "count": len(response.json()) if response.status_code == 200 else 0,
            "time": elapsed,
        }
    except httpx.HTTPError as e:
        elapsed = round(time.time() - start_time, 4)
        return {"success": False, "error": str(e)[:100], "time": elapsed}


async def run_simulation(total: int) -> bool:
    print("=" * 70)
    print("MENU CACHE SIMULATION")
    print("=" * 70)

    async with httpx.AsyncClient() as client:
        health = await client.get(f"{API_BASE_URL}/health")
        if health.status_code != 200:
            print(f"   API not healthy: {health.text}")
            return False
        print(f"   Cache provider: {health.json().get('cache_provider')}")

        category_ids = await seed_menu(client)

        # Cold reads populate one cache key per category
        cold = [await timed_list(client, cid) for cid in category_ids]

        # Warm reads, concurrently
        warm = await asyncio.gather(*[
            timed_list(client, random.choice(category_ids)) for _ in range(total)
        ])

        failures = [r for r in warm if not r["success"]]
        avg_cold = sum(r["time"] for r in cold) / len(cold)
        avg_warm = sum(r["time"] for r in warm) / max(len(warm), 1)

        print(f"\n   Cold list avg: {avg_cold * 1000:.1f}ms over {len(cold)} requests")
        print(f"   Warm list avg: {avg_warm * 1000:.1f}ms over {len(warm)} requests")
        print(f"   Failures: {len(failures)}")

        # A write must clear the cached lists
        listing = await client.get(
            f"{API_BASE_URL}/dish/list", params={"category_id": category_ids[0]}
        )
        dishes = listing.json()
        if dishes:
            dish = await client.get(f"{API_BASE_URL}/dish/{dishes[0]['id']}")
            payload = dish.json()
            payload["price"] = round(payload["price"] + 1, 2)
            payload["flavors"] = [
                {"name": f["name"], "value": f["value"]} for f in payload["flavors"]
            ]
            await client.put(f"{API_BASE_URL}/dish", json=payload)

            refreshed = await client.get(
                f"{API_BASE_URL}/dish/list", params={"category_id": category_ids[0]}
            )
            new_price = next(d["price"] for d in refreshed.json() if d["id"] == payload["id"])
            ok = new_price == payload["price"]
            print(f"   Invalidation after update: {'OK' if ok else 'STALE'}")
            if not ok:
                return False

    print("\n" + "=" * 70)
    return not failures


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Menu Cache Simulation Script")
    parser.add_argument("--requests", type=int, default=TOTAL_REQUESTS, help="Number of warm list requests")
    parser.add_argument("--base-url", default=API_BASE_URL, help="API base URL")
    args = parser.parse_args()

    API_BASE_URL = args.base_url.rstrip("/")

    success = asyncio.run(run_simulation(args.requests))
    sys.exit(0 if success else 1)
