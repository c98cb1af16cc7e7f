"""
Demo Seed & Load Script

Registers a demo restaurant through the live API, fills its menu, registers
customers and fires a burst of concurrent orders. Afterwards it checks that
every order received a distinct daily order number.

Run from project root (API must be running):
    python scripts/seed.py --orders 50

Author: Khalil_Bannouri
Version: 1.0.0
"""

import argparse
import asyncio
import base64
import random
import sys
import time
from datetime import date
from typing import Any

import httpx

API_BASE_URL = "http://localhost:5000"
TOTAL_ORDERS = 50

# 1x1 transparent PNG
PLACEHOLDER_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)

MENU = {
    "Starters": [
        {"name": "Paneer Tikka", "price": 220, "tax_rate": 5},
        {"name": "Veg Spring Roll", "price": 160, "tax_rate": 5},
    ],
    "Mains": [
        {"name": "Butter Chicken", "price": 340, "tax_rate": 5},
        {"name": "Dal Makhani", "price": 260, "tax_rate": 5},
        {"name": "Veg Biryani", "price": 280, "tax_rate": 5},
    ],
    "Drinks": [
        {"name": "Masala Chai", "price": 60, "tax_rate": 18},
        {"name": "Sweet Lassi", "price": 90, "tax_rate": 18},
    ],
}

FIRST_NAMES = ["Aarav", "Diya", "Kabir", "Meera", "Rohan", "Ananya", "Vihaan", "Isha", "Arjun", "Sara"]


def _image(name: str) -> dict[str, tuple]:
    return {"img": (f"{name}.png", PLACEHOLDER_PNG, "image/png")}


async def seed_restaurant(client: httpx.AsyncClient, tax_type: str, tax_percentage: float) -> dict[str, Any]:
    """Register and log in a fresh demo restaurant, then create its menu."""
    suffix = random.randint(10000, 99999)
    credentials = {"email": f"demo{suffix}@example.com", "password": "demo-password"}
    response = await client.post(
        "/restaurants/register",
        json={
            "name": f"Demo Kitchen {suffix}",
            "number": f"98{random.randint(10000000, 99999999)}",
            "address": "12 MG Road, Bengaluru",
            "tax_type": tax_type,
            "tax_percentage": tax_percentage,
            **credentials,
        },
    )
    response.raise_for_status()
    restaurant = response.json()

    response = await client.post("/restaurants/login", json=credentials)
    response.raise_for_status()
    client.headers["Authorization"] = f"Bearer {response.json()['access_token']}"

    product_ids = []
    for cat_name, products in MENU.items():
        response = await client.post("/categories", data={"cat_name": cat_name}, files=_image(cat_name))
        response.raise_for_status()
        category_id = response.json()["id"]

        for product in products:
            response = await client.post(
                "/products",
                data={**{k: str(v) for k, v in product.items()}, "category_id": str(category_id)},
                files=_image(product["name"]),
            )
            response.raise_for_status()
            product_ids.append(response.json()["id"])

    print(f"   ✅ Restaurant #{restaurant['id']} with {len(product_ids)} products")
    return {"restaurant": restaurant, "product_ids": product_ids}


async def seed_customers(client: httpx.AsyncClient, restaurant_id: int, count: int) -> list[int]:
    customer_ids = []
    for i in range(count):
        response = await client.post(
            f"/users/{restaurant_id}",
            json={
                "name": random.choice(FIRST_NAMES),
                "phone": f"9{random.randint(100000000, 999999999)}",
                "dob": date(random.randint(1965, 2006), random.randint(1, 12), random.randint(1, 28)).isoformat(),
            },
        )
        response.raise_for_status()
        customer_ids.append(response.json()["customer_identifier"])
    print(f"   ✅ {len(customer_ids)} customers registered")
    return customer_ids


def generate_order(customer_ids: list[int], product_ids: list[int]) -> dict[str, Any]:
    items = [
        {"product_id": product_id, "quantity": random.randint(1, 3)}
        for product_id in random.sample(product_ids, random.randint(1, 3))
    ]
    return {
        "customer_id": random.choice(customer_ids),
        "items": items,
        "table_number": random.randint(1, 20),
        "mode_of_order": random.choice(["Dine-in", "Takeaway"]),
        "order_notes": random.choice(["", "Less spicy", "No onions"]),
    }


async def send_order(client: httpx.AsyncClient, restaurant_id: int, payload: dict[str, Any], order_num: int) -> dict[str, Any]:
    start_time = time.time()
    try:
        response = await client.post(f"/orders/{restaurant_id}", json=payload, timeout=30.0)
    except httpx.HTTPError as e:
        return {"order_num": order_num, "success": False, "error": str(e)[:100], "time": 0.0}

    elapsed = round(time.time() - start_time, 3)
    if response.status_code != 201:
        return {"order_num": order_num, "success": False, "error": response.text[:100], "time": elapsed}

    order = response.json()["order"]
    return {
        "order_num": order_num,
        "success": True,
        "order_no": order["order_no"],
        "total": order["final_total"],
        "time": elapsed,
    }


async def run(num_orders: int, tax_type: str, tax_percentage: float, base_url: str) -> bool:
    print("=" * 70)
    print("🌱 QRAR DEMO SEED")
    print("=" * 70)

    async with httpx.AsyncClient(base_url=base_url, timeout=30.0) as client:
        response = await client.get("/health")
        if response.status_code != 200:
            print(f"   ❌ API not healthy: {response.text}")
            return False
        print(f"   ✅ API status: {response.json().get('status')}")

        seeded = await seed_restaurant(client, tax_type, tax_percentage)
        restaurant_id = seeded["restaurant"]["id"]
        customer_ids = await seed_customers(client, restaurant_id, 10)

        print(f"\n🚀 Firing {num_orders} concurrent orders...\n")
        start_time = time.time()
        results = await asyncio.gather(*[
            send_order(client, restaurant_id, generate_order(customer_ids, seeded["product_ids"]), i + 1)
            for i in range(num_orders)
        ])
        total_time = round(time.time() - start_time, 2)

    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]
    order_numbers = sorted(r["order_no"] for r in successful)

    print("=" * 70)
    print("📊 RESULTS")
    print("=" * 70)
    print(f"✅ Successful Orders: {len(successful)}/{num_orders}")
    print(f"❌ Failed Orders: {len(failed)}/{num_orders}")
    print(f"⏱️  Total Time: {total_time}s")
    if successful:
        print(f"💰 Total Revenue: ₹{sum(r['total'] for r in successful):.2f}")

    unique = len(set(order_numbers)) == len(order_numbers)
    print(f"🔢 Order numbers distinct: {'yes' if unique else 'NO'} ({order_numbers[:1]}..{order_numbers[-1:]})")

    for f in failed[:5]:
        print(f"   Order #{f['order_num']}: {f['error']}")

    return unique and not failed


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed a demo restaurant and fire concurrent orders")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--tax-type", choices=["none", "inclusive", "exclusive"], default="exclusive")
    parser.add_argument("--tax-percentage", type=float, default=5.0)
    parser.add_argument("--base-url", default=API_BASE_URL)
    args = parser.parse_args()

    ok = asyncio.run(run(args.orders, args.tax_type, args.tax_percentage, args.base_url))
    sys.exit(0 if ok else 1)
