"""
Chaos Simulation Script

Fires a burst of concurrent orders at one food and checks that the stock
bookkeeping holds: no oversell, purchase count equals units sold, and
cancelling every order puts the stock back.

Requires a running server in development mode (dev tokens):
    uvicorn restaurant_api.main:app --port 3000
    python scripts/simulate.py --orders 50 --stock 40
"""

import asyncio
import sys
import random
import time
import argparse
from datetime import datetime
from typing import Any

import httpx

# Configuration
API_BASE_URL = "http://localhost:3000"
TOTAL_ORDERS = 50
INITIAL_STOCK = 40

OWNER_EMAIL = "chef@restaurant.test"
BUYER_NAMES = ["john", "jane", "mike", "sarah", "tom", "emma", "david", "lisa", "chris", "amy"]


def auth_header(email: str) -> dict[str, str]:
    """Development bearer token for an email."""
    return {"Authorization": f"Bearer dev:{email}"}


def random_buyer() -> str:
    return f"{random.choice(BUYER_NAMES)}{random.randint(1, 99)}@example.com"


async def create_food(client: httpx.AsyncClient, stock: int) -> dict[str, Any]:
    response = await client.post(
        f"{API_BASE_URL}/foods",
        json={
            "name": f"Simulation Special {datetime.now():%H%M%S}",
            "price": 9.99,
            "quantity": stock,
            "category": "simulation",
        },
        headers=auth_header(OWNER_EMAIL),
    )
    response.raise_for_status()
    return response.json()


async def send_order(
    client: httpx.AsyncClient,
    order_num: int,
    food_id: str,
) -> dict[str, Any]:
    """Place one order for 1-3 units as a random buyer."""
    buyer = random_buyer()
    quantity = random.randint(1, 3)
    start_time = time.time()

    try:
        response = await client.post(
            f"{API_BASE_URL}/orders",
            json={"foodId": food_id, "quantity": quantity},
            headers=auth_header(buyer),
            timeout=30.0,
        )
        elapsed = round(time.time() - start_time, 3)
        body = response.json()

        return {
            "order_num": order_num,
            "success": response.status_code == 201,
            "status": response.status_code,
            "error": body.get("error"),
            "order_id": body.get("id"),
            "buyer": buyer,
            "quantity": quantity,
            "time": elapsed,
        }
    except httpx.HTTPError as e:
        return {
            "order_num": order_num,
            "success": False,
            "status": None,
            "error": str(e)[:100],
            "buyer": buyer,
            "quantity": quantity,
            "time": round(time.time() - start_time, 3),
        }


async def cancel_order(client: httpx.AsyncClient, result: dict[str, Any]) -> bool:
    response = await client.delete(
        f"{API_BASE_URL}/orders/{result['order_id']}",
        headers=auth_header(result["buyer"]),
        timeout=30.0,
    )
    return response.status_code == 200


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(
    num_orders: int = TOTAL_ORDERS,
    stock: int = INITIAL_STOCK,
    cancel: bool = True,
) -> bool:
    """
    Run the chaos simulation.

    Returns:
        True if every stock invariant held
    """
    print("=" * 70)
    print("🔥 CHAOS SIMULATION - CONCURRENT ORDERS AGAINST ONE FOOD")
    print("=" * 70)
    print(f"📋 Total Orders: {num_orders}")
    print(f"📦 Initial Stock: {stock}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    ok = True
    start_time = time.time()

    async with httpx.AsyncClient() as client:
        food = await create_food(client, stock)
        food_id = food["id"]
        print(f"\n🍽️  Created food {food_id}")

        print("\n🚀 Firing orders...\n")
        tasks = [send_order(client, i + 1, food_id) for i in range(num_orders)]
        results = await asyncio.gather(*tasks)

        total_time = round(time.time() - start_time, 2)

        successful = [r for r in results if r["success"]]
        sold_out = [r for r in results if r.get("error") == "InsufficientStock"]
        failed = [r for r in results if not r["success"] and r not in sold_out]
        units_sold = sum(r["quantity"] for r in successful)

        response = await client.get(f"{API_BASE_URL}/foods/{food_id}")
        after = response.json()

        print("\n" + "=" * 70)
        print("📊 SIMULATION RESULTS")
        print("=" * 70)
        print(f"\n✅ Successful Orders: {len(successful)}/{num_orders} ({units_sold} units)")
        print(f"🚫 Insufficient Stock: {len(sold_out)}/{num_orders}")
        print(f"❌ Other Failures: {len(failed)}/{num_orders}")
        print(f"⏱️  Total Time: {total_time}s")
        print(f"\n📦 Stock now: {after['quantity']} (expected {stock - units_sold})")
        print(f"🧾 Purchase count: {after['purchaseCount']} (expected {units_sold})")

        if after["quantity"] != stock - units_sold or after["quantity"] < 0:
            print("   ❌ Stock does not match units sold!")
            ok = False
        if after["purchaseCount"] != units_sold:
            print("   ❌ Purchase count does not match units sold!")
            ok = False

        if failed:
            print("\n⚠️  Failed Order Details (showing first 5):")
            for f in failed[:5]:
                print(f"   Order #{f['order_num']}: {f.get('status')} {f.get('error')}")

        if cancel and successful:
            print("\n↩️  Cancelling all successful orders...")
            cancelled = await asyncio.gather(*(cancel_order(client, r) for r in successful))
            response = await client.get(f"{API_BASE_URL}/foods/{food_id}")
            restored = response.json()
            print(f"   Cancelled: {sum(cancelled)}/{len(successful)}")
            print(f"   📦 Stock now: {restored['quantity']} (expected {stock})")
            print(f"   🧾 Purchase count: {restored['purchaseCount']} (unchanged: {units_sold})")
            if restored["quantity"] != stock or restored["purchaseCount"] != units_sold:
                print("   ❌ Cancellation did not restore stock!")
                ok = False

    print("\n" + "=" * 70)
    print("✅ ALL INVARIANTS HELD" if ok else "❌ INVARIANT VIOLATIONS FOUND")
    print("=" * 70)
    return ok


async def preflight_check() -> bool:
    """Make sure the server is up before the burst."""
    async with httpx.AsyncClient() as client:
        try:
            response = await client.get(f"{API_BASE_URL}/health")
        except httpx.HTTPError as e:
            print(f"   ❌ Server unreachable: {e}")
            return False
        data = response.json()
        print(f"   ✅ Status: {data.get('status')}")
        print(f"   Storage: {data.get('storage')}")
        print(f"   Auth: {data.get('auth')}")
        return response.status_code == 200


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Chaos Simulation Script")
    parser.add_argument("--url", default=API_BASE_URL, help="API base URL")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--stock", type=int, default=INITIAL_STOCK, help="Initial stock")
    parser.add_argument("--no-cancel", action="store_true", help="Keep the orders")
    args = parser.parse_args()

    API_BASE_URL = args.url.rstrip("/")

    print("\n1️⃣ Health Check...")
    if not asyncio.run(preflight_check()):
        print("\n❌ Pre-flight check failed. Start the server first.")
        sys.exit(1)

    passed = asyncio.run(run_simulation(args.orders, args.stock, cancel=not args.no_cancel))
    sys.exit(0 if passed else 1)
