"""
Widget Flow Simulation Script

Fires many concurrent widget journeys (session -> menu -> chat -> order)
against a running server to check isolation and resilience.
Run from project root: python scripts/simulate.py --tenant <uuid>

Author: Khalil Bannouri
Version: 1.0.0
"""

import argparse
import asyncio
import random
import sys
import time
from datetime import datetime
from typing import Any, Optional

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:8001"
TOTAL_FLOWS = 50
ORIGIN = "http://localhost:3000"

QUESTIONS = [
    "Any vegan options?",
    "Italian dishes?",
    "What do you recommend?",
    "Do you have curry?",
    "sushi?",
    "What's good tonight?",
]


def pick_lines(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Random distinct items with random quantities."""
    chosen = random.sample(items, k=min(len(items), random.randint(1, 3)))
    return [{"itemId": item["id"], "qty": random.randint(1, 3)} for item in chosen]


# =============================================================================
# SINGLE WIDGET JOURNEY
# =============================================================================

async def run_flow(
    client: httpx.AsyncClient,
    tenant_id: str,
    flow_num: int,
) -> dict[str, Any]:
    """Open a session, read the menu, chat once and place an order."""
    start_time = time.time()
    headers = {"Origin": ORIGIN}

    try:
        response = await client.post(
            f"{API_BASE_URL}/sessions",
            json={"tenantId": tenant_id, "locale": "en"},
            headers=headers,
        )
        if response.status_code != 200:
            return _failure(flow_num, start_time, "session", response)
        token = response.json()["data"]["sessionToken"]

        response = await client.get(f"{API_BASE_URL}/menu", params={"tenantId": tenant_id})
        if response.status_code != 200:
            return _failure(flow_num, start_time, "menu", response)
        items = [item for section in response.json()["data"]["sections"] for item in section["items"]]

        response = await client.post(
            f"{API_BASE_URL}/chat",
            json={"tenantId": tenant_id, "sessionToken": token, "message": random.choice(QUESTIONS)},
            headers=headers,
        )
        if response.status_code != 200:
            return _failure(flow_num, start_time, "chat", response)
        cards = len(response.json()["data"]["reply"]["cards"])

        total: Optional[int] = None
        if items:
            response = await client.post(
                f"{API_BASE_URL}/orders",
                json={
                    "tenantId": tenant_id,
                    "sessionToken": token,
                    "type": random.choice(["pickup", "dine_in"]),
                    "items": pick_lines(items),
                },
                headers=headers,
            )
            if response.status_code not in (200, 201):
                return _failure(flow_num, start_time, "order", response)
            total = response.json()["data"]["totalCents"]

        return {
            "flow_num": flow_num,
            "success": True,
            "cards": cards,
            "total_cents": total,
            "time": round(time.time() - start_time, 3),
        }
    except Exception as e:
        return {
            "flow_num": flow_num,
            "success": False,
            "step": "transport",
            "error": str(e)[:100],
            "time": round(time.time() - start_time, 3),
        }


def _failure(flow_num: int, start_time: float, step: str, response: httpx.Response) -> dict[str, Any]:
    return {
        "flow_num": flow_num,
        "success": False,
        "step": step,
        "error": f"{response.status_code} {response.text[:100]}",
        "time": round(time.time() - start_time, 3),
    }


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(tenant_id: str, num_flows: int = TOTAL_FLOWS) -> dict[str, Any]:
    print("=" * 70)
    print("🔥 WIDGET SIMULATION - CONCURRENT FLOWS")
    print("=" * 70)
    print(f"📋 Flows: {num_flows}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"🏪 Tenant: {tenant_id}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()
    async with httpx.AsyncClient(timeout=30.0) as client:
        results = await asyncio.gather(*(run_flow(client, tenant_id, i + 1) for i in range(num_flows)))
    total_time = round(time.time() - start_time, 2)

    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Successful Flows: {len(successful)}/{num_flows}")
    print(f"❌ Failed Flows: {len(failed)}/{num_flows}")
    print(f"⏱️  Total Time: {total_time}s")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        revenue = sum(r["total_cents"] or 0 for r in successful)
        print(f"\n📈 Performance Metrics:")
        print(f"   Average Flow: {avg_time}s")
        print(f"   Fastest: {min(r['time'] for r in successful)}s")
        print(f"   Slowest: {max(r['time'] for r in successful)}s")
        print(f"   💰 Total Ordered: {revenue} minor units")

    if failed:
        print(f"\n⚠️  Failed Flow Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Flow #{f['flow_num']} [{f.get('step')}]: {f.get('error', 'Unknown error')}")

    print("=" * 70)
    return {
        "total": num_flows,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "results": results,
    }


async def preflight() -> bool:
    """Health check before the run."""
    async with httpx.AsyncClient(timeout=10.0) as client:
        response = await client.get(f"{API_BASE_URL}/health")
    if response.status_code != 200:
        print(f"❌ Health check failed: {response.text}")
        return False
    data = response.json()["data"]
    print(f"✅ Status: {data.get('status')} (database: {data.get('database')})")
    return data.get("status") == "operational"


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Widget Flow Simulation Script")
    parser.add_argument("--tenant", required=True, help="Restaurant id (see scripts/seed_demo.py)")
    parser.add_argument("--flows", type=int, default=TOTAL_FLOWS, help="Number of concurrent flows")
    parser.add_argument("--skip-preflight", action="store_true", help="Skip the health check")
    args = parser.parse_args()

    if not args.skip_preflight and not asyncio.run(preflight()):
        print("\n❌ Pre-flight check failed. Fix issues before running the simulation.")
        sys.exit(1)

    summary = asyncio.run(run_simulation(args.tenant, args.flows))
    sys.exit(0 if summary["failed"] == 0 else 1)
