#!/usr/bin/env python3
"""
Walk one appointment through checkout, proposal, acceptance, completion and
payment against a running server (seed it first with scripts/seed_store.py).

Usage:
  uvicorn app.main:app --port 8001
  python3 scripts/book_flow.py --product haircut --seller 7 --buyer 42
"""
from __future__ import annotations

import argparse
import sys
from typing import Any

import httpx
from httpx import ConnectError


def show(label: str, resp: httpx.Response) -> dict[str, Any]:
    data = resp.json()
    print(f"{label}: {resp.status_code}")
    if resp.status_code >= 400:
        print(f"  {data.get('error')}")
        sys.exit(1)
    return data


def first_free_slot(client: httpx.Client, product_id: str) -> str | None:
    data = show("availability", client.get(f"/products/{product_id}/availability", params={"days": 14}))
    for day in data["days"]:
        for slot in day["slots"]:
            if slot["available"]:
                return slot["start"]
    return None


def main() -> None:
    parser = argparse.ArgumentParser(description="Exercise the appointment lifecycle over HTTP")
    parser.add_argument("--url", default="http://127.0.0.1:8001")
    parser.add_argument("--product", default="haircut")
    parser.add_argument("--seller", default="7")
    parser.add_argument("--buyer", default="42")
    args = parser.parse_args()

    seller = {"X-User-Id": args.seller}
    buyer = {"X-User-Id": args.buyer}

    with httpx.Client(base_url=args.url, timeout=10.0) as client:
        try:
            slot = first_free_slot(client, args.product)
        except ConnectError:
            print("Connection refused. Is the FastAPI server running?")
            sys.exit(1)
        if slot is None:
            print("No free slot in the next 14 days")
            sys.exit(1)

        order = show(
            "checkout",
            client.post(
                "/checkout",
                json={"items": [{"productId": args.product, "quantity": 1, "meta": slot}]},
                headers=buyer,
            ),
        )
        order_id = order["id"]
        print(f"  order {order_id} at {slot}")

        other = first_free_slot(client, args.product)
        show(
            "propose",
            client.post(f"/orders/{order_id}/appointment/reject-propose", json={"proposals": [other]}, headers=seller),
        )
        show("accept", client.post(f"/orders/{order_id}/appointment/accept", json={"date": other}, headers=buyer))
        show("complete", client.post(f"/orders/{order_id}/complete-service", headers=seller))
        final = show("pay", client.post(f"/orders/{order_id}/pay", headers=buyer))
        print(f"  final status: {final['status']}")


if __name__ == "__main__":
    main()
