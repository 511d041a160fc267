#!/usr/bin/env python3
"""
Seed the local JSON store with a couple of sellers' products.

Usage:
  python3 scripts/seed_store.py --path ./data/marketplace.json
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.core.config import settings
from app.domain.entities.product import Product
from app.domain.entities.service_config import ServiceConfig
from app.infrastructure.store.json_store import JsonMarketplaceStore


def demo_products() -> list[Product]:
    return [
        Product(
            id="haircut",
            title="Haircut",
            price=30.0,
            type="service",
            owner_id=7,
            owner_email="salon@example.com",
            service_config=ServiceConfig.normalize(
                open_days=["mon", "tue", "wed", "thu", "fri"],
                open_time="09:00",
                close_time="17:00",
                duration_minutes=60,
                daily_capacity=4,
            ),
        ),
        Product(
            id="massage",
            title="Massage",
            price=55.0,
            type="service",
            owner_id=8,
            owner_email="spa@example.com",
            service_config=ServiceConfig.normalize(
                open_days=["saturday", "sunday"],
                open_time="10:00",
                close_time="14:00",
                duration_minutes=90,
            ),
        ),
        Product(id="shampoo", title="Shampoo", price=12.5, owner_id=7, owner_email="salon@example.com"),
    ]


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the JSON marketplace store with demo products")
    parser.add_argument("--path", default=settings.STORE_DATA_PATH)
    args = parser.parse_args()

    store = JsonMarketplaceStore(args.path)
    for product in demo_products():
        store.save_product(product)
        print(f"saved {product.id} ({product.type})")
    print(f"store: {args.path}")


if __name__ == "__main__":
    main()
