#!/usr/bin/env python3
"""
Seed the record store with plausible demo data.

Every generated record goes through the data-entry form rules before it
is inserted, so the dashboards show the same kind of data a user would
type in.

Usage:
    python scripts/seed_demo.py
    python scripts/seed_demo.py --per-domain 50
    python scripts/seed_demo.py --per-domain 10 --seed 7
"""
import argparse
import asyncio
import logging
import random
import sys
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Callable, Dict

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import ConfigurationError, load_config, validate_config
from core.exceptions import StoreError, ValidationError
from core.models import Domain
from core.store import RecordStore
from core.validators import validate_form

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

SHIFTS = ["morning", "day", "night"]
MACHINES = ["M-101", "M-102", "M-201", "M-305", "CNC-7"]
DEFECTS = ["none", "scratch", "crack", "misalignment", "discoloration"]
TECHNICIANS = ["Ava Patel", "Liam Chen", "Noah Garcia", "Mia Kowalski"]
ISSUES = [
    ("Printer jams after warm-up", "Replaced pickup roller"),
    ("Display flickers on startup", "Reseated display cable"),
    ("Unit not powering on", "Replaced power supply fuse"),
    ("Error code E42 during cycle", "Reset controller and updated firmware"),
    ("Loud noise from motor", "Lubricated bearing and tightened mount"),
    ("Network connection drops", "Swapped faulty network card"),
]
CUSTOMERS = ["Acme Corp", "Globex", "Initech", "Umbrella Ltd", "Stark Industries"]
PAYMENT_STATUSES = ["paid", "pending", "overdue"]


def _manufacturing(rng: random.Random, n: int) -> Dict[str, Any]:
    production = rng.randint(80, 200)
    return {
        "production_count": production,
        "scrap_count": rng.randint(0, production // 10),
        "shift": rng.choice(SHIFTS),
        "machine_id": rng.choice(MACHINES),
    }


def _testing(rng: random.Random, n: int) -> Dict[str, Any]:
    failed = rng.randint(0, 12)
    return {
        "batch_id": f"B-{1000 + n // 3}",
        "passed": rng.randint(40, 120),
        "failed": failed,
        "defect_type": "none" if failed == 0 else rng.choice(DEFECTS[1:]),
    }


def _field(rng: random.Random, n: int) -> Dict[str, Any]:
    issue, solution = rng.choice(ISSUES)
    return {
        "customer_issue": issue,
        "solution_given": solution,
        "technician_name": rng.choice(TECHNICIANS),
    }


def _sales(rng: random.Random, n: int) -> Dict[str, Any]:
    dispatch = date.today() + timedelta(days=rng.randint(-120, 30))
    return {
        "order_id": f"SO-{5000 + n}",
        "customer_name": rng.choice(CUSTOMERS),
        "quantity": rng.randint(1, 25),
        "dispatch_date": dispatch.isoformat(),
        "payment_status": rng.choice(PAYMENT_STATUSES),
    }


GENERATORS: Dict[Domain, Callable[[random.Random, int], Dict[str, Any]]] = {
    Domain.MANUFACTURING: _manufacturing,
    Domain.TESTING: _testing,
    Domain.FIELD: _field,
    Domain.SALES: _sales,
}


async def seed(per_domain: int, rng: random.Random) -> Dict[str, Any]:
    """Insert `per_domain` records into every table and return store stats."""
    config = load_config()
    validate_config(config)

    store = RecordStore(config.database)
    await store.connect()
    try:
        for domain, generate in GENERATORS.items():
            for n in range(per_domain):
                payload = validate_form(domain, generate(rng, n))
                await store.insert(domain, payload)
            logger.info(f"Seeded {per_domain} {domain.display_name} records")
        return await store.get_stats()
    finally:
        await store.close()


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed the record store with demo data")
    parser.add_argument(
        "--per-domain",
        type=int,
        default=20,
        help="Records to insert per table (default: 20)"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducible data"
    )
    args = parser.parse_args()

    if args.per_domain < 1:
        parser.error("--per-domain must be at least 1")

    try:
        stats = asyncio.run(seed(args.per_domain, random.Random(args.seed)))
    except ConfigurationError as e:
        logger.error(str(e))
        return 1
    except (StoreError, ValidationError) as e:
        logger.error(f"Seeding failed: {e}", exc_info=True)
        return 1

    print("\n" + "=" * 40)
    print("RECORD COUNTS")
    print("=" * 40)
    for table, count in stats["tables"].items():
        print(f"  {table:<28} {count:>6}")
    print(f"  database: {stats['db_path']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
