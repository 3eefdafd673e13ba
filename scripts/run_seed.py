"""Seed the database with demo principals and hourly usage.

Usage:
    python scripts/run_seed.py          # seed all data
    python scripts/run_seed.py --reset  # drop and recreate tables first
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

# Ensure project root is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from airank.database import async_session, init_db, engine, Base
from airank.seed import seed_data


async def main(reset: bool = False, hours: int = 48) -> None:
    if reset:
        print("Dropping all tables...")
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    print("Initializing database...")
    await init_db()

    async with async_session() as db:
        print("Seeding data...")
        secrets_by_handle = await seed_data(db, hours=hours)

    for handle, secret in secrets_by_handle.items():
        print(f"  {handle:<12} {secret}")
    print("Done.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed demo data")
    parser.add_argument(
        "--reset", action="store_true", help="Drop and recreate tables before seeding"
    )
    parser.add_argument("--hours", type=int, default=48, help="Hours of history to generate")
    args = parser.parse_args()
    asyncio.run(main(reset=args.reset, hours=args.hours))
