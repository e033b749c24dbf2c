"""Seed the registry with the demo team.

Usage:
    python scripts/run_seed.py                      # seed the configured backend
    python scripts/run_seed.py --reset              # drop and recreate tables first
    python scripts/run_seed.py --backend document   # seed the document backend
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

# Ensure project root is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from timeboard.database import async_session, init_db, engine, Base
from timeboard.seed import seed_data


async def main(reset: bool = False, backend: str | None = None) -> None:
    if reset:
        print("Dropping all tables...")
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    print("Initializing database...")
    await init_db()

    print("Seeding team members...")
    added = await seed_data(async_session, backend)
    print(f"Done ({added} added).")
    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed demo team members")
    parser.add_argument(
        "--reset", action="store_true", help="Drop and recreate tables before seeding"
    )
    parser.add_argument(
        "--backend", choices=["table", "document"], default=None,
        help="Registry backend to seed (defaults to TIMEBOARD_REGISTRY_BACKEND)",
    )
    args = parser.parse_args()
    asyncio.run(main(reset=args.reset, backend=args.backend))
