#!/usr/bin/env python3
"""
Seed the athlete directory with the launch roster.

Athletes are upserted by slug, so the script is safe to re-run.

Usage:
    python scripts/seed_athletes.py
    python scripts/seed_athletes.py --sync    # also populate each schedule
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add the project root to the path so we can import daps modules
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy import select

from daps.database.db import AsyncSessionLocal, init_database, dispose_engine
from daps.database.models import Athlete
from daps.services import schedule_service


ATHLETES = [
    {"slug": "anthony-edwards", "name": "Anthony Edwards", "team": "Timberwolves", "league": "NBA",
     "image_url": "/images/anthony-edwards.jpg", "featured": True},
    {"slug": "steph-curry", "name": "Steph Curry", "team": "Warriors", "league": "NBA",
     "image_url": "/images/steph-curry.jpg", "featured": True},
    {"slug": "shai-gilgeous-alexander", "name": "Shai Gilgeous-Alexander", "team": "Thunder", "league": "NBA",
     "image_url": "/images/shai-gilgeous-alexander.jpg"},
    {"slug": "lebron-james", "name": "LeBron James", "team": "Lakers", "league": "NBA",
     "image_url": "/images/lebron-james.jpg"},
    {"slug": "kevin-durant", "name": "Kevin Durant", "team": "Suns", "league": "NBA",
     "image_url": "/images/kevin-durant.jpg"},
    {"slug": "jayson-tatum", "name": "Jayson Tatum", "team": "Celtics", "league": "NBA",
     "image_url": "/images/jayson-tatum.jpg", "featured": True},
]


async def seed_athletes(sync: bool = False):
    """Upsert the launch roster, optionally syncing schedules afterwards."""
    await init_database()

    async with AsyncSessionLocal() as session:
        created = 0
        updated = 0
        for data in ATHLETES:
            result = await session.execute(select(Athlete).where(Athlete.slug == data["slug"]))
            athlete = result.scalar_one_or_none()
            if athlete:
                for key, value in data.items():
                    setattr(athlete, key, value)
                athlete.active = True
                updated += 1
                print(f"   🔄 Updated {data['name']}")
            else:
                session.add(Athlete(active=True, **data))
                created += 1
                print(f"   ✓ Created {data['name']}")
        await session.commit()
        print(f"\n✅ Athletes seeded: {created} created, {updated} updated")

        if not sync:
            return

        print("\n📅 Syncing schedules...")
        for data in ATHLETES:
            result = await session.execute(select(Athlete).where(Athlete.slug == data["slug"]))
            athlete = result.scalar_one()
            outcome = await schedule_service.ensure_fresh_schedule(session, athlete)
            marker = "✓" if outcome.success else "⚠️"
            print(f"   {marker} {athlete.name}: {outcome.message} ({outcome.count} games)")


async def main():
    parser = argparse.ArgumentParser(description="Seed the athlete directory")
    parser.add_argument("--sync", action="store_true", help="Populate each athlete's schedule from the providers")
    args = parser.parse_args()

    try:
        await seed_athletes(sync=args.sync)
    finally:
        await dispose_engine()


if __name__ == "__main__":
    asyncio.run(main())
