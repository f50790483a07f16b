#!/usr/bin/env python
"""Initialize database with default data."""

import asyncio

from woc.core.config import settings
from woc.db.database import async_session_maker, init_db
from woc.services.scoring_service import ScoringService


async def init_scoring_table() -> None:
    """Seed the scoring table from settings if it is empty."""
    async with async_session_maker() as session:
        buckets = await ScoringService(session).get_all_buckets()
        await session.commit()
        print(f"Scoring table has {len(buckets)} buckets")


async def main() -> None:
    """Main initialization function."""
    print(f"Initializing database: {settings.database_url}")

    # Create tables
    await init_db()
    print("Database tables created")

    # Initialize default data
    await init_scoring_table()

    print("Database initialization complete!")


if __name__ == "__main__":
    asyncio.run(main())
