"""Script to create every table directly, bypassing Alembic.

Meant for throwaway development databases; use ``scripts/migrate.py`` for
anything that must be upgraded later.
"""

import asyncio

from sqlalchemy import text

from app.database import engine
from app.models import metadata


async def init_db() -> None:
    """Initialize the database by creating all tables."""
    async with engine.begin() as conn:
        # gen_random_uuid()
        await conn.execute(text('CREATE EXTENSION IF NOT EXISTS "pgcrypto"'))

        await conn.run_sync(metadata.create_all)

    await engine.dispose()
    print(f"✓ Database initialized with {len(metadata.tables)} tables")


if __name__ == "__main__":
    asyncio.run(init_db())
