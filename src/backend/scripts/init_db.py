"""Create the ATS tables (jobs, resumes, applications, score refresh runs).

Run via: python scripts/init_db.py  (with SCOUT_DATABASE_URL set)
Pass --drop to rebuild from scratch.
"""

import asyncio
import sys

from scout.core.database import engine
from scout.models.orm import Base


async def init(drop: bool = False) -> None:
    async with engine.begin() as conn:
        if drop:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    tables = ", ".join(sorted(Base.metadata.tables))
    print(f"Database ready: {tables}")


if __name__ == "__main__":
    asyncio.run(init(drop="--drop" in sys.argv[1:]))
