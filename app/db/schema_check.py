import asyncio
from typing import List

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncEngine

from app.db.session import Base, engine

# Import models to ensure they are registered with Base.metadata
import app.core.models  # noqa: F401


REQUIRED_TABLES: List[str] = [
    "users",
    "departments",
    "subjects",
    "classes",
    "enrollments",
]


async def missing_tables(db_engine: AsyncEngine) -> List[str]:
    async with db_engine.connect() as conn:
        existing = await conn.run_sync(lambda sync_conn: set(inspect(sync_conn).get_table_names()))
    return [name for name in REQUIRED_TABLES if name not in existing]


async def ensure_tables(db_engine: AsyncEngine) -> List[str]:
    """
    Create any missing tables (idempotent). Existing tables are left untouched,
    so constraint changes on a live database still need a manual migration.
    Returns the names of the tables that were created.
    """
    missing = await missing_tables(db_engine)
    if missing:
        async with db_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    return missing


async def main() -> None:
    created = await ensure_tables(engine)
    if created:
        print("Created missing tables: " + ", ".join(created))
    else:
        print("All required tables already exist in the database.")


if __name__ == "__main__":
    asyncio.run(main())
