"""
Database Initialization Script

Creates the affiliate and audit log tables if they do not exist and
prints a short summary of what is stored.
"""

import asyncio
import sys

import asyncpg

from affiliates.config import settings
from affiliates.schema import SCHEMA_STATEMENTS


async def init_db(database_url: str, verbose: bool = False) -> dict:
    """
    Apply the schema and count existing rows.

    Args:
        database_url: PostgreSQL connection URL
        verbose: Print each statement as it runs

    Returns:
        Row counts per table
    """
    conn = await asyncpg.connect(database_url)

    try:
        async with conn.transaction():
            for statement in SCHEMA_STATEMENTS:
                if verbose:
                    print(" ".join(statement.split())[:72] + "...")
                await conn.execute(statement)

        return {
            "affiliates": await conn.fetchval("SELECT COUNT(*) FROM affiliates"),
            "audit_log": await conn.fetchval("SELECT COUNT(*) FROM audit_log"),
        }

    finally:
        await conn.close()


async def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Create the affiliate registry tables"
    )
    parser.add_argument(
        "--database-url",
        default=settings.asyncpg_dsn,
        help="PostgreSQL connection URL"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Print progress information"
    )

    args = parser.parse_args()

    try:
        counts = await init_db(args.database_url, verbose=args.verbose)
    except (OSError, asyncpg.PostgresError) as e:
        print(f"❌ Could not initialize database: {e}")
        sys.exit(1)

    print("✅ Schema ready")
    for table, count in counts.items():
        print(f"  {table}: {count} rows")


if __name__ == "__main__":
    asyncio.run(main())
