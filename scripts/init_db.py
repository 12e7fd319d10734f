"""Create the Dalali tables in the database named by DATABASE_URL (or --dsn)."""
import argparse
import asyncio
import os

import asyncpg

from dalali.settings import settings

SCHEMA = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'dalali', 'db', 'schema.sql'))


async def apply_schema(dsn: str, path: str) -> None:
    with open(path, 'r', encoding='utf-8') as f:
        sql = f.read()
    conn = await asyncpg.connect(dsn)
    try:
        await conn.execute(sql)
    finally:
        await conn.close()
    print(f"Applied {path}")


if __name__ == "__main__":
    ap = argparse.ArgumentParser()
    ap.add_argument('--dsn', default=settings.database_url, help='Postgres DSN (defaults to DATABASE_URL)')
    ap.add_argument('--schema', default=SCHEMA)
    args = ap.parse_args()
    if not args.dsn:
        ap.error("DATABASE_URL is not set; pass --dsn")
    asyncio.run(apply_schema(args.dsn, args.schema))
