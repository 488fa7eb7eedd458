from __future__ import annotations

from sqlalchemy import text as sql_text
from sqlalchemy.ext.asyncio import AsyncEngine

from daylog.db import get_engine


DOCUMENTS_TABLE = "documents"


async def init_db(engine: AsyncEngine | None = None):
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.execute(
            sql_text(
                f"""
                CREATE TABLE IF NOT EXISTS {DOCUMENTS_TABLE} (
                    path TEXT PRIMARY KEY,
                    collection TEXT NOT NULL,
                    doc_id TEXT NOT NULL,
                    data_json TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
        )

    async def ensure_index(index_sql: str) -> None:
        try:
            async with engine.begin() as conn:
                await conn.execute(sql_text(index_sql))
        except Exception:
            return

    await ensure_index(
        f"CREATE INDEX IF NOT EXISTS idx_{DOCUMENTS_TABLE}_collection "
        f"ON {DOCUMENTS_TABLE} (collection, doc_id)"
    )
