from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple

from sqlalchemy import text as sql_text
from sqlalchemy.ext.asyncio import async_sessionmaker

from daylog.db import get_sessionmaker
from daylog.db_init import DOCUMENTS_TABLE
from daylog.store.base import DocumentStore
from daylog.store.keys import split_path

logger = logging.getLogger(__name__)


def _decode(raw) -> Dict[str, Any]:
    try:
        payload = json.loads(raw or "{}")
    except (TypeError, ValueError):
        logger.warning("Discarding undecodable document payload.")
        payload = {}
    if not isinstance(payload, dict):
        payload = {}
    return payload


class SqlDocumentStore(DocumentStore):
    """Documents stored as JSON rows, one row per path."""

    def __init__(self, session_factory: async_sessionmaker | None = None):
        super().__init__()
        self._session_factory = session_factory

    def _sessions(self) -> async_sessionmaker:
        if self._session_factory is None:
            self._session_factory = get_sessionmaker()
        return self._session_factory

    async def _load_document(self, path: str) -> Dict[str, Any] | None:
        async with self._sessions()() as session:
            row = (await session.execute(
                sql_text(f"SELECT data_json FROM {DOCUMENTS_TABLE} WHERE path = :path"),
                {"path": path},
            )).fetchone()
        return _decode(row[0]) if row else None

    async def _load_collection(self, collection: str) -> List[Tuple[str, Dict[str, Any]]]:
        async with self._sessions()() as session:
            rows = (await session.execute(
                sql_text(
                    f"""
                    SELECT path, data_json
                    FROM {DOCUMENTS_TABLE}
                    WHERE collection = :collection
                    ORDER BY doc_id
                    """
                ),
                {"collection": collection},
            )).mappings().all()
        return [(row["path"], _decode(row["data_json"])) for row in rows]

    async def _merge_document(self, path: str, payload: Dict[str, Any]) -> None:
        collection, doc_id = split_path(path)
        now_iso = datetime.now(timezone.utc).isoformat()
        async with self._sessions()() as session:
            row = (await session.execute(
                sql_text(f"SELECT data_json FROM {DOCUMENTS_TABLE} WHERE path = :path"),
                {"path": path},
            )).fetchone()
            merged = _decode(row[0]) if row else {}
            merged.update(payload)
            await session.execute(
                sql_text(
                    f"""
                    INSERT INTO {DOCUMENTS_TABLE} (path, collection, doc_id, data_json, created_at, updated_at)
                    VALUES (:path, :collection, :doc_id, :data_json, :created_at, :updated_at)
                    ON CONFLICT(path) DO UPDATE SET
                        data_json=EXCLUDED.data_json,
                        updated_at=EXCLUDED.updated_at
                    """
                ),
                {
                    "path": path,
                    "collection": collection,
                    "doc_id": doc_id,
                    "data_json": json.dumps(merged, ensure_ascii=False),
                    "created_at": now_iso,
                    "updated_at": now_iso,
                },
            )
            await session.commit()

    async def _remove_document(self, path: str) -> bool:
        async with self._sessions()() as session:
            result = await session.execute(
                sql_text(f"DELETE FROM {DOCUMENTS_TABLE} WHERE path = :path"),
                {"path": path},
            )
            await session.commit()
        return bool(result.rowcount)
