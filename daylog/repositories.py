from __future__ import annotations

from typing import Mapping

from daylog.core.categories import CategoryConfig
from daylog.core.feedback import Goal
from daylog.core.feedback_source import goal_from_snapshot
from daylog.core.sync_store import Entry, index_from_snapshot
from daylog.store.base import DocumentStore
from daylog.store.keys import entry_collection, owner_document
from daylog.store.sql_store import SqlDocumentStore

_store: DocumentStore | None = None


def get_store() -> DocumentStore:
    global _store
    if _store is None:
        _store = SqlDocumentStore()
    return _store


def set_store(store: DocumentStore | None) -> None:
    global _store
    _store = store


async def get_goal(owner_id: str) -> Goal:
    snapshot = await get_store().get(owner_document(owner_id))
    return goal_from_snapshot(snapshot)


async def set_goal(owner_id: str, goal: Goal) -> None:
    # Top-level merge: the whole preferences map is rewritten.
    await get_store().upsert_merge(owner_document(owner_id), {"preferences": {"primaryGoal": goal.value}})


async def read_month(owner_id: str, config: CategoryConfig, month: str) -> Mapping[str, Entry]:
    snapshot = await get_store().query(entry_collection(owner_id, config.collection), "month", month)
    return index_from_snapshot(snapshot, config.key, month)
