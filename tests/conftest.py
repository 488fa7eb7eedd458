import asyncio
import copy
import os

os.environ.setdefault("BACKEND_SESSION_SECRET", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./daylog-test.db")
os.environ.setdefault("DAYLOG_TIMEZONE", "UTC")

import pytest

from daylog.store.base import DocumentStore
from daylog.store.keys import split_path


class MemoryStore(DocumentStore):
    """In-process store with switches for injecting failures and stalls."""

    def __init__(self):
        super().__init__()
        self.docs = {}
        self.writes = 0
        self.deletes = 0
        self.fail_reads = None
        self.fail_writes = None
        self.write_gate = None
        self.read_delay = 0

    async def _load_document(self, path):
        if self.fail_reads is not None:
            raise self.fail_reads
        data = self.docs.get(path)
        return copy.deepcopy(data) if data is not None else None

    async def _load_collection(self, collection):
        if self.read_delay:
            await asyncio.sleep(self.read_delay)
        if self.fail_reads is not None:
            raise self.fail_reads
        return [
            (path, copy.deepcopy(data))
            for path, data in self.docs.items()
            if split_path(path)[0] == collection
        ]

    async def _merge_document(self, path, payload):
        if self.write_gate is not None:
            await self.write_gate.wait()
        if self.fail_writes is not None:
            raise self.fail_writes
        merged = dict(self.docs.get(path) or {})
        merged.update(copy.deepcopy(payload))
        self.docs[path] = merged
        self.writes += 1

    async def _remove_document(self, path):
        if self.write_gate is not None:
            await self.write_gate.wait()
        if self.fail_writes is not None:
            raise self.fail_writes
        self.deletes += 1
        return self.docs.pop(path, None) is not None


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def stamps(monkeypatch):
    """Deterministic, strictly increasing server timestamps."""
    counter = {"n": 0}

    def _next():
        counter["n"] += 1
        return f"2024-02-03T00:00:{counter['n']:02d}+00:00"

    monkeypatch.setattr("daylog.store.base.server_now", _next)
    return counter
