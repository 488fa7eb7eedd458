"""Document store contract shared by the sync and save layers.

Stores hold JSON documents addressed by slash-separated paths and push full
snapshots to live subscribers after every committed write. A subscription is a
channel: the store pushes immutable snapshots into it and a single consumer
iterates them. Closing it is idempotent and drops anything still queued.
"""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Tuple

from daylog.store.keys import split_path

logger = logging.getLogger(__name__)


class _ServerTimestamp:
    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


class StoreError(Exception):
    pass


class SubscriptionFailure(StoreError):
    """A live listener stopped delivering snapshots."""


def server_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def resolve_server_values(payload: Mapping[str, Any], timestamp: str) -> Dict[str, Any]:
    resolved = {}
    for key, value in payload.items():
        if value is SERVER_TIMESTAMP:
            resolved[key] = timestamp
        elif isinstance(value, Mapping):
            resolved[key] = resolve_server_values(value, timestamp)
        else:
            resolved[key] = value
    return resolved


def _freeze(value):
    if isinstance(value, Mapping):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, list):
        return tuple(_freeze(item) for item in value)
    return value


@dataclass(frozen=True)
class DocumentSnapshot:
    path: str
    data: Mapping[str, Any] | None = None

    def __post_init__(self):
        if self.data is not None:
            object.__setattr__(self, "data", _freeze(self.data))

    @property
    def id(self) -> str:
        return split_path(self.path)[1]

    @property
    def exists(self) -> bool:
        return self.data is not None

    def get(self, key, default=None):
        if self.data is None:
            return default
        return self.data.get(key, default)


@dataclass(frozen=True)
class QuerySnapshot:
    collection: str
    documents: Tuple[DocumentSnapshot, ...] = field(default_factory=tuple)

    def __iter__(self):
        return iter(self.documents)

    def __len__(self):
        return len(self.documents)


class _Failure:
    def __init__(self, exc: BaseException):
        self.exc = exc


_CLOSED = object()


class Subscription:
    def __init__(self, on_cancel: Callable[["Subscription"], None] | None = None):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._on_cancel = on_cancel

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, snapshot) -> None:
        if not self._closed:
            self._queue.put_nowait(snapshot)

    def fail(self, exc: BaseException) -> None:
        if not self._closed:
            self._queue.put_nowait(_Failure(exc))

    def cancel(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)
        if self._on_cancel is not None:
            self._on_cancel(self)

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self._closed:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED or self._closed:
            raise StopAsyncIteration
        if isinstance(item, _Failure):
            self.cancel()
            raise SubscriptionFailure(str(item.exc)) from item.exc
        return item


@dataclass
class _QueryListener:
    subscription: Subscription
    collection: str
    field_name: str
    value: Any


@dataclass
class _DocumentListener:
    subscription: Subscription
    path: str


class DocumentStore(ABC):
    """Base store: subclasses provide storage, this class provides live fan-out."""

    def __init__(self):
        self._query_listeners: List[_QueryListener] = []
        self._document_listeners: List[_DocumentListener] = []
        self._write_lock = asyncio.Lock()

    @abstractmethod
    async def _load_document(self, path: str) -> Dict[str, Any] | None:
        ...

    @abstractmethod
    async def _load_collection(self, collection: str) -> List[Tuple[str, Dict[str, Any]]]:
        ...

    @abstractmethod
    async def _merge_document(self, path: str, payload: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    async def _remove_document(self, path: str) -> bool:
        ...

    async def get(self, path: str) -> DocumentSnapshot:
        split_path(path)
        return DocumentSnapshot(path=path, data=await self._load_document(path))

    async def query(self, collection: str, field_name: str, value) -> QuerySnapshot:
        rows = await self._load_collection(collection)
        documents = tuple(
            DocumentSnapshot(path=path, data=data)
            for path, data in sorted(rows, key=lambda row: row[0])
            if data.get(field_name) == value
        )
        return QuerySnapshot(collection=collection, documents=documents)

    async def upsert_merge(self, path: str, payload: Mapping[str, Any]) -> None:
        """Create the document or overwrite only the supplied top-level fields."""
        split_path(path)
        async with self._write_lock:
            await self._merge_document(path, resolve_server_values(payload, server_now()))
            await self._notify(path)

    async def delete(self, path: str) -> None:
        split_path(path)
        async with self._write_lock:
            removed = await self._remove_document(path)
            if removed:
                await self._notify(path)

    async def subscribe_to_query(self, collection: str, field_name: str, value) -> Subscription:
        listener: _QueryListener | None = None

        def _detach(_sub):
            if listener in self._query_listeners:
                self._query_listeners.remove(listener)

        subscription = Subscription(on_cancel=_detach)
        listener = _QueryListener(subscription, collection, field_name, value)
        self._query_listeners.append(listener)
        await self._deliver_query(listener)
        return subscription

    async def subscribe_to_document(self, path: str) -> Subscription:
        split_path(path)
        listener: _DocumentListener | None = None

        def _detach(_sub):
            if listener in self._document_listeners:
                self._document_listeners.remove(listener)

        subscription = Subscription(on_cancel=_detach)
        listener = _DocumentListener(subscription, path)
        self._document_listeners.append(listener)
        await self._deliver_document(listener)
        return subscription

    async def _deliver_query(self, listener: _QueryListener) -> None:
        try:
            snapshot = await self.query(listener.collection, listener.field_name, listener.value)
        except Exception as exc:
            logger.warning("Query listener on %s failed: %s", listener.collection, exc)
            listener.subscription.fail(exc)
            return
        listener.subscription.push(snapshot)

    async def _deliver_document(self, listener: _DocumentListener) -> None:
        try:
            snapshot = await self.get(listener.path)
        except Exception as exc:
            logger.warning("Document listener on %s failed: %s", listener.path, exc)
            listener.subscription.fail(exc)
            return
        listener.subscription.push(snapshot)

    async def _notify(self, path: str) -> None:
        collection, _ = split_path(path)
        for listener in list(self._query_listeners):
            if listener.collection == collection and not listener.subscription.closed:
                await self._deliver_query(listener)
        for listener in list(self._document_listeners):
            if listener.path == path and not listener.subscription.closed:
                await self._deliver_document(listener)
