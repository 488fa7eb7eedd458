"""Live month-scoped entry synchronization.

Each subscription owns one consumer task that drains store snapshots and swaps
in a freshly built EntryIndex per snapshot. Nothing is patched in place.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Tuple

from daylog.auth import Identity
from daylog.core.calendar_grid import (
    CalendarDay,
    build_calendar_days,
    format_month_key,
    parse_month_key,
    shift_month,
)
from daylog.core.categories import CategoryConfig, get_category
from daylog.store.base import DocumentSnapshot, DocumentStore, QuerySnapshot, SubscriptionFailure
from daylog.store.keys import entry_collection

logger = logging.getLogger(__name__)

EMPTY_INDEX: Mapping[str, "Entry"] = MappingProxyType({})


@dataclass(frozen=True)
class Entry:
    date_key: str
    month: str
    category: str
    values: Mapping[str, Any]
    updated_at: str | None = None

    @classmethod
    def from_snapshot(cls, snapshot: DocumentSnapshot, category: str) -> "Entry":
        values = snapshot.get("values") or {}
        return cls(
            date_key=snapshot.id,
            month=str(snapshot.get("month") or ""),
            category=str(snapshot.get("category") or category),
            values=MappingProxyType(dict(values)),
            updated_at=snapshot.get("updatedAt"),
        )


def index_from_snapshot(snapshot: QuerySnapshot, category: str, month: str) -> Mapping[str, Entry]:
    entries: Dict[str, Entry] = {}
    for document in snapshot:
        entry = Entry.from_snapshot(document, category)
        if entry.month != month:
            continue
        entries[entry.date_key] = entry
    return MappingProxyType(entries)


class LiveEntryIndex:
    """The current EntryIndex for one (owner, category, month)."""

    def __init__(self, owner_id: str | None, category: str, month: str):
        self.owner_id = owner_id
        self.category = category
        self.month = month
        self._entries: Mapping[str, Entry] = EMPTY_INDEX
        self._version = 0
        self._closed = False
        self._changed = asyncio.Condition()

    @property
    def entries(self) -> Mapping[str, Entry]:
        return self._entries

    @property
    def version(self) -> int:
        return self._version

    @property
    def closed(self) -> bool:
        return self._closed

    def get(self, date_key: str) -> Entry | None:
        return self._entries.get(date_key)

    def __contains__(self, date_key) -> bool:
        return date_key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    async def _replace(self, entries: Mapping[str, Entry]) -> None:
        if self._closed:
            return
        async with self._changed:
            self._entries = entries
            self._version += 1
            self._changed.notify_all()

    async def _close(self) -> None:
        async with self._changed:
            self._closed = True
            self._changed.notify_all()

    async def wait_for_version(self, version: int) -> int:
        """Wait until at least ``version`` snapshots were applied or the index closed."""
        async with self._changed:
            await self._changed.wait_for(lambda: self._version >= version or self._closed)
            return self._version


def _noop_cancel() -> None:
    return None


class EntrySyncStore:
    def __init__(self, store: DocumentStore):
        self._store = store
        self._consumers: set = set()

    async def subscribe(
        self, owner_id: str | None, category: str, month: str
    ) -> Tuple[LiveEntryIndex, Callable[[], None]]:
        """Open a live EntryIndex; returns it with an idempotent cancel handle."""
        config = get_category(category)
        parse_month_key(month)
        live = LiveEntryIndex(owner_id, config.key, month)
        if not owner_id:
            return live, _noop_cancel

        subscription = await self._store.subscribe_to_query(
            entry_collection(owner_id, config.collection), "month", month
        )

        async def _consume():
            try:
                async for snapshot in subscription:
                    await live._replace(index_from_snapshot(snapshot, config.key, month))
            except SubscriptionFailure as exc:
                logger.warning(
                    "Entry subscription failed for %s/%s; keeping last snapshot: %s",
                    config.collection,
                    month,
                    exc,
                )
            finally:
                await live._close()

        consumer = asyncio.ensure_future(_consume())
        self._consumers.add(consumer)
        consumer.add_done_callback(self._consumers.discard)

        def cancel() -> None:
            if live._closed and subscription.closed:
                return
            live._closed = True
            # Closing the channel ends the consumer loop.
            subscription.cancel()

        return live, cancel


class MonthWindow:
    """Owner- and month-scoped view over one category's entries.

    Switching owner or month tears down the previous subscription before the
    new index becomes visible, so entries never leak across owners.
    """

    def __init__(self, sync_store: EntrySyncStore, category: str, anchor: date):
        self.config: CategoryConfig = get_category(category)
        self._sync_store = sync_store
        self._anchor = anchor.replace(day=1)
        self._owner_id: str | None = None
        self._live = LiveEntryIndex(None, self.config.key, format_month_key(self._anchor))
        self._cancel: Callable[[], None] = _noop_cancel
        self._generation = 0

    @property
    def owner_id(self) -> str | None:
        return self._owner_id

    @property
    def anchor(self) -> date:
        return self._anchor

    @property
    def month(self) -> str:
        return format_month_key(self._anchor)

    @property
    def index(self) -> LiveEntryIndex:
        return self._live

    def _teardown(self) -> None:
        cancel, self._cancel = self._cancel, _noop_cancel
        try:
            cancel()
        except Exception:
            logger.exception("Failed to cancel %s subscription", self.config.collection)

    async def _resubscribe(self) -> None:
        self._generation += 1
        generation = self._generation
        self._teardown()
        self._live = LiveEntryIndex(self._owner_id, self.config.key, self.month)
        live, cancel = await self._sync_store.subscribe(self._owner_id, self.config.key, self.month)
        if generation != self._generation:
            # A later switch started while this subscription was opening.
            cancel()
            return
        self._live, self._cancel = live, cancel

    async def set_owner(self, owner_id: str | None) -> None:
        if owner_id == self._owner_id and not self._live.closed:
            return
        self._owner_id = owner_id
        await self._resubscribe()

    async def set_identity(self, identity: Identity) -> None:
        await self.set_owner(identity.owner_id if identity.signed_in else None)

    async def set_month(self, anchor: date) -> None:
        anchor = anchor.replace(day=1)
        if anchor == self._anchor and not self._live.closed:
            return
        self._anchor = anchor
        await self._resubscribe()

    async def previous_month(self) -> None:
        await self.set_month(shift_month(self._anchor, -1))

    async def next_month(self) -> None:
        await self.set_month(shift_month(self._anchor, 1))

    def calendar(self, today: date) -> List[CalendarDay]:
        return build_calendar_days(self._anchor, self._live.entries, today)

    def summary(self) -> List[Dict[str, Any]]:
        entries = self._live.entries
        return [
            {
                "date": date_key,
                "summary": self.config.format_summary(entries[date_key].values),
                "day_value": self.config.format_day_value(entries[date_key].values),
            }
            for date_key in sorted(entries)
        ]

    def close(self) -> None:
        self._teardown()
