from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any, Callable, Dict, List, Mapping

from daylog.core.calendar_grid import format_date_key
from daylog.core.categories import CATEGORIES
from daylog.core.feedback import INITIAL_FEEDBACK, FeedbackResult, Goal, build_feedback, parse_goal
from daylog.store.base import DocumentSnapshot, DocumentStore, Subscription, SubscriptionFailure
from daylog.store.keys import entry_document, owner_document

logger = logging.getLogger(__name__)


def goal_from_snapshot(snapshot: DocumentSnapshot) -> Goal:
    preferences = snapshot.get("preferences") or {}
    return parse_goal(preferences.get("primaryGoal") if isinstance(preferences, Mapping) else None)


def cancel_all(handles: List[Callable[[], None]]) -> int:
    """Invoke every cancel handle; failures are logged and counted, never raised."""
    failures = 0
    for handle in handles:
        try:
            handle()
        except Exception:
            failures += 1
            logger.exception("Failed to unsubscribe from feedback listener")
    return failures


async def fetch_feedback(store: DocumentStore, owner_id: str, day: date) -> Dict[str, FeedbackResult]:
    date_key = format_date_key(day)
    owner_snapshot, *entry_snapshots = await asyncio.gather(
        store.get(owner_document(owner_id)),
        *(store.get(entry_document(owner_id, config.collection, date_key)) for config in CATEGORIES.values()),
    )
    entries = {}
    for config, snapshot in zip(CATEGORIES.values(), entry_snapshots):
        values = snapshot.get("values")
        entries[config.key] = dict(values) if values else None
    return build_feedback(goal_from_snapshot(owner_snapshot), entries)


class FeedbackSource:
    """Keeps goal and previous-day values per category live for one owner."""

    def __init__(self, store: DocumentStore, owner_id: str | None, day: date):
        self._store = store
        self.owner_id = owner_id
        self.date_key = format_date_key(day)
        self.goal = Goal.GENERAL
        self.values: Dict[str, Mapping[str, Any] | None] = {key: None for key in CATEGORIES}
        self._handles: List[Callable[[], None]] = []
        self._tasks: List[asyncio.Task] = []
        self._version = 0
        self._changed = asyncio.Condition()

    @property
    def version(self) -> int:
        return self._version

    async def start(self) -> None:
        if not self.owner_id:
            return
        goal_sub = await self._store.subscribe_to_document(owner_document(self.owner_id))
        self._watch(goal_sub, "goal", self._apply_goal)
        subscriptions = await asyncio.gather(
            *(
                self._store.subscribe_to_document(entry_document(self.owner_id, config.collection, self.date_key))
                for config in CATEGORIES.values()
            )
        )
        for config, subscription in zip(CATEGORIES.values(), subscriptions):
            self._watch(subscription, config.collection, self._values_applier(config.key))

    def _values_applier(self, category: str):
        def _apply(snapshot: DocumentSnapshot) -> None:
            values = snapshot.get("values")
            self.values[category] = dict(values) if values else None

        return _apply

    def _apply_goal(self, snapshot: DocumentSnapshot) -> None:
        self.goal = goal_from_snapshot(snapshot)

    def _watch(self, subscription: Subscription, label: str, apply) -> None:
        self._handles.append(subscription.cancel)

        async def _consume():
            try:
                async for snapshot in subscription:
                    apply(snapshot)
                    async with self._changed:
                        self._version += 1
                        self._changed.notify_all()
            except SubscriptionFailure as exc:
                logger.error("Failed to load %s snapshot: %s", label, exc)

        self._tasks.append(asyncio.ensure_future(_consume()))

    async def wait_for_version(self, version: int) -> int:
        async with self._changed:
            await self._changed.wait_for(lambda: self._version >= version)
            return self._version

    def feedback(self) -> Dict[str, FeedbackResult]:
        if not self.owner_id:
            return dict(INITIAL_FEEDBACK)
        return build_feedback(self.goal, self.values)

    def close(self) -> int:
        handles, self._handles = self._handles, []
        return cancel_all(handles)
