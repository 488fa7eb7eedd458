from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

from daylog.core.calendar_grid import format_month_key, parse_date_key
from daylog.core.categories import CategoryConfig
from daylog.core.fields import is_meaningful, stored_value
from daylog.store.base import SERVER_TIMESTAMP, DocumentStore
from daylog.store.keys import entry_document

logger = logging.getLogger(__name__)

UPSERT = "upsert"
DELETE = "delete"


class SaveFailure(Exception):
    """A write or delete was rejected by the store."""


@dataclass(frozen=True)
class SaveOutcome:
    operation: str
    date_key: str
    path: str
    values: Dict[str, Any] = field(default_factory=dict)


def build_values_payload(config: CategoryConfig, form_values: Mapping[str, Any]) -> Dict[str, Any]:
    payload: Dict[str, Any] = {}
    for definition in config.fields:
        value = stored_value(definition, form_values.get(definition.key))
        if value is not None:
            payload[definition.key] = value
    return payload


def has_meaningful_data(config: CategoryConfig, form_values: Mapping[str, Any]) -> bool:
    return any(is_meaningful(definition, form_values.get(definition.key)) for definition in config.fields)


class SaveReconciler:
    """Turns form values into an upsert or a delete of the day's document."""

    def __init__(self, store: DocumentStore):
        self._store = store

    async def save(
        self,
        owner_id: str,
        config: CategoryConfig,
        date_key: str,
        form_values: Mapping[str, Any],
    ) -> SaveOutcome:
        day = parse_date_key(date_key)
        path = entry_document(owner_id, config.collection, date_key)
        values = build_values_payload(config, form_values)
        operation = UPSERT if has_meaningful_data(config, form_values) else DELETE
        logger.info("Saving %s entry %s (%s): %s", config.collection, date_key, operation, values)
        try:
            if operation == UPSERT:
                await self._store.upsert_merge(
                    path,
                    {
                        "values": values,
                        "month": format_month_key(day),
                        "date": date_key,
                        "category": config.key,
                        "updatedAt": SERVER_TIMESTAMP,
                    },
                )
            else:
                await self._store.delete(path)
        except Exception as exc:
            logger.error("Failed to save %s entry %s: %s", config.collection, date_key, exc)
            raise SaveFailure(str(exc) or exc.__class__.__name__) from exc
        if operation == DELETE:
            values = {}
        return SaveOutcome(operation=operation, date_key=date_key, path=path, values=values)
