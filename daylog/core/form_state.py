from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping

from daylog.core.categories import CategoryConfig
from daylog.core.fields import (
    FieldValue,
    accepts_input,
    coerce_stored,
    default_values,
    widget_descriptor,
)

logger = logging.getLogger(__name__)

IDLE = "idle"
EDITING = "editing"
SAVING = "saving"


class FormStateController:
    """Editable values for one entry of a category."""

    def __init__(self, config: CategoryConfig, seed: Mapping[str, Any] | None = None):
        self.config = config
        self._values: Dict[str, FieldValue] = {}
        self.reset(seed)

    def reset(self, seed: Mapping[str, Any] | None = None) -> None:
        """Restore every field to its default, then load stored values from ``seed``."""
        values = default_values(self.config.fields)
        for definition in self.config.fields:
            stored = (seed or {}).get(definition.key)
            if stored is not None:
                values[definition.key] = coerce_stored(definition, stored)
        self._values = values

    def set_value(self, key: str, value) -> bool:
        definition = self.config.field(key)
        if not accepts_input(definition, value):
            logger.debug("Rejected input %r for %s.%s", value, self.config.key, key)
            return False
        self._values[key] = value
        return True

    def current_values(self) -> Dict[str, FieldValue]:
        return dict(self._values)

    def widgets(self) -> List[Dict[str, Any]]:
        return [widget_descriptor(definition, self._values[definition.key]) for definition in self.config.fields]
