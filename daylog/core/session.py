from __future__ import annotations

import logging
from typing import Any, Dict

from daylog.core.calendar_grid import format_month_key, parse_date_key
from daylog.core.form_state import EDITING, IDLE, SAVING, FormStateController
from daylog.core.reconciler import SaveFailure, SaveOutcome, SaveReconciler
from daylog.core.sync_store import MonthWindow

logger = logging.getLogger(__name__)


class FormSession:
    """Edit-and-save flow for one category's day cells.

    idle -> editing(date) -> saving -> idle on success, or back to editing
    with ``error`` set and the form values kept on failure.
    """

    def __init__(self, reconciler: SaveReconciler, window: MonthWindow):
        self.config = window.config
        self.form = FormStateController(self.config)
        self.state = IDLE
        self.date_key: str | None = None
        self.error: str | None = None
        self._reconciler = reconciler
        self._window = window
        self._owner_id: str | None = None

    def open(self, date_key: str | None) -> bool:
        if not date_key or self.state == SAVING or not self._window.owner_id:
            return False
        if format_month_key(parse_date_key(date_key)) != self._window.month:
            # Seeding needs the live index for that date.
            return False
        entry = self._window.index.get(date_key)
        self._owner_id = self._window.owner_id
        self.form.reset(entry.values if entry else None)
        self.date_key = date_key
        self.error = None
        self.state = EDITING
        return True

    def set_value(self, key: str, value) -> bool:
        if self.state != EDITING:
            return False
        return self.form.set_value(key, value)

    def values(self) -> Dict[str, Any]:
        return self.form.current_values()

    async def save(self) -> SaveOutcome | None:
        if self.state != EDITING or self.date_key is None:
            # Saving already in flight, or nothing open.
            return None
        self.state = SAVING
        self.error = None
        try:
            outcome = await self._reconciler.save(
                self._owner_id,
                self.config,
                self.date_key,
                self.form.current_values(),
            )
        except SaveFailure as exc:
            logger.warning("Keeping %s form for %s open after failed save", self.config.key, self.date_key)
            self.error = f"Could not save your entry. {exc}"
            self.state = EDITING
            return None
        self._reset()
        return outcome

    def close(self) -> bool:
        if self.state == SAVING:
            return False
        self._reset()
        return True

    def _reset(self) -> None:
        self.state = IDLE
        self.date_key = None
        self._owner_id = None
        self.error = None
        self.form.reset()
