from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect

from daylog import repositories
from daylog.auth import check_owner, require_owner_id
from daylog.core.calendar_grid import (
    WEEKDAY_LABELS,
    build_calendar_days,
    format_month_key,
    month_label,
    parse_date_key,
    parse_month_key,
)
from daylog.core.categories import CATEGORIES, CategoryConfig, UnknownCategoryError, get_category
from daylog.core.fields import NumericField
from daylog.core.form_state import FormStateController
from daylog.core.reconciler import SaveFailure, SaveReconciler
from daylog.core.sync_store import EntrySyncStore
from daylog.schemas import CategoryResponse, DayFormResponse, EntrySavePayload, MonthResponse, SaveResponse
from daylog.settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter()


def _category_or_404(category: str) -> CategoryConfig:
    try:
        return get_category(category)
    except UnknownCategoryError:
        raise HTTPException(status_code=404, detail="Unknown category")


def _month_or_400(month: str):
    try:
        return parse_month_key(month)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid month format")


def _date_or_400(day: str):
    try:
        return parse_date_key(day)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date format")


def _month_payload(config: CategoryConfig, anchor, entries) -> dict:
    days = build_calendar_days(anchor, entries, get_settings().today())
    payload_days = []
    for day in days:
        item = day.as_dict()
        entry = entries.get(day.date_key) if day.date_key else None
        item["day_value"] = config.format_day_value(entry.values) if entry else ""
        payload_days.append(item)
    return {
        "category": config.key,
        "month": format_month_key(anchor),
        "label": month_label(anchor),
        "weekdays": WEEKDAY_LABELS,
        "days": payload_days,
        "entries": [
            {"date": key, "summary": config.format_summary(entries[key].values)}
            for key in sorted(entries)
        ],
    }


@router.get("/v1/categories", response_model=list[CategoryResponse])
async def list_categories():
    items = []
    for config in CATEGORIES.values():
        items.append(
            {
                "key": config.key,
                "collection": config.collection,
                "title": config.title,
                "instructions": config.instructions,
                "fields": FormStateController(config).widgets(),
            }
        )
    return items


@router.get("/v1/logs/{category}/months/{month}", response_model=MonthResponse)
async def get_month(category: str, month: str, owner_id: str = Depends(require_owner_id)):
    config = _category_or_404(category)
    anchor = _month_or_400(month)
    entries = await repositories.read_month(owner_id, config, month)
    return _month_payload(config, anchor, entries)


@router.get("/v1/logs/{category}/days/{day}", response_model=DayFormResponse)
async def get_day_form(category: str, day: str, owner_id: str = Depends(require_owner_id)):
    config = _category_or_404(category)
    parsed = _date_or_400(day)
    entries = await repositories.read_month(owner_id, config, format_month_key(parsed))
    entry = entries.get(day)
    form = FormStateController(config, entry.values if entry else None)
    return {
        "category": config.key,
        "date": day,
        "has_entry": entry is not None,
        "fields": form.widgets(),
        "updated_at": entry.updated_at if entry else None,
    }


@router.put("/v1/logs/{category}/days/{day}", response_model=SaveResponse)
async def save_day(
    category: str,
    day: str,
    payload: EntrySavePayload,
    owner_id: str = Depends(require_owner_id),
):
    config = _category_or_404(category)
    _date_or_400(day)
    form = FormStateController(config)
    for key, value in payload.values.items():
        try:
            definition = config.field(key)
        except KeyError:
            raise HTTPException(status_code=422, detail=f"Unknown field: {key}")
        if isinstance(definition, NumericField) and isinstance(value, int) and not isinstance(value, bool):
            value = str(value) if value >= 0 else value
        if not form.set_value(key, value):
            raise HTTPException(status_code=422, detail=f"Invalid value for {key}")
    try:
        outcome = await SaveReconciler(repositories.get_store()).save(
            owner_id, config, day, form.current_values()
        )
    except SaveFailure as exc:
        raise HTTPException(status_code=502, detail=f"Could not save your entry. {exc}")
    return {"ok": True, "operation": outcome.operation, "date": outcome.date_key, "values": outcome.values}


@router.websocket("/v1/logs/{category}/months/{month}/live")
async def live_month(websocket: WebSocket, category: str, month: str):
    try:
        owner_id = check_owner(websocket.query_params.get("owner"), websocket.query_params.get("token"))
        config = get_category(category)
        anchor = parse_month_key(month)
    except (HTTPException, UnknownCategoryError, ValueError) as exc:
        logger.info("Rejected live month socket: %s", exc)
        await websocket.close(code=1008)
        return

    await websocket.accept()
    live, cancel = await EntrySyncStore(repositories.get_store()).subscribe(owner_id, config.key, month)

    async def _watch_disconnect():
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            logger.debug("Live month socket closed by client for %s/%s", config.key, month)
        finally:
            cancel()

    watcher = asyncio.ensure_future(_watch_disconnect())
    seen = 0
    try:
        while True:
            seen = await live.wait_for_version(seen + 1)
            if live.closed:
                break
            await websocket.send_json(_month_payload(config, anchor, live.entries))
    except WebSocketDisconnect:
        logger.debug("Live month socket dropped while sending for %s/%s", config.key, month)
    finally:
        cancel()
        watcher.cancel()
