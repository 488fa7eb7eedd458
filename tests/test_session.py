import asyncio
from datetime import date

import pytest

from daylog.core.categories import DIET, get_category
from daylog.core.form_state import EDITING, IDLE, SAVING
from daylog.core.reconciler import UPSERT, SaveReconciler
from daylog.core.session import FormSession
from daylog.core.sync_store import EntrySyncStore, MonthWindow
from daylog.store.keys import entry_document

DIET_DOC = entry_document("alice", "dietLogs", "2024-02-03")


async def _session(store, owner_id="alice"):
    window = MonthWindow(EntrySyncStore(store), DIET, date(2024, 2, 1))
    await window.set_owner(owner_id)
    if owner_id:
        await window.index.wait_for_version(1)
    return FormSession(SaveReconciler(store), window), window


@pytest.mark.asyncio
async def test_open_seeds_from_the_live_index(store):
    await SaveReconciler(store).save("alice", get_category(DIET), "2024-02-03", {"calories": "1900"})
    session, window = await _session(store)

    assert session.open("2024-02-03")
    assert session.state == EDITING
    assert session.values() == {"calories": "1900"}

    assert session.open("2024-02-04")
    assert session.values() == {"calories": ""}
    window.close()


@pytest.mark.asyncio
async def test_open_requires_a_date_and_an_owner(store):
    session, _ = await _session(store, owner_id=None)

    assert not session.open("2024-02-03")
    assert not session.open(None)
    assert session.state == IDLE


@pytest.mark.asyncio
async def test_open_refuses_dates_outside_the_window_month(store):
    march_doc = entry_document("alice", "dietLogs", "2024-03-05")
    await SaveReconciler(store).save("alice", get_category(DIET), "2024-03-05", {"calories": "1900"})
    session, window = await _session(store)

    assert not session.open("2024-03-05")
    assert session.state == IDLE
    assert await session.save() is None
    assert store.docs[march_doc]["values"] == {"calories": 1900}

    await window.next_month()
    await window.index.wait_for_version(1)
    assert session.open("2024-03-05")
    assert session.values() == {"calories": "1900"}
    window.close()


@pytest.mark.asyncio
async def test_successful_save_resets_to_idle(store):
    session, window = await _session(store)
    session.open("2024-02-03")
    assert session.set_value("calories", "2100")

    outcome = await session.save()

    assert outcome.operation == UPSERT
    assert store.docs[DIET_DOC]["values"] == {"calories": 2100}
    assert session.state == IDLE
    assert session.date_key is None
    assert session.values() == {"calories": ""}
    window.close()


@pytest.mark.asyncio
async def test_save_is_single_flight(store):
    session, window = await _session(store)
    session.open("2024-02-03")
    session.set_value("calories", "2100")
    store.write_gate = asyncio.Event()

    first = asyncio.ensure_future(session.save())
    await asyncio.sleep(0)

    assert session.state == SAVING
    assert await session.save() is None
    assert not session.open("2024-02-04")
    assert not session.close()
    assert not session.set_value("calories", "5")

    store.write_gate.set()
    outcome = await first

    assert outcome.operation == UPSERT
    assert store.writes == 1
    window.close()


@pytest.mark.asyncio
async def test_failed_save_keeps_form_open_with_error(store):
    session, window = await _session(store)
    session.open("2024-02-03")
    session.set_value("calories", "2100")
    store.fail_writes = PermissionError("permission denied")

    assert await session.save() is None

    assert session.state == EDITING
    assert session.error == "Could not save your entry. permission denied"
    assert session.values() == {"calories": "2100"}

    store.fail_writes = None
    outcome = await session.save()
    assert outcome is not None
    assert session.error is None
    assert store.docs[DIET_DOC]["values"] == {"calories": 2100}
    window.close()


@pytest.mark.asyncio
async def test_save_without_open_form_is_ignored(store):
    session, window = await _session(store)

    assert await session.save() is None
    assert store.writes == 0
    assert session.close()
    window.close()
