import asyncio
import logging
from datetime import date

import pytest

from daylog.core.categories import DIET, WATER, get_category
from daylog.core.feedback import INITIAL_FEEDBACK, Tone
from daylog.core.feedback_source import FeedbackSource, cancel_all, fetch_feedback
from daylog.core.reconciler import SaveReconciler
from daylog.store.keys import owner_document

YESTERDAY = date(2024, 2, 3)


@pytest.mark.asyncio
async def test_signed_in_owner_gets_rule_feedback_before_snapshots(store):
    source = FeedbackSource(store, "alice", YESTERDAY)

    feedback = source.feedback()
    assert set(feedback) == set(INITIAL_FEEDBACK)
    assert all(result.tone == Tone.ENCOURAGE for result in feedback.values())
    assert feedback[WATER].message.startswith("No water logged yesterday")

    signed_out = FeedbackSource(store, None, YESTERDAY)
    await signed_out.start()
    assert signed_out.feedback() == INITIAL_FEEDBACK
    assert signed_out.close() == 0


@pytest.mark.asyncio
async def test_feedback_follows_goal_and_entries(store):
    await store.upsert_merge(owner_document("alice"), {"preferences": {"primaryGoal": "lose_weight"}})
    source = FeedbackSource(store, "alice", YESTERDAY)
    await source.start()
    await source.wait_for_version(5)

    assert source.feedback()[DIET].message.startswith("No calories logged yesterday")

    await SaveReconciler(store).save("alice", get_category(DIET), "2024-02-03", {"calories": "1600"})
    await source.wait_for_version(6)
    assert source.feedback()[DIET].tone == Tone.POSITIVE

    await store.upsert_merge(owner_document("alice"), {"preferences": {"primaryGoal": "build_muscle"}})
    await source.wait_for_version(7)
    assert "at least 2200 kcal" in source.feedback()[DIET].message

    assert source.close() == 0
    assert store._document_listeners == []


@pytest.mark.asyncio
async def test_other_days_do_not_feed_back(store):
    source = FeedbackSource(store, "alice", YESTERDAY)
    await source.start()
    await source.wait_for_version(5)

    await SaveReconciler(store).save("alice", get_category(WATER), "2024-02-04", {"glasses": 9})

    assert source.version == 5
    assert source.feedback()[WATER].tone == Tone.ENCOURAGE
    source.close()


@pytest.mark.asyncio
async def test_listener_failures_keep_last_goal_and_values(store, caplog):
    await store.upsert_merge(owner_document("alice"), {"preferences": {"primaryGoal": "lose_weight"}})
    await SaveReconciler(store).save("alice", get_category(DIET), "2024-02-03", {"calories": "1600"})
    source = FeedbackSource(store, "alice", YESTERDAY)
    await source.start()
    await source.wait_for_version(5)
    before = source.feedback()
    goal_task, _water_task, diet_task = source._tasks[:3]

    store.fail_reads = PermissionError("listener revoked")
    with caplog.at_level(logging.ERROR):
        await store.upsert_merge(owner_document("alice"), {"preferences": {"primaryGoal": "build_muscle"}})
        await SaveReconciler(store).save("alice", get_category(DIET), "2024-02-03", {"calories": "3000"})
        await asyncio.wait_for(asyncio.gather(goal_task, diet_task), timeout=1)

    assert source.goal.value == "lose_weight"
    assert source.values[DIET] == {"calories": 1600}
    assert source.feedback() == before
    assert before[DIET].tone == Tone.POSITIVE
    assert "Failed to load goal snapshot" in caplog.text
    assert "Failed to load dietLogs snapshot" in caplog.text
    assert source.close() == 0


def test_cancel_all_logs_and_counts_failures(caplog):
    calls = []

    def ok():
        calls.append("ok")

    def broken():
        raise RuntimeError("listener already gone")

    with caplog.at_level(logging.ERROR):
        failures = cancel_all([ok, broken, ok])

    assert failures == 1
    assert calls == ["ok", "ok"]
    assert "Failed to unsubscribe" in caplog.text


@pytest.mark.asyncio
async def test_fetch_feedback_reads_once(store):
    await store.upsert_merge(owner_document("alice"), {"preferences": {"primaryGoal": "hydrate_more"}})
    await SaveReconciler(store).save("alice", get_category(WATER), "2024-02-03", {"glasses": 10})

    results = await fetch_feedback(store, "alice", YESTERDAY)

    assert results[WATER].tone == Tone.POSITIVE
    assert store._document_listeners == []
