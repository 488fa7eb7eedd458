import pytest

from daylog.core.categories import DIET, EXERCISE, SLEEP, WATER, get_category
from daylog.core.reconciler import (
    DELETE,
    UPSERT,
    SaveFailure,
    SaveReconciler,
    build_values_payload,
    has_meaningful_data,
)
from daylog.store.keys import entry_document

DIET_DOC = entry_document("alice", "dietLogs", "2024-02-03")


@pytest.mark.asyncio
async def test_meaningful_numeric_upserts_parsed_number(store, stamps):
    outcome = await SaveReconciler(store).save("alice", get_category(DIET), "2024-02-03", {"calories": "5"})

    assert outcome.operation == UPSERT
    assert outcome.path == "owners/alice/dietLogs/2024-02-03"
    assert store.docs[DIET_DOC] == {
        "values": {"calories": 5},
        "month": "2024-02",
        "date": "2024-02-03",
        "category": "diet",
        "updatedAt": "2024-02-03T00:00:01+00:00",
    }


@pytest.mark.asyncio
async def test_saving_twice_only_advances_updated_at(store, stamps):
    reconciler = SaveReconciler(store)
    values = {"workoutCompleted": True, "cardioMinutes": "30"}
    path = entry_document("alice", "exerciseLogs", "2024-02-03")

    await reconciler.save("alice", get_category(EXERCISE), "2024-02-03", values)
    first = dict(store.docs[path])
    await reconciler.save("alice", get_category(EXERCISE), "2024-02-03", values)
    second = dict(store.docs[path])

    assert first["values"] == second["values"] == {"workoutCompleted": True, "cardioMinutes": 30}
    assert first["updatedAt"] != second["updatedAt"]
    assert {k: v for k, v in first.items() if k != "updatedAt"} == {
        k: v for k, v in second.items() if k != "updatedAt"
    }


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", ["0", "", "   "])
async def test_zero_or_empty_numeric_deletes_existing_document(store, raw):
    reconciler = SaveReconciler(store)
    await reconciler.save("alice", get_category(DIET), "2024-02-03", {"calories": "1800"})
    assert DIET_DOC in store.docs

    outcome = await reconciler.save("alice", get_category(DIET), "2024-02-03", {"calories": raw})

    assert outcome.operation == DELETE
    assert outcome.values == {}
    assert DIET_DOC not in store.docs


@pytest.mark.asyncio
async def test_delete_without_document_is_a_no_op(store):
    outcome = await SaveReconciler(store).save("alice", get_category(SLEEP), "2024-02-03", {"hours": 0})

    assert outcome.operation == DELETE
    assert store.docs == {}


@pytest.mark.asyncio
async def test_boolean_alone_is_meaningful(store):
    outcome = await SaveReconciler(store).save(
        "alice", get_category(EXERCISE), "2024-02-03", {"workoutCompleted": True, "cardioMinutes": ""}
    )

    assert outcome.operation == UPSERT
    stored = store.docs[entry_document("alice", "exerciseLogs", "2024-02-03")]
    assert stored["values"] == {"workoutCompleted": True}


@pytest.mark.asyncio
async def test_values_are_replaced_not_merged(store):
    reconciler = SaveReconciler(store)
    path = entry_document("alice", "exerciseLogs", "2024-02-03")
    await reconciler.save("alice", get_category(EXERCISE), "2024-02-03", {"workoutCompleted": True, "cardioMinutes": "20"})

    await reconciler.save("alice", get_category(EXERCISE), "2024-02-03", {"workoutCompleted": True, "cardioMinutes": ""})

    assert store.docs[path]["values"] == {"workoutCompleted": True}


def test_choice_payload_and_meaningfulness():
    water = get_category(WATER)

    assert build_values_payload(water, {"glasses": 0}) == {"glasses": 0}
    assert not has_meaningful_data(water, {"glasses": 0})
    assert has_meaningful_data(water, {"glasses": 3})
    assert build_values_payload(water, {}) == {"glasses": 0}


@pytest.mark.asyncio
async def test_store_errors_become_save_failures(store):
    store.fail_writes = PermissionError("permission denied")

    with pytest.raises(SaveFailure, match="permission denied"):
        await SaveReconciler(store).save("alice", get_category(DIET), "2024-02-03", {"calories": "2000"})


@pytest.mark.asyncio
async def test_invalid_date_key_is_rejected(store):
    with pytest.raises(ValueError):
        await SaveReconciler(store).save("alice", get_category(DIET), "2024-2-3", {"calories": "2000"})
