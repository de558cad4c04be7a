import json

import pytest

from models.task import Task
from services import InMemoryTaskStore, JsonTaskStore, StoreError
from tests.conftest import make_task


async def test_json_store_persists_between_instances(tmp_path, march_anchor, monthly_template):
    path = tmp_path / "tasks.json"
    store = JsonTaskStore(path, backup_dir=tmp_path / "backups")
    await store.batch_upsert([monthly_template, march_anchor])

    reopened = JsonTaskStore(path, backup_dir=tmp_path / "backups")
    tasks = reopened.snapshot()

    assert [t.id for t in tasks] == ["a1", "t1"]
    assert tasks[1].to_dict() == monthly_template.to_dict()
    assert json.loads(path.read_text(encoding="utf-8"))["t1"]["repeat"] == "monthly"


async def test_json_store_delete(tmp_path, march_anchor):
    store = JsonTaskStore(tmp_path / "tasks.json")
    await store.upsert(march_anchor)
    await store.delete("a1")
    await store.delete("a1")

    assert JsonTaskStore(tmp_path / "tasks.json").snapshot() == []


def test_corrupted_file_is_backed_up(tmp_path):
    path = tmp_path / "tasks.json"
    path.write_text("{not json", encoding="utf-8")
    backups = tmp_path / "backups"

    store = JsonTaskStore(path, backup_dir=backups)

    assert store.snapshot() == []
    assert not path.exists()
    [backup] = list(backups.glob("corrupted_backup_*.json"))
    assert backup.read_text(encoding="utf-8") == "{not json"


def test_list_format_is_accepted(tmp_path):
    path = tmp_path / "tasks.json"
    path.write_text(json.dumps([
        {"id": "a1", "taskName": "Trade show", "draftDue": "2026-03-20", "repeat": "fortnightly"},
        {"taskName": "no id"},
    ]), encoding="utf-8")

    [task] = JsonTaskStore(path).snapshot()

    assert task.id == "a1"
    assert task.repeat.value == "none"


async def test_write_failure_raises_store_error(tmp_path, march_anchor):
    store = JsonTaskStore(tmp_path / "tasks.json")
    (tmp_path / "tasks.json.tmp").mkdir()

    with pytest.raises(StoreError):
        await store.upsert(march_anchor)


async def test_subscribers_get_snapshots_until_unsubscribed(march_anchor):
    store = InMemoryTaskStore()
    received = []

    unsubscribe = store.subscribe(received.append)
    assert received == [[]]

    await store.upsert(march_anchor)
    assert [t.id for t in received[-1]] == ["a1"]

    unsubscribe()
    unsubscribe()
    await store.delete("a1")
    assert len(received) == 2
    assert store.subscriber_count == 0


async def test_failing_subscriber_does_not_break_writes(march_anchor):
    store = InMemoryTaskStore()

    def broken(tasks):
        if tasks:
            raise RuntimeError("boom")

    store.subscribe(broken)
    await store.upsert(march_anchor)
    assert [t.id for t in store.snapshot()] == ["a1"]


def test_snapshot_is_sorted_and_isolated():
    store = InMemoryTaskStore([
        make_task("b", sort_order=2),
        make_task("a", sort_order=1),
    ])

    first = store.snapshot()
    first[0].task_name = "changed"

    assert [t.id for t in first] == ["a", "b"]
    assert store.snapshot()[0].task_name == "a"
    assert all(isinstance(t, Task) for t in first)
