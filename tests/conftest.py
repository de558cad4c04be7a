from datetime import date

import pytest

from models.enums import RepeatCadence
from models.task import Task
from services import InMemoryBlobStore, InMemoryTaskStore, NotificationCenter, TaskService

FIXED_NOW = "2026-03-05T09:00:00+00:00"


def make_task(task_id, name=None, draft=None, final=None, repeat=RepeatCadence.NONE, **kwargs) -> Task:
    return Task(
        id=task_id,
        task_name=name or task_id,
        draft_due=date.fromisoformat(draft) if draft else None,
        final_due=date.fromisoformat(final) if final else None,
        repeat=repeat,
        created_at=FIXED_NOW,
        updated_at=FIXED_NOW,
        **kwargs
    )


@pytest.fixture
def blob_store():
    return InMemoryBlobStore()


@pytest.fixture
def notifications():
    return NotificationCenter()


@pytest.fixture
def make_service(blob_store, notifications):
    """Factory: TaskService over an in-memory store seeded with `tasks`"""
    services = []

    def factory(tasks=(), store=None):
        store = store or InMemoryTaskStore(tasks)
        service = TaskService(store, blob_store, notifications, clock=lambda: FIXED_NOW)
        service.start()
        services.append(service)
        return service

    yield factory

    for service in services:
        service.close()


@pytest.fixture
def monthly_template():
    return make_task("t1", "Newsletter", draft="2026-01-10", repeat=RepeatCadence.MONTHLY, sort_order=3)


@pytest.fixture
def march_anchor():
    return make_task("a1", "Trade show prep", draft="2026-03-20", sort_order=1)
