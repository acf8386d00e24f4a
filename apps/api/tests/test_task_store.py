from datetime import datetime, timedelta, timezone

from app.models.task import TaskStatus
from app.services.task_store import InMemoryTaskStore


def test_create_and_get():
    store = InMemoryTaskStore()
    t = store.create()

    assert store.get(t.id) is t
    assert t.status == TaskStatus.PENDING
    assert store.count() == 1


def test_get_unknown_returns_none():
    assert InMemoryTaskStore().get("does-not-exist") is None


def test_sweep_removes_only_expired_regardless_of_status():
    store = InMemoryTaskStore()
    now = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    old_running = store.create()
    old_running.advance(TaskStatus.EXTRACTING)
    old_running.created_at = now - timedelta(hours=2)

    old_done = store.create()
    old_done.advance(TaskStatus.EXTRACTING)
    old_done.fail("boom")
    old_done.created_at = now - timedelta(minutes=61)

    fresh = store.create()
    fresh.created_at = now - timedelta(minutes=59)

    removed = store.sweep(timedelta(hours=1), now=now)

    assert removed == 2
    assert store.get(old_running.id) is None
    assert store.get(old_done.id) is None
    assert store.get(fresh.id) is fresh
    assert len(store) == 1


def test_discard_removes_task():
    store = InMemoryTaskStore()
    t = store.create()

    store.discard(t.id)
    store.discard("never-issued")
    assert store.get(t.id) is None
    assert store.count() == 0
