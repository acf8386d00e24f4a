from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

from app.models.task import Task


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TaskStore(ABC):
    """
    Registry of quiz tasks keyed by task id.

    Backends only own lookup + expiry; the Task objects they hand out are
    mutated in place by the pipeline that claimed them.
    """

    @abstractmethod
    def create(self) -> Task: ...

    @abstractmethod
    def get(self, task_id: str) -> Task | None: ...

    @abstractmethod
    def discard(self, task_id: str) -> None: ...

    @abstractmethod
    def sweep(self, retention: timedelta, now: datetime | None = None) -> int: ...

    @abstractmethod
    def count(self) -> int: ...


class InMemoryTaskStore(TaskStore):
    """Process-local store. Only touched from the event loop, so no locking."""

    def __init__(self) -> None:
        self._tasks: dict[str, Task] = {}

    def create(self) -> Task:
        task = Task()
        while task.id in self._tasks:
            task = Task()
        self._tasks[task.id] = task
        return task

    def get(self, task_id: str) -> Task | None:
        return self._tasks.get(task_id)

    def discard(self, task_id: str) -> None:
        self._tasks.pop(task_id, None)

    def sweep(self, retention: timedelta, now: datetime | None = None) -> int:
        cutoff = (now or _now()) - retention
        expired = [tid for tid, t in self._tasks.items() if t.created_at < cutoff]
        for tid in expired:
            del self._tasks[tid]
        return len(expired)

    def count(self) -> int:
        return len(self._tasks)

    def __len__(self) -> int:
        return len(self._tasks)
