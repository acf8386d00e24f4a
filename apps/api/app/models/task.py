from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TaskStatus(str, Enum):
    PENDING = "pending"
    EXTRACTING = "extracting"
    PROCESSING = "processing"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED})

# Progress reported when a stage is entered.
STAGE_PROGRESS: dict[TaskStatus, int] = {
    TaskStatus.PENDING: 0,
    TaskStatus.EXTRACTING: 20,
    TaskStatus.PROCESSING: 40,
    TaskStatus.GENERATING: 60,
    TaskStatus.COMPLETED: 100,
}

# Allowed edges of the pipeline state machine.
TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({TaskStatus.EXTRACTING}),
    TaskStatus.EXTRACTING: frozenset({TaskStatus.PROCESSING, TaskStatus.FAILED}),
    TaskStatus.PROCESSING: frozenset({TaskStatus.GENERATING, TaskStatus.FAILED}),
    TaskStatus.GENERATING: frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED}),
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.FAILED: frozenset(),
}


class InvalidTransition(Exception):
    pass


class TaskAlreadyStarted(Exception):
    pass


@dataclass
class Task:
    """
    One quiz-generation job.

    Fields are written only through advance/complete/fail, which enforce the
    state machine. Exactly one pipeline may claim a task (see claim()).
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: TaskStatus = TaskStatus.PENDING
    progress: int = 0
    result: dict[str, Any] | None = None
    error: str | None = None
    created_at: datetime = field(default_factory=_now)
    last_polled: datetime | None = None

    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)
    _claimed: bool = field(default=False, repr=False, compare=False)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def claim(self) -> None:
        if self._claimed or self.status != TaskStatus.PENDING:
            raise TaskAlreadyStarted(f"Task {self.id} is already owned by a pipeline (status={self.status.value})")
        self._claimed = True

    def _check_edge(self, target: TaskStatus) -> None:
        if target not in TRANSITIONS[self.status]:
            raise InvalidTransition(f"Task {self.id}: {self.status.value} -> {target.value} is not allowed")

    def advance(self, status: TaskStatus) -> None:
        if status.is_terminal:
            raise InvalidTransition("use complete() or fail() to finish a task")
        self._check_edge(status)
        self.status = status
        self.progress = max(self.progress, STAGE_PROGRESS[status])

    def complete(self, result: dict[str, Any]) -> None:
        self._check_edge(TaskStatus.COMPLETED)
        self.status = TaskStatus.COMPLETED
        self.progress = STAGE_PROGRESS[TaskStatus.COMPLETED]
        self.result = result
        self.error = None

    def fail(self, error: str) -> None:
        # progress is frozen at the value reached before the failure
        self._check_edge(TaskStatus.FAILED)
        self.status = TaskStatus.FAILED
        self.error = error
        self.result = None

    def snapshot(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "taskId": self.id,
            "status": self.status.value,
            "progress": self.progress,
        }
        if self.status == TaskStatus.COMPLETED and self.result is not None:
            out["result"] = self.result
        if self.status == TaskStatus.FAILED and self.error:
            out["error"] = self.error
        return out
