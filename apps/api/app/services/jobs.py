from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any

from app.services.rate_limit import StatusRateLimiter
from app.services.task_store import TaskStore


class TaskNotFound(Exception):
    pass


def read_job_status(
    store: TaskStore,
    limiter: StatusRateLimiter,
    task_id: str,
    *,
    limit_active: int,
    limit_terminal: int,
    now: float | None = None,
) -> dict[str, Any]:
    """
    Status read used by the polling endpoint.

    - unknown / evicted id -> TaskNotFound (checked before rate limiting)
    - over the per-task ceiling -> RateLimited (from the limiter)
    - otherwise stamps last_polled and returns the task snapshot
    """
    task = store.get(task_id)
    if task is None:
        raise TaskNotFound(task_id)

    now = time.time() if now is None else now
    limit = limit_terminal if task.is_terminal else limit_active
    limiter.hit(task_id, limit, now=now)

    task.last_polled = datetime.fromtimestamp(now, tz=timezone.utc)
    return task.snapshot()
