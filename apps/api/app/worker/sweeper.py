from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timedelta, timezone

from app.services.rate_limit import StatusRateLimiter
from app.services.task_store import TaskStore

logger = logging.getLogger(__name__)


def sweep_once(
    store: TaskStore,
    limiter: StatusRateLimiter,
    *,
    retention_sec: float,
    now: float | None = None,
) -> tuple[int, int]:
    """Evict tasks older than retention (any status) and lapsed rate-limit windows."""
    now = time.time() if now is None else now
    tasks_removed = store.sweep(
        timedelta(seconds=retention_sec),
        now=datetime.fromtimestamp(now, tz=timezone.utc),
    )
    windows_removed = limiter.sweep(now=now)
    return tasks_removed, windows_removed


async def run_sweeper(
    store: TaskStore,
    limiter: StatusRateLimiter,
    *,
    interval_sec: float,
    retention_sec: float,
) -> None:
    logger.info("Task sweeper started (every %gs, retention %gs)", interval_sec, retention_sec)
    while True:
        await asyncio.sleep(interval_sec)
        try:
            tasks_removed, windows_removed = sweep_once(store, limiter, retention_sec=retention_sec)
        except Exception:
            logger.exception("Task sweep failed")
            continue
        if tasks_removed or windows_removed:
            logger.info(
                "Swept %d expired task(s) and %d rate-limit window(s); %d task(s) remain",
                tasks_removed,
                windows_removed,
                store.count(),
            )
