from __future__ import annotations

import math
import time
from dataclasses import dataclass


class RateLimited(Exception):
    def __init__(self, retry_after: int) -> None:
        super().__init__(f"Too many status requests, retry after {retry_after}s")
        self.retry_after = retry_after


@dataclass
class RateLimitWindow:
    count: int
    reset_at: float


class StatusRateLimiter:
    """
    Fixed-window counter per key (task id).

    A window opens on the first hit and lasts `window_sec`; it is replaced once
    `now` is past `reset_at`. The ceiling is passed per call because it depends
    on the task status at read time.
    """

    def __init__(self, window_sec: float = 60.0) -> None:
        self.window_sec = window_sec
        self._windows: dict[str, RateLimitWindow] = {}

    def hit(self, key: str, limit: int, now: float | None = None) -> RateLimitWindow:
        now = time.time() if now is None else now

        w = self._windows.get(key)
        if w is None or now > w.reset_at:
            w = RateLimitWindow(count=0, reset_at=now + self.window_sec)
            self._windows[key] = w

        w.count += 1
        if w.count > limit:
            raise RateLimited(retry_after=max(0, math.ceil(w.reset_at - now)))
        return w

    def sweep(self, now: float | None = None) -> int:
        now = time.time() if now is None else now
        expired = [k for k, w in self._windows.items() if now > w.reset_at]
        for k in expired:
            del self._windows[k]
        return len(expired)

    def __len__(self) -> int:
        return len(self._windows)
