from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Literal

import httpx
from pydantic import BaseModel, ConfigDict, Field

from app.models.quiz import Quiz
from app.services.quizzes import GenerationError, parse_quiz
from app.services.youtube import clean_youtube_url

logger = logging.getLogger(__name__)

TERMINAL = {"completed", "failed"}

STATUS_TEXT = {
    "pending": "Initializing...",
    "extracting": "Extracting video subtitles...",
    "processing": "Processing transcript...",
    "generating": "Generating quiz questions...",
    "completed": "Quiz ready!",
    "failed": "Failed to generate quiz",
}


class SubmissionError(Exception):
    pass


class StatusCheckError(Exception):
    pass


class TaskNotFoundResponse(Exception):
    pass


class RateLimitedResponse(Exception):
    def __init__(self, retry_after: int | None) -> None:
        super().__init__(f"rate limited (retry after {retry_after}s)")
        self.retry_after = retry_after


class PollerBusy(RuntimeError):
    pass


class TaskStatusPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    task_id: str = Field(alias="taskId")
    status: str
    progress: int = 0
    result: dict[str, Any] | None = None
    error: str | None = None

    @property
    def status_text(self) -> str:
        return STATUS_TEXT.get(self.status, "Processing...")


class QuizClient:
    """Thin async client for the quiz API."""

    def __init__(self, base_url: str = "http://localhost:3000", *, client: httpx.AsyncClient | None = None) -> None:
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=httpx.Timeout(30.0, connect=10.0))

    async def __aenter__(self) -> "QuizClient":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def submit(self, video_url: str) -> str:
        r = await self._client.post("/quiz/generate", json={"videoUrl": clean_youtube_url(video_url)})
        if r.status_code != 200:
            body = _json_or_empty(r)
            raise SubmissionError(body.get("details") or body.get("error") or "Failed to start quiz generation")
        return r.json()["taskId"]

    async def get_status(self, task_id: str) -> TaskStatusPayload:
        r = await self._client.get(f"/quiz/status/{task_id}")
        if r.status_code == 429:
            retry_after = _json_or_empty(r).get("retryAfter")
            raise RateLimitedResponse(retry_after if isinstance(retry_after, int) else None)
        if r.status_code == 404:
            raise TaskNotFoundResponse(task_id)
        if r.status_code != 200:
            raise StatusCheckError(f"Failed to check status (HTTP {r.status_code})")
        return TaskStatusPayload.model_validate(r.json())

    async def extract_transcript(self, video_url: str) -> str:
        r = await self._client.post("/transcript/extract", json={"videoUrl": video_url})
        if r.status_code != 200:
            body = _json_or_empty(r)
            raise SubmissionError(body.get("details") or body.get("error") or f"HTTP {r.status_code}")
        return r.json()["transcript"]


def _json_or_empty(r: httpx.Response) -> dict[str, Any]:
    try:
        data = r.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


@dataclass(frozen=True)
class PollerSettings:
    initial_delay_sec: float = 15.0
    interval_sec: float = 5.0
    error_retry_sec: float = 5.0
    rate_limit_backoff_sec: float = 15.0
    max_polls: int = 120


PollState = Literal["completed", "failed", "not_found", "stalled", "disconnected"]

OUTCOME_MESSAGES: dict[str, str] = {
    "not_found": "Quiz task not found. It may have expired; please try again.",
    "stalled": "Quiz generation is taking longer than expected. Please try again.",
    "disconnected": "Lost connection to server. Please try again.",
}


@dataclass
class PollOutcome:
    state: PollState
    polls: int
    quiz: Quiz | None = None
    error: str | None = None


ProgressCallback = Callable[[TaskStatusPayload], None]
SleepFn = Callable[[float], Awaitable[None]]


class StatusPoller:
    """
    Drives status checks for a task until a terminal outcome.

    One sequential loop per task: every check schedules exactly one successor,
    and a second poll of the same task on this poller is refused.
    """

    def __init__(
        self,
        client: QuizClient,
        settings: PollerSettings | None = None,
        *,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.client = client
        self.settings = settings or PollerSettings()
        self._sleep = sleep
        self._active: set[str] = set()

    async def poll(self, task_id: str, on_update: ProgressCallback | None = None) -> PollOutcome:
        if task_id in self._active:
            raise PollerBusy(f"already polling task {task_id}")
        self._active.add(task_id)
        try:
            return await self._poll(task_id, on_update)
        finally:
            self._active.discard(task_id)

    async def _poll(self, task_id: str, on_update: ProgressCallback | None) -> PollOutcome:
        s = self.settings
        polls = 0

        # first stage rarely finishes sooner, skip the guaranteed-wasted poll
        await self._sleep(s.initial_delay_sec)

        while True:
            polls += 1
            if polls > s.max_polls:
                return PollOutcome("stalled", polls - 1, error=OUTCOME_MESSAGES["stalled"])

            try:
                payload = await self.client.get_status(task_id)
            except RateLimitedResponse as e:
                logger.info("Rate limited polling %s (retry after %s), backing off", task_id, e.retry_after)
                await self._sleep(s.rate_limit_backoff_sec)
                continue
            except TaskNotFoundResponse:
                return PollOutcome("not_found", polls, error=OUTCOME_MESSAGES["not_found"])
            except (httpx.HTTPError, StatusCheckError, ValueError) as e:
                logger.warning("Status check %d for %s failed: %s", polls, task_id, e)
                if polls < s.max_polls:
                    await self._sleep(s.error_retry_sec)
                    continue
                return PollOutcome("disconnected", polls, error=OUTCOME_MESSAGES["disconnected"])

            if on_update is not None:
                on_update(payload)

            if payload.status == "completed":
                try:
                    quiz = parse_quiz(payload.result)
                except GenerationError as e:
                    return PollOutcome("failed", polls, error=str(e))
                return PollOutcome("completed", polls, quiz=quiz)

            if payload.status == "failed":
                return PollOutcome("failed", polls, error=payload.error or "Quiz generation failed. Please try again.")

            await self._sleep(s.interval_sec)
