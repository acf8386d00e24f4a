# apps/api/app/worker/quiz_tasks.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from app.core.config import Settings
from app.models.quiz import Quiz
from app.models.task import Task, TaskStatus
from app.services.quizzes import GenerationError
from app.services.transcript import ExtractionError, compress_transcript

logger = logging.getLogger(__name__)

ExtractFn = Callable[[str], Awaitable[str]]
GenerateFn = Callable[[str], Awaitable[Quiz]]

UNKNOWN_ERROR = "Unknown error occurred"


class StageTimeout(Exception):
    pass


async def _with_timeout(stage: str, coro: Awaitable[Any], timeout_sec: float) -> Any:
    if not timeout_sec or timeout_sec <= 0:
        return await coro
    # a TimeoutError raised by the collaborator itself keeps its own message
    runner = asyncio.ensure_future(coro)
    try:
        done, _ = await asyncio.wait({runner}, timeout=timeout_sec)
    except asyncio.CancelledError:
        runner.cancel()
        await asyncio.gather(runner, return_exceptions=True)
        raise
    if runner not in done:
        runner.cancel()
        await asyncio.gather(runner, return_exceptions=True)
        raise StageTimeout(f"{stage} timed out after {timeout_sec:g}s")
    return runner.result()


async def _set_stage(task: Task, status: TaskStatus) -> None:
    async with task.lock:
        task.advance(status)
    logger.info("Task %s: %s (%d%%)", task.id, status.value, task.progress)


async def run_quiz_pipeline(
    task: Task,
    video_url: str,
    *,
    extract: ExtractFn,
    generate: GenerateFn,
    settings: Settings,
) -> None:
    """
    pending -> extracting -> processing -> generating -> completed, or -> failed
    from any running stage. Never raises: every outcome lands on the task.
    """
    try:
        await _set_stage(task, TaskStatus.EXTRACTING)
        transcript = await _with_timeout(
            "Transcript extraction", extract(video_url), settings.extraction_timeout_sec
        )

        await _set_stage(task, TaskStatus.PROCESSING)
        prepared = compress_transcript(transcript, max_chars=settings.transcript_max_chars)
        if settings.processing_delay_sec > 0:
            await asyncio.sleep(settings.processing_delay_sec)

        await _set_stage(task, TaskStatus.GENERATING)
        quiz = await _with_timeout("Quiz generation", generate(prepared), settings.generation_timeout_sec)

        async with task.lock:
            task.complete(quiz.to_payload())
        logger.info("Task %s: completed successfully", task.id)

    except (ExtractionError, GenerationError, StageTimeout) as e:
        logger.warning("Task %s failed during %s: %s", task.id, task.status.value, e)
        await _fail(task, str(e) or UNKNOWN_ERROR)
    except asyncio.CancelledError:
        await _fail(task, "Quiz generation was cancelled")
        raise
    except Exception as e:
        logger.exception("Task %s crashed during %s", task.id, task.status.value)
        await _fail(task, str(e) or UNKNOWN_ERROR)


async def _fail(task: Task, message: str) -> None:
    async with task.lock:
        # pending tasks never ran a stage; the sweep reclaims them
        if task.is_terminal or task.status == TaskStatus.PENDING:
            return
        task.fail(message)


class QuizOrchestrator:
    """
    Starts detached pipelines. The caller only gets the task id back; progress
    and outcome are read from the Task itself.
    """

    def __init__(self, settings: Settings, *, extract: ExtractFn, generate: GenerateFn) -> None:
        self.settings = settings
        self.extract = extract
        self.generate = generate
        # strong refs so running pipelines are not garbage-collected
        self._running: set[asyncio.Task[None]] = set()

    def start(self, task: Task, video_url: str) -> asyncio.Task[None]:
        task.claim()
        runner = asyncio.create_task(
            run_quiz_pipeline(
                task,
                video_url,
                extract=self.extract,
                generate=self.generate,
                settings=self.settings,
            ),
            name=f"quiz-task-{task.id}",
        )
        self._running.add(runner)
        runner.add_done_callback(self._running.discard)
        return runner

    @property
    def running(self) -> int:
        return len(self._running)

    async def join(self) -> None:
        while self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)
