import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app import __version__
from app.api.quiz import router as quiz_router
from app.api.transcript import router as transcript_router
from app.core.config import Settings, settings as default_settings, validate_settings
from app.core.logging import setup_logging
from app.models.quiz import Quiz
from app.services.llm.openai_client import build_openai_client
from app.services.quizzes import generate_quiz
from app.services.rate_limit import StatusRateLimiter
from app.services.task_store import InMemoryTaskStore, TaskStore
from app.services.transcript import extract_transcript
from app.worker.quiz_tasks import ExtractFn, GenerateFn, QuizOrchestrator
from app.worker.sweeper import run_sweeper

logger = logging.getLogger(__name__)

VERSION = __version__


class HealthResponse(BaseModel):
    ok: bool
    service: str
    version: str
    tasks: int


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    s: Settings = app.state.settings
    setup_logging(s)
    # Refuse to start without the quiz-generation key.
    validate_settings(s)

    app.state.openai_client = build_openai_client(s)
    sweeper = asyncio.create_task(
        run_sweeper(
            app.state.task_store,
            app.state.rate_limiter,
            interval_sec=s.sweep_interval_sec,
            retention_sec=s.task_retention_sec,
        ),
        name="task-sweeper",
    )
    logger.info("Startup complete (env=%s, model=%s)", s.env, s.openai_model)

    try:
        yield
    finally:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
        if app.state.orchestrator.running:
            logger.info("Shutting down with %d quiz task(s) still running", app.state.orchestrator.running)
        await app.state.openai_client.close()


def create_app(
    settings: Settings | None = None,
    *,
    extract: ExtractFn | None = None,
    generate: GenerateFn | None = None,
    task_store: TaskStore | None = None,
    rate_limiter: StatusRateLimiter | None = None,
) -> FastAPI:
    s = settings or default_settings
    app = FastAPI(title="YouTube Quiz Generator API", version=VERSION, lifespan=lifespan)

    async def _generate_with_shared_client(transcript: str) -> Quiz:
        return await generate_quiz(transcript, settings=s, client=getattr(app.state, "openai_client", None))

    app.state.settings = s
    app.state.task_store = task_store or InMemoryTaskStore()
    app.state.rate_limiter = rate_limiter or StatusRateLimiter(window_sec=s.status_window_sec)
    app.state.orchestrator = QuizOrchestrator(
        s,
        extract=extract or extract_transcript,
        generate=generate or _generate_with_shared_client,
    )

    app.include_router(quiz_router)
    app.include_router(transcript_router)

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
            for err in exc.errors()
        ]
        return JSONResponse(status_code=400, content={"error": "Invalid request body", "details": details})

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(ok=True, service="api", version=app.version, tasks=app.state.task_store.count())

    return app


app = create_app()
