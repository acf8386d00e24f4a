import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from app.api.deps import get_orchestrator, get_rate_limiter, get_settings, get_task_store
from app.core.config import Settings
from app.services.jobs import TaskNotFound, read_job_status
from app.services.rate_limit import RateLimited, StatusRateLimiter
from app.services.task_store import TaskStore
from app.worker.quiz_tasks import QuizOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quiz", tags=["quiz"])


class QuizGenerateRequest(BaseModel):
    video_url: str | None = Field(default=None, alias="videoUrl")


class QuizGenerateResponse(BaseModel):
    taskId: str
    status: str
    message: str


@router.post("/generate", response_model=QuizGenerateResponse)
async def generate_quiz(
    req: QuizGenerateRequest,
    store: TaskStore = Depends(get_task_store),
    orchestrator: QuizOrchestrator = Depends(get_orchestrator),
):
    url = (req.video_url or "").strip()
    if not url:
        return JSONResponse(status_code=400, content={"error": "Video URL is required"})

    task = None
    try:
        task = store.create()
        orchestrator.start(task, url)
    except Exception as e:
        # a task that never started would sit in pending until the sweep
        if task is not None:
            store.discard(task.id)
        logger.exception("Failed to start quiz generation for %s", url)
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to start quiz generation", "details": str(e) or "Unknown error"},
        )

    logger.info("Task %s: created for %s", task.id, url)
    return QuizGenerateResponse(
        taskId=task.id,
        status=task.status.value,
        message="Quiz generation started. Use the task ID to check progress.",
    )


@router.get("/status/{task_id}")
async def get_quiz_status(
    task_id: str,
    settings: Settings = Depends(get_settings),
    store: TaskStore = Depends(get_task_store),
    limiter: StatusRateLimiter = Depends(get_rate_limiter),
):
    try:
        return read_job_status(
            store,
            limiter,
            task_id,
            limit_active=settings.status_limit_active,
            limit_terminal=settings.status_limit_terminal,
        )
    except TaskNotFound:
        return JSONResponse(status_code=404, content={"error": "Task not found"})
    except RateLimited as e:
        return JSONResponse(
            status_code=429,
            content={
                "error": "Too many status requests. Please wait before checking again.",
                "retryAfter": e.retry_after,
            },
            headers={"Retry-After": str(e.retry_after)},
        )
