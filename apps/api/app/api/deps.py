from __future__ import annotations

from fastapi import Request

from app.core.config import Settings
from app.services.rate_limit import StatusRateLimiter
from app.services.task_store import TaskStore
from app.worker.quiz_tasks import ExtractFn, QuizOrchestrator


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_task_store(request: Request) -> TaskStore:
    return request.app.state.task_store


def get_rate_limiter(request: Request) -> StatusRateLimiter:
    return request.app.state.rate_limiter


def get_orchestrator(request: Request) -> QuizOrchestrator:
    return request.app.state.orchestrator


def get_extractor(request: Request) -> ExtractFn:
    return request.app.state.orchestrator.extract
