from __future__ import annotations

import asyncio
import logging
from typing import Any

from openai import AsyncOpenAI, OpenAIError
from pydantic import ValidationError

from app.core.config import Settings, settings as default_settings
from app.models.quiz import Quiz
from app.services.llm.openai_client import build_openai_client, request_quiz_json

logger = logging.getLogger(__name__)

MIN_TRANSCRIPT_CHARS = 50


class GenerationError(Exception):
    pass


def parse_quiz(payload: Any) -> Quiz:
    """
    Validate a model response against the quiz schema:
    exactly 10 questions, 4 string options each, correctAnswer in 0..3.
    """
    try:
        return Quiz.model_validate(payload)
    except ValidationError as e:
        logger.warning("Quiz payload rejected: %s", e.errors(include_input=False)[:3])
        raise GenerationError("Invalid quiz structure returned by the quiz generator") from e


async def generate_quiz(
    transcript_text: str,
    *,
    settings: Settings | None = None,
    client: AsyncOpenAI | None = None,
) -> Quiz:
    s = settings or default_settings
    text = (transcript_text or "").strip()
    if len(text) < MIN_TRANSCRIPT_CHARS:
        raise GenerationError("Transcript is too short or empty to generate a meaningful quiz")

    try:
        client = client or build_openai_client(s)
    except ValueError as e:
        raise GenerationError(str(e)) from e

    attempts = max(1, s.openai_attempts)
    last_err: Exception | None = None

    # The SDK already retries transport errors; this loop also covers bad JSON / bad shape.
    for i in range(attempts):
        try:
            payload = await request_quiz_json(client, s.openai_model, text)
            quiz = parse_quiz(payload)
            logger.info("Generated quiz with %d questions (attempt %d)", len(quiz.questions), i + 1)
            return quiz
        except (GenerationError, ValueError, OpenAIError) as e:
            last_err = e
            logger.warning("Quiz generation attempt %d/%d failed: %s", i + 1, attempts, e)
            if i < attempts - 1:
                await asyncio.sleep(1.5 * (2**i))

    if isinstance(last_err, GenerationError):
        raise last_err
    raise GenerationError(f"Failed to generate quiz: {last_err}")
