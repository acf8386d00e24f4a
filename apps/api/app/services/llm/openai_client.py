from __future__ import annotations

import json
import re
from typing import Any

from openai import AsyncOpenAI

from app.core.config import Settings
from app.models.quiz import OPTIONS_PER_QUESTION, QUIZ_QUESTION_COUNT
from app.services.llm.prompts import QUIZ_SYSTEM, QUIZ_USER_TEMPLATE

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def build_openai_client(settings: Settings) -> AsyncOpenAI:
    if not settings.openai_api_key:
        raise ValueError("OPENAI_API_KEY is missing")

    return AsyncOpenAI(
        api_key=settings.openai_api_key,
        timeout=settings.openai_timeout_sec,
        max_retries=settings.openai_max_retries,
    )


def extract_json(text: str) -> Any:
    """
    Best-effort JSON extraction if model returns extra text or a ```json fence.
    """
    text = _FENCE_RE.sub("", (text or "").strip()).strip()
    if not text:
        raise ValueError("Empty response from OpenAI")

    # Fast path
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    # Try to find outermost JSON object
    start = text.find("{")
    end = text.rfind("}")
    if start >= 0 and end > start:
        return json.loads(text[start : end + 1])

    raise ValueError(f"OpenAI returned non-JSON. First 200 chars: {text[:200]!r}")


async def request_quiz_json(client: AsyncOpenAI, model: str, transcript: str) -> Any:
    user_prompt = QUIZ_USER_TEMPLATE.format(
        transcript=transcript,
        question_count=QUIZ_QUESTION_COUNT,
        option_count=OPTIONS_PER_QUESTION,
    )

    chat = await client.chat.completions.create(
        model=model,
        messages=[
            {"role": "system", "content": QUIZ_SYSTEM},
            {"role": "user", "content": user_prompt},
        ],
        response_format={"type": "json_object"},
        temperature=0.3,
    )
    raw_text = (chat.choices[0].message.content or "").strip()
    return extract_json(raw_text)
