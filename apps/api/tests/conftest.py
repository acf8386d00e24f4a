import httpx
import pytest

from app.core.config import Settings
from app.main import create_app
from app.models.quiz import Quiz

TRANSCRIPT = (
    "Photosynthesis is the process plants use to turn light into chemical energy. "
    "Chlorophyll in the leaves absorbs mostly red and blue light. "
    "Water and carbon dioxide go in, glucose and oxygen come out."
)


def build_quiz_payload(questions: int = 10, options: int = 4, answer=0) -> dict:
    return {
        "questions": [
            {
                "question": f"Question number {i + 1}?",
                "options": [f"Option {chr(65 + j)} for {i + 1}" for j in range(options)],
                "correctAnswer": answer,
            }
            for i in range(questions)
        ]
    }


@pytest.fixture
def make_quiz_payload():
    return build_quiz_payload


@pytest.fixture
def transcript_text() -> str:
    return TRANSCRIPT


@pytest.fixture
def settings() -> Settings:
    return Settings(
        openai_api_key="test-key",
        processing_delay_sec=0,
        extraction_timeout_sec=5,
        generation_timeout_sec=5,
    )


@pytest.fixture
def quiz_payload() -> dict:
    return build_quiz_payload()


@pytest.fixture
def fake_extract():
    calls: list[str] = []

    async def _extract(video_url: str) -> str:
        calls.append(video_url)
        return TRANSCRIPT

    _extract.calls = calls
    return _extract


@pytest.fixture
def fake_generate(quiz_payload):
    async def _generate(transcript: str) -> Quiz:
        return Quiz.model_validate(quiz_payload)

    return _generate


@pytest.fixture
def api(settings, fake_extract, fake_generate):
    return create_app(settings, extract=fake_extract, generate=fake_generate)


@pytest.fixture
async def async_client(api):
    transport = httpx.ASGITransport(app=api)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
