import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from app.api.deps import get_extractor
from app.services.transcript import ExtractionError
from app.services.youtube import is_youtube_url
from app.worker.quiz_tasks import ExtractFn

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/transcript", tags=["transcript"])


class TranscriptExtractRequest(BaseModel):
    video_url: str | None = Field(default=None, alias="videoUrl")


class TranscriptExtractResponse(BaseModel):
    transcript: str


@router.post("/extract", response_model=TranscriptExtractResponse)
async def extract(req: TranscriptExtractRequest, extract_transcript: ExtractFn = Depends(get_extractor)):
    url = (req.video_url or "").strip()
    if not url:
        return JSONResponse(status_code=400, content={"error": "Video URL is required"})
    if not is_youtube_url(url):
        return JSONResponse(status_code=400, content={"error": "Invalid YouTube URL"})

    try:
        text = await extract_transcript(url)
    except ExtractionError as e:
        logger.warning("Transcript extraction failed for %s: %s", url, e)
        return JSONResponse(status_code=500, content={"error": "Failed to extract transcript", "details": str(e)})

    return TranscriptExtractResponse(transcript=text)
