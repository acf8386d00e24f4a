import os
import sys
from dataclasses import replace
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from app.core.youtube_settings import YouTubeSettings
from app.main import create_app
from app.models.task import Task, TaskStatus
from app.services import transcript as transcript_mod
from app.services.transcript import (
    ExtractionError,
    clean_subtitle_lines,
    clean_subtitle_text,
    compress_transcript,
    extract_transcript,
)
from app.worker.quiz_tasks import run_quiz_pipeline

SRT = """1
00:00:01,000 --> 00:00:03,000
&gt;&gt; Welcome to the channel

2
00:00:03,000 --> 00:00:05,000
[Music]

3
00:00:05,000 --> 00:00:07,000
Welcome to the channel

4
00:00:07,000 --> 00:00:09,000
Today we talk about <b>cells</b>.
"""


def test_clean_srt_drops_markup_and_duplicates():
    text = clean_subtitle_text(SRT)
    assert text == "Welcome to the channel Today we talk about cells."


def test_clean_vtt_lines():
    cues = [
        "WEBVTT",
        "00:00:00.000 --> 00:00:02.000",
        "[Applause] Hello there",
        "Hello there",
        "general<c> kenobi</c>",
        "Stay   for\u200bthe end",
    ]
    assert clean_subtitle_lines(cues) == "Hello there Stay for the end"


def test_compress_short_transcript_untouched():
    assert compress_transcript("  a short   transcript ") == "a short transcript"


def test_compress_long_transcript_under_limit():
    sentences = [f"Sentence number {i} explains one more detail about the topic." for i in range(500)]
    text = " ".join(sentences)

    out = compress_transcript(text, max_chars=2000)
    assert 0 < len(out) <= 2000
    # spread over the whole video, not just the start
    assert "Sentence number 0 " in out
    assert any(f"Sentence number {n} " in out for n in range(450, 500))


@pytest.fixture
def no_fallback(monkeypatch):
    monkeypatch.setattr(transcript_mod, "youtube_settings", YouTubeSettings(enable_transcript_api_fallback=False))


async def test_extract_uses_ytdlp_first(monkeypatch, no_fallback):
    async def ytdlp(url):
        return "from yt-dlp"

    monkeypatch.setattr(transcript_mod, "_fetch_with_ytdlp_subs", ytdlp)
    assert await extract_transcript("https://youtu.be/dQw4w9WgXcQ") == "from yt-dlp"


async def test_extract_without_subtitles_fails(monkeypatch, no_fallback):
    async def ytdlp(url):
        raise ExtractionError("No subtitles available for this video")

    monkeypatch.setattr(transcript_mod, "_fetch_with_ytdlp_subs", ytdlp)
    with pytest.raises(ExtractionError, match="No subtitles available"):
        await extract_transcript("https://youtu.be/dQw4w9WgXcQ")


async def test_extract_falls_back_to_transcript_api(monkeypatch):
    monkeypatch.setattr(transcript_mod, "youtube_settings", YouTubeSettings(enable_transcript_api_fallback=True))

    async def ytdlp(url):
        raise ExtractionError("yt-dlp subs failed: HTTP Error 429")

    seen = []

    def transcript_api(video_id):
        seen.append(video_id)
        return "from transcript api"

    monkeypatch.setattr(transcript_mod, "_fetch_with_ytdlp_subs", ytdlp)
    monkeypatch.setattr(transcript_mod, "_fetch_with_transcript_api", transcript_api)

    assert await extract_transcript("https://www.youtube.com/watch?v=dQw4w9WgXcQ") == "from transcript api"
    assert seen == ["dQw4w9WgXcQ"]


async def test_extract_reports_last_error_when_everything_fails(monkeypatch):
    monkeypatch.setattr(transcript_mod, "youtube_settings", YouTubeSettings(enable_transcript_api_fallback=True))

    async def ytdlp(url):
        raise ExtractionError("yt-dlp subs failed: blocked")

    def transcript_api(video_id):
        raise RuntimeError("transcripts disabled")

    monkeypatch.setattr(transcript_mod, "_fetch_with_ytdlp_subs", ytdlp)
    monkeypatch.setattr(transcript_mod, "_fetch_with_transcript_api", transcript_api)

    with pytest.raises(ExtractionError) as exc:
        await extract_transcript("https://youtu.be/dQw4w9WgXcQ")
    assert "No subtitles available" in str(exc.value)
    assert "transcripts disabled" in str(exc.value)


def test_extract_endpoint_returns_transcript(api, fake_extract, transcript_text):
    r = TestClient(api).post("/transcript/extract", json={"videoUrl": "https://youtu.be/dQw4w9WgXcQ"})
    assert r.status_code == 200
    assert r.json() == {"transcript": transcript_text}


@pytest.mark.parametrize(
    "payload,error",
    [
        ({}, "Video URL is required"),
        ({"videoUrl": ""}, "Video URL is required"),
        ({"videoUrl": "https://vimeo.com/123"}, "Invalid YouTube URL"),
        ({"videoUrl": "youtube.com"}, "Invalid YouTube URL"),
    ],
)
def test_extract_endpoint_validates_url(api, fake_extract, payload, error):
    r = TestClient(api).post("/transcript/extract", json=payload)
    assert r.status_code == 400
    assert r.json() == {"error": error}
    assert fake_extract.calls == []


def test_extract_endpoint_reports_failure(settings, fake_generate):
    async def extract(url):
        raise ExtractionError("No subtitles available for this video")

    app = create_app(settings, extract=extract, generate=fake_generate)
    r = TestClient(app).post("/transcript/extract", json={"videoUrl": "https://youtu.be/dQw4w9WgXcQ"})
    assert r.status_code == 500
    assert r.json() == {
        "error": "Failed to extract transcript",
        "details": "No subtitles available for this video",
    }


def _ytdlp_writing(filename, body):
    async def run(args):
        outdir = Path(args[args.index("-o") + 1]).parent
        (outdir / filename).write_text(body)
        return 0, "", ""

    return run


async def test_malformed_vtt_is_an_extraction_error(monkeypatch, no_fallback):
    monkeypatch.setattr(transcript_mod, "_run_ytdlp", _ytdlp_writing("abc12345678.en.vtt", "not a vtt file at all"))

    with pytest.raises(ExtractionError, match="No subtitles available"):
        await extract_transcript("https://www.youtube.com/watch?v=abc12345678")


async def test_malformed_vtt_falls_back_to_transcript_api(monkeypatch):
    monkeypatch.setattr(transcript_mod, "youtube_settings", YouTubeSettings(enable_transcript_api_fallback=True))
    monkeypatch.setattr(transcript_mod, "_run_ytdlp", _ytdlp_writing("abc12345678.en.vtt", "not a vtt file at all"))
    monkeypatch.setattr(transcript_mod, "_fetch_with_transcript_api", lambda video_id: "from transcript api")

    assert await extract_transcript("https://www.youtube.com/watch?v=abc12345678") == "from transcript api"


def test_extract_endpoint_malformed_vtt_returns_json(monkeypatch, no_fallback, settings, fake_generate):
    monkeypatch.setattr(transcript_mod, "_run_ytdlp", _ytdlp_writing("abc12345678.en.vtt", "not a vtt file at all"))

    app = create_app(settings, generate=fake_generate)
    r = TestClient(app).post("/transcript/extract", json={"videoUrl": "https://www.youtube.com/watch?v=abc12345678"})
    assert r.status_code == 500
    body = r.json()
    assert body["error"] == "Failed to extract transcript"
    assert "No subtitles available" in body["details"]


@pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX shell")
async def test_extraction_timeout_stops_ytdlp(tmp_path, monkeypatch, settings, fake_generate):
    pidfile = tmp_path / "ytdlp.pid"
    fake_bin = tmp_path / "fake-ytdlp"
    fake_bin.write_text(f"#!/bin/sh\necho $$ > {pidfile}\nexec sleep 30\n")
    fake_bin.chmod(0o755)
    monkeypatch.setattr(
        transcript_mod,
        "youtube_settings",
        YouTubeSettings(ytdlp_bin=str(fake_bin), enable_transcript_api_fallback=False),
    )

    task = Task()
    s = replace(settings, extraction_timeout_sec=1)
    await run_quiz_pipeline(
        task,
        "https://www.youtube.com/watch?v=abc12345678",
        extract=extract_transcript,
        generate=fake_generate,
        settings=s,
    )

    assert task.status == TaskStatus.FAILED
    assert task.error == "Transcript extraction timed out after 1s"
    pid = int(pidfile.read_text())
    with pytest.raises(ProcessLookupError):
        os.kill(pid, 0)
