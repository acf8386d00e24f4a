# apps/api/app/services/transcript.py
from __future__ import annotations

import asyncio
import html
import logging
import re
import tempfile
from pathlib import Path
from typing import Iterable

import webvtt
from webvtt.errors import MalformedCaptionError, MalformedFileError
from youtube_transcript_api import YouTubeTranscriptApi
from youtube_transcript_api.proxies import GenericProxyConfig

from app.core.youtube_settings import youtube_settings
from app.services.youtube import extract_youtube_video_id

logger = logging.getLogger(__name__)


class ExtractionError(Exception):
    pass


# -----------------------------
# Cleaning + normalization
# -----------------------------
_NOISE_WORDS = r"(music|applause|laughter|intro|outro|silence|sfx|sound effects?)"
_NOISE_FULL_RE = re.compile(rf"^\s*\[{_NOISE_WORDS}\]\s*$", re.IGNORECASE)
_NOISE_PREFIX_RE = re.compile(rf"^\s*(?:\[{_NOISE_WORDS}\]\s*)+", re.IGNORECASE)

_TIMESTAMP_RE = re.compile(r"^\d{2}:\d{2}(:\d{2})?")
_CUE_INDEX_RE = re.compile(r"^\d+$")
_SPEAKER_PREFIX_RE = re.compile(r"^>>\s*")
_TAG_RE = re.compile(r"<[^>]*>")


def _normalize_space(s: str) -> str:
    s = (s or "").replace("\u200b", " ")
    return re.sub(r"\s+", " ", s).strip()


def _is_caption_markup(line: str) -> bool:
    s = line.strip()
    if not s:
        return True
    if "-->" in line or "WEBVTT" in line or "</c>" in line:
        return True
    if _CUE_INDEX_RE.match(s) or _TIMESTAMP_RE.match(s):
        return True
    return False


def clean_subtitle_lines(lines: Iterable[str]) -> str:
    """
    Turn caption lines (SRT/VTT bodies or already-parsed cue texts) into one
    plain transcript string:
    - drop cue numbers, timestamps, WEBVTT headers, karaoke tags
    - drop exact duplicate lines (auto-captions repeat every line)
    - strip ">>" speaker markers, html tags, [Music]-style noise
    """
    seen: set[str] = set()
    kept: list[str] = []

    for raw in lines:
        for line in (raw or "").split("\n"):
            if _is_caption_markup(line):
                continue
            s = html.unescape(line.strip())
            s = _SPEAKER_PREFIX_RE.sub("", s)
            s = _TAG_RE.sub("", s)
            s = _NOISE_PREFIX_RE.sub("", s)
            s = _normalize_space(s)
            if not s or _NOISE_FULL_RE.match(s) or s in seen:
                continue
            seen.add(s)
            kept.append(s)

    return _normalize_space(" ".join(kept))


def clean_subtitle_text(raw: str) -> str:
    return clean_subtitle_lines((raw or "").splitlines())


# -----------------------------
# Prompt-sized transcript (processing stage)
# -----------------------------

def _chunk_words(text: str, chunk_words: int = 28) -> list[str]:
    words = [w for w in (text or "").split() if w]
    return [" ".join(words[i : i + chunk_words]).strip() for i in range(0, len(words), chunk_words)]


def _simple_sentence_split(text: str) -> list[str]:
    parts = [p.strip() for p in re.split(r"(?<=[.!?])\s+", text) if p.strip()]
    if len(parts) < 6:
        parts = _chunk_words(text, chunk_words=28)
    return [p for p in parts if len(p.split()) >= 6]


def _pick_evenly(items: list[str], k: int) -> list[str]:
    if not items or k <= 0:
        return []
    if len(items) <= k:
        return items
    idxs = [round(i * (len(items) - 1) / (k - 1)) for i in range(k)]
    out: list[str] = []
    seen = set()
    for ix in idxs:
        s = items[int(ix)]
        if s in seen:
            continue
        seen.add(s)
        out.append(s)
    return out


def compress_transcript(transcript_text: str, max_chars: int = 12000) -> str:
    """
    Keep the transcript under max_chars by selecting evenly-spaced sentence-like
    lines, so the prompt still covers the whole video.
    """
    t = _NOISE_PREFIX_RE.sub("", _normalize_space(transcript_text))
    if not t or len(t) <= max_chars:
        return t

    sents = _simple_sentence_split(t)
    if not sents:
        return t[:max_chars]

    avg = max(1, sum(len(s) + 1 for s in sents) // len(sents))
    picks = _pick_evenly(sents, k=max(1, max_chars // avg))
    out = " ".join(picks).strip()

    if len(out) > max_chars:
        out = out[:max_chars].rsplit(" ", 1)[0].strip()
    return out


# -----------------------------
# Fetchers
# -----------------------------

async def _run_ytdlp(args: list[str]) -> tuple[int, str, str]:
    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError:
        raise ExtractionError("yt-dlp not found. Install it (pip install yt-dlp) and ensure it is on PATH.")

    try:
        out, err = await proc.communicate()
    except BaseException:
        # the child must be gone before the caller removes its tempdir
        if proc.returncode is None:
            proc.kill()
            await proc.wait()
        raise
    return proc.returncode or 0, out.decode(errors="replace"), err.decode(errors="replace")


def _read_subtitle_file(td: Path) -> str:
    vtts = sorted(td.glob("*.vtt"), key=lambda x: x.stat().st_size, reverse=True)
    if vtts:
        return clean_subtitle_lines(c.text for c in webvtt.read(str(vtts[0])))

    srts = sorted(td.glob("*.srt"), key=lambda x: x.stat().st_size, reverse=True)
    if not srts:
        raise ExtractionError("No subtitles available for this video")
    return clean_subtitle_text(srts[0].read_text(encoding="utf-8", errors="replace"))


async def _fetch_with_ytdlp_subs(video_url: str) -> str:
    with tempfile.TemporaryDirectory() as td:
        outtmpl = str(Path(td) / "%(id)s.%(ext)s")
        args = [
            youtube_settings.ytdlp_bin,
            "--skip-download",
            "--no-playlist",
            "--write-subs",
            "--write-auto-subs",
            "--sub-format",
            "vtt",
            "--sub-langs",
            youtube_settings.sub_langs,
            "-o",
            outtmpl,
            video_url,
        ]
        if youtube_settings.cookies_file:
            args.extend(["--cookies", youtube_settings.cookies_file])
        if youtube_settings.proxy_url:
            args.extend(["--proxy", youtube_settings.proxy_url])

        logger.info("Running yt-dlp for %s", video_url)
        code, out, err = await _run_ytdlp(args)
        if code != 0:
            raise ExtractionError(f"yt-dlp subs failed: {err.strip() or out.strip() or f'exit code {code}'}")

        try:
            text = _read_subtitle_file(Path(td))
        except (MalformedFileError, MalformedCaptionError, OSError) as e:
            raise ExtractionError(f"Could not read subtitles downloaded by yt-dlp: {e}") from e

    if not text:
        raise ExtractionError("Subtitles were found but contained no usable text")
    return text


def _fetch_with_transcript_api(video_id: str) -> str:
    proxy_config = None
    if youtube_settings.proxy_url:
        proxy_config = GenericProxyConfig(
            http_url=youtube_settings.proxy_url,
            https_url=youtube_settings.proxy_url,
        )

    api = YouTubeTranscriptApi(proxy_config=proxy_config)
    languages = [lang.strip() for lang in youtube_settings.sub_langs.split(",") if lang.strip()] or ["en"]
    fetched = api.fetch(video_id, languages=languages)

    text = clean_subtitle_lines(seg.get("text") or "" for seg in fetched.to_raw_data())
    if not text:
        raise ExtractionError("Transcript empty after fetch (transcript_api)")
    return text


async def extract_transcript(video_url: str) -> str:
    """
    Video URL -> cleaned transcript text.

    yt-dlp subtitles first; youtube-transcript-api as fallback when enabled and
    the URL carries a recognizable video id.
    """
    url = (video_url or "").strip()
    if not url:
        raise ExtractionError("Video URL is required")

    try:
        return await _fetch_with_ytdlp_subs(url)
    except ExtractionError as e:
        last_err: Exception = e

    video_id = extract_youtube_video_id(url)
    if youtube_settings.enable_transcript_api_fallback and video_id:
        logger.info("yt-dlp gave no transcript for %s (%s); trying transcript api", video_id, last_err)
        try:
            return await asyncio.to_thread(_fetch_with_transcript_api, video_id)
        except Exception as e:
            last_err = e

    if isinstance(last_err, ExtractionError) and "no subtitles available" in str(last_err).lower():
        raise last_err
    raise ExtractionError(f"No subtitles available for this video: {last_err}")
