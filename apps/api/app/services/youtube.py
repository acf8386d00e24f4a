import re
from urllib.parse import parse_qs, urlparse

_YT_ID_RE = re.compile(r"^[a-zA-Z0-9_-]{11}$")

# Loose shape check used by the transcript endpoint.
YOUTUBE_URL_RE = re.compile(r"^(https?://)?(www\.)?(youtube\.com|youtu\.be)/.+$")


def is_youtube_url(url: str) -> bool:
    return bool(YOUTUBE_URL_RE.match((url or "").strip()))


def extract_youtube_video_id(url: str) -> str | None:
    """
    Supports:
    - https://www.youtube.com/watch?v=VIDEOID
    - https://m.youtube.com/watch?v=VIDEOID
    - https://youtu.be/VIDEOID
    - https://www.youtube.com/shorts/VIDEOID
    - https://www.youtube.com/embed/VIDEOID
    """
    try:
        u = urlparse(url)
    except Exception:
        return None

    host = (u.netloc or "").lower()
    path = (u.path or "").strip("/")

    # youtu.be/VIDEOID
    if "youtu.be" in host:
        vid = path.split("/")[0] if path else ""
        return vid if _YT_ID_RE.match(vid) else None

    if "youtube.com" in host:
        # youtube.com/watch?v=VIDEOID
        if path == "watch":
            q = parse_qs(u.query or "")
            vid = (q.get("v", [""])[0]).strip()
            return vid if _YT_ID_RE.match(vid) else None

        # youtube.com/shorts/VIDEOID, youtube.com/embed/VIDEOID
        if path.startswith("shorts/") or path.startswith("embed/"):
            parts = path.split("/")
            vid = parts[1] if len(parts) > 1 else ""
            return vid if _YT_ID_RE.match(vid) else None

    return None


def clean_youtube_url(url: str) -> str:
    """
    Strip tracking/playlist params before submission:
    youtube.com + m.youtube.com keep only ?v=, youtu.be keeps only the path id.
    Anything unparseable is returned unchanged.
    """
    raw = (url or "").strip()
    try:
        u = urlparse(raw)
    except ValueError:
        return raw

    host = (u.netloc or "").lower()
    if host in ("www.youtube.com", "youtube.com", "m.youtube.com"):
        vid = (parse_qs(u.query or "").get("v", [""])[0]).strip()
        if vid:
            return build_video_url(vid)
    elif host == "youtu.be":
        vid = (u.path or "").lstrip("/")
        if vid:
            return f"https://youtu.be/{vid}"

    return raw


def build_video_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"
