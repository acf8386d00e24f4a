import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class YouTubeSettings:
    # Optional: path to cookies.txt (Netscape format). Helps bypass anon blocks.
    cookies_file: str | None = os.getenv("YOUTUBE_COOKIES_FILE")

    # Optional: proxy URL, e.g. http://127.0.0.1:7890
    proxy_url: str | None = os.getenv("YOUTUBE_PROXY_URL")

    # yt-dlp binary + subtitle languages to ask for
    ytdlp_bin: str = os.getenv("YTDLP_BIN", "yt-dlp")
    sub_langs: str = os.getenv("YOUTUBE_SUB_LANGS", "en,en-US,en-GB,en-CA,en-AU,en-NZ,en-auto")

    # Whether to try youtube-transcript-api if yt-dlp yields no subtitles
    enable_transcript_api_fallback: bool = os.getenv("YOUTUBE_ENABLE_TRANSCRIPT_API_FALLBACK", "1") == "1"


youtube_settings = YouTubeSettings()
