import os

from dotenv import load_dotenv
from pydantic import BaseModel

try:
    from backend.app.services.youtube_api import YouTubeNotConfiguredError
except ModuleNotFoundError:
    from app.services.youtube_api import YouTubeNotConfiguredError


DEFAULT_YOUTUBE_API_BASE_URL = "https://www.googleapis.com/youtube/v3"


class Settings(BaseModel):
    youtube_api_key: str | None = None
    youtube_api_base_url: str = DEFAULT_YOUTUBE_API_BASE_URL
    request_timeout_seconds: float = 15
    # Pause between consecutive playlist pages / detail batches.
    request_delay_seconds: float = 0.1
    search_results_per_query: int = 25
    search_result_limit: int = 10
    max_playlist_pages: int = 10
    max_video_ids: int = 500
    log_level: str = "INFO"

    @property
    def api_key_configured(self) -> bool:
        return bool(self.youtube_api_key)

    def require_api_key(self) -> str:
        if not self.youtube_api_key:
            raise YouTubeNotConfiguredError(
                "YouTube API key not configured. Please set YOUTUBE_API_KEY in your environment variables."
            )
        return self.youtube_api_key


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return max(1, int(raw))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return max(0.0, float(raw))
    except ValueError:
        return default


def load_settings() -> Settings:
    load_dotenv()
    return Settings(
        youtube_api_key=(os.getenv("YOUTUBE_API_KEY") or "").strip() or None,
        youtube_api_base_url=(os.getenv("YOUTUBE_API_BASE_URL") or DEFAULT_YOUTUBE_API_BASE_URL).rstrip("/"),
        request_timeout_seconds=_env_float("YOUTUBE_REQUEST_TIMEOUT_SECONDS", 15),
        request_delay_seconds=_env_float("YOUTUBE_REQUEST_DELAY_SECONDS", 0.1),
        search_results_per_query=_env_int("SEARCH_RESULTS_PER_QUERY", 25),
        search_result_limit=_env_int("SEARCH_RESULT_LIMIT", 10),
        max_playlist_pages=_env_int("MAX_PLAYLIST_PAGES", 10),
        max_video_ids=_env_int("MAX_VIDEO_IDS", 500),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )
