import logging
import os

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
try:
    from backend.app.config import Settings, load_settings
    from backend.app.models import ChannelDataRequest, ResolvedChannel
    from backend.app.services.channel_details import ChannelDetailsService, unknown_options
    from backend.app.services.channel_resolver import ChannelResolver, SearchStrategy, extract_direct_identifier, is_channel_id
    from backend.app.services.video_collector import VideoCollector
    from backend.app.services.youtube_api import (
        YouTubeApiClient,
        YouTubeApiError,
        YouTubeNotConfiguredError,
        YouTubeQuotaExceededError,
        uploads_playlist_from_channel,
    )
except ModuleNotFoundError:
    from app.config import Settings, load_settings
    from app.models import ChannelDataRequest, ResolvedChannel
    from app.services.channel_details import ChannelDetailsService, unknown_options
    from app.services.channel_resolver import ChannelResolver, SearchStrategy, extract_direct_identifier, is_channel_id
    from app.services.video_collector import VideoCollector
    from app.services.youtube_api import (
        YouTubeApiClient,
        YouTubeApiError,
        YouTubeNotConfiguredError,
        YouTubeQuotaExceededError,
        uploads_playlist_from_channel,
    )


# ---------------------------
# App setup
# ---------------------------

SETTINGS: Settings = load_settings()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


configure_logging(SETTINGS.log_level)
logger = logging.getLogger(__name__)


def parse_cors_origins() -> tuple[list[str], bool]:
    raw = (os.getenv("CORS_ALLOWED_ORIGINS") or "").strip()
    if not raw:
        return ["http://localhost:5173"], True
    if raw == "*":
        return ["*"], False
    origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    if not origins:
        return ["http://localhost:5173"], True
    return origins, True

app = FastAPI(title="YouTube Channel Fetcher API")

cors_origins, cors_credentials = parse_cors_origins()

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=cors_credentials,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


@app.exception_handler(YouTubeNotConfiguredError)
async def youtube_not_configured_handler(_request: Request, exc: YouTubeNotConfiguredError):
    return JSONResponse(
        status_code=500,
        content={"detail": str(exc), "error_code": "youtube_not_configured"},
    )


@app.exception_handler(YouTubeQuotaExceededError)
async def youtube_quota_exceeded_handler(_request: Request, _exc: YouTubeQuotaExceededError):
    return JSONResponse(
        status_code=403,
        content={
            "detail": "YouTube API quota exceeded or invalid API key",
            "error_code": "youtube_quota_exhausted",
        },
    )


@app.exception_handler(YouTubeApiError)
async def youtube_api_error_handler(_request: Request, exc: YouTubeApiError):
    return JSONResponse(
        status_code=502,
        content={
            "detail": "Could not fetch YouTube data right now.",
            "error_code": "youtube_upstream_error",
            "upstream_message": exc.message,
        },
    )


# ---------------------------
# Services
# ---------------------------

def get_youtube_client() -> YouTubeApiClient:
    api_key = SETTINGS.require_api_key()
    return YouTubeApiClient(
        api_key,
        SETTINGS.youtube_api_base_url,
        timeout=SETTINGS.request_timeout_seconds,
    )


def get_channel_resolver() -> ChannelResolver:
    return ChannelResolver(
        get_youtube_client(),
        results_per_query=SETTINGS.search_results_per_query,
        result_limit=SETTINGS.search_result_limit,
    )


def get_video_collector(client: YouTubeApiClient | None = None) -> VideoCollector:
    return VideoCollector(
        client or get_youtube_client(),
        max_pages=SETTINGS.max_playlist_pages,
        max_video_ids=SETTINGS.max_video_ids,
        delay_seconds=SETTINGS.request_delay_seconds,
    )


def get_channel_details_service() -> ChannelDetailsService:
    client = get_youtube_client()
    return ChannelDetailsService(client, get_video_collector(client))


def parse_strategy(value: str | None) -> SearchStrategy:
    try:
        return SearchStrategy((value or SearchStrategy.SMART.value).strip().lower())
    except ValueError:
        allowed = ", ".join(s.value for s in SearchStrategy)
        raise HTTPException(status_code=400, detail=f"strategy must be one of: {allowed}")


# ---------------------------
# Routes
# ---------------------------

@app.get("/")
def index():
    return {
        "message": "YouTube Channel Fetcher API",
        "endpoints": {
            "health": "/health",
            "search": "/channels/search?q=<query>&strategy=smart",
            "channel": "/channel",
            "videos": "/channel/{channel_id}/videos",
        },
    }


@app.get("/health")
def health():
    return {
        "ok": True,
        "status": "OK",
        "message": "YouTube Channel Fetcher API is running",
        "apiKeyConfigured": SETTINGS.api_key_configured,
    }


@app.get("/channels/search")
def search_channels(q: str = "", strategy: str = "smart"):
    query = (q or "").strip()
    if not query:
        raise HTTPException(status_code=400, detail="Search query is required")
    selected = parse_strategy(strategy)

    result = get_channel_resolver().resolve(query, selected)
    if result.direct_match:
        search_tips = {"isDirectMatch": True, "originalQuery": query}
    else:
        search_tips = {
            "isDirectMatch": False,
            "originalQuery": query,
            "totalFound": len(result.candidates),
            "strategies": result.strategies,
            "suggestions": result.suggestions,
            "faults": [fault.to_payload() for fault in result.faults],
        }
    return {
        "channels": [candidate.to_payload() for candidate in result.candidates],
        "searchTips": search_tips,
    }


@app.post("/channel")
def channel_data(payload: ChannelDataRequest):
    channel_id = (payload.channel_id or "").strip()
    if not channel_id:
        raise HTTPException(status_code=400, detail="Channel ID is required")
    if not payload.options:
        raise HTTPException(status_code=400, detail="At least one data option must be selected")
    unknown = unknown_options(payload.options)
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown data options: {', '.join(unknown)}")

    logger.info("Fetching channel data for ID %s with options %s", channel_id, payload.options)
    data = get_channel_details_service().fetch_channel_data(channel_id, payload.options)
    if data is None:
        raise HTTPException(status_code=404, detail="Channel not found")
    return data


@app.get("/channel/{channel_identifier}/videos")
def channel_videos(channel_identifier: str, max_videos: int | None = None):
    channel_id = extract_direct_identifier((channel_identifier or "").strip())
    if not is_channel_id(channel_id):
        raise HTTPException(status_code=400, detail="Use a channel ID (UC...) or a /channel/ URL.")
    if max_videos is not None and max_videos < 1:
        raise HTTPException(status_code=400, detail="max_videos must be at least 1")

    client = get_youtube_client()
    items = client.list_channels(channel_id, part="contentDetails")
    if not items:
        raise HTTPException(status_code=404, detail="Channel not found")
    # A channel without an uploads playlist yields an empty list plus a fault.
    resolved = ResolvedChannel(
        channel_id=channel_id,
        uploads_playlist_id=uploads_playlist_from_channel(items[0]),
    )

    collection = get_video_collector(client).collect_videos(resolved.uploads_playlist_id, max_videos=max_videos)
    return {
        "items": [record.to_payload() for record in collection.items],
        "meta": {
            "channel_id": resolved.channel_id,
            "uploads_playlist_id": resolved.uploads_playlist_id,
            "total": len(collection.items),
            "requested_ids": collection.requested_ids,
            "pages_fetched": collection.pages_fetched,
            "truncated": collection.truncated,
            "faults": [fault.to_payload() for fault in collection.faults],
        },
    }
