import logging
from typing import Any

import requests

logger = logging.getLogger(__name__)

CHANNELS_ENDPOINT = "channels"
SEARCH_ENDPOINT = "search"
PLAYLIST_ITEMS_ENDPOINT = "playlistItems"
VIDEOS_ENDPOINT = "videos"
PLAYLISTS_ENDPOINT = "playlists"
CHANNEL_SECTIONS_ENDPOINT = "channelSections"

# Upstream maximum for maxResults on list calls and for ids per videos.list call.
MAX_RESULTS_PER_PAGE = 50
MAX_IDS_PER_CALL = 50


class YouTubeNotConfiguredError(Exception):
    pass


class YouTubeApiError(Exception):
    def __init__(self, message: str, status_code: int | None = None, reason: str | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.reason = reason


class YouTubeQuotaExceededError(YouTubeApiError):
    pass


def _error_details(response: requests.Response) -> tuple[str, str]:
    reason = ""
    message = response.text
    try:
        payload = response.json()
    except ValueError:
        return reason, message
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict):
        errors = error.get("errors") or []
        if errors and isinstance(errors[0], dict):
            reason = str(errors[0].get("reason") or "")
        message = str(error.get("message") or message)
    return reason, message


def is_quota_response(status_code: int, body: str) -> bool:
    if status_code == 403:
        return True
    lowered = (body or "").lower()
    return status_code == 429 and (
        "quotaexceeded" in lowered or "quota exceeded" in lowered or "youtube.quota" in lowered
    )


class YouTubeApiClient:
    """
    Thin wrapper over the YouTube Data API v3 list endpoints.
    Every call is a single GET; pagination and batching live in the services.
    """

    def __init__(self, api_key: str, base_url: str, timeout: float = 15, session: Any = None):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        # Plain requests.get per call unless a session is injected.
        self.session = session or requests

    def get(self, endpoint: str, params: dict[str, Any]) -> dict[str, Any]:
        merged = {key: value for key, value in params.items() if value is not None}
        merged["key"] = self.api_key
        url = f"{self.base_url}/{endpoint}"
        logger.debug("YouTube %s request: %s", endpoint, {k: v for k, v in merged.items() if k != "key"})
        try:
            response = self.session.get(url, params=merged, timeout=self.timeout)
        except requests.RequestException as exc:
            raise YouTubeApiError(f"YouTube is temporarily unavailable: {exc}") from exc

        if response.status_code == 200:
            try:
                return response.json()
            except ValueError as exc:
                raise YouTubeApiError("YouTube returned a malformed response.", status_code=200) from exc

        reason, message = _error_details(response)
        if is_quota_response(response.status_code, response.text):
            raise YouTubeQuotaExceededError(
                f"YouTube API quota exceeded or invalid API key: {message}",
                status_code=response.status_code,
                reason=reason or None,
            )
        raise YouTubeApiError(message, status_code=response.status_code, reason=reason or None)

    def list_channels(self, channel_ids: list[str] | str, part: str = "snippet,statistics") -> list[dict[str, Any]]:
        if isinstance(channel_ids, str):
            channel_ids = [channel_ids]
        if not channel_ids:
            return []
        payload = self.get(CHANNELS_ENDPOINT, {"part": part, "id": ",".join(channel_ids)})
        return payload.get("items") or []

    def search_channels(self, query: str, max_results: int = 25) -> list[dict[str, Any]]:
        payload = self.get(
            SEARCH_ENDPOINT,
            {
                "part": "snippet",
                "type": "channel",
                "q": query,
                "maxResults": max_results,
                "order": "relevance",
            },
        )
        return payload.get("items") or []

    def list_playlist_items(
        self,
        playlist_id: str,
        page_token: str | None = None,
        max_results: int = MAX_RESULTS_PER_PAGE,
        part: str = "contentDetails",
    ) -> dict[str, Any]:
        return self.get(
            PLAYLIST_ITEMS_ENDPOINT,
            {
                "part": part,
                "playlistId": playlist_id,
                "maxResults": max_results,
                "pageToken": page_token,
            },
        )

    def list_videos(
        self,
        video_ids: list[str],
        part: str = "snippet,statistics,contentDetails,status",
    ) -> list[dict[str, Any]]:
        if not video_ids:
            return []
        payload = self.get(VIDEOS_ENDPOINT, {"part": part, "id": ",".join(video_ids)})
        return payload.get("items") or []

    def list_playlists(self, channel_id: str, max_results: int = MAX_RESULTS_PER_PAGE) -> list[dict[str, Any]]:
        payload = self.get(
            PLAYLISTS_ENDPOINT,
            {
                "part": "snippet,contentDetails",
                "channelId": channel_id,
                "maxResults": max_results,
            },
        )
        return payload.get("items") or []

    def list_channel_sections(self, channel_id: str) -> list[dict[str, Any]]:
        payload = self.get(
            CHANNEL_SECTIONS_ENDPOINT,
            {
                "part": "snippet,contentDetails",
                "channelId": channel_id,
            },
        )
        return payload.get("items") or []


def uploads_playlist_from_channel(channel: dict[str, Any]) -> str | None:
    return ((channel.get("contentDetails") or {}).get("relatedPlaylists") or {}).get("uploads")


def fault_code(exc: YouTubeApiError) -> str:
    if isinstance(exc, YouTubeQuotaExceededError):
        return "quota_exceeded"
    return "upstream_error"
