import logging
from typing import Any

try:
    from backend.app.models import Fault
    from backend.app.services.video_collector import VideoCollector
    from backend.app.services.youtube_api import (
        YouTubeApiClient,
        YouTubeApiError,
        fault_code,
        uploads_playlist_from_channel,
    )
except ModuleNotFoundError:
    from app.models import Fault
    from app.services.video_collector import VideoCollector
    from app.services.youtube_api import (
        YouTubeApiClient,
        YouTubeApiError,
        fault_code,
        uploads_playlist_from_channel,
    )

logger = logging.getLogger(__name__)

RECENT_VIDEOS_LIMIT = 10

CHANNEL_OPTIONS = {
    "basicInfo",
    "statistics",
    "thumbnails",
    "branding",
    "contentDetails",
    "topicDetails",
    "localizations",
    "recentVideos",
    "allVideos",
    "playlists",
    "channelSections",
}

# option -> channels.list part
OPTION_PARTS = [
    ("basicInfo", "snippet"),
    ("thumbnails", "snippet"),
    ("statistics", "statistics"),
    ("branding", "brandingSettings"),
    ("contentDetails", "contentDetails"),
    ("topicDetails", "topicDetails"),
    ("localizations", "localizations"),
    ("recentVideos", "contentDetails"),
    ("allVideos", "contentDetails"),
]


def unknown_options(options: list[str]) -> list[str]:
    return sorted({option for option in options if option not in CHANNEL_OPTIONS})


def parts_for_options(options: list[str]) -> list[str]:
    parts: list[str] = []
    for option, part in OPTION_PARTS:
        if option in options and part not in parts:
            parts.append(part)
    if not parts:
        parts.append("snippet")
    return parts


def _basic_info(channel: dict[str, Any]) -> dict[str, Any]:
    snippet = channel.get("snippet") or {}
    return {
        "title": snippet.get("title"),
        "description": snippet.get("description"),
        "customUrl": snippet.get("customUrl"),
        "publishedAt": snippet.get("publishedAt"),
        "country": snippet.get("country"),
        "defaultLanguage": snippet.get("defaultLanguage"),
    }


def _statistics(channel: dict[str, Any]) -> dict[str, Any]:
    statistics = channel.get("statistics") or {}
    return {
        "subscriberCount": statistics.get("subscriberCount"),
        "videoCount": statistics.get("videoCount"),
        "viewCount": statistics.get("viewCount"),
        "hiddenSubscriberCount": statistics.get("hiddenSubscriberCount"),
    }


def _branding(channel: dict[str, Any]) -> dict[str, Any]:
    branding = channel.get("brandingSettings") or {}
    branding_channel = branding.get("channel") or {}
    return {
        "image": branding.get("image"),
        "channel": branding.get("channel"),
        "keywords": branding_channel.get("keywords"),
        "unsubscribedTrailer": branding_channel.get("unsubscribedTrailer"),
        "featuredChannelsTitle": branding_channel.get("featuredChannelsTitle"),
        "featuredChannelsUrls": branding_channel.get("featuredChannelsUrls"),
    }


def _playlist_summary(playlist: dict[str, Any]) -> dict[str, Any]:
    snippet = playlist.get("snippet") or {}
    return {
        "id": playlist.get("id"),
        "title": snippet.get("title"),
        "description": snippet.get("description"),
        "publishedAt": snippet.get("publishedAt"),
        "thumbnails": snippet.get("thumbnails"),
        "videoCount": (playlist.get("contentDetails") or {}).get("itemCount"),
    }


def _section_summary(section: dict[str, Any]) -> dict[str, Any]:
    snippet = section.get("snippet") or {}
    details = section.get("contentDetails") or {}
    return {
        "id": section.get("id"),
        "type": snippet.get("type"),
        "style": snippet.get("style"),
        "title": snippet.get("title"),
        "position": snippet.get("position"),
        "playlistIds": details.get("playlists"),
        "channelIds": details.get("channels"),
    }


class ChannelDetailsService:
    def __init__(self, client: YouTubeApiClient, collector: VideoCollector):
        self.client = client
        self.collector = collector

    def _best_effort(self, stage: str, channel_id: str, faults: list[Fault], fetch) -> list[dict[str, Any]]:
        try:
            return fetch()
        except YouTubeApiError as exc:
            logger.warning("Error fetching %s for %s: %s", stage, channel_id, exc.message)
            faults.append(
                Fault(stage=stage, code=fault_code(exc), detail=exc.message, context={"channel_id": channel_id})
            )
            return []

    def _videos(self, channel: dict[str, Any], faults: list[Fault], max_videos: int | None) -> list[dict[str, Any]]:
        collection = self.collector.collect_videos(uploads_playlist_from_channel(channel), max_videos=max_videos)
        faults.extend(collection.faults)
        return [record.to_payload() for record in collection.items]

    def fetch_channel_data(self, channel_id: str, options: list[str]) -> dict[str, Any] | None:
        """
        Fetch the requested sections for one channel. Returns None when the
        channel does not exist. Video, playlist and section lookups are best
        effort: a failure empties that section and is reported under "faults".
        """
        parts = parts_for_options(options)
        logger.info("Fetching channel %s with parts %s", channel_id, ",".join(parts))
        items = self.client.list_channels(channel_id, part=",".join(parts))
        if not items:
            return None

        channel = items[0]
        faults: list[Fault] = []
        data: dict[str, Any] = {"id": channel.get("id") or channel_id}

        if "basicInfo" in options:
            data["basicInfo"] = _basic_info(channel)
        if "statistics" in options:
            data["statistics"] = _statistics(channel)
        if "thumbnails" in options:
            data["thumbnails"] = (channel.get("snippet") or {}).get("thumbnails")
        if "branding" in options:
            data["branding"] = _branding(channel)
        if "contentDetails" in options:
            data["contentDetails"] = channel.get("contentDetails")
        if "topicDetails" in options:
            data["topicDetails"] = channel.get("topicDetails")
        if "localizations" in options:
            data["localizations"] = channel.get("localizations")

        if "recentVideos" in options:
            data["recentVideos"] = self._best_effort(
                "recent_videos",
                channel_id,
                faults,
                lambda: self._videos(channel, faults, RECENT_VIDEOS_LIMIT),
            )
        if "allVideos" in options:
            data["allVideos"] = self._best_effort(
                "all_videos",
                channel_id,
                faults,
                lambda: self._videos(channel, faults, None),
            )
        if "playlists" in options:
            data["playlists"] = self._best_effort(
                "playlists",
                channel_id,
                faults,
                lambda: [_playlist_summary(p) for p in self.client.list_playlists(channel_id)],
            )
        if "channelSections" in options:
            data["channelSections"] = self._best_effort(
                "channel_sections",
                channel_id,
                faults,
                lambda: [_section_summary(s) for s in self.client.list_channel_sections(channel_id)],
            )

        data["faults"] = [fault.to_payload() for fault in faults]
        return data
