import logging
import re
import time
from datetime import datetime, timezone
from typing import Any

try:
    from backend.app.models import Fault, VideoCollection, VideoRecord
    from backend.app.services.youtube_api import (
        MAX_IDS_PER_CALL,
        MAX_RESULTS_PER_PAGE,
        YouTubeApiClient,
        YouTubeApiError,
        fault_code,
    )
except ModuleNotFoundError:
    from app.models import Fault, VideoCollection, VideoRecord
    from app.services.youtube_api import (
        MAX_IDS_PER_CALL,
        MAX_RESULTS_PER_PAGE,
        YouTubeApiClient,
        YouTubeApiError,
        fault_code,
    )

logger = logging.getLogger(__name__)

DURATION_RE = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")
UNKNOWN_DURATION = "Unknown"
OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def parse_duration(duration: str | None) -> str:
    """PT1H2M3S -> 1:02:03, PT3M3S -> 3:03. Unrecognised strings pass through."""
    if not duration:
        return UNKNOWN_DURATION
    match = DURATION_RE.match(duration)
    if not match:
        return duration
    hours = int(match.group(1) or 0)
    minutes = int(match.group(2) or 0)
    seconds = int(match.group(3) or 0)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def parse_iso8601_datetime(value: str | None):
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def chunked(lst, n):
    for i in range(0, len(lst), n):
        yield lst[i:i + n]


def _count(value: Any) -> int:
    try:
        return max(0, int(value or 0))
    except (TypeError, ValueError):
        return 0


def build_video_record(video: dict[str, Any]) -> VideoRecord:
    snippet = video.get("snippet") or {}
    statistics = video.get("statistics") or {}
    details = video.get("contentDetails") or {}
    status = video.get("status") or {}
    raw_duration = details.get("duration")
    tags = snippet.get("tags") or []

    return VideoRecord(
        id=video.get("id") or "",
        title=snippet.get("title"),
        description=snippet.get("description"),
        published_at=snippet.get("publishedAt"),
        thumbnails=snippet.get("thumbnails") or {},
        channel_title=snippet.get("channelTitle"),
        tags=[str(tag) for tag in tags] if isinstance(tags, list) else [],
        category_id=snippet.get("categoryId"),
        default_language=snippet.get("defaultLanguage"),
        default_audio_language=snippet.get("defaultAudioLanguage"),
        live_broadcast_content=snippet.get("liveBroadcastContent"),
        view_count=_count(statistics.get("viewCount")),
        like_count=_count(statistics.get("likeCount")),
        dislike_count=_count(statistics.get("dislikeCount")),
        favorite_count=_count(statistics.get("favoriteCount")),
        comment_count=_count(statistics.get("commentCount")),
        duration=parse_duration(raw_duration),
        raw_duration=raw_duration,
        definition=details.get("definition"),
        caption=details.get("caption"),
        licensed_content=details.get("licensedContent"),
        projection=details.get("projection"),
        upload_status=status.get("uploadStatus"),
        privacy_status=status.get("privacyStatus"),
        license=status.get("license"),
        embeddable=status.get("embeddable"),
        public_stats_viewable=status.get("publicStatsViewable"),
        made_for_kids=status.get("madeForKids"),
        self_declared_made_for_kids=status.get("selfDeclaredMadeForKids"),
    )


def published_sort_key(record: VideoRecord) -> tuple[bool, datetime]:
    # Undated or unparseable records rank as oldest.
    published = parse_iso8601_datetime(record.published_at)
    return published is not None, published or OLDEST


def sort_newest_first(records: list[VideoRecord]) -> list[VideoRecord]:
    return sorted(records, key=published_sort_key, reverse=True)


class VideoCollector:
    def __init__(
        self,
        client: YouTubeApiClient,
        max_pages: int = 10,
        max_video_ids: int = 500,
        delay_seconds: float = 0.1,
    ):
        self.client = client
        self.max_pages = max_pages
        self.max_video_ids = max_video_ids
        self.delay_seconds = delay_seconds

    def _pause(self) -> None:
        if self.delay_seconds > 0:
            time.sleep(self.delay_seconds)

    def harvest_video_ids(
        self,
        playlist_id: str,
        faults: list[Fault],
        max_videos: int | None = None,
    ) -> tuple[list[str], int, bool]:
        """
        Walk the playlist pages and return (video_ids, pages_fetched, truncated).
        truncated is True when a page or id cap stopped the walk while the
        upstream still had more to give.
        """
        max_items = self.max_video_ids
        if max_videos is not None:
            max_items = max(0, min(max_videos, self.max_video_ids))

        ids: list[str] = []
        page_token = None
        pages = 0
        while len(ids) < max_items and pages < self.max_pages:
            if pages:
                self._pause()
            try:
                payload = self.client.list_playlist_items(
                    playlist_id,
                    page_token=page_token,
                    max_results=min(MAX_RESULTS_PER_PAGE, max_items - len(ids)),
                )
            except YouTubeApiError as exc:
                logger.warning("Error fetching page %d of playlist %s: %s", pages + 1, playlist_id, exc.message)
                faults.append(
                    Fault(
                        stage="playlist_page",
                        code=fault_code(exc),
                        detail=exc.message,
                        context={"playlist_id": playlist_id, "page": pages + 1},
                    )
                )
                return ids, pages, False
            pages += 1

            items = payload.get("items") or []
            cut_short = False
            for position, item in enumerate(items):
                video_id = (item.get("contentDetails") or {}).get("videoId")
                if video_id:
                    ids.append(video_id)
                if len(ids) >= max_items:
                    cut_short = position < len(items) - 1
                    break
            logger.info("Page %d: %d items, %d video ids so far", pages, len(items), len(ids))

            page_token = payload.get("nextPageToken")
            if not page_token:
                return ids, pages, cut_short

        return ids, pages, bool(page_token)

    def fetch_video_details(self, video_ids: list[str], faults: list[Fault]) -> list[VideoRecord]:
        records: list[VideoRecord] = []
        batches = list(chunked(video_ids, MAX_IDS_PER_CALL))
        for number, batch in enumerate(batches, start=1):
            try:
                items = self.client.list_videos(batch)
            except YouTubeApiError as exc:
                logger.warning("Error fetching video batch %d/%d: %s", number, len(batches), exc.message)
                faults.append(
                    Fault(
                        stage="video_batch",
                        code=fault_code(exc),
                        detail=exc.message,
                        context={"batch": number, "size": len(batch)},
                    )
                )
            else:
                records.extend(build_video_record(item) for item in items)
                logger.info("Batch %d/%d returned %d video details", number, len(batches), len(items))

            if number < len(batches):
                self._pause()
        return records

    def collect_videos(self, uploads_playlist_id: str | None, max_videos: int | None = None) -> VideoCollection:
        faults: list[Fault] = []
        if not uploads_playlist_id:
            logger.warning("Could not find uploads playlist ID")
            faults.append(
                Fault(stage="uploads_playlist", code="not_found", detail="Uploads playlist not found")
            )
            return VideoCollection(faults=faults)

        video_ids, pages, truncated = self.harvest_video_ids(uploads_playlist_id, faults, max_videos=max_videos)
        records = self.fetch_video_details(video_ids, faults)
        logger.info("Collected %d of %d videos from %s", len(records), len(video_ids), uploads_playlist_id)
        return VideoCollection(
            items=sort_newest_first(records),
            faults=faults,
            requested_ids=len(video_ids),
            pages_fetched=pages,
            truncated=truncated,
        )
