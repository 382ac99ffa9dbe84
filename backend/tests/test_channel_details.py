from backend.app.services.channel_details import (
    ChannelDetailsService,
    parts_for_options,
    unknown_options,
)
from backend.app.services.video_collector import VideoCollector
from backend.app.services.youtube_api import YouTubeApiError

CHANNEL = {
    "id": "UC_DETAILS",
    "snippet": {
        "title": "Details Channel",
        "description": "About",
        "customUrl": "@details",
        "publishedAt": "2015-01-01T00:00:00Z",
        "country": "GB",
        "thumbnails": {"default": {"url": "https://img/c.jpg"}},
    },
    "statistics": {"subscriberCount": "1200", "videoCount": "3", "viewCount": "9000", "hiddenSubscriberCount": False},
    "brandingSettings": {"channel": {"keywords": "tech reviews", "unsubscribedTrailer": "trailer1"}},
    "contentDetails": {"relatedPlaylists": {"uploads": "UU_DETAILS"}},
    "topicDetails": {"topicCategories": ["https://en.wikipedia.org/wiki/Technology"]},
}


class FakeDetailsClient:
    def __init__(self, channel=CHANNEL, broken=()):
        self.channel = channel
        self.broken = set(broken)
        self.channel_parts = []

    def list_channels(self, channel_ids, part="snippet,statistics"):
        self.channel_parts.append(part)
        return [self.channel] if self.channel else []

    def list_playlist_items(self, playlist_id, page_token=None, max_results=50, part="contentDetails"):
        if "playlistItems" in self.broken:
            raise YouTubeApiError("playlist gone", status_code=404)
        return {"items": [{"contentDetails": {"videoId": v}} for v in ("v1", "v2", "v3")][:max_results]}

    def list_videos(self, video_ids, part="snippet,statistics,contentDetails,status"):
        dates = {"v1": "2024-01-01T00:00:00Z", "v2": "2024-03-01T00:00:00Z", "v3": "2023-06-01T00:00:00Z"}
        return [
            {"id": v, "snippet": {"title": v, "publishedAt": dates[v]}, "contentDetails": {"duration": "PT4M"}}
            for v in video_ids
        ]

    def list_playlists(self, channel_id, max_results=50):
        if "playlists" in self.broken:
            raise YouTubeApiError("playlists failed", status_code=500)
        return [{"id": "PL1", "snippet": {"title": "Best of"}, "contentDetails": {"itemCount": 4}}]

    def list_channel_sections(self, channel_id):
        return [{"id": "S1", "snippet": {"type": "singlePlaylist", "position": 0}, "contentDetails": {"playlists": ["PL1"]}}]


def make_service(client):
    return ChannelDetailsService(client, VideoCollector(client, delay_seconds=0))


def test_parts_for_options():
    assert parts_for_options(["basicInfo", "thumbnails", "statistics"]) == ["snippet", "statistics"]
    assert parts_for_options(["allVideos", "contentDetails"]) == ["contentDetails"]
    assert parts_for_options(["playlists"]) == ["snippet"]


def test_unknown_options():
    assert unknown_options(["basicInfo", "excel", "allVideos", "bogus"]) == ["bogus", "excel"]


def test_fetch_channel_data_sections():
    client = FakeDetailsClient()
    data = make_service(client).fetch_channel_data(
        "UC_DETAILS",
        ["basicInfo", "statistics", "thumbnails", "branding", "topicDetails", "playlists", "channelSections"],
    )

    assert client.channel_parts == ["snippet,statistics,brandingSettings,topicDetails"]
    assert data["basicInfo"]["customUrl"] == "@details"
    assert data["basicInfo"]["country"] == "GB"
    assert data["statistics"]["subscriberCount"] == "1200"
    assert data["thumbnails"] == {"default": {"url": "https://img/c.jpg"}}
    assert data["branding"]["keywords"] == "tech reviews"
    assert data["topicDetails"]["topicCategories"]
    assert data["playlists"] == [
        {"id": "PL1", "title": "Best of", "description": None, "publishedAt": None, "thumbnails": None, "videoCount": 4}
    ]
    assert data["channelSections"][0]["playlistIds"] == ["PL1"]
    assert data["faults"] == []
    assert "allVideos" not in data


def test_fetch_channel_data_all_and_recent_videos():
    client = FakeDetailsClient()
    data = make_service(client).fetch_channel_data("UC_DETAILS", ["allVideos", "recentVideos"])

    assert [v["id"] for v in data["allVideos"]] == ["v2", "v1", "v3"]
    assert data["allVideos"][0]["duration"] == "4:00"
    assert len(data["recentVideos"]) == 3
    assert client.channel_parts == ["contentDetails"]


def test_channel_without_uploads_playlist_has_no_videos():
    channel = {key: value for key, value in CHANNEL.items() if key != "contentDetails"}
    client = FakeDetailsClient(channel=channel)

    data = make_service(client).fetch_channel_data("UC_DETAILS", ["allVideos"])

    assert data["allVideos"] == []
    assert [(f["stage"], f["code"]) for f in data["faults"]] == [("uploads_playlist", "not_found")]
    assert len(client.channel_parts) == 1


def test_best_effort_sections_report_faults():
    client = FakeDetailsClient(broken={"playlists", "playlistItems"})

    data = make_service(client).fetch_channel_data("UC_DETAILS", ["basicInfo", "allVideos", "playlists"])

    assert data["basicInfo"]["title"] == "Details Channel"
    assert data["allVideos"] == []
    assert data["playlists"] == []
    stages = [fault["stage"] for fault in data["faults"]]
    assert stages == ["playlist_page", "playlists"]


def test_missing_channel_is_none():
    client = FakeDetailsClient(channel=None)

    assert make_service(client).fetch_channel_data("UC_NOPE", ["basicInfo"]) is None
