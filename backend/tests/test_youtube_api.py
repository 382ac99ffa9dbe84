import json

import pytest
import requests

from backend.app.config import Settings, load_settings
from backend.app.services.youtube_api import (
    YouTubeApiClient,
    YouTubeApiError,
    YouTubeNotConfiguredError,
    YouTubeQuotaExceededError,
    fault_code,
    uploads_playlist_from_channel,
)


class FakeResponse:
    def __init__(self, status_code, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload or {})

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeSession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def make_client(*responses):
    session = FakeSession(responses)
    client = YouTubeApiClient("KEY", "https://example.test/youtube/v3/", timeout=7, session=session)
    return client, session


def error_body(reason, message):
    return {"error": {"code": 403, "message": message, "errors": [{"reason": reason, "message": message}]}}


def test_get_builds_url_and_drops_empty_params():
    client, session = make_client(FakeResponse(200, {"items": []}))

    client.list_playlist_items("UU123")

    call = session.calls[0]
    assert call["url"] == "https://example.test/youtube/v3/playlistItems"
    assert call["timeout"] == 7
    assert call["params"]["key"] == "KEY"
    assert call["params"]["playlistId"] == "UU123"
    assert "pageToken" not in call["params"]


def test_search_channels_params():
    client, session = make_client(FakeResponse(200, {"items": [{"id": {"channelId": "UC1"}}]}))

    items = client.search_channels('"foo"', max_results=25)

    params = session.calls[0]["params"]
    assert params["type"] == "channel"
    assert params["order"] == "relevance"
    assert params["maxResults"] == 25
    assert params["q"] == '"foo"'
    assert items == [{"id": {"channelId": "UC1"}}]


def test_list_videos_joins_ids_and_skips_empty():
    client, session = make_client(FakeResponse(200, {"items": [{"id": "a"}, {"id": "b"}]}))

    assert client.list_videos([]) == []
    assert client.list_videos(["a", "b"]) == [{"id": "a"}, {"id": "b"}]
    assert session.calls[0]["params"]["id"] == "a,b"
    assert session.calls[0]["params"]["part"] == "snippet,statistics,contentDetails,status"


def test_403_is_quota_error():
    client, _session = make_client(FakeResponse(403, error_body("quotaExceeded", "The request cannot be completed")))

    with pytest.raises(YouTubeQuotaExceededError) as excinfo:
        client.list_channels("UC1")

    assert excinfo.value.status_code == 403
    assert excinfo.value.reason == "quotaExceeded"
    assert fault_code(excinfo.value) == "quota_exceeded"


def test_429_quota_text_is_quota_error():
    client, _session = make_client(FakeResponse(429, text="youtube.quota exhausted"))

    with pytest.raises(YouTubeQuotaExceededError):
        client.list_channels("UC1")


def test_other_status_is_generic_error():
    client, _session = make_client(FakeResponse(500, {"error": {"message": "Backend Error"}}))

    with pytest.raises(YouTubeApiError) as excinfo:
        client.list_channels("UC1")

    assert not isinstance(excinfo.value, YouTubeQuotaExceededError)
    assert excinfo.value.status_code == 500
    assert excinfo.value.message == "Backend Error"
    assert fault_code(excinfo.value) == "upstream_error"


def test_network_failure_is_generic_error():
    client, _session = make_client(requests.ConnectionError("refused"))

    with pytest.raises(YouTubeApiError) as excinfo:
        client.list_channels("UC1")

    assert excinfo.value.status_code is None


def test_uploads_playlist_from_channel():
    channel = {"id": "UC1", "contentDetails": {"relatedPlaylists": {"uploads": "UU1"}}}

    assert uploads_playlist_from_channel(channel) == "UU1"
    assert uploads_playlist_from_channel({"id": "UC2", "contentDetails": {"relatedPlaylists": {}}}) is None
    assert uploads_playlist_from_channel({"id": "UC3"}) is None


def test_default_client_uses_plain_requests_get(monkeypatch):
    calls = []

    def fake_get(url, params=None, timeout=None):
        calls.append(url)
        return FakeResponse(200, {"items": [{"id": "UC1"}]})

    monkeypatch.setattr(requests, "get", fake_get)
    client = YouTubeApiClient("KEY", "https://example.test/youtube/v3")

    assert client.list_channels("UC1") == [{"id": "UC1"}]
    assert calls == ["https://example.test/youtube/v3/channels"]


def test_settings_require_api_key():
    with pytest.raises(YouTubeNotConfiguredError):
        Settings().require_api_key()
    assert Settings(youtube_api_key="abc").require_api_key() == "abc"
    assert Settings().api_key_configured is False


def test_load_settings_from_environment(monkeypatch):
    monkeypatch.setenv("YOUTUBE_API_KEY", "  env-key  ")
    monkeypatch.setenv("MAX_VIDEO_IDS", "120")
    monkeypatch.setenv("MAX_PLAYLIST_PAGES", "not-a-number")
    monkeypatch.setenv("YOUTUBE_REQUEST_DELAY_SECONDS", "0")
    monkeypatch.setenv("YOUTUBE_API_BASE_URL", "https://proxy.test/v3/")

    settings = load_settings()

    assert settings.youtube_api_key == "env-key"
    assert settings.max_video_ids == 120
    assert settings.max_playlist_pages == 10
    assert settings.request_delay_seconds == 0
    assert settings.youtube_api_base_url == "https://proxy.test/v3"
