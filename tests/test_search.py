import pytest
import requests

from songguess import search
from songguess.config import Settings
from songguess.errors import QuotaExceededError, TransportError, ValidationError

SETTINGS = Settings(youtube_api_key="test-key")


class FakeResponse:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self._payload = payload

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        return self._payload


ITEMS = {
    "items": [
        {
            "id": {"videoId": "abc"},
            "snippet": {"title": "Song A", "thumbnails": {"default": {"url": "https://i.ytimg.com/a.jpg"}}},
        },
        {"id": {"channelId": "xyz"}, "snippet": {"title": "A channel"}},
    ]
}


def test_results_are_formatted(monkeypatch):
    captured = {}

    def fake_get(url, params=None, timeout=None):
        captured.update(url=url, params=params, timeout=timeout)
        return FakeResponse(200, ITEMS)

    monkeypatch.setattr(search.requests, "get", fake_get)
    results = search.search_youtube("song a", SETTINGS)

    assert results == [
        {
            "videoId": "abc",
            "title": "Song A",
            "thumbnail": "https://i.ytimg.com/a.jpg",
            "url": "https://www.youtube.com/watch?v=abc",
        }
    ]
    assert captured["params"]["q"] == "song a"
    assert captured["params"]["key"] == "test-key"
    assert captured["params"]["type"] == "video"
    assert captured["params"]["maxResults"] == 10
    assert captured["params"]["videoCategoryId"] == "10"


def test_quota_exhaustion_maps_to_429(monkeypatch):
    payload = {"error": {"message": "quota", "errors": [{"reason": "quotaExceeded"}]}}
    monkeypatch.setattr(search.requests, "get", lambda *a, **k: FakeResponse(403, payload))
    with pytest.raises(QuotaExceededError) as info:
        search.search_youtube("song", SETTINGS)
    assert info.value.status_code == 429


def test_other_api_errors_carry_message(monkeypatch):
    payload = {"error": {"message": "Bad key", "errors": [{"reason": "keyInvalid"}]}}
    monkeypatch.setattr(search.requests, "get", lambda *a, **k: FakeResponse(400, payload))
    with pytest.raises(TransportError) as info:
        search.search_youtube("song", SETTINGS)
    assert str(info.value) == "YouTube API error: Bad key"
    assert info.value.status_code == 500


def test_network_failure(monkeypatch):
    def boom(*_args, **_kwargs):
        raise requests.ConnectionError("down")

    monkeypatch.setattr(search.requests, "get", boom)
    with pytest.raises(TransportError):
        search.search_youtube("song", SETTINGS)


def test_missing_term_or_key():
    with pytest.raises(ValidationError):
        search.search_youtube("  ", SETTINGS)
    with pytest.raises(TransportError) as info:
        search.search_youtube("song", Settings())
    assert "API key missing" in str(info.value)
