"""
Tests for vidstream.tools.youtube -- the async YouTube Data API client.

Every test routes requests through ``httpx.MockTransport`` so no network
traffic leaves the process.
"""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from vidstream.config import reset_settings
from vidstream.exceptions import (
    ChannelNotFoundError,
    MissingYouTubeApiKeyError,
    RetryExhaustedError,
    YouTubeAPIError,
    YouTubeQuotaExceededError,
)
from vidstream.tools.youtube import (
    YouTubeClient,
    get_category_id,
    parse_iso_duration,
    parse_video_item,
)

BASE_URL = "https://youtube.test/v3"


class Recorder:
    """MockTransport handler that replays canned responses per endpoint."""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        endpoint = request.url.path.rsplit("/", 1)[-1]
        route = self.routes[endpoint]
        if callable(route):
            return route(request)
        status, body = route
        return httpx.Response(status, json=body)


def _client(handler, api_key="test-key"):
    return YouTubeClient(
        api_key=api_key,
        base_url=BASE_URL,
        transport=httpx.MockTransport(handler),
    )


VIDEO_ITEM = {
    "id": "vid1",
    "snippet": {
        "publishedAt": "2025-06-01T10:00:00Z",
        "title": "Home espresso setup",
        "description": "Gear list",
        "tags": ["espresso", "coffee"],
        "thumbnails": {"default": {"url": "https://img/d.jpg"}, "medium": {"url": "https://img/m.jpg"}},
    },
    "statistics": {"viewCount": "1500", "likeCount": "90", "commentCount": "12"},
    "contentDetails": {"duration": "PT1H2M3S"},
}


# ===========================================================================
# Pure helpers
# ===========================================================================


@pytest.mark.parametrize(
    "duration, expected",
    [("PT1H2M3S", 3723), ("PT4M", 240), ("PT45S", 45), ("", 0), ("garbage", 0)],
)
def test_parse_iso_duration(duration, expected):
    assert parse_iso_duration(duration) == expected


def test_get_category_id():
    assert get_category_id("Gaming") == "20"
    assert get_category_id("unknown-niche") == "28"


def test_parse_video_item():
    video = parse_video_item(VIDEO_ITEM)
    assert video.id == "vid1"
    assert video.views == 1500
    assert video.comments == 12
    assert video.duration == 3723
    assert video.thumbnail == "https://img/m.jpg"
    assert video.upload_date.year == 2025


def test_parse_video_item_defaults_title():
    video = parse_video_item({"id": "x", "snippet": {}, "statistics": {}})
    assert video.title == "Untitled video"
    assert video.views == 0


# ===========================================================================
# Error mapping
# ===========================================================================


class TestErrors:

    @pytest.mark.asyncio
    async def test_missing_key_raises_before_any_request(self):
        recorder = Recorder({})
        client = _client(recorder, api_key="")

        assert not client.has_api_key
        with pytest.raises(MissingYouTubeApiKeyError):
            await client.search_keyword("espresso")
        assert recorder.requests == []

    def test_key_falls_back_to_settings(self, monkeypatch):
        monkeypatch.setenv("YOUTUBE_API_KEY", "from-env")
        reset_settings()
        assert YouTubeClient().api_key == "from-env"

    @pytest.mark.asyncio
    async def test_quota_message(self):
        body = {"error": {"code": 403, "message": "The request cannot be completed because you have exceeded your quota."}}
        client = _client(Recorder({"search": (403, body)}))

        with pytest.raises(YouTubeQuotaExceededError, match="exceeded your quota"):
            await client.search_keyword("espresso")

    @pytest.mark.asyncio
    async def test_quota_reason(self):
        body = {"error": {"code": 403, "message": "Forbidden", "errors": [{"reason": "quotaExceeded"}]}}
        client = _client(Recorder({"search": (403, body)}))

        with pytest.raises(YouTubeQuotaExceededError):
            await client.search_keyword("espresso")

    @pytest.mark.asyncio
    async def test_plain_403_is_api_error(self):
        body = {"error": {"code": 403, "message": "API key not valid", "errors": [{"reason": "forbidden"}]}}
        client = _client(Recorder({"search": (403, body)}))

        with pytest.raises(YouTubeAPIError) as exc_info:
            await client.search_keyword("espresso")
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_server_error_carries_status_and_endpoint(self):
        client = _client(Recorder({"search": lambda request: httpx.Response(500, text="upstream exploded")}))

        with pytest.raises(YouTubeAPIError) as exc_info:
            await client.search_keyword("espresso")

        err = exc_info.value
        assert err.status_code == 500
        assert err.endpoint == "search"
        assert str(err) == "YouTube API search request failed: 500 upstream exploded"

    @pytest.mark.asyncio
    async def test_transport_errors_are_retried(self):
        attempts = []

        def fail(request):
            attempts.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        client = _client(Recorder({"search": fail}))
        with patch("vidstream.utils.asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(RetryExhaustedError):
                await client.search_keyword("espresso")

        assert len(attempts) == 3


# ===========================================================================
# Endpoints
# ===========================================================================


class TestEndpoints:

    @pytest.mark.asyncio
    async def test_search_keyword(self):
        recorder = Recorder({
            "search": (200, {"items": [{"id": {"videoId": "vid1"}}], "pageInfo": {"totalResults": 4200}}),
            "videos": (200, {"items": [VIDEO_ITEM]}),
        })
        client = _client(recorder)

        total, videos = await client.search_keyword("home espresso", max_results=10)

        assert total == 4200
        assert [v.id for v in videos] == ["vid1"]
        search_params = recorder.requests[0].url.params
        assert search_params["q"] == "home espresso"
        assert search_params["maxResults"] == "10"
        assert search_params["key"] == "test-key"
        assert recorder.requests[1].url.params["id"] == "vid1"

    @pytest.mark.asyncio
    async def test_search_keyword_total_falls_back_to_sample(self):
        recorder = Recorder({
            "search": (200, {"items": [{"id": {"videoId": "vid1"}}]}),
            "videos": (200, {"items": [VIDEO_ITEM]}),
        })
        total, _ = await _client(recorder).search_keyword("espresso")
        assert total == 1

    @pytest.mark.asyncio
    async def test_search_with_no_hits_skips_videos_call(self):
        recorder = Recorder({"search": (200, {"items": []})})
        total, videos = await _client(recorder).search_keyword("zzzz")

        assert (total, videos) == (0, [])
        assert len(recorder.requests) == 1

    @pytest.mark.asyncio
    async def test_fetch_channel_profile(self):
        recorder = Recorder({
            "search": (200, {"items": [{"id": {"channelId": "UC123"}}]}),
            "channels": (200, {"items": [{
                "id": "UC123",
                "snippet": {"title": "Coffee Lab", "description": "Brewing", "publishedAt": "2019-01-01T00:00:00Z"},
                "statistics": {"viewCount": "500000", "subscriberCount": "12000"},
            }]}),
        })

        profile = await _client(recorder).fetch_channel_profile("coffee lab")

        assert profile.channel_id == "UC123"
        assert profile.channel_name == "Coffee Lab"
        assert profile.subscribers == 12000
        assert profile.total_views == 500000
        assert profile.joined_date.year == 2019

    @pytest.mark.asyncio
    async def test_unknown_channel(self):
        recorder = Recorder({"search": (200, {"items": []})})
        with pytest.raises(ChannelNotFoundError, match="nobody"):
            await _client(recorder).fetch_channel_profile("nobody")

    @pytest.mark.asyncio
    async def test_top_videos_without_uploads(self):
        def search(request):
            if request.url.params.get("type") == "channel":
                return httpx.Response(200, json={"items": [{"id": {"channelId": "UC1"}}]})
            return httpx.Response(200, json={"items": []})

        with pytest.raises(ChannelNotFoundError, match="No videos"):
            await _client(Recorder({"search": search})).fetch_channel_top_videos("empty channel")

    @pytest.mark.asyncio
    async def test_fetch_trending_videos_uses_category(self):
        recorder = Recorder({"videos": (200, {"items": [VIDEO_ITEM, {"snippet": {}}]})})

        videos = await _client(recorder).fetch_trending_videos("gaming", max_results=5)

        assert [v.id for v in videos] == ["vid1"]
        params = recorder.requests[0].url.params
        assert params["chart"] == "mostPopular"
        assert params["videoCategoryId"] == "20"
