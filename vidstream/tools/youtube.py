"""
Async YouTube Data API v3 client.

Uses ``httpx`` for the ``search``, ``videos`` and ``channels`` endpoints
and maps responses onto ``Video`` / ``ChannelProfile`` records.

Error mapping:
- no API key configured -> ``MissingYouTubeApiKeyError`` before any request
- 403 mentioning quota, or with an ``error.errors[].reason`` of
  ``quotaExceeded`` -> ``YouTubeQuotaExceededError``
- any other non-2xx -> ``YouTubeAPIError`` with the status code

Transport failures (connection resets, timeouts) are retried with
exponential backoff; API errors are not.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

import httpx

from vidstream.config import YOUTUBE_API_BASE_URL, get_settings
from vidstream.exceptions import (
    ChannelNotFoundError,
    MissingYouTubeApiKeyError,
    YouTubeAPIError,
    YouTubeQuotaExceededError,
)
from vidstream.models import ChannelProfile, Video
from vidstream.utils import parse_timestamp, with_retry

logger = logging.getLogger(__name__)

CATEGORY_IDS: Dict[str, str] = {
    "technology": "28",
    "business": "27",
    "lifestyle": "26",
    "finance": "25",
    "health": "26",
    "education": "27",
    "gaming": "20",
    "entertainment": "24",
    "news": "25",
    "sports": "17",
    "travel": "19",
    "food": "26",
    "music": "10",
}

_ISO_DURATION = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")

_VIDEO_FIELDS = (
    "items(id,snippet(publishedAt,title,description,tags,"
    "thumbnails/default/url,thumbnails/medium/url),"
    "statistics(viewCount,likeCount,commentCount))"
)
_VIDEO_DETAIL_FIELDS = _VIDEO_FIELDS[:-1] + ",contentDetails(duration))"


def get_category_id(category: str) -> str:
    """YouTube video category id for a niche name, defaulting to technology."""
    return CATEGORY_IDS.get(category.lower(), CATEGORY_IDS["technology"])


def parse_iso_duration(duration: str) -> int:
    """Seconds in an ISO-8601 ``PT#H#M#S`` duration; 0 when unparseable."""
    match = _ISO_DURATION.search(duration or "")
    if not match:
        return 0
    hours, minutes, seconds = (int(group or 0) for group in match.groups())
    return hours * 3600 + minutes * 60 + seconds


def _is_quota_error(status_code: int, message: str, payload: Any) -> bool:
    if status_code != 403:
        return False
    if re.search(r"quota", message, re.IGNORECASE):
        return True
    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
        errors = payload["error"].get("errors")
        if isinstance(errors, list):
            return any(
                isinstance(item, dict) and item.get("reason") == "quotaExceeded"
                for item in errors
            )
    return False


def parse_video_item(item: Dict[str, Any]) -> Video:
    snippet = item.get("snippet") or {}
    stats = item.get("statistics") or {}
    details = item.get("contentDetails") or {}
    thumbnails = snippet.get("thumbnails") or {}
    thumbnail = (thumbnails.get("medium") or {}).get("url") or (
        thumbnails.get("default") or {}
    ).get("url") or ""

    return Video.from_dict({
        "id": item.get("id", ""),
        "title": snippet.get("title") or "Untitled video",
        "description": snippet.get("description", ""),
        "views": stats.get("viewCount"),
        "likes": stats.get("likeCount"),
        "comments": stats.get("commentCount"),
        "published_at": snippet.get("publishedAt"),
        "tags": snippet.get("tags") or [],
        "duration": parse_iso_duration(details.get("duration", "PT0S")),
        "thumbnail": thumbnail,
    })


class YouTubeClient:
    """Async wrapper around the YouTube Data API.

    Args:
        api_key: API key. Falls back to the configured ``YOUTUBE_API_KEY``.
        base_url: API root (overridable for tests and proxies).
        timeout: Per-request timeout in seconds.
        transport: Optional ``httpx`` transport, used by tests to mock
            responses.

    Usage::

        client = YouTubeClient()
        total, videos = await client.search_keyword("home espresso")
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = YOUTUBE_API_BASE_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        region_code: str = "US",
        relevance_language: str = "en",
    ) -> None:
        self.api_key: str = api_key if api_key is not None else get_settings().youtube_api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.region_code = region_code
        self.relevance_language = relevance_language
        self._transport = transport

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _call(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """GET ``<base_url>/<endpoint>`` and return the decoded JSON body.

        Raises:
            MissingYouTubeApiKeyError: No API key is configured.
            YouTubeQuotaExceededError: The quota is exhausted.
            YouTubeAPIError: Any other non-2xx response.
        """
        if not self.api_key:
            raise MissingYouTubeApiKeyError()

        query = {k: str(v) for k, v in params.items() if v is not None}
        query["key"] = self.api_key
        response = await self._get(endpoint, query)

        if response.is_success:
            return response.json()

        message = response.text
        try:
            payload: Any = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
            error_message = payload["error"].get("message")
            if isinstance(error_message, str):
                message = error_message

        if _is_quota_error(response.status_code, message, payload):
            logger.warning("YouTube quota exceeded on %s", endpoint)
            raise YouTubeQuotaExceededError(message)

        raise YouTubeAPIError(
            f"YouTube API {endpoint} request failed: {response.status_code} {message}",
            endpoint=endpoint,
            status_code=response.status_code,
        )

    @with_retry(
        max_attempts=3,
        base_delay=1.0,
        retryable_exceptions=(httpx.TransportError,),
        operation_name="youtube_request",
    )
    async def _get(self, endpoint: str, query: Dict[str, str]) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(f"{self.base_url}/{endpoint}", params=query)
        logger.debug("YouTube %s -> %d", endpoint, response.status_code)
        return response

    async def _fetch_videos(self, video_ids: List[str], with_details: bool = True) -> List[Video]:
        if not video_ids:
            return []
        parts = "snippet,statistics,contentDetails" if with_details else "snippet,statistics"
        fields = _VIDEO_DETAIL_FIELDS if with_details else _VIDEO_FIELDS
        data = await self._call("videos", {
            "part": parts,
            "id": ",".join(video_ids[:50]),
            "fields": fields,
        })
        return [parse_video_item(item) for item in data.get("items") or [] if item.get("id")]

    @staticmethod
    def _video_ids(search_data: Dict[str, Any]) -> List[str]:
        ids = []
        for item in search_data.get("items") or []:
            video_id = (item.get("id") or {}).get("videoId")
            if video_id:
                ids.append(video_id)
        return ids

    # ------------------------------------------------------------------
    # Channels
    # ------------------------------------------------------------------

    async def search_channel(self, query: str) -> str:
        """Channel id of the best match for *query*.

        Raises:
            ChannelNotFoundError: The search returned no channel.
        """
        data = await self._call("search", {
            "part": "snippet",
            "q": query,
            "type": "channel",
            "maxResults": 1,
            "fields": "items(id/channelId,snippet(channelId,title))",
        })
        items = data.get("items") or []
        first = items[0] if items else {}
        channel_id = (first.get("id") or {}).get("channelId") or (
            first.get("snippet") or {}
        ).get("channelId")
        if not channel_id:
            raise ChannelNotFoundError(f"Channel not found: {query}")
        return channel_id

    async def fetch_channel_profile(self, query: str) -> ChannelProfile:
        channel_id = await self.search_channel(query)
        data = await self._call("channels", {
            "part": "snippet,statistics",
            "id": channel_id,
            "maxResults": 1,
            "fields": (
                "items(id,snippet(title,description,publishedAt,thumbnails/default/url),"
                "statistics(viewCount,subscriberCount))"
            ),
        })
        items = data.get("items") or []
        if not items:
            raise ChannelNotFoundError(f"Unable to load channel details for {query}")

        snippet = items[0].get("snippet") or {}
        stats = items[0].get("statistics") or {}
        return ChannelProfile(
            channel_id=channel_id,
            channel_name=snippet.get("title") or "Unknown channel",
            subscribers=int(stats.get("subscriberCount") or 0),
            total_views=int(stats.get("viewCount") or 0),
            description=snippet.get("description") or "",
            joined_date=parse_timestamp(snippet.get("publishedAt")),
            thumbnail=((snippet.get("thumbnails") or {}).get("default") or {}).get("url"),
        )

    async def fetch_channel_videos(self, channel_id: str, max_results: int = 25) -> List[Video]:
        """Most recent uploads of a channel, newest first, with statistics."""
        search_data = await self._call("search", {
            "part": "snippet",
            "channelId": channel_id,
            "order": "date",
            "type": "video",
            "maxResults": max_results,
            "fields": "items(id/videoId)",
        })
        videos = await self._fetch_videos(self._video_ids(search_data))
        logger.debug("Fetched %d videos for channel %s", len(videos), channel_id)
        return videos

    async def fetch_channel_top_videos(self, channel_name: str, max_results: int = 25) -> List[Video]:
        """Most viewed videos of the channel best matching *channel_name*."""
        channel_id = await self.search_channel(channel_name)
        search_data = await self._call("search", {
            "part": "snippet",
            "channelId": channel_id,
            "order": "viewCount",
            "type": "video",
            "maxResults": max_results,
            "fields": "items(id/videoId)",
        })
        video_ids = self._video_ids(search_data)
        if not video_ids:
            raise ChannelNotFoundError(f"No videos found for channel {channel_name}")
        return await self._fetch_videos(video_ids, with_details=False)

    # ------------------------------------------------------------------
    # Keywords and trends
    # ------------------------------------------------------------------

    async def search_keyword(self, keyword: str, max_results: int = 25) -> Tuple[int, List[Video]]:
        """Search videos for *keyword*.

        Returns:
            ``(total_results, videos)``; the total falls back to the number
            of videos when the API omits it.
        """
        search_data = await self._call("search", {
            "part": "snippet",
            "q": keyword,
            "type": "video",
            "maxResults": max_results,
            "regionCode": self.region_code,
            "relevanceLanguage": self.relevance_language,
            "fields": "items(id/videoId),pageInfo/totalResults",
        })
        videos = await self._fetch_videos(self._video_ids(search_data))
        total = (search_data.get("pageInfo") or {}).get("totalResults")
        return (int(total) if total is not None else len(videos)), videos

    async def fetch_trending_videos(self, category: str, max_results: int = 30) -> List[Video]:
        """Most popular videos in the category's YouTube video category."""
        data = await self._call("videos", {
            "part": "snippet,statistics",
            "chart": "mostPopular",
            "maxResults": max_results,
            "regionCode": self.region_code,
            "videoCategoryId": get_category_id(category),
            "fields": _VIDEO_FIELDS,
        })
        return [parse_video_item(item) for item in data.get("items") or [] if item.get("id")]
