"""
Insights service: the caller-side composition of client, cache and scoring.

Every upstream call goes through ``RequestCache.fetch`` under a namespaced
key (``keyword-data:<keyword>``, ``channel-videos:<id>:<n>``...), so
concurrent requests for the same resource share one API call and repeat
requests within the TTL cost no quota.

Fallback policy lives here, not in the scoring engine:
- competitor analysis simulates metrics when no API key is configured or
  a single channel cannot be loaded
- daily ideas fall back to the niche template bank when the upstream
  reports a configuration or quota error
"""

import logging
from datetime import datetime
from typing import Any, List, Optional, Union

from vidstream.cache import RequestCache
from vidstream.config import Settings, get_settings
from vidstream.exceptions import (
    CompetitorAnalysisError,
    ConfigurationError,
    UpstreamError,
    ValidationError,
    YouTubeAPIError,
    YouTubeQuotaExceededError,
)
from vidstream.log import timed
from vidstream.models import (
    ChannelContext,
    ChannelProfile,
    CompetitorAnalysis,
    CompetitorAnalysisRequest,
    CompetitorChannelMetrics,
    DailyIdea,
    KeywordData,
    RealTimeStats,
    TrendAlert,
    Video,
)
from vidstream.scoring.channel import REAL_TIME_POINT_COUNT, build_real_time_stats
from vidstream.scoring.competitors import (
    build_channel_metrics,
    compute_insights,
    generate_keywords_from_seed,
    hash_string,
    simulate_base_metrics,
    simulate_competitor_metrics,
)
from vidstream.scoring.ideas import generate_daily_video_ideas
from vidstream.scoring.keywords import build_keyword_data, rank_keywords
from vidstream.scoring.trends import MAX_ALERTS, build_trend_alerts
from vidstream.tools.youtube import YouTubeClient
from vidstream.utils import ensure_utc, utc_now

logger = logging.getLogger(__name__)

KEYWORD_SUGGESTION_LIMIT = 10
COMPETITOR_KEYWORD_LIMIT = 12
COMPETITOR_VIDEO_SAMPLE = 40
IDEA_VIDEO_SAMPLE = 25


def _normalize(value: str, field_name: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"{field_name} must be a non-empty string")
    return cleaned


class InsightsService:
    """Cached, fallback-aware access to every insight the core produces.

    Args:
        client: YouTube client; built from *settings* when omitted.
        cache: Request cache; a fresh one using the configured TTL when
            omitted.
        settings: Settings; the process singleton when omitted.
    """

    def __init__(
        self,
        client: Optional[YouTubeClient] = None,
        cache: Optional[RequestCache] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.client = client or YouTubeClient(
            api_key=self.settings.youtube_api_key,
            base_url=self.settings.youtube_base_url,
            timeout=self.settings.request_timeout_seconds,
            region_code=self.settings.region_code,
            relevance_language=self.settings.relevance_language,
        )
        self.cache = cache or RequestCache(default_ttl=self.settings.cache_ttl_seconds)

    # ------------------------------------------------------------------
    # Keywords
    # ------------------------------------------------------------------

    async def get_keyword_data(self, keyword: str, now: Optional[datetime] = None) -> KeywordData:
        keyword = _normalize(keyword, "keyword")

        async def fetch() -> KeywordData:
            async with timed(logger, f"Keyword data for {keyword!r}"):
                total, videos = await self.client.search_keyword(keyword)
            return build_keyword_data(keyword, videos, total_results=total, now=now)

        return await self.cache.fetch(f"keyword-data:{keyword.lower()}", fetch)

    async def get_keyword_suggestions(self, keyword: str) -> List[str]:
        keyword = _normalize(keyword, "keyword")

        async def fetch() -> List[str]:
            async with timed(logger, f"Keyword suggestions for {keyword!r}"):
                _, videos = await self.client.search_keyword(keyword)
            return rank_keywords(videos, keyword)[:KEYWORD_SUGGESTION_LIMIT]

        return await self.cache.fetch(f"keyword-suggestions:{keyword.lower()}", fetch)

    async def get_trending_keywords(
        self, category: Optional[str] = None, now: Optional[datetime] = None
    ) -> List[KeywordData]:
        """
        Enriched data for up to six keywords trending in *category*.

        Keywords whose enrichment fails are skipped; quota exhaustion is
        not, since every remaining call would fail the same way.

        Raises:
            YouTubeAPIError: When no keyword could be enriched.
        """
        category = (category or self.settings.default_category).strip().lower()

        async def fetch() -> List[KeywordData]:
            async with timed(logger, f"Trending videos for {category}"):
                videos = await self.client.fetch_trending_videos(category)
            terms = list(dict.fromkeys(rank_keywords(videos)[:MAX_ALERTS]))

            enriched: List[KeywordData] = []
            for term in terms:
                try:
                    enriched.append(await self.get_keyword_data(term, now=now))
                except YouTubeQuotaExceededError:
                    raise
                except UpstreamError as e:
                    logger.warning("Skipping trending keyword %r: %s", term, e)

            if not enriched:
                raise YouTubeAPIError(
                    f"No trending keyword data available for {category}", endpoint="videos"
                )
            return enriched[:MAX_ALERTS]

        return await self.cache.fetch(f"trending-keywords:{category}", fetch)

    async def get_trend_alerts(
        self, category: Optional[str] = None, now: Optional[datetime] = None
    ) -> List[TrendAlert]:
        category = (category or self.settings.default_category).strip().lower()
        keyword_data = await self.get_trending_keywords(category, now=now)
        return build_trend_alerts(keyword_data, category, now=now)

    async def get_competitor_keywords(self, channel_name: str) -> List[str]:
        channel_name = _normalize(channel_name, "channel_name")

        async def fetch() -> List[str]:
            async with timed(logger, f"Top videos for {channel_name!r}"):
                videos = await self.client.fetch_channel_top_videos(channel_name)
            return rank_keywords(videos, channel_name)[:COMPETITOR_KEYWORD_LIMIT]

        return await self.cache.fetch(f"competitor-keywords:{channel_name.lower()}", fetch)

    # ------------------------------------------------------------------
    # Channels
    # ------------------------------------------------------------------

    async def get_channel_profile(self, query: str) -> ChannelProfile:
        query = _normalize(query, "query")

        async def fetch() -> ChannelProfile:
            async with timed(logger, f"Channel profile for {query!r}"):
                return await self.client.fetch_channel_profile(query)

        return await self.cache.fetch(f"channel-profile:{query.lower()}", fetch)

    async def get_channel_videos(self, channel_id: str, max_results: int = 25) -> List[Video]:
        channel_id = _normalize(channel_id, "channel_id")

        async def fetch() -> List[Video]:
            async with timed(logger, f"Channel videos for {channel_id}"):
                return await self.client.fetch_channel_videos(channel_id, max_results)

        return await self.cache.fetch(f"channel-videos:{channel_id}:{max_results}", fetch)

    async def get_real_time_stats(
        self, channel_id: str, now: Optional[datetime] = None
    ) -> RealTimeStats:
        videos = await self.get_channel_videos(channel_id, REAL_TIME_POINT_COUNT)
        return build_real_time_stats(videos, now=now)

    # ------------------------------------------------------------------
    # Competitors
    # ------------------------------------------------------------------

    async def analyze_competitors(
        self,
        request: Union[CompetitorAnalysisRequest, Any],
        now: Optional[datetime] = None,
    ) -> CompetitorAnalysis:
        """
        Benchmark the request's channel against its competitors.

        Args:
            request: A validated request, or a raw payload to validate.
            now: Reference time.

        Raises:
            CompetitorAnalysisError: No competitor remains after trimming.
            BoundaryValidationError: A raw payload is malformed.
        """
        if not isinstance(request, CompetitorAnalysisRequest):
            request = CompetitorAnalysisRequest.from_payload(request)

        queries = [query.strip() for query in request.competitors if query.strip()]
        if not queries:
            raise CompetitorAnalysisError("At least one competitor channel is required")

        now = ensure_utc(now) if now is not None else utc_now()

        if not self.client.has_api_key:
            logger.warning("No YouTube API key configured, simulating competitor analysis")
            base = simulate_base_metrics(request.channel, len(queries), now=now)
            competitors = [
                simulate_competitor_metrics(query, base, index, now=now)
                for index, query in enumerate(queries)
            ]
        else:
            base = await self._base_metrics(request.channel, len(queries), now)
            competitors = []
            for index, query in enumerate(queries):
                competitors.append(await self._competitor_metrics(query, base, index, now))

        return CompetitorAnalysis(
            base_channel=base,
            competitors=competitors,
            insights=compute_insights(base, competitors),
            generated_at=now,
        )

    async def _base_metrics(
        self, channel: ChannelContext, competitor_count: int, now: datetime
    ) -> CompetitorChannelMetrics:
        if not channel.channel_id:
            return simulate_base_metrics(channel, competitor_count, now=now)

        profile = ChannelProfile(
            channel_id=channel.channel_id,
            channel_name=channel.channel_name,
            subscribers=channel.subscribers,
            total_views=channel.total_views,
        )
        try:
            videos = await self.get_channel_videos(channel.channel_id, COMPETITOR_VIDEO_SAMPLE)
        except UpstreamError as e:
            logger.warning("Unable to load base channel videos, simulating: %s", e)
            return simulate_base_metrics(channel, competitor_count, now=now)

        metrics = build_channel_metrics(profile, videos, channel.channel_name, now=now)
        if not metrics.top_keywords:
            metrics.top_keywords = generate_keywords_from_seed(
                channel.channel_name, hash_string(channel.channel_name), 6
            )
        return metrics

    async def _competitor_metrics(
        self, query: str, base: CompetitorChannelMetrics, index: int, now: datetime
    ) -> CompetitorChannelMetrics:
        try:
            profile = await self.get_channel_profile(query)
            videos = await self.get_channel_videos(profile.channel_id, COMPETITOR_VIDEO_SAMPLE)
        except UpstreamError as e:
            logger.warning("Falling back to simulated data for %r: %s", query, e)
            return simulate_competitor_metrics(query, base, index, now=now)

        metrics = build_channel_metrics(profile, videos, query, now=now)
        if not metrics.top_keywords:
            metrics.top_keywords = generate_keywords_from_seed(
                profile.channel_name, hash_string(profile.channel_name + query), 6
            )
        return metrics

    # ------------------------------------------------------------------
    # Ideas
    # ------------------------------------------------------------------

    async def get_daily_ideas(
        self,
        profile: Optional[ChannelProfile] = None,
        count: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> List[DailyIdea]:
        """
        Daily ideas for *profile*, from its own videos where available.

        Configuration and quota errors degrade to the niche template bank;
        other upstream failures propagate.
        """
        count = self.settings.idea_count if count is None else count
        videos: List[Video] = []

        if profile is not None and profile.channel_id:
            try:
                videos = await self.get_channel_videos(profile.channel_id, IDEA_VIDEO_SAMPLE)
            except (ConfigurationError, YouTubeQuotaExceededError) as e:
                logger.warning("Generating ideas without channel videos: %s", e)

        return generate_daily_video_ideas(profile, videos, count=count, now=now)
