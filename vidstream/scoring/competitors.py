"""
Competitor benchmarking.

Derives per-channel metrics (average views, engagement, cadence, growth,
top keywords) from a channel's videos, and compares a base channel with
its competitors to find content gaps, trending topics and action items.

When live data is unavailable the caller can substitute simulated metrics.
Simulation is seeded from the channel name or query string, so the same
request always yields the same numbers.
"""

import math
import re
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from vidstream.models import (
    ChannelContext,
    ChannelProfile,
    CompetitorChannelMetrics,
    CompetitorInsights,
    CompetitorVideoSummary,
    Video,
)
from vidstream.utils import ensure_utc, round_half_up, utc_now

KEYWORD_STOP_WORDS = frozenset({
    "the", "and", "with", "from", "your", "that", "this", "into", "what",
    "when", "how", "tips", "2024", "2025", "guide", "tutorial", "best",
    "free", "full", "step", "learn", "official", "video", "episode",
    "series", "daily", "weekly", "review", "reviews", "new", "live",
    "premiere", "update", "for", "you", "why", "top", "vs", "behind",
    "scenes",
})

TOPIC_POOL = [
    "automation", "growth", "strategy", "ai tools", "case study",
    "content plan", "workflow", "shorts", "retention", "monetization",
    "community", "branding", "hooks", "storytelling", "analytics",
    "optimization", "productivity", "engagement", "distribution",
    "live stream", "podcast", "ads", "launch", "breakdown", "experiment",
]

TOP_KEYWORD_LIMIT = 6
TOP_VIDEO_LIMIT = 3
INSIGHT_LIMIT = 6
GROWTH_WINDOW_DAYS = 60

_TOKEN_SPLIT = re.compile(r"[^a-z0-9+#]+")


def _round1(value: float) -> float:
    return round_half_up(value * 10) / 10


# ===========================================================================
# KEYWORD COLLECTION
# ===========================================================================


def tokenize(text: str) -> List[str]:
    tokens = (token.lstrip("#").strip() for token in _TOKEN_SPLIT.split(text.lower()))
    return [t for t in tokens if len(t) >= 3 and t not in KEYWORD_STOP_WORDS]


def _add_keyword(raw: str, weight: float, weights: Dict[str, float]) -> None:
    for token in tokenize(raw):
        weights[token] = weights.get(token, 0.0) + weight


def collect_top_keywords(videos: Sequence[Video], limit: int = TOP_KEYWORD_LIMIT) -> List[str]:
    """
    Most representative keywords across a channel's videos.

    Each video weighs ``max(1, 4 * log10(views + 1))``. Tags count 1.8x,
    title words 1x, and the first twenty description words 0.35x with a
    linear decay floored at 0.15.
    """
    weights: Dict[str, float] = {}

    for video in videos:
        base_weight = max(1.0, math.log10(max(video.views, 0) + 1) * 4)
        for tag in video.tags:
            _add_keyword(tag, base_weight * 1.8, weights)
        for word in tokenize(video.title):
            _add_keyword(word, base_weight, weights)
        for index, word in enumerate(tokenize(video.description)[:20]):
            decay = max(0.15, 1 - index / 20)
            _add_keyword(word, base_weight * 0.35 * decay, weights)

    ranked = sorted(weights.items(), key=lambda item: item[1], reverse=True)
    return [keyword for keyword, _ in ranked[:limit]]


# ===========================================================================
# CHANNEL METRICS
# ===========================================================================


def compute_average_views(videos: Sequence[Video]) -> float:
    if not videos:
        return 0.0
    return sum(max(0, video.views) for video in videos) / len(videos)


def compute_channel_engagement_rate(videos: Sequence[Video]) -> float:
    """Mean per-video engagement as a percentage, one decimal place."""
    if not videos:
        return 0.0
    total = sum(
        (video.likes + video.comments) / video.views
        for video in videos
        if video.views > 0
    )
    return _round1(total / len(videos) * 100)


def compute_upload_frequency(videos: Sequence[Video]) -> float:
    """Videos per month over the span of upload dates (1 to 12 months)."""
    if not videos:
        return 0.0

    dates = sorted(ensure_utc(v.upload_date) for v in videos if v.upload_date is not None)
    if not dates:
        return _round1(len(videos) / 6)

    first, last = dates[0], dates[-1]
    months = (last.year - first.year) * 12 + (last.month - first.month) + 1
    months_spanned = max(1, min(12, months))
    return _round1(len(videos) / months_spanned)


def compute_growth_rate(videos: Sequence[Video], now: datetime) -> float:
    """
    Percentage change of views on recent uploads versus older ones.

    Undated videos count as recent. Without an older baseline, growth is
    ``min(120, round(2 * sqrt(recent)))``.
    """
    if not videos:
        return 0.0

    recent = 0
    older = 0
    for video in videos:
        views = max(0, video.views)
        if video.upload_date is None:
            recent += views
            continue
        age_days = (now - ensure_utc(video.upload_date)).total_seconds() / 86400
        if age_days <= GROWTH_WINDOW_DAYS:
            recent += views
        else:
            older += views

    if not older:
        if not recent:
            return 0.0
        return float(min(120, round_half_up(math.sqrt(recent) * 2)))

    return round_half_up((recent - older) / older * 1000) / 10


def compute_last_upload(videos: Sequence[Video]) -> Optional[datetime]:
    dates = [ensure_utc(v.upload_date) for v in videos if v.upload_date is not None]
    return max(dates) if dates else None


def compute_top_videos(
    videos: Sequence[Video], limit: int = TOP_VIDEO_LIMIT
) -> List[CompetitorVideoSummary]:
    ranked = sorted(videos, key=lambda video: video.views, reverse=True)[:limit]
    return [
        CompetitorVideoSummary(
            id=video.id, title=video.title, views=video.views, upload_date=video.upload_date
        )
        for video in ranked
    ]


def build_channel_metrics(
    profile: ChannelProfile,
    videos: Sequence[Video],
    source_query: str,
    now: Optional[datetime] = None,
) -> CompetitorChannelMetrics:
    """
    Metrics for one channel from its live profile and videos.

    With no videos, average views fall back to the profile's total views
    spread over at least twelve uploads.
    """
    now = ensure_utc(now) if now is not None else utc_now()

    if videos:
        average_views = round_half_up(compute_average_views(videos))
    elif profile.total_views:
        average_views = round_half_up(profile.total_views / 12)
    else:
        average_views = 0
    if not average_views:
        average_views = round_half_up(profile.total_views / max(1, len(videos) or 24))

    return CompetitorChannelMetrics(
        id=profile.channel_id,
        name=profile.channel_name,
        source_query=source_query,
        subscribers=profile.subscribers,
        total_views=profile.total_views,
        average_views=average_views,
        engagement_rate=compute_channel_engagement_rate(videos),
        upload_frequency=compute_upload_frequency(videos),
        growth_rate=compute_growth_rate(videos, now),
        last_upload=compute_last_upload(videos),
        top_videos=compute_top_videos(videos),
        top_keywords=collect_top_keywords(videos),
    )


# ===========================================================================
# DETERMINISTIC SIMULATION
# ===========================================================================


def hash_string(value: str) -> int:
    """Non-negative 32-bit string hash (``h * 31 + code`` with wraparound)."""
    hash_value = 0
    for char in value:
        hash_value = ((hash_value << 5) - hash_value + ord(char)) & 0xFFFFFFFF
    if hash_value >= 0x80000000:
        hash_value -= 0x100000000
    return abs(hash_value)


def format_display_name(value: str) -> str:
    cleaned = re.sub(r"[-_]+", " ", re.sub(r"^@", "", value))
    parts = [part for part in cleaned.split(" ") if part]
    if not parts:
        return value or "Unknown channel"
    return " ".join(part[0].upper() + part[1:] for part in parts)


def generate_keywords_from_seed(label: str, seed: int, limit: int) -> List[str]:
    """Tokens of *label*, topped up from the topic pool starting at *seed*."""
    words: Dict[str, None] = dict.fromkeys(tokenize(label))
    index = 0
    while len(words) < limit:
        words[TOPIC_POOL[(seed + index * 7) % len(TOPIC_POOL)]] = None
        index += 1
    return list(words)[:limit]


_SIMULATED_TITLE_SUFFIXES = ["deep dive", "strategy", "breakdown"]


def create_simulated_videos(
    seed: int,
    label: str,
    average_views: int,
    keywords: Sequence[str],
    now: datetime,
) -> List[CompetitorVideoSummary]:
    topics = list(keywords) or generate_keywords_from_seed(label, seed, 3)
    videos = []
    for index in range(min(TOP_VIDEO_LIMIT, len(topics))):
        topic = topics[index % len(topics)]
        variation = ((seed >> (index * 3)) % 40) - 15
        days_ago = 6 * (index + 1) + seed % 5
        videos.append(
            CompetitorVideoSummary(
                id=f"sim-{seed}-{index}",
                title=f"{topic[0].upper()}{topic[1:]} {_SIMULATED_TITLE_SUFFIXES[index]}",
                views=max(1200, round_half_up(average_views * (1 + variation / 100))),
                upload_date=now - timedelta(days=days_ago),
            )
        )
    return videos


def simulate_base_metrics(
    channel: ChannelContext, competitor_count: int, now: Optional[datetime] = None
) -> CompetitorChannelMetrics:
    now = ensure_utc(now) if now is not None else utc_now()
    seed = hash_string(channel.channel_id or channel.channel_name)
    average_views = max(
        2500,
        round_half_up(
            (channel.total_views or channel.subscribers * 150)
            / max(24, competitor_count * 8)
        ),
    )
    keywords = generate_keywords_from_seed(channel.channel_name, seed, TOP_KEYWORD_LIMIT)
    videos = create_simulated_videos(seed, channel.channel_name, average_views, keywords, now)

    return CompetitorChannelMetrics(
        id=channel.channel_id or f"sim-{seed}",
        name=channel.channel_name,
        source_query=channel.channel_name,
        subscribers=channel.subscribers,
        total_views=channel.total_views or average_views * 140,
        average_views=average_views,
        engagement_rate=_round1(3 + (seed % 35) / 10),
        upload_frequency=max(1.0, _round1(4 + (seed % 30) / 10)),
        growth_rate=_round1(((seed % 90) - 25) / 1.5),
        last_upload=videos[0].upload_date if videos else None,
        top_videos=videos,
        top_keywords=keywords,
        simulated=True,
    )


def simulate_competitor_metrics(
    query: str,
    base: CompetitorChannelMetrics,
    index: int,
    now: Optional[datetime] = None,
) -> CompetitorChannelMetrics:
    """Plausible metrics for a competitor, scaled from *base* and seeded by *query*."""
    now = ensure_utc(now) if now is not None else utc_now()
    seed = hash_string(f"{query}-{index}")
    subscriber_scale = 0.6 + (seed % 70) / 100
    view_scale = 0.55 + (seed % 90) / 100
    average_scale = 0.65 + (seed % 80) / 100

    average_views = max(1800, round_half_up(base.average_views * average_scale))
    keywords = generate_keywords_from_seed(query, seed, TOP_KEYWORD_LIMIT)
    videos = create_simulated_videos(seed, query, average_views, keywords, now)

    return CompetitorChannelMetrics(
        id=f"sim-{seed}",
        name=format_display_name(query),
        source_query=query,
        subscribers=max(1500, round_half_up(base.subscribers * subscriber_scale)),
        total_views=max(75000, round_half_up(base.total_views * view_scale)),
        average_views=average_views,
        engagement_rate=max(1.5, _round1(base.engagement_rate + ((seed % 50) - 25) / 5)),
        upload_frequency=max(1.0, _round1(base.upload_frequency + ((seed % 40) - 18) / 10)),
        growth_rate=_round1(((seed % 100) - 35) / 1.3),
        last_upload=videos[0].upload_date if videos else None,
        top_videos=videos,
        top_keywords=keywords,
        simulated=True,
    )


# ===========================================================================
# INSIGHTS
# ===========================================================================


def _strongest(competitors: Sequence[CompetitorChannelMetrics]) -> CompetitorChannelMetrics:
    strongest = competitors[0]
    for competitor in competitors[1:]:
        current = competitor.average_views * max(competitor.engagement_rate, 1)
        best = strongest.average_views * max(strongest.engagement_rate, 1)
        if current > best:
            strongest = competitor
    return strongest


def compute_insights(
    base: CompetitorChannelMetrics, competitors: Sequence[CompetitorChannelMetrics]
) -> CompetitorInsights:
    """
    Content gaps, trending topics and action items for *base*.

    Each competitor keyword contributes ``average_views / (rank + 1)``.
    Trending topics aggregate every competitor keyword; gaps only those the
    base channel does not already cover. Both keep the top six.
    """
    if not competitors:
        return CompetitorInsights()

    base_keywords = set(base.top_keywords)
    gaps: Dict[str, Tuple[float, str]] = {}
    trending: Dict[str, float] = {}

    for competitor in competitors:
        for rank, keyword in enumerate(competitor.top_keywords):
            weight = competitor.average_views / (rank + 1)
            trending[keyword] = trending.get(keyword, 0.0) + weight
            if keyword not in base_keywords:
                score, source = gaps.get(keyword, (0.0, competitor.name))
                gaps[keyword] = (score + weight, source)

    gap_entries = sorted(gaps.items(), key=lambda item: item[1][0], reverse=True)
    content_gaps = [keyword for keyword, _ in gap_entries[:INSIGHT_LIMIT]]
    trending_topics = [
        keyword
        for keyword, _ in sorted(trending.items(), key=lambda item: item[1], reverse=True)
    ][:INSIGHT_LIMIT]

    action_items: List[str] = []
    if gap_entries:
        keyword, (_, source) = gap_entries[0]
        action_items.append(
            f'Publish a video targeting "{keyword}" to close the gap with {source}.'
        )

    strongest = _strongest(competitors)
    frequency_delta = strongest.upload_frequency - base.upload_frequency
    if frequency_delta > 0.5:
        action_items.append(
            f"Increase upload cadence by about {frequency_delta:.1f} videos/month "
            f"to match {strongest.name}."
        )
    if strongest.engagement_rate > base.engagement_rate + 1:
        action_items.append(
            f"{strongest.name} captures more interaction "
            f"({strongest.engagement_rate:.1f}% vs {base.engagement_rate:.1f}%). "
            f"Study their hooks and calls to action."
        )

    if not action_items and trending_topics:
        action_items.append(
            f'Experiment with a series around "{trending_topics[0]}" to capture '
            f"emerging demand."
        )

    return CompetitorInsights(
        content_gaps=content_gaps,
        trending_topics=trending_topics,
        action_items=action_items,
    )
