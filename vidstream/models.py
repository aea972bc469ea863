"""
Shared data types for the VidStream insights core.

Hierarchy of types
------------------
- **Enums**: ``Difficulty``, ``Confidence``, ``Priority``,
  ``RecommendationCategory``, ``Velocity``, ``ImpactLevel``, ``HealthStatus``
- **Upstream records**: ``Video``, ``ChannelProfile``
- **Keyword research**: ``KeywordData``, ``RankedKeyword``, ``TrendAlert``
- **Channel analytics**: ``ChannelHealth``, ``OptimizationRecommendation``,
  ``VideoOptimizationReport``, ``RealTimeStatsPoint``,
  ``RealTimeStatsSummary``, ``RealTimeStats``
- **Ideas**: ``DailyIdea``
- **Competitors**: ``CompetitorVideoSummary``, ``CompetitorChannelMetrics``,
  ``CompetitorInsights``, ``CompetitorAnalysis``
- **Boundary requests**: ``ChannelContext``, ``CompetitorAnalysisRequest``

Upstream records are read-only inputs. Everything else is derived on each
scoring pass and has no lifecycle beyond the call that produced it.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from vidstream.exceptions import BoundaryValidationError
from vidstream.utils import parse_timestamp


# =============================================================================
# ENUMS
# =============================================================================


class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class Confidence(str, Enum):
    """Coarse bucketing of a numeric score for display."""

    HIGH = "High"
    MEDIUM = "Medium"
    EMERGING = "Emerging"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


PRIORITY_ORDER: Dict[Priority, int] = {
    Priority.HIGH: 0,
    Priority.MEDIUM: 1,
    Priority.LOW: 2,
}


class RecommendationCategory(str, Enum):
    TITLE = "title"
    DESCRIPTION = "description"
    TAGS = "tags"
    THUMBNAIL = "thumbnail"
    UPLOAD_TIME = "upload-time"


class Velocity(str, Enum):
    SURGING = "surging"
    RISING = "rising"
    EMERGING = "emerging"


class ImpactLevel(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    WATCH = "Watch"


class HealthStatus(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    NEEDS_IMPROVEMENT = "needs-improvement"


def _serialize(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_serialize(v) for v in value]
    return value


class _Serializable:
    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready dict (enums as values, datetimes as ISO strings)."""
        return _serialize(asdict(self))  # type: ignore[call-overload]


# =============================================================================
# UPSTREAM RECORDS
# =============================================================================


@dataclass
class Video(_Serializable):
    """A video record as supplied by the upstream data source."""

    id: str
    title: str = ""
    description: str = ""
    views: int = 0
    likes: int = 0
    comments: int = 0
    upload_date: Optional[datetime] = None
    tags: List[str] = field(default_factory=list)
    duration: int = 0  # seconds
    thumbnail: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Video":
        """Build a video from a loosely-typed dict, defaulting sparse fields."""
        return cls(
            id=str(data.get("id", "")),
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            views=_as_count(data.get("views")),
            likes=_as_count(data.get("likes")),
            comments=_as_count(data.get("comments")),
            upload_date=parse_timestamp(
                data.get("upload_date") or data.get("published_at")
            ),
            tags=[str(tag) for tag in data.get("tags") or []],
            duration=_as_count(data.get("duration")),
            thumbnail=str(data.get("thumbnail") or ""),
        )


@dataclass
class ChannelProfile(_Serializable):
    """A channel (the signed-in user's or a competitor's)."""

    channel_id: str
    channel_name: str
    subscribers: int = 0
    total_views: int = 0
    description: str = ""
    joined_date: Optional[datetime] = None
    thumbnail: Optional[str] = None


def _as_count(value: Any) -> int:
    """Coerce API counters (often strings) to non-negative ints."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    return max(0, int(number))


# =============================================================================
# KEYWORD RESEARCH
# =============================================================================


@dataclass
class KeywordData(_Serializable):
    keyword: str
    search_volume: int
    competition: int
    trend: int
    related_keywords: List[str] = field(default_factory=list)
    monthly_searches: List[int] = field(default_factory=list)
    difficulty: Difficulty = Difficulty.EASY
    cpc: float = 0.0


@dataclass
class RankedKeyword(_Serializable):
    keyword: str
    score: int
    confidence: Confidence
    difficulty: Difficulty
    search_volume: int
    summary: str


@dataclass
class TrendAlert(_Serializable):
    id: str
    topic: str
    category: str
    velocity: Velocity
    change_24h: int
    change_7d: int
    momentum_score: int
    impact_level: ImpactLevel
    opportunity_window: str
    summary: str
    recommended_actions: List[str]
    related_keywords: List[str]
    search_volume: int
    competition: int
    trend_score: int
    projected_views: int
    last_updated: datetime


# =============================================================================
# CHANNEL ANALYTICS
# =============================================================================


@dataclass
class ChannelHealth(_Serializable):
    score: int
    status: HealthStatus


@dataclass
class OptimizationRecommendation(_Serializable):
    category: RecommendationCategory
    priority: Priority
    suggestion: str
    impact: int  # 0-100
    implementation: str


@dataclass
class VideoOptimizationReport(_Serializable):
    video_id: str
    overall_score: int
    title_score: int
    description_score: int
    tags_score: int
    recommendations: List[OptimizationRecommendation]
    estimated_impact: Dict[str, int]


@dataclass
class RealTimeStatsPoint(_Serializable):
    timestamp: Optional[datetime]
    label: str
    views: int
    likes: int
    comments: int
    watch_time_minutes: int
    live_viewers: int


@dataclass
class RealTimeStatsSummary(_Serializable):
    average_views: int = 0
    engagement_rate: float = 0.0
    engagement_change: float = 0.0
    views_change: float = 0.0
    watch_time_hours: float = 0.0
    total_engagement: int = 0
    total_views: int = 0


@dataclass
class RealTimeStats(_Serializable):
    points: List[RealTimeStatsPoint]
    summary: RealTimeStatsSummary
    generated_at: datetime


# =============================================================================
# IDEAS
# =============================================================================


@dataclass
class DailyIdea(_Serializable):
    id: str
    title: str
    summary: str
    focus_keyword: str
    confidence: Confidence
    score: int
    projected_views: int
    engagement_boost: int
    recommended_upload_time: str
    supporting_points: List[str]
    inspiration: str
    performance_lift: int
    trend_signal: str


# =============================================================================
# COMPETITORS
# =============================================================================


@dataclass
class CompetitorVideoSummary(_Serializable):
    id: str
    title: str
    views: int
    upload_date: Optional[datetime]


@dataclass
class CompetitorChannelMetrics(_Serializable):
    id: str
    name: str
    source_query: str
    subscribers: int
    total_views: int
    average_views: int
    engagement_rate: float  # percentage
    upload_frequency: float  # videos per month
    growth_rate: float  # percentage
    last_upload: Optional[datetime]
    top_videos: List[CompetitorVideoSummary] = field(default_factory=list)
    top_keywords: List[str] = field(default_factory=list)
    simulated: bool = False


@dataclass
class CompetitorInsights(_Serializable):
    content_gaps: List[str] = field(default_factory=list)
    trending_topics: List[str] = field(default_factory=list)
    action_items: List[str] = field(default_factory=list)


@dataclass
class CompetitorAnalysis(_Serializable):
    base_channel: CompetitorChannelMetrics
    competitors: List[CompetitorChannelMetrics]
    insights: CompetitorInsights
    generated_at: datetime


# =============================================================================
# BOUNDARY REQUESTS
# =============================================================================


def _coerce_number(value: Any, name: str, issues: List[str]) -> int:
    if value is None or value == "":
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        issues.append(f"{name} must be numeric, got {value!r}")
        return 0
    if not math.isfinite(number):
        issues.append(f"{name} must be finite")
        return 0
    if number < 0:
        issues.append(f"{name} must be non-negative")
        return 0
    return int(number)


@dataclass
class ChannelContext(_Serializable):
    """The caller's own channel, as described in a request body."""

    channel_name: str
    channel_id: str = ""
    subscribers: int = 0
    total_views: int = 0

    @classmethod
    def from_payload(cls, payload: Any) -> "ChannelContext":
        """
        Validate and normalise a channel payload.

        Raises:
            BoundaryValidationError: Listing every problem found.
        """
        issues: List[str] = []
        if not isinstance(payload, dict):
            raise BoundaryValidationError("channel", ["channel must be an object"])

        name = payload.get("channel_name", payload.get("channelName"))
        if not isinstance(name, str) or not name.strip():
            issues.append("channel_name must be a non-empty string")
            name = ""

        raw_id = payload.get("channel_id", payload.get("channelId", payload.get("id")))
        channel_id = "" if raw_id is None else str(raw_id).strip()

        subscribers = _coerce_number(payload.get("subscribers"), "subscribers", issues)
        total_views = _coerce_number(
            payload.get("total_views", payload.get("totalViews")), "total_views", issues
        )

        if issues:
            raise BoundaryValidationError("channel", issues)

        return cls(
            channel_name=name.strip(),
            channel_id=channel_id,
            subscribers=subscribers,
            total_views=total_views,
        )


@dataclass
class CompetitorAnalysisRequest(_Serializable):
    channel: ChannelContext
    competitors: List[str]

    @classmethod
    def from_payload(cls, payload: Any) -> "CompetitorAnalysisRequest":
        """
        Validate a competitor-analysis body.

        Competitor entries are trimmed and blanks dropped; an empty list
        after trimming is rejected.

        Raises:
            BoundaryValidationError: On a malformed body.
        """
        if not isinstance(payload, dict):
            raise BoundaryValidationError(
                "competitor_analysis", ["request body must be an object"]
            )

        channel = ChannelContext.from_payload(payload.get("channel"))

        competitors = payload.get("competitors")
        if not isinstance(competitors, list):
            raise BoundaryValidationError(
                "competitor_analysis", ["competitors must be an array"]
            )

        queries = [str(item).strip() for item in competitors if item is not None]
        queries = [query for query in queries if query]
        if not queries:
            raise BoundaryValidationError(
                "competitor_analysis",
                ["at least one competitor channel is required"],
            )

        return cls(channel=channel, competitors=queries)
