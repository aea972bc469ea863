"""
Channel analytics: engagement, health, per-video optimization, and
real-time activity estimates.

All of these are additive rule systems rather than statistical models.
The contract is determinism: identical input always produces identical
output, and sparse input (no videos, zero views) degrades to neutral
values instead of raising.
"""

import re
from datetime import datetime
from typing import List, Optional, Sequence

from vidstream.models import (
    PRIORITY_ORDER,
    ChannelHealth,
    HealthStatus,
    OptimizationRecommendation,
    Priority,
    RealTimeStats,
    RealTimeStatsPoint,
    RealTimeStatsSummary,
    RecommendationCategory,
    Video,
    VideoOptimizationReport,
)
from vidstream.utils import ensure_utc, round_half_up, utc_now

BEST_UPLOAD_TIMES = [
    "Tuesday 2:00 PM",
    "Wednesday 3:00 PM",
    "Thursday 2:30 PM",
    "Friday 1:00 PM",
    "Saturday 10:00 AM",
]

REAL_TIME_POINT_COUNT = 12


def compute_engagement_rate(video: Video) -> float:
    """``(likes + comments) / views`` with the division guarded for zero views."""
    return max(video.likes + video.comments, 0) / max(video.views, 1)


def predict_best_upload_times() -> List[str]:
    return list(BEST_UPLOAD_TIMES)


# ===========================================================================
# CHANNEL HEALTH
# ===========================================================================


def health_status(score: int) -> HealthStatus:
    if score >= 85:
        return HealthStatus.EXCELLENT
    if score >= 70:
        return HealthStatus.GOOD
    if score >= 50:
        return HealthStatus.FAIR
    return HealthStatus.NEEDS_IMPROVEMENT


def calculate_channel_health(
    videos: Sequence[Video], subscribers: int, total_views: int
) -> ChannelHealth:
    """
    Baseline 50, plus fixed bonuses for average views per video above
    50,000 (+20), average engagement above 10% (+15) and more than 100,000
    subscribers (+15); capped at 100.
    """
    average_views = total_views / max(len(videos), 1)
    average_engagement = (
        sum(compute_engagement_rate(video) for video in videos) / len(videos)
        if videos
        else 0.0
    )

    score = 50
    if average_views > 50000:
        score += 20
    if average_engagement > 0.1:
        score += 15
    if subscribers > 100000:
        score += 15

    score = min(score, 100)
    return ChannelHealth(score=score, status=health_status(score))


# ===========================================================================
# PER-VIDEO OPTIMIZATION
# ===========================================================================


def calculate_title_score(title: str) -> int:
    score = 50
    if 40 <= len(title) <= 60:
        score += 20
    if ":" in title or "|" in title:
        score += 15
    if re.search(r"\d", title):
        score += 10
    return min(score, 100)


def calculate_description_score(description: str) -> int:
    score = 50
    if len(description) >= 200:
        score += 20
    if "\n" in description:
        score += 15
    if "http" in description:
        score += 10
    return min(score, 100)


def calculate_tags_score(tags: Sequence[str]) -> int:
    score = 50
    if len(tags) >= 10:
        score += 20
    if len(tags) >= 15:
        score += 15
    if any(len(tag) > 20 for tag in tags):
        score += 10
    return min(score, 100)


def generate_optimization_report(
    video: Video, keywords: Sequence[str] = ()
) -> VideoOptimizationReport:
    """
    Rule-based optimization report for one video.

    Args:
        video: The video to audit.
        keywords: Candidate keywords, best first, used in the hints.

    Returns:
        Report with recommendations ordered high -> medium -> low priority.
    """
    title_score = calculate_title_score(video.title)
    description_score = calculate_description_score(video.description)
    tags_score = calculate_tags_score(video.tags)
    recommendations: List[OptimizationRecommendation] = []

    if title_score < 80:
        lead = f'keywords like "{keywords[0]}"' if keywords else "your primary keyword"
        recommendations.append(
            OptimizationRecommendation(
                category=RecommendationCategory.TITLE,
                priority=Priority.HIGH,
                suggestion=(
                    "Optimize title to include high-performing keywords. "
                    f'Current: "{video.title}"'
                ),
                impact=25,
                implementation=f"Add {lead} to the beginning of your title",
            )
        )

    if description_score < 75:
        recommendations.append(
            OptimizationRecommendation(
                category=RecommendationCategory.DESCRIPTION,
                priority=Priority.HIGH,
                suggestion="Expand description with more keywords and timestamps",
                impact=18,
                implementation=(
                    "Add timestamps for key sections and include 3-5 related "
                    "keywords naturally"
                ),
            )
        )

    if tags_score < 70:
        suggested = ", ".join(keywords[:3]) if keywords else "terms viewers search for"
        recommendations.append(
            OptimizationRecommendation(
                category=RecommendationCategory.TAGS,
                priority=Priority.MEDIUM,
                suggestion=f"Add more relevant tags. Current: {len(video.tags)} tags",
                impact=12,
                implementation=f"Add tags like: {suggested}",
            )
        )

    recommendations.append(
        OptimizationRecommendation(
            category=RecommendationCategory.UPLOAD_TIME,
            priority=Priority.MEDIUM,
            suggestion="Upload videos at optimal times for your audience",
            impact=15,
            implementation="Best times: Tuesday-Thursday, 2-4 PM (audience timezone)",
        )
    )
    recommendations.append(
        OptimizationRecommendation(
            category=RecommendationCategory.THUMBNAIL,
            priority=Priority.MEDIUM,
            suggestion="Create custom thumbnails with high contrast and clear text",
            impact=20,
            implementation="Use bright colors, large text, and face expressions for better CTR",
        )
    )

    # Thumbnail and upload-time quality are not measurable from the record,
    # so they enter the blend as fixed constants.
    overall = round_half_up(
        title_score * 0.25
        + description_score * 0.25
        + tags_score * 0.20
        + 75 * 0.15
        + 70 * 0.15
    )
    total_impact = sum(rec.impact for rec in recommendations)

    recommendations.sort(key=lambda rec: PRIORITY_ORDER[rec.priority])
    return VideoOptimizationReport(
        video_id=video.id,
        overall_score=overall,
        title_score=title_score,
        description_score=description_score,
        tags_score=tags_score,
        recommendations=recommendations,
        estimated_impact={
            "views_increase": round_half_up(total_impact * 1.5),
            "engagement_increase": round_half_up(total_impact * 0.8),
            "ctr_increase": round_half_up(total_impact * 0.5),
        },
    )


# ===========================================================================
# REAL-TIME ACTIVITY
# ===========================================================================


def estimate_average_view_duration(duration_seconds: float) -> float:
    base = duration_seconds if duration_seconds > 0 else 240
    lower_bound = min(base, 60)
    return max(min(base * 0.55, base), lower_bound)


def _hours_since(video: Video, now: datetime) -> float:
    if video.upload_date is None:
        return 1.0
    hours = (now - ensure_utc(video.upload_date)).total_seconds() / 3600
    return max(hours, 0.25)


def build_real_time_point(video: Video, now: datetime) -> RealTimeStatsPoint:
    hours = _hours_since(video, now)
    views_per_hour = round_half_up(video.views / hours)
    watch_minutes = video.views * estimate_average_view_duration(video.duration) / 60
    duration_minutes = max(video.duration / 60, 1)

    published = ensure_utc(video.upload_date) if video.upload_date else None
    return RealTimeStatsPoint(
        timestamp=published,
        label=f"{published:%b} {published.day}" if published else "",
        views=views_per_hour,
        likes=round_half_up(video.likes / hours),
        comments=round_half_up(video.comments / hours),
        watch_time_minutes=round_half_up(watch_minutes / hours),
        live_viewers=max(round_half_up(views_per_hour / duration_minutes), 0),
    )


def build_real_time_stats(
    videos: Sequence[Video], now: Optional[datetime] = None
) -> RealTimeStats:
    """
    Hourly activity estimates for a channel's most recent uploads.

    Args:
        videos: Channel videos, newest first.
        now: Reference time.

    Returns:
        Points in chronological order plus a summary comparing the two
        most recent uploads. No videos yields an empty, zeroed payload.
    """
    now = ensure_utc(now) if now is not None else utc_now()
    recent = list(videos[:REAL_TIME_POINT_COUNT])
    if not recent:
        return RealTimeStats(points=[], summary=RealTimeStatsSummary(), generated_at=now)

    points = [build_real_time_point(video, now) for video in recent]
    points.reverse()

    latest = points[-1]
    previous = points[-2] if len(points) > 1 else None
    latest_engagement = latest.likes + latest.comments
    previous_engagement = previous.likes + previous.comments if previous else 0

    total_watch_minutes = sum(
        video.views * estimate_average_view_duration(video.duration) / 60
        for video in recent
    )

    summary = RealTimeStatsSummary(
        average_views=round_half_up(sum(p.views for p in points) / len(points)),
        engagement_rate=(
            latest_engagement / latest.views * 100 if latest.views > 0 else 0.0
        ),
        engagement_change=(
            (latest_engagement - previous_engagement) / previous_engagement * 100
            if previous_engagement > 0
            else 0.0
        ),
        views_change=(
            (latest.views - previous.views) / previous.views * 100
            if previous is not None and previous.views > 0
            else 0.0
        ),
        watch_time_hours=total_watch_minutes / 60,
        total_engagement=sum(video.likes + video.comments for video in recent),
        total_views=sum(video.views for video in recent),
    )
    return RealTimeStats(points=points, summary=summary, generated_at=now)
