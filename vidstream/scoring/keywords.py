"""
Keyword research scoring.

Turns raw search statistics (result counts, per-video views, likes,
comments, publish dates, tags) into bounded opportunity, competition and
trend scores, a difficulty class, and ranked related-keyword lists.

Count-like inputs span many orders of magnitude, so the competition score
compresses them logarithmically; rate-like inputs are compressed linearly
against a ceiling. Every function is pure and total: empty or malformed
input yields neutral values instead of exceptions.
"""

import logging
import math
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from vidstream.models import Confidence, Difficulty, KeywordData, RankedKeyword, Video
from vidstream.utils import (
    clamp,
    ensure_utc,
    format_number,
    round_half_up,
    round_to,
    utc_now,
)

logger = logging.getLogger(__name__)

STOP_WORDS = frozenset({
    "the", "and", "with", "from", "your", "that", "this", "into", "what",
    "when", "how", "tips", "2024", "2025", "guide", "tutorial", "best",
    "free", "full", "step", "learn",
})

_PHRASE_PUNCTUATION = str.maketrans({ch: " " for ch in "|:;#@!\"'\\/(),?"})

# Window separating "recent" from "older" uploads for trend scoring
RECENT_WINDOW_DAYS = 60


# ===========================================================================
# SCORES
# ===========================================================================


def calculate_keyword_score(search_volume: float, competition: float, trend: float) -> int:
    """
    Opportunity score for a keyword, 0--100.

    Weighted blend: volume 40% (saturating at 50,000), inverted competition
    35%, trend 25%.
    """
    volume_score = clamp(max(search_volume, 0) / 50000 * 100, 0, 100)
    competition_score = max(100 - clamp(competition, 0, 100), 0)
    raw = volume_score * 0.40 + competition_score * 0.35 + trend * 0.25
    return int(clamp(round_half_up(raw), 0, 100))


def classify_difficulty(competition: float, volume: float) -> Difficulty:
    score = competition * 0.6 + (volume / 1000) * 0.4
    if score < 40:
        return Difficulty.EASY
    if score < 70:
        return Difficulty.MEDIUM
    return Difficulty.HARD


def calculate_competition_score(
    total_results: float, engagement_rate: float, average_views: float
) -> int:
    """
    Competition score from live search statistics, 0--100.

    Args:
        total_results: Result count reported by the upstream search.
        engagement_rate: Mean ``(likes + comments) / views`` of the sample.
        average_views: Mean views of the sample.
    """
    volume_pressure = min(1.0, math.log10(max(total_results, 10)) / 6)
    engagement_pressure = clamp(engagement_rate / 0.08, 0.0, 1.0)
    view_pressure = min(1.0, math.log10(max(average_views, 100)) / 5)

    raw = volume_pressure * 50 + engagement_pressure * 30 + view_pressure * 30
    return int(clamp(round_half_up(raw), 0, 100))


def calculate_trend_score(recent_views: float, older_views: float) -> int:
    """
    Momentum score from views split into recent and older uploads.

    No data at all is neutral (50). With no older baseline the score is a
    high value derived from *recent_views* alone. Otherwise the
    recent/older ratio is clamped to [0.3, 3] and mapped so that 1.0 -> 50,
    each unit of ratio worth 30 points, clamped to [20, 100].
    """
    recent = max(recent_views, 0)
    older = max(older_views, 0)

    if not recent and not older:
        return 50

    if not older:
        return min(100, 80 + round_half_up(math.sqrt(recent + 1) % 20))

    ratio = recent / max(older, 1)
    bounded = clamp(ratio, 0.3, 3)
    return int(clamp(round_half_up(50 + (bounded - 1) * 30), 20, 100))


def calculate_cpc_estimate(search_volume: float, engagement_rate: float) -> float:
    base = clamp((max(search_volume, 0) / 50000) * 8, 0.35, 12)
    if engagement_rate > 0.06:
        bonus = 1.15
    elif engagement_rate > 0.03:
        bonus = 1.05
    else:
        bonus = 0.95
    return round_to(base * bonus, 2)


def keyword_confidence(score: int) -> Confidence:
    if score >= 80:
        return Confidence.HIGH
    if score >= 65:
        return Confidence.MEDIUM
    return Confidence.EMERGING


def predict_video_performance(keyword_score: int, channel_size: str = "small") -> Dict[str, float]:
    """Rough view/engagement/CTR projection for a keyword and channel size."""
    multiplier = {"small": 1.0, "medium": 2.5, "large": 5.0}.get(channel_size, 1.0)
    base_views = keyword_score * 100 * multiplier
    return {
        "estimated_views": int(math.floor(base_views)),
        "estimated_engagement": round_half_up(base_views * 0.08),
        "estimated_ctr": round_to(keyword_score / 100 * 8, 1),
    }


# ===========================================================================
# KEYWORD EXTRACTION
# ===========================================================================


def extract_keyword_phrases(text: str) -> List[str]:
    """Unigrams and bigrams of meaningful words, in order of appearance."""
    if not text:
        return []

    clean = " ".join(text.lower().translate(_PHRASE_PUNCTUATION).split())
    words = [w for w in clean.split(" ") if len(w) > 2 and w not in STOP_WORDS]

    phrases: Dict[str, None] = {}
    for index, word in enumerate(words):
        phrases[word] = None
        if index < len(words) - 1:
            phrases[f"{word} {words[index + 1]}"] = None
    return list(phrases)


def rank_keywords(videos: Iterable[Video], seed: str = "") -> List[str]:
    """
    Rank candidate keywords across a sample of videos.

    Each video contributes ``log10(views + 1)`` (1 for unviewed videos) to
    every distinct tag and title/description phrase it carries. The seed
    keyword itself is excluded.
    """
    seed_lower = seed.lower()
    weights: Dict[str, float] = {}

    for video in videos:
        candidates: Dict[str, None] = dict.fromkeys(tag.lower() for tag in video.tags)
        candidates.update(dict.fromkeys(extract_keyword_phrases(video.title)))
        candidates.update(dict.fromkeys(extract_keyword_phrases(video.description)))

        weight = math.log10(video.views + 1) if video.views > 0 else 1.0
        for keyword in candidates:
            if not keyword or keyword == seed_lower:
                continue
            weights[keyword] = weights.get(keyword, 0.0) + weight

    return [kw for kw, _ in sorted(weights.items(), key=lambda item: item[1], reverse=True)]


# ===========================================================================
# LIVE-DATA AGGREGATION
# ===========================================================================


def split_views_by_recency(
    videos: Iterable[Video], now: datetime, window_days: int = RECENT_WINDOW_DAYS
) -> Tuple[int, int]:
    """Sum views of uploads inside/outside the recency window.

    Videos without an upload date count toward neither bucket.
    """
    recent = 0
    older = 0
    for video in videos:
        if video.upload_date is None:
            continue
        age_days = (now - ensure_utc(video.upload_date)).total_seconds() / 86400
        if age_days <= window_days:
            recent += video.views
        else:
            older += video.views
    return recent, older


def build_monthly_searches(videos: Sequence[Video], now: datetime) -> List[int]:
    """Twelve monthly view buckets, oldest first."""
    buckets = [0] * 12
    for video in videos:
        if video.upload_date is None:
            continue
        published = ensure_utc(video.upload_date)
        months_ago = (now.year - published.year) * 12 + (now.month - published.month)
        if 0 <= months_ago < 12:
            buckets[11 - months_ago] += video.views

    if not any(buckets):
        for index, video in enumerate(videos[:6]):
            buckets[11 - index] = video.views

    return buckets


def build_keyword_data(
    keyword: str,
    videos: Sequence[Video],
    total_results: Optional[int] = None,
    now: Optional[datetime] = None,
) -> KeywordData:
    """
    Aggregate a keyword search sample into ``KeywordData``.

    Args:
        keyword: The searched keyword.
        videos: Videos returned for the search (with statistics).
        total_results: Result count reported by the search; defaults to
            the sample size.
        now: Reference time (defaults to the current UTC time).

    Returns:
        Keyword metrics. An empty sample yields a neutral record.
    """
    now = ensure_utc(now) if now is not None else utc_now()

    if not videos:
        logger.debug("No videos for keyword %r, returning neutral data", keyword)
        return KeywordData(
            keyword=keyword,
            search_volume=0,
            competition=0,
            trend=50,
            related_keywords=[],
            monthly_searches=[0] * 12,
            difficulty=classify_difficulty(0, 0),
            cpc=calculate_cpc_estimate(0, 0),
        )

    count = len(videos)
    total_views = sum(video.views for video in videos)
    total_engagement_rate = sum(
        (video.likes + video.comments) / video.views if video.views > 0 else 0.0
        for video in videos
    )
    average_views = total_views / count
    average_engagement_rate = total_engagement_rate / count
    recent, older = split_views_by_recency(videos, now)

    competition = calculate_competition_score(
        count if total_results is None else total_results,
        average_engagement_rate,
        average_views,
    )
    search_volume = round_half_up(max(average_views, recent / max(1, count)))

    return KeywordData(
        keyword=keyword,
        search_volume=search_volume,
        competition=competition,
        trend=calculate_trend_score(recent, older),
        related_keywords=rank_keywords(videos, keyword)[:6],
        monthly_searches=build_monthly_searches(videos, now),
        difficulty=classify_difficulty(competition, search_volume),
        cpc=calculate_cpc_estimate(search_volume, average_engagement_rate),
    )


def rank_keyword_opportunities(keyword_data: Iterable[KeywordData]) -> List[RankedKeyword]:
    """Score and order keywords by opportunity, best first."""
    ranked: List[RankedKeyword] = []
    for data in keyword_data:
        score = calculate_keyword_score(data.search_volume, data.competition, data.trend)
        difficulty = classify_difficulty(data.competition, data.search_volume)
        ranked.append(
            RankedKeyword(
                keyword=data.keyword,
                score=score,
                confidence=keyword_confidence(score),
                difficulty=difficulty,
                search_volume=data.search_volume,
                summary=(
                    f'"{data.keyword}" scores {score}/100 with '
                    f"{difficulty.value.lower()} difficulty and about "
                    f"{format_number(data.search_volume)} views per video."
                ),
            )
        )
    ranked.sort(key=lambda item: item.score, reverse=True)
    return ranked
