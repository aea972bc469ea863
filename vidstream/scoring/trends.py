"""
Trend alert synthesis.

Turns a list of ``KeywordData`` for a category into ranked ``TrendAlert``
objects: a momentum score blending trend and inverted competition, a
velocity band, an impact level from the keyword opportunity score, a
launch window, and a templated three-step action plan.
"""

import re
from datetime import datetime
from typing import List, Optional, Sequence

from vidstream.models import ImpactLevel, KeywordData, TrendAlert, Velocity
from vidstream.scoring.keywords import calculate_keyword_score
from vidstream.utils import ensure_utc, round_half_up, utc_now

MAX_ALERTS = 6


def determine_velocity(momentum_score: int) -> Velocity:
    if momentum_score >= 85:
        return Velocity.SURGING
    if momentum_score >= 70:
        return Velocity.RISING
    return Velocity.EMERGING


def determine_impact_level(keyword_score: int) -> ImpactLevel:
    if keyword_score >= 80:
        return ImpactLevel.HIGH
    if keyword_score >= 65:
        return ImpactLevel.MEDIUM
    return ImpactLevel.WATCH


def determine_opportunity_window(velocity: Velocity) -> str:
    if velocity is Velocity.SURGING:
        return "Next 24 hours"
    if velocity is Velocity.RISING:
        return "Next 3 days"
    return "Next 7 days"


def calculate_momentum_score(trend: float, competition: float) -> int:
    return min(100, round_half_up(trend * 0.65 + (100 - competition) * 0.35))


def estimate_projected_views(search_volume: int, change_7d: int) -> int:
    growth_multiplier = 1 + min(change_7d, 160) / 100
    return round_half_up(search_volume * growth_multiplier)


def _squash(text: str) -> str:
    return re.sub(r"\s+", "", text)


def _hyphenate(text: str) -> str:
    return re.sub(r"\s+", "-", text)


def build_summary(topic: str, change_24h: int, change_7d: int, window: str) -> str:
    return (
        f'Search interest for "{topic}" is up {change_24h}% in the last 24 hours '
        f"and {change_7d}% week-over-week. Launch within {window.lower()} to stay ahead."
    )


def build_action_plan(keyword: KeywordData, velocity: Velocity, change_7d: int) -> List[str]:
    supporting = [kw for kw in keyword.related_keywords if kw][:3]
    if supporting:
        supporting_copy = ", ".join(f'"{kw}"' for kw in supporting)
        hashtags = " ".join(f"#{_squash(kw)}" for kw in supporting)
    else:
        supporting_copy = f'adjacent pain points around "{keyword.keyword}"'
        hashtags = f"#{_squash(keyword.keyword)}"

    if velocity is Velocity.SURGING:
        urgency = "Go live or publish a fast-turnaround deep dive"
    elif velocity is Velocity.RISING:
        urgency = "Schedule a polished upload"
    else:
        urgency = "Outline a narrative video"

    return [
        f'{urgency} centered on "{keyword.keyword}" while momentum is building '
        f"({change_7d}% week-over-week growth).",
        f"Work supporting angles like {supporting_copy} into your title, "
        f"description, and mid-roll talking points.",
        f"Promote with Shorts or community posts highlighting the spike and "
        f"include discovery tags such as {hashtags}.",
    ]


def build_trend_alerts(
    keyword_data: Sequence[KeywordData],
    category: str,
    now: Optional[datetime] = None,
) -> List[TrendAlert]:
    """
    Build up to six trend alerts, strongest momentum first.

    Args:
        keyword_data: Enriched keywords for the category, in discovery order.
        category: Category label copied onto each alert.
        now: Timestamp stamped on the alerts.
    """
    now = ensure_utc(now) if now is not None else utc_now()
    alerts: List[TrendAlert] = []

    for index, keyword in enumerate(keyword_data[:MAX_ALERTS]):
        keyword_score = calculate_keyword_score(
            keyword.search_volume, keyword.competition, keyword.trend
        )
        momentum = calculate_momentum_score(keyword.trend, keyword.competition)
        change_24h = max(6, round_half_up(keyword.trend * 0.45 + index * 2))
        change_7d = max(change_24h + 4, round_half_up(keyword.trend * 0.85 + index * 3))
        velocity = determine_velocity(momentum)
        window = determine_opportunity_window(velocity)

        alerts.append(
            TrendAlert(
                id=f"{category}-{_hyphenate(keyword.keyword)}-{index}",
                topic=keyword.keyword,
                category=category,
                velocity=velocity,
                change_24h=change_24h,
                change_7d=change_7d,
                momentum_score=momentum,
                impact_level=determine_impact_level(keyword_score),
                opportunity_window=window,
                summary=build_summary(keyword.keyword, change_24h, change_7d, window),
                recommended_actions=build_action_plan(keyword, velocity, change_7d),
                related_keywords=list(keyword.related_keywords),
                search_volume=keyword.search_volume,
                competition=keyword.competition,
                trend_score=keyword.trend,
                projected_views=estimate_projected_views(keyword.search_volume, change_7d),
                last_updated=now,
            )
        )

    alerts.sort(key=lambda alert: alert.momentum_score, reverse=True)
    return alerts
