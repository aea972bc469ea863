"""
Deterministic scoring and ranking engine.

Every function here is pure: no I/O, no randomness, no hidden clock reads
when a reference time is passed in.
"""
from vidstream.scoring.keywords import (
    build_keyword_data,
    calculate_competition_score,
    calculate_keyword_score,
    calculate_trend_score,
    classify_difficulty,
    rank_keyword_opportunities,
    rank_keywords,
)
from vidstream.scoring.trends import build_trend_alerts
from vidstream.scoring.channel import (
    build_real_time_stats,
    calculate_channel_health,
    compute_engagement_rate,
    generate_optimization_report,
    predict_best_upload_times,
)
from vidstream.scoring.ideas import generate_daily_video_ideas
from vidstream.scoring.competitors import build_channel_metrics, compute_insights

__all__ = [
    "build_keyword_data", "calculate_competition_score", "calculate_keyword_score",
    "calculate_trend_score", "classify_difficulty", "rank_keyword_opportunities",
    "rank_keywords",
    "build_trend_alerts",
    "build_real_time_stats", "calculate_channel_health", "compute_engagement_rate",
    "generate_optimization_report", "predict_best_upload_times",
    "generate_daily_video_ideas",
    "build_channel_metrics", "compute_insights",
]
