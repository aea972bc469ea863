"""
Tests for vidstream.scoring.ideas -- daily video idea generation.

Covers:
    - The exact-count guarantee for 0, 1 and many videos
    - Idea score bounds and the per-path confidence thresholds
    - A high-momentum upload landing in the High band
    - Focus-topic extraction and niche detection
    - Niche-bank cycling
"""

from datetime import timedelta

import pytest

from vidstream.models import ChannelProfile, Confidence, Video
from vidstream.scoring.channel import BEST_UPLOAD_TIMES
from vidstream.scoring.ideas import (
    NICHE_BANK,
    IdeaContext,
    build_context,
    build_fallback_ideas,
    build_idea_from_video,
    calculate_idea_score,
    detect_niche,
    engagement_boost,
    extract_focus_topic,
    fallback_confidence,
    generate_daily_video_ideas,
    idea_confidence,
    projected_views,
    trend_signal,
)


def _profile(name="My Channel", description="", subscribers=0, total_views=0):
    return ChannelProfile(
        channel_id="UC1",
        channel_name=name,
        description=description,
        subscribers=subscribers,
        total_views=total_views,
    )


# ===========================================================================
# Count guarantee
# ===========================================================================


class TestIdeaCount:

    def test_no_videos_uses_niche_bank(self, sample_utc_now):
        ideas = generate_daily_video_ideas(None, [], count=3, now=sample_utc_now)

        assert len(ideas) == 3
        assert [idea.id for idea in ideas] == [
            "daily-idea-0-behind-the-scenes",
            "daily-idea-1-audience-questions",
            "daily-idea-2-creator-lessons",
        ]
        assert all(idea.inspiration == "Creator niche playbook" for idea in ideas)
        assert all(idea.performance_lift == 0 for idea in ideas)

    def test_one_video_is_topped_up(self, make_video, sample_utc_now):
        ideas = generate_daily_video_ideas(None, [make_video()], count=3, now=sample_utc_now)

        assert len(ideas) == 3
        assert ideas[0].id == "daily-idea-0-sample"
        assert ideas[0].inspiration == "Sample video"
        # Fallback numbering continues after the momentum ideas.
        assert ideas[1].id == "daily-idea-1-behind-the-scenes"
        assert ideas[1].recommended_upload_time == BEST_UPLOAD_TIMES[1]

    def test_more_videos_than_requested(self, make_video, sample_utc_now):
        videos = [make_video(f"v{i}", title=f"Video topic {i}", views=1000 * (i + 1)) for i in range(5)]
        ideas = generate_daily_video_ideas(None, videos, count=3, now=sample_utc_now)

        assert len(ideas) == 3
        assert all("playbook" not in idea.inspiration for idea in ideas)
        # The most-viewed video has the strongest momentum.
        assert ideas[0].inspiration == "Video topic 4"

    def test_zero_count(self, make_video, sample_utc_now):
        assert generate_daily_video_ideas(None, [make_video()], count=0, now=sample_utc_now) == []

    def test_bank_cycles_with_lower_scores(self, sample_utc_now):
        ideas = generate_daily_video_ideas(
            _profile("Daily Code Lab"), [], count=10, now=sample_utc_now
        )
        assert len(ideas) == 10
        assert len({idea.id for idea in ideas}) == 10
        tech_scores = [template.score for template in NICHE_BANK["tech"]]
        assert ideas[0].score == tech_scores[0]
        assert ideas[4].score == tech_scores[0] - 3
        assert ideas[8].score == tech_scores[0] - 6


# ===========================================================================
# Scores and confidence
# ===========================================================================


class TestIdeaScore:

    def test_high_momentum_upload_scores_high(self):
        engagement_lift = ((8500 + 2100) / 125000) / 0.05
        score = calculate_idea_score(1.25, engagement_lift, 10)
        assert score == 85
        assert idea_confidence(score) is Confidence.HIGH

    def test_lower_clamp(self):
        assert calculate_idea_score(0, 0, 90) == 58

    def test_upper_clamp(self):
        assert calculate_idea_score(5, 5, 0) == 97

    def test_recency_boost_fades(self):
        assert calculate_idea_score(1, 1, 0) > calculate_idea_score(1, 1, 30)
        assert calculate_idea_score(1, 1, 30) == calculate_idea_score(1, 1, 45)

    def test_per_path_thresholds_differ(self):
        assert idea_confidence(80) is Confidence.MEDIUM
        assert fallback_confidence(80) is Confidence.HIGH
        assert idea_confidence(67) is Confidence.EMERGING
        assert fallback_confidence(67) is Confidence.MEDIUM

    def test_projection_floors(self):
        assert projected_views(100, 58) == 900
        assert engagement_boost(58) == 6
        assert engagement_boost(90) == 24

    @pytest.mark.parametrize(
        "days, expected",
        [(0, "Fresh upload momentum"), (7, "Fresh upload momentum"),
         (30, "Sustained audience interest"), (31, "Evergreen demand still delivering")],
    )
    def test_trend_signal(self, days, expected):
        assert trend_signal(days) == expected


class TestBuildIdeaFromVideo:

    def test_breakout_video(self, sample_utc_now):
        context = IdeaContext(
            average_views=100000,
            average_engagement_rate=0.05,
            estimated_baseline=100000,
            upload_times=BEST_UPLOAD_TIMES,
            now=sample_utc_now,
        )
        video = Video(
            id="x",
            title="Home Espresso Setup Tour",
            views=125000,
            likes=8500,
            comments=2100,
            upload_date=sample_utc_now - timedelta(days=10),
        )

        idea = build_idea_from_video(video, 0, context)

        assert idea.score == 85
        assert idea.confidence is Confidence.HIGH
        assert idea.performance_lift == 25
        assert idea.focus_keyword == "Home Espresso Setup"
        assert idea.title == "Double down on Home Espresso Setup with a tactical breakdown"
        assert "25% more views" in idea.summary
        assert "70% engagement lift" in idea.supporting_points[1]
        assert idea.trend_signal == "Sustained audience interest"

    def test_underperforming_video_copy(self, make_video, sample_utc_now):
        context = build_context(None, [make_video(views=1000)], sample_utc_now)
        weak = make_video(title="Quiet upload", views=500, likes=5, comments=0)

        idea = build_idea_from_video(weak, 1, context)

        assert "still gaining traction" in idea.summary
        assert idea.supporting_points[1].startswith('Crowdsource questions from "Quiet upload"')
        assert idea.title.startswith("React to the latest Quiet Upload")


# ===========================================================================
# Topic and niche
# ===========================================================================


class TestFocusTopic:

    def test_strips_stop_words_and_short_words(self):
        assert extract_focus_topic("How to Build a SaaS in 2025 | Full Guide") == "Build Saas"

    def test_keeps_uppercase_acronyms(self):
        assert extract_focus_topic("AI tools for creators") == "Ai Tools Creators"

    def test_limits_to_three_words(self):
        assert extract_focus_topic("espresso grinder burr comparison") == "Espresso Grinder Burr"

    def test_all_stop_words_falls_back_to_leading_words(self):
        assert extract_focus_topic("the best guide") == "The Best Guide"

    def test_empty_title(self):
        assert extract_focus_topic("!!!") == "New Video Idea"


class TestDetectNiche:

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("Daily Code Lab", "tech"),
            ("Startup Stories", "business"),
            ("Weekend Travel Vlog", "lifestyle"),
            ("Mosaic Art Studio", "creator"),
        ],
    )
    def test_channel_name(self, name, expected):
        assert detect_niche(_profile(name), []) == expected

    def test_video_titles_count(self, make_video):
        assert detect_niche(None, [make_video(title="Marketing funnels explained")]) == "business"

    def test_first_matching_group_wins(self):
        assert detect_niche(_profile("AI for business owners"), []) == "tech"

    def test_fallback_ideas_unknown_niche_uses_creator_bank(self, sample_utc_now):
        context = build_context(None, [], sample_utc_now)
        ideas = build_fallback_ideas("knitting", 0, 1, context)
        assert ideas[0].focus_keyword == NICHE_BANK["creator"][0].topic
