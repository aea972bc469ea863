"""
Daily video idea generation.

Ideas come from two sources:

1. **Momentum path**: the channel's own videos are ranked by a momentum
   blend (view lift, engagement lift, recency) and the strongest ones are
   turned into follow-up ideas with a focus topic, an angle template and a
   bounded 58-97 score.
2. **Niche bank**: when the channel has fewer videos than requested ideas,
   the remainder is filled from a fixed template bank chosen by matching
   the channel's name, description and titles against niche keyword groups.

``generate_daily_video_ideas`` always returns exactly ``count`` ideas.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from vidstream.models import ChannelProfile, Confidence, DailyIdea, Video
from vidstream.scoring.channel import compute_engagement_rate, predict_best_upload_times
from vidstream.utils import (
    clamp,
    days_between,
    ensure_utc,
    round_half_up,
    slugify,
    title_case,
    utc_now,
)

STOP_WORDS = frozenset({
    "the", "and", "with", "from", "your", "that", "this", "into", "what",
    "when", "how", "tips", "2024", "2025", "guide", "tutorial", "best",
    "free", "full", "step", "learn", "for", "using", "about", "make",
    "video", "series", "episode", "official", "live", "stream", "breaking",
    "update", "why",
})

ANGLE_TEMPLATES = [
    "Double down on {topic} with a tactical breakdown",
    "React to the latest {topic} headlines with actionable takeaways",
    "Build a viewer challenge centred on {topic}",
    "Show how you execute {topic} step-by-step in real time",
]

_TOPIC_PUNCTUATION = re.compile(r"[\[\](){}|:;#@\"'!?.,]")

DEFAULT_ENGAGEMENT_RATE = 0.045


# ===========================================================================
# CONTEXT & SCORING
# ===========================================================================


@dataclass(frozen=True)
class IdeaContext:
    """Channel-wide baselines the per-video lifts are measured against."""

    average_views: float
    average_engagement_rate: float
    estimated_baseline: float
    upload_times: Sequence[str]
    now: datetime


def baseline_from_profile(profile: Optional[ChannelProfile]) -> int:
    if profile is not None and profile.total_views > 0 and profile.subscribers > 0:
        views_per_subscriber = profile.total_views / profile.subscribers
        return max(900, round_half_up(views_per_subscriber * 95))
    return 1500


def build_context(
    profile: Optional[ChannelProfile], videos: Sequence[Video], now: datetime
) -> IdeaContext:
    if videos:
        average_views = sum(video.views for video in videos) / len(videos)
        average_engagement = sum(compute_engagement_rate(v) for v in videos) / len(videos)
    else:
        average_views = 0.0
        average_engagement = DEFAULT_ENGAGEMENT_RATE

    return IdeaContext(
        average_views=average_views,
        average_engagement_rate=average_engagement,
        estimated_baseline=max(average_views, baseline_from_profile(profile), 1200),
        upload_times=predict_best_upload_times(),
        now=now,
    )


def _lifts(video: Video, context: IdeaContext) -> Tuple[float, float]:
    view_lift = video.views / context.average_views if context.average_views > 0 else 1.0
    engagement_lift = (
        compute_engagement_rate(video) / context.average_engagement_rate
        if context.average_engagement_rate > 0
        else 1.0
    )
    return view_lift, engagement_lift


def _days_old(video: Video, now: datetime) -> int:
    if video.upload_date is None:
        return 0
    return days_between(video.upload_date, now)


def video_momentum_score(video: Video, context: IdeaContext) -> float:
    """Selection momentum: view lift 58%, engagement lift 27%, recency 15%."""
    view_lift, engagement_lift = _lifts(video, context)
    days_old = _days_old(video, context.now)
    recency_boost = 1 + max(0, 30 - min(days_old, 60)) / 50
    return view_lift * 0.58 + engagement_lift * 0.27 + recency_boost * 0.15


def calculate_idea_score(view_lift: float, engagement_lift: float, days_old: int) -> int:
    """
    Bounded idea score from a video's lifts and age.

    The composite weighs view lift 55%, engagement lift 25% and a recency
    boost 20% that is worth most in the first three weeks. A composite of
    1.0 (an average, month-old video) maps to 70.
    """
    recency_boost = 1 + max(0, 21 - min(days_old, 45)) / 40
    composite = view_lift * 0.55 + engagement_lift * 0.25 + recency_boost * 0.20
    return int(clamp(round_half_up(30 + composite * 40), 58, 97))


def idea_confidence(score: int) -> Confidence:
    if score >= 82:
        return Confidence.HIGH
    if score >= 68:
        return Confidence.MEDIUM
    return Confidence.EMERGING


def fallback_confidence(score: int) -> Confidence:
    if score >= 80:
        return Confidence.HIGH
    if score >= 65:
        return Confidence.MEDIUM
    return Confidence.EMERGING


def projected_views(baseline: float, score: int) -> int:
    return max(900, round_half_up(baseline * (1 + (score - 60) / 90)))


def engagement_boost(score: int) -> int:
    return max(6, round_half_up((score - 50) * 0.6))


def trend_signal(days_old: int) -> str:
    if days_old <= 7:
        return "Fresh upload momentum"
    if days_old <= 30:
        return "Sustained audience interest"
    return "Evergreen demand still delivering"


# ===========================================================================
# TOPIC EXTRACTION
# ===========================================================================


def extract_focus_topic(title: str) -> str:
    """Up to three meaningful words from *title*, title-cased."""
    clean = " ".join(_TOPIC_PUNCTUATION.sub(" ", title).split())
    if not clean:
        return "New Video Idea"

    parts = clean.split(" ")
    keywords = [
        word for word in parts
        if word.lower() not in STOP_WORDS
        and not (len(word) <= 2 and word != word.upper())
    ]
    selection = keywords or parts[:3]
    return title_case(" ".join(selection[:3]))


# ===========================================================================
# MOMENTUM PATH
# ===========================================================================


def build_idea_from_video(video: Video, index: int, context: IdeaContext) -> DailyIdea:
    topic = extract_focus_topic(video.title)
    topic_lower = topic.lower()
    view_lift, engagement_lift = _lifts(video, context)
    lift_percent = round_half_up((view_lift - 1) * 100)
    engagement_percent = round_half_up((engagement_lift - 1) * 100)
    days_old = _days_old(video, context.now)
    score = calculate_idea_score(view_lift, engagement_lift, days_old)

    if lift_percent > 0:
        summary = (
            f'"{video.title}" is delivering {lift_percent}% more views than your '
            f"typical upload. Give viewers a sequel that digs deeper into "
            f"{topic_lower} while the momentum is hot."
        )
    else:
        summary = (
            f'"{video.title}" is still gaining traction, but engaged viewers are '
            f"sticking around for the {topic_lower} angle. A sharper follow-up can "
            f"convert that interest into a breakout."
        )

    if engagement_percent > 0:
        engagement_point = (
            f"Repurpose the insights that sparked a {engagement_percent}% engagement "
            f"lift and translate them into a repeatable framework or checklist."
        )
    else:
        engagement_point = (
            f'Crowdsource questions from "{video.title}" and weave the best ones '
            f"into the narrative to spark conversation."
        )

    return DailyIdea(
        id=f"daily-idea-{index}-{slugify(topic)}",
        title=ANGLE_TEMPLATES[index % len(ANGLE_TEMPLATES)].format(topic=topic),
        summary=summary,
        focus_keyword=topic,
        confidence=idea_confidence(score),
        score=score,
        projected_views=projected_views(context.estimated_baseline, score),
        engagement_boost=engagement_boost(score),
        recommended_upload_time=context.upload_times[index % len(context.upload_times)],
        supporting_points=[
            f"Hook the first 15 seconds with a bold promise about {topic_lower}. "
            f"Use on-screen receipts from the original video to prove credibility.",
            engagement_point,
            "Schedule a companion Short or community post the same day to nudge "
            "viewers back toward the full upload.",
        ],
        inspiration=video.title,
        performance_lift=lift_percent,
        trend_signal=trend_signal(days_old),
    )


# ===========================================================================
# NICHE BANK
# ===========================================================================

NICHE_PATTERNS = [
    ("tech", re.compile(r"\b(?:code|developer|tech|software|ai|programming|saas)", re.I)),
    ("business", re.compile(r"\b(?:business|marketing|startup|finance|entrepreneur|sales)", re.I)),
    ("lifestyle", re.compile(r"\b(?:wellness|lifestyle|fitness|travel|food|beauty|fashion)", re.I)),
]

DEFAULT_NICHE = "creator"


@dataclass(frozen=True)
class IdeaTemplate:
    topic: str
    title: str
    summary: str
    score: int
    points: Sequence[str]


NICHE_BANK = {
    "tech": [
        IdeaTemplate(
            topic="AI Workflow Automation",
            title="Automate a real workflow with AI tools in under 30 minutes",
            summary="Hands-on automation builds keep viewers watching to the end "
                    "and pull in search traffic from people comparing tools.",
            score=84,
            points=["Pick one repetitive task your audience complains about.",
                    "Show the before and after timings on screen.",
                    "Share the exact prompts or scripts in the description."],
        ),
        IdeaTemplate(
            topic="Developer Setup Tour",
            title="My developer setup for shipping faster this year",
            summary="Setup tours are evergreen and convert casual viewers into "
                    "subscribers who come back for the deep dives.",
            score=76,
            points=["Open with the single tool you could not work without.",
                    "Group the tour by workflow stage, not by app.",
                    "Pin a comment asking viewers for their must-have tool."],
        ),
        IdeaTemplate(
            topic="Build In Public",
            title="Building a SaaS feature live from idea to deploy",
            summary="Live builds create a narrative viewers follow across "
                    "uploads and surface questions for future videos.",
            score=71,
            points=["State the finish line in the first minute.",
                    "Cut dead time but keep the bugs you hit.",
                    "End with a teaser for the next build session."],
        ),
        IdeaTemplate(
            topic="Tech Myths",
            title="Five programming myths that waste your time",
            summary="Contrarian list formats earn comments and shares from "
                    "viewers who agree or disagree.",
            score=66,
            points=["Lead with the most surprising myth.",
                    "Back each claim with a quick demo.",
                    "Invite viewers to nominate the next myth."],
        ),
    ],
    "business": [
        IdeaTemplate(
            topic="Marketing Teardown",
            title="Tearing down a viral marketing campaign step by step",
            summary="Teardowns pair a recognisable brand with practical lessons, "
                    "a proven mix for click-through and watch time.",
            score=83,
            points=["Show the campaign results up front.",
                    "Break the playbook into three repeatable moves.",
                    "Close with how a small business could copy it."],
        ),
        IdeaTemplate(
            topic="Startup Numbers",
            title="What my startup actually earned this quarter",
            summary="Transparent revenue breakdowns build trust and attract "
                    "viewers researching the same path.",
            score=77,
            points=["Put the headline number in the thumbnail.",
                    "Explain one decision that moved the number.",
                    "Ask viewers which metric they want next time."],
        ),
        IdeaTemplate(
            topic="Sales Scripts",
            title="The sales script that doubled my close rate",
            summary="Actionable scripts are saved and rewatched, which lifts "
                    "long-term views.",
            score=70,
            points=["Role-play the script on camera.",
                    "Highlight the objection-handling lines.",
                    "Offer the script as a pinned resource."],
        ),
        IdeaTemplate(
            topic="Finance Mistakes",
            title="Money mistakes new entrepreneurs make in year one",
            summary="Mistake-driven titles tap into loss aversion and keep "
                    "evergreen search demand.",
            score=64,
            points=["Tell a personal story for the first mistake.",
                    "Give one fix per mistake.",
                    "Link a follow-up video on budgeting."],
        ),
    ],
    "lifestyle": [
        IdeaTemplate(
            topic="Morning Routine Reset",
            title="Resetting my morning routine for a productive week",
            summary="Routine videos are highly bingeable and perform well as "
                    "a recurring series.",
            score=82,
            points=["Open on the most visual part of the routine.",
                    "Show time stamps on screen for each step.",
                    "Invite viewers to share their own routine."],
        ),
        IdeaTemplate(
            topic="Budget Travel",
            title="Planning a weekend trip on a tight budget",
            summary="Budget constraints create built-in stakes that hold "
                    "attention through the whole video.",
            score=75,
            points=["State the budget in the title card.",
                    "Track spending with an on-screen counter.",
                    "End with the total and one regret."],
        ),
        IdeaTemplate(
            topic="Healthy Meal Prep",
            title="Meal prep for the week in one hour",
            summary="Practical meal prep content is saved and revisited, "
                    "driving steady returning viewers.",
            score=69,
            points=["Show the full ingredient list first.",
                    "Speed up repetitive chopping.",
                    "Share the shopping list in the description."],
        ),
        IdeaTemplate(
            topic="Fitness Challenge",
            title="Trying a 30-day fitness challenge and sharing the results",
            summary="Challenge formats build anticipation and set up a natural "
                    "follow-up video.",
            score=63,
            points=["Film a clear day-one baseline.",
                    "Check in at fixed intervals.",
                    "Ask viewers to join the challenge."],
        ),
    ],
    "creator": [
        IdeaTemplate(
            topic="Behind The Scenes",
            title="Behind the scenes of making my most popular video",
            summary="Process videos deepen loyalty with existing viewers and "
                    "give newcomers a reason to binge the back catalogue.",
            score=80,
            points=["Start with the final result, then rewind.",
                    "Show one thing that went wrong.",
                    "Link the original video in an end screen."],
        ),
        IdeaTemplate(
            topic="Audience Questions",
            title="Answering your most asked questions",
            summary="Q&A videos reward engaged viewers and surface topics for "
                    "the next month of uploads.",
            score=73,
            points=["Collect questions from recent comments.",
                    "Answer the most popular question first.",
                    "Promise a follow-up on the best unanswered one."],
        ),
        IdeaTemplate(
            topic="Creator Lessons",
            title="What I learned from my first year of uploads",
            summary="Reflection videos humanise the channel and perform well "
                    "with viewers considering starting their own.",
            score=67,
            points=["Share one number that surprised you.",
                    "Group lessons by theme.",
                    "Ask viewers what they want to see next year."],
        ),
        IdeaTemplate(
            topic="Collab Challenge",
            title="Swapping channels with another creator for a day",
            summary="Collaborations expose the channel to a new audience with a "
                    "built-in hook.",
            score=62,
            points=["Introduce the partner in the first 10 seconds.",
                    "Keep the rules simple and on screen.",
                    "Cross-link both videos."],
        ),
    ],
}


def detect_niche(profile: Optional[ChannelProfile], videos: Sequence[Video]) -> str:
    """First niche whose keyword group matches the channel corpus, else ``creator``."""
    corpus_parts = [video.title for video in videos]
    if profile is not None:
        corpus_parts = [profile.channel_name, profile.description] + corpus_parts
    corpus = " ".join(part for part in corpus_parts if part)

    for niche, pattern in NICHE_PATTERNS:
        if pattern.search(corpus):
            return niche
    return DEFAULT_NICHE


def build_fallback_ideas(
    niche: str, start_index: int, count: int, context: IdeaContext
) -> List[DailyIdea]:
    """
    *count* ideas from the niche bank, numbered from *start_index*.

    The bank is cycled when more ideas are requested than it holds; each
    pass over it lowers the scores by three points.
    """
    bank = NICHE_BANK.get(niche, NICHE_BANK[DEFAULT_NICHE])
    ideas: List[DailyIdea] = []

    for offset in range(count):
        index = start_index + offset
        template = bank[offset % len(bank)]
        cycle = offset // len(bank)
        score = int(clamp(template.score - cycle * 3, 58, 97))
        ideas.append(
            DailyIdea(
                id=f"daily-idea-{index}-{slugify(template.topic)}",
                title=template.title,
                summary=template.summary,
                focus_keyword=template.topic,
                confidence=fallback_confidence(score),
                score=score,
                projected_views=projected_views(context.estimated_baseline, score),
                engagement_boost=engagement_boost(score),
                recommended_upload_time=context.upload_times[index % len(context.upload_times)],
                supporting_points=list(template.points),
                inspiration=f"{niche.title()} niche playbook",
                performance_lift=0,
                trend_signal="Evergreen demand still delivering",
            )
        )
    return ideas


# ===========================================================================
# ENTRY POINT
# ===========================================================================


def generate_daily_video_ideas(
    profile: Optional[ChannelProfile],
    videos: Sequence[Video],
    count: int = 3,
    now: Optional[datetime] = None,
) -> List[DailyIdea]:
    """
    Generate exactly *count* daily video ideas.

    Args:
        profile: The channel the ideas are for, if known.
        videos: The channel's videos with statistics.
        count: Number of ideas to return.
        now: Reference time for video ages.

    Returns:
        Momentum-path ideas for the strongest videos, topped up from the
        niche bank when there are fewer videos than *count*.
    """
    if count <= 0:
        return []

    now = ensure_utc(now) if now is not None else utc_now()
    context = build_context(profile, videos, now)

    # sorted() is stable, so equal momentum keeps input order
    prioritized = sorted(
        videos, key=lambda video: video_momentum_score(video, context), reverse=True
    )[:count]
    ideas = [build_idea_from_video(video, index, context) for index, video in enumerate(prioritized)]

    if len(ideas) < count:
        niche = detect_niche(profile, videos)
        ideas.extend(build_fallback_ideas(niche, len(ideas), count - len(ideas), context))

    return ideas
