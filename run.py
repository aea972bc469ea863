"""
Command line entry point: print VidStream insights as JSON.

Usage::

    # Keyword opportunity data (add --suggestions for related keywords):
    python run.py keyword "home espresso"

    # Trend alerts for a category:
    python run.py trends --category gaming

    # Daily video ideas for a channel:
    python run.py ideas "Some Channel" --count 5

    # Benchmark a channel against competitors:
    python run.py competitors "My Channel" @rival-one "Rival Two" --subscribers 12000

Exit codes: 0 success, 1 other failure, 2 missing API key, 3 quota exhausted.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, List, Optional

from vidstream.config import get_settings
from vidstream.exceptions import (
    ConfigurationError,
    MissingYouTubeApiKeyError,
    RetryExhaustedError,
    ValidationError,
    VidstreamError,
    YouTubeQuotaExceededError,
)
from vidstream.log import configure_logging
from vidstream.models import ChannelContext, ChannelProfile, CompetitorAnalysisRequest
from vidstream.scoring.keywords import rank_keyword_opportunities
from vidstream.services.insights import InsightsService

logger = logging.getLogger("run")

EXIT_FAILURE = 1
EXIT_MISSING_KEY = 2
EXIT_QUOTA = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="YouTube creator insights")
    parser.add_argument("--log-level", default=None, help="Override the configured log level")
    commands = parser.add_subparsers(dest="command", required=True)

    keyword = commands.add_parser("keyword", help="Keyword opportunity data")
    keyword.add_argument("keyword")
    keyword.add_argument(
        "--suggestions", action="store_true", help="Print ranked related keywords instead"
    )

    trends = commands.add_parser("trends", help="Trend alerts for a category")
    trends.add_argument("--category", default=None)

    ideas = commands.add_parser("ideas", help="Daily video ideas")
    ideas.add_argument("channel", nargs="?", default="", help="Channel name or handle")
    ideas.add_argument("--count", type=int, default=None)

    competitors = commands.add_parser("competitors", help="Competitor benchmark")
    competitors.add_argument("channel_name")
    competitors.add_argument("competitors", nargs="+")
    competitors.add_argument("--channel-id", default="")
    competitors.add_argument("--subscribers", type=int, default=0)
    competitors.add_argument("--total-views", type=int, default=0)

    return parser


async def dispatch(args: argparse.Namespace, service: InsightsService) -> Any:
    """Run one subcommand and return its JSON-ready result."""
    if args.command == "keyword":
        if args.suggestions:
            return await service.get_keyword_suggestions(args.keyword)
        data = await service.get_keyword_data(args.keyword)
        return {
            "keyword": data.to_dict(),
            "opportunity": rank_keyword_opportunities([data])[0].to_dict(),
        }

    if args.command == "trends":
        alerts = await service.get_trend_alerts(args.category)
        return [alert.to_dict() for alert in alerts]

    if args.command == "ideas":
        profile: Optional[ChannelProfile] = None
        if args.channel and service.client.has_api_key:
            profile = await service.get_channel_profile(args.channel)
        elif args.channel:
            profile = ChannelProfile(channel_id="", channel_name=args.channel)
        ideas = await service.get_daily_ideas(profile, count=args.count)
        return [idea.to_dict() for idea in ideas]

    if args.command == "competitors":
        request = CompetitorAnalysisRequest(
            channel=ChannelContext(
                channel_name=args.channel_name,
                channel_id=args.channel_id,
                subscribers=args.subscribers,
                total_views=args.total_views,
            ),
            competitors=args.competitors,
        )
        analysis = await service.analyze_competitors(request)
        return analysis.to_dict()

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None, service: Optional[InsightsService] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        configure_logging(args.log_level or get_settings().log_level)
        result = asyncio.run(dispatch(args, service or InsightsService()))
    except MissingYouTubeApiKeyError as e:
        logger.error("%s. Set it in .env or the environment.", e)
        return EXIT_MISSING_KEY
    except YouTubeQuotaExceededError as e:
        logger.error("YouTube quota exhausted: %s", e)
        return EXIT_QUOTA
    except (VidstreamError, ConfigurationError, RetryExhaustedError, ValidationError) as e:
        logger.error("%s failed: %s", args.command, e)
        return EXIT_FAILURE

    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
