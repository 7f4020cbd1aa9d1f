"""CLI entry point: produce a TL;DR, list candidate feeds, or run diagnostics."""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Optional, Sequence

from news_tldr.core.config import (
    DEFAULT_CATEGORY,
    DEFAULT_LENGTH,
    DEFAULT_LIMIT,
    DEFAULT_REGION,
    DEFAULT_STYLE,
    DEFAULT_TIMEFRAME_HOURS,
    MAX_FEEDS,
)
from news_tldr.scrapers.feed_check import check_feed
from news_tldr.scrapers.feed_urls import get_all_feeds_with_fallbacks
from news_tldr.service.locale import pick_client_locale
from news_tldr.service.tldr import build_default_service
from news_tldr.utils.log import configure_logging


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="news-tldr", description="Aggregate news feeds into an LLM-written TL;DR")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR (default: LOG_LEVEL env)")
    sub = parser.add_subparsers(dest="command", required=True)

    summarize = sub.add_parser("summarize", help="Fetch feeds and print the TL;DR response as JSON")
    summarize.add_argument("--region", default=DEFAULT_REGION)
    summarize.add_argument("--category", default=DEFAULT_CATEGORY)
    summarize.add_argument("--style", default=DEFAULT_STYLE)
    summarize.add_argument("--hours", type=float, default=DEFAULT_TIMEFRAME_HOURS, dest="timeframe_hours")
    summarize.add_argument("--limit", type=int, default=DEFAULT_LIMIT)
    summarize.add_argument("--language", default=None)
    summarize.add_argument("--locale", default=None)
    summarize.add_argument("--query", default="")
    summarize.add_argument("--length", default=DEFAULT_LENGTH)
    summarize.add_argument("--text", action="store_true", help="Print only the summary markdown")

    feeds = sub.add_parser("feeds", help="Print the candidate feed URLs for a selection")
    feeds.add_argument("--region", default=DEFAULT_REGION)
    feeds.add_argument("--category", default=DEFAULT_CATEGORY)
    feeds.add_argument("--language", default="en")
    feeds.add_argument("--query", default="")
    feeds.add_argument("--max-feeds", type=int, default=MAX_FEEDS)

    check = sub.add_parser("feedcheck", help="Diagnostic fetch of one Google News feed URL")
    check.add_argument("url")

    sub.add_parser("health", help="Show model name and whether an API key is configured")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    if args.command == "feeds":
        language = pick_client_locale(body_language=args.language).language
        for url in get_all_feeds_with_fallbacks(
            args.region, language, args.category, args.query or None, max_feeds=args.max_feeds
        ):
            print(url)
        return 0

    if args.command == "feedcheck":
        status, report = check_feed(args.url)
        _print_json(report)
        return 0 if status == 200 else 1

    service = build_default_service()
    if args.command == "health":
        _print_json(service.health())
        return 0

    body = {
        "region": args.region,
        "category": args.category,
        "style": args.style,
        "timeframeHours": args.timeframe_hours,
        "limit": args.limit,
        "language": args.language,
        "locale": args.locale,
        "query": args.query,
        "length": args.length,
    }
    status, payload = service.handle(body)
    if args.text and payload.get("ok"):
        print(payload.get("summary", ""))
    else:
        _print_json(payload)
    return 0 if status == 200 else 1


if __name__ == "__main__":
    sys.exit(main())
