from __future__ import annotations

import datetime
import logging
import random
from collections import Counter
from typing import Optional, Sequence

from news_tldr.core.config import (
    DEGRADED_URL_LIST_MAX,
    MAX_CONTEXT_ITEMS,
    MAX_FEEDS,
    MIN_FETCH_DEADLINE_SEC,
    REQUEST_TIMEOUT_SEC,
    SOURCES_FOOTER_TOP,
    SUMMARY_RESERVE_SEC,
    TITLE_CLUSTER_JACCARD,
)
from news_tldr.models import FeedRequest, TldrMeta, TldrResponse
from news_tldr.processing.articles import ArticleProcessor
from news_tldr.processing.dedupe import DedupeEngine
from news_tldr.processing.llm_client import GeminiClient
from news_tldr.processing.prompts.digest_prompt import PromptParams, build_context_lines, build_prompt
from news_tldr.processing.summarizer import Summarizer
from news_tldr.processing.types import NormalizedArticle
from news_tldr.scrapers.feed_cache import FeedCache, get_default_feed_cache
from news_tldr.scrapers.feed_fetcher import FeedFetcher
from news_tldr.scrapers.feed_urls import get_all_feeds_with_fallbacks, get_region_config
from news_tldr.scrapers.orchestrator import FeedOrchestrator
from news_tldr.utils import display_host
from news_tldr.utils.cancellation import CancellationToken

logger = logging.getLogger(__name__)

NO_ARTICLES_PREAMBLE = (
    "TL;DR: Could not reliably fetch recent items for that selection. "
    "Showing attempted feed URLs instead (first {n}):"
)


def fetch_deadline_sec(request_timeout_sec: float = REQUEST_TIMEOUT_SEC) -> float:
    return max(request_timeout_sec - SUMMARY_RESERVE_SEC, MIN_FETCH_DEADLINE_SEC)


def category_display_name(category: str) -> str:
    name = category or "Top"
    return name[:1].upper() + name[1:]


def sources_footer(articles: Sequence[NormalizedArticle], top: int = SOURCES_FOOTER_TOP) -> str:
    counts = Counter(display_host(a.link) or "unknown" for a in articles)
    ranked = sorted(counts.items(), key=lambda kv: -kv[1])[:top]
    if not ranked:
        return ""
    return "Sources: " + ", ".join(f"{host} ({n})" for host, n in ranked)


class TldrPipeline:
    def __init__(
        self,
        *,
        orchestrator: FeedOrchestrator,
        processor: ArticleProcessor,
        summarizer: Summarizer,
        max_feeds: int = MAX_FEEDS,
        max_context_items: int = MAX_CONTEXT_ITEMS,
        fetch_deadline: float | None = None,
        log: Optional[logging.Logger | logging.LoggerAdapter] = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._processor = processor
        self._summarizer = summarizer
        self._max_feeds = max_feeds
        self._max_context_items = max_context_items
        self._fetch_deadline = fetch_deadline if fetch_deadline is not None else fetch_deadline_sec()
        self._log = log or logger

    @property
    def summarizer(self) -> Summarizer:
        return self._summarizer

    def candidate_urls(self, request: FeedRequest) -> list[str]:
        return get_all_feeds_with_fallbacks(
            request.region,
            request.language,
            request.category,
            request.query or None,
            max_feeds=self._max_feeds,
        )

    def run(
        self,
        request: FeedRequest,
        *,
        token: Optional[CancellationToken] = None,
        log: Optional[logging.Logger | logging.LoggerAdapter] = None,
    ) -> TldrResponse:
        log = log or self._log
        token = token or CancellationToken()

        urls = self.candidate_urls(request)
        fetched = self._orchestrator.fetch_all(
            urls,
            desired_items=request.desired_items,
            deadline_sec=self._fetch_deadline,
            region=request.region,
            category=request.category,
            token=token,
            log=log,
        )
        processed = self._processor.process(
            fetched.items,
            request.timeframe_hours,
            request.limit,
            request.region,
        )
        window_hours = processed.window_hours

        if not processed.selected:
            log.warning(
                "no articles after filtering/dedupe: feeds=%s counts=%s",
                len(fetched.fetched_urls),
                fetched.per_url_counts,
            )
            return self._degraded_response(request, fetched.urls, window_hours)

        region_name = get_region_config(request.region, request.language).name
        category_name = category_display_name(request.category)
        context_lines = build_context_lines(processed.selected, self._max_context_items)
        prompt = build_prompt(
            PromptParams(
                region_name=region_name,
                category_name=category_name,
                window_hours=window_hours,
                style=request.style,
                language=request.language,
                locale=request.locale,
                length=request.length,
                context_lines=context_lines,
            )
        )
        summary = self._summarizer.summarize(prompt, request.style, context_lines, log=log)

        text = summary.text
        footer = sources_footer(processed.selected)
        if footer:
            text += f"\n\n{footer}"

        payload: TldrResponse = {
            "ok": True,
            "meta": self._meta(
                request,
                region=region_name,
                category=category_name,
                window_hours=window_hours,
                used_articles=len(processed.selected),
            ),
            "summary": text,
        }
        if summary.llm_error:
            payload["llmError"] = summary.llm_error
        log.info("response ready: usedArticles=%s fallback=%s", len(processed.selected), summary.used_fallback)
        return payload

    def _degraded_response(self, request: FeedRequest, urls: Sequence[str], window_hours: int) -> TldrResponse:
        shown = list(urls)[:DEGRADED_URL_LIST_MAX]
        lines = "\n".join(f"- {u}" for u in shown)
        summary = NO_ARTICLES_PREAMBLE.format(n=DEGRADED_URL_LIST_MAX) + f"\n\n{lines}"
        return {
            "ok": True,
            "meta": self._meta(
                request,
                region=request.region,
                category=request.category or "Top",
                window_hours=window_hours,
                used_articles=0,
            ),
            "summary": summary,
        }

    def _meta(self, request: FeedRequest, *, region: str, category: str, window_hours: int, used_articles: int) -> TldrMeta:
        return {
            "region": region,
            "category": category,
            "style": request.style,
            "timeframeHours": window_hours,
            "language": request.language,
            "locale": request.locale,
            "usedArticles": used_articles,
            "model": self._summarizer.model,
            "length": (request.length or "medium").lower(),
        }


def build_default_dedupe_engine() -> DedupeEngine:
    return DedupeEngine(title_cluster_jaccard=TITLE_CLUSTER_JACCARD)


def build_default_article_processor() -> ArticleProcessor:
    return ArticleProcessor(
        dedupe_engine=build_default_dedupe_engine(),
        now_provider=lambda: datetime.datetime.now(datetime.timezone.utc),
    )


def build_default_pipeline(
    *,
    client: Optional[GeminiClient] = None,
    feed_cache: Optional[FeedCache] = None,
    rng: Optional[random.Random] = None,
) -> TldrPipeline:
    rng = rng or random.Random()
    fetcher = FeedFetcher(cache=feed_cache or get_default_feed_cache(), rng=rng)
    return TldrPipeline(
        orchestrator=FeedOrchestrator(fetcher, rng=rng),
        processor=build_default_article_processor(),
        summarizer=Summarizer(client=client or GeminiClient(), rng=rng),
    )
