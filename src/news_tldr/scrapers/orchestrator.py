"""Bounded-concurrency fetch of a candidate feed list.

Workers pull the next unclaimed URL from a shared index. The run ends when
every URL was tried, when enough items were gathered (after a minimum number
of completed feeds), or when the soft deadline passes. Whatever completed by
then is returned.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Optional, Sequence

from news_tldr.core.config import EARLY_STOP_MIN_FEEDS, FEED_CONCURRENCY, MAX_FEEDS, PRIORITY_KEEP_HEAD
from news_tldr.core.constants import PRIORITY_PUBLISHER_MAX, PRIORITY_PUBLISHERS
from news_tldr.processing.types import RawArticle
from news_tldr.scrapers.feed_fetcher import FeedFetcher, FetchOutcome
from news_tldr.scrapers.feed_urls import fallback_feeds, unique
from news_tldr.utils.cancellation import CancellationToken
from news_tldr.utils.common import host_of

logger = logging.getLogger(__name__)

TOP_HOSTS_LIMIT = 12
FALLBACK_MIN_DEADLINE_SEC = 4.0


@dataclass
class FetchAllResult:
    items: list[RawArticle]
    urls: list[str]
    fetched_urls: list[str]
    per_url_counts: list[int]
    per_url_errors: list[Optional[str]]
    used_fallback: bool = False
    top_hosts: list[tuple[str, int]] = field(default_factory=list)
    timed_out: bool = False
    stopped_early: bool = False


@dataclass
class _RunState:
    """Shared, lock-guarded state of one worker-pool run."""

    urls: list[str]
    desired_items: int
    min_feeds: int
    lock: threading.Lock = field(default_factory=threading.Lock)
    stop: threading.Event = field(default_factory=threading.Event)
    next_index: int = 0
    completed: int = 0
    total_items: int = 0
    stopped_early: bool = False
    outcomes: dict[int, FetchOutcome] = field(default_factory=dict)
    tokens: dict[int, CancellationToken] = field(default_factory=dict)

    def claim(self, parent: CancellationToken) -> tuple[int, CancellationToken] | None:
        with self.lock:
            if self.stop.is_set() or parent.cancelled or self.next_index >= len(self.urls):
                return None
            idx = self.next_index
            self.next_index += 1
            token = parent.child()
            self.tokens[idx] = token
            return idx, token

    def complete(self, idx: int, outcome: FetchOutcome) -> bool:
        """Record a finished fetch; True when the run should stop early."""
        with self.lock:
            self.outcomes[idx] = outcome
            self.tokens.pop(idx, None)
            self.completed += 1
            self.total_items += outcome.item_count
            if (
                self.desired_items > 0
                and self.completed >= self.min_feeds
                and self.total_items >= self.desired_items
                and not self.stop.is_set()
            ):
                self.stopped_early = True
                self.stop.set()
                return True
            return False

    def cancel_pending(self) -> None:
        with self.lock:
            pending = list(self.tokens.values())
        for token in pending:
            token.cancel()


class FeedOrchestrator:
    def __init__(
        self,
        fetcher: FeedFetcher,
        *,
        concurrency: int = FEED_CONCURRENCY,
        max_feeds: int = MAX_FEEDS,
        keep_head: int = PRIORITY_KEEP_HEAD,
        min_feeds_before_stop: int = EARLY_STOP_MIN_FEEDS,
        rng: Optional[random.Random] = None,
        log: Optional[logging.Logger | logging.LoggerAdapter] = None,
    ) -> None:
        self._fetcher = fetcher
        self._concurrency = max(1, concurrency)
        self._max_feeds = max_feeds
        self._keep_head = keep_head
        self._min_feeds = min_feeds_before_stop
        self._rng = rng or random.Random()
        self._log = log or logger

    def order_urls(self, urls: Sequence[str], region: str = "", category: str | None = None) -> list[str]:
        """Priority prepend, cap by sampling, then partition by source class."""
        _, region_feeds = fallback_feeds(region, category)
        ordered = unique(urls)

        publisher = PRIORITY_PUBLISHERS.get((region or "").lower())
        if publisher:
            forced = [u for u in region_feeds if publisher in host_of(u)][:PRIORITY_PUBLISHER_MAX]
            ordered = unique(forced + ordered)

        if self._max_feeds and len(ordered) > self._max_feeds:
            keep = min(self._keep_head, self._max_feeds)
            head = ordered[:keep]
            rest = ordered[keep:]
            sample = self._rng.sample(rest, max(0, self._max_feeds - len(head)))
            ordered = head + sample

        region_set = set(region_feeds)
        front = [u for u in ordered if u in region_set]
        middle: list[str] = []
        demoted: list[str] = []
        slow: list[str] = []
        for u in ordered:
            if u in region_set:
                continue
            if self._fetcher.is_slow(u):
                slow.append(u)
            elif self._fetcher.cache.is_blacklisted(u):
                demoted.append(u)
            else:
                middle.append(u)
        if demoted:
            self._log.info("feeds_deprioritized: %s", len(demoted))
        return front + middle + demoted + slow

    def fetch_all(
        self,
        urls: Sequence[str],
        desired_items: int = 0,
        deadline_sec: float | None = None,
        *,
        region: str = "",
        category: str | None = None,
        token: Optional[CancellationToken] = None,
        log: Optional[logging.Logger | logging.LoggerAdapter] = None,
    ) -> FetchAllResult:
        log = log or self._log
        token = token or CancellationToken()
        started = time.monotonic()

        ordered = self.order_urls(urls, region, category)
        log.info("fetch_all_start: feeds=%s desired=%s deadline=%s", len(ordered), desired_items, deadline_sec)

        state, timed_out = self._run_pool(ordered, desired_items, deadline_sec, token, log)
        result = self._collect(list(urls), ordered, state, timed_out)

        if not result.items and not token.cancelled:
            category_feeds, region_feeds = fallback_feeds(region, category)
            fallback = unique(category_feeds + region_feeds)
            remaining = None
            if deadline_sec is not None:
                remaining = max(FALLBACK_MIN_DEADLINE_SEC, deadline_sec - (time.monotonic() - started))
            log.warning("fetch_all_empty: escalating to %s publisher feeds", len(fallback))
            fb_state, fb_timed_out = self._run_pool(fallback, 0, remaining, token, log)
            fb_result = self._collect(list(urls), fallback, fb_state, fb_timed_out)
            fb_result.used_fallback = True
            result = fb_result

        self._log_summary(result, log)
        return result

    def _run_pool(
        self,
        urls: list[str],
        desired_items: int,
        deadline_sec: float | None,
        parent: CancellationToken,
        log: logging.Logger | logging.LoggerAdapter,
    ) -> tuple[_RunState, bool]:
        state = _RunState(urls=urls, desired_items=desired_items, min_feeds=self._min_feeds)
        if not urls:
            return state, False

        def _worker() -> None:
            while True:
                claimed = state.claim(parent)
                if claimed is None:
                    return
                idx, fetch_token = claimed
                try:
                    outcome = self._fetcher.fetch(urls[idx], log, fetch_token)
                finally:
                    fetch_token.detach()
                if state.complete(idx, outcome):
                    log.info(
                        "early_stop: completed=%s items=%s desired=%s",
                        state.completed,
                        state.total_items,
                        desired_items,
                    )
                    state.cancel_pending()

        workers = min(self._concurrency, len(urls))
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="feed")
        futures = [executor.submit(_worker) for _ in range(workers)]
        done, not_done = wait(futures, timeout=deadline_sec)
        timed_out = bool(not_done)
        if timed_out:
            log.warning("fetch_soft_timeout: completed=%s of %s", state.completed, len(urls))
            state.stop.set()
            state.cancel_pending()
        executor.shutdown(wait=False, cancel_futures=True)
        for fut in done:
            exc = fut.exception()
            if exc is not None:
                log.error("feed worker crashed: %s", exc)
        return state, timed_out

    @staticmethod
    def _collect(urls: list[str], ordered: list[str], state: _RunState, timed_out: bool) -> FetchAllResult:
        with state.lock:
            outcomes = dict(state.outcomes)
            stopped_early = state.stopped_early
        items: list[RawArticle] = []
        counts: list[int] = []
        errors: list[Optional[str]] = []
        for idx, _url in enumerate(ordered):
            outcome = outcomes.get(idx)
            if outcome is None:
                counts.append(-1)
                errors.append("not attempted" if not timed_out else "deadline exceeded")
            elif outcome.ok:
                assert outcome.feed is not None
                items.extend(outcome.feed.items)
                counts.append(outcome.item_count)
                errors.append(None)
            else:
                counts.append(-1)
                errors.append(outcome.error.message if outcome.error else "unknown error")
        host_counts = Counter(host_of(item.link) or "unknown" for item in items)
        return FetchAllResult(
            items=items,
            urls=urls,
            fetched_urls=ordered,
            per_url_counts=counts,
            per_url_errors=errors,
            top_hosts=host_counts.most_common(TOP_HOSTS_LIMIT),
            timed_out=timed_out,
            stopped_early=stopped_early,
        )

    @staticmethod
    def _log_summary(result: FetchAllResult, log: logging.Logger | logging.LoggerAdapter) -> None:
        ok = sum(1 for c in result.per_url_counts if c >= 0)
        log.info(
            "fetch_all_done: items=%s ok_feeds=%s/%s fallback=%s early=%s timeout=%s",
            len(result.items),
            ok,
            len(result.fetched_urls),
            result.used_fallback,
            result.stopped_early,
            result.timed_out,
        )
        for url, count, err in zip(result.fetched_urls, result.per_url_counts, result.per_url_errors):
            log.debug("feed_result: %s count=%s error=%s", url, count, err)
        if result.top_hosts:
            log.info("top_hosts: %s", ", ".join(f"{h}({n})" for h, n in result.top_hosts))
