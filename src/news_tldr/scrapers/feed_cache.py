from __future__ import annotations

import logging
import threading
import time
import weakref
from dataclasses import dataclass
from typing import Callable, MutableMapping, Optional

from news_tldr.core.config import (
    FEED_CACHE_TTL_SEC,
    FEED_FAIL_BLACKLIST_THRESHOLD,
    FEED_FAIL_TTL_SEC,
    FEED_FAIL_WINDOW_SEC,
)
from news_tldr.processing.types import ParsedFeed

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass(frozen=True)
class FeedCacheEntry:
    timestamp: float
    value: Optional[ParsedFeed] = None
    reason: str = ""
    is_negative: bool = False


@dataclass(frozen=True)
class FailureCounter:
    url: str
    count: int
    window_start: float


class FeedCache:
    """Process-wide TTL cache of parsed feeds plus per-URL failure counters.

    Positive entries live `ttl_sec`, negative entries `fail_ttl_sec`. Expired
    entries read as misses and are dropped on access. Every read-modify-write
    for a URL happens under that URL's lock; no lock is held while a caller
    talks to the network.
    """

    def __init__(
        self,
        *,
        ttl_sec: float = FEED_CACHE_TTL_SEC,
        fail_ttl_sec: float = FEED_FAIL_TTL_SEC,
        fail_window_sec: float = FEED_FAIL_WINDOW_SEC,
        blacklist_threshold: int = FEED_FAIL_BLACKLIST_THRESHOLD,
        clock: Clock = time.time,
        entries: MutableMapping[str, FeedCacheEntry] | None = None,
        failures: MutableMapping[str, FailureCounter] | None = None,
        purge_every: int = 64,
    ) -> None:
        self._ttl_sec = ttl_sec
        self._fail_ttl_sec = fail_ttl_sec
        self._fail_window_sec = fail_window_sec
        self._blacklist_threshold = blacklist_threshold
        self._clock = clock
        self._entries: MutableMapping[str, FeedCacheEntry] = entries if entries is not None else {}
        self._failures: MutableMapping[str, FailureCounter] = failures if failures is not None else {}
        # Locks disappear once no thread holds a reference to them.
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()
        self._purge_every = max(1, purge_every)
        self._writes = 0

    @property
    def blacklist_threshold(self) -> int:
        return self._blacklist_threshold

    def now(self) -> float:
        return self._clock()

    def _lock_for(self, url: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(url)
            if lock is None:
                lock = threading.Lock()
                self._locks[url] = lock
            return lock

    def _is_fresh(self, entry: FeedCacheEntry, now: float) -> bool:
        ttl = self._fail_ttl_sec if entry.is_negative else self._ttl_sec
        return (now - entry.timestamp) < ttl

    def get(self, url: str) -> FeedCacheEntry | None:
        with self._lock_for(url):
            entry = self._entries.get(url)
            if entry is None:
                return None
            if not self._is_fresh(entry, self._clock()):
                self._entries.pop(url, None)
                return None
            return entry

    def set(self, url: str, entry: FeedCacheEntry) -> None:
        with self._lock_for(url):
            self._entries[url] = entry
        with self._locks_guard:
            self._writes += 1
            due = self._writes % self._purge_every == 0
        if due:
            self.purge_expired()

    def set_positive(self, url: str, feed: ParsedFeed) -> None:
        self.set(url, FeedCacheEntry(timestamp=self._clock(), value=feed))

    def set_negative(self, url: str, reason: str) -> None:
        self.set(url, FeedCacheEntry(timestamp=self._clock(), reason=reason, is_negative=True))

    def record_failure(self, url: str) -> FailureCounter:
        """Count one exhausted fetch for `url`; the window slides with each failure."""
        with self._lock_for(url):
            now = self._clock()
            prev = self._failures.get(url)
            if prev is None or (now - prev.window_start) > self._fail_window_sec:
                counter = FailureCounter(url=url, count=1, window_start=now)
            else:
                counter = FailureCounter(url=url, count=prev.count + 1, window_start=now)
            self._failures[url] = counter
            return counter

    def reset_failures(self, url: str) -> None:
        with self._lock_for(url):
            self._failures.pop(url, None)

    def failure_count(self, url: str) -> int:
        with self._lock_for(url):
            counter = self._failures.get(url)
            if counter is None:
                return 0
            if (self._clock() - counter.window_start) > self._fail_window_sec:
                return 0
            return counter.count

    def is_blacklisted(self, url: str) -> bool:
        return self.failure_count(url) >= self._blacklist_threshold

    def purge_expired(self) -> int:
        """Drop stale entries and lapsed failure counters; returns entries removed."""
        now = self._clock()
        removed = 0
        for url in list(self._entries.keys()):
            with self._lock_for(url):
                entry = self._entries.get(url)
                if entry is not None and not self._is_fresh(entry, now):
                    self._entries.pop(url, None)
                    removed += 1
        for url in list(self._failures.keys()):
            with self._lock_for(url):
                counter = self._failures.get(url)
                if counter is not None and (now - counter.window_start) > self._fail_window_sec:
                    self._failures.pop(url, None)
        if removed:
            logger.debug("feed_cache_purged: %s", removed)
        return removed


_DEFAULT_CACHE: FeedCache | None = None
_DEFAULT_CACHE_LOCK = threading.Lock()


def get_default_feed_cache() -> FeedCache:
    global _DEFAULT_CACHE
    with _DEFAULT_CACHE_LOCK:
        if _DEFAULT_CACHE is None:
            _DEFAULT_CACHE = FeedCache()
        return _DEFAULT_CACHE
