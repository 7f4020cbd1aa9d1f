from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Callable, Generic, MutableMapping, Optional, TypeVar

from news_tldr.core.config import RESPONSE_CACHE_TTL_SEC
from news_tldr.utils.cancellation import CancellationToken

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ResponseCacheEntry(Generic[T]):
    timestamp: float
    payload: T


@dataclass
class InFlightRequest(Generic[T]):
    future: Future = field(default_factory=Future)
    token: CancellationToken = field(default_factory=CancellationToken)
    waiters: int = 0


class ResponseCache(Generic[T]):
    """Short-lived response cache with single-flight computation per key.

    The first caller for a key runs `compute` on its own thread; identical
    callers arriving meanwhile wait on the same future and get the same
    result or exception. The in-flight entry is removed when the computation
    ends either way, so a failure is not cached.
    """

    def __init__(
        self,
        *,
        ttl_sec: float = RESPONSE_CACHE_TTL_SEC,
        clock: Callable[[], float] = time.time,
        entries: Optional[MutableMapping[str, ResponseCacheEntry[T]]] = None,
        log: Optional[logging.Logger | logging.LoggerAdapter] = None,
        purge_every: int = 64,
    ) -> None:
        self._ttl_sec = ttl_sec
        self._clock = clock
        self._entries: MutableMapping[str, ResponseCacheEntry[T]] = entries if entries is not None else {}
        self._inflight: dict[str, InFlightRequest[T]] = {}
        self._lock = threading.Lock()
        self._log = log or logger
        self._purge_every = max(1, purge_every)
        self._writes = 0

    def get(self, key: str) -> Optional[T]:
        with self._lock:
            return self._get_fresh(key)

    def set(self, key: str, payload: T) -> None:
        with self._lock:
            self._store(key, payload)

    def _store(self, key: str, payload: T) -> None:
        # Caller holds self._lock.
        self._entries[key] = ResponseCacheEntry(timestamp=self._clock(), payload=payload)
        self._writes += 1
        if self._writes % self._purge_every == 0:
            self._purge_locked()

    def _get_fresh(self, key: str) -> Optional[T]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if (self._clock() - entry.timestamp) >= self._ttl_sec:
            self._entries.pop(key, None)
            return None
        return entry.payload

    def inflight_count(self) -> int:
        with self._lock:
            return len(self._inflight)

    def waiters(self, key: str) -> int:
        with self._lock:
            inflight = self._inflight.get(key)
            return inflight.waiters if inflight is not None else 0

    def cancel(self, key: str) -> bool:
        with self._lock:
            inflight = self._inflight.get(key)
        if inflight is None:
            return False
        inflight.token.cancel()
        return True

    def get_or_compute(
        self,
        key: str,
        compute: Callable[[CancellationToken], T],
        *,
        should_cache: Callable[[T], bool] = lambda payload: True,
    ) -> tuple[T, bool]:
        """Return `(payload, cached)`; `cached` is True only for cache hits."""
        with self._lock:
            hit = self._get_fresh(key)
            if hit is not None:
                self._log.info("response_cache_hit: %s", key)
                return hit, True
            inflight = self._inflight.get(key)
            owner = inflight is None
            if owner:
                inflight = InFlightRequest()
                self._inflight[key] = inflight
            else:
                inflight.waiters += 1
        assert inflight is not None

        if not owner:
            self._log.info("awaiting inflight: %s", key)
            return inflight.future.result(), False

        try:
            payload = compute(inflight.token)
        except BaseException as exc:
            with self._lock:
                self._inflight.pop(key, None)
            inflight.future.set_exception(exc)
            raise
        with self._lock:
            if should_cache(payload):
                self._store(key, payload)
            self._inflight.pop(key, None)
        inflight.future.set_result(payload)
        return payload, False

    def purge_expired(self) -> int:
        with self._lock:
            return self._purge_locked()

    def _purge_locked(self) -> int:
        now = self._clock()
        stale = [k for k, e in self._entries.items() if (now - e.timestamp) >= self._ttl_sec]
        for k in stale:
            self._entries.pop(k, None)
        if stale:
            self._log.debug("response_cache_purged: %s", len(stale))
        return len(stale)
