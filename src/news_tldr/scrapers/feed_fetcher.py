from __future__ import annotations

import logging
import random
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Callable, Optional

import requests

from news_tldr.core.errors import FeedFetchError, FetchCancelled
from news_tldr.processing.parsing import EntryParser
from news_tldr.processing.types import ParsedFeed
from news_tldr.scrapers.feed_cache import FeedCache, get_default_feed_cache
from news_tldr.scrapers.feed_fetcher_config import FeedFetcherConfig
from news_tldr.scrapers.feed_fetcher_utils import (
    build_request_headers,
    excerpt,
    is_slow_source,
    looks_like_html,
)
from news_tldr.utils.cancellation import CancellationToken
from news_tldr.utils.retry import RetryPolicy

logger = logging.getLogger(__name__)


# -----------------------------
# Public return types
# -----------------------------
@dataclass(frozen=True)
class HttpResponse:
    url: str
    status: int
    reason: str
    headers: dict[str, str]
    content: bytes

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class FetchError:
    kind: str
    message: str
    url: str


@dataclass(frozen=True)
class FetchOutcome:
    url: str
    feed: Optional[ParsedFeed] = None
    error: Optional[FetchError] = None
    from_cache: bool = False
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.feed is not None

    @property
    def item_count(self) -> int:
        return len(self.feed.items) if self.feed is not None else 0


# -----------------------------
# HTTP client
# -----------------------------
def _close_late_response(pending: Future) -> None:
    if pending.exception() is None:
        pending.result().close()


class HttpFeedClient:
    """Streaming GET that can be aborted from another thread.

    Each call gets a child token armed by a timer for the per-attempt
    timeout, and its own session. Connecting and waiting for headers happens
    on a helper thread; cancelling either token closes that session (and,
    once headers arrived, the open response), so the caller returns at once.
    """

    def __init__(
        self,
        config: FeedFetcherConfig,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ) -> None:
        self._config = config
        self._session_factory = session_factory
        self._headers = build_request_headers(config.user_agent, config.accept_language)

    def get(self, url: str, *, timeout_sec: float, token: CancellationToken) -> HttpResponse:
        if token.cancelled:
            raise FetchCancelled(url)
        attempt_token = token.child()
        timer = threading.Timer(timeout_sec, attempt_token.cancel)
        timer.daemon = True
        timer.start()
        session = self._session_factory()
        unregister = attempt_token.on_cancel(session.close)
        resp: Optional[requests.Response] = None
        try:
            resp = self._open(url, session, token, attempt_token, timeout_sec)
            body = self._read_body(url, resp, token, attempt_token, timeout_sec)
            return HttpResponse(
                url=resp.url or url,
                status=resp.status_code,
                reason=resp.reason or "",
                headers={k.lower(): v for k, v in resp.headers.items()},
                content=body,
            )
        finally:
            timer.cancel()
            unregister()
            attempt_token.detach()
            if resp is not None:
                resp.close()
            session.close()

    def _open(
        self,
        url: str,
        session: requests.Session,
        token: CancellationToken,
        attempt_token: CancellationToken,
        timeout_sec: float,
    ) -> requests.Response:
        pending: Future[requests.Response] = Future()
        wake = threading.Event()
        pending.add_done_callback(lambda _: wake.set())
        unregister = attempt_token.on_cancel(wake.set)

        def _connect() -> None:
            try:
                pending.set_result(
                    session.get(
                        url,
                        headers=self._headers,
                        timeout=(min(self._config.connect_timeout_sec, timeout_sec), timeout_sec),
                        stream=True,
                        allow_redirects=True,
                    )
                )
            except BaseException as exc:
                pending.set_exception(exc)

        threading.Thread(target=_connect, name="feed-connect", daemon=True).start()
        try:
            wake.wait()
        finally:
            unregister()

        if not pending.done():
            # Headers may still arrive after the abort; release that response too.
            pending.add_done_callback(_close_late_response)
            raise self._classify(url, None, token, attempt_token, timeout_sec)
        try:
            return pending.result()
        except requests.exceptions.RequestException as exc:
            raise self._classify(url, exc, token, attempt_token, timeout_sec) from exc

    def _read_body(
        self,
        url: str,
        resp: requests.Response,
        token: CancellationToken,
        attempt_token: CancellationToken,
        timeout_sec: float,
    ) -> bytes:
        unregister = attempt_token.on_cancel(resp.close)
        chunks: list[bytes] = []
        size = 0
        try:
            for chunk in resp.iter_content(chunk_size=self._config.chunk_bytes):
                if attempt_token.cancelled:
                    break
                chunks.append(chunk)
                size += len(chunk)
                if size >= self._config.max_body_bytes:
                    break
        except Exception as exc:
            # A close() from the cancelling thread surfaces as an arbitrary urllib3 error.
            if not attempt_token.cancelled:
                raise FeedFetchError("network", f"read failed: {exc}", url) from exc
        finally:
            unregister()
        if attempt_token.cancelled:
            if token.cancelled:
                raise FetchCancelled(url)
            raise FeedFetchError("timeout", f"timed out after {timeout_sec:g}s", url)
        return b"".join(chunks)

    @staticmethod
    def _classify(
        url: str,
        exc: Optional[Exception],
        token: CancellationToken,
        attempt_token: CancellationToken,
        timeout_sec: float,
    ) -> Exception:
        if token.cancelled:
            return FetchCancelled(url)
        if attempt_token.cancelled or isinstance(exc, requests.exceptions.Timeout):
            return FeedFetchError("timeout", f"timed out after {timeout_sec:g}s", url)
        return FeedFetchError("network", str(exc), url)


# -----------------------------
# Main fetcher
# -----------------------------
class FeedFetcher:
    def __init__(
        self,
        config: Optional[FeedFetcherConfig] = None,
        *,
        cache: Optional[FeedCache] = None,
        client: Optional[HttpFeedClient] = None,
        parser: Optional[EntryParser] = None,
        rng: Optional[random.Random] = None,
        log: Optional[logging.Logger | logging.LoggerAdapter] = None,
    ) -> None:
        self._config = config or FeedFetcherConfig()
        self._cache = cache or get_default_feed_cache()
        self._client = client or HttpFeedClient(self._config)
        self._parser = parser or EntryParser()
        self._rng = rng or random.Random()
        self._log = log or logger

    @property
    def cache(self) -> FeedCache:
        return self._cache

    def is_slow(self, url: str) -> bool:
        return is_slow_source(url, self._config.slow_hosts)

    def retry_policy_for(self, url: str) -> RetryPolicy:
        cfg = self._config
        return RetryPolicy(
            max_attempts=cfg.slow_attempts if self.is_slow(url) else cfg.attempts,
            base_delay_sec=cfg.backoff_base_sec,
            max_delay_sec=cfg.backoff_max_sec,
            jitter_sec=cfg.backoff_jitter_sec,
            cap_sec=cfg.backoff_cap_sec,
        )

    def timeout_for(self, url: str) -> float:
        cfg = self._config
        return max(cfg.min_timeout_sec, cfg.slow_timeout_sec if self.is_slow(url) else cfg.timeout_sec)

    def fetch(
        self,
        url: str,
        log: Optional[logging.Logger | logging.LoggerAdapter] = None,
        token: Optional[CancellationToken] = None,
    ) -> FetchOutcome:
        log = log or self._log
        token = token or CancellationToken()

        entry = self._cache.get(url)
        if entry is not None:
            if entry.is_negative:
                log.info("feed_skip_recent_failure: %s reason=%s", url, entry.reason)
                err = FetchError("recently_failed", f"recent fetch failed: {entry.reason}", url)
                return FetchOutcome(url=url, error=err, from_cache=True)
            log.debug("feed_cache_hit: %s", url)
            return FetchOutcome(url=url, feed=entry.value, from_cache=True)

        timeout = self.timeout_for(url)
        attempts_made = 0

        def _attempt(attempt: int) -> ParsedFeed:
            nonlocal attempts_made
            attempts_made = attempt
            if token.cancelled:
                raise FetchCancelled(url)
            log.debug("fetch_start: %s attempt=%s timeout=%s", url, attempt, timeout)
            resp = self._client.get(url, timeout_sec=timeout, token=token)
            if not 200 <= resp.status < 300:
                raise FeedFetchError(
                    "http_status",
                    f"Status code {resp.status} - {excerpt(resp.text, self._config.error_excerpt_chars)}",
                    url,
                )
            if looks_like_html(resp.text, self._config.html_sniff_chars):
                raise FeedFetchError("html", "response looks like an HTML page, not a feed", url)
            return self._parser.parse_feed(url, resp.content)

        def _sleep(delay: float) -> None:
            if token.wait(delay):
                raise FetchCancelled(url)

        def _on_error(attempt: int, exc: Exception) -> None:
            if not isinstance(exc, FetchCancelled):
                log.warning("fetch_attempt_failed: %s attempt=%s error=%s", url, attempt, exc)

        try:
            feed = self.retry_policy_for(url).run(
                _attempt,
                sleep=_sleep,
                rng=self._rng,
                is_retryable=lambda exc: not isinstance(exc, FetchCancelled),
                on_error=_on_error,
            )
        except FetchCancelled:
            log.info("fetch_cancelled: %s", url)
            return FetchOutcome(url=url, error=FetchError("cancelled", "fetch cancelled", url), attempts=attempts_made)
        except FeedFetchError as exc:
            return self._record_failure(url, FetchError(exc.kind, str(exc), url), attempts_made, log)
        except Exception as exc:
            log.exception("Unexpected fetch error: %s", url)
            return self._record_failure(url, FetchError(type(exc).__name__, str(exc), url), attempts_made, log)

        self._cache.reset_failures(url)
        self._cache.set_positive(url, feed)
        log.info("fetch_done: %s items=%s attempts=%s", url, len(feed.items), attempts_made)
        return FetchOutcome(url=url, feed=feed, attempts=attempts_made)

    def _record_failure(
        self,
        url: str,
        err: FetchError,
        attempts: int,
        log: logging.Logger | logging.LoggerAdapter,
    ) -> FetchOutcome:
        counter = self._cache.record_failure(url)
        self._cache.set_negative(url, err.message)
        log.warning("fetch_failed: %s kind=%s failures=%s", url, err.kind, counter.count)
        if counter.count >= self._cache.blacklist_threshold:
            log.warning("blacklisting failing feed temporarily: %s failures=%s", url, counter.count)
        return FetchOutcome(url=url, error=err, attempts=attempts)
