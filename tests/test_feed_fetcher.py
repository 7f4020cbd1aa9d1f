from __future__ import annotations

import random
import threading
import time
from typing import Union

import pytest
import requests

from news_tldr.core.errors import FeedFetchError, FetchCancelled
from news_tldr.scrapers.feed_cache import FeedCache
from news_tldr.scrapers.feed_fetcher import FeedFetcher, HttpFeedClient, HttpResponse
from news_tldr.scrapers.feed_fetcher_config import FeedFetcherConfig
from news_tldr.scrapers.feed_fetcher_utils import looks_like_html
from news_tldr.utils.cancellation import CancellationToken

FEED_URL = "https://feeds.example.com/world/rss.xml"
GOOGLE_URL = "https://news.google.com/rss?hl=en&gl=US&ceid=US:en"

RSS_BODY = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"><channel>
<title>Example World</title><link>https://example.com</link>
<item><title>Parliament passes budget</title><link>https://example.com/a</link>
<pubDate>Mon, 01 Jan 2024 10:00:00 GMT</pubDate><description>Budget &lt;b&gt;approved&lt;/b&gt;.</description></item>
<item><title>Storm hits coast</title><link>https://example.com/b</link>
<pubDate>Mon, 01 Jan 2024 09:00:00 GMT</pubDate></item>
</channel></rss>"""


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class _FakeClient:
    def __init__(self, responses: list[Union[HttpResponse, Exception]]) -> None:
        self._responses = list(responses)
        self.calls: list[str] = []

    def get(self, url: str, *, timeout_sec: float, token: CancellationToken) -> HttpResponse:
        self.calls.append(url)
        item = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(item, Exception):
            raise item
        return item


def _ok(body: bytes = RSS_BODY, status: int = 200) -> HttpResponse:
    return HttpResponse(url=FEED_URL, status=status, reason="", headers={}, content=body)


def _config() -> FeedFetcherConfig:
    return FeedFetcherConfig(
        backoff_base_sec=0.0,
        backoff_max_sec=0.0,
        backoff_jitter_sec=0.0,
        backoff_cap_sec=0.0,
    )


def _fetcher(client: _FakeClient, cache: FeedCache | None = None) -> FeedFetcher:
    return FeedFetcher(_config(), cache=cache or FeedCache(), client=client, rng=random.Random(0))


def test_fetch_parses_items_and_caches_positive() -> None:
    client = _FakeClient([_ok()])
    fetcher = _fetcher(client)

    first = fetcher.fetch(FEED_URL)
    second = fetcher.fetch(FEED_URL)

    assert first.ok and first.item_count == 2
    assert first.feed is not None
    assert first.feed.items[0].title == "Parliament passes budget"
    assert first.feed.items[0].snippet == "Budget approved."
    assert first.feed.items[0].source_label == "Example World"
    assert second.from_cache and second.item_count == 2
    assert len(client.calls) == 1


def test_non_2xx_retries_then_records_negative_entry() -> None:
    client = _FakeClient([_ok(b"Service Unavailable", status=503)])
    cache = FeedCache()
    outcome = _fetcher(client, cache).fetch(FEED_URL)

    assert not outcome.ok
    assert outcome.error is not None and outcome.error.kind == "http_status"
    assert outcome.error.message.startswith("Status code 503")
    assert len(client.calls) == 2
    entry = cache.get(FEED_URL)
    assert entry is not None and entry.is_negative


def test_negative_entry_short_circuits_without_network() -> None:
    cache = FeedCache()
    cache.set_negative(FEED_URL, "Status code 500")
    client = _FakeClient([_ok()])

    outcome = _fetcher(client, cache).fetch(FEED_URL)

    assert outcome.error is not None and outcome.error.kind == "recently_failed"
    assert client.calls == []


def test_html_body_is_rejected() -> None:
    client = _FakeClient([_ok(b"<!DOCTYPE html><html><body>consent</body></html>")])
    outcome = _fetcher(client).fetch(FEED_URL)
    assert outcome.error is not None and outcome.error.kind == "html"


@pytest.mark.parametrize(
    "body",
    [
        "<html><head><title>Consent</title></head></html>",
        "<!DOCTYPE HTML PUBLIC \"-//W3C//DTD HTML 4.01//EN\">",
        "<script>window.location.href='https://consent.example'</script>",
        "<p>You are being redirected</p>",
    ],
)
def test_interstitial_markers_detected(body: str) -> None:
    assert looks_like_html(body)


def test_plain_rss_is_not_html() -> None:
    assert not looks_like_html(RSS_BODY.decode())


def test_marker_beyond_sniff_window_is_ignored() -> None:
    assert not looks_like_html("<rss>" + " " * 2000 + "<html>", sniff_chars=2000)


def test_slow_source_gets_single_attempt() -> None:
    client = _FakeClient([FeedFetchError("network", "connection reset", GOOGLE_URL)])
    fetcher = _fetcher(client)

    outcome = fetcher.fetch(GOOGLE_URL)

    assert fetcher.is_slow(GOOGLE_URL)
    assert outcome.attempts == 1
    assert len(client.calls) == 1


def test_cancelled_token_skips_network_and_cache() -> None:
    client = _FakeClient([_ok()])
    cache = FeedCache()
    token = CancellationToken()
    token.cancel()

    outcome = _fetcher(client, cache).fetch(FEED_URL, token=token)

    assert outcome.error is not None and outcome.error.kind == "cancelled"
    assert client.calls == []
    assert cache.get(FEED_URL) is None
    assert cache.failure_count(FEED_URL) == 0


def test_cancellation_during_fetch_is_not_retried() -> None:
    client = _FakeClient([FetchCancelled(FEED_URL)])
    outcome = _fetcher(client).fetch(FEED_URL)
    assert outcome.error is not None and outcome.error.kind == "cancelled"
    assert len(client.calls) == 1


def test_repeated_failures_blacklist_and_skip_network() -> None:
    clock = _Clock()
    cache = FeedCache(clock=clock)
    client = _FakeClient([FeedFetchError("network", "connection refused", FEED_URL)])
    fetcher = _fetcher(client, cache)

    for minute in (0, 6, 12):
        clock.now = minute * 60.0
        assert not fetcher.fetch(FEED_URL).ok
    calls_before = len(client.calls)

    clock.now = 13 * 60.0
    outcome = fetcher.fetch(FEED_URL)

    assert cache.is_blacklisted(FEED_URL)
    assert outcome.error is not None and outcome.error.kind == "recently_failed"
    assert len(client.calls) == calls_before


def test_success_resets_failure_counter() -> None:
    clock = _Clock()
    cache = FeedCache(clock=clock)
    cache.record_failure(FEED_URL)
    cache.record_failure(FEED_URL)

    outcome = _fetcher(_FakeClient([_ok()]), cache).fetch(FEED_URL)

    assert outcome.ok
    assert cache.failure_count(FEED_URL) == 0


class _HangingResponse:
    status_code = 200
    reason = "OK"
    url = FEED_URL
    headers: dict[str, str] = {}

    def __init__(self) -> None:
        self._closed = threading.Event()

    def iter_content(self, chunk_size: int = 1024):
        yield b"<rss>"
        self._closed.wait(5)
        raise requests.exceptions.ConnectionError("connection closed")

    def close(self) -> None:
        self._closed.set()


class _HangingSession:
    def __init__(self) -> None:
        self.response = _HangingResponse()

    def get(self, url: str, **kwargs: object) -> _HangingResponse:
        return self.response

    def close(self) -> None:
        pass


def test_http_client_aborts_stalled_body_on_timeout() -> None:
    client = HttpFeedClient(FeedFetcherConfig(), session_factory=_HangingSession)
    with pytest.raises(FeedFetchError) as excinfo:
        client.get(FEED_URL, timeout_sec=0.2, token=CancellationToken())
    assert excinfo.value.kind == "timeout"


def test_http_client_aborts_stalled_body_on_cancel() -> None:
    client = HttpFeedClient(FeedFetcherConfig(), session_factory=_HangingSession)
    token = CancellationToken()
    timer = threading.Timer(0.1, token.cancel)
    timer.start()
    try:
        with pytest.raises(FetchCancelled):
            client.get(FEED_URL, timeout_sec=5.0, token=token)
    finally:
        timer.cancel()


class _StuckConnectSession:
    """Blocks inside get() until closed, like a connect that never completes."""

    instances: list["_StuckConnectSession"] = []

    def __init__(self) -> None:
        self.closed = threading.Event()
        _StuckConnectSession.instances.append(self)

    def get(self, url: str, **kwargs: object) -> _HangingResponse:
        self.closed.wait(3)
        raise requests.exceptions.ConnectionError("connection aborted")

    def close(self) -> None:
        self.closed.set()


def test_http_client_aborts_pending_connect_on_cancel() -> None:
    _StuckConnectSession.instances.clear()
    client = HttpFeedClient(FeedFetcherConfig(), session_factory=_StuckConnectSession)
    token = CancellationToken()
    timer = threading.Timer(0.1, token.cancel)
    timer.start()
    started = time.monotonic()
    try:
        with pytest.raises(FetchCancelled):
            client.get(FEED_URL, timeout_sec=5.0, token=token)
    finally:
        timer.cancel()

    assert time.monotonic() - started < 1.0
    assert _StuckConnectSession.instances[0].closed.is_set()


def test_http_client_times_out_pending_connect() -> None:
    client = HttpFeedClient(FeedFetcherConfig(), session_factory=_StuckConnectSession)
    started = time.monotonic()
    with pytest.raises(FeedFetchError) as excinfo:
        client.get(FEED_URL, timeout_sec=0.2, token=CancellationToken())
    assert excinfo.value.kind == "timeout"
    assert time.monotonic() - started < 1.0
