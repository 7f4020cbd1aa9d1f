from __future__ import annotations

import random
import time
from typing import Any, Optional

from news_tldr.core.errors import GenerationError
from news_tldr.models import FeedRequest
from news_tldr.processing.pipeline import (
    NO_ARTICLES_PREAMBLE,
    TldrPipeline,
    build_default_article_processor,
    category_display_name,
    fetch_deadline_sec,
    sources_footer,
)
from news_tldr.processing.summarizer import FALLBACK_PREAMBLE, Summarizer
from news_tldr.processing.types import RawArticle
from news_tldr.scrapers.orchestrator import FetchAllResult

HOSTS = ["bbc.co.uk", "www.reuters.com", "www.theguardian.com", "www.nytimes.com", "www.dw.com"]
SUBJECTS = [
    "budget", "storm", "election", "vaccine", "merger", "satellite", "drought", "strike",
    "tariff", "earthquake", "summit", "protest", "bankruptcy", "wildfire", "referendum", "pipeline",
    "ceasefire", "heatwave", "airline", "lottery", "museum", "glacier", "tunnel", "orchestra", "harbour",
]


class _FakeOrchestrator:
    def __init__(self, result: FetchAllResult) -> None:
        self._result = result
        self.calls: list[dict[str, Any]] = []

    def fetch_all(self, urls: list[str], desired_items: int = 0, deadline_sec: Optional[float] = None, **kwargs: Any) -> FetchAllResult:
        self.calls.append({"urls": urls, "desired_items": desired_items, "deadline_sec": deadline_sec, **kwargs})
        return self._result


class _FakeClient:
    model = "fake-model"
    has_key = True

    def __init__(self, reply: str | Exception) -> None:
        self._reply = reply

    def ensure_configured(self) -> None:
        return None

    def generate(self, prompt: str, style: str) -> str:
        if isinstance(self._reply, Exception):
            raise self._reply
        return self._reply


def _items(feeds: int = 5, per_feed: int = 5) -> list[RawArticle]:
    now_ms = int(time.time() * 1000)
    out = []
    for f in range(feeds):
        for i in range(per_feed):
            n = f * per_feed + i
            out.append(
                RawArticle(
                    title=f"{SUBJECTS[n].title()} update from desk {n}",
                    link=f"https://{HOSTS[f]}/story/{n}",
                    published_at_ms=now_ms - (n + 1) * 60_000,
                    source_label=HOSTS[f],
                )
            )
    return out


def _result(items: list[RawArticle], urls: list[str] | None = None) -> FetchAllResult:
    urls = urls or [f"https://feed{i}.example/rss" for i in range(5)]
    return FetchAllResult(items=items, urls=urls, fetched_urls=urls, per_url_counts=[], per_url_errors=[])


def _request(**overrides: Any) -> FeedRequest:
    fields: dict[str, Any] = dict(
        region="global",
        category="top",
        style="neutral",
        timeframe_hours=24,
        limit=20,
        language="en",
        locale="en-US",
    )
    fields.update(overrides)
    return FeedRequest(**fields)


def _pipeline(orchestrator: _FakeOrchestrator, reply: str | Exception) -> TldrPipeline:
    summarizer = Summarizer(client=_FakeClient(reply), sleep=lambda _: None, rng=random.Random(0))  # type: ignore[arg-type]
    return TldrPipeline(
        orchestrator=orchestrator,  # type: ignore[arg-type]
        processor=build_default_article_processor(),
        summarizer=summarizer,
        fetch_deadline=5,
    )


def test_fetch_deadline_reserves_summary_time() -> None:
    assert fetch_deadline_sec(30) == 22
    assert fetch_deadline_sec(10) == 8


def test_category_display_name() -> None:
    assert category_display_name("technology") == "Technology"
    assert category_display_name("") == "Top"


def test_twenty_five_items_yield_twenty_used_articles() -> None:
    orchestrator = _FakeOrchestrator(_result(_items()))
    payload = _pipeline(orchestrator, "TL;DR: Busy day.\n\n- Budget passes.").run(_request())

    assert payload["ok"] is True
    meta = payload["meta"]
    assert meta["usedArticles"] == 20
    assert meta["region"] == "Global"
    assert meta["category"] == "Top"
    assert meta["timeframeHours"] == 24
    assert meta["model"] == "fake-model"
    assert meta["length"] == "medium"
    assert payload["summary"].startswith("TL;DR: Busy day.")
    assert "\n\nSources: " in payload["summary"]
    assert "llmError" not in payload
    assert orchestrator.calls[0]["desired_items"] == 20
    assert orchestrator.calls[0]["deadline_sec"] == 5


def test_small_limit_still_asks_for_eight_items() -> None:
    orchestrator = _FakeOrchestrator(_result(_items()))
    _pipeline(orchestrator, "TL;DR: ok.").run(_request(limit=3))
    assert orchestrator.calls[0]["desired_items"] == 8


def test_llm_failure_returns_headline_fallback() -> None:
    orchestrator = _FakeOrchestrator(_result(_items(2, 3)))
    payload = _pipeline(orchestrator, GenerationError("503 overloaded")).run(_request())

    assert payload["ok"] is True
    assert payload["summary"].startswith(FALLBACK_PREAMBLE)
    assert payload["llmError"] == "503 overloaded"


def test_no_articles_returns_attempted_urls() -> None:
    urls = [f"https://feed{i}.example/rss" for i in range(25)]
    orchestrator = _FakeOrchestrator(_result([], urls))
    payload = _pipeline(orchestrator, "unused").run(_request(region="lithuania", category="politics"))

    summary = payload["summary"]
    assert payload["ok"] is True
    assert summary.startswith(NO_ARTICLES_PREAMBLE.format(n=20))
    assert summary.count("\n- https://") == 20
    assert "https://feed19.example/rss" in summary
    assert "https://feed20.example/rss" not in summary
    assert payload["meta"]["usedArticles"] == 0
    assert payload["meta"]["region"] == "lithuania"


def test_sources_footer_counts_hosts() -> None:
    processor = build_default_article_processor()
    selected = processor.process(_items(2, 2), 24, 10).selected
    assert sources_footer(selected) == "Sources: bbc.co.uk (2), reuters.com (2)"
