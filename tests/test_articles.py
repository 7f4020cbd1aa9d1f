from __future__ import annotations

import datetime

from news_tldr.core.constants import DominantOutletRule
from news_tldr.processing.articles import ArticleProcessor, effective_window_ms, per_host_cap
from news_tldr.processing.dedupe import DedupeEngine
from news_tldr.processing.types import RawArticle
from news_tldr.utils import host_of

NOW = datetime.datetime(2024, 1, 2, 12, 0, tzinfo=datetime.timezone.utc)
NOW_MS = int(NOW.timestamp() * 1000)
HOUR_MS = 3_600_000

WORDS = [
    "budget", "storm", "election", "vaccine", "merger", "satellite", "drought", "strike",
    "tariff", "earthquake", "summit", "protest", "bankruptcy", "wildfire", "referendum", "pipeline",
    "ceasefire", "heatwave", "airline", "lottery", "museum", "glacier", "tunnel", "orchestra",
]


def _raw(i: int, host: str, hours_ago: float = 1.0) -> RawArticle:
    word = WORDS[i % len(WORDS)]
    return RawArticle(
        title=f"{word.title()} story number {i} {word}x{i}",
        link=f"https://{host}/news/{i}",
        published_at_ms=int(NOW_MS - hours_ago * HOUR_MS),
        source_label=host,
    )


def _processor(dominant_rules: dict[str, DominantOutletRule] | None = None) -> ArticleProcessor:
    return ArticleProcessor(
        dedupe_engine=DedupeEngine(title_cluster_jaccard=0.58),
        now_provider=lambda: NOW,
        dominant_rules=dominant_rules or {},
    )


def test_effective_window_clamps() -> None:
    assert effective_window_ms(None) == 168 * HOUR_MS
    assert effective_window_ms(float("nan")) == 168 * HOUR_MS
    assert effective_window_ms(0) == HOUR_MS
    assert effective_window_ms(10_000) == 168 * HOUR_MS
    assert effective_window_ms(24) == 24 * HOUR_MS


def test_per_host_cap() -> None:
    assert per_host_cap(1) == 1
    assert per_host_cap(5) == 2
    assert per_host_cap(20) == 3


def test_exact_duplicates_removed_and_idempotent() -> None:
    items = [_raw(1, "a.com"), _raw(2, "b.com"), _raw(1, "a.com")]
    processor = _processor()

    once = processor.process(items, 24, 10).selected
    twice = processor.process([a.to_raw() for a in once], 24, 10).selected

    assert len(once) == 2
    assert once == twice


def test_reprocessing_output_keeps_cluster_sizes() -> None:
    items = [
        RawArticle("Central bank raises interest rates sharply", "https://a.com/1", NOW_MS - HOUR_MS, "A"),
        RawArticle("Central bank raises interest rates sharply again", "https://a.com/2", NOW_MS - 2 * HOUR_MS, "A"),
        RawArticle("Storm floods coastal towns overnight", "https://b.com/1", NOW_MS - 3 * HOUR_MS, "B"),
    ]
    processor = _processor()

    once = processor.process(items, 24, 2).selected
    twice = processor.process([a.to_raw() for a in once], 24, 2).selected

    assert [(a.link, a.cluster_size) for a in once] == [("https://a.com/1", 1), ("https://b.com/1", 1)]
    assert once == twice


def test_round_robin_selection_is_returned_newest_first() -> None:
    items = [_raw(1, "a.com", hours_ago=1), _raw(2, "a.com", hours_ago=2), _raw(3, "b.com", hours_ago=3)]
    selected = _processor().process(items, 24, 3).selected

    assert [a.link for a in selected] == ["https://a.com/news/1", "https://a.com/news/2", "https://b.com/news/3"]
    assert [a.published_at_ms for a in selected] == sorted((a.published_at_ms for a in selected), reverse=True)


def test_ascending_order_is_kept_through_selection() -> None:
    items = [_raw(1, "a.com", hours_ago=1), _raw(2, "a.com", hours_ago=2), _raw(3, "b.com", hours_ago=3)]
    selected = _processor().process(items, 24, 3, ascending=True).selected

    assert [a.link for a in selected] == ["https://b.com/news/3", "https://a.com/news/2", "https://a.com/news/1"]


def test_window_excludes_old_items_and_missing_date_counts_as_now() -> None:
    items = [
        _raw(1, "a.com", hours_ago=2),
        _raw(2, "b.com", hours_ago=30),
        RawArticle(title="Undated lottery results", link="https://c.com/x", published_at_ms=None, source_label="c"),
    ]
    result = _processor().process(items, 24, 10)

    links = {a.link for a in result.selected}
    assert links == {"https://a.com/news/1", "https://c.com/x"}
    assert all(a.published_at_ms >= NOW_MS - 24 * HOUR_MS for a in result.selected)


def test_selected_is_sorted_newest_first_for_single_host() -> None:
    items = [_raw(i, "only.com", hours_ago=i + 1) for i in range(6)]
    selected = _processor().process(list(reversed(items)), 24, 4).selected

    assert [a.link for a in selected] == [f"https://only.com/news/{i}" for i in range(4)]


def test_host_cap_applied_when_enough_hosts() -> None:
    hosts = ["a.com", "b.com", "c.com", "d.com", "e.com"]
    items = [_raw(i, hosts[i % 5] if i >= 5 else "a.com", hours_ago=1 + i * 0.1) for i in range(25)]
    selected = _processor().process(items, 24, 5).selected

    assert len(selected) == 5
    cap = per_host_cap(5)
    for host in hosts:
        assert sum(1 for a in selected if host_of(a.link) == host) <= cap


def test_backfill_exceeds_cap_only_when_needed() -> None:
    items = [_raw(i, "big.com", hours_ago=1 + i * 0.1) for i in range(8)] + [_raw(20, "small.com")]
    selected = _processor().process(items, 24, 6).selected

    assert len(selected) == 6
    assert sum(1 for a in selected if host_of(a.link) == "small.com") == 1


def test_dominant_outlet_limited_to_a_third() -> None:
    rules = {"lithuania": DominantOutletRule("delfi", ("lrt.lt", "15min.lt"))}
    items = [_raw(i, "www.delfi.lt", hours_ago=1 + i * 0.01) for i in range(12)]
    items += [_raw(100 + i, "www.lrt.lt", hours_ago=2 + i * 0.01) for i in range(3)]
    items += [_raw(200 + i, "other.lt", hours_ago=3 + i * 0.01) for i in range(6)]

    selected = _processor(rules).process(items, 24, 9, region="lithuania").selected

    assert len(selected) == 9
    assert sum(1 for a in selected if "delfi" in host_of(a.link)) <= 3
    assert sum(1 for a in selected if host_of(a.link) == "www.lrt.lt") == 3


def test_near_duplicate_titles_are_annotated_not_dropped() -> None:
    items = [
        RawArticle("Central bank raises interest rates sharply", "https://a.com/1", NOW_MS - HOUR_MS, "A"),
        RawArticle("Central bank raises interest rates sharply again", "https://b.com/1", NOW_MS - 2 * HOUR_MS, "B"),
    ]
    selected = _processor().process(items, 24, 10).selected

    assert len(selected) == 2
    assert selected[0].cluster_size == 2
    assert selected[1].cluster_size == 1
