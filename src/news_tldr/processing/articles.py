from __future__ import annotations

import datetime
import logging
import math
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence

from news_tldr.core.config import MAX_WINDOW_HOURS
from news_tldr.core.constants import DOMINANT_OUTLET_RULES, DominantOutletRule
from news_tldr.processing.dedupe import DedupeEngine
from news_tldr.processing.types import NormalizedArticle, RawArticle
from news_tldr.utils import clean_text_ws, host_of, tokenize_title

logger = logging.getLogger(__name__)

HOUR_MS = 60 * 60 * 1000


@dataclass(frozen=True)
class ProcessResult:
    selected: list[NormalizedArticle]
    window_ms: int
    raw_count: int = 0
    deduped_count: int = 0
    windowed_count: int = 0

    @property
    def window_hours(self) -> int:
        return max(1, round(self.window_ms / HOUR_MS))


def effective_window_ms(window_hours: float | None, max_hours: int = MAX_WINDOW_HOURS) -> int:
    if window_hours is None:
        return max_hours * HOUR_MS
    try:
        hours = float(window_hours)
    except (TypeError, ValueError):
        return max_hours * HOUR_MS
    if math.isnan(hours):
        return max_hours * HOUR_MS
    hours = max(1, int(round(hours)))
    return min(max_hours, hours) * HOUR_MS


def per_host_cap(max_articles: int) -> int:
    return max(1, min(3, math.floor(max_articles * 0.4)))


def article_host(article: NormalizedArticle) -> str:
    return host_of(article.link) or (article.source_label or "").lower() or "unknown"


class ArticleProcessor:
    def __init__(
        self,
        *,
        dedupe_engine: DedupeEngine,
        now_provider: Callable[[], datetime.datetime],
        dominant_rules: Optional[dict[str, DominantOutletRule]] = None,
        max_window_hours: int = MAX_WINDOW_HOURS,
        log: Optional[logging.Logger | logging.LoggerAdapter] = None,
    ) -> None:
        self._dedupe = dedupe_engine
        self._now = now_provider
        self._dominant_rules = DOMINANT_OUTLET_RULES if dominant_rules is None else dominant_rules
        self._max_window_hours = max_window_hours
        self._log = log or logger

    def _now_ms(self) -> int:
        return int(self._now().timestamp() * 1000)

    def normalize(self, raw: RawArticle, now_ms: int) -> NormalizedArticle:
        title = clean_text_ws(raw.title)
        return NormalizedArticle(
            title=title,
            link=(raw.link or "").strip(),
            published_at_ms=raw.published_at_ms if raw.published_at_ms else now_ms,
            source_label=(raw.source_label or "").strip(),
            snippet=raw.snippet or "",
            title_tokens=tokenize_title(title),
            raw_payload=raw.raw_payload,
        )

    def process(
        self,
        raw_items: Iterable[RawArticle],
        window_hours: float | None,
        max_articles: int,
        region: str = "",
        *,
        ascending: bool = False,
    ) -> ProcessResult:
        now_ms = self._now_ms()
        raw_list = list(raw_items)
        normalized = [self.normalize(r, now_ms) for r in raw_list if (r.title or "").strip() or (r.link or "").strip()]
        deduped = self._dedupe.dedupe_exact(normalized)
        ordered = sorted(deduped, key=lambda a: a.published_at_ms, reverse=not ascending)

        window_ms = effective_window_ms(window_hours, self._max_window_hours)
        cutoff = now_ms - window_ms
        windowed = [a for a in ordered if a.published_at_ms >= cutoff]

        limit = max(0, int(max_articles))
        try:
            selected = self.select_diverse(windowed, limit, region)
        except Exception:
            self._log.exception("diversity selection failed; using recency order")
            selected = windowed[:limit]
        selected = self._dedupe.annotate_clusters(selected)

        self._log.info(
            "articles_processed: raw=%s deduped=%s windowed=%s selected=%s window_h=%s",
            len(raw_list),
            len(deduped),
            len(windowed),
            len(selected),
            window_ms // HOUR_MS,
        )
        return ProcessResult(
            selected=selected,
            window_ms=window_ms,
            raw_count=len(raw_list),
            deduped_count=len(deduped),
            windowed_count=len(windowed),
        )

    def select_diverse(self, articles: Sequence[NormalizedArticle], max_articles: int, region: str = "") -> list[NormalizedArticle]:
        if max_articles <= 0:
            return []
        rule = self._dominant_rules.get((region or "").lower())
        if rule is not None:
            return self._select_dominant_outlet(articles, max_articles, rule)
        return self._select_round_robin(articles, max_articles)

    def _select_dominant_outlet(
        self,
        articles: Sequence[NormalizedArticle],
        max_articles: int,
        rule: DominantOutletRule,
    ) -> list[NormalizedArticle]:
        """Cap one historically dominant outlet at a third of the slots."""
        dominant_cap = max_articles // 3

        def _is_dominant(a: NormalizedArticle) -> bool:
            return rule.outlet in article_host(a)

        def _is_preferred(a: NormalizedArticle) -> bool:
            host = article_host(a)
            return any(host == p or host.endswith("." + p) for p in rule.preferred_hosts)

        dominant = [a for a in articles if _is_dominant(a)]
        preferred = [a for a in articles if not _is_dominant(a) and _is_preferred(a)]
        others = [a for a in articles if not _is_dominant(a) and not _is_preferred(a)]

        reserve = min(rule.max_reserved, dominant_cap, len(dominant))
        non_dominant_limit = max_articles - reserve

        picked: list[NormalizedArticle] = []
        picked_ids: set[int] = set()

        def _take(pool: Iterable[NormalizedArticle], limit: int) -> None:
            for a in pool:
                if len(picked) >= limit:
                    return
                if id(a) in picked_ids:
                    continue
                picked.append(a)
                picked_ids.add(id(a))

        _take(preferred, non_dominant_limit)
        _take(others, non_dominant_limit)

        dominant_taken = 0
        for a in dominant:
            if dominant_taken >= dominant_cap or len(picked) >= max_articles:
                break
            picked.append(a)
            picked_ids.add(id(a))
            dominant_taken += 1

        for a in articles:
            if len(picked) >= max_articles:
                break
            if id(a) in picked_ids:
                continue
            if _is_dominant(a):
                if dominant_taken >= dominant_cap:
                    continue
                dominant_taken += 1
            picked.append(a)
            picked_ids.add(id(a))

        position = {id(a): i for i, a in enumerate(articles)}
        picked.sort(key=lambda a: position[id(a)])
        return picked

    def _select_round_robin(self, articles: Sequence[NormalizedArticle], max_articles: int) -> list[NormalizedArticle]:
        buckets: "OrderedDict[str, list[NormalizedArticle]]" = OrderedDict()
        for a in articles:
            buckets.setdefault(article_host(a), []).append(a)
        if len(buckets) <= 1:
            return list(articles[:max_articles])

        cap = per_host_cap(max_articles)
        picked: list[NormalizedArticle] = []
        picked_ids: set[int] = set()
        taken: dict[str, int] = {h: 0 for h in buckets}
        cursors: dict[str, int] = {h: 0 for h in buckets}

        progressed = True
        while len(picked) < max_articles and progressed:
            progressed = False
            for host, bucket in buckets.items():
                if len(picked) >= max_articles:
                    break
                if taken[host] >= cap or cursors[host] >= len(bucket):
                    continue
                a = bucket[cursors[host]]
                cursors[host] += 1
                taken[host] += 1
                picked.append(a)
                picked_ids.add(id(a))
                progressed = True

        if len(picked) < max_articles:
            for a in articles:
                if len(picked) >= max_articles:
                    break
                if id(a) not in picked_ids:
                    picked.append(a)
                    picked_ids.add(id(a))

        position = {id(a): i for i, a in enumerate(articles)}
        picked.sort(key=lambda a: position[id(a)])
        return picked
