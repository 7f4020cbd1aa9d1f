"""Candidate feed URL construction.

Google News RSS endpoints (search, topic, top headlines, geo section) are
combined with curated publisher feeds. The curated feeds come first so that
stable sources are tried before the rate-limited aggregator.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable
from urllib.parse import quote, urlencode

from news_tldr.core.config import MAX_FEEDS
from news_tldr.core.constants import (
    CATEGORY_QUERIES,
    FALLBACK_FEEDS,
    FEED_LANG_MAP,
    GEO_WORLD,
    GLOBAL_GLS,
    HOME_REGION,
    LANGUAGE_GL_OVERRIDES,
    REGION_MAP,
    TOPIC_MAP,
)

GOOGLE_NEWS_RSS = "https://news.google.com/rss"


@dataclass(frozen=True)
class RegionConfig:
    name: str
    gl: str
    hl: str
    ceid: str
    geo: str

    def params(self) -> dict[str, str]:
        return {"hl": self.hl, "gl": self.gl, "ceid": self.ceid}


def get_region_config(region: str, language: str) -> RegionConfig:
    region_def = REGION_MAP.get(region) or REGION_MAP["global"]
    lang = (language or "en").lower()
    gl = LANGUAGE_GL_OVERRIDES.get(lang, region_def.gl)
    return RegionConfig(name=region_def.name, gl=gl, hl=lang, ceid=f"{gl}:{lang}", geo=region_def.geo)


def build_search_url(q: str, cfg: RegionConfig) -> str:
    return f"{GOOGLE_NEWS_RSS}/search?{urlencode({'q': q, **cfg.params()})}"


def build_geo_url(cfg: RegionConfig) -> str:
    return f"{GOOGLE_NEWS_RSS}/headlines/section/geo/{quote(cfg.geo, safe='')}?{urlencode(cfg.params())}"


def build_top_url(cfg: RegionConfig) -> str:
    return f"{GOOGLE_NEWS_RSS}?{urlencode(cfg.params())}"


def build_topic_url(topic_code: str, cfg: RegionConfig) -> str:
    return f"{GOOGLE_NEWS_RSS}/topics/{topic_code}?{urlencode(cfg.params())}"


def resolve_category(category: str | None) -> str:
    if not category or category in {"top", "world"}:
        return "top"
    return category if category in CATEGORY_QUERIES else "top"


def _primary_urls(cfg: RegionConfig, category: str | None, query: str | None, *, with_geo: bool) -> list[str]:
    if query:
        return [build_search_url(query, cfg)]
    topic_code = TOPIC_MAP.get(category or "")
    if topic_code:
        return [build_topic_url(topic_code, cfg)]
    urls = [build_top_url(cfg)]
    if with_geo and cfg.geo != GEO_WORLD:
        urls.append(build_geo_url(cfg))
    return urls


def build_feed_urls(region: str, language: str, category: str | None = None, query: str | None = None) -> list[str]:
    """One targeted endpoint: search, else topic, else top headlines (+geo)."""
    return _primary_urls(get_region_config(region, language), category, query, with_geo=True)


def build_all_feeds(region: str, language: str, category: str | None = None, query: str | None = None) -> list[str]:
    cfg = get_region_config(region, language)
    urls = build_feed_urls(region, language, category, query)

    if region == HOME_REGION:
        for home_lang in FEED_LANG_MAP.get(HOME_REGION, ()):
            urls.extend(_primary_urls(get_region_config(HOME_REGION, home_lang), category, query, with_geo=True))

    if not query:
        for gl in GLOBAL_GLS:
            urls.extend(_primary_urls(replace(cfg, gl=gl), category, None, with_geo=False))

    return unique(urls)


def fallback_feeds(region: str, category: str | None) -> tuple[list[str], list[str]]:
    """(category publisher feeds, region publisher feeds)."""
    resolved = resolve_category(category)
    category_feeds = list(FALLBACK_FEEDS.get(resolved) or FALLBACK_FEEDS["top"])
    region_feeds = list(FALLBACK_FEEDS.get((region or "").lower(), ()))
    return category_feeds, region_feeds


def get_all_feeds_with_fallbacks(
    region: str,
    language: str,
    category: str | None = None,
    query: str | None = None,
    max_feeds: int = MAX_FEEDS,
) -> list[str]:
    category_feeds, region_feeds = fallback_feeds(region, category)
    google_urls = build_all_feeds(region, language, category, query)
    return unique(category_feeds + region_feeds + google_urls)[: max(0, max_feeds)]


def unique(urls: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for u in urls:
        if u and u not in seen:
            seen.add(u)
            out.append(u)
    return out
