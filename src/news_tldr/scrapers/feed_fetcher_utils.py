from __future__ import annotations

from typing import Iterable, Sequence

from news_tldr.scrapers.feed_fetcher_config import FEED_ACCEPT, HTML_MARKERS
from news_tldr.utils.common import host_of


def is_slow_source(url: str, slow_hosts: Iterable[str]) -> bool:
    host = host_of(url)
    return any(host == h or host.endswith("." + h) for h in slow_hosts)


def looks_like_html(body: str, sniff_chars: int = 2000, markers: Sequence[str] = HTML_MARKERS) -> bool:
    """Cheap check for interstitial/redirect pages served instead of a feed."""
    head = (body or "")[:sniff_chars].lower()
    return any(m in head for m in markers)


def build_request_headers(user_agent: str, accept_language: str) -> dict[str, str]:
    return {
        "User-Agent": user_agent,
        "Accept": FEED_ACCEPT,
        "Accept-Language": accept_language,
        "Cache-Control": "no-cache",
        "Pragma": "no-cache",
    }


def excerpt(text: str, limit: int = 200) -> str:
    return " ".join((text or "")[:limit].split())
