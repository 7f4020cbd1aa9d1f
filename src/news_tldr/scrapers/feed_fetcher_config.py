from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Tuple

from news_tldr.core.config import _env_float, _env_int
from news_tldr.core.constants import SLOW_SOURCE_HOSTS

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/119 Safari/537.36"
)

FEED_ACCEPT = "application/rss+xml, application/xml, text/xml, */*;q=0.1"

HTML_MARKERS: Tuple[str, ...] = ("<html", "<!doctype", "window.location", "redirect")


@dataclass(frozen=True)
class FeedFetcherConfig:
    timeout_sec: float = _env_float("FEED_FETCH_TIMEOUT_SEC", 10.0)
    slow_timeout_sec: float = _env_float("FEED_FETCH_SLOW_TIMEOUT_SEC", 8.0)
    min_timeout_sec: float = _env_float("FEED_FETCH_MIN_TIMEOUT_SEC", 5.0)
    connect_timeout_sec: float = _env_float("FEED_FETCH_CONNECT_TIMEOUT_SEC", 5.0)
    attempts: int = _env_int("FEED_FETCH_ATTEMPTS", 2)
    slow_attempts: int = _env_int("FEED_FETCH_SLOW_ATTEMPTS", 1)
    backoff_base_sec: float = _env_float("FEED_FETCH_BACKOFF_BASE_SEC", 0.3)
    backoff_max_sec: float = _env_float("FEED_FETCH_BACKOFF_MAX_SEC", 1.5)
    backoff_jitter_sec: float = _env_float("FEED_FETCH_BACKOFF_JITTER_SEC", 0.3)
    backoff_cap_sec: float = _env_float("FEED_FETCH_BACKOFF_CAP_SEC", 1.8)
    html_sniff_chars: int = _env_int("FEED_FETCH_HTML_SNIFF_CHARS", 2000)
    error_excerpt_chars: int = 200
    max_body_bytes: int = _env_int("FEED_FETCH_MAX_BODY_BYTES", 5 * 1024 * 1024)
    chunk_bytes: int = 16 * 1024
    user_agent: str = os.getenv("FEED_FETCH_USER_AGENT", DEFAULT_USER_AGENT)
    accept_language: str = os.getenv("FEED_FETCH_ACCEPT_LANGUAGE", "en-US,en;q=0.9,de;q=0.8")
    slow_hosts: Tuple[str, ...] = field(default_factory=lambda: SLOW_SOURCE_HOSTS)
