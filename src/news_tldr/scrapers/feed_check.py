from __future__ import annotations

import logging
from typing import Callable
from urllib.parse import urlparse

import requests

from news_tldr.core.constants import GOOGLE_NEWS_HOST
from news_tldr.models import FeedCheckReport
from news_tldr.scrapers.feed_fetcher_config import DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)

ALLOWED_HOSTS: tuple[str, ...] = (GOOGLE_NEWS_HOST,)
CHECK_TIMEOUT_SEC = 10
SNIPPET_CHARS = 2000


def check_feed(
    url: str,
    *,
    timeout_sec: float = CHECK_TIMEOUT_SEC,
    allowed_hosts: tuple[str, ...] = ALLOWED_HOSTS,
    get: Callable[..., requests.Response] = requests.get,
) -> tuple[int, FeedCheckReport]:
    """Diagnostic single-URL fetch; only allow-listed hosts, to avoid acting as an open proxy."""
    if not url:
        return 400, {"ok": False, "error": "Missing url"}
    try:
        parsed = urlparse(url)
    except ValueError:
        return 400, {"ok": False, "error": "Invalid URL"}
    if parsed.scheme not in {"http", "https"} or not parsed.hostname:
        return 400, {"ok": False, "error": "Only http(s) URLs are supported"}
    if parsed.hostname not in allowed_hosts:
        return 403, {"ok": False, "error": f"Host not allowed (only {', '.join(allowed_hosts)})"}

    headers = {
        "User-Agent": DEFAULT_USER_AGENT,
        "Accept": "*/*",
        "Accept-Language": "en-US,en;q=0.9",
    }
    try:
        resp = get(url, headers=headers, timeout=timeout_sec)
    except requests.exceptions.Timeout:
        return 502, {"ok": False, "error": "Fetch failed", "details": "Request timed out"}
    except requests.exceptions.RequestException as exc:
        logger.warning("feedcheck failed: %s %s", url, exc)
        return 502, {"ok": False, "error": "Fetch failed", "details": str(exc)}

    return 200, {
        "ok": True,
        "url": url,
        "status": resp.status_code,
        "statusText": resp.reason or "",
        "redirected": bool(resp.history),
        "contentType": resp.headers.get("content-type", ""),
        "headers": {k.lower(): v for k, v in resp.headers.items()},
        "snippet": (resp.text or "")[:SNIPPET_CHARS],
    }
