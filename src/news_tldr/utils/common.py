from __future__ import annotations

import calendar
import datetime
import email.utils
import html
import re
from typing import Any, Iterable
from urllib.parse import urlparse

from news_tldr.core.constants import STOPWORDS

_WS_RE = re.compile(r"\s+")
_TAG_RE = re.compile(r"<[^>]+>")
_NON_WORD_RE = re.compile(r"[^\w\s]")
_NON_ALNUM_RUN_RE = re.compile(r"[^a-z0-9]+")


def clean_text(s: str) -> str:
    """Unescape HTML entities, drop tags and collapse whitespace."""
    if not s:
        return ""
    s = html.unescape(s)
    s = s.replace("\u00a0", " ")
    s = _TAG_RE.sub("", s)
    s = _WS_RE.sub(" ", s).strip()
    return s


def clean_text_ws(text: str) -> str:
    return _WS_RE.sub(" ", (text or "").strip())


def truncate(text: str, limit: int) -> str:
    if not text or len(text) <= limit:
        return text or ""
    return text[: max(0, limit - 1)].rstrip() + "…"


def host_of(url: str) -> str:
    """Lowercased hostname of `url`, or "" when it has none."""
    try:
        return (urlparse(url or "").hostname or "").lower()
    except Exception:
        return ""


def display_host(url: str) -> str:
    host = host_of(url)
    return host[4:] if host.startswith("www.") else host


def tokenize_title(title: str, stopwords: Iterable[str] = STOPWORDS) -> frozenset[str]:
    stop = stopwords if isinstance(stopwords, (set, frozenset)) else set(stopwords)
    text = _NON_WORD_RE.sub(" ", (title or "").lower())
    return frozenset(t for t in text.split() if len(t) > 2 and t not in stop)


def jaccard(a: set[str] | frozenset[str], b: set[str] | frozenset[str]) -> float:
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


def dedupe_key(title: str, link: str) -> str:
    """Case-insensitive, punctuation-stripped identity of an article."""
    raw = f"{title or ''}::{link or ''}".lower()
    return _NON_ALNUM_RUN_RE.sub(" ", raw).strip()


def parse_datetime_utc(value: str, *, default_tz: datetime.tzinfo | None = None) -> datetime.datetime | None:
    if not value:
        return None
    try:
        dt = datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))
    except Exception:
        try:
            dt = email.utils.parsedate_to_datetime(value)
        except Exception:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=default_tz or datetime.timezone.utc)
    return dt.astimezone(datetime.timezone.utc)


def entry_timestamp_ms(entry: Any) -> int | None:
    """Publication time of a feedparser entry in epoch milliseconds."""
    for attr in ("published_parsed", "updated_parsed"):
        parsed = _entry_get(entry, attr)
        if parsed:
            try:
                return int(calendar.timegm(parsed) * 1000)
            except Exception:
                continue
    for attr in ("published", "updated", "pubDate", "isoDate"):
        dt = parse_datetime_utc(str(_entry_get(entry, attr) or ""))
        if dt is not None:
            return int(dt.timestamp() * 1000)
    return None


def format_timestamp_ms(ts_ms: int | None) -> str:
    if not ts_ms:
        return ""
    dt = datetime.datetime.fromtimestamp(ts_ms / 1000, tz=datetime.timezone.utc)
    return dt.strftime("%Y-%m-%d %H:%M UTC")


def get_source_name(entry: Any) -> str:
    """Publisher name from a Google News style `source.title`."""
    source = _entry_get(entry, "source")
    if source is None:
        return ""
    title = source.get("title") if isinstance(source, dict) else getattr(source, "title", "")
    return (title or "").strip()


def _entry_get(entry: Any, key: str) -> Any:
    if isinstance(entry, dict):
        return entry.get(key)
    return getattr(entry, key, None)
