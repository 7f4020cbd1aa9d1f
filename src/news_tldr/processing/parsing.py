from __future__ import annotations

from typing import Any, Callable

import feedparser

from news_tldr.core.errors import FeedFetchError
from news_tldr.processing.types import ParsedFeed, RawArticle
from news_tldr.utils import clean_text, entry_timestamp_ms, get_source_name, truncate

SNIPPET_MAX_CHARS = 300


class EntryParser:
    def __init__(
        self,
        *,
        feed_parser: Callable[[str], Any] = feedparser.parse,
        clean_text_func: Callable[[str], str] = clean_text,
        snippet_max_chars: int = SNIPPET_MAX_CHARS,
    ) -> None:
        self._feed_parser = feed_parser
        self._clean_text = clean_text_func
        self._snippet_max_chars = snippet_max_chars

    def parse_feed(self, url: str, body: str | bytes) -> ParsedFeed:
        parsed = self._feed_parser(body)
        feed_meta = parsed.get("feed", {}) if isinstance(parsed, dict) else getattr(parsed, "feed", {})
        entries = parsed.get("entries", []) if isinstance(parsed, dict) else getattr(parsed, "entries", [])
        bozo = bool(parsed.get("bozo") if isinstance(parsed, dict) else getattr(parsed, "bozo", False))
        feed_title = self._clean_text((feed_meta or {}).get("title", "") or "")

        # feedparser flags harmless quirks as bozo too; only an empty, untitled result is broken.
        if bozo and not entries and not feed_title:
            exc = parsed.get("bozo_exception") if isinstance(parsed, dict) else getattr(parsed, "bozo_exception", None)
            raise FeedFetchError("malformed", f"malformed feed body: {exc}", url)

        items = tuple(self.to_raw_article(entry, feed_title) for entry in entries or [])
        return ParsedFeed(
            url=url,
            title=feed_title,
            link=(feed_meta or {}).get("link", "") or "",
            items=items,
        )

    def to_raw_article(self, entry: Any, feed_title: str = "") -> RawArticle:
        get = entry.get if isinstance(entry, dict) else (lambda k, d=None: getattr(entry, k, d))

        title = self._clean_text(get("title") or get("dc_title") or get("description") or "")
        link = (get("link") or get("id") or self._enclosure_url(entry) or "").strip()
        source = (
            get_source_name(entry)
            or (get("author") or "").strip()
            or (get("dc_creator") or "").strip()
            or feed_title
        )
        snippet = truncate(self._clean_text(get("summary") or get("description") or ""), self._snippet_max_chars)
        return RawArticle(
            title=title,
            link=link,
            published_at_ms=entry_timestamp_ms(entry),
            source_label=source,
            snippet=snippet,
            raw_payload=dict(entry) if isinstance(entry, dict) else {},
        )

    @staticmethod
    def _enclosure_url(entry: Any) -> str:
        links = entry.get("enclosures") if isinstance(entry, dict) else getattr(entry, "enclosures", None)
        for enc in links or []:
            href = enc.get("href") if isinstance(enc, dict) else getattr(enc, "href", "")
            if href:
                return href
        return ""
