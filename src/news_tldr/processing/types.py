from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class RawArticle:
    title: str
    link: str
    published_at_ms: int | None
    source_label: str
    snippet: str = ""
    raw_payload: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class NormalizedArticle:
    title: str
    link: str
    published_at_ms: int
    source_label: str
    snippet: str = ""
    title_tokens: frozenset[str] = frozenset()
    cluster_size: int = 1
    raw_payload: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def to_raw(self) -> RawArticle:
        return RawArticle(
            title=self.title,
            link=self.link,
            published_at_ms=self.published_at_ms,
            source_label=self.source_label,
            snippet=self.snippet,
            raw_payload=self.raw_payload,
        )


@dataclass(frozen=True)
class ParsedFeed:
    url: str
    title: str
    link: str
    items: tuple[RawArticle, ...]
