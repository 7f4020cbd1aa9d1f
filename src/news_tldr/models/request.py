from __future__ import annotations

import json
from dataclasses import asdict, dataclass

from news_tldr.core.config import MIN_DESIRED_ITEMS


@dataclass(frozen=True)
class FeedRequest:
    region: str
    category: str
    style: str
    timeframe_hours: float
    limit: int
    language: str
    locale: str
    query: str = ""
    length: str = "medium"

    @property
    def desired_items(self) -> int:
        return max(MIN_DESIRED_ITEMS, int(self.limit))

    def cache_key(self) -> str:
        # Canonical form: every resolved field, sorted keys.
        return json.dumps(asdict(self), sort_keys=True, ensure_ascii=False, separators=(",", ":"))
