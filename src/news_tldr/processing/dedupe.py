from __future__ import annotations

from dataclasses import replace
from typing import Callable, Iterable

from news_tldr.processing.types import NormalizedArticle
from news_tldr.utils import dedupe_key, jaccard


class DedupeEngine:
    def __init__(
        self,
        *,
        title_cluster_jaccard: float,
        jaccard_func: Callable[[frozenset[str], frozenset[str]], float] = jaccard,
        dedupe_key_func: Callable[[str, str], str] = dedupe_key,
    ) -> None:
        self._title_cluster_jaccard = title_cluster_jaccard
        self._jaccard = jaccard_func
        self._dedupe_key = dedupe_key_func

    def dedupe_exact(self, articles: Iterable[NormalizedArticle]) -> list[NormalizedArticle]:
        """Drop repeats of the same title+link; first occurrence wins."""
        seen: set[str] = set()
        out: list[NormalizedArticle] = []
        for art in articles:
            key = self._dedupe_key(art.title, art.link)
            if key in seen:
                continue
            seen.add(key)
            out.append(art)
        return out

    def annotate_clusters(self, articles: list[NormalizedArticle]) -> list[NormalizedArticle]:
        """Count near-duplicate titles onto the first item of each cluster.

        Nothing is removed. Later members keep cluster_size 1 so that running
        this twice does not double-count.
        """
        reps: list[int] = []
        sizes: dict[int, int] = {}
        for i, art in enumerate(articles):
            matched = None
            if art.title_tokens:
                for r in reps:
                    if self._jaccard(art.title_tokens, articles[r].title_tokens) >= self._title_cluster_jaccard:
                        matched = r
                        break
            if matched is None:
                reps.append(i)
                sizes[i] = 1
            else:
                sizes[matched] += 1
        out: list[NormalizedArticle] = []
        for i, art in enumerate(articles):
            size = sizes.get(i, 1)
            out.append(art if art.cluster_size == size else replace(art, cluster_size=size))
        return out
