from __future__ import annotations


class NewsTldrError(Exception):
    """Base class for errors raised by news_tldr."""


class FeedFetchError(NewsTldrError):
    """A single feed attempt failed (timeout, network, non-2xx, HTML, malformed body)."""

    def __init__(self, kind: str, message: str, url: str = "") -> None:
        super().__init__(message)
        self.kind = kind
        self.url = url


class FetchCancelled(NewsTldrError):
    def __init__(self, url: str = "") -> None:
        super().__init__(f"fetch cancelled: {url}" if url else "fetch cancelled")
        self.url = url


class GenerationError(NewsTldrError):
    """LLM call failed or returned nothing usable."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class ConfigurationError(NewsTldrError):
    pass
