"""Feed URL construction, caching, fetching and fetch orchestration."""

__all__ = [
    "feed_cache",
    "feed_check",
    "feed_fetcher",
    "feed_fetcher_config",
    "feed_fetcher_utils",
    "feed_urls",
    "orchestrator",
]
