"""Request handling: locale resolution, response cache and the TL;DR service."""

__all__ = ["locale", "response_cache", "tldr"]
