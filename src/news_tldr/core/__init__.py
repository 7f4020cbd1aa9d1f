"""Core configuration, constants and errors.

Import what you need from `news_tldr.core.config`, `news_tldr.core.constants`
and `news_tldr.core.errors`; config loads `.env` at import time.
"""

__all__ = ["config", "constants", "errors"]
