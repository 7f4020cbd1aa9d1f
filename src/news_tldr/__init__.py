"""News TL;DR: feed aggregation, article selection and LLM summarization."""

__version__ = "0.1.0"

__all__ = ["core", "models", "processing", "scrapers", "service", "utils"]
