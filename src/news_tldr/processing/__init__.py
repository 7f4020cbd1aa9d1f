"""Article processing, prompt construction and summarization."""

__all__ = [
    "articles",
    "dedupe",
    "llm_client",
    "parsing",
    "pipeline",
    "summarizer",
    "types",
]
