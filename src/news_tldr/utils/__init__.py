"""Shared helpers: text cleanup, retry, cancellation and logging."""

from .common import (
    clean_text,
    clean_text_ws,
    dedupe_key,
    display_host,
    entry_timestamp_ms,
    format_timestamp_ms,
    get_source_name,
    host_of,
    jaccard,
    parse_datetime_utc,
    tokenize_title,
    truncate,
)

__all__ = [
    "clean_text",
    "clean_text_ws",
    "dedupe_key",
    "display_host",
    "entry_timestamp_ms",
    "format_timestamp_ms",
    "get_source_name",
    "host_of",
    "jaccard",
    "parse_datetime_utc",
    "tokenize_title",
    "truncate",
]
