from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Any, Iterator, MutableMapping

from news_tldr.core.config import LOG_LEVEL

LOG_FORMAT = "[%(asctime)s] %(levelname)-5s %(name)s: %(message)s"


class ContextLogger(logging.LoggerAdapter):
    """Logger that appends static `key=value` context to every message."""

    def __init__(self, logger: logging.Logger, context: dict[str, Any] | None = None) -> None:
        super().__init__(logger, dict(context or {}))

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        if not self.extra:
            return msg, kwargs
        ctx = " ".join(f"{k}={v!r}" if isinstance(v, str) and " " in v else f"{k}={v}" for k, v in self.extra.items())
        return f"{msg} [{ctx}]", kwargs

    def child(self, **context: Any) -> ContextLogger:
        merged = dict(self.extra or {})
        merged.update(context)
        return ContextLogger(self.logger, merged)


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
    )


@contextmanager
def log_timer(log: logging.Logger | logging.LoggerAdapter, label: str, **meta: Any) -> Iterator[None]:
    start = time.monotonic()
    log.debug("start: %s %s", label, meta)
    try:
        yield
    finally:
        ms = int((time.monotonic() - start) * 1000)
        log.info("done: %s ms=%s %s", label, ms, meta)
