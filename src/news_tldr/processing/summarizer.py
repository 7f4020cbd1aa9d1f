from __future__ import annotations

import logging
import random
import re
import time
from dataclasses import dataclass
from typing import Optional, Sequence

from news_tldr.core.config import (
    BULLET_DEDUPE_JACCARD,
    FALLBACK_HEADLINE_COUNT,
    LLM_MAX_ATTEMPTS,
    LLM_RETRY_BASE_SEC,
    LLM_RETRY_HINT_MARGIN_SEC,
    LLM_RETRY_JITTER_SEC,
    LLM_RETRY_MAX_SEC,
)
from news_tldr.core.constants import SENTENCE_TERMINATORS
from news_tldr.core.errors import ConfigurationError
from news_tldr.processing.llm_client import GeminiClient
from news_tldr.utils import jaccard, tokenize_title
from news_tldr.utils.log import log_timer
from news_tldr.utils.retry import RetryPolicy, SleepFunc, parse_retry_hint

logger = logging.getLogger(__name__)

FALLBACK_PREAMBLE = "TL;DR: LLM generation failed or timed out. Showing top headlines instead:"

_BULLET_RE = re.compile(r"^\s*[-*]\s+")
_MD_LINK_RE = re.compile(r"\[([^\]]+)\]\([^)]*\)")
_MD_CHARS_RE = re.compile(r"[`*_#>]")
_CONTEXT_INDEX_RE = re.compile(r"^#\d+\s+")


@dataclass(frozen=True)
class SummaryResult:
    text: str
    used_article_count: int
    llm_error: Optional[str] = None

    @property
    def used_fallback(self) -> bool:
        return self.llm_error is not None


def repair_truncation(text: str) -> str:
    """Cut a mid-sentence ending back to the last sentence terminator."""
    text = (text or "").strip()
    if not text or text.endswith(SENTENCE_TERMINATORS):
        return text
    last = max(text.rfind(t) for t in SENTENCE_TERMINATORS)
    if last <= 0:
        return text
    return text[: last + 1].strip()


def build_fallback_summary(context_lines: Sequence[str], max_headlines: int = FALLBACK_HEADLINE_COUNT) -> str:
    bullets = []
    for line in list(context_lines)[: min(max_headlines, len(context_lines))]:
        first = (line.split("\n", 1)[0] if line else "").strip()
        bullets.append(f"- {_CONTEXT_INDEX_RE.sub('', first)}")
    return f"{FALLBACK_PREAMBLE}\n\n" + "\n\n".join(bullets)


def _bullet_plain_text(line: str) -> str:
    text = _BULLET_RE.sub("", line)
    text = _MD_LINK_RE.sub(r"\1", text)
    return _MD_CHARS_RE.sub("", text)


def dedupe_summary_bullets(markdown: str, threshold: float = BULLET_DEDUPE_JACCARD) -> str:
    """Drop bullets that repeat an earlier bullet; other lines pass through."""
    kept_tokens: list[frozenset[str]] = []
    out: list[str] = []
    for line in (markdown or "").split("\n"):
        if not _BULLET_RE.match(line):
            out.append(line)
            continue
        tokens = tokenize_title(_bullet_plain_text(line))
        if any(jaccard(tokens, prev) >= threshold for prev in kept_tokens):
            continue
        kept_tokens.append(tokens)
        out.append(line)
    return "\n".join(out)


def default_llm_retry_policy(max_attempts: int = LLM_MAX_ATTEMPTS) -> RetryPolicy:
    return RetryPolicy(
        max_attempts=max_attempts,
        base_delay_sec=LLM_RETRY_BASE_SEC,
        max_delay_sec=LLM_RETRY_MAX_SEC,
        jitter_sec=LLM_RETRY_JITTER_SEC,
        cap_sec=LLM_RETRY_MAX_SEC,
        hint_parser=parse_retry_hint,
        hint_margin_sec=LLM_RETRY_HINT_MARGIN_SEC,
    )


class Summarizer:
    """Pending -> Attempting(n) -> Success | Attempting(n+1) | ExhaustedFallback."""

    def __init__(
        self,
        *,
        client: GeminiClient,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: SleepFunc = time.sleep,
        rng: Optional[random.Random] = None,
        bullet_dedupe_threshold: float = BULLET_DEDUPE_JACCARD,
        log: Optional[logging.Logger | logging.LoggerAdapter] = None,
    ) -> None:
        self._client = client
        self._policy = retry_policy or default_llm_retry_policy()
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._bullet_dedupe_threshold = bullet_dedupe_threshold
        self._log = log or logger

    @property
    def model(self) -> str:
        return self._client.model

    def summarize(
        self,
        prompt: str,
        style: str,
        context_lines: Sequence[str] = (),
        log: Optional[logging.Logger | logging.LoggerAdapter] = None,
    ) -> SummaryResult:
        log = log or self._log
        self._client.ensure_configured()

        def _attempt(attempt: int) -> str:
            log.debug("llm_attempt: %s/%s", attempt, self._policy.max_attempts)
            text = repair_truncation(self._client.generate(prompt, style))
            if not text:
                raise ValueError("Empty response from LLM")
            return text

        def _on_error(attempt: int, exc: Exception) -> None:
            log.warning("llm_attempt_failed: attempt=%s error=%s", attempt, exc)

        llm_error: Optional[str] = None
        with log_timer(log, "llm generate", model=self.model, style=style):
            try:
                text = self._policy.run(
                    _attempt,
                    sleep=self._sleep,
                    rng=self._rng,
                    is_retryable=lambda exc: not isinstance(exc, ConfigurationError),
                    on_error=_on_error,
                )
            except ConfigurationError:
                raise
            except Exception as exc:
                llm_error = str(exc) or type(exc).__name__
                log.error("llm_exhausted: attempts=%s error=%s", self._policy.max_attempts, llm_error)
                text = build_fallback_summary(context_lines)

        text = dedupe_summary_bullets(text, self._bullet_dedupe_threshold)
        return SummaryResult(text=text, used_article_count=len(context_lines), llm_error=llm_error)
