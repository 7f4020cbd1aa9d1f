from __future__ import annotations

import random
import re
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

T = TypeVar("T")

_RETRY_IN_RE = re.compile(r"retry in\s+(\d+(?:\.\d+)?)\s*s", re.IGNORECASE)
_RETRY_DELAY_RE = re.compile(r"\"?retryDelay\"?\s*:\s*\"(\d+(?:\.\d+)?)s\"", re.IGNORECASE)

DelayHintParser = Callable[[str], Optional[float]]
SleepFunc = Callable[[float], None]


def parse_retry_hint(error_text: str) -> float | None:
    """Seconds requested by the upstream ("retry in 5s", "retryDelay": "5s")."""
    if not error_text:
        return None
    for pattern in (_RETRY_IN_RE, _RETRY_DELAY_RE):
        m = pattern.search(error_text)
        if m:
            try:
                return float(m.group(1))
            except ValueError:
                continue
    return None


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int
    base_delay_sec: float
    max_delay_sec: float
    jitter_sec: float = 0.0
    cap_sec: float | None = None
    hint_parser: DelayHintParser | None = None
    hint_margin_sec: float = 0.0

    def delay_for(self, attempt: int, error_text: str = "", rng: random.Random | None = None) -> float:
        """Wait before attempt `attempt + 1`, after `attempt` failed with `error_text`."""
        if self.hint_parser is not None:
            hinted = self.hint_parser(error_text or "")
            if hinted is not None:
                return max(0.0, hinted) + self.hint_margin_sec
        delay = min(self.max_delay_sec, self.base_delay_sec * (2 ** max(0, attempt - 1)))
        if self.jitter_sec > 0:
            delay += (rng or random).uniform(0.0, self.jitter_sec)
        if self.cap_sec is not None:
            delay = min(delay, self.cap_sec)
        return delay

    def run(
        self,
        op: Callable[[int], T],
        *,
        sleep: SleepFunc,
        rng: random.Random | None = None,
        is_retryable: Callable[[Exception], bool] = lambda exc: True,
        on_error: Callable[[int, Exception], None] | None = None,
    ) -> T:
        """Call `op(attempt)` until it returns or attempts run out.

        The last exception is re-raised. Non-retryable exceptions propagate
        immediately.
        """
        last_exc: Exception | None = None
        for attempt in range(1, max(1, self.max_attempts) + 1):
            try:
                return op(attempt)
            except Exception as exc:
                last_exc = exc
                if on_error is not None:
                    on_error(attempt, exc)
                if not is_retryable(exc) or attempt >= self.max_attempts:
                    raise
                sleep(self.delay_for(attempt, str(exc), rng))
        assert last_exc is not None
        raise last_exc
