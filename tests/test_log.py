from __future__ import annotations

import logging

import pytest

from news_tldr.utils.log import ContextLogger, log_timer


def test_context_is_appended_and_extended(caplog: pytest.LogCaptureFixture) -> None:
    base = ContextLogger(logging.getLogger("news_tldr.test"), {"route": "tldr"})
    child = base.child(region="lithuania", style="dry humor")

    with caplog.at_level(logging.INFO, logger="news_tldr.test"):
        child.info("request received")
        base.info("plain")

    assert caplog.messages == [
        "request received [route=tldr region=lithuania style='dry humor']",
        "plain [route=tldr]",
    ]


def test_log_timer_reports_duration(caplog: pytest.LogCaptureFixture) -> None:
    log = logging.getLogger("news_tldr.timer")
    with caplog.at_level(logging.INFO, logger="news_tldr.timer"):
        with log_timer(log, "llm generate"):
            pass
    assert caplog.messages[0].startswith("done: llm generate ms=")
