from __future__ import annotations

from typing import Any

from news_tldr.models import FeedRequest
from news_tldr.processing.llm_client import GeminiClient
from news_tldr.service.response_cache import ResponseCache
from news_tldr.service.tldr import TldrService, parse_body, resolve_request


class _FakePipeline:
    def __init__(self, error: Exception | None = None) -> None:
        self._error = error
        self.requests: list[FeedRequest] = []

    def run(self, request: FeedRequest, *, token: Any = None, log: Any = None) -> dict[str, Any]:
        self.requests.append(request)
        if self._error is not None:
            raise self._error
        return {"ok": True, "summary": f"TL;DR for {request.region}", "meta": {"usedArticles": 3}}


def _service(pipeline: _FakePipeline, api_key: str = "test-key") -> TldrService:
    client = GeminiClient(api_key=api_key, model="gemini-test")
    return TldrService(pipeline=pipeline, client=client, cache=ResponseCache())  # type: ignore[arg-type]


def test_parse_body_accepts_json_text_and_rejects_garbage() -> None:
    assert parse_body('{"region": "lithuania"}') == {"region": "lithuania"}
    assert parse_body(b'{"limit": 5}') == {"limit": 5}
    assert parse_body("not json") == {}
    assert parse_body(None) == {}
    assert parse_body([1, 2]) == {}


def test_resolve_request_defaults() -> None:
    request = resolve_request({})
    assert request.region == "global"
    assert request.category == "top"
    assert request.style == "neutral"
    assert request.timeframe_hours == 24
    assert request.limit == 20
    assert request.language == "en"
    assert request.locale == "en-US"
    assert request.length == "medium"


def test_resolve_request_uses_accept_language_and_coerces_numbers() -> None:
    request = resolve_request({"limit": "7", "timeframeHours": "abc", "length": "LONG"}, "lt-LT,lt;q=0.9,en;q=0.8")
    assert request.limit == 7
    assert request.timeframe_hours == 24
    assert request.language == "lt"
    assert request.locale == "lt-LT"
    assert request.length == "long"


def test_cache_key_differs_by_every_field() -> None:
    base = resolve_request({})
    assert base.cache_key() == resolve_request({}).cache_key()
    assert base.cache_key() != resolve_request({"style": "snarky"}).cache_key()
    assert base.cache_key() != resolve_request({"query": "eclipse"}).cache_key()


def test_missing_key_is_reported_before_any_work() -> None:
    pipeline = _FakePipeline()
    status, payload = _service(pipeline, api_key="").handle({})

    assert status == 500
    assert payload["ok"] is False
    assert "GEMINI_API_KEY" in payload["error"]
    assert pipeline.requests == []


def test_second_identical_request_is_served_from_cache() -> None:
    pipeline = _FakePipeline()
    service = _service(pipeline)

    status1, first = service.handle({"region": "lithuania"})
    status2, second = service.handle({"region": "lithuania"})

    assert status1 == status2 == 200
    assert "cached" not in first
    assert second["cached"] is True
    assert second["summary"] == first["summary"]
    assert len(pipeline.requests) == 1


def test_timeout_errors_map_to_504() -> None:
    status, payload = _service(_FakePipeline(RuntimeError("Read timed out"))).handle({})
    assert status == 504
    assert payload == {"ok": False, "error": "Request timed out", "details": "Read timed out"}


def test_unexpected_errors_map_to_500_and_are_not_cached() -> None:
    pipeline = _FakePipeline(RuntimeError("boom"))
    service = _service(pipeline)

    status, payload = service.handle({})
    service.handle({})

    assert status == 500
    assert payload == {"ok": False, "error": "Server error", "details": "boom"}
    assert len(pipeline.requests) == 2


def test_health_reports_model_and_key() -> None:
    assert _service(_FakePipeline()).health() == {"ok": True, "model": "gemini-test", "hasKey": True}
    assert _service(_FakePipeline(), api_key="").health()["hasKey"] is False
