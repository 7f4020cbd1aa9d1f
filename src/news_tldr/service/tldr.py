from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Optional

from news_tldr.core.config import (
    DEFAULT_CATEGORY,
    DEFAULT_LENGTH,
    DEFAULT_LIMIT,
    DEFAULT_REGION,
    DEFAULT_STYLE,
    DEFAULT_TIMEFRAME_HOURS,
    LOG_REQUEST_CONTEXT,
)
from news_tldr.core.errors import ConfigurationError
from news_tldr.models import FeedRequest, HealthStatus, TldrResponse
from news_tldr.processing.pipeline import TldrPipeline, build_default_pipeline
from news_tldr.processing.llm_client import GeminiClient
from news_tldr.service.locale import pick_client_locale
from news_tldr.service.response_cache import ResponseCache
from news_tldr.utils.log import ContextLogger

logger = logging.getLogger(__name__)


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def parse_body(body: Any) -> dict[str, Any]:
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8", errors="replace")
    if isinstance(body, str):
        try:
            body = json.loads(body or "{}")
        except ValueError:
            return {}
    return dict(body) if isinstance(body, Mapping) else {}


def resolve_request(body: Mapping[str, Any], accept_language: Optional[str] = None) -> FeedRequest:
    locale = pick_client_locale(
        body_locale=body.get("locale"),
        body_language=body.get("language"),
        accept_language=accept_language,
    )
    length = body.get("length")
    return FeedRequest(
        region=str(body.get("region") or DEFAULT_REGION),
        category=str(body.get("category") or DEFAULT_CATEGORY),
        style=str(body.get("style") or DEFAULT_STYLE),
        timeframe_hours=_as_float(body.get("timeframeHours"), DEFAULT_TIMEFRAME_HOURS),
        limit=max(1, _as_int(body.get("limit"), DEFAULT_LIMIT)),
        language=locale.language or "en",
        locale=locale.normalized,
        query=str(body.get("query") or "").strip(),
        length=(length if isinstance(length, str) and length else DEFAULT_LENGTH).lower(),
    )


class TldrService:
    """Top-level request handling: validation, caching, coalescing, error mapping."""

    def __init__(
        self,
        *,
        pipeline: TldrPipeline,
        client: GeminiClient,
        cache: Optional[ResponseCache[TldrResponse]] = None,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self._pipeline = pipeline
        self._client = client
        self._cache: ResponseCache[TldrResponse] = cache or ResponseCache()
        self._log = log or logger
        self._route_log = ContextLogger(self._log, {"route": "tldr"})

    def health(self) -> HealthStatus:
        return {"ok": True, "model": self._client.model, "hasKey": self._client.has_key}

    def handle(self, body: Any = None, accept_language: Optional[str] = None) -> tuple[int, TldrResponse]:
        try:
            self._client.ensure_configured()
        except ConfigurationError as exc:
            self._log.error("tldr configuration error: %s", exc)
            return 500, {"ok": False, "error": str(exc)}

        try:
            request = resolve_request(parse_body(body), accept_language)
            key = request.cache_key()
            req_log = self._route_log.child(**self._context(request)) if LOG_REQUEST_CONTEXT else self._route_log
            req_log.info("request received")

            payload, cached = self._cache.get_or_compute(
                key,
                lambda token: self._pipeline.run(request, token=token, log=req_log),
                should_cache=lambda p: bool(p.get("ok")),
            )
        except ConfigurationError as exc:
            return 500, {"ok": False, "error": str(exc)}
        except Exception as exc:
            self._log.exception("tldr handler error")
            message = str(exc)
            if "timed out" in message.lower():
                return 504, {"ok": False, "error": "Request timed out", "details": message}
            return 500, {"ok": False, "error": "Server error", "details": message}

        if cached:
            return 200, {**payload, "cached": True}
        return 200, payload

    @staticmethod
    def _context(request: FeedRequest) -> dict[str, Any]:
        return {
            "region": request.region,
            "category": request.category,
            "style": request.style,
            "timeframeHours": request.timeframe_hours,
            "limit": request.limit,
            "language": request.language,
            "locale": request.locale,
            "length": request.length,
        }


def build_default_service() -> TldrService:
    client = GeminiClient()
    return TldrService(pipeline=build_default_pipeline(client=client), client=client)
