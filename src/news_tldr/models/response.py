from __future__ import annotations

from typing import NotRequired, TypedDict


class TldrMeta(TypedDict):
    region: str
    category: str
    style: str
    timeframeHours: int
    language: str
    locale: str
    usedArticles: int
    model: str
    length: str


class TldrResponse(TypedDict):
    ok: bool
    cached: NotRequired[bool]
    summary: NotRequired[str]
    meta: NotRequired[TldrMeta]
    error: NotRequired[str]
    details: NotRequired[str]
    llmError: NotRequired[str]


class HealthStatus(TypedDict):
    ok: bool
    model: str
    hasKey: bool


class FeedCheckReport(TypedDict):
    ok: bool
    url: NotRequired[str]
    status: NotRequired[int]
    statusText: NotRequired[str]
    redirected: NotRequired[bool]
    contentType: NotRequired[str]
    headers: NotRequired[dict[str, str]]
    snippet: NotRequired[str]
    error: NotRequired[str]
    details: NotRequired[str]
