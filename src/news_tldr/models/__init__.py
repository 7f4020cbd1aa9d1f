"""Typed models for requests and response payloads."""

from .request import FeedRequest
from .response import FeedCheckReport, HealthStatus, TldrMeta, TldrResponse

__all__ = ["FeedCheckReport", "FeedRequest", "HealthStatus", "TldrMeta", "TldrResponse"]
