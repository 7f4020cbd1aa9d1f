from __future__ import annotations

import os
from pathlib import Path

try:
    from dotenv import load_dotenv
except Exception:  # pragma: no cover - optional dependency
    load_dotenv = None

if load_dotenv:
    _repo_root = Path(__file__).resolve().parents[3]
    load_dotenv(dotenv_path=_repo_root / ".env")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except Exception:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except Exception:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    return raw in {"1", "true", "True", "yes", "YES"}


# ==========================================
# LLM (Gemini REST)
# ==========================================
GEMINI_API_BASE = os.getenv("GEMINI_API_BASE", "https://generativelanguage.googleapis.com/v1beta")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash-lite")
GEMINI_TIMEOUT_SEC = _env_int("GEMINI_TIMEOUT_SEC", 20)
GEMINI_MAX_OUTPUT_TOKENS = _env_int("GEMINI_MAX_OUTPUT_TOKENS", 1500)
GEMINI_TOP_P = _env_float("GEMINI_TOP_P", 0.9)
LLM_MAX_ATTEMPTS = _env_int("LLM_MAX_ATTEMPTS", 3)
LLM_RETRY_BASE_SEC = _env_float("LLM_RETRY_BASE_SEC", 1.0)
LLM_RETRY_MAX_SEC = _env_float("LLM_RETRY_MAX_SEC", 8.0)
LLM_RETRY_JITTER_SEC = _env_float("LLM_RETRY_JITTER_SEC", 0.5)
LLM_RETRY_HINT_MARGIN_SEC = _env_float("LLM_RETRY_HINT_MARGIN_SEC", 0.5)


def get_gemini_api_key() -> str:
    # Read lazily so tests and long-running processes see the current environment.
    return os.getenv("GEMINI_API_KEY", "").strip()


# ==========================================
# Feed cache / fetch orchestration
# ==========================================
FEED_CACHE_TTL_SEC = _env_int("FEED_CACHE_TTL_SEC", 60 * 60)
FEED_FAIL_TTL_SEC = _env_int("FEED_FAIL_TTL_SEC", 5 * 60)
FEED_FAIL_WINDOW_SEC = _env_int("FEED_FAIL_WINDOW_SEC", 10 * 60)
FEED_FAIL_BLACKLIST_THRESHOLD = _env_int("FEED_FAIL_BLACKLIST_THRESHOLD", 3)

MAX_FEEDS = _env_int("MAX_FEEDS", 16)
FEED_CONCURRENCY = _env_int("FEED_CONCURRENCY", 4)
EARLY_STOP_MIN_FEEDS = _env_int("EARLY_STOP_MIN_FEEDS", 3)
PRIORITY_KEEP_HEAD = _env_int("PRIORITY_KEEP_HEAD", 4)

# Overall request budget; the fetch stage gets what is left after the summary reserve.
REQUEST_TIMEOUT_SEC = _env_float("REQUEST_TIMEOUT_SEC", 30.0)
SUMMARY_RESERVE_SEC = _env_float("SUMMARY_RESERVE_SEC", 8.0)
MIN_FETCH_DEADLINE_SEC = _env_float("MIN_FETCH_DEADLINE_SEC", 8.0)

# ==========================================
# Article processing / prompt
# ==========================================
MAX_WINDOW_HOURS = 7 * 24
TITLE_CLUSTER_JACCARD = _env_float("TITLE_CLUSTER_JACCARD", 0.58)
BULLET_DEDUPE_JACCARD = _env_float("BULLET_DEDUPE_JACCARD", 0.78)
MAX_CONTEXT_ITEMS = _env_int("MAX_CONTEXT_ITEMS", 8)
FALLBACK_HEADLINE_COUNT = _env_int("FALLBACK_HEADLINE_COUNT", 6)
SOURCES_FOOTER_TOP = _env_int("SOURCES_FOOTER_TOP", 5)
DEGRADED_URL_LIST_MAX = 20

# ==========================================
# Response cache / request defaults
# ==========================================
RESPONSE_CACHE_TTL_SEC = _env_int("RESPONSE_CACHE_TTL_SEC", 3 * 60)

DEFAULT_REGION = "global"
DEFAULT_CATEGORY = "top"
DEFAULT_STYLE = "neutral"
DEFAULT_TIMEFRAME_HOURS = 24
DEFAULT_LIMIT = 20
DEFAULT_LENGTH = "medium"
MIN_DESIRED_ITEMS = 8

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_REQUEST_CONTEXT = _env_bool("LOG_REQUEST_CONTEXT", True)
