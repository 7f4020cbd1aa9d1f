from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

DEFAULT_LOCALE = "en-US"

# Region assumed when a client sends a bare language code.
LANGUAGE_DEFAULT_REGION: dict[str, str] = {
    "en": "US",
    "es": "ES",
    "pt": "PT",
    "fr": "FR",
    "de": "DE",
    "lt": "LT",
    "ja": "JP",
    "hi": "IN",
    "bn": "BD",
    "ar": "SA",
    "zh": "CN",
    "ru": "RU",
}

_LANG_RE = re.compile(r"^[a-zA-Z]{2,3}$")
_SCRIPT_RE = re.compile(r"^[a-zA-Z]{4}$")
_REGION_RE = re.compile(r"^([a-zA-Z]{2}|\d{3})$")


@dataclass(frozen=True)
class ParsedLocale:
    raw: str
    normalized: str
    language: str
    region: Optional[str] = None
    script: Optional[str] = None


def parse_locale(raw: Optional[str]) -> ParsedLocale:
    value = (raw or "").strip().replace("_", "-")
    if not value:
        return ParsedLocale(raw="", normalized=DEFAULT_LOCALE, language="en", region="US")

    language = script = region = None
    for part in value.split("-"):
        if language is None and _LANG_RE.match(part):
            language = part.lower()
        elif language is not None and script is None and region is None and _SCRIPT_RE.match(part):
            script = part.title()
        elif language is not None and region is None and _REGION_RE.match(part):
            region = part.upper()

    language = language or "en"
    if region is None and language == "en":
        region = "US"
    normalized = "-".join(p for p in (language, script, region) if p)
    return ParsedLocale(raw=raw or value, normalized=normalized, language=language, region=region, script=script)


def pick_client_locale(
    body_locale: Optional[str] = None,
    body_language: Optional[str] = None,
    accept_language: Optional[str] = None,
) -> ParsedLocale:
    """body locale, then body language, then the first Accept-Language entry."""
    candidate = None
    if isinstance(body_locale, str) and body_locale.strip():
        candidate = body_locale.strip()
    elif isinstance(body_language, str) and body_language.strip():
        candidate = body_language.strip()
    elif isinstance(accept_language, str) and accept_language.strip():
        primary = accept_language.split(",")[0].split(";")[0].strip()
        candidate = primary or None

    parsed = parse_locale(candidate or DEFAULT_LOCALE)
    if parsed.region is None:
        region = LANGUAGE_DEFAULT_REGION.get(parsed.language, "US")
        normalized = "-".join(p for p in (parsed.language, parsed.script, region) if p)
        parsed = ParsedLocale(
            raw=parsed.raw,
            normalized=normalized,
            language=parsed.language,
            region=region,
            script=parsed.script,
        )
    return parsed
