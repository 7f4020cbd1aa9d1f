"""Prompt template for the TL;DR digest."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from news_tldr.core.constants import (
    DEFAULT_LENGTH_PRESET,
    LENGTH_PRESETS,
    STYLE_DIRECTIVES,
    SUGGESTED_BULLETS,
    LengthPreset,
)
from news_tldr.processing.types import NormalizedArticle
from news_tldr.utils import clean_text_ws, format_timestamp_ms

SUMMARY_PROMPT_TEMPLATE = """You are a precise news summarizer. Summarize the most important developments for:
- Region: {region_name}
- Category: {category_name}
- Time window: last {window_hours} hours
- Desired style: {style}
- Language: {language} (locale: {locale})
- Desired length: {length}

Constraints:
- Output in {language}. Use Markdown. Do NOT include code fences.
- Use locale-aware conventions for this locale ({locale}): spelling, idioms where safe, dates in the examples already provided, and currency/number formatting if needed.
- Start with a {tldr_sentences} TL;DR.
- Then provide {bullet_count} bulleted key takeaways (each with a short 1-2 sentence expansion; keep bullets crisp for short length, add slightly more context for long length). If there are fewer clearly distinct stories, split key developments into distinct angles (e.g., policy decision, market reaction, international response, domestic politics) to reach the requested bullet count while avoiding repetition.
- Where relevant, include a Markdown link to ONE representative source in each bullet using the links provided.
- Format links with concise labels: use the source name or domain (e.g., [Reuters](...)), not the raw URL as link text.
- Do NOT repeat the same story: each bullet must cover a distinct development; if multiple sources report the same event, merge into one bullet.
- If there is "no news" for a focus (e.g., selected region/language), state that ONCE only; do not repeat similar "no updates" bullets.
- Avoid speculation and sensationalism.
- Keep it respectful: no slurs, hate speech, harassment, or explicit content.
- If a story is local to {region_name} and region is {region_name}, prioritize it.

Style directive:
{style_directive}

Articles to consider:
{context}

Important: Apply the chosen style consistently across the entire output: the TL;DR opener, every bullet headline, and each bullet's 1-2 sentence expansion must reflect the requested style and tone. Produce exactly the requested number of bullets; do not produce fewer than requested. If the style is `headlines-only`, produce only single-line headlines (one per bullet) with no expansions. If the style uses a special voice (e.g., 'snarky' or 'uzkalnis'), apply that voice to every bullet and expansion while staying within the other constraints."""


@dataclass(frozen=True)
class PromptParams:
    region_name: str
    category_name: str
    window_hours: int
    style: str
    language: str
    locale: str
    length: str
    context_lines: Sequence[str]


def length_preset(length: str) -> LengthPreset:
    return LENGTH_PRESETS.get((length or "").lower(), DEFAULT_LENGTH_PRESET)


def suggested_bullets(preset: LengthPreset) -> int:
    return round(min(preset.bullets_max, max(preset.bullets_min, SUGGESTED_BULLETS)))


def style_directive(style: str) -> str:
    return STYLE_DIRECTIVES.get(style) or STYLE_DIRECTIVES["neutral"]


def format_context_line(index: int, article: NormalizedArticle) -> str:
    snippet = clean_text_ws(article.snippet)
    source = article.source_label or "unknown"
    if article.cluster_size > 1:
        source = f"{source} (reported by {article.cluster_size} sources)"
    return (
        f"#{index} {article.title}\n"
        f"Source: {source} | Published: {format_timestamp_ms(article.published_at_ms)}\n"
        f"Link: {article.link}\n"
        f"Summary: {snippet}"
    )


def build_context_lines(articles: Sequence[NormalizedArticle], max_items: int) -> list[str]:
    return [format_context_line(i + 1, a) for i, a in enumerate(articles[: max(0, max_items)])]


def build_prompt(params: PromptParams) -> str:
    preset = length_preset(params.length)
    return SUMMARY_PROMPT_TEMPLATE.format(
        region_name=params.region_name,
        category_name=params.category_name,
        window_hours=params.window_hours,
        style=params.style,
        language=params.language,
        locale=params.locale,
        length=(params.length or "medium").lower(),
        tldr_sentences=preset.tldr_sentences,
        bullet_count=suggested_bullets(preset),
        style_directive=style_directive(params.style),
        context="\n\n".join(params.context_lines),
    )
