from __future__ import annotations

from news_tldr.processing.prompts.digest_prompt import (
    PromptParams,
    build_context_lines,
    build_prompt,
    format_context_line,
    length_preset,
    style_directive,
    suggested_bullets,
)
from news_tldr.processing.types import NormalizedArticle


def _article(cluster_size: int = 1) -> NormalizedArticle:
    return NormalizedArticle(
        title="Parliament passes budget",
        link="https://example.com/a",
        published_at_ms=1704067200000,
        source_label="Example",
        snippet="  Budget   approved ",
        cluster_size=cluster_size,
    )


def test_context_line_layout() -> None:
    assert format_context_line(1, _article()) == (
        "#1 Parliament passes budget\n"
        "Source: Example | Published: 2024-01-01 00:00 UTC\n"
        "Link: https://example.com/a\n"
        "Summary: Budget approved"
    )


def test_context_line_mentions_cluster_size() -> None:
    assert "Source: Example (reported by 3 sources)" in format_context_line(2, _article(3))


def test_context_lines_capped() -> None:
    assert len(build_context_lines([_article()] * 12, 8)) == 8


def test_length_presets_and_bullet_count() -> None:
    assert length_preset("SHORT").tldr_sentences == "1 sentence"
    assert length_preset("unknown").tldr_sentences == "1-2 sentences"
    assert suggested_bullets(length_preset("short")) == 6
    assert suggested_bullets(length_preset("long")) == 8
    assert suggested_bullets(length_preset("very-long")) == 10


def test_unknown_style_uses_neutral_directive() -> None:
    assert style_directive("no-such-style") == style_directive("neutral")


def test_prompt_contains_parameters_and_context() -> None:
    context = build_context_lines([_article()], 8)
    prompt = build_prompt(
        PromptParams(
            region_name="Lithuania",
            category_name="Top",
            window_hours=24,
            style="snarky",
            language="lt",
            locale="lt-LT",
            length="long",
            context_lines=context,
        )
    )
    assert "- Region: Lithuania" in prompt
    assert "- Time window: last 24 hours" in prompt
    assert "Output in lt." in prompt
    assert "Start with a 4-5 sentences TL;DR." in prompt
    assert "Then provide 8 bulleted key takeaways" in prompt
    assert style_directive("snarky") in prompt
    assert context[0] in prompt
    assert prompt.rstrip().endswith("while staying within the other constraints.")
