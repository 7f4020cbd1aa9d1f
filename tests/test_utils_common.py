from news_tldr.utils import (
    clean_text,
    dedupe_key,
    display_host,
    entry_timestamp_ms,
    format_timestamp_ms,
    host_of,
    jaccard,
    tokenize_title,
)


def test_clean_text_strips_html_and_ws() -> None:
    assert clean_text("  hello&nbsp;<b>world</b>\n") == "hello world"


def test_tokenize_title_drops_short_tokens_and_stopwords() -> None:
    tokens = tokenize_title("The EU and US agree on new trade rules!")
    assert tokens == frozenset({"agree", "trade", "rules"})


def test_jaccard_properties() -> None:
    a = frozenset({"alpha", "beta", "gamma"})
    b = frozenset({"beta", "gamma", "delta"})
    assert jaccard(a, a) == 1.0
    assert jaccard(a, b) == jaccard(b, a) == 0.5
    assert jaccard(a, frozenset()) == 0.0
    assert jaccard(frozenset(), frozenset()) == 0.0


def test_dedupe_key_ignores_case_and_punctuation() -> None:
    assert dedupe_key("Breaking: Vote Passes!", "https://x.com/a") == dedupe_key(
        "breaking vote passes", "HTTPS://X.COM/A"
    )


def test_host_helpers() -> None:
    assert host_of("https://WWW.Example.com/path") == "www.example.com"
    assert display_host("https://www.example.com/path") == "example.com"
    assert host_of("not a url") == ""


def test_entry_timestamp_prefers_parsed_struct() -> None:
    entry = {"published_parsed": (2024, 1, 1, 0, 0, 0, 0, 1, 0), "published": "garbage"}
    assert entry_timestamp_ms(entry) == 1704067200000


def test_entry_timestamp_falls_back_to_rfc822_string() -> None:
    entry = {"published": "Mon, 01 Jan 2024 00:00:00 GMT"}
    assert entry_timestamp_ms(entry) == 1704067200000
    assert entry_timestamp_ms({}) is None


def test_format_timestamp_ms() -> None:
    assert format_timestamp_ms(1704067200000) == "2024-01-01 00:00 UTC"
    assert format_timestamp_ms(None) == ""
