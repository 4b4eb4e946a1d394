"""Tests for highlighting and snippet extraction."""

from knowledge_base.config import HIGHLIGHT_CLOSE, HIGHLIGHT_OPEN
from knowledge_base.core.search.highlight import (
    count_matches,
    create_highlighted_snippet,
    highlight_text,
    optimal_snippet,
    query_terms,
    strip_html,
    translate_engine_markup,
)


def _mark(text: str) -> str:
    return f"{HIGHLIGHT_OPEN}{text}{HIGHLIGHT_CLOSE}"


def test_query_terms_lowercases_and_splits() -> None:
    assert query_terms("  Hello   WORLD ") == ["hello", "world"]
    assert query_terms("   ") == []


def test_highlight_text_preserves_original_case() -> None:
    result = highlight_text("Python and python", "PYTHON")
    assert result == f"{_mark('Python')} and {_mark('python')}"


def test_highlight_text_escapes_regex_characters() -> None:
    result = highlight_text("costs $5 (approx.)", "$5 (approx.)")
    assert _mark("$5") in result
    assert _mark("(approx.)") in result


def test_highlight_text_empty_inputs_unchanged() -> None:
    assert highlight_text("", "x") == ""
    assert highlight_text("text", "") == "text"
    assert highlight_text("text", "   ") == "text"


def test_translate_engine_markup() -> None:
    assert translate_engine_markup("a <b>hit</b> b") == f"a {_mark('hit')} b"


def test_short_content_is_highlighted_whole() -> None:
    assert create_highlighted_snippet("find me here", "me") == f"find {_mark('me')} here"


def test_snippet_windows_around_first_occurrence() -> None:
    content = "a" * 500 + " needle " + "b" * 500
    snippet = create_highlighted_snippet(content, "needle")
    assert snippet.startswith("...")
    assert snippet.endswith("...")
    assert _mark("needle") in snippet
    assert len(strip_html(snippet)) <= 200 + 6


def test_snippet_at_start_has_no_leading_ellipsis() -> None:
    content = "needle " + "z" * 400
    snippet = create_highlighted_snippet(content, "needle")
    assert snippet.startswith(_mark("needle"))
    assert snippet.endswith("...")


def test_snippet_without_occurrence_uses_head() -> None:
    content = "q" * 300
    assert create_highlighted_snippet(content, "missing") == "q" * 200 + "..."


def test_optimal_snippet_prefers_engine_markup() -> None:
    result = optimal_snippet(
        content="long content", title="T", snippet="...<b>long</b> content", query="long"
    )
    assert result == f"...{_mark('long')} content"


def test_optimal_snippet_falls_back_to_manual_highlight() -> None:
    result = optimal_snippet(content="plain body", title="T", snippet="plain body", query="body")
    assert result == f"plain {_mark('body')}"


def test_optimal_snippet_uses_title_when_content_empty() -> None:
    result = optimal_snippet(content="", title="Grocery list", snippet="", query="grocery")
    assert result == f"{_mark('Grocery')} list"


def test_count_matches() -> None:
    assert count_matches("Cat cat CAT dog", "cat dog") == 4
    assert count_matches("", "cat") == 0


def test_strip_html() -> None:
    assert strip_html(f"a {_mark('b')} c") == "a b c"
