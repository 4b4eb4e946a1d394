"""Highlight search terms and cut snippets around them."""

import re

from knowledge_base.config import (
    ELLIPSIS,
    ENGINE_HIGHLIGHT_CLOSE,
    ENGINE_HIGHLIGHT_OPEN,
    HIGHLIGHT_CLOSE,
    HIGHLIGHT_OPEN,
    SNIPPET_LEAD,
    SNIPPET_MAX_LENGTH,
)

_TAG = re.compile(r"<[^>]*>")


def query_terms(query: str) -> list[str]:
    """Lowercase whitespace-separated terms of a query, empties dropped."""
    return [term for term in query.strip().lower().split() if term]


def _terms_pattern(terms: list[str]) -> re.Pattern[str]:
    return re.compile("(" + "|".join(re.escape(t) for t in terms) + ")", re.IGNORECASE)


def highlight_text(text: str, query: str) -> str:
    """Wrap every case-insensitive match of any query term in highlight markers."""
    if not text or not query:
        return text
    terms = query_terms(query)
    if not terms:
        return text
    return _terms_pattern(terms).sub(
        lambda m: f"{HIGHLIGHT_OPEN}{m.group(0)}{HIGHLIGHT_CLOSE}", text
    )


def has_engine_markup(snippet: str) -> bool:
    return ENGINE_HIGHLIGHT_OPEN in snippet


def translate_engine_markup(snippet: str) -> str:
    """Convert the ranked engine's highlight tags into the application marker."""
    if not snippet:
        return snippet
    return snippet.replace(ENGINE_HIGHLIGHT_OPEN, HIGHLIGHT_OPEN).replace(
        ENGINE_HIGHLIGHT_CLOSE, HIGHLIGHT_CLOSE
    )


def create_highlighted_snippet(
    content: str, query: str, max_length: int = SNIPPET_MAX_LENGTH
) -> str:
    """Cut a window around the earliest term occurrence and highlight inside it.

    Short content is highlighted whole. Without any occurrence the head of the
    content is used.
    """
    if not content or not query:
        return content
    if len(content) <= max_length:
        return highlight_text(content, query)

    lowered = content.lower()
    hits = [index for index in (lowered.find(t) for t in query_terms(query)) if index != -1]
    if not hits:
        return highlight_text(content[:max_length] + ELLIPSIS, query)

    first = min(hits)
    start = max(0, first - SNIPPET_LEAD)
    end = min(len(content), first + max_length - SNIPPET_LEAD)
    window = content[start:end]
    if start > 0:
        window = ELLIPSIS + window
    if end < len(content):
        window = window + ELLIPSIS
    return highlight_text(window, query)


def optimal_snippet(*, content: str, title: str, snippet: str | None, query: str) -> str:
    """Prefer the engine's pre-highlighted snippet, else highlight manually."""
    if snippet and snippet != content and has_engine_markup(snippet):
        return translate_engine_markup(snippet)
    return create_highlighted_snippet(content or title, query)


def count_matches(text: str, query: str) -> int:
    """Count case-insensitive occurrences of all query terms in text."""
    if not text or not query:
        return 0
    lowered = text.lower()
    return sum(len(re.findall(re.escape(term), lowered)) for term in query_terms(query))


def strip_html(html: str) -> str:
    if not html:
        return html
    return _TAG.sub("", html)
