"""Ranked full-text search over documents, with a substring fallback."""

import re
import sqlite3

from loguru import logger

from knowledge_base.config import (
    DEFAULT_SEARCH_LIMIT,
    ELLIPSIS,
    ENGINE_HIGHLIGHT_CLOSE,
    ENGINE_HIGHLIGHT_OPEN,
    FALLBACK_CONTEXT,
    FALLBACK_HEAD,
    FALLBACK_RANK,
    MAX_SEARCH_LIMIT,
    SNIPPET_TOKENS,
)
from knowledge_base.core.database.store import Database
from knowledge_base.core.search.highlight import highlight_text, optimal_snippet
from knowledge_base.core.tree.navigation import breadcrumbs
from knowledge_base.core.tree.queries import NODE_COLUMNS, aliased_columns, row_to_node
from knowledge_base.core.tree.store import TreeStore
from knowledge_base.errors import SearchEngineUnavailable, ValidationError
from knowledge_base.models.node import Node, SearchPage, SearchResult
from knowledge_base.notify import LoguruNotifier
from knowledge_base.protocols import Notifier

_UNSAFE_CHARS = re.compile(r"[^\w\s\-_]", flags=re.UNICODE)
_HAS_WORD_CHAR = re.compile(r"[^\W_]", flags=re.UNICODE)

# Columns of nodes_fts: 0 = title, 1 = content. Title hits weigh double.
_BM25 = "bm25(nodes_fts, 2.0, 1.0)"

_Hit = tuple[Node, str, float]


def sanitize_query(query: str) -> str:
    """Replace everything but word characters, whitespace, '-' and '_' with spaces."""
    return _UNSAFE_CHARS.sub(" ", query.strip()).strip()


def _prepare_fts_query(sanitized: str) -> str:
    """Turn a sanitized query into an FTS5 query where every term must match.

    Each term is quoted, so hyphens and operator words (AND, OR, NOT, NEAR)
    are matched as text instead of being parsed as FTS5 syntax.
    """
    return " ".join(f'"{word}"' for word in sanitized.split() if _HAS_WORD_CHAR.search(word))


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def fallback_snippet(content: str, query: str) -> str:
    """Plain window around the first occurrence of the query, or the content head."""
    index = content.lower().find(query.lower())
    if index == -1:
        if len(content) <= FALLBACK_HEAD:
            return content
        return content[:FALLBACK_HEAD] + ELLIPSIS

    start = max(0, index - FALLBACK_CONTEXT)
    end = min(len(content), index + len(query) + FALLBACK_CONTEXT)
    snippet = content[start:end]
    if start > 0:
        snippet = ELLIPSIS + snippet
    if end < len(content):
        snippet = snippet + ELLIPSIS
    return snippet


class SearchEngine:
    """Searches document content and titles.

    The ranked path uses SQLite FTS5 (porter stemming, bm25 scoring, engine
    snippets). If the engine fails the same page is served by case-insensitive
    substring matching ordered by recency, with a uniform rank.
    """

    def __init__(
        self,
        db: Database,
        tree: TreeStore,
        *,
        notifier: Notifier | None = None,
    ) -> None:
        self.db = db
        self.tree = tree
        self.notifier: Notifier = notifier or LoguruNotifier()

    def search(
        self, query: str, limit: int = DEFAULT_SEARCH_LIMIT, offset: int = 0
    ) -> SearchPage:
        """Search documents.

        Args:
            query: User query text.
            limit: Page size, 1..MAX_SEARCH_LIMIT.
            offset: Number of results to skip.

        Returns:
            A SearchPage with highlighted results and the total match count.
        """
        if not isinstance(query, str) or not query.strip():
            msg = "Search query is required and must be a non-empty string"
            raise ValidationError(msg)
        if not 1 <= limit <= MAX_SEARCH_LIMIT:
            msg = f"Limit must be between 1 and {MAX_SEARCH_LIMIT}"
            raise ValidationError(msg)
        if offset < 0:
            msg = "Offset must be non-negative"
            raise ValidationError(msg)

        sanitized = sanitize_query(query)
        fts_query = _prepare_fts_query(sanitized)
        if fts_query:
            try:
                hits, total = self._ranked_search(fts_query, limit=limit, offset=offset)
            except SearchEngineUnavailable as e:
                self.notifier.warn(
                    f"Full-text search failed, falling back to substring search: {e}",
                    error=e,
                )
            else:
                results = []
                for node, engine_snippet, score in hits:
                    snippet = optimal_snippet(
                        content=node.content or "",
                        title=node.title,
                        snippet=engine_snippet,
                        query=sanitized,
                    )
                    results.append(self._to_result(node, rank=score, snippet=snippet))
                return SearchPage(results=tuple(results), total=total, query=query)
        else:
            logger.debug("Query {!r} has no searchable terms, using substring search", query)

        needle = sanitized or query.strip()
        hits, total = self._substring_search(needle, limit=limit, offset=offset)
        results = [
            self._to_result(node, rank=FALLBACK_RANK, snippet=highlight_text(snippet, needle))
            for node, snippet, _score in hits
        ]
        return SearchPage(results=tuple(results), total=total, query=query, fallback=True)

    def _ranked_search(
        self, fts_query: str, *, limit: int, offset: int
    ) -> tuple[list[_Hit], int]:
        where_sql = "nodes_fts MATCH ? AND n.kind = 'document'"
        try:
            with self.db.read() as conn:
                total = conn.execute(
                    f"""
                    SELECT COUNT(*)
                    FROM nodes_fts
                    JOIN nodes n ON n.rowid = nodes_fts.rowid
                    WHERE {where_sql}
                    """,
                    (fts_query,),
                ).fetchone()[0]

                rows = conn.execute(
                    f"""
                    SELECT {aliased_columns("n")},
                           snippet(nodes_fts, 1, ?, ?, ?, ?) AS snippet,
                           -{_BM25} AS score
                    FROM nodes_fts
                    JOIN nodes n ON n.rowid = nodes_fts.rowid
                    WHERE {where_sql}
                    ORDER BY {_BM25}, n.updated_at DESC
                    LIMIT ? OFFSET ?
                    """,
                    (
                        ENGINE_HIGHLIGHT_OPEN,
                        ENGINE_HIGHLIGHT_CLOSE,
                        ELLIPSIS,
                        SNIPPET_TOKENS,
                        fts_query,
                        limit,
                        offset,
                    ),
                ).fetchall()
        except sqlite3.OperationalError as e:
            msg = f"Ranked search failed for {fts_query!r}: {e}"
            raise SearchEngineUnavailable(msg) from e

        return [(row_to_node(r), r[10] or "", float(r[11])) for r in rows], int(total)

    def _substring_search(
        self, needle: str, *, limit: int, offset: int
    ) -> tuple[list[_Hit], int]:
        pattern = f"%{_escape_like(needle)}%"
        where_sql = (
            "kind = 'document' AND (title LIKE ? ESCAPE '\\' "
            "OR COALESCE(content, '') LIKE ? ESCAPE '\\')"
        )
        with self.db.read() as conn:
            total = conn.execute(
                f"SELECT COUNT(*) FROM nodes WHERE {where_sql}", (pattern, pattern)
            ).fetchone()[0]
            rows = conn.execute(
                f"SELECT {NODE_COLUMNS} FROM nodes WHERE {where_sql} "
                "ORDER BY updated_at DESC, id LIMIT ? OFFSET ?",
                (pattern, pattern, limit, offset),
            ).fetchall()

        hits: list[_Hit] = []
        for row in rows:
            node = row_to_node(row)
            hits.append((node, fallback_snippet(node.content or "", needle), FALLBACK_RANK))
        return hits, int(total)

    def _to_result(self, node: Node, *, rank: float, snippet: str) -> SearchResult:
        return SearchResult(
            id=node.id,
            title=node.title,
            content=node.content or "",
            snippet=snippet,
            rank=rank,
            path=breadcrumbs(self.tree, node.id),
        )
