"""JSON output renderer.

Renders search results and paging state into JSON-serializable objects.
"""

from __future__ import annotations

from typing import Any, Iterable

from CorpusSearch.core.models import SearchResult


def render_result(result: SearchResult) -> dict[str, Any]:
    return {
        "text_id": result.text_id,
        "vol": result.vol,
        "page_num": result.page_num,
        "page_id": result.page_id,
        "uri": result.uri,
        "score": result.score,
        "highlights": {name: list(fragments) for name, fragments in result.highlights.items()},
    }


def render_json(
    results: Iterable[SearchResult],
    *,
    page: int,
    total_pages: int,
    total_results: int,
) -> dict[str, Any]:
    """Render one page of results plus paging metadata.

    Args:
        results: Results of the page.
        page: Current 1-based page.
        total_pages: Number of UI pages.
        total_results: Total hits reported by the backend.

    Returns:
        A dict ready for `json.dumps`.
    """
    return {
        "page": page,
        "total_pages": total_pages,
        "total_results": total_results,
        "results": [render_result(result) for result in results],
    }
