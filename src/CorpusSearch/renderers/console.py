"""Console text output renderer.

Renders one page of `SearchResult` into human-friendly text lines.
"""

from __future__ import annotations

from typing import Iterable

from CorpusSearch.core.models import SearchResult


def _mark(fragment: str, pre_tag: str, post_tag: str) -> str:
    """Replace highlight markup with brackets for terminals."""
    return fragment.replace(pre_tag, "[").replace(post_tag, "]").replace("\n", " ")


def render_text(
    results: Iterable[SearchResult],
    *,
    first_rank: int = 1,
    pre_tag: str = '<span class="highlight">',
    post_tag: str = "</span>",
    max_fragments: int = 3,
) -> str:
    """Render results into a human-readable text block.

    Args:
        results: Results of one page.
        first_rank: 1-based rank of the first result.
        pre_tag: Highlight start tag used by the backend.
        post_tag: Highlight end tag used by the backend.
        max_fragments: Fragments shown per result.

    Returns:
        A formatted string ready to be printed.
    """
    lines: list[str] = []
    for rank, result in enumerate(results, start=first_rank):
        vol = result.vol if result.vol is not None else "-"
        page = result.page_num if result.page_num is not None else "-"
        lines.append(f"{rank}. text {result.text_id}  vol {vol}  p. {page}")
        if result.uri:
            lines.append(f"   URI: {result.uri}")
        shown = 0
        for field_name, fragments in result.highlights.items():
            for fragment in fragments:
                if shown >= max_fragments:
                    break
                lines.append(f"   {field_name}: {_mark(fragment, pre_tag, post_tag)}")
                shown += 1
        lines.append("")
    if not lines:
        return "No results.\n"
    return "\n".join(lines).rstrip() + "\n"
