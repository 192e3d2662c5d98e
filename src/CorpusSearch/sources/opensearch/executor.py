"""OpenSearch search executor.

Composes the HTTP client and the response parser into a `SearchExecutor`
implementation that enforces the backend result window.
"""

from __future__ import annotations

from dataclasses import dataclass

from CorpusSearch.core.models import SearchPage
from CorpusSearch.core.query import MAX_RESULT_WINDOW, StructuredQuery
from CorpusSearch.services.search import ResultWindowError, SearchExecutor
from CorpusSearch.sources.opensearch.client import OpenSearchApiClient
from CorpusSearch.sources.opensearch.parser import parse_search_response
from CorpusSearch.utils.log import log


@dataclass(slots=True)
class OpenSearchExecutor(SearchExecutor):
    """`SearchExecutor` backed by an OpenSearch index."""

    client: OpenSearchApiClient
    max_result_window: int = MAX_RESULT_WINDOW
    name: str = "opensearch"

    def execute(self, query: StructuredQuery) -> SearchPage:
        """Run a structured query.

        Args:
            query: Compiled query.

        Returns:
            The hits of the requested window plus the total hit count.

        Raises:
            ResultWindowError: If `query.from_` reaches the result window; no
                request is sent.
            SearchBackendError: If the request fails.
        """
        if query.from_ >= self.max_result_window:
            raise ResultWindowError(
                f"Search results limited to first {self.max_result_window:,} results (from={query.from_})"
            )
        payload = self.client.search(query.to_body())
        page = parse_search_response(payload)
        log.debug(
            "OpenSearch page parsed: from=%d hits=%d total=%d took=%dms",
            query.from_,
            len(page.results),
            page.total_results,
            page.took,
        )
        return page

    def close(self) -> None:
        self.client.close()
