"""Search service layer for CorpusSearch.

Provides the search session and a factory wiring it to the configured
backend.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from CorpusSearch.services.search import (
    ResultWindowError,
    SearchExecutionError,
    SearchExecutor,
    SearchSession,
    SessionStatus,
)

if TYPE_CHECKING:
    from CorpusSearch.config import AppConfig


def create_search_session(config: AppConfig) -> SearchSession:
    """Create a search session backed by the configured OpenSearch index.

    Args:
        config: Application configuration.

    Returns:
        Idle SearchSession owning its executor.
    """
    from CorpusSearch.sources.opensearch.client import OpenSearchApiClient
    from CorpusSearch.sources.opensearch.executor import OpenSearchExecutor

    backend = config.backend
    client = OpenSearchApiClient(
        base_url=backend.base_url,
        index=backend.index,
        user=backend.user,
        password=backend.password,
        timeout=backend.timeout,
        verify_tls=backend.verify_tls,
    )
    executor = OpenSearchExecutor(client=client, max_result_window=backend.max_result_window)
    return SearchSession(
        executor,
        results_per_fetch=config.search.results_per_fetch,
        items_per_page=config.search.items_per_page,
        max_result_window=backend.max_result_window,
        query_settings=config.search.query_settings(),
    )


__all__ = [
    "ResultWindowError",
    "SearchExecutionError",
    "SearchExecutor",
    "SearchSession",
    "SessionStatus",
    "create_search_session",
]
