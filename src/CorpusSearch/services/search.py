"""Search session layer: batched fetching and a sparse page cache.

The UI pages through results `items_per_page` at a time, while the backend is
queried `results_per_fetch` hits at a time. Fetched hits are stored in a
sparse rank -> result cache so that paging back and forth inside an already
fetched batch costs no extra round-trip.
"""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass, replace
from enum import Enum
from typing import Final, Iterable, Iterator, Protocol, Sequence

from CorpusSearch.core.models import SearchConfig, SearchPage, SearchResult, SimpleSearch, with_selected_texts
from CorpusSearch.core.query import MAX_RESULT_WINDOW, StructuredQuery
from CorpusSearch.sources.opensearch.query import QuerySettings, compile_search_query
from CorpusSearch.utils.log import log

RESULTS_PER_FETCH: Final = 200
ITEMS_PER_PAGE: Final = 20
DEFAULT_DATE_BOUNDS: Final = (0, 2000)


class SearchExecutionError(RuntimeError):
    """Raised by an executor when a structured query could not be run."""


class ResultWindowError(SearchExecutionError):
    """Raised when a query asks for hits beyond the backend result window."""


class SearchExecutor(Protocol):
    """Protocol for a backend that runs structured queries."""

    def execute(self, query: StructuredQuery) -> SearchPage:
        """Run `query` and return one batch of hits plus the total count.

        Implementations must raise instead of returning an empty page when
        `query.from_` reaches the backend result window.
        """
        raise NotImplementedError


class SessionStatus(str, Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    READY = "ready"
    FAILED = "failed"
    CHANGING_PAGE = "changing_page"
    PAGE_FAILED = "page_failed"


@dataclass(frozen=True, slots=True)
class DateRange:
    """Corpus-wide date bounds and the currently selected window."""

    min: int
    max: int
    current: tuple[int, int]

    def full(self) -> DateRange:
        return replace(self, current=(self.min, self.max))


class SearchSession:
    """Stateful controller for one user's search.

    Owns the active search config, the sparse result cache and the paging
    state. Readers get copies or immutable values; only the session mutates
    its state.

    Every state change happens under one lock, while backend calls run
    outside it. Each fetch records the search generation it was started in;
    a newer `search()` or `reset_search()` bumps the generation and the late
    result is dropped instead of overwriting newer state.
    """

    def __init__(
        self,
        executor: SearchExecutor,
        *,
        results_per_fetch: int = RESULTS_PER_FETCH,
        items_per_page: int = ITEMS_PER_PAGE,
        max_result_window: int = MAX_RESULT_WINDOW,
        query_settings: QuerySettings | None = None,
        date_bounds: tuple[int, int] = DEFAULT_DATE_BOUNDS,
    ) -> None:
        """Initialize an idle session.

        Args:
            executor: Backend used to run compiled queries.
            results_per_fetch: Hits fetched per backend request.
            items_per_page: Hits shown per UI page.
            max_result_window: Highest rank (exclusive) the cache may hold.
            query_settings: Compiler field names and highlight options.
            date_bounds: Corpus-wide (min, max) dates used by `reset_search`.

        Raises:
            ValueError: If the page sizes are not positive, or a fetch batch
                is not a whole number of UI pages.
        """
        if items_per_page <= 0:
            raise ValueError("items_per_page must be positive")
        if results_per_fetch <= 0 or results_per_fetch % items_per_page != 0:
            raise ValueError("results_per_fetch must be a positive multiple of items_per_page")
        if max_result_window <= 0:
            raise ValueError("max_result_window must be positive")

        self._executor = executor
        self._results_per_fetch = results_per_fetch
        self._items_per_page = items_per_page
        self._max_result_window = max_result_window
        self._query_settings = query_settings

        self._lock = threading.Lock()
        self._generation = 0
        self._page_request = 0

        self._current_config: SearchConfig | None = None
        self._cache: dict[int, SearchResult] = {}
        self._displayed: tuple[SearchResult, ...] = ()
        self._total_results = 0
        self._current_page = 1
        self._status = SessionStatus.IDLE
        self._is_searching = False
        self._is_changing_page = False
        self._has_searched = False
        self._last_error: Exception | None = None

        self._search_query = ""
        self._selected_texts: tuple[int, ...] = ()
        self._text_filter = ""
        self._selected_genres: tuple[str, ...] = ()
        self._selected_collections: tuple[str, ...] = ()
        lo, hi = date_bounds
        self._date_range = DateRange(min=lo, max=hi, current=(lo, hi))

    @property
    def results_per_fetch(self) -> int:
        return self._results_per_fetch

    @property
    def items_per_page(self) -> int:
        return self._items_per_page

    @property
    def displayed_results(self) -> tuple[SearchResult, ...]:
        return self._displayed

    @property
    def total_results(self) -> int:
        return self._total_results

    @property
    def total_pages(self) -> int:
        return math.ceil(self._total_results / self._items_per_page)

    @property
    def current_page(self) -> int:
        return self._current_page

    @property
    def current_config(self) -> SearchConfig | None:
        return self._current_config

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def is_searching(self) -> bool:
        return self._is_searching

    @property
    def is_changing_page(self) -> bool:
        return self._is_changing_page

    @property
    def has_searched(self) -> bool:
        return self._has_searched

    @property
    def last_error(self) -> Exception | None:
        return self._last_error

    @property
    def search_query(self) -> str:
        return self._search_query

    @property
    def selected_texts(self) -> tuple[int, ...]:
        return self._selected_texts

    @property
    def text_filter(self) -> str:
        return self._text_filter

    @property
    def selected_genres(self) -> tuple[str, ...]:
        return self._selected_genres

    @property
    def selected_collections(self) -> tuple[str, ...]:
        return self._selected_collections

    @property
    def date_range(self) -> DateRange:
        return self._date_range

    def cached_ranks(self) -> tuple[int, ...]:
        """Return the absolute ranks currently held in the cache, ascending."""
        with self._lock:
            return tuple(sorted(self._cache))

    def select_texts(self, text_ids: Iterable[int]) -> None:
        with self._lock:
            self._selected_texts = tuple(sorted({int(text_id) for text_id in text_ids}))

    def set_text_filter(self, value: str) -> None:
        with self._lock:
            self._text_filter = value

    def set_genres(self, genres: Iterable[str]) -> None:
        with self._lock:
            self._selected_genres = tuple(genres)

    def set_collections(self, collections: Iterable[str]) -> None:
        with self._lock:
            self._selected_collections = tuple(collections)

    def set_date_range(self, start: int, end: int) -> None:
        """Select a date window inside the corpus bounds.

        Raises:
            ValueError: If the window is inverted or leaves the bounds.
        """
        with self._lock:
            bounds = self._date_range
            if start > end or start < bounds.min or end > bounds.max:
                raise ValueError(f"date range must satisfy {bounds.min} <= start <= end <= {bounds.max}")
            self._date_range = replace(bounds, current=(start, end))

    def reset_selection(self) -> None:
        """Clear the selected text ids; results and config are left alone."""
        with self._lock:
            self._selected_texts = ()

    def reset_search(self) -> None:
        """Return the session to its initial idle state.

        In-flight fetches started before the reset are discarded when they
        complete.
        """
        with self._lock:
            self._generation += 1
            self._page_request += 1
            self._search_query = ""
            self._selected_texts = ()
            self._text_filter = ""
            self._selected_genres = ()
            self._selected_collections = ()
            self._date_range = self._date_range.full()
            self._cache = {}
            self._displayed = ()
            self._total_results = 0
            self._current_page = 1
            self._has_searched = False
            self._is_searching = False
            self._is_changing_page = False
            self._current_config = None
            self._last_error = None
            self._status = SessionStatus.IDLE
        log.debug("Search session reset")

    def search(self, config: SearchConfig, text_ids: Sequence[int] | None = None, page: int = 1) -> None:
        """Run a new search and show `page` of its results.

        The whole cache is replaced by the batch that contains `page`. On a
        backend failure the results are cleared and the error is kept in
        `last_error`; it is not re-raised.

        Args:
            config: Search config to run. The session keeps its own copy.
            text_ids: Optional text restriction overriding
                `config.selected_texts`.
            page: 1-based UI page to show.

        Raises:
            ValueError: If `page` is < 1.
            QueryCompileError: If the config cannot be compiled.
        """
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")
        active = config if text_ids is None else with_selected_texts(config, text_ids)
        batch_start = self._batch_start(self._page_start(page))
        query = self.build_query(active, page)

        with self._lock:
            self._generation += 1
            generation = self._generation
            self._page_request += 1
            self._current_config = active
            self._is_searching = True
            self._is_changing_page = False
            self._has_searched = True
            self._last_error = None
            self._status = SessionStatus.SEARCHING

        log.info("Search started: mode=%s page=%d from=%d size=%d", active.mode, page, query.from_, query.size)
        try:
            batch = self._executor.execute(query)
        except Exception as error:  # noqa: BLE001 - reported through session state
            with self._lock:
                if generation != self._generation:
                    log.debug("Dropping failure of superseded search (generation=%d)", generation)
                    return
                self._cache = {}
                self._displayed = ()
                self._total_results = 0
                self._last_error = error
                self._is_searching = False
                self._status = SessionStatus.FAILED
            log.error("Search failed: %s", error)
            return

        with self._lock:
            if generation != self._generation:
                log.debug("Dropping result of superseded search (generation=%d)", generation)
                return
            self._cache = {}
            self._write_batch(batch_start, batch.results)
            self._total_results = batch.total_results
            self._displayed = self._slice(page)
            self._current_page = page
            if isinstance(active, SimpleSearch):
                self._search_query = active.field.term
            self._is_searching = False
            self._status = SessionStatus.READY

        log.info("Search completed: total=%d fetched=%d page=%d", batch.total_results, len(batch.results), page)

    def change_page(self, new_page: int) -> None:
        """Show `new_page`, fetching its batch only when it is not cached.

        Only the ranks of the fetched batch are written. If the page is still
        empty afterwards the current display and page number are kept. A
        failed fetch also keeps them, records `last_error` and sets `status`
        to `PAGE_FAILED` until the next page change.

        Args:
            new_page: 1-based UI page.

        Raises:
            ValueError: If `new_page` is < 1.
        """
        if new_page < 1:
            raise ValueError(f"page must be >= 1, got {new_page}")
        start = self._page_start(new_page)

        with self._lock:
            self._page_request += 1
            request = self._page_request
            generation = self._generation
            config = self._current_config
            needs_fetch = start not in self._cache and config is not None
            self._is_changing_page = True
            if self._status is SessionStatus.PAGE_FAILED:
                self._last_error = None
            if self._status in (SessionStatus.READY, SessionStatus.PAGE_FAILED):
                self._status = SessionStatus.CHANGING_PAGE

        failed = False
        try:
            if needs_fetch:
                assert config is not None
                batch_start = self._batch_start(start)
                query = self._compile(config, batch_start)
                log.debug("Page %d not cached; fetching batch from=%d size=%d", new_page, query.from_, query.size)
                try:
                    batch = self._executor.execute(query)
                except Exception as error:  # noqa: BLE001 - reported through session state
                    failed = True
                    with self._lock:
                        if generation == self._generation:
                            self._last_error = error
                    log.error("Page change failed: page=%d error=%s", new_page, error)
                    return
                with self._lock:
                    if generation != self._generation:
                        log.debug("Dropping page batch of superseded search (generation=%d)", generation)
                        return
                    self._write_batch(batch_start, batch.results)

            with self._lock:
                if generation != self._generation or request != self._page_request:
                    return
                window = self._slice(new_page)
                if not window:
                    log.warning("Page %d has no cached results; keeping page %d", new_page, self._current_page)
                    return
                self._displayed = window
                self._current_page = new_page
        finally:
            with self._lock:
                if request == self._page_request:
                    self._is_changing_page = False
                    if self._status is SessionStatus.CHANGING_PAGE:
                        self._status = SessionStatus.PAGE_FAILED if failed else SessionStatus.READY

    def build_query(self, config: SearchConfig, page: int = 1) -> StructuredQuery:
        """Compile the batch request that covers UI page `page` of `config`."""
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")
        return self._compile(config, self._batch_start(self._page_start(page)))

    def iter_all_results(self, chunk_size: int | None = None) -> Iterator[SearchResult]:
        """Walk every result of the active search, bypassing the cache.

        Used for bulk export. Stops at the total reported by the backend or at
        the result window, whichever comes first.

        Args:
            chunk_size: Hits per backend request; defaults to `results_per_fetch`.

        Yields:
            Results in rank order.

        Raises:
            RuntimeError: If no search is active.
            SearchExecutionError: Propagated from the executor.
        """
        config = self._current_config
        if config is None:
            raise RuntimeError("No active search to export")
        size = chunk_size or self._results_per_fetch
        base = self._compile(config, 0)
        offset = 0
        while offset < self._max_result_window:
            window = min(size, self._max_result_window - offset)
            batch = self._executor.execute(base.with_window(offset, window))
            if not batch.results:
                break
            yield from batch.results
            offset += len(batch.results)
            if offset >= batch.total_results:
                break

    def close(self) -> None:
        """Release executor resources when the executor supports it."""
        close_func = getattr(self._executor, "close", None)
        if callable(close_func):
            close_func()

    def _page_start(self, page: int) -> int:
        return (page - 1) * self._items_per_page

    def _batch_start(self, rank: int) -> int:
        return (rank // self._results_per_fetch) * self._results_per_fetch

    def _compile(self, config: SearchConfig, batch_start: int) -> StructuredQuery:
        # batch_start is always a multiple of items_per_page, so it maps onto a whole page.
        return compile_search_query(
            config,
            page=batch_start // self._items_per_page + 1,
            batch_size=self._results_per_fetch,
            page_size=self._items_per_page,
            settings=self._query_settings,
        )

    def _write_batch(self, batch_start: int, results: Sequence[SearchResult]) -> None:
        for offset, result in enumerate(results[: self._results_per_fetch]):
            rank = batch_start + offset
            if rank >= self._max_result_window:
                break
            self._cache[rank] = result

    def _slice(self, page: int) -> tuple[SearchResult, ...]:
        start = self._page_start(page)
        return tuple(self._cache[rank] for rank in range(start, start + self._items_per_page) if rank in self._cache)
