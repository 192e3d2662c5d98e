"""Tests for the paged search session and its sparse result cache."""

from __future__ import annotations

import sys
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from CorpusSearch.core.models import SearchField, SearchPage, SearchResult, SimpleSearch
from CorpusSearch.core.query import StructuredQuery
from CorpusSearch.services.search import (
    ResultWindowError,
    SearchExecutionError,
    SearchSession,
    SessionStatus,
)
from CorpusSearch.sources.opensearch.executor import OpenSearchExecutor
from CorpusSearch.sources.opensearch.query import QueryCompileError


def _result(rank: int, tag: str = "") -> SearchResult:
    return SearchResult(text_id=rank, vol=1, page_num=rank, page_id=rank, uri=f"{tag}{rank}")


class _StubExecutor:
    """Returns consecutive ranks for the requested window, up to `total`."""

    def __init__(self, total: int, *, tag: str = "") -> None:
        self.total = total
        self.tag = tag
        self.queries: list[StructuredQuery] = []
        self.closed = False

    def execute(self, query: StructuredQuery) -> SearchPage:
        self.queries.append(query)
        end = min(query.from_ + query.size, self.total)
        results = [_result(rank, self.tag) for rank in range(query.from_, end)]
        return SearchPage(results=results, total_results=self.total)

    def close(self) -> None:
        self.closed = True


class _FailingExecutor:
    def __init__(self) -> None:
        self.calls = 0

    def execute(self, query: StructuredQuery) -> SearchPage:
        del query
        self.calls += 1
        raise SearchExecutionError("backend down")


class _StubClient:
    def __init__(self, total: int) -> None:
        self.total = total
        self.bodies: list[dict] = []

    def search(self, body: dict) -> dict:
        self.bodies.append(body)
        start = body["from"]
        hits = [
            {"_source": {"text_id": rank, "vol": 1, "page_num": rank, "page_id": rank, "uri": f"p{rank}"}}
            for rank in range(start, min(start + body["size"], self.total))
        ]
        return {"took": 1, "hits": {"total": {"value": self.total, "relation": "eq"}, "hits": hits}}

    def close(self) -> None:
        return


def _config(term: str = "علم") -> SimpleSearch:
    return SimpleSearch(field=SearchField(term=term))


class TestSearchSessionSearch(unittest.TestCase):
    def test_search_fills_cache_with_first_batch(self) -> None:
        executor = _StubExecutor(total=450)
        session = SearchSession(executor)

        session.search(_config())

        self.assertEqual(session.cached_ranks(), tuple(range(200)))
        self.assertEqual([r.text_id for r in session.displayed_results], list(range(20)))
        self.assertEqual(session.total_results, 450)
        self.assertEqual(session.total_pages, 23)
        self.assertEqual(session.current_page, 1)
        self.assertEqual(session.status, SessionStatus.READY)
        self.assertFalse(session.is_searching)
        self.assertTrue(session.has_searched)
        self.assertEqual(session.search_query, "علم")
        self.assertEqual((executor.queries[0].from_, executor.queries[0].size), (0, 200))

    def test_search_on_later_page_fetches_aligned_batch(self) -> None:
        executor = _StubExecutor(total=1000)
        session = SearchSession(executor)

        session.search(_config(), page=13)

        self.assertEqual(executor.queries[0].from_, 200)
        self.assertEqual(session.cached_ranks(), tuple(range(200, 400)))
        self.assertEqual(session.displayed_results[0].text_id, 240)
        self.assertEqual(session.current_page, 13)

    def test_text_ids_override_config_selection(self) -> None:
        executor = _StubExecutor(total=5)
        session = SearchSession(executor)

        session.search(_config(), text_ids=[4, 2])

        self.assertEqual(session.current_config.selected_texts, (4, 2))
        self.assertEqual(executor.queries[0].filter, ({"terms": {"text_id": [4, 2]}},))

    def test_compile_error_propagates_without_touching_state(self) -> None:
        executor = _StubExecutor(total=5)
        session = SearchSession(executor)

        with self.assertRaises(QueryCompileError):
            session.search(_config("  "))

        self.assertEqual(executor.queries, [])
        self.assertEqual(session.status, SessionStatus.IDLE)
        self.assertFalse(session.has_searched)

    def test_failure_clears_results_and_flags(self) -> None:
        session = SearchSession(_StubExecutor(total=50))
        session.search(_config())
        session._executor = _FailingExecutor()  # noqa: SLF001 - swap backend mid-session

        session.search(_config("كتب"))

        self.assertEqual(session.displayed_results, ())
        self.assertEqual(session.cached_ranks(), ())
        self.assertEqual(session.total_results, 0)
        self.assertEqual(session.status, SessionStatus.FAILED)
        self.assertFalse(session.is_searching)
        self.assertIsInstance(session.last_error, SearchExecutionError)

    def test_superseded_search_result_is_dropped(self) -> None:
        session: SearchSession

        class _ReentrantExecutor(_StubExecutor):
            def execute(self, query: StructuredQuery) -> SearchPage:
                if not self.queries:
                    self.queries.append(query)
                    session.search(_config("جديد"))
                    return SearchPage(results=[_result(999, "old")], total_results=1)
                return super().execute(query)

        session = SearchSession(_ReentrantExecutor(total=30, tag="new"))

        session.search(_config("قديم"))

        self.assertEqual(session.total_results, 30)
        self.assertEqual(session.displayed_results[0].uri, "new0")
        self.assertEqual(session.current_config.field.term, "جديد")
        self.assertEqual(session.status, SessionStatus.READY)

    def test_page_beyond_result_window_is_reported_not_raised(self) -> None:
        client = _StubClient(total=20_000)
        session = SearchSession(OpenSearchExecutor(client=client), max_result_window=10_000)

        session.search(_config(), page=51)
        self.assertEqual(client.bodies[0]["from"], 1000)
        self.assertEqual(session.displayed_results[0].text_id, 1000)
        self.assertIsNone(session.last_error)

        session.search(_config(), page=501)

        self.assertEqual(len(client.bodies), 1)
        self.assertEqual(session.status, SessionStatus.FAILED)
        self.assertIsInstance(session.last_error, ResultWindowError)
        self.assertEqual(session.displayed_results, ())
        self.assertEqual(session.total_results, 0)

    def test_cache_never_holds_ranks_beyond_result_window(self) -> None:
        class _OversizedExecutor(_StubExecutor):
            def execute(self, query: StructuredQuery) -> SearchPage:
                self.queries.append(query)
                results = [_result(rank) for rank in range(query.from_, query.from_ + query.size * 2)]
                return SearchPage(results=results, total_results=self.total)

        session = SearchSession(_OversizedExecutor(total=5000), max_result_window=250)

        session.search(_config(), page=11)

        ranks = session.cached_ranks()
        self.assertEqual((ranks[0], ranks[-1], len(ranks)), (200, 249, 50))
        self.assertEqual(session.displayed_results[0].text_id, 200)

    def test_malformed_hit_does_not_fail_the_batch(self) -> None:
        class _PartlyBrokenClient(_StubClient):
            def search(self, body: dict) -> dict:
                payload = super().search(body)
                payload["hits"]["hits"][1] = {"_id": "broken", "_source": {"uri": "x"}}
                return payload

        session = SearchSession(OpenSearchExecutor(client=_PartlyBrokenClient(total=5)))

        with self.assertLogs("CorpusSearch", level="WARNING"):
            session.search(_config())

        self.assertEqual(session.status, SessionStatus.READY)
        self.assertIsNone(session.last_error)
        self.assertEqual([r.text_id for r in session.displayed_results], [0, 2, 3, 4])
        self.assertEqual(session.total_results, 5)

    def test_invalid_page_sizes_are_rejected(self) -> None:
        with self.assertRaisesRegex(ValueError, "multiple"):
            SearchSession(_StubExecutor(total=0), results_per_fetch=50, items_per_page=20)


class TestSearchSessionChangePage(unittest.TestCase):
    def test_cached_page_does_not_fetch(self) -> None:
        executor = _StubExecutor(total=450)
        session = SearchSession(executor)
        session.search(_config())

        session.change_page(5)

        self.assertEqual(len(executor.queries), 1)
        self.assertEqual(session.current_page, 5)
        self.assertEqual([r.text_id for r in session.displayed_results], list(range(80, 100)))
        self.assertFalse(session.is_changing_page)

    def test_uncached_page_fetches_only_its_batch(self) -> None:
        executor = _StubExecutor(total=1000)
        session = SearchSession(executor)
        session.search(_config())
        before = {rank: session._cache[rank] for rank in session.cached_ranks()}  # noqa: SLF001

        executor.tag = "second"
        session.change_page(22)

        self.assertEqual(len(executor.queries), 2)
        self.assertEqual((executor.queries[1].from_, executor.queries[1].size), (400, 200))
        self.assertEqual(session.cached_ranks(), tuple(range(200)) + tuple(range(400, 600)))
        for rank, result in before.items():
            self.assertIs(session._cache[rank], result)  # noqa: SLF001
        self.assertEqual(session.displayed_results[0].uri, "second420")
        self.assertEqual(session.current_page, 22)

    def test_empty_page_keeps_current_display(self) -> None:
        executor = _StubExecutor(total=30)
        session = SearchSession(executor, results_per_fetch=20, items_per_page=10)
        session.search(_config())
        shown = session.displayed_results

        session.change_page(7)

        self.assertEqual(len(executor.queries), 2)
        self.assertEqual(session.current_page, 1)
        self.assertEqual(session.displayed_results, shown)
        self.assertFalse(session.is_changing_page)
        self.assertEqual(session.status, SessionStatus.READY)

    def test_change_page_without_search_does_not_fetch(self) -> None:
        executor = _StubExecutor(total=30)
        session = SearchSession(executor)

        session.change_page(2)

        self.assertEqual(executor.queries, [])
        self.assertEqual(session.current_page, 1)
        self.assertFalse(session.is_changing_page)

    def test_fetch_failure_keeps_page_and_records_error(self) -> None:
        session = SearchSession(_StubExecutor(total=1000))
        session.search(_config())
        session._executor = _FailingExecutor()  # noqa: SLF001 - swap backend mid-session

        session.change_page(15)

        self.assertEqual(session.current_page, 1)
        self.assertIsInstance(session.last_error, SearchExecutionError)
        self.assertFalse(session.is_changing_page)
        self.assertEqual(session.cached_ranks(), tuple(range(200)))
        self.assertEqual(session.status, SessionStatus.PAGE_FAILED)

    def test_next_page_change_clears_page_failure(self) -> None:
        executor = _StubExecutor(total=1000)
        session = SearchSession(executor)
        session.search(_config())
        session._executor = _FailingExecutor()  # noqa: SLF001 - swap backend mid-session
        session.change_page(15)
        session._executor = executor  # noqa: SLF001

        session.change_page(2)

        self.assertEqual(session.status, SessionStatus.READY)
        self.assertIsNone(session.last_error)
        self.assertEqual(session.current_page, 2)

    def test_only_newest_page_change_moves_display(self) -> None:
        session: SearchSession

        class _InterleavingExecutor(_StubExecutor):
            def execute(self, query: StructuredQuery) -> SearchPage:
                page = super().execute(query)
                if len(self.queries) == 2:
                    session.change_page(3)
                return page

        session = SearchSession(_InterleavingExecutor(total=1000))
        session.search(_config())

        session.change_page(12)

        self.assertEqual(session.current_page, 3)
        self.assertEqual([r.text_id for r in session.displayed_results], list(range(40, 60)))
        self.assertEqual(session.cached_ranks(), tuple(range(400)))
        self.assertFalse(session.is_changing_page)
        self.assertEqual(session.status, SessionStatus.READY)

    def test_batch_of_reset_session_is_dropped(self) -> None:
        session: SearchSession

        class _ResettingExecutor(_StubExecutor):
            def execute(self, query: StructuredQuery) -> SearchPage:
                page = super().execute(query)
                if len(self.queries) == 2:
                    session.reset_search()
                return page

        session = SearchSession(_ResettingExecutor(total=1000))
        session.search(_config())

        session.change_page(12)

        self.assertEqual(session.cached_ranks(), ())
        self.assertEqual(session.displayed_results, ())
        self.assertEqual(session.current_page, 1)
        self.assertFalse(session.is_changing_page)


class TestSearchSessionState(unittest.TestCase):
    def test_reset_search_restores_initial_state(self) -> None:
        session = SearchSession(_StubExecutor(total=450), date_bounds=(100, 1900))
        session.search(_config())
        session.change_page(3)
        session.select_texts([3, 1, 3])
        session.set_text_filter("تفسير")
        session.set_genres(["fiqh"])
        session.set_collections(["c1"])
        session.set_date_range(500, 800)

        session.reset_search()

        self.assertEqual(session.cached_ranks(), ())
        self.assertEqual(session.displayed_results, ())
        self.assertEqual(session.total_results, 0)
        self.assertEqual(session.current_page, 1)
        self.assertIsNone(session.current_config)
        self.assertFalse(session.has_searched)
        self.assertEqual(session.status, SessionStatus.IDLE)
        self.assertEqual(session.selected_texts, ())
        self.assertEqual(session.text_filter, "")
        self.assertEqual(session.selected_genres, ())
        self.assertEqual(session.selected_collections, ())
        self.assertEqual(session.date_range.current, (100, 1900))
        self.assertEqual(session.search_query, "")

    def test_reset_selection_keeps_results(self) -> None:
        session = SearchSession(_StubExecutor(total=5))
        session.search(_config())
        session.select_texts([9, 2, 2])
        self.assertEqual(session.selected_texts, (2, 9))

        session.reset_selection()

        self.assertEqual(session.selected_texts, ())
        self.assertEqual(len(session.displayed_results), 5)

    def test_date_range_must_stay_inside_bounds(self) -> None:
        session = SearchSession(_StubExecutor(total=0), date_bounds=(0, 2000))

        with self.assertRaises(ValueError):
            session.set_date_range(900, 800)
        with self.assertRaises(ValueError):
            session.set_date_range(-1, 800)

        session.set_date_range(10, 20)
        self.assertEqual(session.date_range.current, (10, 20))

    def test_iter_all_results_walks_every_hit_without_caching(self) -> None:
        executor = _StubExecutor(total=450)
        session = SearchSession(executor)
        session.search(_config())

        ranks = [result.text_id for result in session.iter_all_results(chunk_size=100)]

        self.assertEqual(ranks, list(range(450)))
        self.assertEqual([q.from_ for q in executor.queries[1:]], [0, 100, 200, 300, 400])
        self.assertEqual(session.cached_ranks(), tuple(range(200)))

    def test_iter_all_results_requires_active_search(self) -> None:
        session = SearchSession(_StubExecutor(total=0))

        with self.assertRaises(RuntimeError):
            list(session.iter_all_results())

    def test_build_query_covers_requested_page(self) -> None:
        session = SearchSession(_StubExecutor(total=0))

        query = session.build_query(_config(), page=15)

        self.assertEqual((query.from_, query.size), (200, 200))

    def test_close_closes_executor(self) -> None:
        executor = _StubExecutor(total=0)
        session = SearchSession(executor)

        session.close()

        self.assertTrue(executor.closed)


if __name__ == "__main__":
    unittest.main()
