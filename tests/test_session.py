import threading
import unittest
from concurrent.futures import wait
from typing import Dict, List, Optional, Sequence, Tuple

from wordgrid.core.config import EngineConfig, GridConfig
from wordgrid.core.constants import FetchState, Position, SuggestionMode
from wordgrid.core.models import WordCompletion
from wordgrid.engine.session import GridSession
from wordgrid.io.completion_client import UnconfiguredClient
from wordgrid.utils.clock import VirtualClock


class FakeProvider:
    is_configured = True

    def __init__(self, tables: Dict[str, Sequence[Tuple[str, float]]]) -> None:
        self.tables = tables
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def request_completions(self, prompt: str, count: int):
        raise NotImplementedError

    def complete(self, prompt: str, n: int) -> List[WordCompletion]:
        with self._lock:
            self.calls.append(prompt)
        return [WordCompletion(word, p) for word, p in self.tables.get(prompt, ())]


TABLES = {
    "the": [("sun", 0.5), ("moon", 0.2)],
    "the sun": [("rises", 0.6), ("sets", 0.3)],
}


class GridSessionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = VirtualClock()
        self.provider = FakeProvider(TABLES)
        self.updates = []

        def factory(key: Optional[str]):
            return self.provider if key else UnconfiguredClient()

        self.factory = factory

    def _session(self, api_key: Optional[str] = "sk-test") -> GridSession:
        session = GridSession(
            GridConfig(rows=3, cols=3),
            EngineConfig(debounce_seconds=0.3, max_workers=2),
            api_key=api_key,
            clock=self.clock,
            client_factory=self.factory,
            on_suggestions=self.updates.append,
        )
        self.addCleanup(session.close)
        return session

    def test_selection_fetches_after_debounce(self) -> None:
        session = self._session()
        session.type_word(Position(0, 0), "the")
        session.type_word(Position(0, 1), "sun")
        session.select(Position(0, 2))

        self.assertTrue(session.suggestions().loading)
        self.clock.advance(0.3)
        session.poll()
        wait([session.fetcher.last_future])

        view = session.suggestions()
        self.assertEqual(view.state, FetchState.RESOLVED)
        self.assertEqual([s.word for s in view.suggestions], ["rises", "sets"])
        self.assertIn("the sun", self.provider.calls)
        self.assertEqual(self.updates[-1].suggestions, view.suggestions)

    def test_poll_updates_heatmap_for_typed_words(self) -> None:
        session = self._session()
        session.type_word(Position(0, 0), "the")
        session.type_word(Position(0, 1), "sun")
        self.clock.advance(0.3)

        report = session.poll()

        self.assertIsNotNone(report)
        self.assertIn(Position(0, 1), report.dispatched)
        collected = session.scheduler.collect(block=True)
        self.assertIn(Position(0, 1), collected.updated)
        cell = session.store.cell(Position(0, 1))
        self.assertAlmostEqual(cell.row_probability, 0.5)
        self.assertIsNone(cell.col_probability)
        self.assertIsNone(cell.combined_probability)

    def test_poll_does_not_wait_for_a_slow_provider(self) -> None:
        started = threading.Event()
        release = threading.Event()

        class SlowProvider(FakeProvider):
            def complete(self, prompt: str, n: int) -> List[WordCompletion]:
                started.set()
                release.wait(timeout=5)
                return super().complete(prompt, n)

        self.provider = SlowProvider(TABLES)
        session = self._session()
        self.addCleanup(release.set)
        session.type_word(Position(0, 0), "the")
        session.type_word(Position(0, 1), "sun")
        self.clock.advance(1)

        poller = threading.Thread(target=session.poll)
        poller.start()
        poller.join(timeout=2)
        self.assertFalse(poller.is_alive())
        self.assertTrue(started.wait(timeout=5))
        self.assertIsNone(session.store.cell(Position(0, 1)).row_probability)

        release.set()
        session.scheduler.collect(block=True)
        self.assertAlmostEqual(session.store.cell(Position(0, 1)).row_probability, 0.5)

    def test_credential_arrival_recomputes_filled_cells(self) -> None:
        session = self._session(api_key=None)
        session.type_word(Position(0, 0), "the")
        session.type_word(Position(0, 1), "sun")
        self.clock.advance(0.3)
        report = session.poll()
        self.assertIn(Position(0, 1), report.skipped)
        self.assertIsNone(session.store.cell(Position(0, 1)).row_probability)

        session.set_api_key("sk-new")
        self.clock.advance(0.3)
        report = session.poll()

        self.assertIn(Position(0, 1), report.dispatched)
        self.assertIn(Position(0, 1), session.scheduler.collect(block=True).updated)
        self.assertAlmostEqual(session.store.cell(Position(0, 1)).row_probability, 0.5)

    def test_unconfigured_selection_reports_error(self) -> None:
        session = self._session(api_key=None)
        session.type_word(Position(0, 0), "the")
        session.select(Position(0, 1))
        future = session.fetcher.fetch_now()
        wait([future])

        view = session.suggestions()
        self.assertEqual(view.state, FetchState.FAILED)
        self.assertTrue(view.error)
        self.assertEqual(view.suggestions, ())

    def test_resize_drops_selection_outside_grid(self) -> None:
        session = self._session()
        session.select(Position(2, 2))
        self.assertTrue(session.resize(2, 2))

        view = session.suggestions()
        self.assertIsNone(view.position)
        self.assertEqual(view.state, FetchState.IDLE)

    def test_select_outside_grid_clears_selection(self) -> None:
        session = self._session()
        session.select(Position(5, 5))
        self.assertIsNone(session.suggestions().position)

    def test_undo_and_redo_flow_through_session(self) -> None:
        session = self._session()
        session.type_word(Position(1, 1), "sun")
        self.assertTrue(session.undo())
        self.assertEqual(session.store.cell(Position(1, 1)).word, "")
        self.assertTrue(session.redo())
        self.assertEqual(session.store.cell(Position(1, 1)).word, "sun")
        self.assertFalse(session.redo())

    def test_mode_change_refetches(self) -> None:
        session = self._session()
        session.type_word(Position(0, 0), "the")
        session.select(Position(0, 1))
        wait([session.fetcher.fetch_now()])
        first = session.suggestions().sequence

        session.set_mode(SuggestionMode.ROW_ONLY)
        self.clock.advance(0.3)
        session.poll()
        wait([session.fetcher.last_future])

        view = session.suggestions()
        self.assertGreater(view.sequence, first)
        self.assertEqual(session.fetcher.mode, SuggestionMode.ROW_ONLY)
        self.assertEqual([s.combined_score for s in view.suggestions], [0.5, 0.2])

    def test_phrase_preview_uses_placeholder(self) -> None:
        session = self._session()
        session.type_word(Position(0, 0), "the")
        session.type_word(Position(0, 2), "rises")

        row_phrase, column_phrase = session.phrase_preview(Position(0, 1))

        self.assertEqual(row_phrase, "the ___ rises")
        self.assertIsNone(column_phrase)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
