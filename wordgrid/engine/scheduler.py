"""Debounced recomputation of heatmap probabilities and suggestion lists.

Two consumers share the same deferred-task primitive:

- :class:`RecalculationScheduler` turns grid edits into batches of
  ``score_existing_word`` calls whose results are written back into the
  store.
- :class:`SuggestionFetcher` refreshes the suggestion list of the selected
  cell; responses are tagged with a sequence number and only the most
  recently issued request may update what the caller sees.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from concurrent.futures import Executor, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from ..core.config import EngineConfig
from ..core.constants import FetchState, Position, SuggestionMode
from ..core.exceptions import WordGridError
from ..core.models import CellProbabilities, Suggestion
from ..utils.clock import Clock, MonotonicClock
from ..utils.logger import get_logger
from .context import (WordSnapshot, affected_positions, changed_positions,
                      column_context, row_context)
from .grid_store import GridStore
from .suggestions import SuggestionEngine


LOGGER = get_logger(__name__)

REQUEST_STATE_HISTORY = 32


class DeferredTask:
    """Runs ``action`` once the clock passes a deadline re-armed on every trigger."""

    def __init__(self, clock: Clock, delay_seconds: float, action: Callable[[], object]) -> None:
        self.clock = clock
        self.delay_seconds = delay_seconds
        self.action = action
        self._deadline: Optional[float] = None
        self._lock = threading.Lock()

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._deadline is not None

    def trigger(self) -> None:
        with self._lock:
            self._deadline = self.clock.now() + self.delay_seconds

    def cancel(self) -> None:
        with self._lock:
            self._deadline = None

    def poll(self) -> bool:
        """Run the action if the quiet period has elapsed; returns whether it ran."""
        with self._lock:
            if self._deadline is None or self.clock.now() < self._deadline:
                return False
            self._deadline = None
        self.action()
        return True

    def flush_now(self) -> bool:
        with self._lock:
            if self._deadline is None:
                return False
            self._deadline = None
        self.action()
        return True


@dataclass
class FlushReport:
    """Outcome of one heatmap batch, or of the results collected on a poll."""

    updated: List[Position] = field(default_factory=list)
    cleared: List[Position] = field(default_factory=list)
    failed: List[Position] = field(default_factory=list)
    skipped: List[Position] = field(default_factory=list)
    dispatched: List[Position] = field(default_factory=list)

    def extend(self, other: "FlushReport") -> None:
        self.updated.extend(other.updated)
        self.cleared.extend(other.cleared)
        self.failed.extend(other.failed)
        self.skipped.extend(other.skipped)
        self.dispatched.extend(other.dispatched)

    def is_empty(self) -> bool:
        return not (
            self.updated or self.cleared or self.failed or self.skipped or self.dispatched
        )


HeatmapJob = Tuple[Position, str, bool, bool]


class RecalculationScheduler:
    """Batches heatmap recomputation for cells affected by grid edits.

    A flush only dispatches work. Finished jobs are written back into the
    store by :meth:`collect`, which :meth:`poll` calls on every tick, so the
    store is only touched from the polling thread.
    """

    def __init__(
        self,
        store: GridStore,
        engine: SuggestionEngine,
        config: Optional[EngineConfig] = None,
        clock: Optional[Clock] = None,
        executor: Optional[Executor] = None,
    ) -> None:
        self.store = store
        self.engine = engine
        self.config = config or engine.config
        self.clock: Clock = clock or MonotonicClock()
        self._owns_executor = executor is None
        self.executor: Executor = executor or ThreadPoolExecutor(
            max_workers=self.config.max_workers, thread_name_prefix="wordgrid-heatmap"
        )
        self._pending: Set[Position] = set()
        self._in_flight: Dict["Future[CellProbabilities]", HeatmapJob] = {}
        self._previous: Optional[WordSnapshot] = None
        self._seen_version = -1
        self._was_configured = engine.is_configured
        self._lock = threading.Lock()
        self._task = DeferredTask(self.clock, self.config.debounce_seconds, self.flush)
        self.last_report: Optional[FlushReport] = None

    @property
    def pending(self) -> Set[Position]:
        with self._lock:
            return set(self._pending)

    @property
    def in_flight(self) -> int:
        with self._lock:
            return len(self._in_flight)

    def observe(self) -> Set[Position]:
        """Diff the store against the last seen words and queue affected cells."""
        if self.store.version == self._seen_version:
            return set()
        self._seen_version = self.store.version
        current = self.store.words()
        if self._previous is None:
            self._previous = current
            return set()
        if current == self._previous:
            return set()
        changed = changed_positions(self._previous, current)
        self._previous = current

        affected: Set[Position] = set()
        for pos in changed:
            affected |= affected_positions(pos, self.store.rows, self.store.cols)
        LOGGER.debug("%d changed cells affect %d positions", len(changed), len(affected))
        self.queue(affected)
        return affected

    def queue(self, positions: Iterable[Position]) -> None:
        with self._lock:
            self._pending.update(positions)
            has_pending = bool(self._pending)
        if has_pending:
            self._task.trigger()

    def schedule_all(self) -> None:
        """Queue every non-empty cell, e.g. once a credential shows up."""
        self.queue(self.store.non_empty_positions())

    def on_credential_changed(self, configured: bool) -> None:
        if configured and not self._was_configured:
            LOGGER.info("Credential available; recomputing every filled cell")
            self.schedule_all()
        self._was_configured = configured

    def poll(self) -> Optional[FlushReport]:
        """Apply finished jobs, then dispatch the batch if the debounce expired."""
        report = self.collect()
        if self._task.poll() and self.last_report is not None:
            report.extend(self.last_report)
        return None if report.is_empty() else report

    def flush(self, block: bool = False) -> FlushReport:
        """Dispatch every pending position now.

        With ``block`` the call also waits for the batch and applies it.
        """
        if not self.engine.is_configured:
            LOGGER.debug("No credential; keeping %d pending cells", len(self.pending))
            report = FlushReport(skipped=sorted(self.pending))
            self.last_report = report
            return report

        with self._lock:
            batch = sorted(self._pending)
            self._pending.clear()

        report = FlushReport()
        cells = self.store.cells
        for pos in batch:
            if not self.store.contains(pos):
                report.skipped.append(pos)
                continue
            cell = self.store.cell(pos)
            row_ctx = row_context(cells, pos)
            col_ctx = column_context(cells, pos)
            if cell.is_empty() or (row_ctx.is_empty() and col_ctx.is_empty()):
                self.store.apply_probabilities(pos, CellProbabilities.empty())
                report.cleared.append(pos)
                continue
            future = self.executor.submit(
                self.engine.score_existing_word, row_ctx, col_ctx, cell.word
            )
            with self._lock:
                self._in_flight[future] = (
                    pos, cell.word, not row_ctx.is_empty(), not col_ctx.is_empty()
                )
            report.dispatched.append(pos)

        LOGGER.info(
            "Heatmap batch: %d dispatched, %d cleared, %d skipped",
            len(report.dispatched), len(report.cleared), len(report.skipped),
        )
        if block:
            report.extend(self.collect(block=True))
        self.last_report = report
        return report

    def collect(self, block: bool = False) -> FlushReport:
        """Write finished jobs back into the store.

        Jobs still running are left for a later call unless ``block`` is set.
        """
        with self._lock:
            jobs = dict(self._in_flight)
        if block and jobs:
            wait(jobs)

        report = FlushReport()
        for future, (pos, word, has_row, has_col) in jobs.items():
            if not future.done():
                continue
            with self._lock:
                if self._in_flight.pop(future, None) is None:
                    continue
            try:
                probabilities = future.result()
            except WordGridError as exc:
                LOGGER.warning("Probability update failed for %s: %s", pos, exc)
                report.failed.append(pos)
                continue
            if not self.store.contains(pos) or self.store.cell(pos).word != word:
                report.skipped.append(pos)
                continue
            self.store.apply_probabilities(pos, probabilities.restricted_to(has_row, has_col))
            report.updated.append(pos)

        if not report.is_empty():
            LOGGER.debug(
                "Heatmap results: %d updated, %d failed, %d skipped",
                len(report.updated), len(report.failed), len(report.skipped),
            )
        return report

    def close(self) -> None:
        self._task.cancel()
        if self._owns_executor:
            self.executor.shutdown(wait=True)


@dataclass(frozen=True)
class SuggestionView:
    """What the suggestion panel should display right now."""

    position: Optional[Position]
    suggestions: Tuple[Suggestion, ...]
    state: FetchState
    error: Optional[str]
    sequence: int

    @property
    def loading(self) -> bool:
        return self.state in (FetchState.DEBOUNCING, FetchState.FETCHING)


class SuggestionFetcher:
    """Fetches suggestions for the selected cell; the latest request wins."""

    def __init__(
        self,
        engine: SuggestionEngine,
        store: GridStore,
        config: Optional[EngineConfig] = None,
        clock: Optional[Clock] = None,
        executor: Optional[Executor] = None,
        on_update: Optional[Callable[[SuggestionView], None]] = None,
    ) -> None:
        self.engine = engine
        self.store = store
        self.config = config or engine.config
        self.clock: Clock = clock or MonotonicClock()
        self._owns_executor = executor is None
        self.executor: Executor = executor or ThreadPoolExecutor(
            max_workers=self.config.max_workers, thread_name_prefix="wordgrid-suggest"
        )
        self.on_update = on_update
        self._lock = threading.Lock()
        self._selected: Optional[Position] = None
        self._mode = SuggestionMode.BALANCED
        self._sequence = 0
        self._state = FetchState.IDLE
        self._suggestions: Tuple[Suggestion, ...] = ()
        self._error: Optional[str] = None
        self._request_states: "OrderedDict[int, FetchState]" = OrderedDict()
        self._task = DeferredTask(self.clock, self.config.debounce_seconds, self._issue)
        self.last_future: Optional["Future[List[Suggestion]]"] = None

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------
    def select(self, pos: Optional[Position]) -> None:
        with self._lock:
            self._selected = pos
            # Anything still in flight belongs to the old selection.
            self._sequence += 1
            if pos is None:
                self._state = FetchState.IDLE
                self._suggestions = ()
                self._error = None
            else:
                self._state = FetchState.DEBOUNCING
        if pos is None:
            self._task.cancel()
        else:
            self._task.trigger()

    def notify_edit(self) -> None:
        """Grid words changed; refresh the list for the current selection."""
        with self._lock:
            if self._selected is None:
                return
            # An in-flight response was computed from the previous grid or mode.
            self._sequence += 1
            self._state = FetchState.DEBOUNCING
        self._task.trigger()

    def set_mode(self, mode: SuggestionMode) -> None:
        with self._lock:
            self._mode = SuggestionMode(mode)
        self.notify_edit()

    def poll(self) -> Optional["Future[List[Suggestion]]"]:
        if self._task.poll():
            return self.last_future
        return None

    def fetch_now(self) -> Optional["Future[List[Suggestion]]"]:
        """Skip the debounce and issue a request for the current selection."""
        self._task.cancel()
        return self._issue()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def mode(self) -> SuggestionMode:
        return self._mode

    @property
    def sequence(self) -> int:
        with self._lock:
            return self._sequence

    def view(self) -> SuggestionView:
        with self._lock:
            return SuggestionView(
                position=self._selected,
                suggestions=self._suggestions,
                state=self._state,
                error=self._error,
                sequence=self._sequence,
            )

    def request_state(self, sequence: int) -> Optional[FetchState]:
        with self._lock:
            return self._request_states.get(sequence)

    def close(self) -> None:
        self._task.cancel()
        if self._owns_executor:
            self.executor.shutdown(wait=True)

    # ------------------------------------------------------------------
    # Request lifecycle
    # ------------------------------------------------------------------
    def _issue(self) -> Optional["Future[List[Suggestion]]"]:
        with self._lock:
            if self._selected is None:
                return None
            self._sequence += 1
            sequence = self._sequence
            pos = self._selected
            mode = self._mode
            self._state = FetchState.FETCHING
            self._error = None
            self._remember(sequence, FetchState.FETCHING)
        grid = self.store.words()
        LOGGER.debug("Suggestion request #%d for %s (%s)", sequence, pos, mode.value)
        future = self.executor.submit(self._run, sequence, grid, pos, mode)
        self.last_future = future
        return future

    def _run(
        self, sequence: int, grid: WordSnapshot, pos: Position, mode: SuggestionMode
    ) -> List[Suggestion]:
        # The result is applied before the future completes, so waiting on
        # the future also waits for the visible state to settle.
        try:
            suggestions = self.engine.suggest(grid, pos, mode)
        except WordGridError as exc:
            self._apply(sequence, (), str(exc), FetchState.FAILED)
            raise
        self._apply(sequence, tuple(suggestions), None, FetchState.RESOLVED)
        return suggestions

    def _apply(
        self,
        sequence: int,
        suggestions: Tuple[Suggestion, ...],
        error: Optional[str],
        state: FetchState,
    ) -> bool:
        with self._lock:
            if sequence != self._sequence:
                LOGGER.debug("Discarding stale suggestion response #%d", sequence)
                self._remember(sequence, FetchState.DISCARDED_STALE)
                return False
            self._suggestions = suggestions
            self._error = error
            self._state = state
            self._remember(sequence, state)
        if state == FetchState.FAILED:
            LOGGER.warning("Suggestion request #%d failed: %s", sequence, error)
        if self.on_update is not None:
            self.on_update(self.view())
        return True

    def _remember(self, sequence: int, state: FetchState) -> None:
        self._request_states[sequence] = state
        self._request_states.move_to_end(sequence)
        while len(self._request_states) > REQUEST_STATE_HISTORY:
            self._request_states.popitem(last=False)
