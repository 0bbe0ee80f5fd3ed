"""Session facade wiring the grid store to the suggestion engine."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional, Tuple

from ..core.config import EngineConfig, GridConfig
from ..core.constants import Position, SuggestionMode
from ..io.completion_client import CompletionProvider, build_completion_client
from ..utils.clock import Clock, MonotonicClock
from ..utils.logger import get_logger
from .context import column_context, context_to_prompt, row_context
from .grid_store import GridStore
from .scheduler import FlushReport, RecalculationScheduler, SuggestionFetcher, SuggestionView
from .suggestions import SuggestionEngine


LOGGER = get_logger(__name__)

ClientFactory = Callable[[Optional[str]], CompletionProvider]


class GridSession:
    """One editable grid with live suggestions and a probability heatmap.

    Call :meth:`poll` regularly (an event loop tick or a timer thread); it runs
    change detection and fires whichever debounced work is due.
    """

    def __init__(
        self,
        grid_config: Optional[GridConfig] = None,
        engine_config: Optional[EngineConfig] = None,
        api_key: Optional[str] = None,
        clock: Optional[Clock] = None,
        client_factory: Optional[ClientFactory] = None,
        on_suggestions: Optional[Callable[[SuggestionView], None]] = None,
    ) -> None:
        self.engine_config = engine_config or EngineConfig()
        self.clock: Clock = clock or MonotonicClock()
        self._client_factory: ClientFactory = client_factory or (
            lambda key: build_completion_client(key, top_k=self.engine_config.completion_top_k)
        )
        self.store = GridStore(grid_config)
        self.engine = SuggestionEngine(
            self._client_factory(api_key), self.engine_config, clock=self.clock
        )
        self._executor = ThreadPoolExecutor(
            max_workers=self.engine_config.max_workers, thread_name_prefix="wordgrid"
        )
        self.scheduler = RecalculationScheduler(
            self.store, self.engine, self.engine_config, self.clock, self._executor
        )
        self.fetcher = SuggestionFetcher(
            self.engine,
            self.store,
            self.engine_config,
            self.clock,
            self._executor,
            on_update=on_suggestions,
        )
        self.scheduler.observe()

    # ------------------------------------------------------------------
    # Credential
    # ------------------------------------------------------------------
    def set_api_key(self, api_key: Optional[str]) -> None:
        self.engine.set_client(self._client_factory(api_key))
        configured = self.engine.is_configured
        self.scheduler.on_credential_changed(configured)
        if configured:
            self.fetcher.notify_edit()

    # ------------------------------------------------------------------
    # Grid edits
    # ------------------------------------------------------------------
    def type_word(self, pos: Position, word: str) -> bool:
        return self._after_edit(self.store.set_word(pos, word))

    def clear_cell(self, pos: Position) -> bool:
        return self._after_edit(self.store.clear_cell(pos))

    def clear_grid(self) -> bool:
        return self._after_edit(self.store.clear_grid())

    def resize(self, rows: int, cols: int) -> bool:
        changed = self.store.resize(rows, cols)
        view = self.fetcher.view()
        if changed and view.position is not None and not self.store.contains(view.position):
            self.fetcher.select(None)
        return self._after_edit(changed)

    def undo(self) -> bool:
        return self._after_edit(self.store.undo())

    def redo(self) -> bool:
        return self._after_edit(self.store.redo())

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------
    def select(self, pos: Optional[Position]) -> None:
        if pos is not None and not self.store.contains(pos):
            LOGGER.debug("Ignoring selection outside the grid: %s", pos)
            pos = None
        self.fetcher.select(pos)

    def set_mode(self, mode: SuggestionMode) -> None:
        self.fetcher.set_mode(mode)

    def suggestions(self) -> SuggestionView:
        return self.fetcher.view()

    def phrase_preview(self, pos: Position) -> Tuple[Optional[str], Optional[str]]:
        """Row and column phrases around ``pos`` (``None`` for an axis with no words)."""
        cells = self.store.cells
        row_ctx = row_context(cells, pos)
        col_ctx = column_context(cells, pos)
        placeholder = self.engine_config.placeholder
        return (
            None if row_ctx.is_empty() else context_to_prompt(row_ctx, placeholder),
            None if col_ctx.is_empty() else context_to_prompt(col_ctx, placeholder),
        )

    # ------------------------------------------------------------------
    # Driving
    # ------------------------------------------------------------------
    def poll(self) -> Optional[FlushReport]:
        """Run change detection and due work without waiting on the provider.

        Heatmap results are applied on the first poll after they arrive.
        """
        self.scheduler.observe()
        self.fetcher.poll()
        return self.scheduler.poll()

    def close(self) -> None:
        self.scheduler.close()
        self.fetcher.close()
        self._executor.shutdown(wait=True)
        self.engine.close()

    def __enter__(self) -> "GridSession":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _after_edit(self, changed: bool) -> bool:
        if changed:
            self.scheduler.observe()
            self.fetcher.notify_edit()
        return changed
