"""Suggestion engine orchestration.

Workflow for one grid position:
  1. Extract the row and column context.
  2. Fetch a completion distribution for every axis with words before the
     cell (cache first, then the provider, both axes concurrently).
  3. Merge, score and rank the candidates, or look up one typed word.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence, Tuple

from ..core.config import EngineConfig
from ..core.constants import Position, SuggestionMode
from ..core.exceptions import NoCredential, UpstreamUnavailable
from ..core.models import CellProbabilities, PhraseContext, Suggestion, WordCompletion
from ..data.cache import ExpiringLRUCache, ProbabilityCache, context_fingerprint
from ..data.normalization import normalize_word
from ..io.completion_client import CompletionProvider
from ..utils.clock import Clock
from ..utils.logger import get_logger
from .context import GridLike, column_context, completion_prompt, row_context
from .scoring import geometric_mean, merge_candidates, rank_suggestions


LOGGER = get_logger(__name__)

ROW_AXIS = "row"
COLUMN_AXIS = "column"

Distribution = Tuple[WordCompletion, ...]


class SuggestionEngine:
    """Produces ranked suggestions and heatmap probabilities for grid cells."""

    def __init__(
        self,
        client: CompletionProvider,
        config: Optional[EngineConfig] = None,
        cache: Optional[ProbabilityCache] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.config = config or EngineConfig()
        self._client = client
        self.cache = cache or ProbabilityCache(
            self.config.cache_capacity, self.config.cache_ttl_seconds, clock
        )
        self.distributions: ExpiringLRUCache[str, Distribution] = ExpiringLRUCache(
            self.config.cache_capacity, self.config.cache_ttl_seconds, clock
        )
        self._axis_pool = ThreadPoolExecutor(
            max_workers=2 * self.config.max_workers, thread_name_prefix="wordgrid-axis"
        )
        self._in_flight: Dict[str, "Future[Distribution]"] = {}
        self._in_flight_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Client management
    # ------------------------------------------------------------------
    @property
    def client(self) -> CompletionProvider:
        return self._client

    def set_client(self, client: CompletionProvider) -> None:
        self._client = client

    @property
    def is_configured(self) -> bool:
        return self._client.is_configured

    def close(self) -> None:
        self._axis_pool.shutdown(wait=True)

    # ------------------------------------------------------------------
    # Public entrypoints
    # ------------------------------------------------------------------
    def suggest(
        self,
        grid: GridLike,
        pos: Position,
        mode: SuggestionMode = SuggestionMode.BALANCED,
    ) -> List[Suggestion]:
        """Rank candidate words for ``pos`` under the chosen weighting policy."""
        row_ctx = row_context(grid, pos)
        col_ctx = column_context(grid, pos)
        if row_ctx.is_empty() and col_ctx.is_empty():
            LOGGER.debug("No context around %s; nothing to suggest", pos)
            return []
        self._require_client()

        distributions = self._fetch_axes(row_ctx, col_ctx)
        candidates = merge_candidates(
            distributions.get(ROW_AXIS, ()), distributions.get(COLUMN_AXIS, ())
        )
        ranked = rank_suggestions(candidates, SuggestionMode(mode), self.config)
        LOGGER.debug(
            "Suggestions for %s (%s): %s", pos, mode, [s.word for s in ranked]
        )
        return ranked

    def score_existing_word(
        self,
        row_ctx: PhraseContext,
        col_ctx: PhraseContext,
        word: str,
    ) -> CellProbabilities:
        """Probability of an already typed ``word`` under both axis contexts."""
        if (row_ctx.is_empty() and col_ctx.is_empty()) or not normalize_word(word):
            return CellProbabilities.empty()
        self._require_client()

        cached: Dict[str, float] = {}
        missing: Dict[str, PhraseContext] = {}
        for axis, context in ((ROW_AXIS, row_ctx), (COLUMN_AXIS, col_ctx)):
            if not context.before:
                continue
            hit = self.cache.get(context_fingerprint(context.before), word)
            if hit is None:
                missing[axis] = context
            else:
                cached[axis] = hit

        if missing:
            fetched = self._fetch_axes(
                missing.get(ROW_AXIS, PhraseContext()),
                missing.get(COLUMN_AXIS, PhraseContext()),
            )
            target = normalize_word(word)
            for axis, distribution in fetched.items():
                probability = next(
                    (c.probability for c in distribution if c.word == target), 0.0
                )
                self.cache.put(
                    context_fingerprint(missing[axis].before), target, probability
                )
                cached[axis] = probability

        row_probability = cached.get(ROW_AXIS, 0.0)
        col_probability = cached.get(COLUMN_AXIS, 0.0)
        return CellProbabilities(
            row_probability=row_probability,
            col_probability=col_probability,
            combined_probability=geometric_mean(
                row_probability, col_probability, self.config.existing_word_floor
            ),
        )

    def distribution_for(self, context_words: Sequence[str]) -> Distribution:
        """Completion distribution for a context, served from cache when fresh.

        Concurrent misses on the same fingerprint share a single provider call.
        """
        fingerprint = context_fingerprint(context_words)
        with self._in_flight_lock:
            cached = self.distributions.get(fingerprint)
            if cached is not None:
                LOGGER.debug("Distribution cache hit: %s", fingerprint)
                return cached
            shared = self._in_flight.get(fingerprint)
            if shared is None:
                owned: "Future[Distribution]" = Future()
                self._in_flight[fingerprint] = owned
        if shared is not None:
            LOGGER.debug("Joining in-flight fetch: %s", fingerprint)
            return shared.result()

        prompt = completion_prompt(PhraseContext(before=tuple(context_words)))
        LOGGER.info("Requesting completions for %r", prompt)
        try:
            completions = tuple(self._client.complete(prompt, self.config.completion_count))
            self.distributions.put(fingerprint, completions)
            for completion in completions:
                self.cache.put(fingerprint, completion.word, completion.probability)
        except Exception as exc:
            owned.set_exception(exc)
            raise
        finally:
            with self._in_flight_lock:
                self._in_flight.pop(fingerprint, None)
        owned.set_result(completions)
        return completions

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _require_client(self) -> None:
        if not self._client.is_configured:
            raise NoCredential("Completion provider is not configured")

    def _fetch_axes(
        self, row_ctx: PhraseContext, col_ctx: PhraseContext
    ) -> Dict[str, Distribution]:
        """Fetch every axis that has leading words; tolerate one failing axis."""
        futures: Dict[str, "Future[Distribution]"] = {}
        for axis, context in ((ROW_AXIS, row_ctx), (COLUMN_AXIS, col_ctx)):
            if context.before:
                futures[axis] = self._axis_pool.submit(self.distribution_for, context.before)

        results: Dict[str, Distribution] = {}
        last_error: Optional[UpstreamUnavailable] = None
        for axis, future in futures.items():
            try:
                results[axis] = future.result()
            except UpstreamUnavailable as exc:
                LOGGER.warning("Completion fetch failed for %s axis: %s", axis, exc)
                last_error = exc
        if futures and not results and last_error is not None:
            raise last_error
        return results
