"""Candidate merging and scoring policies."""

from __future__ import annotations

import math
from collections import OrderedDict
from dataclasses import dataclass
from typing import Iterable, List

from ..core.config import EngineConfig
from ..core.constants import SuggestionMode, SuggestionSource
from ..core.models import Suggestion, WordCompletion
from ..data.normalization import normalize_word


@dataclass
class Candidate:
    """Merged view of one word across the row and column completions."""

    word: str
    row_probability: float = 0.0
    col_probability: float = 0.0
    in_row: bool = False
    in_column: bool = False

    @property
    def source(self) -> SuggestionSource:
        if self.in_row and self.in_column:
            return SuggestionSource.BOTH
        if self.in_row:
            return SuggestionSource.ROW
        return SuggestionSource.COLUMN


def geometric_mean(first: float, second: float, floor: float) -> float:
    """Geometric mean of two probabilities, each raised to at least ``floor``."""

    return math.sqrt(max(first, floor) * max(second, floor))


def score_candidate(candidate: Candidate, mode: SuggestionMode, config: EngineConfig) -> float:
    if mode == SuggestionMode.ROW_ONLY:
        return candidate.row_probability
    if mode == SuggestionMode.COLUMN_ONLY:
        return candidate.col_probability
    score = geometric_mean(
        candidate.row_probability, candidate.col_probability, config.suggestion_floor
    )
    if candidate.in_row and candidate.in_column:
        score *= config.both_axes_multiplier
    return score


def merge_candidates(
    row: Iterable[WordCompletion], column: Iterable[WordCompletion]
) -> List[Candidate]:
    """Merge both axes keyed by normalized word; row words come first."""

    merged: "OrderedDict[str, Candidate]" = OrderedDict()
    for completion in row:
        key = normalize_word(completion.word)
        if not key:
            continue
        candidate = merged.setdefault(key, Candidate(word=key))
        candidate.row_probability = max(candidate.row_probability, completion.probability)
        candidate.in_row = True
    for completion in column:
        key = normalize_word(completion.word)
        if not key:
            continue
        candidate = merged.setdefault(key, Candidate(word=key))
        candidate.col_probability = max(candidate.col_probability, completion.probability)
        candidate.in_column = True
    return list(merged.values())


def rank_suggestions(
    candidates: List[Candidate], mode: SuggestionMode, config: EngineConfig
) -> List[Suggestion]:
    """Score, sort descending (stable on merge order) and truncate."""

    scored = [
        Suggestion(
            word=candidate.word,
            row_probability=candidate.row_probability,
            col_probability=candidate.col_probability,
            combined_score=score_candidate(candidate, mode, config),
            source=candidate.source,
        )
        for candidate in candidates
    ]
    scored.sort(key=lambda suggestion: suggestion.combined_score, reverse=True)
    return scored[: config.max_suggestions]

