"""Data models supporting the suggestion engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from .constants import Position, SuggestionSource


@dataclass
class Cell:
    """Represents a grid cell holding one word and its heatmap values."""

    id: str
    word: str = ""
    row_probability: Optional[float] = None
    col_probability: Optional[float] = None
    combined_probability: Optional[float] = None

    @classmethod
    def empty(cls, row: int, col: int) -> "Cell":
        return cls(id=Position(row, col).key())

    def is_empty(self) -> bool:
        return not self.word.strip()

    def probabilities(self) -> "CellProbabilities":
        return CellProbabilities(
            row_probability=self.row_probability,
            col_probability=self.col_probability,
            combined_probability=self.combined_probability,
        )

    def to_jsonable(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "word": self.word,
            "row_probability": self.row_probability,
            "col_probability": self.col_probability,
            "combined_probability": self.combined_probability,
        }


@dataclass(frozen=True)
class CellProbabilities:
    """Row, column and combined probability of the word typed in a cell."""

    row_probability: Optional[float] = None
    col_probability: Optional[float] = None
    combined_probability: Optional[float] = None

    @classmethod
    def empty(cls) -> "CellProbabilities":
        return cls()

    def is_empty(self) -> bool:
        return (
            self.row_probability is None
            and self.col_probability is None
            and self.combined_probability is None
        )

    def restricted_to(self, has_row: bool, has_col: bool) -> "CellProbabilities":
        """Drop the fields whose axis had no surrounding words."""

        return CellProbabilities(
            row_probability=self.row_probability if has_row else None,
            col_probability=self.col_probability if has_col else None,
            combined_probability=self.combined_probability if has_row and has_col else None,
        )


@dataclass(frozen=True)
class PhraseContext:
    """Words strictly before and after a position along one axis."""

    before: Tuple[str, ...] = field(default_factory=tuple)
    after: Tuple[str, ...] = field(default_factory=tuple)

    def is_empty(self) -> bool:
        return not self.before and not self.after


@dataclass(frozen=True)
class Suggestion:
    """A ranked candidate word with its scoring breakdown."""

    word: str
    row_probability: float
    col_probability: float
    combined_score: float
    source: SuggestionSource

    def to_jsonable(self) -> Dict[str, Any]:
        return {
            "word": self.word,
            "row_probability": self.row_probability,
            "col_probability": self.col_probability,
            "combined_score": self.combined_score,
            "source": self.source.value,
        }


@dataclass(frozen=True)
class WordCompletion:
    """One word observed in a batch of completions and its frequency."""

    word: str
    probability: float
    logprob: float = -3.0
