"""Shared constants and enumerations for the word grid engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SuggestionMode(str, Enum):
    """Weighting policy used to score suggestion candidates."""

    ROW_ONLY = "row"
    COLUMN_ONLY = "column"
    BALANCED = "balanced"


class SuggestionSource(str, Enum):
    """Which axis completions a candidate was observed in."""

    ROW = "row"
    COLUMN = "column"
    BOTH = "both"


class FetchState(str, Enum):
    """Lifecycle of the suggestion fetch for the selected cell."""

    IDLE = "IDLE"
    DEBOUNCING = "DEBOUNCING"
    FETCHING = "FETCHING"
    RESOLVED = "RESOLVED"
    DISCARDED_STALE = "DISCARDED_STALE"
    FAILED = "FAILED"


DEFAULT_PLACEHOLDER = "___"
CONTEXT_SEPARATOR = "|"
CACHE_KEY_SEPARATOR = "::"


@dataclass(frozen=True, order=True)
class Position:
    """Grid coordinate of a single cell."""

    row: int
    col: int

    def key(self) -> str:
        return f"{self.row}-{self.col}"

    @classmethod
    def parse(cls, text: str) -> "Position":
        """Parse ``"row,col"`` (or ``"row-col"``) into a position."""

        raw = text.replace("-", ",").split(",")
        if len(raw) != 2:
            raise ValueError(f"Invalid position {text!r}; expected ROW,COL")
        row, col = (int(part.strip()) for part in raw)
        if row < 0 or col < 0:
            raise ValueError(f"Position must be non-negative: {text!r}")
        return cls(row=row, col=col)
