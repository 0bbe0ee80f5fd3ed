"""Versioned grid state with bounded undo/redo history."""

from __future__ import annotations

import copy
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional, Sequence

from ..core.config import GridConfig
from ..core.constants import Position
from ..core.exceptions import GridDimensionError
from ..core.models import Cell, CellProbabilities
from ..utils.logger import get_logger
from .context import WordSnapshot, word_snapshot


LOGGER = get_logger(__name__)


@dataclass
class GridSnapshot:
    cells: List[List[Cell]]
    rows: int
    cols: int


def create_empty_grid(rows: int, cols: int) -> List[List[Cell]]:
    return [[Cell.empty(row, col) for col in range(cols)] for row in range(rows)]


class GridStore:
    """Owns the cells of the grid and their history.

    Word edits, clears and resizes are committed user actions: each one
    pushes the previous state onto the undo stack and drops the redo stack.
    Probability updates coming from the engine are applied in place and are
    never recorded.
    """

    def __init__(self, config: Optional[GridConfig] = None) -> None:
        self.config = config or GridConfig()
        self._rows = self.config.rows
        self._cols = self.config.cols
        self._cells: List[List[Cell]] = create_empty_grid(self._rows, self._cols)
        self._past: Deque[GridSnapshot] = deque(maxlen=self.config.history_limit)
        self._future: Deque[GridSnapshot] = deque(maxlen=self.config.history_limit)
        self._version = 0

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------
    @property
    def rows(self) -> int:
        return self._rows

    @property
    def cols(self) -> int:
        return self._cols

    @property
    def cells(self) -> Sequence[Sequence[Cell]]:
        return self._cells

    @property
    def version(self) -> int:
        return self._version

    @property
    def can_undo(self) -> bool:
        return bool(self._past)

    @property
    def can_redo(self) -> bool:
        return bool(self._future)

    def contains(self, pos: Position) -> bool:
        return 0 <= pos.row < self._rows and 0 <= pos.col < self._cols

    def cell(self, pos: Position) -> Cell:
        self._require(pos)
        return self._cells[pos.row][pos.col]

    def words(self) -> WordSnapshot:
        return word_snapshot(self._cells)

    def non_empty_positions(self) -> List[Position]:
        return [
            Position(row, col)
            for row in range(self._rows)
            for col in range(self._cols)
            if not self._cells[row][col].is_empty()
        ]

    def to_jsonable(self) -> List[List[dict]]:
        return [[cell.to_jsonable() for cell in row] for row in self._cells]

    # ------------------------------------------------------------------
    # Committed mutations
    # ------------------------------------------------------------------
    def set_word(self, pos: Position, word: str) -> bool:
        """Replace the word at ``pos``; returns False when nothing changed."""
        self._require(pos)
        current = self._cells[pos.row][pos.col]
        if current.word == word:
            return False
        self._commit()
        updated = copy.copy(current)
        updated.word = word
        if not word.strip():
            updated.row_probability = None
            updated.col_probability = None
            updated.combined_probability = None
        self._cells[pos.row][pos.col] = updated
        LOGGER.debug("Cell %s set to %r", pos, word)
        return True

    def clear_cell(self, pos: Position) -> bool:
        self._require(pos)
        current = self._cells[pos.row][pos.col]
        if current == Cell.empty(pos.row, pos.col):
            return False
        self._commit()
        self._cells[pos.row][pos.col] = Cell.empty(pos.row, pos.col)
        return True

    def clear_grid(self) -> bool:
        if all(cell == Cell.empty(r, c) for r, row in enumerate(self._cells) for c, cell in enumerate(row)):
            return False
        self._commit()
        self._cells = create_empty_grid(self._rows, self._cols)
        LOGGER.info("Grid cleared (%sx%s)", self._rows, self._cols)
        return True

    def resize(self, rows: int, cols: int) -> bool:
        """Resize the grid, keeping every cell that stays in range."""
        if not self.config.allows(rows, cols):
            raise GridDimensionError(
                f"Grid size {rows}x{cols} outside "
                f"{self.config.min_size}..{self.config.max_size}"
            )
        if rows == self._rows and cols == self._cols:
            return False
        self._commit()
        resized: List[List[Cell]] = []
        for row in range(rows):
            new_row: List[Cell] = []
            for col in range(cols):
                if row < self._rows and col < self._cols:
                    kept = copy.copy(self._cells[row][col])
                    kept.id = f"{row}-{col}"
                    new_row.append(kept)
                else:
                    new_row.append(Cell.empty(row, col))
            resized.append(new_row)
        LOGGER.info("Grid resized %sx%s -> %sx%s", self._rows, self._cols, rows, cols)
        self._cells = resized
        self._rows, self._cols = rows, cols
        return True

    # ------------------------------------------------------------------
    # Engine results
    # ------------------------------------------------------------------
    def apply_probabilities(self, pos: Position, probabilities: CellProbabilities) -> bool:
        """Write engine results into a cell without touching word or history."""
        if not self.contains(pos):
            LOGGER.debug("Dropping probabilities for removed cell %s", pos)
            return False
        cell = self._cells[pos.row][pos.col]
        cell.row_probability = probabilities.row_probability
        cell.col_probability = probabilities.col_probability
        cell.combined_probability = probabilities.combined_probability
        return True

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------
    def undo(self) -> bool:
        if not self._past:
            return False
        self._future.append(self._snapshot())
        self._restore(self._past.pop())
        return True

    def redo(self) -> bool:
        if not self._future:
            return False
        self._past.append(self._snapshot())
        self._restore(self._future.pop())
        return True

    def _commit(self) -> None:
        self._past.append(self._snapshot())
        self._future.clear()
        self._version += 1

    def _snapshot(self) -> GridSnapshot:
        return GridSnapshot(cells=copy.deepcopy(self._cells), rows=self._rows, cols=self._cols)

    def _restore(self, snapshot: GridSnapshot) -> None:
        self._cells = snapshot.cells
        self._rows = snapshot.rows
        self._cols = snapshot.cols
        self._version += 1

    def _require(self, pos: Position) -> None:
        if not self.contains(pos):
            raise GridDimensionError(
                f"Position {(pos.row, pos.col)} outside {self._rows}x{self._cols} grid"
            )
