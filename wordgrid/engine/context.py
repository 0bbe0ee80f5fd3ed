"""Row and column context extraction around a grid position.

All helpers are pure: they read a grid of cells (or a plain word matrix) and
never raise for positions outside the grid, which simply have no context.
"""

from __future__ import annotations

from typing import List, Sequence, Set, Tuple, Union

from ..core.constants import DEFAULT_PLACEHOLDER, Position
from ..core.models import Cell, PhraseContext

WordSnapshot = Tuple[Tuple[str, ...], ...]
GridLike = Sequence[Sequence[Union[Cell, str]]]


def _word_at(grid: GridLike, row: int, col: int) -> str:
    if row < 0 or col < 0 or row >= len(grid):
        return ""
    cells = grid[row]
    if col >= len(cells):
        return ""
    item = cells[col]
    word = item.word if isinstance(item, Cell) else item
    return (word or "").strip()


def _in_grid(grid: GridLike, pos: Position) -> bool:
    return 0 <= pos.row < len(grid) and 0 <= pos.col < len(grid[pos.row])


def row_context(grid: GridLike, pos: Position) -> PhraseContext:
    """Non-empty words left and right of ``pos`` in its row."""

    if not _in_grid(grid, pos):
        return PhraseContext()
    width = len(grid[pos.row])
    before = [_word_at(grid, pos.row, col) for col in range(pos.col)]
    after = [_word_at(grid, pos.row, col) for col in range(pos.col + 1, width)]
    return PhraseContext(
        before=tuple(word for word in before if word),
        after=tuple(word for word in after if word),
    )


def column_context(grid: GridLike, pos: Position) -> PhraseContext:
    """Non-empty words above and below ``pos`` in its column."""

    if not _in_grid(grid, pos):
        return PhraseContext()
    before = [_word_at(grid, row, pos.col) for row in range(pos.row)]
    after = [_word_at(grid, row, pos.col) for row in range(pos.row + 1, len(grid))]
    return PhraseContext(
        before=tuple(word for word in before if word),
        after=tuple(word for word in after if word),
    )


def affected_positions(pos: Position, rows: int, cols: int) -> Set[Position]:
    """Every position sharing a row or column with ``pos``, itself included."""

    affected: Set[Position] = set()
    if 0 <= pos.row < rows:
        affected.update(Position(pos.row, col) for col in range(cols))
    if 0 <= pos.col < cols:
        affected.update(Position(row, pos.col) for row in range(rows))
    return affected


def context_to_prompt(context: PhraseContext, placeholder: str = DEFAULT_PLACEHOLDER) -> str:
    """Render ``before ___ after``, leaving out empty segments."""

    parts: List[str] = []
    if context.before:
        parts.append(" ".join(context.before))
    parts.append(placeholder)
    if context.after:
        parts.append(" ".join(context.after))
    return " ".join(parts)


def completion_prompt(context: PhraseContext) -> str:
    """Text sent to the completion provider: the words leading up to the cell."""

    return " ".join(context.before)


def word_snapshot(grid: GridLike) -> WordSnapshot:
    """Freeze the words of ``grid`` for later change detection."""

    return tuple(
        tuple(item.word if isinstance(item, Cell) else item for item in row)
        for row in grid
    )


def changed_positions(previous: WordSnapshot, current: WordSnapshot) -> List[Position]:
    """Positions whose word differs between two snapshots.

    Coordinates present in only one snapshot (after a resize) compare against
    an empty word, so removed or added blank cells are not reported.
    """

    rows = max(len(previous), len(current))
    changed: List[Position] = []
    for row in range(rows):
        prev_row = previous[row] if row < len(previous) else ()
        cur_row = current[row] if row < len(current) else ()
        for col in range(max(len(prev_row), len(cur_row))):
            before = prev_row[col] if col < len(prev_row) else ""
            after = cur_row[col] if col < len(cur_row) else ""
            if before != after:
                changed.append(Position(row, col))
    return changed
