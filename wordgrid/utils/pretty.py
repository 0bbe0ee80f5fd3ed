"""Pretty-print helpers for word grids and suggestion lists."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING, Iterable, Optional, Sequence

from ..core.constants import DEFAULT_PLACEHOLDER

if TYPE_CHECKING:
    from ..core.constants import Position
    from ..core.models import Cell, Suggestion


BUCKETS = (
    (0.2, "very-low"),
    (0.4, "low"),
    (0.6, "medium"),
    (0.8, "high"),
)

BUCKET_SYMBOLS = {
    "unknown": " ",
    "very-low": "--",
    "low": "-",
    "medium": "~",
    "high": "+",
    "very-high": "++",
}


def probability_bucket(probability: Optional[float]) -> str:
    """Map a probability to its heatmap bucket name."""

    if probability is None:
        return "unknown"
    p = max(0.0, min(1.0, probability))
    for upper, name in BUCKETS:
        if p < upper:
            return name
    return "very-high"


def cell_label(cell: Cell, heatmap: bool = False) -> str:
    word = cell.word.strip() or "."
    if not heatmap:
        return word
    probability = next(
        (
            p
            for p in (cell.combined_probability, cell.row_probability, cell.col_probability)
            if p is not None
        ),
        None,
    )
    if probability is None:
        return word
    return f"{word}{BUCKET_SYMBOLS[probability_bucket(probability)]}"


def format_grid(
    cells: Sequence[Sequence[Cell]],
    *,
    heatmap: bool = False,
    selected: Optional[Position] = None,
) -> str:
    labels = [[cell_label(cell, heatmap) for cell in row] for row in cells]
    cols = max((len(row) for row in labels), default=0)
    width = max([5] + [len(label) + 2 for row in labels for label in row])
    header = "    " + " ".join(f"{c:^{width}}" for c in range(cols))
    lines = [header, "    " + "-" * ((width + 1) * cols - 1)]
    for r, row in enumerate(labels):
        rendered = []
        for c, label in enumerate(row):
            if selected is not None and (selected.row, selected.col) == (r, c):
                label = f"[{label}]"
            rendered.append(f"{label:^{width}}")
        lines.append(f"{r:>2} | " + " ".join(rendered))
    return "\n".join(lines)


def format_phrase_preview(row_phrase: Optional[str], column_phrase: Optional[str]) -> str:
    """Describe the row and column phrases around the selected cell."""

    if row_phrase is None and column_phrase is None:
        return "Start typing to add words to the grid"
    lines = []
    if row_phrase is not None:
        lines.append(f"Row: {row_phrase}")
    if column_phrase is not None:
        lines.append(f"Column: {column_phrase}")
    return "\n".join(lines)


def format_suggestions(suggestions: Iterable[Suggestion]) -> str:
    lines = []
    for rank, suggestion in enumerate(suggestions, start=1):
        lines.append(
            f"{rank:>2}. {suggestion.word:<16} score={suggestion.combined_score:.3f} "
            f"row={suggestion.row_probability:.2f} col={suggestion.col_probability:.2f} "
            f"({suggestion.source.value})"
        )
    if not lines:
        return f"No suggestions for {DEFAULT_PLACEHOLDER}"
    return "\n".join(lines)


def pretty_print_grid(
    cells: Sequence[Sequence[Cell]],
    *,
    label: str | None = None,
    heatmap: bool = False,
    stream=None,
) -> None:
    """Print the word grid in a human-friendly format."""

    stream = stream or sys.stdout
    if label:
        print(label, file=stream)
    print(format_grid(cells, heatmap=heatmap), file=stream)
