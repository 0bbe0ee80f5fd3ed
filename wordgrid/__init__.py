"""Word grid suggestion and probability engine.

This package exposes the public API surface via:

- ``wordgrid.engine.session.GridSession``: one editable grid with live
  suggestions and a probability heatmap.
- ``wordgrid.engine.suggestions.SuggestionEngine``: ranks candidate words for
  a cell and scores words already typed.
- ``wordgrid.engine.grid_store.GridStore``: grid contents with undo/redo.
"""

from .core.config import EngineConfig, GridConfig
from .core.constants import Position, SuggestionMode
from .engine.grid_store import GridStore
from .engine.session import GridSession
from .engine.suggestions import SuggestionEngine

__all__ = [
    "EngineConfig",
    "GridConfig",
    "GridSession",
    "GridStore",
    "Position",
    "SuggestionEngine",
    "SuggestionMode",
]

__version__ = "0.1.0"
