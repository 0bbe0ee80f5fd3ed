"""Configuration values for the grid store and the suggestion engine."""

from __future__ import annotations

from dataclasses import dataclass

from .constants import DEFAULT_PLACEHOLDER


@dataclass
class GridConfig:
    """Configuration values driving the grid layout and history."""

    rows: int = 5
    cols: int = 5
    min_size: int = 2
    max_size: int = 10
    history_limit: int = 100

    def __post_init__(self) -> None:
        if self.min_size < 1 or self.max_size < self.min_size:
            raise ValueError(
                f"Invalid grid bounds: min_size={self.min_size}, max_size={self.max_size}"
            )
        if not self.allows(self.rows, self.cols):
            raise ValueError(
                f"Grid size {self.rows}x{self.cols} outside {self.min_size}..{self.max_size}"
            )
        if self.history_limit < 1:
            raise ValueError("history_limit must be positive")

    def allows(self, rows: int, cols: int) -> bool:
        return (
            self.min_size <= rows <= self.max_size
            and self.min_size <= cols <= self.max_size
        )


@dataclass
class EngineConfig:
    """Tunables for suggestion scoring, caching and scheduling."""

    max_suggestions: int = 10
    cache_capacity: int = 1000
    cache_ttl_seconds: float = 300.0
    debounce_seconds: float = 0.3
    suggestion_floor: float = 0.05
    existing_word_floor: float = 0.01
    both_axes_multiplier: float = 2.0
    completion_count: int = 10
    completion_top_k: int = 8
    max_workers: int = 4
    placeholder: str = DEFAULT_PLACEHOLDER

    def __post_init__(self) -> None:
        if self.max_suggestions < 1:
            raise ValueError("max_suggestions must be positive")
        if self.cache_capacity < 1:
            raise ValueError("cache_capacity must be positive")
        if self.cache_ttl_seconds <= 0:
            raise ValueError("cache_ttl_seconds must be positive")
        if self.debounce_seconds < 0:
            raise ValueError("debounce_seconds cannot be negative")
        for name in ("suggestion_floor", "existing_word_floor"):
            value = getattr(self, name)
            if not 0.0 < value <= 1.0:
                raise ValueError(f"{name} must be within (0, 1], got {value}")
        if self.both_axes_multiplier < 1.0:
            raise ValueError("both_axes_multiplier must be at least 1")
        if self.completion_count < 1 or self.completion_top_k < 1:
            raise ValueError("completion_count and completion_top_k must be positive")
        if self.max_workers < 1:
            raise ValueError("max_workers must be positive")
