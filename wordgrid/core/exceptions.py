"""Custom exception hierarchy for the word grid engine."""


class WordGridError(Exception):
    """Base exception for engine failures."""


class NoCredential(WordGridError):
    """Raised when a completion is requested without an API key."""


class UpstreamUnavailable(WordGridError):
    """Raised when the completion provider cannot be reached or errors."""


class GridDimensionError(WordGridError, ValueError):
    """Raised when a grid size or position falls outside the allowed bounds."""
