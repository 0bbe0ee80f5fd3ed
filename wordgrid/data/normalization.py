"""Shared helpers for word normalization."""

from __future__ import annotations

import re

NON_WORD_RE = re.compile(r"[^a-z'-]")
WHITESPACE_RE = re.compile(r"\s+")


def normalize_word(text: str) -> str:
    """Return the lowercase, whitespace-trimmed form used for keys and matching."""

    if not text:
        return ""
    return text.lower().strip()


def extract_completion_word(text: str) -> str:
    """Reduce a raw completion to a single lowercase word.

    Keeps the first whitespace-delimited token and removes every character
    other than ASCII letters, apostrophes and hyphens. Returns ``""`` when
    nothing usable remains.
    """

    if not text:
        return ""
    tokens = WHITESPACE_RE.split(text.strip().lower(), maxsplit=1)
    if not tokens or not tokens[0]:
        return ""
    return NON_WORD_RE.sub("", tokens[0])


__all__ = ["normalize_word", "extract_completion_word"]
