"""Lightweight HTTP client for single-word completions."""

from __future__ import annotations

import os
from collections import OrderedDict
from typing import Any, List, Optional, Protocol, Tuple

import requests

from ..core.exceptions import NoCredential, UpstreamUnavailable
from ..core.models import WordCompletion
from ..data.normalization import extract_completion_word
from ..utils.logger import get_logger

LOGGER = get_logger(__name__)

DEFAULT_LOGPROB = -3.0

RawCompletion = Tuple[str, Optional[float]]


class CompletionProvider(Protocol):
    """Protocol implemented by every completion backend."""

    @property
    def is_configured(self) -> bool:
        ...

    def request_completions(self, prompt: str, count: int) -> List[RawCompletion]:
        """Return ``count`` independent completions with an optional logprob each."""

    def complete(self, prompt: str, n: int) -> List[WordCompletion]:
        """Return the observed single-word frequency table for ``prompt``."""


def frequency_table(
    completions: List[RawCompletion], n: int, top_k: Optional[int] = None
) -> List[WordCompletion]:
    """Count single-word completions into ``word -> occurrences / n``.

    Ties keep the order in which words were first observed.
    """

    if n < 1:
        raise ValueError("n must be positive")
    counts: "OrderedDict[str, Tuple[int, float]]" = OrderedDict()
    for text, logprob in completions:
        word = extract_completion_word(text)
        if not word:
            continue
        score = DEFAULT_LOGPROB if logprob is None else logprob
        seen, best = counts.get(word, (0, score))
        counts[word] = (seen + 1, max(best, score))

    table = [
        WordCompletion(word=word, probability=min(1.0, seen / n), logprob=best)
        for word, (seen, best) in counts.items()
    ]
    table.sort(key=lambda entry: entry.probability, reverse=True)
    if top_k is not None:
        table = table[:top_k]
    return table


class OpenAICompletionClient:
    """Minimal client around the OpenAI chat completions REST API."""

    API_BASE = "https://api.openai.com/v1"
    SYSTEM_PROMPT = "Continue with exactly one word. Output only that word."

    def __init__(
        self,
        api_key: str,
        model_name: str = "gpt-4o-mini",
        model_env: str = "WORDGRID_MODEL",
        timeout_seconds: float = 30.0,
        api_base: Optional[str] = None,
        top_k: Optional[int] = 8,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not api_key or not api_key.strip():
            raise NoCredential("Completion client requires a non-empty API key")
        self.model_name = os.environ.get(model_env, model_name)
        self.timeout_seconds = timeout_seconds
        self.api_base = (api_base or self.API_BASE).rstrip("/")
        self.top_k = top_k
        self._api_key = api_key.strip()
        self._http = session or requests.Session()

    @property
    def is_configured(self) -> bool:
        return True

    def request_completions(self, prompt: str, count: int) -> List[RawCompletion]:
        """Send one request asking for ``count`` short completions of ``prompt``."""
        payload = {
            "model": self.model_name,
            "messages": [
                {"role": "system", "content": self.SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": 4,
            "n": count,
            "temperature": 1.0,
            "logprobs": True,
        }
        try:
            response = self._http.post(
                f"{self.api_base}/chat/completions",
                headers={"Authorization": f"Bearer {self._api_key}"},
                json=payload,
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as exc:
            raise UpstreamUnavailable(f"Completion request failed: {exc}") from exc
        except ValueError as exc:
            raise UpstreamUnavailable("Completion response was not valid JSON") from exc

        choices = self._extract_choices(data)
        if choices is None:
            LOGGER.warning("Malformed completion response: %s", data)
            raise UpstreamUnavailable("Completion response was malformed")
        return choices

    def complete(self, prompt: str, n: int) -> List[WordCompletion]:
        prompt = prompt.strip()
        if not prompt:
            return []
        completions = self.request_completions(prompt, n)
        table = frequency_table(completions, n, self.top_k)
        LOGGER.debug(
            "Completions for %r: %s", prompt, [(c.word, c.probability, c.logprob) for c in table]
        )
        return table

    @staticmethod
    def _extract_choices(payload: Any) -> Optional[List[RawCompletion]]:
        """Pull (content, first-token logprob) pairs out of the API payload.

        Returns ``None`` when any part of the payload has an unexpected shape.
        """
        if not isinstance(payload, dict):
            return None
        choices = payload.get("choices")
        if not isinstance(choices, list):
            return None
        extracted: List[RawCompletion] = []
        for choice in choices:
            if not isinstance(choice, dict):
                return None
            message = choice.get("message") or {}
            logprobs = choice.get("logprobs") or {}
            if not isinstance(message, dict) or not isinstance(logprobs, dict):
                return None
            content = message.get("content") or ""
            tokens = logprobs.get("content") or []
            if not isinstance(content, str) or not isinstance(tokens, list):
                return None
            logprob: Optional[float] = None
            if tokens:
                first = tokens[0]
                if not isinstance(first, dict):
                    return None
                if first.get("logprob") is not None:
                    try:
                        logprob = float(first["logprob"])
                    except (TypeError, ValueError):
                        return None
            extracted.append((content, logprob))
        return extracted


class UnconfiguredClient:
    """Stand-in used while no API key is available."""

    @property
    def is_configured(self) -> bool:
        return False

    def request_completions(self, prompt: str, count: int) -> List[RawCompletion]:
        raise NoCredential("No API key configured")

    def complete(self, prompt: str, n: int) -> List[WordCompletion]:
        raise NoCredential("No API key configured")


def build_completion_client(
    api_key: Optional[str], top_k: Optional[int] = 8, **kwargs: Any
) -> CompletionProvider:
    """Return a configured client for a usable key, else :class:`UnconfiguredClient`."""

    if not api_key or not api_key.strip():
        LOGGER.info("No API key provided; completions disabled")
        return UnconfiguredClient()
    return OpenAICompletionClient(api_key, top_k=top_k, **kwargs)
