"""Size metrics for composed documents: characters or tiktoken tokens."""

from __future__ import annotations

from enum import Enum

import tiktoken


class SizeMetric(Enum):
    """How document size is measured against the budget."""

    CHARS = "chars"
    TOKENS = "tokens"

    @classmethod
    def parse(cls, value: str | SizeMetric) -> SizeMetric:
        if isinstance(value, SizeMetric):
            return value
        return cls(value.strip().lower())


# Singleton encoder (loaded once on first use)
_encoder: tiktoken.Encoding | None = None


def _get_encoder() -> tiktoken.Encoding:
    """Get cached tiktoken encoder."""
    global _encoder
    if _encoder is None:
        _encoder = tiktoken.get_encoding("o200k_base")
    return _encoder


# Content hash -> token count cache
_token_cache: dict[int, int] = {}


def count_tokens(text: str) -> int:
    """Count tokens with caching (uses tiktoken)."""
    key = hash(text)
    if key not in _token_cache:
        _token_cache[key] = len(_get_encoder().encode(text))
    return _token_cache[key]


def invalidate_cache() -> None:
    """Clear token count cache."""
    _token_cache.clear()


def measure(text: str, metric: SizeMetric = SizeMetric.CHARS) -> int:
    """Size of ``text`` in the given metric."""
    if metric is SizeMetric.TOKENS:
        return count_tokens(text)
    return len(text)


def truncate(text: str, budget: int, metric: SizeMetric = SizeMetric.CHARS) -> str:
    """Cut ``text`` so that ``measure(result, metric) <= budget``.

    In characters the result is exactly ``budget`` long when ``text`` is
    longer. In tokens the decoded prefix is re-measured, since decoding can
    merge across the cut.
    """
    if budget <= 0:
        return ""
    if metric is SizeMetric.CHARS:
        return text[:budget]

    encoder = _get_encoder()
    tokens = encoder.encode(text)
    if len(tokens) <= budget:
        return text
    keep = budget
    while keep > 0:
        candidate = encoder.decode(tokens[:keep])
        if count_tokens(candidate) <= budget:
            return candidate
        keep -= 1
    return ""
