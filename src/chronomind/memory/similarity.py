"""Vector comparison and ranking primitives shared by all retrieval paths."""

from collections.abc import Callable, Iterable, Sequence
from typing import TypeVar

import numpy as np

T = TypeVar("T")


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors, in [-1, 1].

    Degenerate inputs score 0 instead of raising: vectors of different
    length, empty or all-zero vectors, and vectors holding non-numeric or
    non-finite values.
    """
    if len(a) != len(b) or len(a) == 0:
        return 0.0

    try:
        x = np.asarray(a, dtype=float)
        y = np.asarray(b, dtype=float)
    except (TypeError, ValueError):
        return 0.0

    if x.ndim != 1 or y.ndim != 1:
        return 0.0
    if not (np.isfinite(x).all() and np.isfinite(y).all()):
        return 0.0

    norm_a = np.linalg.norm(x)
    norm_b = np.linalg.norm(y)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    score = float(np.dot(x, y) / (norm_a * norm_b))
    if not np.isfinite(score):
        return 0.0
    return max(-1.0, min(1.0, score))


def top_k(items: Iterable[T], score_fn: Callable[[T], float], k: int) -> list[T]:
    """Return the k highest-scoring items, best first.

    Equal scores keep their original order (the sort is stable), so the
    ranking is deterministic for a given input list.
    """
    if k <= 0:
        return []

    scored = [(score_fn(item), item) for item in items]
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [item for _, item in scored[:k]]
