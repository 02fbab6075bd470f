"""Deterministic, model-free text embeddings.

Each token at position ``i`` adds ``1 / (i + 1)`` to the bucket
``(ord(char) + i + j) % VECTOR_LEN`` for every character ``j`` in it,
and the result is L2-normalized. This is a lexical fingerprint rather
than a learned embedding, so similar wording produces similar vectors.

``VECTOR_LEN`` and the bucket formula are part of the stored data
format: changing either requires bumping ``EMBEDDING_VERSION`` so that
previously stored vectors are no longer compared against new ones.
"""

import re

import numpy as np

VECTOR_LEN = 256
EMBEDDING_VERSION = 1

_PUNCTUATION_RE = re.compile(r"[^\w\s]")


def tokenize(text: str) -> list[str]:
    """Lowercase, strip punctuation, and split on whitespace."""
    return _PUNCTUATION_RE.sub("", text.lower()).split()


def embed(text: str) -> list[float]:
    """Map text to a unit-length vector of VECTOR_LEN floats.

    Returns an all-zero vector when the text has no tokens.
    """
    vector = np.zeros(VECTOR_LEN)

    for i, token in enumerate(tokenize(text)):
        weight = 1 / (i + 1)
        for j, char in enumerate(token):
            vector[(ord(char) + i + j) % VECTOR_LEN] += weight

    norm = np.linalg.norm(vector)
    return (vector / norm).tolist() if norm > 0 else vector.tolist()
