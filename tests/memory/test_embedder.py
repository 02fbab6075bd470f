"""Tests for the deterministic embedder."""

import math

from chronomind.memory import EMBEDDING_VERSION, VECTOR_LEN, embed
from chronomind.memory.embedder import tokenize


def norm(vector: list[float]) -> float:
    return math.sqrt(sum(x * x for x in vector))


class TestTokenize:
    """Tests for tokenization."""

    def test_lowercases_and_strips_punctuation(self):
        """Punctuation is removed and text is lowercased."""
        assert tokenize("Hello, World!") == ["hello", "world"]

    def test_splits_on_any_whitespace(self):
        """Runs of whitespace, tabs and newlines separate tokens."""
        assert tokenize("  a\tb\n\nc  ") == ["a", "b", "c"]

    def test_punctuation_inside_word_joins_it(self):
        """Punctuation inside a word is dropped, not treated as a separator."""
        assert tokenize("I'm") == ["im"]


class TestEmbed:
    """Tests for embed."""

    def test_fixed_length(self):
        """Vectors always have VECTOR_LEN entries."""
        assert len(embed("I live in Lisbon")) == VECTOR_LEN
        assert len(embed("")) == VECTOR_LEN

    def test_deterministic(self):
        """The same text always yields the same vector."""
        text = "I'm learning Rust"
        assert embed(text) == embed(text)

    def test_unit_norm(self):
        """Non-empty text produces a unit-length vector."""
        assert math.isclose(norm(embed("where do I live")), 1.0, rel_tol=1e-9)

    def test_empty_is_zero_vector(self):
        """Empty text produces an all-zero vector."""
        assert embed("") == [0.0] * VECTOR_LEN

    def test_only_punctuation_is_zero_vector(self):
        """Text that is only punctuation produces an all-zero vector."""
        assert embed("?!... ,;") == [0.0] * VECTOR_LEN

    def test_case_and_punctuation_insensitive(self):
        """Case and punctuation do not change the vector."""
        assert embed("Lisbon!") == embed("lisbon")

    def test_word_order_matters(self):
        """Token position is part of the fingerprint."""
        assert embed("red car") != embed("car red")

    def test_known_bucket(self):
        """A single character lands in the bucket of its code point."""
        vector = embed("a")
        assert vector[ord("a") % VECTOR_LEN] == 1.0
        assert sum(1 for x in vector if x != 0) == 1

    def test_version_constant(self):
        """The embedding version is a positive integer."""
        assert isinstance(EMBEDDING_VERSION, int)
        assert EMBEDDING_VERSION >= 1
