"""Ranked retrieval of a user's memory for a query."""

import asyncio
import logging
import math
from collections.abc import Callable
from typing import TypeVar

from .embedder import EMBEDDING_VERSION, embed
from .index import MemoryIndex
from .models import Embedding, Fact, MemoryResults, Summary
from .similarity import cosine_similarity, top_k
from .store import MemoryStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_LIMIT = 5


class Retriever:
    """Scores stored facts, summaries and embeddings against a query.

    Facts and summaries are re-embedded at query time from their text, so
    they are retrievable even when no embedding row exists for them.
    """

    def __init__(
        self,
        store: MemoryStore,
        embedder: Callable[[str], list[float]] = embed,
        embedding_version: int = EMBEDDING_VERSION,
    ) -> None:
        """Initialize the retriever.

        Args:
            store: The MemoryStore to read from.
            embedder: Function mapping text to a vector.
            embedding_version: Version of ``embedder``; stored embeddings
                with another version are skipped.
        """
        self.store = store
        self.embedder = embedder
        self.embedding_version = embedding_version

    async def retrieve(
        self, user_id: str, query_text: str, limit: int = DEFAULT_LIMIT
    ) -> MemoryResults:
        """Return the user's memory most relevant to a query.

        Args:
            user_id: Whose memory to search.
            query_text: The new user query.
            limit: Maximum facts and embeddings to return; summaries are
                capped at ``ceil(limit / 2)``.

        Returns:
            MemoryResults with each list ranked best first.
        """
        if limit < 0:
            raise ValueError("limit must be non-negative")

        index = MemoryIndex(self.store, user_id)
        query_vector = self.embedder(query_text)

        facts, summaries, embeddings = await asyncio.gather(
            self._fetch("facts", user_id, index.list_facts),
            self._fetch("summaries", user_id, index.list_summaries),
            self._fetch("embeddings", user_id, index.list_embeddings),
        )

        def score_embedding(embedding: Embedding) -> float:
            return cosine_similarity(query_vector, embedding.vector)

        def score_fact(fact: Fact) -> float:
            return cosine_similarity(query_vector, self.embedder(f"{fact.key}: {fact.value}"))

        def score_summary(summary: Summary) -> float:
            return cosine_similarity(query_vector, self.embedder(summary.content))

        # Vectors from another embedder version are not comparable.
        current = [e for e in embeddings if e.version == self.embedding_version]
        return MemoryResults(
            facts=top_k(facts, score_fact, limit),
            summaries=top_k(summaries, score_summary, math.ceil(limit / 2)),
            embeddings=top_k(current, score_embedding, limit),
        )

    async def _fetch(
        self, source: str, user_id: str, fetch: Callable[[], list[T]]
    ) -> list[T]:
        """Run one store read off the event loop; a failure yields []."""
        try:
            return await asyncio.to_thread(fetch)
        except Exception as e:
            logger.warning("Failed to load %s for user %s: %s", source, user_id, e)
            return []
