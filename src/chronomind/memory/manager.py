"""Memory manager: the write and read entry points of the memory system."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from ..config import MemoryConfig
from .context import build_context
from .embedder import embed
from .index import MemoryIndex
from .models import (
    Embedding,
    Fact,
    FactCategory,
    MemoryResults,
    MemoryStats,
    SourceType,
    Summary,
)
from .retriever import Retriever
from .store import MemoryStore

if TYPE_CHECKING:
    from ..logging import JSONLLogger
    from .extractor import FactExtractor

logger = logging.getLogger(__name__)


class MemoryManager:
    """Orchestrates memory operations: extraction, storage and retrieval.

    This is the main interface for the memory system. The chat layer
    calls ``extract_and_store`` after a conversation turn and
    ``build_memory_context`` before sending a new prompt.
    """

    def __init__(
        self,
        store: MemoryStore,
        extractor: FactExtractor | None = None,
        config: MemoryConfig | None = None,
        retriever: Retriever | None = None,
        event_logger: JSONLLogger | None = None,
    ) -> None:
        """Initialize the manager with a store and optional extractor.

        Args:
            store: The MemoryStore for persistence.
            extractor: Optional FactExtractor for automatic extraction.
            config: Memory settings; defaults are used if None.
            retriever: Retriever to rank memory; built over the store if None.
            event_logger: Optional JSONL logger for memory events.
        """
        self.store = store
        self.extractor = extractor
        self.config = config or MemoryConfig()
        self.retriever = retriever or Retriever(store)
        self.event_logger = event_logger

    def index(self, user_id: str) -> MemoryIndex:
        """Return a view of the store bound to one user."""
        return MemoryIndex(self.store, user_id)

    async def extract_and_store(
        self,
        user_id: str,
        messages: list[dict[str, Any]],
        source_message_id: str | None = None,
    ) -> list[Fact]:
        """Extract facts from a conversation and save them for a user.

        Each fact is stored independently: a failed insert is logged and
        the remaining facts are still attempted.

        Args:
            user_id: Whose memory to update.
            messages: The conversation messages to analyze.
            source_message_id: Message to attach to every stored fact.

        Returns:
            List of stored facts (empty if no extractor or no facts).
        """
        if not self.extractor:
            return []

        start = time.perf_counter()
        candidates = await self.extractor.extract(messages)

        stored: list[Fact] = []
        last_error: str | None = None
        for candidate in candidates:
            try:
                fact = self.remember_fact(
                    user_id,
                    candidate.category,
                    candidate.key,
                    candidate.value,
                    confidence=candidate.confidence,
                    source_message_id=source_message_id,
                )
            except Exception as e:
                last_error = str(e)
                logger.warning(
                    "Failed to store fact %r for user %s: %s", candidate.key, user_id, e
                )
                continue

            stored.append(fact)

        failed = len(candidates) - len(stored)
        if candidates and not stored:
            logger.warning(
                "All %d extracted facts failed to store for user %s",
                len(candidates),
                user_id,
            )

        if self.event_logger:
            self.event_logger.log_extraction(
                user_id,
                candidates=len(candidates),
                stored=len(stored),
                failed=failed,
                duration_ms=(time.perf_counter() - start) * 1000,
                error=last_error,
            )

        return stored

    def remember_fact(
        self,
        user_id: str,
        category: FactCategory | str,
        key: str,
        value: str,
        confidence: float = 1.0,
        source_message_id: str | None = None,
    ) -> Fact:
        """Store one fact for a user and, if configured, its embedding.

        A failure to embed is logged and does not undo the fact.

        Raises:
            ValueError: If the category is not one of the known categories.
        """
        index = self.index(user_id)
        fact = index.insert_fact(
            category, key, value, confidence=confidence, source_message_id=source_message_id
        )
        if self.config.embed_facts:
            self._embed_fact(index, fact)
        return fact

    def forget(self, user_id: str, key: str) -> int:
        """Delete a user's facts with a key, and the embeddings made from them."""
        return self.index(user_id).delete_facts_by_key(key)

    def _embed_fact(self, index: MemoryIndex, fact: Fact) -> None:
        try:
            index.insert_embedding(
                f"{fact.key}: {fact.value}",
                embed(f"{fact.key}: {fact.value}"),
                SourceType.FACT,
                source_id=fact.id,
            )
        except Exception as e:
            logger.warning("Failed to embed fact %s: %s", fact.id, e)

    async def retrieve(
        self, user_id: str, query_text: str, limit: int | None = None
    ) -> MemoryResults:
        """Rank a user's memory against a query.

        Args:
            user_id: Whose memory to search.
            query_text: The new user query.
            limit: Per-source limit; config.retrieval_limit if None.
        """
        start = time.perf_counter()
        if limit is None:
            limit = self.config.retrieval_limit

        results = await self.retriever.retrieve(user_id, query_text, limit=limit)

        if self.event_logger:
            self.event_logger.log_retrieval(
                user_id,
                facts=len(results.facts),
                summaries=len(results.summaries),
                embeddings=len(results.embeddings),
                duration_ms=(time.perf_counter() - start) * 1000,
            )

        return results

    async def build_memory_context(
        self,
        user_id: str,
        query_text: str,
        recent_messages: list[dict[str, Any]],
    ) -> str:
        """Build the memory block to inject before a new prompt.

        Args:
            user_id: Whose memory to use.
            query_text: The new user query.
            recent_messages: The latest chat messages, oldest first.

        Returns:
            The memory block, or empty string when memory is disabled
            or there is nothing to inject.
        """
        if not self.config.use_memory:
            return ""

        results = await self.retrieve(user_id, query_text)
        return build_context(results.facts, results.summaries, recent_messages)

    def remember_message(
        self, user_id: str, content: str, source_id: str | None = None
    ) -> Embedding:
        """Embed a chat message and store it for later retrieval."""
        return self.index(user_id).insert_embedding(
            content, embed(content), SourceType.MESSAGE, source_id=source_id
        )

    def add_summary(
        self,
        user_id: str,
        content: str,
        period_start: str,
        period_end: str,
        message_count: int = 0,
    ) -> Summary:
        """Store a summary of a period of conversation, with its embedding."""
        index = self.index(user_id)
        summary = index.insert_summary(content, period_start, period_end, message_count)
        index.insert_embedding(
            content, embed(content), SourceType.SUMMARY, source_id=summary.id
        )
        return summary

    def clear_all(self, user_id: str) -> None:
        """Forget everything stored for a user."""
        index = self.index(user_id)
        index.clear_facts()
        index.clear_summaries()
        index.clear_embeddings()

        if self.event_logger:
            self.event_logger.log_cleared(user_id)

    def stats(self, user_id: str) -> MemoryStats:
        """Count what is stored for a user."""
        index = self.index(user_id)
        return MemoryStats(
            facts=index.count_facts(),
            summaries=index.count_summaries(),
            embeddings=index.count_embeddings(),
        )
