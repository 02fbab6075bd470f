"""Per-user view over the memory store."""

from .embedder import EMBEDDING_VERSION
from .models import Embedding, Fact, FactCategory, SourceType, Summary
from .store import MemoryStore


def _require_category(category: FactCategory | str) -> FactCategory:
    parsed = FactCategory.parse(category)
    if parsed is None:
        raise ValueError(f"Unknown fact category: {category!r}")
    return parsed


class MemoryIndex:
    """Memory operations bound to a single user.

    The user id is fixed at construction and attached to every query
    and every inserted row, so callers holding an index cannot read or
    write another user's memory.
    """

    def __init__(self, store: MemoryStore, user_id: str) -> None:
        if not user_id:
            raise ValueError("user_id is required")
        self.store = store
        self.user_id = user_id

    def list_facts(self) -> list[Fact]:
        return self.store.get_facts(self.user_id)

    def list_facts_by_category(self, category: FactCategory | str) -> list[Fact]:
        return self.store.get_facts_by_category(self.user_id, _require_category(category))

    def list_summaries(self) -> list[Summary]:
        return self.store.get_summaries(self.user_id)

    def list_embeddings(self) -> list[Embedding]:
        return self.store.get_embeddings(self.user_id)

    def count_facts(self) -> int:
        return self.store.count_facts(self.user_id)

    def count_summaries(self) -> int:
        return self.store.count_summaries(self.user_id)

    def count_embeddings(self) -> int:
        return self.store.count_embeddings(self.user_id)

    def insert_fact(
        self,
        category: FactCategory | str,
        key: str,
        value: str,
        confidence: float = 1.0,
        source_message_id: str | None = None,
    ) -> Fact:
        """Store a new fact for this user.

        Raises:
            ValueError: If the category is not one of the known categories.
        """
        return self.store.save_fact(
            Fact(
                user_id=self.user_id,
                category=_require_category(category),
                key=key,
                value=value,
                confidence=confidence,
                source_message_id=source_message_id,
            )
        )

    def insert_summary(
        self,
        content: str,
        period_start: str,
        period_end: str,
        message_count: int = 0,
    ) -> Summary:
        """Store a new summary for this user.

        Raises:
            ValueError: If message_count is negative.
        """
        if message_count < 0:
            raise ValueError("message_count must be non-negative")
        return self.store.save_summary(
            Summary(
                user_id=self.user_id,
                content=content,
                period_start=period_start,
                period_end=period_end,
                message_count=message_count,
            )
        )

    def insert_embedding(
        self,
        content: str,
        vector: list[float],
        source_type: SourceType | str,
        source_id: str | None = None,
        version: int = EMBEDDING_VERSION,
    ) -> Embedding:
        """Store a precomputed embedding for this user."""
        return self.store.save_embedding(
            Embedding(
                user_id=self.user_id,
                content=content,
                vector=tuple(vector),
                source_type=SourceType(source_type),
                source_id=source_id,
                version=version,
            )
        )

    def update_fact(
        self,
        fact_id: str,
        *,
        category: FactCategory | str | None = None,
        key: str | None = None,
        value: str | None = None,
        confidence: float | None = None,
    ) -> Fact | None:
        """Edit one of this user's facts; None if the user has no such fact."""
        return self.store.update_fact(
            self.user_id,
            fact_id,
            category=_require_category(category) if category is not None else None,
            key=key,
            value=value,
            confidence=confidence,
        )

    def delete_fact(self, fact_id: str) -> bool:
        return self.store.delete_fact(self.user_id, fact_id)

    def delete_facts_by_key(self, key: str) -> int:
        return self.store.delete_facts_by_key(self.user_id, key)

    def clear_facts(self) -> int:
        return self.store.clear_facts(self.user_id)

    def clear_summaries(self) -> int:
        return self.store.clear_summaries(self.user_id)

    def clear_embeddings(self) -> int:
        return self.store.clear_embeddings(self.user_id)
