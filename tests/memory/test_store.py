"""Tests for MemoryStore."""

from pathlib import Path

import pytest

from chronomind.memory import Embedding, Fact, FactCategory, MemoryStore, SourceType, Summary


@pytest.fixture
def store(tmp_path: Path) -> MemoryStore:
    """Create a MemoryStore with a temporary database."""
    db_path = tmp_path / "test_memory.db"
    store = MemoryStore(db_path)
    store.init_db()
    yield store
    store.close()


def make_fact(user_id: str = "u1", key: str = "location", value: str = "Lisbon", **kwargs) -> Fact:
    kwargs.setdefault("category", FactCategory.PERSONAL)
    return Fact(user_id=user_id, key=key, value=value, **kwargs)


class TestMemoryStoreInit:
    """Tests for MemoryStore initialization."""

    def test_creates_db_directory(self, tmp_path: Path):
        """Store creates parent directories if they don't exist."""
        nested_path = tmp_path / "nested" / "dir" / "memory.db"
        store = MemoryStore(nested_path)
        store.init_db()
        assert nested_path.exists()
        store.close()

    def test_creates_tables(self, store: MemoryStore):
        """init_db creates the three memory tables."""
        conn = store._get_connection()
        cursor = conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
        names = {row[0] for row in cursor.fetchall()}
        assert {"memory_facts", "memory_summaries", "memory_embeddings"} <= names

    def test_init_db_idempotent(self, store: MemoryStore):
        """init_db can be called multiple times."""
        store.init_db()
        store.init_db()


class TestMemoryStoreFacts:
    """Tests for fact storage."""

    def test_save_fact_assigns_id_and_timestamps(self, store: MemoryStore):
        """save_fact returns the fact with id and timestamps."""
        saved = store.save_fact(make_fact(confidence=0.9, source_message_id="m1"))

        assert saved.id is not None
        assert saved.created_at is not None
        assert saved.updated_at is not None
        assert saved.category is FactCategory.PERSONAL
        assert saved.confidence == 0.9
        assert saved.source_message_id == "m1"

    def test_same_key_is_not_deduplicated(self, store: MemoryStore):
        """Facts sharing a key are stored as separate rows."""
        store.save_fact(make_fact(value="Porto"))
        store.save_fact(make_fact(value="Lisbon"))

        assert len(store.get_facts("u1")) == 2

    def test_confidence_clamped(self, store: MemoryStore):
        """Out-of-range confidence is clamped on save."""
        high = store.save_fact(make_fact(confidence=3.0))
        low = store.save_fact(make_fact(confidence=-1.0))

        assert high.confidence == 1.0
        assert low.confidence == 0.0

    def test_unknown_category_raises(self, store: MemoryStore):
        """A fact with an unknown category cannot be saved."""
        with pytest.raises(ValueError):
            store.save_fact(make_fact(category="hobbies"))

    def test_get_facts_newest_first(self, store: MemoryStore):
        """Facts are listed most recently updated first."""
        store.save_fact(make_fact(key="first"))
        store.save_fact(make_fact(key="second"))

        assert [f.key for f in store.get_facts("u1")] == ["second", "first"]

    def test_get_facts_by_category(self, store: MemoryStore):
        """Category listing only returns that category."""
        store.save_fact(make_fact(key="location"))
        store.save_fact(make_fact(key="language", category=FactCategory.SKILLS))

        facts = store.get_facts_by_category("u1", FactCategory.SKILLS)

        assert [f.key for f in facts] == ["language"]

    def test_update_fact(self, store: MemoryStore):
        """update_fact changes fields and keeps the id."""
        saved = store.save_fact(make_fact())

        updated = store.update_fact("u1", saved.id, value="Porto", confidence=5.0)

        assert updated is not None
        assert updated.id == saved.id
        assert updated.value == "Porto"
        assert updated.key == "location"
        assert updated.confidence == 1.0
        assert updated.updated_at >= saved.updated_at

    def test_update_unknown_fact(self, store: MemoryStore):
        """Updating a missing fact returns None."""
        assert store.update_fact("u1", "missing", value="x") is None

    def test_delete_fact(self, store: MemoryStore):
        """delete_fact removes the fact."""
        saved = store.save_fact(make_fact())

        assert store.delete_fact("u1", saved.id) is True
        assert store.get_facts("u1") == []
        assert store.delete_fact("u1", saved.id) is False

    def test_delete_facts_by_key(self, store: MemoryStore):
        """delete_facts_by_key removes every fact with the key."""
        store.save_fact(make_fact(value="Porto"))
        store.save_fact(make_fact(value="Lisbon"))
        store.save_fact(make_fact(key="name", value="Ana"))

        assert store.delete_facts_by_key("u1", "location") == 2
        assert [f.key for f in store.get_facts("u1")] == ["name"]


class TestMemoryStoreFactEmbeddings:
    """Embeddings made from a fact follow the fact's lifecycle."""

    def embed_fact(self, store: MemoryStore, fact: Fact, user_id: str = "u1") -> Embedding:
        return store.save_embedding(
            Embedding(
                user_id=user_id,
                content=f"{fact.key}: {fact.value}",
                vector=(1.0, 0.0),
                source_type=SourceType.FACT,
                source_id=fact.id,
            )
        )

    def test_delete_fact_removes_its_embedding(self, store: MemoryStore):
        kept = store.save_fact(make_fact(key="name", value="Ana"))
        gone = store.save_fact(make_fact())
        self.embed_fact(store, kept)
        self.embed_fact(store, gone)

        store.delete_fact("u1", gone.id)

        assert [e.source_id for e in store.get_embeddings("u1")] == [kept.id]

    def test_delete_by_key_removes_embeddings(self, store: MemoryStore):
        """Forgetting by key leaves no embedding with the forgotten text."""
        for value in ("Lisbon", "Porto"):
            self.embed_fact(store, store.save_fact(make_fact(value=value)))
        message = store.save_embedding(
            Embedding(user_id="u1", content="hi", vector=(1.0,), source_type=SourceType.MESSAGE)
        )

        assert store.delete_facts_by_key("u1", "location") == 2
        assert store.get_embeddings("u1") == [message]

    def test_clear_facts_removes_fact_embeddings(self, store: MemoryStore):
        self.embed_fact(store, store.save_fact(make_fact()))

        store.clear_facts("u1")

        assert store.count_embeddings("u1") == 0

    def test_other_users_embeddings_untouched(self, store: MemoryStore):
        """A fact id used as source by another user's row is not matched."""
        fact = store.save_fact(make_fact())
        self.embed_fact(store, fact)
        self.embed_fact(store, fact, user_id="u2")

        store.delete_fact("u1", fact.id)

        assert store.count_embeddings("u2") == 1

    def test_update_value_drops_stale_embedding(self, store: MemoryStore):
        """Changing the text of a fact drops the vector made from the old text."""
        fact = store.save_fact(make_fact())
        self.embed_fact(store, fact)

        store.update_fact("u1", fact.id, value="Porto")

        assert store.count_embeddings("u1") == 0

    def test_update_confidence_keeps_embedding(self, store: MemoryStore):
        fact = store.save_fact(make_fact())
        self.embed_fact(store, fact)

        store.update_fact("u1", fact.id, confidence=0.5)

        assert store.count_embeddings("u1") == 1


class TestMemoryStoreSummaries:
    """Tests for summary storage."""

    def test_save_and_list(self, store: MemoryStore):
        """Summaries are stored with their period and count."""
        saved = store.save_summary(
            Summary(
                user_id="u1",
                content="Talked about Rust",
                period_start="2026-01-01T00:00:00",
                period_end="2026-01-02T00:00:00",
                message_count=12,
            )
        )

        assert saved.id is not None
        assert store.get_summaries("u1") == [saved]

    def test_latest_period_first(self, store: MemoryStore):
        """Summaries are listed by period end, latest first."""
        for day in ("01", "03", "02"):
            store.save_summary(
                Summary(
                    user_id="u1",
                    content=f"day {day}",
                    period_start=f"2026-01-{day}T00:00:00",
                    period_end=f"2026-01-{day}T23:59:59",
                )
            )

        contents = [s.content for s in store.get_summaries("u1")]
        assert contents == ["day 03", "day 02", "day 01"]


class TestMemoryStoreEmbeddings:
    """Tests for embedding storage."""

    def test_vector_survives_storage(self, store: MemoryStore):
        """Vectors are stored and loaded unchanged."""
        saved = store.save_embedding(
            Embedding(
                user_id="u1",
                content="hello",
                vector=(0.6, 0.8),
                source_type=SourceType.MESSAGE,
                source_id="m1",
            )
        )

        [loaded] = store.get_embeddings("u1")
        assert loaded == saved
        assert loaded.vector == (0.6, 0.8)
        assert loaded.source_type is SourceType.MESSAGE

    def test_malformed_vector_loads_empty(self, store: MemoryStore):
        """A corrupt stored vector loads as an empty vector."""
        store.save_embedding(
            Embedding(user_id="u1", content="x", vector=(1.0,), source_type=SourceType.FACT)
        )
        conn = store._get_connection()
        conn.execute("UPDATE memory_embeddings SET vector = 'not json'")
        conn.commit()

        [loaded] = store.get_embeddings("u1")
        assert loaded.vector == ()

    def test_count_embeddings(self, store: MemoryStore):
        """count_embeddings counts one user's rows."""
        for i in range(3):
            store.save_embedding(
                Embedding(
                    user_id="u1", content=str(i), vector=(1.0,), source_type=SourceType.MESSAGE
                )
            )

        assert store.count_embeddings("u1") == 3
        assert store.count_embeddings("u2") == 0


class TestMemoryStoreUserScoping:
    """Tests that users never see each other's memory."""

    def test_reads_are_scoped(self, store: MemoryStore):
        """Each user only sees their own facts."""
        store.save_fact(make_fact(user_id="alice", value="Lisbon"))
        store.save_fact(make_fact(user_id="bob", value="Oslo"))

        assert [f.value for f in store.get_facts("alice")] == ["Lisbon"]
        assert [f.value for f in store.get_facts("bob")] == ["Oslo"]

    def test_cannot_update_other_users_fact(self, store: MemoryStore):
        """update_fact with another user's id does nothing."""
        saved = store.save_fact(make_fact(user_id="alice"))

        assert store.update_fact("bob", saved.id, value="Oslo") is None
        assert store.get_facts("alice")[0].value == "Lisbon"

    def test_cannot_delete_other_users_fact(self, store: MemoryStore):
        """delete_fact with another user's id does nothing."""
        saved = store.save_fact(make_fact(user_id="alice"))

        assert store.delete_fact("bob", saved.id) is False
        assert len(store.get_facts("alice")) == 1

    def test_clear_is_scoped(self, store: MemoryStore):
        """Clearing one user's memory leaves other users intact."""
        for user in ("alice", "bob"):
            store.save_fact(make_fact(user_id=user))
            store.save_summary(
                Summary(user_id=user, content="s", period_start="a", period_end="b")
            )
            store.save_embedding(
                Embedding(user_id=user, content="e", vector=(1.0,), source_type=SourceType.FACT)
            )

        assert store.clear_facts("alice") == 1
        assert store.clear_summaries("alice") == 1
        assert store.clear_embeddings("alice") == 1

        assert store.get_facts("alice") == []
        assert store.get_summaries("alice") == []
        assert store.get_embeddings("alice") == []
        assert len(store.get_facts("bob")) == 1
        assert len(store.get_summaries("bob")) == 1
        assert len(store.get_embeddings("bob")) == 1
