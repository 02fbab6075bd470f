"""Data models for the memory system."""

from dataclasses import dataclass, field
from enum import Enum

from .embedder import EMBEDDING_VERSION


class FactCategory(str, Enum):
    """Closed set of categories a fact can belong to."""

    PREFERENCES = "preferences"
    GOALS = "goals"
    CONSTRAINTS = "constraints"
    SKILLS = "skills"
    PROJECTS = "projects"
    PERSONAL = "personal"

    @classmethod
    def parse(cls, value: object) -> "FactCategory | None":
        """Return the category named by value, or None if it is unknown."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


def clamp_confidence(value: float) -> float:
    """Clamp a confidence score into [0, 1]."""
    return max(0.0, min(1.0, float(value)))


class SourceType(str, Enum):
    """What kind of unit an embedding was computed from."""

    MESSAGE = "message"
    FACT = "fact"
    SUMMARY = "summary"


@dataclass(frozen=True)
class Fact:
    """A fact stored in memory about a user.

    Attributes:
        user_id: Owner of the fact.
        category: One of the six fact categories.
        key: Short label (e.g., 'location').
        value: The fact content (e.g., 'Lisbon').
        confidence: Extractor confidence in [0, 1].
        source_message_id: Message the fact was extracted from, if known.
        id: Database ID, None for new facts.
        created_at: ISO timestamp when created.
        updated_at: ISO timestamp when last updated.
    """

    user_id: str
    category: FactCategory
    key: str
    value: str
    confidence: float = 1.0
    source_message_id: str | None = None
    id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class Summary:
    """A compressed account of a window of conversation history."""

    user_id: str
    content: str
    period_start: str
    period_end: str
    message_count: int = 0
    id: str | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class Embedding:
    """A vector fingerprint of a piece of text.

    The vector is L2-normalized at creation time. ``version`` identifies
    the embedder that produced it so vectors from an older embedder are
    never compared against new ones.
    """

    user_id: str
    content: str
    vector: tuple[float, ...]
    source_type: SourceType
    source_id: str | None = None
    version: int = EMBEDDING_VERSION
    id: str | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class FactCandidate:
    """A fact proposed by the extractor, not yet stored."""

    category: FactCategory
    key: str
    value: str
    confidence: float = 1.0


@dataclass(frozen=True)
class Parsed:
    """Oracle output that decoded into fact candidates."""

    facts: list[FactCandidate] = field(default_factory=list)
    rejected: int = 0


@dataclass(frozen=True)
class Unparseable:
    """Oracle output that could not be decoded."""

    reason: str


ParseResult = Parsed | Unparseable


@dataclass
class MemoryResults:
    """Ranked memory returned by the retriever."""

    facts: list[Fact] = field(default_factory=list)
    summaries: list[Summary] = field(default_factory=list)
    embeddings: list[Embedding] = field(default_factory=list)


@dataclass(frozen=True)
class MemoryStats:
    """Row counts for one user's memory."""

    facts: int
    summaries: int
    embeddings: int
