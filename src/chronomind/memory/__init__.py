"""Memory module: fact extraction, storage and semantic retrieval."""

from .context import build_context
from .embedder import EMBEDDING_VERSION, VECTOR_LEN, embed
from .extractor import FactExtractor, parse_response
from .index import MemoryIndex
from .manager import MemoryManager
from .models import (
    Embedding,
    Fact,
    FactCandidate,
    FactCategory,
    MemoryResults,
    MemoryStats,
    Parsed,
    SourceType,
    Summary,
    Unparseable,
)
from .retriever import Retriever
from .similarity import cosine_similarity, top_k
from .store import MemoryStore
from .tools import ForgetTool, RememberTool, memory_tools

__all__ = [
    "EMBEDDING_VERSION",
    "Embedding",
    "Fact",
    "FactCandidate",
    "FactCategory",
    "FactExtractor",
    "ForgetTool",
    "MemoryIndex",
    "MemoryManager",
    "MemoryResults",
    "MemoryStats",
    "MemoryStore",
    "Parsed",
    "RememberTool",
    "Retriever",
    "SourceType",
    "Summary",
    "Unparseable",
    "VECTOR_LEN",
    "build_context",
    "cosine_similarity",
    "embed",
    "memory_tools",
    "parse_response",
    "top_k",
]
