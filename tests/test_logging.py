"""Tests for JSONL logging."""

import json
from pathlib import Path

import pytest

from chronomind.logging import JSONLLogger, LogEntry, configure_logger, get_logger


@pytest.fixture
def logger(tmp_path: Path) -> JSONLLogger:
    return JSONLLogger(log_dir=tmp_path)


def read_entries(logger: JSONLLogger) -> list[dict]:
    return [json.loads(line) for line in logger.log_path.read_text().splitlines()]


def test_log_entry_to_dict():
    """LogEntry excludes None values and empty extras."""
    entry = LogEntry(timestamp="2026-01-01T00:00:00Z", event="test")
    data = entry.to_dict()

    assert data == {"timestamp": "2026-01-01T00:00:00Z", "event": "test"}


def test_log_creates_file(logger: JSONLLogger):
    """Logging creates the log file."""
    logger.log("test_event")

    assert logger.log_path.exists()
    assert logger.log_path.name == "memory.jsonl"


def test_log_writes_jsonl(logger: JSONLLogger):
    """Each event is one JSON line."""
    logger.log("event1", user_id="u1")
    logger.log("event2", user_id="u2", source="cli")

    entries = read_entries(logger)

    assert len(entries) == 2
    assert entries[0]["event"] == "event1"
    assert entries[0]["user_id"] == "u1"
    assert entries[1]["extra"] == {"source": "cli"}


def test_log_extraction(logger: JSONLLogger):
    logger.log_extraction("u1", candidates=3, stored=2, failed=1, duration_ms=12.5, error="locked")

    [entry] = read_entries(logger)
    assert entry["event"] == "memory_extraction"
    assert entry["duration_ms"] == 12.5
    assert entry["error"] == "locked"
    assert entry["extra"] == {"candidates": 3, "stored": 2, "failed": 1}


def test_log_retrieval(logger: JSONLLogger):
    logger.log_retrieval("u1", facts=2, summaries=1, embeddings=0)

    [entry] = read_entries(logger)
    assert entry["event"] == "memory_retrieval"
    assert entry["extra"] == {"facts": 2, "summaries": 1, "embeddings": 0}
    assert "duration_ms" not in entry


def test_log_cleared(logger: JSONLLogger):
    logger.log_cleared("u1")

    [entry] = read_entries(logger)
    assert entry["event"] == "memory_cleared"
    assert entry["user_id"] == "u1"


def test_non_ascii_preserved(logger: JSONLLogger):
    """Unicode is written as-is."""
    logger.log("test", city="São Paulo")

    assert "São Paulo" in logger.log_path.read_text(encoding="utf-8")


def test_rotation(tmp_path: Path):
    """The log is rotated once it exceeds the size limit."""
    logger = JSONLLogger(log_dir=tmp_path, max_size_mb=0.0001)

    for i in range(10):
        logger.log("event", index=i)

    rotated = [p for p in tmp_path.glob("memory_*.jsonl")]
    assert rotated
    assert logger.log_path.exists()


def test_configure_logger(tmp_path: Path):
    """configure_logger replaces the global instance."""
    configured = configure_logger(tmp_path / "logs")

    assert get_logger() is configured
    assert configured.log_dir == tmp_path / "logs"
    assert configured.log_dir.is_dir()
