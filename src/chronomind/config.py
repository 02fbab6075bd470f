"""Memory configuration loader.

Loads configuration from ~/.chronomind/config.json. A missing or broken
file never prevents startup; defaults are used instead.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .llm_client import DEFAULT_MODEL

logger = logging.getLogger(__name__)

DEFAULT_HOME = Path.home() / ".chronomind"
DEFAULT_CONFIG_PATH = DEFAULT_HOME / "config.json"

_DEFAULT_TIMEOUT = 30.0
_DEFAULT_LIMIT = 5


@dataclass
class MemoryConfig:
    """Configuration for the memory system.

    Attributes:
        db_path: SQLite database holding all users' memory.
        model: Model used for fact extraction.
        extraction_timeout: Seconds to wait for the extraction model.
        retrieval_limit: Facts and embeddings retrieved per query.
        use_memory: When False, no memory context is built.
        embed_facts: Also store an embedding for every extracted fact.
        log_dir: Directory for the JSONL memory event log.
    """

    db_path: Path | None = None
    model: str = DEFAULT_MODEL
    extraction_timeout: float = _DEFAULT_TIMEOUT
    retrieval_limit: int = _DEFAULT_LIMIT
    use_memory: bool = True
    embed_facts: bool = True
    log_dir: Path | None = None

    def __post_init__(self) -> None:
        """Validate config and set defaults."""
        if self.db_path is None:
            self.db_path = DEFAULT_HOME / "memory.db"

        if self.log_dir is None:
            self.log_dir = DEFAULT_HOME / "logs"

        if self.extraction_timeout <= 0:
            raise ValueError("extraction_timeout must be positive")

        if self.retrieval_limit < 0:
            raise ValueError("retrieval_limit must be non-negative")


def load_config(config_path: Path | None = None) -> MemoryConfig:
    """Load MemoryConfig from a JSON file.

    The config file should have this structure:
    ```json
    {
      "memory": {
        "db_path": "~/.chronomind/memory.db",
        "model": "llama-3.1-70b-versatile",
        "extraction_timeout": 30,
        "retrieval_limit": 5,
        "use_memory": true,
        "embed_facts": true,
        "log_dir": "~/.chronomind/logs"
      }
    }
    ```

    Args:
        config_path: Path to config file. Uses DEFAULT_CONFIG_PATH if None.

    Returns:
        MemoryConfig instance with loaded values.
    """
    path = config_path or DEFAULT_CONFIG_PATH

    if not path.exists():
        logger.debug("No config file at %s, using defaults", path)
        return MemoryConfig()

    try:
        with open(path, "r") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        logger.warning("Invalid JSON in %s: %s. Using defaults.", path, e)
        return MemoryConfig()
    except OSError as e:
        logger.warning("Cannot read %s: %s. Using defaults.", path, e)
        return MemoryConfig()

    if not isinstance(data, dict):
        logger.warning("Config in %s is not an object. Using defaults.", path)
        return MemoryConfig()

    return _parse_config(data)


def _parse_path(raw: Any) -> Path | None:
    if isinstance(raw, str) and raw:
        return Path(raw).expanduser()
    return None


def _parse_config(data: dict[str, Any]) -> MemoryConfig:
    """Parse config dictionary into MemoryConfig.

    Invalid values fall back to their defaults.
    """
    memory_data = data.get("memory", {})
    if not isinstance(memory_data, dict):
        memory_data = {}

    model = memory_data.get("model", DEFAULT_MODEL)
    if not isinstance(model, str) or not model:
        model = DEFAULT_MODEL

    timeout = memory_data.get("extraction_timeout", _DEFAULT_TIMEOUT)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        timeout = _DEFAULT_TIMEOUT

    limit = memory_data.get("retrieval_limit", _DEFAULT_LIMIT)
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 0:
        limit = _DEFAULT_LIMIT

    use_memory = memory_data.get("use_memory", True)
    if not isinstance(use_memory, bool):
        use_memory = True

    embed_facts = memory_data.get("embed_facts", True)
    if not isinstance(embed_facts, bool):
        embed_facts = True

    return MemoryConfig(
        db_path=_parse_path(memory_data.get("db_path")),
        model=model,
        extraction_timeout=float(timeout),
        retrieval_limit=limit,
        use_memory=use_memory,
        embed_facts=embed_facts,
        log_dir=_parse_path(memory_data.get("log_dir")),
    )


def save_config(config: MemoryConfig, config_path: Path | None = None) -> None:
    """Save MemoryConfig to a JSON file, writing only non-default values.

    Args:
        config: The config to save.
        config_path: Path to write to. Uses DEFAULT_CONFIG_PATH if None.
    """
    path = config_path or DEFAULT_CONFIG_PATH

    path.parent.mkdir(parents=True, exist_ok=True)

    defaults = MemoryConfig()
    memory_data: dict[str, Any] = {}

    if config.db_path != defaults.db_path:
        memory_data["db_path"] = str(config.db_path)

    if config.model != defaults.model:
        memory_data["model"] = config.model

    if config.extraction_timeout != defaults.extraction_timeout:
        memory_data["extraction_timeout"] = config.extraction_timeout

    if config.retrieval_limit != defaults.retrieval_limit:
        memory_data["retrieval_limit"] = config.retrieval_limit

    if not config.use_memory:
        memory_data["use_memory"] = False

    if not config.embed_facts:
        memory_data["embed_facts"] = False

    if config.log_dir != defaults.log_dir:
        memory_data["log_dir"] = str(config.log_dir)

    data: dict[str, Any] = {"memory": memory_data} if memory_data else {}

    try:
        with open(path, "w") as f:
            json.dump(data, f, indent=2)
    except OSError as e:
        logger.error("Failed to save config to %s: %s", path, e)
        raise
