"""ChronoMind: persistent per-user semantic memory for LLM conversations."""

__version__ = "0.1.0"
