"""Fact extraction from conversations using an LLM."""

import asyncio
import json
import logging
import math
from typing import Any

from ..llm_client import TextOracle
from .models import FactCandidate, FactCategory, Parsed, ParseResult, Unparseable

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

EXTRACTION_PROMPT = """Analyze this conversation and extract structured facts about the user. Focus on:
- Preferences (likes, dislikes, habits)
- Goals (short-term and long-term objectives)
- Constraints (limitations, restrictions, requirements)
- Skills (abilities, expertise, experience)
- Projects (current work, tasks, initiatives)
- Personal (name, location, relationships, important details)

Return ONLY a JSON object with this structure:
{
  "facts": [
    {
      "category": "preferences|goals|constraints|skills|projects|personal",
      "key": "brief label",
      "value": "detailed information",
      "confidence": 0.0-1.0
    }
  ]
}

Only extract facts that are clearly stated or strongly implied. Be concise but informative.
If there are no facts worth remembering, return {"facts": []}."""


def format_transcript(messages: list[dict[str, Any]]) -> str:
    """Render messages as 'role: content' lines."""
    return "\n\n".join(
        f"{msg.get('role', 'unknown')}: {msg.get('content') or ''}" for msg in messages
    )


def find_json_object(text: str) -> str | None:
    """Return the first balanced {...} region in text, or None.

    Braces inside JSON string literals are ignored, so values such as
    "use {braces}" do not end the region early.
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for pos in range(start, len(text)):
        char = text[pos]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : pos + 1]

    return None


def _parse_confidence(raw: Any) -> float:
    """Read a confidence value, defaulting to 1.0 when absent or not a number."""
    if raw is None or isinstance(raw, bool):
        return 1.0
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return 1.0
    if math.isnan(value):
        return 1.0
    return value


def _parse_candidate(item: Any) -> FactCandidate | None:
    """Convert one decoded fact item, or None if it must be rejected."""
    if not isinstance(item, dict):
        logger.warning("Skipping invalid fact item: %r", item)
        return None

    category = FactCategory.parse(item.get("category"))
    if category is None:
        logger.warning(
            "Rejecting fact with unknown category %r (key=%r)",
            item.get("category"),
            item.get("key"),
        )
        return None

    key = str(item.get("key") or "").strip()
    value = str(item.get("value") or "").strip()
    if not key or not value:
        logger.warning("Skipping fact without key or value: %r", item)
        return None

    return FactCandidate(
        category=category,
        key=key,
        value=value,
        confidence=_parse_confidence(item.get("confidence")),
    )


def parse_response(content: str) -> ParseResult:
    """Decode oracle output into fact candidates.

    Args:
        content: The raw oracle response.

    Returns:
        Parsed with the accepted candidates, or Unparseable with a reason.
    """
    json_str = find_json_object(content)
    if json_str is None:
        return Unparseable("no JSON object in response")

    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        return Unparseable(f"invalid JSON: {e}")

    if not isinstance(data, dict) or not isinstance(data.get("facts"), list):
        return Unparseable("missing 'facts' list")

    facts = []
    rejected = 0
    for item in data["facts"]:
        candidate = _parse_candidate(item)
        if candidate is None:
            rejected += 1
        else:
            facts.append(candidate)

    return Parsed(facts=facts, rejected=rejected)


class FactExtractor:
    """Extracts fact candidates from conversations using a text oracle."""

    def __init__(self, oracle: TextOracle, timeout: float = DEFAULT_TIMEOUT) -> None:
        """Initialize the extractor.

        Args:
            oracle: The text-generation client used for extraction.
            timeout: Seconds to wait for the oracle before giving up.
        """
        self.oracle = oracle
        self.timeout = timeout

    def build_prompt(self, messages: list[dict[str, Any]]) -> str:
        """Wrap the rendered transcript with the extraction instructions."""
        return f"{EXTRACTION_PROMPT}\n\nConversation:\n{format_transcript(messages)}"

    async def extract(self, messages: list[dict[str, Any]]) -> list[FactCandidate]:
        """Extract fact candidates from a conversation.

        Never raises: oracle errors, timeouts and unparseable output all
        produce an empty list.

        Args:
            messages: The conversation messages to analyze.

        Returns:
            List of fact candidates, empty if none found or on error.
        """
        if not messages:
            return []

        prompt = self.build_prompt(messages)

        try:
            content = await asyncio.wait_for(
                self.oracle.complete(prompt), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.warning("Fact extraction timed out after %.1fs", self.timeout)
            return []
        except Exception as e:
            logger.warning(f"Fact extraction failed: {e}")
            return []

        if content is None:
            content = ""
        if not isinstance(content, str):
            logger.warning(
                "Fact extraction returned %s instead of text", type(content).__name__
            )
            return []

        result = parse_response(content)
        if isinstance(result, Unparseable):
            logger.warning("Failed to parse extraction response: %s", result.reason)
            return []

        return result.facts
