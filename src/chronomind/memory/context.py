"""Assembly of the memory context block injected ahead of a prompt."""

from typing import Any

from .models import Fact, FactCategory, Summary

CONTEXT_HEADER = (
    "# Memory Context\n"
    "The following information has been remembered about this user:"
)

MAX_SUMMARIES = 3
MAX_RECENT_MESSAGES = 6
MAX_MESSAGE_CHARS = 200


def _category_name(category: FactCategory | str) -> str:
    return category.value if isinstance(category, FactCategory) else str(category)


def _format_facts(facts: list[Fact]) -> str:
    # dicts keep first-seen order, so categories appear as they were ranked
    groups: dict[str, list[Fact]] = {}
    for fact in facts:
        groups.setdefault(_category_name(fact.category), []).append(fact)

    blocks = []
    for category, group in groups.items():
        items = "\n".join(f"- {fact.key}: {fact.value}" for fact in group)
        blocks.append(f"[{category.upper()}]\n{items}")
    return "## User Information\n" + "\n\n".join(blocks)


def _format_summaries(summaries: list[Summary]) -> str:
    lines = [f"- {summary.content}" for summary in summaries[:MAX_SUMMARIES]]
    return "## Recent Context\n" + "\n".join(lines)


def _truncate(content: str) -> str:
    if len(content) > MAX_MESSAGE_CHARS:
        return content[:MAX_MESSAGE_CHARS] + "..."
    return content


def _format_messages(messages: list[dict[str, Any]]) -> str:
    lines = [
        f"{msg.get('role', 'unknown')}: {_truncate(msg.get('content') or '')}"
        for msg in messages[-MAX_RECENT_MESSAGES:]
    ]
    return "## Recent Conversation\n" + "\n".join(lines)


def build_context(
    facts: list[Fact],
    summaries: list[Summary],
    recent_messages: list[dict[str, Any]],
) -> str:
    """Format ranked memory as a block for injection into the prompt.

    Sections always appear in the same order: facts grouped by category,
    then up to three summaries, then the last six messages with each
    message cut to 200 characters.

    Args:
        facts: Ranked facts.
        summaries: Ranked summaries.
        recent_messages: Chronological chat messages.

    Returns:
        The memory block, or empty string if there is nothing to inject.
    """
    sections = []
    if facts:
        sections.append(_format_facts(facts))
    if summaries:
        sections.append(_format_summaries(summaries))
    if recent_messages:
        sections.append(_format_messages(recent_messages))

    if not sections:
        return ""

    return CONTEXT_HEADER + "\n\n" + "\n\n".join(sections)
