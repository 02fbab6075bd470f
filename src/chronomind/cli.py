"""CLI commands for inspecting and managing stored memory.

Provides subcommands for listing facts, previewing the memory context
for a query, showing counts, clearing a user's memory, storing or
forgetting single facts, and extracting facts from a saved transcript.
"""

import argparse
import asyncio
import json
import os
from pathlib import Path
from typing import Any

from groq import AsyncGroq

from .config import MemoryConfig, load_config
from .llm_client import GroqLLMClient
from .logging import configure_logger
from .memory import FactCategory, FactExtractor, MemoryManager, MemoryStore, memory_tools


def _get_manager(config: MemoryConfig, with_extractor: bool = False) -> MemoryManager:
    """Create a MemoryManager over the configured database."""
    store = MemoryStore(config.db_path)
    store.init_db()

    extractor = None
    if with_extractor:
        model = os.getenv("CHRONOMIND_MODEL", config.model)
        oracle = GroqLLMClient(AsyncGroq(api_key=os.getenv("GROQ_API_KEY")), model=model)
        extractor = FactExtractor(oracle, timeout=config.extraction_timeout)

    return MemoryManager(
        store,
        extractor=extractor,
        config=config,
        event_logger=configure_logger(config.log_dir),
    )


def cmd_facts(args: argparse.Namespace) -> int:
    """List a user's facts."""
    manager = _get_manager(load_config())
    index = manager.index(args.user)

    try:
        if args.category:
            category = FactCategory.parse(args.category)
            if category is None:
                print(f"Error: Unknown category '{args.category}'.")
                return 1
            facts = index.list_facts_by_category(category)
        else:
            facts = index.list_facts()
    finally:
        manager.store.close()

    if not facts:
        print("No facts stored.")
        return 0

    print(f"\n{'Category':<13} {'Key':<20} {'Conf.':<6} Value")
    print("-" * 80)

    for fact in facts:
        value = fact.value
        if len(value) > 38:
            value = value[:35] + "..."
        print(f"{fact.category.value:<13} {fact.key[:20]:<20} {fact.confidence:<6.2f} {value}")

    print(f"\nTotal: {len(facts)} fact(s)")
    return 0


def cmd_context(args: argparse.Namespace) -> int:
    """Print the memory context that would be injected for a query."""
    manager = _get_manager(load_config())

    try:
        context = asyncio.run(manager.build_memory_context(args.user, args.query, []))
    finally:
        manager.store.close()

    if not context:
        print("No memory context for this query.")
        return 0

    print(context)
    return 0


def cmd_stats(args: argparse.Namespace) -> int:
    """Show how much memory is stored for a user."""
    manager = _get_manager(load_config())

    try:
        stats = manager.stats(args.user)
    finally:
        manager.store.close()

    print(f"Facts:      {stats.facts}")
    print(f"Summaries:  {stats.summaries}")
    print(f"Embeddings: {stats.embeddings}")
    return 0


def cmd_clear(args: argparse.Namespace) -> int:
    """Clear all memory for a user."""
    if not args.yes:
        answer = input(f"Delete all memory for '{args.user}'? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            print("Aborted.")
            return 1

    manager = _get_manager(load_config())
    try:
        manager.clear_all(args.user)
    finally:
        manager.store.close()

    print(f"Cleared memory for {args.user}")
    return 0


def _run_tool(user: str, tool_name: str, tool_args: dict[str, Any]) -> int:
    """Run one of the memory tools for a user and print its result."""
    manager = _get_manager(load_config())
    try:
        tool = memory_tools(manager, user)[tool_name]
        result = asyncio.run(tool.run(tool_args))
    finally:
        manager.store.close()

    if not result.success:
        print(f"Error: {result.error}")
        return 1

    print(result.output)
    return 0


def cmd_remember(args: argparse.Namespace) -> int:
    """Store a fact given on the command line."""
    return _run_tool(
        args.user,
        "remember",
        {"category": args.category, "key": args.key, "value": args.value},
    )


def cmd_forget(args: argparse.Namespace) -> int:
    """Forget a user's facts with a key."""
    return _run_tool(args.user, "forget", {"key": args.key})


def cmd_extract(args: argparse.Namespace) -> int:
    """Extract and store facts from a JSON transcript file."""
    path = Path(args.file)
    try:
        transcript = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        print(f"Error: Cannot read transcript {path}: {e}")
        return 1

    if not isinstance(transcript, list):
        print("Error: Transcript must be a JSON list of {role, content} messages.")
        return 1

    if not os.getenv("GROQ_API_KEY"):
        print("Error: GROQ_API_KEY is not set.")
        return 1

    manager = _get_manager(load_config(), with_extractor=True)
    try:
        facts = asyncio.run(manager.extract_and_store(args.user, transcript))
    finally:
        manager.store.close()

    for fact in facts:
        print(f"[{fact.category.value}] {fact.key}: {fact.value} ({fact.confidence:.2f})")
    print(f"\nStored {len(facts)} fact(s)")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for memory commands."""
    parser = argparse.ArgumentParser(
        prog="chronomind",
        description="Inspect and manage per-user conversation memory",
    )

    subparsers = parser.add_subparsers(dest="command", help="Sub-command help")

    facts_parser = subparsers.add_parser("facts", help="List a user's facts")
    facts_parser.add_argument("user", help="User identifier")
    facts_parser.add_argument(
        "--category",
        "-c",
        help="Only show facts in this category",
    )

    context_parser = subparsers.add_parser(
        "context", help="Show the memory context built for a query"
    )
    context_parser.add_argument("user", help="User identifier")
    context_parser.add_argument("query", help="Query text")

    stats_parser = subparsers.add_parser("stats", help="Show memory counts for a user")
    stats_parser.add_argument("user", help="User identifier")

    clear_parser = subparsers.add_parser("clear", help="Delete all memory for a user")
    clear_parser.add_argument("user", help="User identifier")
    clear_parser.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help="Do not ask for confirmation",
    )

    remember_parser = subparsers.add_parser("remember", help="Store a fact about a user")
    remember_parser.add_argument("user", help="User identifier")
    remember_parser.add_argument("category", help="Fact category (e.g., personal)")
    remember_parser.add_argument("key", help="Brief label (e.g., location)")
    remember_parser.add_argument("value", help="The fact to remember")

    forget_parser = subparsers.add_parser("forget", help="Forget a user's facts by key")
    forget_parser.add_argument("user", help="User identifier")
    forget_parser.add_argument("key", help="Label of the facts to forget")

    extract_parser = subparsers.add_parser(
        "extract", help="Extract facts from a JSON transcript"
    )
    extract_parser.add_argument("user", help="User identifier")
    extract_parser.add_argument("file", help="Path to a JSON list of messages")

    return parser


def run_cli(argv: list[str] | None = None) -> int:
    """Run a memory command.

    Args:
        argv: Command-line arguments (without the program name).

    Returns:
        Exit code.
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    handlers = {
        "facts": cmd_facts,
        "context": cmd_context,
        "stats": cmd_stats,
        "clear": cmd_clear,
        "remember": cmd_remember,
        "forget": cmd_forget,
        "extract": cmd_extract,
    }

    return handlers[args.command](args)
