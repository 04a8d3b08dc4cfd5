"""
CLI for inspecting a retrieval decision.

Usage:
    vault-explain scene.json
    vault-explain scene.json --smart --top 20
    vault-explain scene.json --simple
    vault-explain scene.json --no-embed --format

The input file holds ``{"memories": [...], "context": {...}}`` in the same
shape as the HTTP API's select request.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .api.schemas import SelectRequest
from .config.settings import Settings
from .retrieval.formatting import format_context_for_injection
from .retrieval.orchestrator import MemoryRetriever, create_retriever
from .telemetry import configure_logging


def print_breakdown(result, top: int) -> None:
    """Print the scored candidates as a table."""
    print(f"{'#':>3} {'id':<16} {'score':>8} {'base':>7} {'floor':>6} {'vec':>6} {'bm25':>6} {'dist':>6} {'imp':>4}")
    print("=" * 72)
    for rank, s in enumerate(result.scored[:top], start=1):
        b = s.breakdown
        marker = "*" if s.memory in result.memories else " "
        print(
            f"{rank:>3}{marker}{s.memory.id[:16]:<16} {s.score:>8.3f} {b.base:>7.3f} "
            f"{b.recency_penalty:>6.2f} {b.vector_bonus:>6.2f} {b.bm25_bonus:>6.2f} "
            f"{b.distance:>6} {b.importance:>4}"
        )
    print("=" * 72)
    print(
        f"stage 1 kept {result.stage1_count}/{len(result.scored)}, "
        f"final {len(result.memories)} ({result.mode}), "
        f"embedding {'used' if result.embedding_used else 'not used'}"
    )


async def explain(path: Path, retriever: MemoryRetriever, smart: Optional[bool], top: int, show_format: bool) -> int:
    """
    Run one retrieval from a request file and print it.

    Args:
        smart: Force smart (True) or simple (False) stage 2; None keeps the
               file value, falling back to settings
    """
    try:
        request = SelectRequest.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except (OSError, json.JSONDecodeError) as e:
        print(f"❌ Cannot read {path}: {e}")
        return 1
    except ValidationError as e:
        print(f"❌ Invalid request in {path}:\n{e}")
        return 1

    ctx = request.context
    if smart is not None:
        ctx = ctx.model_copy(update={"smart_retrieval_enabled": smart})
    ctx = retriever.resolve_context(ctx)

    result = await retriever.retrieve(
        request.memories,
        ctx,
        pov_characters=request.pov_characters or None,
        known_event_ids=request.known_event_ids or None,
    )
    print_breakdown(result, top)

    if show_format:
        print()
        print(format_context_for_injection(
            result.memories,
            ctx.header_name,
            chat_length=ctx.chat_length,
            token_budget=ctx.final_tokens,
            chars_per_token=retriever.settings.retrieval.chars_per_token,
        ))
    return 0


def main():
    """CLI entrypoint."""
    parser = argparse.ArgumentParser(
        description="Explain which memories would be retrieved for a scene"
    )
    parser.add_argument("input", type=Path, help="JSON file with memories and context")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--smart", dest="smart", action="store_true", default=None, help="Enable LLM reranking for this run")
    mode.add_argument("--simple", dest="smart", action="store_false", help="Disable LLM reranking for this run")
    parser.set_defaults(smart=None)
    parser.add_argument("--no-embed", action="store_true", help="Skip the embedding provider")
    parser.add_argument("--top", type=int, default=25, help="Rows to print (default: 25)")
    parser.add_argument("--format", action="store_true", help="Print the injected context block")
    parser.add_argument("--verbose", action="store_true", help="Log pipeline steps")

    args = parser.parse_args()
    configure_logging(logging.DEBUG if args.verbose else logging.WARNING)

    settings = Settings.from_env()
    retriever = create_retriever(settings)
    if args.no_embed:
        retriever.embedder = None

    try:
        exit_code = asyncio.run(explain(args.input, retriever, args.smart, args.top, args.format))
    finally:
        if retriever.executor is not None:
            retriever.executor.close()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
