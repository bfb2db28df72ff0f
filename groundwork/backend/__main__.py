"""CLI entry point: groundwork <command>

Builds the codebase context snapshot, compiles prompts for backlog tickets
and records how those prompts performed.

Usage:
    groundwork build [ROOT]                 # Scan ROOT (default .) and write the snapshot
    groundwork search "error handling"      # Fuzzy search patterns and decisions
    groundwork inject --task "add caching"  # Context briefing for a coding assistant
    groundwork init                         # Seed default prompt templates
    groundwork prompt ticket.yaml           # Compile a prompt and print it
    groundwork prompt ticket.json -o out.md # Write the prompt to a file
    groundwork outcome VERSION_ID failure -f "missed edge case"
    groundwork analyze                      # Template performance table
    groundwork serve                        # Run the HTTP API
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Ensure the backend directory is on the path (for imports when run as module)
sys.path.insert(0, str(Path(__file__).parent))

import yaml

import pipeline
from config import settings
from errors import GroundworkError
from models import Ticket
from store import Store


def _progress(msg: str) -> None:
    """Print a progress message to stderr (keeps stdout clean for output)."""
    print(f"\033[90m  → {msg}\033[0m", file=sys.stderr)


def _error(msg: str) -> None:
    print(f"\033[31m  ✗ {msg}\033[0m", file=sys.stderr)


def _success(msg: str) -> None:
    print(f"\033[32m  ✓ {msg}\033[0m", file=sys.stderr)


def load_ticket(path: str | Path) -> Ticket:
    """Read a ticket from a YAML or JSON file."""
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        data = json.loads(text)
    else:
        data = yaml.safe_load(text)
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a ticket mapping")
    return Ticket.model_validate(data)


# --------------- Commands ---------------

async def _cmd_build(store: Store, args: argparse.Namespace) -> int:
    root = Path(args.root)
    if not root.is_dir():
        _error(f"Not a directory: {root}")
        return 1
    _progress(f"Scanning {root.resolve()}")
    report = await pipeline.build_context_report(store, root)
    context = report.context
    for path in report.failed_files:
        _progress(f"Skipped unparsable file: {path}")
    _success(
        f"Context built: {len(context.patterns)} patterns, {len(context.decisions)} decisions "
        f"({len(report.failed_files)} files skipped)"
    )
    if args.verbose:
        for p in context.patterns:
            print(f"  {p.frequency:>5}  {p.name}")
        for d in context.decisions:
            print(f"  [{d.origin}] {d.title}")
    print(context.summary)
    return 0


async def _cmd_search(store: Store, args: argparse.Namespace) -> int:
    result = await pipeline.search_similar_context(store, args.query, settings.SEARCH_THRESHOLD)
    if not result.patterns and not result.decisions:
        _progress(f"No matches for '{args.query}'")
        return 0
    if result.patterns:
        print("Patterns:")
        for p in result.patterns:
            print(f"  - {p.name} (used {p.frequency} times): {p.example}")
    if result.decisions:
        print("Decisions:")
        for d in result.decisions:
            print(f"  - {d.title}")
    return 0


async def _cmd_inject(store: Store, args: argparse.Namespace) -> int:
    if args.task:
        _progress(f"Searching for context relevant to: \"{args.task}\"")
    content = await pipeline.inject_context(store, args.task, settings.SEARCH_THRESHOLD)
    if args.output:
        out = Path(args.output)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(content + "\n", encoding="utf-8")
        _success(f"Context injection saved to: {out}")
    else:
        print(content)
    return 0


async def _cmd_init(store: Store, args: argparse.Namespace) -> int:
    seeded = await pipeline.initialize_prompts(store)
    if seeded:
        _success(f"Seeded templates: {', '.join(seeded)}")
    else:
        _success("Templates already present, nothing seeded")
    return 0


async def _cmd_prompt(store: Store, args: argparse.Namespace) -> int:
    try:
        ticket = load_ticket(args.ticket)
    except (OSError, ValueError, yaml.YAMLError) as e:
        # pydantic ValidationError is a ValueError
        _error(f"Could not read ticket {args.ticket}: {e}")
        return 1

    version = await pipeline.generate_prompt_version(store, ticket, settings.SEARCH_THRESHOLD)
    _success(f"Prompt version {version.id} ({version.template_id})")

    if args.json_output:
        output = json.dumps(version.model_dump(mode="json"), indent=2)
    else:
        output = version.content

    if args.output:
        out = Path(args.output)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(output + "\n", encoding="utf-8")
        _success(f"Wrote {out}")
    else:
        print(output)
    return 0


async def _cmd_outcome(store: Store, args: argparse.Namespace) -> int:
    perf = await pipeline.record_prompt_outcome(store, args.version_id, args.outcome, args.feedback)
    _success(
        f"{perf.template_id}: {perf.success_count}/{perf.total_uses} successful "
        f"({perf.average_rating:.0%})"
    )
    return 0


async def _cmd_analyze(store: Store, args: argparse.Namespace) -> int:
    records = await pipeline.analyze_prompt_performance(store)
    if not records:
        _progress("No outcomes recorded yet")
        return 0
    flagged = {
        p.template_id
        for p in await pipeline.flag_underperforming_prompts(
            store,
            threshold=settings.UNDERPERFORMING_THRESHOLD,
            min_uses=settings.UNDERPERFORMING_MIN_USES,
        )
    }
    for p in sorted(records, key=lambda r: r.template_id):
        marker = "  ⚠ underperforming" if p.template_id in flagged else ""
        print(
            f"{p.template_id:<24} {p.total_uses:>4} uses  {p.success_count:>4} ok  "
            f"{p.failure_count:>4} failed  {p.average_rating:>5.0%}{marker}"
        )
        if args.verbose:
            for issue in p.common_issues:
                print(f"    - {issue}")
    return 0


async def _cmd_serve(store: Store, args: argparse.Namespace) -> int:
    import uvicorn

    from main import app

    config = uvicorn.Config(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())
    await uvicorn.Server(config).serve()
    return 0


COMMANDS = {
    "build": _cmd_build,
    "search": _cmd_search,
    "inject": _cmd_inject,
    "init": _cmd_init,
    "prompt": _cmd_prompt,
    "outcome": _cmd_outcome,
    "analyze": _cmd_analyze,
    "serve": _cmd_serve,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="groundwork",
        description="Build codebase context and compile prompts for coding agents",
    )
    parser.add_argument(
        "--state-dir",
        type=str,
        default=None,
        help=f"State directory (default: {settings.STATE_DIR})",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    build = sub.add_parser("build", help="Scan a source tree and write the context snapshot")
    build.add_argument("root", nargs="?", default=".", help="Project root (default: .)")
    build.add_argument("--verbose", "-v", action="store_true", help="List patterns and decisions")

    search = sub.add_parser("search", help="Fuzzy search stored patterns and decisions")
    search.add_argument("query", help="Free-text query")

    inject = sub.add_parser("inject", help="Render a context briefing for a coding assistant")
    inject.add_argument("--task", "-t", type=str, default=None, help="Narrow the briefing to this task")
    inject.add_argument("--output", "-o", type=str, default=None, help="Write the briefing to a file")

    sub.add_parser("init", help="Seed default prompt templates")

    prompt = sub.add_parser("prompt", help="Compile a prompt for a ticket file (YAML or JSON)")
    prompt.add_argument("ticket", help="Path to the ticket file")
    prompt.add_argument("--output", "-o", type=str, default=None, help="Write the prompt to a file")
    prompt.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Output the full version record as JSON",
    )

    outcome = sub.add_parser("outcome", help="Record how a prompt version performed")
    outcome.add_argument("version_id", help="Prompt version id printed by `prompt`")
    outcome.add_argument("outcome", choices=["success", "failure", "partial"])
    outcome.add_argument("--feedback", "-f", type=str, default="", help="What went wrong or right")

    analyze = sub.add_parser("analyze", help="Show template performance")
    analyze.add_argument("--verbose", "-v", action="store_true", help="List common issues")

    sub.add_parser("serve", help="Run the HTTP API")
    return parser


async def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=settings.LOG_LEVEL)
    if args.state_dir:
        settings.STATE_DIR = args.state_dir
    store = Store(settings.STATE_DIR)

    try:
        return await COMMANDS[args.command](store, args)
    except GroundworkError as e:
        _error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
