"""Context snapshot: build, persist and reload the compressed codebase context."""

import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from decisions import Manifest, extract_decisions, read_manifest
from models import ArchitecturalDecision, CodePattern, CommonPitfall, CompressedContext
from patterns import ParseOutcome, extract_patterns
from store import Store

logger = logging.getLogger(__name__)

SUMMARY_TOP_PATTERNS = 5
SUMMARY_TOP_DECISIONS = 3

# Seeded catalogue; outcomes do not feed back into it yet
DEFAULT_PITFALLS = [
    {
        "id": "over-abstraction",
        "pattern": "Creating interfaces for single implementations",
        "description": "AI tends to create unnecessary abstractions",
        "solution": "Start concrete, abstract when you have 2+ implementations",
    },
    {
        "id": "missing-error-handling",
        "pattern": "Functions without proper error handling",
        "description": "AI often skips comprehensive error handling",
        "solution": "Always handle edge cases and provide meaningful error messages",
    },
]


@dataclass
class BuildReport:
    context: CompressedContext
    outcomes: list[tuple[str, ParseOutcome]]

    @property
    def failed_files(self) -> list[str]:
        return [path for path, outcome in self.outcomes if not outcome.ok]


def load_pitfalls() -> list[CommonPitfall]:
    return [CommonPitfall(**p) for p in DEFAULT_PITFALLS]


def generate_summary(patterns: list[CodePattern], decisions: list[ArchitecturalDecision]) -> str:
    top_patterns = sorted(patterns, key=lambda p: p.frequency, reverse=True)[:SUMMARY_TOP_PATTERNS]
    pattern_text = ", ".join(f"{p.name} (used {p.frequency} times)" for p in top_patterns)
    decision_text = ", ".join(d.title for d in decisions[:SUMMARY_TOP_DECISIONS])
    return (
        f"This codebase primarily uses: {pattern_text}. "
        f"Key architectural decisions: {decision_text}. "
        "Watch out for common pitfalls in AI-generated code."
    )


def compute_fingerprint(manifest: Manifest | None) -> str:
    """Order-independent digest of declared dependency names."""
    if manifest is None:
        return "unknown"
    payload = f"{','.join(sorted(manifest.dependencies))}|{','.join(sorted(manifest.dev_dependencies))}"
    return hashlib.sha256(payload.encode()).hexdigest()[:16]


def render_patterns_doc(patterns: list[CodePattern]) -> str:
    lines = ["# Code Patterns", ""]
    for p in patterns:
        last_seen = p.last_seen.isoformat() if p.last_seen else "never"
        lines += [
            f"## {p.name}",
            "",
            f"**Description:** {p.description}  ",
            f"**Frequency:** {p.frequency} occurrences  ",
            f"**Files:** {len(set(p.files))} files  ",
            f"**Last Seen:** {last_seen}",
            "",
            "```",
            p.example,
            "```",
            "",
        ]
    return "\n".join(lines)


def render_decisions_doc(decisions: list[ArchitecturalDecision]) -> str:
    lines = ["# Architectural Decisions", ""]
    for d in decisions:
        date = d.date.isoformat() if d.date else "unknown"
        lines += [
            f"## {d.title}",
            "",
            f"**Decision:** {d.decision}  ",
            f"**Rationale:** {d.rationale}  ",
            f"**Date:** {date}  ",
            f"**Files:** {', '.join(d.files)}",
            "",
            "**Consequences:**",
            *(f"- {c}" for c in d.consequences),
            "",
        ]
    return "\n".join(lines)


class ContextStore:
    """Sole owner of the CompressedContext snapshot."""

    def __init__(self, store: Store):
        self.store = store

    async def build_report(self, project_root: str | Path) -> BuildReport:
        """Rebuild the snapshot from ``project_root`` and keep the parse outcomes."""
        await self.store.ensure_dir(self.store.context_dir)

        manifest = await read_manifest(project_root)
        scan = await extract_patterns(project_root)
        decisions = await extract_decisions(project_root, manifest, self.store.decisions_dir)
        pitfalls = load_pitfalls()

        context = CompressedContext(
            patterns=scan.patterns,
            decisions=decisions,
            pitfalls=pitfalls,
            summary=generate_summary(scan.patterns, decisions),
            last_updated=datetime.now(timezone.utc),
            fingerprint=compute_fingerprint(manifest),
        )

        await self.store.write_model(self.store.compressed_path, context)
        await self.store.write_text(self.store.patterns_doc_path, render_patterns_doc(context.patterns))
        await self.store.write_text(self.store.decisions_doc_path, render_decisions_doc(context.decisions))

        failed = len(scan.failures)
        logger.info(
            f"Context built: {len(context.patterns)} patterns, {len(decisions)} decisions, "
            f"{failed} unparsable files, fingerprint {context.fingerprint}"
        )
        return BuildReport(context=context, outcomes=scan.outcomes)

    async def build(self, project_root: str | Path) -> CompressedContext:
        report = await self.build_report(project_root)
        return report.context

    async def get(self) -> CompressedContext | None:
        """Last persisted snapshot, or None if nothing was built yet."""
        if not await self.store.exists(self.store.compressed_path):
            return None
        return await self.store.read_model(self.store.compressed_path, CompressedContext)
